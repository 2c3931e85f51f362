"""Send candidate notification emails over SMTP."""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from ats.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Recipient:
    email: str
    name: str


class SmtpMailer:
    """Hands one message per call to an SMTP server (STARTTLS + login)."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        from_addr: str = "",
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_addr = from_addr or user
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.host)

    def send_mail(self, to: str, subject: str, html: str) -> bool:
        """Send an HTML email. Returns False when SMTP is not configured.

        Raises:
            smtplib.SMTPException, OSError: delivery failed.
        """
        if not self.configured:
            logger.info(f"SMTP not configured, skipping mail to {to}: {subject}")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_addr
        msg["To"] = to
        msg.attach(MIMEText(html, "html", "utf-8"))

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            if self.user:
                server.login(self.user, self.password)
            server.sendmail(self.from_addr, [to], msg.as_string())
        logger.info(f"Mail sent to {to}")
        return True


def get_mailer() -> SmtpMailer:
    """Mailer from settings. FastAPI dependency."""
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_password,
        from_addr=settings.mail_from,
    )


def posting_edited_message(title: str, job_posting_key: str) -> tuple[str, str]:
    """Subject and HTML body telling an applicant a posting changed."""
    link = f"{settings.frontend_base_url.rstrip('/')}/job-postings/{job_posting_key}"
    subject = f"Job posting updated: {title}"
    html = (
        f"The job posting [{title}] you applied to has been updated. Please review it.<br><br>"
        f'<a href="{link}">View the updated job posting</a>'
    )
    return subject, html


def notify_candidates(mailer: SmtpMailer, title: str, job_posting_key: str, recipients: list[Recipient]) -> int:
    """Email every recipient about an edited posting.

    One message per recipient, no retry. A failed delivery is logged and the
    loop moves on. Returns the number of messages sent.
    """
    subject, html = posting_edited_message(title, job_posting_key)
    sent = 0
    for recipient in recipients:
        try:
            if mailer.send_mail(recipient.email, subject, html):
                sent += 1
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"[{job_posting_key}] Notification to {recipient.email} failed: {e}")
    logger.info(f"[{job_posting_key}] Notified {sent}/{len(recipients)} candidates of posting edit")
    return sent
