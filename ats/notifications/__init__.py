"""Candidate notifications."""

from ats.notifications.mailer import Recipient, SmtpMailer, get_mailer, notify_candidates

__all__ = ["Recipient", "SmtpMailer", "get_mailer", "notify_candidates"]
