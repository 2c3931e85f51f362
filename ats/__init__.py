"""
Applicant tracking backend.

Core components:
- services: job posting lifecycle, resume scoring, candidate filtering
- scheduling: deadline-anchored screening pipeline on APScheduler
- db: SQLAlchemy tables and session management
- api: FastAPI application and routes
"""
