"""Database module."""

from jobportal.api.db.session import configure_db, get_db, get_session_maker, init_db, close_db
from jobportal.api.db.models import Base, User, AuditLog

__all__ = ["configure_db", "get_db", "get_session_maker", "init_db", "close_db", "Base", "User", "AuditLog"]
