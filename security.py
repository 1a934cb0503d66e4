# security.py
"""
Security and audit utilities for FPMS.
Handles audit logging and password policy.
"""

import re
from typing import List

from sqlalchemy.orm import Session

from logger import log_error
from models import AuditLog


class SecurityManager:
    """Centralized security and audit management"""

    MIN_PASSWORD_LENGTH = 8
    SESSION_TIMEOUT_MINUTES = 30

    @staticmethod
    def validate_password_strength(password: str) -> tuple[bool, str]:
        """
        Validate password meets security requirements.
        Returns (is_valid, error_message)
        """
        if len(password or "") < SecurityManager.MIN_PASSWORD_LENGTH:
            return False, f"Password must be at least {SecurityManager.MIN_PASSWORD_LENGTH} characters"

        if not re.search(r'[A-Za-z]', password):
            return False, "Password must contain at least one letter"

        if not re.search(r'[0-9]', password):
            return False, "Password must contain at least one number"

        return True, ""

    @staticmethod
    def log_audit(session: Session, username: str, action: str,
                  resource_type: str = None, resource_id: str = None,
                  details: str = None, outlet_id: int = None,
                  success: bool = True):
        """
        Log audit trail entry.

        Args:
            session: Database session
            username: Who performed the action (dealer email or manager name)
            action: LOGIN, CREATE, UPDATE, DELETE, ...
            resource_type: NozzleReading, ProductRate, Tank, ...
            resource_id: ID of the resource
            details: Free text, truncated to the column size
            outlet_id: Outlet the action belongs to
            success: Whether the action succeeded
        """
        from timezone_utils import get_local_time

        log = AuditLog(
            username=username or "unknown",
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            details=(details or "")[:500] or None,
            retail_outlet_id=outlet_id,
            success=success,
            timestamp=get_local_time().replace(tzinfo=None),
        )
        session.add(log)

        try:
            session.commit()
        except Exception as e:
            session.rollback()
            # Audit logging failure shouldn't break the app
            log_error(f"Failed to log audit: {e}")

    @staticmethod
    def recent_audit(session: Session, outlet_id: int, limit: int = 50) -> List[AuditLog]:
        return (
            session.query(AuditLog)
            .filter(AuditLog.retail_outlet_id == outlet_id)
            .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
            .limit(limit)
            .all()
        )
