# auth.py
"""
Authentication for FPMS.
Dealers log in with email + password; outlet managers with phone + password.
Attendants never log in.
"""

from typing import Optional, Dict, List
from datetime import datetime
from sqlalchemy.orm import Session
from models import User, RetailOutlet, Staff, StaffRole
from logger import log_warning
from security import SecurityManager
import bcrypt


def _outlet_dict(outlet: RetailOutlet) -> Dict:
    return {
        "id": outlet.id,
        "name": outlet.name,
        "sap_code": outlet.sap_code,
        "oil_company": outlet.oil_company,
    }


class AuthManager:
    """Handles dealer and manager authentication"""

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt"""
        return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    @staticmethod
    def verify_password(password: str, password_hash: Optional[str]) -> bool:
        """Verify a password against its bcrypt hash"""
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
        except ValueError as e:
            log_warning(f"Password verification error: {e}")
            return False

    @staticmethod
    def register_dealer(
        session: Session,
        email: str,
        password: str,
        full_name: Optional[str] = None,
        language: str = "en",
    ) -> Dict:
        """
        Create a dealer account.
        Returns a dictionary (not the ORM object) to avoid session detachment issues.
        """
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise ValueError("A valid email address is required")

        existing = session.query(User).filter(User.email == email).one_or_none()
        if existing:
            raise ValueError(f"Email '{email}' is already registered")

        is_valid, error_msg = SecurityManager.validate_password_strength(password)
        if not is_valid:
            raise ValueError(error_msg)

        user = User(
            email=email,
            password_hash=AuthManager.hash_password(password),
            full_name=full_name,
            language=language,
            role="owner",
            is_active=True,
        )
        session.add(user)
        session.commit()

        SecurityManager.log_audit(session, email, "REGISTER", resource_type="User", resource_id=user.id)

        return {
            "id": user.id,
            "email": user.email,
            "full_name": user.full_name,
            "role": user.role,
            "language": user.language,
        }

    @staticmethod
    def authenticate_dealer(session: Session, email: str, password: str) -> Optional[Dict]:
        """
        Authenticate dealer credentials.
        Returns a dealer dict with the outlets they own, None on failure.
        """
        email = (email or "").strip().lower()
        user = session.query(User).filter(
            User.email == email,
            User.is_active == True  # noqa: E712
        ).one_or_none()

        if not user or not AuthManager.verify_password(password, user.password_hash):
            SecurityManager.log_audit(
                session, email, "LOGIN", resource_type="User",
                details="Invalid email or password", success=False
            )
            return None

        user.last_login = datetime.utcnow()
        session.commit()
        SecurityManager.log_audit(session, email, "LOGIN", resource_type="User", resource_id=user.id)

        outlets = user.outlets.order_by(RetailOutlet.name).all()
        return {
            "id": user.id,
            "email": user.email,
            "full_name": user.full_name,
            "role": "dealer",
            "language": user.language,
            "outlets": [_outlet_dict(o) for o in outlets],
            "outlet_id": outlets[0].id if outlets else None,
        }

    @staticmethod
    def authenticate_manager(session: Session, phone_number: str, password: str) -> Optional[Dict]:
        """
        Authenticate an outlet manager by phone number.
        Only active staff with the manager role can log in.
        """
        phone_number = (phone_number or "").strip()
        staff = session.query(Staff).filter(
            Staff.phone_number == phone_number,
            Staff.role == StaffRole.MANAGER,
            Staff.is_active == True  # noqa: E712
        ).first()

        if not staff or not AuthManager.verify_password(password, staff.password_hash):
            SecurityManager.log_audit(
                session, phone_number, "LOGIN", resource_type="Staff",
                details="Invalid phone number or password", success=False
            )
            return None

        SecurityManager.log_audit(
            session, staff.name, "LOGIN", resource_type="Staff",
            resource_id=staff.id, outlet_id=staff.retail_outlet_id
        )

        outlet = session.query(RetailOutlet).filter(RetailOutlet.id == staff.retail_outlet_id).one_or_none()
        return {
            "id": staff.id,
            "name": staff.name,
            "phone_number": staff.phone_number,
            "role": "manager",
            "outlet_id": staff.retail_outlet_id,
            "outlet": _outlet_dict(outlet) if outlet else None,
        }

    @staticmethod
    def get_dealer_outlets(session: Session, user_id: int) -> List[Dict]:
        outlets = (
            session.query(RetailOutlet)
            .filter(RetailOutlet.owner_id == user_id)
            .order_by(RetailOutlet.name)
            .all()
        )
        return [_outlet_dict(o) for o in outlets]

    @staticmethod
    def can_access_outlet(user_dict: Dict, outlet_id: int) -> bool:
        """
        Dealers reach every outlet they own; managers only their own outlet.
        """
        if user_dict.get("role") == "dealer":
            return any(o["id"] == outlet_id for o in user_dict.get("outlets", []))
        return user_dict.get("outlet_id") == outlet_id

    @staticmethod
    def change_password(session: Session, user_id: int, old_password: str, new_password: str) -> Dict:
        """Change a dealer password with validation."""
        user = session.query(User).filter(User.id == user_id).one_or_none()
        if not user:
            raise ValueError("User not found")

        if not AuthManager.verify_password(old_password, user.password_hash):
            raise ValueError("Current password is incorrect")

        is_valid, error_msg = SecurityManager.validate_password_strength(new_password)
        if not is_valid:
            raise ValueError(error_msg)

        if AuthManager.verify_password(new_password, user.password_hash):
            raise ValueError("New password cannot be the same as current password")

        user.password_hash = AuthManager.hash_password(new_password)
        session.commit()

        SecurityManager.log_audit(
            session, user.email, "PASSWORD_CHANGE", resource_type="User",
            resource_id=user.id, details="Dealer changed their password"
        )
        return {"id": user.id, "email": user.email}
