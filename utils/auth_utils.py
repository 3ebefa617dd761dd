import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import streamlit as st
from sqlalchemy.orm import Session

from models import User, UserRole

logger = logging.getLogger(__name__)

SESSION_KEY = "vehicle_books_user"


@dataclass(frozen=True)
class SessionUser:
    """Who is logged in. Built once at login and read by every page."""
    user_id: int
    email: str
    role: str = UserRole.STAFF

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def role_from_metadata(metadata: Optional[Dict[str, Any]]) -> str:
    """Unknown or missing roles are treated as staff."""
    role = (metadata or {}).get("role")
    if role in (UserRole.ADMIN, UserRole.STAFF):
        return role
    return UserRole.STAFF


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def authenticate(db: Session, email: str, password: str) -> Optional[SessionUser]:
    """Returns the session user on a good email/password pair, otherwise None."""
    if not email or not password:
        return None
    user = get_user_by_email(db, email)
    if not user or not user.verify_password(password):
        logger.warning("Failed login for %s", email)
        return None
    logger.info("User %s logged in", user.email)
    return SessionUser(user_id=user.id, email=user.email, role=role_from_metadata(user.user_metadata))


def create_user(db: Session, email: str, password: str, role: str = UserRole.STAFF) -> User:
    hashed, salt = User.hash_password(password)
    user = User(
        email=email.strip().lower(),
        hashed_password=hashed,
        salt=salt,
        user_metadata={"role": role},
    )
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    except Exception as e:
        db.rollback()
        raise e


def set_user_role(db: Session, email: str, role: str) -> Optional[User]:
    """Updates user_metadata['role']; None when no such user exists."""
    if role not in (UserRole.ADMIN, UserRole.STAFF):
        raise ValueError(f"Invalid role '{role}'. Use 'admin' or 'staff'.")
    user = get_user_by_email(db, email)
    if not user:
        return None
    try:
        # Reassign so SQLAlchemy notices the JSON change
        user.user_metadata = {**(user.user_metadata or {}), "role": role}
        db.commit()
        return user
    except Exception as e:
        db.rollback()
        raise e


# --- SESSION STATE ---

def set_session_user(user: SessionUser) -> None:
    st.session_state[SESSION_KEY] = user


def get_session_user() -> Optional[SessionUser]:
    return st.session_state.get(SESSION_KEY)


def clear_session() -> None:
    if SESSION_KEY in st.session_state:
        del st.session_state[SESSION_KEY]


def is_admin() -> bool:
    user = get_session_user()
    return bool(user and user.is_admin)


def require_admin() -> bool:
    """For admin-only pages: shows a message and returns False for staff."""
    if is_admin():
        return True
    st.warning("This section is only available to admins.")
    return False
