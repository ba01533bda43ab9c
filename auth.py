"""
Admin authentication.
Password hashing, session tokens, login/logout and the single admin account.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from passlib.hash import bcrypt
from pymongo.errors import DuplicateKeyError

import database
from config import ALLOW_ADMIN_BOOTSTRAP, SESSION_TTL_HOURS
from schemas import AdminUser, AuthSession

logger = logging.getLogger(__name__)

# The admin account is a singleton document.
ADMIN_ID = "admin"


def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.verify(password, password_hash)
    except ValueError:
        # Not a bcrypt hash
        return False


def generate_token() -> str:
    return secrets.token_hex(32)


def get_admin_user() -> Optional[dict]:
    return database.admin().find_one({"_id": ADMIN_ID})


def initialize_admin(username: str, password: str) -> bool:
    """Create the admin account unless one exists. Returns True if created."""
    doc = AdminUser(username=username, password_hash=hash_password(password)).model_dump()
    try:
        result = database.admin().update_one(
            {"_id": ADMIN_ID},
            {"$setOnInsert": doc},
            upsert=True,
        )
    except DuplicateKeyError:
        return False
    created = result.upserted_id is not None
    if created:
        logger.info("Admin account '%s' created", username)
    return created


def create_session() -> str:
    token = generate_token()
    session = AuthSession(
        token=token,
        expires_at=datetime.now() + timedelta(hours=SESSION_TTL_HOURS),
    )
    database.sessions().insert_one(session.model_dump())
    return token


def login(username: str, password: str) -> Optional[str]:
    """Check credentials and return a new session token, or None."""
    admin = get_admin_user()
    if admin is None:
        if not ALLOW_ADMIN_BOOTSTRAP:
            logger.warning("Login attempt with no admin account and bootstrap disabled")
            return None
        if initialize_admin(username, password):
            logger.warning("No admin account existed; first login claimed it for '%s'", username)
            return create_session()
        # Lost a race with a concurrent first login; check against the winner.
        admin = get_admin_user()

    if admin["username"] != username or not verify_password(password, admin["password_hash"]):
        logger.info("Failed admin login for '%s'", username)
        return None

    cleanup_sessions()
    return create_session()


def is_authenticated(token: Optional[str]) -> bool:
    if not token:
        return False
    session = database.sessions().find_one({"token": token})
    if session is None:
        return False
    if session["expires_at"] < datetime.now():
        database.sessions().delete_one({"token": token})
        return False
    return True


def logout(token: str) -> None:
    database.sessions().delete_one({"token": token})


def change_password(current_password: str, new_password: str) -> bool:
    admin = get_admin_user()
    if admin is None or not verify_password(current_password, admin["password_hash"]):
        return False
    database.admin().update_one(
        {"_id": ADMIN_ID},
        {"$set": {"password_hash": hash_password(new_password)}},
    )
    logger.info("Admin password changed")
    return True


def cleanup_sessions() -> int:
    result = database.sessions().delete_many({"expires_at": {"$lt": datetime.now()}})
    return result.deleted_count
