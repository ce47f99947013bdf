"""
Credential manager: user registration and login.

Passwords are hashed with Werkzeug's salted KDF (scrypt unless the app is
configured otherwise) and verified with a constant-time comparison. Login
failures never say whether the email or the password was wrong.
"""

import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError

from errors import DuplicateEmail, InvalidCredentials
from models import db, User

logger = logging.getLogger(__name__)


def _find_user(email: str):
    # Exact match: "A@b.com" and "a@b.com" are different accounts.
    return User.query.filter_by(email=email).first()


def register_user(email: str, password: str) -> dict:
    """Create a user and return its public projection."""
    if _find_user(email) is not None:
        logger.info("Registration rejected: email already registered")
        raise DuplicateEmail()

    user = User(email=email)
    user.set_password(password, method=current_app.config["PASSWORD_HASH_METHOD"])
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race against a concurrent registration of the same email.
        db.session.rollback()
        raise DuplicateEmail()

    logger.info("Registered user id=%s", user.id)
    return user.to_dict()


def login_user(email: str, password: str) -> dict:
    """Verify credentials and return the user's public projection."""
    user = _find_user(email)
    if user is None or not user.check_password(password):
        logger.info("Login failed")
        raise InvalidCredentials()

    logger.info("User id=%s logged in", user.id)
    return user.to_dict()
