# Overview: Service-layer operations for users and authentication.

"""
Authentication & user management

WHY: Every sale and admin action must be attributable. Uses bcrypt for
password hashing and validates password strength.

RULES:
- The first admin can self-register only while no admin exists.
- Only admins create further accounts.
- The last remaining admin cannot be demoted.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, default 12)
- Minimum 8 characters; upper, lower, digit and special char required
- Session tokens managed separately (see session_service.py)
"""

import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, ROLES
from ..errors import AuthError, ConflictError, ForbiddenError, UserNotFound, ValidationError
from ..validation import fits_db_integer
from tillpoint.time_utils import utcnow
from . import activity_service


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,64}$")


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def _validate_username(username) -> str:
    if not isinstance(username, str) or not USERNAME_PATTERN.match(username.strip()):
        raise ValidationError(
            "Username must be 3-64 characters of letters, digits, '.', '_' or '-'"
        )
    return username.strip()


def check_admin_exists() -> bool:
    return db.session.query(User.id).filter_by(role="admin").first() is not None


def count_admins() -> int:
    return db.session.query(User).filter_by(role="admin").count()


def create_user(username: str, password: str, role: str = "cashier", *, actor_id: int | None = None) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises ValidationError (bad username/password/role) or ConflictError
    (username taken).
    """
    username = _validate_username(username)
    if role not in ROLES:
        raise ValidationError(f"role must be one of {', '.join(ROLES)}")

    if db.session.query(User.id).filter_by(username=username).first() is not None:
        raise ConflictError("Username already exists")

    user = User(username=username, password_hash=hash_password(password), role=role)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Username already exists")

    if actor_id is not None:
        activity_service.log_action(
            actor_id,
            activity_service.USER_CREATED,
            f"Created {role} account '{username}' (ID {user.id})",
        )
    return user


def register_admin(username: str, password: str) -> User:
    """First-run admin registration; refused once any admin exists."""
    if check_admin_exists():
        raise ForbiddenError("An admin account already exists.")
    return create_user(username, password, role="admin")


def list_users() -> list[dict]:
    users = db.session.query(User).order_by(User.username.asc()).all()
    return [u.to_dict() for u in users]


def update_role(user_id: int, role: str, *, actor_id: int | None = None) -> User:
    if role not in ROLES:
        raise ValidationError(f"role must be one of {', '.join(ROLES)}")

    user = db.session.get(User, user_id) if fits_db_integer(user_id) else None
    if user is None:
        raise UserNotFound(user_id)

    if user.role == role:
        return user

    if user.role == "admin" and count_admins() <= 1:
        raise ConflictError("Cannot demote the last admin")

    previous = user.role
    user.role = role
    db.session.commit()

    activity_service.log_action(
        actor_id,
        activity_service.USER_ROLE_UPDATED,
        f"Changed role of '{user.username}' (ID {user.id}) from {previous} to {role}",
    )
    return user


def authenticate(username: str, password: str) -> User:
    """
    Authenticate user with username and password.

    Updates last_login_at on success. Raises AuthError on bad credentials
    without revealing which part was wrong.
    """
    if not username or not password:
        raise AuthError("Username and password are required")

    user = db.session.query(User).filter_by(username=str(username).strip()).first()
    if not user or not verify_password(password, user.password_hash):
        raise AuthError("Invalid username or password")

    user.last_login_at = utcnow()
    db.session.commit()
    return user
