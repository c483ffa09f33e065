# Overview: Service-layer operations for auth; credential verification and staff identities.

"""
Credential Verification and Staff Identity Management

WHY: Every action must be attributable. Staff (administrators, employees)
log in with a 4-digit PIN; market owners log in with their market's
10-digit phone number.

SECURITY NOTES:
- PINs hashed with bcrypt (cost factor PIN_HASH_ROUNDS, default 10)
- PIN lookup is a verification scan over every staff hash; a salted hash
  cannot be looked up by plaintext
- PIN uniqueness is enforced at creation time under a database-level
  serialization lock (see concurrency.serialize_identity_writes)
- Phone lookup is a direct unique-index query
"""

from __future__ import annotations

import bcrypt
from flask import current_app

from ..errors import AuthenticationFailure, ConflictFailure, NotFound, ValidationFailure
from ..extensions import db
from ..models import Market, Order, User
from ..permissions import STAFF_ROLES, Role
from ..validation import CREDENTIAL_PIN, classify_credential, validate_pin
from .concurrency import serialize_identity_writes
from .session_service import AuthContext


def hash_pin(pin: str) -> str:
    """
    Hash a 4-digit PIN using bcrypt.

    PIN format is validated before hashing.
    """
    validate_pin(pin)
    salt = bcrypt.gensalt(rounds=current_app.config["PIN_HASH_ROUNDS"])
    hashed = bcrypt.hashpw(pin.encode("utf-8"), salt)
    return hashed.decode("utf-8")  # Store as string in database


def verify_pin(pin: str, pin_hash: str | None) -> bool:
    """
    Verify PIN against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    Malformed hashes never match.
    """
    if not pin_hash:
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        return False


def find_user_by_pin(pin: str, exclude_user_id: str | None = None) -> User | None:
    """
    Linear scan over staff PIN hashes; first match wins.

    Duplicate PINs are prevented at write time, so at most one row should match.
    """
    query = db.session.query(User).order_by(User.created_at.asc(), User.id.asc())
    for user in query:
        if exclude_user_id is not None and user.id == exclude_user_id:
            continue
        if verify_pin(pin, user.pin_hash):
            return user
    return None


def authenticate(credential) -> AuthContext:
    """
    Authenticate a presented secret.

    - 4 digits: staff PIN, verified against every stored hash
    - 10 digits: market phone number, unique-index lookup, yields MARKET_OWNER
    - anything else: ValidationFailure (format error)

    Raises AuthenticationFailure when the credential is well-formed but unknown.
    """
    kind = classify_credential(credential)
    credential = credential.strip()

    if kind == CREDENTIAL_PIN:
        user = find_user_by_pin(credential)
        if user is None:
            raise AuthenticationFailure("Invalid PIN")
        try:
            role = Role.normalize(user.role)
        except ValueError:
            raise AuthenticationFailure("Invalid PIN")
        return AuthContext(principal_id=user.id, role=role, name=user.name)

    market = db.session.query(Market).filter_by(phone_number=credential).first()
    if market is None:
        raise AuthenticationFailure("Invalid phone number")
    return AuthContext(
        principal_id=market.id,
        role=Role.MARKET_OWNER,
        market_id=market.id,
        name=market.name,
    )


def _staff_role(role) -> Role:
    try:
        normalized = Role.normalize(role)
    except ValueError:
        raise ValidationFailure("Role must be ADMIN or EMPLOYEE")
    if normalized not in STAFF_ROLES:
        raise ValidationFailure("Role must be ADMIN or EMPLOYEE")
    return normalized


def create_user(name: str, role, pin: str) -> User:
    """
    Create an administrator or employee.

    The PIN is checked against every existing hash and the user inserted
    in one transaction that is serialized across processes.

    Raises:
        ValidationFailure: bad name, role or PIN format
        ConflictFailure: PIN already in use
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationFailure("Name is required")
    name = name.strip()
    if len(name) > 120:
        raise ValidationFailure("name exceeds max length 120")
    staff_role = _staff_role(role)
    validate_pin(pin)

    pin_hash = hash_pin(pin)

    try:
        serialize_identity_writes()

        if find_user_by_pin(pin) is not None:
            raise ConflictFailure("PIN already in use")

        user = User(name=name, role=staff_role.value, pin_hash=pin_hash)
        db.session.add(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Created %s user %s", staff_role.value, user.id)
    return user


def set_user_pin(user_id: str, pin: str) -> User:
    """Replace a user's PIN, keeping PINs unique across staff."""
    validate_pin(pin)
    pin_hash = hash_pin(pin)

    try:
        serialize_identity_writes()

        user = db.session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")

        if find_user_by_pin(pin, exclude_user_id=user.id) is not None:
            raise ConflictFailure("PIN already in use")

        user.pin_hash = pin_hash
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.created_at.desc(), User.id.asc()).all()


def delete_user(user_id: str, acting: AuthContext | None = None) -> None:
    """
    Delete a staff user.

    Users referenced by orders are kept for attribution (409). An
    administrator cannot delete their own account.
    """
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    if acting is not None and acting.principal_id == user.id:
        raise ConflictFailure("You cannot delete your own account")

    order_count = db.session.query(Order).filter_by(user_id=user.id).count()
    if order_count:
        raise ConflictFailure(
            "User has orders and cannot be deleted",
            details={"orderCount": order_count},
        )

    db.session.delete(user)
    db.session.commit()
