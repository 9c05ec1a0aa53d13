"""Account validation, persistence and password credentials."""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, List, Optional

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, func, select

from ..models import Account

logger = logging.getLogger(__name__)

EMAIL_FORMAT = re.compile(r"^[^@\s]+@[^@\s]+$")
PASSWORD_LENGTH = (6, 128)

TAKEN_EMAIL = "Email has already been taken"
TAKEN_IDENTITY = "Uid has already been taken"


@dataclass
class Resolution:
    """Outcome of trying to find or store an account."""

    account: Account
    errors: List[str] = field(default_factory=list)
    persisted: bool = False
    created: bool = False


def normalize_email(email: Any) -> str:
    if email is None:
        return ""
    return str(email).strip().lower()


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""

    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def find_by_email(session: Session, email: Optional[str]) -> Optional[Account]:
    normalized = normalize_email(email)
    if not normalized:
        return None
    return session.exec(
        select(Account).where(func.lower(Account.email) == normalized)
    ).first()


def find_by_identity(session: Session, provider: str, uid: str) -> Optional[Account]:
    return session.exec(
        select(Account).where(Account.provider == provider, Account.uid == uid)
    ).first()


def validate_account(session: Session, account: Account) -> List[str]:
    """Return the full validation messages for ``account``; empty when valid."""

    errors: List[str] = []
    account.email = normalize_email(account.email)

    if not account.email:
        errors.append("Email can't be blank")
    elif not EMAIL_FORMAT.match(account.email):
        errors.append("Email is invalid")
    else:
        existing = find_by_email(session, account.email)
        if existing is not None and existing.id != account.id:
            errors.append(TAKEN_EMAIL)

    if account.provider and account.uid:
        existing = find_by_identity(session, account.provider, account.uid)
        if existing is not None and existing.id != account.id:
            errors.append(TAKEN_IDENTITY)

    return errors


def _integrity_messages(session: Session, account: Account) -> List[str]:
    # The losing side of a concurrent insert: work out which key collided.
    messages = [
        message
        for message in validate_account(session, account)
        if message in {TAKEN_EMAIL, TAKEN_IDENTITY}
    ]
    return messages or [TAKEN_EMAIL]


def save_account(session: Session, account: Account) -> List[str]:
    """Validate and insert ``account``; return the errors when it was not stored.

    The row is either committed or the session is rolled back, so a failed
    save never leaves a partial account behind.
    """

    errors = validate_account(session, account)
    if errors:
        return errors

    account.id = uuid.uuid4()
    session.add(account)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        account.id = None
        errors = _integrity_messages(session, account)
        logger.warning("account insert rejected by constraint: %s", "; ".join(errors))
        return errors
    session.refresh(account)
    return []


def register_account(
    session: Session,
    *,
    email: Optional[str],
    password: Optional[str],
    password_confirmation: Optional[str],
    name: Optional[str] = None,
    provider: Optional[str] = None,
    uid: Optional[str] = None,
    avatar_url: Optional[str] = None,
) -> Resolution:
    """Create an account that can log in with a password."""

    account = Account(
        email=normalize_email(email),
        name=(name or "").strip() or None,
        provider=provider or None,
        uid=uid or None,
        avatar_url=avatar_url or None,
    )

    password_errors: List[str] = []
    low, high = PASSWORD_LENGTH
    if not password:
        password_errors.append("Password can't be blank")
    elif len(password) < low:
        password_errors.append(f"Password is too short (minimum is {low} characters)")
    elif len(password) > high:
        password_errors.append(f"Password is too long (maximum is {high} characters)")
    if password and password != password_confirmation:
        password_errors.append("Password confirmation doesn't match Password")

    if password_errors:
        errors = validate_account(session, account) + password_errors
        return Resolution(account=account, errors=errors)

    account.password_hash = hash_password(password)
    errors = save_account(session, account)
    if errors:
        return Resolution(account=account, errors=errors)
    logger.info("account %s registered", account.id)
    return Resolution(account=account, persisted=True, created=True)


def authenticate(session: Session, email: Optional[str], password: Optional[str]) -> Optional[Account]:
    """Return the account matching the email/password pair, if any."""

    account = find_by_email(session, email)
    if account is None or not verify_password(password or "", account.password_hash):
        return None
    return account


__all__ = [
    "Resolution",
    "authenticate",
    "find_by_email",
    "find_by_identity",
    "hash_password",
    "normalize_email",
    "register_account",
    "save_account",
    "validate_account",
    "verify_password",
]
