"""
Identity Service - email/password accounts.

Accounts live in the PostgreSQL `accounts` table; the rest of the system only
ever sees an Identity (uid, email, display name). Roles are NOT stored here,
see the `users` collection in MongoDB.

Provides:
- sign_in / sign_out with an identity-change subscription
- account creation, profile update, deletion
- lockout after repeated bad passwords ("too-many-requests")

Every failure is an IdentityError carrying a provider-style code
(e.g. "invalid-credential"); the HTTP layer turns codes into messages.
"""

import functools
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from pydantic import validate_email
from pydantic_core import PydanticCustomError
from sqlalchemy import Boolean, DateTime, Integer, String, bindparam, text
from sqlalchemy.exc import SQLAlchemyError

from fct_admin.core.auth import hash_password, verify_password
from fct_admin.core.config import get_settings
from fct_admin.core.errors import IdentityError, StoreError
from fct_admin.core.session import Identity
from fct_admin.db.postgres import get_db_session

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Optional[Identity]], None]

_ACCOUNT_COLUMNS = {
    "uid": String,
    "email": String,
    "display_name": String,
    "password_hash": String,
    "is_active": Boolean,
    "failed_attempts": Integer,
    "locked_until": DateTime,
    "created_at": DateTime,
}

_SELECT_ACCOUNT = """
    SELECT uid, email, display_name, password_hash, is_active,
           failed_attempts, locked_until, created_at
    FROM accounts
"""


def _utcnow() -> datetime:
    # naive UTC: the accounts table uses TIMESTAMP without time zone
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _account_query(where: str):
    return text(_SELECT_ACCOUNT + where).columns(**_ACCOUNT_COLUMNS)


def _normalize_email(email: str) -> str:
    """Validate the address format; raise invalid-email otherwise."""
    if not email:
        raise IdentityError("invalid-email")
    try:
        _, normalized = validate_email(email.strip())
    except PydanticCustomError:
        raise IdentityError("invalid-email") from None
    return normalized.lower()


def _to_identity(row) -> Identity:
    return Identity(uid=row.uid, email=row.email, display_name=row.display_name)


def _backend_errors(func):
    """Turn database failures into a StoreError the dashboard can show."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error("Identity backend error in %s: %s", func.__name__, e)
            raise StoreError("El servicio de identidad no está disponible.", e) from e
    return wrapper


class IdentityService:
    """
    Email/password identity provider backed by PostgreSQL.

    Usage:
        service = get_identity_service()
        unsubscribe = service.on_identity_changed(session.on_identity_changed)
        identity = service.sign_in("ana@example.com", "secret")
        unsubscribe()
    """

    def __init__(self):
        self.settings = get_settings()
        self._listeners: List[IdentityListener] = []

    # --------------------------------------------------------
    # Subscription
    # --------------------------------------------------------

    def on_identity_changed(self, listener: IdentityListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it again."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, identity: Optional[Identity]) -> None:
        for listener in list(self._listeners):
            listener(identity)

    # --------------------------------------------------------
    # Sign-in / sign-out
    # --------------------------------------------------------

    @_backend_errors
    def sign_in(self, email: str, password: str) -> Identity:
        if not self.settings.identity_password_signin_enabled:
            raise IdentityError("operation-not-allowed")

        email = _normalize_email(email)
        now = _utcnow()

        with get_db_session() as db:
            row = db.execute(_account_query("WHERE email = :email"), {"email": email}).fetchone()

            # unknown email and wrong password look the same to the caller
            if row is None:
                raise IdentityError("invalid-credential")
            if not row.is_active:
                raise IdentityError("user-disabled")
            if row.locked_until is not None and row.locked_until > now:
                raise IdentityError("too-many-requests")

            if not verify_password(password or "", row.password_hash):
                self._record_failure(db, row, now)
                db.commit()
                if row.failed_attempts + 1 >= self.settings.identity_max_failed_attempts:
                    raise IdentityError("too-many-requests")
                raise IdentityError("invalid-credential")

            if row.failed_attempts or row.locked_until is not None:
                db.execute(
                    text("UPDATE accounts SET failed_attempts = 0, locked_until = NULL WHERE uid = :uid"),
                    {"uid": row.uid}
                )

        identity = _to_identity(row)
        logger.info("Signed in %s", identity.uid)
        self._notify(identity)
        return identity

    def _record_failure(self, db, row, now: datetime) -> None:
        attempts = row.failed_attempts + 1
        if attempts >= self.settings.identity_max_failed_attempts:
            locked_until = now + timedelta(minutes=self.settings.identity_lockout_minutes)
            logger.warning("Locking %s until %s after %d failed attempts", row.uid, locked_until, attempts)
            db.execute(
                text(
                    "UPDATE accounts SET failed_attempts = 0, locked_until = :locked_until WHERE uid = :uid"
                ).bindparams(bindparam("locked_until", type_=DateTime)),
                {"uid": row.uid, "locked_until": locked_until}
            )
        else:
            db.execute(
                text("UPDATE accounts SET failed_attempts = :attempts WHERE uid = :uid"),
                {"uid": row.uid, "attempts": attempts}
            )

    def sign_out(self, uid: str) -> None:
        logger.info("Signed out %s", uid)
        self._notify(None)

    # --------------------------------------------------------
    # Accounts
    # --------------------------------------------------------

    @_backend_errors
    def get_identity(self, uid: str) -> Optional[Identity]:
        """Active account for `uid`, or None."""
        with get_db_session() as db:
            row = db.execute(_account_query("WHERE uid = :uid"), {"uid": uid}).fetchone()
        if row is None or not row.is_active:
            return None
        return _to_identity(row)

    def _check_password(self, password: str) -> None:
        if not password or len(password) < self.settings.identity_min_password_length:
            raise IdentityError("weak-password")

    @_backend_errors
    def create_account(self, email: str, password: str, display_name: Optional[str] = None) -> Identity:
        email = _normalize_email(email)
        self._check_password(password)

        uid = uuid.uuid4().hex
        with get_db_session() as db:
            exists = db.execute(
                text("SELECT uid FROM accounts WHERE email = :email"), {"email": email}
            ).fetchone()
            if exists:
                raise IdentityError("email-already-in-use")

            db.execute(
                text("""
                    INSERT INTO accounts (uid, email, display_name, password_hash, is_active, failed_attempts, created_at)
                    VALUES (:uid, :email, :display_name, :password_hash, :is_active, 0, :created_at)
                """).bindparams(
                    bindparam("is_active", type_=Boolean),
                    bindparam("created_at", type_=DateTime)
                ),
                {
                    "uid": uid,
                    "email": email,
                    "display_name": display_name or None,
                    "password_hash": hash_password(password),
                    "is_active": True,
                    "created_at": _utcnow()
                }
            )

        logger.info("Created account %s", uid)
        return Identity(uid=uid, email=email, display_name=display_name or None)

    @_backend_errors
    def update_profile(
        self,
        uid: str,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
        current_password: Optional[str] = None,
        new_password: Optional[str] = None
    ) -> Identity:
        """
        Update display name, email and/or password.

        Changing email or password re-authenticates with `current_password`
        first: missing -> requires-recent-login, wrong -> wrong-password.
        """
        with get_db_session() as db:
            row = db.execute(_account_query("WHERE uid = :uid"), {"uid": uid}).fetchone()
            if row is None:
                raise IdentityError("user-not-found")

            updates = []
            params = {"uid": uid}

            if display_name is not None and display_name != row.display_name:
                updates.append("display_name = :display_name")
                params["display_name"] = display_name

            new_email = _normalize_email(email) if email else None
            sensitive = (new_email and new_email != row.email) or new_password
            if sensitive:
                if not current_password:
                    raise IdentityError("requires-recent-login")
                if not verify_password(current_password, row.password_hash):
                    raise IdentityError("wrong-password")

            if new_email and new_email != row.email:
                taken = db.execute(
                    text("SELECT uid FROM accounts WHERE email = :email AND uid <> :uid"),
                    {"email": new_email, "uid": uid}
                ).fetchone()
                if taken:
                    raise IdentityError("email-already-in-use")
                updates.append("email = :email")
                params["email"] = new_email

            if new_password:
                self._check_password(new_password)
                updates.append("password_hash = :password_hash")
                params["password_hash"] = hash_password(new_password)

            if updates:
                db.execute(text(f"UPDATE accounts SET {', '.join(updates)} WHERE uid = :uid"), params)

        identity = Identity(
            uid=uid,
            email=params.get("email", row.email),
            display_name=params.get("display_name", row.display_name)
        )
        self._notify(identity)
        return identity

    @_backend_errors
    def delete_account(self, uid: str) -> bool:
        with get_db_session() as db:
            result = db.execute(text("DELETE FROM accounts WHERE uid = :uid"), {"uid": uid})
            deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted account %s", uid)
        return deleted


def get_identity_service() -> IdentityService:
    """One service per request, so identity listeners never outlive their request."""
    return IdentityService()
