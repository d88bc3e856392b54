"""JSON-backed local identity provider.

Accounts, the signed-in uid and password reset requests live in one JSON
file.  Passwords are stored as bcrypt hashes produced by passlib.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from passlib.context import CryptContext
from pydantic import BaseModel, Field

from mindscribe.config import AuthConfig
from mindscribe.identity.base import IdentityProvider
from mindscribe.identity.models import UserIdentity
from mindscribe.shared.errors import AuthError
from mindscribe.shared.io import atomic_write
from mindscribe.shared.validation import is_valid_email

logger = logging.getLogger(__name__)

ACCOUNTS_FILENAME = "accounts.json"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class _Account(BaseModel):
    uid: str
    email: str
    display_name: str = ""
    email_verified: bool = False
    password_hash: str
    created_at: datetime
    failed_attempts: int = 0
    locked_until: datetime | None = None

    def to_identity(self) -> UserIdentity:
        return UserIdentity(
            uid=self.uid,
            email=self.email,
            display_name=self.display_name,
            email_verified=self.email_verified,
        )


class _PasswordReset(BaseModel):
    email: str
    requested_at: datetime


class _AccountsData(BaseModel):
    """Internal wrapper for JSON serialization."""

    accounts: list[_Account] = Field(default_factory=list)
    session_uid: str | None = None
    password_resets: list[_PasswordReset] = Field(default_factory=list)


class LocalIdentityProvider(IdentityProvider):
    """Identity provider persisted to ``<data_dir>/accounts.json``.

    With ``data_dir=None`` everything stays in memory.  ``rounds`` overrides
    the bcrypt work factor of new hashes.
    """

    def __init__(
        self,
        data_dir: Path | None = None,
        config: AuthConfig | None = None,
        rounds: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        super().__init__()
        self._path = data_dir / ACCOUNTS_FILENAME if data_dir is not None else None
        self._config = config or AuthConfig()
        self._pwd_context = pwd_context
        if rounds is not None:
            self._pwd_context = pwd_context.copy(bcrypt__rounds=rounds)
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._recent_login_at: datetime | None = None
        self._data = self._load()
        self._sync_auth_state()

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _AccountsData:
        if self._path is None or not self._path.exists():
            return _AccountsData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _AccountsData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt accounts file at %s, starting fresh", self._path)
            return _AccountsData()

    def _save(self) -> None:
        if self._path is None:
            return
        try:
            atomic_write(self._path, self._data.model_dump_json(indent=2))
        except OSError as exc:
            raise AuthError("network-request-failed", str(exc)) from exc

    def _find_by_email(self, email: str) -> _Account | None:
        wanted = email.strip().lower()
        for account in self._data.accounts:
            if account.email.lower() == wanted:
                return account
        return None

    def _find_by_uid(self, uid: str | None) -> _Account | None:
        if uid is None:
            return None
        for account in self._data.accounts:
            if account.uid == uid:
                return account
        return None

    def _require_current(self) -> _Account:
        account = self._find_by_uid(self._data.session_uid)
        if account is None:
            raise AuthError("no-current-user", "No user is signed in")
        return account

    def _require_recent_login(self) -> None:
        window = timedelta(minutes=self._config.recent_login_minutes)
        if self._recent_login_at is None or self._clock() - self._recent_login_at > window:
            raise AuthError("requires-recent-login", "Please confirm your password first")

    def _set_password(self, account: _Account, password: str) -> None:
        account.password_hash = self._pwd_context.hash(password)

    def _check_password(self, account: _Account, password: str) -> bool:
        return self._pwd_context.verify(password, account.password_hash)

    def _check_new_password(self, password: str) -> None:
        if len(password) < self._config.min_password_length:
            raise AuthError("weak-password", "Password should be at least "
                            f"{self._config.min_password_length} characters")

    def _start_session(self, account: _Account) -> UserIdentity:
        self._data.session_uid = account.uid
        self._recent_login_at = self._clock()
        self._save()
        self._notify_auth_state()
        return account.to_identity()

    # ── IdentityProvider ─────────────────────────────────────────

    def current_user(self) -> UserIdentity | None:
        account = self._find_by_uid(self._data.session_uid)
        return account.to_identity() if account else None

    async def sign_up(self, email: str, password: str) -> UserIdentity:
        email = email.strip()
        if not is_valid_email(email):
            raise AuthError("invalid-email", "The email address is badly formatted")
        self._check_new_password(password)
        if self._find_by_email(email) is not None:
            raise AuthError("email-already-in-use", "The email address is already in use")

        account = _Account(
            uid=uuid.uuid4().hex,
            email=email,
            password_hash="",
            created_at=self._clock(),
        )
        self._set_password(account, password)
        self._data.accounts.append(account)
        logger.info("Created account %s", account.uid)
        return self._start_session(account)

    async def sign_in(self, email: str, password: str) -> UserIdentity:
        account = self._find_by_email(email)
        if account is None:
            raise AuthError("invalid-credentials", "Invalid email or password")

        now = self._clock()
        if account.locked_until is not None and account.locked_until > now:
            raise AuthError("too-many-requests", "Too many failed attempts")

        if not self._check_password(account, password):
            account.failed_attempts += 1
            if account.failed_attempts >= self._config.max_failed_attempts:
                account.locked_until = now + timedelta(minutes=self._config.lockout_minutes)
                account.failed_attempts = 0
                logger.warning("Locked out %s after repeated failures", account.uid)
            self._save()
            raise AuthError("invalid-credentials", "Invalid email or password")

        account.failed_attempts = 0
        account.locked_until = None
        logger.info("Signed in %s", account.uid)
        return self._start_session(account)

    async def sign_out(self) -> None:
        self._data.session_uid = None
        self._recent_login_at = None
        self._save()
        self._notify_auth_state()

    async def send_password_reset(self, email: str) -> None:
        email = email.strip()
        if not is_valid_email(email):
            raise AuthError("invalid-email", "The email address is badly formatted")
        account = self._find_by_email(email)
        if account is None:
            logger.debug("Password reset requested for unknown email")
            return
        self._data.password_resets.append(
            _PasswordReset(email=account.email, requested_at=self._clock())
        )
        self._save()
        logger.info("Password reset requested for %s", account.uid)

    async def reauthenticate(self, password: str) -> None:
        account = self._require_current()
        if not self._check_password(account, password):
            raise AuthError("wrong-password", "The password is invalid")
        self._recent_login_at = self._clock()

    async def change_password(self, new_password: str) -> None:
        account = self._require_current()
        self._require_recent_login()
        self._check_new_password(new_password)
        self._set_password(account, new_password)
        self._save()
        logger.info("Password changed for %s", account.uid)

    async def delete_account(self) -> None:
        account = self._require_current()
        self._require_recent_login()
        self._data.accounts = [a for a in self._data.accounts if a.uid != account.uid]
        self._data.session_uid = None
        self._recent_login_at = None
        self._save()
        logger.info("Deleted account %s", account.uid)
        self._notify_auth_state()

    @property
    def password_resets(self) -> list[str]:
        """Emails with a pending reset request, oldest first."""
        return [r.email for r in self._data.password_resets]
