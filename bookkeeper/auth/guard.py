"""
Session Guard

Registration, login and the single current session.

Login flow:
1. Normalize the email and look the account up
2. Check the password, counting failures per email inside a time window
3. After too many failures (and with email confirmation enabled),
   require an emailed verification code
4. With second factor enabled, require a code sent out of band
5. Persist the session record (no credential fields)

CRITICAL: Verification codes go to the Notifier only. They never appear
in an AuthResult, a log line or an audit event.

DESIGN DECISION: Public operations return AuthResult values. AuthError
subclasses are raised internally and converted at the boundary; anything
unexpected (corrupt storage, etc.) is logged and mapped to a generic
AuthError so the UI can show "please try again".
"""

import secrets
from datetime import datetime, timedelta
from functools import wraps
from typing import Any, Callable, Optional

import structlog
from pydantic import ValidationError as ModelValidationError

from bookkeeper.audit import AuditLogger
from bookkeeper.auth.errors import (
    AuthError,
    CodeExpiredError,
    CodeNotIssuedError,
    DuplicateUserError,
    InvalidCodeError,
    InvalidPasswordError,
    NotAuthenticatedError,
    UserNotFoundError,
    ValidationError,
    WeakPasswordError,
)
from bookkeeper.auth.passwords import PasswordHasher, PasswordStrength, evaluate_password_strength
from bookkeeper.auth.results import AuthResult, AuthStatus
from bookkeeper.auth.sanitize import (
    BUSINESS_NAME_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    sanitize_email,
    sanitize_text,
    validate_email,
)
from bookkeeper.config import SecuritySettings
from bookkeeper.models.audit import AuditEvent, AuditEventBuilder
from bookkeeper.models.user import (
    UPDATABLE_USER_FIELDS,
    CodePurpose,
    Language,
    LoginAttemptRecord,
    StoredUser,
    TransientCode,
    User,
    utc_now,
)
from bookkeeper.services.notify import Notifier
from bookkeeper.services.storage import CorruptRecordError, KeyValueStore, keys


logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def _boundary(operation):
    """Turn AuthErrors into failed results and unexpected errors into a generic one."""

    @wraps(operation)
    def wrapper(self, *args, **kwargs) -> AuthResult:
        # One correlation ID for every event a single call produces
        with self._audit.correlated():
            try:
                return operation(self, *args, **kwargs)
            except AuthError as e:
                return AuthResult.failure(e)
            except Exception as e:
                logger.exception("auth_operation_failed", operation=operation.__name__, error=str(e))
                self._audit.log(AuditEventBuilder.system_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"operation": operation.__name__},
                ))
                return AuthResult.failure(AuthError())

    return wrapper


def _mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


class SessionGuard:
    """
    Authenticates users and owns the current session record.

    Usage:
        guard = SessionGuard(store, PasswordHasher(), OutboxNotifier())
        result = guard.login("demo@example.com", "Passw0rd!")
        if result.status == AuthStatus.SECOND_FACTOR_REQUIRED:
            result = guard.login("demo@example.com", "Passw0rd!", code)
    """

    def __init__(
        self,
        store: KeyValueStore,
        hasher: PasswordHasher,
        notifier: Notifier,
        settings: Optional[SecuritySettings] = None,
        audit: Optional[AuditLogger] = None,
        clock: Clock = utc_now,
        default_currency: str = "KGS",
    ):
        self._store = store
        self._hasher = hasher
        self._notifier = notifier
        self._settings = settings or SecuritySettings()
        self._audit = audit or AuditLogger()
        self._clock = clock
        self._default_currency = default_currency

    # =========================================================================
    # REGISTRATION AND LOGIN
    # =========================================================================

    @_boundary
    def register(
        self,
        business_name: str,
        email: str,
        password: str,
        phone: str = "",
        language: str = "en",
        *,
        start_session: bool = True,
    ) -> AuthResult:
        """
        Create an account.

        Args:
            start_session: Sign the new user in (False for seeding)

        Returns:
            AuthResult with status authenticated (or registered when
            start_session is False), or failed with the reason
        """
        email = sanitize_email(email)
        business_name = sanitize_text(business_name, BUSINESS_NAME_MAX_LENGTH)
        phone = sanitize_text(phone, PHONE_MAX_LENGTH)

        if not validate_email(email):
            raise ValidationError("Invalid email address")
        if not business_name:
            raise ValidationError("Business name is required")
        try:
            language = Language(language)
        except ValueError:
            raise ValidationError(f"Unsupported language: {language}")

        if evaluate_password_strength(password or "").label == PasswordStrength.WEAK:
            raise WeakPasswordError()

        users = self._load_users()
        if any(u.email == email for u in users):
            raise DuplicateUserError()

        stored = StoredUser(
            business_name=business_name,
            email=email,
            phone=phone,
            language=language,
            currency=self._default_currency,
            created_at=self._clock(),
            password_hash=self._hasher.hash(password),
        )
        users.append(stored)
        self._save_users(users)

        self._audit.log(AuditEventBuilder.user_registered(stored.id, email))
        logger.info("user_registered", user_id=stored.id)

        user = stored.to_public()
        if not start_session:
            return AuthResult.success(user, AuthStatus.REGISTERED)

        self._save_session(user)
        return AuthResult.success(user)

    @_boundary
    def login(self, email: str, password: str, code: Optional[str] = None) -> AuthResult:
        """
        Authenticate with a password and, when asked for one, a code.

        A single ``code`` argument answers whichever verification is
        outstanding: the email verification first, then the second factor.
        """
        now = self._clock()
        email = sanitize_email(email)

        user = self._find_user(email)
        if user is None:
            self._audit.log(AuditEventBuilder.login_failed(email, UserNotFoundError.code))
            raise UserNotFoundError()

        # Failed attempts older than the window no longer count
        record = self._load_attempts(email)
        window_seconds = self._settings.attempt_window_minutes * 60
        failed = 0 if record is None or record.is_stale(now, window_seconds) else record.count

        if not self._hasher.verify(password or "", user.password_hash):
            failed += 1
            self._store.set_json(
                keys.login_attempts_key(email),
                LoginAttemptRecord(count=failed, last_attempt=now).model_dump(mode="json"),
            )

            if failed >= self._settings.max_failed_attempts and user.email_confirm_enabled:
                issued = self._issue_code(user, CodePurpose.EMAIL_VERIFICATION)
                self._audit.log(AuditEventBuilder.login_locked(email, failed))
                return self._verification_required(user, issued)

            self._audit.log(AuditEventBuilder.login_failed(
                email, InvalidPasswordError.code, attempts=failed
            ))
            raise InvalidPasswordError()

        self._store.delete(keys.login_attempts_key(email))

        code_spent = False
        pending = self._load_code(email, CodePurpose.EMAIL_VERIFICATION)
        if pending is not None:
            if not code:
                if not pending.is_usable(now, self._settings.max_code_attempts):
                    pending = self._issue_code(user, CodePurpose.EMAIL_VERIFICATION)
                return self._verification_required(user, pending)
            self._consume_code(email, CodePurpose.EMAIL_VERIFICATION, code, now)
            code_spent = True

        if user.two_factor_enabled:
            if not code or code_spent:
                issued = self._issue_code(user, CodePurpose.TWO_FACTOR)
                return AuthResult(
                    status=AuthStatus.SECOND_FACTOR_REQUIRED,
                    message=f"A verification code was sent to {_mask_email(email)}",
                    code_expires_at=issued.expires_at,
                )
            self._consume_code(email, CodePurpose.TWO_FACTOR, code, now)

        public = user.to_public()
        self._save_session(public)
        self._audit.log(AuditEventBuilder.login_succeeded(user.id, email))
        logger.info("login_succeeded", user_id=user.id)
        return AuthResult.success(public)

    def send_second_factor_code(self, email: str) -> bool:
        """(Re)issue a second-factor code. False if the account is unknown."""
        email = sanitize_email(email)
        try:
            user = self._find_user(email)
            if user is None:
                return False
            self._issue_code(user, CodePurpose.TWO_FACTOR)
        except Exception as e:
            logger.exception("second_factor_issue_failed", error=str(e))
            return False
        return True

    # =========================================================================
    # SESSION
    # =========================================================================

    def logout(self, reason: str = "user") -> None:
        """Clear the session record. Safe to call without a session."""
        raw = self._store.get(keys.SESSION_USER)
        if raw is None:
            return
        user = self.current_user()
        self._store.delete(keys.SESSION_USER)
        self._audit.log(AuditEventBuilder.logout(user.id if user else None, reason))

    def current_user(self) -> Optional[User]:
        """
        Restore the session record.

        A record that cannot be decoded is removed and treated as no session.
        """
        try:
            data = self._store.get_json(keys.SESSION_USER)
            if data is None:
                return None
            return User.model_validate(data)
        except (CorruptRecordError, ModelValidationError) as e:
            logger.warning("session_record_corrupt", error=str(e))
            self._store.delete(keys.SESSION_USER)
            return None

    @_boundary
    def update_user(self, fields: dict[str, Any]) -> AuthResult:
        """
        Merge profile fields into the stored account and the session.

        Returns:
            AuthResult with the updated user, or failed with
            not_authenticated (no session), validation_error (fields
            that cannot be changed, bad values) or user_not_found (the
            session points at an account that no longer exists; the
            session is left unchanged)
        """
        current = self.current_user()
        if current is None:
            raise NotAuthenticatedError()

        forbidden = set(fields) - UPDATABLE_USER_FIELDS
        if forbidden:
            raise ValidationError(f"Cannot update: {', '.join(sorted(forbidden))}")

        changes = dict(fields)
        if "business_name" in changes:
            changes["business_name"] = sanitize_text(changes["business_name"], BUSINESS_NAME_MAX_LENGTH)
            if not changes["business_name"]:
                raise ValidationError("Business name is required")
        if "phone" in changes:
            changes["phone"] = sanitize_text(changes["phone"], PHONE_MAX_LENGTH)

        try:
            updated = User.model_validate({**current.model_dump(), **changes})
        except ModelValidationError as e:
            raise ValidationError(str(e)) from e

        if not self._modify_stored(current.id, **changes):
            logger.warning("session_user_missing", user_id=current.id)
            raise UserNotFoundError()

        self._save_session(updated)
        self._audit.log(AuditEventBuilder.user_updated(current.id, list(changes)))
        return AuthResult.success(updated)

    # =========================================================================
    # SECURITY SETTINGS
    # =========================================================================

    def enable_two_factor(self, phone: str) -> bool:
        current = self.current_user()
        if current is None:
            return False
        phone = sanitize_text(phone, PHONE_MAX_LENGTH)
        if not self._modify_stored(current.id, two_factor_enabled=True, phone=phone):
            return False
        self._save_session(current.model_copy(update={"phone": phone}))
        return True

    def disable_two_factor(self) -> bool:
        current = self.current_user()
        if current is None:
            return False
        return self._modify_stored(current.id, two_factor_enabled=False)

    def set_email_confirmation(self, enabled: bool) -> bool:
        current = self.current_user()
        if current is None:
            return False
        return self._modify_stored(current.id, email_confirm_enabled=enabled)

    def security_flags(self) -> Optional[dict[str, bool]]:
        """Second factor / email confirmation flags of the signed-in account."""
        current = self.current_user()
        if current is None:
            return None
        stored = next((u for u in self._load_users() if u.id == current.id), None)
        if stored is None:
            return None
        return {
            "two_factor_enabled": stored.two_factor_enabled,
            "email_confirm_enabled": stored.email_confirm_enabled,
        }

    def recent_activity(self, limit: int = 20) -> list[AuditEvent]:
        """Audit events about the signed-in account, newest first."""
        current = self.current_user()
        if current is None:
            return []
        return self._audit.recent_events(limit, user_id=current.id, email=current.email)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _load_users(self) -> list[StoredUser]:
        return [StoredUser.model_validate(u) for u in self._store.get_json(keys.ALL_USERS, [])]

    def _save_users(self, users: list[StoredUser]) -> None:
        self._store.set_json(keys.ALL_USERS, [u.model_dump(mode="json") for u in users])

    def _find_user(self, email: str) -> Optional[StoredUser]:
        return next((u for u in self._load_users() if u.email == email), None)

    def _modify_stored(self, user_id: str, **changes) -> bool:
        users = self._load_users()
        for i, stored in enumerate(users):
            if stored.id == user_id:
                users[i] = StoredUser.model_validate({**stored.model_dump(), **changes})
                self._save_users(users)
                return True
        return False

    def _save_session(self, user: User) -> None:
        self._store.set_json(keys.SESSION_USER, user.model_dump(mode="json"))

    def _load_attempts(self, email: str) -> Optional[LoginAttemptRecord]:
        data = self._store.get_json(keys.login_attempts_key(email))
        return LoginAttemptRecord.model_validate(data) if data else None

    def _code_key(self, email: str, purpose: CodePurpose) -> str:
        if purpose == CodePurpose.TWO_FACTOR:
            return keys.two_factor_key(email)
        return keys.email_verification_key(email)

    def _ttl(self, purpose: CodePurpose) -> timedelta:
        if purpose == CodePurpose.TWO_FACTOR:
            return timedelta(minutes=self._settings.two_factor_ttl_minutes)
        return timedelta(minutes=self._settings.email_verification_ttl_minutes)

    def _generate_code(self) -> str:
        length = self._settings.code_length
        low = 10 ** (length - 1)
        return str(low + secrets.randbelow(9 * low))

    def _issue_code(self, user: StoredUser, purpose: CodePurpose) -> TransientCode:
        issued = TransientCode(
            code=self._generate_code(),
            expires_at=self._clock() + self._ttl(purpose),
            purpose=purpose,
        )
        self._store.set_json(self._code_key(user.email, purpose), issued.model_dump(mode="json"))
        self._notifier.send_code(user.email, issued.code, purpose, issued.expires_at)
        self._audit.log(AuditEventBuilder.code_issued(user.email, purpose.value, issued.expires_at))
        return issued

    def _load_code(self, email: str, purpose: CodePurpose) -> Optional[TransientCode]:
        data = self._store.get_json(self._code_key(email, purpose))
        return TransientCode.model_validate(data) if data else None

    def _consume_code(self, email: str, purpose: CodePurpose, supplied: str, now: datetime) -> None:
        """
        Check a supplied code and delete it on success.

        Wrong guesses are counted on the stored record.

        Raises:
            CodeNotIssuedError: Nothing outstanding for this purpose
            CodeExpiredError: Past its expiry or out of attempts
            InvalidCodeError: Wrong digits
        """
        record = self._load_code(email, purpose)
        if record is None:
            self._audit.log(AuditEventBuilder.code_rejected(email, purpose.value, CodeNotIssuedError.code))
            raise CodeNotIssuedError()
        if not record.is_usable(now, self._settings.max_code_attempts):
            self._audit.log(AuditEventBuilder.code_rejected(email, purpose.value, CodeExpiredError.code))
            raise CodeExpiredError()
        candidate = supplied.strip()
        if not candidate.isascii() or not secrets.compare_digest(record.code, candidate):
            missed = record.model_copy(update={"failed_attempts": record.failed_attempts + 1})
            self._store.set_json(self._code_key(email, purpose), missed.model_dump(mode="json"))
            self._audit.log(AuditEventBuilder.code_rejected(email, purpose.value, InvalidCodeError.code))
            raise InvalidCodeError()
        self._store.delete(self._code_key(email, purpose))

    def _verification_required(self, user: StoredUser, pending: TransientCode) -> AuthResult:
        return AuthResult(
            status=AuthStatus.EMAIL_VERIFICATION_REQUIRED,
            message=(
                "Too many failed attempts. Enter the verification code sent to "
                f"{_mask_email(user.email)}"
            ),
            code_expires_at=pending.expires_at,
        )
