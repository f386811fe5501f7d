"""
Authentication service - handles all auth operations.

Per user there are three independent pieces of auth state:
- verification: unverified -> pending(token, expiry) -> verified
- password reset: none <-> pending(token, expiry)
- sessions: the set of valid refresh tokens in the ledger (0..N)
"""
import logging
from datetime import timedelta
from typing import Awaitable, Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from userhub.config import settings
from userhub.core.exceptions import (
    AlreadyVerifiedError,
    DuplicateEmailError,
    EmailNotFoundError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    PasswordMismatchError,
)
from userhub.core.outcome import Outcome
from userhub.core.security import (
    ACCESS_TOKEN_TTL,
    InvalidTokenError,
    TokenExpiredError,
    create_access_token,
    generate_secure_token,
    hash_password,
    verify_password,
    verify_token,
)
from userhub.models.user import User, ROLE_USER, utc_now
from userhub.repositories.token_repo import RefreshTokenRepository
from userhub.repositories.user_repo import UserRepository
from userhub.services.email_service import EmailService

logger = logging.getLogger(__name__)

TOKEN_TYPE = "Bearer"

# Warning codes for best-effort side effects
VERIFICATION_EMAIL_NOT_SENT = "verification_email_not_sent"
RESET_EMAIL_NOT_SENT = "reset_email_not_sent"
WELCOME_EMAIL_NOT_SENT = "welcome_email_not_sent"


class AuthService:
    """Service for authentication operations."""

    def __init__(self, session: AsyncSession, email_service: EmailService):
        self.session = session
        self.user_repo = UserRepository(session)
        self.refresh_token_repo = RefreshTokenRepository(session)
        self.email_service = email_service

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        confirm_password: str
    ) -> Outcome[User]:
        """
        Create an unverified user and send the verification email.
        A failed email is reported as a warning, the user is kept.
        """
        if password != confirm_password:
            raise PasswordMismatchError("Registration failed", "REGISTER_FAILED")

        existing = await self.user_repo.get_by_email(email)
        if existing:
            raise DuplicateEmailError()

        verification_token = generate_secure_token()
        user = await self.user_repo.create({
            "name": name,
            "email": email,
            "password_hash": hash_password(password),
            "role": ROLE_USER,
            "verification_token": verification_token,
            "verification_token_expires_at": utc_now() + timedelta(
                hours=settings.EMAIL_VERIFICATION_TOKEN_EXPIRE_HOURS
            ),
        })
        logger.info(f"User registered: {user.id}")

        outcome = Outcome(user)
        await self._deliver(
            outcome,
            VERIFICATION_EMAIL_NOT_SENT,
            self.email_service.send_verification_email(
                user.email, verification_token, user.language
            ),
        )
        return outcome

    async def login(self, email: str, password: str) -> dict:
        """Authenticate user and return the user plus a new token pair."""
        user = await self.user_repo.get_by_email(email)
        if not user:
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        tokens = await self._issue_tokens(user)
        await self.user_repo.update_last_login(user.id)
        logger.info(f"User logged in: {user.id}")

        return {"user": user, **tokens}

    async def refresh(self, refresh_token: str) -> dict:
        """
        Rotate a refresh token: the presented token is deleted before a new
        pair is issued. The ledger row and the token signature must both be
        valid. If a concurrent refresh deleted the row first, this one fails.
        """
        invalid = InvalidOrExpiredTokenError(
            "Could not refresh token",
            "REFRESH_TOKEN_FAILED",
            field="refreshToken",
            status_code=401,
        )

        ledger_entry = await self.refresh_token_repo.validate(refresh_token)
        if not ledger_entry:
            raise invalid

        try:
            payload = verify_token(refresh_token, "refresh")
        except TokenExpiredError:
            logger.info("Refresh token in ledger has an expired signature")
            await self.refresh_token_repo.revoke(refresh_token)
            raise invalid
        except InvalidTokenError:
            logger.warning("Refresh token in ledger failed signature verification")
            await self.refresh_token_repo.revoke(refresh_token)
            raise invalid

        user = ledger_entry.user
        if payload["id"] != user.id:
            raise invalid

        if not await self.refresh_token_repo.revoke(refresh_token):
            # Lost the race against another refresh (or a logout)
            raise invalid

        return await self._issue_tokens(user)

    async def logout(self, refresh_token: Optional[str]) -> bool:
        """Revoke the refresh token if present. Never fails."""
        if not refresh_token:
            return False
        return await self.refresh_token_repo.revoke(refresh_token)

    async def logout_all(self, user_id: str) -> int:
        """Revoke every session of the user; returns how many were removed."""
        revoked = await self.refresh_token_repo.revoke_all_for_user(user_id)
        logger.info(f"User {user_id} logged out of {revoked} sessions")
        return revoked

    async def forgot_password(self, email: str) -> Outcome[None]:
        """
        Start a password reset.

        Unlike login this reports unknown emails; the behaviour is kept
        for API compatibility.
        """
        user = await self.user_repo.get_by_email(email)
        if not user:
            raise EmailNotFoundError("Could not send recovery email", "FORGOT_PASSWORD_FAILED")

        reset_token = generate_secure_token()
        await self.user_repo.set_reset_token(
            user.id,
            reset_token,
            utc_now() + timedelta(minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES),
        )

        outcome = Outcome(None)
        await self._deliver(
            outcome,
            RESET_EMAIL_NOT_SENT,
            self.email_service.send_password_reset_email(
                user.email, reset_token, user.language
            ),
        )
        return outcome

    async def reset_password(self, token: str, password: str, confirm_password: str) -> None:
        """
        Set a new password with a reset token. The token is single-use:
        the reset slot is cleared together with the password update.
        Existing sessions stay valid.
        """
        if password != confirm_password:
            raise PasswordMismatchError("Password reset failed", "RESET_PASSWORD_FAILED")

        user = await self.user_repo.get_by_reset_token(token)
        if not user:
            raise InvalidOrExpiredTokenError("Password reset failed", "RESET_PASSWORD_FAILED")

        await self.user_repo.update_password(user.id, hash_password(password))
        logger.info(f"Password reset for user {user.id}")

    async def verify_email(self, token: str) -> Outcome[User]:
        """Mark the user owning this verification token as verified."""
        user = await self.user_repo.get_by_verification_token(token)
        if not user:
            raise InvalidOrExpiredTokenError("Email verification failed", "VERIFY_EMAIL_FAILED")

        user = await self.user_repo.mark_verified(user.id)
        logger.info(f"Email verified for user {user.id}")

        outcome = Outcome(user)
        await self._deliver(
            outcome,
            WELCOME_EMAIL_NOT_SENT,
            self.email_service.send_welcome_email(user.email, user.name, user.language),
        )
        return outcome

    async def resend_verification(self, email: str) -> Outcome[None]:
        """Issue a fresh verification token, replacing the previous one."""
        user = await self.user_repo.get_by_email(email)
        if not user:
            raise EmailNotFoundError(
                "Could not resend verification email", "RESEND_VERIFICATION_FAILED"
            )
        if user.is_verified:
            raise AlreadyVerifiedError()

        verification_token = generate_secure_token()
        await self.user_repo.set_verification_token(
            user.id,
            verification_token,
            utc_now() + timedelta(hours=settings.EMAIL_VERIFICATION_TOKEN_EXPIRE_HOURS),
        )

        outcome = Outcome(None)
        await self._deliver(
            outcome,
            VERIFICATION_EMAIL_NOT_SENT,
            self.email_service.send_verification_email(
                user.email, verification_token, user.language
            ),
        )
        return outcome

    async def _deliver(self, outcome: Outcome, warning: str, send: Awaitable[bool]) -> None:
        """
        Await a best-effort email. A refused or crashed send becomes a
        warning on the outcome; the operation itself has already succeeded.
        """
        try:
            sent = await send
        except Exception:
            logger.exception(f"Email delivery crashed ({warning})")
            sent = False
        if not sent:
            logger.warning(f"Email not sent: {warning}")
            outcome.warn(warning)

    async def _issue_tokens(self, user: User) -> dict:
        access_token = create_access_token(user.id, user.email)
        refresh_token = await self.refresh_token_repo.issue(user.id)
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "expires_in": int(ACCESS_TOKEN_TTL.total_seconds()),
            "token_type": TOKEN_TYPE,
        }
