"""
Email service - handles sending emails.
Currently supports: Mock (development/tests) and SMTP (production ready).
Sending never raises: failures are logged and reported as False so
callers can treat notification emails as best-effort.
"""
import asyncio
import logging
import smtplib
from collections import deque
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Deque, Optional, Dict
from abc import ABC, abstractmethod

from userhub.config import settings

logger = logging.getLogger(__name__)


EMAIL_MESSAGES: Dict[str, Dict[str, Dict[str, str]]] = {
    "en": {
        "password_reset": {
            "subject": "Password Reset Request",
            "title": "Reset your password",
            "description": "You requested a password reset. Click the link below to reset your password:",
            "button": "Reset Password",
            "expiration": "This link will expire in 10 minutes.",
            "footer": "If you did not request this password reset, please ignore this email.",
        },
        "welcome": {
            "subject": "Welcome to our platform!",
            "title": "Welcome aboard!",
            "description": "Thank you for joining us. We're excited to have you on board!",
            "button": "Get Started",
            "expiration": "",
            "footer": "We're here to help if you have any questions.",
        },
        "email_verification": {
            "subject": "Verify your email address",
            "title": "Verify your email",
            "description": "Please click the link below to verify your email address:",
            "button": "Verify Email",
            "expiration": "This link will expire in 24 hours.",
            "footer": "If you did not create an account, please ignore this email.",
        },
    },
    "vi": {
        "password_reset": {
            "subject": "Yêu cầu đặt lại mật khẩu",
            "title": "Đặt lại mật khẩu của bạn",
            "description": "Bạn đã yêu cầu đặt lại mật khẩu. Nhấp vào liên kết bên dưới để đặt lại mật khẩu:",
            "button": "Đặt lại mật khẩu",
            "expiration": "Liên kết này sẽ hết hạn trong 10 phút.",
            "footer": "Nếu bạn không yêu cầu đặt lại mật khẩu này, vui lòng bỏ qua email này.",
        },
        "welcome": {
            "subject": "Chào mừng đến với nền tảng của chúng tôi!",
            "title": "Chào mừng bạn!",
            "description": "Cảm ơn bạn đã tham gia cùng chúng tôi. Chúng tôi rất vui khi có bạn!",
            "button": "Bắt đầu",
            "expiration": "",
            "footer": "Chúng tôi sẵn sàng hỗ trợ nếu bạn có bất kỳ câu hỏi nào.",
        },
        "email_verification": {
            "subject": "Xác minh địa chỉ email của bạn",
            "title": "Xác minh email của bạn",
            "description": "Vui lòng nhấp vào liên kết bên dưới để xác minh địa chỉ email của bạn:",
            "button": "Xác minh email",
            "expiration": "Liên kết này sẽ hết hạn trong 24 giờ.",
            "footer": "Nếu bạn không tạo tài khoản, vui lòng bỏ qua email này.",
        },
    },
}


def get_email_messages(language: str) -> Dict[str, Dict[str, str]]:
    """Messages for a language, English when unknown."""
    return EMAIL_MESSAGES.get(language, EMAIL_MESSAGES["en"])


def render_email(messages: Dict[str, str], link: str) -> tuple[str, str]:
    """Plain text and HTML bodies for one templated email."""
    company = settings.COMPANY_NAME
    body = f"""
{messages['title']}

{messages['description']}

{link}

{messages['expiration']}

{messages['footer']}

{company}
    """

    html = f"""
    <html>
    <body>
        <h2>{messages['title']}</h2>
        <p>{messages['description']}</p>
        <p>
            <a href="{link}"
               style="background-color: #2196F3; color: white; padding: 14px 25px;
                      text-decoration: none; display: inline-block; border-radius: 4px;">
                {messages['button']}
            </a>
        </p>
        <p>{link}</p>
        <p><small>{messages['expiration']}</small></p>
        <p><small>{messages['footer']}</small></p>
        <p>{company}</p>
    </body>
    </html>
    """
    return body, html


class EmailService(ABC):
    """Base email service interface."""

    @abstractmethod
    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html: Optional[str] = None
    ) -> bool:
        """Send an email. Returns False instead of raising on failure."""
        pass

    async def send_verification_email(self, to: str, token: str, language: str = "en") -> bool:
        """Send email verification email."""
        link = f"{settings.FRONTEND_URL}/auth/verify-email?token={token}"
        messages = get_email_messages(language)["email_verification"]
        body, html = render_email(messages, link)
        return await self.send_email(to, messages["subject"], body, html)

    async def send_password_reset_email(self, to: str, token: str, language: str = "en") -> bool:
        """Send password reset email."""
        link = f"{settings.FRONTEND_URL}/auth/reset-password?token={token}"
        messages = get_email_messages(language)["password_reset"]
        body, html = render_email(messages, link)
        return await self.send_email(to, messages["subject"], body, html)

    async def send_welcome_email(self, to: str, name: str, language: str = "en") -> bool:
        """Send welcome email once the address is verified."""
        link = f"{settings.FRONTEND_URL}/dashboard"
        messages = dict(get_email_messages(language)["welcome"])
        messages["title"] = f"{messages['title']} {name}"
        body, html = render_email(messages, link)
        return await self.send_email(to, messages["subject"], body, html)


class MockEmailService(EmailService):
    """
    Mock email service for development and tests.
    Logs emails instead of sending and keeps the most recent ones
    (max_records) for inspection.
    """

    def __init__(self, fail: bool = False, max_records: int = 100):
        self.sent_emails: Deque[dict] = deque(maxlen=max_records)
        self.fail = fail

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html: Optional[str] = None
    ) -> bool:
        """Mock send - logs and stores for debugging."""
        if self.fail:
            logger.warning(f"Mock email to {to} failed: {subject}")
            return False

        self.sent_emails.append({
            "to": to,
            "subject": subject,
            "body": body
        })
        logger.info(f"MOCK EMAIL to {to}: {subject}")
        return True

    def get_last_email(self) -> Optional[dict]:
        """Get the last sent email (for testing)."""
        return self.sent_emails[-1] if self.sent_emails else None


class SMTPEmailService(EmailService):
    """
    SMTP email service for production.
    Configure with environment variables:
    - SMTP_HOST
    - SMTP_PORT
    - SMTP_USER
    - SMTP_PASSWORD
    - EMAIL_FROM
    - SMTP_TIMEOUT_SECONDS
    """

    def __init__(self):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM
        self.timeout = settings.SMTP_TIMEOUT_SECONDS

    def _send_sync(self, to: str, subject: str, body: str, html: Optional[str]) -> None:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = self.from_email
        msg['To'] = to

        # Add plain text
        msg.attach(MIMEText(body, 'plain'))

        # Add HTML if provided
        if html:
            msg.attach(MIMEText(html, 'html'))

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.sendmail(self.from_email, to, msg.as_string())

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        html: Optional[str] = None
    ) -> bool:
        """Send email via SMTP without blocking the event loop."""
        try:
            await asyncio.to_thread(self._send_sync, to, subject, body, html)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return False

        logger.info(f"Email sent to {to}: {subject}")
        return True


def create_email_service() -> EmailService:
    """Pick the email backend from configuration."""
    if settings.SMTP_HOST:
        logger.info("Using SMTP Email Service")
        return SMTPEmailService()
    logger.info("Using Mock Email Service (emails are logged)")
    return MockEmailService()
