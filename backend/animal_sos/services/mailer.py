"""
Outbound mail for the password reset flow.
"""

import hashlib
from email.message import EmailMessage

import aiosmtplib
import structlog

from animal_sos.core.config import settings
from animal_sos.core.exceptions import DependencyError

logger = structlog.get_logger()


def mask_email(email: str) -> str:
    return hashlib.sha256(email.lower().encode("utf-8")).hexdigest()[:12]


class Mailer:

    @staticmethod
    def reset_code_body(code: str) -> str:
        return f"""
        <html>
            <body style="font-family: Arial, sans-serif; text-align: center; color: #333;">
                <h2>Password reset</h2>
                <p>You asked to reset your {settings.PROJECT_NAME} password.</p>
                <p>Use the code below to choose a new password:</p>
                <p style="font-size: 24px; font-weight: bold; letter-spacing: 5px;">{code}</p>
                <p>This code expires in {settings.RESET_CODE_TTL_MINUTES} minutes.</p>
                <p>If you did not request this, please ignore this email.</p>
            </body>
        </html>
        """

    @classmethod
    async def send_reset_code(cls, to_email: str, code: str) -> None:
        if not settings.SMTP_HOST:
            logger.warning("smtp_not_configured", email_hash=mask_email(to_email))
            return

        msg = EmailMessage()
        msg["From"] = settings.SMTP_FROM_EMAIL
        msg["To"] = to_email
        msg["Subject"] = "Your password reset code"
        msg.set_content(cls.reset_code_body(code), subtype="html")

        # STARTTLS on 587, implicit TLS on 465
        start_tls = settings.SMTP_TLS and settings.SMTP_PORT == 587
        use_tls = settings.SMTP_TLS and settings.SMTP_PORT == 465
        try:
            await aiosmtplib.send(
                msg,
                hostname=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                username=settings.SMTP_USER or None,
                password=settings.SMTP_PASSWORD or None,
                start_tls=start_tls,
                use_tls=use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("reset_email_failed", email_hash=mask_email(to_email), error=str(e))
            raise DependencyError("Could not send the password reset email") from e

        logger.info("reset_email_sent", email_hash=mask_email(to_email))
