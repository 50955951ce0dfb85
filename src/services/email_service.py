# src/services/email_service.py
import asyncio
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import resend
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape
from core.config import settings
from core.email_config import email_settings
from custom_types.resend_types import ResendSendParams, ResendSendResult
from schemas.email_schemas import EmailMessage, EmailResponse, EmailType
from utils.logger import setup_logger

logger = setup_logger("EMAIL_SERVICE")

DEFAULT_TEMPLATE_DIR = Path(__file__).parent.parent / "templates" / "email"


class EmailDeliveryError(Exception):
    """Raised when an email could not be rendered or handed to Resend"""


class EmailTemplateManager:
    """Manages email templates with Jinja2"""

    def __init__(self, template_dir: Optional[str] = None):
        self.template_dir = str(
            template_dir or email_settings.TEMPLATE_DIR or DEFAULT_TEMPLATE_DIR
        )
        if not Path(self.template_dir).is_dir():
            logger.warning(f"Template directory not found: {self.template_dir}")

        self.env = Environment(
            loader=FileSystemLoader(self.template_dir),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        logger.info(f"Loading email templates from: {self.template_dir}")

    def render_template(
        self, template_name: str, context: Dict[str, Any]
    ) -> Tuple[str, str]:
        """Render HTML and a plain-text fallback"""
        try:
            html_content = self.env.get_template(f"{template_name}.html").render(
                **context
            )
        except TemplateError as e:
            logger.error(f"Template rendering error for {template_name}: {e}")
            raise EmailDeliveryError(f"Failed to render email template: {e}") from e

        text_content = re.sub(r"<[^>]+>", "", html_content)
        text_content = re.sub(r"\n\s*\n", "\n\n", text_content).strip()
        return html_content, text_content


class ResendEmailService:
    """Email service using Resend API with proper typing"""

    def __init__(self, template_manager: Optional[EmailTemplateManager] = None):
        self.template_manager = template_manager or EmailTemplateManager()
        resend.api_key = email_settings.RESEND_API_KEY
        self.client = resend

        # Delivery health tracking
        self.last_success: Optional[datetime] = None
        self.consecutive_failures = 0

        app_name = email_settings.APP_NAME
        self.template_configs = {
            EmailType.OTP_VERIFICATION: {
                "template": "otp_verification",
                "subject": f"Verify your {app_name} account",
            },
            EmailType.WELCOME: {
                "template": "welcome",
                "subject": f"Welcome to {app_name}",
            },
            EmailType.PASSWORD_RESET: {
                "template": "password_reset",
                "subject": f"Password Reset Request - {app_name}",
            },
            EmailType.PREDICTION_SHARED: {
                "template": "prediction_shared",
                "subject": "A patient shared a prediction with you",
            },
            EmailType.DOCTOR_RESPONSE: {
                "template": "doctor_response",
                "subject": "Your doctor has responded to your shared prediction",
            },
        }

    def _base_context(self) -> Dict[str, Any]:
        return {
            "app_name": email_settings.APP_NAME,
            "frontend_url": settings.FRONTEND_URL,
            "year": datetime.now(timezone.utc).year,
        }

    def render(
        self, email_type: EmailType, template_data: Dict[str, Any]
    ) -> Tuple[str, str, str]:
        """Return (subject, html, text) for a templated email"""
        config = self.template_configs[email_type]
        html, text = self.template_manager.render_template(
            config["template"], {**self._base_context(), **template_data}
        )
        return config["subject"], html, text

    async def send(
        self,
        to: Union[str, List[str]],
        subject: str,
        html: str,
        text: Optional[str] = None,
    ) -> EmailResponse:
        """
        Deliver one email.

        Attempted once; a failure raises EmailDeliveryError and it is up to the
        caller whether that matters.
        """
        message = EmailMessage(
            to=[to] if isinstance(to, str) else to, subject=subject, html=html, text=text
        )
        recipients = [str(address) for address in message.to]

        if not email_settings.SEND_EMAILS:
            logger.info(f"Email sending disabled. Would send '{subject}' to: {recipients}")
            return EmailResponse(
                success=True, message_id="simulated", recipients=recipients
            )

        params: ResendSendParams = {
            "from": f"{email_settings.FROM_NAME} <{email_settings.FROM_EMAIL}>",
            "to": recipients,
            "subject": message.subject,
            "html": message.html,
        }
        if message.text:
            params["text"] = message.text

        try:
            # The Resend SDK is synchronous
            result: ResendSendResult = await asyncio.get_running_loop().run_in_executor(
                None, self.client.Emails.send, params
            )
        except Exception as e:
            self.consecutive_failures += 1
            logger.error(f"Email send failed to {recipients}: {e}")
            raise EmailDeliveryError(str(e)) from e

        self.last_success = datetime.now(timezone.utc)
        self.consecutive_failures = 0

        if email_settings.LOG_EMAILS:
            logger.info(f"Email sent successfully: {result['id']} to {recipients}")

        return EmailResponse(success=True, message_id=result["id"], recipients=recipients)

    async def send_templated_email(
        self,
        email_type: EmailType,
        to: Union[str, List[str]],
        template_data: Dict[str, Any],
    ) -> EmailResponse:
        """Render a predefined template and deliver it"""
        logger.info(f"Preparing {email_type.value} email for {to}")
        subject, html, text = self.render(email_type, template_data)
        return await self.send(to, subject, html, text)

    async def notify(
        self,
        email_type: EmailType,
        to: str,
        template_data: Dict[str, Any],
    ) -> bool:
        """Best-effort delivery for notifications; failures are logged only"""
        try:
            await self.send_templated_email(email_type, to, template_data)
            return True
        except Exception as e:
            logger.error(f"Notification {email_type.value} to {to} failed: {e}")
            return False

    def health(self) -> Dict[str, Any]:
        return {
            "sending_enabled": email_settings.SEND_EMAILS,
            "api_key_configured": bool(email_settings.RESEND_API_KEY),
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "consecutive_failures": self.consecutive_failures,
        }


_email_service: Optional[ResendEmailService] = None


def get_email_service() -> ResendEmailService:
    """Process-wide email service, created on first use"""
    global _email_service
    if _email_service is None:
        _email_service = ResendEmailService()
    return _email_service
