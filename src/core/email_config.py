# src/core/email_config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import EmailStr
from dotenv import load_dotenv

load_dotenv()


class EmailSettings(BaseSettings):
    """Email configuration settings"""

    RESEND_API_KEY: str = ""
    FROM_EMAIL: EmailStr = "no-reply@medicai.app"
    FROM_NAME: str = "MedicAI"
    APP_NAME: str = "MedicAI"

    # Template settings, empty means the bundled src/templates/email
    TEMPLATE_DIR: str = ""

    # Feature flags
    SEND_EMAILS: bool = True
    LOG_EMAILS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


email_settings = EmailSettings()
