"""
Configuration management for the EasyMind console backend.
"""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Firebase project
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID", "easy-mind-51834")
FIREBASE_WEB_API_KEY = os.getenv("FIREBASE_WEB_API_KEY", "")
FIREBASE_CREDENTIALS = os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "")

# Email (Resend)
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_FROM_EMAIL = os.getenv("RESEND_FROM_EMAIL", "EducateMinds Admin <noreply@easymind.app>")

# Document processing
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-3.5-turbo")

# Calendar used for weekday bucketing on the dashboards
TIMEZONE = os.getenv("EASYMIND_TIMEZONE", "Asia/Manila")

# Server configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5000"))
DEBUG = os.getenv("FLASK_DEBUG", "false").lower() == "true"

# Screen constants
PAGE_SIZE = 10
MAX_LOGIN_ATTEMPTS = 4
LOGIN_ATTEMPT_WINDOW_MINUTES = int(os.getenv("LOGIN_ATTEMPT_WINDOW_MINUTES", "30"))
MAX_TRACKED_LOGINS = 10000
VERIFICATION_CODE_TTL_MINUTES = 10
MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = ['image/jpeg', 'image/jpg', 'image/png', 'image/gif']


class Config:
    """Application configuration class."""

    def __init__(self):
        self.project_id = FIREBASE_PROJECT_ID
        self.web_api_key = FIREBASE_WEB_API_KEY
        self.credentials_path = FIREBASE_CREDENTIALS
        self.resend_api_key = RESEND_API_KEY
        self.from_email = RESEND_FROM_EMAIL
        self.openai_api_key = OPENAI_API_KEY
        self.openai_model = OPENAI_MODEL
        self.timezone = TIMEZONE

    def to_dict(self):
        return {
            "project_id": self.project_id,
            "web_api_key_configured": bool(self.web_api_key),
            "resend_configured": bool(self.resend_api_key),
            "from_email": self.from_email,
            "openai_configured": bool(self.openai_api_key),
            "openai_model": self.openai_model,
            "timezone": self.timezone,
        }


# Global config instance
config = Config()
