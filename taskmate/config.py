"""
Application settings, read from environment variables (a local .env file is loaded first).
"""
import os
from dotenv import load_dotenv

load_dotenv()

APP_NAME = os.getenv("APP_NAME", "TaskMate API")
APP_ENV = os.getenv("APP_ENV", os.getenv("NODE_ENV", "development"))
IS_PRODUCTION = APP_ENV == "production"

SECRET_KEY = os.getenv("SECRET_KEY", "your-super-secret-key-change-this-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://localhost:5432/taskmate")

PORT = int(os.getenv("PORT", "3001"))


def get_base_url() -> str:
    if IS_PRODUCTION:
        return os.getenv("APP_BASE_URL", "https://taskmate-ai-ef8u.onrender.com")
    return os.getenv("APP_BASE_URL", f"http://localhost:{PORT}")


BASE_URL = get_base_url()
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173").rstrip("/")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", FRONTEND_URL).split(",")
    if origin.strip()
]

# GitHub OAuth
GITHUB_CLIENT_ID = os.getenv("GITHUB_CLIENT_ID", "")
GITHUB_CLIENT_SECRET = os.getenv("GITHUB_CLIENT_SECRET", "")
GITHUB_CALLBACK_URL = os.getenv("GITHUB_CALLBACK_URL", f"{BASE_URL}/auth/github/callback")

# Composio
COMPOSIO_API_KEY = os.getenv("COMPOSIO_API_KEY", "")
DEFAULT_EXTERNAL_USER_ID = os.getenv("DEFAULT_EXTERNAL_USER_ID", "default")
GMAIL_AUTH_CONFIG_ID = os.getenv("GMAIL_AUTH_CONFIG_ID", os.getenv("COMPOSIO_GMAIL_AUTH_CONFIG_ID", ""))
GCALENDAR_AUTH_CONFIG_ID = os.getenv("GCALENDAR_AUTH_CONFIG_ID", os.getenv("COMPOSIO_GCALENDAR_AUTH_CONFIG_ID", ""))
GOOGLEMEETINGS_AUTH_CONFIG_ID = os.getenv(
    "GOOGLEMEETINGS_AUTH_CONFIG_ID", os.getenv("COMPOSIO_GOOGLEMEETINGS_AUTH_CONFIG_ID", "")
)
CANVAS_AUTH_CONFIG_ID = os.getenv("CANVAS_AUTH_CONFIG_ID", os.getenv("COMPOSIO_CANVAS_AUTH_CONFIG_ID", ""))
CANVAS_API_KEY = os.getenv("CANVAS_API_KEY", "")
CANVAS_BASE_URL = os.getenv("CANVAS_BASE_URL", "")

GMAIL_LINK_CALLBACK_URL = os.getenv("GMAIL_LINK_CALLBACK_URL", f"{BASE_URL}/api/auth/gmail/callback")
GCALENDAR_LINK_CALLBACK_URL = os.getenv("GCALENDAR_LINK_CALLBACK_URL", f"{BASE_URL}/api/auth/gcalendar/callback")
GOOGLEMEETINGS_LINK_CALLBACK_URL = os.getenv(
    "GOOGLEMEETINGS_LINK_CALLBACK_URL", f"{BASE_URL}/api/auth/gmeetings/callback"
)

# Seconds to keep Composio tool listings, 0 disables caching
TOOL_CACHE_SECONDS = int(os.getenv("TOOL_CACHE_SECONDS", "300"))

# Claude
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", os.getenv("CLAUDE_API_KEY", ""))
CLAUDE_MODEL = os.getenv("CLAUDE_MODEL", "claude-3-5-sonnet-20241022")

DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/New_York")
