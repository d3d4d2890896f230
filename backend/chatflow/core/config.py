"""
Configuration settings using Pydantic
"""
from functools import lru_cache
from pathlib import Path
from pydantic_settings import BaseSettings

# Get the backend directory
BACKEND_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BACKEND_DIR / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # App
    APP_NAME: str = "ChatFlow Engine"
    DEBUG: bool = False

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # Tables
    FLOWS_TABLE: str = "chat_flows"
    FLOW_STATES_TABLE: str = "contact_flow_states"
    FLOW_HISTORY_TABLE: str = "contact_flow_history"
    MEDIA_TABLE: str = "media"
    BUSINESS_HOURS_TABLE: str = "business_hours"
    HOLIDAYS_TABLE: str = "holidays"

    # Storage
    MEDIA_BUCKET: str = "media"

    # Webhook nodes
    WEBHOOK_TIMEOUT_SECONDS: float = 30.0
    WEBHOOK_USER_AGENT: str = "ChatFlow-Webhook/1.0"

    # Interpreter
    MAX_AUTO_ADVANCE_STEPS: int = 25  # Nodes executed in a single turn
    RESPONSE_SEPARATOR: str = "\n\n"

    # Business hours
    BUSINESS_TIMEZONE: str = "America/Sao_Paulo"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    class Config:
        env_file = str(ENV_FILE)
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
