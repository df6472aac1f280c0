"""
Configuration management for the Multiplier API backend.
Centralizes all environment variables and provides validation.
"""
from typing import Optional
from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import field_validator

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings with validation."""

    # Database
    supabase_url: str
    supabase_key: str
    table_prefix: str = ""
    user_meta_table: str = "multiplier_user_meta"

    # Application
    app_name: str = "Multiplier API"
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]
    api_prefix: str = "/multiplier-api/v1"
    log_file: Optional[str] = None

    # Anti-forgery session token
    secret_key: str = "your-secret-key-here-change-in-production"
    algorithm: str = "HS256"
    nonce_header: str = "X-WP-Nonce"
    nonce_lifetime_seconds: int = 24 * 60 * 60

    # Ownership rules
    trust_client_user_id: bool = True
    owner_scoped_deletes: bool = False

    # Patreon membership lookup
    patreon_lookup_enabled: bool = False
    patreon_api_base: str = "https://www.patreon.com/api/oauth2/v2"
    patreon_timeout_seconds: float = 5.0

    @field_validator('supabase_url')
    @classmethod
    def validate_supabase_url(cls, v):
        if not v:
            raise ValueError('SUPABASE_URL is required')
        if not v.startswith('https://'):
            raise ValueError('SUPABASE_URL must be a valid HTTPS URL')
        return v

    @field_validator('api_prefix')
    @classmethod
    def validate_api_prefix(cls, v):
        if not v.startswith('/'):
            raise ValueError('API_PREFIX must start with "/"')
        return v.rstrip('/')

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore"
    }


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
