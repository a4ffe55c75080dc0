from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

AUTH_BASIC = "basic"
AUTH_JWT = "jwt"

REGION_US = "US"
REGION_EU = "EU"


class SmoochSettings(BaseSettings):
    """
    Smooch client configuration using Pydantic BaseSettings.
    Loads ``SMOOCH_*`` environment variables automatically.
    """

    # Authentication
    AUTH: str = Field(AUTH_JWT, description="Auth mode: basic or jwt")
    APP_ID: str = Field("", description="Smooch app ID")
    KEY_ID: str = Field(..., description="Key identifier (kid) for basic auth and JWT signing")
    SECRET: str = Field(..., description="Secret for basic auth and JWT signing")

    # API
    REGION: str = Field(REGION_US, description="API region: US or EU")
    HTTP_TIMEOUT: float = Field(30.0, description="HTTP timeout in seconds")

    # Webhook
    WEBHOOK_URL: str = Field("/", description="Path of the webhook route")
    VERIFY_SECRET: str | None = Field(None, description="Expected X-API-Key on webhook requests")

    # JWT
    JWT_SCOPE: str = Field("app", description="Scope claim of issued tokens")
    JWT_EXPIRATION: int = Field(3600, description="Token lifetime and Redis TTL in seconds")
    JWT_RENEW: bool = Field(True, description="Renew tokens through Redis; False issues one static token")

    # Redis
    REDIS_URL: str = Field("redis://localhost:6379/0", description="Redis connection URL")
    REDIS_TOKEN_KEY: str = Field("smooch-jwt-token", description="Redis key holding the current token")

    model_config = SettingsConfigDict(
        env_prefix="SMOOCH_",
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("KEY_ID")
    @classmethod
    def validate_key_id(cls, v: str) -> str:
        if not v:
            raise ValueError("key id is empty")
        return v

    @field_validator("SECRET")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        if not v:
            raise ValueError("secret is empty")
        return v

    @field_validator("AUTH", mode="before")
    @classmethod
    def validate_auth(cls, v: str) -> str:
        value = str(v).lower()
        if value not in (AUTH_BASIC, AUTH_JWT):
            raise ValueError("error wrong authentication")
        return value

    @field_validator("REGION", mode="before")
    @classmethod
    def normalize_region(cls, v: str | None) -> str:
        """Anything other than EU falls back to US."""
        return REGION_EU if str(v or "").upper() == REGION_EU else REGION_US

    @field_validator("WEBHOOK_URL", mode="before")
    @classmethod
    def default_webhook_url(cls, v: str | None) -> str:
        return v or "/"

    @field_validator("JWT_EXPIRATION")
    @classmethod
    def validate_expiration(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("JWT_EXPIRATION must be positive")
        return v


_settings_instance: SmoochSettings | None = None


def get_settings() -> SmoochSettings:
    """
    Return a cached settings instance.
    Avoids loading environment variables more than once.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = SmoochSettings()
    return _settings_instance
