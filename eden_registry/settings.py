import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    # Registry Connection
    registry_base_url: str = Field(
        default="https://eden-genesis-registry.vercel.app/api/v1",
        alias="REGISTRY_BASE_URL",
    )
    registry_api_key: str = Field(default="", alias="REGISTRY_API_KEY")
    registry_client_id: str = Field(default="eden-academy", alias="REGISTRY_CLIENT_ID")

    # Master switch - accessors fail fast when this is off
    use_registry: bool = Field(default=False, alias="USE_REGISTRY")

    # Resilience Configuration
    request_timeout_ms: int = Field(default=3000, alias="REGISTRY_REQUEST_TIMEOUT_MS")
    health_timeout_ms: int = Field(default=2000, alias="REGISTRY_HEALTH_TIMEOUT_MS")
    health_cooldown_ms: int = Field(
        default=30000, alias="REGISTRY_HEALTH_COOLDOWN_MS"
    )
    max_attempts: int = Field(default=3, alias="REGISTRY_MAX_ATTEMPTS")
    retry_delay_ms: int = Field(default=1000, alias="REGISTRY_RETRY_DELAY_MS")

    # ISR (incremental refresh) Configuration
    isr_revalidate_seconds: int = Field(
        default=60, alias="REGISTRY_ISR_REVALIDATE_SECONDS"
    )
    isr_failure_revalidate_seconds: int = Field(
        default=10, alias="REGISTRY_ISR_FAILURE_REVALIDATE_SECONDS"
    )

    # Auth Configuration
    token_expiry_seconds: int = Field(
        default=24 * 60 * 60, alias="REGISTRY_TOKEN_EXPIRY_SECONDS"
    )

    model_config = {"populate_by_name": True}


def load_settings() -> Settings:
    """Build settings from the current process environment."""
    fields = {
        field.alias: os.environ[field.alias]
        for field in Settings.model_fields.values()
        if field.alias and field.alias in os.environ
    }
    return Settings(**fields)


global_settings = load_settings()
