"""Runtime configuration.

Settings are read from the environment once per process. The Stripe secret
key and webhook signing secret are required: they come from
STRIPE_SECRET_KEY / STRIPE_WEBHOOK_SECRET, or from SSM Parameter Store at
/bluewater/{environment}/stripe/*. If neither source has them,
get_settings() raises ConfigurationError, which the API lifespan turns into
a failed startup.
"""

import logging
import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field

from bluewater.models.errors import ConfigurationError
from bluewater.services.ssm_service import SSMServiceError, get_ssm_service

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Process-wide configuration."""

    model_config = ConfigDict(frozen=True)

    environment: str = "dev"
    stripe_secret_key: str = Field(..., min_length=1, repr=False)
    stripe_webhook_secret: str = Field(..., min_length=1, repr=False)
    currency: str = "eur"
    gateway_timeout_seconds: float = Field(default=10.0, gt=0)
    gateway_max_retries: int = Field(default=2, ge=0)
    webhook_tolerance_seconds: int = Field(default=300, gt=0)


def _ssm_path(environment: str, name: str) -> str:
    return f"/bluewater/{environment}/stripe/{name}"


def _resolve_secret(env_var: str, environment: str, name: str) -> str:
    """Read a secret from the environment, falling back to SSM.

    Raises:
        ConfigurationError: If neither source provides a value.
    """
    value = os.environ.get(env_var)
    if value:
        return value

    path = _ssm_path(environment, name)
    try:
        value = get_ssm_service().get_parameter(path)
    except SSMServiceError as e:
        raise ConfigurationError(
            f"{env_var} is not set and SSM parameter {path} is unavailable: {e}"
        ) from e

    if not value:
        raise ConfigurationError(f"{env_var} is empty")
    return value


def load_settings() -> Settings:
    """Build Settings from the environment.

    Raises:
        ConfigurationError: If a required secret is missing.
    """
    environment = os.environ.get("ENVIRONMENT", "dev")

    settings = Settings(
        environment=environment,
        stripe_secret_key=_resolve_secret("STRIPE_SECRET_KEY", environment, "secret_key"),
        stripe_webhook_secret=_resolve_secret(
            "STRIPE_WEBHOOK_SECRET", environment, "webhook_secret"
        ),
        currency=os.environ.get("PAYMENT_CURRENCY", "eur").lower(),
        gateway_timeout_seconds=float(os.environ.get("STRIPE_TIMEOUT_SECONDS", "10")),
        gateway_max_retries=int(os.environ.get("STRIPE_MAX_NETWORK_RETRIES", "2")),
        webhook_tolerance_seconds=int(os.environ.get("STRIPE_WEBHOOK_TOLERANCE", "300")),
    )
    logger.info("Settings loaded for environment: %s", settings.environment)
    return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached Settings instance."""
    return load_settings()


def reset_settings() -> None:
    """Clear cached settings (for testing only)."""
    get_settings.cache_clear()
