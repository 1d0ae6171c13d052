# lb-cert/config.py
import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Validated configuration for one load balancer / one domain.

    Raises ``pydantic.ValidationError`` on missing or invalid values.
    """

    model_config = SettingsConfigDict(
        env_prefix="LBCERT_FN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    lb_ocid: str
    os_ns: str
    os_bn: str
    archive_prefix: str
    domain: str

    region: str | None = None
    auth_mode: Literal["resource_principal", "instance_principal", "config_file"] = "resource_principal"
    oci_config_file: str = "~/.oci/config"
    oci_profile: str = "DEFAULT"
    lb_endpoint: str | None = None
    os_endpoint: str | None = None

    poll_interval: float = Field(default=5.0, ge=0)
    max_attempts: int = Field(default=60, ge=1)
    deadline_seconds: float = Field(default=900, gt=0)
    request_timeout: float = Field(default=30, gt=0)
    max_parallel_listeners: int = Field(default=4, ge=1)
    log_level: str = "INFO"

    @property
    def archive_name(self) -> str:
        return f"{self.archive_prefix}-{self.domain}.tar.gz"

    @classmethod
    def load(cls, **overrides) -> "Settings":
        """Load from the environment; ``overrides`` win over env values."""
        return cls(**overrides)  # type: ignore[call-arg]  # env vars supply required fields


def setup_logging(settings: Settings) -> None:
    """Configure the root logger at ``settings.log_level``, then log the non-secret settings."""
    logging.basicConfig(level=settings.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log.debug("settings loaded: lb=%s archive=/n/%s/b/%s/o/%s domain=%s auth_mode=%s region=%s",
              settings.lb_ocid, settings.os_ns, settings.os_bn, settings.archive_name,
              settings.domain, settings.auth_mode, settings.region)
