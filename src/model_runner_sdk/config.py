"""SDK-level configuration loaded from environment and overridable at runtime."""

from __future__ import annotations

import os
import socket
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from model_runner_sdk.logger import logger

LOCAL_BASE_URL = "http://localhost"
MODEL_RUNNER_HOST = "model-runner.docker.internal"

# Routes on the Docker socket live under this prefix while they are experimental.
# It does not apply to endpoints served on model-runner.docker.internal.
EXPERIMENTAL_ENDPOINTS_PREFIX = "/exp/vDD4.40"


def is_running_in_container() -> bool:
    """Detect whether the current Python process is running in a container."""
    return bool(os.environ.get("container") or os.path.exists("/.dockerenv") or os.path.exists("/run/.containerenv"))


def host_resolves(host: str) -> bool:
    """Return whether a hostname can be resolved in the current environment."""
    try:
        socket.getaddrinfo(host, None)
        return True
    except OSError:
        return False


def default_base_url() -> str:
    """Compute the default runner address for host or containerized SDK clients."""
    if not is_running_in_container():
        return LOCAL_BASE_URL

    if host_resolves(MODEL_RUNNER_HOST):
        return f"http://{MODEL_RUNNER_HOST}"

    logger.warning(
        f"Detected SDK is running inside of a container but could not resolve {MODEL_RUNNER_HOST}. "
        f"Defaulting to {LOCAL_BASE_URL}"
    )
    return LOCAL_BASE_URL


class BaseModelRunnerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MODEL_RUNNER_SDK_", extra="ignore")


class ConnectionSettings(BaseModelRunnerSettings):
    base_url: str = Field(default_factory=default_base_url)
    path_prefix: str | None = None
    timeout: float | None = None

    @field_validator("base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, url: str) -> str:
        return url.rstrip("/")

    @model_validator(mode="after")
    def populate_path_prefix(self) -> ConnectionSettings:
        if self.path_prefix is None:
            host = urlsplit(self.base_url).hostname
            self.path_prefix = "" if host == MODEL_RUNNER_HOST else EXPERIMENTAL_ENDPOINTS_PREFIX
        return self


class SDKSettings(BaseModel):
    """Global SDK settings for runner address selection and client connectivity."""

    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)

    def get_locked(self) -> FrozenSDKSettings:
        payload = self.model_dump()
        return FrozenSDKSettings.model_validate(payload)


class FrozenSDKSettings(SDKSettings):
    model_config = ConfigDict(frozen=True)


settings = SDKSettings()


def get_sdk_config() -> FrozenSDKSettings:
    """Return an immutable snapshot of current global SDK settings."""
    return settings.get_locked()


def get_base_url(config: SDKSettings | None = None) -> str:
    """Return the address every SDK route is relative to, prefix included."""
    connection = (config or get_sdk_config()).connection
    return f"{connection.base_url}{connection.path_prefix or ''}"
