"""Runtime settings read from the environment.

Every knob is a ``SEALRELAY_*`` environment variable. ``Settings.from_env``
reads them, ``Settings.validate`` rejects values the pipeline cannot run with.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

from .exceptions import ConfigurationError
from .models import WireEncoding

ENV_PREFIX = "SEALRELAY_"

DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_HEALTH_TIMEOUT = 5.0
DEFAULT_STREAM_THRESHOLD = 1024 * 1024
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_PBKDF2_ITERATIONS = 100_000

REQUIRED_URLS = ("ENCRYPTED_DATA_URL", "SINK_URL", "CLEAR_URL")
KEY_PROVIDERS = ("env", "keyring", "demo")
KDF_NAMES = ("pbkdf2-sha256", "argon2id")


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    encrypted_data_url: str
    sink_url: str
    clear_url: str
    data_url: Optional[str] = None
    health_url: Optional[str] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    health_timeout: float = DEFAULT_HEALTH_TIMEOUT
    stream_threshold: int = DEFAULT_STREAM_THRESHOLD
    chunk_size: int = DEFAULT_CHUNK_SIZE
    kdf: str = "pbkdf2-sha256"
    kdf_iterations: int = DEFAULT_PBKDF2_ITERATIONS
    key_provider: str = "env"
    keyring_service: str = "sealrelay"
    keyring_account: str = "default"
    demo_mode: bool = False
    wire_encoding: WireEncoding = WireEncoding.HEX
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``SEALRELAY_*`` variables and validate them."""
        env = os.environ if environ is None else environ

        def get(name: str, default: Optional[str] = None) -> Optional[str]:
            return env.get(ENV_PREFIX + name, default)

        missing = [name for name in REQUIRED_URLS if not get(name)]
        if missing:
            raise ConfigurationError(
                "missing required environment variables: "
                + ", ".join(ENV_PREFIX + name for name in missing)
            )

        try:
            settings = cls(
                encrypted_data_url=get("ENCRYPTED_DATA_URL"),
                sink_url=get("SINK_URL"),
                clear_url=get("CLEAR_URL"),
                data_url=get("DATA_URL"),
                health_url=get("HEALTH_URL"),
                request_timeout=float(get("REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT))),
                health_timeout=float(get("HEALTH_TIMEOUT", str(DEFAULT_HEALTH_TIMEOUT))),
                stream_threshold=int(get("STREAM_THRESHOLD", str(DEFAULT_STREAM_THRESHOLD))),
                chunk_size=int(get("CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE))),
                kdf=get("KDF", "pbkdf2-sha256"),
                kdf_iterations=int(get("KDF_ITERATIONS", str(DEFAULT_PBKDF2_ITERATIONS))),
                key_provider=get("KEY_PROVIDER", "env"),
                keyring_service=get("KEYRING_SERVICE", "sealrelay"),
                keyring_account=get("KEYRING_ACCOUNT", "default"),
                demo_mode=_truthy(get("DEMO_MODE")),
                wire_encoding=WireEncoding(get("WIRE_ENCODING", "hex").lower()),
                log_level=get("LOG_LEVEL", "INFO").upper(),
            )
        except ValueError as e:
            raise ConfigurationError(f"invalid setting: {e}") from e

        settings.validate()
        return settings

    @property
    def resolved_health_url(self) -> str:
        # same convention as the sink: /webhook/<id> -> /health<id>
        if self.health_url:
            return self.health_url
        return self.sink_url.replace("/webhook/", "/health")

    def validate(self) -> None:
        for name in ("encrypted_data_url", "sink_url", "clear_url", "data_url", "health_url"):
            value = getattr(self, name)
            if value is None:
                continue
            parsed = urlparse(value)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ConfigurationError(f"{name} is not a valid http(s) URL")

        if self.request_timeout <= 0 or self.health_timeout <= 0:
            raise ConfigurationError("timeouts must be positive")
        if self.stream_threshold <= 0 or self.chunk_size <= 0:
            raise ConfigurationError("stream threshold and chunk size must be positive")
        if self.kdf_iterations <= 0:
            raise ConfigurationError("kdf iterations must be positive")
        if self.kdf not in KDF_NAMES:
            raise ConfigurationError(f"unknown kdf {self.kdf!r}; expected one of {', '.join(KDF_NAMES)}")
        if self.key_provider not in KEY_PROVIDERS:
            raise ConfigurationError(
                f"unknown key provider {self.key_provider!r}; expected one of {', '.join(KEY_PROVIDERS)}"
            )
