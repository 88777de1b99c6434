from dataclasses import dataclass
from typing import Mapping, Optional

# Property names used by host authenticator configs.
IVALT_API_BASE_URL = "ivalt.api.base.url"
IVALT_API_KEY = "ivalt.api.key"
IVALT_API_TIMEOUT = "ivalt.api.timeout"
IVALT_POLL_INTERVAL = "ivalt.poll.interval"

DEFAULT_BASE_URL = "https://api.ivalt.com"
DEFAULT_TIMEOUT_MS = 300000
DEFAULT_POLL_INTERVAL_MS = 2000


def _as_int(value, default: int) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class IvaltConfig:
    baseUrl: str = DEFAULT_BASE_URL
    apiKey: str = ""
    timeoutMs: int = DEFAULT_TIMEOUT_MS
    pollIntervalMs: int = DEFAULT_POLL_INTERVAL_MS

    @property
    def configured(self) -> bool:
        return bool(self.apiKey)

    @property
    def timeout_sec(self) -> float:
        return self.timeoutMs / 1000.0

    @classmethod
    def from_map(cls, config: Optional[Mapping[str, str]]) -> "IvaltConfig":
        """Build from a host key->value authenticator config."""
        config = config or {}
        return cls(
            baseUrl=(config.get(IVALT_API_BASE_URL) or DEFAULT_BASE_URL).rstrip("/"),
            apiKey=config.get(IVALT_API_KEY) or "",
            timeoutMs=_as_int(config.get(IVALT_API_TIMEOUT), DEFAULT_TIMEOUT_MS),
            pollIntervalMs=_as_int(config.get(IVALT_POLL_INTERVAL), DEFAULT_POLL_INTERVAL_MS),
        )

    @classmethod
    def from_settings(cls, settings) -> "IvaltConfig":
        return cls(
            baseUrl=(settings.IVALT_API_BASE_URL or DEFAULT_BASE_URL).rstrip("/"),
            apiKey=settings.IVALT_API_KEY or "",
            timeoutMs=int(settings.IVALT_API_TIMEOUT_MS),
            pollIntervalMs=int(settings.IVALT_POLL_INTERVAL_MS),
        )
