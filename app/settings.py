import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class Settings:
    # Inbound key for the flow endpoints. Empty means open (host sits in front).
    API_KEY: str = os.getenv("API_KEY", "")

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    # Session notes live only as long as the host's login attempt.
    SESSION_TTL_SEC: int = _int_env("SESSION_TTL_SEC", 1800)

    # Remote verifier
    IVALT_API_BASE_URL: str = os.getenv("IVALT_API_BASE_URL", "https://api.ivalt.com")
    IVALT_API_KEY: str = os.getenv("IVALT_API_KEY", "")
    IVALT_API_TIMEOUT_MS: int = _int_env("IVALT_API_TIMEOUT_MS", 300000)
    # Advisory only: the browser decides when to re-poll.
    IVALT_POLL_INTERVAL_MS: int = _int_env("IVALT_POLL_INTERVAL_MS", 2000)

    # Polling ceilings
    AUTH_MAX_POLL_ATTEMPTS: int = _int_env("AUTH_MAX_POLL_ATTEMPTS", 30)  # 30 * 2s ~ 60s
    ENROLL_TIMEOUT_MS: int = _int_env("ENROLL_TIMEOUT_MS", 60000)

    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "")

    # Security & Privacy
    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"
    ADMIN_RBAC_ENABLED: bool = os.getenv("ADMIN_RBAC_ENABLED", "true").lower() == "true"
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

settings = Settings()
