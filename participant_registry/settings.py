import os
from dotenv import load_dotenv

load_dotenv()

class Settings:
    API_KEY: str = os.getenv("API_KEY", "")
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    RQ_QUEUE_NAME: str = os.getenv("RQ_QUEUE_NAME", "registry-events")

    # Registry state document + bootstrap identity
    REGISTRY_STATE_KEY: str = os.getenv("REGISTRY_STATE_KEY", "registry:state")
    REGISTRY_DEPLOYER: str = os.getenv("REGISTRY_DEPLOYER", "deployer")
    REGISTRY_LOCK_TTL_MS: int = int(os.getenv("REGISTRY_LOCK_TTL_MS", "5000"))

    # Change-event delivery. Empty URL disables webhook delivery (events are still recorded).
    EVENT_WEBHOOK_URL: str = os.getenv("EVENT_WEBHOOK_URL", "")
    EVENT_TIMEOUT_SEC: float = float(os.getenv("EVENT_TIMEOUT_SEC", "5"))
    EVENT_MAX_ATTEMPTS: int = int(os.getenv("EVENT_MAX_ATTEMPTS", "8"))
    EVENT_BASE_DELAY_MS: int = int(os.getenv("EVENT_BASE_DELAY_MS", "1000"))
    EVENT_MAX_DELAY_MS: int = int(os.getenv("EVENT_MAX_DELAY_MS", "600000"))
    EVENT_PAYLOAD_VERSION: str = os.getenv("EVENT_PAYLOAD_VERSION", "1.0.0")
    RECENT_EVENTS_MAX: int = int(os.getenv("RECENT_EVENTS_MAX", "100"))

    # Security & Privacy
    ENABLE_PII_REDACTION: bool = os.getenv("ENABLE_PII_REDACTION", "true").lower() == "true"
    OPS_RBAC_ENABLED: bool = os.getenv("OPS_RBAC_ENABLED", "true").lower() == "true"
    OPS_API_KEY: str = os.getenv("OPS_API_KEY", "")

settings = Settings()
