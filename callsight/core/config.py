from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env at the project root: callsight/core/config.py -> callsight/core -> callsight -> root
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"

OPENAI_KEY_PREFIX = "sk-"


class Settings(BaseSettings):
    openai_api_key: str = ""
    # Comma separated; when one key is rejected or rate limited the next one is tried.
    openai_api_keys: str = ""
    openai_model: str = "gpt-4o-mini"
    assemblyai_api_key: str = ""
    assemblyai_base_url: str = "https://api.assemblyai.com/v2"
    transcription_timeout_seconds: float = 30.0
    secret_key: str = "change-me-in-production"
    database_url: str = "sqlite:///./callsight.db"
    cors_origins: str = "*"
    rate_limit_per_minute: int = 60
    rate_limit_register_per_minute: int = 3
    rate_limit_upload_per_minute: int = 10
    upload_max_mb: int = 50
    # "local" writes under local_upload_dir, "r2" uploads to Cloudflare R2 (S3 API)
    storage_backend: str = "local"
    local_upload_dir: str = "data/uploads"
    public_upload_base_url: str = "http://127.0.0.1:8000/uploads"
    r2_endpoint: str = ""
    r2_access_key_id: str = ""
    r2_secret_access_key: str = ""
    r2_bucket_name: str = ""
    r2_public_endpoint: str = ""
    # A poll that claimed the insight stage owns it for this long; after that another poll may retake it.
    analysis_claim_ttl_seconds: int = 600
    # PENDING jobs older than this never got an external reference and are failed on the next poll.
    pending_submission_timeout_seconds: int = 300
    environment: str = "development"

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("openai_api_key", "openai_api_keys", "assemblyai_api_key", mode="before")
    @classmethod
    def strip_keys(cls, v: str | None) -> str:
        """Copy/paste whitespace around keys breaks provider auth."""
        return (v or "").strip()

    @field_validator("storage_backend", mode="before")
    @classmethod
    def normalize_backend(cls, v: str | None) -> str:
        return (v or "local").strip().lower()


settings = Settings()


def get_openai_keys() -> list[str]:
    """
    Valid OpenAI keys (starting with sk-, no whitespace).
    OPENAI_API_KEYS wins when set; otherwise OPENAI_API_KEY as a single entry.
    """
    keys_raw = (settings.openai_api_keys or "").strip()
    if keys_raw:
        keys = [k.strip() for k in keys_raw.split(",") if k.strip() and k.strip().startswith(OPENAI_KEY_PREFIX)]
        if keys:
            return keys
    single = (settings.openai_api_key or "").strip()
    if single and single.startswith(OPENAI_KEY_PREFIX):
        return [single]
    return []


def is_openai_configured() -> bool:
    return len(get_openai_keys()) > 0


def is_assemblyai_configured() -> bool:
    return bool(settings.assemblyai_api_key)


def upload_max_bytes() -> int:
    return settings.upload_max_mb * 1024 * 1024
