from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Any, Dict, Optional


DEFAULT_DEEPSEEK_BASE_URL = "https://api.deepseek.com"


def parse_bool(value: Any, fallback: bool = False) -> bool:
    """Parse loose boolean values used in env vars and routing payloads"""
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    return fallback


def normalize_deepseek_base_url(raw: Optional[str]) -> str:
    """Strip trailing slashes and make sure the URL ends with /v1"""
    base = str(raw or DEFAULT_DEEPSEEK_BASE_URL).strip().rstrip("/")
    if not base:
        base = DEFAULT_DEEPSEEK_BASE_URL
    return base if base.endswith("/v1") else f"{base}/v1"


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""  # Empty disables the rotating file handler

    # ==========================================
    # DeepSeek (OpenAI-compatible chat completions)
    # ==========================================
    DEEPSEEK_API_KEY: str = ""
    DEEPSEEK_BASE_URL: str = DEFAULT_DEEPSEEK_BASE_URL
    DEEPSEEK_MODEL: str = "deepseek-chat"
    DEEPSEEK_THINKING_MODEL: str = "deepseek-reasoner"
    DEEPSEEK_REQUEST_TIMEOUT: float = 300.0  # seconds
    DEEPSEEK_CONNECT_TIMEOUT: float = 30.0  # seconds

    # ==========================================
    # Multi-agent orchestration
    # ==========================================
    MULTI_AGENT_ARCHITECT_ENABLED: bool = True
    MULTI_AGENT_TIMEOUT_MS: int = 120_000
    MULTI_AGENT_TEMPERATURE: float = 0.0

    # ==========================================
    # File-op protocol parser
    # ==========================================
    FILE_OP_CHUNK_SIZE: int = 256  # chars per emitted patch chunk

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    @field_validator("DEEPSEEK_BASE_URL", mode="before")
    @classmethod
    def _normalize_base_url(cls, v: Any) -> str:
        return normalize_deepseek_base_url(v)

    @field_validator("FILE_OP_CHUNK_SIZE")
    @classmethod
    def _positive_chunk_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("FILE_OP_CHUNK_SIZE must be positive")
        return v

    @property
    def has_deepseek_key(self) -> bool:
        return bool(self.DEEPSEEK_API_KEY and self.DEEPSEEK_API_KEY.strip())

    def default_model(self, thinking_mode: bool) -> str:
        """Executor model for single-call generation"""
        return self.DEEPSEEK_THINKING_MODEL if thinking_mode else self.DEEPSEEK_MODEL

    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def get_timeouts(self) -> Dict[str, float]:
        return {
            "connect": self.DEEPSEEK_CONNECT_TIMEOUT,
            "read": self.DEEPSEEK_REQUEST_TIMEOUT,
        }


# Create settings instance
settings = Settings()
