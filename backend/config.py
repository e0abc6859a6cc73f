"""Application configuration using pydantic-settings."""

from typing import Any

from pydantic import field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Load credential fields from the system keychain via ``keyring``.

    Only fields whose uppercase name appears in
    :data:`~services.credential_manager.CREDENTIAL_KEYS` are looked up.
    All other fields return ``None`` so the next source in the chain
    handles them.
    """

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        env_name = field_name.upper()
        if env_name not in CREDENTIAL_KEYS:
            return None, field_name, False
        value = get_credential(env_name)
        return value, field_name, False

    def __call__(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        for field_name, field_info in self.settings_cls.model_fields.items():
            value, key, is_complex = self.get_field_value(field_info, field_name)
            if value is not None:
                d[key] = value
        return d


WEBHOOK_FALLBACK_POLICIES = frozenset({"sync_all", "none"})


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            KeychainSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    # Database
    DATABASE_URL: str = "sqlite:///./ledger_sync.db"

    # Yodlee credentials (client-level; user sessions live on Connection rows)
    YODLEE_CLIENT_ID: str = ""
    YODLEE_SECRET: str = ""
    YODLEE_BASE_URL: str = "https://sandbox.api.yodlee.com/ysl"
    YODLEE_ADMIN_LOGIN_NAME: str = ""
    YODLEE_API_VERSION: str = "1.1"
    YODLEE_TIMEOUT: float = 30.0

    # Sync engine
    SYNC_MAX_HISTORY_DAYS: int = 90
    SYNC_OVERLAP_DAYS: int = 7
    SYNC_RATE_LIMIT_DELAY: float = 0.5  # seconds between per-account fetches
    SYNC_STALE_AFTER_MINUTES: int = 120  # running claims older than this are abandoned
    CATEGORY_MAP_PATH: str = ""
    WEBHOOK_FALLBACK_POLICY: str = "sync_all"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    @field_validator("WEBHOOK_FALLBACK_POLICY", mode="before")
    @classmethod
    def validate_webhook_policy(cls, v: str) -> str:
        """Accept only the known fallback policies for untargeted webhooks."""
        normalized = str(v).strip().lower()
        if normalized not in WEBHOOK_FALLBACK_POLICIES:
            raise ValueError(
                f"WEBHOOK_FALLBACK_POLICY must be one of "
                f"{sorted(WEBHOOK_FALLBACK_POLICIES)}, got {v!r}"
            )
        return normalized

    @field_validator("SYNC_MAX_HISTORY_DAYS", "SYNC_OVERLAP_DAYS")
    @classmethod
    def validate_non_negative_days(cls, v: int) -> int:
        if v < 0:
            raise ValueError("day counts must be non-negative")
        return v

    @field_validator("SYNC_STALE_AFTER_MINUTES")
    @classmethod
    def validate_stale_after(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("SYNC_STALE_AFTER_MINUTES must be positive")
        return v

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()
