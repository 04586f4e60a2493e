from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    APP_NAME: str = "CareBook API"
    LOG_LEVEL: str = "INFO"
    DEFAULT_OPERATOR: str = "admin"

    # Airtable record store
    AIRTABLE_API_KEY: str = ""
    AIRTABLE_BASE_ID: str = ""
    AIRTABLE_API_URL: str = "https://api.airtable.com/v0"
    MEMBERS_TABLE_ID: str = "members"
    BOOKINGS_TABLE_ID: str = "bookings"
    TRANSACTIONS_TABLE_ID: str = "transactions"
    STORE_TIMEOUT_SECONDS: float = 10.0
    STORE_PAGE_SIZE: int = 100

    # Write the original Chinese select labels (待確認, 儲值, ...) instead of English ones
    LEGACY_LABELS: bool = True

    @property
    def airtable_configured(self) -> bool:
        return bool(self.AIRTABLE_API_KEY and self.AIRTABLE_BASE_ID)


@lru_cache
def get_settings() -> Settings:
    return Settings()
