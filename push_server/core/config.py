from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "ReshmeInfo Notification Server"
    app_env: str = "dev"
    app_version: str = "1.0.0"
    api_v1_prefix: str = ""
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./push_tokens.db"
    auto_create_schema: bool = False

    fcm_service_account_json: str = "./secrets/fcm-service-account.json"
    fcm_batch_size: int = 500
    default_notification_image_url: str | None = (
        "https://raw.githubusercontent.com/NextGenXplorer/Reshme_Info/main/assets/reshme_logo.png"
    )

    relay_push_url: str = "https://exp.host/--/api/v2/push/send"
    relay_access_token: str | None = None
    relay_batch_size: int = 100

    push_timeout_seconds: float = 15.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()
