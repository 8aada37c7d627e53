from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="community-engagement", validation_alias="APP_NAME")
    app_env: str = Field(default="dev", validation_alias="APP_ENV")
    app_port: int = Field(default=8000, validation_alias="APP_PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    database_url: str = Field(validation_alias="DATABASE_URL")
    redis_url: str = Field(validation_alias="REDIS_URL")

    auth_jwt_secret: str = Field(default="change-me", validation_alias="AUTH_JWT_SECRET")
    auth_jwt_audience: str | None = Field(default="authenticated", validation_alias="AUTH_JWT_AUDIENCE")

    notification_list_limit: int = Field(default=20, validation_alias="NOTIFICATION_LIST_LIMIT")
    notification_channel_prefix: str = Field(default="notifications", validation_alias="NOTIFICATION_CHANNEL_PREFIX")
    comment_channel_prefix: str = Field(default="comments", validation_alias="COMMENT_CHANNEL_PREFIX")
    realtime_resubscribe_attempts: int = Field(default=5, validation_alias="REALTIME_RESUBSCRIBE_ATTEMPTS")
    realtime_resubscribe_backoff_seconds: float = Field(
        default=1.0,
        validation_alias="REALTIME_RESUBSCRIBE_BACKOFF_SECONDS",
    )

    client_timeout_seconds: float = Field(default=10.0, validation_alias="CLIENT_TIMEOUT_SECONDS")


settings = Settings()
MAX_NOTIFICATION_LIST_LIMIT = 100
MAX_COMMENT_LENGTH = 500
