from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore[import-not-found]


class Settings(BaseSettings):
    app_env: str = "local"
    app_name: str = "busline"
    port: int = 8000
    log_level: str = "INFO"

    mysql_host: str = "127.0.0.1"
    mysql_port: int = 3306
    mysql_user: str = "bl_user"
    mysql_password: str = "bl_pass"
    mysql_db: str = "busline"
    # Full SQLAlchemy URL; wins over the mysql_* pieces when set
    database_url: str | None = None

    # Redis / CORS / Client
    redis_url: str = "redis://localhost:6379/0"
    cors_origins: list[str] | str = "*"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str] | str:
        if isinstance(v, str):
            if v == "*":
                return "*"
            if "," in v:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
            return [v.strip()] if v.strip() else "*"
        if isinstance(v, list):
            return v
        return "*"

    client_id_header: str = "X-Client-Id"
    company_id_header: str = "X-Company-Id"

    # Locations are written as "City - Terminal"; text before the separator is the city
    location_separator: str = " - "
    route_segments_cache_ttl_seconds: int = 60 * 10

    # Trip publishing
    max_publish_days: int = 92
    default_departure_time: str = "12:00 PM"
    default_arrival_time: str = "1:00 PM"
    price_rounding_step: int = 25
    min_segment_price_ratio: float = 0.25

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+pymysql://{self.mysql_user}:{self.mysql_password}"
            f"@{self.mysql_host}:{self.mysql_port}/{self.mysql_db}?charset=utf8mb4"
        )


settings = Settings()
