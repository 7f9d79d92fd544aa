"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MySQL
    mysql_host: str = "localhost"
    mysql_port: int = 3306
    mysql_user: str = "boogie_user"
    mysql_password: str = "password"
    mysql_db: str = "boogie_db"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 5
    refresh_token_expire_hours: int = 24

    # S3 (images)
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_bucket_name: str = ""
    s3_region: str = "ap-northeast-2"

    # SMTP (verification codes, application notices)
    smtp_host: str = "smtp.naver.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""

    # Kakao local search
    kakao_api_key: str = ""
    kakao_search_url: str = "https://dapi.kakao.com/v2/local/search/keyword.json"

    # The one admin allowed to remove other admins
    supervisor_id: str = ""

    # App
    debug: bool = False
    log_level: str = "INFO"

    @property
    def mysql_url(self) -> str:
        """Construct MySQL connection URL"""
        return (
            f"mysql+pymysql://{self.mysql_user}:{self.mysql_password}"
            f"@{self.mysql_host}:{self.mysql_port}/{self.mysql_db}?charset=utf8mb4"
        )

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
