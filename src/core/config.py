"""Configuration management using Pydantic settings."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, PostgresDsn, computed_field
import os


class Settings(BaseSettings):
    """Application settings."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    
    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "LTI Apps Service"
    VERSION: str = "1.0.0"
    
    # Security
    SECRET_KEY: str = Field(default="dev-secret-key-change-in-production")
    ALGORITHM: str = "HS256"
    
    # CORS
    BACKEND_CORS_ORIGINS: list[str] = Field(
        default=[
            "http://localhost:3000", 
            "http://localhost:8000", 
            "http://127.0.0.1:3000"
        ]
    )
    
    # Database (local partition)
    POSTGRES_SERVER: str = Field(default="localhost")
    POSTGRES_USER: str = Field(default="lti_apps")
    POSTGRES_PASSWORD: str = Field(default="local_dev_password")
    POSTGRES_DB: str = Field(default="lti_apps")
    POSTGRES_PORT: int = Field(default=5432)
    
    @computed_field
    @property
    def DATABASE_URL(self) -> PostgresDsn | str:
        """Construct database URL from components."""
        # SQLALCHEMY_DATABASE_URI bypasses Pydantic validation (Unix socket paths, sqlite)
        sqlalchemy_uri = os.getenv("SQLALCHEMY_DATABASE_URI")
        if sqlalchemy_uri:
            return sqlalchemy_uri

        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    # Global partition ("site admin" shard). Falls back to the local database.
    GLOBAL_DATABASE_URL: Optional[str] = Field(default=None)
    GLOBAL_ACCOUNT_ID: str = Field(default="site-admin")

    @computed_field
    @property
    def GLOBAL_PARTITION_URL(self) -> str:
        """URL of the partition holding the global account's data."""
        return self.GLOBAL_DATABASE_URL or str(self.DATABASE_URL)

    # LTI app listing
    LTI_DEFAULT_PER_PAGE: int = Field(default=10)
    LTI_MAX_PER_PAGE: int = Field(default=100)
    LTI_SOURCE_BATCH_SIZE: int = Field(default=100)
    
    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FORMAT: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    
    # Environment settings
    ENVIRONMENT: str = Field(default="development")
    
    # Performance
    MAX_CONNECTIONS_COUNT: int = Field(default=10)


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()


_settings = None

def get_cached_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings

settings = get_cached_settings()
