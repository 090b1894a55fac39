"""
Application settings loaded from environment variables.
Uses pydantic-settings for validation and .env file support.
"""
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_name: str = Field(default="VendorHive API", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=True, description="Emit logs as JSON lines")
    cors_origins: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:5173",
        ],
        description="Origins allowed by the CORS middleware"
    )

    # Storage
    storage_backend: Literal["memory", "sql", "mongo"] = Field(
        default="sql",
        description="Persistence backend: memory, sql or mongo"
    )
    database_url: str = Field(
        default="sqlite:///./vendorhive.db",
        description="SQLAlchemy connection string (sql backend)"
    )
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection string (mongo backend)"
    )
    mongodb_database: str = Field(default="vendorhive", description="MongoDB database name")
    storage_connect_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts to open the storage backend before startup fails"
    )

    # JWT
    jwt_secret: str = Field(
        default="change-me-in-prod",
        description="Secret key for JWT token signing"
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm"
    )
    jwt_expiration_minutes: int = Field(
        default=10080,  # 7 days
        description="JWT token expiration in minutes"
    )

    # Passwords
    password_hash_rounds: int = Field(
        default=12,
        ge=4,
        le=31,
        description="bcrypt cost factor"
    )

    # Bookings
    strict_booking_transitions: bool = Field(
        default=False,
        description="Reject booking status changes outside the transition table"
    )

    # Media uploads (S3-compatible object storage)
    media_bucket: str = Field(default="", description="Bucket receiving uploaded images")
    media_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom S3 endpoint (R2, MinIO); None uses AWS"
    )
    media_region: Optional[str] = Field(default=None, description="Bucket region")
    media_access_key_id: str = Field(default="", description="Access key id")
    media_secret_access_key: str = Field(default="", description="Secret access key")
    media_public_base_url: str = Field(
        default="",
        description="Public base URL objects are served from"
    )
    media_folder: str = Field(default="vendorhive", description="Key prefix for uploads")


# Global settings instance
settings = Settings()
