"""
API Configuration Management

Environment-aware settings for the HTTP layer, loaded and validated with
pydantic-settings.
"""

import os
from enum import Enum

from pydantic_settings import BaseSettings
from pydantic import Field, SecretStr, field_validator


class EnvironmentType(str, Enum):
    """Valid environment types for configuration context."""
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class APISettings(BaseSettings):
    """
    API configuration settings with environment-specific defaults and validation.

    The JWT secret has a development default only; production deployments
    must set JWT_SECRET_KEY.
    """
    ENVIRONMENT: EnvironmentType = Field(
        default=EnvironmentType.DEVELOPMENT,
        description="Runtime environment context"
    )
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    API_TITLE: str = Field(default="Inbox Automation API", description="API title for documentation")
    API_DESCRIPTION: str = Field(
        default="Automated inbox triage, reply drafting and human review feedback",
        description="API description for documentation"
    )
    API_VERSION: str = Field(default="1.0.0", description="API version")

    JWT_SECRET_KEY: SecretStr = Field(
        default="insecure_development_key_do_not_use_in_production_1234567890",
        description="Secret key for JWT token validation"
    )
    JWT_ALGORITHM: str = Field(default="HS256", description="Algorithm used for JWT tokens")
    JWT_TOKEN_EXPIRE_MINUTES: int = Field(default=30, description="JWT token expiration time in minutes")

    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed origins for CORS"
    )
    CORS_METHODS: str = Field(
        default="GET,POST,OPTIONS",
        description="Comma-separated list of allowed methods for CORS"
    )

    AUTOMATION_RESUME_ON_STARTUP: bool = Field(
        default=True,
        description="Restart monitoring jobs for users with automation enabled"
    )

    @field_validator("CORS_ORIGINS")
    @classmethod
    def parse_cors_origins(cls, value: str) -> list:
        """Parse comma-separated CORS origins into list."""
        if value == "*":
            return ["*"]
        return [origin.strip() for origin in value.split(",") if origin.strip()]

    @field_validator("CORS_METHODS")
    @classmethod
    def parse_cors_methods(cls, value: str) -> list:
        return [method.strip() for method in value.split(",") if method.strip()]

    @field_validator("JWT_SECRET_KEY")
    @classmethod
    def validate_jwt_secret(cls, value: SecretStr) -> SecretStr:
        """Validate JWT secret key meets minimum security requirements."""
        if len(value.get_secret_value()) < 32:
            raise ValueError("JWT secret key must be at least 32 characters long")
        return value

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }


def get_settings() -> APISettings:
    """
    Retrieve validated API settings.

    Raises:
        ValidationError: If configuration fails validation
    """
    env = os.getenv("ENVIRONMENT", "development")
    if env in ["development", "testing"]:
        os.environ.setdefault(
            "JWT_SECRET_KEY",
            "insecure_development_key_do_not_use_in_production_1234567890"
        )
    return APISettings()
