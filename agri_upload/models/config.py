# =============================================================================
# Configuration Models Module
# =============================================================================
# Pydantic Settings model for the upload pipeline:
# - remote ingestion endpoints (one per schema family)
# - HTTP timeout
# - authentication endpoint and token storage location
# =============================================================================

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .schema import SchemaFamily

__all__ = ["UploadSettings", "get_settings"]


class UploadSettings(BaseSettings):
    """
    Configuration for the upload pipeline.

    Maps environment variables:
    - FARMER_UPLOAD_URL → farmer_upload_url
    - LAND_PARCEL_UPLOAD_URL → land_parcel_upload_url
    - UPLOAD_TIMEOUT_SECONDS → timeout_seconds
    - AUTH_LOGIN_URL → auth_login_url
    - AUTH_TOKEN_PATH → auth_token_path

    Attributes:
        farmer_upload_url: Endpoint receiving farmer batches
        land_parcel_upload_url: Endpoint receiving land-parcel batches
        timeout_seconds: HTTP timeout for submissions and login
        auth_login_url: Login endpoint returning a bearer token
        auth_token_path: JSON file holding the stored token (None = memory only)
    """

    farmer_upload_url: str = Field(
        "https://datauploadingbackend-13977221722.asia-south2.run.app/api/farmerdata",
        validation_alias="FARMER_UPLOAD_URL",
        description="Endpoint receiving farmer batches",
    )
    land_parcel_upload_url: str = Field(
        "https://datauploadingbackend-13977221722.asia-south2.run.app/api/land-parcel/upload",
        validation_alias="LAND_PARCEL_UPLOAD_URL",
        description="Endpoint receiving land-parcel batches",
    )
    timeout_seconds: float = Field(
        30.0, gt=0, validation_alias="UPLOAD_TIMEOUT_SECONDS", description="HTTP timeout"
    )
    auth_login_url: str = Field(
        "http://localhost:5000/api/auth/login",
        validation_alias="AUTH_LOGIN_URL",
        description="Login endpoint",
    )
    auth_token_path: Optional[str] = Field(
        None, validation_alias="AUTH_TOKEN_PATH", description="Token storage file"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Ignore unrelated env vars from shared .env files
    )

    def endpoint_for(self, family: SchemaFamily) -> str:
        """Return the ingestion endpoint for a schema family."""
        if family == SchemaFamily.FARMER:
            return self.farmer_upload_url
        return self.land_parcel_upload_url


@lru_cache
def get_settings() -> UploadSettings:
    """Get cached settings instance."""
    return UploadSettings()
