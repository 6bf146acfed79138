"""Configuration management using Pydantic Settings."""

from typing import List

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SSOSettings(BaseSettings):
    """Sesame SSO client configuration, loaded from arguments or environment variables."""

    # Authorization Server (Sesame SSO) Configuration
    sso_base_url: str = Field(
        default="",
        description="Base URL of the Sesame SSO server, e.g. https://sso.sesametime.com",
    )
    client_id: str = ""
    client_secret: SecretStr = SecretStr("")
    redirect_uri: str = Field(
        default="",
        description="Callback URL registered for this client",
    )

    # OAuth Scopes
    default_scope: str = ""

    # HTTP timeout in seconds
    timeout: float = 10.0

    # CSRF state store
    state_ttl_seconds: float = 600.0
    state_max_entries: int = 10_000
    state_cleanup_interval_seconds: float = 60.0

    model_config = SettingsConfigDict(
        env_prefix="SESAME_SSO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def missing_required(self) -> List[str]:
        """Names of required fields that are empty."""
        missing = []
        if not self.sso_base_url:
            missing.append("sso_base_url")
        if not self.client_id:
            missing.append("client_id")
        if not self.client_secret.get_secret_value():
            missing.append("client_secret")
        if not self.redirect_uri:
            missing.append("redirect_uri")
        return missing
