from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class BlogSettings(BaseSettings):
    """
    Runtime settings for the blog backend.

    Every field is read from a BLOG_-prefixed environment variable
    (BLOG_DATABASE_URL, BLOG_AUTH_KEY, ...) or from a local .env file.
    """

    model_config = SettingsConfigDict(env_prefix="BLOG_", env_file=".env", extra="ignore")

    database_url: str = "sqlite:///blog.db"

    # Token signing key, given directly or as a Secret Manager resource name
    auth_key: Optional[str] = None
    auth_secret_id: Optional[str] = None
    access_token_expire_minutes: int = 150

    # Comma-separated, fed to TrustedHostMiddleware
    allowed_hosts: str = "localhost,127.0.0.1"

    @property
    def allowed_host_list(self) -> List[str]:
        return [host.strip() for host in self.allowed_hosts.split(",") if host.strip()]

    @property
    def has_signing_key(self) -> bool:
        return bool(self.auth_key or self.auth_secret_id)


def get_settings() -> BlogSettings:
    return BlogSettings()
