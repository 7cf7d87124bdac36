from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_files() -> list[str]:
    # JWT_* come from the repo-root .env shared with the token issuer
    base = Path(__file__).resolve().parents[2]
    return [str(base / ".env"), ".env"]


class AuthSettings(BaseSettings):
    """Bearer token verification. This service only verifies, never issues."""

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        env_file=_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    secret: SecretStr = SecretStr("change-me")
    algorithm: str = "HS256"
    issuer: str = "yibu-auth"
    audience: str = "yibu-services"
    # Clock skew tolerated on exp / iat / nbf
    leeway_seconds: int = 30
    roles_claim: str = "roles"
