"""Operations configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cio.exceptions import ConfigurationError


class Settings(BaseSettings):
    """CIO utilities settings.

    Field names match the environment variables case-insensitively
    (``github_token`` is read from ``GITHUB_TOKEN`` and so on).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///data/db/cio.db"

    # GitHub
    github_api_url: str = "https://api.github.com"
    github_token: str = ""
    github_org: str = ""
    gh_app_id: int | None = Field(default=None, ge=1)
    gh_installation_id: int | None = Field(default=None, ge=1)
    gh_private_key: str = ""
    http_timeout: float = Field(default=30.0, gt=0)

    # GSuite
    gadmin_credential_file: str = ""
    gsuite_key_encoded: str = ""
    gadmin_subject: str = ""

    # Paths
    home: Path = Path("~").expanduser()

    @property
    def github_cache_dir(self) -> Path:
        """Directory holding the on-disk GitHub HTTP cache."""
        return self.home / ".cache" / "github"

    def require_token_auth(self) -> None:
        """Validate settings needed for personal token authentication."""
        _require({"GITHUB_TOKEN": self.github_token})

    def require_app_auth(self) -> tuple[int, int, str]:
        """Validate GitHub App settings; returns (app id, installation id, encoded key)."""
        app_id, installation_id = self.gh_app_id, self.gh_installation_id
        missing = _missing(
            {
                "GH_APP_ID": app_id,
                "GH_INSTALLATION_ID": installation_id,
                "GH_PRIVATE_KEY": self.gh_private_key,
            }
        )
        if missing or app_id is None or installation_id is None:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
        return app_id, installation_id, self.gh_private_key

    def require_org(self) -> None:
        """Validate that the GitHub organization is configured."""
        _require({"GITHUB_ORG": self.github_org})

    def require_gsuite(self) -> None:
        """Validate settings needed to obtain a GSuite token."""
        missing = _missing({"GADMIN_SUBJECT": self.gadmin_subject})
        if not self.gadmin_credential_file and not self.gsuite_key_encoded:
            missing.append("GADMIN_CREDENTIAL_FILE or GSUITE_KEY_ENCODED")
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")


def _missing(values: dict[str, object]) -> list[str]:
    return [name for name, value in values.items() if value is None or value == ""]


def _require(values: dict[str, object]) -> None:
    missing = _missing(values)
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
