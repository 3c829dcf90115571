"""Application configuration via environment variables."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Redundant link cleaner settings."""

    model_config = SettingsConfigDict(
        env_prefix="LINK_CLEANER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # BeautifulSoup tree builder ("lxml", "html.parser", "html5lib")
    html_parser: str = "lxml"

    # Site domain used for external-link classification when a request
    # does not supply one
    default_domain: Optional[str] = None

    # Characters of surrounding text kept on each side of a link's context excerpt
    context_window: int = 30

    # Number of links in one paragraph that triggers a density warning
    density_threshold: int = 5

    # In-memory session store bound; the oldest session is evicted first
    max_sessions: int = 200

    log_level: str = "INFO"


settings = Settings()
