import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="YGO_")

    app_name: str = "ygolookup"
    debug: bool = False

    # Root of the live dataset (images, card database, ban lists)
    data_dir: Path = Path(__file__).parent.parent / "cfg"

    # Release bundle location
    release_base_url: str = "https://github.com"
    release_repo: str = "Arshtyi/YuGiOh-Cards-Maker"
    release_tag: str = "latest"

    # Card search site used to turn names into card IDs
    search_url: str = "https://ygocdb.com/"
    search_user_agent: str = "nonebot-plugin-ygo"
    search_referer: str = "https://ygocdb.com/"

    # Minimum interval between two update runs
    update_cooldown_seconds: float = 600.0


settings = Settings()


@dataclass(frozen=True, slots=True)
class ProxyConfig:
    """
    Outbound proxy settings.

    Assembled once at startup and handed to every HTTP client we build.

    Attributes:
        http_proxy: Proxy for plain HTTP traffic
        https_proxy: Proxy for HTTPS traffic
        all_proxy: Fallback proxy for any scheme
    """

    http_proxy: str | None = None
    https_proxy: str | None = None
    all_proxy: str | None = None

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> "ProxyConfig":
        """Read the conventional proxy variables, lower-case first."""
        if environ is None:
            environ = os.environ

        def lookup(name: str) -> str | None:
            return environ.get(name.lower()) or environ.get(name.upper()) or None

        return cls(
            http_proxy=lookup("http_proxy"),
            https_proxy=lookup("https_proxy"),
            all_proxy=lookup("all_proxy"),
        )

    def for_url(self, url: str) -> str | None:
        """Pick the proxy that applies to a request URL, if any."""
        if url.startswith("https://"):
            return self.https_proxy or self.all_proxy
        if url.startswith("http://"):
            return self.http_proxy or self.all_proxy
        return self.all_proxy


@dataclass(frozen=True, slots=True)
class DatasetPaths:
    """Locations of the live dataset directories and the scratch area."""

    root: Path

    @property
    def images(self) -> Path:
        return self.root / "fig"

    @property
    def cards(self) -> Path:
        return self.root / "cards"

    @property
    def limits(self) -> Path:
        return self.root / "limit"

    @property
    def scratch(self) -> Path:
        return self.root / "tmp"

    @property
    def card_database(self) -> Path:
        return self.cards / CARD_DATABASE_FILE

    def live_dirs(self) -> tuple[Path, Path, Path]:
        return (self.images, self.cards, self.limits)


# =============================================================================
# DATASET LAYOUT
# =============================================================================

CARD_DATABASE_FILE = "cards.json"

# One ban-list document per rule environment
BAN_LIST_ENVIRONMENTS = ("ocg", "tcg", "md")


# =============================================================================
# UPDATE PIPELINE TUNING
# =============================================================================

# Attempts per manifest file, with a fixed pause between attempts
DOWNLOAD_ATTEMPTS = 3
DOWNLOAD_RETRY_DELAY = 3.0

# Report download progress every 20% of the expected size
DOWNLOAD_PROGRESS_STEP = 0.2

# Kill the decompressor after 5 minutes without output
EXTRACT_IDLE_TIMEOUT = 300.0
EXTRACT_CHECK_INTERVAL = 5.0
EXTRACT_HEARTBEAT_INTERVAL = 30.0

# Scheduling priority for the decompressor (passed to `nice -n`)
EXTRACT_NICENESS = 10


# =============================================================================
# CARD SEARCH
# =============================================================================

# Delay before each search attempt; the site often answers the first hit empty
SEARCH_BACKOFF = (0.0, 1.0, 2.0, 4.0)
