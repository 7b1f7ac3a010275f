"""
Shared request dependencies.

Everything the endpoints need (dataset paths, proxy settings, the card
database cache and the update guard) is owned by one `Runtime`, built once
per process and injected with `Depends(get_runtime)`. Tests override
`get_runtime` to point at a temporary dataset.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from ygolookup.config import DatasetPaths, ProxyConfig, settings
from ygolookup.scrapers.ygocdb import CardIdResolver
from ygolookup.services.card_database import CardDatabase
from ygolookup.services.publisher import DatasetPublisher
from ygolookup.services.update_guard import UpdateGuard


@dataclass
class Runtime:
    """Process-wide collaborators for the HTTP surface."""

    paths: DatasetPaths
    proxy: ProxyConfig
    card_database: CardDatabase
    guard: UpdateGuard

    def publisher(self) -> DatasetPublisher:
        return DatasetPublisher(
            self.paths,
            proxy=self.proxy,
            card_database=self.card_database,
        )

    def resolver(self) -> CardIdResolver:
        return CardIdResolver(proxy=self.proxy)


def build_runtime(data_dir: Path | None = None) -> Runtime:
    paths = DatasetPaths(data_dir or settings.data_dir)
    return Runtime(
        paths=paths,
        proxy=ProxyConfig.from_environ(),
        card_database=CardDatabase(paths.card_database),
        guard=UpdateGuard(settings.update_cooldown_seconds),
    )


@lru_cache(maxsize=1)
def get_runtime() -> Runtime:
    """Get the process runtime. Built on first use."""
    return build_runtime()
