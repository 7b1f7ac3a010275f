"""
Update the local card dataset.

Run this job to download the latest card database, card images and ban
lists from the dataset release and publish them to the data directory.

Usage:
    python -m ygolookup.jobs.update_cards [--data-dir cfg]
"""

import argparse
import asyncio
import logging
from pathlib import Path

from ygolookup.config import DatasetPaths, ProxyConfig, settings
from ygolookup.models.dataset import RunStatistics
from ygolookup.models.failure import UpdateError
from ygolookup.services.publisher import DatasetPublisher

logger = logging.getLogger(__name__)


async def run_update(data_dir: Path | None = None) -> RunStatistics:
    """Publish the latest dataset release."""
    paths = DatasetPaths(data_dir or settings.data_dir)
    publisher = DatasetPublisher(
        paths,
        proxy=ProxyConfig.from_environ(),
        progress=lambda message: logger.info("progress: %s", message),
    )

    try:
        stats = await publisher.publish()
    except UpdateError as e:
        logger.error("Dataset update failed during %s: %s", e.phase, e.message)
        raise

    for env, counts in stats.ban_lists.items():
        logger.info(
            "%s ban list: %d forbidden, %d limited, %d semi-limited",
            env.upper(),
            counts.forbidden,
            counts.limited,
            counts.semi_limited,
        )
    return stats


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Update the local card dataset")
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help=f"Dataset directory (default: {settings.data_dir})",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    stats = asyncio.run(run_update(args.data_dir))
    print(stats.summary())


if __name__ == "__main__":
    main()
