"""
Card database service.

Loads the published card database and ban lists from the live dataset.
The card database is held by an explicitly owned `CardDatabase` object that
loads lazily and must be invalidated after a publish run replaces the file.
"""

import json
import logging
import random
from pathlib import Path
from typing import Any

from ygolookup.models.card import CardRecord, card_from_json
from ygolookup.models.dataset import BanList, BanListCounts

logger = logging.getLogger(__name__)

IMAGE_SUFFIX = ".jpg"


def load_card_database(path: Path) -> dict[str, CardRecord]:
    """
    Load card database from file.

    Args:
        path: Path to the card database JSON (object keyed by card ID)

    Returns:
        Dict mapping card ID strings to normalized records.

    Raises:
        FileNotFoundError: If database file doesn't exist
        ValueError: If the file is not valid JSON or not keyed by card ID
    """
    if not path.exists():
        raise FileNotFoundError(
            f"Card database not found at {path}. "
            "Run `python -m ygolookup.jobs.update_cards` first."
        )

    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Card database at {path} is corrupted: {e}") from e

    if not isinstance(raw, dict):
        raise ValueError(f"Card database at {path} is corrupted: expected an object keyed by ID")

    db: dict[str, CardRecord] = {}
    for card_id, entry in raw.items():
        card_id = str(card_id)
        if not isinstance(entry, dict) or not (card_id.isascii() and card_id.isdigit()):
            logger.warning("Skipping malformed card entry %r", card_id)
            continue
        db[card_id] = card_from_json(card_id, entry)

    return db


def count_card_records(path: Path) -> int | None:
    """Number of top-level records in a card database file, None if unreadable."""
    try:
        with open(path, encoding="utf-8") as f:
            raw: Any = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Could not read card database %s: %s", path, e)
        return None

    if isinstance(raw, dict | list):
        return len(raw)
    return None


class CardDatabase:
    """
    Lazily loaded card database.

    One instance per live dataset. Call `invalidate()` after the file on disk
    has been replaced; the next lookup reloads it.
    """

    def __init__(self, path: Path):
        self._path = path
        self._records: dict[str, CardRecord] | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def loaded(self) -> bool:
        return self._records is not None

    def _ensure_loaded(self) -> dict[str, CardRecord]:
        if self._records is None:
            try:
                self._records = load_card_database(self._path)
            except FileNotFoundError:
                logger.warning("Card database missing at %s, treating as empty", self._path)
                self._records = {}
            else:
                logger.info("Loaded %d cards from %s", len(self._records), self._path)
        return self._records

    def get(self, card_id: str | int) -> CardRecord | None:
        return self._ensure_loaded().get(str(card_id))

    def name_for(self, card_id: str | int) -> str | None:
        record = self.get(card_id)
        return record.name if record and record.name else None

    def __len__(self) -> int:
        return len(self._ensure_loaded())

    def __contains__(self, card_id: object) -> bool:
        return str(card_id) in self._ensure_loaded()

    def invalidate(self) -> None:
        """Drop the cached records."""
        self._records = None


def load_ban_list(limit_dir: Path, environment: str) -> BanList | None:
    """
    Load one rule environment's ban list.

    Returns:
        BanList, or None if the environment has no file

    Raises:
        ValueError: If the file exists but is not valid JSON
    """
    path = limit_dir / f"{environment}.json"
    if not path.exists():
        return None

    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Ban list {path} is corrupted: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"Ban list {path} is corrupted: expected an object")

    def ids(key: str) -> tuple[int, ...]:
        return tuple(int(card_id) for card_id in raw.get(key) or [])

    return BanList(
        environment=environment,
        forbidden=ids("forbidden"),
        limited=ids("limited"),
        semi_limited=ids("semi-limited"),
    )


def count_ban_list(limit_dir: Path, environment: str) -> BanListCounts:
    """Tier counts for an environment, all zero if the list is absent or unreadable."""
    try:
        ban_list = load_ban_list(limit_dir, environment)
    except (ValueError, TypeError) as e:
        logger.error("Could not read %s ban list: %s", environment, e)
        return BanListCounts()
    return ban_list.counts() if ban_list else BanListCounts()


def random_card_id(image_dir: Path, rng: random.Random | None = None) -> str | None:
    """
    Pick a random card that has an image.

    Returns:
        Card ID (image file stem), or None if there are no images
    """
    if not image_dir.is_dir():
        return None

    candidates = sorted(
        p.stem for p in image_dir.iterdir() if p.is_file() and p.suffix.lower() == IMAGE_SUFFIX
    )
    if not candidates:
        return None
    return (rng or random).choice(candidates)


def image_path(image_dir: Path, card_id: str) -> Path | None:
    path = image_dir / f"{card_id}{IMAGE_SUFFIX}"
    return path if path.is_file() else None
