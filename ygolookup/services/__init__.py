"""
ygolookup services.

Dataset update pipeline and local card lookups.
"""

from ygolookup.services.card_database import (
    CardDatabase,
    count_ban_list,
    count_card_records,
    load_ban_list,
    load_card_database,
    random_card_id,
)
from ygolookup.services.extractor import build_tar_command, extract_archive
from ygolookup.services.fetcher import FetchResult, fetch_file, fetch_optional, release_url
from ygolookup.services.integrity import compute_sha256, parse_checksum_file, verify_artifact
from ygolookup.services.publisher import DatasetPublisher, count_unique_images
from ygolookup.services.update_guard import UpdateGuard

__all__ = [
    # Card database
    "CardDatabase",
    "count_ban_list",
    "count_card_records",
    "load_ban_list",
    "load_card_database",
    "random_card_id",
    # Update pipeline
    "DatasetPublisher",
    "FetchResult",
    "UpdateGuard",
    "build_tar_command",
    "compute_sha256",
    "count_unique_images",
    "extract_archive",
    "fetch_file",
    "fetch_optional",
    "parse_checksum_file",
    "release_url",
    "verify_artifact",
]
