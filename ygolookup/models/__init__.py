"""
ygolookup models.

Card records, dataset manifest, run statistics and failure classification.
"""

from ygolookup.models.card import (
    Attribute,
    BanStatus,
    CardRecord,
    CardType,
    LinkMarker,
    card_from_json,
)
from ygolookup.models.dataset import BanList, BanListCounts, RunStatistics
from ygolookup.models.failure import (
    EmptyArtifact,
    ExtractionProcessFailure,
    ExtractionStall,
    FailureKind,
    IntegrityFailure,
    KnownError,
    MissingArtifact,
    NetworkFailure,
    StorageFailure,
    UpdateError,
    UpdateRejected,
)
from ygolookup.models.manifest import DEFAULT_MANIFEST, ManifestEntry, TargetCategory

__all__ = [
    # Cards
    "Attribute",
    "BanStatus",
    "CardRecord",
    "CardType",
    "LinkMarker",
    "card_from_json",
    # Dataset
    "BanList",
    "BanListCounts",
    "RunStatistics",
    "DEFAULT_MANIFEST",
    "ManifestEntry",
    "TargetCategory",
    # Failures
    "EmptyArtifact",
    "ExtractionProcessFailure",
    "ExtractionStall",
    "FailureKind",
    "IntegrityFailure",
    "KnownError",
    "MissingArtifact",
    "NetworkFailure",
    "StorageFailure",
    "UpdateError",
    "UpdateRejected",
]
