from dataclasses import dataclass
from enum import Enum


class TargetCategory(str, Enum):
    """Where a manifest file ends up in the live dataset."""

    CARD_DATABASE = "card_database"
    CARD_ARCHIVE = "card_archive"
    BAN_LIST_ARCHIVE = "ban_list_archive"


@dataclass(frozen=True, slots=True)
class ManifestEntry:
    """
    One remote file a publish run must fetch.

    Attributes:
        name: File name as published in the release
        category: Target category in the live dataset
        checksum: Whether a `<name>.sha256` companion may be published
    """

    name: str
    category: TargetCategory
    checksum: bool = True

    @property
    def is_archive(self) -> bool:
        return self.category != TargetCategory.CARD_DATABASE

    @property
    def checksum_name(self) -> str:
        return f"{self.name}.sha256"


DEFAULT_MANIFEST: tuple[ManifestEntry, ...] = (
    ManifestEntry("cards.json", TargetCategory.CARD_DATABASE, checksum=False),
    ManifestEntry("cards_0.tar.xz", TargetCategory.CARD_ARCHIVE),
    ManifestEntry("cards_1.tar.xz", TargetCategory.CARD_ARCHIVE),
    ManifestEntry("limit.tar.xz", TargetCategory.BAN_LIST_ARCHIVE),
)
