from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class BanListCounts:
    """Number of restricted cards per tier in one rule environment."""

    forbidden: int = 0
    limited: int = 0
    semi_limited: int = 0

    def total(self) -> int:
        return self.forbidden + self.limited + self.semi_limited


@dataclass(frozen=True, slots=True)
class BanList:
    """
    One rule environment's restricted-card list.

    Attributes:
        environment: Rule environment key (ocg, tcg, md)
        forbidden: Card IDs that may not be played
        limited: Card IDs limited to one copy
        semi_limited: Card IDs limited to two copies
    """

    environment: str
    forbidden: tuple[int, ...] = ()
    limited: tuple[int, ...] = ()
    semi_limited: tuple[int, ...] = ()

    def counts(self) -> BanListCounts:
        return BanListCounts(
            forbidden=len(self.forbidden),
            limited=len(self.limited),
            semi_limited=len(self.semi_limited),
        )


@dataclass
class RunStatistics:
    """
    Outcome of one publish run.

    Attributes:
        processed_files: Manifest files fetched and placed
        image_count: Unique card images in the live image directory
        card_count: Records in the card database (None if unreadable)
        ban_lists: Tier counts per rule environment
        download_seconds: Download duration per manifest file
        extract_seconds: Extraction duration per archive
    """

    processed_files: int = 0
    image_count: int = 0
    card_count: int | None = None
    ban_lists: dict[str, BanListCounts] = field(default_factory=dict)
    download_seconds: dict[str, float] = field(default_factory=dict)
    extract_seconds: dict[str, float] = field(default_factory=dict)

    def total_seconds(self) -> float:
        return sum(self.download_seconds.values()) + sum(self.extract_seconds.values())

    def summary(self) -> str:
        """Human-readable one-line result."""
        message = f"Update complete: processed {self.processed_files} files"
        if self.image_count:
            message += f", {self.image_count} card images"
        if self.card_count is not None:
            message += f", {self.card_count} card records"
        return message
