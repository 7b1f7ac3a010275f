"""
Typed card records.

The card database is a JSON object keyed by card ID string. Field casing
drifts between data vintages ("DARK" / "dark" / "暗", "Top-Left" /
"top-left"), so every enum-like value is normalized once here, when the
record is built, and display code never sees raw strings.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CardType(str, Enum):
    MONSTER = "monster"
    SPELL = "spell"
    TRAP = "trap"


class Attribute(str, Enum):
    EARTH = "EARTH"
    WATER = "WATER"
    FIRE = "FIRE"
    WIND = "WIND"
    LIGHT = "LIGHT"
    DARK = "DARK"
    DIVINE = "DIVINE"


class LinkMarker(str, Enum):
    TOP = "Top"
    BOTTOM = "Bottom"
    LEFT = "Left"
    RIGHT = "Right"
    TOP_LEFT = "Top-Left"
    TOP_RIGHT = "Top-Right"
    BOTTOM_LEFT = "Bottom-Left"
    BOTTOM_RIGHT = "Bottom-Right"


class BanStatus(str, Enum):
    UNLIMITED = "unlimited"
    FORBIDDEN = "forbidden"
    LIMITED = "limited"
    SEMI_LIMITED = "semi-limited"


_ATTRIBUTE_ALIASES: dict[str, Attribute] = {
    "地": Attribute.EARTH,
    "水": Attribute.WATER,
    "炎": Attribute.FIRE,
    "风": Attribute.WIND,
    "光": Attribute.LIGHT,
    "暗": Attribute.DARK,
    "神": Attribute.DIVINE,
}

_LINK_MARKER_ALIASES: dict[str, LinkMarker] = {
    "上": LinkMarker.TOP,
    "下": LinkMarker.BOTTOM,
    "左": LinkMarker.LEFT,
    "右": LinkMarker.RIGHT,
    "左上": LinkMarker.TOP_LEFT,
    "右上": LinkMarker.TOP_RIGHT,
    "左下": LinkMarker.BOTTOM_LEFT,
    "右下": LinkMarker.BOTTOM_RIGHT,
}

_BAN_STATUS_ALIASES: dict[str, BanStatus] = {
    "forbidden": BanStatus.FORBIDDEN,
    "banned": BanStatus.FORBIDDEN,
    "limited": BanStatus.LIMITED,
    "limit": BanStatus.LIMITED,
    "semi-limited": BanStatus.SEMI_LIMITED,
    "semi_limited": BanStatus.SEMI_LIMITED,
    "semi": BanStatus.SEMI_LIMITED,
}


def normalize_attribute(value: Any) -> Attribute | None:
    """Map any known spelling of an attribute to `Attribute`."""
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    if value in _ATTRIBUTE_ALIASES:
        return _ATTRIBUTE_ALIASES[value]
    try:
        return Attribute(value.upper())
    except ValueError:
        return None


def normalize_link_marker(value: Any) -> LinkMarker | None:
    """Map any known spelling of a link arrow to `LinkMarker`."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if value in _LINK_MARKER_ALIASES:
        return _LINK_MARKER_ALIASES[value]
    for marker in LinkMarker:
        if marker.value.lower() == value.lower().replace("_", "-"):
            return marker
    return None


def normalize_ban_status(value: Any) -> BanStatus:
    """Unknown or missing status means the card is unrestricted."""
    if not isinstance(value, str):
        return BanStatus.UNLIMITED
    return _BAN_STATUS_ALIASES.get(value.strip().lower(), BanStatus.UNLIMITED)


def _normalize_limits(raw: Any) -> dict[str, BanStatus]:
    # Older files store {"ocg": ..}; newer ones a list of single-key objects
    merged: dict[str, Any] = {}
    if isinstance(raw, Mapping):
        merged.update(raw)
    elif isinstance(raw, list):
        for item in raw:
            if isinstance(item, Mapping):
                merged.update(item)
    return {str(env).lower(): normalize_ban_status(status) for env, status in merged.items()}


def _optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True, slots=True)
class CardRecord:
    """
    One card from the card database.

    Numeric stats use -1 for "?" exactly as the source data does.
    """

    id: int
    name: str
    description: str = ""
    card_type: CardType | None = None
    frame_type: str = ""
    attribute: Attribute | None = None
    race: str | None = None
    typeline: str | None = None
    level: int | None = None
    scale: int | None = None
    atk: int | None = None
    defense: int | None = None
    link_value: int | None = None
    link_markers: tuple[LinkMarker, ...] = ()
    pendulum_description: str | None = None
    limits: dict[str, BanStatus] = field(default_factory=dict)

    @property
    def is_link(self) -> bool:
        return self.frame_type == "link"

    @property
    def is_pendulum(self) -> bool:
        return "pendulum" in self.frame_type

    def ban_status(self, environment: str) -> BanStatus:
        return self.limits.get(environment.lower(), BanStatus.UNLIMITED)


def card_from_json(card_id: str, raw: Mapping[str, Any]) -> CardRecord:
    """
    Build a `CardRecord` from one card database entry.

    Args:
        card_id: Key of the entry in the card database
        raw: The entry itself

    Returns:
        Normalized card record. The key wins over any "id" field in the entry.
    """
    card_type: CardType | None
    try:
        card_type = CardType(str(raw.get("cardType", "")).lower())
    except ValueError:
        card_type = None

    markers = tuple(
        marker
        for marker in (normalize_link_marker(m) for m in raw.get("linkMarkers") or [])
        if marker is not None
    )

    return CardRecord(
        id=int(card_id),
        name=str(raw.get("name", "")),
        description=str(raw.get("description") or ""),
        card_type=card_type,
        frame_type=str(raw.get("frameType") or "").lower(),
        attribute=normalize_attribute(raw.get("attribute")),
        race=raw.get("race") or None,
        typeline=raw.get("typeline") or None,
        level=_optional_int(raw.get("level")),
        scale=_optional_int(raw.get("scale")),
        atk=_optional_int(raw.get("atk")),
        defense=_optional_int(raw.get("def")),
        link_value=_optional_int(raw.get("linkVal")),
        link_markers=markers,
        pendulum_description=raw.get("pendulumDescription") or None,
        limits=_normalize_limits(raw.get("limit")),
    )
