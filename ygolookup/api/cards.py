"""
Card lookup endpoints.

Search by name (resolved to IDs through the card search site), fetch by ID,
pick a random card, and list the current ban lists.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from ygolookup.api.deps import Runtime, get_runtime
from ygolookup.config import BAN_LIST_ENVIRONMENTS
from ygolookup.models.card import CardRecord
from ygolookup.services.card_database import image_path, load_ban_list, random_card_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cards"])

# Long ban lists are truncated in the response
MAX_LIST_ENTRIES = 1000


class CardResponse(BaseModel):
    """Response model for a single card."""

    id: int
    name: str
    description: str = ""
    card_type: str | None = None
    frame_type: str = ""
    attribute: str | None = None
    race: str | None = None
    typeline: str | None = None
    level: int | None = None
    scale: int | None = None
    atk: int | None = None
    defense: int | None = None
    link_value: int | None = None
    link_markers: list[str] = Field(default_factory=list)
    pendulum_description: str | None = None
    limits: dict[str, str] = Field(default_factory=dict)
    image: str | None = None


class CardSearchResponse(BaseModel):
    """Response model for a name search."""

    query: str
    cards: list[CardResponse]
    not_found: list[str] = Field(default_factory=list)
    count: int


class BanListEntry(BaseModel):
    id: int
    name: str | None = None


class BanListResponse(BaseModel):
    environment: str
    available: bool
    forbidden: list[BanListEntry] = Field(default_factory=list)
    limited: list[BanListEntry] = Field(default_factory=list)
    semi_limited: list[BanListEntry] = Field(default_factory=list)


class LimitsResponse(BaseModel):
    environments: list[BanListResponse]


def _card_response(runtime: Runtime, record: CardRecord) -> CardResponse:
    image = image_path(runtime.paths.images, str(record.id))
    return CardResponse(
        id=record.id,
        name=record.name,
        description=record.description,
        card_type=record.card_type.value if record.card_type else None,
        frame_type=record.frame_type,
        attribute=record.attribute.value if record.attribute else None,
        race=record.race,
        typeline=record.typeline,
        level=record.level,
        scale=record.scale,
        atk=record.atk,
        defense=record.defense,
        link_value=record.link_value,
        link_markers=[m.value for m in record.link_markers],
        pendulum_description=record.pendulum_description,
        limits={env: ban.value for env, ban in record.limits.items()},
        image=str(image) if image else None,
    )


@router.get("/cards/search", response_model=CardSearchResponse)
async def search_cards(
    runtime: Annotated[Runtime, Depends(get_runtime)],
    q: Annotated[str, Query(min_length=1, description="Card names, whitespace separated")],
    all_matches: Annotated[bool, Query(alias="all")] = False,
) -> CardSearchResponse:
    """
    Look up cards by name.

    Each whitespace-separated term is searched separately. With `all=true`
    every match of every term is returned, otherwise the best match only.
    Returns 404 if no term matched a card in the local dataset.
    """
    terms = [term for term in q.split() if term]
    if not terms:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Provide at least one card name"
        )

    resolver = runtime.resolver()
    cards: list[CardResponse] = []
    not_found: list[str] = []
    seen: set[int] = set()

    for term in terms:
        ids = await resolver.resolve_all(term)
        if not all_matches:
            ids = ids[:1]

        matched = False
        for card_id in ids:
            record = runtime.card_database.get(card_id)
            if record is None:
                logger.warning("Card %s for %r is not in the local dataset", card_id, term)
                continue
            matched = True
            if record.id not in seen:
                seen.add(record.id)
                cards.append(_card_response(runtime, record))

        if not matched:
            not_found.append(term)

    if not cards:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No cards found for: {', '.join(not_found)}",
        )

    return CardSearchResponse(query=q, cards=cards, not_found=not_found, count=len(cards))


@router.get("/cards/random", response_model=CardResponse)
async def random_card(
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> CardResponse:
    """
    Pick a random card that has an image.

    Returns 503 if no dataset has been published yet.
    """
    card_id = random_card_id(runtime.paths.images)
    if card_id is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No card images available. Run an update first.",
        )

    record = runtime.card_database.get(card_id)
    if record is None:
        # Image without a database entry
        image = runtime.paths.images / f"{card_id}.jpg"
        return CardResponse(id=int(card_id), name="", image=str(image))
    return _card_response(runtime, record)


@router.get("/cards/{card_id}", response_model=CardResponse)
async def get_card(
    card_id: int,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> CardResponse:
    """
    Get a card by ID.

    Returns 404 if the card is not in the local dataset.
    """
    record = runtime.card_database.get(card_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card {card_id} not found",
        )
    return _card_response(runtime, record)


@router.get("/limits", response_model=LimitsResponse)
async def list_limits(
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> LimitsResponse:
    """Current ban list of every rule environment, with card names."""

    def entries(ids: tuple[int, ...]) -> list[BanListEntry]:
        return [
            BanListEntry(id=card_id, name=runtime.card_database.name_for(card_id))
            for card_id in ids[:MAX_LIST_ENTRIES]
        ]

    environments: list[BanListResponse] = []
    for env in BAN_LIST_ENVIRONMENTS:
        try:
            ban_list = load_ban_list(runtime.paths.limits, env)
        except ValueError as e:
            logger.error("Could not read %s ban list: %s", env, e)
            ban_list = None

        if ban_list is None:
            environments.append(BanListResponse(environment=env, available=False))
            continue

        environments.append(
            BanListResponse(
                environment=env,
                available=True,
                forbidden=entries(ban_list.forbidden),
                limited=entries(ban_list.limited),
                semi_limited=entries(ban_list.semi_limited),
            )
        )

    return LimitsResponse(environments=environments)
