from ygolookup.api.cards import router as cards_router
from ygolookup.api.health import router as health_router
from ygolookup.api.update import router as update_router

__all__ = [
    "cards_router",
    "health_router",
    "update_router",
]
