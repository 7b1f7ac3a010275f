import logging
from importlib.metadata import version as pkg_version

from fastapi import FastAPI

from ygolookup.api import cards_router, health_router, update_router
from ygolookup.config import settings

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title=settings.app_name,
    version=pkg_version("ygolookup"),
)

app.include_router(cards_router)
app.include_router(health_router)
app.include_router(update_router)
