"""FastAPI API endpoints under /api.

Endpoint groups: health/settings/check-connection, game state and turn loop,
direct actions, quests, save export/import. Every handler reaches the
session's TurnEngine through request.app.state.engine.
"""

from fastapi import APIRouter

from .game import router as game_router
from .quests import router as quests_router
from .saves import router as saves_router
from .settings import router as settings_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(game_router)
router.include_router(quests_router)
router.include_router(saves_router)
