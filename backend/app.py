import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from backend import mcp_server
from backend.routes import router
from campus_sim.config import load_config
from campus_sim.content import ContentProvider
from campus_sim.persistence import PersistenceManager, SaveSlot
from campus_sim.turns import TurnEngine

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

logger = logging.getLogger(__name__)


def create_app(data_dir: Path | None = None, content: ContentProvider | None = None) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    resolved.mkdir(parents=True, exist_ok=True)

    engine = TurnEngine(
        content=content,
        persistence=PersistenceManager(SaveSlot(resolved)),
        config=load_config(resolved),
    )
    if engine.restore():
        logger.info("Resumed saved game from %s", resolved)
    mcp_server.set_engine(engine)

    app = FastAPI(title="Campus Sim")
    app.state.engine = engine
    app.state.data_dir = resolved
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
