"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from squad_builder.config import get_settings
from squad_builder.db.session import SessionLocal
from squad_builder.routers import structure_proposals, suggestion_approvals
from squad_builder.services.prompt_executions import EXECUTION_LOG_COLUMNS

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


def _warm_backend_state() -> None:
    """Prime the DB connection and the execution log column cache at process start."""

    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
            EXECUTION_LOG_COLUMNS.get(db)
    except Exception:
        logger.exception("Backend warm-up failed; continuing without startup pre-warm.")


@asynccontextmanager
async def lifespan(_: FastAPI):
    _warm_backend_state()
    yield


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(structure_proposals.router, tags=["structure-proposals"])
app.include_router(suggestion_approvals.router, tags=["suggestion-approvals"])


@app.get("/health")
def health() -> dict[str, str]:
    """Simple health check endpoint."""

    return {"status": "ok"}
