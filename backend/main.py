"""
Tabulens: browse tables whose schema is only known from their rows.
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import deps, health, sessions, tables
from config import settings
from core.probes import probe_metadata

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger("tabulens")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Tabulens starting (row store: %s)", settings.DATABASE_URL)
    # Only an explicit table list is warmed; discovering every table can be slow
    if settings.browse_table_list:
        probes = await probe_metadata(
            deps.get_cache(),
            settings.browse_table_list,
            attempts=settings.PROBE_ATTEMPTS,
            timeout_seconds=settings.PROBE_TIMEOUT_SECONDS,
            backoff_seconds=settings.PROBE_BACKOFF_SECONDS,
        )
        for p in probes:
            if p.error:
                logger.warning("Could not warm metadata for %s: %s", p.table_name, p.error)
    yield
    deps.shutdown()
    logger.info("Tabulens stopped.")


app = FastAPI(
    title="Tabulens",
    description="Infers column shapes from sample rows and serves an editable, virtualized grid.",
    version="1.0.0",
    lifespan=lifespan,
)

origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router,   prefix="/api")
app.include_router(tables.router,   prefix="/api")
app.include_router(sessions.router, prefix="/api")


if __name__ == "__main__":
    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT)
