# feedmix/lifespan.py
from contextlib import asynccontextmanager
from fastapi import FastAPI

from .logging_setup import get_logger
from .store import init_db

logger = get_logger("feedmix.lifespan")

@asynccontextmanager
async def lifespan(app: FastAPI):
    # ---- Startup ----
    logger.info("APP STARTUP")
    init_db()

    yield

    # ---- Shutdown ----
    logger.info("APP SHUTDOWN")
