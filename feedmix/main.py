# feedmix/main.py
from fastapi import FastAPI

from .logging_setup import setup_logging, get_logger
from .middleware import RequestContextMiddleware
from .exception_handling import register_exception_handlers
from .lifespan import lifespan

from .routers import health, feed, prefs, articles

setup_logging()  # <-- set up logging ASAP
logger = get_logger("feedmix.main")

app = FastAPI(title="Feedmix", version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)

# Include routers
app.include_router(health.router)
app.include_router(feed.router)
app.include_router(prefs.router)
app.include_router(articles.router)
