import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import Settings, get_settings
from .lib.backends import Backends, build_backends
from .lib.feed import FeedAssembler
from .lib.interests import InterestVectorUpdater
from .routers import candidates, feed, health, trending
from .security import RequireApiKey

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


def install_backends(app: FastAPI, backends: Backends, settings: Settings | None = None) -> None:
    """Attach collaborators and the services built on them to ``app.state``.

    Tests call this directly with in-memory backends instead of running the
    lifespan.
    """
    settings = settings or get_settings()
    app.state.backends = backends
    app.state.assembler = FeedAssembler(backends, profile_ttl=settings.profile_ttl)
    app.state.updater = InterestVectorUpdater(
        backends.profiles, backends.posts, backends.cache, analyzer=backends.analyzer
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("Starting feedrank (backend=%s)", settings.backend)
    backends = build_backends(settings)
    install_backends(app, backends, settings)
    yield
    logger.info("Shutting down...")
    await backends.aclose()


app = FastAPI(
    title="Feedrank API",
    description="Personalised feed ranking, trending posts and interest tracking",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(feed.router)
app.include_router(trending.router)
app.include_router(candidates.router)


@app.get("/")
async def root(_: RequireApiKey):
    return {"message": "Feedrank API"}
