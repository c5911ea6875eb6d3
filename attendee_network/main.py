import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from attendee_network.core.config import settings
from attendee_network.core.errors import NetworkError
from attendee_network.core.scheduler import start_scheduler, shutdown_scheduler
from attendee_network.services.message_feed import MessageFeed
from attendee_network.api.matches import router as matches_router
from attendee_network.api.friends import router as friends_router
from attendee_network.api.chat import router as chat_router
from attendee_network.api.posts import router as posts_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting up FastAPI...")
    app.state.feed = MessageFeed()
    await start_scheduler()
    yield
    logger.info("Shutting down FastAPI...")
    await shutdown_scheduler()
    await app.state.feed.close()


app = FastAPI(
    title="Attendee Network API",
    docs_url="/docs" if settings.is_dev_mode else None,
    redoc_url=None,
    lifespan=lifespan,
)


@app.exception_handler(NetworkError)
async def network_error_handler(request: Request, exc: NetworkError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
    )


# Include routers
app.include_router(matches_router)
app.include_router(friends_router)
app.include_router(chat_router)
app.include_router(posts_router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
