import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.deps import build_services
from app.api.v1.api import api_router
from app.core.config import settings
from app.core.logging import setup_logging
from app.db.local_cache import LocalCache
from app.db.mongo import connect_to_mongo, disconnect_from_mongo, mongodb
from app.repositories.directory import DirectoryClient

logger = logging.getLogger(__name__)

async def startup():
    setup_logging(settings.LOG_LEVEL)
    available = await connect_to_mongo()
    directory = DirectoryClient(
        mongodb.db,
        available=available,
        change_streams=settings.DIRECTORY_CHANGE_STREAMS,
        poll_interval=settings.DIRECTORY_POLL_INTERVAL,
    )
    services = build_services(directory, LocalCache(settings.LOCAL_CACHE_PATH))
    app.state.services = services

    member = await services.session.restore_session()
    if member is not None:
        logger.info("Restored session for %s", member.email)
    services.recipes.start()


async def shutdown():
    services = getattr(app.state, "services", None)
    if services is not None:
        services.recipes.stop()
        services.admin.stop()
    await disconnect_from_mongo()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await startup()
    yield
    await shutdown()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/")
async def root():
    return {"message": "Welcome to the Warakado Members API"}

@app.get("/health")
async def health():
    services = getattr(app.state, "services", None)
    return {
        "status": "ok",
        "directory": bool(services and services.directory.available),
    }

app.include_router(api_router, prefix=settings.API_V1_STR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)
