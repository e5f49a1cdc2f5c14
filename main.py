import asyncio
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from config import Settings, get_settings
from controllers.controller_users import router as users_router
from db.mongo import connect_to_mongo, get_users_collection
from exceptions.handlers import register_error_handlers
from repositories.repository_users import MongoUserRepository, UserRepository

from loguru import logger


def _fail_fast(loop: asyncio.AbstractEventLoop, context: dict) -> None:
    # errors from tasks nobody awaits leave the process in an unknown state.
    # asyncio may call this from Task.__del__, where raising is ignored, so exit directly
    logger.opt(exception=context.get("exception")).critical(
        f"Unhandled asynchronous failure: {context.get('message')}"
    )
    logger.complete()
    os._exit(1)


def _mongo_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        asyncio.get_running_loop().set_exception_handler(_fail_fast)
        try:
            client = await connect_to_mongo(settings.MONGO_URI)
        except Exception as e:
            logger.error(f"MongoDB connection error: {e}")
            raise
        repository = MongoUserRepository(get_users_collection(client, settings.MONGO_DB_NAME))
        await repository.ensure_indexes()
        app.state.user_repository = repository
        logger.info(f"API endpoints available at http://{settings.HOST}:{settings.PORT}/api/users")
        try:
            yield
        finally:
            client.close()
            logger.info("MongoDB connection closed")

    return lifespan


def create_app(repository: UserRepository | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Build the application.

    Without a ``repository`` the app connects to MongoDB on startup and
    refuses to start if the server can't be reached.
    """
    settings = settings or get_settings()

    if repository is None:
        app = FastAPI(lifespan=_mongo_lifespan(settings))
    else:
        app = FastAPI()
        app.state.user_repository = repository

    app.include_router(users_router)
    register_error_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    return app


if __name__ == "__main__":
    settings = get_settings()
    logger.add(settings.LOG_FILE, retention=settings.LOG_RETENTION, level=settings.LOG_LEVEL)
    uvicorn.run(create_app(settings=settings), host=settings.HOST, port=settings.PORT)
