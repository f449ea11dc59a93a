from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prayer_notify.config.settings import settings
from prayer_notify.middlewares import AuthMiddleware, RequestIDMiddleware
from prayer_notify.routers import main_router
from prayer_notify.utils.errors import setup_error_handlers
from prayer_notify.utils.logging import get_logger

logger = get_logger()

# Routes that act on behalf of a signed-in subscriber
SUBSCRIBER_ROUTES = [f"{settings.API_PREFIX}/prayer-notifications/schedule-today"]


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info(
        f"{settings.NAME} {settings.VERSION} starting ({settings.ENVIRONMENT}), "
        f"queue {settings.CLOUD_TASKS_LOCATION}/{settings.CLOUD_TASKS_QUEUE}, "
        f"schedule timezone {settings.SCHEDULE_TIMEZONE}"
    )
    yield
    logger.info(f"{settings.NAME} shutting down")


def create_application() -> FastAPI:
    application = FastAPI(
        title=settings.NAME, version=settings.VERSION, lifespan=lifespan
    )

    setup_error_handlers(application)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_HOSTS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Trigger-Token"],
    )
    application.add_middleware(AuthMiddleware, protected_prefixes=SUBSCRIBER_ROUTES)
    # Added last so it wraps everything and IDs are set before auth logs
    application.add_middleware(RequestIDMiddleware)

    application.include_router(main_router, prefix=settings.API_PREFIX)

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "prayer_notify.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.ENVIRONMENT == "development",
        log_config=None,
    )
