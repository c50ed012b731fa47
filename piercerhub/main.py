# piercerhub/main.py

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Конфигурация и ядро
from piercerhub.core.config import settings as config
from piercerhub.core.exceptions import ServiceError
from piercerhub.core.limiter import limiter
from piercerhub.core.logging_config import setup_logging
from piercerhub.core.redis import redis_client

# Роутеры FastAPI
from piercerhub.routers import health, loyalty, me, notification, team

# Фоновые задачи
from piercerhub.services.birthday_clients import notify_birthday_clients_task
from piercerhub.services.notification_cleanup import cleanup_old_notifications_task

# --- Инициализация ---
logger = logging.getLogger(__name__)
scheduler = AsyncIOScheduler()

STARTUP_LOCK_KEY = "app_startup_lock"

# --- Обработчики ошибок ---
async def service_error_handler(request: Request, exc: ServiceError):
    """Ошибки бизнес-логики отдаются клиенту с готовым сообщением."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Глобальный обработчик для всех необработанных исключений.
    """
    logger.critical(f"Unhandled exception for request: {request.method} {request.url}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )

# --- Lifespan Manager (запуск и остановка приложения) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application lifespan startup...")

    # Блокировка через Redis: планировщик запускает только один воркер
    try:
        is_main_worker = await redis_client.set(STARTUP_LOCK_KEY, "1", ex=60, nx=True)
    except RedisError:
        logger.warning("Redis unavailable at startup. Scheduler is not started.", exc_info=True)
        is_main_worker = False

    if is_main_worker:
        logger.info("This is the main worker. Starting scheduler...")
        if not scheduler.running:
            scheduler.add_job(notify_birthday_clients_task, 'cron', hour=8, minute=0, timezone=config.STUDIO_TIMEZONE)
            scheduler.add_job(cleanup_old_notifications_task, 'cron', hour=5, minute=30, timezone=config.STUDIO_TIMEZONE)
            scheduler.start()
            logger.info("Scheduler started with background jobs.")
    else:
        logger.info("This is a secondary worker. Skipping initial setup.")

    yield

    # Код при остановке
    if is_main_worker:
        logger.info("Main worker shutting down...")
        if scheduler.running:
            scheduler.shutdown()
            logger.info("Scheduler shut down.")
        try:
            await redis_client.delete(STARTUP_LOCK_KEY)
        except RedisError:
            logger.warning("Failed to release startup lock.", exc_info=True)
    else:
        logger.info("Secondary worker shutting down.")

# --- Создание FastAPI приложения ---
app = FastAPI(
    title="PiercerHub API",
    description="Backend for piercing studios: loyalty, team permissions and subscriptions",
    version="0.1.0",
    lifespan=lifespan
)

app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Регистрация обработчиков исключений ---
app.add_exception_handler(ServiceError, service_error_handler)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Подключение роутеров FastAPI ---
api_router = APIRouter(prefix="/api/v1")

api_router.include_router(me.router, tags=["Me"])
api_router.include_router(loyalty.router, tags=["Loyalty"])
api_router.include_router(loyalty.pos_router, tags=["Loyalty POS"])
api_router.include_router(team.router, tags=["Team"])
api_router.include_router(notification.router, tags=["Notifications"])
api_router.include_router(health.router, tags=["Health"])

app.include_router(api_router)
