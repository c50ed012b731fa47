# piercerhub/core/config.py

from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Настройки базы данных
    DATABASE_USER: str = "postgres"
    DATABASE_PASSWORD: str = ""
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "piercerhub"
    # Полный URL (например, sqlite для локального запуска и тестов)
    DATABASE_URL_OVERRIDE: str | None = None

    # JWT выпускает внешний провайдер аутентификации, мы только проверяем подпись
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    # Лимиты запросов. В проде указываем async+redis://...
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_ENABLED: bool = True

    # Stripe (проверка подписки студии)
    STRIPE_SECRET_KEY: str | None = None

    # Удаленные функции (email, приглашения в команду)
    NOTIFICATIONS_FUNCTIONS_URL: str
    NOTIFICATIONS_FUNCTIONS_KEY: str
    NOTIFICATIONS_FROM: str = "Studio <onboarding@resend.dev>"

    # Часовой пояс студии: месяц рождения клиента и расписание задач
    STUDIO_TIMEZONE: str = "America/Sao_Paulo"

    # Политики, которые в старом клиенте были неявными
    EFFECTIVE_USER_FALLBACK_TO_SELF: bool = True
    LOYALTY_POINTS_FANOUT: bool = True

    # Хранение уведомлений в приложении
    NOTIFICATIONS_READ_RETENTION_DAYS: int = 30
    NOTIFICATIONS_MAX_AGE_DAYS: int = 90

    # Пробный период нового аккаунта
    TRIAL_DAYS: int = 14
    SUBSCRIPTION_CACHE_TTL_SECONDS: int = 300
    TEAM_CONTEXT_CACHE_TTL_SECONDS: int = 300

    CORS_ORIGINS_STR: str = Field(default="", alias="CORS_ORIGINS")

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS_STR.split(',') if origin.strip()]

    @property
    def REDIS_URL(self) -> str:
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"postgresql+psycopg2://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"

    model_config = SettingsConfigDict(env_file=".env", populate_by_name=True)

settings = Settings()
