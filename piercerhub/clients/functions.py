# piercerhub/clients/functions.py

import logging

import httpx

from piercerhub.core.config import settings

logger = logging.getLogger(__name__)

class FunctionsClient:
    """
    Асинхронный клиент удаленных функций (отправка email, приглашения в команду).
    Аутентификация - сервисный ключ в заголовке Authorization.
    """
    def __init__(self, base_url: str, api_key: str):
        self.base_url = base_url.rstrip("/")
        timeouts = httpx.Timeout(20.0, read=60.0)
        self.async_client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeouts,
        )

    async def invoke(self, function_name: str, payload: dict) -> dict:
        """
        Вызывает функцию и возвращает ее JSON-ответ (dict).
        В случае сетевой или HTTP-ошибки (4xx/5xx) выбрасывает исключение.
        """
        try:
            response = await self.async_client.post(f"/{function_name}", json=payload)
            response.raise_for_status()
            try:
                return response.json()
            except ValueError as e:
                # Ответ 2xx без JSON
                raise httpx.DecodingError(
                    f"Function '{function_name}' returned a non-JSON body", request=response.request
                ) from e
        except httpx.RequestError as e:
            logger.error(f"Network error while invoking function '{function_name}' at {e.request.url!r}.", exc_info=True)
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error while invoking function '{function_name}': {e.response.text}", exc_info=True)
            raise

# Создаем синглтон
functions_client = FunctionsClient(
    base_url=settings.NOTIFICATIONS_FUNCTIONS_URL,
    api_key=settings.NOTIFICATIONS_FUNCTIONS_KEY,
)
