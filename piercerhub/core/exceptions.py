# piercerhub/core/exceptions.py

from fastapi import status

from piercerhub.core import locales


class ServiceError(Exception):
    """
    Базовая ошибка бизнес-логики.
    Несет готовое сообщение для пользователя и HTTP-статус для API.
    """
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Erro ao processar a solicitação"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(ServiceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Registro não encontrado"


class DuplicateEnrollmentError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_message = locales.ERROR_DUPLICATE_ENROLLMENT


class DuplicateTeamMemberError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    default_message = locales.ERROR_DUPLICATE_TEAM_MEMBER


class PermissionDeniedError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = locales.ERROR_PERMISSION_DENIED


class SubscriptionRequiredError(ServiceError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_message = locales.ERROR_SUBSCRIPTION_REQUIRED


class RemoteServiceError(ServiceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = locales.ERROR_REMOTE_SERVICE
