# piercerhub/core/permissions.py
from typing import Mapping

PERMISSION_KEYS = ("pos", "clients", "inventory", "reports", "settings", "appointments")

# Владелец аккаунта видит все разделы
OWNER_PERMISSIONS = {key: True for key in PERMISSION_KEYS}

# Профиль нового сотрудника, если права не заданы явно
DEFAULT_MEMBER_PERMISSIONS = {
    "pos": True,
    "clients": True,
    "inventory": False,
    "reports": False,
    "settings": False,
    "appointments": True,
}


def normalize_permissions(raw: Mapping | None) -> dict[str, bool]:
    """
    Приводит набор прав к ровно шести ключам.
    Отсутствующий ключ берется из профиля по умолчанию, не-bool значение считается запретом.
    """
    raw = raw or {}
    normalized = {}
    for key in PERMISSION_KEYS:
        value = raw.get(key, DEFAULT_MEMBER_PERMISSIONS[key])
        normalized[key] = value is True
    return normalized


def has_permission(permissions: Mapping, key: str) -> bool:
    """Строгая проверка: только значение True дает доступ."""
    return permissions.get(key) is True
