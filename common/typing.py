from __future__ import annotations

"""
Общие вспомогательные типы для структурной (утинной) типизации.

Бэкенд опирается на неявно передаваемые объекты Django/DRF. Модуль
описывает небольшие ``Protocol``-классы, чтобы зафиксировать ожидания от
поведения (роль, часовой пояс профиля) без привязки к конкретным моделям
или сериализаторам.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Protocol, Sequence, TypeVar, runtime_checkable

TModel = TypeVar("TModel")


@runtime_checkable
class RoleLike(Protocol):
    """Сущность, у которой есть атрибут ``name`` (роль, группа и т.п.)."""

    name: str


@runtime_checkable
class RoleAwareUser(Protocol):
    """
    Минимальный интерфейс пользователя, участвующего в проверках прав
    и в расчётах локального времени.
    """

    id: Any
    is_authenticated: bool
    is_staff: bool
    role: RoleLike | None
    timezone: str


@runtime_checkable
class RequestWithUser(Protocol):
    """DRF-запрос или его аналог с атрибутом ``user``."""

    user: RoleAwareUser | None


@runtime_checkable
class ModelLike(Protocol):
    """Экземпляр модели Django, описанный утиным способом."""

    pk: Any
    _meta: Any

    def delete(self) -> Any: ...


@runtime_checkable
class SerializerProtocol(Protocol[TModel]):
    """
    Часть API ``ModelSerializer`` из DRF, используемая журналом аудита.
    """

    instance: TModel
    data: Mapping[str, Any]
    context: Mapping[str, Any] | None

    def save(self, **kwargs: Any) -> TModel: ...


def role_name_of(user: Any) -> str | None:
    role = getattr(user, "role", None)
    return getattr(role, "name", None) if role else None


@dataclass(slots=True)
class RoleCheckContext:
    """
    Вспомогательная структура для проверок ролей.

    Персонал (``is_staff``) приравнивается к администратору и проходит
    любые ролевые проверки, если ``staff_passes`` не отключён.
    """

    user: RoleAwareUser
    target_roles: Sequence[str]
    staff_passes: bool = True

    def matches(self) -> bool:
        if self.staff_passes and self.user.is_staff:
            return True
        return role_name_of(self.user) in self.target_roles
