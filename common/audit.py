from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, TypeVar

from django.apps import apps
from django.core.serializers.json import DjangoJSONEncoder
from rest_framework import serializers

from common.typing import (
    ModelLike,
    RequestWithUser,
    RoleAwareUser,
    SerializerProtocol,
)


TModel = TypeVar("TModel", bound=ModelLike)

logger = logging.getLogger(__name__)


def _dump(values: Optional[Dict[str, Any]]) -> Optional[str]:
    if not values:
        return None
    return json.dumps(values, ensure_ascii=False, cls=DjangoJSONEncoder)


def record_audit(
    *,
    user: Optional[RoleAwareUser],
    instance: ModelLike,
    action_type: str,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Пишет запись в AuditLog. Используется как ViewSet-миксином, так и
    сервисами для действий, которые не проходят через сериализатор
    (перестановка шаблонов, отметка выполнения, смена статуса обращения).
    """
    AuditLog = apps.get_model("reports", "AuditLog")  # noqa: N806
    AuditLog.objects.create(
        user=user if user is not None and getattr(user, "is_authenticated", False) else None,
        action_type=action_type,
        table_name=instance._meta.db_table,
        record_id=getattr(instance, "pk", 0) or 0,
        old_values=_dump(old_values),
        new_values=_dump(new_values),
    )
    logger.debug("audit %s %s#%s", action_type, instance._meta.db_table, getattr(instance, "pk", None))


class AuditLoggingMixin:
    """
    Переиспользуемый mixin для ViewSets для логирования операций CREATE/UPDATE/DELETE в AuditLog.
    """

    audit_serializer_class: Optional[type[serializers.Serializer[Any]]] = None
    request: RequestWithUser

    def _get_current_user(self) -> Optional[RoleAwareUser]:
        user = getattr(self.request, "user", None)
        return user if user and user.is_authenticated else None

    def _serialize_instance(self, instance: ModelLike) -> Dict[str, Any]:
        serializer_class = self.audit_serializer_class or self.get_serializer_class()
        serializer = serializer_class(
            instance,
            context={"request": getattr(self, "request", None)},
        )
        return serializer.data

    def _create_audit_log(
        self,
        *,
        instance: ModelLike,
        action_type: str,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> None:
        record_audit(
            user=self._get_current_user(),
            instance=instance,
            action_type=action_type,
            old_values=old_values,
            new_values=new_values,
        )

    def save_and_log_create(
        self,
        serializer: SerializerProtocol[TModel],
        **save_kwargs: Any,
    ) -> TModel:
        instance = serializer.save(**save_kwargs)
        self._create_audit_log(
            instance=instance,
            action_type="CREATE",
            new_values=self._serialize_instance(instance),
        )
        return instance

    def update_and_log(
        self,
        serializer: SerializerProtocol[TModel],
        **save_kwargs: Any,
    ) -> TModel:
        old_values = self._serialize_instance(serializer.instance)
        instance_after = serializer.save(**save_kwargs)
        self._create_audit_log(
            instance=instance_after,
            action_type="UPDATE",
            old_values=old_values,
            new_values=self._serialize_instance(instance_after),
        )
        return instance_after

    def delete_and_log(self, instance: ModelLike) -> None:
        old_values = self._serialize_instance(instance)
        self._create_audit_log(
            instance=instance,
            action_type="DELETE",
            old_values=old_values,
        )
        instance.delete()

    def perform_create(self, serializer: serializers.ModelSerializer) -> None:  # type: ignore[override]
        self.save_and_log_create(serializer)

    def perform_update(self, serializer: serializers.ModelSerializer) -> None:  # type: ignore[override]
        self.update_and_log(serializer)

    def perform_destroy(self, instance: Any) -> None:  # type: ignore[override]
        self.delete_and_log(instance)
