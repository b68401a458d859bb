from typing import List, cast

from django.db.models import QuerySet
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import BasePermission, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .models import Role, User
from .permissions import IsAdmin, is_admin
from .serializers import RoleSerializer, UserSerializer
from common.audit import AuditLoggingMixin
from common.typing import RoleAwareUser


@extend_schema(
    tags=['Пользователи и роли'],
    description='Управление ролями пользователей. Только для админа.'
)
class RoleViewSet(AuditLoggingMixin, viewsets.ModelViewSet):
    """
    ViewSet для управления ролями пользователей.

    - GET/POST /api/roles/
    - GET/PUT/PATCH/DELETE /api/roles/{id}/

    Доступ: только администраторы.
    """
    queryset = Role.objects.all().order_by('id')
    serializer_class = RoleSerializer
    permission_classes = [IsAdmin]


@extend_schema(
    tags=['Пользователи и роли'],
    description='Учётные записи. Обычный пользователь видит только себя, админ видит всех и может фильтровать по роли.',
    parameters=[OpenApiParameter('role', str, description='admin | owner | nurse')],
)
class UserViewSet(AuditLoggingMixin, viewsets.ModelViewSet):
    """
    ViewSet для управления пользователями.

    - GET /api/users/?role=nurse - список (админ видит всех, остальные - только себя)
    - GET /api/users/me/ - текущий пользователь
    - POST/PUT/PATCH/DELETE - только администратор (создание владельцев и медсестёр)
    """
    queryset = User.objects.select_related('role').all().order_by('id')
    serializer_class = UserSerializer

    def get_permissions(self) -> List[BasePermission]:
        if self.action in ['create', 'update', 'partial_update', 'destroy']:
            return [IsAdmin()]
        return [IsAuthenticated()]

    def get_queryset(self) -> QuerySet[User]:
        user = cast(RoleAwareUser, self.request.user)
        if not is_admin(user):
            return self.queryset.filter(id=user.id)
        role = self.request.query_params.get('role')
        if role:
            return self.queryset.filter(role__name=role)
        return self.queryset

    @extend_schema(
        summary='Получить текущего пользователя',
        description='Возвращает профиль аутентифицированного пользователя',
        tags=['Пользователи и роли']
    )
    @action(detail=False, methods=['get'], permission_classes=[IsAuthenticated])
    def me(self, request: Request) -> Response:
        """Получить текущего пользователя"""
        serializer = self.get_serializer(request.user)
        return Response(serializer.data)
