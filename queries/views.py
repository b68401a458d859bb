from typing import List, cast

from django.db.models import QuerySet
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import BasePermission, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from common.audit import AuditLoggingMixin
from common.exceptions import PermissionDenied
from common.typing import RoleAwareUser
from tasks.query_params import parse_int
from users.permissions import IsAdmin, IsOwnerOrNurse, is_admin
from .models import Query
from .serializers import QuerySerializer, QueryStatusSerializer
from .services import create_query, update_status


@extend_schema(
    tags=['Обращения'],
    description='Обращения в поддержку. Создают владельцы и медсёстры, разбирает админ.'
)
class QueryViewSet(AuditLoggingMixin,
                   mixins.RetrieveModelMixin,
                   mixins.CreateModelMixin,
                   mixins.DestroyModelMixin,
                   viewsets.GenericViewSet):
    """
    ViewSet для обращений в поддержку.

    - POST /api/queries/ {title, message, patientId?} - создать (владелец или медсестра)
    - GET /api/queries/mine/?status= - свои обращения
    - GET /api/queries/admin/?status=&category=&userId= - все обращения (админ)
    - PATCH /api/queries/{id}/status/ {status} - сменить статус (админ)
    - DELETE /api/queries/{id}/ - удалить (только автор)
    """
    queryset = Query.objects.select_related('created_by', 'patient').all()
    serializer_class = QuerySerializer

    def get_permissions(self) -> List[BasePermission]:
        if self.action == 'create':
            return [IsOwnerOrNurse()]
        if self.action in ['admin_list', 'set_status']:
            return [IsAdmin()]
        return [IsAuthenticated()]

    def get_queryset(self) -> QuerySet[Query]:
        user = cast(RoleAwareUser, self.request.user)
        # Удалять может только автор, поэтому чужое обращение должно находиться (403, а не 404)
        if is_admin(user) or self.action == 'destroy':
            return self.queryset
        return self.queryset.filter(created_by=user)

    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        query = create_query(
            request.user,
            title=serializer.validated_data.get('title', ''),
            message=serializer.validated_data.get('message', ''),
            patient=serializer.validated_data.get('patient'),
        )
        return Response(self.get_serializer(query).data, status=status.HTTP_201_CREATED)

    def perform_destroy(self, instance: Query) -> None:  # type: ignore[override]
        if instance.created_by_id != self.request.user.id:
            raise PermissionDenied('Only the author can delete a query')
        self.delete_and_log(instance)

    @extend_schema(
        summary='Мои обращения',
        parameters=[OpenApiParameter('status', str, description='pending | priority | resolved')],
    )
    @action(detail=False, methods=['get'])
    def mine(self, request: Request) -> Response:
        queryset = self.queryset.filter(created_by=request.user)
        if request.query_params.get('status'):
            queryset = queryset.filter(status=request.query_params['status'])
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response({'data': self.get_serializer(queryset, many=True).data})

    @extend_schema(
        summary='Все обращения (админ)',
        parameters=[
            OpenApiParameter('status', str, description='pending | priority | resolved'),
            OpenApiParameter('category', str, description='owner | nurse'),
            OpenApiParameter('userId', int),
        ],
    )
    @action(detail=False, methods=['get'], url_path='admin')
    def admin_list(self, request: Request) -> Response:
        params = request.query_params
        queryset = self.queryset
        if params.get('status'):
            queryset = queryset.filter(status=params['status'])
        if params.get('category'):
            queryset = queryset.filter(category=params['category'])
        user_id = parse_int(params.get('userId'), 'userId')
        if user_id is not None:
            queryset = queryset.filter(created_by_id=user_id)
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response({'data': self.get_serializer(queryset, many=True).data})

    @extend_schema(summary='Сменить статус обращения (админ)', request=QueryStatusSerializer, responses=QuerySerializer)
    @action(detail=True, methods=['patch'], url_path='status')
    def set_status(self, request: Request, pk=None) -> Response:
        query = self.get_object()
        serializer = QueryStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        query = update_status(query, serializer.validated_data['status'], user=request.user)
        return Response(self.get_serializer(query).data)
