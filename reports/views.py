import io
from typing import Optional
from zoneinfo import ZoneInfo

from django.http import HttpResponse
from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from common.exceptions import NotFound, ValidationError
from tasks.query_params import parse_day, parse_int
from tasks.services import profile_timezone
from users.models import ROLE_OWNER, User
from users.permissions import IsAdmin, IsOwnerOrAdmin, is_owner
from .models import AuditLog
from .serializers import AuditLogSerializer
from .services import build_compliance_workbook, compliance_entries, generate_compliance_payload, resolve_period

COMPLIANCE_PARAMETERS = [
    OpenApiParameter('startDate', str, description='YYYY-MM-DD включительно, по умолчанию за 30 дней до endDate'),
    OpenApiParameter('endDate', str, description='YYYY-MM-DD включительно, по умолчанию сегодня'),
    OpenApiParameter('ownerId', int, description='Только для админа, без него отчёт по всем владельцам в UTC'),
]


@extend_schema(
    tags=['Отчеты'],
    description='Сводка по соблюдению графика: отметки вовремя и с опозданием в разрезе задач, медсестёр и дней.',
    parameters=COMPLIANCE_PARAMETERS,
)
class ComplianceReportViewSet(viewsets.ViewSet):
    """
    - GET /api/reports/compliance/?startDate=&endDate=&ownerId= - сводка в JSON
    - GET /api/reports/compliance/export-excel/ - та же сводка и все отметки в XLSX
    """
    permission_classes = [IsOwnerOrAdmin]

    def _owner(self, request: Request) -> Optional[User]:
        if is_owner(request.user):
            return request.user
        owner_id = parse_int(request.query_params.get('ownerId'), 'ownerId')
        if owner_id is None:
            return None
        owner = User.objects.filter(pk=owner_id, role__name=ROLE_OWNER).first()
        if owner is None:
            raise NotFound(f'Owner {owner_id} not found')
        return owner

    def _period(self, request: Request):
        owner = self._owner(request)
        tz = profile_timezone(owner) if owner is not None else ZoneInfo('UTC')
        start_day, end_day = resolve_period(
            parse_day(request.query_params.get('startDate'), 'startDate'),
            parse_day(request.query_params.get('endDate'), 'endDate'),
            tz,
        )
        if start_day > end_day:
            raise ValidationError({'endDate': 'endDate must not be before startDate'})
        return owner, start_day, end_day, tz

    def list(self, request: Request) -> Response:
        owner, start_day, end_day, tz = self._period(request)
        return Response({'data': generate_compliance_payload(owner, start_day, end_day, tz)})

    @extend_schema(summary='Скачать отчет в Excel (XLSX)', parameters=COMPLIANCE_PARAMETERS)
    @action(detail=False, methods=['get'], url_path='export-excel')
    def export_excel(self, request: Request) -> HttpResponse:
        owner, start_day, end_day, tz = self._period(request)
        payload = generate_compliance_payload(owner, start_day, end_day, tz)
        entries = compliance_entries(owner, start_day, end_day, tz)

        wb = build_compliance_workbook(payload, entries, tz, request.user.display_name)
        buf = io.BytesIO()
        wb.save(buf)
        response = HttpResponse(
            buf.getvalue(),
            content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        )
        response['Content-Disposition'] = (
            f'attachment; filename="compliance_{start_day:%Y%m%d}_{end_day:%Y%m%d}.xlsx"'
        )
        return response


@extend_schema(
    tags=['Отчеты'],
    description='Журнал изменений. Только для админа.',
    parameters=[
        OpenApiParameter('tableName', str),
        OpenApiParameter('actionType', str),
        OpenApiParameter('userId', int),
    ],
)
class AuditLogViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    ViewSet для просмотра журнала аудита.

    - GET /api/audit-logs/?tableName=&actionType=&userId=
    - GET /api/audit-logs/{id}/

    Журнал содержит кто, что и в какой таблице изменил, со старыми и новыми значениями.
    """
    queryset = AuditLog.objects.select_related('user').all().order_by('-created_at', '-id')
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdmin]

    def get_queryset(self):
        queryset = self.queryset
        params = self.request.query_params
        if params.get('tableName'):
            queryset = queryset.filter(table_name=params['tableName'])
        if params.get('actionType'):
            queryset = queryset.filter(action_type=params['actionType'])
        user_id = parse_int(params.get('userId'), 'userId')
        if user_id is not None:
            queryset = queryset.filter(user_id=user_id)
        return queryset
