from __future__ import annotations

from typing import cast

from django.db.models import QuerySet
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from common.audit import AuditLoggingMixin
from common.exceptions import NotFound, ValidationError
from common.typing import RoleAwareUser
from patients.models import Patient
from patients.serializers import PatientSerializer
from patients.services import patients_visible_to
from users.models import ROLE_OWNER, User
from users.permissions import IsAdminOrOwnerReadOnly, IsNurse, IsOwnerOrAdmin, is_owner
from .models import LibraryTemplate, TaskTemplate
from .query_params import parse_day, parse_entry_filters, parse_int
from .serializers import (
    CompletionEntrySerializer,
    LibraryTemplateSerializer,
    ReorderSerializer,
    SubmitCompletionSerializer,
    TaskInstanceSerializer,
    TaskTemplateCreateSerializer,
    TaskTemplateSerializer,
)
from .services import (
    UNSET,
    create_template,
    day_board,
    delete_template,
    lateness_timezone,
    list_for_nurse,
    list_for_owner,
    owner_templates,
    profile_timezone,
    reorder_templates,
    seed_library,
    submit_completion,
    timezone_name,
    todays_tasks,
)
from .timing import today_in

ENTRY_FILTER_PARAMETERS = [
    OpenApiParameter('startDate', str, description='YYYY-MM-DD, локальная дата, включительно'),
    OpenApiParameter('endDate', str, description='YYYY-MM-DD, локальная дата, включительно'),
    OpenApiParameter('limit', int, description='N последних отметок'),
]


@extend_schema(
    tags=['Задачи'],
    description='Ежедневные шаблоны задач владельца. Админ действует от имени владельца через ownerId.'
)
class TaskTemplateViewSet(AuditLoggingMixin, viewsets.ModelViewSet):
    """
    ViewSet для шаблонов задач владельца.

    - GET /api/owner/tasks/?active=false - список (по умолчанию только активные)
    - POST /api/owner/tasks/ - создать шаблон, в том числе из библиотеки (fromTemplate)
    - PUT/PATCH /api/owner/tasks/{id}/ - изменить название, описание, плановое время
    - DELETE /api/owner/tasks/{id}/ - удалить; при наличии истории только деактивировать
    - POST /api/owner/tasks/reorder/ - пакетно поменять порядок
    - GET /api/owner/tasks/entries/ - журнал выполнения по пациентам владельца
    - GET /api/owner/tasks/board/?date=&patientId= - статусы задач за день

    Чужие шаблоны для владельца не существуют (404).
    """
    queryset = TaskTemplate.objects.all()
    serializer_class = TaskTemplateSerializer
    audit_serializer_class = TaskTemplateSerializer
    permission_classes = [IsOwnerOrAdmin]

    def get_serializer_class(self):
        if self.action == 'create':
            return TaskTemplateCreateSerializer
        if self.action == 'reorder':
            return ReorderSerializer
        return TaskTemplateSerializer

    def get_queryset(self) -> QuerySet[TaskTemplate]:
        user = cast(RoleAwareUser, self.request.user)
        queryset = TaskTemplate.objects.select_related('owner', 'source_template')
        if is_owner(user):
            queryset = queryset.filter(owner=user)
        else:
            owner_id = parse_int(self.request.query_params.get('ownerId'), 'ownerId')
            if owner_id is not None:
                queryset = queryset.filter(owner_id=owner_id)

        # active=false - вместе с деактивированными
        if self.action == 'list':
            active = self.request.query_params.get('active', 'true')
            if active.lower() != 'false':
                queryset = queryset.filter(active=True)
        return queryset.order_by('order', 'created_at', 'id')

    def _resolve_owner(self) -> User:
        """Владелец действует от своего имени, администратор передаёт ownerId."""
        user = self.request.user
        if is_owner(user):
            return user
        raw = self.request.query_params.get('ownerId')
        if raw is None and hasattr(self.request.data, 'get'):
            raw = self.request.data.get('ownerId')
        owner_id = parse_int(raw, 'ownerId')
        if owner_id is None:
            raise ValidationError({'ownerId': 'ownerId is required for admin requests'})
        owner = User.objects.filter(pk=owner_id, role__name=ROLE_OWNER).first()
        if owner is None:
            raise NotFound(f'Owner {owner_id} not found')
        return owner

    @extend_schema(request=TaskTemplateCreateSerializer, responses=TaskTemplateSerializer)
    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if is_owner(request.user):
            owner = request.user
        elif data.get('ownerId') is not None:
            owner = data['ownerId']
        else:
            raise ValidationError({'ownerId': 'ownerId is required for admin requests'})

        template = create_template(
            owner,
            name=data.get('name'),
            description=data.get('description'),
            scheduled_time=data.get('scheduledTime', UNSET),
            order=data.get('order'),
            library_template=data.get('fromTemplate'),
        )
        payload = TaskTemplateSerializer(template, context=self.get_serializer_context()).data
        self._create_audit_log(instance=template, action_type='CREATE', new_values=payload)
        return Response(payload, status=status.HTTP_201_CREATED)

    def destroy(self, request: Request, *args, **kwargs) -> Response:
        template = self.get_object()
        result = delete_template(template, user=request.user)
        message = 'Task deleted' if result == 'deleted' else 'Task has completion history and was deactivated'
        return Response({'message': message, 'result': result})

    @extend_schema(
        summary='Изменить порядок шаблонов',
        request=ReorderSerializer,
        responses=TaskTemplateSerializer(many=True),
    )
    @action(detail=False, methods=['post'])
    def reorder(self, request: Request) -> Response:
        serializer = ReorderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        owner = self._resolve_owner()
        templates = reorder_templates(owner, serializer.validated_data['tasks'], user=request.user)
        return Response({
            'message': 'Tasks reordered',
            'data': TaskTemplateSerializer(templates, many=True).data,
        })

    @extend_schema(
        summary='Отметки о выполнении по пациентам владельца',
        parameters=ENTRY_FILTER_PARAMETERS + [
            OpenApiParameter('taskId', int),
            OpenApiParameter('patientId', int),
            OpenApiParameter('ownerId', int, description='Только для админа'),
        ],
        responses=CompletionEntrySerializer(many=True),
    )
    @action(detail=False, methods=['get'])
    def entries(self, request: Request) -> Response:
        owner = self._resolve_owner()
        tz = profile_timezone(owner)
        filters = parse_entry_filters(request.query_params, tz)
        entries = list_for_owner(
            owner,
            start=filters.start,
            end=filters.end,
            template_id=filters.task_id,
            patient_id=filters.patient_id,
            limit=filters.limit,
        )
        return Response({
            'data': CompletionEntrySerializer(entries, many=True).data,
            'ownerTimezone': owner.timezone,
        })

    @extend_schema(
        summary='Статус каждой активной задачи за локальный день',
        parameters=[
            OpenApiParameter('date', str, description='YYYY-MM-DD в часовом поясе владельца, по умолчанию сегодня'),
            OpenApiParameter('patientId', int),
            OpenApiParameter('ownerId', int, description='Только для админа'),
        ],
    )
    @action(detail=False, methods=['get'])
    def board(self, request: Request) -> Response:
        owner = self._resolve_owner()
        tz = profile_timezone(owner)
        day = parse_day(request.query_params.get('date'), 'date') or today_in(tz)

        patient = None
        patient_id = parse_int(request.query_params.get('patientId'), 'patientId')
        if patient_id is not None:
            patient = Patient.objects.filter(pk=patient_id, owner=owner).first()
            if patient is None:
                raise NotFound(f'Patient {patient_id} not found')

        board = day_board(owner, day, tz, patient=patient)
        data = [
            {
                'taskId': template.pk,
                'name': template.name,
                'scheduledTime': template.scheduled_time,
                'status': board[template.pk],
            }
            for template in owner_templates(owner)
        ]
        return Response({'date': day.isoformat(), 'ownerTimezone': owner.timezone, 'data': data})


@extend_schema(
    tags=['Задачи'],
    description='Библиотека готовых шаблонов задач. Владелец читает, админ ведёт.'
)
class LibraryTemplateViewSet(AuditLoggingMixin, viewsets.ModelViewSet):
    queryset = LibraryTemplate.objects.order_by('name', 'id')
    serializer_class = LibraryTemplateSerializer
    permission_classes = [IsAdminOrOwnerReadOnly]

    @extend_schema(summary='Добавить в библиотеку недостающие стандартные шаблоны', request=None)
    @action(detail=False, methods=['post'])
    def seed(self, request: Request) -> Response:
        created = seed_library()
        return Response({
            'message': f'{len(created)} template(s) added',
            'data': self.get_serializer(self.get_queryset(), many=True).data,
        })


@extend_schema(
    tags=['Медсестра'],
    description='Пациенты, назначенные текущей медсестре, и их задачи на сегодня.'
)
class NursePatientViewSet(viewsets.ReadOnlyModelViewSet):
    """
    - GET /api/nurse/patients/ - пациенты с активным назначением
    - GET /api/nurse/patients/{id}/tasks/ - задачи на сегодня со статусами
    - POST /api/nurse/patients/{id}/tasks/ - отметить выполнение {ownerTaskId, note}
    """
    serializer_class = PatientSerializer
    permission_classes = [IsNurse]

    def get_queryset(self) -> QuerySet[Patient]:
        # отметку по чужому пациенту отклоняет сервис (403), а не поиск объекта (404)
        if self.action == 'tasks' and self.request.method == 'POST':
            return Patient.objects.select_related('owner')
        return patients_visible_to(cast(RoleAwareUser, self.request.user))

    @extend_schema(
        methods=['GET'],
        summary='Задачи на сегодня по назначенному пациенту',
        responses=TaskInstanceSerializer(many=True),
    )
    @extend_schema(
        methods=['POST'],
        summary='Отметить выполнение задачи',
        request=SubmitCompletionSerializer,
        responses={201: CompletionEntrySerializer},
    )
    @action(detail=True, methods=['get', 'post'])
    def tasks(self, request: Request, pk=None) -> Response:
        if request.method == 'POST':
            return self._submit(request)

        patient = self.get_object()
        tz = lateness_timezone(request.user, patient)
        day = today_in(tz)
        instances = todays_tasks(patient, day, tz)
        return Response({
            'date': day.isoformat(),
            'timezone': timezone_name(tz),
            'data': TaskInstanceSerializer(instances, many=True).data,
        })

    def _submit(self, request: Request) -> Response:
        serializer = SubmitCompletionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        patient = self.get_object()
        entry = submit_completion(
            nurse=request.user,
            patient=patient,
            template_id=serializer.validated_data['ownerTaskId'],
            note=serializer.validated_data['note'],
            tz=lateness_timezone(request.user, patient),
        )
        return Response(
            {
                'message': 'Task completed late' if entry.is_late else 'Task completed',
                'isLate': entry.is_late,
                'data': CompletionEntrySerializer(entry).data,
            },
            status=status.HTTP_201_CREATED,
        )


@extend_schema(
    tags=['Медсестра'],
    description='История отметок текущей медсестры.',
    parameters=ENTRY_FILTER_PARAMETERS + [OpenApiParameter('patientId', int)],
    responses=CompletionEntrySerializer(many=True),
)
class NurseHistoryViewSet(viewsets.GenericViewSet):
    serializer_class = CompletionEntrySerializer
    permission_classes = [IsNurse]

    def list(self, request: Request) -> Response:
        nurse = request.user
        tz = profile_timezone(nurse)
        filters = parse_entry_filters(request.query_params, tz)
        entries = list_for_nurse(
            nurse,
            start=filters.start,
            end=filters.end,
            patient_id=filters.patient_id,
            limit=filters.limit,
        )
        return Response({
            'data': self.get_serializer(entries, many=True).data,
            'timezone': nurse.timezone,
        })
