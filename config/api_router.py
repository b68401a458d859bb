from rest_framework.routers import DefaultRouter
from users.views import UserViewSet, RoleViewSet
from patients.views import PatientViewSet, AssignmentViewSet
from tasks.views import (
    LibraryTemplateViewSet,
    NurseHistoryViewSet,
    NursePatientViewSet,
    TaskTemplateViewSet,
)
from queries.views import QueryViewSet
from reports.views import AuditLogViewSet, ComplianceReportViewSet

router = DefaultRouter()

# Users
router.register(r'users', UserViewSet)
router.register(r'roles', RoleViewSet)

# Patients
router.register(r'patients', PatientViewSet)
router.register(r'assignments', AssignmentViewSet)

# Tasks: владелец, администратор, медсестра
router.register(r'owner/tasks', TaskTemplateViewSet, basename='owner-task')
router.register(r'admin/task-templates', LibraryTemplateViewSet, basename='task-library')
router.register(r'nurse/patients', NursePatientViewSet, basename='nurse-patient')
router.register(r'nurse/my-tasks', NurseHistoryViewSet, basename='nurse-history')

# Queries
router.register(r'queries', QueryViewSet, basename='query')

# Reports & audit
router.register(r'reports/compliance', ComplianceReportViewSet, basename='compliance-report')
router.register(r'audit-logs', AuditLogViewSet, basename='audit-log')
