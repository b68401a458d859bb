from django.contrib import admin
from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('action_type', 'user', 'table_name', 'record_id', 'created_at')
    list_filter = ('action_type', 'table_name', 'created_at')
    search_fields = ('old_values', 'new_values')

    # Журнал аудита только на чтение
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
