from django.contrib import admin
from .models import CompletionEntry, LibraryTemplate, TaskTemplate


@admin.register(LibraryTemplate)
class LibraryTemplateAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'scheduled_time', 'created_at')
    search_fields = ('name',)


@admin.register(TaskTemplate)
class TaskTemplateAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'owner', 'scheduled_time', 'order', 'active')
    list_filter = ('active', 'owner')
    search_fields = ('name', 'description')
    ordering = ('owner', 'order', 'id')


@admin.register(CompletionEntry)
class CompletionEntryAdmin(admin.ModelAdmin):
    list_display = ('id', 'task', 'patient', 'nurse', 'timestamp', 'local_time', 'is_late')
    list_filter = ('is_late', 'timestamp')
    search_fields = ('note',)

    # Журнал только на чтение
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
