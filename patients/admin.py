from django.contrib import admin
from .models import Assignment, Patient


class AssignmentInline(admin.TabularInline):
    model = Assignment
    fk_name = 'patient'
    extra = 0


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'owner', 'age', 'gender', 'active')
    list_filter = ('active', 'gender')
    search_fields = ('name', 'phone')
    inlines = [AssignmentInline]


@admin.register(Assignment)
class AssignmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'nurse', 'patient', 'active', 'created_at', 'ended_at')
    list_filter = ('active',)
