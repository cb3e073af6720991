from django.contrib import admin
from .models import KPI, KPIVariable, KPIDataEntry


class KPIVariableInline(admin.TabularInline):
    model = KPIVariable
    extra = 1


@admin.register(KPI)
class KPIAdmin(admin.ModelAdmin):
    list_display = ("name", "unit", "optimum_type", "formula", "created_at")
    list_filter = ("optimum_type",)
    search_fields = ("name", "description", "formula")
    readonly_fields = ("id", "created_at", "updated_at")
    inlines = [KPIVariableInline]


@admin.register(KPIDataEntry)
class KPIDataEntryAdmin(admin.ModelAdmin):
    list_display = ("kpi", "person", "department", "period_year", "period_month", "date_recorded")
    list_filter = ("kpi", "period_year", "period_month")
    search_fields = ("kpi__name", "person__name", "department__name")
    readonly_fields = ("id",)
