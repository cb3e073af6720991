"""
PerformanceRepository backed by the Django ORM.

Querysets are materialized into frozen domain snapshots before they reach
the scoring engine.
"""
from typing import List, Optional

from departments.models import Department as DepartmentModel, Person as PersonModel

from .domain import (
    Department,
    Kpi,
    KpiDataEntry,
    KpiVariable,
    Period,
    Person,
    scope_from_ids,
)
from .models import KPI, KPIDataEntry
from .repository import PerformanceRepository


def kpi_to_domain(obj: KPI) -> Kpi:
    return Kpi(
        id=str(obj.pk),
        name=obj.name,
        description=obj.description,
        unit=obj.unit,
        optimum_type=obj.optimum_type,
        formula=obj.formula,
        variables=tuple(KpiVariable(name=v.name, label=v.label) for v in obj.variables.all()),
    )


def entry_to_domain(obj: KPIDataEntry) -> KpiDataEntry:
    return KpiDataEntry(
        id=str(obj.pk),
        kpi_id=str(obj.kpi_id),
        period=Period(year=obj.period_year, month=obj.period_month, quarter=obj.period_quarter),
        variable_values=dict(obj.variable_values or {}),
        date_recorded=obj.date_recorded,
        scope=scope_from_ids(obj.person_id, obj.department_id),
    )


class DjangoRepository(PerformanceRepository):

    def list_kpis(self) -> List[Kpi]:
        return [kpi_to_domain(k) for k in KPI.objects.prefetch_related("variables")]

    def get_kpi(self, pk) -> Kpi:
        return kpi_to_domain(KPI.objects.prefetch_related("variables").get(pk=pk))

    def list_departments(self) -> List[Department]:
        return [
            Department(
                id=str(d.pk),
                name=d.name,
                kpi_ids=frozenset(str(k.pk) for k in d.kpis.all()),
            )
            for d in DepartmentModel.objects.prefetch_related("kpis")
        ]

    def list_people(self) -> List[Person]:
        return [
            Person(
                id=str(p.pk),
                name=p.name,
                email=p.email,
                department_id=str(p.department_id) if p.department_id else None,
            )
            for p in PersonModel.objects.all()
        ]

    def list_kpi_data_entries(
        self,
        kpi_id: Optional[str] = None,
        person_id: Optional[str] = None,
        department_id: Optional[str] = None,
        period: Optional[Period] = None,
    ) -> List[KpiDataEntry]:
        # Oldest first so that equal timestamps resolve to the latest insert
        queryset = KPIDataEntry.objects.order_by("date_recorded", "id")
        if kpi_id is not None:
            queryset = queryset.filter(kpi_id=kpi_id)
        if person_id is not None:
            queryset = queryset.filter(person_id=person_id)
        if department_id is not None:
            queryset = queryset.filter(department_id=department_id, person__isnull=True)
        if period is not None:
            queryset = queryset.filter(period_year=period.year)
            if period.month is not None:
                queryset = queryset.filter(period_month=period.month)

        entries = [entry_to_domain(e) for e in queryset]
        if period is not None and period.quarter is not None:
            entries = [e for e in entries if period.contains(e.period)]
        return entries
