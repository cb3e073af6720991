"""
Read-only data access used by the scoring engine.
"""
import abc
from typing import Iterable, List, Optional

from .domain import (
    Department,
    DepartmentScope,
    Kpi,
    KpiDataEntry,
    Period,
    Person,
    PersonScope,
)


class PerformanceRepository(abc.ABC):
    """Source of KPI definitions, organization structure and recorded entries."""

    @abc.abstractmethod
    def list_kpis(self) -> List[Kpi]:
        raise NotImplementedError

    @abc.abstractmethod
    def list_departments(self) -> List[Department]:
        raise NotImplementedError

    @abc.abstractmethod
    def list_people(self) -> List[Person]:
        raise NotImplementedError

    @abc.abstractmethod
    def list_kpi_data_entries(
        self,
        kpi_id: Optional[str] = None,
        person_id: Optional[str] = None,
        department_id: Optional[str] = None,
        period: Optional[Period] = None,
    ) -> List[KpiDataEntry]:
        """
        Return recorded entries, optionally filtered.

        ``department_id`` matches entries recorded directly against the
        department only; attributing person entries to departments is the
        rollup's job.
        """
        raise NotImplementedError


def filter_entries(
    entries: Iterable[KpiDataEntry],
    kpi_id: Optional[str] = None,
    person_id: Optional[str] = None,
    department_id: Optional[str] = None,
    period: Optional[Period] = None,
) -> List[KpiDataEntry]:
    result = []
    for entry in entries:
        if kpi_id is not None and entry.kpi_id != kpi_id:
            continue
        if person_id is not None and entry.scope != PersonScope(person_id):
            continue
        if department_id is not None and entry.scope != DepartmentScope(department_id):
            continue
        if period is not None and not period.contains(entry.period):
            continue
        result.append(entry)
    return result


class InMemoryRepository(PerformanceRepository):
    """Repository over plain sequences, e.g. a snapshot or test fixtures."""

    def __init__(self, kpis=(), departments=(), people=(), entries=()):
        self.kpis = list(kpis)
        self.departments = list(departments)
        self.people = list(people)
        self.entries = list(entries)

    def list_kpis(self) -> List[Kpi]:
        return list(self.kpis)

    def list_departments(self) -> List[Department]:
        return list(self.departments)

    def list_people(self) -> List[Person]:
        return list(self.people)

    def list_kpi_data_entries(self, kpi_id=None, person_id=None, department_id=None, period=None) -> List[KpiDataEntry]:
        return filter_entries(self.entries, kpi_id, person_id, department_id, period)
