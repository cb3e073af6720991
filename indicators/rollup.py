"""
Period and scope rollup: per-KPI aggregates combined across KPIs, months,
people, departments and the whole organization.

Every dashboard surface goes through PerformanceRollup so that scoping,
normalization and status thresholds live in one place.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .aggregation import EntryAggregate, aggregate_entries
from .domain import (
    Department,
    DepartmentPerformance,
    DepartmentScope,
    EntityKind,
    Kpi,
    KpiDataEntry,
    OrganizationScope,
    PerformanceResult,
    Period,
    Person,
    PersonPerformance,
    PersonScope,
    Scope,
    TrendMeasure,
    ValueMode,
)
from .evaluation import evaluate_formula as _evaluate_formula
from .repository import PerformanceRepository
from .scoring import CANONICAL_TARGET, classify_score


@dataclass(frozen=True)
class TrendBucket:
    period: Period
    values: Dict[str, float] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return self.period.label


@dataclass(frozen=True)
class KpiComparison:
    kpi_id: str
    kpi_name: str
    unit: str
    optimum_type: str
    current_value: Optional[float]
    previous_value: Optional[float]
    current_score: float
    previous_score: float
    change_percent: Optional[float]
    status: str


@dataclass(frozen=True)
class RadarPoint:
    name: str
    value: float
    full_mark: float = CANONICAL_TARGET


def entry_in_scope(entry: KpiDataEntry, scope: Scope, people_by_id: Mapping[str, Person]) -> bool:
    """
    Decide whether an entry counts towards a scope.

    Person entries count towards the department the person belongs to *now*,
    so moving a person moves their history with them.
    """
    if isinstance(scope, OrganizationScope):
        return True
    if isinstance(scope, PersonScope):
        return entry.scope == scope
    if isinstance(scope, DepartmentScope):
        if entry.scope == scope:
            return True
        if isinstance(entry.scope, PersonScope):
            person = people_by_id.get(entry.scope.person_id)
            return person is not None and person.department_id == scope.department_id
        return False
    raise TypeError(f"Unsupported scope: {scope!r}")


def change_percent(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    if current is None or previous is None or previous == 0:
        return None
    return (current - previous) / abs(previous) * 100.0


def overall_score(aggregates: Iterable[EntryAggregate]) -> float:
    """Unweighted mean of normalized scores over KPIs that have data."""
    scores = [a.normalized_score for a in aggregates if a.has_data]
    return sum(scores) / len(scores) if scores else 0.0


class PerformanceRollup:
    """Scoring facade over a PerformanceRepository."""

    def __init__(self, repository: PerformanceRepository):
        self.repository = repository

    # Single KPI

    @staticmethod
    def evaluate_formula(kpi: Kpi, variable_values: Mapping[str, float]) -> Optional[float]:
        return _evaluate_formula(kpi, variable_values)

    def aggregate_for_scope(
        self,
        kpi: Kpi,
        scope: Scope,
        period: Optional[Period] = None,
        value_mode: str = ValueMode.AVERAGE,
    ) -> PerformanceResult:
        return self._aggregate_for_scope(kpi, scope, period).to_result(value_mode)

    def _aggregate_for_scope(self, kpi: Kpi, scope: Scope, period: Optional[Period]) -> EntryAggregate:
        people_by_id = self._people_by_id()
        entries = self.repository.list_kpi_data_entries(kpi_id=kpi.id, period=period)
        return aggregate_entries(kpi, [e for e in entries if entry_in_scope(e, scope, people_by_id)])

    # Entities

    def rollup_for_entity(
        self,
        entity_id: str,
        entity_kind: str,
        kpis: Optional[Sequence[Kpi]] = None,
        entries: Optional[Sequence[KpiDataEntry]] = None,
        period: Optional[Period] = None,
        value_mode: str = ValueMode.LATEST,
    ):
        """
        Roll up every applicable KPI for one person or department.

        Args:
            entity_id: Person or department id
            entity_kind: One of EntityKind
            kpis: KPI roster; defaults to every KPI in the repository
            entries: Entry history; defaults to every entry in the repository
            period: Optional filter applied to the entries
            value_mode: Which value surfaces as raw_value of each KPI result.
                Scores always use the average.

        Returns:
            PersonPerformance or DepartmentPerformance

        Raises:
            LookupError: If the entity does not exist
            ValueError: If entity_kind is invalid
        """
        entity_id = str(entity_id)
        people = self.repository.list_people()
        departments = self.repository.list_departments()
        if kpis is None:
            kpis = self.repository.list_kpis()
        if entries is None:
            entries = self.repository.list_kpi_data_entries(period=period)
        elif period is not None:
            entries = [e for e in entries if period.contains(e.period)]

        people_by_id = {p.id: p for p in people}
        departments_by_id = {d.id: d for d in departments}

        if entity_kind == EntityKind.PERSON:
            person = people_by_id.get(entity_id)
            if person is None:
                raise LookupError(f"Person {entity_id} not found")
            return self._person_performance(person, departments_by_id, people_by_id, kpis, entries, value_mode)

        if entity_kind == EntityKind.DEPARTMENT:
            department = departments_by_id.get(entity_id)
            if department is None:
                raise LookupError(f"Department {entity_id} not found")
            return self._department_performance(department, people, people_by_id, kpis, entries, value_mode)

        raise ValueError(f"Invalid entity_kind: {entity_kind}")

    def _roll_up(self, scope, applicable, entries, people_by_id):
        scoped = [e for e in entries if entry_in_scope(e, scope, people_by_id)]
        aggregates = []
        for kpi in applicable:
            aggregates.append(aggregate_entries(kpi, [e for e in scoped if e.kpi_id == kpi.id]))
        recorded = [a.last_recorded for a in aggregates if a.last_recorded is not None]
        return aggregates, (max(recorded) if recorded else None)

    def _person_performance(self, person, departments_by_id, people_by_id, kpis, entries, value_mode):
        department = departments_by_id.get(person.department_id) if person.department_id else None
        # A person is measured on their department's KPIs
        applicable = applicable_kpis(kpis, department) if department else list(kpis)

        aggregates, last_updated = self._roll_up(PersonScope(person.id), applicable, entries, people_by_id)
        score = overall_score(aggregates)
        return PersonPerformance(
            person_id=person.id,
            person_name=person.name,
            department_id=person.department_id,
            department_name=department.name if department else "No Department",
            overall_score=score,
            status=classify_score(score),
            kpi_results=[a.to_result(value_mode) for a in aggregates],
            last_updated=last_updated,
        )

    def _department_performance(self, department, people, people_by_id, kpis, entries, value_mode):
        applicable = applicable_kpis(kpis, department)

        aggregates, last_updated = self._roll_up(DepartmentScope(department.id), applicable, entries, people_by_id)
        score = overall_score(aggregates)
        return DepartmentPerformance(
            department_id=department.id,
            department_name=department.name,
            overall_score=score,
            status=classify_score(score),
            kpi_results=[a.to_result(value_mode) for a in aggregates],
            last_updated=last_updated,
            kpi_count=len(applicable),
            people_count=sum(1 for p in people if p.department_id == department.id),
        )

    def rank_people(self, department_id: Optional[str] = None, period: Optional[Period] = None) -> List[PersonPerformance]:
        """Every person's rollup, best overall score first."""
        people = self.repository.list_people()
        departments_by_id = {d.id: d for d in self.repository.list_departments()}
        people_by_id = {p.id: p for p in people}
        kpis = self.repository.list_kpis()
        entries = self.repository.list_kpi_data_entries(period=period)

        if department_id is not None:
            people = [p for p in people if p.department_id == str(department_id)]

        performances = [
            self._person_performance(p, departments_by_id, people_by_id, kpis, entries, ValueMode.LATEST)
            for p in people
        ]
        return sorted(performances, key=lambda p: p.overall_score, reverse=True)

    def rank_departments(self, period: Optional[Period] = None) -> List[DepartmentPerformance]:
        """Every department's rollup, best overall score first."""
        people = self.repository.list_people()
        people_by_id = {p.id: p for p in people}
        kpis = self.repository.list_kpis()
        entries = self.repository.list_kpi_data_entries(period=period)

        performances = [
            self._department_performance(d, people, people_by_id, kpis, entries, ValueMode.LATEST)
            for d in self.repository.list_departments()
        ]
        return sorted(performances, key=lambda d: d.overall_score, reverse=True)

    # Time series

    def trend_series(
        self,
        kpis: Optional[Sequence[Kpi]],
        scope: Scope,
        reference_period: Period,
        window_months: int = 6,
        measure: str = TrendMeasure.RAW,
    ) -> List[TrendBucket]:
        """
        Per-KPI values for each of the ``window_months`` months ending at
        ``reference_period``, oldest first.

        A KPI without a successfully evaluated entry in a month is left out of
        that month's values rather than reported as zero.

        Raises:
            ValueError: If the window is not positive, the reference period has
                no month, or measure is invalid
        """
        if window_months < 1:
            raise ValueError(f"window_months must be positive, got {window_months}")
        if reference_period.month is None:
            raise ValueError("Trend series need a monthly reference period")
        if measure not in TrendMeasure.values:
            raise ValueError(f"Invalid measure: {measure}")
        if kpis is None:
            kpis = self.repository.list_kpis()

        people_by_id = self._people_by_id()
        scoped = [e for e in self.repository.list_kpi_data_entries() if entry_in_scope(e, scope, people_by_id)]

        buckets = []
        for offset in range(window_months - 1, -1, -1):
            month = reference_period.shift_months(-offset)
            in_month = [e for e in scoped if month.contains(e.period)]
            values = {}
            for kpi in kpis:
                aggregate = aggregate_entries(kpi, [e for e in in_month if e.kpi_id == kpi.id])
                if not aggregate.has_data:
                    continue
                if measure == TrendMeasure.SCORE:
                    values[kpi.id] = aggregate.normalized_score
                else:
                    values[kpi.id] = aggregate.average_value
            buckets.append(TrendBucket(period=month, values=values))
        return buckets

    def compare_periods(
        self,
        kpis: Optional[Sequence[Kpi]],
        scope: Scope,
        reference_period: Period,
        include_empty: bool = False,
    ) -> List[KpiComparison]:
        """
        Current month against the month before it, per KPI.

        KPIs without data in the current month are skipped unless
        ``include_empty`` is set.
        """
        if reference_period.month is None:
            raise ValueError("Period comparison needs a monthly reference period")
        if kpis is None:
            kpis = self.repository.list_kpis()

        current_period = Period(reference_period.year, reference_period.month)
        previous_period = current_period.previous_month()
        people_by_id = self._people_by_id()
        scoped = [e for e in self.repository.list_kpi_data_entries() if entry_in_scope(e, scope, people_by_id)]

        comparisons = []
        for kpi in kpis:
            own = [e for e in scoped if e.kpi_id == kpi.id]
            current = aggregate_entries(kpi, [e for e in own if current_period.contains(e.period)])
            previous = aggregate_entries(kpi, [e for e in own if previous_period.contains(e.period)])
            if not current.has_data and not include_empty:
                continue
            comparisons.append(KpiComparison(
                kpi_id=kpi.id,
                kpi_name=kpi.name,
                unit=kpi.unit,
                optimum_type=kpi.optimum_type,
                current_value=current.average_value,
                previous_value=previous.average_value,
                current_score=current.normalized_score,
                previous_score=previous.normalized_score,
                change_percent=change_percent(current.average_value, previous.average_value),
                status=classify_score(current.normalized_score),
            ))
        return comparisons

    def kpi_summary(self, kpis: Optional[Sequence[Kpi]], scope: Scope, period: Optional[Period] = None) -> List[PerformanceResult]:
        """Average raw value per KPI for the KPIs that have data in scope."""
        if kpis is None:
            kpis = self.repository.list_kpis()

        people_by_id = self._people_by_id()
        scoped = [
            e for e in self.repository.list_kpi_data_entries(period=period)
            if entry_in_scope(e, scope, people_by_id)
        ]

        results = []
        for kpi in kpis:
            aggregate = aggregate_entries(kpi, [e for e in scoped if e.kpi_id == kpi.id])
            if aggregate.has_data:
                results.append(aggregate.to_result(ValueMode.AVERAGE))
        return results

    def _people_by_id(self) -> Dict[str, Person]:
        return {p.id: p for p in self.repository.list_people()}


def applicable_kpis(kpis: Iterable[Kpi], department: Department) -> List[Kpi]:
    return [kpi for kpi in kpis if kpi.id in department.kpi_ids]


def radar_points(comparisons: Iterable[KpiComparison]) -> List[RadarPoint]:
    """One radar axis per KPI that has current data, valued by its normalized score."""
    return [
        RadarPoint(name=c.kpi_name, value=c.current_score)
        for c in comparisons
        if c.current_value is not None
    ]
