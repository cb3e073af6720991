"""
Framework-free snapshots of the records the scoring engine works on.

The Django models are converted into these frozen dataclasses by the
repository before any evaluation or aggregation runs, so the engine never
touches the ORM and always sees a consistent copy of the data.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Tuple, Union

from django.db import models


class OptimumType(models.TextChoices):
    HIGHER = "higher", "Higher is better"
    LOWER = "lower", "Lower is better"
    TARGET = "target", "On target is best"


class PerformanceStatus(models.TextChoices):
    GOOD = "good", "Good"
    AVERAGE = "average", "Average"
    NEEDS_IMPROVEMENT = "needs_improvement", "Needs Improvement"


class ValueMode(models.TextChoices):
    AVERAGE = "average", "Average"
    LATEST = "latest", "Latest"


class TrendMeasure(models.TextChoices):
    RAW = "raw", "Average raw value"
    SCORE = "score", "Normalized score"


class EntityKind(models.TextChoices):
    PERSON = "person", "Person"
    DEPARTMENT = "department", "Department"


@dataclass(frozen=True)
class KpiVariable:
    name: str
    label: str = ""


@dataclass(frozen=True)
class Kpi:
    id: str
    name: str
    formula: str
    optimum_type: str = OptimumType.HIGHER
    variables: Tuple[KpiVariable, ...] = ()
    unit: str = ""
    description: str = ""

    @property
    def variable_names(self) -> List[str]:
        return [v.name for v in self.variables]


@dataclass(frozen=True)
class Period:
    """A reporting bucket. Month granularity is the one the dashboards use."""

    year: int
    month: Optional[int] = None
    quarter: Optional[int] = None

    def __post_init__(self):
        if self.month is not None and not 1 <= self.month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {self.month}")
        if self.quarter is not None and not 1 <= self.quarter <= 4:
            raise ValueError(f"quarter must be between 1 and 4, got {self.quarter}")

    @property
    def effective_quarter(self) -> Optional[int]:
        if self.quarter is not None:
            return self.quarter
        if self.month is not None:
            return (self.month - 1) // 3 + 1
        return None

    def contains(self, other: "Period") -> bool:
        """True when ``other`` falls inside this period used as a filter."""
        if other.year != self.year:
            return False
        if self.month is not None and other.month != self.month:
            return False
        if self.quarter is not None and other.effective_quarter != self.quarter:
            return False
        return True

    def shift_months(self, delta: int) -> "Period":
        if self.month is None:
            raise ValueError("Cannot shift a period without a month")
        index = self.year * 12 + (self.month - 1) + delta
        return Period(year=index // 12, month=index % 12 + 1)

    def previous_month(self) -> "Period":
        return self.shift_months(-1)

    @property
    def label(self) -> str:
        if self.month is not None:
            return datetime(self.year, self.month, 1).strftime("%b %Y")
        if self.quarter is not None:
            return f"Q{self.quarter} {self.year}"
        return str(self.year)


@dataclass(frozen=True)
class PersonScope:
    person_id: str


@dataclass(frozen=True)
class DepartmentScope:
    department_id: str


@dataclass(frozen=True)
class OrganizationScope:
    pass


Scope = Union[PersonScope, DepartmentScope, OrganizationScope]


def scope_from_ids(person_id: Optional[str] = None, department_id: Optional[str] = None) -> Scope:
    """
    Build a scope from the two nullable columns used by storage.

    A person always wins: their department is resolved at aggregation time,
    so a stored department next to a person is ignored.
    """
    if person_id:
        return PersonScope(str(person_id))
    if department_id:
        return DepartmentScope(str(department_id))
    return OrganizationScope()


@dataclass(frozen=True)
class KpiDataEntry:
    id: str
    kpi_id: str
    period: Period
    variable_values: Dict[str, float]
    date_recorded: datetime
    scope: Scope = field(default_factory=OrganizationScope)


@dataclass(frozen=True)
class Person:
    id: str
    name: str
    email: str = ""
    department_id: Optional[str] = None


@dataclass(frozen=True)
class Department:
    id: str
    name: str
    kpi_ids: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class PerformanceResult:
    kpi_id: str
    kpi_name: str
    raw_value: Optional[float]
    normalized_score: float
    unit: str = ""


@dataclass(frozen=True)
class PersonPerformance:
    person_id: str
    person_name: str
    department_id: Optional[str]
    department_name: str
    overall_score: float
    status: str
    kpi_results: List[PerformanceResult]
    last_updated: Optional[datetime]


@dataclass(frozen=True)
class DepartmentPerformance:
    department_id: str
    department_name: str
    overall_score: float
    status: str
    kpi_results: List[PerformanceResult]
    last_updated: Optional[datetime]
    kpi_count: int = 0
    people_count: int = 0
