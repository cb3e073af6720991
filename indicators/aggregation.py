"""
Entry-level aggregation: many recorded entries of one KPI -> one result.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from .domain import Kpi, KpiDataEntry, PerformanceResult, ValueMode
from .evaluation import evaluate_formula
from .scoring import normalize_or_zero

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryAggregate:
    """Everything the aggregator learned about a set of entries of one KPI."""

    kpi_id: str
    kpi_name: str
    unit: str
    average_value: Optional[float]
    latest_value: Optional[float]
    normalized_score: float
    entry_count: int
    evaluated_count: int
    last_recorded: Optional[datetime]

    @property
    def failed_count(self) -> int:
        return self.entry_count - self.evaluated_count

    @property
    def has_data(self) -> bool:
        return self.evaluated_count > 0

    def raw_value(self, value_mode: str = ValueMode.AVERAGE) -> Optional[float]:
        if value_mode == ValueMode.LATEST:
            return self.latest_value
        if value_mode == ValueMode.AVERAGE:
            return self.average_value
        raise ValueError(f"Invalid value_mode: {value_mode}")

    def to_result(self, value_mode: str = ValueMode.AVERAGE) -> PerformanceResult:
        return PerformanceResult(
            kpi_id=self.kpi_id,
            kpi_name=self.kpi_name,
            raw_value=self.raw_value(value_mode),
            normalized_score=self.normalized_score,
            unit=self.unit,
        )


def aggregate_entries(kpi: Kpi, entries: Iterable[KpiDataEntry]) -> EntryAggregate:
    """
    Evaluate every entry and roll the successful results up.

    Entries whose formula evaluation fails are left out of both the average
    and the count. The latest value comes from the successfully evaluated
    entry with the greatest ``date_recorded``; on equal timestamps the entry
    that comes last in input order wins.

    Args:
        kpi: The KPI the entries belong to
        entries: Entries already filtered to one KPI and scope

    Returns:
        EntryAggregate
    """
    total = 0.0
    entry_count = 0
    evaluated_count = 0
    latest_value = None
    latest_at = None
    last_recorded = None

    for entry in entries:
        entry_count += 1
        if last_recorded is None or entry.date_recorded > last_recorded:
            last_recorded = entry.date_recorded

        result = evaluate_formula(kpi, entry.variable_values)
        if result is None:
            continue

        total += result
        evaluated_count += 1
        if latest_at is None or entry.date_recorded >= latest_at:
            latest_at = entry.date_recorded
            latest_value = result

    if entry_count and not evaluated_count:
        logger.debug(f"All {entry_count} entries of KPI {kpi.id} failed evaluation")

    average_value = total / evaluated_count if evaluated_count else None

    return EntryAggregate(
        kpi_id=kpi.id,
        kpi_name=kpi.name,
        unit=kpi.unit,
        average_value=average_value,
        latest_value=latest_value,
        normalized_score=normalize_or_zero(average_value, kpi.optimum_type),
        entry_count=entry_count,
        evaluated_count=evaluated_count,
        last_recorded=last_recorded,
    )


def aggregate(kpi: Kpi, entries: Iterable[KpiDataEntry], value_mode: str = ValueMode.AVERAGE) -> PerformanceResult:
    """Aggregate entries of one KPI into a PerformanceResult, scored on the average value."""
    return aggregate_entries(kpi, entries).to_result(value_mode)
