"""
Celery tasks for KPI scoring.
"""
import logging
from typing import Any, Dict, Optional

from celery import shared_task

from .domain import EntityKind, Period
from .orm_repository import DjangoRepository
from .repository import PerformanceRepository
from .rollup import PerformanceRollup

logger = logging.getLogger(__name__)


def compute_period_rollup(period: Period, repository: Optional[PerformanceRepository] = None) -> Dict[str, Any]:
    """
    Roll up every department and person for a period.

    A failure for one entity is logged and skipped so that the rest of the
    organization is still scored.

    Args:
        period: The Period to roll up
        repository: Data source, defaults to the Django ORM

    Returns:
        Summary dict with per-entity overall scores and an error count
    """
    rollup = PerformanceRollup(repository or DjangoRepository())
    summary = {"period": period.label, "departments": {}, "people": {}, "errors": 0}

    for department in rollup.repository.list_departments():
        try:
            performance = rollup.rollup_for_entity(department.id, EntityKind.DEPARTMENT, period=period)
            summary["departments"][department.id] = performance.overall_score
        except Exception as e:
            summary["errors"] += 1
            logger.error(
                f"Error rolling up department {department.id} for {period.label}: {str(e)}",
                exc_info=True
            )

    for person in rollup.repository.list_people():
        try:
            performance = rollup.rollup_for_entity(person.id, EntityKind.PERSON, period=period)
            summary["people"][person.id] = performance.overall_score
        except Exception as e:
            summary["errors"] += 1
            logger.error(
                f"Error rolling up person {person.id} for {period.label}: {str(e)}",
                exc_info=True
            )

    logger.info(
        f"Rolled up {len(summary['departments'])} departments and {len(summary['people'])} people "
        f"for {period.label} with {summary['errors']} errors"
    )
    return summary


@shared_task(bind=True, max_retries=3)
def run_period_rollup(self, year: int, month: int):
    """
    Celery task to recompute every department and person rollup for a month.

    Args:
        year: Period year
        month: Period month (1-12)
    """
    try:
        return compute_period_rollup(Period(year=int(year), month=int(month)))
    except ValueError:
        # Bad arguments will not get better on retry
        logger.error(f"Invalid period for run_period_rollup: {year}-{month}")
        raise
    except Exception as e:
        logger.error(
            f"Error in run_period_rollup task for {year}-{month}: {str(e)}",
            exc_info=True
        )
        raise self.retry(exc=e, countdown=60 * (self.request.retries + 1))
