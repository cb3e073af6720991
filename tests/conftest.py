from datetime import datetime, timezone

import pytest
from rest_framework.test import APIClient

from indicators.domain import (
    Department,
    Kpi,
    KpiDataEntry,
    KpiVariable,
    OptimumType,
    Period,
    Person,
    scope_from_ids,
)
from indicators.repository import InMemoryRepository


def make_entry(entry_id, kpi_id, values, year=2024, month=1, person_id=None, department_id=None, recorded=None):
    return KpiDataEntry(
        id=str(entry_id),
        kpi_id=kpi_id,
        period=Period(year=year, month=month),
        variable_values=values,
        date_recorded=recorded or datetime(year, month, 15, tzinfo=timezone.utc),
        scope=scope_from_ids(person_id, department_id),
    )


@pytest.fixture
def sales_kpi():
    return Kpi(
        id="sales",
        name="Sales Target Achievement",
        unit="%",
        optimum_type=OptimumType.HIGHER,
        variables=(KpiVariable("actual", "Actual Sales"), KpiVariable("target", "Sales Target")),
        formula="(actual / target) * 100",
    )


@pytest.fixture
def defects_kpi():
    return Kpi(
        id="defects",
        name="Defect Rate",
        unit="%",
        optimum_type=OptimumType.LOWER,
        variables=(KpiVariable("defects"), KpiVariable("units")),
        formula="defects / units * 100",
    )


@pytest.fixture
def org(sales_kpi, defects_kpi):
    """Sales department measured on sales and defects, support only on defects."""
    sales = Department(id="d-sales", name="Sales", kpi_ids=frozenset({"sales", "defects"}))
    support = Department(id="d-support", name="Support", kpi_ids=frozenset({"defects"}))
    people = [
        Person(id="p-ann", name="Ann", email="ann@example.com", department_id="d-sales"),
        Person(id="p-bob", name="Bob", email="bob@example.com", department_id="d-sales"),
        Person(id="p-cid", name="Cid", email="cid@example.com", department_id="d-support"),
    ]
    return {
        "kpis": [sales_kpi, defects_kpi],
        "departments": [sales, support],
        "people": people,
    }


@pytest.fixture
def repository(org):
    def build(entries=()):
        return InMemoryRepository(
            kpis=org["kpis"],
            departments=org["departments"],
            people=org["people"],
            entries=entries,
        )
    return build


@pytest.fixture
def api_client(django_user_model):
    user = django_user_model.objects.create_user(username="analyst", password="secret-pass")
    client = APIClient()
    client.force_authenticate(user=user)
    return client
