from datetime import datetime, timezone

import pytest
from django.core.exceptions import ValidationError

from departments.models import Department, Person
from indicators.domain import DepartmentScope, OptimumType, Period, PersonScope
from indicators.models import KPI, KPIDataEntry, KPIVariable
from indicators.orm_repository import DjangoRepository
from indicators.repository import InMemoryRepository

from .conftest import make_entry


@pytest.fixture
def stored(db):
    kpi = KPI.objects.create(name="Defect Rate", unit="%", optimum_type=OptimumType.LOWER,
                             formula="defects / units * 100")
    KPIVariable.objects.create(kpi=kpi, name="units", position=1)
    KPIVariable.objects.create(kpi=kpi, name="defects", label="Defects", position=0)

    qa = Department.objects.create(name="QA")
    qa.kpis.add(kpi)
    ann = Person.objects.create(name="Ann", email="ann@example.com", department=qa)
    loner = Person.objects.create(name="Lou")

    recorded = datetime(2024, 3, 1, tzinfo=timezone.utc)
    person_entry = KPIDataEntry.objects.create(
        kpi=kpi, person=ann, period_year=2024, period_month=3,
        variable_values={"defects": 2, "units": 100}, date_recorded=recorded,
    )
    department_entry = KPIDataEntry.objects.create(
        kpi=kpi, department=qa, period_year=2024, period_month=5,
        variable_values={"defects": 4, "units": 100}, date_recorded=recorded,
    )
    return {
        "kpi": kpi, "qa": qa, "ann": ann, "loner": loner,
        "person_entry": person_entry, "department_entry": department_entry,
    }


def test_kpis_convert_to_snapshots(stored):
    [kpi] = DjangoRepository().list_kpis()

    assert kpi.id == str(stored["kpi"].pk)
    assert kpi.optimum_type == OptimumType.LOWER
    assert kpi.variable_names == ["defects", "units"]
    assert kpi.variables[0].label == "Defects"


def test_get_kpi(stored):
    assert DjangoRepository().get_kpi(stored["kpi"].pk).name == "Defect Rate"
    with pytest.raises(KPI.DoesNotExist):
        DjangoRepository().get_kpi("00000000-0000-0000-0000-000000000000")


def test_departments_and_people(stored):
    repository = DjangoRepository()

    [qa] = repository.list_departments()
    assert qa.kpi_ids == frozenset({str(stored["kpi"].pk)})

    people = {p.name: p for p in repository.list_people()}
    assert people["Ann"].department_id == str(stored["qa"].pk)
    assert people["Lou"].department_id is None


def test_entries_carry_scope(stored):
    entries = {e.id: e for e in DjangoRepository().list_kpi_data_entries()}

    person_entry = entries[str(stored["person_entry"].pk)]
    assert person_entry.scope == PersonScope(str(stored["ann"].pk))
    assert person_entry.period == Period(2024, 3)
    assert entries[str(stored["department_entry"].pk)].scope == DepartmentScope(str(stored["qa"].pk))


def test_entry_filters(stored):
    repository = DjangoRepository()
    kpi_id = str(stored["kpi"].pk)

    assert len(repository.list_kpi_data_entries(kpi_id=kpi_id)) == 2
    assert len(repository.list_kpi_data_entries(person_id=str(stored["ann"].pk))) == 1
    # Person entries are attributed by the rollup, not by the department filter
    [direct] = repository.list_kpi_data_entries(department_id=str(stored["qa"].pk))
    assert direct.id == str(stored["department_entry"].pk)
    assert len(repository.list_kpi_data_entries(period=Period(2024, 3))) == 1
    assert len(repository.list_kpi_data_entries(period=Period(2024, quarter=2))) == 1
    assert repository.list_kpi_data_entries(period=Period(2023)) == []


def test_equal_timestamps_keep_insertion_order(stored):
    entries = DjangoRepository().list_kpi_data_entries()
    assert [e.id for e in entries] == [str(stored["person_entry"].pk), str(stored["department_entry"].pk)]


def test_in_memory_filters_match(sales_kpi):
    entries = [
        make_entry(1, "sales", {}, month=1, person_id="p-ann"),
        make_entry(2, "sales", {}, month=4, department_id="d-sales"),
        make_entry(3, "defects", {}, month=4, person_id="p-ann"),
    ]
    repository = InMemoryRepository(kpis=[sales_kpi], entries=entries)

    assert [e.id for e in repository.list_kpi_data_entries(kpi_id="sales")] == ["1", "2"]
    assert [e.id for e in repository.list_kpi_data_entries(person_id="p-ann")] == ["1", "3"]
    assert [e.id for e in repository.list_kpi_data_entries(department_id="d-sales")] == ["2"]
    assert [e.id for e in repository.list_kpi_data_entries(period=Period(2024, quarter=2))] == ["2", "3"]


def test_entry_must_have_exactly_one_owner(stored):
    entry = KPIDataEntry(kpi=stored["kpi"], person=stored["ann"], department=stored["qa"], period_year=2024)
    with pytest.raises(ValidationError):
        entry.clean()
    with pytest.raises(ValidationError):
        KPIDataEntry(kpi=stored["kpi"], period_year=2024).clean()
