from datetime import datetime, timezone

import pytest
from rest_framework.test import APIClient

from departments.models import Department, Person
from indicators.domain import OptimumType
from indicators.models import KPI, KPIDataEntry, KPIVariable

pytestmark = pytest.mark.django_db


@pytest.fixture
def sales_kpi_record():
    kpi = KPI.objects.create(name="Sales Target Achievement", unit="%", optimum_type=OptimumType.HIGHER,
                             formula="(actual / target) * 100")
    KPIVariable.objects.create(kpi=kpi, name="actual", position=0)
    KPIVariable.objects.create(kpi=kpi, name="target", position=1)
    return kpi


@pytest.fixture
def sales_team(sales_kpi_record):
    department = Department.objects.create(name="Sales")
    department.kpis.add(sales_kpi_record)
    ann = Person.objects.create(name="Ann", department=department)
    bob = Person.objects.create(name="Bob", department=department)

    def record(person, actual, year, month, day=15):
        KPIDataEntry.objects.create(
            kpi=sales_kpi_record, person=person, period_year=year, period_month=month,
            variable_values={"actual": actual, "target": 100},
            date_recorded=datetime(year, month, day, tzinfo=timezone.utc),
        )

    record(ann, 60, 2024, 1)
    record(ann, 90, 2024, 2)
    record(bob, 30, 2024, 2)
    return {"department": department, "ann": ann, "bob": bob}


def test_requires_authentication():
    response = APIClient().get("/api/kpis/")
    assert response.status_code in (401, 403)


def test_create_kpi(api_client):
    response = api_client.post("/api/kpis/", {
        "name": "Defect Rate",
        "unit": "%",
        "optimum_type": "lower",
        "formula": " defects / units * 100 ",
        "variables": [{"name": "defects", "label": "Defects"}, {"name": "units"}],
    }, format="json")

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["formula"] == "defects / units * 100"
    assert [v["name"] for v in data["variables"]] == ["defects", "units"]
    assert data["entries_count"] == 0


@pytest.mark.parametrize("payload,field", [
    ({"formula": "", "variables": [{"name": "a"}]}, "formula"),
    ({"formula": "a +", "variables": [{"name": "a"}]}, "formula"),
    ({"formula": "a + b", "variables": [{"name": "a"}]}, "formula"),
    ({"formula": "sqrt(a)", "variables": [{"name": "a"}]}, "formula"),
    ({"formula": "a", "variables": [{"name": "a"}, {"name": "a"}]}, "variables"),
    ({"formula": "a", "variables": [{"name": "1a"}]}, "variables"),
])
def test_create_kpi_rejects_invalid_definitions(api_client, payload, field):
    response = api_client.post("/api/kpis/", {"name": "Broken", **payload}, format="json")
    assert response.status_code == 400
    assert field in response.json()
    assert not KPI.objects.exists()


def test_kpi_detail_and_delete(api_client, sales_kpi_record):
    url = f"/api/kpis/{sales_kpi_record.pk}/"
    assert api_client.get(url).json()["data"]["name"] == "Sales Target Achievement"
    assert api_client.delete(url).status_code == 204
    assert api_client.get(url).status_code == 404


def test_kpi_detail_bad_id(api_client):
    assert api_client.get("/api/kpis/not-a-uuid/").status_code == 400


def test_evaluate(api_client, sales_kpi_record):
    url = f"/api/kpis/{sales_kpi_record.pk}/evaluate/"

    response = api_client.post(url, {"variable_values": {"actual": 85000, "target": 100000}}, format="json")
    assert response.json()["data"]["result"] == pytest.approx(85)

    response = api_client.post(url, {"variable_values": {"actual": 1, "target": 0}}, format="json")
    assert response.status_code == 200
    assert response.json()["data"]["result"] is None


def test_record_entry(api_client, sales_kpi_record):
    person = Person.objects.create(name="Ann")
    response = api_client.post("/api/kpis/entries/", {
        "kpi": str(sales_kpi_record.pk),
        "person": person.pk,
        "period_year": 2024,
        "period_month": 3,
        "variable_values": {"actual": 80, "target": 100},
    }, format="json")

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["person_id"] == person.pk
    assert data["department_id"] is None
    assert KPIDataEntry.objects.count() == 1


@pytest.mark.parametrize("overrides", [
    {"person": None},
    {"department": "both"},
    {"variable_values": {"actual": "80", "target": 100}},
    {"variable_values": {"actual": True, "target": 100}},
    {"variable_values": {"revenue": 80}},
    {"period_month": 13},
])
def test_record_entry_validation(api_client, sales_kpi_record, overrides):
    person = Person.objects.create(name="Ann")
    department = Department.objects.create(name="Sales")
    payload = {
        "kpi": str(sales_kpi_record.pk),
        "person": person.pk,
        "period_year": 2024,
        "period_month": 3,
        "variable_values": {"actual": 80, "target": 100},
    }
    payload.update(overrides)
    if payload.get("department") == "both":
        payload["department"] = department.pk

    response = api_client.post("/api/kpis/entries/", payload, format="json")
    assert response.status_code == 400
    assert not KPIDataEntry.objects.exists()


def test_list_entries_filters(api_client, sales_team):
    response = api_client.get("/api/kpis/entries/", {"person": sales_team["ann"].pk})
    assert len(response.json()["data"]) == 2

    response = api_client.get("/api/kpis/entries/", {"year": 2024, "month": 2})
    assert len(response.json()["data"]) == 2

    assert api_client.get("/api/kpis/entries/", {"person": "ann"}).status_code == 400
    assert api_client.get("/api/kpis/entries/", {"kpi": "nope"}).status_code == 400


def test_aggregate(api_client, sales_team, sales_kpi_record):
    url = f"/api/kpis/{sales_kpi_record.pk}/aggregate/"

    data = api_client.get(url, {"scope": "department", "id": sales_team["department"].pk}).json()["data"]
    assert data["raw_value"] == pytest.approx(60)
    assert data["normalized_score"] == pytest.approx(60)

    data = api_client.get(url, {"scope": "person", "id": sales_team["ann"].pk, "value": "latest"}).json()["data"]
    assert data["raw_value"] == pytest.approx(90)
    assert data["normalized_score"] == pytest.approx(75)


@pytest.mark.parametrize("params", [
    {"scope": "team", "id": 1},
    {"scope": "person"},
    {"value": "median"},
    {"year": "twenty"},
    {"year": 2024, "month": 13},
])
def test_aggregate_bad_params(api_client, sales_kpi_record, params):
    response = api_client.get(f"/api/kpis/{sales_kpi_record.pk}/aggregate/", params)
    assert response.status_code == 400
    assert response.json()["status"] == 400


def test_people_ranking(api_client, sales_team):
    data = api_client.get("/api/performance/people/").json()["data"]

    assert [p["person_name"] for p in data] == ["Ann", "Bob"]
    ann = data[0]
    assert ann["overall_score"] == pytest.approx(75)
    assert ann["status"] == {"code": "good", "label": "Good"}
    assert ann["department_name"] == "Sales"
    assert ann["kpi_results"][0]["raw_value"] == pytest.approx(90)


def test_person_detail(api_client, sales_team):
    response = api_client.get(f"/api/performance/people/{sales_team['bob'].pk}/", {"year": 2024, "month": 2})
    data = response.json()["data"]
    assert data["overall_score"] == pytest.approx(30)
    assert data["status"]["label"] == "Needs Improvement"


def test_person_detail_not_found(api_client):
    assert api_client.get("/api/performance/people/999/").status_code == 404


def test_department_performance(api_client, sales_team):
    [department] = api_client.get("/api/performance/departments/").json()["data"]
    assert department["overall_score"] == pytest.approx(60)
    assert department["people_count"] == 2
    assert department["kpi_count"] == 1

    url = f"/api/performance/departments/{sales_team['department'].pk}/"
    assert api_client.get(url).json()["data"]["status"]["code"] == "average"
    assert api_client.get("/api/performance/departments/999/").status_code == 404


def test_trend(api_client, sales_team, sales_kpi_record):
    response = api_client.get("/api/performance/trend/", {
        "scope": "person", "id": sales_team["ann"].pk, "year": 2024, "month": 3, "window": 3,
    })
    data = response.json()["data"]

    kpi_id = str(sales_kpi_record.pk)
    assert [b["period"] for b in data] == ["Jan 2024", "Feb 2024", "Mar 2024"]
    assert data[0]["values"] == {kpi_id: pytest.approx(60)}
    assert data[1]["values"] == {kpi_id: pytest.approx(90)}
    assert data[2]["values"] == {}


@pytest.mark.parametrize("params", [
    {"window": 0},
    {"window": 1000},
    {"window": "six"},
    {"measure": "median"},
    {"year": 2024},
])
def test_trend_bad_params(api_client, params):
    assert api_client.get("/api/performance/trend/", params).status_code == 400


def test_comparison(api_client, sales_team):
    response = api_client.get("/api/performance/comparison/", {
        "scope": "person", "id": sales_team["ann"].pk, "year": 2024, "month": 2,
    })
    data = response.json()["data"]

    assert data["period"] == "Feb 2024"
    assert data["previous_period"] == "Jan 2024"
    [comparison] = data["kpis"]
    assert comparison["current_value"] == pytest.approx(90)
    assert comparison["previous_value"] == pytest.approx(60)
    assert comparison["change_percent"] == pytest.approx(50)
    assert data["radar"] == [{"name": "Sales Target Achievement", "value": pytest.approx(90), "full_mark": 100.0}]


def test_departments_crud(api_client, sales_kpi_record):
    response = api_client.post("/api/departments/", {"name": "Support", "kpis": [str(sales_kpi_record.pk)]}, format="json")
    assert response.status_code == 201
    department_id = response.json()["data"]["id"]

    response = api_client.post("/api/departments/people/", {"name": "Cid", "department": department_id}, format="json")
    assert response.status_code == 201

    data = api_client.get(f"/api/departments/{department_id}/").json()["data"]
    assert data["people_count"] == 1
    assert data["kpis"] == [{"id": str(sales_kpi_record.pk), "name": "Sales Target Achievement"}]


def test_record_entry_rejects_value_too_large_for_a_float(api_client, sales_team, sales_kpi_record):
    response = api_client.post("/api/kpis/entries/", {
        "kpi": str(sales_kpi_record.pk),
        "person": sales_team["ann"].pk,
        "period_year": 2024,
        "period_month": 2,
        "variable_values": {"actual": 10 ** 400, "target": 1},
    }, format="json")

    assert response.status_code == 400
    assert "variable_values" in response.json()
    assert api_client.get("/api/performance/departments/").status_code == 200


def test_dashboards_survive_stored_value_too_large_for_a_float(api_client, sales_team, sales_kpi_record):
    # Written straight to the table, bypassing serializer validation
    KPIDataEntry.objects.create(
        kpi=sales_kpi_record, person=sales_team["ann"], period_year=2024, period_month=2,
        variable_values={"actual": 10 ** 400, "target": 1},
        date_recorded=datetime(2024, 2, 20, tzinfo=timezone.utc),
    )

    response = api_client.get("/api/performance/departments/")
    assert response.status_code == 200
    assert response.json()["data"][0]["overall_score"] == pytest.approx(60)


def test_update_kpi(api_client, sales_kpi_record):
    url = f"/api/kpis/{sales_kpi_record.pk}/"

    response = api_client.patch(url, {"name": "Sales Attainment", "optimum_type": "target"}, format="json")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Sales Attainment"
    assert data["optimum_type"] == "target"
    assert [v["name"] for v in data["variables"]] == ["actual", "target"]

    response = api_client.patch(url, {
        "formula": "won / leads * 100",
        "variables": [{"name": "won"}, {"name": "leads", "label": "Leads"}],
    }, format="json")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["formula"] == "won / leads * 100"
    assert [v["name"] for v in data["variables"]] == ["won", "leads"]
    assert KPIVariable.objects.filter(kpi=sales_kpi_record).count() == 2


@pytest.mark.parametrize("payload", [
    {"formula": "actual / missing"},
    {"formula": "actual +"},
    {"variables": [{"name": "actual"}]},
    {"variables": [{"name": "actual"}, {"name": "actual"}, {"name": "target"}]},
])
def test_update_kpi_checks_the_combined_definition(api_client, sales_kpi_record, payload):
    response = api_client.patch(f"/api/kpis/{sales_kpi_record.pk}/", payload, format="json")

    assert response.status_code == 400
    sales_kpi_record.refresh_from_db()
    assert sales_kpi_record.formula == "(actual / target) * 100"
    assert KPIVariable.objects.filter(kpi=sales_kpi_record).count() == 2


def test_update_unknown_kpi(api_client):
    response = api_client.patch("/api/kpis/00000000-0000-0000-0000-000000000000/", {"name": "x"}, format="json")
    assert response.status_code == 404


def test_entry_detail_update_and_delete(api_client, sales_team):
    entry = KPIDataEntry.objects.filter(person=sales_team["bob"]).get()
    url = f"/api/kpis/entries/{entry.pk}/"

    assert api_client.get(url).json()["data"]["variable_values"] == {"actual": 30, "target": 100}

    response = api_client.patch(url, {"variable_values": {"actual": 50, "target": 100}}, format="json")
    assert response.status_code == 200
    assert KPIDataEntry.objects.count() == 3
    entry.refresh_from_db()
    assert entry.variable_values == {"actual": 50, "target": 100}
    assert entry.person_id == sales_team["bob"].pk

    ranking = api_client.get("/api/performance/people/", {"year": 2024, "month": 2}).json()["data"]
    assert {p["person_name"]: p["overall_score"] for p in ranking}["Bob"] == pytest.approx(50)

    assert api_client.delete(url).status_code == 204
    assert not KPIDataEntry.objects.filter(pk=entry.pk).exists()
    assert api_client.get(url).status_code == 404


@pytest.mark.parametrize("overrides", [
    {"variable_values": {"revenue": 10}},
    {"variable_values": {"actual": "ten", "target": 100}},
    {"department": "same"},
    {"person": None},
])
def test_entry_update_validation(api_client, sales_team, overrides):
    entry = KPIDataEntry.objects.filter(person=sales_team["bob"]).get()
    if overrides.get("department") == "same":
        overrides = {"department": sales_team["department"].pk}

    response = api_client.patch(f"/api/kpis/entries/{entry.pk}/", overrides, format="json")

    assert response.status_code == 400
    entry.refresh_from_db()
    assert entry.variable_values == {"actual": 30, "target": 100}
    assert entry.person_id == sales_team["bob"].pk


def test_unknown_entry(api_client):
    assert api_client.get("/api/kpis/entries/999/").status_code == 404
    assert api_client.patch("/api/kpis/entries/999/", {}, format="json").status_code == 404
    assert api_client.delete("/api/kpis/entries/999/").status_code == 404


def test_kpi_used_by_a_department_cannot_be_deleted(api_client, sales_team, sales_kpi_record):
    response = api_client.delete(f"/api/kpis/{sales_kpi_record.pk}/")

    assert response.status_code == 400
    assert response.json() == {"status": 400, "message": "Cannot delete KPI that is used in departments"}
    assert KPI.objects.filter(pk=sales_kpi_record.pk).exists()


def test_department_with_people_cannot_be_deleted(api_client, sales_team):
    department = sales_team["department"]

    response = api_client.delete(f"/api/departments/{department.pk}/")

    assert response.status_code == 400
    assert response.json()["status"] == 400
    assert Department.objects.filter(pk=department.pk).exists()
    assert Person.objects.filter(department=department).count() == 2


def test_empty_department_can_be_deleted(api_client):
    department = Department.objects.create(name="Dormant")
    assert api_client.delete(f"/api/departments/{department.pk}/").status_code == 204
    assert not Department.objects.filter(pk=department.pk).exists()


@pytest.mark.parametrize("path", [
    "/api/kpis/{kpi}/aggregate/",
    "/api/performance/trend/",
    "/api/performance/comparison/",
])
@pytest.mark.parametrize("scope", ["person", "department"])
def test_unknown_scope_entity_is_not_found(api_client, sales_kpi_record, path, scope):
    response = api_client.get(path.format(kpi=sales_kpi_record.pk), {"scope": scope, "id": 999, "year": 2024, "month": 2})

    assert response.status_code == 404
    assert response.json()["status"] == 404


def test_scope_id_must_be_an_integer(api_client):
    response = api_client.get("/api/performance/trend/", {"scope": "person", "id": "ann"})
    assert response.status_code == 400
