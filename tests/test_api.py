"""
Tests for footprint_api/main.py using FastAPI's TestClient and an in-memory store.
"""
import pytest
from fastapi.testclient import TestClient

from carbon_footprint.config import Config
from carbon_footprint.emission_factors import EmissionFactorRegistry, get_default_registry
from carbon_footprint.storage import MemorySubmissionStore
from footprint_api.main import create_app


SURVEY = {
    "calculationType": "individual",
    "location": "us",
    "householdSize": 2,
    "incomeRange": "medium",
    "homeType": "house",
    "electricityUsage": 600,
    "gasUsage": 80,
    "renewableSources": [],
    "primaryTransport": "car",
    "carType": "sedan",
    "annualMileage": 12000,
}


@pytest.fixture
def store():
    return MemorySubmissionStore()


@pytest.fixture
def client(store):
    app = create_app(Config(), registry=get_default_registry(), store=store)
    with TestClient(app) as c:
        yield c


class TestHealth:

    def test_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestCalculateFootprint:

    def test_returns_rounded_result(self, client):
        resp = client.post("/api/calculate-footprint", json=SURVEY)
        assert resp.status_code == 200
        body = resp.json()
        assert body["totalEmissions"] == 14.5
        assert body["homeEmissions"] == 8.1
        assert body["transportEmissions"] == 4.7
        assert body["foodEmissions"] == 1.7

    def test_persists_submission_without_recommendations(self, client, store):
        body = client.post("/api/calculate-footprint", json=SURVEY).json()
        record = store.get(body["submissionId"])
        assert record is not None
        assert record.recommendations == ()

    def test_missing_location_defaults_to_global(self, client):
        payload = {k: v for k, v in SURVEY.items() if k != "location"}
        resp = client.post("/api/calculate-footprint", json=payload)
        assert resp.status_code == 200
        # 600 kWh at the global 0.475 grid factor
        assert resp.json()["homeEmissions"] == 8.5

    def test_invalid_survey_is_400(self, client):
        resp = client.post("/api/calculate-footprint", json=dict(SURVEY, primaryTransport="rocket"))
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("Validation error:")

    def test_missing_calculation_type_is_400(self, client):
        payload = {k: v for k, v in SURVEY.items() if k != "calculationType"}
        assert client.post("/api/calculate-footprint", json=payload).status_code == 400

    @pytest.mark.parametrize("usage", ["inf", "NaN", 1e308])
    def test_non_finite_or_huge_usage_is_400(self, client, store, usage):
        resp = client.post("/api/calculate-footprint", json=dict(SURVEY, electricityUsage=usage))
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("Validation error:")
        assert len(store) == 0

    def test_uses_injected_empty_registry(self, store):
        app = create_app(Config(), registry=EmissionFactorRegistry([]), store=store)
        with TestClient(app) as c:
            body = c.post("/api/calculate-footprint", json={
                "calculationType": "individual", "location": "us", "electricityUsage": 1000,
            }).json()
        # category fallback 0.475, not the us seed 0.42
        assert body["homeEmissions"] == 5.7
        assert len(store) == 1


class TestRecommendations:

    def test_returns_ordered_list(self, client):
        resp = client.post("/api/recommendations", json={
            "footprintData": {"primaryTransport": "car", "renewableSources": []},
            "totalEmissions": 14.5,
            "homeEmissions": 8.1,
            "transportEmissions": 4.7,
            "foodEmissions": 1.7,
        })
        assert resp.status_code == 200
        ids = [r["id"] for r in resp.json()["recommendations"]]
        assert ids == ["rec1", "rec2", "rec3", "rec5", "rec6"]
        assert resp.json()["recommendations"][0]["iconName"] == "home-smile-line"

    def test_bad_body_is_400(self, client):
        resp = client.post("/api/recommendations", json={"footprintData": {}})
        assert resp.status_code == 400


class TestSubmissions:

    def test_create_and_fetch(self, client):
        resp = client.post("/api/submissions", json=SURVEY)
        assert resp.status_code == 201
        created = resp.json()
        assert created["id"] == 1
        assert created["totalEmissions"] == 14.5
        assert created["recommendations"][-1]["id"] == "rec6"
        assert created["summary"]["comparison"]["isBetter"] is True
        assert created["createdAt"]

        fetched = client.get(f"/api/submissions/{created['id']}").json()
        assert fetched["survey"]["location"] == "us"
        assert [r["id"] for r in fetched["recommendations"]] == [r["id"] for r in created["recommendations"]]

    def test_missing_submission_is_404(self, client):
        assert client.get("/api/submissions/123").status_code == 404

    def test_recent(self, client):
        for _ in range(3):
            client.post("/api/submissions", json=SURVEY)
        resp = client.get("/api/submissions", params={"limit": 2})
        assert [r["id"] for r in resp.json()] == [3, 2]


class TestReferenceData:

    def test_countries(self, client):
        countries = client.get("/api/countries").json()
        assert any(c["code"] == "in" and c["averageFootprint"] == 1.9 for c in countries)

    def test_country_by_code(self, client):
        assert client.get("/api/countries/FR").json()["name"] == "France"
        assert client.get("/api/countries/zz").status_code == 404

    def test_emission_factors_by_category(self, client):
        factors = client.get("/api/emission-factors", params={"category": "car"}).json()
        assert {f["key"] for f in factors} == {"sedan", "suv", "truck", "hybrid", "electric", "global"}
