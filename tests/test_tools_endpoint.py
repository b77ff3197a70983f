try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import sqlite3
from contextlib import closing

import httpx
import pytest

from garmin_broker.clients.garmin import GarminClient
from garmin_broker.clients.garmin_auth import CredentialsMissingError
from garmin_broker.clients.kv_store import SQLiteKVStore
from garmin_broker.core.config import GarminSettings
from garmin_broker.main import app
from garmin_broker.services import GarminTools

AUTH = {"Authorization": "Bearer test-api-key"}

SLEEP = {
    "dailySleepDTO": {
        "calendarDate": "2024-03-05",
        "sleepTimeSeconds": 27000,
        "deepSleepSeconds": 5400,
        "lightSleepSeconds": 14400,
        "remSleepSeconds": 6300,
        "awakeSleepSeconds": 900,
        "sleepStartTimestampLocal": 1709596800000,
        "sleepEndTimestampLocal": 1709624700000,
        "averageSpO2Value": 95.0,
        "lowestSpO2Value": 89,
        "averageRespirationValue": 14.0,
        "sleepScores": {"overall": {"value": 82, "qualifierKey": "GOOD"}},
    },
    "restingHeartRate": 48,
    "avgOvernightHrv": 61.0,
    "hrvStatus": "BALANCED",
    "bodyBatteryChange": 55,
    "restlessMomentsCount": 31,
    "sleepLevels": [{"activityLevel": 1.0}],
    "sleepMovement": [{"activityLevel": 0.4}],
    "sleepHeartRate": [{"value": 50}],
    "sleepStress": [{"value": 12}],
    "sleepBodyBattery": [{"value": 80}],
    "hrvData": [{"value": 60}],
    "wellnessEpochSPO2DataDTOList": [{"spo2Reading": 95}],
    "wellnessEpochRespirationDataDTOList": [{"respirationValue": 14.0}],
    "sleepRestlessMoments": [{"value": 1}],
}


class DummyTokenSupplier:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error = error

    async def get_access_token(self) -> str:
        if self.error is not None:
            raise self.error
        return "access"

    def invalidate(self) -> None:
        pass


@pytest.fixture()
def garmin_requests():
    from garmin_broker import dependencies

    seen: list[httpx.Request] = []
    state: dict = {"supplier": DummyTokenSupplier()}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.startswith("/activitylist-service"):
            return httpx.Response(200, json=[{"activityId": 1}, {"activityId": 2}])
        if "dailySleepData" in request.url.path:
            return httpx.Response(200, json=SLEEP)
        return httpx.Response(200, json={"path": request.url.path})

    def build_tools() -> GarminTools:
        settings = GarminSettings(GARMIN_DISPLAY_NAME="runner")
        client = GarminClient(
            state["supplier"], settings, transport=httpx.MockTransport(handler)
        )
        return GarminTools(client, display_name=settings.display_name)

    app.dependency_overrides[dependencies.get_garmin_tools] = build_tools

    yield seen, state

    app.dependency_overrides.clear()


async def _post(path: str, **kwargs) -> httpx.Response:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        return await client.post(path, **kwargs)


@pytest.mark.anyio
async def test_health_is_public() -> None:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_tool_call_requires_api_key(garmin_requests):
    seen, _ = garmin_requests

    missing = await _post("/api/tools/get_hrv", json={})
    wrong = await _post(
        "/api/tools/get_hrv", json={}, headers={"Authorization": "Bearer nope"}
    )

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert seen == []


@pytest.mark.anyio
async def test_unknown_tool_returns_404(garmin_requests):
    response = await _post("/api/tools/get_nothing", json={}, headers=AUTH)

    assert response.status_code == 404


@pytest.mark.anyio
async def test_list_tools(garmin_requests):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        response = await client.get("/api/tools", headers=AUTH)

    assert response.status_code == 200
    assert "get_body_battery" in response.json()["tools"]


@pytest.mark.anyio
async def test_dated_tool_returns_success_payload(garmin_requests):
    seen, _ = garmin_requests

    response = await _post(
        "/api/tools/get_heart_rate", json={"date": "2024-03-05"}, headers=AUTH
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["date"] == "2024-03-05"
    assert body["data"] == {"path": "/wellness-service/wellness/dailyHeartRate/runner"}
    assert seen[0].url.params["date"] == "2024-03-05"


@pytest.mark.anyio
async def test_body_battery_combines_two_reads(garmin_requests):
    seen, _ = garmin_requests

    response = await _post(
        "/api/tools/get_body_battery", json={"date": "2024-03-05"}, headers=AUTH
    )

    body = response.json()
    assert body["success"] is True
    assert set(body["data"]) == {"battery", "events"}
    assert sorted(r.url.path for r in seen) == [
        "/wellness-service/wellness/bodyBattery/events/2024-03-05",
        "/wellness-service/wellness/bodyBattery/reports/daily",
    ]


@pytest.mark.anyio
async def test_activities_reports_count(garmin_requests):
    seen, _ = garmin_requests

    response = await _post("/api/tools/get_activities", json={"limit": 2}, headers=AUTH)

    body = response.json()
    assert body["success"] is True
    assert body["count"] == 2
    assert seen[0].url.params["limit"] == "2"


@pytest.mark.anyio
async def test_invalid_date_is_rendered_as_failure(garmin_requests):
    seen, _ = garmin_requests

    response = await _post("/api/tools/get_hrv", json={"date": "03/05/2024"}, headers=AUTH)

    assert response.status_code == 200
    assert response.json() == {
        "success": False,
        "error": "Invalid date format. Use YYYY-MM-DD.",
    }
    assert seen == []


@pytest.mark.anyio
async def test_unexpected_argument_is_rendered_as_failure(garmin_requests):
    response = await _post("/api/tools/get_activities", json={"date": "2024-03-05"}, headers=AUTH)

    body = response.json()
    assert body["success"] is False
    assert "date" in body["error"]


@pytest.mark.anyio
async def test_missing_credentials_are_rendered_as_failure(garmin_requests):
    seen, state = garmin_requests
    state["supplier"] = DummyTokenSupplier(
        error=CredentialsMissingError("oauth2_token", "No OAuth2 token in the credential store.")
    )

    response = await _post("/api/tools/get_stress", headers=AUTH)

    assert response.status_code == 200
    assert response.json() == {
        "success": False,
        "error": "No OAuth2 token in the credential store.",
    }
    assert seen == []


@pytest.mark.anyio
async def test_storage_failure_is_rendered_as_failure(tmp_path):
    from garmin_broker import dependencies

    db_path = tmp_path / "kv.db"
    store = SQLiteKVStore(str(db_path))
    with closing(sqlite3.connect(db_path)) as conn, conn:
        conn.execute("DROP TABLE kv_records")
    app.dependency_overrides[dependencies.get_credential_store] = lambda: store

    try:
        response = await _post("/api/tools/get_hrv", json={}, headers=AUTH)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("Failed to read oauth2_token")


@pytest.mark.anyio
async def test_sleep_data_returns_summary(garmin_requests):
    seen, _ = garmin_requests

    response = await _post(
        "/api/tools/get_sleep_data", json={"date": "2024-03-05"}, headers=AUTH
    )

    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["sleepScore"] == 82
    assert data["sleepQuality"] == "GOOD"
    assert data["sleepDurationSecs"] == 27000
    assert data["lowestSpO2"] == 89
    assert data["hrvStatus"] == "BALANCED"
    assert data["sleepLevels"] == [{"activityLevel": 1.0}]
    assert "sleepMovement" not in data
    assert seen[0].url.params["nonSleepBufferMinutes"] == "60"


@pytest.mark.anyio
async def test_sleep_detail_returns_epoch_series(garmin_requests):
    seen, _ = garmin_requests

    response = await _post(
        "/api/tools/get_sleep_detail", json={"date": "2024-03-05"}, headers=AUTH
    )

    body = response.json()
    assert body["success"] is True
    assert body["date"] == "2024-03-05"
    assert body["data"] == {
        "sleepMovement": [{"activityLevel": 0.4}],
        "sleepHeartRate": [{"value": 50}],
        "sleepStress": [{"value": 12}],
        "sleepBodyBattery": [{"value": 80}],
        "hrvData": [{"value": 60}],
        "spO2Data": [{"spo2Reading": 95}],
        "respirationData": [{"respirationValue": 14.0}],
        "restlessMoments": [{"value": 1}],
    }
    assert seen[0].url.path == "/wellness-service/wellness/dailySleepData/runner"


@pytest.mark.anyio
async def test_non_positive_limit_is_rendered_as_failure(garmin_requests):
    seen, _ = garmin_requests

    response = await _post("/api/tools/get_activities", json={"limit": 0}, headers=AUTH)

    assert response.status_code == 200
    assert response.json() == {"success": False, "error": "limit must be at least 1."}
    assert seen == []


@pytest.mark.anyio
async def test_large_limit_is_passed_through(garmin_requests):
    seen, _ = garmin_requests

    response = await _post("/api/tools/get_activities", json={"limit": 500}, headers=AUTH)

    assert response.json()["success"] is True
    assert seen[0].url.params["limit"] == "500"
