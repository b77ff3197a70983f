"""
Named read operations over the Garmin Connect data API.

Each tool resolves its date (default: today), calls the data API through
``GarminClient`` and returns the payload untouched, except the sleep tools,
which split the one large sleep document into a summary and a detail view.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from datetime import date as date_cls, datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from garmin_broker.clients.garmin import GarminClient


def resolve_date(value: Optional[str]) -> str:
    """Return ``value`` validated as YYYY-MM-DD, or today's UTC date."""
    if not value:
        return datetime.now(timezone.utc).date().isoformat()
    try:
        return date_cls.fromisoformat(value).isoformat()
    except ValueError as exc:
        raise ValueError("Invalid date format. Use YYYY-MM-DD.") from exc


@dataclass(frozen=True)
class ToolResult:
    data: Any
    date: Optional[str] = None
    count: Optional[int] = None


class GarminTools:
    """Registry of the read-only tools exposed over HTTP."""

    def __init__(self, client: GarminClient, *, display_name: str) -> None:
        self._client = client
        self._dn = display_name
        self._tools: Dict[str, Callable[..., Awaitable[ToolResult]]] = {
            "get_daily_summary": self.get_daily_summary,
            "get_body_battery": self.get_body_battery,
            "get_sleep_data": self.get_sleep_data,
            "get_sleep_detail": self.get_sleep_detail,
            "get_heart_rate": self.get_heart_rate,
            "get_resting_heart_rate": self.get_resting_heart_rate,
            "get_stress": self.get_stress,
            "get_steps": self.get_steps,
            "get_menstrual_cycle": self.get_menstrual_cycle,
            "get_hrv": self.get_hrv,
            "get_hydration": self.get_hydration,
            "get_activities": self.get_activities,
        }

    def names(self) -> list[str]:
        return sorted(self._tools)

    def has(self, name: str) -> bool:
        return name in self._tools

    async def call(self, name: str, arguments: Dict[str, Any]) -> ToolResult:
        """Dispatch ``name`` with keyword ``arguments``."""
        tool = self._tools[name]
        unexpected = set(arguments) - set(inspect.signature(tool).parameters)
        if unexpected:
            raise ValueError(
                f"Unexpected arguments for {name}: {', '.join(sorted(unexpected))}"
            )
        return await tool(**arguments)

    async def get_daily_summary(self, date: Optional[str] = None) -> ToolResult:
        d = resolve_date(date)
        data = await self._client.get(
            f"/usersummary-service/usersummary/daily/{self._dn}",
            {"calendarDate": d},
        )
        return ToolResult(data=data, date=d)

    async def get_body_battery(self, date: Optional[str] = None) -> ToolResult:
        d = resolve_date(date)
        battery, events = await asyncio.gather(
            self._client.get(
                "/wellness-service/wellness/bodyBattery/reports/daily",
                {"startDate": d, "endDate": d},
            ),
            self._client.get(f"/wellness-service/wellness/bodyBattery/events/{d}"),
        )
        return ToolResult(data={"battery": battery, "events": events}, date=d)

    async def _daily_sleep(self, d: str) -> Dict[str, Any]:
        sleep = await self._client.get(
            f"/wellness-service/wellness/dailySleepData/{self._dn}",
            {"date": d, "nonSleepBufferMinutes": "60"},
        )
        return sleep if isinstance(sleep, dict) else {}

    async def get_sleep_data(self, date: Optional[str] = None) -> ToolResult:
        """Compact sleep summary: score, timing, stage durations, vitals."""
        d = resolve_date(date)
        sleep = await self._daily_sleep(d)
        dto = sleep.get("dailySleepDTO") or {}
        overall = (dto.get("sleepScores") or {}).get("overall") or {}
        summary = {
            "calendarDate": dto.get("calendarDate"),
            "sleepScore": overall.get("value"),
            "sleepQuality": overall.get("qualifierKey"),
            "sleepStartLocal": dto.get("sleepStartTimestampLocal"),
            "sleepEndLocal": dto.get("sleepEndTimestampLocal"),
            "sleepDurationSecs": dto.get("sleepTimeSeconds"),
            "deepSleepSecs": dto.get("deepSleepSeconds"),
            "lightSleepSecs": dto.get("lightSleepSeconds"),
            "remSleepSecs": dto.get("remSleepSeconds"),
            "awakeSleepSecs": dto.get("awakeSleepSeconds"),
            "averageSpO2": dto.get("averageSpO2Value"),
            "lowestSpO2": dto.get("lowestSpO2Value"),
            "averageRespiration": dto.get("averageRespirationValue"),
            "restingHeartRate": sleep.get("restingHeartRate"),
            "avgOvernightHrv": sleep.get("avgOvernightHrv"),
            "hrvStatus": sleep.get("hrvStatus"),
            "bodyBatteryChange": sleep.get("bodyBatteryChange"),
            "restlessMomentsCount": sleep.get("restlessMomentsCount"),
            "sleepLevels": sleep.get("sleepLevels"),
        }
        return ToolResult(data=summary, date=d)

    async def get_sleep_detail(self, date: Optional[str] = None) -> ToolResult:
        """Per-epoch sleep series. Large (around 200KB)."""
        d = resolve_date(date)
        sleep = await self._daily_sleep(d)
        detail = {
            "sleepMovement": sleep.get("sleepMovement"),
            "sleepHeartRate": sleep.get("sleepHeartRate"),
            "sleepStress": sleep.get("sleepStress"),
            "sleepBodyBattery": sleep.get("sleepBodyBattery"),
            "hrvData": sleep.get("hrvData"),
            "spO2Data": sleep.get("wellnessEpochSPO2DataDTOList"),
            "respirationData": sleep.get("wellnessEpochRespirationDataDTOList"),
            "restlessMoments": sleep.get("sleepRestlessMoments"),
        }
        return ToolResult(data=detail, date=d)

    async def get_heart_rate(self, date: Optional[str] = None) -> ToolResult:
        d = resolve_date(date)
        data = await self._client.get(
            f"/wellness-service/wellness/dailyHeartRate/{self._dn}", {"date": d}
        )
        return ToolResult(data=data, date=d)

    async def get_resting_heart_rate(self, date: Optional[str] = None) -> ToolResult:
        d = resolve_date(date)
        data = await self._client.get(
            f"/userstats-service/wellness/daily/{self._dn}",
            {"fromDate": d, "untilDate": d, "metricId": "60"},
        )
        return ToolResult(data=data, date=d)

    async def get_stress(self, date: Optional[str] = None) -> ToolResult:
        d = resolve_date(date)
        data = await self._client.get(f"/wellness-service/wellness/dailyStress/{d}")
        return ToolResult(data=data, date=d)

    async def get_steps(self, date: Optional[str] = None) -> ToolResult:
        d = resolve_date(date)
        data = await self._client.get(
            f"/wellness-service/wellness/dailySummaryChart/{self._dn}", {"date": d}
        )
        return ToolResult(data=data, date=d)

    async def get_menstrual_cycle(self, date: Optional[str] = None) -> ToolResult:
        d = resolve_date(date)
        data = await self._client.get(
            f"/periodichealth-service/menstrualcycle/dayview/{d}"
        )
        return ToolResult(data=data, date=d)

    async def get_hrv(self, date: Optional[str] = None) -> ToolResult:
        d = resolve_date(date)
        data = await self._client.get(f"/hrv-service/hrv/{d}")
        return ToolResult(data=data, date=d)

    async def get_hydration(self, date: Optional[str] = None) -> ToolResult:
        d = resolve_date(date)
        data = await self._client.get(
            f"/usersummary-service/usersummary/hydration/daily/{d}"
        )
        return ToolResult(data=data, date=d)

    async def get_activities(self, limit: int = 5) -> ToolResult:
        if limit < 1:
            raise ValueError("limit must be at least 1.")
        data = await self._client.get(
            "/activitylist-service/activities/search/activities",
            {"start": "0", "limit": str(limit)},
        )
        count = len(data) if isinstance(data, list) else 0
        return ToolResult(data=data, count=count)


__all__ = ["GarminTools", "ToolResult", "resolve_date"]
