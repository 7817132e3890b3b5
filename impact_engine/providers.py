from __future__ import annotations
import json
import logging
import math
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

import httpx

from .config import Settings
from .errors import MissingDataError, ProviderError
from .geo import circle_as_geojson, disk_area_km2, radius_km_from_area, sector_as_geojson

logger = logging.getLogger(__name__)

# -------------------------------
# WorldPop constants + helpers
# -------------------------------
WORLDPOP_STATS_URL = "https://api.worldpop.org/v1/services/stats"
WORLDPOP_TASK_URL = "https://api.worldpop.org/v1/tasks/{}"
GEONAMES_OCEAN_URL = "http://api.geonames.org/oceanJSON"

PENDING_TASK_STATES = {"started", "finished", "created", "queued", "running"}


def mask_key(s: Optional[str]) -> Optional[str]:
    if not s:
        return s
    return s[:3] + "***" + s[-3:] if len(s) > 6 else "***"


def parse_allowance_from_error(msg: str) -> Optional[Tuple[float, float]]:
    """Parse: 'The requested area was too large. Requested 283030.91 km^2 but allowance was 100000.'"""
    m = re.search(r"Requested\s+(\d+(?:\.\d+)?).*?allowance was\s+(\d+(?:\.\d+)?)", msg)
    if m:
        return float(m.group(1)), float(m.group(2))
    return None


def _extract_population_only(payload: Dict[str, Any], ctx: str) -> float:
    """Return total_population as float (0 is valid)."""
    logger.debug("[%s] payload keys=%s", ctx, list(payload.keys()))
    if "total_population" in payload:
        pop = float(payload["total_population"])
        logger.debug("[%s] total_population=%s", ctx, pop)
        return pop
    raise ProviderError("WorldPop payload missing 'total_population'.")


@dataclass(frozen=True)
class PopulationQuery:
    population: float
    radius_km: float
    dataset: str
    year: int
    slices: int = 1
    per_slice: tuple[float, ...] = ()

    @property
    def tiled(self) -> bool:
        return self.slices > 1


@dataclass
class WorldPopPopulationProvider:
    """
    PopulationDensityProvider backed by the WorldPop stats API.
    Disks larger than the per-request area allowance are split into pie slices and summed.
    Owns no global state: the httpx client and the memo are scoped to this instance.
    """
    client: httpx.Client
    dataset: str = "wpgppop"
    year: int = 2020
    api_key: Optional[str] = None
    max_area_km2: float = 100_000.0
    allowance_safety: float = 0.97
    circle_steps: int = 64
    log_body_chars: int = 800
    max_wait_s: float = 20.0
    poll_interval_s: float = 0.8
    retry_attempts: int = 3
    sleep: Callable[[float], None] = time.sleep
    _memo: Dict[Tuple[float, float, float], float] = field(default_factory=dict, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.Client) -> WorldPopPopulationProvider:
        return cls(
            client=client,
            dataset=settings.worldpop_dataset,
            year=settings.worldpop_year,
            api_key=settings.worldpop_api_key,
            max_area_km2=settings.worldpop_max_area_km2,
            allowance_safety=settings.worldpop_allowance_safety,
        )

    # --- PopulationDensityProvider ---
    def population_density(self, lat: float, lng: float, radius_m: float) -> float:
        key = (round(lat, 6), round(lng, 6), round(radius_m, 3))
        if key not in self._memo:
            try:
                q = self.population_in_disk(lat, lng, radius_m / 1000.0)
            except (ProviderError, httpx.HTTPError) as exc:
                raise MissingDataError(f"WorldPop lookup failed: {exc}") from exc
            area = disk_area_km2(radius_m)
            self._memo[key] = q.population / area if area > 0.0 else 0.0
        return self._memo[key]

    # --- http helpers ---
    def _get_with_retries(self, url: str, params: Dict[str, Any], timeout_note: str = "") -> httpx.Response:
        last_exc = None
        for i in range(1, self.retry_attempts + 1):
            try:
                logger.debug("[http.try] attempt=%d url=%s", i, url)
                r = self.client.get(url, params=params)
                logger.debug("[http.try] status=%d attempt=%d", r.status_code, i)
                return r
            except httpx.ReadTimeout as e:
                last_exc = e
                logger.warning("[http.timeout] attempt=%d %s error=%s", i, timeout_note, e)
                if i < self.retry_attempts:
                    self.sleep(0.8 * i)
        raise ProviderError(f"WorldPop timed out after {self.retry_attempts} attempts: {last_exc}", 504)

    def _fetch_task_result(self, taskid: str) -> Dict[str, Any]:
        """Poll /v1/tasks/{taskid} until finished or timeout; bubble any API error."""
        logger.debug("[task] fetching task result taskid=%s", taskid)
        deadline = time.monotonic() + self.max_wait_s
        attempt = 0
        while True:
            attempt += 1
            tr = self.client.get(WORLDPOP_TASK_URL.format(taskid))
            preview = tr.text[:self.log_body_chars] if tr.text else ""
            logger.debug("[task] attempt#%d status=%d preview=%r", attempt, tr.status_code, preview)
            if tr.is_error:
                raise ProviderError(f"WorldPop task HTTP {tr.status_code}")
            last = tr.json()
            tstatus = last.get("status")
            terror = last.get("error")

            if tstatus == "finished" and not terror:
                return last.get("data") or {}

            if terror:
                msg = last.get("error_message") or "WorldPop task failed."
                logger.warning("[task.error] %s", msg)
                raise ProviderError(msg)

            if time.monotonic() >= deadline:
                logger.warning("[timeout] taskid=%s state=%s", taskid, tstatus)
                raise ProviderError(f"WorldPop task {taskid} is still {tstatus}. Try again later.", 504)
            self.sleep(self.poll_interval_s)

    def _population_for_geojson(self, gj: dict) -> float:
        """
        Request stats for one polygon and return total_population.
        Accept inline data regardless of 'status', otherwise poll the task.
        """
        gj_str = json.dumps(gj, separators=(",", ":"))
        params: Dict[str, Any] = {
            "dataset": self.dataset,
            "year": self.year,
            "geojson": gj_str,
            "runasync": "false",
        }
        if self.api_key:
            params["key"] = self.api_key
        logger.debug("[request] GET %s dataset=%s year=%s key=%s geojson_len=%d",
                     WORLDPOP_STATS_URL, self.dataset, self.year, mask_key(self.api_key), len(gj_str))

        r = self._get_with_retries(WORLDPOP_STATS_URL, params, timeout_note="stats")
        try:
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPStatusError as he:
            raise ProviderError(f"WorldPop HTTP {he.response.status_code}") from he
        except ValueError as je:
            raise ProviderError(f"WorldPop returned non-JSON: {je}") from je

        payload = data.get("data") or {}
        if isinstance(payload, dict) and "total_population" in payload:
            return _extract_population_only(payload, "stats.data")

        if data.get("error"):
            emsg = data.get("error_message") or "WorldPop reported an error."
            parsed = parse_allowance_from_error(emsg) if "allowance" in emsg else None
            if parsed:
                logger.warning("[server.allowance] requested=%.2f > allowed=%.2f", *parsed)
            raise ProviderError(emsg)

        if data.get("taskid") and data.get("status") in PENDING_TASK_STATES:
            tdata = self._fetch_task_result(data["taskid"])
            return _extract_population_only(tdata, "task.data")

        logger.error("[unexpected] response shape with no inline data and no pollable task: %s", data)
        raise ProviderError("WorldPop returned an unexpected response.")

    def _slice_population(self, lon: float, lat: float, radius_km: float, b_start: float, b_end: float) -> float:
        gj = sector_as_geojson(lon, lat, radius_km, b_start, b_end, circle_steps=self.circle_steps)
        try:
            return self._population_for_geojson(gj)
        except ProviderError as pe:
            # a slice that still trips the allowance is split once into two half-slices
            if "allowance" not in str(pe):
                raise
            logger.warning("[slice.allowance] subdividing arc=[%.3f,%.3f]", b_start, b_end)
            mid = (b_start + b_end) / 2
            return sum(
                self._population_for_geojson(
                    sector_as_geojson(lon, lat, radius_km, bs, be, circle_steps=self.circle_steps))
                for bs, be in ((b_start, mid), (mid, b_end))
            )

    def population_in_disk(self, lat: float, lon: float, radius_km: float) -> PopulationQuery:
        total_area = disk_area_km2(radius_km * 1000.0)
        per_slice_target = self.max_area_km2 * self.allowance_safety
        logger.info("[population] lat=%s lon=%s radius_km=%s area_km2=%.2f", lat, lon, radius_km, total_area)

        if total_area <= per_slice_target:
            gj = circle_as_geojson(lon, lat, radius_km, steps=self.circle_steps)
            pop = self._population_for_geojson(gj)
            return PopulationQuery(pop, radius_km, self.dataset, self.year)

        # choose N so each slice area <= safety * allowance
        n = max(2, math.ceil(total_area / per_slice_target))
        arc = 2 * math.pi / n
        logger.info("[tiling] slices=%d arc_deg=%.2f safe_slice_radius_km=%.1f",
                    n, math.degrees(arc), radius_km_from_area(per_slice_target))
        per_slice = []
        for i in range(n):
            pop_i = self._slice_population(lon, lat, radius_km, i * arc, (i + 1) * arc)
            per_slice.append(pop_i)
            logger.debug("[slice.done] %d/%d pop=%s", i + 1, n, pop_i)
        return PopulationQuery(sum(per_slice), radius_km, self.dataset, self.year,
                               slices=n, per_slice=tuple(per_slice))


@dataclass
class GeoNamesOceanLookup:
    client: httpx.Client
    username: str

    def is_ocean(self, lat: float, lng: float) -> bool:
        params = {"lat": lat, "lng": lng, "username": self.username}
        try:
            r = self.client.get(GEONAMES_OCEAN_URL, params=params)
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPError as e:
            raise ProviderError(f"Error fetching data from GeoNames: {e}") from e
        if "status" in data and "ocean" not in data:
            # GeoNames answers 200 with a status block for both "not ocean" (15) and auth errors
            code = data["status"].get("value")
            if code == 15:
                return False
            raise ProviderError(f"GeoNames error: {data['status'].get('message')}")
        return bool(data.get("ocean"))

    def terrain_at(self, lat: float, lng: float) -> str:
        return "water" if self.is_ocean(lat, lng) else "rock"
