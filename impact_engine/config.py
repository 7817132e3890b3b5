from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    geonames_username: str | None
    worldpop_api_key: str | None
    worldpop_dataset: str
    worldpop_year: int
    worldpop_max_area_km2: float
    worldpop_allowance_safety: float
    http_timeout_s: float
    log_level: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv()
    return Settings(
        geonames_username=os.getenv("GEONAMES_USERNAME") or None,
        worldpop_api_key=os.getenv("WORLDPOP_API_KEY") or None,
        worldpop_dataset=os.getenv("WORLDPOP_DATASET", "wpgppop"),
        worldpop_year=int(os.getenv("WORLDPOP_YEAR", "2020")),
        worldpop_max_area_km2=float(os.getenv("WORLDPOP_MAX_AREA_KM2", "100000")),
        worldpop_allowance_safety=float(os.getenv("WORLDPOP_ALLOWANCE_SAFETY", "0.97")),
        http_timeout_s=float(os.getenv("HTTP_TIMEOUT_S", "60")),
        log_level=os.getenv("IMPACT_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
