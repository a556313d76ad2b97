"""
Tall (long) export table: one row per region per date.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List

from plotseries.satellite.zonal import Observation
from plotseries.tables.table import Table

logger = logging.getLogger(__name__)

DATE_KEYS = ("day", "scene")


@dataclass(frozen=True)
class TallRecord:
    region_id: str
    date: str
    band: str
    value: float


def observations_table(observations: Iterable[Observation], date_key: str = "day") -> Table:
    """Observations as rows, keeping no-data entries (value None)."""
    if date_key not in DATE_KEYS:
        raise ValueError(f"Unknown date key: {date_key}. Available: {list(DATE_KEYS)}")
    return Table(
        {
            "region_id": o.region_id,
            "scene_id": o.scene_id,
            "date": o.date if date_key == "day" else o.column_key,
            "column_key": o.column_key,
            "band": o.band,
            "value": o.value,
        }
        for o in observations
    )


def to_tall(observations: Iterable[Observation], date_key: str = "day") -> List[TallRecord]:
    """
    Drop no-data, keep one row per (region_id, date), sort by region_id.

    Args:
        observations: Output of the zonal extractor for one band
        date_key: "day" keys rows by acquisition day (YYYYMMDD); "scene" keys
            them by the per-scene column key, so same-day granules stay
            separate rows

    Returns:
        TallRecords. Which duplicate survives is the first in input order.
    """
    table = (
        observations_table(observations, date_key)
        .filter(lambda r: r["value"] is not None)
        .distinct(["region_id", "date"])
        .sort("region_id")
    )
    records = [TallRecord(r["region_id"], r["date"], r["band"], r["value"]) for r in table]
    logger.info(f"Tall table: {len(records)} rows")
    return records
