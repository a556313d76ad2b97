"""
Wide (pivoted) table: one row per region, one column per observation.

Built in two steps:
1. pivot: self-join of the observations on region_id. Columns are per-scene
   keys, so overlapping granules from the same orbit stay separate.
2. merge_same_day: regroup columns by acquisition day and resolve each group
   with a reducer (max by default; cloud contamination depresses moisture and
   vegetation indices, so the highest granule value is the cleanest).
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from plotseries.errors import JoinIntegrityError
from plotseries.satellite.regions import Region
from plotseries.satellite.zonal import Observation
from plotseries.tables.tall import observations_table
from plotseries.tables.table import Table

logger = logging.getLogger(__name__)

DATE_KEY_PATTERN = re.compile(r"^\d{8}")


@dataclass
class WideRow:
    region_id: str
    values: Dict[str, float] = field(default_factory=dict)


def is_date_key(key: str) -> bool:
    return bool(DATE_KEY_PATTERN.match(key))


def pivot(observations: Iterable[Observation], regions: Optional[Sequence[Region]] = None) -> List[WideRow]:
    """
    Pivot observations to one row per region keyed by per-scene column.

    Args:
        observations: Output of the zonal extractor for one band
        regions: If given, regions without any observation still get an
            (empty) row

    Returns:
        WideRows in first-seen region order

    Raises:
        JoinIntegrityError: a joined value belongs to a different region, or
            two values land in the same column of one row
    """
    table = observations_table(observations)
    ids = [r["region_id"] for r in table.distinct(["region_id"])]
    if regions is not None:
        seen = set(ids)
        ids += [r.region_id for r in regions if r.region_id not in seen]

    primary = Table({"region_id": rid} for rid in ids)
    secondary = table.filter(lambda r: r["value"] is not None)
    joined = primary.join_save_all(secondary, key="region_id")

    rows = []
    for row in joined:
        region_id = row["region_id"]
        values = {}
        for match in row["matches"]:
            if match["region_id"] != region_id:
                raise JoinIntegrityError(
                    f"Value from {match['region_id']} (scene {match['scene_id']}) joined into row {region_id}"
                )
            if match["column_key"] in values:
                raise JoinIntegrityError(
                    f"Column {match['column_key']} appears twice in row {region_id} (scene {match['scene_id']})"
                )
            values[match["column_key"]] = match["value"]
        rows.append(WideRow(region_id=region_id, values=values))
    return rows


def merge_same_day(rows: Iterable[WideRow], reducer: Callable[[List[float]], float] = max) -> List[WideRow]:
    """
    Collapse columns sharing an acquisition day into one column per day.

    Only keys starting with an 8-digit date are regrouped; any other column
    passes through unchanged.
    """
    merged = []
    for row in rows:
        groups: Dict[str, List[float]] = {}
        passthrough = {}
        for key, value in row.values.items():
            if is_date_key(key):
                groups.setdefault(key[:8], []).append(value)
            else:
                passthrough[key] = value
        values = {day: reducer(vals) for day, vals in groups.items()}
        values.update(passthrough)
        merged.append(WideRow(region_id=row.region_id, values=values))
    return merged


def to_wide(
    observations: Iterable[Observation],
    regions: Optional[Sequence[Region]] = None,
    reducer: Callable[[List[float]], float] = max
) -> List[WideRow]:
    """Pivot then merge same-day granules."""
    rows = merge_same_day(pivot(observations, regions), reducer=reducer)
    logger.info(f"Wide table: {len(rows)} rows, {len(wide_columns(rows))} day columns")
    return rows


def wide_columns(rows: Iterable[WideRow]) -> List[str]:
    """Union of all columns across rows, sorted."""
    cols = set()
    for row in rows:
        cols.update(row.values)
    return sorted(cols)
