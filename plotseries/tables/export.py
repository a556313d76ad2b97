"""
CSV writers for the tall, wide and raw observation tables.
"""

import csv
import logging
from pathlib import Path
from typing import Iterable, List

from plotseries.satellite.zonal import Observation
from plotseries.tables.tall import TallRecord
from plotseries.tables.wide import WideRow, wide_columns

logger = logging.getLogger(__name__)


def tall_filename(band: str) -> str:
    return f"{band}_time_series_multiple_tall.csv"


def wide_filename(band: str) -> str:
    return f"{band}_time_series_multiple_wide.csv"


def observations_filename(band: str) -> str:
    return f"{band}_observations.csv"


def write_tall_csv(records: List[TallRecord], band: str, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["region_id", "date", band])
        for r in records:
            writer.writerow([r.region_id, r.date, r.value])
    logger.info(f"Wrote {len(records)} rows to {path}")
    return path


def write_wide_csv(rows: List[WideRow], path: Path) -> Path:
    """Columns are region_id then every day seen in any row; missing days are blank."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    columns = wide_columns(rows)
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["region_id"] + columns)
        for row in rows:
            writer.writerow([row.region_id] + [row.values.get(c, "") for c in columns])
    logger.info(f"Wrote {len(rows)} rows x {len(columns)} columns to {path}")
    return path


def write_observations_csv(observations: Iterable[Observation], band: str, path: Path) -> Path:
    """Unfiltered observations with the NODATA sentinel written for missing values."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["region_id", "scene_id", "date", band])
        for o in observations:
            writer.writerow([o.region_id, o.scene_id, o.date, o.export_value()])
            count += 1
    logger.info(f"Wrote {count} observations to {path}")
    return path
