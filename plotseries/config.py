import json
from datetime import datetime
from pathlib import Path

from plotseries.errors import ConfigError
from plotseries.satellite.regions import check_unique_ids, regions_from_bboxes, regions_from_points
from plotseries.satellite.scene import naive_utc
from plotseries.satellite.sensors import CANONICAL_BANDS, INDEX_BANDS, SENSOR_FAMILIES

REDUCERS = {"max": max, "min": min, "mean": lambda vals: sum(vals) / len(vals)}


def _parse_date(value):
    if value is None:
        return value
    if isinstance(value, datetime):
        return naive_utc(value)
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid date {value!r}, expected YYYY-MM-DD") from e


def _parse_number(name, value):
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


def _parse_point(point):
    try:
        x, y = point
        return (float(x), float(y))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Point must be [x, y], got {point!r}") from e


def _parse_window(family, window):
    if not isinstance(window, (list, tuple)) or len(window) != 2:
        raise ConfigError(f"Window override for {family} must be [start, end], got {window!r}")
    return (_parse_date(window[0]), _parse_date(window[1]))


class PipelineConfig:
    def __init__(self,
                points=None,
                bboxes=None,
                buffer=50.0,
                families=("landsat5", "landsat7", "landsat8"),
                bands=CANONICAL_BANDS,
                start=None,
                end=None,
                scale=None,
                date_key="day",
                reducer="max",
                max_workers=None,
                output_dir="./output",
                window_overrides=None):

        self.points = [_parse_point(p) for p in (points or [])]
        self.bboxes = dict(bboxes or {})  # region_id -> [x_min, y_min, x_max, y_max]
        self.buffer = _parse_number("buffer", buffer)
        self.families = tuple(families)
        self.bands = tuple(bands)
        self.start = _parse_date(start)
        self.end = _parse_date(end)
        self.scale = _parse_number("scale", scale)  # None = coarsest family scale
        self.date_key = date_key  # 'day' or 'scene'
        self.reducer = reducer  # same-day merge: 'max', 'min', 'mean'
        self.max_workers = max_workers
        self.output_dir = Path(output_dir)
        self.window_overrides = {
            name: _parse_window(name, w)
            for name, w in (window_overrides or {}).items()
        }
        self.validate()

    @classmethod
    def landsat(cls, **kwargs):
        """Landsat 5/7/8 harmonized reflectance, one tall row per granule."""
        defaults = dict(
            families=("landsat5", "landsat7", "landsat8"),
            bands=CANONICAL_BANDS,
            buffer=50.0,
            scale=30,
            date_key="scene",
        )
        defaults.update(kwargs)
        return cls(**defaults)

    @classmethod
    def sentinel2(cls, **kwargs):
        """Sentinel-2 L2A reflectance plus vegetation and moisture indices."""
        defaults = dict(
            families=("sentinel2",),
            bands=CANONICAL_BANDS + INDEX_BANDS,
            buffer=5.0,
            scale=10,
            start="2019-01-01",
            end="2022-12-31",
            date_key="day",
        )
        defaults.update(kwargs)
        return cls(**defaults)

    @classmethod
    def from_dict(cls, data: dict):
        data = dict(data)
        variant = data.pop("variant", None)
        if variant is None:
            return cls(**data)
        if variant not in ("landsat", "sentinel2"):
            raise ConfigError(f"Unknown variant: {variant}")
        return getattr(cls, variant)(**data)

    @classmethod
    def from_file(cls, path):
        """Load a JSON config. Fails fast on a missing file or malformed content."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config not found: {path}")
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Expected JSON object at {path}")
        try:
            return cls.from_dict(data)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid config in {path}: {e}") from e

    def validate(self):
        unknown = [f for f in self.families if f not in SENSOR_FAMILIES]
        if unknown:
            raise ConfigError(f"Unknown sensor families: {unknown}")
        allowed = set(CANONICAL_BANDS) | set(INDEX_BANDS)
        bad_bands = [b for b in self.bands if b not in allowed]
        if bad_bands:
            raise ConfigError(f"Unknown bands: {bad_bands}")
        if self.date_key not in ("day", "scene"):
            raise ConfigError(f"date_key must be 'day' or 'scene', got {self.date_key!r}")
        if self.reducer not in REDUCERS:
            raise ConfigError(f"Unknown reducer: {self.reducer}. Available: {list(REDUCERS)}")
        if self.buffer is None or self.buffer <= 0:
            raise ConfigError("buffer must be positive")
        if self.scale is not None and self.scale <= 0:
            raise ConfigError("scale must be positive")
        if self.start and self.end and self.start >= self.end:
            raise ConfigError(f"start {self.start:%Y-%m-%d} is not before end {self.end:%Y-%m-%d}")
        unknown_windows = [f for f in self.window_overrides if f not in self.families]
        if unknown_windows:
            raise ConfigError(f"Window overrides for unused families: {unknown_windows}")

    @property
    def derive_indices(self) -> bool:
        return any(b in INDEX_BANDS for b in self.bands)

    @property
    def run_window(self):
        return (self.start, self.end)

    def resolved_scale(self) -> float:
        if self.scale is not None:
            return float(self.scale)
        return float(max(SENSOR_FAMILIES[f].scale for f in self.families))

    def resolved_reducer(self):
        return REDUCERS[self.reducer]

    def build_regions(self):
        regions = regions_from_points(self.points, self.buffer) + regions_from_bboxes(self.bboxes)
        try:
            check_unique_ids(regions)
        except ValueError as e:
            raise ConfigError(str(e)) from e
        return regions

    def __repr__(self):
        return (f"PipelineConfig(families={self.families}, bands={self.bands}, "
                f"regions={len(self.points) + len(self.bboxes)}, scale={self.resolved_scale():g})")
