"""
Scene collections and the providers that load them.

The raster store itself is external. A provider only has to hand back a
SceneCollection of RawScenes for a dataset id; the collection supports the
handful of operators the pipeline needs (date and bounds filtering, per-scene
map, merge, sort).

Usage:
    from plotseries.satellite.collection import NpzStore

    store = NpzStore("./data/scenes")
    l8 = store.load_collection("LANDSAT/LC08/C02/T1_L2")
    recent = l8.filter_date(datetime(2020, 1, 1), datetime(2021, 1, 1))
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional

import numpy as np
from shapely import wkt

from plotseries.satellite.regions import Region, regions_union
from plotseries.satellite.scene import GridSpec, RawScene

logger = logging.getLogger(__name__)

META_KEY = "__meta__"


def _footprint(scene):
    if hasattr(scene, "get_footprint"):
        return scene.get_footprint()
    return scene.footprint


class SceneCollection:
    """Ordered, immutable sequence of scenes."""

    def __init__(self, scenes: Iterable = ()):
        self._scenes = tuple(scenes)

    def __iter__(self) -> Iterator:
        return iter(self._scenes)

    def __len__(self) -> int:
        return len(self._scenes)

    def __getitem__(self, i):
        return self._scenes[i]

    def __repr__(self):
        return f"SceneCollection({len(self)} scenes)"

    def filter(self, predicate: Callable) -> "SceneCollection":
        return SceneCollection(s for s in self._scenes if predicate(s))

    def filter_date(self, start: Optional[datetime], end: Optional[datetime]) -> "SceneCollection":
        """Keep scenes with start <= timestamp < end. None leaves that side open."""
        return self.filter(
            lambda s: (start is None or s.timestamp >= start) and (end is None or s.timestamp < end)
        )

    def filter_bounds(self, regions: List[Region]) -> "SceneCollection":
        """Keep scenes whose footprint intersects at least one region."""
        area = regions_union(regions)
        if area is None:
            return SceneCollection()
        return self.filter(lambda s: _footprint(s).intersects(area))

    def map(self, fn: Callable) -> "SceneCollection":
        return SceneCollection(fn(s) for s in self._scenes)

    def merge(self, other: "SceneCollection") -> "SceneCollection":
        return SceneCollection(self._scenes + tuple(other))

    def sort(self, key: Callable = None) -> "SceneCollection":
        key = key or (lambda s: (s.timestamp, s.scene_id))
        return SceneCollection(sorted(self._scenes, key=key))


class CollectionProvider:
    """Black-box raster store."""

    def load_collection(self, dataset_id: str) -> SceneCollection:
        raise NotImplementedError


class InMemoryProvider(CollectionProvider):
    def __init__(self, datasets: Dict[str, List[RawScene]] = None):
        self.datasets = {k: list(v) for k, v in (datasets or {}).items()}

    def load_collection(self, dataset_id: str) -> SceneCollection:
        return SceneCollection(self.datasets.get(dataset_id, []))


class NpzStore(CollectionProvider):
    """
    Directory of .npz scene archives.

    Layout: <root>/<dataset id with '/' replaced by '__'>/<scene_id>.npz.
    Each archive holds one array per native band plus a JSON metadata string
    under __meta__ (scene_id, ISO timestamp, grid, optional footprint WKT).
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def dataset_dir(self, dataset_id: str) -> Path:
        return self.root / dataset_id.replace("/", "__")

    def save_scene(self, dataset_id: str, scene: RawScene) -> Path:
        out_dir = self.dataset_dir(dataset_id)
        out_dir.mkdir(parents=True, exist_ok=True)
        meta = {
            "scene_id": scene.scene_id,
            "timestamp": scene.timestamp.isoformat(),
            "grid": [scene.grid.x_min, scene.grid.y_max, scene.grid.pixel_size],
        }
        if scene.footprint is not None:
            meta["footprint"] = scene.footprint.wkt
        path = out_dir / f"{scene.scene_id}.npz"
        np.savez_compressed(path, **{META_KEY: np.array(json.dumps(meta))}, **scene.bands)
        return path

    def load_scene(self, path: Path) -> RawScene:
        with np.load(path, allow_pickle=False) as data:
            meta = json.loads(str(data[META_KEY]))
            bands = {k: data[k] for k in data.files if k != META_KEY}
        footprint = wkt.loads(meta["footprint"]) if meta.get("footprint") else None
        return RawScene(
            scene_id=meta["scene_id"],
            timestamp=datetime.fromisoformat(meta["timestamp"]),
            grid=GridSpec(*meta["grid"]),
            bands=bands,
            footprint=footprint,
        )

    def load_collection(self, dataset_id: str) -> SceneCollection:
        directory = self.dataset_dir(dataset_id)
        if not directory.exists():
            logger.info(f"No scenes stored for {dataset_id} under {directory}")
            return SceneCollection()
        paths = sorted(directory.glob("*.npz"))
        logger.debug(f"Loading {len(paths)} scenes from {directory}")
        return SceneCollection(self.load_scene(p) for p in paths)
