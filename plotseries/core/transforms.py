import logging
from pathlib import Path

from plotseries.core.dag import Transform
from plotseries.errors import SchemaMismatchError
from plotseries.satellite.collection import CollectionProvider, SceneCollection
from plotseries.satellite.indices import add_indices
from plotseries.satellite.masks import apply_mask
from plotseries.satellite.merger import merge_families
from plotseries.satellite.sensors import harmonize_collection
from plotseries.satellite.zonal import extract_band
from plotseries.tables.export import (
    observations_filename,
    tall_filename,
    wide_filename,
    write_observations_csv,
    write_tall_csv,
    write_wide_csv,
)
from plotseries.tables.tall import to_tall
from plotseries.tables.wide import to_wide

logger = logging.getLogger(__name__)


class LoadCollectionsTransform(Transform):
    def __init__(self, provider: CollectionProvider, families: dict):
        super().__init__(
            name="load_collections",
            input_keys=[],
            output_keys=["raw_collections"],
            critical=True
        )
        self.provider = provider
        self.families = families

    def forward(self, inputs: dict) -> dict:
        collections = {}
        for name, family in self.families.items():
            collections[name] = self.provider.load_collection(family.dataset_id)
            logger.info(f"{name}: loaded {len(collections[name])} scenes from {family.dataset_id}")
        return {"raw_collections": collections}


class HarmonizeTransform(Transform):
    def __init__(self, families: dict):
        super().__init__(
            name="harmonize",
            input_keys=["raw_collections"],
            output_keys=["harmonized"],
            critical=True
        )
        self.families = families

    def forward(self, inputs: dict) -> dict:
        harmonized = {
            name: SceneCollection(harmonize_collection(self.families[name], raws))
            for name, raws in inputs["raw_collections"].items()
        }
        return {"harmonized": harmonized}


class QualityMaskTransform(Transform):
    def __init__(self, families: dict):
        super().__init__(
            name="quality_mask",
            input_keys=["harmonized"],
            output_keys=["masked"],
            critical=True
        )
        self.families = families

    def forward(self, inputs: dict) -> dict:
        masked = {}
        for name, scenes in inputs["harmonized"].items():
            policy = self.families[name].mask_policy
            kept = []
            for scene in scenes:
                try:
                    kept.append(apply_mask(scene, policy))
                except SchemaMismatchError as e:
                    logger.warning(f"Skipping scene: {e}")
            masked[name] = SceneCollection(kept)
        return {"masked": masked}


class IndexTransform(Transform):
    def __init__(self):
        super().__init__(
            name="indices",
            input_keys=["masked"],
            output_keys=["indexed"],
            critical=True
        )

    def forward(self, inputs: dict) -> dict:
        return {
            "indexed": {name: scenes.map(add_indices) for name, scenes in inputs["masked"].items()}
        }


class TemporalMergeTransform(Transform):
    def __init__(self, families: dict, input_key: str, run_window=(None, None), window_overrides=None):
        super().__init__(
            name="temporal_merge",
            input_keys=[input_key, "regions"],
            output_keys=["scenes"],
            critical=True
        )
        self.families = families
        self.input_key = input_key
        self.run_window = run_window
        self.window_overrides = window_overrides or {}

    def forward(self, inputs: dict) -> dict:
        merged = merge_families(
            inputs[self.input_key],
            self.families,
            inputs["regions"],
            run_window=self.run_window,
            window_overrides=self.window_overrides,
        )
        logger.info(f"Merged collection: {len(merged)} scenes")
        return {"scenes": merged}


class ZonalExtractionTransform(Transform):
    def __init__(self, band: str, scale: float, max_workers: int = None):
        super().__init__(
            name=f"zonal_extraction[{band}]",
            input_keys=["scenes", "regions"],
            output_keys=["observations"],
            critical=True
        )
        self.band = band
        self.scale = scale
        self.max_workers = max_workers

    def forward(self, inputs: dict) -> dict:
        observations = extract_band(
            list(inputs["scenes"]),
            inputs["regions"],
            self.band,
            self.scale,
            max_workers=self.max_workers,
        )
        return {"observations": observations}


class TallTableTransform(Transform):
    def __init__(self, date_key: str = "day"):
        super().__init__(
            name="tall_table",
            input_keys=["observations"],
            output_keys=["tall"],
            critical=True
        )
        self.date_key = date_key

    def forward(self, inputs: dict) -> dict:
        return {"tall": to_tall(inputs["observations"], date_key=self.date_key)}


class WideTableTransform(Transform):
    def __init__(self, reducer=max):
        super().__init__(
            name="wide_table",
            input_keys=["observations", "regions"],
            output_keys=["wide"],
            critical=True
        )
        self.reducer = reducer

    def forward(self, inputs: dict) -> dict:
        return {"wide": to_wide(inputs["observations"], inputs["regions"], reducer=self.reducer)}


class CSVExportTransform(Transform):
    def __init__(self, band: str, output_dir: Path):
        super().__init__(
            name=f"csv_export[{band}]",
            input_keys=["observations", "tall", "wide"],
            output_keys=["outputs"],
            critical=True
        )
        self.band = band
        self.output_dir = Path(output_dir)

    def forward(self, inputs: dict) -> dict:
        outputs = {
            "tall": write_tall_csv(inputs["tall"], self.band, self.output_dir / tall_filename(self.band)),
            "wide": write_wide_csv(inputs["wide"], self.output_dir / wide_filename(self.band)),
            "observations": write_observations_csv(
                inputs["observations"], self.band, self.output_dir / observations_filename(self.band)
            ),
        }
        return {"outputs": outputs}
