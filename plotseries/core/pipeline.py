import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from plotseries.config import PipelineConfig
from plotseries.core.dag import DAG
from plotseries.core.transforms import (
    CSVExportTransform,
    HarmonizeTransform,
    IndexTransform,
    LoadCollectionsTransform,
    QualityMaskTransform,
    TallTableTransform,
    TemporalMergeTransform,
    WideTableTransform,
    ZonalExtractionTransform,
)
from plotseries.satellite.collection import CollectionProvider, SceneCollection
from plotseries.satellite.regions import Region, check_unique_ids
from plotseries.satellite.sensors import get_family
from plotseries.satellite.zonal import Observation
from plotseries.tables.tall import TallRecord
from plotseries.tables.wide import WideRow

logger = logging.getLogger(__name__)


@dataclass
class BandResult:
    band: str
    observations: List[Observation]
    tall: List[TallRecord]
    wide: List[WideRow]
    outputs: Dict[str, str] = field(default_factory=dict)


def build_prep_dag(config: PipelineConfig, provider: CollectionProvider) -> DAG:
    """Load -> harmonize -> mask -> (indices) -> merge. Runs once per pipeline."""
    families = {name: get_family(name) for name in config.families}

    transforms = [
        LoadCollectionsTransform(provider=provider, families=families),
        HarmonizeTransform(families=families),
        QualityMaskTransform(families=families),
    ]

    merge_input = "masked"
    if config.derive_indices:
        transforms.append(IndexTransform())
        merge_input = "indexed"

    transforms.append(TemporalMergeTransform(
        families=families,
        input_key=merge_input,
        run_window=config.run_window,
        window_overrides=config.window_overrides
    ))
    return DAG(transforms)


def build_band_dag(config: PipelineConfig, band: str, export: bool = True) -> DAG:
    """Extract -> tall -> wide (-> CSV). Runs once per band."""
    transforms = [
        ZonalExtractionTransform(
            band=band,
            scale=config.resolved_scale(),
            max_workers=config.max_workers
        ),
        TallTableTransform(date_key=config.date_key),
        WideTableTransform(reducer=config.resolved_reducer()),
    ]
    if export:
        transforms.append(CSVExportTransform(band=band, output_dir=config.output_dir))
    return DAG(transforms)


def prepare(config: PipelineConfig, provider: CollectionProvider, regions: List[Region]) -> SceneCollection:
    state = build_prep_dag(config, provider).forward({"regions": regions})
    return state["scenes"]


def run_band(
    config: PipelineConfig,
    band: str,
    scenes: SceneCollection,
    regions: List[Region],
    export: bool = True
) -> BandResult:
    state = build_band_dag(config, band, export=export).forward({"scenes": scenes, "regions": regions})
    return BandResult(
        band=band,
        observations=state["observations"],
        tall=state["tall"],
        wide=state["wide"],
        outputs={k: str(v) for k, v in state.get("outputs", {}).items()},
    )


def run(
    config: PipelineConfig,
    provider: CollectionProvider,
    regions: Optional[List[Region]] = None,
    export: bool = True
) -> Dict[str, BandResult]:
    """
    Main pipeline runner. Prepares the merged scene collection once, then
    extracts and tabulates every configured band.

    Args:
        config: PipelineConfig with regions, families, bands and windows
        provider: Source of raw scene collections
        regions: Overrides the regions built from config
        export: Write CSVs to config.output_dir

    Returns:
        band name -> BandResult
    """
    start_time = time.time()
    regions = regions if regions is not None else config.build_regions()
    check_unique_ids(regions)
    logger.info(f"Running {config} over {len(regions)} regions")

    scenes = prepare(config, provider, regions)

    results = {}
    for band in config.bands:
        results[band] = run_band(config, band, scenes, regions, export=export)

    logger.info(f"Pipeline finished in {time.time() - start_time:.1f}s")
    return results
