class PlotSeriesError(Exception):
    """Base class for pipeline errors."""


class SchemaMismatchError(PlotSeriesError):
    """A raw scene is missing a band its sensor family requires.

    Raised per scene; callers skip the scene and keep going.
    """

    def __init__(self, scene_id: str, family: str, missing: list[str]):
        self.scene_id = scene_id
        self.family = family
        self.missing = missing
        super().__init__(f"Scene {scene_id} ({family}) missing bands: {', '.join(missing)}")


class JoinIntegrityError(PlotSeriesError):
    """A pivoted value was attributed to a region it did not come from."""


class ConfigError(PlotSeriesError):
    pass
