from datetime import datetime

import numpy as np
import pytest

from plotseries.satellite.indices import add_indices, compute_indices, evi, msavi, normalized_difference
from plotseries.satellite.sensors import CANONICAL_BANDS, INDEX_BANDS, get_family, harmonize


def test_normalized_difference():
    assert normalized_difference(np.array([0.4]), np.array([0.1]))[0] == pytest.approx(0.6)


def test_normalized_difference_zero_denominator_is_not_finite():
    out = normalized_difference(np.array([0.0, -0.1]), np.array([0.0, 0.1]))
    assert not np.isfinite(out).any()


def test_evi_standard_form():
    nir, red, blue = np.array([0.4]), np.array([0.1]), np.array([0.05])
    expected = 2.5 * (0.4 - 0.1) / (0.4 + 6 * 0.1 - 7.5 * 0.05 + 1)
    assert evi(nir, red, blue)[0] == pytest.approx(expected)


def test_msavi_standard_form():
    nir, red = 0.4, 0.1
    expected = (2 * nir + 1 - np.sqrt((2 * nir + 1) ** 2 - 8 * (nir - red))) / 2
    assert msavi(np.array([nir]), np.array([red]))[0] == pytest.approx(expected)


def test_ndre_uses_narrow_nir_when_available():
    bands = {b: np.array([0.1]) for b in CANONICAL_BANDS}
    bands["nir"] = np.array([0.5])
    with_aux = compute_indices(bands, {"nir_narrow": np.array([0.3])})
    without_aux = compute_indices(bands)
    assert with_aux["ndre"][0] == pytest.approx((0.3 - 0.1) / (0.3 + 0.1))
    assert without_aux["ndre"][0] == pytest.approx((0.5 - 0.1) / (0.5 + 0.1))


def test_add_indices_appends_index_bands(make_s2_raw):
    scene = add_indices(harmonize(get_family("sentinel2"), make_s2_raw("S2_1", datetime(2020, 1, 1))))
    assert set(scene.bands) == set(CANONICAL_BANDS) | set(INDEX_BANDS)
    assert scene.bands["ndvi"][0, 0] == pytest.approx((0.35 - 0.06) / (0.35 + 0.06))
    assert scene.bands["ndmi"][0, 0] == pytest.approx((0.35 - 0.2) / (0.35 + 0.2))
