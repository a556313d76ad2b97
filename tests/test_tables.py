from datetime import datetime

import pytest

from plotseries.errors import JoinIntegrityError
from plotseries.satellite.regions import Region
from plotseries.satellite.zonal import NODATA, Observation
from plotseries.tables import table as table_module
from plotseries.tables.table import Table
from plotseries.tables.tall import to_tall
from plotseries.tables.wide import merge_same_day, pivot, to_wide, WideRow, wide_columns
from shapely.geometry import box


def obs(region_id, scene_id, value, when, band="ndmi"):
    key = scene_id if scene_id[:8] == when.strftime("%Y%m%d") else f"{when:%Y%m%d}_{scene_id}"
    return Observation(region_id, scene_id, band, value, when, key)


@pytest.fixture
def observations():
    day1a = datetime(2020, 1, 5, 14, 10, 51)
    day1b = datetime(2020, 1, 5, 14, 10, 58)
    day2 = datetime(2020, 1, 10, 14, 10, 51)
    return [
        obs("p1", "20200105T141051_T21LXG", 0.12, day1a),
        obs("p0", "20200105T141051_T21LXG", 0.40, day1a),
        obs("p1", "20200105T141058_T21LXH", 0.31, day1b),
        obs("p0", "20200105T141058_T21LXH", None, day1b),
        obs("p1", "20200110T141051_T21LXG", None, day2),
        obs("p0", "20200110T141051_T21LXG", 0.50, day2),
    ]


def test_table_distinct_keeps_first_match():
    t = Table([{"k": 1, "v": "a"}, {"k": 1, "v": "b"}, {"k": 2, "v": "c"}])
    assert [r["v"] for r in t.distinct(["k"])] == ["a", "c"]


def test_table_join_save_all_groups_by_key():
    primary = Table([{"id": "x"}, {"id": "y"}, {"id": "z"}])
    secondary = Table([{"id": "x", "v": 1}, {"id": "y", "v": 2}, {"id": "x", "v": 3}])
    joined = primary.join_save_all(secondary, key="id")
    assert [[m["v"] for m in r["matches"]] for r in joined] == [[1, 3], [2], []]


def test_tall_drops_nodata_and_sorts_by_region(observations):
    tall = to_tall(observations)
    assert all(r.value is not None and r.value != NODATA for r in tall)
    assert [r.region_id for r in tall] == sorted(r.region_id for r in tall)


def test_tall_region_date_pairs_are_unique(observations):
    tall = to_tall(observations)
    pairs = [(r.region_id, r.date) for r in tall]
    assert len(pairs) == len(set(pairs))
    assert pairs == [("p0", "20200105"), ("p0", "20200110"), ("p1", "20200105")]


def test_tall_day_dedup_keeps_first_granule(observations):
    tall = {(r.region_id, r.date): r.value for r in to_tall(observations)}
    assert tall[("p1", "20200105")] == 0.12


def test_tall_filter_is_idempotent(observations):
    once = to_tall(observations)
    again = to_tall([obs(r.region_id, r.date, r.value, datetime.strptime(r.date, "%Y%m%d")) for r in once])
    assert [(r.region_id, r.date, r.value) for r in again] == [(r.region_id, r.date, r.value) for r in once]


def test_tall_scene_keys_keep_granules_apart(observations):
    tall = to_tall(observations, date_key="scene")
    assert len([r for r in tall if r.region_id == "p1"]) == 2


def test_tall_rejects_unknown_date_key(observations):
    with pytest.raises(ValueError):
        to_tall(observations, date_key="month")


def test_pivot_columns_are_scene_keys(observations):
    rows = {r.region_id: r for r in pivot(observations)}
    assert rows["p1"].values == {"20200105T141051_T21LXG": 0.12, "20200105T141058_T21LXH": 0.31}
    assert rows["p0"].values == {"20200105T141051_T21LXG": 0.40, "20200110T141051_T21LXG": 0.50}


def test_same_day_granules_resolve_to_max(observations):
    rows = {r.region_id: r for r in to_wide(observations)}
    assert rows["p1"].values == {"20200105": 0.31}
    assert rows["p0"].values == {"20200105": 0.40, "20200110": 0.50}


def test_wide_join_integrity(observations):
    tall = to_tall(observations, date_key="scene")
    rows = {r.region_id: r for r in to_wide(observations)}
    for record in tall:
        row = rows[record.region_id]
        day = record.date[:8]
        assert day in row.values
        assert row.values[day] >= record.value
    for region_id, row in rows.items():
        own = {o.value for o in observations if o.region_id == region_id and o.value is not None}
        assert set(row.values.values()) <= own


def test_pivot_detects_cross_region_leakage(observations, monkeypatch):
    original = Table.join_save_all

    def leaky_join(self, secondary, key, matches_key="matches"):
        joined = original(self, secondary, key, matches_key)
        everything = list(secondary)
        return Table({**r, matches_key: everything} for r in joined)

    monkeypatch.setattr(table_module.Table, "join_save_all", leaky_join)
    with pytest.raises(JoinIntegrityError):
        pivot(observations)


def test_region_without_records_gets_empty_row(observations):
    regions = [Region("p0", box(0, 0, 1, 1)), Region("p1", box(0, 0, 1, 1)), Region("p9", box(0, 0, 1, 1))]
    rows = {r.region_id: r for r in to_wide(observations, regions)}
    assert rows["p9"].values == {}


def test_region_with_only_nodata_gets_empty_row():
    when = datetime(2020, 1, 5)
    rows = to_wide([obs("p3", "20200105_X", None, when)])
    assert rows == [WideRow("p3", {})]


def test_merge_only_touches_date_like_columns():
    rows = merge_same_day([WideRow("p1", {"20200105A": 0.1, "20200105B": 0.3, "system_index": 7.0})])
    assert rows[0].values == {"20200105": 0.3, "system_index": 7.0}


def test_merge_with_custom_reducer():
    rows = merge_same_day([WideRow("p1", {"20200105A": 0.1, "20200105B": 0.3})], reducer=min)
    assert rows[0].values == {"20200105": 0.1}


def test_wide_columns_union_sorted():
    rows = [WideRow("a", {"20200110": 1.0}), WideRow("b", {"20200105": 2.0})]
    assert wide_columns(rows) == ["20200105", "20200110"]


def test_pivot_rejects_duplicate_scene_column():
    when = datetime(2020, 1, 5)
    duplicated = [obs("p0", "20200105_X", 0.2, when), obs("p0", "20200105_X", 0.4, when)]
    with pytest.raises(JoinIntegrityError):
        pivot(duplicated)
