"""Imbue Test Suite — run: pytest tests/ -v"""

import io

import pandas as pd
import pytest

from imbue.engine import (
    DataPoint,
    DuplicatePositionError,
    EmptyDatasetError,
    GapAnalysisContext,
    ImbueEngine,
    Strategy,
    UnknownStrategyError,
    average,
    frame_to_points,
    imbue,
    last_known,
    zeroed,
)
from imbue.sample import generate_sparse_series


def _points(*pairs):
    return [DataPoint(x, y) for x, y in pairs]


@pytest.fixture
def sample_points():
    return frame_to_points(generate_sparse_series(length=120, seed=7))


@pytest.fixture
def sample_df():
    return pd.DataFrame({
        "x": [1, 2, 5, 6, 9],
        "y": [10.0, 12.0, 20.0, 18.0, 30.0],
    })


@pytest.fixture
def engine_from_df(sample_df):
    buf = io.StringIO()
    sample_df.to_csv(buf, index=False)
    buf.seek(0)
    eng = ImbueEngine()
    eng.load_csv(buf)
    eng.detect_gaps()
    return eng


class TestGapAnalysisContext:
    def test_axis_bounds_and_counts(self):
        ctx = GapAnalysisContext(_points((7, 84), (1, 123), (4, 56)))
        assert ctx.axis_min == 1
        assert ctx.axis_max == 7
        assert ctx.total_count == 7
        assert ctx.imbue_count == 4

    def test_dataset_keeps_given_order(self):
        points = _points((7, 84), (1, 123), (4, 56))
        ctx = GapAnalysisContext(points)
        assert list(ctx.dataset) == points

    def test_truncates_toward_zero(self):
        ctx = GapAnalysisContext(_points((-2.7, 1.0), (3.9, 2.0)))
        assert ctx.axis_min == -2
        assert ctx.axis_max == 3
        assert ctx.total_count == 6
        assert ctx.imbue_count == 4
        assert ctx.known_positions() == {-2, 3}

    def test_axis_range_is_inclusive(self):
        ctx = GapAnalysisContext(_points((-5, 67), (1, 123), (5, 43)))
        assert list(ctx.axis_range()) == list(range(-5, 6))

    def test_known_values(self):
        ctx = GapAnalysisContext(_points((7, 84), (1, 123)))
        assert ctx.known_values() == {7: 84.0, 1: 123.0}

    def test_empty_dataset_raises(self):
        with pytest.raises(EmptyDatasetError, match="empty dataset"):
            GapAnalysisContext([])

    def test_duplicate_position_raises(self):
        with pytest.raises(DuplicatePositionError, match="position 3"):
            GapAnalysisContext(_points((3, 1.0), (3.4, 2.0), (6, 0.0)))

    def test_accepts_pairs_and_mappings(self):
        ctx = GapAnalysisContext([(1, 2), {"x": 4, "y": 8}])
        assert ctx.dataset == (DataPoint(1.0, 2.0), DataPoint(4.0, 8.0))

    def test_analyze_gaps(self):
        ctx = GapAnalysisContext(_points((1, 123), (5, 43), (8, 80)))
        report = ctx.analyze_gaps()
        assert report["missing_count"] == 5
        assert report["total_count"] == 8
        assert report["known_count"] == 3
        assert report["missing_pct"] == 62.5
        assert report["n_gaps"] == 2
        assert report["gaps"] == [
            {"start": 2, "end": 4, "length": 3},
            {"start": 6, "end": 7, "length": 2},
        ]
        assert report["max_gap_length"] == 3
        assert report["mean_gap_length"] == 2.5
        assert report["gap_length_distribution"]["2-5"] == 2

    def test_analyze_gaps_dense(self):
        report = GapAnalysisContext(_points((0, 1), (1, 2), (2, 3))).analyze_gaps()
        assert report["n_gaps"] == 0
        assert report["gaps"] == []
        assert report["max_gap_length"] == 0


class TestAverage:
    def test_single_gap(self):
        ctx = GapAnalysisContext(_points((1, 123), (5, 43)))
        assert average(ctx) == _points((2, 103), (3, 83), (4, 63))

    def test_multiple_gaps(self):
        ctx = GapAnalysisContext(_points((1, 123), (5, 43), (8, 80)))
        assert average(ctx) == _points(
            (2, 103),
            (3, 83),
            (4, 63),
            (6, 55.333333333333336),
            (7, 67.66666666666667),
        )

    def test_flat_segment(self):
        ctx = GapAnalysisContext(_points((1, 123), (5, 123)))
        assert average(ctx) == _points((2, 123), (3, 123), (4, 123))

    def test_single_missing_is_midpoint(self):
        ctx = GapAnalysisContext(_points((0, 0), (2, 10)))
        assert average(ctx) == _points((1, 5))

    def test_unsorted_input(self):
        ctx = GapAnalysisContext(_points((5, 43), (1, 123)))
        assert average(ctx) == _points((2, 103), (3, 83), (4, 63))

    def test_adjacent_pairs_contribute_nothing(self):
        ctx = GapAnalysisContext(_points((1, 10), (2, 20), (4, 40), (5, 50)))
        assert average(ctx) == _points((3, 30))


class TestZeroed:
    def test_single_gap(self):
        ctx = GapAnalysisContext(_points((1, 123), (5, 43)))
        assert zeroed(ctx) == _points((2, 0), (3, 0), (4, 0))

    def test_negative_range(self):
        ctx = GapAnalysisContext(_points((-5, 67), (1, 123), (5, 43)))
        assert zeroed(ctx) == _points(
            (-4, 0), (-3, 0), (-2, 0), (-1, 0), (0, 0), (2, 0), (3, 0), (4, 0)
        )


class TestLastKnown:
    def test_carries_forward(self):
        ctx = GapAnalysisContext(_points((7, 84), (1, 123), (4, 56)))
        assert last_known(ctx) == _points((2, 123), (3, 123), (5, 56), (6, 56))

    def test_negative_range(self):
        ctx = GapAnalysisContext(
            _points((-2, 50.5), (1, 123), (4, 56), (7, 84))
        )
        assert last_known(ctx) == _points(
            (-1, 50.5), (0, 50.5), (2, 123), (3, 123), (5, 56), (6, 56)
        )


class TestProperties:
    @pytest.mark.parametrize("fn", [average, zeroed, last_known])
    def test_covers_exactly_the_missing_positions(self, sample_points, fn):
        ctx = GapAnalysisContext(sample_points)
        imbued = fn(ctx)
        expected = [x for x in ctx.axis_range() if x not in ctx.known_positions()]
        assert ctx.imbue_count > 0
        assert len(imbued) == ctx.imbue_count
        assert [p.x for p in imbued] == [float(x) for x in expected]

    @pytest.mark.parametrize("fn", [average, zeroed, last_known])
    def test_dense_dataset_is_empty(self, fn):
        ctx = GapAnalysisContext(_points((3, 1), (4, 2), (5, 3)))
        assert ctx.imbue_count == 0
        assert fn(ctx) == []

    def test_zeroed_values(self, sample_points):
        imbued = zeroed(GapAnalysisContext(sample_points))
        assert all(p.y == 0.0 for p in imbued)

    def test_last_known_matches_nearest_preceding(self, sample_points):
        ctx = GapAnalysisContext(sample_points)
        known = ctx.known_values()
        for p in last_known(ctx):
            preceding = [pos for pos in known if pos <= p.x]
            assert p.y == known[max(preceding)]

    def test_average_runs_are_monotonic(self, sample_points):
        ctx = GapAnalysisContext(sample_points)
        imbued = average(ctx)
        ordered = sorted(ctx.dataset, key=lambda p: p.position)
        for a, b in zip(ordered, ordered[1:]):
            run = [p.y for p in imbued if a.x < p.x < b.x]
            if not run or a.y == b.y:
                continue
            if b.y > a.y:
                assert run == sorted(run)
            else:
                assert run == sorted(run, reverse=True)
            assert a.y not in run
            assert b.y not in run


class TestDispatch:
    @pytest.mark.parametrize(
        "tag, fn",
        [("average", average), ("zeroed", zeroed), ("last_known", last_known)],
    )
    def test_imbue_matches_strategy(self, tag, fn):
        points = _points((-5, 67), (1, 123), (5, 43))
        assert imbue(points, tag) == fn(GapAnalysisContext(points))

    def test_parse_accepts_member(self):
        assert Strategy.parse(Strategy.LAST_KNOWN) is Strategy.LAST_KNOWN
        assert Strategy.parse("zeroed") is Strategy.ZEROED

    def test_unknown_strategy(self):
        with pytest.raises(UnknownStrategyError, match="Unknown strategy"):
            imbue(_points((1, 1), (3, 3)), "cubic")

    def test_unknown_strategy_is_value_error(self):
        with pytest.raises(ValueError):
            Strategy.parse("nearest")


class TestImbueEngine:
    def test_load_csv(self, sample_df):
        buf = io.StringIO()
        sample_df.to_csv(buf, index=False)
        buf.seek(0)
        eng = ImbueEngine()
        info = eng.load_csv(buf)
        assert info["shape"][0] == 5
        assert info["x_column"] == "x"
        assert info["rows_dropped"] == 0

    def test_load_csv_detects_numeric_columns(self):
        buf = io.StringIO("label,pos,value\na,1,10\nb,4,40\n")
        eng = ImbueEngine()
        info = eng.load_csv(buf)
        assert (info["x_column"], info["y_column"]) == ("pos", "value")

    def test_load_csv_drops_incomplete_rows(self):
        buf = io.StringIO("x,y\n1,123\n3,\n5,43\n")
        eng = ImbueEngine()
        info = eng.load_csv(buf)
        assert info["rows_dropped"] == 1
        assert eng.df["x"].tolist() == [1.0, 5.0]

    def test_detect_gaps(self, engine_from_df):
        report = engine_from_df.detect_gaps()
        assert report["missing_count"] == 4
        assert report["n_gaps"] == 2

    def test_fill_gaps(self, engine_from_df):
        df = engine_from_df.fill_gaps(strategy="last_known")
        assert df["x"].tolist() == [3.0, 4.0, 7.0, 8.0]
        assert df["y"].tolist() == [12.0, 12.0, 18.0, 18.0]

    def test_fill_gaps_builds_context(self, sample_df):
        eng = ImbueEngine()
        eng.load_points(list(zip(sample_df["x"], sample_df["y"])))
        df = eng.fill_gaps(strategy="zeroed")
        assert len(df) == 4
        assert eng.gap_report["missing_count"] == 4

    def test_invalid_strategy(self, engine_from_df):
        with pytest.raises(ValueError, match="Unknown strategy"):
            engine_from_df.fill_gaps(strategy="invalid")

    def test_merged(self, engine_from_df):
        engine_from_df.fill_gaps(strategy="average")
        merged = engine_from_df.merged()
        assert merged["x"].tolist() == [float(x) for x in range(1, 10)]
        assert merged["flag"].tolist() == ["O", "O", "F", "F", "O", "O", "F", "F", "O"]
        assert set(merged.loc[merged["flag"] == "F", "strategy"]) == {"average"}

    def test_export(self, engine_from_df, tmp_path):
        engine_from_df.fill_gaps(strategy="average")
        path = tmp_path / "out.csv"
        df = engine_from_df.export(filepath=str(path))
        assert path.exists()
        assert "flag" in df.columns
        assert len(pd.read_csv(path)) == 4

    def test_export_no_flags(self, engine_from_df):
        engine_from_df.fill_gaps(strategy="zeroed")
        df = engine_from_df.export(include_flags=False, merge=True)
        assert list(df.columns) == ["x", "y"]
        assert len(df) == 9

    def test_generate_report(self, engine_from_df):
        engine_from_df.fill_gaps(strategy="zeroed")
        report = engine_from_df.generate_report()
        assert report["gap_summary"]["filled_count"] == 4
        assert report["gap_summary"]["fill_rate_pct"] == 100.0
        assert report["fill_summary"]["strategy"] == "zeroed"
        assert report["fill_summary"]["max_value"] == 0.0

    def test_full_pipeline(self, tmp_path):
        path = tmp_path / "series.csv"
        generate_sparse_series(length=200, seed=3).to_csv(path, index=False)

        eng = ImbueEngine()
        eng.load_csv(str(path))
        report = eng.detect_gaps()
        eng.fill_gaps(strategy="average")
        df = eng.export(merge=True)
        assert len(df) == report["total_count"] == 200
        assert df["x"].is_monotonic_increasing
