"""
Imbue Engine — Core gap analysis and imputation logic.
"""

import math
import numbers
from collections import namedtuple
from enum import Enum

import numpy as np
import pandas as pd


class ImbueError(ValueError):
    """Base class for faults raised while analyzing or filling a dataset."""


class EmptyDatasetError(ImbueError):
    pass


class DuplicatePositionError(ImbueError):
    pass


class InvalidPointError(ImbueError):
    pass


class AxisRangeError(ImbueError):
    pass


class UnknownStrategyError(ImbueError):
    pass


class DataPoint(namedtuple("DataPoint", ["x", "y"])):
    """Immutable (x, y) pair. ``x`` lives on an integer axis but is stored as a float."""

    __slots__ = ()

    def __new__(cls, x, y):
        return super().__new__(cls, float(x), float(y))

    @property
    def position(self):
        """Axis position, truncated toward zero."""
        return int(self.x)

    def to_dict(self):
        return {"x": self.x, "y": self.y}

    @classmethod
    def coerce(cls, obj):
        """Build a DataPoint from a DataPoint, an ``(x, y)`` pair or an ``{"x", "y"}`` mapping."""
        if isinstance(obj, cls):
            return obj
        if isinstance(obj, dict):
            if "x" not in obj or "y" not in obj:
                raise InvalidPointError(f"Point must have 'x' and 'y' fields: {obj!r}")
            x, y = obj["x"], obj["y"]
        else:
            try:
                x, y = obj
            except (TypeError, ValueError):
                raise InvalidPointError(
                    f"Point must be an (x, y) pair or an {{x, y}} mapping: {obj!r}"
                ) from None
        for value in (x, y):
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise InvalidPointError(f"Point coordinates must be numbers: {obj!r}")
        try:
            return cls(x, y)
        except OverflowError:
            raise InvalidPointError(
                "Point coordinates are too large to store as floats."
            ) from None


class Strategy(str, Enum):
    """Closed set of imputation strategies, tagged by their wire names."""

    AVERAGE = "average"
    ZEROED = "zeroed"
    LAST_KNOWN = "last_known"

    @classmethod
    def parse(cls, tag):
        if isinstance(tag, cls):
            return tag
        try:
            return cls(tag)
        except ValueError:
            raise UnknownStrategyError(
                f"Unknown strategy: {tag!r}. "
                f"Choose from: {', '.join(s.value for s in cls)}"
            ) from None


STRATEGIES = [s.value for s in Strategy]


class GapAnalysisContext:
    """Read-only view of a dataset's integer axis and the positions missing from it.

    Parameters
    ----------
    dataset : iterable
        Points in any order, as DataPoints, ``(x, y)`` pairs or mappings.
    max_span : int, optional
        Reject datasets whose axis covers more than this many positions.

    Raises
    ------
    EmptyDatasetError, InvalidPointError, AxisRangeError, DuplicatePositionError
    """

    def __init__(self, dataset, max_span=None):
        points = tuple(DataPoint.coerce(p) for p in dataset)
        if not points:
            raise EmptyDatasetError("Cannot analyze gaps of an empty dataset.")
        for p in points:
            if not math.isfinite(p.x):
                raise InvalidPointError(f"Point has a non-finite x: {p}")

        # Extremes by raw float comparison, truncated afterwards
        self.axis_min = int(min(p.x for p in points))
        self.axis_max = int(max(p.x for p in points))
        self.total_count = self.axis_max - self.axis_min + 1

        if max_span is not None and self.total_count > max_span:
            raise AxisRangeError(
                f"Axis range [{self.axis_min}, {self.axis_max}] spans "
                f"{self.total_count} positions, above the limit of {max_span}."
            )

        known = {}
        for p in points:
            pos = p.position
            if pos in known:
                raise DuplicatePositionError(
                    f"More than one point falls on axis position {pos}."
                )
            known[pos] = p.y

        imbue_count = self.total_count - len(points)
        if imbue_count < 0:
            raise ImbueError(
                f"Dataset holds {len(points)} points but its axis only has "
                f"{self.total_count} positions."
            )

        self.dataset = points
        self.imbue_count = imbue_count
        self._known = known

    def axis_range(self):
        return range(self.axis_min, self.axis_max + 1)

    def known_positions(self):
        return frozenset(self._known)

    def known_values(self):
        return dict(self._known)

    def analyze_gaps(self):
        """Summarize the runs of missing positions along the axis."""
        positions = sorted(self._known)
        gaps = []
        for left, right in zip(positions, positions[1:]):
            if right - left > 1:
                gaps.append({
                    "start": left + 1,
                    "end": right - 1,
                    "length": right - left - 1,
                })

        gap_lengths = [g["length"] for g in gaps]
        return {
            "axis_min": self.axis_min,
            "axis_max": self.axis_max,
            "total_count": self.total_count,
            "known_count": len(self.dataset),
            "missing_count": self.imbue_count,
            "missing_pct": round(self.imbue_count / self.total_count * 100, 2),
            "n_gaps": len(gaps),
            "gaps": gaps,
            "max_gap_length": max(gap_lengths) if gap_lengths else 0,
            "mean_gap_length": (
                round(float(np.mean(gap_lengths)), 1) if gap_lengths else 0
            ),
            "gap_length_distribution": {
                "1": sum(1 for g in gap_lengths if g == 1),
                "2-5": sum(1 for g in gap_lengths if 2 <= g <= 5),
                "6-15": sum(1 for g in gap_lengths if 6 <= g <= 15),
                "16-30": sum(1 for g in gap_lengths if 16 <= g <= 30),
                ">30": sum(1 for g in gap_lengths if g > 30),
            },
        }


def average(context):
    """Linear interpolation between the known neighbours of every gap."""
    if context.imbue_count == 0:
        return []

    ordered = sorted(context.dataset, key=lambda p: p.position)
    imbued = []
    for left, right in zip(ordered, ordered[1:]):
        if left.position + 1 == right.position:
            continue
        imbued.extend(_average_window(left, right))
    return imbued


def _average_window(left, right):
    start = left.position + 1
    end = right.position - 1
    missing_count = end - start + 1

    # One extra step so the last emitted value stops short of right.y
    step = abs(left.y - right.y) / (missing_count + 1)
    if left.y > right.y:
        step = -step

    missing = []
    value = left.y + step
    for x in range(start, end + 1):
        missing.append(DataPoint(x, value))
        value += step
    return missing


def zeroed(context):
    """Every missing position paired with 0.0."""
    if context.imbue_count == 0:
        return []

    known = context.known_positions()
    return [DataPoint(x, 0.0) for x in context.axis_range() if x not in known]


def last_known(context):
    """Carry the most recent known value forward; 0.0 before the first one."""
    if context.imbue_count == 0:
        return []

    known = context.known_values()
    imbued = []
    current = 0.0
    for x in context.axis_range():
        if x in known:
            current = known[x]
        else:
            imbued.append(DataPoint(x, current))
    return imbued


def apply_strategy(context, strategy):
    """Run one strategy over an already-built context."""
    strategy = Strategy.parse(strategy)
    if strategy is Strategy.AVERAGE:
        return average(context)
    elif strategy is Strategy.ZEROED:
        return zeroed(context)
    elif strategy is Strategy.LAST_KNOWN:
        return last_known(context)
    raise UnknownStrategyError(f"Unknown strategy: {strategy!r}")


def imbue(dataset, strategy, max_span=None):
    """Build a context for ``dataset`` and return the points ``strategy`` synthesizes.

    Only the synthesized points are returned; the input points are never echoed.
    """
    strategy = Strategy.parse(strategy)
    context = GapAnalysisContext(dataset, max_span=max_span)
    return apply_strategy(context, strategy)


def points_to_frame(points):
    return pd.DataFrame(
        {"x": [p.x for p in points], "y": [p.y for p in points]},
        columns=["x", "y"],
        dtype=float,
    )


def frame_to_points(df, x_col="x", y_col="y"):
    return [DataPoint(x, y) for x, y in zip(df[x_col], df[y_col])]


def detect_columns(df, x_col=None, y_col=None):
    """Pick the position and value columns of a table."""
    hinted = [c for c in (x_col, y_col) if c]
    missing = [c for c in hinted if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found: {', '.join(missing)}")
    if x_col and y_col:
        return x_col, y_col

    if not hinted and "x" in df.columns and "y" in df.columns:
        return "x", "y"

    numeric = df.select_dtypes(include=[np.number]).columns.tolist()
    if x_col:
        numeric = [x_col] + [c for c in numeric if c != x_col]
    elif y_col:
        numeric = [c for c in numeric if c != y_col][:1] + [y_col]
    if len(numeric) < 2:
        raise ValueError(
            "No x/y columns detected. Please specify x_col and y_col."
        )
    return numeric[0], numeric[1]


class ImbueEngine:
    """Main interface for the load → analyze → fill → export pipeline."""

    def __init__(self, max_span=None):
        self.max_span = max_span
        self.raw_df = None
        self.df = None
        self.x_col = None
        self.y_col = None
        self.context = None
        self.gap_report = None
        self.strategy = None
        self.imbued = None
        self.load_info = None
        self.imbued_df = None

    def load_csv(self, filepath_or_buffer, x_col=None, y_col=None):
        """Load a sparse series from CSV."""
        self.raw_df = pd.read_csv(filepath_or_buffer)
        return self._load_frame(self.raw_df, x_col, y_col)

    def load_points(self, points):
        """Load a sparse series from in-memory points."""
        self.raw_df = points_to_frame([DataPoint.coerce(p) for p in points])
        return self._load_frame(self.raw_df, "x", "y")

    def _load_frame(self, df, x_col, y_col):
        self.x_col, self.y_col = detect_columns(df, x_col, y_col)
        frame = pd.DataFrame({
            "x": pd.to_numeric(df[self.x_col], errors="coerce"),
            "y": pd.to_numeric(df[self.y_col], errors="coerce"),
        })
        before = len(frame)
        self.df = frame.dropna().reset_index(drop=True)
        self.context = None
        self.gap_report = None
        self.imbued = None
        self.imbued_df = None

        self.load_info = {
            "shape": self.df.shape,
            "columns": list(df.columns),
            "x_column": self.x_col,
            "y_column": self.y_col,
            "axis_range": (
                f"{self.df['x'].min()} to {self.df['x'].max()}"
                if len(self.df) else None
            ),
            "rows_dropped": before - len(self.df),
        }
        return self.load_info

    @property
    def points(self):
        if self.df is None:
            raise RuntimeError("Run load_csv() first.")
        return frame_to_points(self.df)

    def detect_gaps(self):
        """Build the gap context and return its report."""
        self.context = GapAnalysisContext(self.points, max_span=self.max_span)
        self.gap_report = self.context.analyze_gaps()
        return self.gap_report

    def fill_gaps(self, strategy="average"):
        """Synthesize the missing points with the given strategy."""
        strategy = Strategy.parse(strategy)
        if self.context is None:
            self.detect_gaps()

        self.strategy = strategy
        self.imbued = apply_strategy(self.context, strategy)
        self.imbued_df = points_to_frame(self.imbued)
        return self.imbued_df

    def merged(self):
        """Original and synthesized points as one sequence ordered by x."""
        if self.imbued_df is None:
            raise RuntimeError("Run fill_gaps() first.")

        original = self.df.copy()
        original["flag"] = "O"
        original["strategy"] = "original"
        filled = self.imbued_df.copy()
        filled["flag"] = "F"
        filled["strategy"] = self.strategy.value
        merged = pd.concat([original, filled], ignore_index=True)
        return merged.sort_values("x", kind="stable").reset_index(drop=True)

    def export(self, filepath=None, merge=False, include_flags=True):
        """Export the synthesized points, or the merged series, optionally to CSV."""
        if self.imbued_df is None:
            raise RuntimeError("Run fill_gaps() first.")

        if merge:
            export_df = self.merged()
        else:
            export_df = self.imbued_df.copy()
            export_df["flag"] = "F"
            export_df["strategy"] = self.strategy.value

        if not include_flags:
            export_df = export_df.drop(columns=["flag", "strategy"])

        if filepath:
            export_df.to_csv(filepath, index=False)

        return export_df

    def generate_report(self):
        """Generate a summary report."""
        if self.gap_report is None or self.imbued is None:
            return {}

        missing = self.gap_report["missing_count"]
        filled = len(self.imbued)
        values = self.imbued_df["y"]
        return {
            "dataset_info": {
                "known_points": self.gap_report["known_count"],
                "x_column": self.x_col,
                "y_column": self.y_col,
                "axis_range": (
                    f"{self.gap_report['axis_min']} to {self.gap_report['axis_max']}"
                ),
            },
            "gap_summary": {
                "missing_count": missing,
                "missing_pct": self.gap_report["missing_pct"],
                "n_gaps": self.gap_report["n_gaps"],
                "max_gap_length": self.gap_report["max_gap_length"],
                "filled_count": filled,
                "fill_rate_pct": round(filled / max(missing, 1) * 100, 1),
            },
            "fill_summary": {
                "strategy": self.strategy.value,
                "min_value": float(values.min()) if filled else None,
                "max_value": float(values.max()) if filled else None,
                "mean_value": round(float(values.mean()), 3) if filled else None,
            },
        }
