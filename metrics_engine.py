# metrics_engine.py
# Category scores, weighted composite ranking and indicator correlations.

import logging
import math
from collections import namedtuple
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

import bli_settings as S
from bli_data import (
    EmptyCategorySetError,
    MissingColumnError,
    indicator_columns,
    to_frame,
    value_columns,
)

logger = logging.getLogger(__name__)

RankedCountry = namedtuple("RankedCountry", ["name", "score"])


@dataclass(frozen=True)
class CategoryDefinition:
    name: str
    member_indicators: Tuple[str, ...]


def category_definitions(mapping: Mapping[str, Sequence[str]] = None) -> List[CategoryDefinition]:
    """Build definitions from a {category: [indicator, ...]} mapping (settings by default)."""
    mapping = S.CATEGORIES if mapping is None else mapping
    return [CategoryDefinition(name, tuple(cols)) for name, cols in mapping.items()]


def _as_definitions(categories) -> List[CategoryDefinition]:
    if isinstance(categories, Mapping):
        return category_definitions(categories)
    return list(categories)


def validate_categories(columns: Iterable[str], categories) -> None:
    """Raise MissingColumnError for the first category naming an absent column."""
    present = set(columns)
    for cat in _as_definitions(categories):
        missing = [c for c in cat.member_indicators if c not in present]
        if missing:
            raise MissingColumnError(cat.name, missing)


def _none_if_nan(v) -> Optional[float]:
    return None if v is None or pd.isna(v) else float(v)


def _rescale(values: pd.Series, lo: float, hi: float, scale) -> pd.Series:
    """Clamped linear map of [lo, hi] onto scale. A flat domain is widened by 1 each side."""
    out_min, out_max = scale
    if lo == hi:
        lo, hi = lo - 1, hi + 1
    s01 = ((values - lo) / (hi - lo)).clip(0, 1)
    return s01 * (out_max - out_min) + out_min


# -----------------------------
# Category scores
# -----------------------------

@dataclass(frozen=True)
class CategoryScores:
    countries: Tuple[str, ...]
    categories: Tuple[str, ...]
    raw_mean: Dict[str, Dict[str, Optional[float]]]
    normalized: Dict[str, Dict[str, Optional[float]]]
    normalization_range: Dict[str, Optional[Tuple[float, float]]]
    average: Dict[str, Optional[float]]
    scale: Tuple[float, float] = S.SCORE_SCALE
    skipped: Tuple[str, ...] = ()

    def raw(self, country: str, category: str) -> Optional[float]:
        return self.raw_mean[country][category]

    def score(self, country: str, category: str) -> Optional[float]:
        return self.normalized[country][category]

    def normalize(self, category: str, value) -> Optional[float]:
        """Map any raw value (e.g. the OECD average) onto the category's score scale."""
        rng = self.normalization_range[category]
        if rng is None or value is None or not math.isfinite(value):
            return None
        return float(_rescale(pd.Series([float(value)]), rng[0], rng[1], self.scale).iloc[0])

    def average_score(self, category: str) -> Optional[float]:
        return self.normalize(category, self.average[category])

    def to_frame(self, normalized=True) -> pd.DataFrame:
        """Country x category table; NaN marks missing scores."""
        table = self.normalized if normalized else self.raw_mean
        return pd.DataFrame.from_dict(
            {c: table[c] for c in self.countries}, orient="index", columns=list(self.categories)
        ).astype(float)


def compute_category_scores(records, categories=None, scale=S.SCORE_SCALE, strict=False) -> CategoryScores:
    """
    Per (country, category): mean of the finite member indicator values,
    None when there are none. Means are rescaled onto `scale` with the
    min/max over every row with a mean, aggregate rows included.
    A category naming absent columns is skipped (all None) unless strict=True.
    """
    cats = _as_definitions(S.CATEGORIES if categories is None else categories)
    columns = value_columns(records)
    frame = to_frame(records)
    names = frame[S.COUNTRY_COLUMN].tolist()
    if len(set(names)) != len(names):
        logger.warning("Duplicate country names; later rows shadow earlier ones in score lookups")

    raw_mean = {n: {} for n in names}
    normalized = {n: {} for n in names}
    ranges, averages, skipped = {}, {}, []

    for cat in cats:
        try:
            validate_categories(columns, [cat])
        except MissingColumnError as e:
            if strict:
                raise
            logger.warning("Skipping category: %s", e)
            skipped.append(cat.name)
            means = pd.Series(np.nan, index=frame.index, dtype=float)
        else:
            means = frame[list(cat.member_indicators)].mean(axis=1, skipna=True)

        pool = means.dropna()
        if pool.empty:
            ranges[cat.name] = None
            averages[cat.name] = None
            scores = pd.Series(np.nan, index=frame.index, dtype=float)
        else:
            lo, hi = float(pool.min()), float(pool.max())
            ranges[cat.name] = (lo, hi)
            averages[cat.name] = float(pool.mean())
            scores = _rescale(means, lo, hi, scale)

        for i, n in enumerate(names):
            raw_mean[n][cat.name] = _none_if_nan(means.iloc[i])
            normalized[n][cat.name] = _none_if_nan(scores.iloc[i])

    return CategoryScores(
        countries=tuple(names),
        categories=tuple(c.name for c in cats),
        raw_mean=raw_mean,
        normalized=normalized,
        normalization_range=ranges,
        average=averages,
        scale=tuple(scale),
        skipped=tuple(skipped),
    )


# -----------------------------
# Composite ranking
# -----------------------------

def effective_weights(category_scores: CategoryScores, weights=None,
                      default_category=S.DEFAULT_CATEGORY) -> Dict[str, float]:
    """Positive weights only; all-zero falls back to {default_category: 1}."""
    if not category_scores.categories:
        raise EmptyCategorySetError("Ranking needs at least one category")

    weights = dict(weights or {})
    unknown = [c for c in weights if c not in category_scores.categories]
    if unknown:
        raise KeyError(f"Weights given for unknown categories: {unknown}")
    for cat, w in weights.items():
        if w is None or not math.isfinite(w) or w < 0:
            raise ValueError(f"Weight for '{cat}' must be a finite non-negative number, got {w!r}")

    active = {c: float(w) for c, w in weights.items() if w > 0}
    if active:
        return active

    fallback = default_category if default_category in category_scores.categories \
        else category_scores.categories[0]
    logger.debug("All weights zero; ranking by '%s'", fallback)
    return {fallback: 1.0}


def rank(category_scores: CategoryScores, weights=None,
         default_category=S.DEFAULT_CATEGORY) -> List[RankedCountry]:
    """
    Weighted mean of normalized category scores per country, over the
    weighted categories where the country has a score. Descending, stable;
    countries without any usable score come last with score None.
    """
    active = effective_weights(category_scores, weights, default_category)

    results = []
    for name in category_scores.countries:
        num = den = 0.0
        for cat, w in active.items():
            s = category_scores.score(name, cat)
            if s is None:
                continue
            num += w * s
            den += w
        results.append(RankedCountry(name, num / den if den else None))

    return sorted(results, key=lambda r: (r.score is None, -(r.score or 0.0)))


# -----------------------------
# Correlation
# -----------------------------

def pearson(a, b) -> Optional[float]:
    """Sample Pearson r over pairwise-complete observations; None when undefined."""
    x = np.asarray(a, dtype=float)
    y = np.asarray(b, dtype=float)
    mask = np.isfinite(x) & np.isfinite(y)
    x, y = x[mask], y[mask]
    n = len(x)
    if n < 2 or np.ptp(x) == 0 or np.ptp(y) == 0:
        return None
    dx, dy = x - x.mean(), y - y.mean()
    cov = (dx * dy).sum() / (n - 1)
    sd_x = math.sqrt((dx * dx).sum() / (n - 1))
    sd_y = math.sqrt((dy * dy).sum() / (n - 1))
    if sd_x == 0 or sd_y == 0:
        return None
    return float(np.clip(cov / (sd_x * sd_y), -1.0, 1.0))


@dataclass(frozen=True, eq=False)
class CorrelationMatrix:
    columns: Tuple[str, ...]
    frame: pd.DataFrame = field(repr=False)

    def r(self, a: str, b: str) -> Optional[float]:
        return _none_if_nan(self.frame.at[a, b])

    def pairs(self):
        """(a, b, r) for each unordered pair of distinct columns."""
        for i, a in enumerate(self.columns):
            for b in self.columns[i + 1:]:
                yield a, b, self.r(a, b)

    def strongest(self, n=10) -> List[Tuple[str, str, float]]:
        defined = [p for p in self.pairs() if p[2] is not None]
        return sorted(defined, key=lambda p: -abs(p[2]))[:n]


def correlate(records, columns=None) -> CorrelationMatrix:
    """Symmetric Pearson matrix between indicator columns (Population excluded by default)."""
    frame = to_frame(records)
    cols = list(columns) if columns is not None else indicator_columns(records)
    missing = [c for c in cols if c not in frame.columns]
    if missing:
        raise MissingColumnError("correlation", missing)

    values = {c: frame[c].to_numpy(dtype=float) for c in cols}
    mat = np.full((len(cols), len(cols)), np.nan)
    for i, a in enumerate(cols):
        for j in range(i, len(cols)):
            r = pearson(values[a], values[cols[j]])
            if r is None:
                continue
            if i == j:
                r = 1.0
            mat[i, j] = mat[j, i] = r

    return CorrelationMatrix(tuple(cols), pd.DataFrame(mat, index=cols, columns=cols))


# -----------------------------
# Dashboard state
# -----------------------------

@dataclass(frozen=True)
class EngineState:
    """Slider weights and the selected country, passed through every callback."""
    weights: Mapping[str, float] = field(default_factory=dict)
    selected_country: Optional[str] = None

    def with_weight(self, category: str, weight) -> "EngineState":
        new = dict(self.weights)
        new[category] = float(weight)
        return replace(self, weights=new)

    def with_weights(self, weights: Mapping[str, float]) -> "EngineState":
        return replace(self, weights={k: float(v or 0) for k, v in weights.items()})

    def with_selection(self, country: Optional[str]) -> "EngineState":
        return replace(self, selected_country=country)

    def to_store(self) -> dict:
        return {"weights": dict(self.weights), "selected_country": self.selected_country}

    @classmethod
    def from_store(cls, data) -> "EngineState":
        if not isinstance(data, dict):
            return cls()
        weights = data.get("weights") or {}
        return cls(weights={k: float(v or 0) for k, v in weights.items()},
                   selected_country=data.get("selected_country"))
