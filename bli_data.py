# bli_data.py
# Loading the Better Life Index CSV into typed country records.

import io
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

import bli_settings as S

logger = logging.getLogger(__name__)


class BetterLifeError(Exception):
    """Base class for dataset and scoring errors."""


class DataFormatError(BetterLifeError, ValueError):
    """The source is missing structural elements (empty, no header, no Country column)."""


class MissingColumnError(BetterLifeError, KeyError):
    """A category (or column selection) references columns that are not in the dataset."""

    def __init__(self, owner, missing):
        self.owner = owner
        self.missing = list(missing)
        super().__init__(f"'{owner}' references missing columns: {self.missing}")

    def __str__(self):
        return self.args[0]


class EmptyCategorySetError(BetterLifeError, ValueError):
    """A ranking was requested over zero categories."""


@dataclass(frozen=True)
class CountryRecord:
    name: str
    flag_emoji: str = ""
    population: Optional[float] = None
    indicators: Mapping[str, Optional[float]] = field(default_factory=dict)

    @property
    def is_aggregate(self) -> bool:
        return is_aggregate_name(self.name)

    @property
    def region(self) -> str:
        return region_of(self.name)

    def value(self, indicator: str) -> Optional[float]:
        return self.indicators.get(indicator)


class CountryDataset:
    """Read-only sequence of CountryRecord that remembers the parsed header."""

    def __init__(self, records: Iterable[CountryRecord], columns: Iterable[str]):
        self._records = tuple(records)
        self.columns = tuple(columns)

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def __getitem__(self, item):
        return self._records[item]

    def __repr__(self):
        return f"<CountryDataset: {len(self._records)} rows x {len(self.columns)} columns>"

    @property
    def names(self) -> List[str]:
        return [r.name for r in self._records]

    def find(self, name: str) -> Optional[CountryRecord]:
        for r in self._records:
            if r.name == name:
                return r
        return None


# -----------------------------
# Classification helpers
# -----------------------------

def is_aggregate_name(name) -> bool:
    lowered = str(name or "").lower()
    return any(m in lowered for m in S.AGGREGATE_MARKERS)


def region_of(name) -> str:
    for region, members in S.REGIONS.items():
        if name in members:
            return region
    if is_aggregate_name(name):
        return S.AGGREGATE_REGION
    return S.OTHER_REGION


# -----------------------------
# Loading
# -----------------------------

def _read_text_frame(source) -> pd.DataFrame:
    """Read every cell as text; a Path or an existing file name is read from disk, other str is CSV content."""
    opts = dict(dtype=str, keep_default_na=False)
    if isinstance(source, str) and not source.strip():
        raise DataFormatError("Dataset is empty: no header row")
    try:
        if isinstance(source, Path) or (isinstance(source, str) and "\n" not in source and os.path.isfile(source)):
            path = Path(source)
            if not path.exists():
                raise FileNotFoundError(f"Dataset not found: {path}")
            return pd.read_csv(path, encoding="utf-8-sig", **opts)
        if isinstance(source, str):
            return pd.read_csv(io.StringIO(source), **opts)
        return pd.read_csv(source, **opts)
    except pd.errors.EmptyDataError as e:
        raise DataFormatError("Dataset is empty: no header row") from e
    except pd.errors.ParserError as e:
        raise DataFormatError(f"Dataset could not be parsed: {e}") from e


def _clean_headers(columns) -> List[str]:
    headers = [str(c).strip() for c in columns]
    if not headers or all(h == "" or h.startswith("Unnamed:") for h in headers):
        raise DataFormatError("Header row is blank")
    dupes = sorted({h for h in headers if headers.count(h) > 1})
    if dupes:
        raise DataFormatError(f"Duplicate columns after trimming: {dupes}")
    if S.COUNTRY_COLUMN not in headers:
        raise DataFormatError(f"Missing required column '{S.COUNTRY_COLUMN}'. Found: {headers}")
    return headers


def _none_if_nan(v) -> Optional[float]:
    return None if pd.isna(v) else float(v)


def load(source) -> CountryDataset:
    """
    Parse a wide Better Life Index CSV (path, CSV text or file object).
    Header names are trimmed, numeric cells become floats, empty or
    unparseable cells become None. Every data row is kept, in order.
    """
    raw = _read_text_frame(source)
    raw.columns = _clean_headers(raw.columns)

    value_cols = [c for c in raw.columns if c not in S.TEXT_COLUMNS]
    numeric = pd.DataFrame(
        {c: pd.to_numeric(raw[c].str.strip(), errors="coerce") for c in value_cols},
        index=raw.index,
    )
    indicator_cols = [c for c in value_cols if c != S.POPULATION_COLUMN]

    records = []
    for i in range(len(raw)):
        row = numeric.iloc[i]
        indicators: Dict[str, Optional[float]] = {c: _none_if_nan(row[c]) for c in indicator_cols}
        records.append(CountryRecord(
            name=raw[S.COUNTRY_COLUMN].iloc[i].strip(),
            flag_emoji=raw[S.FLAG_COLUMN].iloc[i].strip() if S.FLAG_COLUMN in raw.columns else "",
            population=_none_if_nan(row[S.POPULATION_COLUMN]) if S.POPULATION_COLUMN in numeric.columns else None,
            indicators=MappingProxyType(indicators),
        ))

    empty_rows = sum(1 for r in records if all(v is None for v in r.indicators.values()))
    if empty_rows:
        logger.warning("%d row(s) carry no numeric indicator data", empty_rows)
    logger.info("Loaded %d rows, %d indicator columns", len(records), len(indicator_cols))
    return CountryDataset(records, raw.columns)


def indicator_columns(records) -> List[str]:
    """Numeric indicator columns in header order (Population excluded)."""
    columns = getattr(records, "columns", None)
    if columns is not None:
        return [c for c in columns if c not in S.TEXT_COLUMNS and c != S.POPULATION_COLUMN]
    seen = {}
    for r in records:
        for k in r.indicators:
            seen.setdefault(k, None)
    return list(seen)


def value_columns(records) -> List[str]:
    """Every parsed numeric column a category may reference (Population included)."""
    columns = getattr(records, "columns", None)
    if columns is not None:
        return [c for c in columns if c not in S.TEXT_COLUMNS]
    return [S.POPULATION_COLUMN] + indicator_columns(records)


def to_frame(records) -> pd.DataFrame:
    """Wide DataFrame (Country, Flag, Population, indicators...) with NaN for missing values."""
    cols = indicator_columns(records)
    rows = []
    for r in records:
        row = {S.COUNTRY_COLUMN: r.name, S.FLAG_COLUMN: r.flag_emoji, S.POPULATION_COLUMN: r.population}
        row.update({c: r.indicators.get(c) for c in cols})
        rows.append(row)
    df = pd.DataFrame(rows, columns=[S.COUNTRY_COLUMN, S.FLAG_COLUMN, S.POPULATION_COLUMN] + cols)
    for c in [S.POPULATION_COLUMN] + cols:
        df[c] = pd.to_numeric(df[c], errors="coerce").replace([np.inf, -np.inf], np.nan)
    return df
