import io

import pandas as pd
import pytest

from bli_data import load
from prepare_bli_dataset import attach_population, flag_emoji, flag_for, read_long, to_wide

LONG = """LOCATION,Country,INDICATOR,Indicator,INEQUALITY,Inequality,Value
FRA,France,HO_BASE,Dwellings without basic facilities,TOT,Total,0.5
FRA,France,HO_BASE,Dwellings without basic facilities,MN,Men,0.6
FRA,France,SW_LIFS,Life satisfaction,TOT,Total,6.7
KOR,Korea,SW_LIFS,Life satisfaction,TOT,Total,5.8
KOR,Korea,HO_BASE,Dwellings without basic facilities,TOT,Total,
OECD,OECD - Total,SW_LIFS,Life satisfaction,TOT,Total,6.7
"""


def test_flag_emoji():
    assert flag_emoji("FR") == "\U0001F1EB\U0001F1F7"
    assert flag_emoji("fr") == flag_emoji("FR")
    assert flag_emoji("") == ""
    assert flag_emoji(None) == ""


def test_flag_for_uses_name_then_location():
    assert flag_for("Korea") == flag_emoji("KR")
    assert flag_for("Republic of Korea", "KOR") == flag_emoji("KR")
    assert flag_for("OECD - Total", "OECD") == ""


def test_to_wide_keeps_totals_in_order():
    wide = to_wide(read_long(io.StringIO(LONG)))
    assert list(wide.columns) == ["Country", "Flag", "Dwellings without basic facilities", "Life satisfaction"]
    assert wide["Country"].tolist() == ["France", "Korea", "OECD - Total"]
    assert wide.loc[0, "Dwellings without basic facilities"] == 0.5
    assert pd.isna(wide.loc[1, "Dwellings without basic facilities"])


def test_read_long_requires_columns():
    with pytest.raises(ValueError, match="Inequality"):
        read_long(io.StringIO("LOCATION,Country,Indicator,Value\nFRA,France,x,1\n"))


def test_population_join_and_round_trip_through_loader():
    wide = to_wide(read_long(io.StringIO(LONG)))
    pop = pd.DataFrame({"Country": ["France", "Korea"], "Population": [68000000, 51000000]})
    out = attach_population(wide, pop)
    assert list(out.columns[:3]) == ["Country", "Flag", "Population"]
    assert pd.isna(out.loc[2, "Population"])

    ds = load(out.to_csv(index=False))
    assert ds.names == ["France", "Korea", "OECD - Total"]
    assert ds[0].population == 68000000.0
    assert ds[2].population is None
    assert ds[1].value("Dwellings without basic facilities") is None
