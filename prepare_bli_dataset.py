import os
import sys

import pandas as pd

import bli_settings as S

# OECD Better Life Index export (long format, one row per country x indicator x inequality)
BLI_SOURCE = os.getenv("BLI_SOURCE", "data/BLI_long.csv")
# Optional: Country,Population
POPULATION_SOURCE = os.getenv("BLI_POPULATION_SOURCE", "data/population.csv")
OUT_CSV = str(S.DATA_PATH)

LONG_COLUMNS = {"LOCATION", "Country", "Indicator", "Inequality", "Value"}
TOTAL = "Total"


def flag_emoji(iso2):
    """'FR' -> regional indicator pair rendering as the French flag; '' if unknown."""
    if not isinstance(iso2, str) or len(iso2) != 2 or not iso2.isalpha():
        return ""
    return "".join(chr(0x1F1E6 + ord(c) - ord("A")) for c in iso2.upper())


def flag_for(country, location=None):
    codes = S.COUNTRY_CODES.get(country)
    if codes:
        return flag_emoji(codes[1])
    for iso3, iso2 in S.COUNTRY_CODES.values():
        if iso3 == location:
            return flag_emoji(iso2)
    return ""


def read_long(source):
    """Read the OECD export and check it has the columns we pivot on."""
    print(f"Reading BLI export -> {source}")
    df = pd.read_csv(source)
    df.columns = [str(c).strip() for c in df.columns]
    missing = LONG_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"BLI export missing expected columns: {sorted(missing)}")
    return df


def to_wide(long_df):
    """
    Keep the whole-population ('Total') rows and pivot to one row per country,
    one column per indicator, in first-seen country and indicator order.
    """
    d = long_df[long_df["Inequality"].astype(str).str.strip() == TOTAL].copy()
    d["Country"] = d["Country"].astype(str).str.strip()
    d["Indicator"] = d["Indicator"].astype(str).str.strip()
    d["Value"] = pd.to_numeric(d["Value"], errors="coerce")

    countries = d.drop_duplicates("Country")[["LOCATION", "Country"]]
    indicators = list(dict.fromkeys(d["Indicator"]))

    wide = d.pivot_table(index="Country", columns="Indicator", values="Value", aggfunc="first")
    wide = wide.reindex(index=countries["Country"], columns=indicators).reset_index()
    wide.columns.name = None

    flags = [flag_for(c, loc) for loc, c in zip(countries["LOCATION"], countries["Country"])]
    wide.insert(1, S.FLAG_COLUMN, flags)
    return wide


def attach_population(wide, pop_df):
    """Left-join a Country,Population table; unmatched countries keep an empty cell."""
    pop = pop_df.rename(columns=lambda c: str(c).strip())[[S.COUNTRY_COLUMN, S.POPULATION_COLUMN]].copy()
    pop[S.POPULATION_COLUMN] = pd.to_numeric(pop[S.POPULATION_COLUMN], errors="coerce").astype("Int64")
    out = wide.merge(pop, on=S.COUNTRY_COLUMN, how="left")
    cols = [S.COUNTRY_COLUMN, S.FLAG_COLUMN, S.POPULATION_COLUMN]
    return out[cols + [c for c in out.columns if c not in cols]]


def main():
    wide = to_wide(read_long(BLI_SOURCE))

    if os.path.exists(POPULATION_SOURCE):
        wide = attach_population(wide, pd.read_csv(POPULATION_SOURCE))
        unmatched = wide.loc[wide[S.POPULATION_COLUMN].isna(), S.COUNTRY_COLUMN].tolist()
        if unmatched:
            print("  ⚠️ No population for:", unmatched)
    else:
        print(f"  ⚠️ {POPULATION_SOURCE} not found; Population column left empty.")
        wide.insert(2, S.POPULATION_COLUMN, pd.NA)

    os.makedirs(os.path.dirname(OUT_CSV) or ".", exist_ok=True)
    wide.to_csv(OUT_CSV, index=False)

    print(f"\n✅ Wrote {OUT_CSV}: {len(wide)} rows, {wide.shape[1] - 3} indicators")
    missing = [c for cols in S.CATEGORIES.values() for c in cols if c not in wide.columns]
    if missing:
        print("  ⚠️ Category indicators absent from the export:", missing)


if __name__ == "__main__":
    sys.exit(main())
