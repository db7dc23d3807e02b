# bli_figures.py
# Plotly figure builders for the dashboard. Each takes already-computed data
# and returns a go.Figure; None values are shown as gaps or "no data".

import numpy as np
import pandas as pd
import plotly.graph_objects as go

import bli_settings as S
from bli_data import region_of

NO_DATA = "—"
HIGHLIGHT_COLOR = "orange"
OECD_COLOR = "#7f7f7f"


def format_value(v, digits=1, thousands=False):
    if v is None or (isinstance(v, float) and not np.isfinite(v)):
        return NO_DATA
    if thousands:
        return f"{v:,.0f}"
    return f"{v:.{digits}f}"


def empty_figure(msg: str):
    fig = go.Figure()
    fig.add_annotation(text=msg, showarrow=False, xref="paper", yref="paper", x=0.5, y=0.5)
    fig.update_layout(
        xaxis=dict(visible=False),
        yaxis=dict(visible=False),
        margin=dict(l=40, r=20, t=40, b=40),
    )
    return fig


def sqrt_sizes(values: pd.Series, size_range=(6, 36), default=12):
    """Marker diameters on a sqrt scale (area ~ value); missing values get `default`."""
    lo_px, hi_px = size_range
    values = pd.to_numeric(values, errors="coerce")
    roots = np.sqrt(values.where(values > 0))
    lo, hi = roots.min(), roots.max()
    if not np.isfinite(lo) or not np.isfinite(hi):
        return pd.Series(default, index=values.index, dtype=float)
    if lo == hi:
        sizes = pd.Series((lo_px + hi_px) / 2, index=values.index, dtype=float)
    else:
        sizes = lo_px + (roots - lo) / (hi - lo) * (hi_px - lo_px)
    return sizes.fillna(default)


# -----------------------------
# Scatter
# -----------------------------

def scatter_figure(frame: pd.DataFrame, x: str, y: str, scale_by_population=False, selected=None):
    if x not in frame.columns or y not in frame.columns:
        return empty_figure("Pick two indicators")
    d = frame.dropna(subset=[x, y]).copy()
    if d.empty:
        return empty_figure(f"No countries report both '{x}' and '{y}'")

    d["region"] = d[S.COUNTRY_COLUMN].map(region_of)
    if scale_by_population:
        d["size"] = sqrt_sizes(d[S.POPULATION_COLUMN])
    else:
        d["size"] = 10.0

    fig = go.Figure()
    for region, g in d.groupby("region", sort=False):
        fig.add_trace(go.Scatter(
            x=g[x], y=g[y],
            mode="markers",
            name=region,
            marker=dict(size=g["size"], color=S.REGION_COLORS.get(region), opacity=0.75,
                        line=dict(width=0.5, color="white")),
            customdata=np.c_[g[S.COUNTRY_COLUMN].to_numpy(), g[S.FLAG_COLUMN].to_numpy()],
            hovertemplate=(f"%{{customdata[1]}} %{{customdata[0]}}<br>{x}: %{{x:,.4g}}"
                           f"<br>{y}: %{{y:,.4g}}<extra></extra>"),
        ))

    sel = d[d[S.COUNTRY_COLUMN] == selected]
    if not sel.empty:
        fig.add_trace(go.Scatter(
            x=sel[x], y=sel[y],
            mode="markers+text",
            name=selected,
            text=sel[S.COUNTRY_COLUMN],
            textposition="top center",
            marker=dict(size=sel["size"] + 6, color="rgba(0,0,0,0)",
                        line=dict(width=3, color=HIGHLIGHT_COLOR)),
            hoverinfo="skip",
            showlegend=False,
        ))

    fig.update_layout(
        title=f"{y} vs {x}",
        xaxis_title=x,
        yaxis_title=y,
        legend_title="Region",
        margin=dict(l=60, r=30, t=50, b=50),
    )
    return fig


# -----------------------------
# Radar
# -----------------------------

def radar_figure(scores, country):
    """Selected country vs OECD average on the 1-10 category scale."""
    if country is None or country not in scores.normalized:
        return empty_figure("Select a country")

    cats = list(scores.categories)
    mine = [scores.score(country, c) for c in cats]
    oecd = [scores.average_score(c) for c in cats]
    lo, hi = scores.scale

    fig = go.Figure()
    # repeat the first point to close the polygon
    for name, values, color in ((country, mine, HIGHLIGHT_COLOR), ("OECD average", oecd, OECD_COLOR)):
        fig.add_trace(go.Scatterpolar(
            r=values + values[:1],
            theta=cats + cats[:1],
            name=name,
            fill="toself",
            connectgaps=False,
            line=dict(color=color),
            customdata=[format_value(v) for v in values + values[:1]],
            hovertemplate="%{theta}: %{customdata}<extra>" + name + "</extra>",
        ))

    missing = [c for c, v in zip(cats, mine) if v is None]
    title = f"{country} vs OECD average"
    if missing:
        title += f"<br><sup>No data: {', '.join(missing)}</sup>"
    fig.update_layout(
        title=title,
        polar=dict(radialaxis=dict(range=[0, hi], tickvals=list(range(int(lo), int(hi) + 1)))),
        showlegend=True,
        margin=dict(l=40, r=40, t=70, b=40),
    )
    return fig


# -----------------------------
# Bar chart
# -----------------------------

def top_n_count(option):
    """'Top 5' -> 5, anything else (e.g. 'All') -> None."""
    if isinstance(option, str) and option.startswith("Top "):
        try:
            return int(option.split(" ")[1])
        except ValueError:
            return None
    return None


def bar_entries(frame: pd.DataFrame, prop: str, top_n=S.DEFAULT_TOP_N, region_mode=False) -> pd.Series:
    """Values to plot, descending: per country, or mean per region in region mode."""
    d = frame.dropna(subset=[prop])
    if region_mode:
        entries = d.groupby(d[S.COUNTRY_COLUMN].map(region_of))[prop].mean()
    else:
        entries = d.set_index(S.COUNTRY_COLUMN)[prop]
    entries = entries.sort_values(ascending=False, kind="stable")
    n = top_n_count(top_n)
    if not region_mode and n:
        entries = entries.head(n)
    return entries


def bar_figure(frame: pd.DataFrame, prop: str, top_n=S.DEFAULT_TOP_N, region_mode=False):
    if not prop or prop not in frame.columns:
        return empty_figure("Pick an indicator")
    entries = bar_entries(frame, prop, top_n, region_mode)
    if entries.empty:
        return empty_figure(f"No data for '{prop}'")

    vertical = region_mode or top_n in ("Top 3", "Top 5")
    if vertical:
        bar = go.Bar(x=entries.index, y=entries.values, marker_color="#69b3a2",
                     hovertemplate="%{x}: %{y:,.4g}<extra></extra>")
    else:
        # horizontal bars read top-down, so reverse for plotly's bottom-up y axis
        rev = entries.iloc[::-1]
        bar = go.Bar(x=rev.values, y=rev.index, orientation="h", marker_color="#404080",
                     hovertemplate="%{y}: %{x:,.4g}<extra></extra>")

    fig = go.Figure(bar)
    what = "by region" if region_mode else (top_n or "All")
    fig.update_layout(
        title=f"{prop} ({what})",
        margin=dict(l=160 if not vertical else 60, r=20, t=50, b=80),
        height=max(400, 22 * len(entries)) if not vertical else 500,
    )
    return fig


# -----------------------------
# Map
# -----------------------------

def iso3_of(name):
    codes = S.COUNTRY_CODES.get(name)
    return codes[0] if codes else None


def map_figure(frame: pd.DataFrame, prop: str, colorscale=S.DEFAULT_COLOR_SCALE, selected=None):
    if not prop or prop not in frame.columns:
        return empty_figure("Pick an indicator")
    d = frame.copy()
    d["iso3"] = d[S.COUNTRY_COLUMN].map(iso3_of)
    d = d.dropna(subset=["iso3", prop])
    if d.empty:
        return empty_figure(f"No data for '{prop}'")

    fig = go.Figure(go.Choropleth(
        locations=d["iso3"],
        z=d[prop],
        text=d[S.COUNTRY_COLUMN],
        customdata=np.c_[d[S.COUNTRY_COLUMN].to_numpy()],
        colorscale=colorscale or S.DEFAULT_COLOR_SCALE,
        colorbar_title=prop,
        hovertemplate=f"%{{text}}<br>{prop}: %{{z:,.4g}}<extra></extra>",
    ))

    sel = d[d[S.COUNTRY_COLUMN] == selected]
    if not sel.empty:
        fig.add_trace(go.Choropleth(
            locations=sel["iso3"],
            z=[1] * len(sel),
            colorscale=[[0, "rgba(0,0,0,0)"], [1, "rgba(0,0,0,0)"]],
            showscale=False,
            marker_line_color=HIGHLIGHT_COLOR,
            marker_line_width=3,
            hoverinfo="skip",
        ))

    fig.update_layout(title=prop, margin=dict(l=10, r=10, t=40, b=10))
    fig.update_geos(showframe=False, showcoastlines=False)
    return fig


# -----------------------------
# Ranking
# -----------------------------

def ranking_figure(ranking, top_n=S.RANKING_TOP_N, selected=None):
    """Horizontal bars of composite scores; countries without a score are labelled, not drawn."""
    rows = list(ranking)[:top_n] if top_n else list(ranking)
    if not rows:
        return empty_figure("No countries to rank")

    labels = [r.name if r.score is not None else f"{r.name} (no data)" for r in rows]
    colors = [HIGHLIGHT_COLOR if r.name == selected else "#69b3a2" for r in rows]
    fig = go.Figure(go.Bar(
        x=[r.score for r in rows][::-1],
        y=labels[::-1],
        orientation="h",
        marker_color=colors[::-1],
        hovertemplate="%{y}: %{x:.2f}<extra></extra>",
    ))
    fig.update_layout(
        title="Composite ranking",
        xaxis=dict(range=[0, S.SCORE_SCALE[1]], title="Score"),
        margin=dict(l=180, r=20, t=50, b=40),
        height=max(400, 20 * len(rows)),
    )
    return fig


# -----------------------------
# Correlation heatmap
# -----------------------------

def heatmap_figure(matrix, highlights=None):
    cols = list(matrix.columns)
    if not cols:
        return empty_figure("No numeric indicators")
    n = len(cols)
    idx = list(range(n))

    z = matrix.frame.to_numpy(dtype=float)
    text = [[format_value(v, digits=2) for v in row] for row in z]
    fig = go.Figure(go.Heatmap(
        z=z, x=idx, y=idx,
        zmin=-1, zmax=1, zmid=0,
        colorscale="RdBu",
        customdata=np.array(text, dtype=object),
        text=[[f"{cols[i]} vs {cols[j]}" for j in idx] for i in idx],
        hovertemplate="%{text}<br>r = %{customdata}<extra></extra>",
        xgap=1, ygap=1,
    ))

    for a, b in (S.HEATMAP_HIGHLIGHTS if highlights is None else highlights):
        if a in cols and b in cols:
            i, j = cols.index(a), cols.index(b)
            fig.add_shape(type="rect", x0=j - 0.5, x1=j + 0.5, y0=i - 0.5, y1=i + 0.5,
                          line=dict(color="#333", width=3))

    axis = dict(tickmode="array", tickvals=idx, ticktext=cols, showgrid=False)
    fig.update_layout(
        title="Correlation between indicators",
        xaxis=dict(axis, tickangle=45),
        yaxis=dict(axis, autorange="reversed"),
        margin=dict(l=260, r=20, t=50, b=260),
        height=max(650, 22 * n + 320),
    )
    return fig


# -----------------------------
# Country cards
# -----------------------------

def country_profile(scores, record):
    """(label, text) rows for a member-country card: population, life satisfaction, 1-10 ratings."""
    rows = [
        ("Population", format_value(record.population, thousands=True)),
        ("Life satisfaction", format_value(record.value("Life satisfaction"))),
    ]
    if scores is not None and record.name in scores.normalized:
        rows += [(c, format_value(scores.score(record.name, c))) for c in scores.categories]
    return rows
