# app.py
# OECD Better Life Index dashboard: scatter, radar, bar, map, ranking and
# correlation views over one CSV, sharing the selected country.

import logging

from dash import ALL, Dash, Input, Output, State, ctx, dcc, html

import bli_settings as S
from bli_data import DataFormatError, load, to_frame, indicator_columns
from bli_figures import (
    bar_figure,
    country_profile,
    heatmap_figure,
    map_figure,
    radar_figure,
    ranking_figure,
    scatter_figure,
    iso3_of,
)
from bli_logging import setup_logger
from metrics_engine import (
    EngineState,
    category_definitions,
    compute_category_scores,
    correlate,
    effective_weights,
    rank,
)

logger = logging.getLogger(__name__)

PAGE_STYLE = {"fontFamily": "Raleway, system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial",
              "padding": "16px", "maxWidth": "1200px", "margin": "0 auto"}
CARD_STYLE = {"border": "1px solid #ddd", "borderRadius": "6px", "padding": "8px",
              "background": "#fafafa", "textAlign": "center"}
GRAPH_CONFIG = {"displaylogo": False, "modeBarButtonsToRemove": ["lasso2d", "select2d"]}


# -----------------------------
# Helpers
# -----------------------------

def default_country(countries, stored=None):
    if stored in countries:
        return stored
    return countries[0] if countries else None


def country_from_click(click, iso3_lookup=None):
    """Country name from scatter/map clickData (customdata, text, or ISO-3 location)."""
    try:
        point = click["points"][0]
    except (TypeError, KeyError, IndexError):
        return None
    custom = point.get("customdata")
    if isinstance(custom, (list, tuple)) and custom:
        return custom[0]
    if isinstance(custom, str):
        return custom
    if point.get("text"):
        return point["text"]
    if iso3_lookup and point.get("location"):
        return iso3_lookup.get(point["location"])
    return None


def next_state(data, trigger, dropdown, click_country, weights, countries) -> EngineState:
    """Fold one UI event into the stored state."""
    state = EngineState.from_store(data).with_weights(weights)
    if trigger == "country-select" and dropdown in countries:
        return state.with_selection(dropdown)
    if trigger in ("world-map", "scatter") and click_country in countries:
        return state.with_selection(click_country)
    return state.with_selection(default_country(countries, state.selected_country))


def ranking_caption(scores, weights) -> str:
    active = effective_weights(scores, weights)
    if not any((w or 0) > 0 for w in weights.values()):
        return f"All weights are zero: ranking by {next(iter(active))}."
    parts = [f"{c} ×{w:g}" for c, w in active.items()]
    return "Weighted by " + ", ".join(parts)


def weight_controls(categories):
    return html.Div(
        style={"display": "grid", "gridTemplateColumns": "repeat(auto-fit, minmax(180px, 1fr))",
               "gap": "8px", "marginBottom": "12px"},
        children=[
            html.Div([
                html.Label(cat, style={"fontWeight": "bold", "fontSize": "14px"}),
                dcc.Slider(
                    id={"type": "weight", "category": cat},
                    min=0, max=S.WEIGHT_MAX, step=1, value=0,
                    marks={0: "0", S.WEIGHT_MAX: str(S.WEIGHT_MAX)},
                    tooltip={"placement": "bottom", "always_visible": False},
                    persistence=True, persistence_type="local",
                ),
            ])
            for cat in categories
        ],
    )


def country_cards(dataset, scores):
    cards = []
    for record in dataset:
        rows = country_profile(scores, record)
        cards.append(html.Details(style=CARD_STYLE, children=[
            html.Summary([
                html.Div(record.flag_emoji, style={"fontSize": "32px", "lineHeight": "1"}),
                html.Div(record.name, style={"fontWeight": "bold", "marginTop": "4px"}),
            ], style={"listStyle": "none", "cursor": "pointer"}),
            html.Table([html.Tr([html.Td(label), html.Td(text)]) for label, text in rows],
                       style={"fontSize": "12px", "textAlign": "left", "marginTop": "6px"}),
        ]))
    return html.Div(cards, style={"display": "grid",
                                  "gridTemplateColumns": "repeat(auto-fill, minmax(140px, 1fr))",
                                  "gap": "16px"})


def _options(values):
    return [{"label": v, "value": v} for v in values]


def _pick(preferred, values, fallback_index=0):
    if preferred in values:
        return preferred
    return values[min(fallback_index, len(values) - 1)] if values else None


# -----------------------------
# App layout
# -----------------------------

def build_layout(dataset, scores, matrix):
    numeric = indicator_columns(dataset)
    countries = sorted(r.name for r in dataset)

    return html.Div(style=PAGE_STYLE, children=[
        html.H2(S.APP_TITLE, style={"marginBottom": "8px"}),
        html.P("How do OECD countries compare on housing, income, jobs, health and well-being? "
               "Pick a country to follow it across every chart."),

        dcc.Store(id="engine-state", storage_type="local"),

        html.Div([
            html.Label("Country"),
            dcc.Dropdown(id="country-select", options=_options(countries), clearable=False),
        ], style={"maxWidth": "400px", "marginBottom": "16px"}),

        # Scatter + radar
        html.Div(style={"display": "grid", "gridTemplateColumns": "3fr 2fr", "gap": "16px"}, children=[
            html.Div([
                html.Div(style={"display": "grid", "gridTemplateColumns": "1fr 1fr auto", "gap": "8px"},
                         children=[
                    dcc.Dropdown(id="x-axis", options=_options(numeric),
                                 value=_pick(S.DEFAULT_SCATTER_X, numeric, 0), clearable=False),
                    dcc.Dropdown(id="y-axis", options=_options(numeric),
                                 value=_pick(S.DEFAULT_SCATTER_Y, numeric, 1), clearable=False),
                    dcc.Checklist(id="scale-population",
                                  options=[{"label": " Size by population", "value": "pop"}],
                                  value=["pop"] if S.DEFAULT_SCALE_BY_POPULATION else []),
                ]),
                dcc.Graph(id="scatter", config=GRAPH_CONFIG, style={"height": "60vh"}),
            ]),
            dcc.Graph(id="radar", config=GRAPH_CONFIG, style={"height": "60vh"}),
        ]),

        # Bar chart
        html.H3("Compare one indicator"),
        html.Div(style={"display": "grid", "gridTemplateColumns": "2fr 1fr 1fr", "gap": "8px"}, children=[
            dcc.Dropdown(id="property-select", options=_options(numeric),
                         value=_pick(S.DEFAULT_SCATTER_Y, numeric), clearable=False),
            dcc.Dropdown(id="top-n", options=_options(S.TOP_N_OPTIONS), value=S.DEFAULT_TOP_N,
                         clearable=False),
            dcc.Checklist(id="region-mode", options=[{"label": " Average by region", "value": "region"}],
                          value=[]),
        ]),
        dcc.Graph(id="bar", config=GRAPH_CONFIG),

        # Map
        html.H3("Map"),
        html.Div(style={"display": "grid", "gridTemplateColumns": "2fr 1fr", "gap": "8px"}, children=[
            dcc.Dropdown(id="map-metric", options=_options(numeric),
                         value=_pick(S.DEFAULT_SCATTER_Y, numeric), clearable=False),
            dcc.Dropdown(id="colorscale", options=_options(S.COLOR_SCALES),
                         value=S.DEFAULT_COLOR_SCALE, clearable=False),
        ]),
        dcc.Graph(id="world-map", config=GRAPH_CONFIG, style={"height": "60vh"}),

        # Ranking
        html.H3("Build your own index"),
        weight_controls(scores.categories),
        html.Div(id="ranking-caption", style={"fontSize": "13px", "color": "#555"}),
        dcc.Graph(id="ranking", config=GRAPH_CONFIG),

        # Heatmap
        html.H3("How indicators move together"),
        dcc.Graph(id="heatmap", figure=heatmap_figure(matrix), config=GRAPH_CONFIG),

        # Members
        html.H3("Member countries"),
        country_cards(dataset, scores),
    ])


def create_app(dataset) -> Dash:
    """Compute scores and correlations once, then wire the views to them."""
    frame = to_frame(dataset)
    scores = compute_category_scores(dataset, category_definitions())
    matrix = correlate(dataset)
    countries = sorted(r.name for r in dataset)
    iso3_lookup = {iso3_of(n): n for n in countries if iso3_of(n)}

    app = Dash(__name__, title=S.APP_TITLE)
    app.layout = build_layout(dataset, scores, matrix)

    @app.callback(
        Output("engine-state", "data"),
        Output("country-select", "value"),
        Input("country-select", "value"),
        Input("world-map", "clickData"),
        Input("scatter", "clickData"),
        Input({"type": "weight", "category": ALL}, "value"),
        State({"type": "weight", "category": ALL}, "id"),
        State("engine-state", "data"),
    )
    def sync_state(dropdown, map_click, scatter_click, weight_values, weight_ids, data):
        trigger = ctx.triggered_id if isinstance(ctx.triggered_id, str) else None
        click = map_click if trigger == "world-map" else scatter_click
        weights = {wid["category"]: v or 0 for wid, v in zip(weight_ids, weight_values)}
        state = next_state(data, trigger, dropdown, country_from_click(click, iso3_lookup),
                           weights, countries)
        return state.to_store(), state.selected_country

    @app.callback(
        Output("scatter", "figure"),
        Input("x-axis", "value"),
        Input("y-axis", "value"),
        Input("scale-population", "value"),
        Input("engine-state", "data"),
    )
    def update_scatter(x, y, scale_opts, data):
        use_pop = isinstance(scale_opts, (list, tuple, set)) and "pop" in scale_opts
        return scatter_figure(frame, x, y, use_pop, EngineState.from_store(data).selected_country)

    @app.callback(
        Output("radar", "figure"),
        Input("engine-state", "data"),
    )
    def update_radar(data):
        return radar_figure(scores, EngineState.from_store(data).selected_country)

    @app.callback(
        Output("bar", "figure"),
        Output("top-n", "disabled"),
        Input("property-select", "value"),
        Input("top-n", "value"),
        Input("region-mode", "value"),
    )
    def update_bar(prop, top_n, region_opts):
        region_mode = bool(region_opts) and "region" in region_opts
        return bar_figure(frame, prop, top_n, region_mode), region_mode

    @app.callback(
        Output("world-map", "figure"),
        Input("map-metric", "value"),
        Input("colorscale", "value"),
        Input("engine-state", "data"),
    )
    def update_map(metric, colorscale, data):
        return map_figure(frame, metric, colorscale, EngineState.from_store(data).selected_country)

    @app.callback(
        Output("ranking", "figure"),
        Output("ranking-caption", "children"),
        Input("engine-state", "data"),
    )
    def update_ranking(data):
        state = EngineState.from_store(data)
        ranking = [r for r in rank(scores, state.weights) if not _is_aggregate(dataset, r.name)]
        return (ranking_figure(ranking, S.RANKING_TOP_N, state.selected_country),
                ranking_caption(scores, state.weights))

    return app


def _is_aggregate(dataset, name):
    record = dataset.find(name)
    return record is not None and record.is_aggregate


def create_unavailable_app(message: str) -> Dash:
    """Terminal state when the dataset cannot be loaded: no partial charts."""
    app = Dash(__name__, title=S.APP_TITLE)
    app.layout = html.Div(style=PAGE_STYLE, children=[
        html.H2(S.APP_TITLE),
        html.Div([html.Strong("Data unavailable. "), html.Span(message)],
                 id="data-unavailable", style={"color": "#a00"}),
    ])
    return app


# -----------------------------
# Run
# -----------------------------
def main():
    setup_logger()
    try:
        dataset = load(S.DATA_PATH)
    except (FileNotFoundError, DataFormatError) as e:
        logger.error("Cannot load %s: %s", S.DATA_PATH, e)
        app = create_unavailable_app(str(e))
    else:
        logger.info("Serving %d rows from %s", len(dataset), S.DATA_PATH)
        app = create_app(dataset)
    app.run(debug=False)


if __name__ == "__main__":
    main()
