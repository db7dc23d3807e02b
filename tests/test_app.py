from dash import Dash

from app import (
    build_layout,
    country_from_click,
    create_app,
    create_unavailable_app,
    default_country,
    next_state,
    ranking_caption,
)
from bli_data import load
from metrics_engine import EngineState, category_definitions, compute_category_scores, correlate

SAMPLE = (
    "Country,Flag,Population,Personal earnings,Life expectancy,Life satisfaction\n"
    "France,🇫🇷,68000000,40000,82,6.7\n"
    "Japan,🇯🇵,125000000,41000,84,6.0\n"
    "Korea,🇰🇷,51000000,38000,83,5.8\n"
    "OECD - Total,,,39000,80,6.7\n"
)
COUNTRIES = ["France", "Japan", "Korea", "OECD - Total"]


def _ids(component, found=None):
    found = set() if found is None else found
    cid = getattr(component, "id", None)
    if isinstance(cid, str):
        found.add(cid)
    children = getattr(component, "children", None)
    if isinstance(children, (list, tuple)):
        for child in children:
            _ids(child, found)
    elif children is not None and hasattr(children, "children"):
        _ids(children, found)
    return found


def test_create_app_builds_every_view():
    app = create_app(load(SAMPLE))
    assert isinstance(app, Dash)
    ids = _ids(app.layout)
    for expected in ("engine-state", "country-select", "scatter", "radar", "bar",
                     "world-map", "ranking", "heatmap", "ranking-caption"):
        assert expected in ids


def test_layout_defaults_fall_back_to_present_columns():
    ds = load(SAMPLE)
    scores = compute_category_scores(ds, category_definitions())
    layout = build_layout(ds, scores, correlate(ds))
    assert "x-axis" in _ids(layout)


def test_unavailable_app_shows_terminal_message():
    app = create_unavailable_app("Dataset is empty")
    assert "data-unavailable" in _ids(app.layout)


def test_default_country():
    assert default_country(COUNTRIES, "Korea") == "Korea"
    assert default_country(COUNTRIES, "Atlantis") == "France"
    assert default_country([], None) is None


def test_country_from_click():
    assert country_from_click({"points": [{"customdata": ["Japan", "🇯🇵"]}]}) == "Japan"
    assert country_from_click({"points": [{"text": "Korea"}]}) == "Korea"
    assert country_from_click({"points": [{"location": "FRA"}]}, {"FRA": "France"}) == "France"
    assert country_from_click(None) is None
    assert country_from_click({"points": []}) is None


def test_next_state_selection_sources():
    weights = {"Income": 2}
    stored = EngineState(selected_country="Korea").to_store()

    initial = next_state(stored, None, None, None, weights, COUNTRIES)
    assert initial.selected_country == "Korea"
    assert initial.weights == {"Income": 2.0}

    picked = next_state(stored, "country-select", "Japan", None, weights, COUNTRIES)
    assert picked.selected_country == "Japan"

    clicked = next_state(stored, "world-map", "Korea", "France", weights, COUNTRIES)
    assert clicked.selected_country == "France"

    ignored = next_state(stored, "scatter", "Korea", "Atlantis", weights, COUNTRIES)
    assert ignored.selected_country == "Korea"

    fresh = next_state(None, None, None, None, {}, COUNTRIES)
    assert fresh.selected_country == "France"


def test_ranking_caption():
    scores = compute_category_scores(load(SAMPLE), category_definitions())
    assert ranking_caption(scores, {"Income": 0}) == "All weights are zero: ranking by Life Satisfaction."
    assert ranking_caption(scores, {"Income": 2, "Health": 0}) == "Weighted by Income ×2"
