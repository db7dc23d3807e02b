import math

import pytest

from bli_data import CountryRecord, EmptyCategorySetError, MissingColumnError, load, value_columns
from metrics_engine import (
    CategoryDefinition,
    CategoryScores,
    EngineState,
    category_definitions,
    compute_category_scores,
    correlate,
    effective_weights,
    pearson,
    rank,
    validate_categories,
)

INCOME = {"Income": ["Earnings", "Wealth"]}


def _records(rows):
    return [CountryRecord(name, indicators=values) for name, values in rows]


def _five_countries():
    return load(
        "Country,Earnings,Wealth,Life expectancy,Life satisfaction\n"
        "A,10,100,80,7\n"
        "B,30,300,70,6\n"
        "C,20,200,85,5\n"
        "D,50,500,75,8\n"
        "E,40,400,78,4\n"
    )


FIVE_CATS = {
    "Income": ["Earnings", "Wealth"],
    "Health": ["Life expectancy"],
    "Life Satisfaction": ["Life satisfaction"],
}


# -----------------------------
# Category scores
# -----------------------------

def test_income_scenario_with_missing_values():
    records = _records([
        ("X", {"Earnings": 100.0, "Wealth": 200.0}),
        ("Y", {"Earnings": None, "Wealth": 120.0}),
        ("Z", {"Earnings": None, "Wealth": None}),
    ])
    scores = compute_category_scores(records, INCOME)
    assert scores.raw("X", "Income") == 150.0
    assert scores.raw("Y", "Income") == 120.0
    assert scores.raw("Z", "Income") is None
    assert scores.normalization_range["Income"] == (120.0, 150.0)
    assert scores.score("Z", "Income") is None
    assert scores.score("X", "Income") == 10.0
    assert scores.score("Y", "Income") == 1.0
    assert scores.average["Income"] == 135.0


def test_non_finite_values_are_ignored():
    records = _records([
        ("X", {"Earnings": math.inf, "Wealth": 10.0}),
        ("Y", {"Earnings": math.nan, "Wealth": 20.0}),
    ])
    scores = compute_category_scores(records, INCOME)
    assert scores.raw("X", "Income") == 10.0
    assert scores.raw("Y", "Income") == 20.0


def test_scores_are_bounded_and_monotonic():
    ds = _five_countries()
    scores = compute_category_scores(ds, FIVE_CATS)
    for cat in scores.categories:
        pairs = [(scores.raw(c, cat), scores.score(c, cat)) for c in scores.countries]
        for raw, norm in pairs:
            assert 1.0 <= norm <= 10.0
        for raw_a, norm_a in pairs:
            for raw_b, norm_b in pairs:
                if raw_a > raw_b:
                    assert norm_a >= norm_b


def test_degenerate_range_maps_to_midpoint():
    records = _records([(n, {"Earnings": 5.0, "Wealth": 5.0}) for n in "ABC"])
    scores = compute_category_scores(records, INCOME)
    assert scores.normalization_range["Income"] == (5.0, 5.0)
    assert all(scores.score(n, "Income") == 5.5 for n in "ABC")


def test_single_valid_value_maps_to_midpoint():
    records = _records([("A", {"Earnings": 7.0, "Wealth": None}), ("B", {"Earnings": None, "Wealth": None})])
    scores = compute_category_scores(records, INCOME)
    assert scores.score("A", "Income") == 5.5
    assert scores.score("B", "Income") is None


def test_missing_country_excluded_from_average():
    records = _records([
        ("A", {"Earnings": 10.0, "Wealth": None}),
        ("B", {"Earnings": 30.0, "Wealth": None}),
        ("C", {"Earnings": None, "Wealth": None}),
    ])
    scores = compute_category_scores(records, INCOME)
    assert scores.average["Income"] == 20.0
    assert scores.average_score("Income") == pytest.approx(5.5)


def test_aggregate_rows_count_toward_range_and_average():
    records = _records([
        ("A", {"Earnings": 10.0}),
        ("B", {"Earnings": 20.0}),
        ("OECD - Total", {"Earnings": 100.0}),
    ])
    scores = compute_category_scores(records, {"Income": ["Earnings"]})
    assert scores.normalization_range["Income"] == (10.0, 100.0)
    assert scores.average["Income"] == pytest.approx(130.0 / 3)
    assert scores.score("OECD - Total", "Income") == 10.0
    assert scores.score("A", "Income") == 1.0
    assert scores.score("B", "Income") == pytest.approx(2.0)


def test_population_can_be_a_category_member(caplog):
    ds = load(
        "Country,Flag,Population,Life satisfaction\n"
        "Alpha,,1000,7\n"
        "Beta,,3000,6\n"
    )
    validate_categories(value_columns(ds), {"Size": ["Population"]})
    scores = compute_category_scores(ds, {"Size": ["Population"]})
    assert scores.skipped == ()
    assert scores.raw("Alpha", "Size") == 1000.0
    assert scores.normalization_range["Size"] == (1000.0, 3000.0)
    assert "missing columns" not in caplog.text


def test_missing_column_skips_only_that_category(caplog):
    ds = _five_countries()
    cats = dict(FIVE_CATS, Housing=["Rooms per person"])
    scores = compute_category_scores(ds, cats)
    assert scores.skipped == ("Housing",)
    assert all(scores.raw(c, "Housing") is None for c in scores.countries)
    assert scores.normalization_range["Housing"] is None
    assert scores.score("A", "Income") is not None
    assert "Rooms per person" in caplog.text


def test_missing_column_strict():
    with pytest.raises(MissingColumnError) as info:
        compute_category_scores(_five_countries(), {"Housing": ["Rooms per person"]}, strict=True)
    assert info.value.owner == "Housing"
    assert info.value.missing == ["Rooms per person"]


def test_validate_categories():
    validate_categories(["Earnings", "Wealth"], INCOME)
    with pytest.raises(MissingColumnError):
        validate_categories(["Earnings"], [CategoryDefinition("Income", ("Earnings", "Wealth"))])


def test_default_definitions_come_from_settings():
    defs = category_definitions()
    names = [d.name for d in defs]
    assert "Life Satisfaction" in names
    assert defs[names.index("Health")].member_indicators == ("Life expectancy", "Self-reported health")


def test_scores_frame():
    scores = compute_category_scores(_five_countries(), FIVE_CATS)
    df = scores.to_frame()
    assert list(df.columns) == ["Income", "Health", "Life Satisfaction"]
    assert df.loc["D", "Income"] == 10.0


# -----------------------------
# Ranking
# -----------------------------

def _order(ranking):
    return [r.name for r in ranking]


def test_rank_by_single_category():
    scores = compute_category_scores(_five_countries(), FIVE_CATS)
    assert _order(rank(scores, {"Income": 1, "Health": 0})) == ["D", "E", "B", "C", "A"]


def test_weight_scaling_keeps_order():
    scores = compute_category_scores(_five_countries(), FIVE_CATS)
    one = rank(scores, {"Income": 1, "Health": 0})
    five = rank(scores, {"Income": 5, "Health": 0})
    assert _order(one) == _order(five)

    mixed = rank(scores, {"Income": 1, "Health": 2, "Life Satisfaction": 3})
    scaled = rank(scores, {"Income": 4, "Health": 8, "Life Satisfaction": 12})
    assert _order(mixed) == _order(scaled)
    for a, b in zip(mixed, scaled):
        assert a.score == pytest.approx(b.score)


def test_all_zero_weights_fall_back_to_default_category():
    scores = compute_category_scores(_five_countries(), FIVE_CATS)
    expected = rank(scores, {"Life Satisfaction": 1})
    assert rank(scores, {"Income": 0, "Health": 0}) == expected
    assert rank(scores, {}) == expected
    assert _order(expected) == ["D", "A", "B", "C", "E"]


def test_fallback_without_default_category_uses_first():
    scores = compute_category_scores(_five_countries(), {"Health": ["Life expectancy"]})
    assert effective_weights(scores, {}) == {"Health": 1.0}


def test_composite_is_weighted_mean():
    scores = compute_category_scores(_five_countries(), FIVE_CATS)
    result = dict(rank(scores, {"Income": 1, "Health": 3}))
    expected = (scores.score("C", "Income") + 3 * scores.score("C", "Health")) / 4
    assert result["C"] == pytest.approx(expected)


def test_missing_category_score_is_skipped_not_zero():
    records = _records([
        ("A", {"Earnings": 10.0, "Life expectancy": 80.0}),
        ("B", {"Earnings": 20.0, "Life expectancy": None}),
        ("C", {"Earnings": None, "Life expectancy": None}),
    ])
    scores = compute_category_scores(records, {"Income": ["Earnings"], "Health": ["Life expectancy"]})
    result = rank(scores, {"Income": 1, "Health": 1})
    assert result[0].name == "B"
    assert result[0].score == 10.0
    assert result[-1].name == "C"
    assert result[-1].score is None


def test_ties_keep_input_order():
    records = _records([(n, {"Earnings": 1.0}) for n in ["Q", "P", "R"]])
    scores = compute_category_scores(records, {"Income": ["Earnings"]})
    assert _order(rank(scores, {"Income": 2})) == ["Q", "P", "R"]


def test_rank_rejects_bad_weights():
    scores = compute_category_scores(_five_countries(), FIVE_CATS)
    with pytest.raises(ValueError):
        rank(scores, {"Income": -1})
    with pytest.raises(KeyError):
        rank(scores, {"Jobs": 1})


def test_rank_with_no_categories():
    scores = compute_category_scores(_five_countries(), {})
    assert isinstance(scores, CategoryScores)
    with pytest.raises(EmptyCategorySetError):
        rank(scores, {})


# -----------------------------
# Correlation
# -----------------------------

def test_perfect_linear_relationship():
    records = _records([(f"C{i}", {"A": float(a), "B": 2.0 * a + 1}) for i, a in enumerate([1, 4, 2, 8, 5])])
    m = correlate(records)
    assert m.r("A", "B") == pytest.approx(1.0, abs=1e-9)


def test_symmetric_with_unit_diagonal():
    ds = _five_countries()
    m = correlate(ds)
    for a in m.columns:
        assert m.r(a, a) == 1.0
        for b in m.columns:
            assert m.r(a, b) == m.r(b, a)
    assert m.r("Earnings", "Wealth") == pytest.approx(1.0)


def test_constant_column_is_undefined():
    records = _records([(f"C{i}", {"A": 3.0, "B": float(i)}) for i in range(4)])
    m = correlate(records)
    assert m.r("A", "B") is None
    assert m.r("A", "A") is None
    assert m.r("B", "B") == 1.0


def test_pairwise_complete_observations():
    records = _records([
        ("C1", {"A": 1.0, "B": 2.0, "C": 1.0}),
        ("C2", {"A": 2.0, "B": 4.0, "C": None}),
        ("C3", {"A": 3.0, "B": 6.5, "C": 3.0}),
        ("C4", {"A": None, "B": 1.0, "C": 4.0}),
    ])
    m = correlate(records)
    # C4 lacks A but still counts for (B, C)
    assert m.r("B", "C") == pytest.approx(pearson([2.0, 6.5, 1.0], [1.0, 3.0, 4.0]))
    assert m.r("A", "C") == pytest.approx(1.0)


def test_too_few_pairs_is_undefined():
    records = _records([("C1", {"A": 1.0, "B": None}), ("C2", {"A": 2.0, "B": 5.0})])
    assert correlate(records).r("A", "B") is None


def test_pearson_matches_sample_formula():
    xs, ys = [1.0, 2.0, 3.0, 4.0], [2.0, 1.0, 4.0, 3.0]
    assert pearson(xs, ys) == pytest.approx(0.6)
    assert pearson(xs, [-y for y in ys]) == pytest.approx(-0.6)


def test_correlate_selected_columns():
    m = correlate(_five_countries(), ["Earnings", "Life expectancy"])
    assert m.columns == ("Earnings", "Life expectancy")
    assert list(m.frame.columns) == ["Earnings", "Life expectancy"]
    with pytest.raises(MissingColumnError):
        correlate(_five_countries(), ["Earnings", "Voter turnout"])


def test_strongest_pairs():
    m = correlate(_five_countries())
    a, b, r = m.strongest(1)[0]
    assert {a, b} == {"Earnings", "Wealth"}
    assert r == pytest.approx(1.0)


# -----------------------------
# State
# -----------------------------

def test_engine_state_is_immutable_and_round_trips():
    s0 = EngineState()
    s1 = s0.with_weight("Income", 3).with_selection("Korea")
    assert s0.weights == {} and s0.selected_country is None
    assert s1.weights == {"Income": 3.0}
    assert EngineState.from_store(s1.to_store()) == s1
    assert EngineState.from_store(None) == EngineState()
