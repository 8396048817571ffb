import pytest

from grportfolio.scoring.strategic import score_clients, score_frame
from grportfolio.utils.config import ScoringConfig
from grportfolio.utils.types import Client


def _flat(name, amount, **kw):
    return Client(name=name, status="IF", revenue={2023: amount, 2024: amount, 2025: amount}, **kw)


def test_revenue_score_min_max_example():
    scored = score_clients([_flat("A", 100_000), _flat("B", 50_000), _flat("C", 20_000)])
    by_name = {c.name: c for c in scored}
    assert by_name["A"].revenue_score == 10.0
    assert by_name["B"].revenue_score == 3.75
    assert by_name["C"].revenue_score == 0.0
    assert by_name["A"].average_revenue == 100_000


def test_uniform_revenue_scores_five():
    scored = score_clients([_flat("A", 500), _flat("B", 500), _flat("C", 500)])
    assert [c.revenue_score for c in scored] == [5.0, 5.0, 5.0]


def test_growth_score_uses_cagr():
    flat, doubling = score_clients(
        [
            _flat("Flat", 1000),
            Client(name="Up", revenue={2023: 1000, 2024: 1500, 2025: 4000}),
        ]
    )
    # zero growth sits at the midpoint; CAGR of 100% caps at 10
    assert flat.growth_score == 5.0
    assert doubling.growth_score == 10.0


def test_non_positive_initial_revenue_treated_as_one():
    (client,) = score_clients([Client(name="New", revenue={2023: 0, 2024: 0, 2025: 0})])
    assert client.growth_score == 0.0
    assert client.average_revenue == 0.0


def test_efficiency_score_caps_at_ten():
    cheap, pricey = score_clients(
        [
            _flat("Cheap", 20_000, time_commitment=10.0),
            _flat("Pricey", 20_000, time_commitment=0.0),
        ]
    )
    assert cheap.efficiency_score == 2.0
    assert pricey.efficiency_score == 10.0


def test_strategic_value_weighted_sum():
    (client,) = score_clients(
        [
            _flat(
                "Solo",
                10_000,
                relationship_strength=8,
                strategic_fit_score=6,
                renewal_probability=0.9,
                conflict_risk="Low",
                time_commitment=10.0,
            )
        ]
    )
    # revenue 5, growth 5, efficiency 1
    expected = 0.30 * 5 + 0.20 * 5 + 0.20 * 8 + 0.15 * 6 + 0.10 * 9 + 0.05 * 1
    assert client.strategic_value == pytest.approx(round(expected, 2))


def test_strategic_value_floored_at_zero():
    cfg = ScoringConfig(conflict_penalties={"High": 100.0, "Medium": 1.0, "Low": 0.0})
    (client,) = score_clients(
        [_flat("Risky", 0, relationship_strength=1, strategic_fit_score=1, renewal_probability=0, conflict_risk="High")],
        cfg,
    )
    assert client.strategic_value == 0.0


def test_unset_inputs_use_neutral_fallbacks():
    neutral, unset = score_clients(
        [
            _flat("Neutral", 100, relationship_strength=5, strategic_fit_score=5, renewal_probability=0.5, conflict_risk="Medium"),
            _flat("Unset", 100, relationship_strength=None, strategic_fit_score=None, renewal_probability=None, conflict_risk=None),
        ]
    )
    assert neutral.strategic_value == unset.strategic_value


def test_scoring_is_idempotent_and_does_not_mutate():
    batch = [_flat("A", 100_000, relationship_strength=9), _flat("B", 1_000), Client(name="C", revenue={2025: 50})]
    once = score_clients(batch)
    twice = score_clients(once)
    fields = ["average_revenue", "revenue_score", "growth_score", "efficiency_score", "strategic_value"]
    assert [[getattr(c, f) for f in fields] for c in once] == [[getattr(c, f) for f in fields] for c in twice]
    assert all(c.strategic_value is None for c in batch)
    assert [c.name for c in once] == ["A", "B", "C"]


def test_empty_batch():
    assert score_clients([]) == []
    assert score_frame([]).empty


def test_score_frame_columns():
    frame = score_frame([_flat("A", 10), _flat("B", 20)])
    assert list(frame.columns) == [
        "name",
        "status",
        "average_revenue",
        "revenue_score",
        "growth_score",
        "efficiency_score",
        "strategic_value",
    ]
    assert frame["strategic_value"].ge(0).all()


def test_scores_round_half_up():
    scored = score_clients(
        [
            _flat("A", 0, time_commitment=1.0),
            _flat("B", 25, time_commitment=1.0),
            _flat("C", 80, time_commitment=1.0),
            _flat("D", 3125, time_commitment=1.0),
        ],
        ScoringConfig(efficiency_baseline_per_hour=1000.0),
    )
    by_name = {c.name: c for c in scored}
    assert by_name["B"].revenue_score == pytest.approx(0.08)
    assert by_name["D"].efficiency_score == 3.13

    (b,) = [c for c in score_clients([_flat("A", 0), _flat("B", 25), _flat("C", 80)]) if c.name == "B"]
    assert b.revenue_score == 3.13


def test_average_revenue_rounds_half_up():
    (client,) = score_clients([Client(name="Half", revenue={2023: 0, 2024: 1, 2025: 0.5})])
    assert client.average_revenue == 1.0


def test_overflowing_revenue_never_yields_nan():
    huge = Client(name="Huge", status="IF", revenue={2023: float("inf"), 2024: 1e400, 2025: float("inf")})
    scored = score_clients([huge, _flat("Small", 10)])
    assert huge.revenue == {2023: 0.0, 2024: 0.0, 2025: 0.0}
    assert all(c.strategic_value == c.strategic_value and c.strategic_value >= 0 for c in scored)
