import pytest

from grportfolio.pipeline.optimize import optimize_portfolio, rank_eligible
from grportfolio.utils.config import OptimizerConfig
from grportfolio.utils.types import Client


def _scored(name, hours, value, status="IF", revenue=1000.0):
    return Client(
        name=name,
        status=status,
        time_commitment=hours,
        strategic_value=value,
        average_revenue=revenue,
    )


def test_greedy_skips_and_continues():
    clients = [_scored("X", 40, 9), _scored("Y", 30, 7), _scored("Z", 20, 5)]
    result = optimize_portfolio(clients, max_capacity=60)
    assert [c.name for c in result.clients] == ["X", "Z"]
    assert result.total_hours == 60
    assert result.utilization_rate == 100.0
    assert result.excluded_client_count == 1
    assert result.eligible_count == 3
    assert result.average_strategic_value == 7.0
    assert result.total_revenue == 2000.0


def test_eligibility_filters_status_and_hours():
    clients = [
        _scored("Active", 10, 5),
        _scored("Prospect", 10, 6, status="P"),
        _scored("Done", 10, 9, status="D"),
        _scored("Hold", 10, 9, status="H"),
        _scored("NoHours", 0, 9),
        _scored("Unset", None, 9),
    ]
    result = optimize_portfolio(clients, max_capacity=1000)
    assert [c.name for c in result.clients] == ["Prospect", "Active"]
    assert result.eligible_count == 2
    assert result.excluded_client_count == 0


def test_selection_respects_capacity_and_order():
    clients = [_scored(f"C{i}", hours=(i % 4) * 10 + 5, value=(i * 7) % 10) for i in range(20)]
    result = optimize_portfolio(clients, max_capacity=100)
    assert sum(c.time_commitment for c in result.clients) <= 100
    values = [c.strategic_value for c in result.clients]
    assert values == sorted(values, reverse=True)
    assert result.client_count + result.excluded_client_count == result.eligible_count


def test_ties_keep_input_order():
    clients = [_scored("First", 10, 5), _scored("Second", 10, 5), _scored("Third", 10, 5)]
    ranked = rank_eligible(clients)
    assert ranked["position"].tolist() == [0, 1, 2]
    result = optimize_portfolio(clients, max_capacity=20)
    assert [c.name for c in result.clients] == ["First", "Second"]


def test_empty_input_all_zero():
    result = optimize_portfolio([], max_capacity=60)
    assert result.clients == []
    assert result.total_revenue == 0
    assert result.total_hours == 0
    assert result.utilization_rate == 0
    assert result.excluded_client_count == 0


@pytest.mark.parametrize("capacity", [0, -10])
def test_non_positive_capacity_fits_nothing(capacity):
    clients = [_scored("X", 40, 9), _scored("Y", 30, 7)]
    result = optimize_portfolio(clients, max_capacity=capacity)
    assert result.clients == []
    assert result.excluded_client_count == 2
    assert result.utilization_rate == 0.0


def test_capacity_defaults_to_config():
    clients = [_scored("X", 1500, 9), _scored("Y", 600, 7), _scored("Z", 400, 5)]
    result = optimize_portfolio(clients)
    assert result.max_capacity == 2000
    assert [c.name for c in result.clients] == ["X", "Z"]

    narrow = optimize_portfolio(clients, cfg=OptimizerConfig(max_capacity=500))
    assert [c.name for c in narrow.clients] == ["Z"]


def test_result_to_dict():
    payload = optimize_portfolio([_scored("X", 40, 9)], max_capacity=80).to_dict()
    assert payload["client_count"] == 1
    assert payload["utilization_rate"] == 50.0
    assert payload["clients"][0]["name"] == "X"
