import datetime as dt

import pytest

from grportfolio.pipeline.scenarios import capacity_scenario, growth_scenario, succession_scenario, value_segments
from grportfolio.utils.types import Client


def _scored(name, revenue, hours=40.0, value=5.0, **kw):
    return Client(name=name, average_revenue=revenue, time_commitment=hours, strategic_value=value, **kw)


def test_capacity_scenario_with_new_hire():
    clients = [_scored("A", 1000, hours=40), _scored("B", 500, hours=20)]
    result = capacity_scenario(clients, current_capacity=100, new_hires=1, hours_per_hire=40)
    assert result["current_utilization"] == 60.0
    assert result["new_total_capacity"] == 140
    assert result["new_utilization"] == 42.86
    assert result["revenue_per_hour"] == 25.0
    assert result["additional_revenue_capacity"] == 850.0
    assert result["capacity_gap"] == 0.0
    assert result["utilization_improvement"] == pytest.approx(-17.14)


def test_capacity_gap_when_overcommitted():
    result = capacity_scenario([_scored("A", 100, hours=170)], current_capacity=100, target_utilization=85)
    assert result["capacity_gap"] == 100.0
    assert capacity_scenario([], current_capacity=0)["current_utilization"] == 0.0


def test_growth_scenario_segments_and_gap():
    clients = [_scored("High", 1000, value=9), _scored("Mid", 500, value=6), _scored("Low", 100, value=2)]
    result = growth_scenario(clients, target_revenue=2000, time_horizon_months=12, as_of=dt.date(2025, 7, 12))
    assert result["required_growth"] == 400
    assert result["growth_percentage"] == 25.0
    assert result["monthly_growth_rate"] == 2.08
    assert result["expansion_potential"] == {"high_value": 200.0, "medium_value": 50.0, "low_value": 5.0}
    assert result["gap_after_expansion"] == 145.0
    assert result["client_segments"]["high_value"] == {"count": 1, "revenue": 1000.0}
    assert result["target_date"] == "2026-07-12"


def test_growth_target_date_clamps_month_end():
    result = growth_scenario([], target_revenue=0, time_horizon_months=1, as_of=dt.date(2025, 1, 31))
    assert result["target_date"] == "2025-02-28"
    assert result["growth_percentage"] == 0.0


def test_value_segment_boundaries():
    segments = value_segments([_scored("Eight", 1, value=8), _scored("Five", 1, value=5), _scored("Four", 1, value=4.99)])
    assert [c.name for c in segments["high_value"]] == ["Eight"]
    assert [c.name for c in segments["medium_value"]] == ["Five"]
    assert [c.name for c in segments["low_value"]] == ["Four"]


def test_succession_scenario():
    clients = [
        _scored("A", 1000, primary_lobbyist="Jane Doe", relationship_strength=3),
        _scored("B", 500, lobbyist_team=["jane  doe", "Sam"], relationship_strength=8),
        _scored("C", 500, primary_lobbyist="Bob", relationship_strength=6),
    ]
    result = succession_scenario(clients, ["Jane Doe"])
    assert result["total_clients_at_risk"] == 2
    assert result["total_revenue_at_risk"] == 1500
    assert result["risk_percentage"] == 75.0
    assert result["risk_by_level"]["high"]["count"] == 1
    assert result["risk_by_level"]["medium"]["count"] == 0
    assert result["risk_by_level"]["low"]["count"] == 1
    assert [c["name"] for c in result["affected_clients"]] == ["A", "B"]


def test_succession_nobody_departing():
    result = succession_scenario([_scored("A", 10, primary_lobbyist="Jane")], [])
    assert result["total_clients_at_risk"] == 0
    assert result["risk_percentage"] == 0.0
