import math

import pytest
from pydantic import ValidationError

from factories import make_snapshot, snapshot_dict
from models import AppSettings, CostEstimate, ThemePreference, UsageSnapshot


def test_snapshot_parses_producer_payload():
    snap = make_snapshot()
    assert snap.window.total_tokens == 1000 + 1500 + 20_000 + 500
    assert snap.window.duration_hours == pytest.approx(5.0)
    assert [d.date.isoformat() for d in snap.weekly.daily_breakdown] == [
        "2026-02-02", "2026-02-04", "2026-02-06",
    ]


def test_snapshot_is_immutable():
    snap = make_snapshot()
    with pytest.raises(ValidationError):
        snap.last_updated = snap.last_updated


def test_by_model_costs_add_up_to_window_cost():
    cost = make_snapshot().cost_estimate
    assert math.isclose(sum(c.cost_usd for c in cost.by_model), cost.window_cost_usd, abs_tol=1e-6)


def test_inconsistent_costs_are_rejected():
    with pytest.raises(ValidationError):
        CostEstimate(
            window_cost_usd=1.0,
            weekly_cost_usd=2.0,
            by_model=[{"model": "m", "display_name": "M", "cost_usd": 0.5}],
        )
    with pytest.raises(ValidationError, match="neither"):
        CostEstimate(window_cost_usd=0.15, weekly_cost_usd=4.52)


def test_window_scoped_cost_breakdown():
    assert make_snapshot().cost_estimate.by_model_scope == "window"


def test_weekly_scoped_cost_breakdown_is_accepted():
    data = snapshot_dict()
    data["cost_estimate"]["by_model"] = [
        {"model": "claude-opus-4-6", "display_name": "Opus 4.6", "cost_usd": 3.02},
        {"model": "claude-haiku-4-5-20251001", "display_name": "Haiku 4.5", "cost_usd": 1.5},
    ]
    snap = UsageSnapshot.model_validate(data)
    assert snap.cost_estimate.by_model_scope == "weekly"
    assert snap.cost_estimate.window_cost_usd == 0.15


def test_negative_token_counts_are_rejected():
    data = snapshot_dict()
    data["window"]["total_input_tokens"] = -1
    with pytest.raises(ValidationError):
        UsageSnapshot.model_validate(data)


def test_window_start_after_end_is_rejected():
    data = snapshot_dict()
    data["window"]["window_start"], data["window"]["window_end"] = (
        data["window"]["window_end"], data["window"]["window_start"],
    )
    with pytest.raises(ValidationError):
        UsageSnapshot.model_validate(data)


def test_daily_breakdown_cannot_exceed_weekly_output():
    data = snapshot_dict()
    data["weekly"]["total_output_tokens"] = 100
    with pytest.raises(ValidationError):
        UsageSnapshot.model_validate(data)


def test_daily_breakdown_holds_at_most_seven_days():
    data = snapshot_dict()
    day = {"date": "2026-02-02", "input_tokens": 0, "output_tokens": 0, "message_count": 0}
    data["weekly"]["daily_breakdown"] = [day] * 8
    with pytest.raises(ValidationError):
        UsageSnapshot.model_validate(data)


class TestAppSettings:
    def test_defaults(self):
        s = AppSettings()
        assert s.refresh_interval_secs == 180
        assert s.window_hours == 5.0
        assert s.usage_limit_tokens is None
        assert s.theme is ThemePreference.SYSTEM

    @pytest.mark.parametrize("interval", [60, 120, 180, 300])
    def test_allowed_intervals(self, interval):
        assert AppSettings(refresh_interval_secs=interval).refresh_interval_secs == interval

    @pytest.mark.parametrize("interval", [0, 30, 200, 600])
    def test_other_intervals_rejected(self, interval):
        with pytest.raises(ValidationError):
            AppSettings(refresh_interval_secs=interval)

    @pytest.mark.parametrize("hours", [1, 1.5, 8, 23.5, 24])
    def test_window_hours_in_half_hour_steps(self, hours):
        assert AppSettings(window_hours=hours).window_hours == hours

    @pytest.mark.parametrize("hours", [0.5, 24.5, 5.25, -1])
    def test_window_hours_out_of_range_or_step(self, hours):
        with pytest.raises(ValidationError):
            AppSettings(window_hours=hours)

    def test_usage_limit_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            AppSettings(usage_limit_tokens=-5)

    def test_unknown_theme_rejected(self):
        with pytest.raises(ValidationError):
            AppSettings(theme="sepia")
