"""Display-ready values for the usage popover.

Everything here is derived from a ``UsageSnapshot`` plus the user's
``AppSettings``; nothing is fetched or stored.
"""

from datetime import datetime

from pydantic import BaseModel

from formatting import format_currency, format_relative_time, format_token_count
from models import AppSettings, ModelUsage, UsageSnapshot, WeeklyUsage

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MIN_BAR_HEIGHT = 3.0
WARNING_PERCENT = 70
CRITICAL_PERCENT = 90


class UsageMeter(BaseModel):
    percent: float
    level: str  # "normal", "warning" or "critical"
    label: str
    percent_label: str


class DayBar(BaseModel):
    day: str
    initial: str
    output_tokens: int = 0
    height_percent: float = MIN_BAR_HEIGHT
    has_data: bool = False
    tooltip: str


class ModelBar(BaseModel):
    model: str
    display_name: str
    color_key: str
    width_percent: float
    tokens: str


class Metric(BaseModel):
    label: str
    value: str


class CostLine(BaseModel):
    label: str
    value: str


class PopoverView(BaseModel):
    updated: str
    window_label: str
    window_badge: str
    window_metrics: list[Metric]
    meter: UsageMeter | None = None
    weekly_stats: str
    weekly_chart: list[DayBar]
    weekly_totals: list[Metric]
    models: list[ModelBar]
    costs: list[CostLine]


class PanelState(BaseModel):
    settings_open: bool = False

    def open(self) -> None:
        self.settings_open = True

    def close(self) -> None:
        self.settings_open = False


def usage_meter(current: int, limit: int | None) -> UsageMeter | None:
    if not limit:
        return None
    pct = min(current / limit * 100, 100.0)
    if pct >= CRITICAL_PERCENT:
        level = "critical"
    elif pct >= WARNING_PERCENT:
        level = "warning"
    else:
        level = "normal"
    return UsageMeter(
        percent=pct,
        level=level,
        label=f"{format_token_count(current)} / {format_token_count(limit)}",
        percent_label=f"{pct:.0f}%",
    )


def weekly_chart(weekly: WeeklyUsage) -> list[DayBar]:
    """Seven Mon..Sun bars; days missing from the breakdown are zero-filled."""
    by_weekday = {d.date.weekday(): d for d in weekly.daily_breakdown}
    max_output = max([d.output_tokens for d in weekly.daily_breakdown] + [1])

    bars = []
    for i, day in enumerate(DAY_NAMES):
        usage = by_weekday.get(i)
        if usage is None:
            bars.append(DayBar(day=day, initial=day[0], tooltip=f"{day}: no data"))
            continue
        height = usage.output_tokens / max_output * 100
        bars.append(DayBar(
            day=day,
            initial=day[0],
            output_tokens=usage.output_tokens,
            height_percent=max(height, MIN_BAR_HEIGHT),
            has_data=True,
            tooltip=f"{day}: {format_token_count(usage.output_tokens)} output",
        ))
    return bars


def model_color_key(display_name: str) -> str:
    lower = display_name.lower()
    for key in ("opus", "sonnet", "haiku"):
        if key in lower:
            return key
    return "sonnet"


def model_bars(models: list[ModelUsage]) -> list[ModelBar]:
    max_output = max([m.output_tokens for m in models] + [1])
    return [
        ModelBar(
            model=m.model,
            display_name=m.display_name,
            color_key=model_color_key(m.display_name),
            width_percent=m.output_tokens / max_output * 100,
            tokens=format_token_count(m.output_tokens),
        )
        for m in models
    ]


def window_label(hours: float) -> str:
    return f"{hours:g}-Hour Window"


def build_popover(
    snapshot: UsageSnapshot, settings: AppSettings, now: datetime | None = None
) -> PopoverView:
    window = snapshot.window
    weekly = snapshot.weekly
    cost = snapshot.cost_estimate
    # Label the data actually covered; it lags the setting until the refetch lands.
    label = window_label(round(window.duration_hours * 2) / 2 or settings.window_hours)

    return PopoverView(
        updated=format_relative_time(snapshot.last_updated, now),
        window_label=label,
        window_badge=f"{window.message_count} msgs",
        window_metrics=[
            Metric(label="Output", value=format_token_count(window.total_output_tokens)),
            Metric(label="Input", value=format_token_count(window.total_input_tokens)),
            Metric(label="Cache Read", value=format_token_count(window.total_cache_read_tokens)),
            Metric(label="Sessions", value=str(window.session_count)),
        ],
        meter=usage_meter(window.total_tokens, settings.usage_limit_tokens),
        weekly_stats=f"{weekly.message_count} msgs · {weekly.session_count} sessions",
        weekly_chart=weekly_chart(weekly),
        weekly_totals=[
            Metric(label="Output", value=format_token_count(weekly.total_output_tokens)),
            Metric(label="Input", value=format_token_count(weekly.total_input_tokens)),
            Metric(label="Cache", value=format_token_count(weekly.total_cache_read_tokens)),
        ],
        models=model_bars(snapshot.models),
        costs=[
            CostLine(label=label, value=format_currency(cost.window_cost_usd)),
            CostLine(label="This Week", value=format_currency(cost.weekly_cost_usd)),
        ],
    )
