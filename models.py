import math
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

REFRESH_INTERVALS = (60, 120, 180, 300)
COST_TOLERANCE = 1e-6


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class ModelUsage(FrozenModel):
    model: str
    display_name: str
    input_tokens: int = Field(0, ge=0)
    output_tokens: int = Field(0, ge=0)
    cache_read_tokens: int = Field(0, ge=0)
    cache_creation_tokens: int = Field(0, ge=0)
    message_count: int = Field(0, ge=0)


class WindowUsage(FrozenModel):
    total_input_tokens: int = Field(0, ge=0)
    total_output_tokens: int = Field(0, ge=0)
    total_cache_read_tokens: int = Field(0, ge=0)
    total_cache_creation_tokens: int = Field(0, ge=0)
    message_count: int = Field(0, ge=0)
    session_count: int = Field(0, ge=0)
    window_start: datetime
    window_end: datetime

    @model_validator(mode="after")
    def _check_bounds(self):
        if self.window_start > self.window_end:
            raise ValueError("window_start must not be after window_end")
        return self

    @property
    def total_tokens(self) -> int:
        return (
            self.total_input_tokens
            + self.total_output_tokens
            + self.total_cache_read_tokens
            + self.total_cache_creation_tokens
        )

    @property
    def duration_hours(self) -> float:
        return (self.window_end - self.window_start).total_seconds() / 3600


class DailyUsage(FrozenModel):
    date: date
    input_tokens: int = Field(0, ge=0)
    output_tokens: int = Field(0, ge=0)
    message_count: int = Field(0, ge=0)


class WeeklyUsage(FrozenModel):
    total_input_tokens: int = Field(0, ge=0)
    total_output_tokens: int = Field(0, ge=0)
    total_cache_read_tokens: int = Field(0, ge=0)
    total_cache_creation_tokens: int = Field(0, ge=0)
    message_count: int = Field(0, ge=0)
    session_count: int = Field(0, ge=0)
    # Sparse: days without activity are absent, not zero-filled.
    daily_breakdown: list[DailyUsage] = Field(default_factory=list, max_length=7)

    @model_validator(mode="after")
    def _check_breakdown(self):
        daily_output = sum(d.output_tokens for d in self.daily_breakdown)
        if daily_output > self.total_output_tokens:
            raise ValueError(
                f"daily output tokens ({daily_output}) exceed weekly total "
                f"({self.total_output_tokens})"
            )
        return self


class ModelCost(FrozenModel):
    model: str
    display_name: str
    cost_usd: float = Field(0.0, ge=0)


class CostEstimate(FrozenModel):
    window_cost_usd: float = Field(0.0, ge=0)
    weekly_cost_usd: float = Field(0.0, ge=0)
    by_model: list[ModelCost] = []

    @model_validator(mode="after")
    def _check_consistency(self):
        if self.by_model_scope is None:
            raise ValueError(
                f"per-model costs ({self._by_model_total()}) add up to neither the window "
                f"cost ({self.window_cost_usd}) nor the weekly cost ({self.weekly_cost_usd})"
            )
        return self

    def _by_model_total(self) -> float:
        return math.fsum(c.cost_usd for c in self.by_model)

    @property
    def by_model_scope(self) -> str | None:
        """Which total the per-model breakdown covers: "window" or "weekly"."""
        total = self._by_model_total()
        for scope, expected in (("window", self.window_cost_usd), ("weekly", self.weekly_cost_usd)):
            if math.isclose(total, expected, rel_tol=0, abs_tol=COST_TOLERANCE):
                return scope
        return None


class UsageSnapshot(FrozenModel):
    window: WindowUsage
    weekly: WeeklyUsage
    models: list[ModelUsage] = []
    cost_estimate: CostEstimate
    last_updated: datetime


class ThemePreference(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class AppSettings(BaseModel):
    refresh_interval_secs: int = 180
    window_hours: float = 5.0
    usage_limit_tokens: int | None = Field(None, ge=0)
    theme: ThemePreference = ThemePreference.SYSTEM

    @field_validator("refresh_interval_secs")
    @classmethod
    def _check_interval(cls, v: int) -> int:
        if v not in REFRESH_INTERVALS:
            raise ValueError(f"refresh_interval_secs must be one of {REFRESH_INTERVALS}")
        return v

    @field_validator("window_hours")
    @classmethod
    def _check_window(cls, v: float) -> float:
        if not 1 <= v <= 24:
            raise ValueError("window_hours must be between 1 and 24")
        if (v * 2) != int(v * 2):
            raise ValueError("window_hours must be a multiple of 0.5")
        return v


class UsageState(BaseModel):
    state: str
    loading: bool
    error: str | None = None
    snapshot: UsageSnapshot | None = None
