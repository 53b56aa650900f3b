"""
Calculator registry - declares every calculator the engine runs, the series
it reads and how much history it needs before the requested range.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Sequence

from analysis.calculations.aggregates import (
    AggregateDefinition, AggregationPolicy, compute_aggregate, compute_base_ratio
)
from analysis.calculations.backing import compute_liabilities_vs_reserves, compute_reserves_to_base
from analysis.calculations.business_days import BusinessDayCalendar
from analysis.calculations.data_health import compute_data_health, freshness_reference
from analysis.calculations.deltas import compute_window_deltas
from analysis.calculations.fx_gap import compute_fx_gap
from analysis.calculations.local_pressure import compute_local_pressure
from analysis.calculations.volatility import compute_rolling_volatility, compute_trend
from analysis.metric_types import MetricPoint, RawPoint
from pipeline.engine_config import EngineConfig

SeriesMap = Dict[str, List[RawPoint]]


@dataclass
class CalculatorContext:
    """Run-wide inputs shared by every calculator."""
    calendar: BusinessDayCalendar
    config: EngineConfig
    from_date: date
    to_date: date
    now: datetime


@dataclass
class CalculatorSpec:
    """
    One calculator as seen by the orchestrator.

    A calculator is skipped before it runs if any required series is empty.
    Optional series are loaded but may be empty.
    """
    name: str
    required_series: List[str]
    compute: Callable[[SeriesMap, CalculatorContext], List[MetricPoint]]
    optional_series: List[str] = field(default_factory=list)
    lookback_business_days: int = 0
    clip_to_range: bool = True

    @property
    def series_ids(self) -> List[str]:
        return list(dict.fromkeys(self.required_series + self.optional_series))


def base_ampliada_definition(config: EngineConfig) -> AggregateDefinition:
    s = config.series
    return AggregateDefinition(
        metric_id='mon.base_ampliada_ars',
        components={
            'base': s.base,
            'leliq': s.leliq,
            'pases_activos': s.repo_assets,
            'pases_pasivos': s.repo_liabilities,
        },
        policy=AggregationPolicy.STRICT,
    )


def pasivos_remunerados_definition(config: EngineConfig) -> AggregateDefinition:
    s = config.series
    return AggregateDefinition(
        metric_id='mon.pasivos_rem_ars',
        components={
            'leliq': s.leliq,
            'pases_pasivos': s.repo_liabilities,
            'pases_activos': s.repo_assets,
        },
        policy=AggregationPolicy.PARTIAL_SUM,
    )


def build_calculator_specs(config: EngineConfig) -> List[CalculatorSpec]:
    """
    Build the ordered calculator list for a configuration.

    Order is the order results are gathered and reported in.
    """
    s = config.series
    basket_ids = list(s.basket.values())
    liabilities = {
        'leliq': s.leliq,
        'pases_activos': s.repo_assets,
        'pases_pasivos': s.repo_liabilities,
    }

    def deltas_base(series: SeriesMap, ctx: CalculatorContext) -> List[MetricPoint]:
        return compute_window_deltas(
            series[s.base], family='delta.base', series_id=s.base, units='million_ARS',
            calendar=ctx.calendar, windows=ctx.config.delta_base_windows,
        )

    def deltas_reserves(series: SeriesMap, ctx: CalculatorContext) -> List[MetricPoint]:
        return compute_window_deltas(
            series[s.reserves], family='delta.reserves', series_id=s.reserves, units='million_USD',
            calendar=ctx.calendar, windows=ctx.config.delta_reserves_windows,
        )

    def base_ampliada(series: SeriesMap, ctx: CalculatorContext) -> List[MetricPoint]:
        aggregate = compute_aggregate(base_ampliada_definition(ctx.config), series)
        return aggregate + compute_base_ratio(series[s.base], aggregate)

    def pasivos_remunerados(series: SeriesMap, ctx: CalculatorContext) -> List[MetricPoint]:
        return compute_aggregate(pasivos_remunerados_definition(ctx.config), series)

    def reserves_to_base(series: SeriesMap, ctx: CalculatorContext) -> List[MetricPoint]:
        return compute_reserves_to_base(series[s.reserves], series[s.base], series[s.usd_official])

    def passives_vs_reserves(series: SeriesMap, ctx: CalculatorContext) -> List[MetricPoint]:
        return compute_liabilities_vs_reserves(
            series[s.reserves], series[s.usd_official],
            {name: series[sid] for name, sid in liabilities.items()},
        )

    def fx_gap(series: SeriesMap, ctx: CalculatorContext) -> List[MetricPoint]:
        return compute_fx_gap(series[s.mep], series[s.usd_official])

    def fx_volatility(series: SeriesMap, ctx: CalculatorContext) -> List[MetricPoint]:
        points = series[s.usd_official]
        return (
            compute_rolling_volatility(points, windows=ctx.config.volatility_windows)
            + compute_trend(points, short_window=ctx.config.trend_short, long_window=ctx.config.trend_long)
        )

    def local_pressure(series: SeriesMap, ctx: CalculatorContext) -> List[MetricPoint]:
        return compute_local_pressure(
            series[s.usd_official],
            {name: series[sid] for name, sid in s.basket.items()},
            window=ctx.config.local_pressure_window,
        )

    def data_health(series: SeriesMap, ctx: CalculatorContext) -> List[MetricPoint]:
        return compute_data_health(
            {sid: series[sid] for sid in s.health_series()},
            calendar=ctx.calendar,
            now=freshness_reference(ctx.now, ctx.to_date),
            as_of=min(ctx.to_date, ctx.now.date()),
            threshold_hours=ctx.config.freshness_threshold_hours,
            coverage_window=ctx.config.coverage_window,
        )

    vol_history = max(max(config.volatility_windows) + 1, config.trend_long)

    return [
        CalculatorSpec('deltas_base', [s.base], deltas_base,
                       lookback_business_days=max(config.delta_base_windows)),
        CalculatorSpec('deltas_reserves', [s.reserves], deltas_reserves,
                       lookback_business_days=max(config.delta_reserves_windows)),
        CalculatorSpec('base_ampliada', [s.base, s.leliq, s.repo_assets, s.repo_liabilities],
                       base_ampliada),
        CalculatorSpec('pasivos_remunerados', [], pasivos_remunerados,
                       optional_series=[s.leliq, s.repo_liabilities, s.repo_assets]),
        CalculatorSpec('reserves_to_base', [s.reserves, s.base, s.usd_official], reserves_to_base),
        CalculatorSpec('passives_vs_reserves', [s.reserves, s.usd_official] + list(liabilities.values()),
                       passives_vs_reserves),
        CalculatorSpec('fx_gap', [s.mep, s.usd_official], fx_gap),
        CalculatorSpec('fx_volatility', [s.usd_official], fx_volatility,
                       lookback_business_days=vol_history),
        CalculatorSpec('local_pressure', [s.usd_official], local_pressure,
                       optional_series=basket_ids,
                       lookback_business_days=config.local_pressure_window),
        CalculatorSpec('data_health', [], data_health,
                       optional_series=s.health_series(),
                       lookback_business_days=config.coverage_window,
                       clip_to_range=False),
    ]


def required_series_union(specs: Sequence[CalculatorSpec]) -> List[str]:
    """Every series id any calculator reads, in first-seen order."""
    ids: List[str] = []
    for spec in specs:
        ids.extend(spec.series_ids)
    return list(dict.fromkeys(ids))


def max_lookback(specs: Sequence[CalculatorSpec]) -> int:
    return max((spec.lookback_business_days for spec in specs), default=0)
