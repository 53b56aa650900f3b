"""
Engine configuration - YAML file plus environment overrides.
"""

import os
import yaml
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from analysis.calculations.business_days import BusinessDayCalendar

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / 'config' / 'metrics_engine.yml'


class EngineConfigError(Exception):
    """Raised when the engine configuration cannot be loaded."""
    pass


@dataclass
class SeriesIds:
    """Source series ids the calculators read."""
    reserves: str = '1'
    base: str = '15'
    leliq: str = 'bcra.leliq_total_ars'
    repo_assets: str = 'bcra.pases_activos_total_ars'
    repo_liabilities: str = 'bcra.pases_pasivos_total_ars'
    usd_official: str = 'bcra.cambiarias.usd'
    mep: str = 'dolarapi.mep_ars'
    basket: Dict[str, str] = field(default_factory=lambda: {
        'brl': 'bcra.cambiarias.brl',
        'clp': 'bcra.cambiarias.clp',
        'mxn': 'bcra.cambiarias.mxn',
        'cop': 'bcra.cambiarias.cop',
    })

    def health_series(self) -> List[str]:
        """Series monitored by the data-health calculator."""
        return [self.reserves, self.base, self.usd_official]


@dataclass
class EngineConfig:
    """Resolved engine configuration."""
    db_path: str = './data/metrics.db'
    max_workers: int = 4
    holidays: Dict[int, List[str]] = field(default_factory=dict)
    series: SeriesIds = field(default_factory=SeriesIds)
    delta_base_windows: List[int] = field(default_factory=lambda: [7, 30, 90])
    delta_reserves_windows: List[int] = field(default_factory=lambda: [7, 30, 90])
    volatility_windows: List[int] = field(default_factory=lambda: [7, 30])
    trend_short: int = 14
    trend_long: int = 30
    local_pressure_window: int = 30
    coverage_window: int = 90
    freshness_threshold_hours: float = 24

    def __post_init__(self):
        """Validate configuration."""
        if self.max_workers < 1:
            raise EngineConfigError("max_workers must be >= 1")

        if self.trend_short < 1 or self.trend_short > self.trend_long:
            raise EngineConfigError("trend_short must be >= 1 and <= trend_long")

        for name in ('delta_base_windows', 'delta_reserves_windows', 'volatility_windows'):
            windows = getattr(self, name)
            if not windows or any(int(w) <= 0 for w in windows):
                raise EngineConfigError(f"{name} must be a non-empty list of positive ints")

        if any(int(w) < 2 for w in self.volatility_windows):
            raise EngineConfigError("volatility_windows must all be >= 2")

        if self.local_pressure_window < 2 or self.coverage_window < 1:
            raise EngineConfigError("local_pressure_window must be >= 2 and coverage_window >= 1")

    def build_calendar(self) -> BusinessDayCalendar:
        """Business day calendar from the configured holiday table."""
        try:
            return BusinessDayCalendar.from_holiday_table(self.holidays)
        except ValueError as e:
            raise EngineConfigError(f"Invalid holiday table: {e}")


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise EngineConfigError(f"Config section '{name}' must be a mapping")
    return value


def load_engine_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load engine configuration from YAML file.

    Args:
        config_path: Path to config file (defaults to METRICS_ENGINE_CONFIG
            or config/metrics_engine.yml)

    Returns:
        EngineConfig with environment overrides applied

    Raises:
        EngineConfigError: If config file is missing or malformed
    """
    if config_path is None:
        config_path = os.getenv('METRICS_ENGINE_CONFIG', str(DEFAULT_CONFIG_PATH))

    config_file = Path(config_path)
    if not config_file.exists():
        raise EngineConfigError(f"Engine config file not found: {config_path}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise EngineConfigError(f"Failed to parse engine config: {e}")

    if not isinstance(raw, dict):
        raise EngineConfigError("Engine config must be a mapping")

    database = _section(raw, 'database')
    engine = _section(raw, 'engine')
    calendar = _section(raw, 'calendar')
    series = _section(raw, 'series')
    windows = _section(raw, 'windows')

    holidays = calendar.get('holidays') or {}
    if not isinstance(holidays, dict):
        raise EngineConfigError("calendar.holidays must map year -> list of dates")

    basket = series.pop('basket', None)
    try:
        series_ids = SeriesIds(**{k: str(v) for k, v in series.items()})
    except TypeError as e:
        raise EngineConfigError(f"Unknown key in series section: {e}")
    if basket is not None:
        if not isinstance(basket, dict):
            raise EngineConfigError("series.basket must map name -> series id")
        series_ids.basket = {str(k): str(v) for k, v in basket.items()}

    defaults = EngineConfig()
    try:
        config = EngineConfig(
            db_path=os.getenv('METRICS_DB_PATH', database.get('path', defaults.db_path)),
            max_workers=int(os.getenv('METRICS_MAX_WORKERS', engine.get('max_workers', defaults.max_workers))),
            holidays={int(year): list(days or []) for year, days in holidays.items()},
            series=series_ids,
            delta_base_windows=[int(w) for w in windows.get('delta_base', defaults.delta_base_windows)],
            delta_reserves_windows=[int(w) for w in windows.get('delta_reserves', defaults.delta_reserves_windows)],
            volatility_windows=[int(w) for w in windows.get('volatility', defaults.volatility_windows)],
            trend_short=int(windows.get('trend_short', defaults.trend_short)),
            trend_long=int(windows.get('trend_long', defaults.trend_long)),
            local_pressure_window=int(windows.get('local_pressure', defaults.local_pressure_window)),
            coverage_window=int(windows.get('coverage', defaults.coverage_window)),
            freshness_threshold_hours=float(
                windows.get('freshness_threshold_hours', defaults.freshness_threshold_hours)
            ),
        )
    except (TypeError, ValueError) as e:
        raise EngineConfigError(f"Invalid engine config value: {e}")

    logger.debug(f"Loaded engine config from {config_file}")
    return config
