"""
Configuration management
"""

import copy
import dataclasses
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import yaml

from ..core import Recommendation, ConfigError
from ..retry import BackoffPolicy


@dataclass(frozen=True)
class GradeBand:
    """A score strictly above `above` earns `grade`"""
    above: float
    grade: str


@dataclass(frozen=True)
class UnitPrice:
    """Fixed-price item used to illustrate savings (e.g. a $5 coffee)"""
    name: str
    label: str
    unit_price: float


DEFAULT_GRADE_THRESHOLDS = (
    GradeBand(90, 'A+'),
    GradeBand(80, 'A'),
    GradeBand(70, 'B+'),
    GradeBand(60, 'B'),
    GradeBand(50, 'C+'),
    GradeBand(40, 'C'),
)

DEFAULT_UNIT_CONVERSIONS = (
    UnitPrice('coffee', 'cups of coffee', 5.0),
    UnitPrice('team_party', 'team parties', 50.0),
)


@dataclass(frozen=True)
class PollSettings:
    """
    Status polling interval

    The n-th wait is min_interval * multiplier ** n, capped at max_interval
    and never below min_interval.
    """
    min_interval: float = 1.0
    max_interval: float = 10.0
    multiplier: float = 1.5

    def __post_init__(self):
        if self.min_interval <= 0:
            raise ConfigError("poll.min_interval must be positive")
        if self.max_interval < self.min_interval:
            raise ConfigError("poll.max_interval must be >= poll.min_interval")
        if self.multiplier < 1:
            raise ConfigError("poll.multiplier must be at least 1")

    def interval(self, waits_so_far: int) -> float:
        interval = self.min_interval * self.multiplier ** waits_so_far
        return max(self.min_interval, min(interval, self.max_interval))


@dataclass(frozen=True)
class ReportSettings:
    """
    Report shape and presentation constants

    Attributes:
        title: Report title
        top_n: Rows shown in the cost driver and recommendation tables
        currency: Currency code used when formatting amounts
        category_column: Result column holding the spend category
        amount_column: Result column holding the spend amount
        grade_thresholds: Grade bands, highest first
        lowest_grade: Grade for scores not above any band
        unit_conversions: Illustrative units for savings
    """
    title: str = "Cloud Cost Report"
    top_n: int = 5
    currency: str = "USD"
    category_column: str = "service"
    amount_column: str = "cost"
    grade_thresholds: Tuple[GradeBand, ...] = DEFAULT_GRADE_THRESHOLDS
    lowest_grade: str = "D"
    unit_conversions: Tuple[UnitPrice, ...] = DEFAULT_UNIT_CONVERSIONS

    def __post_init__(self):
        if self.top_n < 1:
            raise ConfigError("report.top_n must be at least 1")
        previous = math.inf
        for band in self.grade_thresholds:
            if not 0 <= band.above <= 100:
                raise ConfigError(f"Grade threshold {band.above} is outside [0, 100]")
            if band.above >= previous:
                raise ConfigError("report.grade_thresholds must be strictly descending")
            previous = band.above
        for unit in self.unit_conversions:
            if unit.unit_price <= 0:
                raise ConfigError(f"Unit price for '{unit.name}' must be positive")


@dataclass(frozen=True)
class RecommendationSettings:
    """
    Where recommendations come from

    Attributes:
        source: One of 'none', 'static', 'http', 'cost_optimization_hub'
        url: Endpoint for the 'http' source
        timeout_seconds: Request timeout for the 'http' source
        region: Region for the Cost Optimization Hub API
        account_ids: Account filter
        regions: Region filter
        items: Recommendations for the 'static' source
    """
    source: str = "none"
    url: Optional[str] = None
    timeout_seconds: float = 10.0
    region: str = "us-east-1"
    account_ids: Tuple[str, ...] = ()
    regions: Tuple[str, ...] = ()
    items: Tuple[Recommendation, ...] = ()

    SOURCES = ('none', 'static', 'http', 'cost_optimization_hub')

    def __post_init__(self):
        if self.source not in self.SOURCES:
            raise ConfigError(f"Unknown recommendation source '{self.source}', "
                              f"expected one of {', '.join(self.SOURCES)}")
        if self.source == 'http' and not self.url:
            raise ConfigError("recommendations.url is required for the 'http' source")

    @property
    def scope(self) -> Dict[str, List[str]]:
        scope = {}
        if self.account_ids:
            scope['account_ids'] = list(self.account_ids)
        if self.regions:
            scope['regions'] = list(self.regions)
        return scope


@dataclass(frozen=True)
class PipelineConfig:
    """
    Everything an invocation needs, passed explicitly into the pipeline

    Attributes:
        sender: Verified sender address
        recipients: Report recipients
        region: AWS region for Athena and SES
        subject_prefix: Prefix for email subjects
        workgroup: Athena workgroup (engine default if None)
        result_page_size: Rows requested per result page
        timeout_seconds: Invocation budget when the host gives none
        deadline_margin_seconds: Time kept in reserve before the host deadline
        log_level: Logging level name
        poll: Status polling interval
        retry: Backoff for transient failures
        report: Report settings
        recommendations: Recommendation source settings
        query_types: Per query type overrides of report settings
    """
    sender: str = ""
    recipients: Tuple[str, ...] = ()
    region: str = "eu-west-1"
    subject_prefix: str = "[Penny]"
    workgroup: Optional[str] = None
    result_page_size: int = 1000
    timeout_seconds: float = 840.0
    deadline_margin_seconds: float = 10.0
    log_level: str = "INFO"
    poll: PollSettings = field(default_factory=PollSettings)
    retry: BackoffPolicy = field(default_factory=BackoffPolicy)
    report: ReportSettings = field(default_factory=ReportSettings)
    recommendations: RecommendationSettings = field(default_factory=RecommendationSettings)
    query_types: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        if not 1 <= self.result_page_size <= 1000:
            raise ConfigError("result_page_size must be between 1 and 1000")
        if self.timeout_seconds <= 0:
            raise ConfigError("timeout_seconds must be positive")
        if self.deadline_margin_seconds < 0:
            raise ConfigError("deadline_margin_seconds must not be negative")
        if not isinstance(logging.getLevelName(str(self.log_level).upper()), int):
            raise ConfigError(f"Unknown log_level '{self.log_level}'")
        if not isinstance(self.query_types, dict):
            raise ConfigError("Section 'query_types' must be a mapping")
        for name, overrides in self.query_types.items():
            _apply_overrides(self.report, overrides, f"query_types.{name}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        """
        Build and validate a config from plain data (parsed YAML)

        Raises:
            ConfigError: on unknown fields or invalid values
        """
        data = dict(data or {})
        _check_fields(cls, data, "pipeline")

        nested = {
            'poll': lambda d: _build(PollSettings, d, 'poll'),
            'retry': lambda d: _build(BackoffPolicy, d, 'retry'),
            'report': _build_report,
            'recommendations': _build_recommendations,
        }
        for key, builder in nested.items():
            if key in data:
                data[key] = builder(data[key] or {})

        if isinstance(data.get('recipients'), str):
            data['recipients'] = [data['recipients']]
        if 'recipients' in data:
            data['recipients'] = tuple(data['recipients'] or ())
        if 'query_types' in data:
            data['query_types'] = {str(k): dict(v or {}) for k, v in (data['query_types'] or {}).items()}

        try:
            return cls(**data)
        except TypeError as e:
            raise ConfigError(f"Invalid pipeline configuration: {e}") from e

    def validate_email(self):
        """Raise ConfigError unless sender and recipients are set"""
        if not self.sender:
            raise ConfigError("sender is required to send reports")
        if not self.recipients:
            raise ConfigError("at least one recipient is required to send reports")

    def report_settings(self, query_type: Optional[str] = None) -> ReportSettings:
        """Report settings with the overrides for `query_type` applied"""
        overrides = self.query_types.get(query_type or '', {})
        if not overrides:
            return self.report
        return _apply_overrides(self.report, overrides, f"query_types.{query_type}")


def _field_names(cls) -> set:
    return {f.name for f in dataclasses.fields(cls)}


def _check_fields(cls, data: Dict[str, Any], section: str):
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{section}' must be a mapping")
    unknown = set(data) - _field_names(cls)
    if unknown:
        raise ConfigError(f"Unknown fields in {section}: {', '.join(sorted(unknown))}")


def _build(cls, data: Dict[str, Any], section: str):
    _check_fields(cls, data, section)
    try:
        return cls(**data)
    except TypeError as e:
        raise ConfigError(f"Invalid {section} configuration: {e}") from e


def _report_kwargs(data: Dict[str, Any]) -> Dict[str, Any]:
    kwargs = dict(data)
    if 'grade_thresholds' in kwargs:
        kwargs['grade_thresholds'] = tuple(
            GradeBand(float(item['above']), str(item['grade']))
            for item in kwargs['grade_thresholds']
        )
    if 'unit_conversions' in kwargs:
        kwargs['unit_conversions'] = tuple(
            UnitPrice(str(item['name']), str(item.get('label', item['name'])), float(item['unit_price']))
            for item in kwargs['unit_conversions']
        )
    return kwargs


def _build_report(data: Dict[str, Any]) -> ReportSettings:
    _check_fields(ReportSettings, data, 'report')
    try:
        return ReportSettings(**_report_kwargs(data))
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid report configuration: {e}") from e


def _apply_overrides(report: ReportSettings, overrides: Dict[str, Any], section: str) -> ReportSettings:
    """`report` with `overrides` applied, validated like the report section itself"""
    _check_fields(ReportSettings, overrides, section)
    try:
        return dataclasses.replace(report, **_report_kwargs(overrides))
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid {section} configuration: {e}") from e


def _build_recommendations(data: Dict[str, Any]) -> RecommendationSettings:
    _check_fields(RecommendationSettings, data, 'recommendations')
    kwargs = dict(data)
    try:
        for key in ('account_ids', 'regions'):
            if key in kwargs:
                kwargs[key] = tuple(str(v) for v in kwargs[key] or ())
        if 'items' in kwargs:
            kwargs['items'] = tuple(
                Recommendation(str(item['category']), float(item['amount']), str(item.get('description', '')))
                for item in kwargs['items'] or ()
            )
            for item in kwargs['items']:
                if not math.isfinite(item.amount):
                    raise ValueError(f"non-finite amount for {item.category}")
        return RecommendationSettings(**kwargs)
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid recommendations configuration: {e}") from e


def deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Return `base` with `overrides` merged in, recursing into mappings"""
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class Config:
    """
    Configuration loader

    Loads YAML files from a config directory and provides dotted-key access.
    `pipeline()` turns the loaded data into a validated PipelineConfig.
    """

    CONFIG_FILES = ['pipeline.yaml']

    def __init__(self, config_dir: str = "config"):
        """
        Initialize configuration

        Args:
            config_dir: Directory containing config files
        """
        self.config_dir = Path(config_dir)
        self._config = {}
        self._load_configs()

    def _load_configs(self):
        """Load all configuration files"""
        for filename in self.CONFIG_FILES:
            filepath = self.config_dir / filename
            if not filepath.exists():
                continue
            with open(filepath, 'r') as f:
                try:
                    config_data = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ConfigError(f"Cannot parse {filepath}: {e}") from e
            if config_data is None:
                continue
            if not isinstance(config_data, dict):
                raise ConfigError(f"{filepath} must contain a mapping")
            self._config.update(config_data)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value

        Args:
            key: Configuration key (supports nested keys like 'report.top_n')
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_all(self) -> Dict:
        """Get all configuration"""
        return copy.deepcopy(self._config)

    def pipeline(self, overrides: Optional[Dict[str, Any]] = None) -> PipelineConfig:
        """
        Build the pipeline configuration

        Args:
            overrides: Values merged over the file configuration
        """
        return PipelineConfig.from_dict(deep_merge(self._config, overrides or {}))
