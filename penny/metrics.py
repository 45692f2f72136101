"""
Metrics engine

Combines billing records and recommendations into a CostReport.
Pure computation: no I/O, same inputs always give the same report.
"""

from datetime import date
from decimal import ROUND_FLOOR, Decimal
from typing import Callable, List, Optional, Sequence, TypeVar

import numpy as np

from .config import GradeBand, ReportSettings, UnitPrice
from .core import BillingRecord, ConvertedUnit, CostReport, Recommendation


T = TypeVar('T')


def efficiency_score(total_spend: float, total_savings: float) -> float:
    """
    Potential savings as a percentage of spend, clamped to [0, 100]

    Returns 0 when there is no spend to compare against.
    """
    if total_spend <= 0:
        return 0.0
    return float(np.clip(total_savings / total_spend * 100.0, 0.0, 100.0))


def grade_for(score: float, bands: Sequence[GradeBand], lowest_grade: str) -> str:
    """
    Look up the grade for a score

    Bands are checked highest first and a score must be strictly above a
    band's threshold to earn it, so a score on a boundary gets the lower grade.
    """
    for band in bands:
        if score > band.above:
            return band.grade
    return lowest_grade


def convert_units(savings: float, unit: UnitPrice) -> ConvertedUnit:
    """How many whole units the savings would buy; never negative"""
    units = 0
    if savings > 0:
        # Divide the shortest decimal forms so 15.0 / 0.1 is exactly 150, not 149.99...
        ratio = Decimal(repr(savings)) / Decimal(repr(unit.unit_price))
        units = int(ratio.to_integral_value(rounding=ROUND_FLOOR))
    return ConvertedUnit(unit.name, unit.label, unit.unit_price, units)


def top_n(items: Sequence[T], n: int, amount: Callable[[T], float] = lambda item: item.amount) -> List[T]:
    """
    The n largest items by amount

    Sorted descending; equal amounts keep their input order.
    """
    if not items or n <= 0:
        return []
    amounts = np.array([amount(item) for item in items], dtype=float)
    order = np.argsort(-amounts, kind='stable')[:n]
    return [items[i] for i in order]


def aggregate_by_category(records: Sequence[BillingRecord]) -> List[BillingRecord]:
    """Sum amounts per category, categories in order of first appearance"""
    totals = {}
    for record in records:
        totals[record.category] = totals.get(record.category, 0.0) + record.amount
    return [BillingRecord(category, amount) for category, amount in totals.items()]


class MetricsEngine:
    """
    Builds cost reports

    Args:
        settings: Report settings (top N, grade table, unit prices)
    """

    def __init__(self, settings: ReportSettings = None):
        self.settings = settings or ReportSettings()

    def build_report(self, billing_records: Sequence[BillingRecord],
                     recommendations: Sequence[Recommendation],
                     query_name: str = "", as_of: Optional[date] = None,
                     partial: bool = False, partial_reason: Optional[str] = None) -> CostReport:
        """
        Build a report

        Args:
            billing_records: Spend per category, possibly repeated categories
            recommendations: Savings opportunities
            query_name: Logical query name for the report
            as_of: Report date (today if None)
            partial: True when recommendations are missing because of an error
            partial_reason: Why the report is partial

        Returns:
            CostReport
        """
        settings = self.settings

        spend = np.array([record.amount for record in billing_records], dtype=float)
        savings = np.array([item.amount for item in recommendations], dtype=float)
        total_spend = float(spend.sum())
        total_savings = float(savings.sum())

        score = efficiency_score(total_spend, total_savings)

        return CostReport(
            query_name=query_name,
            title=settings.title,
            as_of=as_of or date.today(),
            currency=settings.currency,
            total_spend=total_spend,
            total_savings=total_savings,
            efficiency_score=score,
            grade=grade_for(score, settings.grade_thresholds, settings.lowest_grade),
            record_count=len(billing_records),
            top_cost_drivers=tuple(top_n(aggregate_by_category(billing_records), settings.top_n)),
            top_recommendations=tuple(top_n(list(recommendations), settings.top_n)),
            unit_conversions=tuple(convert_units(total_savings, unit) for unit in settings.unit_conversions),
            partial=partial,
            partial_reason=partial_reason,
        )
