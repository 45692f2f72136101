"""
Cost report data model
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple


@dataclass(frozen=True)
class BillingRecord:
    """Spend attributed to one category (usually an AWS service)"""
    category: str
    amount: float


@dataclass(frozen=True)
class Recommendation:
    """
    One optimization opportunity from the recommendation source

    Attributes:
        category: Service or resource type the recommendation applies to
        amount: Estimated monthly savings
        description: Human-readable action
    """
    category: str
    amount: float
    description: str = ""


@dataclass(frozen=True)
class ConvertedUnit:
    """Savings expressed as a count of a fixed-price item"""
    name: str
    label: str
    unit_price: float
    units: int


@dataclass(frozen=True)
class CostReport:
    """
    Derived metrics for one invocation

    Attributes:
        query_name: Logical query name
        title: Report title for the query type
        as_of: Report date
        currency: ISO currency code for amounts
        total_spend: Sum of billing amounts
        total_savings: Sum of recommendation amounts
        efficiency_score: Savings-to-spend score in [0, 100]
        grade: Letter grade for the score
        record_count: Number of billing records the report was built from
        top_cost_drivers: Largest categories by spend
        top_recommendations: Largest recommendations by savings
        unit_conversions: Savings expressed in illustrative units
        partial: True when recommendations could not be fetched
        partial_reason: Why the report is partial
    """
    query_name: str
    title: str
    as_of: date
    currency: str
    total_spend: float
    total_savings: float
    efficiency_score: float
    grade: str
    record_count: int
    top_cost_drivers: Tuple[BillingRecord, ...] = ()
    top_recommendations: Tuple[Recommendation, ...] = ()
    unit_conversions: Tuple[ConvertedUnit, ...] = ()
    partial: bool = False
    partial_reason: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return self.record_count > 0

    @property
    def savings_ratio(self) -> float:
        """Potential savings as a fraction of spend"""
        if self.total_spend <= 0:
            return 0.0
        return self.total_savings / self.total_spend
