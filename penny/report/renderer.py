"""
Report renderer

Renders a CostReport as an email: subject, plain text body, HTML body and
the raw result set as a CSV attachment.
"""

import html
from typing import List, Optional, Sequence

from tabulate import tabulate

from .csv_export import attachment_filename, encode_csv
from .document import Attachment, ReportDocument
from ..core import CostReport


CURRENCY_SYMBOLS = {'USD': '$', 'EUR': '€', 'GBP': '£'}

DRIVER_HEADERS = ['#', 'Service', 'Cost', 'Share']
RECOMMENDATION_HEADERS = ['#', 'Category', 'Monthly savings', 'Action']

STYLE = (
    "body{font-family:Arial,sans-serif;color:#222}"
    "table{border-collapse:collapse;margin-bottom:16px}"
    "th,td{border:1px solid #ccc;padding:4px 8px;text-align:left}"
    "th{background:#f0f0f0}"
    ".grade{font-size:28px;font-weight:bold}"
    ".notice{color:#a15c00}"
)


def format_amount(amount: float, currency: str = "USD") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        sign = '-' if amount < 0 else ''
        return f"{sign}{symbol}{abs(amount):,.2f}"
    return f"{amount:,.2f} {currency}"


class ReportRenderer:
    """
    Renders reports

    Args:
        subject_prefix: Prefix for every subject line
    """

    def __init__(self, subject_prefix: str = "[Penny]"):
        self.subject_prefix = subject_prefix

    def render(self, report: CostReport, raw_rows: Optional[Sequence[Sequence[str]]] = None) -> ReportDocument:
        """
        Render a report

        Args:
            report: Report to render
            raw_rows: Result set rows to attach as CSV

        Returns:
            ReportDocument; the explicit "no data" document when the report
            has no billing records
        """
        if not report.has_data:
            return self.render_no_data(report)

        subject = f"{self.subject_prefix} {report.title}: {report.query_name} ({report.as_of.isoformat()})"
        if report.partial:
            subject += " [partial]"

        attachments = ()
        if raw_rows is not None:
            attachments = (Attachment(
                filename=attachment_filename(report.query_name, report.as_of),
                content=encode_csv(raw_rows).encode('utf-8'),
            ),)

        return ReportDocument(
            subject=subject,
            text=self._render_text(report),
            html=self._render_html(report),
            attachments=attachments,
        )

    def render_no_data(self, report: CostReport) -> ReportDocument:
        day = report.as_of.isoformat()
        subject = f"{self.subject_prefix} {report.title}: {report.query_name} ({day}) - no data"
        message = (f"The query '{report.query_name}' returned no billing data for {day}. "
                   f"No totals, grade or recommendations were computed.")

        text = "\n".join([f"{report.title} - {report.query_name}", f"Date: {day}", "", "NO DATA", message, ""])
        body = (f"<h1>{html.escape(report.title)} - {html.escape(report.query_name)}</h1>"
                f"<p>Date: {day}</p><h2>No data</h2><p>{html.escape(message)}</p>")

        return ReportDocument(subject=subject, text=text, html=self._page(subject, body), has_data=False)

    def _summary_rows(self, report: CostReport) -> List[List[str]]:
        currency = report.currency
        return [
            ['Total spend', format_amount(report.total_spend, currency)],
            ['Potential savings', f"{format_amount(report.total_savings, currency)} "
                                  f"({report.savings_ratio:.1%} of spend)"],
            ['Efficiency score', f"{report.efficiency_score:.1f} / 100"],
            ['Grade', report.grade],
        ]

    def _driver_rows(self, report: CostReport) -> List[List[str]]:
        rows = []
        for rank, driver in enumerate(report.top_cost_drivers, start=1):
            share = driver.amount / report.total_spend if report.total_spend > 0 else 0.0
            rows.append([rank, driver.category, format_amount(driver.amount, report.currency), f"{share:.1%}"])
        return rows

    def _recommendation_rows(self, report: CostReport) -> List[List[str]]:
        return [
            [rank, item.category, format_amount(item.amount, report.currency), item.description]
            for rank, item in enumerate(report.top_recommendations, start=1)
        ]

    def _units_line(self, report: CostReport) -> str:
        parts = [f"{unit.units:,} {unit.label}" for unit in report.unit_conversions]
        return "That's enough for: " + ", ".join(parts) if parts else ""

    def _render_text(self, report: CostReport) -> str:
        lines = [f"{report.title} - {report.query_name}", f"Date: {report.as_of.isoformat()}", ""]
        lines.append(tabulate(self._summary_rows(report), tablefmt='plain'))
        lines += ["", "Top cost drivers", tabulate(self._driver_rows(report), headers=DRIVER_HEADERS)]

        lines += ["", "Top recommendations"]
        if report.top_recommendations:
            lines.append(tabulate(self._recommendation_rows(report), headers=RECOMMENDATION_HEADERS))
        else:
            lines.append("No recommendations available.")

        units = self._units_line(report)
        if units:
            lines += ["", units]
        if report.partial:
            lines += ["", f"Note: recommendations could not be loaded ({report.partial_reason}). "
                          f"Savings figures are incomplete."]
        lines.append("")
        return "\n".join(lines)

    def _render_html(self, report: CostReport) -> str:
        title = f"{report.title} - {report.query_name}"
        parts = [
            f"<h1>{html.escape(title)}</h1>",
            f"<p>Date: {report.as_of.isoformat()}</p>",
            f"<p class=\"grade\">Grade {html.escape(report.grade)}</p>",
            tabulate(self._summary_rows(report), tablefmt='html'),
            "<h2>Top cost drivers</h2>",
            tabulate(self._driver_rows(report), headers=DRIVER_HEADERS, tablefmt='html'),
            "<h2>Top recommendations</h2>",
        ]
        if report.top_recommendations:
            parts.append(tabulate(self._recommendation_rows(report), headers=RECOMMENDATION_HEADERS,
                                  tablefmt='html'))
        else:
            parts.append("<p>No recommendations available.</p>")

        units = self._units_line(report)
        if units:
            parts.append(f"<p>{html.escape(units)}</p>")
        if report.partial:
            parts.append(f"<p class=\"notice\">Recommendations could not be loaded "
                         f"({html.escape(report.partial_reason or 'unknown error')}). "
                         f"Savings figures are incomplete.</p>")

        return self._page(title, "\n".join(parts))

    @staticmethod
    def _page(title: str, body: str) -> str:
        return (f"<!DOCTYPE html><html><head><meta charset=\"utf-8\"><title>{html.escape(title)}</title>"
                f"<style>{STYLE}</style></head><body>{body}</body></html>")
