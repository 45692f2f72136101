from datetime import date

import pytest

from penny.config import ReportSettings, UnitPrice
from penny.core import BillingRecord, Recommendation, ResultSet
from penny.metrics import MetricsEngine
from penny.report import ReportRenderer, attachment_filename, decode_csv, encode_csv, format_amount


AS_OF = date(2024, 3, 1)
RAW_ROWS = [['service', 'cost'], ['EC2', '1000'], ['S3', '200']]


@pytest.fixture
def report():
    engine = MetricsEngine(ReportSettings(unit_conversions=(UnitPrice('coffee', 'cups of coffee', 5.0),)))
    return engine.build_report(
        [BillingRecord('EC2', 1000.0), BillingRecord('S3', 200.0)],
        [Recommendation('EC2', 300.0, 'Rightsize m5.4xlarge to m5.2xlarge')],
        query_name='daily_costs', as_of=AS_OF,
    )


def test_report_document_has_subject_bodies_and_csv(report):
    document = ReportRenderer("[Penny]").render(report, RAW_ROWS)

    assert document.subject == "[Penny] Cloud Cost Report: daily_costs (2024-03-01)"
    assert document.has_data
    assert 'Total spend' in document.text
    assert '$1,200.00' in document.text
    assert '25.0 / 100' in document.text
    assert '60 cups of coffee' in document.text
    assert 'Rightsize m5.4xlarge to m5.2xlarge' in document.text
    assert '<table>' in document.html
    assert 'Grade D' in document.html

    (attachment,) = document.attachments
    assert attachment.filename == 'daily_costs_2024-03-01.csv'
    assert attachment.content_type == 'text/csv'
    assert decode_csv(attachment.content.decode('utf-8')) == RAW_ROWS


def test_no_data_report_is_explicit_and_has_no_attachment():
    empty = MetricsEngine().build_report([], [], query_name='daily_costs', as_of=AS_OF)

    document = ReportRenderer("[Penny]").render(empty, [['service', 'cost']])

    assert not document.has_data
    assert document.subject.endswith("- no data")
    assert 'NO DATA' in document.text
    assert 'No data' in document.html
    assert 'Grade' not in document.text
    assert document.attachments == ()


def test_partial_report_carries_notice():
    partial = MetricsEngine().build_report(
        [BillingRecord('EC2', 10.0)], [], query_name='daily_costs', as_of=AS_OF,
        partial=True, partial_reason='recommendation source unreachable')

    document = ReportRenderer().render(partial)

    assert document.subject.endswith('[partial]')
    assert 'recommendation source unreachable' in document.text
    assert 'class="notice"' in document.html
    assert 'No recommendations available.' in document.text
    assert document.attachments == ()


def test_html_escapes_text_from_results():
    engine = MetricsEngine()
    report = engine.build_report([BillingRecord('<script>', 1.0)],
                                 [Recommendation('EC2', 0.5, 'a & b')],
                                 query_name='q', as_of=AS_OF)

    document = ReportRenderer().render(report)

    assert '<script>' not in document.html
    assert '&lt;script&gt;' in document.html


def test_documents_get_distinct_ids(report):
    renderer = ReportRenderer()

    assert renderer.render(report).document_id != renderer.render(report).document_id


def test_csv_quotes_every_cell_and_round_trips():
    rows = [['service', 'note'], ['EC2', 'say "hi", then\nleave'], ['S3', '']]

    text = encode_csv(rows)

    assert text.splitlines()[0] == '"service","note"'
    assert decode_csv(text) == rows


def test_csv_accepts_result_set():
    result = ResultSet.from_rows(RAW_ROWS, execution_id='abc')

    assert decode_csv(encode_csv(result)) == RAW_ROWS


def test_attachment_filename():
    assert attachment_filename('monthly_cost_report', date(2024, 12, 31)) == 'monthly_cost_report_2024-12-31.csv'


@pytest.mark.parametrize("amount,currency,expected", [
    (1200.0, 'USD', '$1,200.00'),
    (-3.5, 'EUR', '-€3.50'),
    (10.0, 'CHF', '10.00 CHF'),
])
def test_format_amount(amount, currency, expected):
    assert format_amount(amount, currency) == expected
