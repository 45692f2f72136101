import textwrap

import pytest

from penny.config import (
    Config, DEFAULT_GRADE_THRESHOLDS, GradeBand, PipelineConfig, PollSettings, ReportSettings,
    UnitPrice, deep_merge,
)
from penny.core import ConfigError, Recommendation
from penny.handler import DEFAULT_CONFIG_DIR


def write_config(directory, text):
    (directory / 'pipeline.yaml').write_text(textwrap.dedent(text))
    return Config(str(directory))


def test_defaults():
    config = PipelineConfig()

    assert config.region == 'eu-west-1'
    assert config.result_page_size == 1000
    assert config.report.top_n == 5
    assert config.report.grade_thresholds == DEFAULT_GRADE_THRESHOLDS
    assert config.report.lowest_grade == 'D'
    assert config.recommendations.source == 'none'
    assert config.retry.max_attempts == 5


def test_yaml_is_loaded_and_nested_sections_are_typed(tmp_path):
    config = write_config(tmp_path, """
        sender: penny@example.com
        recipients: finops@example.com
        poll:
          min_interval: 2
          max_interval: 8
        report:
          top_n: 3
          grade_thresholds:
            - {above: 50, grade: pass}
          lowest_grade: fail
          unit_conversions:
            - {name: pizza, unit_price: 12.5}
        recommendations:
          source: static
          items:
            - {category: EC2, amount: 10, description: stop idle instances}
    """)

    pipeline = config.pipeline()

    assert config.get('report.top_n') == 3
    assert config.get('report.missing', 'fallback') == 'fallback'
    assert pipeline.recipients == ('finops@example.com',)
    assert pipeline.poll == PollSettings(min_interval=2, max_interval=8)
    assert pipeline.report.grade_thresholds == (GradeBand(50.0, 'pass'),)
    assert pipeline.report.unit_conversions == (UnitPrice('pizza', 'pizza', 12.5),)
    assert pipeline.recommendations.items == (Recommendation('EC2', 10.0, 'stop idle instances'),)


def test_overrides_are_merged_over_file(tmp_path):
    config = write_config(tmp_path, """
        sender: penny@example.com
        recipients: [finops@example.com]
        report:
          top_n: 3
          currency: EUR
    """)

    pipeline = config.pipeline({'report': {'top_n': 7}, 'recipients': ['cto@example.com']})

    assert pipeline.report.top_n == 7
    assert pipeline.report.currency == 'EUR'
    assert pipeline.recipients == ('cto@example.com',)
    assert config.get('report.top_n') == 3


def test_missing_directory_gives_defaults(tmp_path):
    assert Config(str(tmp_path / 'nowhere')).pipeline() == PipelineConfig()


def test_bundled_config_is_valid():
    config = Config(str(DEFAULT_CONFIG_DIR)).pipeline()

    assert config.recommendations.source == 'cost_optimization_hub'
    assert config.report_settings('monthly_cost_report').top_n == 10


@pytest.mark.parametrize("data", [
    {'unknown_key': 1},
    {'report': {'colour': 'blue'}},
    {'poll': {'min_interval': 0}},
    {'poll': {'min_interval': 5, 'max_interval': 1}},
    {'retry': {'max_attempts': 0}},
    {'result_page_size': 5000},
    {'timeout_seconds': 0},
    {'log_level': 'LOUD'},
    {'report': {'top_n': 0}},
    {'report': {'grade_thresholds': [{'above': 50, 'grade': 'B'}, {'above': 70, 'grade': 'A'}]}},
    {'report': {'grade_thresholds': [{'above': 150, 'grade': 'A'}]}},
    {'report': {'unit_conversions': [{'name': 'free', 'unit_price': 0}]}},
    {'report': {'unit_conversions': [{'unit_price': 5}]}},
    {'recommendations': {'source': 'crystal_ball'}},
    {'recommendations': {'source': 'http'}},
    {'recommendations': {'source': 'static', 'items': [{'category': 'EC2', 'amount': 'nan'}]}},
    {'query_types': {'monthly': {'colour': 'blue'}}},
    {'query_types': {'monthly': {'grade_thresholds': [{'grade': 'A'}]}}},
    {'query_types': {'monthly': {'top_n': 0}}},
    {'query_types': {'monthly': {'unit_conversions': [{'name': 'free', 'unit_price': 0}]}}},
])
def test_invalid_configuration_is_rejected(data):
    with pytest.raises(ConfigError):
        PipelineConfig.from_dict(data)


def test_invalid_yaml_is_a_config_error(tmp_path):
    with pytest.raises(ConfigError):
        write_config(tmp_path, "report: [unclosed\n")


def test_query_type_overrides_apply_to_that_type_only():
    config = PipelineConfig.from_dict({
        'report': {'title': 'Daily'},
        'query_types': {'by_account': {'category_column': 'account', 'title': 'By account'}},
    })

    assert config.report_settings('by_account').category_column == 'account'
    assert config.report_settings('by_account').title == 'By account'
    assert config.report_settings('cost_report') == config.report
    assert config.report_settings(None).title == 'Daily'


def test_validate_email_requires_sender_and_recipients():
    with pytest.raises(ConfigError):
        PipelineConfig(recipients=('a@example.com',)).validate_email()
    with pytest.raises(ConfigError):
        PipelineConfig(sender='penny@example.com').validate_email()

    PipelineConfig(sender='penny@example.com', recipients=('a@example.com',)).validate_email()


def test_recommendation_scope_only_includes_set_filters():
    config = PipelineConfig.from_dict({'recommendations': {'account_ids': [111122223333]}})

    assert config.recommendations.scope == {'account_ids': ['111122223333']}


def test_poll_interval_grows_and_is_capped():
    poll = PollSettings(min_interval=1.0, max_interval=10.0, multiplier=1.5)

    assert [poll.interval(n) for n in range(7)] == [1.0, 1.5, 2.25, 3.375, 5.0625, 7.59375, 10.0]


def test_report_settings_reject_bad_thresholds_directly():
    with pytest.raises(ConfigError):
        ReportSettings(grade_thresholds=(GradeBand(-1, 'Z'),))


def test_deep_merge_does_not_mutate_inputs():
    base = {'report': {'top_n': 5, 'title': 'T'}, 'region': 'eu-west-1'}
    overrides = {'report': {'top_n': 9}}

    merged = deep_merge(base, overrides)

    assert merged == {'report': {'top_n': 9, 'title': 'T'}, 'region': 'eu-west-1'}
    assert base['report']['top_n'] == 5
