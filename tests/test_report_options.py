import pytest

from errors import ValidationError
from report.options import ReportOptions, load_report_options


def test_defaults_without_file(tmp_path):
    assert load_report_options(None) == ReportOptions()
    opts = load_report_options(str(tmp_path / 'missing.yaml'))
    assert opts.skip_fields == ['assignee']
    assert opts.missing_story_points == 'N/A'


def test_load_yaml(tmp_path):
    path = tmp_path / 'report.yaml'
    path.write_text(
        'title: Weekly sync\n'
        'skip_fields: [assignee, aiRemarks]\n'
        'extra_columns: [nextSteps, blockers]\n'
        'missing_story_points: "-"\n'
        'unknown_key: ignored\n',
        encoding='utf-8',
    )
    opts = load_report_options(str(path))
    assert opts.title == 'Weekly sync'
    assert opts.skip_fields == ['assignee', 'aiRemarks']
    assert opts.extra_columns == ['nextSteps', 'blockers']
    assert opts.missing_story_points == '-'


def test_invalid_yaml(tmp_path):
    path = tmp_path / 'bad.yaml'
    path.write_text('skip_fields: [unclosed\n', encoding='utf-8')
    with pytest.raises(ValidationError):
        load_report_options(str(path))


def test_non_mapping_rejected(tmp_path):
    path = tmp_path / 'list.yaml'
    path.write_text('- a\n- b\n', encoding='utf-8')
    with pytest.raises(ValidationError):
        load_report_options(str(path))
