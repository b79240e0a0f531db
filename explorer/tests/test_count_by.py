import pytest

from explorer.count_by import (
    INVALID_COUNT_BY_MESSAGE,
    CountByConfig,
    CountByMode,
    InvalidCountByParameter,
    ParseResult,
    parse_count_by_query,
    resolve_count_by,
)


@pytest.mark.parametrize("raw", [None, "", "   ", "\t\n", "rows", "ROWS", "Rows", " rows "])
def test_default_row_counting(raw):
    result = parse_count_by_query(raw)
    assert result == ParseResult()
    assert result.config is None
    assert result.error is None
    assert result.ok


def test_parent_mode():
    result = parse_count_by_query("parent:samples")
    assert result.error is None
    assert result.config == CountByConfig(mode=CountByMode.PARENT, target_table="samples")
    assert result.config.mode.value == "parent"


def test_parent_target_is_trimmed_but_case_preserved():
    assert parse_count_by_query("\ufeffparent: samples\u2003").config.target_table == "samples"
    assert parse_count_by_query("  parent:Clinical Patients  ").config.target_table == "Clinical Patients"


@pytest.mark.parametrize("raw", ["parent:", "parent:   ", " parent: "])
def test_parent_without_table_is_an_error(raw):
    result = parse_count_by_query(raw)
    assert result.config is None
    assert result.error == INVALID_COUNT_BY_MESSAGE
    assert not result.ok


@pytest.mark.parametrize("raw", ["foo", "child:patients", "PARENT:patients", "Parent:patients", "rows:x", "parent"])
def test_unrecognized_values_are_errors(raw):
    result = parse_count_by_query(raw)
    assert result.config is None
    assert result.error == "Invalid countBy parameter"


def test_parse_is_repeatable():
    assert parse_count_by_query("parent:patients") == parse_count_by_query("parent:patients")
    assert parse_count_by_query("xyz") == parse_count_by_query("xyz")


def test_result_cannot_hold_config_and_error():
    with pytest.raises(ValueError):
        ParseResult(config=CountByConfig(CountByMode.PARENT, "patients"), error="boom")


def test_resolve_count_by_raises_client_error():
    assert resolve_count_by(None) is None
    assert resolve_count_by("parent:patients").target_table == "patients"
    with pytest.raises(InvalidCountByParameter) as excinfo:
        resolve_count_by("parent:")
    assert excinfo.value.status_code == 400
    assert str(excinfo.value) == INVALID_COUNT_BY_MESSAGE


@pytest.mark.parametrize("raw", ["\ufeffrows", " ROWS\u3000", "\ufeff"])
def test_unicode_whitespace_is_trimmed(raw):
    assert parse_count_by_query(raw) == ParseResult()


def test_unicode_whitespace_around_parent_target():
    assert parse_count_by_query("\ufeffparent:\u00a0samples\u2003").config.target_table == "samples"
