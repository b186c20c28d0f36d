"""Tests for options_from resolution."""

import pytest

from dashbuild.blocks.schemas import parse_block
from dashbuild.errors import ConfigError
from dashbuild.filters.options import column_options, resolve_input_options


def test_column_options_sorted_distinct(sales_df):
    """Test options are distinct and sorted."""
    assert column_options(sales_df, "region") == ["East", "North", "South"]
    assert column_options(sales_df, "year") == [2022, 2023]


def test_options_from_dataset_column(sales_df):
    """Test 'dataset.column' fills options on a copy."""
    block = parse_block({"type": "input", "input_id": "r", "filter_var": "region", "options_from": "sales.region"})
    resolved = resolve_input_options(block, {"sales": sales_df})
    assert resolved.options == ("East", "North", "South")
    assert block.options is None


def test_options_from_default_dataset(sales_df):
    """Test a bare column uses the page's default dataset."""
    block = parse_block({"type": "input", "input_id": "r", "filter_var": "region", "options_from": "region"})
    assert resolve_input_options(block, {"sales": sales_df}, "sales").options[0] == "East"


def test_explicit_options_win(sales_df):
    """Test explicit options are kept."""
    block = parse_block(
        {"type": "input", "input_id": "r", "filter_var": "region", "options": ["X"], "options_from": "sales.region"}
    )
    assert resolve_input_options(block, {"sales": sales_df}) is block


@pytest.mark.parametrize("source", ["other.region", "sales.country", "region"])
def test_unknown_source_raises(sales_df, source):
    """Test missing datasets or columns raise ConfigError."""
    block = parse_block({"type": "input", "input_id": "r", "filter_var": "region", "options_from": source})
    with pytest.raises(ConfigError):
        resolve_input_options(block, {"sales": sales_df})
