"""Tests for show_when condition parsing."""

import pytest

from dashbuild.errors import UnboundFilterError
from dashbuild.filters.conditions import parse_condition
from dashbuild.filters.schemas import Condition, ConditionOp


def test_simple_equality():
    """Test var == literal."""
    cond = parse_condition("region == 'North'")
    assert cond == Condition(op=ConditionOp.EQ, var="region", val="North")


def test_in_list_and_not_in():
    """Test membership operators."""
    assert parse_condition("region in ['North', 'South']").val == ["North", "South"]
    assert parse_condition("region not in ('East',)").op == ConditionOp.NOT_IN


def test_boolean_composition():
    """Test and/or/not nest into a tree."""
    cond = parse_condition("region == 'North' and (year > 2020 or not flag)")
    assert cond.op == ConditionOp.AND
    assert cond.conditions[1].op == ConditionOp.OR
    assert cond.conditions[1].conditions[1].op == ConditionOp.NOT
    assert cond.variables() == ["region", "year", "flag"]


def test_literal_on_left_is_flipped():
    """Test 2020 <= year becomes year >= 2020."""
    cond = parse_condition("2020 <= year")
    assert (cond.op, cond.var, cond.val) == (ConditionOp.GTE, "year", 2020)


def test_chained_comparison_becomes_and():
    """Test a < x < b splits into two comparisons."""
    cond = parse_condition("2020 <= year <= 2024")
    assert cond.op == ConditionOp.AND
    assert [(c.op, c.val) for c in cond.conditions] == [
        (ConditionOp.GTE, 2020),
        (ConditionOp.LTE, 2024),
    ]


def test_structured_dict_accepted():
    """Test an already-structured condition dict validates."""
    cond = parse_condition(
        {"op": "or", "conditions": [{"op": "eq", "var": "a", "val": 1}, {"op": "gt", "var": "b", "val": 2}]}
    )
    assert cond.variables() == ["a", "b"]


def test_structured_membership_accepts_tuples_and_sets():
    """Test dict conditions take tuple and set values like the expression form."""
    from_tuple = parse_condition({"op": "in", "var": "region", "val": ("North", "South")})
    assert from_tuple == parse_condition("region in ('North', 'South')")
    from_set = parse_condition({"op": "not_in", "var": "region", "val": {"South", "North"}})
    assert from_set.val == ["North", "South"]


@pytest.mark.parametrize(
    "raw",
    [
        "region ==",
        "region is None",
        "region == other",
        "f(region) == 1",
        "region == 'a' + 'b'",
        "'North' in regions",
        "region in 'North'",
        {"op": "matches", "var": "region", "val": "N"},
        {"op": "and", "conditions": [{"op": "eq", "var": "a", "val": 1}]},
        {"op": "in", "var": "a", "val": "x"},
        42,
    ],
)
def test_unsupported_conditions_raise(raw):
    """Test unsupported syntax and operators raise UnboundFilterError."""
    with pytest.raises(UnboundFilterError):
        parse_condition(raw)
