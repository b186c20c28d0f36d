"""Parsing of show_when predicates into Condition trees.

Accepts a Python boolean expression over filter variables, e.g.::

    "region == 'North' and 2020 <= year <= 2024"

or an already-structured dict such as
``{"op": "in", "var": "region", "val": ["North", "South"]}``.
Only literal comparisons, ``and``, ``or`` and ``not`` are allowed.
"""

import ast
from typing import Any, Union

from pydantic import ValidationError

from ..errors import UnboundFilterError
from .schemas import Condition, ConditionOp

_COMPARE_OPS = {
    ast.Eq: ConditionOp.EQ,
    ast.NotEq: ConditionOp.NEQ,
    ast.In: ConditionOp.IN,
    ast.NotIn: ConditionOp.NOT_IN,
    ast.Gt: ConditionOp.GT,
    ast.Lt: ConditionOp.LT,
    ast.GtE: ConditionOp.GTE,
    ast.LtE: ConditionOp.LTE,
}

# literal on the left: `2020 <= year` is `year >= 2020`
_FLIPPED = {
    ConditionOp.EQ: ConditionOp.EQ,
    ConditionOp.NEQ: ConditionOp.NEQ,
    ConditionOp.GT: ConditionOp.LT,
    ConditionOp.LT: ConditionOp.GT,
    ConditionOp.GTE: ConditionOp.LTE,
    ConditionOp.LTE: ConditionOp.GTE,
}


def parse_condition(raw: Union[str, dict[str, Any], Condition]) -> Condition:
    """Parse a show_when value.

    Raises:
        UnboundFilterError: For syntax errors, unsupported operators or
            expressions that are not literal comparisons.
    """
    if isinstance(raw, Condition):
        return raw
    if isinstance(raw, dict):
        try:
            return Condition.model_validate(raw)
        except ValidationError as e:
            raise UnboundFilterError(
                f"Invalid show_when condition: {e.errors()[0]['msg']}",
                context={"show_when": raw},
            ) from e
    if not isinstance(raw, str):
        raise UnboundFilterError(
            f"show_when must be a string or dict, got {type(raw).__name__}"
        )

    try:
        tree = ast.parse(raw.strip(), mode="eval")
    except SyntaxError as e:
        raise UnboundFilterError(
            f"Invalid show_when expression {raw!r}: {e.msg}",
            context={"show_when": raw},
        ) from e
    return _convert(tree.body, raw)


def _convert(node: ast.AST, source: str) -> Condition:
    if isinstance(node, ast.BoolOp):
        op = ConditionOp.AND if isinstance(node.op, ast.And) else ConditionOp.OR
        return Condition(op=op, conditions=[_convert(v, source) for v in node.values])

    if isinstance(node, ast.UnaryOp) and isinstance(node.op, ast.Not):
        return Condition(op=ConditionOp.NOT, conditions=[_convert(node.operand, source)])

    if isinstance(node, ast.Name):
        return Condition(op=ConditionOp.EQ, var=node.id, val=True)

    if isinstance(node, ast.Compare):
        parts = []
        left = node.left
        for op_node, right in zip(node.ops, node.comparators):
            parts.append(_comparison(left, op_node, right, source))
            left = right
        if len(parts) == 1:
            return parts[0]
        return Condition(op=ConditionOp.AND, conditions=parts)

    raise UnboundFilterError(
        f"Unsupported show_when syntax in {source!r}: {ast.dump(node)[:60]}",
        context={"show_when": source},
    )


def _comparison(left: ast.AST, op_node: ast.cmpop, right: ast.AST, source: str) -> Condition:
    op = _COMPARE_OPS.get(type(op_node))
    if op is None:
        raise UnboundFilterError(
            f"Unsupported operator '{type(op_node).__name__}' in show_when {source!r}",
            context={"show_when": source},
        )

    if isinstance(left, ast.Name):
        var, literal = left.id, right
    elif isinstance(right, ast.Name) and op in _FLIPPED:
        var, literal, op = right.id, left, _FLIPPED[op]
    else:
        raise UnboundFilterError(
            f"show_when comparisons need a variable and a literal: {source!r}",
            context={"show_when": source},
        )

    try:
        value = ast.literal_eval(literal)
    except (ValueError, TypeError, SyntaxError) as e:
        raise UnboundFilterError(
            f"show_when value must be a literal in {source!r}",
            context={"show_when": source},
        ) from e

    if op in (ConditionOp.IN, ConditionOp.NOT_IN):
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise UnboundFilterError(
                f"'in' needs a list of values in show_when {source!r}",
                context={"show_when": source},
            )
        value = sorted(value, key=repr) if isinstance(value, (set, frozenset)) else list(value)
    return Condition(op=op, var=var, val=value)
