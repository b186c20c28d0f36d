"""Filter/visibility resolver.

Turns a page's input blocks, filter_vars declarations and show_when
predicates into one PageFilterSpec. Nothing here is evaluated; mismatches
are only reported when they can be seen statically.
"""

import logging
from typing import Collection, Mapping, Optional, Sequence

from ..blocks.registry import BlockRegistry, get_block_registry
from ..blocks.schemas import BlockSpec, InputBlock, ResetBlock
from ..errors import ConfigError, UnboundFilterError
from .conditions import parse_condition
from .schemas import (
    FilterBinding,
    FilterOperator,
    InputControl,
    PageFilterSpec,
    ValueSource,
    VisibilityRule,
)

logger = logging.getLogger(__name__)

DEFAULT_OPERATORS: dict[str, FilterOperator] = {
    "select_single": FilterOperator.EQUALS,
    "radio": FilterOperator.EQUALS,
    "button_group": FilterOperator.EQUALS,
    "text": FilterOperator.EQUALS,
    "select_multiple": FilterOperator.IN_SET,
    "checkbox": FilterOperator.IN_SET,
    "slider": FilterOperator.RANGE,
    "number": FilterOperator.RANGE,
    "switch": FilterOperator.OVERRIDE,
}


def resolve_operator(block: InputBlock) -> FilterOperator:
    """Operator for an input: explicit keyword or the input type's default.

    Raises:
        UnboundFilterError: If the explicit keyword is unknown.
    """
    if block.operator is None:
        return DEFAULT_OPERATORS[block.input_type]
    try:
        return FilterOperator(block.operator)
    except ValueError as e:
        raise UnboundFilterError(
            f"Unknown filter operator '{block.operator}' on input '{block.input_id}'. "
            f"Available: {', '.join(op.value for op in FilterOperator)}",
            context={"input_id": block.input_id},
        ) from e


def _normalize_default(value):
    if isinstance(value, tuple):
        return list(value)
    return value


def resolve_filters(
    page: str,
    blocks: Sequence[BlockSpec],
    schemas: Optional[Mapping[str, Collection[str]]] = None,
    registry: Optional[BlockRegistry] = None,
) -> PageFilterSpec:
    """Build the filter description for one page.

    Args:
        page: Page slug recorded in the output.
        blocks: The page's blocks, ids assigned, in authored order.
        schemas: Dataset name -> column names, for datasets known at build time.
        registry: Block registry deciding which types are filter targets.

    Returns:
        PageFilterSpec with inputs, bindings and visibility rules.

    Raises:
        ConfigError: If two inputs share an id.
        UnboundFilterError: For unknown operators, filter_vars missing from
            a known dataset schema, show_when variables no input controls,
            or reset buttons naming inputs the page lacks.
    """
    schemas = schemas or {}
    registry = registry or get_block_registry()

    controls: list[InputControl] = []
    for block in blocks:
        if not isinstance(block, InputBlock):
            continue
        if any(c.input_id == block.input_id for c in controls):
            raise ConfigError(
                f"Duplicate input id '{block.input_id}' on page '{page}'",
                context={"page": page},
            )
        controls.append(
            InputControl(
                input_id=block.input_id,
                input_type=block.input_type,
                filter_var=block.filter_var,
                operator=resolve_operator(block),
                default=_normalize_default(block.default),
                options=list(block.options) if block.options is not None else None,
            )
        )

    for block in blocks:
        if isinstance(block, ResetBlock):
            _check_reset(block, controls, page)

    page_vars = [c.filter_var for c in controls]
    bindings: list[FilterBinding] = []
    visibility: list[VisibilityRule] = []

    for block in blocks:
        definition = registry.get(block.type)
        if definition is not None and definition.accepts_filters:
            target_vars = _target_variables(block, page_vars, schemas, page)
            for var in target_vars:
                for control in controls:
                    if control.filter_var != var:
                        continue
                    bindings.append(
                        FilterBinding(
                            source_input_id=control.input_id,
                            target_block_id=block.id,
                            target_variable=var,
                            operator=control.operator,
                            value_source=ValueSource(
                                kind="input", input_id=control.input_id
                            ),
                        )
                    )
        elif block.filter_vars:
            logger.warning(
                f"Block '{block.id}' of type '{block.type}' cannot be filtered; "
                f"ignoring filter_vars {list(block.filter_vars)}"
            )

        if block.show_when is not None:
            visibility.append(_visibility_rule(block, controls, page))

    spec = PageFilterSpec(
        page=page, inputs=controls, bindings=bindings, visibility=visibility
    )
    logger.debug(
        f"Resolved filters for '{page}': {len(controls)} inputs, "
        f"{len(bindings)} bindings, {len(visibility)} visibility rules"
    )
    return spec


def _target_variables(
    block: BlockSpec,
    page_vars: list[str],
    schemas: Mapping[str, Collection[str]],
    page: str,
) -> list[str]:
    dataset = getattr(block, "data", None)
    columns = schemas.get(dataset) if dataset is not None else None

    if block.filter_vars:
        if columns is not None:
            missing = [v for v in block.filter_vars if v not in columns]
            if missing:
                raise UnboundFilterError(
                    f"Block '{block.id}' filters on {missing} which dataset "
                    f"'{dataset}' does not have",
                    context={"page": page, "block_id": block.id, "dataset": dataset},
                )
        unbound = [v for v in block.filter_vars if v not in page_vars]
        if unbound:
            logger.warning(
                f"Block '{block.id}' filters on {unbound} but no input on "
                f"page '{page}' sets them"
            )
        return [v for v in block.filter_vars if v in page_vars]

    distinct = list(dict.fromkeys(page_vars))
    if columns is None:
        return distinct
    return [v for v in distinct if v in columns]


def _visibility_rule(
    block: BlockSpec, controls: list[InputControl], page: str
) -> VisibilityRule:
    condition = parse_condition(block.show_when)
    controlled = {c.filter_var for c in controls}
    unknown = [v for v in condition.variables() if v not in controlled]
    if unknown:
        raise UnboundFilterError(
            f"show_when on block '{block.id}' uses {unknown} but no input on "
            f"page '{page}' sets them",
            context={"page": page, "block_id": block.id},
        )
    variables = condition.variables()
    return VisibilityRule(
        target_block_id=block.id,
        condition=condition,
        source_input_ids=[c.input_id for c in controls if c.filter_var in variables],
    )


def _check_reset(block: ResetBlock, controls: list[InputControl], page: str) -> None:
    known = [c.input_id for c in controls]
    if not known:
        raise UnboundFilterError(
            f"Reset button '{block.id}' has no inputs to reset on page '{page}'",
            context={"page": page, "block_id": block.id},
        )
    missing = [t for t in block.targets or () if t not in known]
    if missing:
        raise UnboundFilterError(
            f"Reset button '{block.id}' targets unknown inputs {missing}. "
            f"Available: {', '.join(known)}",
            context={"page": page, "block_id": block.id},
        )
