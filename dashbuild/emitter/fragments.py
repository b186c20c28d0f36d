"""Fragment emitter.

Walks a resolved tab tree and renders one markdown fragment per root-level
entry. Groups become Quarto ``panel-tabset`` containers whose tab headings
go one level deeper per nesting depth. Tabs that would need a heading
below level six become collapsible callouts instead. Blocks are rendered
through the template registered for their type and wrapped in a fenced div
carrying their id so the client runtime can find them. Consecutive blocks
sharing a row key are wrapped together in one flex row.
"""

import logging
from typing import Any, Optional, Sequence

from jinja2 import Environment, TemplateError
from pydantic import BaseModel, Field

from ..blocks.registry import BlockRegistry, get_block_registry
from ..blocks.schemas import BlockSpec, ChartBlock, InputBlock, TableBlock
from ..errors import ConfigError, UnsupportedBlockError
from ..filters.schemas import FilterBinding, PageFilterSpec
from ..tabs.schemas import GroupNode, ResolvedTree
from .charts import ChartCodeGenerator
from .templating import make_environment, quote_attr

logger = logging.getLogger(__name__)

# Pandoc reads ATX headings up to level six only
MAX_HEADING_LEVEL = 6

ROW_CLASSES = ".dashbuild-input-row .d-flex .flex-wrap .gap-3 .align-items-end"


def _tab(level: int, label: str, body: str) -> str:
    """One tab: a heading inside a panel-tabset, or a collapsible callout deeper down."""
    if level <= MAX_HEADING_LEVEL:
        return f"{'#' * level} {label}\n\n{body}"
    return f'::: {{.callout-note collapse="true" title="{quote_attr(label)}"}}\n{body}\n:::\n'


def _row_key(entry: Any) -> Optional[str]:
    if isinstance(entry, GroupNode):
        return None
    return getattr(entry, "row", None)


def group_runs(entries: Sequence[Any]) -> list[list[Any]]:
    """Split entries into runs; consecutive blocks sharing a row key form one run."""
    runs: list[list[Any]] = []
    for entry in entries:
        key = _row_key(entry)
        if key is not None and runs and _row_key(runs[-1][0]) == key:
            runs[-1].append(entry)
        else:
            runs.append([entry])
    return runs


def _group_text(node: GroupNode[BlockSpec], field: str) -> Optional[str]:
    # First block of the group carrying the text wins
    for entry in node.entries:
        if not isinstance(entry, GroupNode) and getattr(entry, field):
            return getattr(entry, field).rstrip() + "\n"
    return None


class EmitResult(BaseModel):
    """Fragments for one page plus what was skipped along the way."""

    fragments: list[str] = Field(default_factory=list)
    sidebar_fragments: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    skipped_block_ids: list[str] = Field(default_factory=list)
    rendered_block_ids: list[str] = Field(default_factory=list)

    @property
    def markdown(self) -> str:
        return "\n".join(self.fragments)


class FragmentEmitter:
    """Renders resolved tab trees into Quarto markdown fragments."""

    def __init__(
        self,
        registry: Optional[BlockRegistry] = None,
        strict: bool = False,
        heading_level: int = 2,
        env: Optional[Environment] = None,
    ):
        """Initialize the emitter.

        Args:
            registry: Block registry (default: global singleton)
            strict: Raise on unsupported block types instead of skipping
            heading_level: Markdown level of root group section headings
            env: Jinja2 environment (default: shared configuration)
        """
        if not 1 <= heading_level <= 4:
            raise ConfigError(f"heading_level must be 1-4, got {heading_level}")
        self.registry = registry or get_block_registry()
        self.strict = strict
        self.heading_level = heading_level
        self.env = env or make_environment()
        self.codegen = ChartCodeGenerator(self.env)

    def emit(
        self,
        tree: ResolvedTree[BlockSpec],
        filter_spec: Optional[PageFilterSpec] = None,
        sidebar: Sequence[BlockSpec] = (),
    ) -> EmitResult:
        """Render every root-level entry of ``tree`` in emission order.

        Chart and table code is generated for the bindings in
        ``filter_spec`` that target each block. ``sidebar`` blocks are
        rendered in order into ``sidebar_fragments``.

        Raises:
            UnsupportedBlockError: In strict mode, for an unregistered type.
            ConfigError: If a block template fails to render.
        """
        result = EmitResult()
        bindings: dict[str, list[FilterBinding]] = {}
        for binding in filter_spec.bindings if filter_spec else []:
            bindings.setdefault(binding.target_block_id, []).append(binding)

        for run in group_runs(tree.ordered_entries()):
            fragment = self._emit_run(run, 0, result, bindings)
            if fragment is not None:
                result.fragments.append(fragment)
        for run in group_runs(sidebar):
            fragment = self._emit_run(run, 0, result, bindings)
            if fragment is not None:
                result.sidebar_fragments.append(fragment)

        logger.debug(
            f"Emitted {len(result.fragments)} fragments "
            f"({len(result.sidebar_fragments)} in the sidebar), "
            f"skipped {len(result.skipped_block_ids)} blocks"
        )
        return result

    def _emit_run(
        self,
        run: list[Any],
        depth: int,
        result: EmitResult,
        bindings: dict[str, list[FilterBinding]],
    ) -> Optional[str]:
        first = run[0]
        if isinstance(first, GroupNode):
            return self._emit_group(first, depth, result, bindings)
        if _row_key(first) is None:
            return self._emit_block(first, result, bindings)

        bodies = [self._emit_block(block, result, bindings) for block in run]
        bodies = [body for body in bodies if body is not None]
        if not bodies:
            return None
        return f"::: {{{ROW_CLASSES}}}\n" + "\n".join(bodies) + ":::\n"

    def _emit_group(
        self,
        node: GroupNode[BlockSpec],
        depth: int,
        result: EmitResult,
        bindings: dict[str, list[FilterBinding]],
    ) -> Optional[str]:
        level = self.heading_level + 1 + depth
        tabs: list[str] = []
        for run in group_runs(node.entries):
            body = self._emit_run(run, depth + 1, result, bindings)
            label = run[0].title if isinstance(run[0], GroupNode) else run[0].tab_label
            if body is not None:
                tabs.append(_tab(level, label, body))

        if not tabs:
            logger.warning(f"Tab group '{node.label}' has no renderable content")
            return None

        parts = []
        if depth == 0:
            parts.append(f"{'#' * self.heading_level} {node.title}\n")
        before = _group_text(node, "text_before_tabset")
        if before:
            parts.append(before)
        if level <= MAX_HEADING_LEVEL:
            parts.append("::: {.panel-tabset}\n")
        else:
            logger.debug(f"Tab group '{node.label}' is past heading level 6, using callouts")
            parts.append("::: {.dashbuild-tab-stack}\n")
        parts.append("\n".join(tabs))
        parts.append(":::\n")
        after = _group_text(node, "text_after_tabset")
        if after:
            parts.append(after)
        return "\n".join(parts)

    def _emit_block(
        self,
        block: BlockSpec,
        result: EmitResult,
        bindings: dict[str, list[FilterBinding]],
    ) -> Optional[str]:
        definition = self.registry.get(block.type)
        if definition is None:
            error = UnsupportedBlockError(block.type, context={"block_id": block.id})
            if self.strict:
                raise error
            logger.warning(f"Skipping block '{block.id}': {error.message}")
            result.warnings.append(str(error))
            result.skipped_block_ids.append(block.id)
            return None

        try:
            template = self.env.from_string(definition.template)
            body = template.render(**self._block_context(block, bindings.get(block.id, [])))
        except TemplateError as e:
            raise ConfigError(
                f"Template rendering error for block '{block.id}': {e}",
                context={"block_type": block.type},
            ) from e

        classes = [".dashbuild-block", f".dashbuild-{block.type.replace('_', '-')}"]
        if block.show_when is not None:
            classes.append(".dashbuild-conditional")
        result.rendered_block_ids.append(block.id)
        return f"::: {{#{block.id} {' '.join(classes)}}}\n{body.rstrip()}\n:::\n"

    def _block_context(
        self, block: BlockSpec, filters: list[FilterBinding]
    ) -> dict[str, Any]:
        context: dict[str, Any] = {"block": block}
        if isinstance(block, (ChartBlock, TableBlock)):
            if block.data is None:
                raise ConfigError(
                    f"Block '{block.id}' has no dataset and its page has no default",
                    context={"block_type": block.type},
                )
            if isinstance(block, ChartBlock):
                context["code"] = self.codegen.chart_code(block, block.data, filters)
            else:
                context["code"] = self.codegen.table_code(block, block.data, filters)
        elif isinstance(block, InputBlock):
            default = block.default
            if default is None:
                defaults = []
            elif isinstance(default, (list, tuple)):
                defaults = list(default)
            else:
                defaults = [default]
            context["defaults"] = defaults
        return context
