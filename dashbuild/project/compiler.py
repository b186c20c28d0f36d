"""Per-page compilation.

compile_page is pure: it reads the specs and datasets and returns the page
source and filter description without touching the filesystem.
"""

import logging
from typing import Mapping, Optional

import pandas as pd
from pydantic import BaseModel, Field

from ..blocks.registry import BlockRegistry, get_block_registry
from ..blocks.schemas import DATA_BLOCK_TYPES, BlockSpec, ChartBlock, InputBlock
from ..emitter.fragments import FragmentEmitter
from ..emitter.page import compose_page
from ..errors import ConfigError
from ..filters.options import resolve_input_options
from ..filters.resolver import resolve_filters
from ..filters.schemas import PageFilterSpec
from ..filters.script import build_filter_script
from ..specs.page import PageSpec
from ..specs.project import suggest
from ..tabs.resolver import resolve_tabs
from ..tabs.schemas import UngroupedPlacement

logger = logging.getLogger(__name__)


class CompiledPage(BaseModel):
    """Everything written for one page."""

    name: str
    slug: str
    filename: str
    title: str
    source: str = Field(..., description="Complete .qmd text")
    filter_spec: PageFilterSpec
    filter_script: Optional[str] = None
    datasets: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    skipped_block_ids: list[str] = Field(default_factory=list)


def assign_ids(page: PageSpec, blocks: list[BlockSpec]) -> list[BlockSpec]:
    """Copies of ``blocks`` with deterministic ids filled in.

    Inputs take their input_id; other blocks get
    ``<page slug>-<type>-<n>`` counting per type.

    Raises:
        ConfigError: If two blocks end up with the same id.
    """
    counters: dict[str, int] = {}
    seen: set[str] = set()
    result = []
    for block in blocks:
        counters[block.type] = counters.get(block.type, 0) + 1
        block_id = block.id
        if block_id is None:
            if isinstance(block, InputBlock):
                block_id = block.input_id
            else:
                slug = page.slug if page.slug[:1].isalpha() else f"p{page.slug}"
                block_id = f"{slug}-{block.type.replace('_', '-')}-{counters[block.type]}"
        if block_id in seen:
            raise ConfigError(
                f"Duplicate block id '{block_id}' on page '{page.name}'",
                context={"page": page.name},
            )
        seen.add(block_id)
        result.append(block if block.id == block_id else block.model_copy(update={"id": block_id}))
    return result


def bind_datasets(
    page: PageSpec, blocks: list[BlockSpec], datasets: Mapping[str, pd.DataFrame]
) -> list[BlockSpec]:
    """Copies of data blocks pointing at a concrete dataset.

    Raises:
        ConfigError: If a block names a dataset that does not exist.
    """
    result = []
    for block in blocks:
        if block.type in DATA_BLOCK_TYPES and hasattr(block, "data"):
            name = block.data or page.data
            if name is not None and name not in datasets:
                raise ConfigError(
                    f"Block '{block.id}' on page '{page.name}' uses unknown dataset "
                    f"'{name}'.{suggest(name, datasets)}",
                    context={"page": page.name, "block_id": block.id},
                )
            if name != block.data:
                block = block.model_copy(update={"data": name})
        elif isinstance(block, InputBlock):
            block = resolve_input_options(block, datasets, page.data)
        result.append(block)
    return result


def compile_page(
    page: PageSpec,
    datasets: Mapping[str, pd.DataFrame],
    registry: Optional[BlockRegistry] = None,
    strict: bool = False,
    placement: UngroupedPlacement = UngroupedPlacement.BEFORE,
) -> CompiledPage:
    """Compile one page to its .qmd source and filter description.

    Args:
        page: The page spec (not modified).
        datasets: All datasets available to the page, by name.
        registry: Block registry (default: global singleton).
        strict: Abort on unsupported block types instead of skipping them.
        placement: Ungrouped placement unless the page sets its own.

    Raises:
        ConfigError: Malformed page content.
        UnboundFilterError: Statically detectable filter mismatch.
        UnsupportedBlockError: Unknown block type in strict mode.
    """
    registry = registry or get_block_registry()
    blocks = assign_ids(page, page.items)
    blocks = bind_datasets(page, blocks, datasets)

    schemas = {name: list(df.columns) for name, df in datasets.items()}
    filter_spec = resolve_filters(page.slug, blocks, schemas=schemas, registry=registry)

    main_blocks = [b for b in blocks if not b.sidebar]
    sidebar_blocks = [b for b in blocks if b.sidebar]
    tree = resolve_tabs(
        main_blocks,
        labels=page.labels,
        placement=page.ungrouped_placement or placement,
    )
    emitted = FragmentEmitter(
        registry=registry, strict=strict, heading_level=page.heading_level
    ).emit(tree, filter_spec, sidebar=sidebar_blocks)

    rendered = set(emitted.rendered_block_ids)
    used = [
        b for b in blocks if b.id in rendered and b.type in DATA_BLOCK_TYPES and b.data
    ]
    dataset_names = list(dict.fromkeys(b.data for b in used))
    backends = [b.backend for b in used if isinstance(b, ChartBlock)]

    with_filters = not filter_spec.is_empty
    source = compose_page(
        title=page.title,
        slug=page.slug,
        fragments=emitted.fragments,
        datasets=dataset_names,
        backends=backends,
        text=page.text,
        with_filters=with_filters,
        sidebar=emitted.sidebar_fragments,
        sidebar_title=page.sidebar_title,
        sidebar_position=page.sidebar_position,
        sidebar_width=page.sidebar_width,
    )
    logger.debug(
        f"Compiled page '{page.name}': {len(blocks)} blocks, "
        f"{len(emitted.fragments)} fragments"
    )
    return CompiledPage(
        name=page.name,
        slug=page.slug,
        filename=page.filename,
        title=page.title,
        source=source,
        filter_spec=filter_spec,
        filter_script=build_filter_script(filter_spec) if with_filters else None,
        datasets=dataset_names,
        warnings=emitted.warnings,
        skipped_block_ids=emitted.skipped_block_ids,
    )
