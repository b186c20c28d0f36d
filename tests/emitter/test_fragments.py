"""Tests for the fragment emitter."""

import pytest

from dashbuild.blocks.schemas import parse_block
from dashbuild.emitter.fragments import FragmentEmitter
from dashbuild.errors import ConfigError, UnsupportedBlockError
from dashbuild.tabs.resolver import resolve_tabs


def text(block_id, tabgroup=None, **kwargs):
    return parse_block({"type": "text", "id": block_id, "content": f"body {block_id}", "tabgroup": tabgroup, **kwargs})


def test_group_becomes_tabset_with_section_heading(registry):
    """Test a root group renders a heading and a panel-tabset."""
    tree = resolve_tabs([text("a", "Sales", title="First"), text("b", "Sales", title="Second")])
    result = FragmentEmitter(registry).emit(tree)
    assert len(result.fragments) == 1
    fragment = result.fragments[0]
    assert fragment.startswith("## Sales\n")
    assert "::: {.panel-tabset}" in fragment
    assert "### First" in fragment and "### Second" in fragment
    assert fragment.index("### First") < fragment.index("### Second")


def test_nested_groups_use_deeper_headings(registry):
    """Test each nesting level moves tab headings one level down."""
    tree = resolve_tabs([text("a", "A/B/C")])
    fragment = FragmentEmitter(registry).emit(tree).fragments[0]
    assert "## A\n" in fragment
    assert "### B\n" in fragment
    assert "#### C\n" in fragment
    assert "##### a\n" in fragment
    assert fragment.count("::: {.panel-tabset}") == 3


def test_prefix_leaf_emitted_after_children(registry):
    """Test [A/B, A/C, A] emits B and C before A's own block."""
    tree = resolve_tabs([text("b", "A/B"), text("c", "A/C"), text("a", "A")])
    fragment = FragmentEmitter(registry).emit(tree).fragments[0]
    assert fragment.index("### B") < fragment.index("### C") < fragment.index("body a")


def test_blocks_wrapped_with_ids(registry):
    """Test blocks are wrapped in fenced divs carrying their id."""
    result = FragmentEmitter(registry).emit(resolve_tabs([text("intro")]))
    assert result.fragments == ["::: {#intro .dashbuild-block .dashbuild-text}\nbody intro\n:::\n"]
    assert result.rendered_block_ids == ["intro"]


def test_conditional_blocks_marked(registry):
    """Test blocks with show_when get the conditional class."""
    block = text("t", show_when="region == 'North'")
    fragment = FragmentEmitter(registry).emit(resolve_tabs([block])).fragments[0]
    assert ".dashbuild-conditional" in fragment


def test_unknown_type_skipped_with_warning(registry, caplog):
    """Test non-strict mode skips unknown types and records one warning."""
    blocks = [text("a"), parse_block({"type": "sparkline", "id": "s"}), text("b")]
    result = FragmentEmitter(registry, strict=False).emit(resolve_tabs(blocks))
    assert len(result.fragments) == 2
    assert result.skipped_block_ids == ["s"]
    assert len(result.warnings) == 1
    assert "sparkline" in caplog.text


def test_unknown_type_strict_raises(registry):
    """Test strict mode aborts on unknown types."""
    blocks = [text("a"), parse_block({"type": "sparkline", "id": "s"})]
    with pytest.raises(UnsupportedBlockError) as exc:
        FragmentEmitter(registry, strict=True).emit(resolve_tabs(blocks))
    assert exc.value.block_type == "sparkline"


def test_group_of_only_skipped_blocks_is_dropped(registry):
    """Test a group with nothing renderable emits nothing."""
    blocks = [parse_block({"type": "sparkline", "id": "s", "tabgroup": "G"})]
    assert FragmentEmitter(registry).emit(resolve_tabs(blocks)).fragments == []


def test_emission_is_deterministic(registry):
    """Test emitting the same tree twice gives identical output."""
    blocks = [text("a", "X/Y"), text("b"), text("c", "X")]
    first = FragmentEmitter(registry).emit(resolve_tabs(blocks)).markdown
    second = FragmentEmitter(registry).emit(resolve_tabs(blocks)).markdown
    assert first == second


def test_chart_renders_python_chunk(registry):
    """Test charts render a labelled python chunk."""
    block = parse_block(
        {"type": "chart", "id": "c1", "chart_type": "bar", "x": "region", "y": "amount", "data": "sales"}
    )
    fragment = FragmentEmitter(registry).emit(resolve_tabs([block])).fragments[0]
    assert "```{python}\n#| label: c1\n#| echo: false\n" in fragment
    assert "_df = datasets['sales']" in fragment
    assert "alt.Chart(_df).mark_bar()" in fragment


def test_chart_without_dataset_raises(registry):
    """Test data blocks need a dataset."""
    block = parse_block({"type": "chart", "id": "c1", "chart_type": "bar", "x": "a", "y": "b"})
    with pytest.raises(ConfigError):
        FragmentEmitter(registry).emit(resolve_tabs([block]))


def test_input_renders_control(registry):
    """Test inputs render data attributes and selected defaults."""
    block = parse_block(
        {
            "type": "input",
            "input_id": "region",
            "id": "region",
            "filter_var": "region",
            "input_type": "select_single",
            "options": ["North", "South"],
            "default": "South",
        }
    )
    fragment = FragmentEmitter(registry).emit(resolve_tabs([block])).fragments[0]
    assert 'data-input-id="region"' in fragment
    assert 'data-filter-var="region"' in fragment
    assert '<option value="South" selected>' in fragment
    assert "multiple" not in fragment


def test_custom_registered_type(registry):
    """Test a type registered at runtime renders through its template."""
    from dashbuild.blocks.schemas import BlockTypeDefinition

    registry.register(
        BlockTypeDefinition(
            type_key="sparkline",
            name="Sparkline",
            category="content",
            template="spark {{ block.options['values'] | join(',') }}",
        )
    )
    block = parse_block({"type": "sparkline", "id": "s", "values": [1, 2, 3]})
    fragment = FragmentEmitter(registry).emit(resolve_tabs([block])).fragments[0]
    assert "spark 1,2,3" in fragment


def test_invalid_heading_level(registry):
    """Test heading levels outside 1-4 are rejected."""
    with pytest.raises(ConfigError):
        FragmentEmitter(registry, heading_level=6)


def test_deep_nesting_never_exceeds_heading_six(registry):
    """Test tabs past heading level six become collapsible callouts."""
    tree = resolve_tabs([text("a", "A/B/C/D/E")])
    fragment = FragmentEmitter(registry).emit(tree).fragments[0]
    assert not [line for line in fragment.splitlines() if line.startswith("#######")]
    assert "###### E\n" in fragment
    assert fragment.count("::: {.panel-tabset}") == 4
    assert '::: {.callout-note collapse="true" title="a"}\n::: {#a' in fragment
    assert "::: {.dashbuild-tab-stack}" in fragment


def test_deep_nesting_with_low_heading_level(registry):
    """Test the heading cap also applies when pages start at level four."""
    tree = resolve_tabs([text("a", "A/B/C")])
    fragment = FragmentEmitter(registry, heading_level=4).emit(tree).fragments[0]
    assert fragment.startswith("#### A\n")
    assert "###### C\n" in fragment
    assert '::: {.callout-note collapse="true" title="a"}' in fragment
    assert fragment.count(":::\n") == fragment.count("::: {")


def control(input_id, **kwargs):
    return parse_block({"type": "input", "id": input_id, "input_id": input_id, "filter_var": input_id, **kwargs})


def test_inputs_sharing_a_row_are_wrapped_together(registry):
    """Test consecutive inputs with one row key render inside a single flex row."""
    blocks = [
        control("region", row="top"),
        control("year", row="top"),
        parse_block({"type": "reset", "id": "clear", "row": "top"}),
        control("product", row="bottom"),
        text("t"),
    ]
    result = FragmentEmitter(registry).emit(resolve_tabs(blocks))
    assert len(result.fragments) == 3
    top = result.fragments[0]
    assert top.startswith("::: {.dashbuild-input-row .d-flex .flex-wrap .gap-3 .align-items-end}\n")
    assert top.index("{#region") < top.index("{#year") < top.index("{#clear")
    assert top.count(":::\n") == 4
    assert "{#product" in result.fragments[1]
    assert result.fragments[2].startswith("::: {#t ")


def test_row_inside_group_is_one_tab(registry):
    """Test a row of inputs in a tab group takes a single tab labelled by its first block."""
    blocks = [
        control("region", row="r", tabgroup="Filters", title="Pick"),
        control("year", row="r", tabgroup="Filters"),
        text("t", "Filters", title="Notes"),
    ]
    fragment = FragmentEmitter(registry).emit(resolve_tabs(blocks)).fragments[0]
    assert "### Pick\n" in fragment
    assert "### Notes\n" in fragment
    assert fragment.count("### ") == 2
    assert ".dashbuild-input-row" in fragment


def test_reset_button_lists_targets(registry):
    """Test reset buttons carry their target input ids for the runtime."""
    blocks = [
        parse_block({"type": "reset", "id": "all"}),
        parse_block({"type": "reset", "id": "some", "targets": ["region", "year"], "label": "Clear", "size": "sm"}),
    ]
    result = FragmentEmitter(registry).emit(resolve_tabs(blocks))
    assert 'data-reset-inputs="">Reset filters</button>' in result.fragments[0]
    assert "btn-sm" in result.fragments[1]
    assert 'data-reset-inputs="region year">Clear</button>' in result.fragments[1]


def test_text_around_tabset(registry):
    """Test group text sits between the section heading and the tabset, and after it."""
    blocks = [
        text("a", "Sales", text_before_tabset="Quarterly view.", text_after_tabset="Source: ledger."),
        text("b", "Sales", text_before_tabset="ignored"),
    ]
    fragment = FragmentEmitter(registry).emit(resolve_tabs(blocks)).fragments[0]
    assert fragment.startswith("## Sales\n\nQuarterly view.\n\n::: {.panel-tabset}\n")
    assert fragment.endswith(":::\n\nSource: ledger.\n")
    assert "ignored" not in fragment


def test_text_around_nested_tabset(registry):
    """Test text on a nested group's block lands inside the parent tab."""
    fragment = FragmentEmitter(registry).emit(
        resolve_tabs([text("a", "A/B", text_before_tabset="Inner intro.")])
    ).fragments[0]
    assert fragment.index("### B") < fragment.index("Inner intro.") < fragment.index("#### a")


def test_sidebar_blocks_emitted_separately(registry):
    """Test sidebar blocks render into sidebar fragments in order."""
    sidebar = [control("region", sidebar=True), text("note", sidebar=True)]
    result = FragmentEmitter(registry).emit(resolve_tabs([text("main")]), sidebar=sidebar)
    assert len(result.fragments) == 1
    assert [f.split()[1] for f in result.sidebar_fragments] == ["{#region", "{#note"]
    assert result.rendered_block_ids == ["main", "region", "note"]
