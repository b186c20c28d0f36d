"""Block schemas — one pydantic model per registered block type.

Every block shares the layout fields (id, tabgroup, show_when, filter_vars,
title). Type-specific fields live on the variant, so a chart cannot carry
a video URL and an image must have a source. Tags outside the known set
parse into GenericBlock and are rejected later by the renderer registry.
"""

import re
from typing import Any, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from ..tabs.schemas import TabPath

_ID_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")

CHART_BACKENDS: dict[str, tuple[str, ...]] = {
    "altair": ("bar", "line", "scatter", "area", "histogram", "heatmap", "boxplot", "pie"),
    "plotly": ("bar", "line", "scatter", "area", "histogram", "heatmap", "boxplot", "pie"),
}

InputType = Literal[
    "select_single",
    "select_multiple",
    "checkbox",
    "radio",
    "switch",
    "slider",
    "text",
    "number",
    "button_group",
]


class BlockSpec(BaseModel):
    """Fields common to every block."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str
    id: Optional[str] = Field(
        default=None,
        description="Stable element id; assigned per page when omitted",
    )
    tabgroup: Optional[TabPath] = Field(
        default=None,
        description="Nested tab placement, e.g. 'Sales/Q1'",
    )
    show_when: Optional[Union[str, dict[str, Any]]] = Field(
        default=None,
        description="Visibility predicate over filter state, as an expression "
        "string (\"region == 'North'\") or a structured condition dict",
    )
    filter_vars: tuple[str, ...] = Field(
        default=(),
        description="Variables this block is filtered by; empty means auto-bind",
    )
    title: Optional[str] = None
    title_tabset: Optional[str] = Field(
        default=None,
        description="Tab label when this block is a tab of its own",
    )
    icon: Optional[str] = None
    sidebar: bool = Field(
        default=False,
        description="Render in the page's sidebar panel instead of the main flow",
    )
    text_before_tabset: Optional[str] = Field(
        default=None,
        description="Markdown placed above the tabset of this block's group",
    )
    text_after_tabset: Optional[str] = Field(
        default=None,
        description="Markdown placed below the tabset of this block's group",
    )

    @field_validator("id")
    @classmethod
    def _check_id(cls, value):
        if value is not None and not _ID_PATTERN.match(value):
            raise ValueError(
                f"Block id '{value}' must start with a letter and contain "
                "only letters, digits, '-' and '_'"
            )
        return value

    @field_validator("tabgroup", mode="before")
    @classmethod
    def _parse_tabgroup(cls, value):
        return TabPath.parse(value)

    @field_validator("filter_vars", mode="before")
    @classmethod
    def _coerce_filter_vars(cls, value):
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        return tuple(value)

    @model_validator(mode="after")
    def _check_placement(self):
        if self.sidebar and self.tabgroup is not None:
            raise ValueError("Sidebar blocks cannot belong to a tabgroup")
        if (self.text_before_tabset or self.text_after_tabset) and self.tabgroup is None:
            raise ValueError("text_before_tabset and text_after_tabset require a tabgroup")
        return self

    @property
    def tab_label(self) -> str:
        return self.title_tabset or self.title or self.id or self.type


class TextBlock(BlockSpec):
    type: Literal["text"] = "text"
    content: str


class CalloutBlock(BlockSpec):
    type: Literal["callout"] = "callout"
    content: str
    callout_type: Literal["note", "tip", "warning", "caution", "important"] = "note"
    collapse: bool = False


class DividerBlock(BlockSpec):
    type: Literal["divider"] = "divider"
    style: Literal["default", "thick", "dashed", "dotted"] = "default"


class CodeBlock(BlockSpec):
    type: Literal["code"] = "code"
    code: str
    language: str = "python"
    caption: Optional[str] = None
    filename: Optional[str] = None


class ImageBlock(BlockSpec):
    type: Literal["image"] = "image"
    src: str
    alt: str = ""
    caption: Optional[str] = None
    width: Optional[str] = None
    align: Literal["left", "center", "right"] = "center"
    link: Optional[str] = None


class VideoBlock(BlockSpec):
    type: Literal["video"] = "video"
    src: str = Field(validation_alias=AliasChoices("src", "url"))
    caption: Optional[str] = None
    width: Optional[str] = None
    height: Optional[str] = None


class IframeBlock(BlockSpec):
    type: Literal["iframe"] = "iframe"
    src: str = Field(validation_alias=AliasChoices("src", "url"))
    height: str = "500px"
    width: str = "100%"


class SpacerBlock(BlockSpec):
    type: Literal["spacer"] = "spacer"
    height: str = "2rem"


class HtmlBlock(BlockSpec):
    type: Literal["html"] = "html"
    html: str


class QuoteBlock(BlockSpec):
    type: Literal["quote"] = "quote"
    quote: str
    attribution: Optional[str] = None
    cite: Optional[str] = None


class BadgeBlock(BlockSpec):
    type: Literal["badge"] = "badge"
    text: str
    color: Literal["primary", "secondary", "success", "danger", "warning", "info", "light", "dark"] = "primary"


class CardBlock(BlockSpec):
    type: Literal["card"] = "card"
    content: str
    footer: Optional[str] = None


class AccordionBlock(BlockSpec):
    type: Literal["accordion"] = "accordion"
    title: str
    content: str
    open: bool = False


class MetricBlock(BlockSpec):
    type: Literal["metric"] = "metric"
    title: str
    value: Union[int, float, str]
    subtitle: Optional[str] = None
    color: Optional[str] = None


class ValueBoxBlock(BlockSpec):
    type: Literal["value_box"] = "value_box"
    title: str
    value: Union[int, float, str]
    bg_color: str = "#2c3e50"
    logo_url: Optional[str] = None


class TableBlock(BlockSpec):
    type: Literal["table"] = "table"
    data: Optional[str] = Field(default=None, description="Dataset name")
    columns: Optional[tuple[str, ...]] = None
    max_rows: Optional[int] = Field(default=None, ge=1)
    caption: Optional[str] = None


class ChartBlock(BlockSpec):
    type: Literal["chart"] = "chart"
    chart_type: str
    backend: str = "altair"
    data: Optional[str] = Field(default=None, description="Dataset name")
    x: Optional[str] = None
    y: Optional[str] = None
    color: Optional[str] = None
    aggregate: Optional[Literal["count", "sum", "mean", "median", "min", "max"]] = None
    height: int = Field(default=400, ge=50)
    options: dict[str, Any] = Field(
        default_factory=dict,
        description="Backend-specific chart options passed through verbatim",
    )

    @model_validator(mode="after")
    def _check_backend(self):
        if self.backend not in CHART_BACKENDS:
            raise ValueError(
                f"Unknown chart backend '{self.backend}'. "
                f"Available: {', '.join(sorted(CHART_BACKENDS))}"
            )
        if self.chart_type not in CHART_BACKENDS[self.backend]:
            raise ValueError(
                f"Chart type '{self.chart_type}' is not supported by "
                f"the {self.backend} backend"
            )
        if self.x is None:
            raise ValueError("Charts require 'x'")
        if self.y is None and self.chart_type != "histogram" and self.aggregate != "count":
            raise ValueError(f"Chart type '{self.chart_type}' requires 'y'")
        return self


class InputBlock(BlockSpec):
    type: Literal["input"] = "input"
    input_id: str
    input_type: InputType = "select_multiple"
    filter_var: str
    label: Optional[str] = None
    options: Optional[tuple[Any, ...]] = None
    options_from: Optional[str] = Field(
        default=None,
        description="Dataset column supplying the options, e.g. 'sales.region'",
    )
    default: Any = None
    operator: Optional[str] = Field(
        default=None,
        description="Filter operator keyword; derived from input_type when omitted",
    )
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    width: Optional[str] = None
    row: Optional[str] = Field(
        default=None,
        description="Input row key; consecutive controls sharing it sit side by side",
    )

    @model_validator(mode="after")
    def _check_slider(self):
        if self.input_type == "slider" and (self.min is None or self.max is None):
            raise ValueError("Slider inputs require 'min' and 'max'")
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError(f"Input min ({self.min}) exceeds max ({self.max})")
        return self


class ResetBlock(BlockSpec):
    """Button restoring page inputs to their defaults."""

    type: Literal["reset"] = "reset"
    label: str = "Reset filters"
    targets: Optional[tuple[str, ...]] = Field(
        default=None,
        description="Input ids to reset; every input on the page when omitted",
    )
    size: Literal["sm", "md", "lg"] = "md"
    row: Optional[str] = None

    @field_validator("targets", mode="before")
    @classmethod
    def _coerce_targets(cls, value):
        if isinstance(value, str):
            return (value,)
        return value


class GenericBlock(BlockSpec):
    """A block whose type tag has no dedicated model."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    options: dict[str, Any] = Field(default_factory=dict)


BLOCK_MODELS: dict[str, type[BlockSpec]] = {
    model.model_fields["type"].default: model
    for model in (
        TextBlock,
        CalloutBlock,
        DividerBlock,
        CodeBlock,
        ImageBlock,
        VideoBlock,
        IframeBlock,
        SpacerBlock,
        HtmlBlock,
        QuoteBlock,
        BadgeBlock,
        CardBlock,
        AccordionBlock,
        MetricBlock,
        ValueBoxBlock,
        TableBlock,
        ChartBlock,
        InputBlock,
        ResetBlock,
    )
}

DATA_BLOCK_TYPES = ("chart", "table")


def parse_block(data: dict[str, Any]) -> BlockSpec:
    """Validate a block dict against the model for its ``type`` tag.

    Unknown tags produce a GenericBlock holding the non-layout fields.

    Raises:
        pydantic.ValidationError: If the fields are invalid for the type.
    """
    block_type = data.get("type")
    model = BLOCK_MODELS.get(block_type)
    if model is not None:
        return model.model_validate(data)

    common = set(BlockSpec.model_fields)
    payload = {k: v for k, v in data.items() if k in common}
    payload["options"] = {k: v for k, v in data.items() if k not in common}
    return GenericBlock.model_validate(payload)


class BlockTypeDefinition(BaseModel):
    """A registered block type and the template that renders it."""

    type_key: str = Field(..., description="Block type tag, e.g. 'chart'")
    name: str = Field(..., description="Human-readable name")
    description: str = ""
    category: Literal["content", "chart", "table", "input", "layout"] = Field(
        ...,
        description="'chart' and 'table' blocks can be filter targets",
    )
    template: str = Field(
        ...,
        description="Jinja2 template producing the block's markdown fragment",
    )

    @property
    def accepts_filters(self) -> bool:
        return self.category in ("chart", "table")
