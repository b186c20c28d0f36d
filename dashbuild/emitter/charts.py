"""Chart code generation.

Each backend has one Jinja2 template per chart type producing the Python
source of a Quarto code chunk. The chunk expects a ``datasets`` dict of
DataFrames defined by the page setup chunk.

Charts bound to page inputs carry what the client runtime needs to filter
them: Altair charts get one Vega-Lite parameter and filter transform per
binding and are embedded so the runtime can reach their view; Plotly
charts carry the bound columns as ``custom_data``.
"""

import json
import logging
import re
from typing import Optional, Sequence

from jinja2 import Environment, TemplateError

from ..blocks.schemas import ChartBlock, TableBlock
from ..config import VEGA_EMBED_URL
from ..errors import ConfigError
from ..filters.schemas import FilterBinding, FilterOperator
from .templating import make_environment

logger = logging.getLogger(__name__)

_PRELUDE = """\
_df = datasets[{{ dataset | pyrepr }}]
"""

_ALTAIR_MARKS = {
    "bar": "mark_bar",
    "line": "mark_line",
    "scatter": "mark_point",
    "area": "mark_area",
    "histogram": "mark_bar",
    "heatmap": "mark_rect",
    "boxplot": "mark_boxplot",
    "pie": "mark_arc",
}

_ALTAIR = """\
{% if chart.chart_type == "histogram" %}
{% set x_enc = "alt.X(" ~ (chart.x | pyrepr) ~ ", bin=True)" %}
{% set y_enc = "'count()'" %}
{% else %}
{% set x_enc = chart.x | pyrepr %}
{% set y_enc = y_field | pyrepr %}
{% endif %}
_chart = alt.Chart(_df).{{ mark }}({{ chart.options | pykwargs }}).encode(
{% if chart.chart_type == "pie" %}
    theta={{ y_enc }},
    color={{ chart.x | pyrepr }},
{% elif chart.chart_type == "heatmap" %}
    x={{ x_enc }},
    y={{ chart.y | pyrepr }},
    color={{ (chart.color or "count()") | pyrepr }},
{% else %}
    x={{ x_enc }},
    y={{ y_enc }},
{% if chart.color %}
    color={{ chart.color | pyrepr }},
{% endif %}
{% endif %}
).properties(height={{ chart.height }}, width="container"{% if chart.title %}, title={{ chart.title | pyrepr }}{% endif %})
{% if params %}
{% for param in params %}
_chart = _chart.add_params(alt.param(name={{ param.name | pyrepr }})).transform_filter(
    {{ param.expr | pyrepr }}
)
{% endfor %}
HTML(
    {{ embed_head | pyrepr }}
    + _chart.to_json(indent=None)
    + {{ embed_tail | pyrepr }}
)
{% else %}
_chart
{% endif %}
"""

_PLOTLY_FUNCS = {
    "bar": "px.bar",
    "line": "px.line",
    "scatter": "px.scatter",
    "area": "px.area",
    "histogram": "px.histogram",
    "heatmap": "px.density_heatmap",
    "boxplot": "px.box",
    "pie": "px.pie",
}

# plotly.express functions without a custom_data argument
_PLOTLY_UNFILTERABLE = ("histogram", "heatmap")

_PLOTLY = """\
{% if chart.aggregate and chart.chart_type not in ("histogram", "heatmap", "boxplot") %}
{% if chart.aggregate == "count" %}
_df = _df.groupby({{ group_keys | pyrepr }}, as_index=False).size().rename(columns={"size": "count"})
{% else %}
_df = _df.groupby({{ group_keys | pyrepr }}, as_index=False)[{{ chart.y | pyrepr }}].agg({{ chart.aggregate | pyrepr }})
{% endif %}
{% endif %}
_fig = {{ func }}(
    _df,
{% if chart.chart_type == "pie" %}
    names={{ chart.x | pyrepr }},
    values={{ y_field | pyrepr }},
{% else %}
    x={{ chart.x | pyrepr }},
{% if chart.chart_type != "histogram" %}
    y={{ y_field | pyrepr }},
{% endif %}
{% if chart.color and chart.chart_type != "heatmap" %}
    color={{ chart.color | pyrepr }},
{% endif %}
{% endif %}
{% if filter_vars %}
    custom_data={{ filter_vars | pyrepr }},
{% endif %}
    height={{ chart.height }},
{% if chart.title %}
    title={{ chart.title | pyrepr }},
{% endif %}
{% if chart.options %}
    {{ chart.options | pykwargs }},
{% endif %}
)
{% if filter_vars %}
_fig.update_layout(meta={"dashbuild_filter_vars": {{ filter_vars | pyrepr }}})
{% endif %}
_fig.show()
"""

_TABLE = """\
{% if columns %}
_df = _df[{{ columns | pyrepr }}]
{% endif %}
{% if table.max_rows %}
_df = _df.head({{ table.max_rows }})
{% endif %}
_df
"""

BACKEND_IMPORTS: dict[str, str] = {
    "altair": "import altair as alt\nfrom IPython.display import HTML",
    "plotly": "import plotly.express as px",
}


def param_name(input_id: str) -> str:
    """Vega-Lite parameter carrying one input's value."""
    return "dashbuild_" + re.sub(r"[^0-9A-Za-z_]", "_", input_id)


def vega_filter_expr(param: str, column: str, operator: FilterOperator) -> str:
    """Vega expression keeping rows that pass one binding.

    An unset parameter keeps every row, matching the runtime's handling of
    empty input values.
    """
    field = f"datum[{json.dumps(column)}]"
    if operator == FilterOperator.IN_SET:
        return (
            f"!isArray({param}) || length({param}) == 0 || "
            f"indexof({param}, toString({field})) >= 0"
        )
    if operator == FilterOperator.EQUALS:
        return (
            f"!isValid({param}) || {param} === '' || "
            f"toString({field}) === toString({param})"
        )
    if operator == FilterOperator.RANGE:
        return (
            f"!isValid({param}) || (isArray({param}) ? "
            f"({field} >= {param}[0] && {field} <= {param}[1]) : {field} >= {param})"
        )
    # override: a switched-off input hides rows flagged by the column
    return f"!isBoolean({param}) || {param} || !{field}"


def filter_variables(filters: Sequence[FilterBinding]) -> list[str]:
    """Distinct bound variables in binding order."""
    return list(dict.fromkeys(binding.target_variable for binding in filters))


class ChartCodeGenerator:
    """Generates Python chunk source for chart and table blocks."""

    def __init__(self, env: Optional[Environment] = None):
        self.env = env or make_environment()

    def chart_code(
        self,
        chart: ChartBlock,
        dataset: str,
        filters: Sequence[FilterBinding] = (),
    ) -> str:
        """Python source drawing ``chart`` from ``datasets[dataset]``.

        Args:
            chart: Validated chart block.
            dataset: Dataset name resolved for this block.
            filters: Bindings targeting this chart.

        Raises:
            ConfigError: If the template fails to render.
        """
        y_field = chart.y
        if chart.aggregate == "count":
            y_field = "count()" if chart.backend == "altair" else "count"
        elif chart.aggregate and chart.backend == "altair":
            y_field = f"{chart.aggregate}({chart.y})"

        if chart.backend == "altair":
            body, extra = _ALTAIR, self._altair_filters(chart, filters)
            extra["mark"] = _ALTAIR_MARKS[chart.chart_type]
        else:
            filter_vars = filter_variables(filters)
            if filter_vars and chart.chart_type in _PLOTLY_UNFILTERABLE:
                logger.warning(
                    f"Plotly {chart.chart_type} chart '{chart.id}' cannot be filtered "
                    f"in the browser; use the altair backend to filter it"
                )
                filter_vars = []
            group_keys = [chart.x] + ([chart.color] if chart.color else [])
            group_keys = list(dict.fromkeys(group_keys + filter_vars))
            body, extra = _PLOTLY, {
                "func": _PLOTLY_FUNCS[chart.chart_type],
                "group_keys": group_keys,
                "filter_vars": filter_vars,
            }

        return self._render(
            _PRELUDE + body,
            chart=chart,
            dataset=dataset,
            y_field=y_field,
            **extra,
        )

    def table_code(
        self, table: TableBlock, dataset: str, filters: Sequence[FilterBinding] = ()
    ) -> str:
        """Python source displaying ``table`` from ``datasets[dataset]``.

        Bound variables missing from ``columns`` are appended so the
        runtime can read them from the rendered rows.
        """
        columns = list(table.columns or [])
        if columns:
            columns += [v for v in filter_variables(filters) if v not in columns]
        return self._render(
            _PRELUDE + _TABLE, table=table, dataset=dataset, columns=columns
        )

    def _altair_filters(self, chart: ChartBlock, filters: Sequence[FilterBinding]) -> dict:
        params = [
            {
                "name": param_name(binding.source_input_id),
                "expr": vega_filter_expr(
                    param_name(binding.source_input_id),
                    binding.target_variable,
                    binding.operator,
                ),
            }
            for binding in filters
        ]
        view_id = f"{chart.id}-view"
        embed_head = (
            f'<div id="{view_id}" class="dashbuild-vega"></div>'
            f'<script type="module">import embed from "{VEGA_EMBED_URL}";'
            f'embed("#{view_id}", '
        )
        embed_tail = (
            ', {"actions": false}).then(function (result) {'
            f' window.dashbuild.registerView("{chart.id}", result.view); }});'
            "</script>"
        )
        return {"params": params, "embed_head": embed_head, "embed_tail": embed_tail}

    def _render(self, template_str: str, **context) -> str:
        try:
            template = self.env.from_string(template_str)
            return template.render(**context).rstrip("\n")
        except TemplateError as e:
            raise ConfigError(f"Chart code rendering error: {e}") from e
