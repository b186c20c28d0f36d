"""Page composer — assembles a complete .qmd document."""

from typing import Optional, Sequence

import yaml

from ..config import DATA_DIR, FILTER_SCRIPTS_DIR, RUNTIME_SCRIPT_NAME, ASSETS_DIR
from .charts import BACKEND_IMPORTS


def front_matter(title: str, extra: Optional[dict] = None) -> str:
    meta = {"title": title, **(extra or {})}
    dumped = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True)
    return f"---\n{dumped}---\n"


def setup_chunk(datasets: Sequence[str], backends: Sequence[str]) -> Optional[str]:
    """Hidden chunk importing chart backends and loading datasets."""
    if not datasets:
        return None
    lines = ["```{python}", "#| include: false", "import pandas as pd"]
    lines.extend(BACKEND_IMPORTS[b] for b in sorted(set(backends)))
    lines.append("")
    lines.append("datasets = {")
    for name in datasets:
        lines.append(f'    "{name}": pd.read_csv("{DATA_DIR}/{name}.csv"),')
    lines.append("}")
    lines.append("```")
    return "\n".join(lines) + "\n"


def script_tags(slug: str) -> str:
    return (
        "```{=html}\n"
        f'<script src="{FILTER_SCRIPTS_DIR}/{slug}.js"></script>\n'
        f'<script src="{ASSETS_DIR}/{RUNTIME_SCRIPT_NAME}"></script>\n'
        "```\n"
    )


def sidebar_layout(
    main: Sequence[str],
    sidebar: Sequence[str],
    title: Optional[str] = None,
    position: str = "left",
    width: int = 3,
) -> str:
    """Two-column Quarto grid with the sidebar panel on ``position``."""
    side = [f"::: {{.g-col-12 .g-col-md-{width} .dashbuild-sidebar}}\n"]
    if title:
        side.append(f"**{title}**\n")
    side.extend(sidebar)
    side.append(":::\n")
    body = [f"::: {{.g-col-12 .g-col-md-{12 - width} .dashbuild-main}}\n", *main, ":::\n"]
    columns = side + body if position == "left" else body + side
    return "\n".join([":::: {.grid .dashbuild-with-sidebar}\n", *columns, "::::\n"])


def compose_page(
    title: str,
    slug: str,
    fragments: Sequence[str],
    datasets: Sequence[str] = (),
    backends: Sequence[str] = (),
    text: Optional[str] = None,
    with_filters: bool = False,
    sidebar: Sequence[str] = (),
    sidebar_title: Optional[str] = None,
    sidebar_position: str = "left",
    sidebar_width: int = 3,
) -> str:
    """Full page source: front matter, setup, scripts, text, fragments.

    Sidebar fragments, when given, go into a grid column beside the text
    and main fragments.
    """
    parts = [front_matter(title)]
    setup = setup_chunk(datasets, backends)
    if setup:
        parts.append(setup)
    if with_filters:
        parts.append(script_tags(slug))
    main = [text.rstrip() + "\n"] if text else []
    main.extend(fragments)
    if sidebar:
        parts.append(
            sidebar_layout(main, sidebar, sidebar_title, sidebar_position, sidebar_width)
        )
    else:
        parts.extend(main)
    return "\n".join(parts)
