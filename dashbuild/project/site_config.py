"""Site configuration (_quarto.yml)."""

from typing import Any, Sequence

import yaml

from .. import __version__
from ..navigation.schemas import SiteNavigation
from ..specs.project import ProjectSpec
from .compiler import CompiledPage


def build_site_config(
    project: ProjectSpec,
    navigation: SiteNavigation,
    pages: Sequence[CompiledPage],
) -> dict[str, Any]:
    """The _quarto.yml document as a dict, in Quarto's key order."""
    navbar: dict[str, Any] = {"title": project.title}
    if navigation.left:
        navbar["left"] = navigation.left
    if navigation.right:
        navbar["right"] = navigation.right

    website: dict[str, Any] = {"title": project.title, "navbar": navbar}
    if navigation.sidebars:
        website["sidebar"] = navigation.sidebars
    website["search"] = project.search
    if project.page_footer:
        website["page-footer"] = project.page_footer
    if project.description:
        website["description"] = project.description

    html: dict[str, Any] = {"theme": project.theme, "toc": False}
    if project.css:
        html["css"] = list(project.css)

    config: dict[str, Any] = {
        "project": {
            "type": "website",
            "output-dir": project.publish_dir,
            "render": [page.filename for page in pages],
        },
        "website": website,
        "format": {"html": html},
        "execute": {"echo": False, "warning": False},
    }
    if project.author:
        config["author"] = project.author
    config["dashbuild"] = {
        "generator": f"dashbuild {__version__}",
        "pages": [
            {"name": page.name, "file": page.filename, "datasets": page.datasets}
            for page in pages
        ],
    }
    return config


def dump_site_config(config: dict[str, Any]) -> str:
    return yaml.safe_dump(
        config, sort_keys=False, allow_unicode=True, default_flow_style=False
    )
