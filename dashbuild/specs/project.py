"""Project specs."""

import difflib
import logging
from typing import Any, Iterable, Optional, Union

import pandas as pd
from pydantic import ValidationError

from ..config import DEFAULT_OUTPUT_DIR, DEFAULT_PUBLISH_DIR
from ..errors import ConfigError
from ..navigation.schemas import NavbarSection, SidebarGroup
from ..tabs.schemas import UngroupedPlacement
from .content import format_validation_error
from .page import PageSpec

logger = logging.getLogger(__name__)


def suggest(name: str, choices: Iterable[str]) -> str:
    """`` Did you mean 'x'?`` suffix for error messages, or empty."""
    matches = difflib.get_close_matches(name, list(choices), n=1, cutoff=0.6)
    return f" Did you mean '{matches[0]}'?" if matches else ""


class ProjectSpec:
    """A dashboard site: pages, datasets, navigation and site settings."""

    def __init__(
        self,
        title: str,
        output_dir: str = DEFAULT_OUTPUT_DIR,
        publish_dir: str = DEFAULT_PUBLISH_DIR,
        theme: str = "cosmo",
        author: Optional[str] = None,
        description: Optional[str] = None,
        page_footer: Optional[str] = None,
        search: bool = True,
        css: Optional[list[str]] = None,
        ungrouped_placement: Union[str, UngroupedPlacement] = UngroupedPlacement.BEFORE,
    ):
        if not title or not title.strip():
            raise ConfigError("Project title must be a non-empty string")
        self.title = title
        self.output_dir = output_dir
        self.publish_dir = publish_dir
        self.theme = theme
        self.author = author
        self.description = description
        self.page_footer = page_footer
        self.search = search
        self.css = list(css or [])
        try:
            self.ungrouped_placement = UngroupedPlacement(ungrouped_placement)
        except ValueError as e:
            raise ConfigError(
                f"Unknown ungrouped placement '{ungrouped_placement}'. "
                f"Available: {', '.join(p.value for p in UngroupedPlacement)}"
            ) from e

        self._pages: dict[str, PageSpec] = {}
        self._datasets: dict[str, pd.DataFrame] = {}
        self.navbar_sections: list[NavbarSection] = []
        self.sidebar_groups: list[SidebarGroup] = []

    @property
    def pages(self) -> list[PageSpec]:
        return list(self._pages.values())

    @property
    def landing_page(self) -> Optional[PageSpec]:
        for page in self._pages.values():
            if page.is_landing:
                return page
        return None

    @property
    def datasets(self) -> dict[str, pd.DataFrame]:
        """Project datasets plus inline datasets from every page."""
        merged = dict(self._datasets)
        for page in self._pages.values():
            merged.update(page.datasets)
        return merged

    def get_page(self, name: str) -> PageSpec:
        """Look up a page by name.

        Raises:
            ConfigError: If no page has that name.
        """
        page = self._pages.get(name)
        if page is None:
            raise ConfigError(
                f"Unknown page '{name}'.{suggest(name, self._pages)}",
                context={"page": name},
            )
        return page

    def add_page(self, page: Union[PageSpec, str], **kwargs: Any) -> "ProjectSpec":
        """Add a PageSpec, or build one from a name and keyword arguments.

        Raises:
            ConfigError: On duplicate names, colliding file names or a
                second landing page.
        """
        if isinstance(page, str):
            page = PageSpec(page, **kwargs)
        if page.name in self._pages:
            raise ConfigError(f"Duplicate page name '{page.name}'")
        for existing in self._pages.values():
            if existing.filename == page.filename:
                raise ConfigError(
                    f"Pages '{existing.name}' and '{page.name}' would both be "
                    f"written to {page.filename}"
                )
        self._pages[page.name] = page
        logger.debug(f"Added page '{page.name}' -> {page.filename}")
        return self

    def add_dataset(self, name: str, df: pd.DataFrame) -> "ProjectSpec":
        """Register a named dataset for charts, tables and input options."""
        if not isinstance(df, pd.DataFrame):
            raise ConfigError(
                f"Dataset '{name}' must be a pandas DataFrame, got {type(df).__name__}"
            )
        if not name.isidentifier():
            raise ConfigError(f"Dataset name '{name}' must be a valid identifier")
        self._datasets[name] = df
        return self

    def add_navbar_section(self, text: str, **kwargs: Any) -> "ProjectSpec":
        """Declare a navbar dropdown menu, sidebar reference or link."""
        try:
            section = NavbarSection(text=text, **kwargs)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid navbar section '{text}': {format_validation_error(e)}"
            ) from e
        self.navbar_sections.append(section)
        return self

    def add_sidebar_group(self, id: str, title: str, pages: list[str], **kwargs: Any) -> "ProjectSpec":
        """Declare a sidebar listing ``pages``."""
        if any(group.id == id for group in self.sidebar_groups):
            raise ConfigError(f"Duplicate sidebar id '{id}'")
        try:
            group = SidebarGroup(id=id, title=title, pages=pages, **kwargs)
        except ValidationError as e:
            raise ConfigError(
                f"Invalid sidebar group '{id}': {format_validation_error(e)}"
            ) from e
        self.sidebar_groups.append(group)
        return self

    def __repr__(self) -> str:
        return f"ProjectSpec(title={self.title!r}, pages={len(self._pages)})"
