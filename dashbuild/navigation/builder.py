"""Navigation tree builder.

Pages with a ``nav_group`` path are grouped with the same single-pass
algorithm as tab groups: root groups become navbar dropdown menus and
deeper levels become header entries inside them. Pages claimed by an
explicit navbar menu or sidebar are listed there instead.
"""

import logging
from typing import Any, Optional, Sequence

from ..errors import ConfigError
from ..specs.page import PageSpec
from ..specs.project import ProjectSpec, suggest
from ..tabs.schemas import GroupNode
from ..tabs.tree import build_tree
from .schemas import NavbarSection, SidebarGroup, SiteNavigation

logger = logging.getLogger(__name__)

HOME_LINK_TEXT = "Home"


def page_link(page: PageSpec) -> dict[str, Any]:
    """Navbar entry for a page; the landing page is always "Home"."""
    text = HOME_LINK_TEXT if page.is_landing else page.title
    link: dict[str, Any] = {"href": page.filename, "text": text}
    if page.icon:
        link["icon"] = page.icon
    return link


def _menu_entries(node: GroupNode[PageSpec]) -> list[dict[str, Any]]:
    entries: list[dict[str, Any]] = []
    for entry in node.entries:
        if isinstance(entry, GroupNode):
            entries.append({"text": entry.title})
            entries.extend(_menu_entries(entry))
        else:
            entries.append(page_link(entry))
    return entries


def _sidebar_contents(node: GroupNode[PageSpec]) -> list[Any]:
    contents: list[Any] = []
    for entry in node.entries:
        if isinstance(entry, GroupNode):
            contents.append({"section": entry.title, "contents": _sidebar_contents(entry)})
        else:
            contents.append(entry.filename)
    return contents


class NavigationBuilder:
    """Builds site navigation for a project's (possibly filtered) pages."""

    def __init__(self, project: ProjectSpec, pages: Optional[Sequence[PageSpec]] = None):
        self.project = project
        self.pages = list(pages) if pages is not None else project.pages
        self._by_name = {page.name: page for page in self.pages}
        self._all_names = {page.name for page in project.pages}

    def build(self) -> SiteNavigation:
        """Resolve navbar and sidebars.

        Raises:
            ConfigError: If a section references an unknown page or sidebar.
        """
        nav = SiteNavigation()
        claimed: set[str] = set()

        sidebars = [self._sidebar(group, claimed) for group in self.project.sidebar_groups]
        sidebar_ids = {group.id for group in self.project.sidebar_groups}

        explicit: list[tuple[NavbarSection, dict[str, Any]]] = []
        for section in self.project.navbar_sections:
            item = self._section_item(section, claimed, sidebar_ids)
            if item is not None:
                explicit.append((section, item))

        remaining = [p for p in self.pages if p.name not in claimed]
        remaining.sort(key=lambda p: not p.is_landing)
        tree = build_tree((page.nav_group, page) for page in remaining)

        for entry in tree.ordered_entries():
            if isinstance(entry, GroupNode):
                pages = [p for node in [entry, *entry.walk()] for p in node.items]
                side = nav.right if all(p.navbar_align == "right" for p in pages) else nav.left
                side.append({"text": entry.title, "menu": _menu_entries(entry)})
            else:
                side = nav.right if entry.navbar_align == "right" else nav.left
                side.append(page_link(entry))

        for section, item in explicit:
            (nav.right if section.align == "right" else nav.left).append(item)

        nav.sidebars = [s for s in sidebars if s is not None]
        logger.debug(
            f"Navigation: {len(nav.left)} left, {len(nav.right)} right, "
            f"{len(nav.sidebars)} sidebars"
        )
        return nav

    def _resolve(self, names: list[str], owner: str) -> list[PageSpec]:
        resolved = []
        for name in names:
            if name not in self._all_names:
                raise ConfigError(
                    f"{owner} references unknown page '{name}'."
                    f"{suggest(name, self._all_names)}"
                )
            if name in self._by_name:
                resolved.append(self._by_name[name])
        return resolved

    def _sidebar(self, group: SidebarGroup, claimed: set[str]) -> dict[str, Any]:
        pages = self._resolve(group.pages, f"Sidebar '{group.id}'")
        claimed.update(p.name for p in pages)
        tree = build_tree((page.nav_group, page) for page in pages)
        root_contents: list[Any] = []
        for entry in tree.ordered_entries():
            if isinstance(entry, GroupNode):
                root_contents.append(
                    {"section": entry.title, "contents": _sidebar_contents(entry)}
                )
            else:
                root_contents.append(entry.filename)

        sidebar: dict[str, Any] = {
            "id": group.id,
            "title": group.title,
            "style": group.style,
            "collapse-level": group.collapse_level,
            "contents": root_contents,
        }
        if group.background:
            sidebar["background"] = group.background
        return sidebar

    def _section_item(
        self, section: NavbarSection, claimed: set[str], sidebar_ids: set[str]
    ) -> Any:
        if section.kind == "link":
            item: dict[str, Any] = {"href": section.href, "text": section.text}
        elif section.kind == "sidebar":
            if section.sidebar_id not in sidebar_ids:
                raise ConfigError(
                    f"Navbar section '{section.text}' references unknown sidebar "
                    f"'{section.sidebar_id}'.{suggest(section.sidebar_id, sidebar_ids)}"
                )
            return f"sidebar:{section.sidebar_id}"
        else:
            pages = self._resolve(section.pages, f"Navbar menu '{section.text}'")
            claimed.update(p.name for p in pages)
            if not pages:
                return None
            item = {"text": section.text, "menu": [page_link(p) for p in pages]}
        if section.icon:
            item["icon"] = section.icon
        return item


def build_navigation(project: ProjectSpec, pages: Optional[Sequence[PageSpec]] = None) -> SiteNavigation:
    """Navigation for ``pages`` (default: all project pages)."""
    return NavigationBuilder(project, pages).build()
