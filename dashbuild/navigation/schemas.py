"""Navigation declarations and the resolved site navigation."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class NavbarSection(BaseModel):
    """An explicit navbar entry declared on the project."""

    text: str
    kind: Literal["menu", "sidebar", "link"] = "menu"
    pages: list[str] = Field(
        default_factory=list,
        description="Page names listed in a dropdown menu",
    )
    sidebar_id: Optional[str] = None
    href: Optional[str] = None
    icon: Optional[str] = None
    align: Literal["left", "right"] = "left"

    @model_validator(mode="after")
    def _check_kind(self):
        if self.kind == "menu" and not self.pages:
            raise ValueError(f"Navbar menu '{self.text}' needs at least one page")
        if self.kind == "sidebar" and not self.sidebar_id:
            raise ValueError(f"Navbar section '{self.text}' needs a sidebar_id")
        if self.kind == "link" and not self.href:
            raise ValueError(f"Navbar link '{self.text}' needs an href")
        return self


class SidebarGroup(BaseModel):
    """A sidebar listing a group of pages."""

    id: str
    title: str
    pages: list[str] = Field(..., min_length=1)
    style: Literal["docked", "floating"] = "docked"
    background: Optional[str] = None
    collapse_level: int = Field(default=2, ge=1)


class SiteNavigation(BaseModel):
    """Navbar and sidebar entries in Quarto's site config shape."""

    left: list[Any] = Field(default_factory=list)
    right: list[Any] = Field(default_factory=list)
    sidebars: list[dict[str, Any]] = Field(default_factory=list)
