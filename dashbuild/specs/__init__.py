"""Spec builders — the authoring surface for content, pages and projects."""

from .content import ContentSpec
from .page import PageSpec
from .project import ProjectSpec

__all__ = ["ContentSpec", "PageSpec", "ProjectSpec"]
