"""Building several projects in one call."""

import logging
from pathlib import Path
from typing import Any, Iterable, Union

from pydantic import BaseModel, Field

from ..errors import DashbuildError
from ..specs.loader import load_project
from ..specs.project import ProjectSpec
from .writer import BuildResult, generate_project

logger = logging.getLogger(__name__)

ProjectSource = Union[ProjectSpec, str, Path]


class BatchResult(BaseModel):
    """Per-project outcomes.

    Built projects are keyed by output directory. Failures are keyed the
    same way, or by the project file when it could not be loaded.
    """

    results: dict[str, BuildResult] = Field(default_factory=dict)
    failures: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def generate_many(
    projects: Iterable[ProjectSource],
    continue_on_error: bool = True,
    **options: Any,
) -> BatchResult:
    """Build each project with ``generate_project(project, **options)``.

    Entries may be ProjectSpecs or paths to project YAML files; files are
    loaded one at a time so a malformed file only fails its own entry.
    With ``continue_on_error`` a failing project is recorded in
    ``failures`` and the rest still build; otherwise the first error
    propagates.
    """
    batch = BatchResult()
    projects = list(projects)
    for index, source in enumerate(projects, start=1):
        key = str(source.output_dir) if isinstance(source, ProjectSpec) else str(source)
        try:
            project = source if isinstance(source, ProjectSpec) else load_project(source)
            key = str(project.output_dir)
            logger.info(f"[{index}/{len(projects)}] Building '{project.title}' -> {key}")
            batch.results[key] = generate_project(project, **options)
        except (DashbuildError, OSError) as e:
            if not continue_on_error:
                raise
            if isinstance(e, DashbuildError):
                batch.failures[key] = e.to_dict()
            else:
                batch.failures[key] = {"error_code": "OS_ERROR", "message": str(e), "context": {}}
            logger.error(f"Failed to build {key}: {e}")

    logger.info(
        f"Batch complete: {len(batch.results)} built, {len(batch.failures)} failed"
    )
    return batch
