"""Project writer.

Compiles every page, writes the Quarto project to disk and optionally
renders and opens it. Files are written only after all pages compiled,
so a spec error never leaves a half-written project behind.
"""

import hashlib
import json
import logging
import subprocess
import webbrowser
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Optional, Sequence, Union

from pydantic import BaseModel, Field

from ..blocks.registry import BlockRegistry, get_block_registry
from ..config import (
    ASSETS_DIR,
    DATA_DIR,
    FILTER_SCRIPTS_DIR,
    MANIFEST_FILENAME,
    QUARTO_BIN,
    RUNTIME_SCRIPT_NAME,
    SITE_CONFIG_FILENAME,
    STRICT_DEFAULT,
)
from ..errors import ConfigError, ExternalToolError
from ..navigation.builder import build_navigation
from ..specs.page import PageSpec
from ..specs.project import ProjectSpec, suggest
from .compiler import CompiledPage, compile_page
from .site_config import build_site_config, dump_site_config

logger = logging.getLogger(__name__)


class OpenMode(str, Enum):
    """What to open after rendering."""

    NONE = "none"
    BROWSER = "browser"
    VIEWER = "viewer"


class BuildResult(BaseModel):
    """Outcome of one project build."""

    title: str
    output_dir: str
    pages: list[str] = Field(default_factory=list, description="Page file names")
    written_files: list[str] = Field(default_factory=list)
    unchanged_files: list[str] = Field(default_factory=list)
    removed_files: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    rendered: bool = False
    opened: Optional[str] = None
    render_output: str = ""


def runtime_script() -> str:
    """Source of the shared client runtime."""
    return (
        resources.files("dashbuild")
        .joinpath(ASSETS_DIR)
        .joinpath(RUNTIME_SCRIPT_NAME)
        .read_text(encoding="utf-8")
    )


def _hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class ProjectWriter:
    """Writes a compiled project into its output directory."""

    def __init__(
        self,
        project: ProjectSpec,
        registry: Optional[BlockRegistry] = None,
        strict: bool = STRICT_DEFAULT,
        show_progress: bool = True,
    ):
        self.project = project
        self.registry = registry or get_block_registry()
        self.strict = strict
        self.show_progress = show_progress
        self.output_dir = Path(project.output_dir)

    def _progress(self, message: str) -> None:
        logger.log(logging.INFO if self.show_progress else logging.DEBUG, message)

    def select_pages(self, preview: Optional[Sequence[str]] = None) -> list[PageSpec]:
        """Pages to build; ``preview`` names match case-insensitively.

        Raises:
            ConfigError: If the project has no pages or a preview name is unknown.
        """
        pages = self.project.pages
        if not pages:
            raise ConfigError(f"Project '{self.project.title}' has no pages")
        if not preview:
            return pages

        by_lower = {page.name.lower(): page for page in pages}
        selected = []
        for name in preview:
            page = by_lower.get(name.lower())
            if page is None:
                raise ConfigError(
                    f"Preview page '{name}' not found.{suggest(name, [p.name for p in pages])}",
                    context={"available": [p.name for p in pages]},
                )
            if page not in selected:
                selected.append(page)
        return [page for page in pages if page in selected]

    def compile(self, preview: Optional[Sequence[str]] = None) -> list[CompiledPage]:
        """Compile the selected pages without writing anything."""
        pages = self.select_pages(preview)
        datasets = self.project.datasets
        compiled = []
        for index, page in enumerate(pages, start=1):
            self._progress(f"[{index}/{len(pages)}] Compiling page '{page.name}'")
            compiled.append(
                compile_page(
                    page,
                    datasets,
                    registry=self.registry,
                    strict=self.strict,
                    placement=self.project.ungrouped_placement,
                )
            )
        return compiled

    def files(
        self, compiled: Sequence[CompiledPage], preview: Optional[Sequence[str]] = None
    ) -> dict[str, str]:
        """Relative path -> content for every generated file."""
        pages = self.select_pages(preview)
        navigation = build_navigation(self.project, pages)
        config = build_site_config(self.project, navigation, compiled)

        files: dict[str, str] = {SITE_CONFIG_FILENAME: dump_site_config(config)}
        datasets = self.project.datasets
        used: list[str] = []
        for page in compiled:
            files[page.filename] = page.source
            if page.filter_script is not None:
                files[f"{FILTER_SCRIPTS_DIR}/{page.slug}.js"] = page.filter_script
            used.extend(name for name in page.datasets if name not in used)
        for name in used:
            files[f"{DATA_DIR}/{name}.csv"] = datasets[name].to_csv(index=False)
        if any(page.filter_script for page in compiled):
            files[f"{ASSETS_DIR}/{RUNTIME_SCRIPT_NAME}"] = runtime_script()
        return files

    def write(
        self,
        compiled: Sequence[CompiledPage],
        incremental: bool = False,
        preview: Optional[Sequence[str]] = None,
    ) -> BuildResult:
        """Write all files; in incremental mode skip files whose hash is unchanged.

        Full builds delete files recorded in the previous manifest that are
        no longer generated. Preview builds keep them, and keep their
        manifest entries, so the next full build can still clean up.
        """
        files = self.files(compiled, preview)
        manifest_path = self.output_dir / MANIFEST_FILENAME
        previous = self._read_manifest(manifest_path)

        result = BuildResult(
            title=self.project.title,
            output_dir=str(self.output_dir),
            pages=[page.filename for page in compiled],
            warnings=[w for page in compiled for w in page.warnings],
        )
        hashes: dict[str, str] = dict(previous) if preview else {}
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for relative, content in files.items():
            digest = _hash(content)
            hashes[relative] = digest
            target = self.output_dir / relative
            if incremental and previous.get(relative) == digest and target.exists():
                result.unchanged_files.append(relative)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
            result.written_files.append(relative)

        if not preview:
            for relative in sorted(set(previous) - set(files)):
                stale = self.output_dir / relative
                if self.output_dir.resolve() not in stale.resolve().parents:
                    logger.warning(f"Ignoring manifest entry outside the project: {relative}")
                    continue
                if stale.is_file():
                    stale.unlink()
                    result.removed_files.append(relative)
                    logger.debug(f"Removed stale file {stale}")

        manifest_path.write_text(
            json.dumps({"files": hashes}, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        self._progress(
            f"Wrote {len(result.written_files)} files to {self.output_dir}"
            + (f" ({len(result.unchanged_files)} unchanged)" if incremental else "")
            + (f", removed {len(result.removed_files)} stale" if result.removed_files else "")
        )
        return result

    def _read_manifest(self, path: Path) -> dict[str, str]:
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable manifest {path}: {e}")
            return {}
        return dict(data.get("files", {}))

    def render(self) -> str:
        """Run ``quarto render`` in the output directory.

        Returns:
            Captured renderer output.

        Raises:
            ExternalToolError: If Quarto is missing or exits non-zero.
        """
        cmd = [QUARTO_BIN, "render"]
        self._progress(f"Rendering with {' '.join(cmd)} in {self.output_dir}")
        try:
            completed = subprocess.run(
                cmd,
                cwd=self.output_dir,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise ExternalToolError(
                f"Quarto CLI not found ('{QUARTO_BIN}'). Install Quarto or set "
                "DASHBUILD_QUARTO_BIN.",
                context={"output_dir": str(self.output_dir)},
            ) from e

        if completed.returncode != 0:
            raise ExternalToolError(
                f"quarto render failed with exit code {completed.returncode}",
                returncode=completed.returncode,
                stdout=completed.stdout,
                stderr=completed.stderr,
                context={"output_dir": str(self.output_dir)},
            )
        return completed.stdout + completed.stderr

    def open(self, mode: OpenMode, compiled: Sequence[CompiledPage]) -> Optional[str]:
        """Open the rendered site; returns the opened URI if any."""
        if mode == OpenMode.NONE or not compiled:
            return None
        first = next((p for p in compiled if p.filename == "index.qmd"), compiled[0])
        html = self.output_dir / self.project.publish_dir / (Path(first.filename).stem + ".html")
        if not html.exists():
            logger.warning(f"Nothing to open: {html} does not exist (render first)")
            return None
        uri = html.resolve().as_uri()
        webbrowser.open(uri, new=2 if mode == OpenMode.BROWSER else 0)
        return uri


def generate_project(
    project: ProjectSpec,
    render: bool = False,
    open: Union[str, OpenMode] = OpenMode.NONE,
    show_progress: bool = True,
    strict: bool = STRICT_DEFAULT,
    incremental: bool = False,
    preview: Optional[Sequence[str]] = None,
    registry: Optional[BlockRegistry] = None,
) -> BuildResult:
    """Compile and write a project, then optionally render and open it.

    Args:
        project: The project spec.
        render: Run ``quarto render`` after writing.
        open: "none", "browser" (new tab) or "viewer" (reuse window).
        show_progress: Log progress at INFO instead of DEBUG.
        strict: Abort on unsupported block types.
        incremental: Skip rewriting files whose content is unchanged.
        preview: Only build these pages (names, case-insensitive).
        registry: Block registry (default: global singleton).

    Raises:
        ConfigError: Malformed spec; nothing is written.
        UnboundFilterError: Filter mismatch; nothing is written.
        UnsupportedBlockError: Unknown block type in strict mode.
        ExternalToolError: Rendering failed; written files are kept.
    """
    try:
        mode = OpenMode(open)
    except ValueError as e:
        raise ConfigError(
            f"Unknown open mode '{open}'. Available: "
            f"{', '.join(m.value for m in OpenMode)}"
        ) from e

    writer = ProjectWriter(
        project, registry=registry, strict=strict, show_progress=show_progress
    )
    compiled = writer.compile(preview)
    result = writer.write(compiled, incremental=incremental, preview=preview)

    if render:
        result.render_output = writer.render()
        result.rendered = True
    result.opened = writer.open(mode, compiled)

    return result
