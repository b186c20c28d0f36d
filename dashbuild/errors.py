"""Exception hierarchy for dashbuild.

Every error carries a stable machine-readable ``code``, a human-readable
message and a structured ``context`` dict so batch builds can report
per-project failures uniformly.
"""

from typing import Any, Mapping, Optional


class DashbuildError(Exception):
    """Base exception for all dashbuild errors."""

    __slots__ = ("code", "message", "context")

    def __init__(
        self,
        code: str,
        message: str,
        *,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.context = dict(context or {})

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Return a log-safe dictionary representation of the error."""
        return {
            "error_code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ConfigError(DashbuildError):
    """Raised for a malformed spec: bad tab path, bad block fields, duplicates."""

    def __init__(
        self, message: str, *, context: Optional[Mapping[str, Any]] = None
    ) -> None:
        super().__init__("CONFIG_ERROR", message, context=context)


class UnsupportedBlockError(DashbuildError):
    """Raised when a block's type has no registered renderer."""

    __slots__ = ("block_type",)

    def __init__(
        self,
        block_type: str,
        message: Optional[str] = None,
        *,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.block_type = block_type
        ctx = {"block_type": block_type, **(context or {})}
        super().__init__(
            "UNSUPPORTED_BLOCK",
            message or f"No renderer registered for block type '{block_type}'",
            context=ctx,
        )


class UnboundFilterError(DashbuildError):
    """Raised when a filter or visibility rule references something unresolvable."""

    def __init__(
        self, message: str, *, context: Optional[Mapping[str, Any]] = None
    ) -> None:
        super().__init__("UNBOUND_FILTER", message, context=context)


class ExternalToolError(DashbuildError):
    """Raised when the external renderer fails. Carries its captured output."""

    __slots__ = ("returncode", "stdout", "stderr")

    def __init__(
        self,
        message: str,
        *,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        ctx = {"returncode": returncode, **(context or {})}
        super().__init__("EXTERNAL_TOOL_ERROR", message, context=ctx)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["stdout"] = self.stdout
        data["stderr"] = self.stderr
        return data
