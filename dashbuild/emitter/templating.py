"""Shared Jinja2 environment for markdown and code generation."""

from typing import Any

from jinja2 import BaseLoader, Environment


def quote_attr(value: Any) -> str:
    """Escape a value for a double-quoted Pandoc/HTML attribute."""
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def py_kwargs(options: dict[str, Any]) -> str:
    """Render a dict as sorted ``key=repr(value)`` keyword arguments."""
    return ", ".join(f"{key}={value!r}" for key, value in sorted(options.items()))


def make_environment() -> Environment:
    """Build the environment used for all generated text."""
    env = Environment(
        loader=BaseLoader(),
        autoescape=False,  # markdown and python source, escaped per field
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["quote_attr"] = quote_attr
    env.filters["pyrepr"] = repr
    env.filters["pykwargs"] = py_kwargs
    return env
