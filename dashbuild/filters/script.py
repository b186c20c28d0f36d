"""Per-page filter payload scripts."""

import json

from .schemas import PageFilterSpec

RUNTIME_NAMESPACE = "dashbuild"


def build_filter_script(spec: PageFilterSpec) -> str:
    """JavaScript registering ``spec`` with the shared runtime."""
    payload = spec.to_json(indent=2)
    return (
        f"window.{RUNTIME_NAMESPACE} = window.{RUNTIME_NAMESPACE} || {{ pages: {{}} }};\n"
        f"window.{RUNTIME_NAMESPACE}.pages[{json.dumps(spec.page)}] = {payload};\n"
    )
