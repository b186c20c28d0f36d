"""Tests for the exception hierarchy."""

from dashbuild.errors import (
    ConfigError,
    DashbuildError,
    ExternalToolError,
    UnboundFilterError,
    UnsupportedBlockError,
)


def test_codes_and_str():
    """Test each error carries its code and formats as code: message."""
    assert str(ConfigError("bad")) == "CONFIG_ERROR: bad"
    assert UnboundFilterError("x").code == "UNBOUND_FILTER"
    assert isinstance(ConfigError("bad"), DashbuildError)


def test_unsupported_block_context():
    """Test unsupported block errors name the type."""
    err = UnsupportedBlockError("sparkline", context={"block_id": "s"})
    assert err.block_type == "sparkline"
    assert err.to_dict()["context"] == {"block_type": "sparkline", "block_id": "s"}
    assert "sparkline" in err.message


def test_external_tool_error_carries_output():
    """Test captured output is kept on the error."""
    err = ExternalToolError("failed", returncode=2, stdout="out", stderr="err")
    data = err.to_dict()
    assert data["error_code"] == "EXTERNAL_TOOL_ERROR"
    assert (data["stdout"], data["stderr"]) == ("out", "err")
    assert data["context"]["returncode"] == 2
