import pytest

from dune_analytics_mcp.config import DEFAULT_BASE_URL, DuneSettings


def test_missing_api_key_is_rejected():
    with pytest.raises(ValueError, match="DUNE_API_KEY"):
        DuneSettings.from_env({})


def test_empty_api_key_is_rejected():
    with pytest.raises(ValueError):
        DuneSettings.from_env({"DUNE_API_KEY": ""})


def test_defaults():
    settings = DuneSettings.from_env({"DUNE_API_KEY": "abc"})

    assert settings.api_key == "abc"
    assert settings.base_url == DEFAULT_BASE_URL
    assert settings.debug is False
    assert settings.timeout == 300.0
    assert settings.poll_interval == 5.0


def test_base_url_override_strips_trailing_slash():
    settings = DuneSettings.from_env(
        {"DUNE_API_KEY": "abc", "DUNE_BASE_URL": "https://example.com/api/v1/"}
    )
    assert settings.base_url == "https://example.com/api/v1"


def test_base_url_alias():
    settings = DuneSettings.from_env(
        {"DUNE_API_KEY": "abc", "BASE_URL": "https://proxy.local/v1"}
    )
    assert settings.base_url == "https://proxy.local/v1"


@pytest.mark.parametrize("value,expected", [
    ("1", True),
    ("true", True),
    ("Yes", True),
    ("0", False),
    ("", False),
])
def test_debug_flag(value, expected):
    settings = DuneSettings.from_env({"DUNE_API_KEY": "abc", "DUNE_MCP_DEBUG": value})
    assert settings.debug is expected


def test_headers_carry_api_key():
    assert DuneSettings(api_key="k").headers == {"X-Dune-API-Key": "k"}
