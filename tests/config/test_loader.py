from __future__ import annotations

from pathlib import Path
from textwrap import dedent

import pytest

from config.loader import (
    ConfigFileNotFoundError,
    ConfigFormatError,
    ConfigLoader,
    ConfigTypeError,
    ConfigValueError,
)

SAMPLE_INI: Path = Path(__file__).resolve().parents[2] / "batch_translator.ini"


def _write_ini(tmp_path: Path, content: str) -> Path:
    ini_path: Path = tmp_path / "batch_translator.ini"
    ini_path.write_text(dedent(content), encoding="utf-8")
    return ini_path


def test_config_loader_raises_for_missing_file(tmp_path: Path) -> None:
    ini_path: Path = tmp_path / "missing.ini"
    with pytest.raises(ConfigFileNotFoundError, match="not found"):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_sample_configuration_loads() -> None:
    loader = ConfigLoader(config_filename=str(SAMPLE_INI), script_name="translate_texts.py")

    config = loader.config
    assert config.GENERAL.SCRIPT_NAME == "translate_texts.py"
    assert config.GENERAL.DEBUG is False
    assert config.API.ENGINE == "openrouter"
    assert config.API.PROVIDER == ""
    assert config.API.TIMEOUT == 30.0
    assert config.BATCH.BATCH_SIZE == 10
    assert config.RETRY.BACKOFF == "exponential"
    assert config.CACHE.MEMORY_TTL == 3600.0
    assert config.BUDGET.MAX_API_CALLS == 500


def test_missing_keys_keep_defaults_and_values_are_typed(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [API]
        MODEL = "openai/gpt-4o-mini"
        TIMEOUT = 45

        [BATCH]
        batch_size = "20"
        """,
    )

    loader = ConfigLoader(config_filename=str(ini_path), script_name="test")

    assert loader.config.API.MODEL == "openai/gpt-4o-mini"
    assert loader.config.API.TIMEOUT == 45.0
    assert isinstance(loader.config.API.TIMEOUT, float)
    assert loader.config.BATCH.BATCH_SIZE == 20
    assert loader.config.BATCH.MAX_BATCH_LENGTH == 5000
    assert loader.config.RETRY.MAX_RETRIES == 3


def test_config_loader_overrides(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [GENERAL]
        DEBUG = no
        LOG_LEVEL = warning

        [API]
        MODEL = base/model
        """,
    )

    loader = ConfigLoader(config_filename=str(ini_path), script_name="test", model="override/model", debug=True)

    assert loader.config.API.MODEL == "override/model"
    assert loader.config.GENERAL.DEBUG is True
    assert loader.config.GENERAL.LOG_LEVEL == "DEBUG"


def test_choices_are_normalized(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [GENERAL]
        LOG_LEVEL = warning

        [RETRY]
        BACKOFF = LINEAR
        """,
    )

    loader = ConfigLoader(config_filename=str(ini_path), script_name="test")

    assert loader.config.GENERAL.LOG_LEVEL == "WARNING"
    assert loader.config.RETRY.BACKOFF == "linear"


@pytest.mark.parametrize(
    ("section", "content"),
    [
        ("RETRY", "BACKOFF = random"),
        ("GENERAL", "LOG_LEVEL = verbose"),
        ("BATCH", "BATCH_SIZE = 0"),
        ("API", "TIMEOUT = 0"),
        ("RETRY", "MAX_RETRIES = -1"),
        ("BATCH", "BATCH_SIZE = ten"),
    ],
)
def test_invalid_values_raise(tmp_path: Path, section: str, content: str) -> None:
    ini_path: Path = _write_ini(tmp_path, f"[{section}]\n{content}\n")

    with pytest.raises(ConfigValueError):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_budget_bounds_must_be_ordered(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(
        tmp_path,
        """
        [BUDGET]
        MIN_API_CALLS = 100
        MAX_API_CALLS = 50
        """,
    )

    with pytest.raises(ConfigValueError, match="MIN_API_CALLS"):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_quoted_non_string_literal_is_a_type_error(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(tmp_path, '[API]\nMODEL = "a", "b"\n')

    with pytest.raises(ConfigTypeError):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_malformed_literal_is_a_format_error(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(tmp_path, '[API]\nMODEL = "a"b"\n')

    with pytest.raises(ConfigFormatError) as exc_info:
        ConfigLoader(config_filename=str(ini_path), script_name="test")
    assert type(exc_info.value) is ConfigFormatError


def test_unparsable_file_is_a_format_error(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(tmp_path, "BATCH_SIZE = 10\n")

    with pytest.raises(ConfigFormatError, match="Failed to parse"):
        ConfigLoader(config_filename=str(ini_path), script_name="test")


def test_unknown_engine_is_kept_with_warning(tmp_path: Path) -> None:
    ini_path: Path = _write_ini(tmp_path, "[API]\nENGINE = other\n")

    loader = ConfigLoader(config_filename=str(ini_path), script_name="test")

    assert loader.config.API.ENGINE == "other"
