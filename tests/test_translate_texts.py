"""Tests for the command-line front end."""

from __future__ import annotations

import argparse
import io
from typing import TYPE_CHECKING

import pytest

import translate_texts
from core.trans.interface import EngineAttributes, TransInterface
from models.config_models import Config

if TYPE_CHECKING:
    from pathlib import Path


class UpperEngine(TransInterface):
    @property
    def is_available(self) -> bool:
        return True

    @staticmethod
    def fetch_engine_name() -> str:
        return ""

    def initialize(self, config) -> None:
        _ = config
        self.engine_attributes = EngineAttributes(name="upper")

    async def translate(self, texts: list[str], target_language: str) -> list[str]:
        return [f"{text.upper()} ({target_language})" for text in texts]

    async def close(self) -> None:
        pass


@pytest.fixture
def config(tmp_path: Path) -> Config:
    cfg = Config()
    cfg.CACHE.DB_PATH = str(tmp_path / "cache.db")
    return cfg


def _args(**overrides: object) -> argparse.Namespace:
    values: dict[str, object] = {
        "target_language": None,
        "input": None,
        "config": translate_texts.CFG_FILE,
        "model": None,
        "priority": None,
        "clear_cache": None,
        "stats": False,
        "test_connection": False,
        "debug": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def test_parse_arguments() -> None:
    args: argparse.Namespace = translate_texts.parse_arguments(["French", "-i", "in.txt", "--priority", "2"])

    assert args.target_language == "French"
    assert args.input == "in.txt"
    assert args.priority == 2
    assert args.config == "batch_translator.ini"


def test_parse_arguments_requires_target_language() -> None:
    with pytest.raises(SystemExit) as exc_info:
        translate_texts.parse_arguments([])

    assert exc_info.value.code == 2


def test_parse_arguments_maintenance_without_language() -> None:
    args: argparse.Namespace = translate_texts.parse_arguments(["--clear-cache", "memory"])

    assert args.clear_cache == "memory"
    assert args.target_language is None


def test_read_texts_skips_blank_lines() -> None:
    assert translate_texts.read_texts(io.StringIO("Hello\n\n  \nWorld\n")) == ["Hello", "World"]


@pytest.mark.asyncio
async def test_run_cache_maintenance(config: Config, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code: int = await translate_texts.run(_args(clear_cache="all", stats=True), config)

    output: str = capsys.readouterr().out
    assert exit_code == 0
    assert "Cache cleared: all" in output
    assert "Hit rate" in output


@pytest.mark.asyncio
async def test_run_translates_stdin(
    monkeypatch: pytest.MonkeyPatch, config: Config, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(TransInterface, "registered", {"upper": UpperEngine})
    monkeypatch.setattr("sys.stdin", io.StringIO("hello\nworld\n"))
    config.API.ENGINE = "upper"

    exit_code: int = await translate_texts.run(_args(target_language="French"), config)

    captured = capsys.readouterr()
    assert exit_code == 0
    assert captured.out.splitlines() == ["HELLO (French)", "WORLD (French)"]
    assert "Batch 0 done (2/2)" in captured.err


@pytest.mark.asyncio
async def test_run_reports_engine_setup_failure(
    monkeypatch: pytest.MonkeyPatch, config: Config, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(TransInterface, "registered", {})
    config.API.ENGINE = "missing"

    exit_code: int = await translate_texts.run(_args(target_language="French"), config)

    assert exit_code == 1
    assert "Unknown translation engine" in capsys.readouterr().err


def test_main_reports_missing_configuration(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code: int = translate_texts.main(["French", "--config", str(tmp_path / "missing.ini")])

    assert exit_code == 1
    assert "Failed to load configuration file" in capsys.readouterr().err
