"""Tests for configuration loading."""

import logging
from pathlib import Path

import pytest

from rookery.config import (
    CONFIG_ENV_VAR,
    DEPTH_ENV_VAR,
    EngineConfig,
    ProtocolConfig,
    SearchConfig,
    config_from_mapping,
    load_config,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.delenv(DEPTH_ENV_VAR, raising=False)


class TestDefaults:
    def test_no_file_gives_defaults(self) -> None:
        config = load_config()
        assert config == EngineConfig()
        assert config.search.default_depth == 4
        assert config.search.max_depth == 64
        assert config.log_level == "WARNING"
        assert config.protocol.engine_name.startswith("rookery")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"default_depth": 0},
            {"max_depth": 0},
            {"max_depth": 200},
            {"default_depth": 10, "max_depth": 5},
            {"move_overhead_ms": -1},
            {"default_moves_to_go": 0},
            {"tt_max_entries": 0},
            {"default_depth": "4"},
            {"default_depth": True},
        ],
    )
    def test_search_validation(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            SearchConfig(**kwargs)

    def test_protocol_validation(self) -> None:
        with pytest.raises(ValueError):
            ProtocolConfig(engine_name="  ")

    def test_log_level_validation(self) -> None:
        assert EngineConfig(log_level="debug").log_level == "debug"
        with pytest.raises(ValueError):
            EngineConfig(log_level="LOUD")


class TestLoadFile:
    def test_reads_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "rookery.toml"
        path.write_text(
            'log_level = "DEBUG"\n'
            "[search]\n"
            "default_depth = 6\n"
            "move_overhead_ms = 50\n"
            "[protocol]\n"
            'engine_name = "Sparrow"\n',
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.log_level == "DEBUG"
        assert config.search.default_depth == 6
        assert config.search.move_overhead_ms == 50
        assert config.search.max_depth == 64
        assert config.protocol.engine_name == "Sparrow"

    def test_path_from_environment(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = tmp_path / "env.toml"
        path.write_text("[search]\ndefault_depth = 3\n", encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert load_config().search.default_depth == 3

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.toml"
        path.write_text("[search\ndefault_depth = ", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid TOML"):
            load_config(path)

    def test_invalid_value(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text("[search]\ndefault_depth = 0\n", encoding="utf-8")
        with pytest.raises(ValueError, match="default_depth"):
            load_config(path)


class TestOverrides:
    def test_depth_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(DEPTH_ENV_VAR, "7")
        assert load_config().search.default_depth == 7

    def test_depth_override_validated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(DEPTH_ENV_VAR, "500")
        with pytest.raises(ValueError):
            load_config()

    def test_depth_override_not_integer(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(DEPTH_ENV_VAR, "deep")
        with pytest.raises(ValueError, match=DEPTH_ENV_VAR):
            load_config()


class TestMapping:
    def test_unknown_keys_warned(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="rookery.config"):
            config = config_from_mapping({"colour": "blue", "search": {"hash_mb": 16}})
        assert config == EngineConfig()
        assert "colour" in caplog.text
        assert "hash_mb" in caplog.text

    def test_section_must_be_table(self) -> None:
        with pytest.raises(ValueError, match="table"):
            config_from_mapping({"search": 5})
