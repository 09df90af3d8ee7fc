# tests/test_config.py

import os

import pytest

from core import load_env
from core import config as config_mod
from core.config import get_config, load_config, parse_address, reset_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in config_mod._ENV_MAP:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


class TestParseAddress:

    def test_forms(self):
        assert parse_address(0x401000) == 0x401000
        assert parse_address("0x401000") == 0x401000
        assert parse_address("0X10") == 16
        assert parse_address(" 4096 ") == 4096

    def test_garbage(self):
        with pytest.raises(ValueError):
            parse_address("main")


class TestLoadConfig:

    def test_defaults_without_file(self, tmp_path):
        config = load_config(str(tmp_path / "missing.yml"))
        assert config["decoder"] == {"backend": "capstone", "arch": "x86", "mode": "64"}
        assert config["graph"]["base_address"] == 0
        assert config["render"]["taken_color"] == "blue"

    def test_yaml_merges_over_defaults(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text(
            "decoder:\n"
            "  mode: 32\n"
            "graph:\n"
            "  base_address: '0x401000'\n"
            "render:\n"
            "  fallthrough_color: black\n"
        )
        config = load_config(str(path))
        assert config["decoder"]["mode"] == "32"
        assert config["decoder"]["backend"] == "capstone"
        assert config["graph"]["base_address"] == 0x401000
        assert config["render"]["fallthrough_color"] == "black"
        assert config["render"]["not_taken_color"] == "red"

    def test_env_beats_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yml"
        path.write_text("decoder:\n  backend: capstone\n")
        monkeypatch.setenv("CFG_DECODER", "r2")
        monkeypatch.setenv("CFG_BASE_ADDRESS", "0x2000")
        monkeypatch.setenv("NEO4J_URI", "bolt://db:7687")
        config = load_config(str(path))
        assert config["decoder"]["backend"] == "r2"
        assert config["graph"]["base_address"] == 0x2000
        assert config["neo4j"]["uri"] == "bolt://db:7687"

    def test_bad_env_address_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CFG_BASE_ADDRESS", "nowhere")
        config = load_config(str(tmp_path / "missing.yml"))
        assert config["graph"]["base_address"] == 0

    def test_unreadable_yaml(self, tmp_path, capsys):
        path = tmp_path / "config.yml"
        path.write_text("decoder: [unclosed\n")
        config = load_config(str(path))
        assert config["decoder"]["backend"] == "capstone"
        assert "[Config]" in capsys.readouterr().out

    def test_get_config_is_cached(self, tmp_path):
        path = str(tmp_path / "missing.yml")
        assert get_config(path) is get_config(path)
        first = get_config(path)
        reset_config()
        assert get_config(path) is not first


class TestLoadEnv:

    def test_reads_dotenv_without_overriding(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text(
            "# comment\n"
            "export CFG_ARCH=x86\n"
            "CFG_MODE='32'\n"
            "NEO4J_USER=already\n"
            "not a pair\n"
        )
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("NEO4J_USER", "kept")
        try:
            assert load_env() is True
            assert os.environ["CFG_ARCH"] == "x86"
            assert os.environ["CFG_MODE"] == "32"
            assert os.environ["NEO4J_USER"] == "kept"
        finally:
            os.environ.pop("CFG_ARCH", None)
            os.environ.pop("CFG_MODE", None)

    def test_missing_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_env("nothing-here.env") is False
