# tests/test_cli.py

import pytest

from core.config import reset_config
from ui import cli

CMP_JE = bytes.fromhex("4839d8" "7402" "89c8" "89c8")


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    for name in ("CFG_DECODER", "CFG_ARCH", "CFG_MODE", "CFG_BASE_ADDRESS"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def code_file(tmp_path):
    path = tmp_path / "code.bin"
    path.write_bytes(CMP_JE)
    return path


class TestOneShot:

    def test_dump_and_dot(self, code_file, tmp_path, capsys):
        out = tmp_path / "cfg.dot"
        rc = cli.main(["-i", str(code_file), "-o", str(out), "-b", "0x1000"])
        assert rc == 0

        err = capsys.readouterr().err
        assert err.index("> addr: 0x1000") < err.index("> addr: 0x1005") < err.index("> addr: 0x1007")
        assert "> instruction count: 2" in err

        dot = out.read_text()
        assert dot.startswith("digraph disassembly {")
        assert '"0x1000" -> "0x1007" [color=blue]' in dot

    def test_no_output_file(self, code_file, capsys):
        assert cli.run_once(str(code_file), base_address=0x1000) == 0
        assert "> size: 5" in capsys.readouterr().err

    def test_failed_construction(self, tmp_path, capsys):
        path = tmp_path / "bad.bin"
        path.write_bytes(bytes.fromhex("eb10"))
        assert cli.main(["-i", str(path)]) == 1
        assert "[CFG] Construction failed" in capsys.readouterr().out

    def test_bad_configured_mode(self, code_file, monkeypatch, capsys):
        monkeypatch.setenv("CFG_MODE", "128")
        assert cli.main(["-i", str(code_file), "-b", "0x1000"]) == 0
        captured = capsys.readouterr()
        assert "unsupported x86 mode: 128" in captured.out
        assert "> addr: 0x1007" in captured.err

    def test_missing_input(self, tmp_path, capsys):
        assert cli.run_once(str(tmp_path / "nope.bin")) == 1
        assert "Cannot read" in capsys.readouterr().out


class TestRepl:

    def _drive(self, monkeypatch, lines):
        feed = iter(lines)
        monkeypatch.setattr("builtins.input", lambda prompt="": next(feed))

    def test_session(self, monkeypatch, code_file, tmp_path, capsys):
        dot = tmp_path / "out.dot"
        report = tmp_path / "out.json"
        self._drive(monkeypatch, [
            f"load {code_file} 0x1000",
            "blocks",
            "insns 0x1006",
            "edges 0x1000",
            "complexity",
            f"dot {dot}",
            f"export {report}",
            "frobnicate",
            "quit",
        ])
        cli.repl()
        out = capsys.readouterr().out

        assert "3 blocks, 4 instructions" in out
        assert "Total: 3 block(s)" in out
        assert "0x1005  mov" in out
        assert "0x1000 -> 0x1005  [branch_not_taken]" in out
        assert "0x1000 -> 0x1007  [branch_taken]" in out
        assert "Complexity (M):       2" in out
        assert "Unknown command: 'frobnicate'" in out
        assert dot.exists()
        assert report.exists()

    def test_commands_need_a_graph(self, monkeypatch, capsys):
        self._drive(monkeypatch, ["blocks", "walk", "exit"])
        cli.repl()
        assert capsys.readouterr().out.count("No graph loaded") == 2

    def test_base_from_command_line(self, monkeypatch, code_file, capsys):
        self._drive(monkeypatch, [f"load {code_file}", "quit"])
        cli.repl({"graph": None, "binary": None, "base": 0x1000})
        assert "at 0x1000" in capsys.readouterr().out

    def test_eof_ends_session(self, monkeypatch):
        def _eof(prompt=""):
            raise EOFError

        monkeypatch.setattr("builtins.input", _eof)
        cli.repl()
