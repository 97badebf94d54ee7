import json
import sys
import types

import pytest

from quizbook import cli


@pytest.fixture(autouse=True)
def fake_version(monkeypatch):
    def version(name: str) -> str:
        assert name == "quizbook"
        return "0.0-test"

    monkeypatch.setattr(cli.metadata, "version", version)


def test_version_command(capsys):
    assert cli.main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == "0.0-test"


def test_version_command_handles_missing_package(monkeypatch, capsys):
    def missing(name):
        raise cli.metadata.PackageNotFoundError(name)

    monkeypatch.setattr(cli.metadata, "version", missing)
    assert cli.main(["version"]) == 0
    assert capsys.readouterr().out.strip() == "unknown"


def test_no_args_prints_usage_and_returns_error(capsys):
    assert cli.main([]) == 2
    out = capsys.readouterr().out
    assert "Usage: quizbook" in out
    assert "Available commands:" in out


def test_list_outputs_command_table(capsys):
    assert cli.main(["list"]) == 0
    out = capsys.readouterr().out
    for name in ("init", "parse", "quiz", "errors"):
        assert name in out
    assert "(TUI)" in out


def test_help_known_and_unknown_command(capsys):
    assert cli.main(["help", "errors"]) == 0
    assert "Run `quizbook errors --help`" in capsys.readouterr().out

    assert cli.main(["help", "nope"]) == 2
    assert "Unknown command 'nope'" in capsys.readouterr().err


def test_unknown_command_returns_error(capsys):
    assert cli.main(["frobnicate"]) == 2
    assert "Unknown command 'frobnicate'" in capsys.readouterr().err


def test_dispatch_swaps_argv_and_restores_it(monkeypatch):
    seen = {}

    def stub_main(argv):
        seen["argv"] = list(argv)
        seen["prog"] = sys.argv[0]
        return 5

    monkeypatch.setattr(
        cli,
        "import_module",
        lambda name: types.SimpleNamespace(main=stub_main),
    )
    before = list(sys.argv)
    assert cli.main(["errors", "list", "--verbose"]) == 5
    assert seen == {"argv": ["list", "--verbose"], "prog": "quizbook errors"}
    assert sys.argv == before


def test_dispatch_normalizes_system_exit(monkeypatch, capsys):
    def exits(code):
        def stub_main(argv):
            raise SystemExit(code)

        return types.SimpleNamespace(main=stub_main)

    monkeypatch.setattr(cli, "import_module", lambda name: exits(None))
    assert cli.main(["init"]) == 0
    monkeypatch.setattr(cli, "import_module", lambda name: exits(3))
    assert cli.main(["init"]) == 3
    monkeypatch.setattr(cli, "import_module", lambda name: exits("bad"))
    assert cli.main(["init"]) == 1
    assert "bad" in capsys.readouterr().err


def test_parse_subcommand_emits_json(tmp_path, capsys):
    source = tmp_path / "paste.txt"
    source.write_text(
        "1. 2+2=? A.3 B.4 C.5 D.6 答案：B\n", encoding="utf-8"
    )
    assert cli.main(["parse", str(source), "--json"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    payload = json.loads(lines[0])
    assert payload["title"] == "2+2=?"
    assert payload["answer"] == "B"


def test_subcommand_help_exits_cleanly(capsys):
    assert cli.main(["parse", "--help"]) == 0
    assert "quizbook parse" in capsys.readouterr().out
