import sys
import types

import pytest

from quiz_bank import cli


@pytest.fixture(autouse=True)
def reset_metadata(monkeypatch):
    """Ensure metadata.version is controllable during tests."""

    def fake_version(name: str) -> str:
        assert name == "quiz-bank"
        return "0.0-test"

    monkeypatch.setattr(cli.metadata, "version", fake_version)
    yield


def _stub_module(monkeypatch, main):
    def fake_import(module_name: str):
        assert module_name == "quiz_bank.bank.cli"
        return types.SimpleNamespace(main=main)

    monkeypatch.setattr(cli, "import_module", fake_import)


def test_version_command_handles_missing_package(monkeypatch, capsys):
    monkeypatch.setattr(
        cli.metadata,
        "version",
        lambda name: (_ for _ in ()).throw(cli.metadata.PackageNotFoundError()),
    )
    code = cli.main(["version"])
    assert code == 0
    assert capsys.readouterr().out.strip() == "unknown"


def test_no_args_prints_usage_and_returns_error(capsys):
    code = cli.main([])
    captured = capsys.readouterr()
    assert code == 2
    assert "Usage: quizbank" in captured.out
    assert "Available commands:" in captured.out


@pytest.mark.parametrize("argv", [["--help"], ["-h"], ["help"]])
def test_help_shows_usage(argv, capsys):
    code = cli.main(argv)
    assert code == 0
    assert "Usage: quizbank" in capsys.readouterr().out


def test_list_outputs_command_table(capsys):
    code = cli.main(["list"])
    captured = capsys.readouterr()
    assert code == 0
    assert "Available commands:" in captured.out
    assert "init" in captured.out
    assert "bank" in captured.out


def test_help_known_command(capsys):
    code = cli.main(["help", "bank"])
    assert code == 0
    assert "Run `quizbank bank --help`" in capsys.readouterr().out


@pytest.mark.parametrize(
    "argv", [["help", "does-not-exist"], ["does-not-exist"]]
)
def test_unknown_command_errors(argv, capsys):
    code = cli.main(argv)
    captured = capsys.readouterr()
    assert code == 2
    assert "Unknown command" in captured.err
    assert "Available commands:" in captured.err


@pytest.mark.parametrize("flag", ["version", "--version", "-V"])
def test_version(flag, capsys):
    code = cli.main([flag])
    assert code == 0
    assert capsys.readouterr().out.strip() == "0.0-test"


def test_dispatch_invokes_module_main_with_passthrough(monkeypatch):
    before = list(sys.argv)
    captured: dict[str, list[str]] = {}

    def stub_main(argv):
        captured["argv"] = list(argv)
        captured["sys_argv"] = list(sys.argv)
        return 7

    _stub_module(monkeypatch, stub_main)
    code = cli.main(["bank", "topics", "--verbose"])
    assert code == 7
    assert captured["argv"] == ["topics", "--verbose"]
    assert captured["sys_argv"] == ["quizbank bank", "topics", "--verbose"]
    assert list(sys.argv) == before


def test_dispatch_supports_main_without_parameters(monkeypatch):
    called = {"count": 0}

    def stub_main():
        called["count"] += 1
        assert sys.argv[0] == "quizbank bank"

    _stub_module(monkeypatch, stub_main)
    assert cli.main(["bank"]) == 0
    assert called["count"] == 1


@pytest.mark.parametrize(
    "exit_code, expected", [(5, 5), (None, 0), ("boom", 1)]
)
def test_dispatch_normalizes_system_exit(
    monkeypatch, capsys, exit_code, expected
):
    def stub_main(argv):
        raise SystemExit(exit_code)

    _stub_module(monkeypatch, stub_main)
    assert cli.main(["bank"]) == expected
    if isinstance(exit_code, str):
        assert capsys.readouterr().err.strip() == "boom"


def test_dispatch_normalizes_non_int_return(monkeypatch):
    _stub_module(monkeypatch, lambda argv: "done")
    assert cli.main(["bank"]) == 0


def test_cli_runs_init_end_to_end(tmp_path, capsys):
    target = tmp_path / "workspace"

    code = cli.main(["init", "--path", str(target)])

    assert code == 0
    assert "Workspace ready" in capsys.readouterr().out
    for entry in ("config", "logs", "bank"):
        assert (target / entry).is_dir()


def test_cli_runs_bank_end_to_end(workspace, payloads, capsys):
    source = workspace.write_json(
        "gen.json", {"items": [payloads.mcq(question_id="q1")]}
    )

    assert cli.main(["bank", "ingest", str(source)]) == 0
    assert cli.main(["bank", "answer", "q1", "B"]) == 0

    record = workspace.bank_document()["records"][0]
    assert record["answer_state"]["is_correct"] is True


def test_bank_argparse_error_returns_exit_code(capsys):
    assert cli.main(["bank", "rate", "q1", "not-a-number"]) == 2
    assert "invalid int value" in capsys.readouterr().err
