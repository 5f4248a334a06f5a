import pytest

from pdf_quizzer import cli


@pytest.fixture(autouse=True)
def reset_metadata(monkeypatch):
    """Ensure metadata.version is controllable during tests."""

    def fake_version(name: str) -> str:
        assert name == "pdf-quizzer"
        return "0.0-test"

    monkeypatch.setattr(cli.metadata, "version", fake_version)
    yield


def test_version_command(capsys):
    assert cli.main(["version"]) == 0
    assert capsys.readouterr().out.strip() == "0.0-test"
    assert cli.main(["--version"]) == 0


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
    assert "Usage: pdf-quizzer" in captured.out
    assert "Available commands:" in captured.out


def test_list_outputs_command_table(capsys):
    code = cli.main(["list"])
    out = capsys.readouterr().out
    assert code == 0
    for name in ("init", "take", "extract", "config"):
        assert name in out
    assert "(interactive)" in out


def test_help_known_and_unknown_command(capsys):
    assert cli.main(["help", "take"]) == 0
    assert "Run `pdf-quizzer take --help`" in capsys.readouterr().out

    assert cli.main(["help", "nope"]) == 2
    assert "Unknown command 'nope'." in capsys.readouterr().err


def test_unknown_command_returns_error(capsys):
    assert cli.main(["frobnicate"]) == 2
    assert "Unknown command 'frobnicate'." in capsys.readouterr().err


def test_dispatches_to_subcommand_and_normalizes_exit(monkeypatch, capsys):
    assert cli.main(["take", "--help"]) == 0
    assert "pdf-quizzer take" in capsys.readouterr().out

    assert cli.main(["extract"]) == 2
    assert "the following arguments are required" in capsys.readouterr().err


def test_config_command_routes_to_template_writer(tmp_path, capsys):
    target = tmp_path / "pdf_quizzer.toml"

    assert cli.main(["config", "init", "--path", str(target)]) == 0
    assert target.exists()
