from typer.testing import CliRunner

import formula_sync
import formula_sync.cli as cli
import formula_sync.constants as constants
from formula_sync.errors import NotFoundError

runner = CliRunner()


def test_cli_help_invocation():
    result = runner.invoke(cli.app, ["--help"])
    assert result.exit_code == 0
    assert "Usage:" in result.stdout
    assert "--repository" in result.stdout


def test_cli_version_flag():
    result = runner.invoke(cli.app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == f"formula_sync {formula_sync.__version__}"


def test_cli_passes_options_to_sync(monkeypatch):
    captured = {}

    def fake_handle_sync(args):
        captured["args"] = args
        return 0

    monkeypatch.setattr(cli, "handle_sync", fake_handle_sync)
    result = runner.invoke(
        cli.app,
        [
            "-r",
            "mona/hello",
            "--tap",
            "mona/homebrew-tap",
            "-f",
            "Formula/hello.rb",
            "--name",
            "hello",
            "-m",
            "Update hello",
            "--dry-run",
            "--skip-normalize",
            "-v",
        ],
    )
    assert result.exit_code == 0
    args = captured["args"]
    assert args.repository == "mona/hello"
    assert args.tap == "mona/homebrew-tap"
    assert args.formula == "Formula/hello.rb"
    assert args.name == "hello"
    assert args.message == "Update hello"
    assert args.dry_run and args.skip_normalize and args.verbose
    assert args.rubocop_config is None


def test_cli_reports_errors_with_exit_code_one(monkeypatch):
    def fake_handle_sync(args):
        raise NotFoundError("No releases found")

    monkeypatch.setattr(cli, "handle_sync", fake_handle_sync)
    result = runner.invoke(cli.app, ["-r", "mona/hello", "-t", "mona/tap", "-f", "hello.rb"])
    assert result.exit_code == constants.EXIT_CODE_FAILURE
    assert "error: No releases found" in result.output


def test_cli_without_token_fails(tmp_path, monkeypatch):
    monkeypatch.setenv("FORMULA_SYNC_CONFIG", str(tmp_path / "missing.toml"))
    result = runner.invoke(cli.app, ["-r", "mona/hello", "-t", "mona/tap", "-f", "hello.rb"])
    assert result.exit_code == constants.EXIT_CODE_FAILURE
    assert "GITHUB_TOKEN" in result.output


def test_main_returns_failure_on_usage_error():
    assert cli.main(["--no-such-option"]) == constants.EXIT_CODE_FAILURE


def test_main_reports_unknown_option_on_stderr(capsys):
    assert cli.main(["-r", "a/b", "--bogus"]) == constants.EXIT_CODE_FAILURE
    captured = capsys.readouterr()
    assert "--bogus" in captured.err
    assert captured.out == ""


def test_main_returns_zero_for_help(capsys):
    assert cli.main(["--help"]) == constants.EXIT_CODE_OK
    assert "--repository" in capsys.readouterr().out


def test_main_returns_zero_for_version(capsys):
    assert cli.main(["--version"]) == constants.EXIT_CODE_OK
    assert "formula_sync" in capsys.readouterr().out


def test_main_returns_failure_code_from_command(monkeypatch):
    def fake_handle_sync(args):
        raise NotFoundError("Tag v1 not found")

    monkeypatch.setattr(cli, "handle_sync", fake_handle_sync)
    assert cli.main(["-r", "a/b", "-t", "a/tap", "-f", "b.rb"]) == constants.EXIT_CODE_FAILURE


def test_main_returns_interrupt_code_on_keyboard_interrupt(monkeypatch):
    class FakeCommand:
        def main(self, *args, **kwargs):
            raise KeyboardInterrupt

    monkeypatch.setattr(cli.typer.main, "get_command", lambda _app: FakeCommand())
    assert cli.main(["--help"]) == constants.EXIT_CODE_INTERRUPT


def test_main_returns_interrupt_code_on_abort(monkeypatch):
    class FakeCommand:
        def main(self, *args, **kwargs):
            raise cli.typer.Abort()

    monkeypatch.setattr(cli.typer.main, "get_command", lambda _app: FakeCommand())
    assert cli.main(["--help"]) == constants.EXIT_CODE_INTERRUPT


def test_cli_verbose_from_environment(monkeypatch):
    captured = {}

    def fake_handle_sync(args):
        captured["verbose"] = args.verbose
        return 0

    monkeypatch.setattr(cli, "handle_sync", fake_handle_sync)
    result = runner.invoke(
        cli.app,
        ["-r", "a/b", "-t", "a/tap", "-f", "b.rb"],
        env={"FORMULA_SYNC_VERBOSE": "true"},
    )
    assert result.exit_code == 0
    assert captured["verbose"] is True
