"""Tests for the gendetect command-line interface."""

import argparse
import json
from unittest.mock import MagicMock, patch

import pytest
import yaml

from gendetect.cli import (
    CLIError,
    build_config_from_args,
    get_roots,
    load_configuration,
    main,
    parse_arguments,
    setup_logging,
)
from gendetect.core.constants import GENDETECT_VERSION
from gendetect.infrastructure import config_manager as config_module


@pytest.fixture(autouse=True)
def no_standard_config_files(temp_dir):
    """Keep /etc and ~ configuration out of CLI tests."""
    missing = str(temp_dir / "does-not-exist.yaml")
    with patch.object(config_module, "SYSTEM_CONFIG_PATH", missing), patch.object(
        config_module, "USER_CONFIG_PATH", missing
    ):
        yield


class TestParseArguments:
    """Tests for parse_arguments."""

    def test_check(self, workspace):
        args = parse_arguments(["check", "a.ts", "b.ts", "--root", str(workspace)])
        assert args.command == "check"
        assert args.paths == ["a.ts", "b.ts"]
        assert get_roots(args) == [str(workspace)]

    def test_list(self, workspace):
        args = parse_arguments(["list", str(workspace)])
        assert args.command == "list"
        assert args.root == str(workspace)

    def test_watch_multiple_roots(self, workspace):
        args = parse_arguments(["watch", str(workspace), str(workspace / "src"), "--settings", "s.json"])
        assert get_roots(args) == [str(workspace), str(workspace / "src")]
        assert args.settings == "s.json"
        assert args.initial_scan is True

    def test_watch_no_initial_scan(self, workspace):
        args = parse_arguments(["watch", str(workspace), "--no-initial-scan"])
        assert args.initial_scan is False

    def test_global_options(self, workspace, config_file):
        args = parse_arguments(
            ["--config", str(config_file), "--debug", "--log-file", "x.log", "list", str(workspace)]
        )
        assert args.config == str(config_file)
        assert args.debug is True
        assert args.log_file == "x.log"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_arguments([])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_arguments(["--version"])
        assert exc_info.value.code == 0
        assert GENDETECT_VERSION in capsys.readouterr().out

    def test_missing_root(self, temp_dir):
        with pytest.raises(CLIError, match="does not exist"):
            parse_arguments(["list", str(temp_dir / "nope")])

    def test_root_is_file(self, temp_dir):
        path = temp_dir / "file.txt"
        path.write_text("x")
        with pytest.raises(CLIError, match="not a directory"):
            parse_arguments(["list", str(path)])

    def test_missing_config_file(self, workspace, temp_dir):
        with pytest.raises(CLIError, match="Configuration file does not exist"):
            parse_arguments(["--config", str(temp_dir / "none.yaml"), "list", str(workspace)])


class TestConfiguration:
    """Tests for configuration assembly."""

    def test_build_config_from_args(self):
        args = argparse.Namespace(debug=True, log_file="/tmp/g.log")
        assert build_config_from_args(args) == {"logging": {"level": "DEBUG", "file": "/tmp/g.log"}}

    def test_build_config_from_args_empty(self):
        assert build_config_from_args(argparse.Namespace(debug=False, log_file=None)) == {}

    def test_load_configuration_reads_project_and_config(self, workspace, temp_dir):
        with open(workspace / ".gendetect.yaml", "w") as f:
            yaml.safe_dump({"autodetectGenerated": {"badge": "P", "maxSearchLines": 3}}, f)
        explicit = temp_dir / "explicit.yaml"
        with open(explicit, "w") as f:
            yaml.safe_dump({"autodetectGenerated": {"maxSearchLines": 7}}, f)

        args = parse_arguments(["--config", str(explicit), "list", str(workspace)])
        config = load_configuration(args)

        # Project file sits above the explicit (user-level) file
        assert config.get("autodetectGenerated.badge") == "P"
        assert config.get("autodetectGenerated.maxSearchLines") == 3

    def test_explicit_config_outranks_user_file(self, workspace, temp_dir):
        user = temp_dir / "user.yaml"
        with open(user, "w") as f:
            yaml.safe_dump({"autodetectGenerated": {"badge": "U", "maxSearchLines": 2}}, f)
        explicit = temp_dir / "explicit.yaml"
        with open(explicit, "w") as f:
            yaml.safe_dump({"autodetectGenerated": {"maxSearchLines": 7}}, f)

        args = parse_arguments(["--config", str(explicit), "list", str(workspace)])
        with patch.object(config_module, "USER_CONFIG_PATH", str(user)):
            config = load_configuration(args)

        assert config.get("autodetectGenerated.maxSearchLines") == 7
        assert config.get("autodetectGenerated.badge") == "U"
        assert len(config.get_loaded_files()) == 2

    def test_load_configuration_bad_file(self, workspace, temp_dir):
        broken = temp_dir / "broken.yaml"
        broken.write_text("{oops")
        args = parse_arguments(["--config", str(broken), "list", str(workspace)])
        with pytest.raises(CLIError, match="Failed to load"):
            load_configuration(args)

    def test_setup_logging_debug(self, workspace):
        args = parse_arguments(["--debug", "list", str(workspace)])
        logger = setup_logging(args, load_configuration(args))
        assert logger.is_enabled_for("DEBUG")

    def test_setup_logging_bad_level(self, workspace, monkeypatch):
        monkeypatch.setenv("GENDETECT_LOG_LEVEL", "LOUD")
        args = parse_arguments(["list", str(workspace)])
        with pytest.raises(CLIError, match="Unknown log level"):
            setup_logging(args, load_configuration(args))


class TestCommands:
    """Tests for the one-shot commands through main()."""

    def test_check(self, workspace, config_file, capsys):
        code = main(
            [
                "--config",
                str(config_file),
                "check",
                str(workspace / "src" / "client.ts"),
                str(workspace / "src" / "util.ts"),
                "--root",
                str(workspace),
            ]
        )
        out = capsys.readouterr().out
        assert code == 0
        assert f"{workspace / 'src' / 'client.ts'}: generated (content: @generated)" in out
        assert f"{workspace / 'src' / 'util.ts'}: source" in out

    def test_list(self, workspace, config_file, capsys):
        code = main(["--config", str(config_file), "list", str(workspace)])
        lines = capsys.readouterr().out.splitlines()
        assert code == 0
        # late.py is past the 5-line window; .git is never walked
        assert lines == ["docs/notes.md", "src/client.ts"]

    def test_list_with_exclusions(self, workspace, temp_dir, capsys):
        config_path = temp_dir / "exclude.yaml"
        with open(config_path, "w") as f:
            yaml.safe_dump(
                {
                    "autodetectGenerated": {
                        "regexPatterns": ["@generated", "autogenerated"],
                        "gitAttributes": [],
                        "excludePatterns": ["docs/*"],
                    }
                },
                f,
            )
        main(["--config", str(config_path), "list", str(workspace)])
        assert capsys.readouterr().out.splitlines() == ["src/client.ts"]

    def test_sync_readonly(self, workspace, config_file, temp_dir, capsys):
        settings = temp_dir / "settings.json"
        settings.write_text(json.dumps({"editor.tabSize": 4}))

        code = main(["--config", str(config_file), "sync-readonly", str(workspace), "--settings", str(settings)])

        assert code == 0
        data = json.loads(settings.read_text())
        assert data == {
            "editor.tabSize": 4,
            "files.readonlyInclude": {"docs/notes.md": True, "src/client.ts": True},
        }
        assert "2 generated file(s)" in capsys.readouterr().out

    def test_sync_readonly_default_settings_path(self, workspace, config_file):
        assert main(["--config", str(config_file), "sync-readonly", str(workspace)]) == 0
        assert (workspace / ".vscode" / "settings.json").exists()

    def test_sync_readonly_unparseable_settings(self, workspace, config_file, temp_dir, capsys):
        settings = temp_dir / "settings.json"
        settings.write_text("{broken")

        code = main(["--config", str(config_file), "sync-readonly", str(workspace), "--settings", str(settings)])

        assert code == 1
        assert "Error:" in capsys.readouterr().err

    def test_validate_ok(self, config_file, capsys):
        assert main(["--config", str(config_file), "validate"]) == 0
        assert "Configuration OK" in capsys.readouterr().out

    def test_validate_invalid(self, temp_dir, capsys):
        bad = temp_dir / "bad.yaml"
        with open(bad, "w") as f:
            yaml.safe_dump({"autodetectGenerated": {"regexPatterns": ["("]}}, f)

        assert main(["--config", str(bad), "validate"]) == 1
        assert "Invalid configuration" in capsys.readouterr().err

    def test_watch_hands_off(self, workspace):
        with patch("gendetect.main.run_gendetect", return_value=0) as mock_run:
            assert main(["watch", str(workspace)]) == 0
        mock_run.assert_called_once()

    def test_cli_error_exit_code(self, temp_dir, capsys):
        assert main(["list", str(temp_dir / "missing")]) == 1
        assert "Error: Root directory does not exist" in capsys.readouterr().err

    def test_keyboard_interrupt(self, workspace):
        with patch.dict("gendetect.cli.COMMANDS", {"list": MagicMock(side_effect=KeyboardInterrupt)}):
            assert main(["list", str(workspace)]) == 130

    def test_unexpected_error(self, workspace, capsys):
        with patch("gendetect.cli.load_configuration", side_effect=RuntimeError("kaboom")):
            assert main(["list", str(workspace)]) == 1
        assert "Unexpected error: kaboom" in capsys.readouterr().err
