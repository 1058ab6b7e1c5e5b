"""Tests for the sopsfile CLI commands.

Commands run against the in-memory fake engine; manifests and state
files live in tmp_path.
"""

import json
import os
from unittest.mock import patch

import pytest
import yaml
from sopsfile.cli.apply import CREATE, DELETE, NOOP, REPLACE, apply_command, check_command
from sopsfile.cli.decrypt import decrypt_command
from sopsfile.cli.destroy import destroy_command
from sopsfile.cli.main import build_parser, main
from sopsfile.core.errors import ExitCode
from sopsfile.resources import load_state

AGE_RECIPIENT = "age1ql3z7hjy54pw3hyww5ayyfg7zqgvc7w3j2elw8zmrj2kg5sfn9aqmcac8p"


@pytest.fixture
def workspace(tmp_path):
    """Manifest writer plus paths for the state file and outputs."""

    class Workspace:
        manifest = tmp_path / "sopsfile.yaml"
        state = tmp_path / "state.json"

        def target(self, name):
            return tmp_path / "out" / name

        def write(self, *resources):
            self.manifest.write_text(yaml.safe_dump({"resources": list(resources)}))
            return str(self.manifest)

        def resource(self, name, **extra):
            entry = {
                "filename": str(self.target(name)),
                "encryption_type": "age",
                "age": {AGE_RECIPIENT: ""},
                "file_permission": "0600",
            }
            entry.update(extra)
            return entry

    return Workspace()


def _json_changes(capsys):
    out = capsys.readouterr().out
    return {c["filename"]: c for c in json.loads(out)["changes"]}


class TestApplyCommand:
    """Tests for apply_command()."""

    def test_creates_files_and_records_state(self, workspace, fake_engine):
        """First apply writes every file and records its identity."""
        manifest = workspace.write(workspace.resource("app.yaml", data={"db": {"password": "x"}}))

        code = apply_command(manifest, state_file=str(workspace.state), engine=fake_engine)

        assert code == ExitCode.SUCCESS
        assert workspace.target("app.yaml").exists()
        record = load_state(workspace.state).get(str(workspace.target("app.yaml")))
        assert record is not None
        assert len(record.id) == 40
        assert record.spec_digest

    def test_second_apply_is_noop(self, workspace, fake_engine, capsys):
        """Re-applying an unchanged manifest does not re-encrypt."""
        manifest = workspace.write(workspace.resource("app.yaml", content="a: 1\n"))
        apply_command(manifest, state_file=str(workspace.state), engine=fake_engine)
        capsys.readouterr()

        apply_command(manifest, state_file=str(workspace.state), output_format="json", engine=fake_engine)

        changes = _json_changes(capsys)
        assert changes[str(workspace.target("app.yaml"))]["action"] == NOOP
        assert len(fake_engine.encrypt_calls) == 1

    def test_attribute_change_replaces(self, workspace, fake_engine, capsys):
        """Changing a resource attribute replaces the file."""
        target = str(workspace.target("app.yaml"))
        apply_command(
            workspace.write(workspace.resource("app.yaml", content="a: 1\n")),
            state_file=str(workspace.state),
            engine=fake_engine,
        )
        first_id = load_state(workspace.state).identity(target)
        capsys.readouterr()

        apply_command(
            workspace.write(workspace.resource("app.yaml", content="a: 2\n")),
            state_file=str(workspace.state),
            output_format="json",
            engine=fake_engine,
        )

        change = _json_changes(capsys)[target]
        assert change["action"] == REPLACE
        assert change["reason"] == "attributes changed"
        assert load_state(workspace.state).identity(target) != first_id

    def test_missing_file_recreated(self, workspace, fake_engine, capsys):
        """A file removed out of band is created again."""
        target = workspace.target("app.yaml")
        manifest = workspace.write(workspace.resource("app.yaml", content="a: 1\n"))
        apply_command(manifest, state_file=str(workspace.state), engine=fake_engine)
        os.remove(target)
        capsys.readouterr()

        apply_command(manifest, state_file=str(workspace.state), output_format="json", engine=fake_engine)

        assert _json_changes(capsys)[str(target)]["action"] == CREATE
        assert target.exists()

    def test_orphans_deleted(self, workspace, fake_engine, capsys):
        """Resources dropped from the manifest are deleted."""
        keep = workspace.resource("keep.yaml", content="a: 1\n")
        drop = workspace.resource("drop.yaml", content="b: 1\n")
        apply_command(workspace.write(keep, drop), state_file=str(workspace.state), engine=fake_engine)
        capsys.readouterr()

        apply_command(
            workspace.write(keep),
            state_file=str(workspace.state),
            output_format="json",
            engine=fake_engine,
        )

        dropped = str(workspace.target("drop.yaml"))
        assert _json_changes(capsys)[dropped]["action"] == DELETE
        assert not workspace.target("drop.yaml").exists()
        assert load_state(workspace.state).get(dropped) is None

    def test_invalid_manifest_exit_code(self, workspace, fake_engine):
        """Test invalid manifest returns the validation exit code."""
        manifest = workspace.write(workspace.resource("notes.txt", content="x"))
        code = apply_command(manifest, state_file=str(workspace.state), engine=fake_engine)
        assert code == ExitCode.VALIDATION_ERROR
        assert not workspace.target("notes.txt").exists()

    def test_missing_manifest(self, workspace, fake_engine):
        """Test a missing manifest file is reported."""
        code = apply_command(
            str(workspace.manifest), state_file=str(workspace.state), engine=fake_engine
        )
        assert code == ExitCode.VALIDATION_ERROR


class TestCheckCommand:
    """Tests for check_command()."""

    def test_pending_changes_warn(self, workspace, fake_engine, capsys):
        """Test check warns about resources not yet applied."""
        manifest = workspace.write(workspace.resource("app.yaml", content="a: 1\n"))

        code = check_command(
            manifest, state_file=str(workspace.state), output_format="json", engine=fake_engine
        )

        assert code == ExitCode.WARNING
        assert _json_changes(capsys)[str(workspace.target("app.yaml"))]["action"] == CREATE
        assert not workspace.target("app.yaml").exists()
        assert fake_engine.encrypt_calls == []

    def test_up_to_date(self, workspace, fake_engine):
        """Test check succeeds after apply."""
        manifest = workspace.write(workspace.resource("app.yaml", content="a: 1\n"))
        apply_command(manifest, state_file=str(workspace.state), engine=fake_engine)

        assert check_command(manifest, state_file=str(workspace.state), engine=fake_engine) == 0

    def test_detects_drift(self, workspace, fake_engine, capsys):
        """Edited files show up as pending."""
        target = workspace.target("app.yaml")
        manifest = workspace.write(workspace.resource("app.yaml", content="a: 1\n"))
        apply_command(manifest, state_file=str(workspace.state), engine=fake_engine)
        target.write_bytes(fake_engine.seal(b"a: 2\n"))
        capsys.readouterr()

        code = check_command(
            manifest, state_file=str(workspace.state), output_format="json", engine=fake_engine
        )

        assert code == ExitCode.WARNING
        assert _json_changes(capsys)[str(target)]["reason"] == "content drifted"


class TestDestroyCommand:
    """Tests for destroy_command()."""

    def test_auto_approve_deletes(self, workspace, fake_engine):
        """Test --yes deletes without prompting."""
        manifest = workspace.write(workspace.resource("app.yaml", content="a: 1\n"))
        apply_command(manifest, state_file=str(workspace.state), engine=fake_engine)

        code = destroy_command(
            manifest, state_file=str(workspace.state), auto_approve=True, engine=fake_engine
        )

        assert code == ExitCode.SUCCESS
        assert not workspace.target("app.yaml").exists()
        assert load_state(workspace.state).resources == {}

    def test_already_absent(self, workspace, fake_engine):
        """Destroy tolerates files that are already gone."""
        manifest = workspace.write(workspace.resource("app.yaml", content="a: 1\n"))
        code = destroy_command(
            manifest, state_file=str(workspace.state), auto_approve=True, engine=fake_engine
        )
        assert code == ExitCode.SUCCESS

    def test_declined_without_tty(self, workspace, fake_engine):
        """Without a terminal the confirmation defaults to no."""
        manifest = workspace.write(workspace.resource("app.yaml", content="a: 1\n"))
        apply_command(manifest, state_file=str(workspace.state), engine=fake_engine)

        with patch("sopsfile.cli.ux._is_interactive", return_value=False):
            destroy_command(manifest, state_file=str(workspace.state), engine=fake_engine)

        assert workspace.target("app.yaml").exists()


class TestDecryptCommand:
    """Tests for decrypt_command()."""

    def test_json_output(self, tmp_path, fake_engine, capsys):
        """Test decrypt --output json."""
        source = tmp_path / "s.yaml"
        source.write_bytes(fake_engine.seal(b"db:\n  user: app\n"))

        code = decrypt_command(str(source), output_format="json", engine=fake_engine)

        assert code == ExitCode.SUCCESS
        assert json.loads(capsys.readouterr().out) == {"db.user": "app"}

    def test_raw_output(self, tmp_path, fake_engine, capsys):
        """Test decrypt --output raw prints the plaintext."""
        source = tmp_path / "s.json"
        source.write_bytes(fake_engine.seal(b'{"a": 1}\n'))

        decrypt_command(str(source), output_format="raw", engine=fake_engine)

        assert capsys.readouterr().out.strip() == '{"a": 1}'

    def test_table_output(self, tmp_path, fake_engine, capsys):
        """Test decrypt --output table."""
        source = tmp_path / ".env"
        source.write_bytes(fake_engine.seal(b"TOKEN=abc\n"))

        decrypt_command(str(source), engine=fake_engine)

        out = capsys.readouterr().out
        assert "TOKEN" in out
        assert "abc" in out

    def test_errors_map_to_exit_codes(self, tmp_path, fake_engine):
        """Missing and undecryptable files get distinct exit codes."""
        missing = str(tmp_path / "absent.yaml")
        assert decrypt_command(missing, engine=fake_engine) == ExitCode.IO_ERROR

        unsealed = tmp_path / "plain.yaml"
        unsealed.write_text("a: 1\n")
        assert decrypt_command(str(unsealed), engine=fake_engine) == ExitCode.PROVIDER_ERROR

        sealed = tmp_path / "s.yaml"
        sealed.write_bytes(fake_engine.seal(b"a: 1\n"))
        assert decrypt_command(str(sealed), key="b", engine=fake_engine) == ExitCode.VALIDATION_ERROR


class TestParser:
    """Tests for build_parser() and main()."""

    def test_apply_arguments(self):
        """Test apply argument parsing."""
        args = build_parser().parse_args(["apply", "m.yaml", "--state", "s.json", "--output", "json"])
        assert args.command == "apply"
        assert args.manifest == "m.yaml"
        assert args.state_file == "s.json"
        assert args.output == "json"

    def test_decrypt_arguments(self):
        """Test decrypt argument parsing."""
        args = build_parser().parse_args(
            ["decrypt", "s.enc", "--input-type", "yaml", "--key", "db", "--output", "raw"]
        )
        assert args.source_file == "s.enc"
        assert args.input_type == "yaml"
        assert args.key == "db"

    def test_destroy_yes(self):
        """Test destroy --yes flag."""
        assert build_parser().parse_args(["destroy", "m.yaml", "-y"]).yes is True

    def test_version(self, capsys):
        """Test --version flag."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "sopsfile" in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys):
        """Test help is printed when no command is given."""
        with patch("sopsfile.cli.main.configure_logging"):
            with pytest.raises(SystemExit) as exc_info:
                main([])
        assert exc_info.value.code == 1
        assert "usage" in capsys.readouterr().out

    def test_dispatches_exit_code(self, tmp_path):
        """main() exits with the command's exit code."""
        with patch("sopsfile.cli.main.configure_logging"):
            with pytest.raises(SystemExit) as exc_info:
                main(["decrypt", str(tmp_path / "absent.yaml")])
        assert exc_info.value.code == ExitCode.IO_ERROR
