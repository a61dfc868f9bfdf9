"""Tests for CLI commands - init, cloud, sync, transfer-code, note, envelope."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from notesync.client.cli import cli
from notesync.core.config import REPOSITORY_FILE_NAME

VALID_CODE = "abcdefghijkmnpqr"


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at a temporary configuration directory."""
    config_dir = tmp_path / "home"
    monkeypatch.setenv("NOTESYNC_HOME", str(config_dir))
    return config_dir


@pytest.fixture
def initialized(runner: CliRunner, home: Path) -> Path:
    """A device that ran 'notesync init' without the OS keyring."""
    result = runner.invoke(cli, ["init", "--no-keyring"])
    assert result.exit_code == 0, result.output
    return home


@pytest.fixture
def cloud_folder(runner: CliRunner, initialized: Path, tmp_path: Path) -> Path:
    """A device using a folder as its cloud storage."""
    folder = tmp_path / "cloud"
    folder.mkdir()
    result = runner.invoke(cli, ["cloud", "set-folder", str(folder)])
    assert result.exit_code == 0, result.output
    return folder


def add_note(runner: CliRunner, text: str, *extra: str) -> str:
    result = runner.invoke(cli, ["note", "add", text, *extra])
    assert result.exit_code == 0, result.output
    return result.output.strip()


# =============================================================================
# init
# =============================================================================


class TestInitCommand:
    """Tests for 'notesync init' command."""

    def test_init_creates_settings(self, runner: CliRunner, home: Path) -> None:
        """Init should create the config, settings and repository files."""
        result = runner.invoke(cli, ["init", "--no-keyring"])
        assert result.exit_code == 0
        assert f"Initialized NoteSync in {home}" in result.output
        assert "Repository: " in result.output
        assert (home / "config.json").exists()
        assert (home / "settings.json").exists()
        assert (home / "repository.json").exists()

    def test_init_fails_if_already_initialized(self, runner: CliRunner, initialized: Path) -> None:
        """Init should refuse to overwrite an existing device."""
        result = runner.invoke(cli, ["init", "--no-keyring"])
        assert result.exit_code == 1
        assert "already initialized" in result.output

    def test_init_with_algorithm_and_kdf(self, runner: CliRunner, home: Path) -> None:
        """Init should accept the registered algorithms."""
        result = runner.invoke(
            cli, ["init", "--no-keyring", "--algorithm", "aes256_gcm", "--kdf", "argon2id"]
        )
        assert result.exit_code == 0

    def test_init_rejects_unknown_algorithm(self, runner: CliRunner, home: Path) -> None:
        """Init should only offer the registered algorithms."""
        result = runner.invoke(cli, ["init", "--algorithm", "rot13"])
        assert result.exit_code != 0
        assert not (home / "config.json").exists()

    @pytest.mark.parametrize(
        "args",
        [
            ["cloud", "show"],
            ["note", "list"],
            ["sync"],
            ["pull-push", "some-id"],
            ["transfer-code", "show"],
        ],
    )
    def test_commands_require_init(self, runner: CliRunner, home: Path, args: list[str]) -> None:
        """Commands should fail before init."""
        result = runner.invoke(cli, args)
        assert result.exit_code == 1
        assert "not initialized" in result.output


class TestVersionAndHelp:
    """Tests for the top level group."""

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("init", "cloud", "sync", "pull-push", "transfer-code", "note", "envelope"):
            assert command in result.output


# =============================================================================
# cloud
# =============================================================================


class TestCloudCommands:
    """Tests for 'notesync cloud' commands."""

    def test_show_without_storage(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(cli, ["cloud", "show"])
        assert result.exit_code == 0
        assert "No cloud storage configured." in result.output

    def test_set_folder(self, runner: CliRunner, cloud_folder: Path) -> None:
        """A folder should be remembered as the cloud storage."""
        result = runner.invoke(cli, ["cloud", "show"])
        assert "Storage: folder" in result.output
        assert f"Location: {cloud_folder.resolve()}" in result.output

    def test_set_missing_folder(self, runner: CliRunner, initialized: Path, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["cloud", "set-folder", str(tmp_path / "missing")])
        assert result.exit_code == 1
        assert "Folder does not exist" in result.output

    def test_webdav_requires_https(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(
            cli, ["cloud", "set-webdav", "http://dav.example.com/", "-u", "anna", "-p", "pw"]
        )
        assert result.exit_code == 1
        assert "https" in result.output

    def test_webdav_insecure(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(
            cli,
            ["cloud", "set-webdav", "http://dav.local/", "-u", "anna", "-p", "pw", "--insecure"],
        )
        assert result.exit_code == 0
        assert "Cloud storage: WebDAV http://dav.local/ as anna" in result.output

    def test_webdav_prompts_for_password(self, runner: CliRunner, initialized: Path) -> None:
        """The password should be prompted when not given."""
        result = runner.invoke(
            cli, ["cloud", "set-webdav", "https://dav.example.com/", "-u", "anna"], input="pw\n"
        )
        assert result.exit_code == 0
        show = runner.invoke(cli, ["cloud", "show"])
        assert "Storage: webdav" in show.output
        assert "User: anna" in show.output


# =============================================================================
# note
# =============================================================================


class TestNoteCommands:
    """Tests for 'notesync note' commands."""

    def test_empty_list(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(cli, ["note", "list"])
        assert result.exit_code == 0
        assert "No notes." in result.output

    def test_add_and_list(self, runner: CliRunner, initialized: Path) -> None:
        """New notes should be listed first, with their flags."""
        first = add_note(runner, "buy milk")
        second = add_note(runner, "call mom", "--pin")

        lines = runner.invoke(cli, ["note", "list"]).output.splitlines()
        assert lines[0].startswith(f"{second}  P-")
        assert lines[0].endswith("call mom")
        assert lines[1].startswith(f"{first}  --")

    def test_long_notes_are_shortened(self, runner: CliRunner, initialized: Path) -> None:
        add_note(runner, "x" * 80)
        output = runner.invoke(cli, ["note", "list"]).output
        assert "x" * 47 + "..." in output
        assert "x" * 48 not in output

    def test_delete_to_recycling_bin(self, runner: CliRunner, initialized: Path) -> None:
        """Deleted notes should stay visible with --all."""
        note_id = add_note(runner, "old idea")
        result = runner.invoke(cli, ["note", "delete", note_id])
        assert result.exit_code == 0
        assert "recycling bin" in result.output

        assert "No notes." in runner.invoke(cli, ["note", "list"]).output
        assert f"{note_id}  -R" in runner.invoke(cli, ["note", "list", "--all"]).output

    def test_delete_permanently(self, runner: CliRunner, initialized: Path) -> None:
        note_id = add_note(runner, "old idea")
        result = runner.invoke(cli, ["note", "delete", note_id, "--permanent"])
        assert result.exit_code == 0
        assert f"Deleted note {note_id}" in result.output
        assert "No notes." in runner.invoke(cli, ["note", "list", "--all"]).output

    def test_delete_unknown_note(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(cli, ["note", "delete", "nope"])
        assert result.exit_code == 1
        assert "Note not found" in result.output


# =============================================================================
# transfer-code
# =============================================================================


class TestTransferCodeCommands:
    """Tests for 'notesync transfer-code' commands."""

    def test_show_without_code(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(cli, ["transfer-code", "show"])
        assert result.exit_code == 0
        assert "No transfer code yet" in result.output

    def test_set_and_show(self, runner: CliRunner, initialized: Path) -> None:
        """A code typed in groups and upper case should be accepted."""
        result = runner.invoke(cli, ["transfer-code", "set", "ABCD-EFGH ijkm npqr"])
        assert result.exit_code == 0
        assert "Transfer code set: abcd efgh ijkm npqr" in result.output

        show = runner.invoke(cli, ["transfer-code", "show"])
        assert show.output.strip() == "abcd efgh ijkm npqr"

    def test_set_invalid_code(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(cli, ["transfer-code", "set", "too short"])
        assert result.exit_code == 1
        assert "not a valid transfer code" in result.output

    def test_history(self, runner: CliRunner, initialized: Path) -> None:
        """Replaced codes should be listed most recent first."""
        assert "No previous transfer codes." in runner.invoke(cli, ["transfer-code", "history"]).output

        runner.invoke(cli, ["transfer-code", "set", VALID_CODE])
        runner.invoke(cli, ["transfer-code", "set", "qrstuvwxyz234567"])
        result = runner.invoke(cli, ["transfer-code", "history"])
        assert result.output.splitlines() == ["abcd efgh ijkm npqr"]

    def test_new_without_cloud(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(cli, ["transfer-code", "new"])
        assert result.exit_code == 1
        assert "Error:" in result.output


# =============================================================================
# sync
# =============================================================================


class TestSyncCommand:
    """Tests for 'notesync sync' command."""

    def test_sync_without_cloud(self, runner: CliRunner, initialized: Path) -> None:
        result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 1
        assert "No cloud storage configured." in result.output

    def test_first_sync_creates_transfer_code(self, runner: CliRunner, cloud_folder: Path) -> None:
        """The first device should upload the repository and show a new code."""
        add_note(runner, "buy milk")
        result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 0, result.output
        assert "A new transfer code was created" in result.output
        assert "The notes were successfully synchronized." in result.output
        assert (cloud_folder / REPOSITORY_FILE_NAME).is_file()

        show = runner.invoke(cli, ["transfer-code", "show"])
        assert show.output.strip() in result.output

    def test_second_sync_keeps_code(self, runner: CliRunner, cloud_folder: Path) -> None:
        runner.invoke(cli, ["sync"])
        code = runner.invoke(cli, ["transfer-code", "show"]).output.strip()

        result = runner.invoke(cli, ["sync"])
        assert result.exit_code == 0
        assert "A new transfer code was created" not in result.output
        assert runner.invoke(cli, ["transfer-code", "show"]).output.strip() == code

    def test_silent_first_sync_shows_new_code(self, runner: CliRunner, cloud_folder: Path) -> None:
        """A silent run uploads to an empty folder and still reports the new code."""
        result = runner.invoke(cli, ["sync", "--silent"])
        assert result.exit_code == 0, result.output
        assert (cloud_folder / REPOSITORY_FILE_NAME).is_file()
        code = runner.invoke(cli, ["transfer-code", "show"]).output.strip()
        assert f"A new transfer code was created: {code}" in result.output

    def test_silent_sync_does_not_ask_for_code(
        self,
        runner: CliRunner,
        cloud_folder: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        runner.invoke(cli, ["sync"])

        monkeypatch.setenv("NOTESYNC_HOME", str(tmp_path / "second"))
        runner.invoke(cli, ["init", "--no-keyring"])
        runner.invoke(cli, ["cloud", "set-folder", str(cloud_folder)])

        result = runner.invoke(cli, ["sync", "--silent"])
        assert result.exit_code == 0
        assert "Nothing synchronized" in result.output
        assert "Transfer code" not in result.output

    def test_second_device_joins_with_transfer_code(
        self,
        runner: CliRunner,
        cloud_folder: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Another device should read the notes after entering the code."""
        add_note(runner, "shared note")
        runner.invoke(cli, ["sync"])
        code = runner.invoke(cli, ["transfer-code", "show"]).output.strip()

        monkeypatch.setenv("NOTESYNC_HOME", str(tmp_path / "second"))
        runner.invoke(cli, ["init", "--no-keyring"])
        runner.invoke(cli, ["cloud", "set-folder", str(cloud_folder)])

        result = runner.invoke(cli, ["sync", "--transfer-code", code, "--merge-choice", "cloud"])
        assert result.exit_code == 0, result.output
        assert "shared note" in runner.invoke(cli, ["note", "list"]).output
        assert runner.invoke(cli, ["transfer-code", "show"]).output.strip() == code

    def test_second_device_with_wrong_code(
        self,
        runner: CliRunner,
        cloud_folder: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        runner.invoke(cli, ["sync"])

        monkeypatch.setenv("NOTESYNC_HOME", str(tmp_path / "second"))
        runner.invoke(cli, ["init", "--no-keyring"])
        runner.invoke(cli, ["cloud", "set-folder", str(cloud_folder)])

        result = runner.invoke(cli, ["sync", "--transfer-code", VALID_CODE])
        assert result.exit_code == 1
        assert "No transfer code yet" in runner.invoke(cli, ["transfer-code", "show"]).output

    def test_invalid_transfer_code_input(
        self,
        runner: CliRunner,
        cloud_folder: Path,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        runner.invoke(cli, ["sync"])

        monkeypatch.setenv("NOTESYNC_HOME", str(tmp_path / "second"))
        runner.invoke(cli, ["init", "--no-keyring"])
        runner.invoke(cli, ["cloud", "set-folder", str(cloud_folder)])

        result = runner.invoke(cli, ["sync"], input="nonsense\n")
        assert result.exit_code == 1
        assert "not a valid transfer code" in result.output

    def test_new_transfer_code(self, runner: CliRunner, cloud_folder: Path) -> None:
        """A new code should replace the old one, which goes to the history."""
        runner.invoke(cli, ["sync"])
        old_code = runner.invoke(cli, ["transfer-code", "show"]).output.strip()

        result = runner.invoke(cli, ["transfer-code", "new"])
        assert result.exit_code == 0, result.output
        new_code = runner.invoke(cli, ["transfer-code", "show"]).output.strip()
        assert new_code != old_code
        assert f"New transfer code: {new_code}" in result.output
        assert runner.invoke(cli, ["transfer-code", "history"]).output.splitlines() == [old_code]


# =============================================================================
# pull-push
# =============================================================================


class TestPullPushCommand:
    """Tests for 'notesync pull-push' command."""

    def test_needs_sync_first(self, runner: CliRunner, cloud_folder: Path) -> None:
        note_id = add_note(runner, "buy milk")
        result = runner.invoke(cli, ["pull-push", note_id, "--push"])
        assert result.exit_code == 1

    def test_push_synchronized_note(self, runner: CliRunner, cloud_folder: Path) -> None:
        note_id = add_note(runner, "buy milk")
        runner.invoke(cli, ["sync"])
        result = runner.invoke(cli, ["pull-push", note_id, "--push"])
        assert result.exit_code == 0, result.output
        assert "The note was synchronized." in result.output

    def test_note_missing_in_cloud(self, runner: CliRunner, cloud_folder: Path) -> None:
        """A note added after the last sync is not in the cloud yet."""
        runner.invoke(cli, ["sync"])
        note_id = add_note(runner, "new note")
        result = runner.invoke(cli, ["pull-push", note_id])
        assert result.exit_code == 1


# =============================================================================
# envelope
# =============================================================================


class TestEnvelopeCommand:
    """Tests for 'notesync envelope inspect' command."""

    def test_inspect_repository_blob(self, runner: CliRunner, cloud_folder: Path) -> None:
        """The header of the cloud repository should be readable without a code."""
        runner.invoke(cli, ["sync"])
        result = runner.invoke(cli, ["envelope", "inspect", str(cloud_folder / REPOSITORY_FILE_NAME)])
        assert result.exit_code == 0, result.output
        assert "Package:     NoteSync" in result.output
        assert "Revision:    2" in result.output
        assert "Algorithm:   xchacha20_poly1305" in result.output
        assert "KDF:         pbkdf2" in result.output

    def test_inspect_with_other_package(self, runner: CliRunner, cloud_folder: Path) -> None:
        runner.invoke(cli, ["sync"])
        result = runner.invoke(
            cli,
            ["envelope", "inspect", str(cloud_folder / REPOSITORY_FILE_NAME), "--package", "OtherApp"],
        )
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_inspect_garbage(self, runner: CliRunner, tmp_path: Path) -> None:
        garbage = tmp_path / "garbage.bin"
        garbage.write_bytes(b"not an envelope")
        result = runner.invoke(cli, ["envelope", "inspect", str(garbage)])
        assert result.exit_code == 1
        assert "Error:" in result.output
