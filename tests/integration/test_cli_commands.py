"""Integration tests for CLI commands."""

import re
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from keyhaven.cli import main as cli_main
from keyhaven.cli.main import app
from keyhaven.config.settings import BackendConfig, Settings, configure


runner = CliRunner()

PASSPHRASE = "Sn0wman!"


@pytest.fixture(autouse=True)
def cli_vault(tmp_path: Path, monkeypatch) -> Path:
    """Point the CLI at a YAML vault in a temporary directory."""
    data_dir = tmp_path / "data"
    configure(Settings(backend=BackendConfig(kind="yaml", data_dir=data_dir), user_id="tester"))
    monkeypatch.setattr(cli_main, "console", Console(width=200))
    return data_dir


def invoke(*args, input=None, passphrase=PASSPHRASE):
    env = {"KEYHAVEN_PASSPHRASE": passphrase} if passphrase else {}
    return runner.invoke(app, list(args), input=input, env=env)


def add_github(group="Work"):
    result = invoke("add", "--account", "GitHub", "--group", group, "--username", "octocat",
                    "--password", "GitSecure#456")
    assert result.exit_code == 0, result.stdout
    return re.search(r"\(([0-9a-f-]{36})\)", result.stdout).group(1)


class TestVersionAndGenerate:
    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "keyhaven v" in result.stdout

    def test_generate(self):
        result = runner.invoke(app, ["generate", "--length", "24"])

        assert result.exit_code == 0
        assert len(result.stdout.strip()) == 24

    def test_generate_too_short(self):
        result = runner.invoke(app, ["generate", "--length", "2"])

        assert result.exit_code == 1
        assert "at least 4" in result.stdout


class TestGroupsCommands:
    """Tests for the groups sub-commands."""

    def test_add_and_list(self):
        result = invoke("groups", "add", "Work")
        assert result.exit_code == 0
        assert "Created group Work" in result.stdout

        result = invoke("groups", "list")
        assert result.exit_code == 0
        assert "Work" in result.stdout

    def test_duplicate_name(self):
        invoke("groups", "add", "Finance")

        result = invoke("groups", "add", "finance")

        assert result.exit_code == 1
        assert "already exists" in result.stdout

    def test_rename_and_delete(self):
        invoke("groups", "add", "Work")

        result = invoke("groups", "rename", "work", "Office")
        assert result.exit_code == 0
        assert "Renamed group to Office" in result.stdout

        result = invoke("groups", "delete", "Office", "--yes")
        assert result.exit_code == 0

        result = invoke("groups", "list")
        assert "No groups yet" in result.stdout

    def test_delete_unknown(self):
        result = invoke("groups", "delete", "Nope", "--yes")

        assert result.exit_code == 1
        assert "Group not found" in result.stdout


class TestEntryCommands:
    """Tests for adding, showing and changing entries."""

    def test_add_and_show(self, cli_vault: Path):
        invoke("groups", "add", "Work")
        entry_id = add_github()

        result = invoke("show", "github")

        assert result.exit_code == 0
        assert entry_id in result.stdout
        assert "Password: GitSecure#456" in result.stdout
        assert "Group: Work" in result.stdout
        stored = (cli_vault / "vault" / f"{entry_id}.yaml").read_text(encoding="utf-8")
        assert "GitSecure#456" not in stored

    def test_add_unknown_group(self):
        result = invoke("add", "--account", "GitHub", "--group", "Nope", "--password", "x")

        assert result.exit_code == 1
        assert "Group not found" in result.stdout

    def test_add_prompts_for_password(self):
        invoke("groups", "add", "Work")

        result = invoke("add", "--account", "Bank", "--group", "Work", input="s3cret!\ns3cret!\n")
        assert result.exit_code == 0

        result = invoke("show", "Bank")
        assert "Password: s3cret!" in result.stdout

    def test_add_generated(self):
        invoke("groups", "add", "Work")

        result = invoke("add", "--account", "Bank", "--group", "Work", "--generate", "--length", "20")

        assert result.exit_code == 0
        generated = re.search(r"Generated password: (\S+)", result.stdout).group(1)
        assert len(generated) == 20

    def test_list_masks_passwords(self):
        invoke("groups", "add", "Work")
        add_github()

        result = invoke("list")

        assert result.exit_code == 0
        assert "GitHub" in result.stdout
        assert "GitSecure#456" not in result.stdout

        result = invoke("list", "--show-secrets")
        assert "GitSecure#456" in result.stdout

    def test_list_empty(self):
        result = invoke("list")

        assert result.exit_code == 0
        assert "No entries found" in result.stdout

    def test_list_search(self):
        invoke("groups", "add", "Work")
        add_github()

        result = invoke("list", "--search", "bank")

        assert "No entries found" in result.stdout

    def test_wrong_passphrase(self):
        invoke("groups", "add", "Work")
        add_github()

        result = invoke("list", passphrase="wrong")
        assert result.exit_code == 0
        assert "[Decryption Failed]" in result.stdout

        result = invoke("status", passphrase="wrong")
        assert "Could not decrypt: 1" in result.stdout

    def test_passphrase_prompt(self):
        result = invoke("list", input=f"{PASSPHRASE}\n", passphrase=None)

        assert result.exit_code == 0
        assert "No entries found" in result.stdout

    def test_favorite(self):
        invoke("groups", "add", "Work")
        add_github()

        result = invoke("favorite", "GitHub")
        assert result.exit_code == 0
        assert "Added GitHub to favorites" in result.stdout

        result = invoke("list", "--group", "favorites")
        assert "GitHub" in result.stdout

        result = invoke("favorite", "GitHub")
        assert "Removed GitHub from favorites" in result.stdout

    def test_update_username(self):
        invoke("groups", "add", "Work")
        entry_id = add_github()

        result = invoke("update", entry_id, "--username", "hubot")
        assert result.exit_code == 0

        result = invoke("show", entry_id)
        assert "Username: hubot" in result.stdout
        assert "Password: GitSecure#456" in result.stdout

    def test_update_nothing(self):
        invoke("groups", "add", "Work")
        entry_id = add_github()

        result = invoke("update", entry_id)

        assert result.exit_code == 1
        assert "Nothing to update" in result.stdout

    def test_delete(self):
        invoke("groups", "add", "Work")
        add_github()

        result = invoke("delete", "GitHub", input="n\n")
        assert "Cancelled" in result.stdout

        result = invoke("delete", "GitHub", "--yes")
        assert result.exit_code == 0

        result = invoke("show", "GitHub")
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_status(self):
        invoke("groups", "add", "Work")
        add_github()

        result = invoke("status")

        assert result.exit_code == 0
        assert "Entries: 1" in result.stdout
        assert "Latest entry: GitHub" in result.stdout
