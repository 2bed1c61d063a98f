"""
Tests for CLI commands — global options, archive resolution, server
lifecycle and extensions.
"""

import json
import sys
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import install_stubs
from pg_embedded.core.models.version import Version
from pg_embedded.core.services import archive
from pg_embedded.main import cli

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="stub executables are shell scripts")


@pytest.fixture
def config(tmp_path: Path) -> Path:
    """pg_embedded.yml keeping every path inside tmp_path."""
    content = textwrap.dedent("""\
        postgresql:
          version: "=16.3.0"
          installation_dir: ./installation
          data_dir: ./data
          password_file: ./.pgpass
          port: 6543
    """)
    path = tmp_path / "pg_embedded.yml"
    path.write_text(content)
    return path


def run(config: Path, *args: str):
    return CliRunner().invoke(cli, ["--config", str(config), *args])


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("resolve", "install", "setup", "status", "start", "stop", "createdb", "dropdb", "extensions"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_invalid_config(self, tmp_path):
        path = tmp_path / "pg_embedded.yml"
        path.write_text("port: lots\n")
        result = run(path, "status")
        assert result.exit_code == 1
        assert "Invalid settings" in result.output

    def test_invalid_version_override(self, config):
        result = run(config, "--pg-version", "sixteen", "status")
        assert result.exit_code == 2


class TestStatusCommand:
    def test_not_installed(self, config):
        result = run(config, "status")
        assert result.exit_code == 0
        assert "not_installed" in result.output
        assert "6543" in result.output

    def test_json(self, config, tmp_path):
        result = run(config, "status", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["status"] == "not_installed"
        assert data["version"] == "=16.3.0"
        assert data["installation_dir"] == str(tmp_path / "installation" / "16.3.0")

    def test_floating_version_uses_local_install(self, config, tmp_path):
        (tmp_path / "installation" / "16.1.0").mkdir(parents=True)
        (tmp_path / "installation" / "16.3.0").mkdir(parents=True)
        (tmp_path / "installation" / "17.0.0").mkdir(parents=True)
        result = run(config, "--pg-version", "16", "status", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["status"] == "installed"
        assert data["version"] == "=16.3.0"


class TestResolveCommand:
    def test_resolve(self, config, monkeypatch):
        seen = []

        def get_version(url, requirement):
            seen.append((url, str(requirement)))
            return Version(16, 3, 0)

        monkeypatch.setattr(archive, "get_version", get_version)
        result = run(config, "resolve", "--url", "https://github.com/acme/pg", "--version", ">=16, <17")
        assert result.exit_code == 0
        assert result.output.strip() == "16.3.0"
        assert seen == [("https://github.com/acme/pg", ">=16, <17")]

    def test_defaults_from_settings(self, config, monkeypatch):
        monkeypatch.setattr(archive, "get_version", lambda url, requirement: Version(16, 3, 0))
        result = run(config, "resolve", "--json")
        assert json.loads(result.output) == {
            "url": "https://github.com/theseus-rs/postgresql-binaries",
            "requirement": "=16.3.0",
            "version": "16.3.0",
        }

    def test_invalid_requirement(self, config):
        result = run(config, "resolve", "--version", ">=")
        assert result.exit_code == 2


@posix_only
class TestServerCommands:
    @pytest.fixture(autouse=True)
    def stubs(self, tmp_path):
        install_stubs(tmp_path / "installation" / "16.3.0" / "bin")

    def test_session(self, config, tmp_path):
        result = run(config, "start")
        assert result.exit_code == 0, result.output
        assert "Started on port 6543" in result.output

        assert "started" in run(config, "status").output
        assert "Already running" in run(config, "start").output

        result = run(config, "createdb", "app")
        assert result.exit_code == 0, result.output
        assert "Created app" in result.output

        result = run(config, "stop")
        assert result.exit_code == 0
        assert "Not running" in run(config, "stop").output

    def test_password_persisted_between_invocations(self, config, tmp_path):
        run(config, "setup")
        run(config, "createdb", "app")
        password = (tmp_path / ".pgpass").read_text()
        log = (tmp_path / "installation" / "16.3.0" / "bin" / "calls.log").read_text()
        assert f"PGPASSWORD={password} " in log

    def test_data_dir_kept(self, config, tmp_path):
        result = run(config, "setup")
        assert result.exit_code == 0
        assert (tmp_path / "data" / "postgresql.conf").is_file()
        assert (tmp_path / ".pgpass").is_file()

    def test_createdb_failure(self, config):
        result = run(config, "createdb", "broken")
        assert result.exit_code == 1
        assert "❌" in result.output

    def test_dropdb(self, config, tmp_path):
        result = run(config, "dropdb", "app")
        assert result.exit_code == 0
        assert "Dropped app" in result.output


class TestExtensionsCommands:
    def test_list_available(self, config):
        result = run(config, "extensions", "list")
        assert result.exit_code == 0
        assert "portal-corp:pgvector_compiled" in result.output
        assert "tensor-chord:pgvecto.rs" in result.output

    def test_list_installed_empty(self, config):
        result = run(config, "extensions", "list", "--installed", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output) == []

    def test_uninstall_missing(self, config):
        result = run(config, "extensions", "uninstall", "portal-corp", "pgvector_compiled")
        assert result.exit_code == 0
        assert "is not installed" in result.output

    def test_install_unknown_namespace(self, config):
        result = run(config, "extensions", "install", "nope", "vector")
        assert result.exit_code == 1
        assert "unsupported namespace for 'nope'" in result.output
