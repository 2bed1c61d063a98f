"""
pg-embedded — CLI entrypoint.

Usage:
    pg-embedded --help
    pg-embedded resolve --version ">=16, <17"
    pg-embedded setup
    pg-embedded start
    pg-embedded createdb app
    pg-embedded extensions install portal-corp pgvector_compiled

Settings come from ``pg_embedded.yml`` (auto-detected upward from the
working directory, or ``--config``). Unlike the library defaults, the CLI
keeps its data directory and password file between invocations so a
server started by one command can be used by the next.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from pg_embedded import __version__
from pg_embedded.core.errors import EmbeddedError, InvalidVersion
from pg_embedded.core.models.settings import Settings
from pg_embedded.core.models.version import Version, VersionRequirement
from pg_embedded.core.observability.logging_config import resolve_level, setup_logging

_CLI_HOME = Path.home() / ".theseus"

# Persistent replacements for the library's throwaway defaults
CLI_DEFAULTS: dict[str, object] = {
    "temporary": False,
    "port": 5432,
    "data_dir": _CLI_HOME / "data",
    "password_file": _CLI_HOME / ".pgpass",
}


def _fail(error: Exception) -> None:
    click.secho(f"❌ {error}", fg="red")
    sys.exit(1)


def _parse_requirement(value: str) -> VersionRequirement:
    try:
        return VersionRequirement.parse(value)
    except InvalidVersion as e:
        raise click.BadParameter(str(e)) from e


def _load(ctx: click.Context) -> Settings:
    """Settings for this invocation, with the stored password when one exists."""
    from pg_embedded.core.config.loader import load_settings

    settings = load_settings(ctx.obj.get("config_path"), defaults=dict(CLI_DEFAULTS))
    if settings.password_file.is_file():
        settings.password = settings.password_file.read_text(encoding="utf-8").strip()

    override = ctx.obj.get("version")
    if override is not None:
        settings.version = override
    return settings


def _installed_version(settings: Settings) -> Version | None:
    """Highest locally installed version satisfying the settings' requirement."""
    root = settings.installation_dir
    if not root.is_dir():
        return None
    best: Version | None = None
    for child in root.iterdir():
        if not child.is_dir():
            continue
        try:
            version = Version.parse(child.name)
        except InvalidVersion:
            continue
        if settings.version.matches(version) and (best is None or version > best):
            best = version
    return best


def _manager(ctx: click.Context, offline: bool = True):
    """A lifecycle manager; floating versions are pinned to a local install when possible."""
    from pg_embedded.core.engine.postgresql import PostgreSQL

    settings = _load(ctx)
    if offline and settings.version.exact_version() is None:
        version = _installed_version(settings)
        if version is not None:
            settings.version = VersionRequirement.exact(version)
    return PostgreSQL(settings)


@click.group()
@click.version_option(version=__version__, prog_name="pg-embedded")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to pg_embedded.yml (default: auto-detect).",
)
@click.option(
    "--pg-version",
    "pg_version",
    default=None,
    help="Override the version requirement from the settings file.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    pg_version: str | None,
) -> None:
    """pg-embedded — install and run a local PostgreSQL server."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["version"] = _parse_requirement(pg_version) if pg_version else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = None

    setup_logging(level=resolve_level(level))


# ── Archives ────────────────────────────────────────────────────


@cli.command()
@click.option("--url", default=None, help="Releases URL (default: from settings).")
@click.option("--version", "requirement", default=None, help="Version requirement, e.g. '>=16, <17'.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def resolve(ctx: click.Context, url: str | None, requirement: str | None, as_json: bool) -> None:
    """Resolve a version requirement against a releases repository."""
    from pg_embedded.core.services.archive import get_version

    try:
        settings = _load(ctx)
        url = url or settings.releases_url
        req = _parse_requirement(requirement) if requirement else settings.version
        version = get_version(url, req)
    except EmbeddedError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps({"url": url, "requirement": str(req), "version": str(version)}))
        return
    click.echo(str(version))


@cli.command()
@click.pass_context
def install(ctx: click.Context) -> None:
    """Download and extract PostgreSQL (skipped when already installed)."""
    try:
        postgresql = _manager(ctx, offline=False)
        postgresql.install()
    except EmbeddedError as e:
        _fail(e)
        return

    click.secho(f"✅ PostgreSQL {postgresql.version} installed", fg="green", bold=True)
    click.echo(f"   → {postgresql.settings.installation_dir}")


@cli.command()
@click.pass_context
def setup(ctx: click.Context) -> None:
    """Install if needed and initialize the data directory."""
    try:
        postgresql = _manager(ctx)
        postgresql.setup()
    except EmbeddedError as e:
        _fail(e)
        return

    click.secho(f"✅ PostgreSQL {postgresql.version} ready", fg="green", bold=True)
    click.echo(f"   Data: {postgresql.settings.data_dir}")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show installation and server state."""
    try:
        postgresql = _manager(ctx)
    except EmbeddedError as e:
        _fail(e)
        return

    settings = postgresql.settings
    state = postgresql.status
    if as_json:
        click.echo(json.dumps({
            "status": state.value,
            "version": str(settings.version),
            "installation_dir": str(settings.installation_dir),
            "data_dir": str(settings.data_dir),
            "port": settings.port,
        }, indent=2))
        return

    color = {"started": "green", "stopped": "yellow"}.get(state.value, "red")
    click.secho(f"🐘 PostgreSQL {settings.version}", fg="cyan", bold=True)
    click.secho(f"   Status: {state.value}", fg=color)
    click.echo(f"   Installation: {settings.installation_dir}")
    click.echo(f"   Data: {settings.data_dir}")
    click.echo(f"   Port: {settings.port}")


# ── Server ──────────────────────────────────────────────────────


@cli.command()
@click.pass_context
def start(ctx: click.Context) -> None:
    """Set up if needed and start the server."""
    from pg_embedded.core.engine.postgresql import Status

    try:
        postgresql = _manager(ctx)
        postgresql.setup()
        if postgresql.status is Status.STARTED:
            click.secho("   Already running", fg="yellow")
            return
        postgresql.start()
    except EmbeddedError as e:
        _fail(e)
        return

    click.secho(f"✅ Started on port {postgresql.settings.port}", fg="green", bold=True)
    click.echo(f"   {postgresql.settings.url('postgres')}")


@cli.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Stop a running server."""
    from pg_embedded.core.engine.postgresql import Status

    try:
        postgresql = _manager(ctx)
        if postgresql.status is not Status.STARTED:
            click.secho("   Not running", fg="yellow")
            return
        postgresql.stop()
    except EmbeddedError as e:
        _fail(e)
        return

    click.secho("✅ Stopped", fg="green", bold=True)


@cli.command()
@click.argument("name")
@click.pass_context
def createdb(ctx: click.Context, name: str) -> None:
    """Create database NAME on the running server."""
    try:
        postgresql = _manager(ctx)
        if postgresql.database_exists(name):
            click.secho(f"   Database {name} already exists", fg="yellow")
            return
        postgresql.create_database(name)
    except EmbeddedError as e:
        _fail(e)
        return

    click.secho(f"✅ Created {name}", fg="green")
    click.echo(f"   {postgresql.settings.url(name)}")


@cli.command()
@click.argument("name")
@click.pass_context
def dropdb(ctx: click.Context, name: str) -> None:
    """Drop database NAME if it exists."""
    try:
        postgresql = _manager(ctx)
        postgresql.drop_database(name)
    except EmbeddedError as e:
        _fail(e)
        return

    click.secho(f"✅ Dropped {name}", fg="green")


# ── Extensions ──────────────────────────────────────────────────


@cli.group()
def extensions() -> None:
    """Extensions — list, install and uninstall."""


@extensions.command("list")
@click.option("--installed", is_flag=True, help="Only show installed extensions.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def extensions_list(ctx: click.Context, installed: bool, as_json: bool) -> None:
    """Show available (or installed) extensions."""
    from pg_embedded.core.services import extensions as ext

    try:
        if installed:
            items = [e.model_dump(mode="json") for e in ext.get_installed_extensions(_manager(ctx).settings)]
        else:
            items = [e.model_dump(mode="json") for e in ext.get_available_extensions()]
    except EmbeddedError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(items, indent=2))
        return

    if not items:
        click.echo("   (none)")
        return
    for item in items:
        label = f"{item['namespace']}:{item['name']}"
        detail = item.get("version") or item.get("description", "")
        click.secho(f"   • {label} ", fg="cyan", nl=False)
        click.echo(detail)


@extensions.command("install")
@click.argument("namespace")
@click.argument("name")
@click.option("--version", "requirement", default="*", help="Extension version requirement.")
@click.pass_context
def extensions_install(ctx: click.Context, namespace: str, name: str, requirement: str) -> None:
    """Install extension NAME from NAMESPACE."""
    from pg_embedded.core.services import extensions as ext

    req = _parse_requirement(requirement)
    try:
        installed = ext.install(_manager(ctx).settings, namespace, name, req)
    except EmbeddedError as e:
        _fail(e)
        return

    click.secho(f"✅ Installed {namespace}:{name} {installed.version}", fg="green", bold=True)
    click.echo(f"   Files: {len(installed.files)}")


@extensions.command("uninstall")
@click.argument("namespace")
@click.argument("name")
@click.pass_context
def extensions_uninstall(ctx: click.Context, namespace: str, name: str) -> None:
    """Remove extension NAME from NAMESPACE."""
    from pg_embedded.core.services import extensions as ext

    try:
        removed = ext.uninstall(_manager(ctx).settings, namespace, name)
    except EmbeddedError as e:
        _fail(e)
        return

    if removed:
        click.secho(f"✅ Uninstalled {namespace}:{name}", fg="green")
    else:
        click.secho(f"   {namespace}:{name} is not installed", fg="yellow")


if __name__ == "__main__":
    cli()
