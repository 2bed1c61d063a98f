"""
PostgreSQL lifecycle manager.

States are derived from the filesystem on every access, never cached:

    NOT_INSTALLED → the versioned installation directory is missing
    INSTALLED     → installed, but no postgresql.conf in the data directory
    STOPPED       → initialized, no postmaster.pid
    STARTED       → postmaster.pid present

Transitions:

    setup()   NOT_INSTALLED → INSTALLED → STOPPED   (each step skipped if done)
    start()   STOPPED → STARTED
    stop()    STARTED → STOPPED
    close()   best-effort stop; temporary data dir and password file removed

The installation directory is keyed by version and shared between
managers; it is never removed. The data directory and password file
belong to exactly one manager.
"""

from __future__ import annotations

import logging
import os
import shutil
import socket
import sys
from enum import StrEnum
from pathlib import Path

from pg_embedded.adapters.postgres.commands import CommandBuilder, InitDb, PgCtl, Psql, ShutdownMode
from pg_embedded.adapters.shell.command import run_command
from pg_embedded.core.data.constants import POSTGRESQL_CONF, POSTMASTER_PID, START_LOG
from pg_embedded.core.errors import (
    CreateDatabaseError,
    DatabaseExistsError,
    DatabaseInitializationError,
    DatabaseStartError,
    DatabaseStopError,
    DropDatabaseError,
    EmbeddedError,
)
from pg_embedded.core.models.settings import Settings
from pg_embedded.core.models.version import Version, VersionRequirement
from pg_embedded.core.services.archive import archive_ops
from pg_embedded.core.services.archive.registries import Registries
from pg_embedded.core.services.archive.repository.http import HttpClient

logger = logging.getLogger(__name__)


class Status(StrEnum):
    """Lifecycle state of a PostgreSQL server."""

    NOT_INSTALLED = "not_installed"
    INSTALLED = "installed"
    STOPPED = "stopped"
    STARTED = "started"


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class PostgreSQL:
    """One embedded PostgreSQL server.

    Use as a context manager so temporary resources are always released::

        with PostgreSQL(Settings(version="=16.4.0")) as postgresql:
            postgresql.setup()
            postgresql.start()
            postgresql.create_database("test")

    Args:
        settings: Server settings; fresh temporary defaults when omitted.
        registries: Archive strategy tables, the process default when omitted.
        client: HTTP transport for archive downloads.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        registries: Registries | None = None,
        client: HttpClient | None = None,
    ):
        self.settings = settings or Settings()
        self.registries = registries
        self.client = client
        self._closed = False

        version = self.settings.version.exact_version()
        if version is not None:
            self._use_version_dir(version)

    # ── State ───────────────────────────────────────────────────

    @property
    def version(self) -> Version | None:
        """The exact version, once known."""
        return self.settings.version.exact_version()

    @property
    def status(self) -> Status:
        if not self._is_installed():
            return Status.NOT_INSTALLED
        if not self._is_initialized():
            return Status.INSTALLED
        if not (self.settings.data_dir / POSTMASTER_PID).exists():
            return Status.STOPPED
        return Status.STARTED

    def _is_installed(self) -> bool:
        version = self.version
        if version is None:
            return False
        path = self.settings.installation_dir
        return path.name == str(version) and path.exists()

    def _is_initialized(self) -> bool:
        return (self.settings.data_dir / POSTGRESQL_CONF).exists()

    def _use_version_dir(self, version: Version) -> None:
        path = self.settings.installation_dir
        if path.name != str(version):
            self.settings.installation_dir = path / str(version)

    # ── Lifecycle ───────────────────────────────────────────────

    def setup(self) -> None:
        """Install (if needed) and initialize (if needed); ends STOPPED or STARTED."""
        if not self._is_installed():
            self.install()
        if not self._is_initialized():
            self.initialize()

    def install(self) -> None:
        """Resolve, download, verify and extract the configured version."""
        url = self.settings.releases_url
        version = self.version
        logger.debug("Installing PostgreSQL %s from %s", self.settings.version, url)

        if version is None:
            version = archive_ops.get_version(url, self.settings.version, self.registries, self.client)
            self.settings.version = VersionRequirement.exact(version)
            self._use_version_dir(version)
            if self.settings.installation_dir.exists():
                logger.debug("Installation directory %s already exists", self.settings.installation_dir)
                return

        if self.settings.installation_dir.exists():
            return

        archive = archive_ops.get_archive(
            url, VersionRequirement.exact(version), self.registries, self.client,
        )
        archive_ops.extract(url, archive.data, self.settings.installation_dir, self.registries)
        logger.info("Installed PostgreSQL %s to %s", version, self.settings.installation_dir)

    def initialize(self) -> None:
        """Run initdb against the data directory.

        Raises:
            DatabaseInitializationError: initdb failed or timed out.
        """
        password_file = self.settings.password_file
        if not password_file.exists():
            password_file.parent.mkdir(parents=True, exist_ok=True)
            password_file.write_text(self.settings.password, encoding="utf-8")
            if os.name == "posix":
                password_file.chmod(0o600)

        logger.debug("Initializing database %s", self.settings.data_dir)
        initdb = InitDb(
            program_dir=self.settings.binary_dir(),
            pgdata=self.settings.data_dir,
            auth="password",
            pwfile=password_file,
            username=self.settings.username,
            encoding="UTF8",
        )
        try:
            self._execute(initdb)
        except EmbeddedError as e:
            raise DatabaseInitializationError(e) from e
        logger.info("Initialized database %s", self.settings.data_dir)

    def start(self) -> None:
        """Start the server and wait until it accepts connections.

        A port of 0 is replaced by a free ephemeral port first.

        Raises:
            DatabaseStartError: pg_ctl failed or timed out.
        """
        if self.settings.port == 0:
            self.settings.port = _ephemeral_port()

        logger.debug("Starting database %s on port %d", self.settings.data_dir, self.settings.port)
        pg_ctl = PgCtl(
            program_dir=self.settings.binary_dir(),
            mode="start",
            pgdata=self.settings.data_dir,
            log=self.settings.data_dir / START_LOG,
            options=["-F", "-p", str(self.settings.port)],
            configuration=self.settings.configuration,
            wait=True,
        )
        try:
            self._execute(pg_ctl, capture=not _is_windows())
        except EmbeddedError as e:
            raise DatabaseStartError(e) from e
        logger.info("Started database %s on port %d", self.settings.data_dir, self.settings.port)

    def stop(self) -> None:
        """Fast shutdown, waiting for completion.

        Raises:
            DatabaseStopError: pg_ctl failed or timed out.
        """
        logger.debug("Stopping database %s", self.settings.data_dir)
        pg_ctl = PgCtl(
            program_dir=self.settings.binary_dir(),
            mode="stop",
            pgdata=self.settings.data_dir,
            shutdown_mode=ShutdownMode.FAST,
            wait=True,
        )
        try:
            self._execute(pg_ctl, capture=not _is_windows())
        except EmbeddedError as e:
            raise DatabaseStopError(e) from e
        logger.info("Stopped database %s", self.settings.data_dir)

    # ── Databases ───────────────────────────────────────────────

    def create_database(self, name: str) -> None:
        logger.debug("Creating database %s on %s:%d", name, self.settings.host, self.settings.port)
        try:
            self._psql(f"CREATE DATABASE {_quote_identifier(name)}")
        except EmbeddedError as e:
            raise CreateDatabaseError(e) from e
        logger.info("Created database %s on %s:%d", name, self.settings.host, self.settings.port)

    def database_exists(self, name: str) -> bool:
        logger.debug("Checking if database %s exists on %s:%d", name, self.settings.host, self.settings.port)
        try:
            stdout = self._psql(f"SELECT 1 FROM pg_database WHERE datname={_quote_literal(name)}")
        except EmbeddedError as e:
            raise DatabaseExistsError(e) from e
        return stdout.strip() == "1"

    def drop_database(self, name: str) -> None:
        logger.debug("Dropping database %s on %s:%d", name, self.settings.host, self.settings.port)
        try:
            self._psql(f"DROP DATABASE IF EXISTS {_quote_identifier(name)}")
        except EmbeddedError as e:
            raise DropDatabaseError(e) from e
        logger.info("Dropped database %s on %s:%d", name, self.settings.host, self.settings.port)

    def _psql(self, sql: str) -> str:
        psql = Psql(
            program_dir=self.settings.binary_dir(),
            command=sql,
            host=self.settings.host,
            port=self.settings.port,
            username=self.settings.username,
        )
        stdout, _ = self._execute(psql)
        return stdout

    def _execute(self, builder: CommandBuilder, capture: bool = True) -> tuple[str, str]:
        env = {**builder.env, "PGPASSWORD": self.settings.password}
        return run_command(builder.build(), env=env, timeout=self.settings.timeout, capture=capture)

    # ── Teardown ────────────────────────────────────────────────

    def close(self) -> None:
        """Stop if running and remove temporary resources. Safe to call twice."""
        if self._closed:
            return
        self._closed = True

        if self.status is Status.STARTED:
            try:
                self.stop()
            except EmbeddedError as e:
                logger.warning("Failed to stop database %s during teardown: %s", self.settings.data_dir, e)

        if self.settings.temporary:
            try:
                shutil.rmtree(self.settings.data_dir)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("Failed to remove data directory %s: %s", self.settings.data_dir, e)
            try:
                self.settings.password_file.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Failed to remove password file %s: %s", self.settings.password_file, e)

    def __enter__(self) -> PostgreSQL:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"PostgreSQL(version={self.settings.version}, data_dir={self.settings.data_dir})"


def _ephemeral_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("0.0.0.0", 0))
        return sock.getsockname()[1]


def _is_windows() -> bool:
    return sys.platform == "win32"
