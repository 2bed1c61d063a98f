"""
PostgreSQL command builders — options in, argv out.

Each builder knows one utility's flags and nothing else. Running the
result is ``adapters.shell.command.run_command``'s job:

    initdb = InitDb(program_dir=settings.binary_dir(), pgdata=settings.data_dir,
                    auth="password", pwfile=settings.password_file,
                    username="postgres", encoding="UTF8")
    run_command(initdb.build(), env=initdb.env)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class ShutdownMode(StrEnum):
    """``pg_ctl stop --mode`` values."""

    SMART = "smart"
    FAST = "fast"
    IMMEDIATE = "immediate"


@dataclass
class CommandBuilder:
    """Shared plumbing: program location and extra environment."""

    program_dir: Path | None = None
    env: dict[str, str] = field(default_factory=dict)

    program = ""

    def program_path(self) -> str:
        name = f"{self.program}.exe" if sys.platform == "win32" else self.program
        if self.program_dir is None:
            return name
        return str(Path(self.program_dir) / name)

    def args(self) -> list[str]:
        return []

    def build(self) -> list[str]:
        return [self.program_path(), *self.args()]


@dataclass
class InitDb(CommandBuilder):
    program = "initdb"

    pgdata: Path | None = None
    auth: str | None = None
    pwfile: Path | None = None
    username: str | None = None
    encoding: str | None = None
    locale: str | None = None

    def args(self) -> list[str]:
        args: list[str] = []
        if self.auth:
            args += ["-A", self.auth]
        if self.pwfile:
            args += ["--pwfile", str(self.pwfile)]
        if self.username:
            args += ["-U", self.username]
        if self.encoding:
            args += ["-E", self.encoding]
        if self.locale:
            args += ["--locale", self.locale]
        if self.pgdata:
            args += ["-D", str(self.pgdata)]
        return args


def quote_option(value: str) -> str:
    """Single-quote ``value`` for the shell command line pg_ctl starts postgres with."""
    return "'" + value.replace("'", "'\\''") + "'"


@dataclass
class PgCtl(CommandBuilder):
    """``pg_ctl start|stop|status``; ``mode`` is the sub-command.

    ``options`` and ``configuration`` (rendered as ``-c key='value'``) are
    joined into the single ``-o`` string pg_ctl hands to postgres.
    """

    program = "pg_ctl"

    mode: str = "status"
    pgdata: Path | None = None
    log: Path | None = None
    options: list[str] = field(default_factory=list)
    configuration: dict[str, str] = field(default_factory=dict)
    shutdown_mode: ShutdownMode | None = None
    wait: bool = False
    timeout: int | None = None

    def args(self) -> list[str]:
        args = [self.mode]
        if self.pgdata:
            args += ["-D", str(self.pgdata)]
        if self.log:
            args += ["-l", str(self.log)]
        options = list(self.options)
        for key, value in self.configuration.items():
            options += ["-c", f"{key}={quote_option(value)}"]
        if options:
            args += ["-o", " ".join(options)]
        if self.shutdown_mode:
            args += ["-m", str(self.shutdown_mode)]
        if self.timeout is not None:
            args += ["-t", str(self.timeout)]
        if self.wait:
            args.append("-w")
        return args


@dataclass
class Psql(CommandBuilder):
    """Single-statement ``psql`` producing bare, unaligned rows."""

    program = "psql"

    command: str | None = None
    host: str | None = None
    port: int | None = None
    username: str | None = None
    dbname: str | None = None
    no_psqlrc: bool = True
    no_align: bool = True
    tuples_only: bool = True

    def args(self) -> list[str]:
        args: list[str] = []
        if self.host:
            args += ["-h", self.host]
        if self.port:
            args += ["-p", str(self.port)]
        if self.username:
            args += ["-U", self.username]
        if self.dbname:
            args += ["-d", self.dbname]
        if self.command is not None:
            args += ["-c", self.command]
        if self.no_psqlrc:
            args.append("--no-psqlrc")
        if self.no_align:
            args.append("--no-align")
        if self.tuples_only:
            args.append("--tuples-only")
        return args


@dataclass
class PgConfig(CommandBuilder):
    """``pg_config`` with one or more ``--<item>`` queries (libdir, sharedir, ...)."""

    program = "pg_config"

    items: list[str] = field(default_factory=list)

    def args(self) -> list[str]:
        return [f"--{item}" for item in self.items]


@dataclass
class Postgres(CommandBuilder):
    program = "postgres"

    version: bool = False

    def args(self) -> list[str]:
        return ["--version"] if self.version else []
