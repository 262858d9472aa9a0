"""Verify the deployment environment before starting the QuickBooks connector.

Three subcommands are available:

``check``
    Load ``AppSettings`` from the given ``.env`` file and print a short summary
    (Intuit environment, redirect URI, which database shape is active). With
    ``--probe-db`` the credential store is also opened once.
``record``
    Validate, then store the SHA256 checksum of the ``.env`` file.
``verify``
    Validate, then compare the checksum against the recorded baseline so that
    unexpected edits are caught before a restart.

Example usages::

    python -m scripts.check_env check --env-file /srv/qbo-connect/.env --probe-db

    python -m scripts.check_env record --env-file /srv/qbo-connect/.env \
        --hash-file /srv/qbo-connect/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from qbo_connect.clients import SQLTokenStore
from qbo_connect.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_DATABASE_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def _compute_hash(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    """Populate the process environment from ``env_file`` and build settings."""
    if not env_file.exists():
        raise FileNotFoundError(f"Environment file {env_file} does not exist.")
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def _describe(settings: AppSettings) -> str:
    database = settings.database
    shape = "DATABASE_URL" if database.url else "DB_HOST/DB_NAME fields"
    url = database.sqlalchemy_url().render_as_string(hide_password=True)
    return (
        f"Intuit environment: {settings.intuit.environment}\n"
        f"Redirect URI:       {settings.intuit.redirect_uri}\n"
        f"Database ({shape}): {url}\n"
        f"Token table:        {database.token_table}"
    )


def _probe_database(settings: AppSettings) -> int:
    store = SQLTokenStore(
        settings.database.sqlalchemy_url(),
        table_name=settings.database.token_table,
        create_table=False,
    )
    try:
        if not store.connect():
            print("Database probe failed; see log output above.", file=sys.stderr)
            return EXIT_DATABASE_ERROR
    finally:
        store.dispose()
    print("Database reachable.")
    return EXIT_OK


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"Expected checksum file {hash_file} is missing. "
            "Run the 'record' command first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected != actual:
        print(
            "Environment checksum mismatch!\n"
            f"  expected: {expected}\n"
            f"  actual:   {actual}",
            file=sys.stderr,
        )
        return EXIT_CHECKSUM_ERROR
    print("Environment checksum OK.")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate QuickBooks connector settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_env_file(subparser: argparse.ArgumentParser) -> None:
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env).",
        )

    check_parser = subparsers.add_parser("check", help="Validate and summarize settings.")
    add_env_file(check_parser)
    check_parser.add_argument(
        "--probe-db",
        action="store_true",
        help="Also open a connection to the credential store.",
    )

    for name, help_text in (
        ("record", "Validate settings and store the checksum baseline."),
        ("verify", "Validate settings and compare against the checksum baseline."),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        add_env_file(subparser)
        subparser.add_argument("--hash-file", required=True, type=Path)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    try:
        settings = _load_settings(env_file)
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_RUNTIME_ERROR
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    def _check() -> int:
        print(_describe(settings))
        return _probe_database(settings) if args.probe_db else EXIT_OK

    handlers: dict[str, Callable[[], int]] = {
        "check": _check,
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
