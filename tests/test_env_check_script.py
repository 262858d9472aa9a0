"""Tests for the environment check script."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path

import pytest

from scripts import check_env

MANAGED_ENV_KEYS = [
    "QBO_CLIENT_ID",
    "QBO_CLIENT_SECRET",
    "QBO_REDIRECT_URI",
    "QBO_ENVIRONMENT",
    "DATABASE_URL",
    "DB_HOST",
    "DB_USER",
    "DB_PASSWORD",
    "DB_NAME",
]


def _write_env(env_path: Path, **values: str) -> None:
    contents = "\n".join(f"{key}={value}" for key, value in values.items())
    env_path.write_text(contents + "\n", encoding="utf-8")


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so teardown restores whatever the .env loader writes.
    for key in MANAGED_ENV_KEYS:
        monkeypatch.setenv(key, "placeholder")
        monkeypatch.delenv(key)


def _valid_env(database_url: str, **overrides: str) -> dict[str, str]:
    values = {
        "QBO_CLIENT_ID": "abc",
        "QBO_CLIENT_SECRET": "secret",
        "QBO_REDIRECT_URI": "https://example.com/callback",
        "DATABASE_URL": database_url,
    }
    values.update(overrides)
    return values


@pytest.mark.parametrize("command", ["record", "verify", "check"])
def test_main_requires_existing_env_file(tmp_path: Path, command: str) -> None:
    env_file = tmp_path / ".missing-env"
    argv = [command, "--env-file", str(env_file)]
    if command != "check":
        argv.extend(["--hash-file", str(tmp_path / ".env.sha256")])

    assert check_env.main(argv) == check_env.EXIT_RUNTIME_ERROR


def test_check_summarizes_settings_and_probes_database(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
) -> None:
    env_file = tmp_path / ".env"
    _clear_env(monkeypatch)
    _write_env(env_file, **_valid_env(f"sqlite:///{tmp_path / 'tokens.db'}"))

    exit_code = check_env.main(["check", "--env-file", str(env_file), "--probe-db"])

    out = capsys.readouterr().out
    assert exit_code == check_env.EXIT_OK
    assert "Intuit environment: sandbox" in out
    assert "DATABASE_URL" in out
    assert "Database reachable." in out


def test_check_reports_unreachable_database(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / ".env"
    _clear_env(monkeypatch)
    _write_env(env_file, **_valid_env(f"sqlite:///{tmp_path / 'nope' / 'tokens.db'}"))

    exit_code = check_env.main(["check", "--env-file", str(env_file), "--probe-db"])

    assert exit_code == check_env.EXIT_DATABASE_ERROR


def test_record_and_verify_detects_mismatched_checksum(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / ".env"
    hash_file = tmp_path / ".env.sha256"
    database_url = f"sqlite:///{tmp_path / 'tokens.db'}"
    argv = ["--env-file", str(env_file), "--hash-file", str(hash_file)]

    _clear_env(monkeypatch)
    _write_env(env_file, **_valid_env(database_url))
    assert check_env.main(["record", *argv]) == check_env.EXIT_OK
    assert hash_file.read_text(encoding="utf-8").strip()

    _clear_env(monkeypatch)
    assert check_env.main(["verify", *argv]) == check_env.EXIT_OK

    _clear_env(monkeypatch)
    _write_env(env_file, **_valid_env(database_url, QBO_CLIENT_SECRET="rotated"))
    assert check_env.main(["verify", *argv]) == check_env.EXIT_CHECKSUM_ERROR


def test_validation_failure_for_missing_required_values(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / ".env"
    values = _valid_env(f"sqlite:///{tmp_path / 'tokens.db'}")
    del values["QBO_CLIENT_SECRET"]

    _clear_env(monkeypatch)
    _write_env(env_file, **values)

    exit_code = check_env.main(["check", "--env-file", str(env_file)])
    assert exit_code == check_env.EXIT_VALIDATION_ERROR


def test_validation_failure_when_both_database_shapes_are_set(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    env_file = tmp_path / ".env"
    values = _valid_env("postgresql://qbo@localhost/ledger", DB_HOST="localhost", DB_NAME="ledger")

    _clear_env(monkeypatch)
    _write_env(env_file, **values)

    exit_code = check_env.main(["check", "--env-file", str(env_file)])
    assert exit_code == check_env.EXIT_VALIDATION_ERROR
