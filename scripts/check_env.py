"""Verify that the marketplace configuration is complete before starting the API.

Commands:

``check``
    Load ``AppSettings`` from the given ``.env`` file and report missing or
    malformed values (Mercado Livre client credentials, redirect URI, ...).
``record`` / ``verify``
    Validate as above, then store or compare a SHA256 baseline of the ``.env``
    file so unexpected edits are caught before a restart.
``show``
    Validate and print the effective non-secret settings as JSON.

Example::

    python -m scripts.check_env record --env-file .env --hash-file .env.sha256
    python -m scripts.check_env verify --env-file .env --hash-file .env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict

from pydantic import ValidationError

from ml_inventory.core.config import AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5


def _compute_hash(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _load_settings(env_file: Path) -> AppSettings:
    """Build settings from ``env_file``; raises ``ValidationError`` on bad input."""
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def describe_settings(settings: AppSettings) -> Dict[str, Any]:
    """Non-secret view of the effective configuration."""
    ml = settings.mercadolivre
    return {
        "environment": settings.environment,
        "database_path": settings.database_path,
        "mercadolivre": {
            "client_id": ml.client_id,
            "redirect_uri": str(ml.redirect_uri),
            "api_base_url": ml.api_base_url,
            "auth_base_url": ml.auth_base_url,
            "site_id": ml.site_id,
            "request_timeout_seconds": ml.request_timeout_seconds,
        },
        "oauth": {
            "state_ttl_seconds": settings.oauth.state_ttl_seconds,
            "refresh_buffer_seconds": settings.oauth.refresh_buffer_seconds,
        },
        "dedicated_encryption_secret": bool(settings.security.token_encryption_secret),
    }


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    """Compare the current checksum to the recorded baseline."""
    if not hash_file.exists():
        print(
            f"Checksum baseline {hash_file} is missing. "
            "Run the 'record' command first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        "Environment checksum mismatch!\n"
        f"  expected: {expected}\n"
        f"  actual:   {actual}\n"
        "Review the marketplace credentials before restarting the API.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _print_settings(settings: AppSettings) -> int:
    print(json.dumps(describe_settings(settings), indent=2))
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate marketplace settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text, needs_hash in (
        ("check", "Validate settings only.", False),
        ("show", "Validate settings and print the non-secret values.", False),
        ("record", "Validate settings and store the checksum baseline.", True),
        ("verify", "Validate settings and compare against the baseline.", True),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )
        if needs_hash:
            subparser.add_argument(
                "--hash-file",
                required=True,
                type=Path,
                help="Location of the checksum baseline.",
            )

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(f"Environment file {env_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        settings = _load_settings(env_file)
    except ValidationError as exc:
        missing = sorted(
            str(error["loc"][-1]) for error in exc.errors() if error["type"] == "missing"
        )
        if missing:
            print(f"Missing required settings: {', '.join(missing)}", file=sys.stderr)
        print(
            f"Settings validation failed:\n{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR
    except OSError as exc:
        print(f"Could not read {env_file}: {exc}", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    handlers: dict[str, Callable[[], int]] = {
        "check": lambda: EXIT_OK,
        "show": lambda: _print_settings(settings),
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
