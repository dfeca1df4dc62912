"""Pre-flight checks for a LinkedIn Studio deployment's ``.env`` file.

Loading ``AppSettings`` only proves that the required keys exist. This tool
also rejects values that load fine but break the first sign-in:

* a ``LINKEDIN_REDIRECT_URI`` that is relative, carries a fragment, uses plain
  http off localhost, or does not point at the callback route;
* an ``ACCOUNT_STORE_URL`` that is neither ``sqlite:///<path>`` nor https;
* scopes without ``openid`` (the userinfo endpoint refuses such tokens);
* outside development, session and token-encryption secrets that silently fall
  back to the LinkedIn client secret.

It can also record and verify a checksum of the file so drift is caught
between deploys::

    python -m scripts.check_env record --env-file /opt/linkedin-studio/.env \
        --hash-file /opt/linkedin-studio/.env.sha256
    python -m scripts.check_env verify --env-file /opt/linkedin-studio/.env \
        --hash-file /opt/linkedin-studio/.env.sha256
"""

from __future__ import annotations

import argparse
import hashlib
import sys
from pathlib import Path
from typing import Callable
from urllib.parse import urlsplit

from linkedin_studio.core.config import AppSettings, load_settings
from linkedin_studio.core.errors import ConfigurationError

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_CHECKSUM_ERROR = 3
EXIT_RUNTIME_ERROR = 5

CALLBACK_PATH = "/api/auth/linkedin/callback"
_LOCAL_HOSTS = {"localhost", "127.0.0.1", "[::1]"}


def _redirect_uri_problems(redirect_uri: str) -> list[str]:
    parts = urlsplit(redirect_uri)
    if not parts.scheme or not parts.netloc:
        return [f"LINKEDIN_REDIRECT_URI must be an absolute URL, got {redirect_uri!r}"]

    problems = []
    if parts.fragment:
        problems.append("LINKEDIN_REDIRECT_URI must not contain a #fragment")
    if parts.scheme == "http" and parts.hostname not in _LOCAL_HOSTS:
        problems.append("LINKEDIN_REDIRECT_URI must use https outside localhost")
    elif parts.scheme not in {"http", "https"}:
        problems.append(f"LINKEDIN_REDIRECT_URI has unsupported scheme {parts.scheme!r}")
    if not parts.path.rstrip("/").endswith(CALLBACK_PATH):
        problems.append(
            f"LINKEDIN_REDIRECT_URI should end with {CALLBACK_PATH} "
            f"(got path {parts.path or '/'!r})"
        )
    return problems


def _account_store_problems(settings: AppSettings) -> list[str]:
    store = settings.account_store
    if store.is_sqlite:
        if not store.sqlite_path:
            return ["ACCOUNT_STORE_URL sqlite:/// is missing a database path"]
        return []
    parts = urlsplit(store.url)
    if parts.scheme != "https" or not parts.netloc:
        return [
            "ACCOUNT_STORE_URL must be sqlite:///<path> or an https URL, "
            f"got {store.url!r}"
        ]
    return []


def _production_problems(settings: AppSettings) -> list[str]:
    if not settings.secure_cookies:
        return []
    problems = []
    if not settings.security.session_secret:
        problems.append(f"SESSION_SECRET must be set when APP_ENV={settings.environment}")
    if not settings.security.token_encryption_secret:
        problems.append(
            f"TOKEN_ENCRYPTION_SECRET must be set when APP_ENV={settings.environment}"
        )
    if settings.frontend_base_url and not settings.frontend_base_url.startswith("https://"):
        problems.append("FRONTEND_BASE_URL must use https outside development")
    return problems


def find_settings_problems(settings: AppSettings) -> list[str]:
    """Return human-readable problems with settings that loaded successfully."""
    problems = _redirect_uri_problems(settings.linkedin.redirect_uri)
    problems.extend(_account_store_problems(settings))

    if "openid" not in settings.oauth.scopes:
        problems.append("OAUTH_SCOPES must include openid for the userinfo endpoint")
    for name, value in (
        ("LINKEDIN_HTTP_TIMEOUT", settings.linkedin.http_timeout_seconds),
        ("OAUTH_STATE_TTL", settings.oauth.state_ttl_seconds),
        ("SESSION_TTL", settings.security.session_ttl_seconds),
    ):
        if value <= 0:
            problems.append(f"{name} must be positive, got {value}")

    problems.extend(_production_problems(settings))
    return problems


def _compute_hash(env_file: Path) -> str:
    return hashlib.sha256(env_file.read_bytes()).hexdigest()


def _validate_settings(env_file: Path) -> list[str]:
    settings = load_settings(env_file=str(env_file))
    problems = find_settings_problems(settings)
    if not problems:
        store = "sqlite" if settings.account_store.is_sqlite else "hosted"
        print(
            f"Settings OK: client {settings.linkedin.client_id[:6]}..., "
            f"redirect {settings.linkedin.redirect_uri}, {store} account store, "
            f"scopes {' '.join(settings.oauth.scopes)}"
        )
    return problems


def _record_checksum(env_file: Path, hash_file: Path) -> int:
    checksum = _compute_hash(env_file)
    hash_file.write_text(f"{checksum}\n", encoding="utf-8")
    print(f"Recorded checksum to {hash_file} ({checksum})")
    return EXIT_OK


def _verify_checksum(env_file: Path, hash_file: Path) -> int:
    if not hash_file.exists():
        print(
            f"Checksum file {hash_file} is missing; run 'record' first.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    expected = hash_file.read_text(encoding="utf-8").strip()
    actual = _compute_hash(env_file)
    if expected == actual:
        print("Environment checksum OK.")
        return EXIT_OK

    print(
        f"Environment checksum mismatch: expected {expected}, found {actual}. "
        "Review the change before restarting the sign-in service.",
        file=sys.stderr,
    )
    return EXIT_CHECKSUM_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate LinkedIn sign-in settings and detect .env drift."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for command, help_text, needs_hash in (
        ("record", "Validate settings and store the checksum baseline.", True),
        ("verify", "Validate settings and compare against the baseline.", True),
        ("check", "Validate settings only.", False),
    ):
        subparser = subparsers.add_parser(command, help=help_text)
        subparser.add_argument("--env-file", default=".env", type=Path)
        if needs_hash:
            subparser.add_argument("--hash-file", required=True, type=Path)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(f"Environment file {env_file} does not exist.", file=sys.stderr)
        return EXIT_RUNTIME_ERROR

    try:
        problems = _validate_settings(env_file)
    except ConfigurationError as exc:
        print(f"Settings validation failed. {exc.message}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    if problems:
        print("Settings validation failed:", file=sys.stderr)
        for problem in problems:
            print(f"  - {problem}", file=sys.stderr)
        return EXIT_VALIDATION_ERROR

    handlers: dict[str, Callable[[], int]] = {
        "record": lambda: _record_checksum(env_file, args.hash_file),
        "verify": lambda: _verify_checksum(env_file, args.hash_file),
        "check": lambda: EXIT_OK,
    }
    return handlers[args.command]()


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
