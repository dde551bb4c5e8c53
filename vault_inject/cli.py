"""CLI argument parsing and main entry point.

Usage::

    vault-inject --vault-url https://vault.example.com \\
        -s 'DB_{field}=secret/app/db/{field}' \\
        -s 'API_KEY=kv2://app/api/key | tr -d "\\n"' \\
        -- ./server --port 8080

Most options default to an environment variable (see ``--help``).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from vault_inject.constants import (
    APP_NAME,
    APP_VERSION,
    DEFAULT_AUTH_TYPE,
    ENV_AUTH_PATH,
    ENV_AUTH_TYPE,
    ENV_CONFIG,
    ENV_LOG_LEVEL,
    ENV_PASSWORD,
    ENV_TOKEN,
    ENV_USERNAME,
    ENV_VAULT_ADDR,
)
from vault_inject.display.console import print_error
from vault_inject.display.logging_config import setup_logging
from vault_inject.errors import VaultInjectError

module_logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description=f"{APP_NAME} v{APP_VERSION}: inject Vault secrets into commands",
        epilog=(
            "Secret mappings have the form "
            "'ENV_VAR=path/to/secret/key [| filter ...]'. Use {name} placeholders "
            "in the key and variable name to map many keys at once, e.g. "
            "'DB_{field}=secret/app/db/{field}'."
        ),
    )
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")

    parser.add_argument(
        "-s",
        "--secret",
        dest="secrets",
        action="append",
        default=[],
        metavar="MAPPING",
        help="Map secrets to environment variables (repeat once per mapping)",
    )
    parser.add_argument(
        "-c",
        "--command",
        type=str,
        default=None,
        help="Command to run (via 'sh -c') with the secrets in its environment",
    )
    parser.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Command and arguments to run, after '--' (alternative to --command)",
    )

    grp_vault = parser.add_argument_group("vault")
    grp_vault.add_argument(
        "--vault-url",
        type=str,
        default=None,
        help=f"URL of your Vault instance (env: {ENV_VAULT_ADDR})",
    )
    grp_vault.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="HTTP request timeout in seconds (default: 30)",
    )

    grp_auth = parser.add_argument_group("authentication")
    grp_auth.add_argument(
        "--auth-type",
        type=str,
        default=None,
        help=(
            "Authentication method: ldap, userpass or token "
            f"(default: {DEFAULT_AUTH_TYPE}; env: {ENV_AUTH_TYPE})"
        ),
    )
    grp_auth.add_argument(
        "--auth-path",
        type=str,
        default=None,
        help=f"Auth backend mount path if not the default (env: {ENV_AUTH_PATH})",
    )
    grp_auth.add_argument(
        "--username",
        type=str,
        default=None,
        help=f"Username for ldap/userpass (env: {ENV_USERNAME}; prompted if missing)",
    )
    grp_auth.add_argument(
        "--password",
        type=str,
        default=None,
        help=f"Password for ldap/userpass (env: {ENV_PASSWORD}; prompted if missing)",
    )
    grp_auth.add_argument(
        "--token",
        type=str,
        default=None,
        help=f"Token for the token auth type (env: {ENV_TOKEN}; prompted if missing)",
    )
    grp_auth.add_argument(
        "--no-prompt",
        action="store_true",
        default=False,
        help="Fail instead of prompting for missing credentials",
    )

    grp_cache = parser.add_argument_group("token cache")
    grp_cache.add_argument(
        "--no-cache",
        action="store_true",
        default=False,
        help="Neither read nor write the cached token",
    )
    grp_cache.add_argument(
        "--no-cache-read",
        action="store_true",
        default=False,
        help="Always log in, ignoring any cached token",
    )
    grp_cache.add_argument(
        "--no-cache-write",
        action="store_true",
        default=False,
        help="Do not save the token obtained by logging in",
    )

    grp_misc = parser.add_argument_group("misc")
    grp_misc.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help=f"YAML configuration file (env: {ENV_CONFIG})",
    )
    grp_misc.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["debug", "info", "warning", "error", "critical"],
        help=f"Logging level (default: warning; env: {ENV_LOG_LEVEL})",
    )
    grp_misc.add_argument(
        "--log-file",
        type=str,
        default=None,
        metavar="PATH",
        help="Write logs to this file instead of stderr",
    )
    return parser


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.args and args.args[0] == "--":
        args.args = args.args[1:]
    return args


def main(argv: Optional[List[str]] = None) -> None:
    """Program entry point: parse arguments, run, exit with the child's status."""
    from vault_inject.app import run
    from vault_inject.config.loader import build_settings

    args = _parse_args(argv)
    try:
        settings = build_settings(args)
        setup_logging(settings.log_level, settings.log_file)
        module_logger.debug("---- %s v%s starting ----", APP_NAME, APP_VERSION)
        code = asyncio.run(run(settings))
    except VaultInjectError as exc:
        module_logger.debug("Run failed", exc_info=True)
        print_error(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        print_error("Interrupted")
        sys.exit(130)
    sys.exit(code)
