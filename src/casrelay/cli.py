"""
Command-line entry point.

Usage:
  casrelay serve [--config PATH] [--host HOST] [--port PORT]
  casrelay login USERNAME [--config PATH] [--password-stdin]
  casrelay config init [PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from dataclasses import replace
from pathlib import Path

from casrelay import __version__
from casrelay.auth import CasLoginOrchestrator
from casrelay.infra.config import ConfigAdapter, copy_default_config, load_config
from casrelay.infra.paths import DEFAULT_CONFIG_FILENAME
from casrelay.infra.transport import create_transport
from casrelay.schemas import AppConfig, LoginSuccess

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def _load_app_config(path: Path | None) -> AppConfig:
    return ConfigAdapter(load_config(path)).get_app_config()


def _cmd_serve(args: argparse.Namespace) -> int:
    from casrelay.server import run_server

    cfg = _load_app_config(args.config)
    server = cfg.server
    if args.host:
        server = replace(server, host=args.host)
    if args.port:
        server = replace(server, port=args.port)
    cfg = replace(cfg, server=server)

    setup_logging(cfg.server.log_level)
    run_server(cfg)
    return 0


async def _login_once(cfg: AppConfig, username: str, password: str) -> int:
    async with create_transport(cfg.transport.backend, cfg.transport) as transport:
        outcome = await CasLoginOrchestrator(transport, cfg.upstream).login(
            username, password
        )

    if isinstance(outcome, LoginSuccess):
        print(outcome.token)
        return 0
    print(f"{outcome.kind}: {outcome.detail}", file=sys.stderr)
    return 1


def _cmd_login(args: argparse.Namespace) -> int:
    cfg = _load_app_config(args.config)
    setup_logging(cfg.server.log_level if args.verbose else "WARNING")

    if args.password_stdin:
        password = sys.stdin.readline().rstrip("\r\n")
    else:
        password = getpass.getpass("Password: ")
    if not args.username or not password:
        print("username and password are required", file=sys.stderr)
        return 2

    return asyncio.run(_login_once(cfg, args.username, password))


def _cmd_config_init(args: argparse.Namespace) -> int:
    target = args.path or Path.cwd() / DEFAULT_CONFIG_FILENAME
    try:
        copy_default_config(target)
    except FileExistsError as e:
        print(e, file=sys.stderr)
        return 1
    print(f"Wrote {target}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="casrelay", description="Credential relay for CAS login portals."
    )
    parser.add_argument("--version", action="version", version=__version__)
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the RPC server")
    serve.add_argument("--config", type=Path, default=None)
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)
    serve.set_defaults(func=_cmd_serve)

    login = sub.add_parser("login", help="perform one login and print the token")
    login.add_argument("username")
    login.add_argument("--config", type=Path, default=None)
    login.add_argument("--password-stdin", action="store_true")
    login.add_argument("-v", "--verbose", action="store_true")
    login.set_defaults(func=_cmd_login)

    config = sub.add_parser("config", help="manage settings files")
    config_sub = config.add_subparsers(dest="config_command", required=True)
    init = config_sub.add_parser("init", help="write the sample settings file")
    init.add_argument("path", type=Path, nargs="?", default=None)
    init.set_defaults(func=_cmd_config_init)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return int(args.func(args))
    except (FileNotFoundError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
