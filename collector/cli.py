"""collector.cli

Command line interface entry point.

Design constraints:
- argparse-based.
- Lazy imports: do not import heavy dependencies at parse time.
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CliContext:
    repo_root: Path


def _repo_root_from_cwd() -> Path:
    return Path.cwd()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="collector",
        description="Signed telemetry ingestion: verify, normalize, persist.",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit.",
    )

    sub = parser.add_subparsers(dest="command")

    p_api = sub.add_parser("api", help="Start FastAPI server")
    p_api.add_argument("--host", default=None)
    p_api.add_argument("--port", type=int, default=None)

    p_keygen = sub.add_parser("keygen", help="Generate a client signing key pair")
    p_keygen.add_argument("--encoding", choices=["hex", "base64"], default=None)
    p_keygen.add_argument("--json", action="store_true", help="Machine-readable output.")

    p_sign = sub.add_parser("sign", help="Sign a request body file with a client private key")
    p_sign.add_argument("file", type=Path)
    p_sign.add_argument("--private-key", required=True)
    p_sign.add_argument("--encoding", choices=["hex", "base64"], default=None)

    sub.add_parser("status", help="Print config and storage status")

    return parser


def _print_version() -> None:
    from collector import __version__

    print(f"collector v{__version__}")


def _load_config(ctx: CliContext):
    from collector.core.config import Config

    return Config.from_repo_defaults(ctx.repo_root)


def _cmd_api(ctx: CliContext, args: argparse.Namespace) -> int:
    import logging

    config = _load_config(ctx)
    logging.basicConfig(
        level=config.logging.level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    host = args.host or config.api.host
    port = args.port or config.api.port

    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port, reload=False)
    return 0


def _encoding(ctx: CliContext, args: argparse.Namespace) -> str:
    if args.encoding:
        return str(args.encoding)
    cfg = ctx.repo_root / "config" / "default.yaml"
    if cfg.exists():
        return _load_config(ctx).signing.encoding
    return "hex"


def _cmd_keygen(ctx: CliContext, args: argparse.Namespace) -> int:
    from collector.security.signing import ClientKeyPair

    pair = ClientKeyPair.generate(encoding=_encoding(ctx, args))  # type: ignore[arg-type]
    if args.json:
        print(json.dumps({"public_key": pair.public_key, "private_key": pair.private_key}, indent=2, sort_keys=True))
        return 0
    print(f"public key:  {pair.public_key}")
    print(f"private key: {pair.private_key}")
    return 0


def _cmd_sign(ctx: CliContext, args: argparse.Namespace) -> int:
    from collector.security.signing import ClientKeyPair

    path: Path = args.file
    if not path.exists():
        print(f"error: {path} not found", file=sys.stderr)
        return 1

    try:
        pair = ClientKeyPair.from_private_key(args.private_key, encoding=_encoding(ctx, args))  # type: ignore[arg-type]
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    body = path.read_bytes()
    print(json.dumps({"x-fbtrex-publickey": pair.public_key, "x-fbtrex-signature": pair.sign(body)}, indent=2))
    return 0


def _cmd_status(ctx: CliContext, args: argparse.Namespace) -> int:
    from collector.core.exceptions import ConfigError

    try:
        config = _load_config(ctx)
    except ConfigError as e:
        print(f"- config: error ({e})")
        return 1

    db_path = config.db_path if config.db_path.is_absolute() else ctx.repo_root / config.db_path
    db_status = "present" if db_path.exists() else "missing"

    print("collector status")
    print(f"- config: {config.config_dir}")
    print(f"- db: {db_path} ({db_status})")
    print(f"- unique supporters: {config.storage.enforce_unique_supporters}")
    print(f"- signing encoding: {config.signing.encoding}")
    print(f"- alarm webhook: {'set' if config.alarms.webhook_url else 'not set'}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        _print_version()
        return 0

    if not args.command:
        parser.print_help()
        return 2

    ctx = CliContext(repo_root=_repo_root_from_cwd())

    dispatch: dict[str, Callable[[CliContext, argparse.Namespace], int]] = {
        "api": _cmd_api,
        "keygen": _cmd_keygen,
        "sign": _cmd_sign,
        "status": _cmd_status,
    }

    fn = dispatch.get(str(args.command))
    if fn is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 2

    return int(fn(ctx, args))


if __name__ == "__main__":
    raise SystemExit(main())
