"""
Command-line tool to create, read and modify keyfiles.

Keys given on the command line can be written as:

- "#x" followed by hexadecimal digits (#x12ab)
- "@" followed by base64 (@Eqs=)
- "-" to read the key from stdin
- anything else is taken verbatim (UTF-8)

Usage:
    keyfile random secret.key 32
    keyfile get secret.key
    keyfile rekey secret.key
    keyfile offer secret.key /tmp/key.pipe
"""

from __future__ import annotations

import argparse
import base64
import binascii
import json
import logging
import signal
import sys
from pathlib import Path
from typing import BinaryIO, List, Optional

from keyfile.core.exceptions import KeyfileError, MalformedPacketError
from keyfile.core.loader import load_key, rekey, write_random, write_secret
from keyfile.core.offer import offer_key
from keyfile.security.crypto import MAGIC, Keyfile
from keyfile.security.kdf import kdf_params_to_dict
from keyfile.security.keystore import (
    assess_keyring_backend,
    delete_passphrase,
    save_passphrase,
)

from .context import CliContext, build_context
from .logging_config import configure_logging
from .passphrase import passphrase_provider, prompt_passphrase

logger = logging.getLogger(__name__)


def decode_key(spec: str, stdin: Optional[BinaryIO] = None) -> bytes:
    """Decode a key argument according to its prefix."""
    if spec == "-":
        return (stdin or sys.stdin.buffer).read()
    try:
        if spec.startswith("#x"):
            return bytes.fromhex(spec[2:])
        if spec.startswith("@"):
            return base64.b64decode(spec[1:], validate=True)
    except (ValueError, binascii.Error) as e:
        raise KeyfileError(f"decoding key: {e}") from e
    return spec.encode("utf-8")


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid size: {value!r}")
    if n <= 0:
        raise argparse.ArgumentTypeError(f"n must be positive: {n}")
    return n


# ----------------------------------------------------------------------
# Commands
# ----------------------------------------------------------------------

def cmd_get(ctx: CliContext, args: argparse.Namespace) -> None:
    key = load_key(args.keyfile, passphrase_provider(ctx))
    if args.raw:
        sys.stdout.buffer.write(key)
        sys.stdout.buffer.flush()
    else:
        print(base64.b64encode(key).decode("ascii"))


def cmd_set(ctx: CliContext, args: argparse.Namespace) -> None:
    key = decode_key(args.key)
    write_secret(args.keyfile, passphrase_provider(ctx, confirm=True), key)


def cmd_rekey(ctx: CliContext, args: argparse.Namespace) -> None:
    rekey(
        args.keyfile,
        passphrase_provider(ctx, tag="Old "),
        passphrase_provider(ctx, tag="New ", confirm=True, allow_stored=False),
    )


def cmd_random(ctx: CliContext, args: argparse.Namespace) -> None:
    write_random(args.keyfile, passphrase_provider(ctx, confirm=True), args.size)


def cmd_offer(ctx: CliContext, args: argparse.Namespace) -> None:
    key = load_key(args.keyfile, passphrase_provider(ctx))
    # SIGTERM cancels a pending offer the same way Ctrl-C does
    previous = signal.signal(signal.SIGTERM, signal.default_int_handler)
    try:
        offer_key(args.pipe, key)
    finally:
        signal.signal(signal.SIGTERM, previous)


def cmd_info(ctx: CliContext, args: argparse.Namespace) -> None:
    try:
        kf = Keyfile.parse(Path(args.keyfile).read_bytes())
    except OSError as e:
        raise KeyfileError(f"read {args.keyfile}: {e}") from e
    except MalformedPacketError as e:
        raise KeyfileError(f"parse {args.keyfile}: {e}") from e

    info = {
        "magic": MAGIC.hex(),
        "populated": not kf.is_empty,
        "nonce_bytes": len(kf.nonce),
        "ciphertext_bytes": len(kf.ciphertext),
        "kdf": kdf_params_to_dict(kf.salt),
    }
    print(json.dumps(info, indent=2))


def cmd_remember(ctx: CliContext, args: argparse.Namespace) -> None:
    if not ctx.keyring_account:
        raise KeyfileError("remember: --keyring ACCOUNT is required")
    if not args.force:
        secure, msg = assess_keyring_backend()
        if not secure:
            raise KeyfileError(
                f"refusing to store passphrase in OS keystore: {msg}; "
                "pass --force to override if you understand the risk"
            )
    pp = prompt_passphrase(confirm=True, empty_ok=ctx.empty_ok)
    save_passphrase(ctx.keyring_service, ctx.keyring_account, pp)


def cmd_forget(ctx: CliContext, args: argparse.Namespace) -> None:
    if not ctx.keyring_account:
        raise KeyfileError("forget: --keyring ACCOUNT is required")
    delete_passphrase(ctx.keyring_service, ctx.keyring_account)


# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------

def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keyfile",
        description="Create, read, or modify the contents of a keyfile.",
        epilog=(
            'Key arguments: "#x" prefix for hex, "@" prefix for base64, '
            '"-" to read stdin, otherwise taken verbatim.'
        ),
    )
    parser.add_argument(
        "--empty-ok",
        action="store_true",
        help="Allow an empty passphrase (not recommended)",
    )
    parser.add_argument(
        "--keyring",
        dest="keyring_account",
        metavar="ACCOUNT",
        default=None,
        help="Read the passphrase from this OS keyring account",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log output (-v info, -vv debug)",
    )
    sub = parser.add_subparsers(dest="command", required=True, metavar="<command>")

    p = sub.add_parser("get", help="Print the contents of the key file to stdout")
    p.add_argument("keyfile")
    p.add_argument("--raw", action="store_true", help="Write key output as binary")
    p.set_defaults(func=cmd_get)

    p = sub.add_parser("set", help="Create or replace the key file with the given key")
    p.add_argument("keyfile")
    p.add_argument("key")
    p.set_defaults(func=cmd_set)

    p = sub.add_parser("rekey", help="Change the passphrase on an existing key file")
    p.add_argument("keyfile")
    p.set_defaults(func=cmd_rekey)

    p = sub.add_parser("random", help="Write a randomly-generated key of n bytes to the key file")
    p.add_argument("keyfile")
    p.add_argument("size", type=_positive_int, metavar="n")
    p.set_defaults(func=cmd_random)

    p = sub.add_parser("offer", help="Write the contents of a key file to a named pipe")
    p.add_argument("keyfile")
    p.add_argument("pipe")
    p.set_defaults(func=cmd_offer)

    p = sub.add_parser("info", help="Describe a key file without decrypting it")
    p.add_argument("keyfile")
    p.set_defaults(func=cmd_info)

    p = sub.add_parser("remember", help="Store a passphrase in the OS keyring (needs --keyring)")
    p.add_argument("--force", action="store_true", help="Skip the keyring backend check")
    p.set_defaults(func=cmd_remember)

    p = sub.add_parser("forget", help="Remove a stored passphrase from the OS keyring (needs --keyring)")
    p.set_defaults(func=cmd_forget)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    try:
        ctx = build_context(
            empty_ok=args.empty_ok,
            verbose=args.verbose,
            keyring_account=args.keyring_account,
        )
    except ValueError as e:
        parser.error(str(e))
    configure_logging(ctx.log_level)

    try:
        args.func(ctx, args)
    except KeyboardInterrupt:
        print("\ninterrupted", file=sys.stderr)
        return 130
    except (KeyfileError, OSError) as e:
        logger.debug("command %s failed", args.command, exc_info=True)
        print(f"keyfile {args.command}: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
