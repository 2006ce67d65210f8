from __future__ import annotations

import argparse
import json
import logging
import re
import sys

from .constants import DEFAULT_PORT
from .errors import PushError
from .fs import DirectoryCursor
from . import __version__
from .net import TcpConnection, check_port, split_port
from .progress import NullProgress, TqdmProgress, TransferStats
from .receiver import Receiver
from .sender import Sender

COMMANDS = ("send", "sendto", "get", "getserv")
_PORT_SUFFIX = re.compile(r"^(%s):(\d+)$" % "|".join(COMMANDS))


def expand_port_suffix(argv: list[str]) -> list[str]:
    """Rewrite ``send:4000`` style commands into ``send --port 4000``."""
    out = list(argv)
    for i, arg in enumerate(out):
        m = _PORT_SUFFIX.match(arg)
        if m:
            out[i : i + 1] = [m.group(1), "--port", m.group(2)]
            break
        if arg in COMMANDS:
            break
    return out


def _port(value: str) -> int:
    try:
        return check_port(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def _address(value: str) -> tuple[str, int]:
    try:
        return split_port(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def _peer(args: argparse.Namespace) -> tuple[str, int]:
    host, port = args.host
    return host, args.port or port


def _progress(args: argparse.Namespace) -> NullProgress:
    return NullProgress() if args.no_progress else TqdmProgress()


def _report(role: str, stats: TransferStats, as_json: bool) -> None:
    payload = {"role": role, **stats.as_dict()}
    print(json.dumps(payload, indent=2) if as_json else payload)


def _push(conn: TcpConnection, args: argparse.Namespace) -> int:
    with conn:
        sender = Sender(conn, progress=_progress(args), sanitize_names=args.sanitize_names)
        for path in args.paths:
            sender.send_item(path)
        stats = sender.end_session()
    _report("sender", stats, args.json)
    return 1 if stats.errors else 0


def _pull(conn: TcpConnection, args: argparse.Namespace) -> int:
    with conn:
        receiver = Receiver(
            conn,
            DirectoryCursor(args.dest),
            progress=_progress(args),
            preserve_metadata=not args.no_metadata,
        )
        stats = receiver.run()
    _report("receiver", stats, args.json)
    return 1 if stats.errors else 0


def cmd_send(args: argparse.Namespace) -> int:
    return _push(TcpConnection.listening(args.bind, args.port or DEFAULT_PORT), args)


def cmd_sendto(args: argparse.Namespace) -> int:
    return _push(TcpConnection.connecting(*_peer(args)), args)


def cmd_get(args: argparse.Namespace) -> int:
    return _pull(TcpConnection.connecting(*_peer(args)), args)


def cmd_getserv(args: argparse.Namespace) -> int:
    return _pull(TcpConnection.listening(args.bind, args.port or DEFAULT_PORT), args)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pushcp",
        description="Push files and directory trees to a peer over plain TCP.",
        epilog="Any command accepts a ':port' suffix, e.g. 'sendto:4000 host file'.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    p.add_argument("--no-progress", action="store_true", help="do not draw progress bars")
    p.add_argument("--json", action="store_true", help="print the session summary as JSON")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("--port", type=_port, default=None, help=f"TCP port (default {DEFAULT_PORT})")

    def add_server(x: argparse.ArgumentParser) -> None:
        x.add_argument("--bind", default="0.0.0.0", help="address to listen on")

    def add_sending(x: argparse.ArgumentParser) -> None:
        x.add_argument("--sanitize-names", action="store_true", help="replace non-ASCII bytes in names with '_'")
        x.add_argument("paths", nargs="+", metavar="PATH", help="file or directory to send")

    def add_receiving(x: argparse.ArgumentParser) -> None:
        x.add_argument("--dest", default=".", help="directory to write into")
        x.add_argument("--no-metadata", action="store_true", help="ignore modification time and executable bit")

    send = sub.add_parser("send", help="wait for a receiver and send to it")
    add_common(send)
    add_server(send)
    add_sending(send)
    send.set_defaults(func=cmd_send)

    sendto = sub.add_parser("sendto", help="connect to a receiver and send to it")
    add_common(sendto)
    sendto.add_argument("host", type=_address, metavar="HOST[:PORT]")
    add_sending(sendto)
    sendto.set_defaults(func=cmd_sendto)

    get = sub.add_parser("get", help="connect to a sender and receive from it")
    add_common(get)
    get.add_argument("host", type=_address, metavar="HOST[:PORT]")
    add_receiving(get)
    get.set_defaults(func=cmd_get)

    getserv = sub.add_parser("getserv", help="wait for a sender and receive from it")
    add_common(getserv)
    add_server(getserv)
    add_receiving(getserv)
    getserv.set_defaults(func=cmd_getserv)

    return p


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(expand_port_suffix(sys.argv[1:] if argv is None else argv))
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    try:
        return int(args.func(args))
    except (PushError, OSError) as exc:
        logging.critical("fatal: %s", exc)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
