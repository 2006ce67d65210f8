from __future__ import annotations

import json

import pytest

from pushcp import __version__
from pushcp.cli import build_parser, expand_port_suffix, main
from pushcp.constants import DEFAULT_PORT
from pushcp.fs import DirectoryCursor
from pushcp.net import TcpListener, split_port
from pushcp.receiver import Receiver


def test_split_port():
    assert split_port("example.org") == ("example.org", DEFAULT_PORT)
    assert split_port("10.0.0.2:4000") == ("10.0.0.2", 4000)
    with pytest.raises(ValueError):
        split_port("host:http")
    with pytest.raises(ValueError):
        split_port("host:70000")


def test_port_suffix_on_command():
    assert expand_port_suffix(["send:4000", "a", "b"]) == ["send", "--port", "4000", "a", "b"]
    assert expand_port_suffix(["--json", "getserv:99"]) == ["--json", "getserv", "--port", "99"]
    assert expand_port_suffix(["sendto", "h", "get:1"]) == ["sendto", "h", "get:1"]


def test_parser_commands():
    p = build_parser()
    args = p.parse_args(expand_port_suffix(["sendto:5000", "peer", "x", "y"]))
    assert args.cmd == "sendto"
    assert args.port == 5000
    assert args.host == ("peer", DEFAULT_PORT)
    assert args.paths == ["x", "y"]

    args = p.parse_args(["get", "peer:7000", "--dest", "/tmp"])
    assert args.host == ("peer", 7000)
    assert args.dest == "/tmp"
    assert args.port is None

    args = p.parse_args(["getserv"])
    assert args.bind == "0.0.0.0"
    assert args.dest == "."


def test_sender_needs_paths():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["send"])


def test_main_sendto(tmp_path, background, capsys):
    src = tmp_path / "doc.txt"
    src.write_bytes(b"contents")
    dest = tmp_path / "dest"
    dest.mkdir()

    with TcpListener("127.0.0.1", 0) as listener:
        host, port = listener.address

        def serve():
            with listener.accept() as conn:
                return Receiver(conn, DirectoryCursor(dest)).run()

        peer = background(serve)
        rc = main(["--no-progress", "--json", "sendto", f"{host}:{port}", str(src)])
        stats = peer.join()

    assert rc == 0
    assert (dest / "doc.txt").read_bytes() == b"contents"
    assert stats.files_transferred == 1
    summary = json.loads(capsys.readouterr().out)
    assert summary["role"] == "sender"
    assert summary["files"] == 1
    assert summary["bytes"] == 8


def test_main_connection_refused(tmp_path):
    with TcpListener("127.0.0.1", 0) as listener:
        host, port = listener.address
    assert main(["--no-progress", "get", f"{host}:{port}", "--dest", str(tmp_path)]) == 1


@pytest.mark.parametrize("argv", [["getserv", "--port", "70000"], ["getserv:70000"], ["send", "--port", "0", "x"]])
def test_port_out_of_range(argv):
    with pytest.raises(SystemExit) as exc:
        build_parser().parse_args(expand_port_suffix(argv))
    assert exc.value.code == 2


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        build_parser().parse_args(["--version"])
    assert exc.value.code == 0
    assert capsys.readouterr().out.strip() == f"pushcp {__version__}"
