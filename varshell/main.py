"""Command-line entry point: serve a small demonstration registry."""

from __future__ import annotations

import argparse
import logging
import random
import time

from varshell.cli_server import CliServer
from varshell.registry import VarRegistry
from varshell.var import VarType

_RAND_MAX = 2**31 - 1


def build_demo_registry() -> VarRegistry:
    """Return a registry holding a few fixed values, the clock and a random number."""
    registry = VarRegistry("./save_file.txt", 100)
    registry.register("/stable/my_bool", VarType.BOOL, lambda: True, True)
    registry.register("/stable/stable_float", VarType.FLOAT, lambda: 3.14, True)
    registry.register("/stable/stable_int", VarType.UINT16, lambda: 5, True)
    registry.register("/time/my_time", VarType.INT64, lambda: int(time.time()), False)
    registry.register(
        "/rand/rand_num", VarType.INT32, lambda: random.randint(0, _RAND_MAX), False
    )
    return registry


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="varshell", description="Serve a variable registry over a TCP shell."
    )
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    parser.add_argument(
        "--max-connections", type=int, default=5, help="clients served at once"
    )
    parser.add_argument(
        "--max-pending", type=int, default=2, help="queued connections allowed"
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Start the shell server on the demo registry and run until interrupted."""
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="[Server] %(message)s")
    server = CliServer(
        build_demo_registry(),
        args.host,
        args.port,
        args.max_connections,
        args.max_pending,
    )
    server.start()
    try:
        server.wait()
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())