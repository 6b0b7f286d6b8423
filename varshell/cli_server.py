"""A line-oriented TCP shell for browsing the variables in a registry."""

from __future__ import annotations

import logging
import re
import socket
import threading
from dataclasses import dataclass
from typing import Callable

from varshell.registry import VarRegistry

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1023
REPLY_LIMIT = 4096
VALUE_LIMIT = 256
PATH_LIMIT = 256
MAX_ARGS = 16

_POLL_INTERVAL = 0.2
_SEPARATORS = re.compile(r"[ \n]")


def _clip(text: str, size: int) -> str:
    """Keep at most ``size - 1`` characters, as a fixed buffer with a terminator would."""
    return text[: size - 1]


class SessionExit(Exception):
    """Raised by the exit command; ``reply`` is the farewell to send to the client."""

    def __init__(self, reply: str = "Goodbye!\n") -> None:
        super().__init__(reply)
        self.reply = reply


@dataclass(frozen=True)
class Command:
    """A shell command: its name, a one-line description and its handler."""

    name: str
    desc: str
    handler: Callable[[Session, list[str]], str]


def resolve_path(cwd: str, path: str) -> str:
    """Resolve ``path`` against ``cwd``, handling ``.``, ``..`` and repeated slashes."""
    current = "/" if path.startswith("/") else cwd
    for part in path.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            cut = current.rfind("/")
            if cut == 0:
                current = "/"
            elif cut > 0:
                current = current[:cut]
            continue
        if len(current) > 1 or (len(current) == 1 and current != "/"):
            current = _clip(current + "/", PATH_LIMIT)
        elif not current:
            current = "/"
        current = _clip(current + part, PATH_LIMIT)
    return _clip(current, PATH_LIMIT)


def _cmd_hello(session: Session, argv: list[str]) -> str:
    return f"Hello, client on FD {session.client_id}!\n"


def _cmd_help(session: Session, argv: list[str]) -> str:
    lines = "".join(f"{command.name}: {command.desc}\n" for command in COMMANDS)
    return _clip("Available commands:\n" + lines, REPLY_LIMIT)


def _cmd_exit(session: Session, argv: list[str]) -> str:
    raise SessionExit()


def _cmd_get(session: Session, argv: list[str]) -> str:
    if len(argv) < 2:
        return "Usage: get <name>\n"
    var = session.registry.get(argv[1])
    if var is None:
        return _clip(f"Variable not found: {argv[1]}\n", REPLY_LIMIT)
    value = _clip(var.format_value(), VALUE_LIMIT)
    return _clip(f"{var.name}: {value}\n", REPLY_LIMIT)


def _cmd_set(session: Session, argv: list[str]) -> str:
    # Values are read-only over the shell for now.
    return ""


def _cmd_list(session: Session, argv: list[str]) -> str:
    lines = "".join(
        f"{var.name}: {_clip(var.format_value(), VALUE_LIMIT)}\n"
        for var in session.registry
    )
    return _clip("Variables in registry:\n" + lines, REPLY_LIMIT)


def _cmd_cd(session: Session, argv: list[str]) -> str:
    if len(argv) >= 2:
        session.cwd = resolve_path(session.cwd, argv[1])
    return ""


COMMANDS: tuple[Command, ...] = (
    Command("hello", "Greets the user", _cmd_hello),
    Command("help", "Shows this list", _cmd_help),
    Command("exit", "Quits the REPL", _cmd_exit),
    Command("get", "Gets the value of a variable", _cmd_get),
    Command("set", "Sets the value of a variable", _cmd_set),
    Command("ls", "List the contents of the current directory", _cmd_list),
    Command("cd", "Change the current directory", _cmd_cd),
)

_COMMANDS_BY_NAME = {command.name: command for command in COMMANDS}


class Session:
    """The state of one client's shell: its working directory and registry."""

    def __init__(self, registry: VarRegistry) -> None:
        self.registry = registry
        self.cwd = "/"
        self.client_id: int | None = None

    def prompt(self) -> str:
        return f"{self.cwd}> "

    def execute(self, line: str) -> str:
        """Run one command line and return the reply text (possibly empty).

        Raises SessionExit when the client asks to leave.
        """
        argv = [token for token in _SEPARATORS.split(line) if token][:MAX_ARGS]
        if not argv:
            return ""
        command = _COMMANDS_BY_NAME.get(argv[0])
        if command is None:
            return _clip(
                f"Unknown command: {argv[0]}. Type 'help' for info.\n", REPLY_LIMIT
            )
        return command.handler(self, argv)


class CliServer:
    """A TCP server giving each client a Session, with a cap on live connections."""

    def __init__(
        self,
        registry: VarRegistry,
        host: str = "0.0.0.0",
        port: int = 8080,
        max_connections: int = 5,
        max_pending_connections: int = 2,
    ) -> None:
        if max_connections < 1:
            raise ValueError(f"max_connections must be at least 1, got {max_connections}")
        self.registry = registry
        self.host = host
        self.port = port
        self.max_connections = max_connections
        self.max_pending_connections = max_pending_connections
        self._listener: socket.socket | None = None
        self._thread: threading.Thread | None = None
        self._stopping = threading.Event()
        self._slots = threading.Condition()
        self._active = 0
        self._connections: set[socket.socket] = set()

    @property
    def address(self) -> tuple[str, int]:
        """The address the server is listening on."""
        if self._listener is None:
            raise RuntimeError("server is not started")
        return self._listener.getsockname()[:2]

    @property
    def active_connections(self) -> int:
        with self._slots:
            return self._active

    def start(self) -> CliServer:
        """Bind, listen and begin accepting clients on a background thread."""
        if self._listener is not None:
            raise RuntimeError("server is already started")
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.bind((self.host, self.port))
            listener.listen(self.max_pending_connections)
        except OSError:
            listener.close()
            raise
        listener.settimeout(_POLL_INTERVAL)
        logger.info("Listening on %s:%d", *listener.getsockname()[:2])
        self._listener = listener
        self._stopping.clear()
        self._thread = threading.Thread(
            target=self._accept_loop, name="varshell-listener", daemon=True
        )
        self._thread.start()
        return self

    def stop(self) -> None:
        """Stop accepting clients and close every open connection."""
        self._stopping.set()
        if self._listener is not None:
            self._listener.close()
        with self._slots:
            connections = list(self._connections)
            self._slots.notify_all()
        for conn in connections:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        if self._thread is not None:
            self._thread.join()
        self._thread = None
        self._listener = None

    def wait(self) -> None:
        """Block until the server stops."""
        if self._thread is not None:
            self._thread.join()

    def __enter__(self) -> CliServer:
        if self._listener is None:
            self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _accept_loop(self) -> None:
        listener = self._listener
        assert listener is not None
        while not self._stopping.is_set():
            with self._slots:
                if self._active >= self.max_connections:
                    logger.info(
                        "Maximum number of connections reached. "
                        "Waiting for a connection to close..."
                    )
                while self._active >= self.max_connections:
                    self._slots.wait(timeout=_POLL_INTERVAL)
                    if self._stopping.is_set():
                        return
                try:
                    conn, address = listener.accept()
                except socket.timeout:
                    continue
                except OSError:
                    if self._stopping.is_set():
                        return
                    raise
                self._active += 1
                self._connections.add(conn)
            conn.settimeout(None)
            logger.info("Accepted connection from %s", address)
            threading.Thread(
                target=self._serve, args=(conn,), name="varshell-client", daemon=True
            ).start()

    def _serve(self, conn: socket.socket) -> None:
        session = Session(self.registry)
        session.client_id = conn.fileno()
        try:
            with conn:
                conn.sendall(session.prompt().encode())
                while True:
                    data = conn.recv(READ_CHUNK_SIZE)
                    if not data:
                        logger.info("Client %s disconnected", session.client_id)
                        break
                    text = data.decode(errors="replace")
                    logger.debug("[Client %s]: %s", session.client_id, text)
                    try:
                        reply = session.execute(text)
                    except SessionExit as farewell:
                        conn.sendall(farewell.reply.encode())
                        logger.info("Client %s exited", session.client_id)
                        break
                    if reply:
                        conn.sendall(reply.encode())
                    conn.sendall(session.prompt().encode())
        except OSError as error:
            logger.warning("Connection %s failed: %s", session.client_id, error)
        finally:
            with self._slots:
                self._active -= 1
                self._connections.discard(conn)
                self._slots.notify()


def start_cli_server(
    registry: VarRegistry,
    host: str = "0.0.0.0",
    port: int = 8080,
    max_connections: int = 5,
    max_pending_connections: int = 2,
) -> CliServer:
    """Create a CliServer, start it and return it."""
    server = CliServer(registry, host, port, max_connections, max_pending_connections)
    return server.start()