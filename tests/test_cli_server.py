import socket

import pytest

from varshell.cli_server import (
    COMMANDS,
    CliServer,
    Command,
    Session,
    SessionExit,
    resolve_path,
    start_cli_server,
)
from varshell.registry import VarRegistry


@pytest.fixture
def registry():
    reg = VarRegistry(capacity=10)
    reg.register("/a/x", "int32", lambda: 42)
    reg.register("/a/flag", "bool", lambda: True)
    return reg


@pytest.fixture
def session(registry):
    return Session(registry)


def _recv_until(sock, marker):
    data = b""
    while not data.endswith(marker):
        chunk = sock.recv(4096)
        if not chunk:
            break
        data += chunk
    return data


def test_initial_prompt_is_root(session):
    assert session.prompt() == "/> "


def test_hello_names_client(session):
    session.client_id = 7
    assert session.execute("hello\n") == f"Hello, client on FD {7}!\n"


def test_help_lists_every_command(session):
    reply = session.execute("help\n")
    lines = reply.splitlines()
    assert lines[0] == "Available commands:"
    assert lines[1:] == [f"{c.name}: {c.desc}" for c in COMMANDS]
    assert "cd: Change the current directory" in lines


def test_commands_are_command_records(session):
    assert all(isinstance(c, Command) for c in COMMANDS)
    help_lines = session.execute("help\n").splitlines()[1:]
    names = [line.split(":", 1)[0] for line in help_lines]
    assert names == ["hello", "help", "exit", "get", "set", "ls", "cd"]


def test_exit_raises_with_goodbye(session):
    with pytest.raises(SessionExit) as info:
        session.execute("exit\n")
    assert info.value.reply == "Goodbye!\n"


def test_get_existing_variable(session):
    assert session.execute("get /a/x\n") == "/a/x: 42\n"


def test_get_missing_variable(session):
    assert session.execute("get /nope\n") == "Variable not found: /nope\n"


def test_unknown_command(session):
    assert session.execute("frob\n") == "Unknown command: frob. Type 'help' for info.\n"


@pytest.mark.parametrize("line", ["", "\n", "   \n"])
def test_blank_line_gives_no_reply(session, line):
    assert session.execute(line) == ""


def test_set_does_not_change_values(session, registry):
    assert session.execute("set /a/x 5\n") == ""
    assert registry.get("/a/x").read() == 42


def test_ls_lists_variables_in_name_order(session, registry):
    lines = session.execute("ls\n").splitlines()
    assert lines[0] == "Variables in registry:"
    assert lines[1:] == [f"{v.name}: {v.format_value()}" for v in registry]


def test_cd_changes_prompt(session):
    assert session.execute("cd /a/b\n") == ""
    assert session.cwd == "/a/b"
    session.execute("cd ..\n")
    assert session.prompt() == "/a> "


def test_only_first_sixteen_args_are_used(session):
    session.execute("cd " + " ".join(["x"] * 20) + "\n")
    assert session.cwd == "/x"


def test_resolve_relative_from_root():
    assert resolve_path("/", "b/c") == "/" + "b/c"


def test_resolve_dotdot_undoes_step():
    for cwd in ["/", "/a", "/a/b"]:
        assert resolve_path(resolve_path(cwd, "child"), "..") == cwd


def test_resolve_dotdot_at_root_stays_at_root():
    assert resolve_path("/", "../../..") == "/"


def test_resolve_absolute_ignores_cwd():
    assert resolve_path("/a/b", "/q/r") == resolve_path("/zzz", "/q/r")


def test_resolve_skips_dots_and_empty_parts():
    assert resolve_path("/", "b/./c//") == resolve_path("/", "b/c")


def test_resolve_truncates_long_paths():
    assert len(resolve_path("/", "a" * 300)) == 255


def test_server_rejects_zero_connections(registry):
    with pytest.raises(ValueError):
        CliServer(registry, "127.0.0.1", 0, 0, 1)


def test_address_requires_start(registry):
    with pytest.raises(RuntimeError):
        CliServer(registry, "127.0.0.1", 0).address


def test_server_round_trip(registry):
    server = start_cli_server(registry, "127.0.0.1", 0, 2, 2)
    try:
        with socket.create_connection(server.address, timeout=5) as client:
            assert _recv_until(client, b"> ") == b"/> "
            client.sendall(b"get /a/x\n")
            assert _recv_until(client, b"> ") == b"/a/x: 42\n/> "
            client.sendall(b"cd /a\n")
            assert _recv_until(client, b"> ") == b"/a> "
            client.sendall(b"exit\n")
            assert _recv_until(client, b"\0") == b"Goodbye!\n"
    finally:
        server.stop()


def test_server_limits_connections(registry):
    with CliServer(registry, "127.0.0.1", 0, 1, 2) as server:
        first = socket.create_connection(server.address, timeout=5)
        assert _recv_until(first, b"> ") == b"/> "
        second = socket.create_connection(server.address, timeout=0.5)
        with pytest.raises(socket.timeout):
            second.recv(16)
        first.sendall(b"exit\n")
        _recv_until(first, b"\0")
        first.close()
        second.settimeout(5)
        assert _recv_until(second, b"> ") == b"/> "
        second.close()


def test_stop_disconnects_clients(registry):
    server = start_cli_server(registry, "127.0.0.1", 0, 2, 2)
    client = socket.create_connection(server.address, timeout=5)
    assert _recv_until(client, b"> ") == b"/> "
    server.stop()
    assert client.recv(16) == b""
    client.close()