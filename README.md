# varshell

varshell keeps a program's variables in a registry that stays sorted by name.
It serves that registry over a line-based TCP shell, so connected clients can
read the current values while the program keeps running.

## Installing

```
pip install .
```

To run the test suite, install the `test` extra:

```
pip install ".[test]"
pytest
```

## Running the demo server

```
varshell [--host HOST] [--port PORT] [--max-connections N] [--max-pending N]
```

By default the server listens on `0.0.0.0` port 8080. It serves up to five
clients at once and queues up to two more. The registry it serves comes from
`varshell.main.build_demo_registry()` and holds these variables:

- `/stable/my_bool`, a bool
- `/stable/stable_float`, a float
- `/stable/stable_int`, a uint16
- `/time/my_time`, an int64 that holds the current Unix time in seconds
- `/rand/rand_num`, an int32 that gets a new random number each time it is read

Press Ctrl-C to stop the server. To connect, use any line-oriented TCP client,
for example `nc localhost 8080`.

## The shell

Each client gets its own `Session`. The prompt shows the session's current
directory, followed by `> `. Words on a line are split on spaces and
newlines, and the shell keeps at most 16 of them.

| command    | effect                                                    |
|------------|-----------------------------------------------------------|
| `hello`    | greets the client                                         |
| `help`     | lists the commands and what they do                       |
| `exit`     | replies `Goodbye!` and closes the connection              |
| `get NAME` | prints `NAME: value`, or `Variable not found: NAME`       |
| `set`      | accepted, but does nothing                                |
| `ls`       | lists every variable in the registry with its value       |
| `cd PATH`  | changes the session's directory; `.`, `..`, repeated slashes and absolute paths are handled |

An unknown command gets the reply `Unknown command: X. Type 'help' for info.`
The function `varshell.cli_server.resolve_path(cwd, path)` works out the new
directory for `cd`. Replies are cut to 4095 characters, and each value is cut
to 255 characters.

## Using it in your own program

```python
from varshell.registry import VarRegistry
from varshell.var import VarType
from varshell.cli_server import start_cli_server

state = {"speed": 0}

registry = VarRegistry("./save_file.txt", 100)
registry.register("/motor/speed", VarType.INT32, lambda: state["speed"], False)

server = start_cli_server(registry, "0.0.0.0", 8080, 5, 2)
# ... update state["speed"] as the program runs ...
server.stop()
```

`CliServer` can also be used as a context manager. Entering it starts the
server and leaving it stops the server. `CliServer.address` gives the bound
host and port, which is useful when you pass port 0. `CliServer.wait()` blocks
until the server stops. `CliServer.active_connections` gives the number of
clients being served.

### Variables

A variable's source is a callable that returns its current value. The source
is called on every read, so clients always see live values. `VarType` covers
these types:

- `bool` and `char`
- signed integers: `int8`, `int16`, `int32`, `int64`
- unsigned integers: `uint8`, `uint16`, `uint32`, `uint64`
- `float` and `double`
- an array form of each of the above, such as `int32[]`

`VarType.from_label("int32[]")` looks up a type by its label. An unknown
label raises `ValueError`. `VarRegistry.register` also accepts a label in
place of a `VarType`.

`Var.read()` returns the current value. An array value comes back as a list.
`Var.format_value()` gives the text that the shell shows:

- integers are wrapped to the width of their type
- floats are rounded to single precision
- floats and doubles are printed with six decimals
- arrays look like `[1, 2, 3]`
- char arrays look like `['a', 'b']`

`Var.to_json()` gives a JSON object that holds the variable's name, type,
persistence flag and formatted value.

### The registry

- `VarRegistry.get(name)` returns the variable with that name, or `None` if
  there is none.
- `VarRegistry.entry(index)` returns a variable by its position in name order,
  and raises `IndexError` when the index is out of range.
- `len()` gives the number of variables in a registry.
- Iterating over a registry yields its variables in name order.
- Registering a variable in a full registry raises `RegistryFullError`.

## What it does not do

- Clients cannot change values. `set` is accepted but does nothing.
- Nothing is saved or loaded. A registry stores its `save_path`, and each
  variable stores its `is_persistent` flag, but the package never writes or
  reads a file.
- `cd` only changes the directory shown in the prompt. `ls` always lists the
  whole registry, whatever the current directory.