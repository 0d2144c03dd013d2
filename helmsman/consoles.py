"""
In-process console host and invoker (rich-based).

What this module provides
- ConsoleInvoker: an invoker that prints notices on a rich Console and records
  them; permissions are a plain set ("*" grants everything); principal=True makes
  it eligible for restricted handlers.
- ConsoleHost: a host with a static manifest of declared root commands. It binds
  trees through bind(name, executor, completer), splits raw lines with shlex and
  routes them by root label (case-insensitive).

This is the host used by the demo in main.py and by the tests; real platforms
provide their own bind() and invoker types with the same shape.
"""
import shlex
import threading
from collections.abc import Iterable

from rich.console import Console
from rich.text import Text

from .completions import filter_completions
from .faults import *
from .utils import Unset, coalesce, fold, mirror

stdout = Console()


class ConsoleInvoker:
    """
    Invoker printing to a rich Console.

    Fields (read-only)
    - name:        display name.
    - permissions: frozenset of granted permission strings.
    - messages:    every notice/message sent to this invoker, in order.
    """

    name = mirror("name")
    permissions = mirror("permissions")
    messages = mirror("messages")

    def __init__(self, name, permissions=(), *, principal=False, console=Unset):
        if not isinstance(name, str):
            raise TypeError("console-invoker name must be a string")
        self._name = name
        self._permissions = frozenset(permissions)
        self._principal = bool(principal)
        self._console = coalesce(console, stdout)
        self._messages = []

    def __repr__(self):
        return "console-invoker(name=%r, principal=%r)" % (self._name, self._principal)

    def send(self, message):
        self._messages.append(str(message))
        self._console.print(message if not isinstance(message, str) else Text(message))

    def has_permission(self, permission):
        return "*" in self._permissions or permission in self._permissions

    def __principal__(self):
        return self if self._principal else None


def _tokenize(line):
    """
    split a raw line into tokens: shlex for strings (falling back to whitespace
    on unbalanced quotes), stripped non-empty items for iterables.
    """
    if isinstance(line, str):
        try:
            return shlex.split(line)
        except ValueError:
            return line.split()
    if isinstance(line, Iterable):
        tokens = []
        for item in line:
            if not isinstance(item, str):
                raise TypeError("console-host line must be a string or an iterable of strings")
            if item := item.strip():
                tokens.append(item)
        return tokens
    raise TypeError("console-host line must be a string or an iterable of strings")


class ConsoleHost:
    """
    Host with a static manifest of root command names.

    bind() raises UndeclaredCommandError for names missing from the manifest,
    which the registry reports as a failed registration.
    """

    def __init__(self, *declared):
        for name in declared:
            if not isinstance(name, str) or not name.strip():
                raise TypeError("console-host declared names must be non-blank strings")
        self._declared = frozenset(map(fold, declared))
        self._bindings = {}
        self._lock = threading.Lock()

    def __repr__(self):
        return "console-host(declared=%r)" % (tuple(sorted(self._declared)),)

    @property
    def declared(self):
        return self._declared

    def bound(self, name, /):
        return fold(name) in self._bindings

    def bind(self, name, executor, completer):
        if (key := fold(name)) not in self._declared:
            raise UndeclaredCommandError(
                "command %r is not declared by this host" % name,
                code=FaultCode.UNDECLARED_COMMAND,
                title="undeclared command",
                hint="add %r to the host manifest before registering it" % name,
            )
        if not callable(executor) or not callable(completer):
            raise TypeError("console-host executor and completer must be callable")
        with self._lock:
            self._bindings[key] = (executor, completer)
        return True

    def dispatch(self, invoker, line):
        """
        execute a raw line ("team invite Alice"); returns the executor's result,
        or False for empty lines and unknown root commands.
        """
        if not (tokens := _tokenize(line)):
            return False
        label, *arguments = tokens
        if (binding := self._bindings.get(fold(label))) is None:
            invoker.send(notice(FaultCode.UNKNOWN_COMMAND, label=label))
            return False
        executor, _ = binding
        return executor(invoker, label, arguments)

    def complete(self, invoker, line):
        """
        complete a raw line; a trailing space starts a new (empty) token.
        """
        tokens = _tokenize(line)
        if isinstance(line, str) and (not line or line[-1].isspace()):
            tokens.append("")
        if len(tokens) <= 1:
            return filter_completions(sorted(self._bindings.copy()), tokens[0] if tokens else "")
        label, *arguments = tokens
        if (binding := self._bindings.get(fold(label))) is None:
            return []
        _, completer = binding
        return completer(invoker, label, arguments)


__all__ = (
    "ConsoleInvoker",
    "ConsoleHost",
)
