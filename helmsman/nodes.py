"""
Command nodes, handler variants and the traversal algorithm.

What this module provides
- GenericHandler / RestrictedHandler: the two (and only two) handler variants a
  node can carry; the variant is the type.
- CommandNode: one trie node; children are keyed by the folded path segment.
- traverse(root, tokens, create=...): the single left-to-right walk shared by
  execution, completion and registration.

Traversal contract
- Tokens are consumed left to right from the root. While the path is intact each
  token is folded and looked up (or created when create=True):
  • found   → descend; the original-case token joins `matched`.
  • missing → the path breaks; this token and every later one join `remaining`
    verbatim, and no further lookups happen (no backtracking).
- A token that names an existing child is always taken as a subcommand, even when
  the node it reaches has no handler (greedy match).

Concurrency
- Child creation is atomic per key: lookups are lock-free, creation is guarded by
  a per-node lock with setdefault, so two racing registrations meet at one node.
- Handler, permission and completer are replaced together under that same lock.
- Readers (execution/completion) never lock; they see either the old or the new
  triple, never a mix.
"""
import threading
from typing import NamedTuple, final

from .utils import Unset, fold, mirror


class Handler:
    """
    Sealed base of the handler variants (GenericHandler, RestrictedHandler).
    """
    __slots__ = ("_callback",)
    __typename__ = "handler"

    callback = mirror("callback")

    def __new__(cls, *args, **kwargs):
        if cls is Handler:
            raise TypeError("type 'Handler' cannot be instantiated; use GenericHandler or RestrictedHandler")
        return super().__new__(cls)

    def __init__(self, callback, /):
        if not callable(callback):
            raise TypeError(f"{type(self).__typename__} callback must be callable")
        self._callback = callback

    def __init_subclass__(cls, **options):
        if cls.__module__ != __name__:
            raise TypeError(f"type {cls.__base__.__name__!r} is not an acceptable base type")
        super().__init_subclass__(**options)

    def __repr__(self):
        return f"{type(self).__typename__}({getattr(self._callback, '__qualname__', self._callback)!s})"


@final
class GenericHandler(Handler):
    """
    Handler callable by any invoker: callback(context) -> bool.
    """
    __slots__ = ()
    __typename__ = "generic-handler"


@final
class RestrictedHandler(Handler):
    """
    Handler callable only by principals: callback(principal, context) -> bool.

    The tree narrows the invoker first; non-principals get a notice and the
    callback is never invoked.
    """
    __slots__ = ()
    __typename__ = "restricted-handler"


class Entry(NamedTuple):
    """
    What a node does when reached: handler, permission and completer together.
    """
    handler: Handler | None = None
    permission: str | None = None
    completer: object = None


class CommandNode:
    """
    One node of the command trie.

    Fields (read-only views)
    - children:   mapping folded-segment -> CommandNode (snapshot).
    - entry:      Entry(handler, permission, completer), swapped as a whole.
    - handler:    GenericHandler | RestrictedHandler | None.
    - permission: str | None (None means unrestricted).
    - completer:  callable(context) -> iterable[str] | None.
    """
    __slots__ = ("_children", "_entry", "_lock")

    children = mirror("children")

    def __init__(self):
        self._children = {}
        self._entry = Entry()
        self._lock = threading.Lock()

    def __repr__(self):
        return "command-node(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        yield "children", tuple(self.names())
        yield from zip(Entry._fields, self._entry)

    @property
    def entry(self):
        return self._entry

    @property
    def handler(self):
        return self._entry.handler

    @property
    def permission(self):
        return self._entry.permission

    @property
    def completer(self):
        return self._entry.completer

    @property
    def executable(self):
        return self._entry.handler is not None

    def child(self, segment, /):
        """
        return the child for a segment (case-insensitive), or None.
        """
        return self._children.get(fold(segment))

    def spawn(self, segment, /):
        """
        return the child for a segment, creating it when missing (atomic per key).
        """
        if (child := self._children.get(key := fold(segment))) is not None:
            return child
        with self._lock:
            return self._children.setdefault(key, CommandNode())

    def names(self):
        """
        return a snapshot of the child segment names (order is not guaranteed).
        """
        return list(self._children.copy())

    def assign(self, *, handler=Unset, permission=Unset, completer=Unset):
        """
        replace any subset of handler/permission/completer in one step.

        Unset fields are left untouched; None clears a permission or completer.
        """
        if handler is not Unset and not isinstance(handler, GenericHandler | RestrictedHandler):
            raise TypeError("command-node handler must be a generic or restricted handler")
        if completer is not Unset and completer is not None and not callable(completer):
            raise TypeError("command-node completer must be callable")
        if permission is not Unset and permission is not None and not isinstance(permission, str):
            raise TypeError("command-node permission must be a string")
        with self._lock:
            self._entry = self._entry._replace(**{
                name: value for name, value in zip(Entry._fields, (handler, permission, completer))
                if value is not Unset
            })

    def complete(self, context, /):
        """
        return raw completion candidates for this node.

        The custom completer wins when present; otherwise the child names are offered.
        """
        if (completer := self._entry.completer) is not None:
            return [str(candidate) for candidate in (completer(context) or ())]
        return self.names()

    def walk(self):
        """
        yield this node and every descendant (depth-first, snapshot per node).
        """
        stack = [self]
        while stack:
            yield (node := stack.pop())
            stack.extend(node._children.copy().values())


class Traversal(NamedTuple):
    """
    Result of traverse(): deepest node reached plus the consumed/unconsumed tokens.
    """
    node: CommandNode
    matched: tuple
    remaining: tuple


def traverse(root, tokens, /, *, create=False):
    """
    walk tokens against root, returning Traversal(node, matched, remaining).

    - create=False: execution/completion mode; the first miss breaks the path.
    - create=True:  registration mode; misses create the child, so nothing remains.
    - empty tokens return (root, (), ()).
    """
    node = root
    matched = []
    remaining = []
    broken = False

    for token in tokens:
        # once broken, everything else is an argument
        if broken:
            remaining.append(token)
            continue

        child = node.spawn(token) if create else node.child(token)

        if child is None:
            broken = True
            remaining.append(token)
            continue

        node = child
        matched.append(token)

    return Traversal(node, tuple(matched), tuple(remaining))


__all__ = (
    "Handler",
    "GenericHandler",
    "RestrictedHandler",
    "Entry",
    "CommandNode",
    "Traversal",
    "traverse",
)
