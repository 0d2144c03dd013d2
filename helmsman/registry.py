"""
Command registry: root command names bound to command trees on a host.

What this module provides
- CommandRegistry(host): maps root command names to CommandTree instances and
  binds each tree to the host's command facility through host.bind(name,
  executor, completer).

Registration
- register(name, tree):
  • blank name → SkippedRegistrationWarning, False
  • store the tree, then bind it; a BindingError/LookupError raised by the host,
    or a False result, rolls the map back (restoring any previous tree), is
    logged, and returns False. Any other host error propagates after the same
    rollback.
- register(name, {path: descriptor, ...}):
  • empty mapping → SkippedRegistrationWarning, False
  • an existing tree for name is extended in place; otherwise a new tree is built
    with base permission "<name>.use" and usage "Usage: /<name> <subcommand>".
  • then binds exactly like register(name, tree). Construction errors propagate.
- include(name, pattern): import the modules matching a module glob and register
  every module-level CommandDescriptor found there under name.

Thread-safety
- The name -> tree map is guarded by a re-entrant lock (registration may run from
  several initialization paths). There is no removal operation.
- Names are folded (case-insensitive) the same way hosts fold their labels.
"""
import importlib
import inspect
import logging
import threading
from collections.abc import Mapping

from .descriptors import CommandDescriptor
from .faults import *
from .trees import CommandTree
from .utils import Unset, fold, mglob, mirror

logger = logging.getLogger(__name__)


def _skip(name, reason, code):
    logger.warning("cannot register command %r: %s", name, reason)
    trigger(SkippedRegistrationWarning(
        "cannot register command %r: %s" % (name, reason),
        code=code,
        title="skipped registration",
        hint="pass a non-blank root command name and at least one descriptor",
    ))


class CommandRegistry:
    """
    Registry of root commands for one host.

    Fields (read-only)
    - host:  the object whose bind(name, executor, completer) wires trees in.
    - names: sorted tuple of registered root command names (folded).

    Names are case-insensitive, like host labels: "Team" and "team" share one entry.
    """

    host = mirror("host")

    def __init__(self, host):
        if not callable(getattr(host, "bind", None)):
            raise TypeError("command-registry host must provide a bind(name, executor, completer) method")
        self._host = host
        self._trees = {}
        self._lock = threading.RLock()

    def __repr__(self):
        return "command-registry(host=%r, names=%r)" % (self._host, self.names)

    def __contains__(self, name):
        return isinstance(name, str) and fold(name) in self._trees

    def __iter__(self):
        return iter(self.names)

    def __len__(self):
        return len(self._trees)

    @property
    def names(self):
        return tuple(sorted(self._trees.copy()))

    def tree(self, name, /):
        """
        return the tree registered for a root command name, or None.
        """
        return self._trees.get(fold(name))

    def registered(self, name, /):
        return fold(name) in self._trees

    def register(self, name, source, /):
        """
        register a CommandTree, or a mapping of path -> CommandDescriptor, under name.

        returns True when the host accepted the binding, False otherwise.
        """
        if not isinstance(name, str):
            raise TypeError("command-registry name must be a string")
        if not name.strip():
            _skip(name, "command name is empty", FaultCode.BLANK_COMMAND_NAME)
            return False
        if isinstance(source, CommandTree):
            return self._bind(name, source)
        if isinstance(source, Mapping):
            return self._populate(name, source)
        raise TypeError("command-registry register() source must be a command tree or a mapping of descriptors")

    def include(self, name, pattern, /):
        """
        discover module-level CommandDescriptors matching a module glob and register them.

        raises TypeError when a matched module cannot be imported.
        """
        if not isinstance(pattern, str):
            raise TypeError("include() argument must be a string")

        def imp(module):
            try:
                return importlib.import_module(module)
            except ImportError:
                raise TypeError(f"unable to import module {module!r}")

        found = {}
        for module in map(imp, mglob(pattern)):
            for _, object in inspect.getmembers(module):
                if isinstance(object, CommandDescriptor):
                    found[object.path] = object
        return self.register(name, found)

    def _populate(self, name, descriptors):
        if not descriptors:
            _skip(name, "descriptors map is empty", FaultCode.EMPTY_DESCRIPTORS)
            return False
        with self._lock:
            if (tree := self._trees.get(fold(name))) is not None:
                tree.include(descriptors)
            else:
                tree = (CommandTree.Builder()
                        .base_permission(fold(name) + ".use")
                        .usage("Usage: /" + name + " <subcommand>")
                        .descriptors(descriptors)
                        .build())
            return self._bind(name, tree)

    def _restore(self, key, previous):
        if previous is Unset:
            del self._trees[key]
        else:
            self._trees[key] = previous

    def _bind(self, name, tree):
        with self._lock:
            previous = self._trees.get(key := fold(name), Unset)
            self._trees[key] = tree
            try:
                if self._host.bind(name, tree.executor, tree.completer) is False:
                    raise BindingError(
                        "host rejected command %r" % name,
                        code=FaultCode.REJECTED_BINDING,
                        title="rejected binding",
                        hint="check that the command is declared by the host",
                    )
            except (BindingError, LookupError) as error:
                self._restore(key, previous)
                logger.error("failed to register command %r: %s", name, error)
                return False
            except BaseException:
                self._restore(key, previous)
                raise
        logger.debug("registered command %r with %d handler(s)", name, len(tree.paths()))
        return True


__all__ = (
    "CommandRegistry",
)
