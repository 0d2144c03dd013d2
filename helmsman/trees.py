"""
Command trees: registration, execution and completion over one root command.

What this module provides
- CommandTree: owns the trie root, a tree-wide base permission, a usage message
  and optional notice overrides; exposes the registration surface and the two
  host-facing entry points.
- CommandTree.Builder: staged construction; build() validates and hands out the
  tree once, so partially built trees never reach execution.

Execution (invoke)
1. base permission missing        → permission-denied notice
2. no tokens                      → usage notice
3. traverse(root, tokens)
4. node without handler           → unknown-subcommand notice (with usage)
5. node permission missing        → permission-denied notice
6. CommandContext(invoker, tokens, matched, remaining)
7. generic handler                → callback(context)
   restricted handler             → callback(principal, context), or a
                                    restricted-invoker notice for non-principals
invoke() always returns True: the host only learns that the line was handled.

Completion (complete)
1. base permission missing        → []
2. prefix = tokens[:-1], partial = tokens[-1] (or "")
3. traverse(root, prefix)
4. node permission missing        → []
5. node completer, else child names
6. keep candidates starting with partial (case-insensitive)

Denials are notices sent through invoker.send(text); nothing is raised.
"""
import logging
from collections.abc import Mapping
from types import MappingProxyType

from rich.text import Text
from rich.tree import Tree

from .completions import filter_completions
from .context import CommandContext, narrow
from .descriptors import CommandDescriptor
from .faults import *
from .nodes import CommandNode, GenericHandler, RestrictedHandler, traverse
from .utils import mirror, split

logger = logging.getLogger(__name__)

DEFAULT_USAGE = "Nothing here yet. Try 'help'."


def _permits(invoker, permission):
    return permission is None or bool(invoker.has_permission(permission))


def _skip(kind, path, reason):
    logger.warning("skipping %s %r: %s", kind, path, reason)
    trigger(SkippedDescriptorWarning(
        "skipped %s %r: %s" % (kind, path, reason),
        code=FaultCode.SKIPPED_DESCRIPTOR,
        title="skipped registration",
        hint="batch entries need a non-blank path and a value",
    ))


class CommandTree:
    """
    A trie of commands under one root command name.

    Fields (read-only)
    - root:            CommandNode (never carries a handler itself)
    - base_permission: str | None, checked once per call before any node check
    - usage:           str, shown for empty input and unknown subcommands
    - messages:        mapping FaultCode -> notice template overrides
    """

    root = mirror("root")
    base_permission = mirror("base_permission")
    usage = mirror("usage")
    messages = mirror("messages")

    def __init__(self, base_permission=None, usage=DEFAULT_USAGE, messages=MappingProxyType({})):
        if base_permission is not None and not isinstance(base_permission, str):
            raise TypeError("command-tree base permission must be a string")
        if not isinstance(usage, str):
            raise TypeError("command-tree usage must be a string")
        self._root = CommandNode()
        self._base_permission = base_permission
        self._usage = usage
        self._messages = dict(messages)

    def __repr__(self):
        return "command-tree(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        yield "base_permission", self._base_permission
        yield "usage", self._usage
        yield "commands", tuple(self.paths())

    def __rich__(self):
        """
        Render the command hierarchy as a rich tree (segment, handler kind, permission).
        """
        def label(segment, node):
            text = Text(segment, style="bold")
            match node.handler:
                case GenericHandler():
                    text.append("  handler", style="green")
                case RestrictedHandler():
                    text.append("  restricted", style="magenta")
            if node.permission is not None:
                text.append(f"  [{node.permission}]", style="dim")
            return text

        def grow(branch, node):
            for segment, child in sorted(node.children.items()):
                grow(branch.add(label(segment, child)), child)

        tree = Tree(Text(self._usage, style="cyan"))
        if self._base_permission is not None:
            tree.label.append(f"  [{self._base_permission}]", style="dim")
        grow(tree, self._root)
        return tree

    def paths(self):
        """
        return the folded paths of every node that carries a handler (sorted).
        """
        found = []
        stack = [((), self._root)]
        while stack:
            prefix, node = stack.pop()
            if node.executable:
                found.append(" ".join(prefix))
            stack.extend((prefix + (segment,), child) for segment, child in node.children.items())
        return sorted(found)

    # --- registration ---------------------------------------------------------

    def _locate(self, path):
        if not (segments := split(path)):
            raise BlankPathError(
                "command path %r is blank" % path,
                code=FaultCode.BLANK_PATH,
                title="blank command path",
                hint="use one or more space-separated segments (for example: 'team invite')",
            )
        return traverse(self._root, segments, create=True).node

    def register_command(self, path, callback, permission=None):
        """
        register a handler callable by any invoker: callback(context) -> bool.
        """
        handler = GenericHandler(callback)
        self._locate(path).assign(handler=handler, permission=permission)

    def register_restricted_command(self, path, callback, permission=None):
        """
        register a handler callable by principals only: callback(principal, context) -> bool.
        """
        handler = RestrictedHandler(callback)
        self._locate(path).assign(handler=handler, permission=permission)

    def register_completer(self, path, completer):
        """
        register a completion provider for a path: completer(context) -> iterable[str].
        """
        if not callable(completer):
            raise TypeError("command-tree completer must be callable")
        self._locate(path).assign(completer=completer)

    def register(self, descriptor):
        """
        register a CommandDescriptor; its handler, permission and completer replace
        whatever the node carried before (last write wins).
        """
        if not isinstance(descriptor, CommandDescriptor):
            raise TypeError("command-tree register() argument must be a command descriptor")
        traverse(self._root, descriptor.segments, create=True).node.assign(
            handler=descriptor.handler,
            permission=descriptor.permission,
            completer=descriptor.completer,
        )

    def include(self, descriptors):
        """
        fold a mapping of path -> CommandDescriptor into this tree.

        blank paths and None descriptors are skipped with a warning; each
        descriptor is registered under its own path.
        """
        if not isinstance(descriptors, Mapping):
            raise TypeError("command-tree include() argument must be a mapping")
        for path, descriptor in descriptors.items():
            if not isinstance(path, str) or not path.strip():
                _skip("descriptor", path, "blank path")
                continue
            if descriptor is None:
                _skip("descriptor", path, "no descriptor")
                continue
            self.register(descriptor)
        return self

    # --- host entry points ----------------------------------------------------

    def notify(self, invoker, code, /):
        """
        send the notice text for a handled outcome to the invoker.
        """
        message = notice(code, self._messages, usage=self._usage)
        logger.debug("notice %s for %r", code.name, invoker)
        invoker.send(message)

    def invoke(self, invoker, tokens):
        """
        execute a tokenized command line; always returns True (handled).
        """
        tokens = tuple(map(str, tokens))

        if not _permits(invoker, self._base_permission):
            self.notify(invoker, FaultCode.PERMISSION_DENIED)
            return True

        if not tokens:
            self.notify(invoker, FaultCode.MISSING_SUBCOMMAND)
            return True

        node, matched, remaining = traverse(self._root, tokens)
        entry = node.entry

        if entry.handler is None:
            self.notify(invoker, FaultCode.UNKNOWN_SUBCOMMAND)
            return True

        if not _permits(invoker, entry.permission):
            self.notify(invoker, FaultCode.PERMISSION_DENIED)
            return True

        context = CommandContext(invoker, tokens, matched, remaining)

        match entry.handler:
            case GenericHandler(callback=callback):
                result = callback(context)
            case RestrictedHandler(callback=callback):
                if (principal := narrow(invoker)) is None:
                    self.notify(invoker, FaultCode.RESTRICTED_INVOKER)
                    return True
                result = callback(principal, context)

        logger.debug("dispatched %r (remaining %r) -> %r", " ".join(matched), remaining, result)
        return True

    def complete(self, invoker, tokens):
        """
        return completion candidates for the last (partial) token.
        """
        tokens = tuple(map(str, tokens))

        if not _permits(invoker, self._base_permission):
            return []

        prefix, partial = (tokens[:-1], tokens[-1]) if tokens else ((), "")
        node, matched, remaining = traverse(self._root, prefix)

        if not _permits(invoker, node.permission):
            return []

        context = CommandContext(invoker, tokens, matched, remaining + ((partial,) if tokens else ()))
        return filter_completions(node.complete(context), partial)

    def executor(self, invoker, label, tokens):
        """
        host adapter: (invoker, label, tokens) -> bool
        """
        logger.debug("executing %r with %r", label, tokens)
        return self.invoke(invoker, tokens)

    def completer(self, invoker, label, tokens):
        """
        host adapter: (invoker, label, tokens) -> list[str]
        """
        logger.debug("completing %r with %r", label, tokens)
        return self.complete(invoker, tokens)

    class Builder:
        """
        Staged construction of a CommandTree.

        Usage
            tree = (CommandTree.Builder()
                    .base_permission("team.use")
                    .usage("Usage: /team <invite|leave>")
                    .command("team info", info)
                    .restricted_command("team invite", invite, "team.invite")
                    .completer("team invite", players)
                    .build())

        build() fails with BlankPermissionError when the base permission is blank
        and with EmptyTreeError when no command carries a handler. After a
        successful build() the builder is spent.
        """

        def __init__(self):
            self._tree = CommandTree()

        def _target(self):
            if self._tree is None:
                raise SpentBuilderError(
                    "command-tree builder was already built",
                    code=FaultCode.SPENT_BUILDER,
                    title="spent builder",
                    hint="create a new CommandTree.Builder() or register on the built tree",
                )
            return self._tree

        def _batch(self, mapping, register, kind):
            if mapping is None:
                return self
            if not isinstance(mapping, Mapping):
                raise TypeError(f"command-tree builder {kind} batch must be a mapping")
            for path, value in mapping.items():
                if not isinstance(path, str) or not path.strip():
                    _skip(kind, path, "blank path")
                    continue
                if value is None:
                    _skip(kind, path, "no value")
                    continue
                register(path, value)
            return self

        def base_permission(self, permission, /):
            if permission is not None and not isinstance(permission, str):
                raise TypeError("command-tree base permission must be a string")
            self._target()._base_permission = permission
            return self

        def usage(self, usage, /):
            if not isinstance(usage, str):
                raise TypeError("command-tree usage must be a string")
            self._target()._usage = usage
            return self

        def messages(self, messages, /):
            """override notice templates, keyed by FaultCode."""
            if not isinstance(messages, Mapping):
                raise TypeError("command-tree messages must be a mapping")
            for code, template in messages.items():
                if not isinstance(code, FaultCode) or not isinstance(template, str):
                    raise TypeError("command-tree messages must map fault-codes to strings")
            self._target()._messages.update(messages)
            return self

        def command(self, path, callback, permission=None, /):
            self._target().register_command(path, callback, permission)
            return self

        def restricted_command(self, path, callback, permission=None, /):
            self._target().register_restricted_command(path, callback, permission)
            return self

        def completer(self, path, completer, /):
            self._target().register_completer(path, completer)
            return self

        def commands(self, commands, permission=None, /):
            tree = self._target()
            return self._batch(commands, lambda path, callback: tree.register_command(path, callback, permission), "command")

        def restricted_commands(self, commands, permission=None, /):
            tree = self._target()
            return self._batch(commands, lambda path, callback: tree.register_restricted_command(path, callback, permission), "restricted command")

        def completers(self, completers, /):
            return self._batch(completers, self._target().register_completer, "completer")

        def descriptor(self, descriptor, /):
            self._target().register(descriptor)
            return self

        def descriptors(self, descriptors, /):
            tree = self._target()
            if descriptors is not None:
                tree.include(descriptors)
            return self

        def build(self):
            tree = self._target()
            if tree._base_permission is not None and not tree._base_permission.strip():
                raise BlankPermissionError(
                    "base permission cannot be blank",
                    code=FaultCode.BLANK_PERMISSION,
                    title="blank base permission",
                    hint="pass a permission such as 'team.use', or None for no base permission",
                )
            if not any(node.executable for node in tree._root.walk()):
                raise EmptyTreeError(
                    "command tree must have at least one registered command",
                    code=FaultCode.EMPTY_TREE,
                    title="empty command tree",
                    hint="register a command or a restricted command before .build()",
                )
            self._tree = None
            return tree


__all__ = (
    "CommandTree",
    "DEFAULT_USAGE",
)
