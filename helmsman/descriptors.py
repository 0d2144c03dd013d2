"""
Command descriptors: declarative registration units.

What this module provides
- CommandDescriptor: an immutable (path, handler, permission, completer) bundle.
  Exactly one handler variant is present (GenericHandler or RestrictedHandler).
- CommandDescriptor.Builder: staged construction that validates at build():
  • blank or missing path        → BlankPathError
  • both handler kinds were set  → ConflictingHandlersError
  • no handler kind was set      → MissingHandlerError
- descriptor(path, ...): decorator form, turning a function into a descriptor.

Descriptors are folded into trees with CommandTree.register()/include() or handed
to CommandRegistry.register(name, {path: descriptor, ...}).

Quick example
    invite = (CommandDescriptor.Builder()
              .path("team invite")
              .restricted(lambda player, context: ...)
              .permission("team.invite")
              .completer(lambda context: ["Alice", "Bob"])
              .build())

    @descriptor("team leave", restricted=True)
    def leave(player, context):
        ...
"""
from .faults import *
from .nodes import GenericHandler, RestrictedHandler
from .utils import Unset, mirror, split


class CommandDescriptor:
    """
    Immutable registration unit: path + one handler variant + optional permission/completer.

    Fields (read-only)
    - path:       str, as given (segments are split on whitespace when registered).
    - segments:   tuple[str, ...]
    - handler:    GenericHandler | RestrictedHandler
    - permission: str | None
    - completer:  callable(context) -> iterable[str] | None
    """
    __slots__ = ("_path", "_segments", "_handler", "_permission", "_completer")

    path = mirror("path")
    segments = mirror("segments")
    permission = mirror("permission")

    def __init__(self, path, handler, /, permission=None, completer=None):
        if not isinstance(path, str):
            raise TypeError("command-descriptor path must be a string")
        if not (segments := split(path)):
            raise BlankPathError(
                "command path %r is blank" % path,
                code=FaultCode.BLANK_PATH,
                title="blank command path",
                hint="use one or more space-separated segments (for example: 'team invite')",
            )
        if not isinstance(handler, GenericHandler | RestrictedHandler):
            raise TypeError("command-descriptor handler must be a generic or restricted handler")
        if permission is not None and not isinstance(permission, str):
            raise TypeError("command-descriptor permission must be a string")
        if completer is not None and not callable(completer):
            raise TypeError("command-descriptor completer must be callable")
        object.__setattr__(self, "_path", path)
        object.__setattr__(self, "_segments", segments)
        object.__setattr__(self, "_handler", handler)
        object.__setattr__(self, "_permission", permission)
        object.__setattr__(self, "_completer", completer)

    def __setattr__(self, name, value, /):
        raise AttributeError(f"{type(self).__name__!r} object is immutable")

    def __delattr__(self, name, /):
        raise AttributeError(f"{type(self).__name__!r} object is immutable")

    def __repr__(self):
        return "command-descriptor(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        yield "path", self._path
        yield "handler", self._handler
        yield "permission", self._permission
        yield "completer", self._completer

    @property
    def handler(self):
        return self._handler

    @property
    def completer(self):
        return self._completer

    @property
    def restricted(self):
        return isinstance(self._handler, RestrictedHandler)

    class Builder:
        """
        Staged construction of a CommandDescriptor.

        Setters return the builder for chaining; validation happens in build().
        """

        def __init__(self):
            self._path = Unset
            self._generic = Unset
            self._restricted = Unset
            self._permission = None
            self._completer = None

        def path(self, path, /):
            if not isinstance(path, str):
                raise TypeError("command-descriptor path must be a string")
            self._path = path
            return self

        def handler(self, callback, /):
            """set a handler callable by any invoker: callback(context) -> bool."""
            if not callable(callback):
                raise TypeError("command-descriptor handler must be callable")
            self._generic = callback
            return self

        def restricted(self, callback, /):
            """set a handler callable by principals only: callback(principal, context) -> bool."""
            if not callable(callback):
                raise TypeError("command-descriptor restricted handler must be callable")
            self._restricted = callback
            return self

        def permission(self, permission, /):
            if permission is not None and not isinstance(permission, str):
                raise TypeError("command-descriptor permission must be a string")
            self._permission = permission
            return self

        def completer(self, completer, /):
            if completer is not None and not callable(completer):
                raise TypeError("command-descriptor completer must be callable")
            self._completer = completer
            return self

        def build(self):
            if self._path is Unset or not self._path.strip():
                raise BlankPathError(
                    "command path must be set",
                    code=FaultCode.BLANK_PATH,
                    title="blank command path",
                    hint="call .path('<segments>') before .build()",
                )
            if self._generic is not Unset and self._restricted is not Unset:
                raise ConflictingHandlersError(
                    "command %r sets both a handler and a restricted handler" % self._path,
                    code=FaultCode.CONFLICTING_HANDLERS,
                    title="conflicting handlers",
                    hint="keep exactly one of .handler(...) or .restricted(...)",
                )
            if self._generic is Unset and self._restricted is Unset:
                raise MissingHandlerError(
                    "command %r has neither a handler nor a restricted handler" % self._path,
                    code=FaultCode.MISSING_HANDLER,
                    title="missing handler",
                    hint="call .handler(...) or .restricted(...) before .build()",
                )
            if self._generic is not Unset:
                handler = GenericHandler(self._generic)
            else:
                handler = RestrictedHandler(self._restricted)
            return CommandDescriptor(self._path, handler, self._permission, self._completer)


def descriptor(path, /, *, permission=None, completer=None, restricted=False):
    """
    decorator that turns a function into a CommandDescriptor.

    - restricted=False: the function is a handler, fn(context) -> bool.
    - restricted=True:  the function is a restricted handler, fn(principal, context) -> bool.
    """
    def wrapper(callback, /):
        builder = CommandDescriptor.Builder().path(path).permission(permission).completer(completer)
        if restricted:
            builder.restricted(callback)
        else:
            builder.handler(callback)
        return builder.build()

    return wrapper


__all__ = (
    "CommandDescriptor",
    "descriptor",
)
