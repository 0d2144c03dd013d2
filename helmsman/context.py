"""
Invocation context: an immutable snapshot of one execution or completion call.

What a context holds
- invoker:   the opaque handle the host passed in (never mutated here).
- tokens:    every token the host forwarded (root label already stripped).
- matched:   the tokens consumed to reach the resolved node, original casing kept.
- remaining: the unconsumed suffix handed to the handler as opaque arguments.

Contexts are created fresh per call and are never pooled or shared.

Narrowing
- A restricted handler only runs for invokers that narrow to a principal. The
  host opts in by giving its invoker type a __principal__() method returning the
  narrowed object (or None when the invoker is not a principal, e.g. a console).
"""
from .utils import mirror


def narrow(invoker, /):
    """
    return the principal behind an invoker, or None when it is not one.

    invokers without a __principal__ hook are never principals.
    """
    hook = getattr(invoker, "__principal__", None)
    if not callable(hook):
        return None
    return hook()


class CommandContext:
    """
    Immutable view of an invocation: invoker plus all/matched/remaining tokens.

    Accessors
    - has_subcommands / subcommand(index): the matched path, 1-based.
    - has_args / arg(index, default): the remaining arguments, 0-based.
    - principal / is_principal: the narrowed invoker (see narrow()).
    """
    __slots__ = ("_invoker", "_tokens", "_matched", "_remaining")

    tokens = mirror("tokens")
    matched = mirror("matched")
    remaining = mirror("remaining")

    def __init__(self, invoker, tokens, matched, remaining):
        object.__setattr__(self, "_invoker", invoker)
        object.__setattr__(self, "_tokens", tuple(tokens))
        object.__setattr__(self, "_matched", tuple(matched))
        object.__setattr__(self, "_remaining", tuple(remaining))

    def __setattr__(self, name, value, /):
        raise AttributeError(f"{type(self).__name__!r} object is immutable")

    def __delattr__(self, name, /):
        raise AttributeError(f"{type(self).__name__!r} object is immutable")

    def __eq__(self, other):
        if not isinstance(other, CommandContext):
            return NotImplemented
        return (
            self._invoker is other._invoker and
            self._tokens == other._tokens and
            self._matched == other._matched and
            self._remaining == other._remaining
        )

    def __hash__(self):
        return hash((id(self._invoker), self._tokens, self._matched, self._remaining))

    def __repr__(self):
        return "command-context(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())

    def __rich_repr__(self):
        yield "invoker", self._invoker
        yield "tokens", self._tokens
        yield "matched", self._matched
        yield "remaining", self._remaining

    @property
    def invoker(self):
        return self._invoker

    @property
    def has_subcommands(self):
        return len(self._matched) > 0

    def subcommand(self, index, /):
        """
        return the matched segment at a 1-based position, or None when out of range.
        """
        return self._matched[index - 1] if 0 < index <= len(self._matched) else None

    @property
    def has_args(self):
        return len(self._remaining) > 0

    def arg(self, index, /, default=None):
        """
        return the remaining argument at a 0-based position, or default when out of range.
        """
        return self._remaining[index] if 0 <= index < len(self._remaining) else default

    @property
    def principal(self):
        return narrow(self._invoker)

    @property
    def is_principal(self):
        return self.principal is not None


__all__ = (
    "CommandContext",
    "narrow",
)
