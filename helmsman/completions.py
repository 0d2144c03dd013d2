"""
Completion and argument helpers for handlers and completers.

Scope
- filter_completions(): the prefix filter applied to every completion result.
- argument_completions(): offer candidates for one argument position only.
- lookup_argument() / lookup_argument_async(): resolve an argument into an object
  (a target player, a team, …), optionally falling back to the invoker itself.

All comparisons go through fold(), the same rule the trie uses for its keys.
"""
from concurrent.futures import Future

from .utils import fold


def filter_completions(candidates, partial, /):
    """
    keep candidates whose folded form starts with the folded partial.

    the relative order of the candidates is preserved; a fresh list is returned.
    """
    prefix = fold(partial)
    return [candidate for candidate in candidates if fold(candidate).startswith(prefix)]


def _position(index):
    if not isinstance(index, int):
        raise TypeError("argument position must be an integer")
    if index < 1:
        raise ValueError("argument positions are 1-based, got %d" % index)
    return index


def argument_completions(context, index, candidates, /):
    """
    offer candidates for the argument being typed at a 1-based position.

    - context.remaining ends with the partial token while completing, so the
      argument at `index` is being typed when len(remaining) == index, and
      nothing has been typed yet when len(remaining) == index - 1.
    - candidates may be an iterable of strings or a zero-argument callable
      returning one (evaluated lazily, only when the position matches).
    - any other position yields an empty list.
    """
    index = _position(index)
    remaining = context.remaining
    if not index - 1 <= len(remaining) <= index:
        return []
    partial = remaining[index - 1] if len(remaining) >= index else ""
    if callable(candidates):
        candidates = candidates()
    return filter_completions(candidates, partial)


def lookup_argument(context, index, resolver, /, *, implicit=False):
    """
    resolve the argument at a 1-based position through resolver(token).

    priority
    - an argument exists at that position → resolver(token)
    - implicit=True and the invoker is a principal → the principal itself
    - otherwise → None
    """
    index = _position(index)
    if len(context.remaining) >= index:
        return resolver(context.remaining[index - 1])
    if implicit and (principal := context.principal) is not None:
        return principal
    return None


def lookup_argument_async(context, index, resolver, /, *, executor, implicit=False):
    """
    like lookup_argument(), but runs resolver on an executor and returns a Future.

    slow resolvers (remote profile lookups, database reads) run on the executor;
    the implicit and empty cases complete immediately without touching it.
    """
    index = _position(index)
    if len(context.remaining) >= index:
        return executor.submit(resolver, context.remaining[index - 1])
    future = Future()
    future.set_result(context.principal if implicit else None)
    return future


__all__ = (
    "filter_completions",
    "argument_completions",
    "lookup_argument",
    "lookup_argument_async",
)
