"""
Helmsman utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the routing layers so that nodes, trees,
  descriptors and the registry agree on the same semantics.

Overview
- UnsetType / Unset
  • Singleton sentinel for “value not provided”, distinct from None (a permission
    of None is meaningful: it means “unrestricted”).

- coalesce(value, default=None)
  • Replace Unset with a concrete default, preserving None/""/0 as given.

- rename(callable, name) / @rename("name")
  • Give wrappers stable __name__/__qualname__ for readable tracebacks and logs.

- mirror("attr")
  • Read-only property over a private backing field (self._attr); containers are
    exposed as immutable views.

- fold(text)
  • The single case-normalization rule used for lookup keys, storage keys and
    completion filtering.

- split(path)
  • Break a registration path ("team invite") into its segments.

- mglob(pattern)
  • Expand "pkg.**.commands" style module globs into importable module names.

Stability and contract
- Names listed in __all__ are supported; anything else may change.
"""
import builtins
import functools
import importlib
import pkgutil
import re
from collections.abc import Sequence, Mapping, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not provided.

    Characteristics
    - Boolean-false: bool(Unset) is False, but it is distinct from None and 0.
    - Printable: repr(Unset) -> "Unset".
    - Non-subclassable and a singleton per process.
    """

    def __or__(self, other, /):
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Falsey values like None, 0 or "" are preserved; only Unset is replaced.

    Examples
    - coalesce("team.use", None) -> "team.use"
    - coalesce(Unset, "fallback") -> "fallback"
    - coalesce(None, "fallback")  -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator
    that will do so later.

    Forms
    - rename(callable, name) -> callable
    - rename(name) -> decorator
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _freeze(object):
    """
    Return an immutable view of a container; other objects pass through.

    - Sequence (non-string) → tuple
    - Mapping              → MappingProxyType over a shallow copy
    - Set                  → frozenset
    """
    if isinstance(object, Sequence) and not isinstance(object, str):
        return tuple(object)
    elif isinstance(object, Mapping):
        return MappingProxyType(dict(object))
    elif isinstance(object, Set):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The property reads "_{name}" from the instance and returns an immutable
    view for container types, so public state cannot be mutated by accident.

    Example
    - Given self._matched, declare matched = mirror("matched").
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


def fold(text, /):
    """
    Case-fold a path segment or completion candidate.

    One locale-independent rule (str.lower) is used everywhere a segment is
    compared, so "Team", "TEAM" and "team" always meet at the same node.
    """
    if not isinstance(text, str):
        raise TypeError("fold() argument must be a string")
    return text.lower()


def split(path, /):
    """
    Break a registration path into segments on any run of whitespace.

    Returns a tuple of segments; an empty tuple means the path was blank,
    which callers reject as a construction error.
    """
    if not isinstance(path, str):
        raise TypeError("command path must be a string")
    return tuple(path.split())


@functools.cache
def _resolve_segment(segment):
    """
    translate a single pattern segment into a regex snippet (dots are not matched).
      *       → zero or more non-dot chars
      ?       → exactly one non-dot char
      [...]   → character class (one non-dot char)
      [!...]  → negated character class
      \\x      → escape x literally
    """
    length = len(segment)
    index = 0
    parts = []
    while index < length:
        char = segment[index]
        next = index + 1
        if char == '\\' and next < length:
            parts.append(re.escape(segment[next]))
            index += 2
            continue
        if char == '*':
            parts.append(r'[^.]*')
        elif char == '?':
            parts.append(r'[^.]')
        elif char == '[':
            start = index + 1
            negated = ''
            if start < length and segment[start] in ('!', '^'):
                negated = '^'
                start += 1

            pivot = start
            while pivot < length and segment[pivot] != ']':
                if segment[pivot] == '\\' and pivot + 1 < length:
                    pivot += 2
                else:
                    pivot += 1

            if pivot >= length:
                parts.append(r'\[')
            else:
                parts.append(f'[{negated}{segment[start:pivot]}]')
                index = pivot
        else:
            parts.append(re.escape(char))
        index += 1
    return ''.join(parts)


@functools.cache
def _compile_regex(pattern):
    """
    compile a full module glob into a regex ('**' spans whole segments).
    """
    parts = []
    for segment in pattern.split('.'):
        if segment == '**':
            parts.append(r'(?:\.[A-Za-z_]\w*)*')
        else:
            parts.append(r'\.' + _resolve_segment(segment))
    if parts and parts[0].startswith(r'\.'):
        body = parts[0][2:] + ''.join(parts[1:])
    else:
        body = ''.join(parts)
    return re.compile(body)


def mglob(source, /):
    """
    expand a dot-separated module glob into fully-qualified module names.

    rules
    - must start with at least one concrete segment (no wildcard-only prefix).
    - matches are case-sensitive and returned in sorted order.
    - without wildcards, returns [source] unchanged.

    examples
    - "plugins.*"            → direct children of plugins
    - "plugins.**.commands"  → any commands module under plugins
    """
    if not isinstance(source, str):
        raise TypeError("mglob() argument must be a string")
    elif not (source := source.strip()):
        raise ValueError("mglob() argument must be a non-empty string")

    if re.fullmatch(r"(?!\d)\w+(\.(?!\d)\w+)*", source):
        return [source]

    prefixes = []
    for segment in source.split('.'):
        if set(segment) & set('*?[]!\\') or not re.fullmatch(r"(?!\d)\w+", segment):
            break
        prefixes.append(segment)

    if not prefixes:
        raise ValueError("mglob() pattern must start with a concrete package segment")

    try:
        package = importlib.import_module(prefix := ".".join(prefixes))
    except ImportError:
        return []

    matches = set()

    if (pattern := _compile_regex(source)).fullmatch(prefix):
        matches.add(prefix)

    if hasattr(package, "__path__"):
        for metadata in pkgutil.walk_packages(package.__path__, prefix + '.'):
            if pattern.fullmatch(name := metadata.name):
                matches.add(name)

    return sorted(matches)


Unset = UnsetType()
"""
Internal sentinel for “not provided” (see UnsetType).
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "fold",
    "split",
    "mglob",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
