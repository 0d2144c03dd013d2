"""
Helmsman faults (errors, warnings, notices) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every issue the router
  can surface, grouped by domain so logs and searches stay predictable.
- CommandException / CommandWarning: base types that carry a message plus options
  (code, title, hint) and know how to render themselves through rich.
- notice(): resolve the short text sent to an invoker for a handled outcome
  (permission denied, unknown subcommand, …). Notices are never raised.
- trigger(): surface a fault with merged options (raise errors, warn warnings).

Fault families
- construction errors (21xxx) are programmer errors in registering code; they are
  raised at build time and never deferred to invocation.
- binding errors (31xxx) are raised by hosts when a root command cannot be bound;
  the registry turns them into a boolean failure.
- runtime notices (11xxx) are expected outcomes of normal operation; the invoker
  receives a text and the call is still “handled”.
- warnings (12xxx) flag registrations that were skipped without failing a batch.

Host configuration (read from __main__, like every presentation knob)
- __messages__: mapping FaultCode -> notice template ("{usage}" is available).
- __codes__:    mapping FaultCode -> label shown instead of the numeric code.
- __styles__:   mapping style-name -> rich style.
- __prog__:     program name shown in fault headers.
"""
import copy
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce


class FaultCode(IntEnum):
    """
    canonical fault codes used across the router (stable identifiers).

    grouping (by high-level domain)
    - runtime notices (111xx)
      • PERMISSION_DENIED, MISSING_SUBCOMMAND, UNKNOWN_SUBCOMMAND,
        RESTRICTED_INVOKER, UNKNOWN_COMMAND
    - warnings (121xx)
      • SKIPPED_DESCRIPTOR, BLANK_COMMAND_NAME, EMPTY_DESCRIPTORS
    - construction errors (211xx)
      • BLANK_PATH, CONFLICTING_HANDLERS, MISSING_HANDLER, BLANK_PERMISSION,
        EMPTY_TREE, SPENT_BUILDER
    - binding errors (311xx)
      • UNDECLARED_COMMAND, REJECTED_BINDING
    """
    # --- runtime notices (11xxx) ---
    PERMISSION_DENIED       = 11101
    MISSING_SUBCOMMAND      = 11102
    UNKNOWN_SUBCOMMAND      = 11103
    RESTRICTED_INVOKER      = 11104
    UNKNOWN_COMMAND         = 11105

    # --- warnings (12xxx) ---
    SKIPPED_DESCRIPTOR      = 12101
    BLANK_COMMAND_NAME      = 12102
    EMPTY_DESCRIPTORS       = 12103

    # --- construction errors (21xxx) ---
    BLANK_PATH              = 21101
    CONFLICTING_HANDLERS    = 21102
    MISSING_HANDLER         = 21103
    BLANK_PERMISSION        = 21104
    EMPTY_TREE              = 21105
    SPENT_BUILDER           = 21106

    # --- binding errors (31xxx) ---
    UNDECLARED_COMMAND      = 31101
    REJECTED_BINDING        = 31102

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


DEFAULT_MESSAGES = MappingProxyType({
    FaultCode.PERMISSION_DENIED: "You don't have permission to use this command!",
    FaultCode.MISSING_SUBCOMMAND: "{usage}",
    FaultCode.UNKNOWN_SUBCOMMAND: "Unknown subcommand. {usage}",
    FaultCode.RESTRICTED_INVOKER: "This command can only be used by players.",
    FaultCode.UNKNOWN_COMMAND: "Unknown command {label!r}.",
})


class _Fields(dict):
    # unknown placeholders survive formatting untouched
    def __missing__(self, key):
        return "{" + key + "}"


def notice(code, /, overrides=MappingProxyType({}), **fields):
    """
    resolve the notice text for a handled outcome.

    lookup order
    - overrides (per-tree messages), then __main__.__messages__, then DEFAULT_MESSAGES.

    formatting
    - the template is filled with **fields via str.format_map; unknown
      placeholders are kept verbatim so a bad host template never breaks dispatch.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("notice() argument must be a fault-code")
    template = overrides.get(code, Unset)
    if template is Unset:
        template = getattr(__import__("__main__"), "__messages__", {}).get(code, Unset)
    template = coalesce(template, DEFAULT_MESSAGES.get(code, ""))
    try:
        return str(template).format_map(_Fields(fields))
    except (ValueError, IndexError, AttributeError):
        return str(template)


def _render(fault, palette, kind):
    main = __import__("__main__")
    options = fault.options
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = options.get("colorful", True)

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), styles[style] if colorful else "")

    code = options.get("code")
    header = Text.assemble(
        "[ ",
        text(getattr(main, "__prog__", "helmsman"), "prog-name"),
        " : ",
        text(code.normalize() if isinstance(code, FaultCode) else "?", "code"),
        " | ",
        text(str(options.get("title", kind)).title(), kind + "-title"),
        " ]"
    )
    message = text(coalesce(fault.message, ""), kind + "-message")
    hint = Text.assemble(text(" → ", "hint-arrow"), text(options.get("hint", ""), "hint"))

    if options.get("fancy", False):
        return Panel(Group(message, hint), title=header, title_align="left")
    return Group(header, message, hint)


class CommandException(Exception):
    """
    base error carrying a message plus rendering options (code, title, hint).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        }, "error")

    def __trigger__(self) -> None:
        raise self from None

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ConstructionError(CommandException, ValueError): ...
class BlankPathError(ConstructionError): ...
class ConflictingHandlersError(ConstructionError): ...
class MissingHandlerError(ConstructionError): ...
class BlankPermissionError(ConstructionError): ...
class EmptyTreeError(ConstructionError): ...
class SpentBuilderError(ConstructionError): ...


class BindingError(CommandException, LookupError): ...
class UndeclaredCommandError(BindingError): ...


class CommandWarning(Warning):
    """
    base warning carrying a message plus rendering options (code, title, hint).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def code(self):
        return self.options.get("code")

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "warning-title": "bold #FFC2E0",
            "warning-message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        }, "warning")

    def __trigger__(self) -> None:
        warnings.warn(self, stacklevel=4)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class SkippedDescriptorWarning(CommandWarning): ...
class SkippedRegistrationWarning(CommandWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace() before triggering.
    - errors are raised; warnings go through warnings.warn.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FaultCode",
    "DEFAULT_MESSAGES",
    "CommandException",
    "ConstructionError",
    "BlankPathError",
    "ConflictingHandlersError",
    "MissingHandlerError",
    "BlankPermissionError",
    "EmptyTreeError",
    "SpentBuilderError",
    "BindingError",
    "UndeclaredCommandError",
    "CommandWarning",
    "SkippedDescriptorWarning",
    "SkippedRegistrationWarning",
    "notice",
    "trigger",
)
