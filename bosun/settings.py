"""
Immutable runtime settings shared down the command tree.

A Settings value is never mutated: copy.replace(settings, **changes) builds a
new one. Command nodes keep only the fields they override explicitly and
resolve the rest from their parent when read (see Command.settings), so a
change made on an ancestor is seen by every descendant that did not override
that field.
"""
import functools
import operator
from typing import final

from .utils import *


@final
class Settings:
    """
    Behavior switches consulted by the invocation lifecycle.

    Fields
    - show_help_on_error: render help after a command fails on bad input.
    - show_help_on_not_found: render root help after an unknown command.
    - ignore_unknown_options: let undeclared options through untyped instead
      of failing with UnknownOptionError.
    - colorful: apply the style palette to help and fault output.
    """
    __slots__ = ("_show_help_on_error", "_show_help_on_not_found", "_ignore_unknown_options", "_colorful")
    __introspectable__ = ("show_help_on_error", "show_help_on_not_found", "ignore_unknown_options", "colorful")

    show_help_on_error = mirror("show_help_on_error")
    show_help_on_not_found = mirror("show_help_on_not_found")
    ignore_unknown_options = mirror("ignore_unknown_options")
    colorful = mirror("colorful")

    def __init__(
            self,
            *,
            show_help_on_error=False,
            show_help_on_not_found=False,
            ignore_unknown_options=False,
            colorful=False
    ):
        for name, value in {
            "show_help_on_error": show_help_on_error,
            "show_help_on_not_found": show_help_on_not_found,
            "ignore_unknown_options": ignore_unknown_options,
            "colorful": colorful,
        }.items():
            if not isinstance(value, bool):
                raise TypeError(f"settings {name!r} must be a boolean")
            object.__setattr__(self, "_" + name, value)

    def __setattr__(self, name, value, /):
        raise AttributeError(f"settings are immutable, use copy.replace() to change {name!r}")

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        unknown = overrides.keys() - set(type(self).__introspectable__)
        if unknown:
            raise TypeError(f"unknown settings: {", ".join(sorted(unknown))}")
        return type(self)(**{name: getattr(self, name) for name in type(self).__introspectable__} | overrides)

    def __eq__(self, other, /):
        if not isinstance(other, Settings):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name) for name in type(self).__introspectable__)

    def __hash__(self):
        return hash(tuple(getattr(self, name) for name in type(self).__introspectable__))

    def __rich_repr__(self):
        for name in type(self).__introspectable__:
            yield name, getattr(self, name)

    def __repr__(self):
        return f"settings({", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))})"


__all__ = (
    "Settings",
)
