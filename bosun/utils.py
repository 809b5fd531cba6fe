"""
Bosun utilities (internal helpers, carefully exposed)

Overview
- UnsetType / Unset
  • Singleton sentinel for "value not provided", kept apart from None because
    None is a legitimate option value after coercion.
- coalesce(value, default=None)
  • Replace Unset with a concrete default; None/0/""/[] are preserved.
- rename(callable, name) / @rename("name")
  • Assign stable __name__/__qualname__ to generated callables.
- mirror("attr")
  • Read-only property exposing the private field self._attr as a fresh copy.
- snakecase(text) / kebabcase(text)
  • Identifier casing used between the command line (kebab-case) and declared
    schemas (snake_case).
- transform_keys(mapping, function)
  • Apply a key conversion recursively over nested option records, leaving the
    reserved "_" and "--" keys alone.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> snakecase("dry-run"), kebabcase("dry_run")
    ('dry_run', 'dry-run')
"""
import builtins
import functools
import re
from collections.abc import Sequence, Mapping, Set
from typing import final

# Keys produced by the tokenizer that never go through option handling.
RESERVED_KEYS = frozenset({"_", "--"})


@final
class UnsetType:
    """
    Sentinel type for a value that was not provided.

    Characteristics
    - Boolean-false, but distinct from None and 0.
    - repr(Unset) -> "Unset".
    - Singleton per process, and sealed against subclassing.
    """

    def __or__(self, other, /):
        try:
            return other | type(self)
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

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return object unless it is the Unset sentinel, in which case return default.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
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


def _immortalize(object):
    """
    Recursively copy containers so callers never hold a live reference to
    internal state. Tuples stay tuples; other sequences become lists.
    """
    if isinstance(object, tuple):
        return tuple(map(_immortalize, object))
    elif isinstance(object, Sequence) and not isinstance(object, str):
        return list(map(_immortalize, object))
    elif isinstance(object, Mapping):
        return dict(zip(object.keys(), map(_immortalize, object.values())))
    elif isinstance(object, Set):
        return set(map(_immortalize, object))
    else:
        return object


def mirror(name, /):
    """
    Define a read-only property that mirrors the private attribute "_{name}".

    Containers are copied on every read (see _immortalize); Unset is returned
    untouched so callers can tell "never declared" apart from "declared empty".
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _immortalize(getattr(self, "_" + name))

    return property(getter)


@functools.cache
def snakecase(text, /):
    """
    Convert an identifier to snake_case.

    Hyphens and spaces become underscores and camelCase humps are split, so
    "dry-run", "dryRun" and "DryRun" all become "dry_run". Single characters
    (short option keys) are returned unchanged, case included.
    """
    if not isinstance(text, str):
        raise TypeError("snakecase() argument must be a string")
    if len(text) <= 1:
        return text
    text = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", "_", text)
    return re.sub(r"[-\s]+", "_", text).lower()


@functools.cache
def kebabcase(text, /):
    """
    Convert an identifier to kebab-case ("dry_run" -> "dry-run").
    """
    if not isinstance(text, str):
        raise TypeError("kebabcase() argument must be a string")
    if len(text) <= 1:
        return text
    return snakecase(text).replace("_", "-")


def transform_keys(mapping, function, /):
    """
    Return a copy of mapping with function applied to every key, descending
    into nested mappings. The reserved "_" and "--" keys keep their name and
    value as they are.
    """
    result = {}
    for key, value in mapping.items():
        if key in RESERVED_KEYS:
            result[key] = value
        elif isinstance(value, Mapping):
            result[function(key)] = transform_keys(value, function)
        else:
            result[function(key)] = value
    return result


Unset = UnsetType()
"""
Sentinel for "not provided".

Use Unset as a default when None is a meaningful value, and materialize it
with coalesce(value, default) where a concrete value is needed.
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "snakecase",
    "kebabcase",
    "transform_keys",

    # Types
    "UnsetType",

    # Constants
    "Unset",
    "RESERVED_KEYS",
)
