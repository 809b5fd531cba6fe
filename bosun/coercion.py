"""
Coercion of raw command-line values into typed values.

Raw values come from the tokenizer: strings, True/False for bare switches,
lists for repeated options and nested dicts for dotted options. Each value is
turned into a Python value according to a schema descriptor.

Rules, in order
1. absent value: Default yields a copy of its value, anything else is left out.
2. mappings (and lists, unless the target is an array) go straight to the
   descriptor's structural validation.
3. a blank string is validated as "" (fails unless the target accepts it).
4. booleans: true/yes/y/1/accept -> True, false/no/n/0/deny -> False,
   any other token -> True.
5. strings are trimmed; numbers are parsed (NaN when unparseable, which the
   number validation rejects).
6. Optional/Default unwrap to their inner descriptor.
7. arrays split scalars on commas and coerce each piece.
8. enums, unions, objects, records and any: validated as given (trimmed for
   unions).

Every error is raised as soon as it is found; the name of the argument or
option is prepended to the issue path on the way out.
"""
import copy
import logging
import math
import re
from collections.abc import Mapping

from .faults import *
from .schemas import Boolean, Kind, unwrap, is_optional
from .utils import *

logger = logging.getLogger(__name__)

_TRUTHY = frozenset({"true", "yes", "y", "1", "accept"})
_FALSY = frozenset({"false", "no", "n", "0", "deny"})
_RADIX = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+")


def _stringify(value, /):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _number(text, /):
    # Digit separators, non-ASCII digits and infinities are not numbers here.
    if "_" in text or not text.isascii():
        return math.nan
    if _RADIX.fullmatch(text):
        return int(text, 0)
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return math.nan
    return number if math.isfinite(number) else math.nan


def coerce_flag(raw, /):
    """
    Read a raw switch value as a boolean with the boolean vocabulary.

    Absent and blank values are False; a repeated switch counts by its last
    occurrence.
    """
    if isinstance(raw, list | tuple):
        raw = raw[-1] if raw else Unset
    if raw is Unset or raw is None or isinstance(raw, Mapping):
        return False
    if not (text := _stringify(raw).strip()):
        return False
    return coerce_value(text, Boolean())


def _entries(schema, /):
    # Argument schemas are mappings or sequences of (name, descriptor) pairs.
    if isinstance(schema, Mapping):
        return list(schema.items())
    return [tuple(entry) for entry in schema]


def expand_shorthands(raw, shorthands, /):
    """
    Rename shorthand keys to their long option names.

    For every (name, shorthand) pair, a value found under the shorthand key
    (its leading dashes stripped) is moved onto name. The shorthand always
    wins: a value already given under the long name is overwritten.
    Returns a new mapping; raw is left untouched.
    """
    expanded = dict(raw)
    for name, shorthand in coalesce(shorthands, {}).items():
        if (key := shorthand.lstrip("-")) in expanded:
            if name in expanded:
                logger.debug("shorthand -%s overrides --%s", key, kebabcase(name))
            expanded[name] = expanded.pop(key)
    return expanded


def coerce_value(raw, schema, /):
    """
    Convert one raw value according to schema.

    Returns Unset when the value is absent and schema has no default.
    Raises ValidationError when the value does not fit.
    """
    if raw is Unset or raw is None:
        if schema.kind is Kind.DEFAULT:
            return copy.deepcopy(schema.value)
        return Unset

    if isinstance(raw, Mapping):
        return schema.validate(raw)

    if isinstance(raw, list | tuple):
        if (array := unwrap(schema)).kind is not Kind.ARRAY:
            return schema.validate(list(raw))
        return _coerce_items(raw, array.element)

    text = _stringify(raw).strip()
    if not text:
        return schema.validate("")

    match schema.kind:
        case Kind.BOOLEAN:
            if text.lower() in _TRUTHY:
                return True
            if text.lower() in _FALSY:
                return False
            return True
        case Kind.STRING:
            return schema.validate(text)
        case Kind.NUMBER:
            return schema.validate(_number(text))
        case Kind.OPTIONAL | Kind.DEFAULT:
            return coerce_value(raw, schema.inner)
        case Kind.ARRAY:
            return _coerce_items(_stringify(raw).split(","), schema.element)
        case Kind.UNION:
            return schema.validate(text)
        case _:
            return schema.validate(raw)


def _coerce_items(items, element, /):
    result = []
    for index, item in enumerate(items):
        try:
            value = coerce_value(item, element)
        except ValidationError as error:
            raise error.prefixed(index) from None
        result.append(None if value is Unset else value)
    return result


def assert_no_required_after_optional(schema, /):
    """
    Raise RequiredAfterOptionalError when a required argument follows an
    optional (or defaulted) one.
    """
    if schema is Unset:
        return
    optional = False
    for name, descriptor in _entries(schema):
        if is_optional(descriptor):
            optional = True
        elif optional:
            logger.debug("argument %r is required but follows an optional one", name)
            raise RequiredAfterOptionalError()


def coerce_arguments(positional, schema, /):
    """
    Coerce positional tokens against an ordered argument schema.

    Returns (record, leftover). Fails with IncorrectUsageError when fewer
    tokens than required arguments are given. Schema entries without a token
    are left out of the record; tokens beyond the schema are returned as
    leftover, uncoerced. With no schema at all every token is leftover.
    """
    positional = list(positional)
    if schema is Unset:
        return {}, positional

    entries = _entries(schema)
    required = sum(1 for _, descriptor in entries if not is_optional(descriptor))
    if len(positional) < required:
        raise IncorrectUsageError(f"Received {len(positional)}, expected {required}")

    record = {}
    for (name, descriptor), token in zip(entries, positional):
        try:
            value = coerce_value(token, descriptor)
        except ValidationError as error:
            raise error.prefixed(name) from None
        if value is not Unset:
            record[name] = value
    return record, positional[len(entries):]


def coerce_options(raw, schema, ignore_unknown=False, /):
    """
    Coerce raw option values against an option schema.

    Every declared option is coerced first (absent ones are left out unless
    they have a default). Then every undeclared key is either rejected with
    UnknownOptionError or, when ignore_unknown is true, passed through raw.
    The reserved "_" and "--" keys are never treated as options. With no
    schema at all the raw values pass through untouched.
    """
    if schema is Unset:
        return {key: value for key, value in raw.items() if key not in RESERVED_KEYS}

    record = {}
    for name, descriptor in schema.items():
        try:
            value = coerce_value(raw.get(name, Unset), descriptor)
        except ValidationError as error:
            raise error.prefixed(f"--{kebabcase(name)}") from None
        if value is not Unset:
            record[name] = value

    for name, value in raw.items():
        if name in RESERVED_KEYS or name in schema:
            continue
        if not ignore_unknown:
            raise UnknownOptionError(name)
        record[name] = value

    return record


__all__ = (
    "expand_shorthands",
    "coerce_value",
    "coerce_arguments",
    "coerce_options",
    "coerce_flag",
    "assert_no_required_after_optional",
)
