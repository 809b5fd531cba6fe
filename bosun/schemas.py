"""
Bosun schema descriptors.

Overview
- A descriptor is a closed, tagged description of the shape a value must have.
  Every descriptor carries a Kind; behavior (validation, type names) is chosen
  by matching on that kind, never on the Python class.
- Leaves: String, Number, Boolean, Enum, Any.
- Containers: Array(element), Object(**fields), Record(value), Union(*options).
- Wrappers: Optional(inner), Default(inner, value); each wraps exactly one
  descriptor.

Building
    >>> name = String().describe("who to greet")
    >>> count = Number().default(1)
    >>> tags = Array(String()).optional()

Validation
- validate(value) returns the checked value (containers return fresh copies,
  Default substitutes its value for None) or raises ValidationError whose
  issues carry the path inside the value (array index, field name).
- Coercion from raw command-line strings lives in coercion.py; validate()
  only checks values that already have a Python type.
"""
import copy
import functools
import math
import operator
import re
from collections.abc import Mapping, Sequence
from enum import Enum as _Enum

from rich.text import Text

from .faults import Issue, ValidationError
from .utils import *


class Kind(_Enum):
    """Tag carried by every schema descriptor."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    ARRAY = "array"
    OBJECT = "object"
    RECORD = "record"
    UNION = "union"
    OPTIONAL = "optional"
    DEFAULT = "default"
    ANY = "any"


class SchemaType(type):
    """
    Metaclass giving descriptors stable, readable representations.

    - __typename__ is derived from the class name (camel-case split with
      hyphens), e.g. "string", "optional".
    - Every name listed in a class's __introspectable__ becomes a read-only
      property mirroring the private field of the same name.
    - __repr__/__rich_repr__ show the introspectable fields.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                if name != "kind" and (value := getattr(self, name)) is not None:
                    yield name, value
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_descr(cls, descr, /):
    """
    Internal: normalize an optional description.

    Unset becomes None; strings are trimmed and must not be empty.
    """
    if not isinstance(descr, str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    return coalesce(descr)


def _sanitize_schema(cls, schema, field, /):
    if not isinstance(schema, Schema):
        raise TypeError(f"{cls.__typename__} {field!r} must be a schema, not {type(schema).__name__!r}")
    return schema


def _received(value, /):
    match value:
        case None:
            return "null"
        case bool():
            return "boolean"
        case str():
            return "string"
        case int() | float():
            return "nan" if isinstance(value, float) and math.isnan(value) else "number"
        case Mapping():
            return "object"
        case Sequence():
            return "array"
        case _:
            return type(value).__name__


def _fail(message, *path):
    raise ValidationError(issues=(Issue(message, path),))


class Schema(metaclass=SchemaType):
    """
    Base of every descriptor. Not meant to be instantiated directly.

    Properties
    - kind: the Kind tag.
    - descr: optional human-readable description used by help output.
    """
    __introspectable__ = ("kind", "descr")

    __kind__ = Unset

    def __init__(self, *, descr=Unset):
        self._kind = type(self).__kind__
        self._descr = _sanitize_descr(type(self), descr)

    def describe(self, descr, /):
        """Return a copy of this descriptor carrying the given description."""
        clone = copy.copy(self)
        clone._descr = _sanitize_descr(type(self), descr)
        return clone

    def optional(self):
        return Optional(self)

    def default(self, value, /):
        return Default(self, value)

    def validate(self, value, /):
        """
        Check value against this descriptor.

        Returns the accepted value; raises ValidationError on the first issue.
        """
        if value is None and self._kind not in (Kind.OPTIONAL, Kind.DEFAULT, Kind.ANY):
            _fail("Required")

        match self._kind:
            case Kind.STRING:
                if not isinstance(value, str):
                    _fail(f"Expected string, received {_received(value)}")
                return value
            case Kind.NUMBER:
                if isinstance(value, bool) or not isinstance(value, int | float):
                    _fail(f"Expected number, received {_received(value)}")
                if math.isnan(value):
                    _fail("Expected number, received nan")
                if math.isinf(value):
                    _fail("Expected number, received infinity")
                return value
            case Kind.BOOLEAN:
                if not isinstance(value, bool):
                    _fail(f"Expected boolean, received {_received(value)}")
                return value
            case Kind.ENUM:
                if isinstance(value, bool) or value not in self._values:
                    _fail(f"Invalid enum value. Expected {" | ".join(map(repr, self._values))}, received {value!r}")
                return value
            case Kind.ARRAY:
                if isinstance(value, str) or not isinstance(value, Sequence):
                    _fail(f"Expected array, received {_received(value)}")
                result = []
                for index, item in enumerate(value):
                    try:
                        result.append(self._element.validate(item))
                    except ValidationError as error:
                        raise error.prefixed(index) from None
                return result
            case Kind.OBJECT:
                if not isinstance(value, Mapping):
                    _fail(f"Expected object, received {_received(value)}")
                result = {}
                for name, field in self._fields.items():
                    try:
                        item = field.validate(value.get(name))
                    except ValidationError as error:
                        raise error.prefixed(name) from None
                    if item is not None:
                        result[name] = item
                return result
            case Kind.RECORD:
                if not isinstance(value, Mapping):
                    _fail(f"Expected object, received {_received(value)}")
                result = {}
                for name, item in value.items():
                    try:
                        result[name] = self._value.validate(item)
                    except ValidationError as error:
                        raise error.prefixed(name) from None
                return result
            case Kind.UNION:
                for option in self._options:
                    try:
                        return option.validate(value)
                    except ValidationError:
                        continue
                _fail(f"Invalid input, expected {self.typename()}")
            case Kind.OPTIONAL:
                return None if value is None else self._inner.validate(value)
            case Kind.DEFAULT:
                return copy.deepcopy(self._value) if value is None else self._inner.validate(value)
            case Kind.ANY:
                return value
            case _:
                raise TypeError(f"{type(self).__typename__} has no kind to validate against")

    def typename(self):
        """
        Name shown for this descriptor in help output.

        Wrappers are transparent; enums and unions list their members joined
        with "|"; arrays read "(element)[]".
        """
        match self._kind:
            case Kind.OPTIONAL | Kind.DEFAULT:
                return self._inner.typename()
            case Kind.ENUM:
                return "|".join(map(str, self._values))
            case Kind.ARRAY:
                return f"({self._element.typename()})[]"
            case Kind.UNION:
                return "|".join(option.typename() for option in self._options)
            case _:
                return self._kind.value


class String(Schema):
    __introspectable__ = ("kind", "descr")
    __kind__ = Kind.STRING


class Number(Schema):
    __introspectable__ = ("kind", "descr")
    __kind__ = Kind.NUMBER


class Boolean(Schema):
    __introspectable__ = ("kind", "descr")
    __kind__ = Kind.BOOLEAN


class Any(Schema):
    __introspectable__ = ("kind", "descr")
    __kind__ = Kind.ANY


class Enum(Schema):
    """Accepts exactly one of the declared values."""
    __introspectable__ = ("kind", "values", "descr")
    __kind__ = Kind.ENUM

    def __init__(self, *values, descr=Unset):
        super().__init__(descr=descr)
        if not values:
            raise ValueError("enum requires at least one value")
        if len(set(values)) != len(values):
            raise ValueError("enum values must be unique")
        self._values = tuple(values)


class Array(Schema):
    """A sequence whose items all match the element descriptor."""
    __introspectable__ = ("kind", "element", "descr")
    __kind__ = Kind.ARRAY

    def __init__(self, element, /, *, descr=Unset):
        super().__init__(descr=descr)
        self._element = _sanitize_schema(type(self), element, "element")


class Object(Schema):
    """A mapping with named fields; undeclared keys are dropped."""
    __introspectable__ = ("kind", "fields", "descr")
    __kind__ = Kind.OBJECT

    def __init__(self, fields=Unset, /, *, descr=Unset, **named):
        super().__init__(descr=descr)
        fields = dict(coalesce(fields, {})) | named
        for name, field in fields.items():
            _sanitize_schema(type(self), field, name)
        self._fields = fields


class Record(Schema):
    """A mapping with arbitrary keys whose values match one descriptor."""
    __introspectable__ = ("kind", "value", "descr")
    __kind__ = Kind.RECORD

    def __init__(self, value=Unset, /, *, descr=Unset):
        super().__init__(descr=descr)
        self._value = _sanitize_schema(type(self), coalesce(value, Any()), "value")


class Union(Schema):
    """Accepts a value matching any of the options, tried in order."""
    __introspectable__ = ("kind", "options", "descr")
    __kind__ = Kind.UNION

    def __init__(self, *options, descr=Unset):
        super().__init__(descr=descr)
        if len(options) < 2:
            raise ValueError("union requires at least two options")
        self._options = tuple(_sanitize_schema(type(self), option, "option") for option in options)


class Optional(Schema):
    """Wraps a descriptor so that an absent value is accepted."""
    __introspectable__ = ("kind", "inner", "descr")
    __kind__ = Kind.OPTIONAL

    def __init__(self, inner, /, *, descr=Unset):
        inner = _sanitize_schema(type(self), inner, "inner")
        super().__init__(descr=coalesce(descr, inner.descr or Unset))
        self._inner = inner


class Default(Schema):
    """Wraps a descriptor and supplies a value when none is given."""
    __introspectable__ = ("kind", "inner", "value", "descr")
    __kind__ = Kind.DEFAULT

    def __init__(self, inner, value, /, *, descr=Unset):
        inner = _sanitize_schema(type(self), inner, "inner")
        super().__init__(descr=coalesce(descr, inner.descr or Unset))
        self._inner = inner
        self._value = value


def unwrap(schema, /):
    """Strip Optional/Default wrappers and return the innermost descriptor."""
    while schema.kind in (Kind.OPTIONAL, Kind.DEFAULT):
        schema = schema.inner
    return schema


def is_optional(schema, /):
    """True when a missing value is acceptable (Optional or Default)."""
    return schema.kind in (Kind.OPTIONAL, Kind.DEFAULT)


__all__ = (
    "Kind",
    "Schema",
    "String",
    "Number",
    "Boolean",
    "Enum",
    "Array",
    "Object",
    "Record",
    "Union",
    "Optional",
    "Default",
    "Any",
    "unwrap",
    "is_optional",
)
