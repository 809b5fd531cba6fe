"""
Bosun command layer: declare a command tree, then resolve and run input against it.

What this module provides
- Command: one addressable node of the tree, carrying a positional-argument
  schema, an option schema, shorthands, help text and four lifecycle hooks
  (setup, pre_invoke, invoke, post_invoke).
- Application: the root of the tree and the top-level executor. It owns the
  global options, the output sink, the runtime settings and the
  before_invoke/after_invoke hooks.
- Outcome: the result of one run (truthy only when it succeeded).
- Invocation: the merged record handed to an invoke hook.
- application(...): factory for an Application.

Quick start
    from bosun import application, String, Number

    app = application().help()

    greet = app.command("greet", descr="Greets someone")
    greet.arguments({"name": String()})
    greet.options({"times": Number().default(1)}).shorthands({"times": "-t"})

    @greet.invoke
    def _(record, stdout):
        for _ in range(record.times):
            stdout.write(f"hello {record.name}\\n")

    app.exec(["greet", "bob", "-t", "2"])

Lifecycle of one command (see Command._execute)
- setup (skipped when help was asked for; returning False aborts quietly),
- pre_invoke,
- required-after-optional check on the argument schema,
- delegation to a matching subcommand (post_invoke then runs only when the
  subcommand succeeded),
- help short-circuit, positional count and handler checks,
- shorthand expansion, argument and option coercion,
- invoke, then post_invoke.
"""
import asyncio
import copy
import functools
import inspect
import logging
import operator
import os
import re
import sys
from collections.abc import Mapping
from enum import Enum

from .coercion import *
from .faults import *
from .rendering import render_help
from .schemas import Schema, Boolean, Kind, unwrap
from .settings import Settings
from .tokens import tokenize
from .utils import *

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """
    Result of running input against the tree.

    SUCCEEDED, HELPED and VERSION are truthy; FAILED, ABORTED and NOT_FOUND
    are falsy.
    """
    SUCCEEDED = "succeeded"
    HELPED = "helped"
    VERSION = "version"
    FAILED = "failed"
    ABORTED = "aborted"
    NOT_FOUND = "not-found"

    def __bool__(self):
        return self in (Outcome.SUCCEEDED, Outcome.HELPED, Outcome.VERSION)


class Invocation(dict):
    """
    Merged value record passed to an invoke hook.

    Keys are reachable as attributes too: record.name, record._ (leftover
    positionals) and record["--"] (tokens after a literal "--").
    """

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"invocation has no value {name!r}") from None


class CommandType(type):
    """
    Metaclass giving command classes introspectable, readable instances.

    - __typename__ is derived from the class name (camel-case split with
      hyphens) for consistent labels in messages.
    - Every name in a class's __introspectable__ becomes a read-only property
      mirroring the private field of the same name.
    - __displayable__ (if set) narrows which properties __repr__ and
      __rich_repr__ show; otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

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
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


async def _call(hook, /, *args):
    # Hooks may be plain callables or coroutine functions.
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _merge(*records):
    """Combine records left to right, skipping None and Unset values."""
    result = {}
    for record in records:
        for key, value in record.items():
            if value is not None and value is not Unset:
                result[key] = value
    return result


def _sanitize_name(cls, name, /):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} name must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} name cannot be empty")
    elif name.startswith("-") or re.search(r"\s", name):
        raise ValueError(f"{cls.__typename__} name {name!r} cannot start with '-' or contain whitespace")
    return name


def _sanitize_descr(cls, descr, /):
    if not isinstance(descr, str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    return coalesce(descr)


def _sanitize_arguments(cls, arguments, /):
    """
    Normalize an argument schema into a tuple of (name, schema) pairs.

    Accepts a mapping (insertion order is the positional order) or an
    iterable of pairs. Names must be unique strings.
    """
    pairs = list(arguments.items()) if isinstance(arguments, Mapping) else [tuple(pair) for pair in arguments]
    seen = set()
    for name, schema in pairs:
        if not isinstance(name, str) or not name:
            raise TypeError(f"{cls.__typename__} argument names must be non-empty strings")
        if not isinstance(schema, Schema):
            raise TypeError(f"{cls.__typename__} argument {name!r} must be a schema")
        if name in seen:
            raise ValueError(f"{cls.__typename__} argument {name!r} is declared twice")
        seen.add(name)
    return tuple(pairs)


def _sanitize_options(cls, options, /):
    if not isinstance(options, Mapping):
        raise TypeError(f"{cls.__typename__} options must be a mapping")
    result = {}
    for name, schema in options.items():
        if not isinstance(name, str) or not name:
            raise TypeError(f"{cls.__typename__} option names must be non-empty strings")
        if name in RESERVED_KEYS:
            raise ValueError(f"{cls.__typename__} option name {name!r} is reserved")
        if not isinstance(schema, Schema):
            raise TypeError(f"{cls.__typename__} option {name!r} must be a schema")
        result[snakecase(name)] = schema
    return result


def _sanitize_shorthands(cls, shorthands, /):
    if not isinstance(shorthands, Mapping):
        raise TypeError(f"{cls.__typename__} shorthands must be a mapping")
    result = {}
    for name, shorthand in shorthands.items():
        if not isinstance(shorthand, str) or not re.fullmatch(r"-?[^\W_]", shorthand):
            raise ValueError(f"{cls.__typename__} shorthand {shorthand!r} must be a single character like '-x'")
        result[snakecase(name)] = "-" + shorthand.lstrip("-")
    return result


def _sanitize_overrides(cls, settings, /):
    overrides = {}
    for name, value in settings.items():
        if value is Unset:
            continue
        if not isinstance(value, bool):
            raise TypeError(f"{cls.__typename__} {name!r} must be a boolean")
        overrides[name] = value
    return overrides


def _attach_to_parent(self, parent):
    """
    Register this command under its parent, enforcing unique names.

    Names are compared case-insensitively, so "Build" and "build" collide.
    """
    if parent._children.setdefault(key := self.name.lower(), self) is self:
        return
    typeof = "command" if isinstance(parent, Application) else "subcommand"
    raise ValueError(f"{typeof} name {self.name!r} is already in use (as {parent._children[key].name!r})")


class Command(metaclass=CommandType):
    """
    One addressable node of the command tree.

    Introspection
    - name, descr, parent, children (keyed by lower-cased name).
    - argument_schema: tuple of (name, schema) pairs, or Unset when never declared.
    - option_schema: mapping of option name to schema, or Unset.
    - shorthand_map: option name -> "-x".
    - help_overrides: option name -> help text shown instead of the schema description.
    - settings: effective Settings (parent's settings with this node's overrides).

    Building
    - command(name, build=None, /, **fields) creates and returns a child; build(child)
      is called when given.
    - describe/arguments/options/shorthands/help and the settings switches
      return the node so calls can be chained.
    - setup/pre_invoke/invoke/post_invoke register a hook and return it, so
      they also work as decorators.

    Hook signatures
    - setup(globals, stdout) -> False to abort
    - pre_invoke(globals), post_invoke(globals)
    - invoke(record, stdout)
    Each may be a coroutine function.
    """
    __introspectable__ = (
        "name",
        "descr",
        "parent",
        "children",
        "argument_schema",
        "option_schema",
        "shorthand_map",
        "help_overrides",
    )

    __displayable__ = (
        "name",
        "descr",
        "argument_schema",
        "option_schema",
        "children",
    )

    def __init__(
            self,
            name,
            parent=Unset,
            /,
            descr=Unset,
            arguments=Unset,
            options=Unset,
            shorthands=Unset,
            help=Unset,
            *,
            ignore_unknown_options=Unset,
            show_help_on_error=Unset,
            show_help_on_not_found=Unset,
            colorful=Unset
    ):
        cls = type(self)
        if not isinstance(parent, Command | Unset):
            raise TypeError(f"{cls.__typename__} parent must be a command")

        self._name = _sanitize_name(cls, name)
        self._descr = _sanitize_descr(cls, descr)
        self._parent = parent
        self._children = {}
        self._argument_schema = Unset if arguments is Unset else _sanitize_arguments(cls, arguments)
        self._option_schema = Unset if options is Unset else _sanitize_options(cls, options)
        self._shorthand_map = {} if shorthands is Unset else _sanitize_shorthands(cls, shorthands)
        self._help_overrides = {} if help is Unset else {snakecase(key): str(value) for key, value in help.items()}
        self._overrides = _sanitize_overrides(cls, {
            "ignore_unknown_options": ignore_unknown_options,
            "show_help_on_error": show_help_on_error,
            "show_help_on_not_found": show_help_on_not_found,
            "colorful": colorful,
        })
        self._setup = Unset
        self._pre_invoke = Unset
        self._invoke = Unset
        self._post_invoke = Unset

        if parent is not Unset:
            _attach_to_parent(self, parent)

    @property
    def root(self):
        """The topmost node (normally the Application)."""
        node = self
        while node.parent:
            node = node.parent
        return node

    @property
    def path(self):
        """Commands from the first one below the application down to this one."""
        path = []
        node = self
        while node and not isinstance(node, Application):
            path.append(node)
            node = node.parent
        return tuple(reversed(path))

    @property
    def full_name(self):
        """Space-separated names along path, e.g. "remote add"."""
        return " ".join(node.name for node in self.path)

    @property
    def settings(self):
        base = self._parent.settings if self._parent else Settings()
        return copy.replace(base, **self._overrides) if self._overrides else base

    @property
    def stdout(self):
        """Output sink of the tree (sys.stdout unless the application was given one)."""
        root = self.root
        return root.stdout if root is not self else sys.stdout

    def _lineage(self):
        node, lineage = self, []
        while node:
            lineage.append(node)
            node = node.parent
        return reversed(lineage)

    def _scope(self):
        """
        Effective (options, shorthands, overrides) for this node.

        Global options come first, then every ancestor's, then this node's own;
        later declarations extend or replace earlier ones by name. Options stay
        Unset when no node along the way declared any.
        """
        options, shorthands, overrides = Unset, {}, {}
        for node in self._lineage():
            if node._option_schema is not Unset:
                options = coalesce(options, {}) | node._option_schema
            shorthands |= node._shorthand_map
            overrides |= node._help_overrides
        return options, shorthands, overrides

    def command(self, name, build=Unset, /, **fields):
        """
        Create a child command named name and return it.

        build, when given, is called with the child so the whole definition
        can be written inline:

            app.command("echo", lambda echo: echo.describe("Prints a message"))
        """
        child = Command(name, self, **fields)
        if build is not Unset and build is not None:
            if not callable(build):
                raise TypeError("command() build must be callable")
            build(child)
        logger.debug("registered %s under %r", child.full_name, self.name)
        return child

    register = command

    def describe(self, descr, /):
        self._descr = _sanitize_descr(type(self), descr)
        return self

    def arguments(self, arguments, /):
        self._argument_schema = _sanitize_arguments(type(self), arguments)
        return self

    def options(self, options, /):
        self._option_schema = _sanitize_options(type(self), options)
        return self

    def shorthands(self, shorthands, /):
        self._shorthand_map |= _sanitize_shorthands(type(self), shorthands)
        return self

    def help(self, overrides, /):
        """Set help text per option, shown instead of the schema descriptions."""
        if not isinstance(overrides, Mapping):
            raise TypeError(f"{type(self).__typename__} help overrides must be a mapping")
        self._help_overrides |= {snakecase(key): str(value) for key, value in overrides.items()}
        return self

    def ignore_unknown_options(self, flag=True, /):
        self._overrides |= _sanitize_overrides(type(self), {"ignore_unknown_options": flag})
        return self

    def show_help_on_error(self, flag=True, /):
        self._overrides |= _sanitize_overrides(type(self), {"show_help_on_error": flag})
        return self

    def show_help_on_not_found(self, flag=True, /):
        self._overrides |= _sanitize_overrides(type(self), {"show_help_on_not_found": flag})
        return self

    def colorful(self, flag=True, /):
        self._overrides |= _sanitize_overrides(type(self), {"colorful": flag})
        return self

    def _hook(self, name, hook):
        if not callable(hook):
            raise TypeError(f"{type(self).__typename__} {name}() argument must be callable")
        setattr(self, "_" + name, hook)
        return hook

    def setup(self, hook, /):
        return self._hook("setup", hook)

    def pre_invoke(self, hook, /):
        return self._hook("pre_invoke", hook)

    def invoke(self, hook, /):
        return self._hook("invoke", hook)

    def post_invoke(self, hook, /):
        return self._hook("post_invoke", hook)

    def resolve(self, tokens, /):
        """
        Walk tokens down the tree and return (deepest node, remaining tokens).

        Each token is looked up case-insensitively among the current node's
        children; the walk stops at the first miss. Matching is exact.
        """
        node, remaining = self, list(tokens)
        while remaining and (child := node._children.get(str(remaining[0]).lower())):
            node, remaining = child, remaining[1:]
        logger.debug("resolved %r to %r", list(tokens), node.name)
        return node, remaining

    def display_help(self):
        """Render this node's help to the output sink."""
        options, shorthands, overrides = self._scope()
        settings = self.settings
        renderable = render_help(
            " ".join(filter(None, (self.root.name, self.full_name))),
            self._descr,
            self._argument_schema,
            options,
            shorthands,
            overrides,
            [(child.name, child.descr) for child in self._children.values()],
            colorful=settings.colorful,
        )
        console(self.stdout, colorful=settings.colorful).print(renderable)

    async def _execute(self, input, globals):
        """
        Run this node's lifecycle against input and return an Outcome.

        input is the raw record for this node ("_" holds the tokens left after
        this node's name); globals is the coerced global option record.
        UnknownOptionError, RequiredAfterOptionalError and unexpected errors
        propagate to the executor; the other faults are reported here.
        """
        stdout = self.stdout
        settings = self.settings
        logger.debug("running %s with %r", self.full_name, input["_"])

        helped = coerce_flag(input.get("help"))
        if not helped and self._setup is not Unset:
            if await _call(self._setup, globals, stdout) is False:
                logger.debug("setup of %s aborted the run", self.full_name)
                return Outcome.ABORTED

        if self._pre_invoke is not Unset:
            await _call(self._pre_invoke, globals)

        assert_no_required_after_optional(self._argument_schema)

        tokens = input["_"]
        if tokens and (child := self._children.get(str(tokens[0]).lower())):
            outcome = await child._execute(input | {"_": tokens[1:]}, globals)
            if outcome and self._post_invoke is not Unset:
                await _call(self._post_invoke, globals)
            return outcome

        if helped:
            self.display_help()
            return Outcome.HELPED

        if len(tokens) < len(coalesce(self._argument_schema, ())):
            logger.debug("%s expects %d arguments, got %d", self.full_name, len(self._argument_schema), len(tokens))
            self.display_help()
            return Outcome.FAILED

        if self._invoke is Unset:
            self.display_help()
            return Outcome.FAILED

        try:
            options, shorthands, _ = self._scope()
            expanded = expand_shorthands(input, shorthands)
            arguments, leftover = coerce_arguments(tokens, self._argument_schema)
            options = coerce_options(expanded, options, settings.ignore_unknown_options)
            # Shorthand keys renamed above must not resurface through the globals.
            scoped = {key: value for key, value in globals.items() if key in expanded}
            record = Invocation(_merge(scoped, arguments, options, {"_": leftover, "--": input.get("--")}))
            await _call(self._invoke, record, stdout)
            if self._post_invoke is not Unset:
                await _call(self._post_invoke, globals)
        except (UnknownOptionError, RequiredAfterOptionalError):
            raise
        except (IncorrectUsageError, ValidationError, CommandError) as error:
            logger.debug("%s failed: %s", self.full_name, error)
            trigger(error, stdout=stdout, colorful=settings.colorful, command=error.options.get("command", self))
            if settings.show_help_on_error:
                self.display_help()
            return Outcome.FAILED
        except Exception as error:
            console(stdout).print(f"[ERROR] {type(error).__name__}: {error}")
            raise

        return Outcome.SUCCEEDED


def _unsupported(name):
    @rename(name)
    def method(self, *args, **kwargs):
        raise TypeError(f"application does not support {name}(), declare it on a command instead")
    return method


class Application(Command):
    """
    Root of the command tree and top-level executor.

    The root scope holds the global options (options(), shorthands(), help()),
    the version string, the settings every command inherits, the output sink
    and the before_invoke/after_invoke hooks. It takes no positional arguments
    and has no setup/invoke hooks of its own.

    Running
    - await app.run(argv) inside an event loop,
    - app.exec(argv) otherwise (drives run() with asyncio.run()).
    argv defaults to sys.argv[1:] and may also be a shell-style string.
    """
    __introspectable__ = (
        "name",
        "descr",
        "children",
        "option_schema",
        "shorthand_map",
        "help_overrides",
        "last_input",
    )

    __displayable__ = (
        "name",
        "descr",
        "option_schema",
        "children",
    )

    def __init__(
            self,
            stdout=Unset,
            /,
            name=Unset,
            descr=Unset,
            options=Unset,
            shorthands=Unset,
            *,
            ignore_unknown_options=Unset,
            show_help_on_error=Unset,
            show_help_on_not_found=Unset,
            colorful=Unset
    ):
        if stdout is not Unset and not callable(getattr(stdout, "write", None)):
            raise TypeError("application stdout must be a writable text stream")
        super().__init__(
            coalesce(name, getattr(__import__("__main__"), "__prog__", os.path.basename(sys.argv[0]) or "app")),
            descr=descr,
            options=options,
            shorthands=shorthands,
            ignore_unknown_options=ignore_unknown_options,
            show_help_on_error=show_help_on_error,
            show_help_on_not_found=show_help_on_not_found,
            colorful=colorful,
        )
        self._stdout = stdout
        self._version = Unset
        self._before_invoke = Unset
        self._after_invoke = Unset
        self._last_input = None

    arguments = _unsupported("arguments")
    setup = _unsupported("setup")
    pre_invoke = _unsupported("pre_invoke")
    invoke = _unsupported("invoke")
    post_invoke = _unsupported("post_invoke")

    @property
    def stdout(self):
        return coalesce(self._stdout, sys.stdout)

    def options(self, options, /):
        """Declare global options; repeated calls extend the global schema."""
        self._option_schema = coalesce(self._option_schema, {}) | _sanitize_options(type(self), options)
        return self

    def help(self, overrides=Unset, /):
        """
        Declare the global "help" flag (shorthand -h).

        overrides, when given, sets help text for global options like
        Command.help().
        """
        self.options({"help": Boolean().optional()}).shorthands({"help": "-h"})
        if overrides is not Unset:
            super().help(overrides)
        return self

    def version(self, version, /):
        """Set the text printed when no command is given."""
        if not isinstance(version, str):
            raise TypeError("application version must be a string")
        self._version = version
        return self

    def before_invoke(self, hook, /):
        return self._hook("before_invoke", hook)

    def after_invoke(self, hook, /):
        return self._hook("after_invoke", hook)

    def write(self, output, /):
        """Write a line (or several lines, given a list) to the output sink."""
        if isinstance(output, list | tuple):
            output = "\n".join(map(str, output))
        console(self.stdout, colorful=self.settings.colorful).print(str(output))

    def _flags(self):
        """
        Names of boolean options anywhere in the tree (plus their shorthand
        letters), which never take the following token as their value.
        """
        flags, nodes = set(), [self]
        while nodes:
            node = nodes.pop()
            nodes.extend(node._children.values())
            for name, schema in coalesce(node._option_schema, {}).items():
                if unwrap(schema).kind is Kind.BOOLEAN:
                    flags.add(kebabcase(name))
                    if shorthand := node._shorthand_map.get(name):
                        flags.add(shorthand.lstrip("-"))
        return frozenset(flags)

    async def run(self, argv=Unset, /):
        """
        Resolve argv against the tree and run it.

        Returns an Outcome. Faults caused by the input are written to the
        output sink; a RequiredAfterOptionalError is written and re-raised;
        any other exception is written with its traceback and ends the process
        with exit status 1.
        """
        input = transform_keys(tokenize(coalesce(argv, sys.argv[1:]), flags=self._flags()), snakecase)
        self._last_input = input
        tokens = input["_"]
        settings = self.settings
        context = {"stdout": self.stdout, "colorful": settings.colorful}
        declared = coalesce(self._option_schema, {})

        input = expand_shorthands(input, self._shorthand_map)
        if coerce_flag(input.get("help")) and not tokens and "help" in declared:
            self.display_help()
            return Outcome.HELPED

        globals = {}
        try:
            globals = coerce_options(input, self._option_schema, True)
            if self._before_invoke is not Unset:
                await _call(self._before_invoke, globals)

            if tokens and (command := self._children.get(str(tokens[0]).lower())):
                outcome = await command._execute(input | {"_": tokens[1:]}, globals)
            elif tokens:
                trigger(CommandNotFoundError(str(tokens[0])), **context)
                if settings.show_help_on_not_found:
                    self.display_help()
                outcome = Outcome.NOT_FOUND
            elif self._version is not Unset:
                self.write(self._version)
                outcome = Outcome.VERSION
            elif "help" in declared:
                self.display_help()
                outcome = Outcome.HELPED
            else:
                outcome = Outcome.SUCCEEDED
        except RequiredAfterOptionalError as error:
            if settings.show_help_on_error:
                self.display_help()
            trigger(error, **context)
        except CommandException as error:
            if settings.show_help_on_error:
                self.display_help()
            trigger(error, **context)
            outcome = Outcome.FAILED
        except Exception as error:
            trigger(CommandFault(error=error), **context)

        logger.debug("run of %r finished: %s", tokens, outcome.value)
        if self._after_invoke is not Unset:
            await _call(self._after_invoke, globals)
        return outcome

    def exec(self, argv=Unset, /):
        """Synchronous entry point: run argv and return the Outcome."""
        return asyncio.run(self.run(argv))


def application(stdout=Unset, /, **fields):
    """
    Create an Application.

    Parameters
    - stdout: writable text stream for all output (default: sys.stdout at write time).
    - fields: name, descr, options, shorthands, and the settings switches
      (ignore_unknown_options, show_help_on_error, show_help_on_not_found, colorful).
    """
    return Application(stdout, **fields)


__all__ = (
    "Outcome",
    "Invocation",
    "Command",
    "Application",
    "application",
)
