"""
Command-line tokenizer.

tokenize(argv) turns raw tokens into a record:
- "_": positional tokens, in order.
- "--": tokens after a literal "--" (only present when the separator is given).
- every other key: an option, mapped to its raw value.

Grammar
- "--key=value" and "--key value" assign a value; the next token is taken as
  the value only when it is not itself a switch (and key is not a flag).
- "--key" alone is True, "--no-key" is False.
- "-abc" sets a, b and c to True; the last letter may take a value
  ("-c 5", "-c=5").
- "--a.b=1" nests: {"a": {"b": "1"}}.
- repeating a key collects its values into a list.
- "-5" and "-1.5" are positional numbers, "-" alone is positional.

Values stay strings (or True/False for bare switches); typing is the job of
the coercion layer. Keys are returned exactly as written.
"""
import re
import shlex
from collections.abc import Iterable

_NUMBER = re.compile(r"-\d+(?:\.\d+)?(?:[eE][-+]?\d+)?")


def _is_switch(token, /):
    return token.startswith("-") and token != "-" and not _NUMBER.fullmatch(token)


def _assign(record, name, value, /):
    *parents, leaf = name.split(".")
    for parent in parents:
        if not isinstance(record.get(parent), dict):
            record[parent] = {}
        record = record[parent]
    if leaf not in record:
        record[leaf] = value
    elif isinstance(previous := record[leaf], list):
        previous.append(value)
    else:
        record[leaf] = [previous, value]


def tokenize(argv, /, *, flags=frozenset()):
    """
    Split argv into positionals and raw option values.

    Parameters
    - argv: a string (split with shell rules) or an iterable of tokens.
    - flags: option names (as written, without dashes) that never consume the
      following token as their value.

    Examples
    - tokenize("greet bob --loud") -> {"_": ["greet", "bob"], "loud": True}
    - tokenize(["-c", "5"]) -> {"_": [], "c": "5"}
    """
    if isinstance(argv, str):
        argv = shlex.split(argv)
    elif not isinstance(argv, Iterable):
        raise TypeError("tokenize() argument must be a string or an iterable of strings")

    tokens = list(argv)
    for token in tokens:
        if not isinstance(token, str):
            raise TypeError(f"tokenize() tokens must be strings, not {type(token).__name__!r}")

    record = {"_": []}
    index = 0

    def take(name):
        # Consume the next token as the value of name when it can be one.
        nonlocal index
        if name not in flags and index < len(tokens) and not _is_switch(tokens[index]):
            index += 1
            return tokens[index - 1]
        return True

    while index < len(tokens):
        token = tokens[index]
        index += 1

        if token == "--":
            record["--"] = tokens[index:]
            break

        if token.startswith("--"):
            name, separator, value = token[2:].partition("=")
            if not name:
                record["_"].append(token)
            elif separator:
                _assign(record, name, value)
            elif name.startswith("no-") and len(name) > 3:
                _assign(record, name[3:], False)
            else:
                _assign(record, name, take(name))
        elif _is_switch(token):
            letters, separator, value = token[1:].partition("=")
            if not letters:
                record["_"].append(token)
                continue
            for letter in letters[:-1]:
                _assign(record, letter, True)
            if separator:
                _assign(record, letters[-1], value)
            else:
                _assign(record, letters[-1], take(letters[-1]))
        else:
            record["_"].append(token)

    return record


__all__ = (
    "tokenize",
)
