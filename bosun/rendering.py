"""
Help rendering.

render_help() turns command metadata into a rich renderable:

    usage: app greet <name:string> [times:number:1]

    description:
        Greets someone

    options:
        --times|-t    number
            how many times to greet

    commands:
        hello    Says hello

Palette keys
- usage-label, program-name, required-argument, optional-argument
- section-label, description
- option-name, option-type, option-description
- command-name, command-description

Customization
- Define a mapping named __styles__ in __main__ to override any palette entry.
- Styles are only applied when colorful is true.
"""
from collections import defaultdict

from rich.console import Group
from rich.text import Text

from .schemas import Kind, is_optional
from .utils import *

INDENT = 4


def render_help(
        name,
        /,
        descr=None,
        arguments=Unset,
        options=Unset,
        shorthands=Unset,
        overrides=Unset,
        children=(),
        *,
        colorful=False
):
    """
    Build the help renderable for one command.

    Parameters
    - name: full command name shown in the usage line.
    - descr: command description, or None.
    - arguments: ordered (name, schema) pairs, or Unset when never declared.
    - options: mapping of option name to schema, or Unset.
    - shorthands: mapping of option name to its shorthand token.
    - overrides: mapping of option name to help text replacing its description.
    - children: (name, description) pairs of subcommands.
    - colorful: apply the palette.

    Arguments keep their declaration order; required ones read <name:kind>,
    optional ones [name:kind] and defaulted ones [name:kind:default].
    """
    styles = defaultdict(str, {
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "required-argument": "bold #FFD600",
        "optional-argument": "italic #FFD600",
        "section-label": "bold #FFFFFF",
        "description": "italic #A3A3A3",
        "option-name": "bold #00E6FF",
        "option-type": "#22C55E",
        "option-description": "#9CA3AF",
        "command-name": "bold #36C5F0",
        "command-description": "#9CA3AF",
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if isinstance(fragment, Text):
            return fragment if colorful else Text(fragment.plain)
        return Text(str(fragment), styler(style))

    shorthands = coalesce(shorthands, {})
    overrides = coalesce(overrides, {})
    renders = []

    # Usage: program name followed by the argument markers
    usage = Text.assemble(text("usage", "usage-label"), ": ", text(name, "program-name"))
    for argument, schema in coalesce(arguments, ()):
        if schema.kind is Kind.DEFAULT:
            marker = f"[{argument}:{schema.typename()}:{schema.value}]"
        elif is_optional(schema):
            marker = f"[{argument}:{schema.typename()}]"
        else:
            marker = f"<{argument}:{schema.typename()}>"
        usage.append(" ").append_text(text(marker, "optional-argument" if is_optional(schema) else "required-argument"))
    renders.append(usage)

    if descr:
        section = Text.assemble("\n", text("description", "section-label"), ":\n")
        section.append(" " * INDENT).append_text(text(descr, "description"))
        renders.append(section)

    if options := coalesce(options, {}):
        labels = {}
        for option in options:
            label = f"--{kebabcase(option)}"
            if shorthand := shorthands.get(option):
                label += f"|-{shorthand.lstrip("-")}"
            labels[option] = label
        width = max(map(len, labels.values())) + INDENT

        section = Text.assemble("\n", text("options", "section-label"), ":")
        for option, schema in options.items():
            section.append("\n" + " " * INDENT)
            section.append_text(text(labels[option], "option-name"))
            section.append(" " * (width - len(labels[option])))
            section.append_text(text(schema.typename(), "option-type"))
            if description := overrides.get(option, schema.descr):
                section.append("\n" + " " * INDENT * 2)
                section.append_text(text(description, "option-description"))
        renders.append(section)

    if children := list(children):
        width = max(len(child) for child, _ in children) + INDENT
        section = Text.assemble("\n", text("commands", "section-label"), ":")
        for child, description in children:
            section.append("\n" + " " * INDENT)
            section.append_text(text(child, "command-name"))
            if description:
                section.append(" " * (width - len(child)))
                section.append_text(text(description, "command-description"))
        renders.append(section)

    return Group(*renders)


__all__ = (
    "render_help",
)
