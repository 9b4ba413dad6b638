"""Command-line style parsing of chat commands."""
import re
import shlex
from dataclasses import dataclass, field
from typing import Optional

_FLAG_BUNDLE = re.compile(r"^-[gtlf]{2,}$")


class CommandUsageError(ValueError):
    pass


def split_command(text: str) -> Optional[tuple[str, list[str]]]:
    """Split `/name@bot arg1 "arg 2"` into ("name", ["arg1", "arg 2"]). None if not a command."""
    text = (text or "").strip()
    if not text.startswith("/") or len(text) < 2:
        return None
    try:
        tokens = shlex.split(text)
    except ValueError:
        tokens = text.split()
    name = tokens[0][1:].split("@", 1)[0].lower()
    if not name:
        return None
    return name, tokens[1:]


@dataclass
class SelectOptions:
    id: Optional[int] = None
    global_: bool = False
    tag: bool = False
    list_: bool = False
    page: Optional[int] = None
    full: bool = False
    filters: list[str] = field(default_factory=list)


def _int_value(option: str, args: list[str], index: int) -> int:
    if index >= len(args):
        raise CommandUsageError(f"{option} needs a number")
    try:
        return int(args[index])
    except ValueError:
        raise CommandUsageError(f"{option} needs a number, got {args[index]!r}")


def parse_select_args(args: list[str]) -> SelectOptions:
    options = SelectOptions()
    expanded: list[str] = []
    for arg in args:
        if _FLAG_BUNDLE.match(arg):
            expanded.extend(f"-{flag}" for flag in arg[1:])
        else:
            expanded.append(arg)

    i = 0
    while i < len(expanded):
        arg = expanded[i]
        if arg == "-i":
            options.id = _int_value(arg, expanded, i + 1)
            i += 1
        elif arg == "-p":
            options.page = _int_value(arg, expanded, i + 1)
            i += 1
        elif arg == "-g":
            options.global_ = True
        elif arg == "-t":
            options.tag = True
        elif arg == "-l":
            options.list_ = True
        elif arg == "-f":
            options.full = True
        elif len(arg) == 2 and arg.startswith("-") and arg[1].isalpha():
            raise CommandUsageError(f"Unknown option: {arg}")
        else:
            options.filters.append(arg)
        i += 1
    return options


def parse_id_option(args: list[str]) -> tuple[Optional[int], list[str]]:
    """Pull `-i <id>` out of args. Returns (id or None, remaining args)."""
    rest: list[str] = []
    quote_id = None
    i = 0
    while i < len(args):
        if args[i] == "-i":
            quote_id = _int_value("-i", args, i + 1)
            i += 2
            continue
        rest.append(args[i])
        i += 1
    return quote_id, rest
