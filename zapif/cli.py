"""Command-line options for the conditional simplifier."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Optional, Sequence, TextIO

from .actions import Simplifier
from .chunk import ChunkTable

VERSION = "1.5.0"

HELP_TEXT = """\
Usage: zapif [OPTIONS] [INPUTFILE]
Algebraically simplify C and C++ preprocessor conditionals, and remove
code that would never be selected by the preprocessor.

If no input file is specified, input is `stdin`.
Output goes to `stdout` unless `-o` is specified.

  -Dfoo=42 treat foo as having the value 42.
  -Dfoo    same as -Dfoo=1
  -Ufoo    treat foo as undefined.
  -c       assume input is C, not C++.
  -e       allow $ and @ in identifiers.
  -k       interpret numerals in preprocessor expressions. Otherwise
           they are treated as unknown values.
  -n       normalize #if defined(x) to #ifdef x if the whole expression
           was the result of simplification. Do likewise for
           #if !defined(x) and equivalent parentheses-free forms.
  -o file  use file for output instead of stdout.
  -v       print version and exit.
  --help   print this message and exit.
"""


class OptionError(ValueError):
    """A command-line option is unknown or malformed."""


@dataclass
class Options:
    """Parsed command-line options.

    ``symbols`` holds (name, value) pairs in the order given; a value of
    None means the name was undefined with -U.
    """

    symbols: list[tuple[str, Optional[str]]] = field(default_factory=list)
    c_mode: bool = False
    extended: bool = False
    interpret_constants: bool = False
    normalize: bool = False
    output: Optional[str] = None
    input: Optional[str] = None
    show_version: bool = False
    show_help: bool = False


def _is_ident_char(ch: str, extended: bool, first: bool) -> bool:
    if extended and ch in "$@":
        return True
    if not ch.isascii():
        return False
    return ch.isalpha() or ch == "_" or (not first and ch.isdigit())


def skip_identifier(text: str, extended: bool = False) -> int:
    """Return the index just past the identifier at the start of ``text``."""
    if not text or not _is_ident_char(text[0], extended, True):
        return 0
    end = 1
    while end < len(text) and _is_ident_char(text[end], extended, False):
        end += 1
    return end


def parse_options(argv: Optional[Sequence[str]] = None) -> Options:
    """Parse arguments (without the program name) into :class:`Options`."""
    args = list(sys.argv[1:] if argv is None else argv)
    options = Options()
    i = 0
    while i < len(args) and args[i].startswith("-"):
        arg = args[i]
        flag = arg[1:2]
        if arg == "--help":
            options.show_help = True
            return options
        if flag == "U":
            symbol = arg[2:]
            if not symbol or skip_identifier(symbol, options.extended) != len(symbol):
                raise OptionError(f"option {arg} has garbled identifier")
            options.symbols.append((symbol, None))
        elif flag == "D":
            body = arg[2:]
            end = skip_identifier(body, options.extended)
            symbol = body[:end]
            if end == len(body):
                value = "1"
            elif body[end] == "=":
                value = body[end + 1:]
            else:
                raise OptionError(f"option {arg} garbled")
            if not symbol:
                raise OptionError(f"option {arg} garbled")
            options.symbols.append((symbol, value))
        elif flag == "c":
            options.c_mode = True
        elif flag == "e":
            options.extended = True
        elif flag == "k":
            options.interpret_constants = True
        elif flag == "n":
            options.normalize = True
        elif flag == "o":
            if options.output is not None:
                raise OptionError("duplicate -o option")
            i += 1
            if i >= len(args):
                raise OptionError("filename expected after -o")
            options.output = args[i]
        elif flag == "v":
            options.show_version = True
        else:
            raise OptionError(
                f"unknown option '{arg}'\nTry 'zapif --help' for more information."
            )
        i += 1
    if i < len(args):
        options.input = args[i]
    return options


def build_simplifier(options: Options, output: Optional[TextIO] = None) -> Simplifier:
    """Create a simplifier whose symbol table reflects ``options``."""
    table = ChunkTable(
        interpret_constants=options.interpret_constants, c_mode=options.c_mode
    )
    for symbol, value in options.symbols:
        if value is None:
            table.undefine(symbol)
        else:
            table.define(symbol, value)
    return Simplifier(table, output, options.normalize)