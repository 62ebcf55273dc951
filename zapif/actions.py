"""Semantic actions that simplify preprocessor conditionals and filter code.

The lexer feeds raw text into a token buffer; the parser turns pieces of it
into chunks and calls the actions below. Directives decide which stretches
of code are written to the output and how the surviving directives read.
"""

from __future__ import annotations

import enum
import operator
import sys
import warnings
from typing import Callable, Optional, TextIO

from .chunk import (
    Chunk,
    ChunkTable,
    MakeKind,
    Tag,
    leftmost_char,
    part,
    render,
    replace_text,
    rightmost_char,
)

_MAX_DELIMITER = 16


class BinaryOp(enum.Enum):
    """Binary operators of preprocessor expressions."""

    IOR = "|"
    XOR = "^"
    AND = "&"
    EQUAL = "=="
    NOT_EQUAL = "!="
    LESS = "<"
    GREATER = ">"
    LESS_OR_EQUAL = "<="
    GREATER_OR_EQUAL = ">="
    LSHIFT = "<<"
    RSHIFT = ">>"
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    REM = "%"


_SIMPLE_FOLDS: dict[BinaryOp, Callable[[int, int], int]] = {
    BinaryOp.IOR: operator.or_,
    BinaryOp.XOR: operator.xor,
    BinaryOp.AND: operator.and_,
    BinaryOp.EQUAL: lambda i, j: int(i == j),
    BinaryOp.NOT_EQUAL: lambda i, j: int(i != j),
    BinaryOp.LESS: lambda i, j: int(i < j),
    BinaryOp.GREATER: lambda i, j: int(i > j),
    BinaryOp.LESS_OR_EQUAL: lambda i, j: int(i <= j),
    BinaryOp.GREATER_OR_EQUAL: lambda i, j: int(i >= j),
    BinaryOp.ADD: operator.add,
    BinaryOp.SUB: operator.sub,
    BinaryOp.MUL: operator.mul,
}

_UNARY_FOLDS: dict[str, Callable[[int], int]] = {
    "!": lambda i: int(i == 0),
    "-": operator.neg,
    "+": operator.pos,
    "~": operator.invert,
}


def _fold(operation: BinaryOp, i: int, j: int) -> Optional[int]:
    """Constant-fold ``i operation j``; None where the result is undefined."""
    if operation in (BinaryOp.DIV, BinaryOp.REM):
        if j == 0:
            return None
        quotient = abs(i) // abs(j)
        if (i < 0) != (j < 0):
            quotient = -quotient
        return quotient if operation is BinaryOp.DIV else i - quotient * j
    if operation in (BinaryOp.LSHIFT, BinaryOp.RSHIFT):
        if not 0 <= j < 64:
            return None
        return i << j if operation is BinaryOp.LSHIFT else i >> j
    return _SIMPLE_FOLDS[operation](i, j)


def _isalnum(ch: str) -> bool:
    return bool(ch) and ch.isascii() and ch.isalnum()


class Simplifier:
    """Evaluates expressions and directives, writing the kept text to ``output``."""

    def __init__(self, table: ChunkTable, output: Optional[TextIO] = None,
                 normalize: bool = False):
        self.table = table
        self.output = output if output is not None else sys.stdout
        self.normalize = normalize
        self._buffer = ""
        self._if_pos = 0
        self._delimiter = ""
        self._enable = [3]

    # Expression actions

    def expand(self, symbol: Chunk) -> Chunk:
        """Replace a symbol by its -D or -U definition, if it has one."""
        definition = self.table.lookup(symbol)
        return definition if definition is not None else symbol

    def defined(self, op: Chunk, left: Optional[Chunk], x: Chunk,
                right: Optional[Chunk]) -> Chunk:
        """Evaluate ``defined(x)`` or, without parentheses, ``defined x``."""
        if (left is None) != (right is None):
            raise ValueError("parentheses of defined must come in pairs")
        definition = self.table.lookup(x)
        if definition is not None:
            return self.table.make_int(int(not definition.is_undef()))
        if left is not None:
            return self.table.cat(op, left, x, right).set_tag(Tag.DEFINED_WITH_PAREN)
        return self.table.cat(op, x).set_tag(Tag.DEFINED_SANS_PAREN)

    def paren(self, left: Chunk, x: Chunk, right: Chunk) -> Chunk:
        """Evaluate ``(x)``, dropping the parentheses if x was simplified."""
        if self.table.was_simplified(x) is not None:
            return x
        return self.table.cat(left, x, right)

    def mark_primary(self, x: Chunk) -> None:
        """Mark ``x`` as safe to stand without enclosing parentheses."""
        x.set_primary()

    def unary_op(self, op: Chunk, x: Chunk, operation: str) -> Chunk:
        """Evaluate a unary ``!``, ``-``, ``+`` or ``~``."""
        fold = _UNARY_FOLDS.get(operation)
        if fold is None:
            raise ValueError(f"unknown unary operation {operation!r}")
        value = self.table.as_int(x, False)
        if value is not None:
            return self.table.make_int(fold(value))
        return self.table.cat(op, x).set_tag(Tag.LNOT)

    def lor(self, x: Chunk, op: Chunk, y: Chunk) -> Chunk:
        """Evaluate ``x || y``."""
        if x.equals(0):
            return self.table.mark_simplified(y)
        if y.equals(0):
            return self.table.mark_simplified(x)
        if x.differs(0) or y.differs(0):
            return self.table.make_int(1)
        return self.table.cat(x, op, y)

    def land(self, x: Chunk, op: Chunk, y: Chunk) -> Chunk:
        """Evaluate ``x && y``."""
        if x.differs(0):
            return self.table.mark_simplified(y)
        if y.differs(0):
            return self.table.mark_simplified(x)
        if x.equals(0) or y.equals(0):
            return self.table.make_int(0)
        return self.table.cat(x, op, y)

    def binary_op(self, x: Chunk, op: Chunk, y: Chunk, operation: BinaryOp) -> Chunk:
        """Evaluate ``x operation y``, folding constants where possible."""
        if operation is BinaryOp.AND:
            if x.equals(0):
                return x
            if y.equals(0):
                return y
        elif operation in (BinaryOp.IOR, BinaryOp.XOR):
            if x.equals(0):
                return y
            if y.equals(0):
                return x
        if x.is_int() or y.is_int():
            i = self.table.as_int(x, True)
            j = self.table.as_int(y, True)
            if i is not None and j is not None:
                result = _fold(operation, i, j)
                if result is not None:
                    return self.table.make_int(result)
        return self.table.cat(x, op, y)

    def ternary_op(self, x: Chunk, op: Chunk, y: Chunk, colon: Chunk, z: Chunk) -> Chunk:
        """Evaluate ``x ? y : z``."""
        if x.differs(0):
            return self.table.mark_simplified(y)
        if x.equals(0):
            return self.table.mark_simplified(z)
        return self.table.cat(x, op, y, colon, z)

    # Lexical actions

    def grow_token(self, text: str) -> None:
        """Append lexed text to the token buffer."""
        self._buffer += text

    def take_token(self, text: str) -> Chunk:
        """Append ``text``, return the buffer as a text chunk and clear it."""
        self.grow_token(text)
        chunk = self.table.make_text(self._buffer, MakeKind.AS_TEXT)
        self._buffer = ""
        return chunk

    def mark_if(self) -> None:
        """Record where the ``if`` or ``elif`` keyword ends in the buffer."""
        if not (self._buffer.endswith("if")):
            raise ValueError("token buffer does not end with if or elif")
        self._if_pos = len(self._buffer)

    def stash_raw_string_delimiter(self, text: str, line: int = 0) -> None:
        """Remember the delimiter of a raw string opened by ``text``."""
        if len(text) < 3 or not text.startswith('R"') or not text.endswith("("):
            raise ValueError(f"not a raw string opening: {text!r}")
        delimiter = text[2:-1]
        if len(delimiter) > _MAX_DELIMITER:
            warnings.warn(f"{line} d-char-seq exceeds 16 bytes", stacklevel=2)
        self._delimiter = delimiter

    def is_raw_string_terminator(self, text: str) -> bool:
        """True if ``text`` closes the current raw string."""
        if len(text) < 2 or not text.startswith(")") or not text.endswith('"'):
            raise ValueError(f"not a raw string closing: {text!r}")
        return text[1:-1] == self._delimiter

    def emit_code(self, text: str) -> None:
        """Append ``text`` and write the buffer if the current branch is kept."""
        self.grow_token(text)
        if self._enable[-1] & 1:
            self.output.write(self._buffer)
        self._buffer = ""

    # Directive actions

    def if_(self, if_tok: Chunk, x: Chunk, trail: Chunk) -> None:
        """Handle ``#if x``."""
        if self._push_level(x):
            self._print_if(if_tok, 2, x, self.table.was_simplified(x), trail)

    def ifdef(self, op: Chunk, ident: Chunk, trail: Chunk, is_ifdef: bool) -> None:
        """Handle ``#ifdef ident`` or, with ``is_ifdef`` false, ``#ifndef ident``."""
        x = ident
        definition = self.table.lookup(x)
        if definition is not None:
            x = self.table.make_int(int(definition.is_undef() != is_ifdef))
        if self._push_level(x):
            self._write(op, ident, trail)

    def elif_(self, elif_tok: Chunk, x: Chunk, trail: Chunk) -> None:
        """Handle ``#elif x``."""
        self._require_open("#elif")
        yp = self._enable[-1]
        if not yp & 2:
            self._enable[-1] = yp & ~3
            return
        xp = x.bit_triple()
        self._enable[-1] = xp | (yp & 4)
        if xp == 7:
            if (yp & 6) == 6:
                self._write(elif_tok, x, trail)
            elif yp == 2:
                self._print_if(elif_tok, 4, x, x, trail)
        elif xp == 1 and (yp & 6) == 6:
            self.output.write(replace_text(elif_tok, self._if_pos, 4, "else"))
            self._write(trail)

    def else_(self, else_tok: Chunk, trail: Chunk) -> None:
        """Handle ``#else``."""
        self._require_open("#else")
        xp = self._enable[-1]
        if (xp & 6) == 6:
            self._write(else_tok, trail)
        self._enable[-1] = (xp & 4) | ((xp & 3) >> 1)

    def endif(self, endif_tok: Chunk, trail: Chunk) -> None:
        """Handle ``#endif``."""
        self._require_open("#endif")
        if self._enable.pop() & 4:
            self._write(endif_tok, trail)

    # Helpers

    def _require_open(self, directive: str) -> None:
        if len(self._enable) < 2:
            raise ValueError(f"{directive} without #if")

    def _push_level(self, x: Chunk) -> bool:
        outer = self._enable[-1]
        self._enable.append(x.bit_triple() if outer & 1 else 0)
        return self._enable[-1] == 7

    def _write(self, *chunks: Chunk) -> None:
        for chunk in chunks:
            self.output.write(render(chunk))

    def _space_if_glue_hazard(self, x: Chunk, y: Chunk) -> None:
        if _isalnum(rightmost_char(x)) and _isalnum(leftmost_char(y)):
            self.output.write(" ")

    def _print_if(self, if_or_elif: Chunk, length: int, x: Chunk,
                  y: Optional[Chunk], trail: Chunk) -> None:
        if self.normalize and y is not None:
            if y.has_tag(Tag.LNOT):
                z: Optional[Chunk] = part(y, 3)
                keyword = "ifndef"
            else:
                z = y
                keyword = "ifdef"
            if z.has_tag(Tag.DEFINED_WITH_PAREN):
                z = part(z, 0xB)
            elif z.has_tag(Tag.DEFINED_SANS_PAREN):
                z = part(z, 0x3)
            else:
                z = None
            if z is not None:
                self.output.write(replace_text(if_or_elif, self._if_pos, length, keyword))
                self._space_if_glue_hazard(if_or_elif, z)
                self._write(z, trail)
                return
        self.output.write(replace_text(if_or_elif, self._if_pos, length, "if"))
        if y is not None:
            self._space_if_glue_hazard(if_or_elif, x)
        self._write(x, trail)