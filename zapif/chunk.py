"""Hash-consed chunks of preprocessor expression text and their values.

A chunk may carry text, an integer value, both, or be the concatenation
of two other chunks. Chunks are interned by a :class:`ChunkTable`, so two
chunks built from the same parts are the same object.
"""

from __future__ import annotations

import enum
import warnings
from dataclasses import dataclass
from typing import Optional

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UINT64_MAX = (1 << 64) - 1

_DECIMAL = "0123456789"


class Kind(enum.IntEnum):
    """Representation flags of a chunk."""

    FRESH = 0
    INTEGER = 1  # value is valid
    TEXT = 2  # text is valid
    INTEGER_TEXT = 3
    UNDEF = 7  # like INTEGER_TEXT, but forcibly undefined
    CONS = 8  # left and right are valid


class Tag(enum.Enum):
    """Syntactic forms that later simplifications care about."""

    MISC = 0
    DEFINED_WITH_PAREN = 1
    DEFINED_SANS_PAREN = 2
    LNOT = 3
    PRIMARY = 4


class MakeKind(enum.Enum):
    """Context in which a chunk is made from a string."""

    AS_DEF = "def"  # right-hand side of a -D option
    AS_UNDEF = "undef"  # symbol of a -U option
    AS_TEXT = "text"  # input text


@dataclass(eq=False)
class Chunk:
    """A piece of text, a number, both, or a pair of chunks."""

    kind: Kind
    text: str = ""
    value: int = 0
    left: Optional["Chunk"] = None
    right: Optional["Chunk"] = None
    tag: Tag = Tag.MISC

    def is_int(self) -> bool:
        """True if the chunk has an integer value."""
        return bool(self.kind & Kind.INTEGER)

    def is_undef(self) -> bool:
        """True if the chunk was forcibly undefined."""
        return self.kind == Kind.UNDEF

    def equals(self, value: int) -> bool:
        """True iff the chunk has an integer value equal to ``value``."""
        return self.is_int() and self.value == value

    def differs(self, value: int) -> bool:
        """True iff the chunk has an integer value different from ``value``."""
        return self.is_int() and self.value != value

    def bit_triple(self) -> int:
        """Which branches to keep: 1 for true, 2 for false, 7 if unknown."""
        if not self.is_int():
            return 7
        return 1 if self.value != 0 else 2

    def set_tag(self, tag: Tag) -> "Chunk":
        self.tag = tag
        return self

    def has_tag(self, tag: Tag) -> bool:
        return self.tag is tag

    def set_primary(self) -> None:
        """Mark the chunk as safe to leave without enclosing parentheses."""
        if self.tag is Tag.MISC:
            self.tag = Tag.PRIMARY


def _to_int64(value: int) -> int:
    """Wrap an integer into the signed 64-bit range."""
    value &= _UINT64_MAX
    return value - (1 << 64) if value > _INT64_MAX else value


def _digits_for(base: int) -> str:
    if base == 16:
        return "0123456789abcdefABCDEF"
    return _DECIMAL[:base]


def _convert(digits: str, base: int) -> Optional[int]:
    """Convert the whole of ``digits`` in ``base``; None if any is left over."""
    if (
        base == 16
        and len(digits) > 2
        and digits[:2] in ("0x", "0X")
        and digits[2] in _digits_for(16)
    ):
        digits = digits[2:]
    if not digits:
        return 0
    valid = _digits_for(base)
    if any(ch not in valid for ch in digits):
        return None
    return int(digits, base)


def parse_int(text: str, c_mode: bool = False) -> Optional[int]:
    """Return the integer value of a numeral or boolean literal, or None.

    Digit separators (``'``) are ignored and ``l``/``u`` suffixes end the
    numeral. Outside C mode, ``true`` and ``false`` are 1 and 0.
    """
    if not text:
        return None
    if text[0] not in _DECIMAL:
        if not c_mode:
            if text == "true":
                return 1
            if text == "false":
                return 0
        return None

    base = 10
    start = 0
    if text[0] == "0" and len(text) >= 2:
        prefix = text[1]
        if prefix in "bB":
            base, start = 2, 2
        elif prefix in "xX":
            base, start = 16, 2
        else:
            base, start = 8, 1

    chars = []
    is_unsigned = False
    for ch in text[start:]:
        if ch in "lL":
            break
        if ch in "uU":
            is_unsigned = True
            break
        if ch == "'":
            continue
        chars.append(ch)

    value = _convert("".join(chars), base)
    if value is None:
        return None
    if is_unsigned:
        value = min(value, _UINT64_MAX)
        if value > _INT64_MAX:
            warnings.warn(
                f"unsigned literal {text} does not fit in long long",
                stacklevel=2,
            )
        return _to_int64(value)
    return min(value, _INT64_MAX)


class ChunkTable:
    """Interns chunks and holds the symbol definitions from -D and -U."""

    def __init__(self, interpret_constants: bool = False, c_mode: bool = False):
        self.interpret_constants = interpret_constants
        self.c_mode = c_mode
        self._ints: dict[int, Chunk] = {}
        self._texts: dict[str, Chunk] = {}
        self._rhs: dict[str, Chunk] = {}
        self._defs: dict[str, Chunk] = {}
        self._cats: dict[tuple[Chunk, Chunk], Chunk] = {}
        self._marker = Chunk(Kind.TEXT)

    def make_int(self, value: int) -> Chunk:
        """Return the pure integer chunk for ``value`` (wrapped to 64 bits)."""
        value = _to_int64(value)
        chunk = self._ints.get(value)
        if chunk is None:
            chunk = self._ints[value] = Chunk(Kind.INTEGER, value=value)
        return chunk

    def make_text(self, text: str, kind: MakeKind = MakeKind.AS_TEXT) -> Chunk:
        """Return the chunk for ``text`` made in the given context."""
        store = self._texts if kind is MakeKind.AS_TEXT else self._rhs
        chunk = store.get(text)
        if chunk is not None:
            return chunk
        chunk = Chunk(Kind.TEXT, text=text)
        if kind is MakeKind.AS_UNDEF:
            chunk.kind = Kind.UNDEF
        elif kind is MakeKind.AS_DEF or self.interpret_constants:
            value = parse_int(text, self.c_mode)
            if value is not None:
                chunk.value = value
                chunk.kind = Kind.INTEGER_TEXT
        store[text] = chunk
        return chunk

    def define(self, symbol: str, right: str) -> None:
        """Treat ``symbol`` as defined with the text ``right``."""
        if not symbol:
            raise ValueError("cannot define an empty symbol")
        self._defs[symbol] = self.make_text(right, MakeKind.AS_DEF)

    def undefine(self, symbol: str) -> None:
        """Treat ``symbol`` as undefined."""
        if not symbol:
            raise ValueError("cannot undefine an empty symbol")
        self._defs[symbol] = self.make_text(symbol, MakeKind.AS_UNDEF)

    def lookup(self, chunk: Chunk) -> Optional[Chunk]:
        """Return the definition of ``chunk``'s text, if any."""
        return self._defs.get(chunk.text)

    def as_int(self, chunk: Chunk, relaxed: bool = False) -> Optional[int]:
        """Return the integer value of ``chunk``, or None if it has none.

        With ``relaxed``, a text chunk that is a numeral counts as a value.
        """
        target = chunk
        if not chunk.is_int():
            definition = self.lookup(chunk)
            if definition is not None:
                target = definition
        if target.is_int():
            return target.value
        if relaxed and target.kind & Kind.TEXT:
            return parse_int(target.text, self.c_mode)
        return None

    def cat(self, *args: Chunk) -> Chunk:
        """Concatenate chunks, nesting to the right."""
        if len(args) < 2:
            raise ValueError("cat needs at least two chunks")
        result = args[-1]
        for left in reversed(args[:-1]):
            result = self._pair(left, result)
        return result

    def _pair(self, left: Chunk, right: Chunk) -> Chunk:
        key = (left, right)
        chunk = self._cats.get(key)
        if chunk is None:
            chunk = self._cats[key] = Chunk(Kind.CONS, left=left, right=right)
        return chunk

    def mark_simplified(self, chunk: Chunk) -> Chunk:
        """Wrap a tagged non-integer chunk to record that it was simplified."""
        if not chunk.is_int() and chunk.tag is not Tag.MISC:
            return self._pair(self._marker, chunk)
        return chunk

    def was_simplified(self, chunk: Chunk) -> Optional[Chunk]:
        """Return the simplified chunk inside ``chunk``, or None."""
        if chunk.is_int():
            return chunk
        if chunk.left is self._marker:
            return chunk.right
        return None


def leftmost_char(chunk: Chunk) -> str:
    """Leftmost character of the chunk's text; "0" stands for a number."""
    while chunk.kind == Kind.CONS:
        ch = leftmost_char(chunk.left)
        if ch:
            return ch
        chunk = chunk.right
    if chunk.kind & Kind.TEXT:
        return chunk.text[:1]
    return "0"


def rightmost_char(chunk: Chunk) -> str:
    """Rightmost character of the chunk's text; "0" stands for a number."""
    while chunk.kind == Kind.CONS:
        ch = rightmost_char(chunk.right)
        if ch:
            return ch
        chunk = chunk.left
    if chunk.kind & Kind.TEXT:
        return chunk.text[-1:]
    return "0"


def part(chunk: Chunk, index: int) -> Chunk:
    """Select a subtree by index: 1 is the root, bits below the top pick sides.

    The lowest bit chooses first: odd goes right, even goes left.
    """
    if index <= 0:
        raise ValueError("part index must be positive")
    while index > 1:
        if chunk.kind != Kind.CONS:
            raise ValueError("part index descends below a leaf")
        chunk = chunk.right if index & 1 else chunk.left
        index >>= 1
    return chunk


_TAG_NOTES = {
    Tag.DEFINED_WITH_PAREN: "defined_with_paren ",
    Tag.DEFINED_SANS_PAREN: "defined_sans_paren ",
    Tag.LNOT: "lnot ",
}


def render(chunk: Chunk, annotate: bool = False) -> str:
    """Return the output text of ``chunk``; ``annotate`` shows its structure."""
    parts: list[str] = []

    def walk(node: Chunk) -> None:
        if node.kind & Kind.TEXT:
            parts.append("{text " + node.text + "}" if annotate else node.text)
        elif node.is_int():
            parts.append("{value %d}" % node.value if annotate else str(node.value))
        else:
            if node.kind != Kind.CONS:
                raise ValueError("cannot render an empty chunk")
            if annotate:
                parts.append("{" + _TAG_NOTES.get(node.tag, "cons "))
            walk(node.left)
            walk(node.right)
            if annotate:
                parts.append("}")

    walk(chunk)
    return "".join(parts)


def replace_text(chunk: Chunk, pos: int, length: int, replacement: str) -> str:
    """Return the chunk's text with the ``length`` characters ending at ``pos`` replaced."""
    if not chunk.kind & Kind.TEXT:
        raise ValueError("chunk has no text")
    text = chunk.text
    if pos > len(text) or length > pos:
        raise ValueError("replacement range is outside the text")
    return text[: pos - length] + replacement + text[pos:]