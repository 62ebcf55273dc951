# zapif

zapif holds the evaluation machinery for simplifying C and C++
preprocessor conditionals. You say which macros are known to be defined,
and to what value, and which are known to be undefined. The actions then
fold whatever can be worked out in `#if`, `#ifdef`, `#ifndef`, `#elif`,
`#else` and `#endif`, drop the branches that would never be selected, and
keep all other text exactly as it was given, including whitespace,
comments and the spelling of numerals.

A branch known to be taken loses its directives. A branch known not to
be taken disappears completely. A condition that cannot be decided is
rewritten to what is left of it, for example with `zero` defined as `0`,
`#if zero || foo` becomes `#if foo`.

zapif needs Python 3.10 or later and has no third-party dependencies.

## What the package does not do

The package has no lexer or parser for C or C++ source and no command to
run. It does not read a source file by itself: the caller splits the
input into tokens and calls the actions of `zapif.actions.Simplifier` in
the order a preprocessor-conditional grammar would. Recognising strings,
character literals, comments, line continuations and the alternative
spellings `and`, `or`, `xor`, `not` is left to that caller; the package
only offers `Simplifier.stash_raw_string_delimiter` and
`Simplifier.is_raw_string_terminator` to help match C++ raw strings.

## Layers

### `zapif.chunk`

A `Chunk` is a piece of input text, an integer, both (a numeral that
keeps its original spelling), or the concatenation of two chunks. Its
`kind` is a `Kind` flag set and its `tag` a `Tag` (`MISC`,
`DEFINED_WITH_PAREN`, `DEFINED_SANS_PAREN`, `LNOT`, `PRIMARY`).

A `ChunkTable` interns chunks, so the same parts always give the same
object, and records `-D`/`-U` definitions:

- `make_int(value)`, `make_text(text, kind)` with a `MakeKind` of
  `AS_TEXT`, `AS_DEF` or `AS_UNDEF`, and `cat(*chunks)`, which nests to
  the right.
- `define(symbol, right)`, `undefine(symbol)` and `lookup(chunk)`;
  an empty symbol raises `ValueError`.
- `as_int(chunk, relaxed)` gives a chunk's value, or `None`.
- `mark_simplified` / `was_simplified` record that an expression was
  the result of simplification.

Integers are kept in the signed 64-bit range. Input text counts as a
number only when the table is made with `interpret_constants=True`;
right-hand sides of `define` are always tried as numbers.

`parse_int(text, c_mode)` reads decimal, octal, hexadecimal and binary
numerals, skips `'` digit separators and stops at `u`/`l` suffixes.
Outside C mode, `true` and `false` are `1` and `0`. An unsigned literal
too large for a signed 64-bit value gives a warning.

```python
from zapif.chunk import ChunkTable, parse_int

parse_int("0x1F", c_mode=True)   # 31
parse_int("true", c_mode=False)  # 1
parse_int("true", c_mode=True)   # None

table = ChunkTable(interpret_constants=False, c_mode=True)
table.define("five", "5")
table.undefine("nil")
```

`render(chunk, annotate)` gives a chunk's output text (with `annotate`,
its structure as well), and `leftmost_char`, `rightmost_char`, `part`
and `replace_text` take chunks apart.

### `zapif.actions`

`Simplifier(table, output, normalize)` writes the surviving text to the
`output` stream (standard output by default) and keeps the stack of
enabled branches.

- Expression actions: `expand`, `defined`, `paren`, `mark_primary`,
  `unary_op` (`"!"`, `"-"`, `"+"`, `"~"`), `binary_op` with a `BinaryOp`,
  `lor`, `land` and `ternary_op`. Constants are folded; division or
  remainder by zero and shifts outside 0 to 63 are left unfolded.
  Parentheses are kept unless their contents were simplified.
- Token buffer: `grow_token`, `take_token`, `mark_if` and `emit_code`.
- Directive actions: `if_`, `ifdef`, `elif_`, `else_` and `endif`.
  `elif_`, `else_` and `endif` without an open `#if` raise `ValueError`.

With `normalize=True`, a simplified `#if defined(x)` is written as
`#ifdef x` and `#if !defined(x)` as `#ifndef x`.

```python
import io

from zapif.actions import Simplifier
from zapif.chunk import ChunkTable

table = ChunkTable(c_mode=True)
table.define("zero", "0")
out = io.StringIO()
s = Simplifier(table, out)

s.grow_token("#if")
s.mark_if()
if_tok = s.take_token(" ")
x = s.expand(s.take_token("zero"))
op = s.take_token(" || ")
y = s.take_token("foo")
s.mark_primary(y)
s.if_(if_tok, s.lor(x, op, y), s.take_token("\n"))
s.emit_code("yes if foo\n")
s.else_(s.take_token("#else"), s.take_token("\n"))
s.emit_code("no if not foo\n")
s.endif(s.take_token("#endif"), s.take_token("\n"))

print(out.getvalue())
# #if foo
# yes if foo
# #else
# no if not foo
# #endif
```

### `zapif.cli`

`parse_options(argv)` reads a list of strings in the usual command-line
form into an `Options` value; `build_simplifier(options, output)` makes a
`Simplifier` whose table holds the given definitions.

| Option      | Effect on `Options`                                     |
|-------------|---------------------------------------------------------|
| `-Dfoo=42`  | adds `("foo", "42")` to `symbols`                       |
| `-Dfoo`     | adds `("foo", "1")`                                     |
| `-Ufoo`     | adds `("foo", None)`                                    |
| `-c`        | `c_mode`: the input is C, not C++                       |
| `-e`        | `extended`: `$` and `@` allowed in identifiers          |
| `-k`        | `interpret_constants`                                   |
| `-n`        | `normalize`                                             |
| `-o file`   | `output` file name                                      |
| `-v`        | `show_version`                                          |
| `--help`    | `show_help` (parsing stops there)                       |

The first argument not starting with `-` becomes `input`. The module
also holds `VERSION` and `HELP_TEXT`. An unknown option, a garbled
identifier, a repeated `-o` or a missing file name after `-o` raises
`OptionError`. `build_simplifier` does not open the `input` or `output`
files; that is left to the caller.