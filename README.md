# safelang

The front end of the Safe language, as a library. It takes a list of tokens
and turns it into a syntax tree, then molds and checks that tree. It has no
third-party dependencies.

## Installation

```
pip install .
```

To also install the test tools:

```
pip install .[test]
```

## Pipeline

1. **Parsing** (`safelang.parser`). `parse_with_diagnostics(tokens)`
   returns a `SourceFile` made of aliases and functions. It raises
   `ParseError` if parsing fails or if any tokens are left over. The error's
   `token` attribute holds the offending token, if there is one. For partial
   parsing, `parse`, `parse_function`, `parse_expression` and `parse_type`
   each return the parsed value together with the list of remaining tokens.
2. **Molding** (`safelang.molder.Molder`). `mold()` changes the tree in
   place in four phases:
   - **aliases** (`safelang.aliases`): collects the aliases from an optional
     rules file and from `alias` items in the source, removes the alias
     items, and rewrites call names through the resolved aliases;
   - **normalisation** (`safelang.normalize`): rewrites `HighPtr`,
     `ValidatedPtr` and `RawPtr` in signatures and annotations to their full
     paths, and rewrites calls to standard-API functions to their canonical
     names;
   - **unsafe wrapping** (`safelang.unsafe_wrap`): wraps an expression that
     calls a raw operation outside an unsafe context in an `unsafe` block,
     then checks that every raw call is inside one. A raw operation is a
     name that starts with `raw_`, a name that contains `::raw::`, or a
     function declared `raw fn`;
   - **rules** (`safelang.rules`): checks the naming and safety rules
     described below.

   `output()` returns the transformed `SourceFile`. The first violation
   raises `MoldError`.
3. **Type checking** (`safelang.checker.TypeChecker`). `check(source)`
   checks the following:
   - the types in signatures and annotations are known;
   - no built-in function is redefined and no function is defined twice;
   - annotated bindings match their values;
   - `if` conditions are `bool`;
   - `for` range bounds are integers;
   - `break` and `continue` appear only inside loops;
   - comparisons have compatible operands;
   - call arity and argument types are correct;
   - each function's final expression matches its return type.

   Arguments to `print` and `printl` must be strings, `bool`, `char`,
   integers, or references to these. Failures raise `TypeCheckError`.

Every error class derives from `safelang.syntax.SafeLangError`.

## Usage

Build tokens with `safelang.syntax.Token(kind, value=None, line=1, column=1)`.
Identifiers, integers and string literals carry their text in `value`.

```python
from safelang.checker import TypeChecker
from safelang.molder import Molder
from safelang.parser import parse_with_diagnostics
from safelang.syntax import SafeLangError, Token, TokenKind as K

tokens = [
    Token(K.FN), Token(K.IDENTIFIER, "main"), Token(K.OPEN_PAREN), Token(K.CLOSE_PAREN),
    Token(K.OPEN_BRACE),
    Token(K.LET), Token(K.IDENTIFIER, "high_n"), Token(K.EQUAL), Token(K.INTEGER, "1"),
    Token(K.CLOSE_BRACE),
]

try:
    source = parse_with_diagnostics(tokens)
    molder = Molder(source, "rules.safe")
    molder.mold()
    TypeChecker().check(molder.output())
except SafeLangError as exc:
    print(exc)
```

The syntax tree is made of plain dataclasses from `safelang.syntax`:

- `SourceFile`, `Function`, `Alias`, `Arg`;
- `Block`, `LetStatement`, `ConstStatement`, `IfStatement`,
  `ForStatement`, `Break`, `Continue`, `ExprStatement`;
- `Literal`, `Variable`, `Binary`, `Ref`, `Call`;
- `PathType`, `RawPtrType`, `RefType`.

`format_type(ty)` renders a type as it is written in source.

### Rules file

`Molder` reads its rules file from `rules.safe` in the current directory
unless it is given another path. A missing file is ignored. Each non-blank
line is either a comment or one alias:

```
// comments start with // or #
alias buf = allocate_buffer
```

An alias target may not contain `unsafe`. A badly formed line, a duplicate
alias, or a cycle of aliases raises `MoldError`.

### Naming and safety rules

- Every variable name is defined only once across the whole program. This
  covers parameters, `let`, `const` and loop variables.
- Outside unsafe code, a variable name starts with `high_`.
- Inside unsafe code, a variable name starts with `raw_`, `validated_` or
  `high_`. The body of a `raw fn` counts as unsafe code.
- Within unsafe code:
  - a `validated_` binding must be `validate_raw(raw_...)`;
  - a `high_` binding must be `into_high(validated_...)`.
- Raw pointers (`*T`) and raw or validated pointer types may appear only in
  unsafe code.

### Standard API

`safelang.std_api` holds the table of built-in functions (`api_functions()`,
with entries of type `ApiFunction`) and the known type names
(`known_type_names()`). It also provides these lookups:

- `canonical_name`, `canonical_type_name` and `normalize_type_name`;
- `is_print_function` and `is_printl_function`.

`safelang.typeops` holds the type comparison and validation helpers used by
the checker:

- `types_equal`;
- `canonicalize_type_path`;
- `validate_type`;
- `split_generic_args` and `parse_generic_type`.

### Runtime safety levels

`safelang.type_system` wraps values with a `SafetyLevel` (`RAW`, `VALIDATED`,
`HIGH`):

- `raw(value)`, `validated(value)` and `high(value)` build a `Typed` value;
- `validate_raw` promotes a raw value;
- `Typed.into_high()` promotes a validated value;
- `Typed.unwrap()` returns the plain value.

A promotion from the wrong level raises `TypeError`.

## What this package does not do

- It has no lexer. Source text must already be split into `Token`s.
- It generates no code and runs no programs. The pipeline ends at a checked
  syntax tree.
- It has no command-line tool. It is used as a library only.
- The parser never produces `StructDef` items. The type checker knows a
  struct's name only if a `StructDef` is placed in the `SourceFile` by hand.