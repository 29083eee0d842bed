import pytest

from safelang.syntax import (
    Block,
    ExprStatement,
    Literal,
    PathType,
    RawPtrType,
    RefType,
    TypeCheckError,
    Variable,
)
from safelang.typeops import (
    canonicalize_type_path,
    is_compatible_int_target,
    is_compatible_integer_return,
    parse_generic_type,
    split_generic_args,
    types_equal,
    validate_type,
)

KNOWN = {"u8", "i32", "bool", "core::types::String", "core::types::Option", "core::types::Result"}


@pytest.mark.parametrize(
    "name, expected",
    [
        ("String", "core::types::String"),
        ("&String", "&core::types::String"),
        ("&mut [String]", "&mut [core::types::String]"),
        ("[List]", "[core::types::List]"),
        ("Option<String>", "core::types::Option<core::types::String>"),
        ("u8", "u8"),
    ],
)
def test_canonicalize_type_path(name, expected):
    assert canonicalize_type_path(name) == expected


def test_canonicalize_is_idempotent():
    once = canonicalize_type_path("Result<Option<String>, i32>")
    assert canonicalize_type_path(once) == once


def test_types_equal_paths_and_refs():
    assert types_equal(PathType("String"), PathType("core::types::String"))
    assert types_equal(
        RefType(False, PathType("String")), PathType("&core::types::String")
    )
    assert types_equal(PathType("&mut String"), RefType(True, PathType("String")))
    assert not types_equal(RefType(True, PathType("u8")), RefType(False, PathType("u8")))
    assert not types_equal(RawPtrType(PathType("u8")), PathType("u8"))
    assert types_equal(RawPtrType(PathType("RawPtr")), RawPtrType(PathType("core::memory::raw::RawPtr")))


def test_is_compatible_int_target():
    assert is_compatible_int_target(PathType("usize"))
    assert is_compatible_int_target(PathType("i8"))
    assert not is_compatible_int_target(PathType("bool"))
    assert not is_compatible_int_target(RefType(False, PathType("u8")))


def test_is_compatible_integer_return():
    block = Block([ExprStatement(Literal(5))])
    assert is_compatible_integer_return(block, PathType("u8"))
    assert not is_compatible_integer_return(block, PathType("bool"))
    assert not is_compatible_integer_return(Block([ExprStatement(Literal(True))]), PathType("u8"))
    assert not is_compatible_integer_return(Block([ExprStatement(Variable("x"))]), PathType("u8"))
    assert not is_compatible_integer_return(Block(), PathType("u8"))


def test_split_generic_args():
    assert split_generic_args("u8, i32") == ["u8", "i32"]
    assert split_generic_args("Option<u8>, i32") == ["Option<u8>", "i32"]
    assert split_generic_args("") == []
    with pytest.raises(TypeCheckError, match="Malformed generic args"):
        split_generic_args("u8>")
    with pytest.raises(TypeCheckError, match="Malformed generic args"):
        split_generic_args("Option<u8")


def test_parse_generic_type():
    assert parse_generic_type("Result<u8, i32>") == ("Result", ["u8", "i32"])
    assert parse_generic_type("u8") is None
    with pytest.raises(TypeCheckError, match="Malformed type 'Option<u8'"):
        parse_generic_type("Option<u8")


def test_validate_type_accepts_known():
    validate_type(PathType("Option<u8>"), KNOWN)
    validate_type(PathType("Result<u8, i32>"), KNOWN)
    validate_type(RefType(True, PathType("String")), KNOWN)
    validate_type(PathType("&[u8]"), KNOWN)
    with pytest.raises(TypeCheckError, match="Unknown type 'Foo'"):
        validate_type(RawPtrType(PathType("Foo")), KNOWN)


def test_validate_type_generic_errors():
    with pytest.raises(TypeCheckError, match="Generic type syntax is not supported"):
        validate_type(PathType("List<u8>"), KNOWN)
    with pytest.raises(TypeCheckError, match="expects 1 generic argument"):
        validate_type(PathType("Option<u8, i32>"), KNOWN)
    with pytest.raises(TypeCheckError, match="Unknown type 'Bar'"):
        validate_type(PathType("Result<u8, Bar>"), KNOWN)


def test_validate_type_malformed_slice():
    with pytest.raises(TypeCheckError, match="Malformed type"):
        validate_type(PathType("&[u8"), KNOWN)