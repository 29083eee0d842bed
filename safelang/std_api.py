"""The table of built-in functions and types the language knows about."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from safelang.syntax import PathType


@dataclass(frozen=True)
class ApiFunction:
    """A built-in function: short name, canonical path, argument and return types."""

    name: str
    canonical: str
    args: tuple[str, ...]
    ret: Optional[str]


_STRING = "core::types::String"
_LIST = "core::types::List"
_SPLIT = "core::types::StringSplit"
_SLIST = "core::types::StringList"
_OPT_U8 = "core::types::Option<u8>"
_RES = "core::types::Result<u8, i32>"
_HIGH = "core::memory::safe::HighPtr"
_VALIDATED = "core::memory::safe::ValidatedPtr"
_RAW = "core::memory::raw::RawPtr"


def _types(name: str, args: tuple[str, ...], ret: Optional[str]) -> ApiFunction:
    return ApiFunction(name, f"core::types::{name}", args, ret)


_API_FUNCTIONS: tuple[ApiFunction, ...] = (
    ApiFunction("allocate_buffer", "core::memory::safe::allocate_buffer", ("usize",), _HIGH),
    ApiFunction("deallocate_buffer", "core::memory::safe::deallocate_buffer", (_HIGH,), None),
    ApiFunction("raw_alloc", "core::memory::raw::alloc", ("usize",), _RAW),
    ApiFunction("raw_deallocate", "core::memory::raw::deallocate", (_RAW,), None),
    ApiFunction("raw_write", "core::memory::raw::write", (_RAW, "usize", "u8"), None),
    ApiFunction("raw_read", "core::memory::raw::read", (_RAW, "usize"), "u8"),
    ApiFunction("validate_raw", "core::memory::safe::validate_raw", (_RAW,), _VALIDATED),
    ApiFunction("into_high", "core::memory::safe::into_high", (_VALIDATED,), _HIGH),
    _types("option_some_u8", ("u8",), _OPT_U8),
    _types("option_none_u8", (), _OPT_U8),
    _types("option_is_some_u8", (_OPT_U8,), "bool"),
    _types("option_unwrap_u8", (_OPT_U8,), "u8"),
    _types("result_ok_u8_i32", ("u8",), _RES),
    _types("result_err_u8_i32", ("i32",), _RES),
    _types("result_is_ok_u8_i32", (_RES,), "bool"),
    _types("result_unwrap_u8_i32", (_RES,), "u8"),
    _types("result_unwrap_err_u8_i32", (_RES,), "i32"),
    _types("string_new", (), _STRING),
    _types("string_clone", (f"&{_STRING}",), _STRING),
    _types("string_len", (f"&{_STRING}",), "usize"),
    _types("string_is_empty", (f"&{_STRING}",), "bool"),
    _types("string_concat", (f"&{_STRING}", f"&{_STRING}"), _STRING),
    _types("string_eq", (f"&{_STRING}", f"&{_STRING}"), "bool"),
    _types("string_substr", (f"&{_STRING}", "usize", "usize"), _STRING),
    _types("string_starts_with", (f"&{_STRING}", f"&{_STRING}"), "bool"),
    _types("string_ends_with", (f"&{_STRING}", f"&{_STRING}"), "bool"),
    _types("string_contains", (f"&{_STRING}", f"&{_STRING}"), "bool"),
    _types("string_push", (f"&mut {_STRING}", "u8"), None),
    _types("string_push_bytes", (f"&mut {_STRING}", f"&{_LIST}"), None),
    _types("string_push_str", (f"&mut {_STRING}", f"&{_STRING}"), None),
    _types("string_clear", (f"&mut {_STRING}",), None),
    _types("string_clear_with_capacity", (f"&mut {_STRING}",), None),
    _types("string_append_bytes", (f"&mut {_STRING}", f"&{_LIST}"), None),
    _types("string_pop", (f"&mut {_STRING}",), _OPT_U8),
    _types("string_pop_n", (f"&mut {_STRING}", "usize"), _LIST),
    _types("string_remove", (f"&mut {_STRING}", "usize"), _OPT_U8),
    _types("string_remove_range", (f"&mut {_STRING}", "usize", "usize"), _LIST),
    _types("string_insert_bytes", (f"&mut {_STRING}", "usize", f"&{_LIST}"), None),
    _types("string_replace", (f"&{_STRING}", f"&{_STRING}", f"&{_STRING}"), _STRING),
    _types("string_trim", (f"&{_STRING}",), _STRING),
    _types("string_trim_start", (f"&{_STRING}",), _STRING),
    _types("string_trim_end", (f"&{_STRING}",), _STRING),
    _types("string_split_once", (f"&{_STRING}", f"&{_STRING}"), _SPLIT),
    _types("string_split_all", (f"&{_STRING}", f"&{_STRING}"), _SLIST),
    _types("string_split_n", (f"&{_STRING}", f"&{_STRING}", "usize"), _SLIST),
    _types("string_split_found", (f"&{_SPLIT}",), "bool"),
    _types("string_split_left", (f"&{_SPLIT}",), _STRING),
    _types("string_split_right", (f"&{_SPLIT}",), _STRING),
    _types("string_list_len", (f"&{_SLIST}",), "usize"),
    _types("string_list_is_empty", (f"&{_SLIST}",), "bool"),
    _types("string_list_get", (f"&{_SLIST}", "usize"), f"core::types::Option<{_STRING}>"),
    _types("string_from_list", (f"&{_LIST}",), _STRING),
    _types("string_to_list", (f"&{_STRING}",), _LIST),
    _types("list_new", (), _LIST),
    _types("list_len", (f"&{_LIST}",), "usize"),
    _types("list_is_empty", (f"&{_LIST}",), "bool"),
    _types("list_push_u8", (f"&mut {_LIST}", "u8"), None),
    _types("list_get_u8", (f"&{_LIST}", "usize"), _OPT_U8),
    _types("list_push_bytes", (f"&mut {_LIST}", f"&{_LIST}"), None),
)

_CANONICAL_FUNCTIONS: dict[str, str] = {}
for _func in _API_FUNCTIONS:
    _CANONICAL_FUNCTIONS.setdefault(_func.name, _func.canonical)

_API_TYPES: dict[str, str] = {
    "String": _STRING,
    "StringSplit": _SPLIT,
    "StringList": _SLIST,
    "List": _LIST,
    "Option": "core::types::Option",
    "Result": "core::types::Result",
    "HighPtr": _HIGH,
    "ValidatedPtr": _VALIDATED,
    "RawPtr": _RAW,
    _STRING: _STRING,
    _SPLIT: _SPLIT,
    _SLIST: _SLIST,
    _LIST: _LIST,
    _HIGH: _HIGH,
    _VALIDATED: _VALIDATED,
    _RAW: _RAW,
}

_KNOWN_TYPE_NAMES: tuple[str, ...] = (
    "String",
    _STRING,
    "StringSplit",
    _SPLIT,
    "StringList",
    _SLIST,
    "List",
    "Option",
    "Result",
    _LIST,
    "core::types::Option",
    "core::types::Result",
    "HighPtr",
    "ValidatedPtr",
    "RawPtr",
    _HIGH,
    _VALIDATED,
    _RAW,
)

_PRINT_FUNCTIONS = frozenset({"print", "core::types::print"})
_PRINTL_FUNCTIONS = frozenset({"printl", "core::types::printl"})
_PRINT_ALL: tuple[str, ...] = ("print", "core::types::print", "printl", "core::types::printl")


def api_functions() -> tuple[ApiFunction, ...]:
    """All built-in functions with fixed signatures."""
    return _API_FUNCTIONS


def variadic_print_function_names() -> tuple[str, ...]:
    """Names of the variadic print built-ins."""
    return _PRINT_ALL


def is_print_function(name: str) -> bool:
    """True for ``print`` in short or canonical form."""
    return name in _PRINT_FUNCTIONS


def is_printl_function(name: str) -> bool:
    """True for ``printl`` in short or canonical form."""
    return name in _PRINTL_FUNCTIONS


def canonical_name(name: str) -> Optional[str]:
    """Canonical path of a built-in function given by short name, else None."""
    return _CANONICAL_FUNCTIONS.get(name)


def type_from_str(name: str) -> PathType:
    """Turn a type name from the API table into a type node."""
    return PathType(name)


def known_type_names() -> tuple[str, ...]:
    """Type names the standard API provides."""
    return _KNOWN_TYPE_NAMES


def canonical_type_name(name: str) -> Optional[str]:
    """Canonical path of a known API type, else None."""
    return _API_TYPES.get(name)


def normalize_type_name(name: str) -> str:
    """Canonical path of ``name`` if it is a known API type, otherwise ``name``."""
    return _API_TYPES.get(name, name)