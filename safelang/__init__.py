"""Front end for the Safe language: token parser, molding passes and type checker."""

__version__ = "1.0.0"

__all__ = [
    "syntax",
    "std_api",
    "type_system",
    "parser",
    "aliases",
    "normalize",
    "unsafe_wrap",
    "rules",
    "molder",
    "typeops",
    "checker",
]