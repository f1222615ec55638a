"""Typed configuration options and lookups over option lists."""

from __future__ import annotations

import enum
import sys
from typing import Any, Iterable

from vzlog.errors import InvalidTypeException, OptionNotFoundException, VZException


class OptionType(enum.IntEnum):
    """The JSON value types an option can hold."""

    BOOLEAN = 1
    DOUBLE = 2
    INT = 3
    OBJECT = 4
    ARRAY = 5
    STRING = 6


def _infer_type(key: str, value: Any) -> OptionType:
    # bool is a subclass of int, so it has to be checked first.
    if isinstance(value, bool):
        return OptionType.BOOLEAN
    if isinstance(value, int):
        return OptionType.INT
    if isinstance(value, float):
        return OptionType.DOUBLE
    if isinstance(value, str):
        return OptionType.STRING
    if isinstance(value, dict):
        return OptionType.OBJECT
    if isinstance(value, list):
        return OptionType.ARRAY
    raise VZException(f"Option::Option not a valid type {key} {type(value).__name__}")


class Option:
    """A named configuration value of one of the JSON types."""

    __slots__ = ("key", "value", "type")

    def __init__(self, key: str, value: Any) -> None:
        self.type = _infer_type(key, value)
        self.key = key
        self.value = value

    def as_string(self) -> str:
        if self.type is not OptionType.STRING:
            raise InvalidTypeException("not a string")
        return self.value

    def as_int(self) -> int:
        if self.type is not OptionType.INT:
            raise InvalidTypeException("Invalid type")
        return self.value

    def as_float(self) -> float:
        if self.type is not OptionType.DOUBLE:
            raise InvalidTypeException("Invalid type")
        return float(self.value)

    def as_bool(self) -> bool:
        if self.type is not OptionType.BOOLEAN:
            raise InvalidTypeException("Invalid type")
        return self.value

    def as_json(self) -> dict | list:
        if self.type not in (OptionType.ARRAY, OptionType.OBJECT):
            raise InvalidTypeException("json_object not an array/object")
        return self.value

    def _value_text(self) -> str:
        if self.type is OptionType.BOOLEAN:
            return "1" if self.value else "0"
        if self.type is OptionType.DOUBLE:
            return f"{self.value:g}"
        if self.type is OptionType.INT:
            return str(self.value)
        if self.type is OptionType.STRING:
            return self.value
        if self.type is OptionType.OBJECT:
            return "json object"
        return "json array"

    def __str__(self) -> str:
        return f"Option <{self.key}>=<type={int(self.type)}>=<val={self._value_text()}>"

    def __repr__(self) -> str:
        return f"Option({self.key!r}, {self.value!r})"


def lookup(options: Iterable[Option], key: str) -> Option:
    """Return the first option named ``key``."""
    for option in options:
        if option.key == key:
            return option
    raise OptionNotFoundException(f"Option '{key}' not found")


def lookup_string(options: Iterable[Option], key: str) -> str:
    return lookup(options, key).as_string()


def lookup_string_tolower(options: Iterable[Option], key: str) -> str:
    return lookup_string(options, key).lower()


def lookup_int(options: Iterable[Option], key: str) -> int:
    return lookup(options, key).as_int()


def lookup_bool(options: Iterable[Option], key: str) -> bool:
    return lookup(options, key).as_bool()


def lookup_double(options: Iterable[Option], key: str) -> float:
    return lookup(options, key).as_float()


def lookup_json_array(options: Iterable[Option], key: str) -> list:
    option = lookup(options, key)
    if option.type is not OptionType.ARRAY:
        raise InvalidTypeException("json_object not an array")
    return option.as_json()


def lookup_json_object(options: Iterable[Option], key: str) -> dict:
    option = lookup(options, key)
    if option.type is not OptionType.OBJECT:
        raise InvalidTypeException("json_object not an object")
    return option.as_json()


def dump(options: Iterable[Option]) -> None:
    """Print every option, one per line, to standard output."""
    out = sys.stdout
    out.write("OptionList dump\n")
    for option in options:
        out.write(f"{option}\n")