"""
Minimal JSON serialization for statistics reports.

Writes mappings, iterables and scalars as JSON text straight to a writer
(anything with a ``write(str)`` method), without building the whole document
in memory first. Output is compact unless an indent is requested.
"""
import io
import math
import numbers
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any, Optional

_SHORT_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}


class EncodingError(Exception):
    """Raised when a value has no JSON representation."""


def _needs_unicode_escape(char: str) -> bool:
    code = ord(char)
    return code < 0x20 or 0x80 <= code < 0xA0 or 0x2000 <= code < 0x2100


def write_string(writer, string: str):
    """Write a string as an escaped JSON string.

    A ``/`` directly after ``<`` is written as ``\\/`` so the output can never
    contain ``</script>`` when embedded in HTML.

    Args:
        writer: The writer to write to
        string: The string to write

    Returns:
        The writer
    """
    writer.write('"')
    previous = ""
    for char in string:
        if char in _SHORT_ESCAPES:
            writer.write(_SHORT_ESCAPES[char])
        elif char == "/":
            if previous == "<":
                writer.write("\\")
            writer.write(char)
        elif _needs_unicode_escape(char):
            writer.write("\\u%04x" % ord(char))
        else:
            writer.write(char)
        previous = char
    writer.write('"')
    return writer


def write_number(writer, number):
    """Write a number in a format valid for JSON.

    Args:
        writer: The writer to write to
        number: Any real number or Decimal

    Returns:
        The writer

    Raises:
        EncodingError: If the number is NaN or infinite
    """
    if isinstance(number, Decimal):
        if not number.is_finite():
            raise EncodingError(f"Expected finite number, found `{number}`")
        writer.write(str(number))
    elif isinstance(number, numbers.Integral):
        try:
            text = str(int(number))
        except ValueError as e:
            # Past sys.get_int_max_str_digits()
            raise EncodingError(f"Integer too large to encode: {e}") from e
        writer.write(text)
    else:
        value = float(number)
        if math.isnan(value) or math.isinf(value):
            raise EncodingError(f"Expected finite number, found `{number}`")
        writer.write(repr(value))
    return writer


_KEY_WORDS = {None: "null", True: "true", False: "false"}


def _key_text(key) -> str:
    """Object keys are strings; None and booleans use their JSON spelling."""
    if key is None or isinstance(key, bool):
        return _KEY_WORDS[key]
    return str(key)


class JsonWriter:
    """Recursive JSON writer holding the nesting level for pretty printing."""

    def __init__(self, writer, indent: Optional[int] = None):
        self.writer = writer
        self.indent = indent
        self.level = 0
        self.key_separator = ":" if indent is None else ": "

    def _newline(self):
        if self.indent is not None:
            self.writer.write("\n" + " " * (self.indent * self.level))

    def write_object(self, values: Mapping):
        self.writer.write("{")
        self.level += 1
        wrote_entry = False
        for key, value in values.items():
            if wrote_entry:
                self.writer.write(",")
            self._newline()
            write_string(self.writer, _key_text(key))
            self.writer.write(self.key_separator)
            self.write_value(value)
            wrote_entry = True
        self.level -= 1
        if wrote_entry:
            self._newline()
        self.writer.write("}")

    def write_array(self, items: Iterable):
        self.writer.write("[")
        self.level += 1
        wrote_item = False
        for item in items:
            if wrote_item:
                self.writer.write(",")
            self._newline()
            self.write_value(item)
            wrote_item = True
        self.level -= 1
        if wrote_item:
            self._newline()
        self.writer.write("]")

    def write_value(self, value: Any):
        # bool before numbers: True is an Integral
        if value is None:
            self.writer.write("null")
        elif isinstance(value, bool):
            self.writer.write("true" if value else "false")
        elif isinstance(value, str):
            write_string(self.writer, value)
        elif isinstance(value, Mapping):
            self.write_object(value)
        elif isinstance(value, (bytes, bytearray)):
            raise EncodingError(f"Invalid value: raw bytes are not supported, found `{value!r}`")
        elif isinstance(value, (numbers.Real, Decimal)):
            write_number(self.writer, value)
        elif isinstance(value, Iterable):
            self.write_array(value)
        else:
            raise EncodingError(
                "Invalid value: expected None, Mapping, Iterable, number, bool or str, "
                f"found `{value!r}` (`{type(value).__name__}`)"
            )


def write_json_object(writer, values: Mapping, indent: Optional[int] = None):
    """Write a JSON object built from a mapping.

    Keys are converted with ``str()``, except None, True and False which
    become ``null``, ``true`` and ``false``; values are encoded by type. Nested
    structures must not be cyclic and all iterables must be finite.

    Args:
        writer: The writer to write to
        values: The mapping to encode
        indent: Spaces per nesting level, or None for compact output

    Returns:
        The writer

    Raises:
        EncodingError: If a value of an unsupported type or a non-finite
            number is found
    """
    if not isinstance(values, Mapping):
        raise EncodingError(f"Expected a mapping, found `{type(values).__name__}`")
    JsonWriter(writer, indent).write_object(values)
    return writer


def write_json_array(writer, items: Iterable, indent: Optional[int] = None):
    """Write a JSON array built from a finite iterable."""
    JsonWriter(writer, indent).write_array(items)
    return writer


def write_json_value(writer, value: Any, indent: Optional[int] = None):
    """Write any supported value as JSON."""
    JsonWriter(writer, indent).write_value(value)
    return writer


def dumps(value: Any, indent: Optional[int] = None) -> str:
    """Encode a value to a JSON string."""
    buffer = io.StringIO()
    write_json_value(buffer, value, indent)
    return buffer.getvalue()
