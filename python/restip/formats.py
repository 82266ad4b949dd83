"""Response encoders for the three wire formats.

- json: compact JSON of the value, byte strings transcoded to text first
- php:  PHP ``serialize()`` output, for legacy clients of the host system
- xml:  the first top-level entry of the value as a rooted XML document

Encoders return bytes ready to be sent; the caller picks the content type
from ``FORMATS``.
"""

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import phpserialize
from lxml import etree

from restip.errors import UnsupportedFormatError

DEFAULT_FORMAT = "json"

# Valid XML element names (ASCII subset, no namespaces)
XML_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9._-]*$")

# Code points XML 1.0 cannot carry: C0 controls other than tab and newlines,
# lone surrogates and the two noncharacters
XML_INVALID_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")

# PHP coerces decimal integer strings used as array keys to ints
PHP_INT_KEY_RE = re.compile(r"^(0|-?[1-9][0-9]*)$")

XML_FALLBACK_ROOT = "response"
XML_FALLBACK_ITEM = "item"

# Irregular plurals seen in route results
XML_SINGULARS = {
    "messages": "message",
    "folders": "folder",
    "users": "user",
}


@dataclass(frozen=True)
class ResponseFormat:
    """A wire format and the content type it is served with."""

    name: str
    media_type: str
    legacy_charset: bool

    def content_type(self, charset: str) -> str:
        if self.legacy_charset:
            return f"{self.media_type};charset={charset}"
        return self.media_type


FORMATS: dict[str, ResponseFormat] = {
    "json": ResponseFormat("json", "application/json", legacy_charset=False),
    "php": ResponseFormat("php", "text/plain", legacy_charset=True),
    "xml": ResponseFormat("xml", "text/xml", legacy_charset=True),
}


def get_format(name: str) -> ResponseFormat:
    """Look up a response format by name.

    Raises:
        UnsupportedFormatError: If no encoder exists for the name.
    """
    try:
        return FORMATS[name]
    except KeyError:
        raise UnsupportedFormatError(name) from None


# =============================================================================
# JSON
# =============================================================================


def transcode(value: Any, charset: str) -> Any:
    """Recursively decode byte strings from the legacy charset to text.

    Mapping keys are transcoded too; tuples come back as lists.
    """
    if isinstance(value, bytes | bytearray):
        return bytes(value).decode(charset, errors="replace")
    if isinstance(value, Mapping):
        return {transcode(k, charset): transcode(v, charset) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [transcode(item, charset) for item in value]
    return value


def encode_json(value: Any, charset: str = "windows-1252") -> bytes:
    """Encode a value as compact UTF-8 JSON."""
    return json.dumps(
        transcode(value, charset),
        ensure_ascii=False,
        allow_nan=False,
        separators=(",", ":"),
    ).encode("utf-8")


# =============================================================================
# PHP serialize()
# =============================================================================


def _php_key(key: Any, charset: str) -> int | str:
    if isinstance(key, bool):
        return int(key)
    if isinstance(key, int):
        return key
    if isinstance(key, bytes | bytearray):
        key = bytes(key).decode(charset, errors="replace")
    key = str(key)
    if PHP_INT_KEY_RE.match(key):
        return int(key)
    return key


def _php_value(value: Any, charset: str) -> Any:
    """Coerce a value to the types phpserialize writes, keyed the way PHP keys arrays."""
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, bytes | bytearray):
        return bytes(value).decode(charset, errors="replace")
    if isinstance(value, Mapping):
        return {_php_key(k, charset): _php_value(v, charset) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_php_value(item, charset) for item in value]
    return str(value)


def encode_php(value: Any, charset: str = "windows-1252") -> bytes:
    """Encode a value in PHP serialization format, in the legacy charset.

    Lists become arrays with integer keys, mappings become arrays keyed by
    their keys. Values outside PHP's scalar types are serialized as strings.
    String length prefixes count bytes in the charset.
    """
    return phpserialize.dumps(_php_value(value, charset), charset=charset, errors="replace")


def php_serialize(value: Any, charset: str = "windows-1252") -> str:
    """Serialize a value the way PHP's ``serialize()`` does, as text."""
    return encode_php(value, charset).decode(charset)


def php_unserialize(data: str | bytes, charset: str = "windows-1252") -> Any:
    """Read a PHP ``serialize()`` value. Arrays come back as dicts.

    Raises:
        ValueError: If the data is not a serialized value.
    """
    if isinstance(data, str):
        data = data.encode(charset)
    return phpserialize.loads(data, charset=charset, decode_strings=True)


# =============================================================================
# XML
# =============================================================================


def singular(name: str) -> str:
    """Guess the element name for one entry of a collection element."""
    if name in XML_SINGULARS:
        return XML_SINGULARS[name]
    if name.endswith("s") and len(name) > 1:
        return name[:-1]
    return XML_FALLBACK_ITEM


def xml_safe(text: str) -> str:
    """Drop the characters XML 1.0 cannot represent, even escaped."""
    return XML_INVALID_CHARS_RE.sub("", text)


def _xml_text(value: Any, charset: str) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, bytes | bytearray):
        return xml_safe(bytes(value).decode(charset, errors="replace"))
    return xml_safe(str(value))


def _fill_element(element: etree._Element, value: Any, charset: str) -> None:
    if isinstance(value, Mapping):
        for key, child_value in value.items():
            key_text = _xml_text(key, charset)
            if XML_NAME_RE.match(key_text):
                child = etree.SubElement(element, key_text)
            else:
                child = etree.SubElement(element, singular(element.tag))
                child.set("key", key_text)
            _fill_element(child, child_value, charset)
    elif isinstance(value, list | tuple):
        for item in value:
            child = etree.SubElement(element, singular(element.tag))
            _fill_element(child, item, charset)
    else:
        element.text = _xml_text(value, charset)


def encode_xml(value: Any, charset: str = "windows-1252") -> bytes:
    """Encode the first top-level entry of a value as an XML document.

    ``{"folders": {...}}`` becomes ``<folders>...</folders>``. The first key
    only names the root when its value is a collection: a flat record such
    as a single message (first value is a scalar) is emitted whole under a
    ``<response>`` root, as is any value that is not a mapping. Characters
    XML cannot carry are dropped from text and attributes.
    """
    if isinstance(value, Mapping) and value:
        root_name, content = next(iter(value.items()))
        root_name = _xml_text(root_name, charset)
        if not isinstance(content, Mapping | list | tuple) or not XML_NAME_RE.match(root_name):
            root_name, content = XML_FALLBACK_ROOT, value
    else:
        root_name, content = XML_FALLBACK_ROOT, value

    root = etree.Element(root_name)
    _fill_element(root, content, charset)
    return etree.tostring(root, xml_declaration=True, encoding=charset)


ENCODERS = {
    "json": encode_json,
    "php": encode_php,
    "xml": encode_xml,
}


def encode(value: Any, format_name: str, charset: str) -> bytes:
    """Encode a value in the named format.

    Raises:
        UnsupportedFormatError: If no encoder exists for the name.
    """
    get_format(format_name)
    return ENCODERS[format_name](value, charset)
