"""
Structured store codecs.

Converts between raw document bytes and the nested value tree consumed by
the flatten engine. Each codec mirrors how sops itself reads the format:
INI sections become top-level keys, dotenv files are a single flat level,
and binary payloads are wrapped under a ``data`` key.
"""

from __future__ import annotations

import configparser
import io
import json
from collections.abc import Mapping
from typing import Any

import yaml
from dotenv import dotenv_values

from sopsfile.core.errors import ValidationError
from sopsfile.flatten import NestedValue, convert_map, stringify
from sopsfile.stores.formats import StoreFormat

BINARY_DATA_KEY = "data"

# Characters Go's encoding/json escapes inside strings
_GO_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _decode_json(text: str) -> Any:
    return json.loads(text)


def _decode_yaml(text: str) -> Any:
    return yaml.safe_load(text) or {}


def _decode_dotenv(text: str) -> Any:
    return dict(dotenv_values(stream=io.StringIO(text), interpolate=False))


def _new_ini_parser() -> configparser.ConfigParser:
    # An empty default section name keeps [DEFAULT] as an ordinary section
    parser = configparser.ConfigParser(interpolation=None, default_section="")
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    return parser


def _decode_ini(text: str) -> Any:
    parser = _new_ini_parser()
    parser.read_string(text)
    return {section: dict(parser.items(section, raw=True)) for section in parser.sections()}


def _decode_binary(text: str) -> Any:
    return {BINARY_DATA_KEY: text}


_DECODERS = {
    StoreFormat.JSON: _decode_json,
    StoreFormat.YAML: _decode_yaml,
    StoreFormat.DOTENV: _decode_dotenv,
    StoreFormat.INI: _decode_ini,
    StoreFormat.BINARY: _decode_binary,
}


def decode(content: bytes | str, fmt: StoreFormat) -> dict[str, NestedValue]:
    """Decode a document into a string-keyed tree.

    Raises:
        ValidationError: the content is not valid for ``fmt`` or its top
            level is not a mapping
    """
    try:
        text = content.decode("utf-8") if isinstance(content, bytes) else content
        tree = _DECODERS[fmt](text)
    except (ValueError, yaml.YAMLError, configparser.Error) as exc:
        raise ValidationError(
            f"failed to decode {fmt.value} document: {exc}",
            {"format": fmt.value},
        ) from exc

    if not isinstance(tree, Mapping):
        raise ValidationError(
            f"{fmt.value} document must contain a mapping at the top level, "
            f"got {type(tree).__name__}",
            {"format": fmt.value},
        )
    return convert_map(tree)


def _require_flat(value: Mapping[str, Any], fmt: StoreFormat) -> None:
    for key, item in value.items():
        if isinstance(item, (Mapping, list, tuple)):
            raise ValidationError(
                f"{fmt.value} values must be scalars, {key!r} is {type(item).__name__}",
                {"format": fmt.value, "key": key},
            )


def _encode_dotenv(value: Mapping[str, Any]) -> str:
    _require_flat(value, StoreFormat.DOTENV)
    return "".join(f"{key}={stringify(item)}\n" for key, item in value.items())


def _encode_ini(value: Mapping[str, Any]) -> str:
    parser = _new_ini_parser()
    for section, options in value.items():
        if not isinstance(options, Mapping):
            raise ValidationError(
                f"ini sections must be mappings, {section!r} is {type(options).__name__}",
                {"format": StoreFormat.INI.value, "key": section},
            )
        _require_flat(options, StoreFormat.INI)
        parser.add_section(section)
        for key, item in options.items():
            parser.set(section, key, stringify(item))
    buffer = io.StringIO()
    parser.write(buffer)
    return buffer.getvalue()


def _encode_binary(value: Mapping[str, Any]) -> str:
    if BINARY_DATA_KEY not in value:
        raise ValidationError(
            f"binary documents must carry their payload under {BINARY_DATA_KEY!r}",
            {"format": StoreFormat.BINARY.value},
        )
    return str(value[BINARY_DATA_KEY])


class SopsYamlDumper(yaml.SafeDumper):
    """
    Emit YAML the way sops writes it back out on decrypt.

    sops re-encodes with go-yaml v3 at a 4 space indent: sequences are
    indented under their key, mappings inside a sequence item start right
    after ``- `` and quoted strings use double quotes.
    """

    def expect_block_sequence(self):
        self.increase_indent(flow=False, indentless=False)
        self.state = self.expect_first_block_sequence_item

    def expect_block_mapping(self):
        if self.states and self.states[-1] == self.expect_block_sequence_item:
            self.indents.append(self.indent)
            self.indent = self.column + 1
            self.state = self.expect_first_block_mapping_key
        else:
            super().expect_block_mapping()

    def choose_scalar_style(self):
        style = super().choose_scalar_style()
        return '"' if style == "'" else style


def _encode_yaml(value: Mapping[str, Any]) -> str:
    return yaml.dump(
        value,
        Dumper=SopsYamlDumper,
        indent=4,
        width=float("inf"),
        allow_unicode=True,
        sort_keys=False,
        default_flow_style=False,
    )


def _encode_json(value: Mapping[str, Any]) -> str:
    text = json.dumps(value, indent="\t", ensure_ascii=False)
    for char, escaped in _GO_JSON_ESCAPES.items():
        text = text.replace(char, escaped)
    return text + "\n"


def encode(value: Mapping[str, Any], fmt: StoreFormat) -> bytes:
    """Serialize a tree into document bytes for ``fmt``.

    Output matches what sops emits when it decrypts the same document, so
    the fingerprint of encoded content survives an encrypt/decrypt cycle.
    """
    tree = convert_map(value)
    if fmt is StoreFormat.JSON:
        text = _encode_json(tree)
    elif fmt is StoreFormat.YAML:
        text = _encode_yaml(tree)
    elif fmt is StoreFormat.DOTENV:
        text = _encode_dotenv(tree)
    elif fmt is StoreFormat.INI:
        text = _encode_ini(tree)
    else:
        text = _encode_binary(tree)
    return text.encode("utf-8")
