"""Entry file formats: YAML, TOML and JSON, with or without a front matter block."""

from __future__ import annotations

import json
import re
import tomllib
from dataclasses import dataclass
from datetime import date, datetime, time
from io import StringIO
from typing import Any

import tomli_w
from ruamel.yaml import YAML
from ruamel.yaml.constructor import SafeConstructor
from ruamel.yaml.error import YAMLError

from sheaf_core.errors import FormatError, ParseError

MARKDOWN_EXTENSIONS = ("md", "mkd", "mkdn", "mdwn", "mdown", "markdown")
FRONT_MATTER_FORMATS = ("frontmatter", "yaml-frontmatter", "toml-frontmatter", "json-frontmatter")

_EXTENSION_FORMATS = {
    "yml": "yaml",
    "yaml": "yaml",
    "toml": "toml",
    "json": "json",
    **{ext: "yaml-frontmatter" for ext in MARKDOWN_EXTENSIONS},
}
_DEFAULT_DELIMITERS = {
    "yaml-frontmatter": ("---", "---"),
    "toml-frontmatter": ("+++", "+++"),
    "json-frontmatter": ("{", "}"),
}


class _TextTimestampConstructor(SafeConstructor):
    """Safe constructor that keeps timestamps as the text written in the file."""


_TextTimestampConstructor.add_constructor(
    "tag:yaml.org,2002:timestamp", SafeConstructor.construct_yaml_str
)

# Loader yields plain dicts/lists; dumper keeps key order and never wraps lines
_yaml_loader = YAML(typ="safe", pure=True)
_yaml_loader.Constructor = _TextTimestampConstructor

_yaml_dumper = YAML()
_yaml_dumper.default_flow_style = False
_yaml_dumper.width = 4096


@dataclass(frozen=True)
class FormatDescriptor:
    """How a file is encoded.

    Any object exposing ``format``, ``extension`` and ``delimiter`` (such as a
    resolved file config) can be used wherever a descriptor is expected.
    """

    format: str | None = None
    extension: str | None = None
    delimiter: str | list[str] | tuple[str, str] | None = None


def detect_file_extension(format: str | None = None, extension: str | None = None) -> str:
    """Return the file extension for a collection, defaulting to Markdown."""
    if extension:
        return extension.lstrip(".")
    if format in ("yml", "yaml"):
        return "yml"
    if format in ("toml", "json"):
        return format
    return "md"


def detect_file_format(format: str | None = None, extension: str | None = None) -> str:
    """Return the file format for a collection, inferring it from the extension."""
    if format:
        return format
    return _EXTENSION_FORMATS.get((extension or "").lstrip(".").lower(), "yaml-frontmatter")


def resolve_format(descriptor: Any) -> str:
    """Return the descriptor's format, inferring it from the extension when unset."""
    if descriptor.format:
        return descriptor.format
    extension = (descriptor.extension or "").lstrip(".").lower()
    try:
        return _EXTENSION_FORMATS[extension]
    except KeyError:
        raise ParseError(f"unknown format for extension {extension!r}") from None


def get_front_matter_delimiters(
    format: str | None, delimiter: str | list[str] | tuple[str, str] | None = None
) -> tuple[str, str] | None:
    """
    Resolve the (start, end) front matter delimiters.

    Returns None for the generic ``frontmatter`` format without a configured
    delimiter; the delimiters are then detected from the text itself.
    """
    if isinstance(delimiter, str) and delimiter.strip():
        return delimiter, delimiter
    if isinstance(delimiter, (list, tuple)) and len(delimiter) == 2:
        return str(delimiter[0]), str(delimiter[1])
    return _DEFAULT_DELIMITERS.get(format or "")


def _detect_delimiters(text: str) -> tuple[str, str]:
    if text.startswith("+++"):
        return _DEFAULT_DELIMITERS["toml-frontmatter"]
    if text.startswith("{"):
        return _DEFAULT_DELIMITERS["json-frontmatter"]
    return _DEFAULT_DELIMITERS["yaml-frontmatter"]


def _front_matter_regex(start: str, end: str) -> re.Pattern[str]:
    return re.compile(
        rf"^{re.escape(start)}\n(?:(?P<head>.*?)\n)?{re.escape(end)}$(?:\n(?P<body>.+))?",
        re.MULTILINE | re.DOTALL,
    )


def _plain(value: Any) -> Any:
    """Convert TOML date/time values to ISO strings so all formats agree."""
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def _parse_yaml(text: str) -> Any:
    try:
        return _yaml_loader.load(text)
    except YAMLError as e:
        raise ParseError(f"invalid YAML: {e}") from e


def _parse_toml(text: str) -> Any:
    try:
        return _plain(tomllib.loads(text))
    except tomllib.TOMLDecodeError as e:
        raise ParseError(f"invalid TOML: {e}") from e


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"invalid JSON: {e}") from e


def _parse_head(head: str, format: str, delimiters: tuple[str, str]) -> Any:
    # With brace delimiters the braces belong to the JSON document
    json_head = "{" + head + "}" if delimiters == ("{", "}") else head

    if format == "yaml-frontmatter":
        return _parse_yaml(head)
    if format == "toml-frontmatter":
        return _parse_toml(head)
    if format == "json-frontmatter":
        return _parse_json(json_head)

    errors = []
    for parser, source in ((_parse_yaml, head), (_parse_toml, head), (_parse_json, json_head)):
        try:
            data = parser(source)
        except ParseError as e:
            errors.append(e.message)
            continue
        if data is None or isinstance(data, dict):
            return data
        errors.append(f"{parser.__name__.removeprefix('_parse_')} head is not a mapping")
    raise ParseError("front matter is not valid YAML, TOML or JSON: " + "; ".join(errors))


def _parse_front_matter(text: str, format: str, delimiter: Any) -> dict[str, Any]:
    if not text:
        raise ParseError("empty document")

    delimiters = get_front_matter_delimiters(format, delimiter) or _detect_delimiters(text)
    m = _front_matter_regex(*delimiters).match(text)
    if not m:
        # Plain Markdown without a metadata block
        return {"body": text}

    head = m.group("head")
    meta = _parse_head(head, format, delimiters) if head else None
    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise ParseError("front matter must be a mapping")

    return {**meta, "body": m.group("body") or ""}


def parse(text: str, descriptor: Any, path: str | None = None) -> Any:
    """
    Parse raw file text into structured content.

    Front matter formats return the metadata mapping with the remaining text
    under ``body``. Other formats return whatever the document holds.

    Raises:
        ParseError: if the text cannot be parsed in the resolved format.
    """
    try:
        format = resolve_format(descriptor)
        text = text.replace("\r\n", "\n").strip()

        if format in ("yml", "yaml"):
            return _parse_yaml(text)
        if format == "toml":
            return _parse_toml(text)
        if format == "json":
            return _parse_json(text)
        if format in FRONT_MATTER_FORMATS:
            return _parse_front_matter(text, format, getattr(descriptor, "delimiter", None))
        raise ParseError(f"unsupported format {format!r}")
    except ParseError as e:
        raise (e.with_path(path) if path else e) from e.__cause__


def _dump_yaml(content: Any) -> str:
    stream = StringIO()
    _yaml_dumper.dump(content, stream)
    return stream.getvalue().rstrip("\n")


def _dump_toml(content: Any) -> str:
    if not isinstance(content, dict):
        raise FormatError("TOML documents must be mappings")
    try:
        return tomli_w.dumps(content).rstrip("\n")
    except TypeError as e:
        raise FormatError(f"cannot serialize as TOML: {e}") from e


def _dump_json(content: Any) -> str:
    try:
        return json.dumps(content, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise FormatError(f"cannot serialize as JSON: {e}") from e


def serialize(content: Any, descriptor: Any) -> str:
    """
    Serialize structured content back into file text.

    The input is not modified. Front matter output is
    ``START\\n<meta>\\nEND\\n<body>\\n``; content holding only a body is
    written as the body alone.

    Raises:
        FormatError: if the content cannot be written in the resolved format.
    """
    try:
        format = resolve_format(descriptor)
    except ParseError as e:
        raise FormatError(e.message) from e

    if format in ("yml", "yaml"):
        return _dump_yaml(content) + "\n"
    if format == "toml":
        return _dump_toml(content) + "\n"
    if format == "json":
        return _dump_json(content) + "\n"
    if format not in FRONT_MATTER_FORMATS:
        raise FormatError(f"unsupported format {format!r}")

    meta = dict(content)
    body = meta.pop("body", None)
    body = "" if body is None else str(body)
    body = body.removesuffix("\n")
    if not meta:
        return f"{body}\n"

    delimiters = get_front_matter_delimiters(
        format, getattr(descriptor, "delimiter", None)
    ) or _DEFAULT_DELIMITERS["yaml-frontmatter"]

    if format == "toml-frontmatter" or (format == "frontmatter" and delimiters[0] == "+++"):
        head = _dump_toml(meta)
    elif format == "json-frontmatter" or (format == "frontmatter" and delimiters == ("{", "}")):
        head = _dump_json(meta)
        if delimiters == ("{", "}"):
            return f"{head}\n{body}\n"
    else:
        head = _dump_yaml(meta)

    return f"{delimiters[0]}\n{head}\n{delimiters[1]}\n{body}\n"
