"""Helpers shared by the schema and update-message codecs.

Leaf elements are rendered with lxml so attribute quoting and text escaping
follow the library rules; indentation is written by the callers, one space
per indent unit, one element per line.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, time, timezone
from pathlib import Path
import re
from typing import IO, Any

from lxml import etree  # type: ignore[import-untyped]

from index_feeder.exceptions import DataSourceError
from index_feeder.model.field import FieldType


XML_PROLOG = '<?xml version="1.0" encoding="UTF-8"?>'

# Characters outside the XML 1.0 Char production.
_INVALID_XML_CHARS = re.compile("[^\u0009\u000a\u000d\u0020-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")

_CDATA_OPEN = "<![CDATA["
_CDATA_CLOSE = "]]>"

_EPOCH_DATE = date(1970, 1, 1)


def indent(amount: int) -> str:
    return " " * max(amount, 0)


def strip_invalid_chars(value: str) -> str:
    return _INVALID_XML_CHARS.sub("", value)


def content_text(value: str) -> etree.CDATA | str:
    """Wrap a large text body as CDATA, dropping any CDATA markers it already holds."""
    value = strip_invalid_chars(value).replace(_CDATA_OPEN, "").replace(_CDATA_CLOSE, "")
    if not value:
        return ""
    return etree.CDATA(value)


def render_element(
    tag: str,
    attributes: list[tuple[str, str]] | None = None,
    text: etree.CDATA | str | None = None,
) -> str:
    """Serialize one leaf element, attributes kept in the given order."""
    element = etree.Element(tag)
    for name, value in attributes or []:
        element.set(name, strip_invalid_chars(value))
    if isinstance(text, str):
        text = strip_invalid_chars(text)
    if text is not None and text != "":
        element.text = text
    return etree.tostring(element, encoding="unicode")


def render_comment(text: str) -> str:
    return etree.tostring(etree.Comment(f" {text} "), encoding="unicode")


def format_datetime(value: Any) -> str:
    """Format a date/time value with the canonical ``yyyy-MM-ddTHH:mm:ss.SSSZ`` pattern.

    Aware datetimes are converted to UTC, naive ones are taken as UTC. Strings
    are parsed as ISO 8601 when possible and passed through unchanged
    otherwise.
    """
    if isinstance(value, str):
        if not value:
            return value
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time())
    elif isinstance(value, time):
        moment = datetime.combine(_EPOCH_DATE, value)
    else:
        return str(value)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{moment.microsecond // 1000:03d}Z"


def format_value(field_type: FieldType, value: Any) -> str:
    """Return the string form of a single field value."""
    if value is None:
        return ""
    if field_type.is_date_or_time:
        return format_datetime(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def child_elements(element: etree._Element) -> Iterator[etree._Element]:
    """Yield element children only, skipping comments and processing instructions."""
    for child in element:
        if isinstance(child.tag, str):
            yield child


def local_name(element: etree._Element) -> str:
    return etree.QName(element).localname


def tag_matches(element: etree._Element, name: str) -> bool:
    return local_name(element).lower() == name.lower()


def element_text(element: etree._Element) -> str:
    return "".join(element.itertext()).strip()


def parse_xml(source: bytes | IO[bytes] | Path | str) -> etree._Element:
    """Parse bytes, a binary stream or a file path and return the root element."""
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=True)
    try:
        if isinstance(source, bytes):
            return etree.fromstring(source, parser=parser)
        if isinstance(source, (str, Path)):
            return etree.parse(str(source), parser=parser).getroot()
        return etree.parse(source, parser=parser).getroot()
    except etree.XMLSyntaxError as exc:
        raise DataSourceError(f"XML parsing failed: {exc}") from exc
    except OSError as exc:
        raise DataSourceError(f"{source}: {exc}") from exc
