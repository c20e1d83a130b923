"""
Gopher directory document model.

A directory (menu) reply is a sequence of lines of the form::

    <type><display>\t<selector>\t<host>\t<port>

terminated by a line holding a single ".". This module turns such a reply
into an ordered list of DirectoryRecord objects and converts gopher:// URIs
into navigation contexts.
"""

import logging
from dataclasses import dataclass
from typing import List
from urllib.parse import quote, unquote, urlsplit

from .config import DEFAULT_GOPHER_PORT
from .exceptions import MalformedInputError, RequestValidationError


logger = logging.getLogger(__name__)

MALFORMED_PREFIX = "Malformed Line (Type 3 Error): "
TERMINATOR_LINE = "."


class ItemTypes:
    """Gopher item type characters (RFC 1436 plus common extensions)."""

    TEXT = "0"
    DIRECTORY = "1"
    CSO = "2"
    ERROR = "3"
    BINHEX = "4"
    DOS = "5"
    UUENCODE = "6"
    SEARCH = "7"
    BINARY = "9"
    GIF = "g"
    IMAGE = "I"
    INFO = "i"

    # Fetched as text; everything else that is fetched goes through the byte pipeline.
    TRANSPARENT = frozenset({TEXT, DIRECTORY})

    LABELS = {
        TEXT: "[TXT]",
        DIRECTORY: "[ 1 ]",
        CSO: "[PhC]",
        ERROR: "[ERR]",
        BINHEX: "[HQX]",
        DOS: "[DOS]",
        UUENCODE: "[UUE]",
        SEARCH: "[ 7 ]",
        BINARY: "[BIN]",
        GIF: "[GIF]",
        IMAGE: "[IMG]",
        INFO: "[ i ]",
    }

    @classmethod
    def is_transparent(cls, item_type: str) -> bool:
        return item_type in cls.TRANSPARENT

    @classmethod
    def label(cls, item_type: str) -> str:
        """Get the display label for an item type, flagging unknown ones."""
        return cls.LABELS.get(item_type, f"[!{item_type}!]")


@dataclass(frozen=True)
class NavigationContext:
    """What is being fetched, and as which item type it was reached."""

    host: str
    port: str
    selector: str
    item_type: str = ItemTypes.DIRECTORY


@dataclass(frozen=True)
class DirectoryRecord:
    item_type: str
    display: str
    selector: str
    host: str
    port: str


def parse_line(line: str) -> DirectoryRecord:
    """
    Parse a single directory line.

    Args:
        line: One line of a directory reply, without its line terminator

    Returns:
        DirectoryRecord: The parsed record

    Raises:
        MalformedInputError: If the line lacks the four tab-separated fields
    """
    fields = line.split("\t")
    if len(fields) < 4:
        raise MalformedInputError(f"expected 4 fields, got {len(fields)}: {line!r}")
    if not fields[0]:
        raise MalformedInputError(f"missing item type: {line!r}")

    return DirectoryRecord(
        item_type=fields[0][0],
        display=fields[0][1:].rstrip(" \t\r"),
        selector=fields[1],
        host=fields[2],
        port=fields[3],
    )


def malformed_record(line: str, context: NavigationContext) -> DirectoryRecord:
    """
    Build the error record that stands in for a line that failed to parse.

    Any host or port fields on the broken line are ignored; follow-up
    requests go back to the server that produced the listing.
    """
    return DirectoryRecord(
        item_type=ItemTypes.ERROR,
        display=MALFORMED_PREFIX + line.strip(),
        selector="/",
        host=context.host,
        port=context.port,
    )


def error_record(message: str, context: NavigationContext) -> DirectoryRecord:
    return DirectoryRecord(
        item_type=ItemTypes.ERROR,
        display=message,
        selector="/",
        host=context.host,
        port=context.port,
    )


def parse_directory(raw: str, context: NavigationContext) -> List[DirectoryRecord]:
    """
    Parse a directory reply into records, in source order.

    Blank lines are skipped and the "." line ends the listing. Malformed
    lines become error records rather than being dropped, so one bad entry
    never hides the rest of the listing.
    """
    records: List[DirectoryRecord] = []

    for line in raw.split("\n"):
        line = line.rstrip("\r")
        stripped = line.strip()
        if not stripped:
            continue
        if stripped == TERMINATOR_LINE:
            break

        try:
            record = parse_line(line)
        except MalformedInputError as e:
            logger.debug(f"Malformed directory line from {context.host}:{context.port}: {e}")
            record = malformed_record(line, context)

        if not record.display.strip():
            continue
        records.append(record)

    return records


def parse_gopher_uri(uri: str, default_port: str = DEFAULT_GOPHER_PORT) -> NavigationContext:
    """
    Convert a gopher URI into a navigation context.

    Accepts ``gopher://host[:port]/<type><selector>`` and the scheme-less
    ``host[:port]/<type><selector>`` typed into the URI bar. An empty path
    addresses the server's root directory.

    Raises:
        RequestValidationError: If the URI is not a usable gopher URI
    """
    raw = uri.strip()
    if "://" not in raw:
        raw = "gopher://" + raw

    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError as e:
        raise RequestValidationError(f"Invalid gopher URI: {uri}") from e

    if parts.scheme.lower() != "gopher":
        raise RequestValidationError(f"Invalid gopher URI: {uri}")
    if not parts.hostname:
        raise RequestValidationError(f"Missing host in gopher URI: {uri}")

    path = unquote(parts.path, errors="surrogateescape")
    if parts.query:
        path = path + "?" + unquote(parts.query, errors="surrogateescape")
    if path.startswith("/"):
        path = path[1:]

    if not path:
        item_type, selector = ItemTypes.DIRECTORY, ""
    else:
        item_type, selector = path[0], path[1:]

    return NavigationContext(
        host=parts.hostname,
        port=str(port) if port is not None else default_port,
        selector=selector,
        item_type=item_type,
    )


def format_gopher_uri(context: NavigationContext, scheme: bool = True) -> str:
    """Inverse of parse_gopher_uri."""
    path = quote(context.selector, safe="/:@!$&'()*+,;=~", errors="surrogateescape")
    body = f"{context.host}:{context.port}/{context.item_type}{path}"
    return f"gopher://{body}" if scheme else body
