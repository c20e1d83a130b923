"""
Best-effort content type detection for opaque Gopher payloads.

Gopher item types say little about the bytes that actually come back, so
the type is guessed from the payload itself: a table of magic numbers
first, then a text/binary check over the leading bytes.
"""

from typing import Tuple


SNIFF_LENGTH = 512

SIGNATURES: Tuple[Tuple[bytes, str], ...] = (
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"BM", "image/bmp"),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"BZh", "application/x-bzip2"),
    (b"Rar!\x1a\x07", "application/x-rar-compressed"),
    (b"7z\xbc\xaf\x27\x1c", "application/x-7z-compressed"),
    (b"ID3", "audio/mpeg"),
    (b"OggS\x00", "application/ogg"),
    (b"fLaC", "audio/flac"),
    (b"\x1aE\xdf\xa3", "video/webm"),
    (b"(This file must be converted with BinHex", "application/mac-binhex40"),
    (b"\xef\xbb\xbf", "text/plain; charset=utf-8"),
)

HTML_MARKERS = (b"<!doctype html", b"<html", b"<head", b"<body", b"<title")

# Control bytes that never appear in text (tab, LF, FF, CR and ESC are allowed).
BINARY_BYTES = frozenset(range(0x00, 0x09)) | {0x0B, 0x0E, 0x0F} | frozenset(range(0x10, 0x1B)) | frozenset(range(0x1C, 0x20))


def _riff_type(head: bytes) -> str:
    kind = head[8:12]
    if kind == b"WEBP":
        return "image/webp"
    if kind == b"WAVE":
        return "audio/wave"
    if kind == b"AVI ":
        return "video/avi"
    return ""


def detect_content_type(payload: bytes) -> str:
    """
    Guess the MIME type of ``payload``.

    Always returns a usable Content-Type value, falling back to
    application/octet-stream.
    """
    head = payload[:SNIFF_LENGTH]
    if not head:
        return "text/plain; charset=utf-8"

    for signature, mime in SIGNATURES:
        if head.startswith(signature):
            return mime

    if head.startswith(b"RIFF") and len(head) >= 12:
        riff = _riff_type(head)
        if riff:
            return riff

    if len(head) >= 12 and head[4:8] == b"ftyp":
        return "video/mp4"

    lowered = head.lstrip().lower()
    if lowered.startswith(HTML_MARKERS):
        return "text/html; charset=utf-8"
    if lowered.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"

    if any(byte in BINARY_BYTES for byte in head):
        return "application/octet-stream"
    return "text/plain; charset=utf-8"
