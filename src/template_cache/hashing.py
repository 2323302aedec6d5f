"""Content hashing and decoding.

Identifiers are SHA-256 hex digests of the raw content bytes. They depend
on nothing but the content: not the filename, not the transfer encoding,
not the time of upload.
"""

import base64
import binascii
import hashlib
import os
import re

from template_cache.errors import InvalidEncodingError

CHUNK_SIZE = 64 * 1024

IDENTIFIER_PATTERN = re.compile(r"^[0-9a-f]{64}$")

_TEXT_ENCODINGS = {
    "utf8": "utf-8",
    "utf-8": "utf-8",
    "ascii": "ascii",
    "latin1": "latin-1",
    "latin-1": "latin-1",
    "binary": "latin-1",
}


def is_identifier(value: str) -> bool:
    """Check whether a string has the shape of a content identifier."""
    return bool(IDENTIFIER_PATTERN.match(value))


def decode_content(content: bytes | str, encoding: str | None = "binary") -> bytes:
    """Turn caller-supplied content into raw bytes.

    Bytes are returned unchanged regardless of ``encoding``. Text is decoded
    according to the named encoding: ``base64``, ``hex``, or one of the
    character encodings ``utf8``, ``ascii``, ``latin1`` / ``binary``.

    Args:
        content: Raw bytes, or text in the named encoding
        encoding: Name of the encoding the text is in

    Returns:
        The decoded bytes

    Raises:
        InvalidEncodingError: If the encoding is unknown or the text is malformed
    """
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content)

    name = (encoding or "binary").strip().lower()
    try:
        if name == "base64":
            return base64.b64decode("".join(content.split()), validate=True)
        if name == "hex":
            return bytes.fromhex(content)
        if name in _TEXT_ENCODINGS:
            return content.encode(_TEXT_ENCODINGS[name])
    except (binascii.Error, ValueError, UnicodeEncodeError) as e:
        raise InvalidEncodingError(
            f"Content could not be decoded as {name}: {e}", encoding=name
        ) from e

    raise InvalidEncodingError(f"Unsupported encoding: {encoding}", encoding=name)


class ContentHasher:
    """Derives content identifiers.

    Example:
        ```python
        hasher = ContentHasher()
        hasher.hash_bytes(b"hello")
        hasher.hash_content("aGVsbG8=", "base64")  # same identifier
        ```
    """

    def __init__(self, chunk_size: int = CHUNK_SIZE) -> None:
        self._chunk_size = chunk_size

    def hash_bytes(self, data: bytes) -> str:
        """Hash raw bytes into an identifier."""
        return hashlib.sha256(data).hexdigest()

    def hash_content(self, content: bytes | str, encoding: str | None = "binary") -> str:
        """Decode content per ``encoding`` and hash the result.

        Raises:
            InvalidEncodingError: If the content cannot be decoded
        """
        return self.hash_bytes(decode_content(content, encoding))

    def hash_file(self, path: str | os.PathLike) -> str:
        """Hash a file without loading it into memory.

        Raises:
            OSError: If the file cannot be opened or read
        """
        digest = hashlib.sha256()
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(self._chunk_size), b""):
                digest.update(chunk)
        return digest.hexdigest()
