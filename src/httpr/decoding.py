# === NAVMAP v1 ===
# {
#   "module": "httpr.decoding",
#   "purpose": "Compression decoders and decoder selection for response bodies.",
#   "sections": [
#     {
#       "id": "select-compression",
#       "name": "select_compression",
#       "anchor": "function-select-compression",
#       "kind": "function"
#     },
#     {
#       "id": "open-decoder",
#       "name": "open_decoder",
#       "anchor": "function-open-decoder",
#       "kind": "function"
#     },
#     {
#       "id": "tarstream",
#       "name": "TarStream",
#       "anchor": "class-tarstream",
#       "kind": "class"
#     }
#   ]
# }
# === /NAVMAP ===

"""Compression decoders and decoder selection for response bodies.

The materializer hands a buffered binary stream to :func:`open_decoder` and
drains whatever comes back. gzip is always available; deflate (raw zlib
streams) and tar-as-container are supported as well. A tar archive is
flattened into the concatenated bytes of its regular members.

Selection looks at the request ``Accept`` header first (the caller asked for
a specific container), then at the response ``Content-Encoding``. Anything
unrecognised is passed through untouched.
"""

from __future__ import annotations

import gzip
import io
import tarfile
import zlib
from typing import IO, Iterable, Iterator, Optional

from .errors import UnsupportedCompression

__all__ = [
    "COMPRESSION_NONE",
    "COMPRESSION_GZIP",
    "COMPRESSION_DEFLATE",
    "COMPRESSION_TAR",
    "ACCEPT_GZIP",
    "ACCEPT_DEFLATE",
    "ACCEPT_TAR",
    "DECODE_ERRORS",
    "select_compression",
    "open_decoder",
    "TarStream",
    "IteratorStream",
]

COMPRESSION_NONE = ""
COMPRESSION_GZIP = "gzip"
COMPRESSION_DEFLATE = "deflate"
COMPRESSION_TAR = "tar"

ACCEPT_GZIP = "application/gzip"
ACCEPT_DEFLATE = "application/zlib"
ACCEPT_TAR = "application/x-tar"

_ACCEPT_TO_COMPRESSION = {
    ACCEPT_GZIP: COMPRESSION_GZIP,
    ACCEPT_DEFLATE: COMPRESSION_DEFLATE,
    ACCEPT_TAR: COMPRESSION_TAR,
}

_ENCODINGS = (COMPRESSION_GZIP, COMPRESSION_DEFLATE, COMPRESSION_TAR)

#: Exceptions a decoder may raise while the body is drained
DECODE_ERRORS = (OSError, EOFError, zlib.error, tarfile.TarError)


# ============================================================================
# Selection
# ============================================================================


def _split_values(values: Iterable[str]) -> Iterator[str]:
    for value in values:
        for item in value.split(","):
            media = item.split(";", 1)[0].strip().lower()
            if media:
                yield media


def select_compression(accept: Iterable[str], content_encoding: Iterable[str]) -> str:
    """Pick the compression to decode with, or ``COMPRESSION_NONE``.

    Args:
        accept: ``Accept`` header values sent with the request.
        content_encoding: ``Content-Encoding`` header values on the response.

    Examples:
        >>> select_compression(["application/gzip"], [])
        'gzip'
        >>> select_compression(["*/*"], ["Deflate"])
        'deflate'
        >>> select_compression([], ["br"])
        ''
    """
    for media in _split_values(accept):
        compression = _ACCEPT_TO_COMPRESSION.get(media)
        if compression:
            return compression

    for encoding in _split_values(content_encoding):
        if encoding in _ENCODINGS:
            return encoding

    return COMPRESSION_NONE


# ============================================================================
# Decoders
# ============================================================================


def _has_zlib_header(head: bytes) -> bool:
    if len(head) < 2:
        return False
    return head[0] & 0x0F == 8 and ((head[0] << 8) | head[1]) % 31 == 0


def _inflate_chunks(stream: IO[bytes], chunk_size: int) -> Iterator[bytes]:
    # zlib-wrapped streams are the norm; bare deflate streams are accepted too
    chunk = stream.read(chunk_size)
    if not chunk:
        return
    decoder = zlib.decompressobj(zlib.MAX_WBITS if _has_zlib_header(chunk) else -zlib.MAX_WBITS)
    while chunk:
        data = decoder.decompress(chunk)
        if data:
            yield data
        chunk = stream.read(chunk_size)
    tail = decoder.flush()
    if tail:
        yield tail
    if not decoder.eof:
        raise EOFError("compressed stream ended before the end-of-stream marker was reached")


class IteratorStream(io.RawIOBase):
    """Readable raw stream over an iterator of byte chunks."""

    def __init__(self, chunks: Iterator[bytes]) -> None:
        self._chunks = chunks
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


class TarStream(io.RawIOBase):
    """Read the concatenated contents of every regular member in a tar stream.

    The archive is read in streaming mode (``r|*``), so compressed tarballs
    work too. Closing the stream closes the underlying archive.
    """

    def __init__(self, fileobj: IO[bytes]) -> None:
        self._archive = tarfile.open(fileobj=fileobj, mode="r|*")
        self._members = iter(self._archive)
        self._current: Optional[IO[bytes]] = None

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        while True:
            if self._current is None:
                member = next(self._members, None)
                if member is None:
                    return 0
                if not member.isreg():
                    continue
                self._current = self._archive.extractfile(member)
                if self._current is None:
                    continue
            data = self._current.read(len(buffer))
            if data:
                buffer[: len(data)] = data
                return len(data)
            self._current = None

    def close(self) -> None:
        if not self.closed:
            try:
                self._archive.close()
            finally:
                super().close()


def open_decoder(stream: IO[bytes], compression: str, chunk_size: int = 64 * 1024) -> IO[bytes]:
    """Wrap ``stream`` in a decoder for ``compression``.

    Args:
        stream: Readable binary stream holding the encoded body.
        compression: One of the ``COMPRESSION_*`` names. The empty name
            returns ``stream`` unchanged.
        chunk_size: Read size used by the deflate decoder.

    Returns:
        A readable binary stream yielding decoded bytes. When the result is
        not ``stream`` itself it must be closed by the caller.

    Raises:
        UnsupportedCompression: If ``compression`` is not recognised.
    """
    name = compression.lower()
    if name == COMPRESSION_NONE:
        return stream
    if name == COMPRESSION_GZIP:
        return gzip.GzipFile(fileobj=stream, mode="rb")
    if name == COMPRESSION_DEFLATE:
        return io.BufferedReader(IteratorStream(_inflate_chunks(stream, chunk_size)))
    if name == COMPRESSION_TAR:
        return io.BufferedReader(TarStream(stream))
    raise UnsupportedCompression(f"unsupported compression type: {compression!r}")
