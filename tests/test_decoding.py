"""Compression selection and streaming decoders."""

from __future__ import annotations

import gzip
import io
import tarfile
import zlib

import pytest

from httpr import UnsupportedCompression, open_decoder
from httpr.decoding import IteratorStream, select_compression

pytestmark = pytest.mark.unit

PAYLOAD = b"col_a,col_b\n" + b"1,2\n" * 500


def _tarball(members, compress: bool = False) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz" if compress else "w") as archive:
        directory = tarfile.TarInfo("data")
        directory.type = tarfile.DIRTYPE
        archive.addfile(directory)
        for name, data in members:
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


class TestSelectCompression:
    @pytest.mark.parametrize(
        "accept, encoding, expected",
        [
            (["application/gzip"], [], "gzip"),
            (["application/zlib"], [], "deflate"),
            (["application/x-tar"], ["gzip"], "tar"),
            (["application/json"], ["gzip"], "gzip"),
            (["*/*"], ["Deflate"], "deflate"),
            (["text/csv, application/gzip;q=0.9"], [], "gzip"),
            ([], ["br"], ""),
            ([], [], ""),
        ],
    )
    def test_selection(self, accept, encoding, expected):
        assert select_compression(accept, encoding) == expected


class TestOpenDecoder:
    def test_gzip(self):
        decoder = open_decoder(io.BytesIO(gzip.compress(PAYLOAD)), "gzip")
        assert decoder.read() == PAYLOAD

    def test_zlib_wrapped_deflate(self):
        decoder = open_decoder(io.BytesIO(zlib.compress(PAYLOAD)), "deflate")
        assert decoder.read() == PAYLOAD

    def test_raw_deflate(self):
        compressor = zlib.compressobj(wbits=-zlib.MAX_WBITS)
        raw = compressor.compress(PAYLOAD) + compressor.flush()
        assert open_decoder(io.BytesIO(raw), "deflate").read() == PAYLOAD

    def test_deflate_small_chunks(self):
        decoder = open_decoder(io.BytesIO(zlib.compress(PAYLOAD)), "deflate", chunk_size=7)
        assert decoder.read() == PAYLOAD

    def test_truncated_deflate_raises(self):
        truncated = zlib.compress(PAYLOAD)[:-4]
        with pytest.raises(EOFError):
            open_decoder(io.BytesIO(truncated), "deflate").read()

    def test_empty_deflate_body(self):
        assert open_decoder(io.BytesIO(b""), "deflate").read() == b""

    def test_tar_concatenates_regular_members(self):
        body = _tarball([("data/a.txt", b"alpha"), ("data/b.txt", b"beta")])
        assert open_decoder(io.BytesIO(body), "tar").read() == b"alphabeta"

    def test_gzipped_tar(self):
        body = _tarball([("a.csv", PAYLOAD)], compress=True)
        assert open_decoder(io.BytesIO(body), "TAR").read() == PAYLOAD

    def test_corrupt_gzip_raises_os_error(self):
        with pytest.raises(OSError):
            open_decoder(io.BytesIO(b"definitely not gzip"), "gzip").read()

    def test_none_returns_stream_unchanged(self):
        stream = io.BytesIO(b"plain")
        assert open_decoder(stream, "") is stream

    def test_unknown_compression(self):
        with pytest.raises(UnsupportedCompression, match="br"):
            open_decoder(io.BytesIO(b""), "br")


class TestIteratorStream:
    def test_reads_across_chunks(self):
        reader = io.BufferedReader(IteratorStream(iter([b"ab", b"", b"cde", b"f"])))
        assert reader.read(3) == b"abc"
        assert reader.read() == b"def"

    def test_empty_iterator(self):
        assert io.BufferedReader(IteratorStream(iter([]))).read() == b""
