import io
import asyncio
from asyrange.core.upload import UploadNameExtractor

PAYLOAD = bytes(range(256)) * 4
MULTIPART = (
    b'------WebKitFormBoundary7MA4YWxk\r\n'
    b'Content-Disposition: form-data; name="file"; filename="clip.mp4"\r\n'
    b'Content-Type: video/mp4\r\n'
    b'\r\n'
) + PAYLOAD


class AsyncSource:
    def __init__(self, data):
        self.stream = io.BytesIO(data)

    async def read(self, n=-1):
        return self.stream.read(n)


def test_filename_and_payload_position():
    source = io.BytesIO(MULTIPART)
    upload = UploadNameExtractor().extract(source)
    assert upload.filename == "clip.mp4"
    assert upload.terminated is True
    assert upload.header_text.endswith('\r\n\r\n')
    assert upload.remainder is source
    assert source.read() == PAYLOAD


def test_payload_containing_terminator_is_left_alone():
    body = b'filename="a.bin"\r\n\r\n' + b'data\r\n\r\nmore'
    source = io.BytesIO(body)
    upload = UploadNameExtractor().extract(source)
    assert upload.filename == "a.bin"
    assert source.read() == b'data\r\n\r\nmore'


def test_no_filename_token():
    source = io.BytesIO(b'Content-Disposition: form-data; name="file"\r\n\r\nPAYLOAD')
    upload = UploadNameExtractor().extract(source)
    assert upload.filename is None
    assert upload.terminated is True
    assert source.read() == b'PAYLOAD'


def test_source_without_terminator():
    source = io.BytesIO(b'just some raw bytes')
    upload = UploadNameExtractor().extract(source)
    assert upload.filename is None
    assert upload.terminated is False
    assert upload.header_text == 'just some raw bytes'
    assert source.read() == b''


def test_empty_source():
    upload = UploadNameExtractor().extract(io.BytesIO(b''))
    assert upload.filename is None
    assert upload.header_text == ''


def test_first_filename_wins():
    body = b'filename="one.txt"; filename="two.txt"\r\n\r\n'
    assert UploadNameExtractor().extract(io.BytesIO(body)).filename == "one.txt"


def test_unclosed_filename_quote():
    assert UploadNameExtractor.parse_filename('filename="oops') is None


def test_header_size_limit():
    body = b'x' * 100 + b'filename="late.txt"\r\n\r\n'
    source = io.BytesIO(body)
    upload = UploadNameExtractor(max_header_size=50).extract(source)
    assert upload.terminated is False
    assert upload.filename is None
    assert len(upload.header_text) == 50
    assert source.tell() == 50


def test_aextract():
    async def main():
        source = AsyncSource(MULTIPART)
        upload = await UploadNameExtractor().aextract(source)
        return upload, await source.read()

    upload, rest = asyncio.run(main())
    assert upload.filename == "clip.mp4"
    assert rest == PAYLOAD


def test_limit_reached_is_reported():
    upload = UploadNameExtractor(max_header_size=50).extract(io.BytesIO(b'x' * 60))
    assert upload.terminated is False
    assert upload.limit_reached is True


def test_short_body_without_terminator_is_not_over_the_limit():
    upload = UploadNameExtractor(max_header_size=50).extract(io.BytesIO(b'x' * 20))
    assert upload.terminated is False
    assert upload.limit_reached is False
