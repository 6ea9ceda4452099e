#!/usr/bin/env python3
"""
Range-aware File Server

Serves the files of a single directory over HTTP(S) with byte-range support
(seeking in audio/video players, resumable downloads) and accepts uploads
into the same directory.

Routes:
- GET /            HTML index of the served directory with upload forms
- GET|HEAD /<path> file content, honoring the Range header
- POST /upload     stores the request body as a file, then redirects to /

Usage:
    asyrange-fileserver [directory] [--host HOST] [--port PORT]

Example:
    asyrange-fileserver ./videos --host 0.0.0.0 --port 8080
"""

import os
import re
import sys
import html
import time
import asyncio
import logging
import argparse
import mimetypes
import urllib.parse
import h11

from asyrange import logger
from asyrange._version import __version__
from asyrange.config import ServerConfig
from asyrange.errors import IoFailure
from asyrange.common.target import ServerTarget
from asyrange.core.pathresolver import PathResolver
from asyrange.core.rangeparser import RangeParser
from asyrange.core.planner import RangeResponsePlanner
from asyrange.core.streamer import ByteStreamer
from asyrange.core.upload import UploadNameExtractor
from asyrange.protocol.http.httpserver import HTTPServerHandler, HTTPServer
from asyrange.protocol.http.body import RequestBody

UPLOAD_PATH = '/upload'


def get_header(event, name:bytes):
    """First value of a request header as str, None if missing. h11 lowercases header names."""
    for hname, value in event.headers:
        if hname == name:
            return value.decode('latin-1')
    return None


class FileServerHandler(HTTPServerHandler):
    """
    Translates h11 requests into calls on the range serving core.

    Uploads to the same name as a file being downloaded are not coordinated,
    the reader may see a truncated or mixed file.
    """

    def __init__(self, config:ServerConfig):
        super().__init__()
        self.config = config
        self.resolver = PathResolver(config.root)
        self.streamer = ByteStreamer(config.chunk_size)
        self.extractor = UploadNameExtractor(config.max_header_size)

    def _request_path(self, event):
        url_parts = urllib.parse.urlsplit(event.target.decode('ascii'))
        return urllib.parse.unquote(url_parts.path)

    def _get_mime_type(self, filepath):
        mime_type, _ = mimetypes.guess_type(filepath)
        return mime_type or 'application/octet-stream'

    def _sanitize_upload_filename(self, filename):
        """Reduces a client supplied name to a plain file name, None if nothing usable is left"""
        if not filename:
            return None

        # only the base name, in both path flavours
        safe_name = filename.replace('\\', '/').split('/')[-1]
        safe_name = re.sub(r'[^\w\-_\.]', '_', safe_name)
        safe_name = re.sub(r'\.\.+', '.', safe_name)
        safe_name = safe_name.strip('._')

        if not safe_name:
            return None

        if len(safe_name) > 255:
            name_part, ext_part = os.path.splitext(safe_name)
            safe_name = name_part[:250] + ext_part[:5]

        return safe_name

    def _default_upload_name(self):
        return '%s%d%s' % (self.config.default_upload_prefix, int(time.time() * 1000), self.config.default_upload_suffix)

    def _generate_index_html(self):
        names = sorted(
            name for name in os.listdir(self.config.root)
            if os.path.isfile(os.path.join(self.config.root, name))
        )
        items = ''.join(
            '<li><a href="/%s">%s</a></li>' % (urllib.parse.quote(name), html.escape(name))
            for name in names
        )
        return f'''<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>File Server</title></head>
<body style="font-family: sans-serif; margin: 40px;">
    <h2>Files</h2>
    <ul>{items}</ul>
    <hr>
    <h3>Upload (form)</h3>
    <form action="{UPLOAD_PATH}" method="post" enctype="multipart/form-data">
        <input type="file" name="file"> <input type="submit" value="Upload">
    </form>
    <h3>Upload (raw body)</h3>
    <input type="file" id="picker"> <button onclick="upload()">Upload</button>
    <script>
        async function upload() {{
            const file = document.getElementById('picker').files[0];
            if (!file) return;
            await fetch('{UPLOAD_PATH}', {{
                method: 'POST',
                headers: {{ 'File-Name': encodeURIComponent(file.name) }},
                body: file
            }});
            location.reload();
        }}
    </script>
</body>
</html>
'''

    async def do_GET(self, event):
        request_path = self._request_path(event)
        logger.info('GET %s' % request_path)
        if request_path == '/':
            return await self._serve_index()
        await self._serve_file(request_path, get_header(event, b'range'))

    async def do_HEAD(self, event):
        request_path = self._request_path(event)
        logger.info('HEAD %s' % request_path)
        if request_path == '/':
            return await self._serve_index(send_body=False)
        await self._serve_file(request_path, get_header(event, b'range'), send_body=False)

    async def do_POST(self, event):
        request_path = self._request_path(event)
        logger.info('POST %s' % request_path)
        if request_path != UPLOAD_PATH:
            return await self.send_simple(404, 'Not Found')
        await self._handle_upload(event)

    async def _serve_index(self, send_body=True):
        body = self._generate_index_html().encode('utf-8')
        headers = self.basic_headers()
        headers.extend([
            ("Content-Type", b"text/html; charset=utf-8"),
            ("Content-Length", str(len(body)).encode("ascii")),
        ])
        await self._wrapper.send(h11.Response(status_code=200, headers=headers))
        if send_body is True:
            await self._wrapper.send(h11.Data(data=body))
        await self._wrapper.send(h11.EndOfMessage())

    async def _send_data(self, data):
        await self._wrapper.send(h11.Data(data=data))

    async def _serve_file(self, request_path, range_header, send_body=True):
        resolved, err = self.resolver.check(request_path)
        if err is not None:
            logger.info('%s -> 404 (%s)' % (request_path, err))
            return await self.send_simple(404, 'File not found')

        try:
            f = open(resolved.absolute_path, 'rb')
        except OSError as e:
            logger.info('%s -> 404 (%s)' % (request_path, e))
            return await self.send_simple(404, 'File not found')

        with f:
            total = os.fstat(f.fileno()).st_size
            plan = RangeResponsePlanner.plan(RangeParser.parse(range_header, total))
            logger.debug('%s range=%r -> %r' % (request_path, range_header, plan))

            if plan.body_range is None:
                logger.info('%s -> %s' % (request_path, plan.status))
                if plan.status == 416:
                    return await self.send_simple(416, extra_headers=list(plan.headers.items()))
                return await self.send_simple(plan.status, 'Malformed Range header')

            headers = self.basic_headers()
            headers.extend([
                ("Content-Type", self._get_mime_type(resolved.absolute_path)),
                ("Content-Length", str(plan.content_length)),
            ])
            headers.extend(plan.headers.items())
            await self._wrapper.send(h11.Response(status_code=plan.status, headers=headers))

            if send_body is True:
                written, err = await self.streamer.astream(f, plan.body_range, self._send_data)
                if err is not None:
                    # headers are out, the only thing left to do is to drop the connection
                    logger.warning('%s -> aborted after %s bytes: %s' % (request_path, written, err))
                    await self._wrapper.shutdown_and_clean_up()
                    return
                logger.info('%s -> %s (%s bytes)' % (request_path, plan.status, written))

            await self._wrapper.send(h11.EndOfMessage())

    async def _handle_upload(self, event):
        content_length = get_header(event, b'content-length')
        if content_length is not None and int(content_length) > self.config.max_upload_size:
            logger.info('Upload rejected, Content-Length %s is over the limit' % content_length)
            return await self.send_simple(413, 'Upload too large (max %s bytes)' % self.config.max_upload_size)

        body = RequestBody(self._wrapper)
        try:
            file_name_header = get_header(event, b'file-name')
            if file_name_header is not None:
                filename = urllib.parse.unquote(file_name_header)
            else:
                upload = await self.extractor.aextract(body)
                if upload.limit_reached is True:
                    logger.info('Upload rejected, no end of part headers within %s bytes' % self.config.max_header_size)
                    return await self.send_simple(400, 'Upload headers too large')
                filename = upload.filename

            if filename:
                safe_name = self._sanitize_upload_filename(filename)
                if safe_name is None:
                    logger.info('Upload rejected, unusable file name %r' % filename)
                    return await self.send_simple(400, 'Invalid file name')
            else:
                safe_name = self._default_upload_name()

            resolved, err = self.resolver.check_writable('/' + safe_name)
            if err is not None:
                logger.info('Upload rejected, %r: %s' % (safe_name, err))
                return await self.send_simple(400, 'Invalid file name')

            written, too_large = await self._store_payload(body, resolved.absolute_path)
            if too_large is True:
                logger.info('Upload of %s aborted, over the limit' % safe_name)
                return await self.send_simple(413, 'Upload too large (max %s bytes)' % self.config.max_upload_size)

        except (OSError, IoFailure) as e:
            logger.warning('Upload failed: %s' % e)
            if self._wrapper.conn.our_state is h11.SEND_RESPONSE:
                await self.send_simple(500, 'Upload failed')
            return

        logger.info('Stored upload %s (%s bytes)' % (safe_name, written))
        await self.send_simple(303, extra_headers=[("Location", b"/")])

    async def _store_payload(self, body:RequestBody, target_path):
        """Copies the unread part of the request body into target_path. Returns (bytes_written, too_large)"""
        written = 0
        # O_NOFOLLOW: a symlink planted after the check is not followed either
        flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, 'O_NOFOLLOW', 0)
        with open(os.open(target_path, flags, 0o644), 'wb') as f:
            while True:
                chunk = await body.read(self.config.chunk_size)
                if not chunk:
                    break
                written += len(chunk)
                if written > self.config.max_upload_size:
                    break
                f.write(chunk)

        if written > self.config.max_upload_size:
            os.remove(target_path)
            return written, True
        return written, False


async def run_file_server(config:ServerConfig, log_callback=None):
    """Runs the file server until cancelled"""
    config.prepare_root()
    target = ServerTarget.from_config(config)
    handler_factory = lambda: FileServerHandler(config)
    server = HTTPServer(
        handler_factory,
        target,
        max_workers=config.max_workers,
        read_timeout=config.read_timeout,
        log_callback=log_callback,
    )
    logger.info('Serving %s on %s' % (config.root, target.get_url()))
    await server.serve()


def main():
    parser = argparse.ArgumentParser(
        description='Asyrange File Server - static file server with HTTP Range support and uploads',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  %(prog)s                                 # Serve ./static on 127.0.0.1:8080
  %(prog)s /home/user/videos              # Serve a directory
  %(prog)s /home/user/videos -H 0.0.0.0   # Bind to all interfaces
  %(prog)s /home/user/videos --ssl-selfsigned
        ''')

    parser.add_argument('root', nargs='?', default='static', help='Directory to serve files from (default: ./static)')
    parser.add_argument('--host', '-H', default='127.0.0.1', help='Host to bind to (default: 127.0.0.1)')
    parser.add_argument('--port', '-p', type=int, default=8080, help='Port to bind to (default: 8080)')
    parser.add_argument('--workers', '-w', type=int, default=10, help='Maximum number of requests processed at once (default: 10)')
    parser.add_argument('--chunk-size', type=int, default=64*1024, help='Streaming chunk size in bytes (default: 64KB)')
    parser.add_argument('--max-upload-size', type=int, default=1024*1024*1024, help='Maximum upload size in bytes (default: 1GB)')
    parser.add_argument('--read-timeout', type=float, default=30.0, help='Seconds to wait for data from a client (default: 30)')
    parser.add_argument('--no-create', action='store_true', help='Do not create the served directory if it is missing')
    parser.add_argument('--certfile', help='TLS certificate file (PEM)')
    parser.add_argument('--keyfile', help='TLS private key file (PEM)')
    parser.add_argument('--ssl-selfsigned', action='store_true', help='Serve HTTPS with a freshly generated self-signed certificate')
    parser.add_argument('--debug', '-d', action='store_true', help='Enable debug logging')
    parser.add_argument('--version', '-v', action='version', version='Asyrange File Server %s' % __version__)

    args = parser.parse_args()

    try:
        config = ServerConfig.from_args(args)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if config.debug is True:
        logger.setLevel(logging.DEBUG)

    print("Asyrange File Server")
    print("=" * 50)
    print(f"Directory: {config.root}")
    print(f"Address: {'https' if config.use_ssl else 'http'}://{config.host}:{config.port}")
    print(f"Workers: {config.max_workers}")
    print(f"Chunk size: {config.chunk_size} bytes")
    print(f"Max upload size: {config.max_upload_size / (1024*1024):.0f} MB")
    print("=" * 50)

    try:
        asyncio.run(run_file_server(config))
    except KeyboardInterrupt:
        print("\nServer stopped by user")
    except (OSError, ValueError) as e:
        print(f"Failed to start server: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
