from typing import BinaryIO
from asyrange import logger

HEADER_TERMINATOR = b'\r\n\r\n'
FILENAME_TOKEN = 'filename="'
DEFAULT_MAX_HEADER_SIZE = 16 * 1024


class UploadHeader:
	def __init__(self, header_text:str, filename:str, remainder, terminated:bool, limit_reached:bool = False):
		self.header_text = header_text
		self.filename = filename
		self.remainder = remainder
		self.terminated = terminated
		# scan stopped at max_header_size without finding the terminator
		self.limit_reached = limit_reached

	def __repr__(self):
		return 'UploadHeader(filename=%r, terminated=%s, limit_reached=%s, header_size=%s)' % (self.filename, self.terminated, self.limit_reached, len(self.header_text))


class UploadNameExtractor:
	"""
	Pulls the file name out of a single-part upload body.

	This is NOT a multipart/form-data parser. The body is assumed to hold exactly
	one part: its headers are read up to the first CRLFCRLF, the first
	filename="..." token found in them is taken as the name, and everything after
	the terminator is left unread on the source as the raw payload.
	Boundary markers, part content types and further parts are not looked at,
	so for real multipart bodies the trailing boundary ends up in the payload.
	A body without a terminator or without the token yields filename None,
	the caller is expected to come up with a name in that case.
	"""
	def __init__(self, max_header_size:int = DEFAULT_MAX_HEADER_SIZE):
		self.max_header_size = max_header_size

	@staticmethod
	def parse_filename(header_text:str):
		pos = header_text.find(FILENAME_TOKEN)
		if pos == -1:
			return None
		rest = header_text[pos + len(FILENAME_TOKEN):]
		end = rest.find('"')
		if end == -1:
			return None
		return rest[:end]

	def _finish(self, collected:bytearray, source, terminated:bool):
		header_text = collected.decode('utf-8', errors='replace')
		filename = UploadNameExtractor.parse_filename(header_text)
		limit_reached = terminated is False and len(collected) >= self.max_header_size
		logger.debug('Upload header scanned: %s bytes, terminated: %s, filename: %r' % (len(collected), terminated, filename))
		return UploadHeader(header_text, filename, source, terminated, limit_reached)

	def extract(self, source:BinaryIO) -> UploadHeader:
		collected = bytearray()
		while len(collected) < self.max_header_size:
			b = source.read(1)
			if not b:
				break
			collected += b
			if collected[-4:] == HEADER_TERMINATOR:
				return self._finish(collected, source, True)
		return self._finish(collected, source, False)

	async def aextract(self, source) -> UploadHeader:
		"""Same as extract, source must provide an async read(n)"""
		collected = bytearray()
		while len(collected) < self.max_header_size:
			b = await source.read(1)
			if not b:
				break
			collected += b
			if collected[-4:] == HEADER_TERMINATOR:
				return self._finish(collected, source, True)
		return self._finish(collected, source, False)
