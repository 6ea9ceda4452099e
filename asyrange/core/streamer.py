import os
from typing import BinaryIO, Callable, Awaitable
from asyrange import logger
from asyrange.core.rangeparser import ByteRange
from asyrange.errors import IoFailure, TruncatedSource

MIN_CHUNK_SIZE = 4 * 1024
MAX_CHUNK_SIZE = 8 * 1024 * 1024
DEFAULT_CHUNK_SIZE = 64 * 1024


class ByteStreamer:
	"""
	Copies the byte window of a ByteRange from a seekable source into a sink,
	never holding more than chunk_size bytes in memory.

	Both stream and astream return a (bytes_written, err) tuple.
	err is None on success, TruncatedSource if the source ended early
	and IoFailure if reading or writing raised.
	"""
	def __init__(self, chunk_size:int = DEFAULT_CHUNK_SIZE):
		if not (MIN_CHUNK_SIZE <= chunk_size <= MAX_CHUNK_SIZE):
			raise ValueError('Chunk size must be between %s and %s bytes, got %s' % (MIN_CHUNK_SIZE, MAX_CHUNK_SIZE, chunk_size))
		self.chunk_size = chunk_size

	def chunks(self, source:BinaryIO, byte_range:ByteRange):
		"""Yields the requested window in chunks. Stops early if the source runs dry."""
		remaining = byte_range.length
		if remaining <= 0:
			return
		source.seek(byte_range.start, os.SEEK_SET)
		while remaining > 0:
			chunk = source.read(min(self.chunk_size, remaining))
			if not chunk:
				return
			remaining -= len(chunk)
			yield chunk

	def __result(self, byte_range:ByteRange, written:int):
		if written < byte_range.length:
			logger.debug('Source truncated at %s of %s bytes' % (written, byte_range.length))
			return written, TruncatedSource(byte_range.length, written)
		return written, None

	def stream(self, source:BinaryIO, byte_range:ByteRange, sink:BinaryIO):
		written = 0
		try:
			for chunk in self.chunks(source, byte_range):
				sink.write(chunk)
				written += len(chunk)
		except OSError as e:
			return written, IoFailure(e)
		return self.__result(byte_range, written)

	async def astream(self, source:BinaryIO, byte_range:ByteRange, write:Callable[[bytes], Awaitable]):
		written = 0
		try:
			for chunk in self.chunks(source, byte_range):
				await write(chunk)
				written += len(chunk)
		except OSError as e:
			return written, IoFailure(e)
		return self.__result(byte_range, written)
