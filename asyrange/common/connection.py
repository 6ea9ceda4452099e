import asyncio


class Connection:
	def __init__(self, reader:asyncio.StreamReader, writer:asyncio.StreamWriter, buffer_size:int = 65535):
		self.reader = reader
		self.writer = writer
		self.buffer_size = buffer_size
		self.closing = False

	def get_extra_info(self, name, default=None):
		return self.writer.get_extra_info(name, default)

	def get_peer(self):
		peer = self.get_extra_info('peername')
		if peer is None:
			return 'unknown'
		return '%s:%s' % (peer[0], peer[1])

	async def close(self):
		if self.closing is True:
			return
		self.closing = True
		if self.writer is not None:
			self.writer.close()

	async def write(self, data:bytes):
		self.writer.write(data)
		await self.writer.drain()

	async def read_one(self):
		"""Returns the next piece of data from the peer, b'' on EOF"""
		if self.closing is True:
			return b''
		return await self.reader.read(self.buffer_size)
