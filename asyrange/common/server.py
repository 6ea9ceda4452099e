import asyncio
from asyrange import logger
from asyrange.common.target import ServerTarget, ServerProto
from asyrange.common.connection import Connection


class TCPServer:
	def __init__(self, target:ServerTarget, buffer_size:int = 65535):
		self.target = target
		self.buffer_size = buffer_size
		self.connection_queue = asyncio.Queue()
		self.server = None

	@property
	def address(self):
		"""(ip, port) the listener is actually bound to, port 0 gets resolved here"""
		if self.server is None or len(self.server.sockets) == 0:
			return None
		return self.server.sockets[0].getsockname()[:2]

	async def __handle_connection(self, reader, writer):
		connection = Connection(reader, writer, self.buffer_size)
		await self.connection_queue.put(connection)

	async def start(self):
		if self.server is not None:
			return
		if self.target.protocol == ServerProto.SERVER_TCP:
			ssl_ctx = None
		elif self.target.protocol == ServerProto.SERVER_SSL_TCP:
			ssl_ctx = self.target.get_ssl_context()
		else:
			raise Exception('Unknown protocol "%s"' % self.target.protocol)

		self.server = await asyncio.start_server(
			self.__handle_connection,
			self.target.get_ip_or_hostname(),
			self.target.port,
			ssl = ssl_ctx,
		)
		logger.debug('Listening on %s:%s' % self.address)

	def close(self):
		if self.server is not None:
			self.server.close()

	async def serve(self):
		await self.start()
		try:
			while self.server.is_serving():
				connection = await self.connection_queue.get()
				yield connection
		finally:
			self.close()
