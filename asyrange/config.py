import os
from asyrange.core.streamer import DEFAULT_CHUNK_SIZE, MIN_CHUNK_SIZE, MAX_CHUNK_SIZE
from asyrange.core.upload import DEFAULT_MAX_HEADER_SIZE


class ServerConfig:
	"""Everything the file server needs to know, fixed at startup"""
	def __init__(self, root:str = 'static', host:str = '127.0.0.1', port:int = 8080, chunk_size:int = DEFAULT_CHUNK_SIZE,
			max_workers:int = 10, max_upload_size:int = 1024*1024*1024, max_header_size:int = DEFAULT_MAX_HEADER_SIZE,
			read_timeout:float = 30.0, default_upload_prefix:str = 'upload_', default_upload_suffix:str = '.dat',
			create_root:bool = True, certfile:str = None, keyfile:str = None, ssl_selfsigned:bool = False, debug:bool = False):
		self.root = os.path.abspath(root)
		self.host = host
		self.port = port
		self.chunk_size = chunk_size
		self.max_workers = max_workers
		self.max_upload_size = max_upload_size
		self.max_header_size = max_header_size
		self.read_timeout = read_timeout
		self.default_upload_prefix = default_upload_prefix
		self.default_upload_suffix = default_upload_suffix
		self.create_root = create_root
		self.certfile = certfile
		self.keyfile = keyfile
		self.ssl_selfsigned = ssl_selfsigned
		self.debug = debug

		self.validate()

	def validate(self):
		if not (0 <= self.port <= 65535):
			raise ValueError('Port must be between 0 and 65535, got %s' % self.port)
		if not (MIN_CHUNK_SIZE <= self.chunk_size <= MAX_CHUNK_SIZE):
			raise ValueError('Chunk size must be between %s and %s bytes, got %s' % (MIN_CHUNK_SIZE, MAX_CHUNK_SIZE, self.chunk_size))
		if self.max_workers < 1:
			raise ValueError('At least one worker is needed, got %s' % self.max_workers)
		if self.max_upload_size < 0:
			raise ValueError('max_upload_size can\'t be negative')
		if self.max_header_size < 4:
			raise ValueError('max_header_size must fit the header terminator')
		if self.read_timeout is not None and self.read_timeout <= 0:
			raise ValueError('read_timeout must be positive')
		if (self.certfile is None) != (self.keyfile is None):
			raise ValueError('certfile and keyfile must be given together')
		if self.certfile is not None and self.ssl_selfsigned is True:
			raise ValueError('Use either certfile/keyfile or a self-signed certificate, not both')

	@property
	def use_ssl(self):
		return self.certfile is not None or self.ssl_selfsigned is True

	def prepare_root(self):
		if os.path.isdir(self.root):
			return
		if self.create_root is False:
			raise ValueError('Root directory does not exist: %s' % self.root)
		os.makedirs(self.root, exist_ok=True)

	@staticmethod
	def from_args(args):
		return ServerConfig(
			root = args.root,
			host = args.host,
			port = args.port,
			chunk_size = args.chunk_size,
			max_workers = args.workers,
			max_upload_size = args.max_upload_size,
			read_timeout = args.read_timeout,
			create_root = not args.no_create,
			certfile = args.certfile,
			keyfile = args.keyfile,
			ssl_selfsigned = args.ssl_selfsigned,
			debug = args.debug,
		)

	def __repr__(self):
		return str(self.__dict__)

	def __str__(self):
		return repr(self)
