import enum
import ipaddress
from asyrange.common.serverssl import ServerSSL

class ServerProto(enum.Enum):
	SERVER_TCP = 6
	SERVER_SSL_TCP = 7

class ServerTarget:
	def __init__(self, ip:str, port:int, protocol:ServerProto = ServerProto.SERVER_TCP, ssl_ctx:ServerSSL = None, hostname:str = None):
		self.hostname = hostname
		self.port = port
		self.protocol = protocol
		self.ssl_ctx = ssl_ctx

		try:
			ipaddress.ip_address(ip)
			self.ip = ip
		except ValueError:
			if ip is not None:
				self.hostname = ip
			self.ip = None

		if ip is None and hostname is None:
			raise Exception('Both IP and Hostname can\'t be none!')

		if self.protocol == ServerProto.SERVER_SSL_TCP and self.ssl_ctx is None:
			raise Exception('SSL server target needs an ssl context!')

	@staticmethod
	def from_config(config):
		if config.use_ssl is False:
			return ServerTarget(config.host, config.port, ServerProto.SERVER_TCP)

		if config.ssl_selfsigned is True:
			ssl_ctx = ServerSSL.get_selfsigned(config.host)
		else:
			ssl_ctx = ServerSSL(config.certfile, config.keyfile)
		return ServerTarget(config.host, config.port, ServerProto.SERVER_SSL_TCP, ssl_ctx=ssl_ctx)

	def get_ssl_context(self):
		if self.ssl_ctx is None:
			return None
		return self.ssl_ctx.get_ssl_context()

	def get_ip_or_hostname(self):
		if self.ip is not None:
			return self.ip
		return self.hostname

	def get_url(self):
		scheme = 'https' if self.protocol == ServerProto.SERVER_SSL_TCP else 'http'
		return '%s://%s:%s/' % (scheme, self.get_ip_or_hostname(), self.port)

	def __str__(self):
		t = '==== ServerTarget ====\r\n'
		for k in self.__dict__:
			t += '%s: %s\r\n' % (k, self.__dict__[k])
		return t
