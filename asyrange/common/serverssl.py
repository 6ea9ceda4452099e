import os
import ssl
import uuid
import datetime
import tempfile
import ipaddress
from asyrange import logger

from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID


def generate_selfsigned_cert(hostname:str = 'localhost', key_exp:int = 65537, key_size:int = 2048, cache_dir:str = None):
	"""Creates an RSA key and a self-signed certificate for hostname, returns the paths of the two PEM files"""
	logger.debug('Generating self-signed certificate for %s' % hostname)
	if cache_dir is None:
		cache_dir = tempfile.mkdtemp(prefix='asyrange_')

	one_day = datetime.timedelta(1, 0, 0)
	one_year = datetime.timedelta(365, 0, 0)
	private_key = rsa.generate_private_key(
		public_exponent=key_exp,
		key_size=key_size,
		backend=default_backend()
	)
	name = x509.Name([
		x509.NameAttribute(NameOID.COMMON_NAME, hostname),
		x509.NameAttribute(NameOID.ORGANIZATION_NAME, 'asyrange'),
	])
	try:
		san = x509.IPAddress(ipaddress.ip_address(hostname))
	except ValueError:
		san = x509.DNSName(hostname)

	now = datetime.datetime.now(datetime.timezone.utc)
	builder = x509.CertificateBuilder()
	builder = builder.subject_name(name)
	builder = builder.issuer_name(name)
	builder = builder.not_valid_before(now - one_day)
	builder = builder.not_valid_after(now + one_year)
	builder = builder.serial_number(int(uuid.uuid4()))
	builder = builder.public_key(private_key.public_key())
	builder = builder.add_extension(x509.SubjectAlternativeName([san]), critical=False)
	certificate = builder.sign(
		private_key=private_key, algorithm=hashes.SHA256(),
		backend=default_backend()
	)

	certfile = os.path.join(cache_dir, 'cert.pem')
	keyfile = os.path.join(cache_dir, 'key.pem')
	with open(certfile, 'wb') as f:
		f.write(certificate.public_bytes(encoding=serialization.Encoding.PEM))
	with open(keyfile, 'wb') as f:
		f.write(private_key.private_bytes(
			encoding=serialization.Encoding.PEM,
			format=serialization.PrivateFormat.TraditionalOpenSSL,
			encryption_algorithm=serialization.NoEncryption()
		))
	return certfile, keyfile


class ServerSSL:
	"""Holds the certificate material of a TLS listener and builds ssl contexts from it"""
	def __init__(self, certfile:str, keyfile:str, password:str = None):
		self.certfile = certfile
		self.keyfile = keyfile
		self.password = password

	@staticmethod
	def get_selfsigned(hostname:str = 'localhost'):
		certfile, keyfile = generate_selfsigned_cert(hostname)
		return ServerSSL(certfile, keyfile)

	def get_ssl_context(self, protocol = ssl.PROTOCOL_TLS_SERVER):
		ssl_ctx = ssl.SSLContext(protocol)
		ssl_ctx.load_cert_chain(certfile=self.certfile, keyfile=self.keyfile, password=self.password)
		return ssl_ctx

	def __str__(self):
		return 'ServerSSL(certfile=%s, keyfile=%s)' % (self.certfile, self.keyfile)
