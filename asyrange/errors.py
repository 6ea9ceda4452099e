
class AsyRangeError(Exception):
	def __init__(self, message = None):
		if message is None:
			message = self.__class__.__doc__
		self.message = message
		super().__init__(self.message)

class MalformedRange(AsyRangeError):
	"""Range header could not be parsed"""

class UnsatisfiableRange(AsyRangeError):
	"""Range start is beyond the end of the resource"""
	def __init__(self, total:int, message = None):
		self.total = total
		if message is None:
			message = 'Range start is beyond the end of the resource (size %s)' % total
		super().__init__(message)

class PathTraversal(AsyRangeError):
	"""Requested path escapes the served root"""
	def __init__(self, request_path:str, message = None):
		self.request_path = request_path
		super().__init__(message)

class FileNotFound(AsyRangeError):
	"""Requested file does not exist"""
	def __init__(self, request_path:str, message = None):
		self.request_path = request_path
		super().__init__(message)

class IoFailure(AsyRangeError):
	"""Reading or writing the byte stream failed"""
	def __init__(self, innerexception:Exception = None, message = None):
		self.innerexception = innerexception
		if message is None and innerexception is not None:
			message = 'I/O failure: %s' % innerexception
		super().__init__(message)

class TruncatedSource(AsyRangeError):
	"""Source ended before the promised number of bytes was read"""
	def __init__(self, expected:int, written:int, message = None):
		self.expected = expected
		self.written = written
		if message is None:
			message = 'Source ended after %s of %s bytes' % (written, expected)
		super().__init__(message)
