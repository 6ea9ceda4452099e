import re
import enum

# single range only: bytes=<start>-<end>?
RANGE_RE = re.compile(r'^\s*bytes\s*=\s*([0-9]*)\s*-\s*([0-9]*)\s*$', re.IGNORECASE)


class ByteRange:
	"""Inclusive byte window [start, end] of a resource that is total bytes long."""
	def __init__(self, start:int, end:int, total:int):
		if total > 0 and not (0 <= start <= end < total):
			raise ValueError('Invalid byte range %s-%s/%s' % (start, end, total))
		if total == 0 and (start != 0 or end != -1):
			raise ValueError('Empty resource can only have an empty range')
		self.__start = start
		self.__end = end
		self.__total = total

	@staticmethod
	def whole(total:int):
		return ByteRange(0, total - 1, total)

	@property
	def start(self):
		return self.__start

	@property
	def end(self):
		return self.__end

	@property
	def total(self):
		return self.__total

	@property
	def length(self):
		return self.__end - self.__start + 1

	def to_content_range(self):
		return 'bytes %s-%s/%s' % (self.__start, self.__end, self.__total)

	def __eq__(self, other):
		if not isinstance(other, ByteRange):
			return NotImplemented
		return (self.start, self.end, self.total) == (other.start, other.end, other.total)

	def __hash__(self):
		return hash((self.start, self.end, self.total))

	def __repr__(self):
		return 'ByteRange(start=%s, end=%s, total=%s)' % (self.start, self.end, self.total)


class RangeOutcomeType(enum.Enum):
	NO_RANGE = 1
	SATISFIABLE = 2
	UNSATISFIABLE = 3
	MALFORMED = 4


class RangeOutcome:
	def __init__(self, kind:RangeOutcomeType, byte_range:ByteRange = None, total:int = None):
		self.__kind = kind
		self.__byte_range = byte_range
		self.__total = total

	@staticmethod
	def no_range(total:int):
		return RangeOutcome(RangeOutcomeType.NO_RANGE, total = total)

	@staticmethod
	def satisfiable(byte_range:ByteRange):
		return RangeOutcome(RangeOutcomeType.SATISFIABLE, byte_range = byte_range, total = byte_range.total)

	@staticmethod
	def unsatisfiable(total:int):
		return RangeOutcome(RangeOutcomeType.UNSATISFIABLE, total = total)

	@staticmethod
	def malformed(total:int = None):
		return RangeOutcome(RangeOutcomeType.MALFORMED, total = total)

	@property
	def kind(self):
		return self.__kind

	@property
	def byte_range(self):
		return self.__byte_range

	@property
	def total(self):
		return self.__total

	def __eq__(self, other):
		if not isinstance(other, RangeOutcome):
			return NotImplemented
		return (self.kind, self.byte_range, self.total) == (other.kind, other.byte_range, other.total)

	def __repr__(self):
		if self.__kind == RangeOutcomeType.SATISFIABLE:
			return 'RangeOutcome(%s, %r)' % (self.__kind.name, self.__byte_range)
		return 'RangeOutcome(%s, total=%s)' % (self.__kind.name, self.__total)


class RangeParser:
	"""
	Parses the value of a Range request header against a known resource size.
	Only the single-range form "bytes=<start>-<end>" is understood, end being optional.
	Suffix ranges ("bytes=-500") and multiple ranges are reported as malformed.
	Never raises, every branch is a RangeOutcome.
	"""

	@staticmethod
	def parse(header_value:str, total:int) -> RangeOutcome:
		if header_value is None:
			return RangeOutcome.no_range(total)

		m = RANGE_RE.match(header_value)
		if m is None:
			return RangeOutcome.malformed(total)

		start_s, end_s = m.group(1), m.group(2)
		if not start_s:
			return RangeOutcome.malformed(total)

		start = int(start_s)
		if start >= total:
			return RangeOutcome.unsatisfiable(total)

		end = total - 1
		if end_s:
			end = min(int(end_s), total - 1)

		if end < start:
			return RangeOutcome.malformed(total)

		return RangeOutcome.satisfiable(ByteRange(start, end, total))
