from typing import Dict
from asyrange.core.rangeparser import ByteRange, RangeOutcome, RangeOutcomeType


class ResponsePlan:
	def __init__(self, status:int, headers:Dict[str, str], body_range:ByteRange = None):
		self.status = status
		self.headers = headers
		self.body_range = body_range

	@property
	def content_length(self):
		if self.body_range is None:
			return 0
		return self.body_range.length

	def __repr__(self):
		return 'ResponsePlan(status=%s, headers=%s, body_range=%r)' % (self.status, self.headers, self.body_range)


class RangeResponsePlanner:
	"""Maps a RangeOutcome onto status code, range headers and the byte window to send."""

	@staticmethod
	def plan(outcome:RangeOutcome) -> ResponsePlan:
		if outcome.kind == RangeOutcomeType.NO_RANGE:
			return ResponsePlan(
				200,
				{'Accept-Ranges': 'bytes'},
				ByteRange.whole(outcome.total),
			)

		if outcome.kind == RangeOutcomeType.SATISFIABLE:
			return ResponsePlan(
				206,
				{
					'Accept-Ranges': 'bytes',
					'Content-Range': outcome.byte_range.to_content_range(),
				},
				outcome.byte_range,
			)

		if outcome.kind == RangeOutcomeType.UNSATISFIABLE:
			# no Accept-Ranges on 416
			return ResponsePlan(416, {'Content-Range': 'bytes */%s' % outcome.total})

		return ResponsePlan(400, {})
