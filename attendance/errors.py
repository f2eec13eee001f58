"""Exceptions raised by the roll-call core."""

from __future__ import annotations


class RollCallError(RuntimeError):
	"""Base class for roll-call failures scoped to a single group."""

	def __init__(self, group_id: str, message: str) -> None:
		super().__init__(f"{message} (group {group_id})")
		self.group_id = group_id


class RosterUnavailable(RollCallError):
	pass


class DispatchFailed(RollCallError):
	pass


class PollUnsupported(RollCallError):
	"""Raised by a transport that cannot create a native poll."""


class HistoryFetchFailed(RollCallError):
	pass


class NoCycleError(RollCallError):
	def __init__(self, group_id: str) -> None:
		super().__init__(group_id, "No roll call has been sent")


__all__ = [
	"RollCallError",
	"RosterUnavailable",
	"DispatchFailed",
	"PollUnsupported",
	"HistoryFetchFailed",
	"NoCycleError",
]
