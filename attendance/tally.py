"""Reconciles a group's roster against collected responses."""

from __future__ import annotations

import logging
from typing import Optional

from .channels import ResponseChannel, build_channel
from .dispatcher import eligible_participants
from .errors import DispatchFailed, HistoryFetchFailed, NoCycleError, RollCallError, RosterUnavailable
from .models import ChannelKind, Classification, Participant, TallyResult
from .ports import MessageTransport, RosterAccessor
from .report import format_report
from .store import CycleStore

logger = logging.getLogger(__name__)


class TallyEngine:
	"""Computes and publishes the roll-call result for a group.

	Responses come from the channel's scan of recent history, taken at tally
	time. Poll and reaction cycles use nothing else, so a removed vote or
	reaction no longer counts. Text cycles also take replies recorded by the
	listener for participants the scan missed (for instance replies that fell
	out of the history window). A failed history fetch leaves the response set
	empty. Whoever is still unclassified receives the channel's ``unanswered``
	policy.
	"""

	def __init__(
		self,
		store: CycleStore,
		roster: RosterAccessor,
		transport: MessageTransport,
		channel: ResponseChannel,
		*,
		history_limit: int = 50,
	) -> None:
		self.store = store
		self.roster = roster
		self.transport = transport
		self.history_limit = history_limit
		self._channels: dict[ChannelKind, ResponseChannel] = {channel.kind: channel}

	def channel_for(self, kind: ChannelKind) -> ResponseChannel:
		# A poll cycle may have degraded to reactions at dispatch time.
		if kind not in self._channels:
			self._channels[kind] = build_channel(kind)
		return self._channels[kind]

	async def _roster(self, group_id: str) -> list[Participant]:
		try:
			participants = await self.roster.get_participants(group_id)
		except RollCallError:
			raise
		except Exception as exc:
			raise RosterUnavailable(group_id, f"Roster fetch failed: {exc}") from exc
		return eligible_participants(participants, self.roster.get_self_identity())

	async def compute_tally(self, group_id: str) -> TallyResult:
		cycle = self.store.get_cycle(group_id)
		if cycle is None:
			raise NoCycleError(group_id)

		participants = await self._roster(group_id)
		channel = self.channel_for(cycle.channel_kind)

		try:
			responses = await channel.collect_responses(self.transport, cycle, self.history_limit)
		except HistoryFetchFailed:
			logger.warning("History fetch failed for group %s; treating as no responses", group_id, exc_info=True)
			responses = {}
		else:
			if channel.uses_recorded:
				for identity, recorded in self.store.responses_for(group_id).items():
					responses.setdefault(identity, recorded)

		buckets: dict[Classification, list[Participant]] = {c: [] for c in Classification}
		for p in participants:
			classification: Optional[Classification] = responses.get(p.identity)
			buckets[classification or channel.unanswered].append(p)

		return TallyResult(
			group_id=group_id,
			day=cycle.day,
			present=tuple(buckets[Classification.PRESENT]),
			absent=tuple(buckets[Classification.ABSENT]),
			excused=tuple(buckets[Classification.EXCUSED]),
			no_response=tuple(buckets[Classification.NO_RESPONSE]),
			channel_kind=cycle.channel_kind,
		)

	async def publish(self, group_id: str) -> TallyResult:
		result = await self.compute_tally(group_id)
		try:
			await self.transport.send_message(group_id, format_report(result))
		except RollCallError:
			raise
		except Exception as exc:
			raise DispatchFailed(group_id, f"Report send failed: {exc}") from exc
		logger.info(
			"Roll call result sent to group %s: %d/%d responded",
			group_id,
			result.responded_count,
			result.total,
		)
		return result


__all__ = ["TallyEngine"]
