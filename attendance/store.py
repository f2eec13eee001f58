"""In-memory registry of live cycles and the responses collected for them."""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from typing import Optional

from .models import ChannelKind, Classification, Cycle, Response

logger = logging.getLogger(__name__)


class CycleStore:
	"""Owns the per-group Cycle and its responses.

	State lives only until the next prompt phase for the same group. Reads
	hand back copies taken under the lock, so listener callbacks never tear
	a snapshot used by a tally.
	"""

	def __init__(self) -> None:
		self._lock = threading.Lock()
		self._cycles: dict[str, Cycle] = {}
		self._responses: dict[str, dict[str, Response]] = {}

	def start_cycle(
		self,
		group_id: str,
		correlation_id: str,
		channel_kind: ChannelKind,
		created_at: datetime,
		marker: str = "",
		cycle_date: Optional[date] = None,
	) -> Cycle:
		cycle = Cycle(
			group_id=group_id,
			correlation_id=correlation_id,
			channel_kind=channel_kind,
			created_at=created_at,
			marker=marker,
			cycle_date=cycle_date,
		)
		with self._lock:
			self._cycles[group_id] = cycle
			self._responses[group_id] = {}
		logger.info("Started %s roll call for group %s (prompt %s)", channel_kind.value, group_id, correlation_id)
		return cycle

	def discard(self, group_id: str) -> None:
		with self._lock:
			self._cycles.pop(group_id, None)
			self._responses.pop(group_id, None)

	def get_cycle(self, group_id: str) -> Optional[Cycle]:
		with self._lock:
			return self._cycles.get(group_id)

	def live_groups(self) -> list[str]:
		with self._lock:
			return list(self._cycles)

	def record_response(
		self,
		group_id: str,
		identity: str,
		classification: Classification,
		timestamp: datetime,
	) -> bool:
		if classification is Classification.NO_RESPONSE:
			raise ValueError("NO_RESPONSE is a tally bucket, not a response")

		with self._lock:
			cycle = self._cycles.get(group_id)
			if cycle is None or timestamp < cycle.created_at:
				return False
			responses = self._responses.setdefault(group_id, {})
			previous = responses.get(identity)
			if previous is not None and timestamp < previous.timestamp:
				return False
			responses[identity] = Response(identity, classification, timestamp)
		return True

	def retract_response(self, group_id: str, identity: str, classification: Classification) -> bool:
		"""Drop ``identity``'s response if it is still ``classification``.

		A removed ✅ must not erase a ❌ given after it.
		"""
		with self._lock:
			responses = self._responses.get(group_id, {})
			current = responses.get(identity)
			if current is None or current.classification is not classification:
				return False
			del responses[identity]
		return True

	def responses_for(self, group_id: str) -> dict[str, Classification]:
		with self._lock:
			return {k: r.classification for k, r in self._responses.get(group_id, {}).items()}


__all__ = ["CycleStore"]
