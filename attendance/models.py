"""Dataclasses and enums for the roll-call workflow."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


class Classification(enum.Enum):
	PRESENT = "present"
	ABSENT = "absent"
	EXCUSED = "excused"
	NO_RESPONSE = "no_response"


class ChannelKind(enum.Enum):
	POLL = "poll"
	REACTION = "reaction"
	TEXT = "text"

	@classmethod
	def parse(cls, value: str) -> "ChannelKind":
		try:
			return cls(str(value).strip().lower())
		except ValueError:
			choices = ", ".join(k.value for k in cls)
			raise ValueError(f"Unknown response channel {value!r} (expected one of: {choices})") from None


@dataclass(frozen=True)
class Participant:
	identity: str
	handle: str


@dataclass(frozen=True)
class Response:
	identity: str
	classification: Classification
	timestamp: datetime


@dataclass(frozen=True)
class SentMessage:
	id: str
	timestamp: datetime


@dataclass(frozen=True)
class SentPrompt:
	correlation_id: str
	channel_kind: ChannelKind
	sent_at: datetime
	marker: str
	day: Optional[date] = None


@dataclass(frozen=True)
class Cycle:
	"""One day's roll call for one group."""

	group_id: str
	correlation_id: str
	channel_kind: ChannelKind
	created_at: datetime
	marker: str = ""
	cycle_date: Optional[date] = None

	@property
	def day(self) -> date:
		return self.cycle_date or self.created_at.date()


@dataclass(frozen=True)
class HistoryMessage:
	id: str
	sender_id: str
	body: str
	timestamp: datetime
	from_self: bool = False
	# emoji -> sender ids
	reactions: Optional[dict[str, list[str]]] = None
	# option text -> voter ids
	poll_votes: Optional[dict[str, list[str]]] = None
	quoted_message_id: Optional[str] = None


@dataclass(frozen=True)
class TallyResult:
	"""Partition of a group's roster into outcome buckets.

	Every roster participant (the bot excluded) sits in exactly one of
	``present``, ``absent``, ``excused`` or ``no_response``.
	"""

	group_id: str
	day: date
	present: tuple[Participant, ...] = ()
	absent: tuple[Participant, ...] = ()
	excused: tuple[Participant, ...] = ()
	no_response: tuple[Participant, ...] = ()
	channel_kind: Optional[ChannelKind] = field(default=None, compare=False)

	def buckets(self) -> dict[Classification, tuple[Participant, ...]]:
		return {
			Classification.PRESENT: self.present,
			Classification.ABSENT: self.absent,
			Classification.EXCUSED: self.excused,
			Classification.NO_RESPONSE: self.no_response,
		}

	@property
	def total(self) -> int:
		return sum(len(v) for v in self.buckets().values())

	@property
	def responded_count(self) -> int:
		return self.total - len(self.no_response)

	def bucket_of(self, identity: str) -> Optional[Classification]:
		for classification, members in self.buckets().items():
			if any(p.identity == identity for p in members):
				return classification
		return None


__all__ = [
	"Classification",
	"ChannelKind",
	"Participant",
	"Response",
	"SentMessage",
	"SentPrompt",
	"Cycle",
	"HistoryMessage",
	"TallyResult",
]
