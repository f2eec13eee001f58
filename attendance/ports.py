"""Shapes the roll-call core needs from the messaging platform."""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence

from .models import HistoryMessage, Participant, SentMessage


class RosterAccessor(Protocol):
	async def get_participants(self, group_id: str) -> list[Participant]:
		...

	def get_self_identity(self) -> str:
		...


class MessageTransport(Protocol):
	def mention(self, identity: str) -> str:
		"""Inline text that notifies ``identity`` when sent with it in ``mentions``."""
		...

	async def send_message(self, group_id: str, text: str, mentions: Sequence[str] = ()) -> SentMessage:
		...

	async def send_poll(self, group_id: str, question: str, options: Sequence[str]) -> SentMessage:
		"""Raise ``PollUnsupported`` when the platform cannot create the poll."""
		...

	async def add_reactions(self, group_id: str, message_id: str, emojis: Iterable[str]) -> None:
		...

	async def fetch_recent_messages(self, group_id: str, limit: int) -> list[HistoryMessage]:
		"""Return up to ``limit`` recent messages, oldest first."""
		...


__all__ = ["RosterAccessor", "MessageTransport"]
