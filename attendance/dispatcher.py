"""Composes and sends the daily roll-call prompt."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional, Sequence

from .channels import ResponseChannel
from .errors import DispatchFailed, RollCallError, RosterUnavailable
from .models import Participant, SentPrompt
from .ports import MessageTransport, RosterAccessor
from .report import SEPARATOR, format_date, prompt_marker, weekday_name

logger = logging.getLogger(__name__)


def eligible_participants(participants: Sequence[Participant], self_identity: str) -> list[Participant]:
	"""Drop the bot itself and duplicate identities, keeping roster order."""
	seen: set[str] = set()
	out: list[Participant] = []
	for p in participants:
		if p.identity == self_identity or p.identity in seen:
			continue
		seen.add(p.identity)
		out.append(p)
	return out


class PromptDispatcher:
	def __init__(
		self,
		roster: RosterAccessor,
		transport: MessageTransport,
		channel: ResponseChannel,
		*,
		deadline: Optional[str] = None,
		today: Optional[Callable[[], date]] = None,
	) -> None:
		self.roster = roster
		self.transport = transport
		self.channel = channel
		self.deadline = deadline
		self._today = today or date.today

	def compose(self, participants: Sequence[Participant], day: date) -> tuple[str, list[str]]:
		mentions = [p.identity for p in participants]
		mention_text = " ".join(self.transport.mention(p.identity) for p in participants)
		text = (
			f"📋 **{prompt_marker(day)}** 📋\n\n"
			f"📅 **{weekday_name(day)}** - {format_date(day)}\n\n"
			f"{self.channel.instructions(self.deadline)}\n\n"
			f"{SEPARATOR}\n"
			"👥 **Atenção todos:**\n"
			f"{mention_text}"
		)
		return text, mentions

	async def dispatch(self, group_id: str) -> SentPrompt:
		try:
			participants = await self.roster.get_participants(group_id)
		except RollCallError:
			raise
		except Exception as exc:
			raise RosterUnavailable(group_id, f"Roster fetch failed: {exc}") from exc

		participants = eligible_participants(participants, self.roster.get_self_identity())
		if not participants:
			raise RosterUnavailable(group_id, "Roster is empty")

		day = self._today()
		header, mentions = self.compose(participants, day)
		try:
			sent, kind, marker = await self.channel.send_prompt(self.transport, group_id, header, mentions, day)
		except RollCallError:
			raise
		except Exception as exc:
			raise DispatchFailed(group_id, f"Prompt send failed: {exc}") from exc

		logger.info("Roll call prompt %s sent to group %s (%d participants)", sent.id, group_id, len(participants))
		return SentPrompt(
			correlation_id=sent.id,
			channel_kind=kind,
			sent_at=sent.timestamp or datetime.now(timezone.utc),
			marker=marker,
			day=day,
		)


__all__ = ["PromptDispatcher", "eligible_participants"]
