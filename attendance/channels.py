"""Response channels: how participants answer a roll call and how answers are read back.

The channel is chosen once, from configuration. Each variant knows how to send
its prompt and how to rebuild everyone's answers from recent message history
at tally time. Participants no channel signal covers get the channel's
``unanswered`` classification.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Iterable, Optional, Sequence

from .errors import PollUnsupported
from .models import ChannelKind, Classification, Cycle, HistoryMessage, SentMessage
from .ports import MessageTransport
from .report import prompt_marker

logger = logging.getLogger(__name__)

POLL_OPTIONS = ["✅ Presente", "❌ Ausente", "🏥 Atestado/Justificativa"]

# Checked in order, case-insensitive substring match on the option text.
OPTION_KEYWORDS: list[tuple[str, Classification]] = [
	("presente", Classification.PRESENT),
	("ausente", Classification.ABSENT),
	("atestado", Classification.EXCUSED),
	("justificativa", Classification.EXCUSED),
]

REACTION_EMOJIS: dict[str, Classification] = {
	"✅": Classification.PRESENT,
	"❌": Classification.ABSENT,
	"🏥": Classification.EXCUSED,
}

TEXT_KEYWORDS = frozenset({"1", "presente", "present"})

# A participant with several signals lands in the first matching bucket.
PRECEDENCE = (Classification.PRESENT, Classification.EXCUSED, Classification.ABSENT)

# Gap between the mention header and the poll so they arrive in order.
POLL_PAUSE_SECONDS = 1.5


def classify_option(text: str) -> Optional[Classification]:
	lowered = (text or "").lower()
	for keyword, classification in OPTION_KEYWORDS:
		if keyword in lowered:
			return classification
	return None


def classify_emoji(emoji: str) -> Optional[Classification]:
	return REACTION_EMOJIS.get(str(emoji))


def is_presence_reply(body: str) -> bool:
	return (body or "").strip().casefold() in TEXT_KEYWORDS


def locate_prompt(messages: Sequence[HistoryMessage], cycle: Cycle) -> Optional[HistoryMessage]:
	"""Find the cycle's prompt within the fetched window.

	The correlation id is tried first. Failing that, the newest bot-authored
	message carrying the cycle marker is used.
	"""
	for msg in messages:
		if msg.id == cycle.correlation_id:
			return msg
	if not cycle.marker:
		return None
	for msg in reversed(messages):
		if msg.from_self and cycle.marker in (msg.body or ""):
			logger.info("Prompt %s not in window; matched %s by marker", cycle.correlation_id, msg.id)
			return msg
	return None


def _resolve(signals: dict[Classification, Iterable[str]]) -> dict[str, Classification]:
	out: dict[str, Classification] = {}
	for classification in PRECEDENCE:
		for identity in signals.get(classification, ()):
			out.setdefault(str(identity), classification)
	return out


def reaction_instructions() -> str:
	return (
		"Reaja a esta mensagem:\n\n"
		+ "\n".join(f"{emoji} = {option.split(' ', 1)[1]}" for emoji, option in zip(REACTION_EMOJIS, POLL_OPTIONS))
	)


class ResponseChannel:
	kind: ChannelKind
	unanswered: Classification = Classification.NO_RESPONSE
	# Whether listener-recorded responses may fill gaps left by the history scan.
	uses_recorded: bool = False

	def instructions(self, deadline: Optional[str] = None) -> str:
		raise NotImplementedError

	async def send_prompt(
		self,
		transport: MessageTransport,
		group_id: str,
		header: str,
		mentions: Sequence[str],
		day: date,
	) -> tuple[SentMessage, ChannelKind, str]:
		sent = await transport.send_message(group_id, header, mentions)
		return sent, self.kind, prompt_marker(day)

	async def collect_responses(
		self,
		transport: MessageTransport,
		cycle: Cycle,
		limit: int,
	) -> dict[str, Classification]:
		raise NotImplementedError


class PollChannel(ResponseChannel):
	kind = ChannelKind.POLL
	unanswered = Classification.NO_RESPONSE

	def __init__(self, pause_seconds: float = POLL_PAUSE_SECONDS) -> None:
		self.pause_seconds = pause_seconds

	def instructions(self, deadline: Optional[str] = None) -> str:
		text = "👇 Responda a enquete abaixo:"
		if deadline:
			text += f"\n⏰ Você tem até {deadline} para votar!"
		return text

	async def send_prompt(self, transport, group_id, header, mentions, day):
		await transport.send_message(group_id, header, mentions)
		if self.pause_seconds:
			await asyncio.sleep(self.pause_seconds)

		question = f"📊 {prompt_marker(day)}"
		try:
			sent = await transport.send_poll(group_id, question, POLL_OPTIONS)
			return sent, ChannelKind.POLL, prompt_marker(day)
		except PollUnsupported:
			logger.warning("Polls unsupported in group %s; sending reaction prompt instead", group_id)

		fallback = f"📊 **{prompt_marker(day)}**\n\n{reaction_instructions()}"
		sent = await transport.send_message(group_id, fallback)
		await _seed_reactions(transport, group_id, sent)
		return sent, ChannelKind.REACTION, prompt_marker(day)

	async def collect_responses(self, transport, cycle, limit):
		messages = await transport.fetch_recent_messages(cycle.group_id, limit)
		prompt = locate_prompt(messages, cycle)
		if prompt is None or prompt.poll_votes is None:
			logger.warning("Poll %s not found in the last %d messages of group %s", cycle.correlation_id, limit, cycle.group_id)
			return {}

		signals: dict[Classification, list[str]] = {}
		for option, voters in prompt.poll_votes.items():
			classification = classify_option(option)
			if classification is None:
				continue
			signals.setdefault(classification, []).extend(voters)
		return _resolve(signals)


class ReactionChannel(ResponseChannel):
	kind = ChannelKind.REACTION
	unanswered = Classification.NO_RESPONSE

	def instructions(self, deadline: Optional[str] = None) -> str:
		text = reaction_instructions()
		if deadline:
			text += f"\n\n⏰ Você tem até {deadline} para reagir!"
		return text

	async def send_prompt(self, transport, group_id, header, mentions, day):
		sent, kind, marker = await super().send_prompt(transport, group_id, header, mentions, day)
		await _seed_reactions(transport, group_id, sent)
		return sent, kind, marker

	async def collect_responses(self, transport, cycle, limit):
		messages = await transport.fetch_recent_messages(cycle.group_id, limit)
		prompt = locate_prompt(messages, cycle)
		if prompt is None:
			logger.warning("Prompt %s not found in the last %d messages of group %s", cycle.correlation_id, limit, cycle.group_id)
			return {}

		signals: dict[Classification, list[str]] = {}
		for emoji, senders in (prompt.reactions or {}).items():
			classification = classify_emoji(emoji)
			if classification is None:
				continue
			signals.setdefault(classification, []).extend(senders)
		return _resolve(signals)


class TextChannel(ResponseChannel):
	kind = ChannelKind.TEXT
	unanswered = Classification.ABSENT
	uses_recorded = True

	def instructions(self, deadline: Optional[str] = None) -> str:
		text = "✍️ Responda com *1* ou *presente* (ou responda esta mensagem) para marcar presença."
		if deadline:
			text += f"\n⏰ Você tem até {deadline} para responder!"
		return text

	async def collect_responses(self, transport, cycle, limit):
		messages = await transport.fetch_recent_messages(cycle.group_id, limit)
		prompt = locate_prompt(messages, cycle)
		prompt_ids = {cycle.correlation_id}
		if prompt is not None:
			prompt_ids.add(prompt.id)

		present: list[str] = []
		for msg in messages:
			if msg.from_self or msg.timestamp <= cycle.created_at:
				continue
			if is_presence_reply(msg.body) or msg.quoted_message_id in prompt_ids:
				present.append(msg.sender_id)
		return _resolve({Classification.PRESENT: present})


async def _seed_reactions(transport: MessageTransport, group_id: str, sent: SentMessage) -> None:
	try:
		await transport.add_reactions(group_id, sent.id, REACTION_EMOJIS.keys())
	except Exception:
		logger.warning("Failed to add reactions to prompt %s in group %s", sent.id, group_id, exc_info=True)


def build_channel(kind: ChannelKind) -> ResponseChannel:
	if kind is ChannelKind.POLL:
		return PollChannel()
	if kind is ChannelKind.REACTION:
		return ReactionChannel()
	if kind is ChannelKind.TEXT:
		return TextChannel()
	raise ValueError(f"Unsupported response channel: {kind!r}")


__all__ = [
	"POLL_OPTIONS",
	"REACTION_EMOJIS",
	"TEXT_KEYWORDS",
	"ResponseChannel",
	"PollChannel",
	"ReactionChannel",
	"TextChannel",
	"build_channel",
	"classify_option",
	"classify_emoji",
	"is_presence_reply",
	"locate_prompt",
	"reaction_instructions",
]
