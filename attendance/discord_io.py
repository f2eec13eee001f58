"""discord.py implementations of the roster and transport the core talks to."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable, Optional, Sequence

import discord
from discord.ext import commands

from .errors import DispatchFailed, HistoryFetchFailed, PollUnsupported, RosterUnavailable
from .models import HistoryMessage, Participant, SentMessage

logger = logging.getLogger(__name__)

POLL_DURATION = timedelta(hours=1)


async def get_text_channel(bot: commands.Bot, channel_id) -> Optional[discord.TextChannel]:
	try:
		cid = int(channel_id)
	except (TypeError, ValueError):
		return None
	ch = bot.get_channel(cid)
	if isinstance(ch, discord.TextChannel):
		return ch
	try:
		fetched = await bot.fetch_channel(cid)
		return fetched if isinstance(fetched, discord.TextChannel) else None
	except discord.HTTPException:
		logger.warning("Could not fetch channel %s", channel_id, exc_info=True)
		return None


class DiscordRoster:
	"""Members who can read the channel, optionally limited to one role."""

	def __init__(self, bot: commands.Bot, tracked_role_id: Optional[int] = None) -> None:
		self.bot = bot
		self.tracked_role_id = tracked_role_id

	def get_self_identity(self) -> str:
		return str(getattr(self.bot.user, "id", ""))

	async def get_participants(self, group_id: str) -> list[Participant]:
		channel = await get_text_channel(self.bot, group_id)
		if channel is None:
			raise RosterUnavailable(group_id, "Channel not found")

		members = [m for m in channel.members if not m.bot]
		if self.tracked_role_id:
			role = channel.guild.get_role(self.tracked_role_id)
			if role is None:
				raise RosterUnavailable(group_id, f"Tracked role {self.tracked_role_id} not found")
			members = [m for m in members if role in m.roles]

		members.sort(key=lambda m: (m.display_name or "").lower())
		return [Participant(identity=str(m.id), handle=m.display_name) for m in members]


class DiscordTransport:
	def __init__(self, bot: commands.Bot) -> None:
		self.bot = bot

	def mention(self, identity: str) -> str:
		return f"<@{identity}>"

	async def _channel(self, group_id: str, error: type) -> discord.TextChannel:
		channel = await get_text_channel(self.bot, group_id)
		if channel is None:
			raise error(group_id, "Channel not found")
		return channel

	async def send_message(self, group_id: str, text: str, mentions: Sequence[str] = ()) -> SentMessage:
		channel = await self._channel(group_id, DispatchFailed)
		allowed = discord.AllowedMentions(
			everyone=False,
			roles=False,
			users=[discord.Object(id=int(i)) for i in mentions],
		)
		try:
			msg = await channel.send(content=text, allowed_mentions=allowed)
		except discord.HTTPException as exc:
			raise DispatchFailed(group_id, f"Send failed: {exc}") from exc
		return SentMessage(id=str(msg.id), timestamp=msg.created_at)

	async def send_poll(self, group_id: str, question: str, options: Sequence[str]) -> SentMessage:
		channel = await self._channel(group_id, DispatchFailed)
		try:
			poll = discord.Poll(question=question, duration=POLL_DURATION, multiple=False)
			for option in options:
				poll.add_answer(text=option)
			msg = await channel.send(poll=poll)
		except (discord.HTTPException, TypeError, ValueError) as exc:
			raise PollUnsupported(group_id, f"Poll creation failed: {exc}") from exc
		return SentMessage(id=str(msg.id), timestamp=msg.created_at)

	async def add_reactions(self, group_id: str, message_id: str, emojis: Iterable[str]) -> None:
		channel = await self._channel(group_id, DispatchFailed)
		msg = channel.get_partial_message(int(message_id))
		for emoji in emojis:
			await msg.add_reaction(emoji)

	async def fetch_recent_messages(self, group_id: str, limit: int) -> list[HistoryMessage]:
		channel = await self._channel(group_id, HistoryFetchFailed)
		self_id = getattr(self.bot.user, "id", None)
		out: list[HistoryMessage] = []
		try:
			async for msg in channel.history(limit=limit):
				from_self = msg.author.id == self_id
				reactions = None
				poll_votes = None
				# Only our own prompts carry signals worth paging through.
				if from_self:
					reactions = {}
					for reaction in msg.reactions:
						reactions[str(reaction.emoji)] = [str(u.id) async for u in reaction.users()]
					if msg.poll is not None:
						poll_votes = {}
						for answer in msg.poll.answers:
							poll_votes[answer.text] = [str(u.id) async for u in answer.voters()]

				body = msg.content or ""
				if not body and msg.poll is not None:
					body = msg.poll.question or ""

				out.append(
					HistoryMessage(
						id=str(msg.id),
						sender_id=str(msg.author.id),
						body=body,
						timestamp=msg.created_at,
						from_self=from_self,
						reactions=reactions,
						poll_votes=poll_votes,
						quoted_message_id=(
							str(msg.reference.message_id) if msg.reference and msg.reference.message_id else None
						),
					)
				)
		except discord.HTTPException as exc:
			raise HistoryFetchFailed(group_id, f"History fetch failed: {exc}") from exc

		out.reverse()
		return out


__all__ = ["DiscordRoster", "DiscordTransport", "get_text_channel"]
