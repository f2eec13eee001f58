import logging
from datetime import datetime, timezone
from typing import Optional

import discord
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from discord.ext import commands

from attendance.channels import build_channel, classify_emoji, classify_option, is_presence_reply
from attendance.config import Settings, load_settings
from attendance.discord_io import DiscordRoster, DiscordTransport
from attendance.dispatcher import PromptDispatcher
from attendance.models import ChannelKind, Classification
from attendance.scheduler import CycleScheduler, build_scheduler
from attendance.store import CycleStore
from attendance.tally import TallyEngine

logger = logging.getLogger(__name__)


class RollCallCog(commands.Cog):
	"""Daily roll call: prompt at the configured time, result 15 minutes later."""

	def __init__(self, bot: commands.Bot, settings: Settings):
		self.bot = bot
		self.settings = settings
		self.store = CycleStore()

		roster = DiscordRoster(bot, tracked_role_id=settings.tracked_role_id)
		transport = DiscordTransport(bot)
		channel = build_channel(settings.response_channel)
		tz = settings.tzinfo()

		self.dispatcher = PromptDispatcher(
			roster,
			transport,
			channel,
			deadline=settings.deadline_label(),
			today=lambda: datetime.now(tz).date(),
		)
		self.engine = TallyEngine(self.store, roster, transport, channel, history_limit=settings.history_limit)
		self.cycles = CycleScheduler(settings, self.store, self.dispatcher, self.engine)
		self._scheduler: Optional[AsyncIOScheduler] = None

		self._start_scheduler()

	def _start_scheduler(self) -> None:
		self._scheduler = build_scheduler(self.settings, self.cycles)
		self._scheduler.start()
		targets = self.cycles.target_groups()
		if not targets:
			logger.warning("RollCall: no ROLLCALL_CHANNEL_ID or ALLOWED_CHANNEL_IDS configured; scheduled runs will do nothing")
		else:
			logger.info("RollCall: target channels %s", ", ".join(targets))

	def cog_unload(self):
		if self._scheduler:
			try:
				self._scheduler.shutdown(wait=False)
			except Exception:
				logger.warning("RollCall: scheduler shutdown failed", exc_info=True)

	# -----------------
	# Commands
	# -----------------
	def _is_target(self, ctx: commands.Context) -> bool:
		if self.cycles.is_target(ctx.channel.id):
			return True
		logger.info("RollCall: blocked %s in unconfigured channel %s", ctx.command, ctx.channel.id)
		return False

	@commands.command(name="tiragem", help="Envia a tiragem de falta agora")
	async def tiragem(self, ctx: commands.Context):
		if not self._is_target(ctx):
			return
		await ctx.reply("📊 Enviando tiragem de falta...")
		cycle = await self.cycles.prompt_group(str(ctx.channel.id))
		if cycle is None:
			await ctx.reply("❌ Ocorreu um erro ao enviar a tiragem. Tente novamente.")
			return
		logger.info("RollCall: manual prompt sent in %s by %s", ctx.channel.id, ctx.author.id)

	@commands.command(name="resultado", help="Mostra o resultado da tiragem atual")
	async def resultado(self, ctx: commands.Context):
		if not self._is_target(ctx):
			return
		group_id = str(ctx.channel.id)
		if self.store.get_cycle(group_id) is None:
			await ctx.reply("⚠️ Nenhuma tiragem de falta ativa neste canal. Use `tiragem` primeiro.")
			return
		await ctx.reply("📋 Gerando resultado da tiragem...")
		result = await self.cycles.report_group(group_id)
		if result is None:
			await ctx.reply("❌ Ocorreu um erro ao gerar o resultado. Tente novamente.")

	# -----------------
	# Events
	# -----------------
	@commands.Cog.listener()
	async def on_message(self, message: discord.Message):
		if message.author.bot or message.guild is None:
			return
		group_id = str(message.channel.id)
		cycle = self.store.get_cycle(group_id)
		if not cycle or cycle.channel_kind is not ChannelKind.TEXT:
			return
		quoted = message.reference.message_id if message.reference else None
		if is_presence_reply(message.content) or str(quoted) == cycle.correlation_id:
			self.store.record_response(group_id, str(message.author.id), Classification.PRESENT, message.created_at)

	def _reaction_signal(self, payload: discord.RawReactionActionEvent):
		if payload.user_id == getattr(self.bot.user, "id", None):
			return None
		group_id = str(payload.channel_id)
		cycle = self.store.get_cycle(group_id)
		if not cycle or str(payload.message_id) != cycle.correlation_id:
			return None
		classification = classify_emoji(str(payload.emoji))
		if classification is None:
			return None
		return group_id, str(payload.user_id), classification

	def _vote_signal(self, user, answer):
		message = getattr(answer.poll, "message", None)
		if message is None or getattr(user, "bot", False):
			return None
		group_id = str(message.channel.id)
		cycle = self.store.get_cycle(group_id)
		if not cycle or str(message.id) != cycle.correlation_id:
			return None
		classification = classify_option(answer.text)
		if classification is None:
			return None
		return group_id, str(user.id), classification

	@commands.Cog.listener()
	async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
		signal = self._reaction_signal(payload)
		if signal:
			self.store.record_response(*signal, datetime.now(timezone.utc))

	@commands.Cog.listener()
	async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent):
		signal = self._reaction_signal(payload)
		if signal:
			self.store.retract_response(*signal)

	@commands.Cog.listener()
	async def on_poll_vote_add(self, user, answer):
		signal = self._vote_signal(user, answer)
		if signal:
			self.store.record_response(*signal, datetime.now(timezone.utc))

	@commands.Cog.listener()
	async def on_poll_vote_remove(self, user, answer):
		signal = self._vote_signal(user, answer)
		if signal:
			self.store.retract_response(*signal)


async def setup(bot: commands.Bot):
	settings = getattr(bot, "settings", None) or load_settings()
	await bot.add_cog(RollCallCog(bot, settings))
	logger.info("RollCallCog loaded")
