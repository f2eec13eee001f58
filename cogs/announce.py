import logging
from datetime import datetime

from discord.ext import commands

from attendance.config import Settings, load_settings
from attendance.discord_io import DiscordRoster, DiscordTransport
from attendance.dispatcher import eligible_participants
from attendance.errors import RollCallError
from attendance.report import SEPARATOR, format_announcement, format_date

logger = logging.getLogger(__name__)

# Always allowed, so the channel id can be looked up before it is configured.
OPEN_COMMANDS = {"grupoid"}


class AnnounceCog(commands.Cog):
	def __init__(self, bot: commands.Bot, settings: Settings):
		self.bot = bot
		self.settings = settings
		self.roster = DiscordRoster(bot)
		self.transport = DiscordTransport(bot)

	async def cog_check(self, ctx: commands.Context) -> bool:
		if ctx.command and ctx.command.name in OPEN_COMMANDS:
			return True
		if self.settings.is_owner(ctx.author.id):
			return True
		if ctx.guild is None:
			await ctx.reply("❌ Este comando só funciona em grupos!")
			return False
		if not self.settings.is_authorized_group(ctx.channel.id):
			# Silent, so random channels are not flooded.
			logger.info("Announce: blocked %s in unauthorized channel %s", ctx.command, ctx.channel.id)
			return False
		return True

	@commands.command(name="aviso", help="Envia um aviso marcando todos do canal")
	async def aviso(self, ctx: commands.Context, *, mensagem: str = ""):
		prefix = self.settings.command_prefix
		if not mensagem.strip():
			await ctx.reply(
				"❌ **Uso incorreto!**\n\n"
				"📝 **Como usar:**\n"
				f"`{prefix}aviso [sua mensagem]`\n\n"
				"📌 **Exemplo:**\n"
				f"`{prefix}aviso Reunião amanhã às 14h!`"
			)
			return

		group_id = str(ctx.channel.id)
		try:
			participants = eligible_participants(
				await self.roster.get_participants(group_id),
				self.roster.get_self_identity(),
			)
			mention_text = " ".join(self.transport.mention(p.identity) for p in participants)
			await self.transport.send_message(
				group_id,
				format_announcement(mensagem.strip(), mention_text),
				[p.identity for p in participants],
			)
			logger.info("Announce: sent in %s (%d mentions)", group_id, len(participants))
		except RollCallError:
			logger.exception("Announce: failed in %s", group_id)
			await ctx.reply("❌ Ocorreu um erro ao enviar o aviso. Tente novamente.")

	@commands.command(name="grupoid", help="Mostra o ID do canal atual")
	async def grupoid(self, ctx: commands.Context):
		name = getattr(ctx.channel, "name", None) or "mensagem direta"
		await ctx.reply(
			"📋 **Informações do Canal**\n\n"
			f"📛 **Nome:** {name}\n"
			f"🆔 **ID:** `{ctx.channel.id}`\n\n"
			"💡 **Dica:** Copie este ID para `ALLOWED_CHANNEL_IDS` ou `ROLLCALL_CHANNEL_ID` no arquivo `.env`."
		)

	@commands.command(name="ajuda", aliases=["help", "comandos"], help="Mostra os comandos disponíveis")
	async def ajuda(self, ctx: commands.Context):
		await ctx.reply(self.help_text())

	def help_text(self) -> str:
		p = self.settings.command_prefix
		result_hour, result_minute, _ = self.settings.result_time()
		return (
			"🤖 **BOT DE AVISOS - COMANDOS** 🤖\n\n"
			f"{SEPARATOR}\n\n"
			f"📢 **{p}aviso [mensagem]**\n"
			"   Envia um aviso marcando todos do canal\n\n"
			f"📊 **{p}tiragem**\n"
			"   Envia a tiragem de falta manualmente\n\n"
			f"📋 **{p}resultado**\n"
			"   Mostra o resultado da tiragem atual\n\n"
			f"🆔 **{p}grupoid**\n"
			"   Mostra o ID do canal atual\n\n"
			f"❓ **{p}help**\n"
			"   Mostra esta mensagem de ajuda\n\n"
			f"🧪 **{p}teste**\n"
			"   Testa se o bot está funcionando\n\n"
			f"{SEPARATOR}\n\n"
			"⏰ **Tiragem de Falta Automática** (segunda a sexta)\n"
			f"   • {self.settings.prompt_hour:02d}:{self.settings.prompt_minute:02d} - Envia a tiragem de falta\n"
			f"   • {result_hour:02d}:{result_minute:02d} - Envia o resultado automático"
		)

	@commands.command(name="teste", help="Testa se o bot está funcionando")
	async def teste(self, ctx: commands.Context):
		now = datetime.now(self.settings.tzinfo())
		await ctx.reply(
			"✅ **Bot está funcionando!**\n\n"
			"🟢 Status: Online\n"
			f"⏰ Horário atual: {now.strftime('%H:%M:%S')}\n"
			f"📅 Data: {format_date(now.date())}"
		)


async def setup(bot: commands.Bot):
	settings = getattr(bot, "settings", None) or load_settings()
	await bot.add_cog(AnnounceCog(bot, settings))
	logger.info("AnnounceCog loaded")
