import asyncio
import logging

import discord
from discord.ext import commands

from attendance.config import load_settings

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("rollcall_bot")

EXTENSIONS = ("cogs.rollcall", "cogs.announce")


def create_bot(settings) -> commands.Bot:
    # Intents setup
    intents = discord.Intents.default()
    intents.members = True          # channel rosters
    intents.message_content = True  # prefix commands and free-text replies
    intents.polls = True

    # help is provided by the announce cog
    bot = commands.Bot(command_prefix=settings.command_prefix, intents=intents, help_command=None)
    bot.settings = settings

    @bot.event
    async def on_ready():
        logger.info(f"Logged in as {bot.user} (ID: {bot.user.id})")
        logger.info("------")

    @bot.event
    async def on_command_error(ctx, error):
        if isinstance(error, (commands.CommandNotFound, commands.CheckFailure)):
            return  # unknown commands and blocked channels stay silent
        logger.error("Command %s failed", ctx.command, exc_info=error)

    return bot


async def main():
    settings = load_settings()
    if not settings.token:
        raise RuntimeError("DISCORD_BOT_TOKEN is not set in your environment or .env file!")

    bot = create_bot(settings)
    async with bot:
        for extension in EXTENSIONS:
            await bot.load_extension(extension)
        await bot.start(settings.token)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("Bot shut down manually.")
