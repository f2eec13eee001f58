"""Light checks of the cogs' gating and listeners, using stand-in Discord objects."""

from datetime import timedelta
from types import SimpleNamespace

import pytest
import pytest_asyncio

from attendance.channels import ReactionChannel
from attendance.config import Settings
from attendance.models import ChannelKind, Classification
from attendance.scheduler import CycleScheduler
from attendance.store import CycleStore
from cogs.announce import AnnounceCog
from cogs.rollcall import RollCallCog
from conftest import BASE_TIME, BOT_ID, GROUP, FakeRoster, FakeTransport, make_dispatcher, make_engine, people


def fake_bot():
	return SimpleNamespace(user=SimpleNamespace(id=int(BOT_ID)))


class FakeContext:
	def __init__(self, command="aviso", author=1, channel=GROUP, guild=True):
		self.command = SimpleNamespace(name=command)
		self.author = SimpleNamespace(id=author)
		self.channel = SimpleNamespace(id=int(channel))
		self.guild = object() if guild else None
		self.replies = []

	async def reply(self, text):
		self.replies.append(text)


class TestAnnounceGate:
	@pytest.mark.asyncio
	async def test_owner_bypasses_everything(self):
		cog = AnnounceCog(fake_bot(), Settings(owner_ids={"1"}, allowed_group_ids=["555"]))
		assert await cog.cog_check(FakeContext(guild=False))

	@pytest.mark.asyncio
	async def test_direct_message_is_refused(self):
		cog = AnnounceCog(fake_bot(), Settings())
		ctx = FakeContext(guild=False)
		assert not await cog.cog_check(ctx)
		assert "só funciona em grupos" in ctx.replies[0]

	@pytest.mark.asyncio
	async def test_unlisted_channel_is_silent(self):
		cog = AnnounceCog(fake_bot(), Settings(allowed_group_ids=["555"]))
		ctx = FakeContext()
		assert not await cog.cog_check(ctx)
		assert ctx.replies == []

	@pytest.mark.asyncio
	async def test_channel_id_lookup_always_allowed(self):
		cog = AnnounceCog(fake_bot(), Settings(allowed_group_ids=["555"]))
		assert await cog.cog_check(FakeContext(command="grupoid", guild=False))

	def test_help_lists_schedule(self):
		cog = AnnounceCog(fake_bot(), Settings(prompt_hour=8, prompt_minute=0, command_prefix="?"))
		text = cog.help_text()
		assert "?tiragem" in text
		assert "08:00 - Envia a tiragem" in text
		assert "08:15 - Envia o resultado" in text


@pytest_asyncio.fixture
async def rollcall():
	cog = RollCallCog(fake_bot(), Settings(target_group_id=GROUP, response_channel=ChannelKind.REACTION))
	yield cog
	cog.cog_unload()


def reaction(emoji, user="1", message="42"):
	return SimpleNamespace(user_id=int(user), channel_id=int(GROUP), message_id=int(message), emoji=emoji)


class TestRollCallListeners:
	@pytest.mark.asyncio
	async def test_reaction_on_prompt_is_recorded(self, rollcall):
		rollcall.store.start_cycle(GROUP, "42", ChannelKind.REACTION, BASE_TIME - timedelta(days=1))
		await rollcall.on_raw_reaction_add(reaction("🏥"))
		assert rollcall.store.responses_for(GROUP) == {"1": Classification.EXCUSED}

	@pytest.mark.asyncio
	async def test_other_messages_and_bot_reactions_ignored(self, rollcall):
		rollcall.store.start_cycle(GROUP, "42", ChannelKind.REACTION, BASE_TIME - timedelta(days=1))
		await rollcall.on_raw_reaction_add(reaction("✅", message="7"))
		await rollcall.on_raw_reaction_add(reaction("✅", user=BOT_ID))
		await rollcall.on_raw_reaction_add(reaction("👍"))
		assert rollcall.store.responses_for(GROUP) == {}

	@pytest.mark.asyncio
	async def test_text_reply_recorded_for_text_cycles(self, rollcall):
		rollcall.store.start_cycle(GROUP, "42", ChannelKind.TEXT, BASE_TIME)
		message = SimpleNamespace(
			author=SimpleNamespace(id=3, bot=False),
			guild=object(),
			channel=SimpleNamespace(id=int(GROUP)),
			content="Presente",
			reference=None,
			created_at=BASE_TIME + timedelta(minutes=2),
		)
		await rollcall.on_message(message)
		assert rollcall.store.responses_for(GROUP) == {"3": Classification.PRESENT}

	@pytest.mark.asyncio
	async def test_channel_gate(self, rollcall):
		assert rollcall._is_target(FakeContext(command="tiragem"))
		assert not rollcall._is_target(FakeContext(command="tiragem", channel="555"))

	@pytest.mark.asyncio
	async def test_removed_reaction_is_retracted(self, rollcall):
		rollcall.store.start_cycle(GROUP, "42", ChannelKind.REACTION, BASE_TIME - timedelta(days=1))
		await rollcall.on_raw_reaction_add(reaction("✅"))
		await rollcall.on_raw_reaction_remove(reaction("✅"))
		assert rollcall.store.responses_for(GROUP) == {}


def vote(text, user=5, message=42, bot=False):
	answer = SimpleNamespace(
		text=text,
		poll=SimpleNamespace(message=SimpleNamespace(id=message, channel=SimpleNamespace(id=int(GROUP)))),
	)
	return SimpleNamespace(id=user, bot=bot), answer


class TestPollVoteListeners:
	@pytest.mark.asyncio
	async def test_vote_is_recorded(self, rollcall):
		rollcall.store.start_cycle(GROUP, "42", ChannelKind.POLL, BASE_TIME - timedelta(days=1))
		await rollcall.on_poll_vote_add(*vote("❌ Ausente"))
		assert rollcall.store.responses_for(GROUP) == {"5": Classification.ABSENT}

	@pytest.mark.asyncio
	async def test_vote_removal_is_retracted(self, rollcall):
		rollcall.store.start_cycle(GROUP, "42", ChannelKind.POLL, BASE_TIME - timedelta(days=1))
		await rollcall.on_poll_vote_add(*vote("✅ Presente"))
		await rollcall.on_poll_vote_remove(*vote("✅ Presente"))
		assert rollcall.store.responses_for(GROUP) == {}

	@pytest.mark.asyncio
	async def test_votes_elsewhere_or_by_bots_ignored(self, rollcall):
		rollcall.store.start_cycle(GROUP, "42", ChannelKind.POLL, BASE_TIME - timedelta(days=1))
		await rollcall.on_poll_vote_add(*vote("✅ Presente", message=7))
		await rollcall.on_poll_vote_add(*vote("✅ Presente", bot=True))
		assert rollcall.store.responses_for(GROUP) == {}


def use_fakes(cog, transport):
	roster = FakeRoster({GROUP: people("A", "B")})
	channel = ReactionChannel()
	store = CycleStore()
	cog.store = store
	cog.cycles = CycleScheduler(
		cog.settings,
		store,
		make_dispatcher(roster, transport, channel),
		make_engine(store, roster, transport, channel),
	)


class TestRollCallCommands:
	@pytest.mark.asyncio
	async def test_manual_prompt_starts_cycle(self, rollcall):
		transport = FakeTransport()
		use_fakes(rollcall, transport)
		ctx = FakeContext(command="tiragem")

		await rollcall.tiragem.callback(rollcall, ctx)

		assert rollcall.store.get_cycle(GROUP) is not None
		assert ctx.replies == ["📊 Enviando tiragem de falta..."]
		assert "Tiragem de Falta" in transport.sent[0][1]

	@pytest.mark.asyncio
	async def test_manual_prompt_outside_target_is_ignored(self, rollcall):
		transport = FakeTransport()
		use_fakes(rollcall, transport)
		ctx = FakeContext(command="tiragem", channel="555")

		await rollcall.tiragem.callback(rollcall, ctx)

		assert ctx.replies == []
		assert transport.sent == []

	@pytest.mark.asyncio
	async def test_result_without_cycle(self, rollcall):
		use_fakes(rollcall, FakeTransport())
		ctx = FakeContext(command="resultado")

		await rollcall.resultado.callback(rollcall, ctx)

		assert len(ctx.replies) == 1
		assert "Nenhuma tiragem de falta ativa" in ctx.replies[0]

	@pytest.mark.asyncio
	async def test_result_publishes_report(self, rollcall):
		transport = FakeTransport()
		use_fakes(rollcall, transport)
		await rollcall.cycles.prompt_group(GROUP)
		ctx = FakeContext(command="resultado")

		await rollcall.resultado.callback(rollcall, ctx)

		assert ctx.replies == ["📋 Gerando resultado da tiragem..."]
		assert "RESULTADO DA TIRAGEM DE FALTA" in transport.sent[-1][1]

	@pytest.mark.asyncio
	async def test_result_send_failure_replies_with_error(self, rollcall):
		transport = FakeTransport()
		use_fakes(rollcall, transport)
		await rollcall.cycles.prompt_group(GROUP)
		transport.fail_send.add(GROUP)
		ctx = FakeContext(command="resultado")

		await rollcall.resultado.callback(rollcall, ctx)

		assert "Ocorreu um erro ao gerar o resultado" in ctx.replies[-1]
