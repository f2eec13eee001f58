"""Shared fakes for the roster and message transport.

Nothing here touches Discord or a real clock: every sent message gets a
timestamp one minute after the previous one.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from attendance.channels import PollChannel, ReactionChannel, TextChannel
from attendance.dispatcher import PromptDispatcher
from attendance.errors import HistoryFetchFailed, PollUnsupported, RosterUnavailable
from attendance.models import HistoryMessage, Participant, SentMessage
from attendance.store import CycleStore
from attendance.tally import TallyEngine

GROUP = "100"
BOT_ID = "999"
DAY = date(2026, 10, 19)
BASE_TIME = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


class FakeRoster:
	def __init__(self, rosters=None, self_identity=BOT_ID):
		self.rosters = rosters or {}
		self.self_identity = self_identity
		self.calls = 0

	async def get_participants(self, group_id):
		self.calls += 1
		if group_id not in self.rosters:
			raise RosterUnavailable(group_id, "Channel not found")
		return list(self.rosters[group_id])

	def get_self_identity(self):
		return self.self_identity


class FakeTransport:
	def __init__(self, *, polls=True, self_identity=BOT_ID):
		self.polls = polls
		self.self_identity = self_identity
		self.history: dict[str, list[HistoryMessage]] = {}
		self.sent: list[tuple[str, str, list[str]]] = []
		self.reactions_added: list[tuple[str, str, list[str]]] = []
		self.fail_send: set[str] = set()
		self.fail_history: set[str] = set()
		self._n = 0

	def _next(self):
		self._n += 1
		return str(self._n), BASE_TIME + timedelta(minutes=self._n)

	def mention(self, identity):
		return f"<@{identity}>"

	async def send_message(self, group_id, text, mentions=()):
		if group_id in self.fail_send:
			raise RuntimeError("socket closed")
		msg_id, ts = self._next()
		self.sent.append((group_id, text, list(mentions)))
		self.history.setdefault(group_id, []).append(
			HistoryMessage(id=msg_id, sender_id=self.self_identity, body=text, timestamp=ts, from_self=True, reactions={})
		)
		return SentMessage(id=msg_id, timestamp=ts)

	async def send_poll(self, group_id, question, options):
		if not self.polls:
			raise PollUnsupported(group_id, "polls disabled")
		msg_id, ts = self._next()
		self.sent.append((group_id, question, []))
		self.history.setdefault(group_id, []).append(
			HistoryMessage(
				id=msg_id,
				sender_id=self.self_identity,
				body=question,
				timestamp=ts,
				from_self=True,
				reactions={},
				poll_votes={o: [] for o in options},
			)
		)
		return SentMessage(id=msg_id, timestamp=ts)

	async def add_reactions(self, group_id, message_id, emojis):
		emojis = list(emojis)
		self.reactions_added.append((group_id, message_id, emojis))
		for emoji in emojis:
			self.react(group_id, message_id, emoji, self.self_identity)

	async def fetch_recent_messages(self, group_id, limit):
		if group_id in self.fail_history:
			raise HistoryFetchFailed(group_id, "gateway timeout")
		return list(self.history.get(group_id, []))[-limit:]

	# test helpers

	def message(self, group_id, message_id):
		return next(m for m in self.history[group_id] if m.id == message_id)

	def react(self, group_id, message_id, emoji, user):
		self.message(group_id, message_id).reactions.setdefault(emoji, []).append(user)

	def vote(self, group_id, message_id, option, user):
		self.message(group_id, message_id).poll_votes[option].append(user)

	def post(self, group_id, sender, body, timestamp=None, quoted=None):
		msg_id, ts = self._next()
		self.history.setdefault(group_id, []).append(
			HistoryMessage(
				id=msg_id,
				sender_id=sender,
				body=body,
				timestamp=timestamp or ts,
				quoted_message_id=quoted,
			)
		)
		return msg_id


def people(*names):
	return [Participant(identity=n, handle=f"user-{n}") for n in names]


@pytest.fixture
def roster():
	return FakeRoster({GROUP: people("A", "B", "C", BOT_ID)})


@pytest.fixture
def transport():
	return FakeTransport()


@pytest.fixture
def store():
	return CycleStore()


def make_engine(store, roster, transport, channel, limit=50):
	return TallyEngine(store, roster, transport, channel, history_limit=limit)


def make_dispatcher(roster, transport, channel, deadline="07:15"):
	return PromptDispatcher(roster, transport, channel, deadline=deadline, today=lambda: DAY)


@pytest.fixture
def poll_channel():
	return PollChannel(pause_seconds=0)


@pytest.fixture
def reaction_channel():
	return ReactionChannel()


@pytest.fixture
def text_channel():
	return TextChannel()
