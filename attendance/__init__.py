"""Daily roll call ("tiragem de falta") for group chats."""

from .channels import PollChannel, ReactionChannel, ResponseChannel, TextChannel, build_channel
from .config import Settings, load_settings
from .dispatcher import PromptDispatcher
from .errors import (
	DispatchFailed,
	HistoryFetchFailed,
	NoCycleError,
	PollUnsupported,
	RollCallError,
	RosterUnavailable,
)
from .models import ChannelKind, Classification, Cycle, Participant, TallyResult
from .scheduler import CycleScheduler, build_scheduler
from .store import CycleStore
from .tally import TallyEngine

__all__ = [
	"ChannelKind",
	"Classification",
	"Cycle",
	"CycleScheduler",
	"CycleStore",
	"DispatchFailed",
	"HistoryFetchFailed",
	"NoCycleError",
	"Participant",
	"PollChannel",
	"PollUnsupported",
	"PromptDispatcher",
	"ReactionChannel",
	"ResponseChannel",
	"RollCallError",
	"RosterUnavailable",
	"Settings",
	"TallyEngine",
	"TallyResult",
	"TextChannel",
	"build_channel",
	"build_scheduler",
	"load_settings",
]
