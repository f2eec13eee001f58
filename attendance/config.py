"""Runtime configuration for the roll-call bot."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

import pytz
from dotenv import load_dotenv

from .models import ChannelKind

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "America/Sao_Paulo"
RESULT_OFFSET_MINUTES = 15
# Mon-Fri, cron style
SCHEDULE_DAYS = "mon-fri"
DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 100


@dataclass
class Settings:
	prompt_hour: int = 7
	prompt_minute: int = 0
	result_hour: Optional[int] = None
	result_minute: Optional[int] = None
	timezone: str = DEFAULT_TIMEZONE
	target_group_id: Optional[str] = None
	allowed_group_ids: list[str] = field(default_factory=list)
	response_channel: ChannelKind = ChannelKind.POLL
	history_limit: int = DEFAULT_HISTORY_LIMIT
	tracked_role_id: Optional[int] = None
	command_prefix: str = "!"
	owner_ids: set[str] = field(default_factory=set)
	token: Optional[str] = None

	def __post_init__(self) -> None:
		_check_time("prompt", self.prompt_hour, self.prompt_minute)
		if (self.result_hour is None) != (self.result_minute is None):
			raise ValueError("ROLLCALL_RESULT_HOUR and ROLLCALL_RESULT_MINUTE must be set together")
		if self.result_hour is not None:
			_check_time("result", self.result_hour, self.result_minute)
		self.history_limit = max(1, min(int(self.history_limit), MAX_HISTORY_LIMIT))

	def tzinfo(self):
		try:
			return pytz.timezone(self.timezone)
		except pytz.UnknownTimeZoneError:
			logger.warning("Invalid ROLLCALL_TIMEZONE %r; falling back to UTC", self.timezone)
			return pytz.UTC

	def result_time(self) -> tuple[int, int, int]:
		"""Return ``(hour, minute, day_shift)`` for the result phase."""
		if self.result_hour is not None and self.result_minute is not None:
			return self.result_hour, self.result_minute, 0
		# scheduler imports this module
		from .scheduler import derive_result_time

		return derive_result_time(self.prompt_hour, self.prompt_minute, RESULT_OFFSET_MINUTES)

	def deadline_label(self) -> str:
		hour, minute, _ = self.result_time()
		return f"{hour:02d}:{minute:02d}"

	def is_owner(self, user_id) -> bool:
		return str(user_id) in self.owner_ids

	def is_authorized_group(self, group_id) -> bool:
		# An empty allow-list leaves manual commands open everywhere.
		if not self.allowed_group_ids:
			return True
		return str(group_id) in self.allowed_group_ids


def _check_time(label: str, hour: int, minute: Optional[int]) -> None:
	if not 0 <= int(hour) <= 23:
		raise ValueError(f"{label} hour out of range: {hour}")
	if minute is None or not 0 <= int(minute) <= 59:
		raise ValueError(f"{label} minute out of range: {minute}")


def _int_env(key: str, default: Optional[int] = None) -> Optional[int]:
	raw = os.getenv(key)
	if raw is None or raw.strip() == "":
		return default
	try:
		return int(raw.strip())
	except ValueError:
		raise ValueError(f"{key} must be an integer, got {raw!r}") from None


def _list_env(key: str) -> list[str]:
	raw = os.getenv(key) or ""
	out: list[str] = []
	for part in raw.split(","):
		part = part.strip()
		if part and part not in out:
			out.append(part)
	return out


def load_settings(env_file: str | None = None) -> Settings:
	"""Load settings from the environment, optionally from a specific file."""

	if env_file:
		load_dotenv(env_file)
	else:
		load_dotenv()

	target = (os.getenv("ROLLCALL_CHANNEL_ID") or "").strip() or None

	return Settings(
		prompt_hour=_int_env("ROLLCALL_HOUR", 7),
		prompt_minute=_int_env("ROLLCALL_MINUTE", 0),
		result_hour=_int_env("ROLLCALL_RESULT_HOUR"),
		result_minute=_int_env("ROLLCALL_RESULT_MINUTE"),
		timezone=os.getenv("ROLLCALL_TIMEZONE", DEFAULT_TIMEZONE),
		target_group_id=target,
		allowed_group_ids=_list_env("ALLOWED_CHANNEL_IDS"),
		response_channel=ChannelKind.parse(os.getenv("ROLLCALL_RESPONSE_CHANNEL", "poll")),
		history_limit=_int_env("ROLLCALL_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT),
		tracked_role_id=_int_env("ROLLCALL_TRACKED_ROLE_ID"),
		command_prefix=os.getenv("COMMAND_PREFIX", "!") or "!",
		owner_ids=set(_list_env("OWNER_IDS")),
		token=os.getenv("DISCORD_BOT_TOKEN"),
	)


__all__ = ["Settings", "load_settings", "RESULT_OFFSET_MINUTES", "SCHEDULE_DAYS", "MAX_HISTORY_LIMIT"]
