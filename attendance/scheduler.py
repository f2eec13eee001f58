"""Daily prompt/result phases and the timers that fire them."""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import SCHEDULE_DAYS, Settings
from .dispatcher import PromptDispatcher
from .errors import DispatchFailed, NoCycleError, RosterUnavailable
from .models import Cycle, TallyResult
from .store import CycleStore
from .tally import TallyEngine

logger = logging.getLogger(__name__)

WEEKDAYS = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]


def derive_result_time(hour: int, minute: int, offset_minutes: int = 15) -> tuple[int, int, int]:
	"""Add ``offset_minutes`` to hour:minute, returning ``(hour, minute, day_shift)``."""
	total = hour * 60 + minute + offset_minutes
	day_shift, total = divmod(total, 24 * 60)
	return total // 60, total % 60, day_shift


def shift_days(day_of_week: str, shift: int) -> str:
	"""Shift a ``mon-fri`` style range by ``shift`` days."""
	if not shift:
		return day_of_week
	parts = []
	for chunk in day_of_week.split(","):
		names = chunk.split("-")
		parts.append("-".join(WEEKDAYS[(WEEKDAYS.index(n) + shift) % 7] for n in names))
	return ",".join(parts)


class CycleScheduler:
	"""Per-phase logic, independent of whatever fires it."""

	def __init__(
		self,
		settings: Settings,
		store: CycleStore,
		dispatcher: PromptDispatcher,
		engine: TallyEngine,
	) -> None:
		self.settings = settings
		self.store = store
		self.dispatcher = dispatcher
		self.engine = engine

	def target_groups(self) -> list[str]:
		groups: list[str] = []
		if self.settings.target_group_id:
			groups.append(str(self.settings.target_group_id))
		for group_id in self.settings.allowed_group_ids:
			if group_id not in groups:
				groups.append(group_id)
		return groups

	def is_target(self, group_id) -> bool:
		return str(group_id) in self.target_groups()

	async def prompt_group(self, group_id: str) -> Optional[Cycle]:
		# Yesterday's responses never leak into today's cycle, even if this dispatch fails.
		self.store.discard(group_id)
		try:
			sent = await self.dispatcher.dispatch(group_id)
		except RosterUnavailable as exc:
			logger.warning("Skipping roll call prompt: %s", exc)
			return None
		except DispatchFailed as exc:
			logger.error("Roll call prompt failed: %s", exc)
			return None

		return self.store.start_cycle(
			group_id,
			sent.correlation_id,
			sent.channel_kind,
			sent.sent_at,
			marker=sent.marker,
			cycle_date=sent.day,
		)

	async def report_group(self, group_id: str) -> Optional[TallyResult]:
		try:
			return await self.engine.publish(group_id)
		except NoCycleError:
			logger.info("No live roll call for group %s; no result sent", group_id)
		except RosterUnavailable as exc:
			logger.warning("Skipping roll call result: %s", exc)
		except DispatchFailed as exc:
			logger.error("Roll call result failed: %s", exc)
		return None

	async def on_prompt_trigger(self) -> dict[str, Optional[Cycle]]:
		targets = self.target_groups()
		if not targets:
			logger.warning("Roll call prompt fired but no target channel is configured")
		results: dict[str, Optional[Cycle]] = {}
		for group_id in targets:
			try:
				results[group_id] = await self.prompt_group(group_id)
			except Exception:
				logger.exception("Roll call prompt crashed for group %s", group_id)
				results[group_id] = None
		return results

	async def on_result_trigger(self) -> dict[str, Optional[TallyResult]]:
		results: dict[str, Optional[TallyResult]] = {}
		for group_id in self.store.live_groups():
			try:
				results[group_id] = await self.report_group(group_id)
			except Exception:
				logger.exception("Roll call result crashed for group %s", group_id)
				results[group_id] = None
		return results


def build_scheduler(settings: Settings, cycle_scheduler: CycleScheduler) -> AsyncIOScheduler:
	"""Register the prompt and result jobs on a new (unstarted) scheduler."""
	tz = settings.tzinfo()
	scheduler = AsyncIOScheduler(timezone=tz)

	result_hour, result_minute, day_shift = settings.result_time()
	prompt_trigger = CronTrigger(
		day_of_week=SCHEDULE_DAYS,
		hour=settings.prompt_hour,
		minute=settings.prompt_minute,
		timezone=tz,
	)
	result_trigger = CronTrigger(
		day_of_week=shift_days(SCHEDULE_DAYS, day_shift),
		hour=result_hour,
		minute=result_minute,
		timezone=tz,
	)

	# Coroutine functions run on the loop through the default AsyncIOExecutor.
	scheduler.add_job(cycle_scheduler.on_prompt_trigger, trigger=prompt_trigger, id="rollcall_prompt", replace_existing=True)
	scheduler.add_job(cycle_scheduler.on_result_trigger, trigger=result_trigger, id="rollcall_result", replace_existing=True)

	logger.info(
		"Roll call scheduled at %02d:%02d, result at %02d:%02d (%s, %s)",
		settings.prompt_hour,
		settings.prompt_minute,
		result_hour,
		result_minute,
		SCHEDULE_DAYS,
		settings.timezone,
	)
	return scheduler


__all__ = ["CycleScheduler", "build_scheduler", "derive_result_time", "shift_days"]
