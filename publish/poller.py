# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# stdlib
from asyncio import Task, create_task, current_task, gather, sleep
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from logging import getLogger
from typing import Any, TypeAlias

# project
from settings.env import PUBLISH_STATUS_INTERVAL_SETTING, parse_config_option, parse_positive_float
from settings.publish_history import PublishHistory, PublishStatus, PublishStatusCode, PublishTarget

log = getLogger(__name__)

PUBLISH_STATUS_INTERVAL_SECONDS = 10.0

PublishKey: TypeAlias = tuple[str, str]
"""(bot project id, publish target name)"""

FetchStatus: TypeAlias = Callable[[str, PublishTarget], Awaitable[PublishStatus | None]]
OnComplete: TypeAlias = Callable[[str, PublishTarget, PublishStatus], Any]


class PublishState(Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


TERMINAL_STATES = {PublishStatusCode.SUCCESS: PublishState.SUCCESS, PublishStatusCode.FAILED: PublishState.FAILED}


@dataclass
class PublishTracker:
    state: PublishState = PublishState.IDLE
    notify: bool = False
    generation: int = 0
    synced: bool = False
    timer: Task[None] | None = None

    def cancel_timer(self) -> None:
        # a re-check may replace or settle its own timer, it must not cancel itself
        if self.timer is not None and self.timer is not current_task():
            self.timer.cancel()
        self.timer = None


def get_publish_status_interval() -> float:
    return parse_config_option(PUBLISH_STATUS_INTERVAL_SETTING, parse_positive_float, PUBLISH_STATUS_INTERVAL_SECONDS)


class PublishStatusPoller:
    """Tracks in-flight publishes per (bot, target) and polls until a terminal status is seen.

    idle -> pending (202) -> success (200) | failed (500)

    A pending status schedules exactly one re-check `interval` seconds later, replacing any
    earlier timer for the same key. The first terminal status after `start_publish` calls
    `on_complete` once; later terminal observations are recorded but not reported until the
    next `start_publish` for that key.
    """

    def __init__(self, fetch_status: FetchStatus, on_complete: OnComplete, interval: float | None = None) -> None:
        self.fetch_status = fetch_status
        self.on_complete = on_complete
        self.interval = interval if interval is not None else get_publish_status_interval()
        self.histories: dict[str, PublishHistory] = {}
        self._trackers: dict[PublishKey, PublishTracker] = {}

    def _tracker(self, bot_id: str, target_name: str) -> PublishTracker:
        return self._trackers.setdefault((bot_id, target_name), PublishTracker())

    def state(self, bot_id: str, target_name: str) -> PublishState:
        tracker = self._trackers.get((bot_id, target_name))
        return tracker.state if tracker else PublishState.IDLE

    def history(self, bot_id: str) -> PublishHistory:
        return self.histories.setdefault(bot_id, PublishHistory())

    def has_timer(self, bot_id: str, target_name: str) -> bool:
        tracker = self._trackers.get((bot_id, target_name))
        return bool(tracker and tracker.timer and not tracker.timer.done())

    def start_publish(self, bot_id: str, target: PublishTarget) -> None:
        """A new publish was initiated, forget any earlier outcome and re-arm the completion notification"""
        tracker = self._tracker(bot_id, target["name"])
        tracker.cancel_timer()
        tracker.generation += 1
        tracker.state = PublishState.PENDING
        tracker.notify = True
        tracker.synced = False

    def observe(self, bot_id: str, target: PublishTarget, latest: PublishStatus | None) -> None:
        """Apply the most recent known status of `target`"""
        target_name = target["name"]
        tracker = self._tracker(bot_id, target_name)

        if latest is None:
            # nothing recorded yet, but a publish happened before: converge history with reality
            if target.get("lastPublished") and not tracker.synced and not self.has_timer(bot_id, target_name):
                tracker.synced = True
                self._schedule(bot_id, target, tracker, 0)
            return

        history = self.history(bot_id)
        if history.latest(target_name) != latest:
            history.append(target_name, latest)

        if latest.is_pending:
            tracker.state = PublishState.PENDING
            self._schedule(bot_id, target, tracker, self.interval)
            return

        terminal_state = TERMINAL_STATES.get(latest.status)
        if terminal_state is None:
            log.debug("Ignoring unknown publish status %s for %s/%s", latest.status, bot_id, target_name)
            return

        tracker.cancel_timer()
        tracker.state = terminal_state
        if tracker.notify:
            tracker.notify = False
            self.on_complete(bot_id, target, latest)

    def _schedule(self, bot_id: str, target: PublishTarget, tracker: PublishTracker, delay: float) -> None:
        tracker.cancel_timer()
        tracker.timer = create_task(self._recheck(bot_id, target, tracker, tracker.generation, delay))

    async def _recheck(
        self, bot_id: str, target: PublishTarget, tracker: PublishTracker, generation: int, delay: float
    ) -> None:
        await sleep(delay)
        try:
            latest = await self.fetch_status(bot_id, target)
        except Exception:
            log.exception("Failed to get publish status for %s/%s", bot_id, target["name"])
            if tracker.generation == generation and tracker.state == PublishState.PENDING:
                self._schedule(bot_id, target, tracker, self.interval)
            return
        if tracker.generation != generation:
            log.debug("Discarding stale publish status for %s/%s", bot_id, target["name"])
            return
        self.observe(bot_id, target, latest)

    def cancel(self, bot_id: str, target_name: str) -> None:
        if tracker := self._trackers.get((bot_id, target_name)):
            tracker.cancel_timer()

    async def wait(self) -> None:
        """Wait until no re-check is scheduled, i.e. every tracked publish has settled"""
        while timers := [t.timer for t in self._trackers.values() if t.timer is not None and not t.timer.done()]:
            await gather(*timers, return_exceptions=True)

    def close(self) -> None:
        for tracker in self._trackers.values():
            tracker.cancel_timer()
