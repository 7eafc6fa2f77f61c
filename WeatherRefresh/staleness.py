"""Staleness classification - pure functions for testability."""
from dataclasses import dataclass
from enum import Enum

MS_PER_MINUTE = 60_000


class StatusCategory(Enum):
    NO_DATA_YET = "no_data_yet"
    UPDATING = "updating"
    JUST_NOW = "just_now"
    ONE_MINUTE_AGO = "one_minute_ago"
    MINUTES_AGO = "minutes_ago"
    FAILED_NO_DATA = "failed_no_data"


_TEXT = {
    StatusCategory.NO_DATA_YET: "No data yet",
    StatusCategory.UPDATING: "Updating...",
    StatusCategory.JUST_NOW: "Updated just now",
    StatusCategory.ONE_MINUTE_AGO: "Updated one minute ago",
    StatusCategory.MINUTES_AGO: "Updated {minutes} minutes ago",
    StatusCategory.FAILED_NO_DATA: "Update failed, no data",
}


@dataclass(frozen=True)
class StatusMessage:
    category: StatusCategory
    minutes: int = 0

    @property
    def text(self) -> str:
        return _TEXT[self.category].format(minutes=self.minutes)

    def __str__(self) -> str:
        return self.text


UPDATING = StatusMessage(StatusCategory.UPDATING)
JUST_NOW = StatusMessage(StatusCategory.JUST_NOW)
FAILED_NO_DATA = StatusMessage(StatusCategory.FAILED_NO_DATA)


def minutes_ago(minutes: int) -> StatusMessage:
    if minutes < 1:
        return JUST_NOW
    if minutes == 1:
        return StatusMessage(StatusCategory.ONE_MINUTE_AGO, 1)
    return StatusMessage(StatusCategory.MINUTES_AGO, minutes)


def classify(
    last_success_epoch_ms: int,
    now_epoch_ms: int,
    offline_streak_ticks: int,
    from_cache: bool = False,
) -> StatusMessage:
    """
    Turn the refresh bookkeeping into a user-facing status.

    Args:
        last_success_epoch_ms: Time of the last successful fetch (0 = never)
        now_epoch_ms: Current time
        offline_streak_ticks: Consecutive fallback ticks so far
        from_cache: True when displaying cached data; the streak count then
            stands in for elapsed minutes instead of the wall clock

    Returns:
        StatusMessage for the status line
    """
    if last_success_epoch_ms == 0:
        return StatusMessage(StatusCategory.NO_DATA_YET)
    if from_cache:
        return minutes_ago(offline_streak_ticks)
    elapsed_ms = max(0, now_epoch_ms - last_success_epoch_ms)
    return minutes_ago(elapsed_ms // MS_PER_MINUTE)
