"""Sampling temperature schedule per content type and attempt."""

from dataclasses import dataclass

from .types import ContentType


@dataclass(frozen=True)
class TemperatureSchedule:
    base: float
    retry: float
    floor: float
    ceiling: float


TEMPERATURE_SCHEDULES = {
    ContentType.BULLET: TemperatureSchedule(base=0.3, retry=0.2, floor=0.1, ceiling=0.5),
    ContentType.SECTION: TemperatureSchedule(base=0.4, retry=0.25, floor=0.15, ceiling=0.6),
    ContentType.SUMMARY: TemperatureSchedule(base=0.5, retry=0.3, floor=0.2, ceiling=0.7),
}

# Each retry cools the sampler by this much
TEMPERATURE_STEP = 0.1


def clamp_temperature(value: float, content_type: ContentType | str = ContentType.BULLET) -> float:
    schedule = TEMPERATURE_SCHEDULES[ContentType(content_type)]
    return round(min(max(value, schedule.floor), schedule.ceiling), 2)


def get_temperature_for_attempt(content_type: ContentType | str, attempt: int) -> float:
    """Temperature for a 0-based attempt number; never rises between attempts.

    The first attempt uses the base value, the first retry the retry value,
    and each later retry steps down until the floor.
    """
    schedule = TEMPERATURE_SCHEDULES[ContentType(content_type)]
    if attempt <= 0:
        return clamp_temperature(schedule.base, content_type)
    return clamp_temperature(schedule.retry - (attempt - 1) * TEMPERATURE_STEP, content_type)
