# scormbridge/datamodel/timeinterval.py
from __future__ import annotations
import math
import re

__all__ = ["secondsToTimeInterval", "timeIntervalToSeconds"]

# Hundredths of a second is the precision the run-time data model requires
_HUNDREDTHS_PER_YEAR = 3_155_760_000
_HUNDREDTHS_PER_MONTH = 262_980_000
_HUNDREDTHS_PER_DAY = 8_640_000
_HUNDREDTHS_PER_HOUR = 360_000
_HUNDREDTHS_PER_MINUTE = 6_000
_HUNDREDTHS_PER_SECOND = 100

_INTERVAL_RE = re.compile(
    r"P(?:(?P<years>\d+)Y)?(?:(?P<months>\d+)M)?(?:(?P<days>\d+)D)?"
    r"T?(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?"
)



def secondsToTimeInterval(seconds: float) -> str:
    """
    Formats a duration as P{d}DT{h}H{m}M{s}S. Years and months are never
    emitted. Negative and non-finite input is clamped to zero; fractional
    seconds keep at most two decimals.
    """
    seconds = float(seconds)
    if not math.isfinite(seconds):
        seconds = 0.0
    hundredths = max(0, round(seconds * _HUNDREDTHS_PER_SECOND))
    days, rest = divmod(hundredths, _HUNDREDTHS_PER_DAY)
    hours, rest = divmod(rest, _HUNDREDTHS_PER_HOUR)
    minutes, rest = divmod(rest, _HUNDREDTHS_PER_MINUTE)
    wholeSeconds, fraction = divmod(rest, _HUNDREDTHS_PER_SECOND)
    secondsText = str(wholeSeconds) if not fraction else f"{wholeSeconds}.{fraction:02d}".rstrip("0")
    return f"P{days}DT{hours}H{minutes}M{secondsText}S"



def timeIntervalToSeconds(timeInterval: str | None) -> float:
    """
    Parses an ISO-8601 duration ("P1Y2M3DT4H5M6.5S", "PT2M18S", ...).
    Empty or unparseable input gives 0.0. Years and months use the fixed
    lengths of the run-time data model (365.25 days, 1/12 of that).
    """
    if not timeInterval:
        return 0.0
    match = _INTERVAL_RE.search(timeInterval.strip())
    if match is None:
        return 0.0

    def part(name: str) -> int:
        return int(match.group(name) or 0)

    total = (
        part("years") * _HUNDREDTHS_PER_YEAR
        + part("months") * _HUNDREDTHS_PER_MONTH
        + part("days") * _HUNDREDTHS_PER_DAY
        + part("hours") * _HUNDREDTHS_PER_HOUR
        + part("minutes") * _HUNDREDTHS_PER_MINUTE
        + round(float(match.group("seconds") or 0) * _HUNDREDTHS_PER_SECOND)
    )
    return total / 100
