"""
Opening-hours extraction from free text (search result markdown, listings).

The extractor is a heuristic: it recognises day ranges ("Mon-Fri 11 AM - 10 PM"),
single days ("Tuesday: 5:30-11 PM") and closed markers ("Sunday: Closed"), in
that order of precedence, and reports how many of the seven days it resolved.
"""
import re
from typing import Dict, List, Optional, Tuple

from core.exceptions import WebSearchError
from core.logger import get_logger
from core.web_search import search
from schemas.restaurants import BusinessHoursResult, DayHours

logger = get_logger("business_hours")

DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_DAY_BY_PREFIX = {d[:3]: d for d in DAYS}

_DAY = r"(mon(?:day)?|tue(?:s(?:day)?)?|wed(?:nesday)?|thu(?:r(?:s(?:day)?)?)?|fri(?:day)?|sat(?:urday)?|sun(?:day)?)s?"
_TIME = r"(\d{1,2}(?:[:.]\d{2})?\s*(?:[ap]\.?\s?m\.?)?|noon|midnight)"
_TIME_SEP = r"\s*(?:-|–|—|to)\s*"
_DAY_SEP = r"\.?\s*(?:-|–|—|to|through|thru)\s*"
_GAP = r"[.:,\s]*"

_RANGE_RE = re.compile(rf"\b{_DAY}{_DAY_SEP}{_DAY}\b{_GAP}{_TIME}{_TIME_SEP}{_TIME}", re.I)
_EVERY_DAY_RE = re.compile(rf"\b(?:daily|every\s*day|7\s*days(?:\s*a\s*week)?)\b{_GAP}{_TIME}{_TIME_SEP}{_TIME}", re.I)
_SINGLE_RE = re.compile(rf"\b{_DAY}\b{_GAP}{_TIME}{_TIME_SEP}{_TIME}", re.I)
_CLOSED_RANGE_RE = re.compile(rf"\b{_DAY}{_DAY_SEP}{_DAY}\b{_GAP}closed\b", re.I)
_CLOSED_RE = re.compile(rf"\b{_DAY}\b{_GAP}closed\b", re.I)

_CLOCK_RE = re.compile(r"^(\d{1,2})(?:[:.](\d{2}))?\s*(?:([ap])\.?\s?m\.?)?$", re.I)


def _default_hours() -> Dict[str, DayHours]:
    return {d: DayHours(open="", close="", closed=True) for d in DAYS}


def _day_key(token: str) -> Optional[str]:
    return _DAY_BY_PREFIX.get(token.strip().lower()[:3])


def _day_span(start: str, end: str) -> List[str]:
    """Days from start to end inclusive, wrapping past Sunday."""
    i, j = DAYS.index(start), DAYS.index(end)
    out = [DAYS[i]]
    while i != j:
        i = (i + 1) % 7
        out.append(DAYS[i])
    return out


def _parse_clock(token: str) -> Optional[Tuple[int, int, Optional[str]]]:
    """(hour, minute, meridiem) where meridiem is "am", "pm" or None."""
    t = token.strip().lower()
    if t == "noon":
        return 12, 0, "pm"
    if t == "midnight":
        return 12, 0, "am"
    m = _CLOCK_RE.match(t)
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2) or 0)
    meridiem = f"{m.group(3).lower()}m" if m.group(3) else None
    if minute > 59 or hour > 23:
        return None
    if meridiem and (hour == 0 or hour > 12):
        # "13:00 pm" and friends: trust the 24h clock
        meridiem = None
    return hour, minute, meridiem


def _to_minutes(hour: int, minute: int, meridiem: Optional[str]) -> int:
    if meridiem == "pm" and hour != 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0
    return hour * 60 + minute


def _other(meridiem: str) -> str:
    return "am" if meridiem == "pm" else "pm"


def _resolve_range(open_token: str, close_token: str) -> Optional[Tuple[str, str]]:
    o = _parse_clock(open_token)
    c = _parse_clock(close_token)
    if o is None or c is None:
        return None
    (oh, om, omer), (ch, cm, cmer) = o, c

    if omer is None and cmer is not None and 1 <= oh <= 12:
        # "5:30-11 PM": open takes the close meridiem unless that puts it after close
        omer = cmer if _to_minutes(oh, om, cmer) <= _to_minutes(ch, cm, cmer) else _other(cmer)
    elif cmer is None and omer is not None and 1 <= ch <= 12:
        # "11 AM - 10": same for the close side
        cmer = omer if _to_minutes(ch, cm, omer) > _to_minutes(oh, om, omer) else _other(omer)
    elif omer is None and cmer is None and 1 <= oh <= 12 and 1 <= ch <= 12:
        # Bare "11-10" reads as 11:00-22:00
        if _to_minutes(ch, cm, None) <= _to_minutes(oh, om, None) and ch < 12:
            ch += 12

    open_min = _to_minutes(oh, om, omer)
    close_min = _to_minutes(ch, cm, cmer)
    return f"{open_min // 60:02d}:{open_min % 60:02d}", f"{close_min // 60:02d}:{close_min % 60:02d}"


def _normalize(content: str) -> str:
    # Listings often use (narrow) no-break spaces around times
    return content.replace("\u00a0", " ").replace("\u202f", " ").replace("\u2009", " ")


def extract_business_hours(content: Optional[str]) -> BusinessHoursResult:
    """
    Extract a weekly schedule from text. Never raises.

    Every day starts out closed with empty times. A day that matched any of
    the patterns counts as resolved; the first pattern to resolve a day wins.
    """
    hours = _default_hours()
    resolved: List[str] = []

    def _set(days: List[str], value: DayHours):
        for d in days:
            if d not in resolved:
                hours[d] = value.model_copy()
                resolved.append(d)

    if not isinstance(content, str) or not content.strip():
        return BusinessHoursResult(hours=hours, found=False, resolved_days=[], confidence="low")

    text = _normalize(content)

    for m in _RANGE_RE.finditer(text):
        start, end = _day_key(m.group(1)), _day_key(m.group(2))
        times = _resolve_range(m.group(3), m.group(4))
        if start and end and times:
            _set(_day_span(start, end), DayHours(open=times[0], close=times[1], closed=False))

    for m in _EVERY_DAY_RE.finditer(text):
        times = _resolve_range(m.group(1), m.group(2))
        if times:
            _set(list(DAYS), DayHours(open=times[0], close=times[1], closed=False))

    for m in _SINGLE_RE.finditer(text):
        day = _day_key(m.group(1))
        times = _resolve_range(m.group(2), m.group(3))
        if day and times:
            _set([day], DayHours(open=times[0], close=times[1], closed=False))

    for m in _CLOSED_RANGE_RE.finditer(text):
        start, end = _day_key(m.group(1)), _day_key(m.group(2))
        if start and end:
            _set(_day_span(start, end), DayHours())

    for m in _CLOSED_RE.finditer(text):
        day = _day_key(m.group(1))
        if day:
            _set([day], DayHours())

    if len(resolved) == 7:
        confidence = "high"
    elif len(resolved) >= 3:
        confidence = "medium"
    else:
        confidence = "low"

    return BusinessHoursResult(
        hours=hours,
        found=bool(resolved),
        resolved_days=[d for d in DAYS if d in resolved],
        confidence=confidence,
    )


def _first_match(results: List[dict]) -> Tuple[Optional[BusinessHoursResult], Optional[dict]]:
    for result in results:
        extracted = extract_business_hours(result.get("markdown") or result.get("description") or "")
        if extracted.found:
            return extracted, result
    return None, None


async def lookup_business_hours(restaurant_name: str, location: Optional[str] = None) -> dict:
    """
    Search the web for a restaurant's opening hours.

    Raises WebSearchError when the primary search fails; a failing Yelp
    fallback only ends the lookup.
    """
    query = f"{restaurant_name} {location} restaurant hours" if location else f"{restaurant_name} restaurant hours"
    results = await search(query, limit=5)

    extracted, hit = _first_match(results)
    source = (hit.get("title") or hit.get("url") or "web") if hit else None

    if extracted is None:
        yelp_query = f"site:yelp.com {restaurant_name} hours"
        logger.info("No hours in general results, trying Yelp: %s", yelp_query)
        try:
            extracted, _ = _first_match(await search(yelp_query, limit=3))
        except WebSearchError as e:
            logger.warning("Yelp search failed: %s", e)
            extracted = None
        source = "Yelp"

    if extracted is None:
        return {"success": False, "error": "Could not find business hours online. Please enter manually."}

    logger.info("Found hours for %s from %s (%s confidence)", restaurant_name, source, extracted.confidence)
    return {
        "success": True,
        "hours": {d: h.model_dump() for d, h in extracted.hours.items()},
        "source": source,
        "confidence": extracted.confidence,
    }
