"""
Workout description parsing.

Turns free-text workout descriptions (as produced by the plan generator)
into structured, queryable fields.  Every public function here is pure and
total: any input returns a value, missing fields are simply absent.

Field extraction (distance, duration, pace) runs on the plain-text form of
the description, so ``**bold**`` markers never change what is extracted.
"""

import html
import re

from .config import COACHING_NOTES, KM_PER_MILE, PREVIEW_LENGTH
from .models import WorkoutDescriptor, WorkoutSections

# -----------------------------------------------------------------------------
# Patterns
# -----------------------------------------------------------------------------

_DISTANCE_RE = re.compile(
    r"(?<![\d.])(\d+(?:\.\d+)?)\s*(kilomet(?:er|re)s?|km|miles?|mi|m)\b",
    re.IGNORECASE,
)

# Clock times followed by "/" are paces, not durations.
_DURATION_RE = re.compile(
    r"(?<![\d:])\d{1,2}:\d{2}(?::\d{2})?(?![\d:]|\s*/)"
    r"|(?<![\d.])\d+(?:\.\d+)?\s*(?:hours?|hrs?)\b"
    r"|(?<![\d.])\d+\s*(?:minutes?|mins?)\b",
    re.IGNORECASE,
)

_PACE_RE = re.compile(
    r"(?<![\d:])(?P<split>\d{1,2}:\d{2})\s*/\s*(?P<unit>km|mile|mi)\b"
    r"|@\s*(?P<named>(?:[a-z0-9][\w-]*\s+){0,2}pace)\b",
    re.IGNORECASE,
)

_SECTION_LABEL_RE = re.compile(
    r"(?:\*\*)?(?<!\w)"
    r"(?P<label>warm[\s-]?up|cool[\s-]?down|main[\s-]?set|workout|work|intervals|repeats)"
    r"\s*(?:\*\*)?\s*:\s*(?:\*\*)?",
    re.IGNORECASE,
)

_BOLD_RE = re.compile(r"\*\*(.+?)\*\*", re.DOTALL)

# Workout categories in priority order; the first match wins.
_CATEGORY_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("rest", re.compile(r"\brest\b", re.IGNORECASE)),
    ("easy", re.compile(r"\beasy", re.IGNORECASE)),
    ("long", re.compile(r"\blong", re.IGNORECASE)),
    ("tempo", re.compile(r"\b(?:tempo|threshold)", re.IGNORECASE)),
    ("interval", re.compile(r"\b(?:interval|repeat)", re.IGNORECASE)),
)

_SEGMENT_TRIM = " \t\r\n|"


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


# -----------------------------------------------------------------------------
# Formatting
# -----------------------------------------------------------------------------


def strip_formatting(text: str) -> str:
    """
    Remove ``**`` emphasis markers and collapse whitespace.

    Idempotent: ``strip_formatting(strip_formatting(t)) == strip_formatting(t)``.
    Used for calendar-cell previews and accessible labels.
    """
    if not isinstance(text, str):
        return ""
    plain = _BOLD_RE.sub(r"\1", text).replace("**", "")
    return _collapse(plain)


def render_emphasis(text: str) -> str:
    """
    Render a description as lightweight HTML.

    ``**x**`` becomes ``<strong>x</strong>``; newlines and ``|`` separators
    become ``<br>``; bold section labels start on their own line.
    """
    if not isinstance(text, str):
        return ""
    out = html.escape(text, quote=False).replace("\n", "<br>")
    out = _BOLD_RE.sub(r"<strong>\1</strong>", out)
    out = re.sub(r"\s*\|\s*", "<br>", out)
    out = re.sub(
        r"\s*(<strong>(?:warm[\s-]?up|work|cool[\s-]?down):</strong>)",
        r"<br>\1",
        out,
        flags=re.IGNORECASE,
    )
    out = re.sub(r"^(?:<br>)+", "", out)
    return re.sub(r"(?:<br>\s*){2,}", "<br>", out)


def preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Plain-text preview truncated to ``limit`` characters with an ellipsis."""
    plain = strip_formatting(text)
    if len(plain) > limit:
        return plain[:limit] + "..."
    return plain


# -----------------------------------------------------------------------------
# Field extraction
# -----------------------------------------------------------------------------


def extract_distance(text: str) -> str | None:
    """First ``<number><unit>`` distance token, as written (no conversion)."""
    match = _DISTANCE_RE.search(strip_formatting(text))
    return _collapse(match.group(0)) if match else None


def extract_duration(text: str) -> str | None:
    """First duration token: ``H:MM``, ``X hours`` or ``X min``."""
    match = _DURATION_RE.search(strip_formatting(text))
    return _collapse(match.group(0)) if match else None


def extract_pace(text: str) -> str | None:
    """First pace token: ``mm:ss/km``, ``mm:ss/mi`` or ``@ ... pace``."""
    match = _PACE_RE.search(strip_formatting(text))
    if match is None:
        return None
    if match.group("split"):
        return f"{match.group('split')}/{match.group('unit').lower()}"
    return _collapse(match.group("named"))


def _section_key(label: str) -> str:
    normalized = re.sub(r"[\s-]", "", label.lower())
    if normalized == "warmup":
        return "warm_up"
    if normalized == "cooldown":
        return "cool_down"
    return "work"


def parse_workout_sections(text: str) -> WorkoutSections:
    """
    Split a description into warm-up / work / cool-down segments.

    Labels are matched case-insensitively and may be wrapped in ``**``.
    Without any label the whole text is the work segment.  When a label
    repeats, the first occurrence wins.  Emphasis inside segments is kept.

    Args:
        text: Raw workout description

    Returns:
        WorkoutSections (all fields None for empty input)
    """
    if not isinstance(text, str) or not text.strip():
        return WorkoutSections()

    labels = list(_SECTION_LABEL_RE.finditer(text))
    if not labels:
        return WorkoutSections(work=text.strip())

    found: dict[str, str] = {}
    for i, match in enumerate(labels):
        end = labels[i + 1].start() if i + 1 < len(labels) else len(text)
        segment = text[match.end():end].strip(_SEGMENT_TRIM)
        key = _section_key(match.group("label"))
        if segment and key not in found:
            found[key] = segment

    if "work" not in found:
        preamble = text[: labels[0].start()].strip(_SEGMENT_TRIM)
        if preamble:
            found["work"] = preamble

    return WorkoutSections(
        warm_up=found.get("warm_up"),
        work=found.get("work"),
        cool_down=found.get("cool_down"),
    )


def parse_workout(text: str) -> WorkoutDescriptor:
    """
    Parse a workout description into a WorkoutDescriptor.

    Never raises; non-string or blank input returns an empty descriptor.
    """
    if not isinstance(text, str) or not text.strip():
        return WorkoutDescriptor()

    return WorkoutDescriptor(
        distance=extract_distance(text),
        duration=extract_duration(text),
        pace=extract_pace(text),
        sections=parse_workout_sections(text),
    )


def estimate_completion_metrics(text: str) -> tuple[float | None, float | None]:
    """
    Estimate (distance_km, duration_minutes) for pre-filling a completion.

    Hours and minutes are summed, an ``H:MM[:SS]`` clock overrides both.
    Distance is only read when no duration was found, so a time-based
    workout is never also reported as a distance.  Miles are converted.

    Returns:
        Tuple of optional floats; None means "not found"
    """
    plain = strip_formatting(text)
    if not plain:
        return None, None

    minutes = 0.0
    hours_match = re.search(r"(\d+(?:\.\d+)?)\s*(?:hours?|hrs?)\b", plain, re.IGNORECASE)
    if hours_match:
        minutes += float(hours_match.group(1)) * 60
    minutes_match = re.search(r"(\d+)\s*(?:minutes?|mins?)\b", plain, re.IGNORECASE)
    if minutes_match:
        minutes += float(minutes_match.group(1))
    clock_match = re.search(r"(?<![\d:])(\d+):(\d{2})(?::(\d{2}))?(?![\d:]|\s*/)", plain)
    if clock_match:
        h, m, s = clock_match.groups()
        minutes = int(h) * 60 + int(m) + (int(s) / 60 if s else 0)

    if minutes > 0:
        return None, round(minutes, 2)

    match = _DISTANCE_RE.search(plain)
    if match is None:
        return None, None
    value, unit = float(match.group(1)), match.group(2).lower()
    if unit.startswith("mi"):
        return round(value * KM_PER_MILE, 3), None
    if unit == "m":
        return value / 1000, None
    return value, None


# -----------------------------------------------------------------------------
# Classification and coaching notes
# -----------------------------------------------------------------------------


def workout_category(text: str) -> str:
    """
    Classify a workout: rest > easy > long > tempo > interval > general.

    Word-boundary aware ("restart" is not a rest day).  This is a
    best-effort heuristic over free text, not a guaranteed classifier.
    """
    if not isinstance(text, str):
        return "general"
    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.search(text):
            return category
    return "general"


def is_rest_day(text: str) -> bool:
    """True when the workout text reads as a rest day."""
    return workout_category(text) == "rest"


def coaching_notes(text: str) -> tuple[str, ...]:
    """Fallback tips for a day that carries no generated tips."""
    return COACHING_NOTES[workout_category(text)]
