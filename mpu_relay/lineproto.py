"""InfluxDB line-protocol encoding for MPU activity telemetry.

A telemetry record becomes one ``mpu_activity`` line and, when the tablet
reported a usable GPS fix, a second ``mpu_gps`` line carrying the position:

    mpu_activity,mpu=MPU1,site=PitA,...,activity_code=3 value=3i 1718000000000000000
    mpu_gps,mpu=MPU1,site=PitA,...,activity_code=3 lat=-23.5,lon=119.7 1718000000000000000

Tag values pass through :func:`sanitize`, so they never need escaping.
"""

from __future__ import annotations

import math
import re
import time
from typing import Any

from mpu_relay.errors import ValidationError
from mpu_relay.models import TelemetryRecord

ACTIVITY_MEASUREMENT = "mpu_activity"
GPS_MEASUREMENT = "mpu_gps"

UNKNOWN = "unknown"

# Activity codes as printed on the tablet's activity board.
ACTIVITY_NAMES: dict[str, str] = {
    "1": "Loading",
    "2": "Travel_Loaded",
    "3": "Unloading",
    "4": "Travel_Empty",
    "5": "Pre_Start",
    "6": "Crib",
    "7": "Training",
    "8": "Meeting",
    "9": "Maintenance",
    "10": "Standby",
    "11": "Other",
    "12": "End_Shift",
    "20": "Wait_Blast",
    "21": "Wait_Drill",
    "22": "Wait_Survey",
    "23": "Wait_Dozer",
    "24": "Wait_Excavator",
    "25": "Wait_Water",
    "26": "Wet_Holes",
    "27": "Bad_Ground",
    "28": "No_Pattern",
    "50": "Breakdown",
    "51": "Sched_Maint",
    "52": "Parts_Wait",
    "53": "No_Operator",
    "54": "No_Product",
    "80": "Other_Delay",
}

_WHITESPACE_RE = re.compile(r"\s+")
# Anything outside this set could break a tag (spaces, commas, equals, quotes)
_TAG_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_\-:.]")
_LEADING_INT_RE = re.compile(r"\s*([+-]?[0-9]+)")
_DIGITS_RE = re.compile(r"\s*[0-9]+\s*")
_SLOT_RE = re.compile(r"s_([0-9]{1,2})_([0-9]{1,2})")


# ── Value coercion ────────────────────────────────────────────────────────────


def sanitize(value: Any) -> str:
    """Return *value* as a tag-safe string, or ``"unknown"`` if it is unset.

    Whitespace runs become a single ``_`` and every remaining character
    outside ``[A-Za-z0-9_\\-:.]`` becomes ``_``.  Applying it twice is a no-op.
    """
    if value is None or value == "":
        return UNKNOWN
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    return _TAG_UNSAFE_CHARS_RE.sub("_", _WHITESPACE_RE.sub("_", text))


def parse_int(value: Any, default: int = 0) -> int:
    """Parse *value* as an integer, returning *default* when it is not numeric.

    Floats truncate toward zero and strings use their leading integer, so
    ``"3"``, ``3.9`` and ``"3 - Unloading"`` all give ``3``.  Booleans are
    not treated as numbers.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if isinstance(value, str):
        match = _LEADING_INT_RE.match(value)
        if not match:
            return default
        try:
            return int(match.group(1))
        except ValueError:
            # longer than sys.get_int_max_str_digits()
            return default
    return default


def parse_float(value: Any) -> float | None:
    """Parse *value* as a finite float, or return ``None`` if it is not one."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_timestamp(value: Any) -> int:
    """Parse a nanosecond timestamp, returning ``0`` when it is unusable.

    Digit strings and ints keep full precision; anything else numeric
    (``"1.718e+18"``, ``1.718e18``) goes through :func:`parse_float`.
    """
    if isinstance(value, str) and not _DIGITS_RE.fullmatch(value):
        number = parse_float(value)
        return int(number) if number is not None else 0
    return parse_int(value)


def _activity_name_key(activity_code: Any, sanitized: str) -> str:
    """Key into ACTIVITY_NAMES; integral numbers such as ``3.0`` map to ``"3"``."""
    number = parse_float(activity_code)
    if number is not None and number.is_integer():
        return str(int(number))
    return sanitized


def current_timestamp_ns() -> int:
    """Wall-clock time in nanoseconds at millisecond precision."""
    return int(time.time() * 1000) * 1_000_000


def format_slot(slot: Any) -> str | None:
    """Turn a tablet slot id such as ``s_6_30`` into ``06:30``."""
    if not isinstance(slot, str):
        return None
    match = _SLOT_RE.fullmatch(slot.strip())
    if not match:
        return None
    return f"{int(match.group(1)):02d}:{int(match.group(2)):02d}"


def gps_position(lat: Any, lon: Any) -> tuple[float, float] | None:
    """Return ``(lat, lon)`` if both parse and are not both zero."""
    lat_f = parse_float(lat)
    lon_f = parse_float(lon)
    if lat_f is None or lon_f is None:
        return None
    if lat_f == 0 and lon_f == 0:
        return None
    return lat_f, lon_f


# ── Line assembly ─────────────────────────────────────────────────────────────


def _format_field(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    raise TypeError(f"Unsupported field type: {type(value).__name__}")


def build_line(
    measurement: str,
    tags: dict[str, str],
    fields: dict[str, Any],
    timestamp_ns: int,
) -> str:
    """Build a single line-protocol string.

    Tags are emitted in insertion order and must already be sanitized.
    Fields whose value is ``None`` are skipped.

    Raises:
        ValueError: if no field is left to write.
    """
    field_parts = [
        f"{key}={_format_field(val)}" for key, val in fields.items() if val is not None
    ]
    if not field_parts:
        raise ValueError(f"{measurement}: a line needs at least one field")

    tag_str = "".join(f",{key}={val}" for key, val in tags.items())
    return f"{measurement}{tag_str} {','.join(field_parts)} {timestamp_ns}"


def probe_line(measurement: str, source: str, now_ns: int | None = None) -> str:
    """Build the single line written by a connectivity test."""
    ts = now_ns if now_ns is not None else current_timestamp_ns()
    return f"{sanitize(measurement)},source={sanitize(source)} value=1 {ts}"


def _optional_tag(*candidates: Any) -> str | None:
    """Sanitize the first non-empty candidate; ``None`` if all are empty."""
    for value in candidates:
        if value is not None and value != "":
            return sanitize(value)
    return None


def encode(record: TelemetryRecord, now_ns: int | None = None) -> list[str]:
    """Encode a tablet activity record into line protocol.

    Args:
        record: Parsed request body.
        now_ns: Timestamp used when the record carries none (defaults to now).

    Returns:
        The ``mpu_activity`` line, followed by an ``mpu_gps`` line when the
        record has a usable position.

    Raises:
        ValidationError: if ``activityCode`` is missing.
    """
    if record.activity_code is None or record.activity_code == "":
        raise ValidationError("Missing activity data. Send POST with activityCode.")

    timestamp = parse_timestamp(record.timestamp)
    if timestamp <= 0:
        timestamp = now_ns if now_ns is not None else current_timestamp_ns()

    activity_code = sanitize(record.activity_code)
    table_name = ACTIVITY_NAMES.get(_activity_name_key(record.activity_code, activity_code))
    activity_name = _optional_tag(record.activity_name, table_name)

    tags: dict[str, str] = {
        "mpu": sanitize(record.mpu),
        "site": sanitize(record.site),
        "operator": sanitize(record.operator),
        "shift": sanitize(record.shift),
        "date": sanitize(record.date),
        "slot": sanitize(record.slot),
    }
    optional_tags = {
        "slot_time": format_slot(record.slot),
        "activity_name": activity_name,
        "activity_type": _optional_tag(record.activity_type),
        "device": _optional_tag(record.device, record.device_id),
    }
    tags.update((key, val) for key, val in optional_tags.items() if val)
    tags["activity_code"] = activity_code

    fields: dict[str, Any] = {
        "value": parse_int(record.activity_code),
        "docket": _optional_tag(record.docket),
    }
    lines = [build_line(ACTIVITY_MEASUREMENT, tags, fields, timestamp)]

    position = gps_position(record.lat, record.lon)
    if position is not None:
        gps_tags = {key: tags[key] for key in ("mpu", "site", "operator", "slot")}
        if activity_name:
            gps_tags["activity_name"] = activity_name
        gps_tags["activity_code"] = activity_code
        lat, lon = position
        lines.append(build_line(GPS_MEASUREMENT, gps_tags, {"lat": lat, "lon": lon}, timestamp))

    return lines
