"""
Record parser for installed-apps log lines.

A line has five tab-separated fields: device type, device id, latitude,
longitude and a comma-separated list of app ids.
"""

import math
import re

from utils.errors import InvalidCoordinate, InvalidLineFormat
from utils.schemas import UINT32_MAX, AppsInstalled

FIELD_COUNT = 5

_APP_ID = re.compile(r"[0-9]+")
# No whitespace and no "_" separators; nan is unsigned, hex needs a "p" exponent.
_DECIMAL_FLOAT = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_HEX_FLOAT = re.compile(r"[+-]?0[xX](?:[0-9a-fA-F]+\.?[0-9a-fA-F]*|\.[0-9a-fA-F]+)[pP][+-]?[0-9]+")
_SPECIAL_FLOAT = re.compile(r"[+-]?inf(?:inity)?|nan", re.IGNORECASE)


def parse_appsinstalled(line: str) -> AppsInstalled:
    """
    Parse one raw log line.

    Args:
        line: Line without its trailing newline

    Returns:
        Parsed record; app ids that are not unsigned 32-bit integers are dropped

    Raises:
        InvalidLineFormat: If the line does not have exactly five fields
        InvalidCoordinate: If lat or lon is not a number
    """
    parts = line.split("\t")
    if len(parts) != FIELD_COUNT:
        raise InvalidLineFormat(
            f"Encountered invalid line: expected {FIELD_COUNT} fields, got {len(parts)}",
            line,
        )

    dev_type, dev_id, raw_lat, raw_lon, raw_apps = parts

    # Fields are checked above; skipping validation keeps surrogate-escaped bytes verbatim.
    return AppsInstalled.model_construct(
        dev_type=dev_type,
        dev_id=dev_id,
        lat=_parse_coordinate("lat", raw_lat, line),
        lon=_parse_coordinate("lon", raw_lon, line),
        apps=parse_apps(raw_apps),
    )


def parse_apps(raw_apps: str) -> list[int]:
    """Parse a comma-separated app id list, silently skipping invalid tokens."""
    apps = []
    for token in raw_apps.split(","):
        if not _APP_ID.fullmatch(token):
            continue
        app = int(token)
        if app <= UINT32_MAX:
            apps.append(app)
    return apps


def _parse_coordinate(name: str, raw: str, line: str) -> float:
    if _SPECIAL_FLOAT.fullmatch(raw):
        return float(raw)

    try:
        if _DECIMAL_FLOAT.fullmatch(raw):
            value = float(raw)
        elif _HEX_FLOAT.fullmatch(raw):
            value = float.fromhex(raw)
        else:
            raise ValueError(raw)
    except (ValueError, OverflowError):
        raise InvalidCoordinate(f"Encountered invalid `{name}`: {raw!r}", line) from None

    if math.isinf(value):
        raise InvalidCoordinate(f"Encountered out of range `{name}`: {raw!r}", line)
    return value
