"""Compact, URL-safe encoding of simulation parameters for share links.

Layout before base64 (pipe-delimited, fixed order)::

    mode|years|calc|lat,lon|north,south,east,west|age|id:pct,id:pct

- mode: ``p`` (planting) or ``c`` (clear-cutting)
- calc: ``t`` (perTree) or ``a`` (perArea)
- coordinates rounded to 3 decimals (~111 m); empty when absent
- every selected species is listed, even at 0 %

The string is base64-encoded with ``-``/``_`` in place of ``+``/``/`` and the
``=`` padding stripped. Issued links must keep decoding, so the field order
and alphabet are a versioned format: changing either breaks old links.
"""

from __future__ import annotations

import base64
import binascii
import logging
import math
from urllib.parse import parse_qs, urlsplit

from forest_impact.errors import ShareDecodeError
from forest_impact.models.schemas import CalculationMode, Region, ShareableState, SimulationMode

logger = logging.getLogger(__name__)

SHARE_PARAM = "share"

_MODE_CODES = {SimulationMode.PLANTING: "p", SimulationMode.CLEAR_CUTTING: "c"}
_CALC_CODES = {CalculationMode.PER_TREE: "t", CalculationMode.PER_AREA: "a"}
_MODES_BY_CODE = {v: k for k, v in _MODE_CODES.items()}
_CALCS_BY_CODE = {v: k for k, v in _CALC_CODES.items()}


def _round3(value: float) -> float:
    # Half-up, matching links produced by browser clients
    return math.floor(value * 1000 + 0.5) / 1000


def _fmt(value: float) -> str:
    """Shortest number text: ``45`` rather than ``45.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return repr(value) if isinstance(value, float) else str(value)


def _parse_float(text: str) -> float | None:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


# ── Compact string ───────────────────────────────────────────────────


def to_compact_string(state: ShareableState) -> str:
    parts = [
        _MODE_CODES[state.mode],
        str(state.years),
        _CALC_CODES[state.calculation_mode],
    ]

    if state.latitude is not None and state.longitude is not None:
        parts.append(f"{_fmt(_round3(state.latitude))},{_fmt(_round3(state.longitude))}")
    else:
        parts.append("")

    if state.region is not None:
        r = state.region
        parts.append(",".join(_fmt(_round3(v)) for v in (r.north, r.south, r.east, r.west)))
    else:
        parts.append("")

    parts.append(str(state.average_tree_age) if state.average_tree_age is not None else "")

    parts.append(",".join(
        f"{tree_id}:{_fmt(state.tree_percentages.get(tree_id, 0))}"
        for tree_id in state.tree_ids
    ))

    return "|".join(parts)


def from_compact_string(compact: str) -> ShareableState:
    """Parse the pipe-delimited layout.

    Mode, years and calculation mode are required; raises ShareDecodeError
    when any of them is missing or invalid. Optional fields that fail to
    parse are dropped.
    """
    parts = compact.split("|")
    if len(parts) < 3:
        raise ShareDecodeError("Missing required fields")
    parts += [""] * (7 - len(parts))

    mode = _MODES_BY_CODE.get(parts[0])
    calc = _CALCS_BY_CODE.get(parts[2])
    if mode is None or calc is None:
        raise ShareDecodeError(f"Invalid mode/calculation code: {parts[0]!r}/{parts[2]!r}")

    try:
        years = int(parts[1])
    except ValueError:
        raise ShareDecodeError(f"Invalid years value: {parts[1]!r}") from None
    if years <= 0:
        raise ShareDecodeError(f"Invalid years value: {years}")

    fields: dict = {"mode": mode, "years": years, "calculation_mode": calc}

    if parts[3]:
        coords = [_parse_float(c) for c in parts[3].split(",")]
        if len(coords) == 2 and None not in coords:
            fields["latitude"], fields["longitude"] = coords

    if parts[4]:
        coords = [_parse_float(c) for c in parts[4].split(",")]
        if len(coords) == 4 and None not in coords:
            north, south, east, west = coords
            fields["region"] = Region(north=north, south=south, east=east, west=west)

    if parts[5]:
        age = _parse_float(parts[5])
        if age is not None and int(age) > 0:
            fields["average_tree_age"] = int(age)

    tree_ids: list[str] = []
    percentages: dict[str, float] = {}
    if parts[6]:
        for item in parts[6].split(","):
            tree_id, _, pct = item.partition(":")
            if not tree_id:
                continue
            tree_ids.append(tree_id)
            value = _parse_float(pct)
            percentages[tree_id] = value if value is not None else 0.0
    fields["tree_ids"] = tree_ids
    fields["tree_percentages"] = percentages

    return ShareableState(**fields)


# ── Public API ───────────────────────────────────────────────────────


def encode(state: ShareableState) -> str:
    """Encode ``state`` as an unpadded base64url string."""
    raw = to_compact_string(state).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode(code: str) -> ShareableState | None:
    """Decode a share string; ``None`` for anything malformed, never raises."""
    try:
        padded = code + "=" * (-len(code) % 4)
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
        return from_compact_string(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        logger.info("Could not decode share string: %s", e)
        return None


def validate_state(state: ShareableState) -> bool:
    """Range checks that gate a decoded state before it drives a simulation."""
    if not math.isfinite(state.years) or not 1 <= state.years <= 100:
        return False

    if state.latitude is None and state.longitude is None and state.region is None:
        return False

    if state.latitude is not None and not (math.isfinite(state.latitude) and -90 <= state.latitude <= 90):
        return False
    if state.longitude is not None and not (math.isfinite(state.longitude) and -180 <= state.longitude <= 180):
        return False

    if state.region is not None:
        r = state.region
        if not all(math.isfinite(v) for v in (r.north, r.south, r.east, r.west)):
            return False
        if not (-90 <= r.north <= 90 and -90 <= r.south <= 90):
            return False
        if not (-180 <= r.east <= 180 and -180 <= r.west <= 180):
            return False
        if r.north <= r.south:
            return False

    values = list(state.tree_percentages.values())
    if not all(math.isfinite(v) for v in values):
        return False
    total = sum(values)
    return 0 <= total <= 100


def generate_shareable_url(state: ShareableState, base_url: str = "") -> str:
    return f"{base_url}?{SHARE_PARAM}={encode(state)}"


def get_share_parameter(url: str) -> str | None:
    values = parse_qs(urlsplit(url).query).get(SHARE_PARAM)
    return values[0] if values else None
