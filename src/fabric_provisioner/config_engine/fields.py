"""Field validators for primitive value formats.

Pure functions: each returns a FieldCheck that is truthy on accept and carries
a human-readable reason on reject. Nothing here raises for bad input; the
caller decides where the reason is recorded.
"""
import re
from dataclasses import dataclass
from typing import Iterable

NAME_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.:-]{0,31}")
UUID_SUFFIX_PATTERN = re.compile(r"[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}")
UUID_PREFIX_PATTERN = re.compile(r"[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}")
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
OCTET_PATTERN = re.compile(r"[0-9]{1,3}")

TRUE_WORDS = {"yes", "true"}
FALSE_WORDS = {"no", "false"}


@dataclass(frozen=True)
class FieldCheck:
    """Accept/reject verdict for one value."""
    ok: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.ok


ACCEPT = FieldCheck(True)


def reject(reason: str) -> FieldCheck:
    return FieldCheck(False, reason)


def is_dotted_quad(value: str) -> FieldCheck:
    """Four dot-separated integers, each in [0, 255]."""
    parts = value.split(".")
    if len(parts) != 4:
        return reject(f"'{value}' is not a dotted-quad address")

    for part in parts:
        if not OCTET_PATTERN.fullmatch(part):
            return reject(f"'{value}' has a non-numeric segment '{part}'")
        if int(part) > 255:
            return reject(f"'{value}' has segment {part} outside 0-255")

    return ACCEPT


def dotted_quad_value(value: str) -> int:
    """Integer value of an address accepted by is_dotted_quad (leading zeros allowed)."""
    return int.from_bytes(bytes(int(part) for part in value.split(".")), "big")


def is_colon_hex(value: str, groups: int) -> FieldCheck:
    """Colon-separated two-digit hex groups, exactly ``groups`` of them.

    6 groups is a MAC address, 8 groups a WWN.
    """
    parts = value.split(":")
    if len(parts) != groups:
        return reject(f"'{value}' must have {groups} colon-separated hex groups, found {len(parts)}")

    for part in parts:
        if len(part) != 2 or not all(c in "0123456789abcdefABCDEF" for c in part):
            return reject(f"'{value}' has an invalid hex group '{part}'")

    return ACCEPT


def is_uuid_suffix(value: str) -> FieldCheck:
    """UUID suffix in the form XXXX-XXXXXXXXXXXX."""
    if UUID_SUFFIX_PATTERN.fullmatch(value):
        return ACCEPT
    return reject(f"'{value}' is not a UUID suffix (XXXX-XXXXXXXXXXXX)")


def is_uuid_prefix(value: str) -> FieldCheck:
    """UUID prefix in the form XXXXXXXX-XXXX-XXXX, or 'derived'."""
    if value == "derived" or UUID_PREFIX_PATTERN.fullmatch(value):
        return ACCEPT
    return reject(f"'{value}' is not a UUID prefix (XXXXXXXX-XXXX-XXXX or 'derived')")


def is_int_in_range(value: str, lo: int, hi: int) -> FieldCheck:
    """Decimal integer between lo and hi inclusive."""
    if not INTEGER_PATTERN.fullmatch(value):
        return reject(f"'{value}' is not an integer")

    number = int(value)
    if number < lo or number > hi:
        return reject(f"{number} is outside {lo}-{hi}")

    return ACCEPT


def is_one_of(value: str, choices: Iterable[str], ignore_case: bool = False) -> FieldCheck:
    """Member of a closed set of values."""
    allowed = list(choices)
    if ignore_case:
        matched = value.lower() in {c.lower() for c in allowed}
    else:
        matched = value in allowed
    if matched:
        return ACCEPT
    return reject(f"'{value}' is not one of: {', '.join(allowed)}")


def is_tag(value: str, lo: int = 1, hi: int = 4095) -> FieldCheck:
    """Network tag: empty, or an integer in [lo, hi]."""
    if value == "":
        return ACCEPT
    return is_int_in_range(value, lo, hi)


def is_name(value: str) -> FieldCheck:
    """Object name: 1-32 characters of [A-Za-z0-9_.:-], alphanumeric first."""
    if NAME_PATTERN.fullmatch(value):
        return ACCEPT
    if not value:
        return reject("name is empty")
    if len(value) > 32:
        return reject(f"'{value}' is longer than 32 characters")
    return reject(f"'{value}' may only contain letters, digits and _ . : -")


def is_flag(value: str) -> FieldCheck:
    """Boolean word: yes/no or true/false, any case."""
    if value.lower() in TRUE_WORDS | FALSE_WORDS:
        return ACCEPT
    return reject(f"'{value}' is not yes/no")


def parse_flag(value: str) -> bool:
    """Convert an already-accepted boolean word."""
    return value.lower() in TRUE_WORDS
