"""
SKU Value Object

A garment SKU is five hyphen-separated fields: style, waist, shape, length
and wash (``ST-32-R-32-RAW``). Every field is checked against its format
and its domain range; a constructed ``SKUCode`` is always valid.
"""

import re
from dataclasses import dataclass, replace
from enum import Enum

from ...shared.exceptions import SKUFormatError, ValidationError

SKU_DELIMITER = "-"
UNIVERSAL_LENGTH = "00"

FIELD_PATTERNS: dict[str, re.Pattern[str]] = {
    "style": re.compile(r"[A-Z]{2}"),
    "waist": re.compile(r"[0-9]{2}"),
    "shape": re.compile(r"[A-Z]"),
    "length": re.compile(r"[0-9]{2}"),
    "wash": re.compile(r"[A-Z]{3}"),
}

FIELD_ORDER = ("style", "waist", "shape", "length", "wash")

VALID_STYLES = frozenset({"ST", "SL", "SK", "PT"})
WAIST_RANGE = (23, 48)
LENGTH_RANGE = (26, 40)
UNIVERSAL_SHAPE = "U"
VALID_SHAPES = frozenset({"S", "R", "L", UNIVERSAL_SHAPE})
VALID_WASHES = frozenset({"RAW", "IND", "BLK", "STA", "DRK"})


class WashGroup(str, Enum):
    """Coarse wash classification gating shared wash bins."""

    LIGHT = "LIGHT"
    DARK = "DARK"


WASH_GROUPS: dict[str, WashGroup] = {
    "RAW": WashGroup.LIGHT,
    "IND": WashGroup.LIGHT,
    "STA": WashGroup.LIGHT,
    "BLK": WashGroup.DARK,
    "DRK": WashGroup.DARK,
}


def wash_group(wash: str) -> WashGroup:
    """Return the wash group for a wash code."""
    try:
        return WASH_GROUPS[wash]
    except KeyError:
        raise ValidationError(
            "wash", wash, "Unknown wash code", code="INVALID_WASH_CODE"
        ) from None


def _check_range(field_name: str, value: str) -> None:
    if field_name == "style" and value not in VALID_STYLES:
        raise SKUFormatError(value, f"Unknown style '{value}'")
    if field_name == "waist":
        low, high = WAIST_RANGE
        if not low <= int(value) <= high:
            raise SKUFormatError(value, f"Waist {value} outside {low}-{high}")
    if field_name == "shape" and value not in VALID_SHAPES:
        raise SKUFormatError(value, f"Unknown shape '{value}'")
    if field_name == "length" and value != UNIVERSAL_LENGTH:
        low, high = LENGTH_RANGE
        if not low <= int(value) <= high:
            raise SKUFormatError(value, f"Length {value} outside {low}-{high}")
    if field_name == "wash" and value not in VALID_WASHES:
        raise SKUFormatError(value, f"Unknown wash '{value}'")


@dataclass(frozen=True)
class SKUCode:
    """Immutable, validated garment SKU."""

    style: str
    waist: str
    shape: str
    length: str
    wash: str

    def __post_init__(self) -> None:
        for field_name in FIELD_ORDER:
            value = getattr(self, field_name)
            if not isinstance(value, str) or not FIELD_PATTERNS[field_name].fullmatch(value):
                raise SKUFormatError(
                    value, f"Field '{field_name}' has an invalid format"
                )
            _check_range(field_name, value)

    @classmethod
    def parse(cls, code: str) -> "SKUCode":
        """Parse a SKU string.

        Raises:
            SKUFormatError: If the code is not five valid fields.
        """
        if not isinstance(code, str):
            raise SKUFormatError(code, "SKU must be a string")
        parts = code.split(SKU_DELIMITER)
        if len(parts) != len(FIELD_ORDER):
            raise SKUFormatError(
                code, f"Expected {len(FIELD_ORDER)} fields, got {len(parts)}"
            )
        return cls(**dict(zip(FIELD_ORDER, parts)))

    def format(self) -> str:
        return SKU_DELIMITER.join(getattr(self, name) for name in FIELD_ORDER)

    def __str__(self) -> str:
        return self.format()

    @property
    def prefix(self) -> str:
        """Style and waist, the components that are never substituted."""
        return f"{self.style}{SKU_DELIMITER}{self.waist}"

    @property
    def has_universal_length(self) -> bool:
        return self.length == UNIVERSAL_LENGTH

    @property
    def wash_group(self) -> WashGroup:
        return wash_group(self.wash)

    def with_length(self, length: int | str) -> "SKUCode":
        """Return a copy with the length field replaced (zero-padded)."""
        if isinstance(length, int):
            length = f"{length:02d}"
        return replace(self, length=length)


def parse_sku(code: str) -> SKUCode:
    return SKUCode.parse(code)


def format_sku(sku: SKUCode) -> str:
    return sku.format()
