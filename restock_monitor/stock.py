"""Stock status classification.

A product page is classified by two regular expressions configured per
target.  Out-of-stock phrasing wins over in-stock phrasing so an ambiguous
page never produces an alert.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .scraper import Target


class Status(str, Enum):
    IN = "IN"
    OOS = "OOS"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: object) -> "Status":
        """Map a stored string back to a Status; anything unrecognised is UNKNOWN."""
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.UNKNOWN


def _matches(pattern: str, text: str) -> bool:
    return re.search(pattern, text, flags=re.IGNORECASE) is not None


def detect_stock(text: str, target: "Target") -> Status:
    if _matches(target.out_of_stock_pattern, text):
        return Status.OOS
    if _matches(target.in_stock_pattern, text):
        return Status.IN
    return Status.UNKNOWN


__all__ = ["Status", "detect_stock"]
