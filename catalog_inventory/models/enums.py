"""
Model Enums
"""

from enum import Enum


class VariationType(Enum):
    NONE = "NONE"
    ONLY_SIZE = "OnlySize"
    ONLY_COLOR = "OnlyColor"
    SIZE_AND_COLOR = "SizeAndColor"

    @property
    def requires_size(self):
        return self in (VariationType.ONLY_SIZE, VariationType.SIZE_AND_COLOR)

    @property
    def requires_color(self):
        return self in (VariationType.ONLY_COLOR, VariationType.SIZE_AND_COLOR)


class OutboxStatus(Enum):
    PENDING = "PENDING"
    CLAIMED = "CLAIMED"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"  # dead-letter, terminal
