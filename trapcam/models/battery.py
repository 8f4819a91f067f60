# trapcam/models/battery.py
"""
BatteryInfo value object — the battery reading extracted from one email.

Exactly one of percentage / voltage is set by the extractor; a reading with
neither only carries the raw matched text.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BatteryInfo:
    raw_match: str
    percentage: Optional[float] = None
    voltage: Optional[float] = None

    def __post_init__(self):
        if self.percentage is not None and self.voltage is not None:
            raise ValueError("BatteryInfo carries a percentage or a voltage, not both")

    @classmethod
    def from_percentage(cls, raw_match: str, percentage: float) -> "BatteryInfo":
        return cls(raw_match=raw_match, percentage=percentage)

    @classmethod
    def from_voltage(cls, raw_match: str, voltage: float) -> "BatteryInfo":
        return cls(raw_match=raw_match, voltage=voltage)

    def describe(self) -> str:
        if self.percentage is not None:
            return f"{self.percentage:g}%"
        if self.voltage is not None:
            return f"{self.voltage:g}V"
        return self.raw_match
