# trapcam/services/battery_extractor.py
"""
Battery telemetry extraction from trail-camera email bodies.

Camera firmware sends HTML or plain-text reports in many languages. The body
is reduced to lower-cased text, then searched for a battery percentage and,
failing that, a battery voltage. Extraction is best-effort and never raises.
"""

import re
from html.parser import HTMLParser
from typing import Optional

from trapcam.models.battery import BatteryInfo
from trapcam.utils.logger import get_logger

logger = get_logger(__name__)

# Battery labels as they appear in camera reports, per language
BATTERY_KEYWORDS = (
    "battery", "battery level",                 # English
    "batteri", "batterinivå",                   # Swedish / Norwegian / Danish
    "batterie", "niveau de batterie",           # French
    "batterij", "batterijniveau",               # Dutch
    "bateria", "nível da bateria",              # Portuguese
    "batería", "nivel de batería",              # Spanish
    "batteria", "livello batteria",             # Italian
    "akku", "akku stand", "akkustand",          # German (colloquial)
    "batteriestand",                            # German (formal)
    "μπαταρία", "επίπεδο μπαταρίας",            # Greek
    "バッテリー", "バッテリー残量",                 # Japanese
    "배터리", "배터리 수준",                        # Korean
    "poziom baterii",                           # Polish
    "аккумулятор", "уровень заряда",            # Russian
    "pil", "seviye pil",                        # Turkish
    "batarya", "batarya seviyesi",              # Turkish (alt form)
    "แบตเตอรี่", "ระดับแบตเตอรี่", "แบต",             # Thai
    "pin", "mức pin",                           # Vietnamese
    "carga de batería", "stato batteria",       # Spanish / Italian (alt)
    "电池", "电池电量",                           # Simplified Chinese
    "電池", "電池電量",                           # Traditional Chinese
    "akku taso",                                # Finnish
    "batteriniveau",                            # Danish
)


def _label_pattern() -> str:
    # Longest first so "battery level" wins over "battery"
    keywords = sorted(set(BATTERY_KEYWORDS), key=len, reverse=True)
    alternation = "|".join(re.escape(k).replace(r"\ ", r"\s*") for k in keywords)
    return rf"(?P<label>(?:battery\s*level|battery|batteri[eja]?|{alternation})[:\s]*)?"


_LABEL = _label_pattern()

BATTERY_PERCENTAGE_RE = re.compile(
    _LABEL + r"(?P<value>\d{1,3}(?:\.\d+)?\s*%)",
    re.IGNORECASE,
)
BATTERY_VOLTAGE_RE = re.compile(
    _LABEL + r"(?P<value>\d{1,3}(?:\.\d+)?\s*(?:volts|volt|v)\b)",
    re.IGNORECASE,
)

_TAG_RE = re.compile(r"<[^>]+>")
_NON_NUMERIC_RE = re.compile(r"[^\d.]")


class _TextCollector(HTMLParser):
    """Collects text nodes, skipping anything inside <script> or <style>."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in ("script", "style"):
            self._skip_depth += 1

    def handle_endtag(self, tag):
        if tag in ("script", "style") and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data):
        if not self._skip_depth:
            text = data.strip()
            if text:
                self.parts.append(text)


def html_to_text(content: str) -> str:
    """Plain text of an HTML (or already plain) email body."""
    try:
        parser = _TextCollector()
        parser.feed(content)
        parser.close()
        if parser.parts:
            return " ".join(parser.parts)
    except Exception as e:
        logger.debug(f"[BATTERY] HTML parse failed, stripping tags instead: {e}")
    return _TAG_RE.sub(" ", content)


def extract_battery_info(raw_content: Optional[str]) -> Optional[BatteryInfo]:
    """
    Find a battery reading in an email body.
    Percentage is tried before voltage. Returns None when nothing matches.
    """
    if not raw_content:
        return None

    try:
        text = html_to_text(raw_content).lower()

        match = BATTERY_PERCENTAGE_RE.search(text)
        if match:
            value = match.group("value").replace("%", "").strip()
            try:
                percentage = float(value)
            except ValueError:
                percentage = None
            if percentage is not None:
                logger.info(f"[BATTERY] Extracted battery percentage: {percentage:g}%")
                return BatteryInfo.from_percentage(match.group(0), percentage)

        match = BATTERY_VOLTAGE_RE.search(text)
        if match:
            value = _NON_NUMERIC_RE.sub("", match.group("value")).strip(".")
            try:
                voltage = float(value)
            except ValueError:
                voltage = None
            if voltage is not None:
                logger.info(f"[BATTERY] Extracted battery voltage: {voltage:g}V")
                return BatteryInfo.from_voltage(match.group(0), voltage)

        return None
    except Exception as e:
        logger.error(f"[BATTERY] Error extracting battery information: {e}", exc_info=True)
        return None
