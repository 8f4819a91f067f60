# tests/test_battery_extractor.py
"""Unit tests for battery extraction from email bodies."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from trapcam.models.battery import BatteryInfo
from trapcam.services.battery_extractor import extract_battery_info, html_to_text


class TestPercentage:
    def test_html_percentage(self):
        info = extract_battery_info("<html><body><p>Battery: 87%</p></body></html>")
        assert info.percentage == 87
        assert info.voltage is None
        assert info.raw_match == "battery: 87%"

    def test_decimal_percentage(self):
        info = extract_battery_info("Battery level: 45.5 %")
        assert info.percentage == 45.5

    def test_percentage_without_label(self):
        info = extract_battery_info("Temp 12C, 63%")
        assert info.percentage == 63

    @pytest.mark.parametrize("body,expected", [
        ("Batterie: 70%", 70),
        ("Batteri 55%", 55),
        ("Akku: 20%", 20),
        ("Batería: 99%", 99),
    ])
    def test_localized_labels(self, body, expected):
        info = extract_battery_info(body)
        assert info.percentage == expected
        assert info.raw_match.startswith(body.lower()[:4])


class TestVoltage:
    def test_voltage(self):
        info = extract_battery_info("<p>Battery: 6.2V</p>")
        assert info.voltage == 6.2
        assert info.percentage is None

    def test_volts_suffix(self):
        info = extract_battery_info("battery 12 volts")
        assert info.voltage == 12


class TestPrecedence:
    def test_percentage_wins_over_voltage(self):
        info = extract_battery_info("<p>Battery: 12.4V</p><p>Battery: 87%</p>")
        assert info.percentage == 87
        assert info.voltage is None


class TestNothingFound:
    @pytest.mark.parametrize("body", [None, "", "<p>Hello from your camera</p>"])
    def test_returns_none(self, body):
        assert extract_battery_info(body) is None

    def test_script_content_ignored(self):
        body = '<script>var level = "5%";</script><style>.x{width:50%}</style><p>Battery: 60%</p>'
        assert extract_battery_info(body).percentage == 60

    def test_html_to_text_plain_passthrough(self):
        assert html_to_text("Battery 10%") == "Battery 10%"


class TestBatteryInfo:
    def test_rejects_both_readings(self):
        with pytest.raises(ValueError):
            BatteryInfo(raw_match="x", percentage=50, voltage=6.0)

    def test_describe(self):
        assert BatteryInfo.from_percentage("87%", 87.0).describe() == "87%"
        assert BatteryInfo.from_voltage("6.2v", 6.2).describe() == "6.2V"
