"""
Logging tests

Tests verbosity gating and the source-file tag on log records.
"""

from pathlib import Path
from types import SimpleNamespace

import pytest
from loguru import logger

from themebuilder.lib.log import LOG, WARN, source_enter, state_connectToLogger


@pytest.fixture
def records():
    captured = []
    handler = logger.add(lambda message: captured.append(message.record), level="DEBUG")
    yield captured
    logger.remove(handler)
    state_connectToLogger(None)


class TestLogging:
    """Test LOG and WARN"""

    def test_verbosity_gates_log(self, records):
        state_connectToLogger(SimpleNamespace(verbosity=1))
        LOG("shown", level=1)
        LOG("hidden", level=2)

        assert [r["message"] for r in records] == ["shown"]

    def test_no_state_no_log(self, records):
        state_connectToLogger(None)
        LOG("hidden", level=1)

        assert records == []

    def test_warn_without_state(self, records):
        state_connectToLogger(None)
        WARN("collision")

        assert records[0]["level"].name == "WARNING"

    def test_warn_silenced_at_zero(self, records):
        state_connectToLogger(SimpleNamespace(verbosity=0))
        WARN("collision")

        assert records == []

    def test_source_tag_nests(self, records):
        """The innermost file is tagged and the outer one restored"""
        with source_enter(Path("theme/rtconfig.txt")):
            WARN("outer")
            with source_enter(Path("theme/colors.ini")):
                WARN("inner")
            WARN("outer again")

        assert [r["extra"]["source"] for r in records] == ["rtconfig.txt", "colors.ini", "rtconfig.txt"]
