"""
Unit Tests for logging utilities

Tests for:
- guild_context / current_guild_id
- GuildContextFilter
- ColoredFormatter
"""

import asyncio
import logging
from io import StringIO
from unittest.mock import patch

import pytest
from conftest import GUILD_ID

from discord_music_engine.utils.logging import (
    ColoredFormatter,
    GuildContextFilter,
    current_guild_id,
    guild_context,
)

RESET = "\033[0m"


def _record(level: int = logging.INFO, message: str = "hello") -> logging.LogRecord:
    return logging.makeLogRecord(
        {"name": "test.logger", "levelno": level, "levelname": logging.getLevelName(level), "msg": message}
    )


class _TtyStream(StringIO):
    def isatty(self) -> bool:
        return True


# =============================================================================
# Guild Context Tests
# =============================================================================


class TestGuildContext:
    """Unit tests for per-guild log tagging."""

    def test_context_is_scoped(self):
        assert current_guild_id() is None
        with guild_context(GUILD_ID):
            assert current_guild_id() == GUILD_ID
            with guild_context(42):
                assert current_guild_id() == 42
            assert current_guild_id() == GUILD_ID
        assert current_guild_id() is None

    def test_filter_stamps_guild(self):
        record = _record()
        with guild_context(GUILD_ID):
            assert GuildContextFilter().filter(record) is True
        assert record.guild_id == GUILD_ID

    def test_filter_outside_context(self):
        record = _record()
        GuildContextFilter().filter(record)
        assert record.guild_id == "-"

    def test_filter_keeps_explicit_guild(self):
        """Should not overwrite a guild passed through ``extra``."""
        record = _record()
        record.guild_id = 7
        with guild_context(GUILD_ID):
            GuildContextFilter().filter(record)
        assert record.guild_id == 7

    @pytest.mark.asyncio
    async def test_tasks_do_not_leak_context(self):
        seen: dict[str, int | None] = {}

        async def tagged():
            with guild_context(GUILD_ID):
                await asyncio.sleep(0)
                seen["tagged"] = current_guild_id()

        async def plain():
            await asyncio.sleep(0)
            seen["plain"] = current_guild_id()

        await asyncio.gather(tagged(), plain())

        assert seen == {"tagged": GUILD_ID, "plain": None}


# =============================================================================
# ColoredFormatter Tests
# =============================================================================


class TestColoredFormatter:
    """Unit tests for ANSI color formatting."""

    @pytest.mark.parametrize("level", [logging.DEBUG, logging.WARNING, logging.CRITICAL])
    def test_colors_on_tty(self, level, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        fmt = ColoredFormatter("%(levelname)s | %(message)s", stream=_TtyStream())

        output = fmt.format(_record(level))

        assert output.startswith(ColoredFormatter.COLORS[level])
        assert RESET in output

    def test_no_color_env(self):
        fmt = ColoredFormatter("%(levelname)s | %(message)s", stream=_TtyStream())

        with patch.dict("os.environ", {"NO_COLOR": "1"}):
            assert fmt.format(_record()) == "INFO | hello"

    def test_plain_when_not_a_tty(self):
        fmt = ColoredFormatter("%(levelname)s | %(message)s", stream=StringIO())
        assert fmt.format(_record(logging.ERROR)) == "ERROR | hello"

    def test_record_is_not_mutated(self, monkeypatch):
        """Should color a copy so other handlers see the plain levelname."""
        monkeypatch.delenv("NO_COLOR", raising=False)
        fmt = ColoredFormatter("%(levelname)s", stream=_TtyStream())
        record = _record(logging.WARNING)

        fmt.format(record)

        assert record.levelname == "WARNING"
