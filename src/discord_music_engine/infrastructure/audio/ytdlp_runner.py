"""StreamExtractor implementation that shells out to the yt-dlp CLI."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any, Final

from discord_music_engine.application.interfaces.stream_extractor import StreamExtractor
from discord_music_engine.config.settings import AudioSettings, ExtractionSettings
from discord_music_engine.domain.shared.exceptions import StreamUnavailableError
from discord_music_engine.domain.shared.messages import ErrorMessages, LogTemplates
from discord_music_engine.infrastructure.audio.models import (
    LOG_TARGET_TRUNCATE,
    STDERR_TAIL_LINES,
    YtDlpCommand,
    output_template,
)

logger = logging.getLogger(__name__)

_HTTP_LINE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^https?://\S+$")


class YtDlpProcessRunner(StreamExtractor):
    """Runs yt-dlp as an asyncio subprocess with a hard wall-clock timeout.

    The process is killed when the timeout expires. Output is parsed
    best-effort; anything unusable surfaces as StreamUnavailableError.
    """

    def __init__(
        self,
        settings: ExtractionSettings | None = None,
        audio_settings: AudioSettings | None = None,
    ) -> None:
        self._settings = settings or ExtractionSettings()
        self._format = (audio_settings or AudioSettings()).ytdlp_format

    async def dump_json(self, target: str, timeout: float) -> list[dict[str, Any]]:
        command = YtDlpCommand(executable=self._settings.executable, target=target, dump_json=True)
        stdout = await self._run(command, timeout)

        entries: list[dict[str, Any]] = []
        for line in stdout.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                logger.debug(ErrorMessages.EXTRACTOR_BAD_JSON)
                continue
            if isinstance(data, dict):
                entries.append(data)
        return entries

    async def get_stream_url(self, target: str, timeout: float) -> str:
        command = YtDlpCommand(
            executable=self._settings.executable,
            target=target,
            get_url=True,
            format=self._format,
        )
        stdout = await self._run(command, timeout)

        for line in stdout.splitlines():
            line = line.strip()
            if _HTTP_LINE_PATTERN.match(line):
                return line
        raise StreamUnavailableError(target, ErrorMessages.EXTRACTOR_NO_OUTPUT)

    async def download_audio(self, target: str, dest_dir: Path, stem: str, timeout: float) -> Path:
        dest_dir.mkdir(parents=True, exist_ok=True)
        command = YtDlpCommand(
            executable=self._settings.executable,
            target=target,
            extract_audio=True,
            format=self._format,
            output_template=output_template(dest_dir, stem),
            print_field="after_move:filepath",
        )
        stdout = await self._run(command, timeout)

        for line in reversed(stdout.splitlines()):
            candidate = Path(line.strip())
            if line.strip() and candidate.is_file():
                logger.debug(LogTemplates.DOWNLOAD_COMPLETE, target, candidate)
                return candidate

        matches = sorted(p for p in dest_dir.glob(f"{stem}.*") if p.is_file())
        if matches:
            logger.debug(LogTemplates.DOWNLOAD_COMPLETE, target, matches[0])
            return matches[0]
        raise StreamUnavailableError(target, ErrorMessages.DOWNLOAD_FILE_MISSING)

    async def _run(self, command: YtDlpCommand, timeout: float) -> str:
        target = command.target
        logger.debug(LogTemplates.EXTRACTOR_RUNNING, target[:LOG_TARGET_TRUNCATE])

        try:
            proc = await asyncio.create_subprocess_exec(
                *command.argv(),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise StreamUnavailableError(target, ErrorMessages.EXTRACTOR_NOT_FOUND) from exc

        try:
            async with asyncio.timeout(timeout):
                stdout, stderr = await proc.communicate()
        except TimeoutError:
            await self._kill(proc)
            logger.warning(LogTemplates.EXTRACTOR_TIMEOUT, timeout, target[:LOG_TARGET_TRUNCATE])
            raise StreamUnavailableError(target, ErrorMessages.EXTRACTOR_TIMEOUT % timeout) from None
        except asyncio.CancelledError:
            await self._kill(proc)
            raise

        if proc.returncode != 0:
            reason = _stderr_tail(stderr)
            logger.warning(LogTemplates.EXTRACTOR_FAILED, target[:LOG_TARGET_TRUNCATE], reason)
            raise StreamUnavailableError(
                target, ErrorMessages.EXTRACTOR_EXIT_CODE % (proc.returncode, reason)
            )

        return stdout.decode("utf-8", errors="ignore")

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()


def _stderr_tail(stderr: bytes) -> str:
    lines = [ln for ln in stderr.decode("utf-8", errors="ignore").splitlines() if ln.strip()]
    return " | ".join(lines[-STDERR_TAIL_LINES:]) or "no error output"
