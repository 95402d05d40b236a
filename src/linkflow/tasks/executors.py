# src/linkflow/tasks/executors.py

from __future__ import annotations

"""
Host adapters for the executor ports.

- BrowserUrlOpener: hands URLs (including custom schemes like tel:// or mailto:)
  to the platform's registered handler via the webbrowser module.
- SubprocessScriptRunner: launches a local script with an interpreter chosen by
  file extension, or executes it directly.
"""

import asyncio
import logging
import os
import sys
import webbrowser
from pathlib import Path

logger = logging.getLogger(__name__)

INTERPRETERS: dict[str, list[str]] = {
    ".sh": ["sh"],
    ".bash": ["bash"],
    ".zsh": ["zsh"],
    ".py": [sys.executable or "python3"],
    ".js": ["node"],
    ".mjs": ["node"],
    ".cjs": ["node"],
    ".rb": ["ruby"],
}


class BrowserUrlOpener:
    async def open(self, url: str) -> None:
        # webbrowser may block while it spawns the handler; keep it off the loop.
        opened = await asyncio.to_thread(webbrowser.open, url)
        if not opened:
            raise RuntimeError(f"No handler accepted the URL: {url}")


def build_script_argv(path: str) -> list[str]:
    ext = Path(path).suffix.lower()
    return [*INTERPRETERS.get(ext, []), path]


class SubprocessScriptRunner:
    """
    Fire-and-forget script launcher.

    run() returns as soon as the process has started. Exit codes are collected by
    a background task and logged, so finished children do not linger as zombies.
    """

    def __init__(self) -> None:
        self._reapers: set[asyncio.Task[None]] = set()

    async def run(self, path: str) -> None:
        argv = build_script_argv(path)
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=os.path.dirname(path) or None,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
            start_new_session=True,
        )
        logger.debug("Script started pid=%s argv=%s", proc.pid, argv)

        reaper = asyncio.create_task(self._reap(proc, path))
        self._reapers.add(reaper)
        reaper.add_done_callback(self._reapers.discard)

    @staticmethod
    async def _reap(proc: asyncio.subprocess.Process, path: str) -> None:
        code = await proc.wait()
        if code == 0:
            logger.info("Script finished path=%s", path)
        else:
            logger.warning("Script exited with code %s path=%s", code, path)
