"""Mulmo CLI wrapper – audio, image and movie generation from a MulmoScript."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil

import config
from services.errors import CommandError

logger = logging.getLogger("mca.mulmo")


def check_mulmo(command: str = config.MULMO_COMMAND) -> bool:
    """Return True if the mulmo binary is available on PATH."""
    return shutil.which(command) is not None


async def generate_audio(script_path: str, bgm_path: str | None = None) -> str:
    return await _run_mulmo(["audio", script_path], "generate audio", bgm_path)


async def generate_images(script_path: str, bgm_path: str | None = None) -> str:
    return await _run_mulmo(["images", script_path], "generate images", bgm_path)


async def generate_movie(
    script_path: str,
    caption_lang: str | None = None,
    bgm_path: str | None = None,
) -> str:
    """Render the final movie, burning captions in ``caption_lang`` when given."""
    args = ["movie", script_path]
    if caption_lang:
        args.extend(["-c", caption_lang])
    return await _run_mulmo(args, "generate movie", bgm_path)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
async def _run_mulmo(args: list[str], description: str, bgm_path: str | None = None) -> str:
    """Run a mulmo command as a child process and return its stdout."""
    cmd = [config.MULMO_COMMAND, *args]
    env = dict(os.environ)
    if bgm_path:
        env["PATH_BGM"] = bgm_path

    logger.info("mulmo [%s]: %s", description, " ".join(cmd))
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
    except OSError as e:
        logger.error("mulmo could not be started [%s]: %s", description, e)
        raise CommandError(f"Command failed ({description}): {e}") from e

    try:
        out, err = await proc.communicate()
    except asyncio.CancelledError:
        logger.warning("mulmo cancelled [%s], killing pid %s", description, proc.pid)
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        raise
    stdout = (out or b"").decode("utf-8", errors="replace")
    stderr = (err or b"").decode("utf-8", errors="replace")

    if proc.returncode != 0:
        stderr, stdout = stderr[-2000:], stdout[-2000:]
        logger.error("mulmo failed [%s] (exit %d): %s", description, proc.returncode, stderr)
        raise CommandError(
            f"Command failed ({description}, exit {proc.returncode})\n"
            f"stderr: {stderr}\nstdout: {stdout}",
            stdout=stdout,
            stderr=stderr,
        )

    if stderr and "Warning" not in stderr:
        logger.warning("mulmo [%s] stderr: %s", description, stderr[-2000:])
    logger.info("mulmo [%s] completed successfully.", description)
    return stdout
