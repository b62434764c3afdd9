"""Content pipeline – URL → MulmoScript → audio, images and movie."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import httpx

import config
from models import JobResult
from services import mulmo_cli
from services.errors import FetchError
from services.extractor import extract_text_from_html
from services.script_generator import generate_script

logger = logging.getLogger("mca.pipeline")

ProgressHook = Callable[[int, str], None]

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                  "AppleWebKit/537.36 (KHTML, like Gecko) "
                  "Chrome/120.0.0.0 Safari/537.36",
}


def make_timestamp(now: datetime | None = None) -> str:
    """Filesystem-safe UTC stamp, e.g. ``2025-07-13T14-30-00-000Z``."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


class ContentPipeline:
    """
    Turns a web page into a MulmoScript and drives ``mulmo`` over it.

    Network calls and ``mulmo`` runs are awaited on the event loop, so a
    stalled step only suspends its own job. Progress is reported through the
    optional ``on_progress(progress, message)`` hook at each stage boundary.
    """

    def __init__(
        self,
        output_dir: str | Path = config.OUTPUT_DIR,
        bgm_path: str | None = config.BGM_PATH,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.bgm_path = bgm_path

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    async def fetch_web_content(self, url: str) -> str:
        logger.info("Fetching content from %s", url)
        try:
            # no timeout on the page fetch
            async with httpx.AsyncClient(follow_redirects=True, timeout=None, headers=HEADERS) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch URL: {e}") from e
        return resp.text

    def save_script(self, script: dict[str, Any], filename: str) -> str:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        path.write_text(json.dumps(script, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("MulmoScript saved: %s", path)
        return str(path)

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------
    async def generate_content_from_url(
        self,
        url: str,
        style: str = config.DEFAULT_STYLE,
        subtitles: bool = False,
        on_progress: Optional[ProgressHook] = None,
    ) -> JobResult:
        """
        Steps:
          1. Fetch the page and extract its text
          2. Generate a MulmoScript with the LLM
          3. Save the script to the output directory
          4. mulmo audio / images / movie
        """
        report = on_progress or (lambda progress, message: None)
        timestamp = make_timestamp()
        script_filename = f"script_{timestamp}.json"

        report(10, "Fetching content from URL…")
        html = await self.fetch_web_content(url)

        report(20, "Analysing content…")
        text = await asyncio.to_thread(extract_text_from_html, html[: config.MAX_HTML_CHARS])

        report(30, "Generating MulmoScript…")
        script = await generate_script(text, style)

        report(40, "Saving MulmoScript…")
        script_path = self.save_script(script, script_filename)

        report(50, "Generating audio…")
        await mulmo_cli.generate_audio(script_path, self.bgm_path)
        report(60, "Audio generated")

        report(70, "Generating images…")
        await mulmo_cli.generate_images(script_path, self.bgm_path)
        report(80, "Images generated")

        report(90, "Generating video…")
        caption_lang = (script.get("lang") or config.SCRIPT_LANG) if subtitles else None
        await mulmo_cli.generate_movie(script_path, caption_lang, self.bgm_path)
        report(95, "Video generated")

        logger.info("Content generation complete. Output directory: %s", self.output_dir)
        return JobResult(
            script_path=script_path,
            output_dir=str(self.output_dir),
            timestamp=timestamp,
        )
