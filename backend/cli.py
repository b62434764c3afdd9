"""Command-line entry point: run the content pipeline once for a URL."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import config
from services.errors import PipelineError
from services.pipeline import ContentPipeline

logger = logging.getLogger("mca.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate a MulmoScript and its audio, images and video from a web page.",
    )
    parser.add_argument("url", help="Page to turn into content")
    parser.add_argument("--style", default=config.DEFAULT_STYLE, help="ghibli or business (default: %(default)s)")
    parser.add_argument("--subtitles", action="store_true", help="Burn subtitles into the video")
    parser.add_argument("--output-dir", default=str(config.OUTPUT_DIR), help="Output directory (default: %(default)s)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )

    pipeline = ContentPipeline(output_dir=args.output_dir)

    def on_progress(progress: int, message: str) -> None:
        logger.info("%3d%% %s", progress, message)

    try:
        result = asyncio.run(
            pipeline.generate_content_from_url(
                args.url,
                style=args.style,
                subtitles=args.subtitles,
                on_progress=on_progress,
            )
        )
    except PipelineError as e:
        logger.error("Generation failed: %s", e)
        return 1

    print(result.model_dump_json(by_alias=True, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
