"""
Main entry point for docfetch.

Fetches one PDF through a warmed-up headless browser page:
  python main.py                                  # default RBI notification
  python main.py --url https://host/doc.PDF --warmup-url https://host/
  PUPPETEER_BROWSER=firefox python main.py        # use the Firefox family
"""
import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger
from pydantic import ValidationError

from docfetch.config import BROWSER_ENV_VAR, load_settings
from docfetch.pipeline import run
from docfetch.utils.logging_config import configure_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Download a PDF through a headless browser after a warm-up navigation."
    )
    parser.add_argument("--url", default=None, help="Document URL (env DOCFETCH_PDF_URL)")
    parser.add_argument("--warmup-url", default=None, help="Page visited before the fetch (env DOCFETCH_WARMUP_URL)")
    parser.add_argument(
        "--browser",
        default=None,
        help=f"Browser kind: chrome, edge or firefox (env {BROWSER_ENV_VAR}, default edge)",
    )
    parser.add_argument("--output-dir", type=Path, default=None, help="Where the PDF is written (default: cwd)")
    parser.add_argument("--cache-dir", type=Path, default=None, help="Browser cache directory (default: .browser-cache)")
    parser.add_argument(
        "--wait-until",
        choices=["domcontentloaded", "load", "networkidle", "commit"],
        default=None,
        help="Warm-up wait strategy (default: domcontentloaded)",
    )
    parser.add_argument("--timeout-ms", type=int, default=None, help="Warm-up navigation timeout in ms (default: 60000)")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--log-level", default=None, help="Log level (env LOG_LEVEL, default INFO)")
    parser.add_argument("--no-log-file", action="store_true", help="Log to stderr only")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logger(level=args.log_level, log_file=None if args.no_log_file else "docfetch.log")

    try:
        settings = load_settings(
            pdf_url=args.url,
            warmup_url=args.warmup_url,
            browser=args.browser,
            output_dir=args.output_dir,
            cache_dir=args.cache_dir,
            wait_until=args.wait_until,
            nav_timeout_ms=args.timeout_ms,
            headless=False if args.headed else None,
        )
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    result = run(settings)
    if result.ok:
        logger.success(result.message)
        return 0

    logger.error(f"Run finished with status {result.status.value}: {result.message}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
