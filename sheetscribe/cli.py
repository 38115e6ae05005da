"""Command line for running one workflow step per invocation."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Dict, List, Optional

from dotenv import load_dotenv

from .config import ConfigError, Settings
from .workflow import Workflow

logger = logging.getLogger(__name__)

STEPS = ("list", "submit", "poll", "summarize", "rank", "insight", "reset-token")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sheetscribe",
        description="Transcribe call recordings listed in a spreadsheet and review them with an LLM.",
    )
    parser.add_argument("--env-file", default=None, help="Load variables from this .env file first")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at debug level")
    sub = parser.add_subparsers(dest="step", required=True)

    p_list = sub.add_parser("list", help="Append gs:// URIs under a bucket path to the sheet")
    p_list.add_argument("gcs_path", help="bucket/dir/path")
    sub.add_parser("submit", help="Start transcription for rows without an operation handle")
    sub.add_parser("poll", help="Check each pending operation once and store finished transcripts")
    sub.add_parser("summarize", help="Summarize transcripts")
    sub.add_parser("rank", help="Rank summaries from 0 to 10")
    sub.add_parser("insight", help="Write improvement insights for summaries")
    sub.add_parser("reset-token", help="Clear the cached access token")
    return parser


def run(args: argparse.Namespace, workflow: Workflow) -> int:
    actions: Dict[str, Callable[[], int]] = {
        "list": lambda: workflow.list_files(args.gcs_path),
        "submit": workflow.start_transcriptions,
        "poll": workflow.fetch_transcriptions,
        "summarize": workflow.summarize,
        "rank": workflow.rank,
        "insight": workflow.insight,
    }
    if args.step == "reset-token":
        workflow.credentials.reset()
        return 0
    return actions[args.step]()


def main(argv: Optional[List[str]] = None, workflow: Optional[Workflow] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if workflow is None:
        load_dotenv(args.env_file)
        try:
            workflow = Workflow.from_settings(Settings.from_env())
        except ConfigError as exc:
            print(f"[ERR] {exc}", file=sys.stderr)
            return 2
    try:
        written = run(args, workflow)
    except Exception:
        logger.exception("Step %s failed", args.step)
        return 1
    print(f"{args.step}: {written} cell(s) written")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
