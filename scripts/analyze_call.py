#!/usr/bin/env python3
"""Uploads a sales call recording and polls until the analysis is COMPLETE or FAILED.
   Usage: python3 scripts/analyze_call.py call.mp3 --token <JWT> [--description "..."]
   Token: POST /auth/login (form fields email, password)."""
import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from callsight.client import DEFAULT_POLL_INTERVAL, AnalysisPoller, PollingError, PollingTimeout  # noqa: E402
from callsight.logging import setup_logging  # noqa: E402


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run a call recording through conversation intelligence.")
    parser.add_argument("audio", type=Path, help="MP3, WAV or M4A recording")
    parser.add_argument("--token", required=True, help="Bearer token from /auth/login")
    parser.add_argument("--base-url", default="http://127.0.0.1:8000")
    parser.add_argument("--description", default=None, help="Optional call context for the analysis")
    parser.add_argument("--interval", type=float, default=DEFAULT_POLL_INTERVAL, help="Seconds between polls")
    parser.add_argument("--timeout", type=float, default=None, help="Give up after this many seconds")
    parser.add_argument("--output", type=Path, default=None, help="Write the final record here as JSON")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(level=logging.INFO)
    if not args.audio.is_file():
        print("Not found:", args.audio)
        return 1

    with AnalysisPoller(args.base_url, args.token) as poller:
        try:
            analysis_id = poller.upload(args.audio, args.description)
            print("Analysis id:", analysis_id)
            record = poller.wait_for_result(analysis_id, interval=args.interval, timeout=args.timeout)
        except PollingTimeout as e:
            print("Timed out:", e)
            return 2
        except PollingError as e:
            print("Error:", e)
            return 1

    output = json.dumps(record, indent=2, ensure_ascii=False)
    if args.output:
        args.output.write_text(output, encoding="utf-8")
        print("Saved:", args.output)
    else:
        print(output)
    if record.get("status") == "FAILED":
        print("Analysis failed:", record.get("errorDetail"))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
