"""Command-line entry point for the video subtitler.

WHY: Operators need to start the API server, and it is handy to turn an
already-downloaded transcript into SRT, or preview what a style resolves
to, without going through HTTP.

HOW: argparse with one subcommand per task:
  serve — run the FastAPI app with uvicorn
  srt   — segment the words of a saved AssemblyAI transcript JSON into SRT
  style — print the resolved style and the ffmpeg force_style string

RULES:
- Status and error messages go to stderr; SRT/style output to stdout
  unless --output is given
- Exit code 1 on any user-facing error
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from video_subtitler import __version__
from video_subtitler.config import MAX_SEGMENT_DURATION_MS
from video_subtitler.core.ir import Word
from video_subtitler.core.segmenter import segment
from video_subtitler.core.srt import to_srt
from video_subtitler.core.style import POSITION_ALIGNMENT, SubtitleStyle, resolve


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="video-subtitler",
        description="Transcribe videos into SRT subtitles and burn them in.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s {}".format(__version__),
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API server.")
    serve.add_argument(
        "--host",
        default="0.0.0.0",
        help="Interface to bind (default: %(default)s).",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to listen on (default: %(default)s).",
    )

    srt = subparsers.add_parser(
        "srt",
        help="Convert a saved AssemblyAI transcript JSON into SRT.",
    )
    srt.add_argument(
        "transcript_file",
        help="Path to a transcript JSON (an object with a 'words' list, or a bare list).",
    )
    srt.add_argument(
        "--max-duration",
        type=int,
        default=MAX_SEGMENT_DURATION_MS,
        help="Close a cue once it spans this many milliseconds (default: %(default)s).",
    )
    srt.add_argument(
        "-o", "--output",
        help="Write the SRT here instead of stdout.",
    )

    style = subparsers.add_parser(
        "style",
        help="Show how a subtitle style resolves for the renderer.",
    )
    style.add_argument("--font-name", help="Font family.")
    style.add_argument("--font-size", type=int, help="Font size in pixels.")
    style.add_argument("--font-color", help="Text color (name, #RRGGBB or name@alpha).")
    style.add_argument("--background-color", help="Box color behind the text.")
    style.add_argument("--outline-color", help="Outline color.")
    style.add_argument("--outline-width", type=int, help="Outline width in pixels.")
    style.add_argument(
        "--position",
        choices=sorted(POSITION_ALIGNMENT),
        help="Vertical placement.",
    )
    style.add_argument(
        "--json",
        action="store_true",
        help="Print the resolved style as JSON instead of the force_style string.",
    )

    return parser


def _load_words(path: Path) -> List[Word]:
    """Read word timestamps from a transcript JSON file.

    RULES:
    - Accepts a full transcript object (uses its "words") or a bare list
    - A null or missing word list yields no words
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        raw_words = data.get("words") or []
    elif isinstance(data, list):
        raw_words = data
    else:
        raise ValueError("Transcript must be a JSON object or list")
    return [Word.from_dict(w) for w in raw_words]


def _run_srt(args: argparse.Namespace) -> None:
    input_path = Path(args.transcript_file).resolve()
    if not input_path.is_file():
        print("Error: File not found: {}".format(input_path), file=sys.stderr)
        sys.exit(1)

    try:
        words = _load_words(input_path)
        cues = segment(words, args.max_duration)
    except (KeyError, TypeError, ValueError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)

    srt_text = to_srt(cues)
    _status("Segmented {} words into {} cues".format(len(words), len(cues)))

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(srt_text, encoding="utf-8")
        _status("Saved: {}".format(output_path))
    else:
        sys.stdout.write(srt_text)


def _run_style(args: argparse.Namespace) -> None:
    resolved = resolve(SubtitleStyle(
        font_name=args.font_name,
        font_size_px=args.font_size,
        font_color=args.font_color,
        background_color=args.background_color,
        outline_color=args.outline_color,
        outline_width_px=args.outline_width,
        position=args.position,
    ))
    if args.json:
        print(json.dumps(resolved.to_dict(), indent=2))
    else:
        print(resolved.force_style())


def _run_serve(args: argparse.Namespace) -> None:
    from video_subtitler.server.app import run_api

    _status("Starting API on {}:{}".format(args.host, args.port))
    run_api(host=args.host, port=args.port)


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        _run_serve(args)
    elif args.command == "srt":
        _run_srt(args)
    elif args.command == "style":
        _run_style(args)


if __name__ == "__main__":
    main()
