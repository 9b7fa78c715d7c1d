from __future__ import annotations

import argparse
import json
import os
import sys
from importlib import metadata
from pathlib import Path

import tomllib
import uvicorn
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from .annotations import (
    Annotation,
    annotation_segments,
    deserialize_annotations,
    furigana_segments,
    render_furigana,
    serialize_segments,
)
from .logging_utils import build_uvicorn_log_config, debug_enabled, debug_log, set_debug_logging
from .pitch import build_phoneme_tag, encode_accent, parse_accent, to_morae
from .vocabulary import VocabularyItem, load_vocabulary
from .web import WebConfig, create_app


def _read_local_version() -> str | None:
    try:
        pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    except IndexError:  # pragma: no cover - defensive
        return None
    try:
        with pyproject_path.open("rb") as fh:
            data = tomllib.load(fh)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


try:
    __version__ = metadata.version("yomi")
except metadata.PackageNotFoundError:
    __version__ = _read_local_version() or "0.0.0+unknown"


def _add_version_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"yomi {__version__}",
    )


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    _add_version_flag(parser)
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Print debug information to stderr (also enabled by YOMI_DEBUG=1).",
    )


def _add_annotations_flag(parser: argparse.ArgumentParser, *, required: bool = False) -> None:
    parser.add_argument(
        "-a",
        "--annotations",
        required=required,
        help="JSON file with an array of annotations ({type, loc, len, content}); '-' reads stdin.",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="yomi",
        description="Furigana rendering and pitch-accent markup for Japanese learning content.",
    )
    _add_version_flag(ap)
    subparsers = ap.add_subparsers(dest="command")

    furigana = subparsers.add_parser(
        "furigana",
        help="Replace annotated spans with their furigana reading.",
    )
    _add_common_flags(furigana)
    furigana.add_argument("text", help="Original Japanese text.")
    _add_annotations_flag(furigana)
    furigana.add_argument(
        "--segments",
        action="store_true",
        help="Print display segments as JSON instead of the flattened reading.",
    )

    segments = subparsers.add_parser(
        "segments",
        help="Split text into display segments as JSON.",
    )
    _add_common_flags(segments)
    segments.add_argument("text", help="Original Japanese text.")
    _add_annotations_flag(segments, required=True)
    segments.add_argument(
        "--all",
        action="store_true",
        help="Segment on every annotation type, not only furigana.",
    )

    morae = subparsers.add_parser("morae", help="Print one mora per line.")
    _add_common_flags(morae)
    morae.add_argument("reading", help="Kana reading.")

    accent = subparsers.add_parser("accent", help="Mark the pitch accent of a reading.")
    _add_common_flags(accent)
    accent.add_argument("reading", help="Kana reading.")
    accent.add_argument("position", type=int, help="Accent position (0 = heiban).")

    phoneme = subparsers.add_parser("phoneme", help="Build a yomigana <phoneme> tag.")
    _add_common_flags(phoneme)
    phoneme.add_argument("text", help="Surface text spoken by the tag.")
    phoneme.add_argument("reading", help="Kana reading.")
    phoneme.add_argument(
        "--accent",
        help="Accent position, or comma-separated candidates such as '3,4' (first is used).",
    )

    ssml = subparsers.add_parser(
        "ssml",
        help="Build <speak> markup for every entry of a vocabulary JSON file.",
    )
    _add_common_flags(ssml)
    ssml.add_argument("vocabulary", help="Path to the vocabulary .json file.")
    ssml.add_argument(
        "-o",
        "--output",
        help="Write JSON lines to this file instead of stdout.",
    )

    web = subparsers.add_parser("web", help="Serve the JSON API.")
    _add_common_flags(web)
    web.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host interface for the web server (default: 127.0.0.1).",
    )
    web.add_argument(
        "--port",
        type=int,
        default=8400,
        help="Port for the web server (default: 8400).",
    )
    web.add_argument(
        "--vocabulary",
        default=os.environ.get("YOMI_VOCABULARY"),
        help="Vocabulary .json served at /api/vocabulary (default: $YOMI_VOCABULARY).",
    )
    return ap


def _load_annotations_arg(value: str | None) -> list[Annotation]:
    if not value:
        return []
    try:
        if value == "-":
            raw = json.load(sys.stdin)
        else:
            raw = json.loads(Path(value).expanduser().read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise SystemExit(f"Failed to read annotations: {value}") from exc
    if isinstance(raw, dict):
        raw = raw.get("annotations")
    if not isinstance(raw, list):
        raise SystemExit("Annotations must be a JSON array or an object with an 'annotations' array.")
    annotations = deserialize_annotations(raw)
    dropped = len(raw) - len(annotations)
    if dropped:
        debug_log(f"dropped {dropped} malformed annotation entr{'y' if dropped == 1 else 'ies'}")
    return annotations


def _print_json(payload: object) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _run_furigana(args: argparse.Namespace) -> int:
    annotations = _load_annotations_arg(args.annotations)
    if args.segments:
        _print_json(serialize_segments(furigana_segments(args.text, annotations)))
        return 0
    print(render_furigana(args.text, annotations))
    return 0


def _run_segments(args: argparse.Namespace) -> int:
    annotations = _load_annotations_arg(args.annotations)
    if args.all:
        segments = annotation_segments(args.text, annotations)
    else:
        segments = furigana_segments(args.text, annotations)
    _print_json(serialize_segments(segments))
    return 0


def _run_morae(args: argparse.Namespace) -> int:
    for mora in to_morae(args.reading):
        print(mora)
    return 0


def _run_accent(args: argparse.Namespace) -> int:
    print(encode_accent(args.reading, args.position))
    return 0


def _run_phoneme(args: argparse.Namespace) -> int:
    accent = None
    if args.accent is not None:
        accent = parse_accent(args.accent)
        if accent is None:
            raise SystemExit(f"Invalid accent: {args.accent!r}")
    print(build_phoneme_tag(args.text, args.reading, accent))
    return 0


def _ssml_record(item: VocabularyItem) -> dict[str, object]:
    return {
        "content": item.content,
        "reading": item.reading_text(),
        "ssml": item.speech_markup(),
    }


def _run_ssml(args: argparse.Namespace) -> int:
    vocab_path = Path(args.vocabulary).expanduser()
    if not vocab_path.is_file():
        raise SystemExit(f"Vocabulary file not found: {vocab_path}")
    try:
        items = load_vocabulary(vocab_path)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    debug_log(f"loaded {len(items)} vocabulary item(s) from {vocab_path}")

    lines: list[str] = []
    console = Console(stderr=True)
    show_progress = bool(items) and console.is_terminal and args.output is not None
    if show_progress:
        with Progress(
            TextColumn("{task.description}", justify="left"),
            BarColumn(bar_width=None),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Vocabulary", total=len(items))
            for item in items:
                lines.append(json.dumps(_ssml_record(item), ensure_ascii=False))
                progress.advance(task)
    else:
        for item in items:
            lines.append(json.dumps(_ssml_record(item), ensure_ascii=False))

    if args.output:
        output_path = Path(args.output).expanduser()
        output_path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        print(f"Wrote {len(lines)} item(s) to {output_path}")
    else:
        for line in lines:
            print(line)
    return 0


def _run_web(args: argparse.Namespace) -> None:
    vocabulary_path = Path(args.vocabulary).expanduser() if args.vocabulary else None
    config = WebConfig(vocabulary_path=vocabulary_path, debug=debug_enabled())
    try:
        app = create_app(config, version=__version__)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(str(exc)) from exc
    print(f"Serving yomi API at http://{args.host}:{args.port}/")
    print("Press Ctrl+C to stop.\n")
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_config=build_uvicorn_log_config(debug=debug_enabled()),
    )


_COMMANDS = {
    "furigana": _run_furigana,
    "segments": _run_segments,
    "morae": _run_morae,
    "accent": _run_accent,
    "phoneme": _run_phoneme,
    "ssml": _run_ssml,
}


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0

    args = parser.parse_args(argv)
    if getattr(args, "debug", False):
        set_debug_logging(True)

    if args.command == "web":
        _run_web(args)
        return 0
    handler = _COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 0
    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
