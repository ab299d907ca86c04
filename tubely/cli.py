from __future__ import annotations

import argparse
import shutil
import sys
from pathlib import Path
from typing import Optional

import uvicorn
from rich.console import Console

from .core.config import ConfigurationError, get_settings
from .core.errors import ProcessingFailure
from .ingest.aspect import classify
from .ingest.faststart import FFmpegFastStart
from .ingest.probe import FFprobe

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if getattr(args, "check", False):
        _run_environment_check()
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI.

    Returns:
        The argument parser.
    """
    parser = argparse.ArgumentParser(description="Tubely developer CLI")
    parser.add_argument("--check", action="store_true", help="Validate presence of ffmpeg/ffprobe dependencies")

    subparsers = parser.add_subparsers(dest="command")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Interface to bind (default 0.0.0.0)")
    serve_parser.set_defaults(func=_cmd_serve)

    probe_parser = subparsers.add_parser("probe", help="Print the first video stream's size and aspect category")
    probe_parser.add_argument("--file", required=True, help="Path to the source media file")
    probe_parser.add_argument("--ffprobe", default="ffprobe", help="ffprobe binary to invoke")
    probe_parser.set_defaults(func=_cmd_probe)

    faststart_parser = subparsers.add_parser("faststart", help="Rewrite an MP4 for progressive playback")
    faststart_parser.add_argument("--file", required=True, help="Path to the source MP4")
    faststart_parser.add_argument("--ffmpeg", default="ffmpeg", help="ffmpeg binary to invoke")
    faststart_parser.set_defaults(func=_cmd_faststart)
    return parser


def _cmd_serve(args: argparse.Namespace) -> None:
    """Load configuration and start uvicorn, exiting early if the environment is incomplete."""
    from .main import create_app

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        console.print(f"[red]Configuration error:[/] {exc}")
        sys.exit(2)

    uvicorn.run(create_app(settings), host=args.host, port=settings.port, log_config=None)


def _cmd_probe(args: argparse.Namespace) -> None:
    media_path = _existing_file(args.file)
    try:
        result = FFprobe(args.ffprobe).probe(media_path)
    except ProcessingFailure as exc:
        console.print(f"[red]{exc.message}:[/] {exc.stderr.strip()}")
        sys.exit(3)
    category = classify(result.width, result.height)
    console.print_json(data={"width": result.width, "height": result.height, "category": category.value})


def _cmd_faststart(args: argparse.Namespace) -> None:
    media_path = _existing_file(args.file)
    try:
        output = FFmpegFastStart(args.ffmpeg).remux(media_path)
    except ProcessingFailure as exc:
        console.print(f"[red]{exc.message}:[/] {exc.stderr.strip()}")
        sys.exit(3)
    console.print(f"[green]Fast-start copy written to {output}[/]")


def _existing_file(raw: str) -> Path:
    media_path = Path(raw).expanduser().resolve()
    if not media_path.exists():
        console.print(f"[red]File not found: {media_path}[/]")
        sys.exit(2)
    return media_path


def _run_environment_check() -> None:
    """Check for the presence of required external dependencies."""
    results = {label: shutil.which(label) is not None for label in ("ffmpeg", "ffprobe")}

    console.rule("[bold]Environment Check")
    for label, ok in results.items():
        console.print(f"[bold]{label}[/]: {'✅' if ok else '❌'}")

    if not all(results.values()):
        console.print("[red]Missing dependencies detected. Install ffmpeg (which ships ffprobe).[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
