from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Protocol

from tubely.core.errors import TranscodeFailure

PROCESSED_SUFFIX = ".processed"


class Remuxer(Protocol):
    def remux(self, input_path: Path) -> Path: ...


def processed_path_for(input_path: Path) -> Path:
    return input_path.with_name(input_path.name + PROCESSED_SUFFIX)


class FFmpegFastStart:
    """Moves the moov atom to the front of an MP4 with a stream copy (no re-encode)."""

    def __init__(self, binary: str = "ffmpeg", timeout_s: float = 600.0):
        self.binary = binary
        self.timeout_s = timeout_s

    def command(self, input_path: Path, output_path: Path) -> list[str]:
        return [
            self.binary,
            "-nostdin",
            "-y",
            "-v",
            "error",
            "-i",
            str(input_path),
            "-movflags",
            "faststart",
            "-map_metadata",
            "0",
            "-codec",
            "copy",
            "-f",
            "mp4",
            str(output_path),
        ]

    def remux(self, input_path: Path) -> Path:
        output_path = processed_path_for(input_path)
        try:
            proc = subprocess.run(
                self.command(input_path, output_path),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as exc:
            output_path.unlink(missing_ok=True)
            stderr = exc.stderr.decode("utf-8", errors="replace") if isinstance(exc.stderr, bytes) else exc.stderr or ""
            raise TranscodeFailure("ffmpeg timed out", stderr=stderr) from exc
        except FileNotFoundError as exc:
            raise TranscodeFailure("ffmpeg binary not found", stderr=str(exc)) from exc

        if proc.returncode != 0:
            output_path.unlink(missing_ok=True)
            raise TranscodeFailure(f"ffmpeg exited with status {proc.returncode}", stderr=proc.stderr or "")
        return output_path


__all__ = ["FFmpegFastStart", "Remuxer", "processed_path_for", "PROCESSED_SUFFIX"]
