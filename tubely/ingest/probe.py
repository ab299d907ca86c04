from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from tubely.core.errors import ProbeFailure


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Dimensions of the first video stream."""

    width: int
    height: int


class Prober(Protocol):
    def probe(self, path: Path) -> ProbeResult: ...


class FFprobe:
    """Reads the first video stream's frame size with ffprobe."""

    def __init__(self, binary: str = "ffprobe", timeout_s: float = 60.0):
        self.binary = binary
        self.timeout_s = timeout_s

    def command(self, path: Path) -> list[str]:
        return [
            self.binary,
            "-v",
            "error",
            "-select_streams",
            "v:0",
            "-show_entries",
            "stream=width,height",
            "-of",
            "json",
            str(path),
        ]

    def probe(self, path: Path) -> ProbeResult:
        """Run ffprobe against ``path`` and return the stream dimensions.

        Args:
            path: Local media file.

        Returns:
            The width and height of the first video stream.

        Raises:
            ProbeFailure: ffprobe exited non-zero, timed out, was not found,
                or its output did not describe a usable video stream.
        """
        try:
            proc = subprocess.run(
                self.command(path),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=self.timeout_s,
            )
        except subprocess.TimeoutExpired as exc:
            raise ProbeFailure("ffprobe timed out", stderr=_decode(exc.stderr)) from exc
        except FileNotFoundError as exc:
            raise ProbeFailure("ffprobe binary not found", stderr=str(exc)) from exc

        if proc.returncode != 0:
            raise ProbeFailure(f"ffprobe exited with status {proc.returncode}", stderr=proc.stderr or "")

        return parse_probe_output(proc.stdout)


def parse_probe_output(raw: str) -> ProbeResult:
    try:
        payload: Any = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise ProbeFailure("ffprobe output is not valid JSON", stderr=str(raw)[:2000]) from exc

    streams = payload.get("streams") if isinstance(payload, dict) else None
    if not isinstance(streams, list) or not streams:
        raise ProbeFailure("no video streams found")

    first = streams[0]
    if not isinstance(first, dict):
        raise ProbeFailure("video stream has no usable dimensions")
    width = _positive_int(first.get("width"))
    height = _positive_int(first.get("height"))
    if width is None or height is None:
        raise ProbeFailure("video stream has no usable dimensions")
    return ProbeResult(width=width, height=height)


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value if value > 0 else None


def _decode(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


__all__ = ["FFprobe", "ProbeResult", "Prober", "parse_probe_output"]
