from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest

from tubely.core.errors import ProbeFailure, ProcessingFailure
from tubely.ingest.probe import FFprobe, ProbeResult, parse_probe_output


def _completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=["ffprobe"], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture()
def recorded_runs(monkeypatch):
    calls: list[dict] = []
    responses: list = []

    def fake_run(command, **kwargs):
        calls.append({"command": command, **kwargs})
        response = responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response

    monkeypatch.setattr(subprocess, "run", fake_run)
    return calls, responses


def test_probe_returns_first_stream_dimensions(recorded_runs, tmp_path: Path):
    calls, responses = recorded_runs
    responses.append(_completed(stdout=json.dumps({"streams": [{"width": 1920, "height": 1080}, {"width": 640, "height": 360}]})))

    result = FFprobe(timeout_s=5).probe(tmp_path / "clip.mp4")

    assert result == ProbeResult(width=1920, height=1080)
    command = calls[0]["command"]
    assert command[0] == "ffprobe"
    assert command[command.index("-select_streams") + 1] == "v:0"
    assert command[command.index("-show_entries") + 1] == "stream=width,height"
    assert command[command.index("-of") + 1] == "json"
    assert command[-1] == str(tmp_path / "clip.mp4")
    assert calls[0]["timeout"] == 5
    assert calls[0]["stdout"] == subprocess.PIPE
    assert calls[0]["stderr"] == subprocess.PIPE


def test_non_zero_exit_carries_stderr(recorded_runs, tmp_path: Path):
    _, responses = recorded_runs
    responses.append(_completed(returncode=1, stderr="clip.mp4: Invalid data found when processing input"))

    with pytest.raises(ProbeFailure) as excinfo:
        FFprobe().probe(tmp_path / "clip.mp4")

    assert "Invalid data" in excinfo.value.stderr
    assert isinstance(excinfo.value, ProcessingFailure)


def test_signal_termination_is_a_failure(recorded_runs, tmp_path: Path):
    _, responses = recorded_runs
    responses.append(_completed(returncode=-9))

    with pytest.raises(ProbeFailure):
        FFprobe().probe(tmp_path / "clip.mp4")


def test_empty_streams_fail_even_on_success_exit(recorded_runs, tmp_path: Path):
    _, responses = recorded_runs
    responses.append(_completed(stdout=json.dumps({"streams": []})))

    with pytest.raises(ProbeFailure, match="no video streams found"):
        FFprobe().probe(tmp_path / "audio_only.m4a")


def test_timeout_is_a_probe_failure(recorded_runs, tmp_path: Path):
    _, responses = recorded_runs
    responses.append(subprocess.TimeoutExpired(cmd=["ffprobe"], timeout=1, stderr=b"still reading"))

    with pytest.raises(ProbeFailure, match="timed out") as excinfo:
        FFprobe(timeout_s=1).probe(tmp_path / "clip.mp4")
    assert excinfo.value.stderr == "still reading"


def test_missing_binary_is_a_probe_failure(recorded_runs, tmp_path: Path):
    _, responses = recorded_runs
    responses.append(FileNotFoundError(2, "No such file or directory", "ffprobe"))

    with pytest.raises(ProbeFailure, match="not found"):
        FFprobe().probe(tmp_path / "clip.mp4")


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps({}),
        json.dumps([1, 2]),
        json.dumps({"streams": [{"width": 0, "height": 1080}]}),
        json.dumps({"streams": [{"width": "1920", "height": 1080}]}),
        json.dumps({"streams": [{"height": 1080}]}),
        json.dumps({"streams": {"width": 1920, "height": 1080}}),
        json.dumps({"streams": "1920x1080"}),
        json.dumps({"streams": [None]}),
        json.dumps({"streams": [[1920, 1080]]}),
    ],
)
def test_unusable_output_is_rejected(raw):
    with pytest.raises(ProbeFailure):
        parse_probe_output(raw)
