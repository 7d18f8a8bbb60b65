"""
CLI 실행기(main.py) 단위 테스트

전사 파이프라인을 mock으로 대체하여 출력 파일과 종료 코드만 검증합니다.

검증 항목:
- 전사문 텍스트 / 청크 JSON 저장 (session_id, 모델, 윈도우 설정 포함)
- TranscriptionError 발생 시 종료 코드 1, 부분 전사문 유지
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import main
from noteworthy.errors import RemoteServiceError
from noteworthy.pipeline import ChunkResult, TranscriptionResult
from noteworthy.stt import TranscriptSegment


# =============================================================================
# 테스트 헬퍼
# =============================================================================

def _make_chunk(index: int, text: str) -> ChunkResult:
    segment = TranscriptSegment(start=0.0, end=30.0, text=text, speaker="A")
    return ChunkResult(
        chunk_index=index,
        duration_sec=31.0,
        segments=(segment,),
        text=text,
        trimmed_text=text,
        offset_sec=index * 30.0,
    )


def _make_pipeline(chunks: list[ChunkResult], error: Exception = None) -> MagicMock:
    """on_chunk로 청크를 전달한 뒤 선택적으로 예외를 던지는 mock 파이프라인을 생성합니다."""

    async def _transcribe(blob, on_chunk=None, on_progress=None, mode="auto", cancel_event=None):
        for chunk in chunks:
            on_chunk(chunk)
        if error is not None:
            raise error
        return TranscriptionResult(chunks=list(chunks), duration_sec=65.0)

    pipeline = MagicMock()
    pipeline.transcribe = AsyncMock(side_effect=_transcribe)
    return pipeline


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "meeting.wav"
    path.write_bytes(b"RIFF-not-really-decoded")
    return path


# =============================================================================
# 실행 테스트
# =============================================================================

@pytest.mark.asyncio
async def test_main_writes_transcript_and_json(tmp_path, audio_file):
    pipeline = _make_pipeline([_make_chunk(0, "halo"), _make_chunk(1, "semua")])
    output = tmp_path / "out" / "transcript.txt"
    json_path = tmp_path / "out" / "chunks.json"

    with patch("main.setup_logging"), \
         patch("main.current_session_id", return_value="cli-session"), \
         patch("main.TranscriptionPipeline", return_value=pipeline):
        exit_code = await main._main([
            str(audio_file),
            "--config", str(tmp_path / "absent.yaml"),
            "--mode", "window",
            "--output", str(output),
            "--json", str(json_path),
        ])

    assert exit_code == 0
    assert output.read_text(encoding="utf-8") == "halo semua\n"

    document = json.loads(json_path.read_text(encoding="utf-8"))
    assert document["session_id"] == "cli-session"
    assert document["model"] == "gpt-4o-transcribe-diarize"
    assert document["window_sec"] == 30.0
    assert document["overlap_sec"] == 1.0
    records = document["chunks"]
    assert [r["chunk_index"] for r in records] == [0, 1]
    assert records[1]["segments"][0]["speaker"] == "A"

    kwargs = pipeline.transcribe.await_args.kwargs
    assert kwargs["mode"] == "window"
    assert pipeline.transcribe.await_args.args[0] == b"RIFF-not-really-decoded"


@pytest.mark.asyncio
async def test_main_failure_returns_1_and_keeps_partial(tmp_path, audio_file):
    pipeline = _make_pipeline(
        [_make_chunk(0, "sebagian")],
        error=RemoteServiceError("전사 요청 실패", status_code=503),
    )
    output = tmp_path / "partial.txt"

    with patch("main.setup_logging"), \
         patch("main.TranscriptionPipeline", return_value=pipeline):
        exit_code = await main._main([
            str(audio_file),
            "--config", str(tmp_path / "absent.yaml"),
            "--output", str(output),
        ])

    assert exit_code == 1
    assert output.read_text(encoding="utf-8") == "sebagian\n"


def test_parse_args_defaults():
    args = main._parse_args(["recording.mp3"])

    assert args.audio == "recording.mp3"
    assert args.config == "config.yaml"
    assert args.mode == "auto"
    assert args.output is None
    assert args.json_path is None
