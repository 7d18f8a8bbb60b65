"""
TranscriptionPipeline 단위 테스트

검증 항목:
- 업로드 크기 임계값에 따른 방식 선택
- mode 강제 지정 (window / single)
- 잘못된 mode, 빈 입력 → InputError
"""

from __future__ import annotations

import io

import numpy as np
import pytest
import soundfile as sf

from noteworthy.config.schema import AppConfig
from noteworthy.errors import InputError
from noteworthy.pipeline.transcription_pipeline import (
    MODE_SINGLE,
    MODE_WINDOW,
    TranscriptionPipeline,
)


# =============================================================================
# 테스트 헬퍼
# =============================================================================

def _make_config(chunk_threshold_bytes: int = 24 * 1024 * 1024) -> AppConfig:
    """테스트용 AppConfig를 생성합니다."""
    return AppConfig(**{
        "stt": {"api_key": "test-key", "stream": True},
        "window": {
            "window_sec": 30.0,
            "overlap_sec": 1.0,
            "chunk_threshold_bytes": chunk_threshold_bytes,
        },
    })


def _make_blob(duration_sec: float = 65.0, sample_rate: int = 1000) -> bytes:
    output = io.BytesIO()
    data = np.zeros((int(duration_sec * sample_rate), 1), dtype=np.float32)
    sf.write(output, data, sample_rate, format="WAV", subtype="PCM_16")
    return output.getvalue()


class _RecordingClient:
    """업로드 파일명과 stream 여부만 기록하는 가짜 클라이언트입니다."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, bool]] = []

    async def transcribe(self, blob, *, filename="audio.wav", stream=False, on_event=None):
        self.calls.append((filename, stream))
        return {"text": filename}


# =============================================================================
# 방식 선택 테스트
# =============================================================================

def test_choose_mode_by_threshold():
    pipeline = TranscriptionPipeline(_make_config(chunk_threshold_bytes=100), _RecordingClient())

    assert pipeline.choose_mode(b"x" * 99) == MODE_SINGLE
    assert pipeline.choose_mode(b"x" * 100) == MODE_WINDOW


@pytest.mark.asyncio
async def test_auto_large_upload_uses_windows():
    client = _RecordingClient()
    pipeline = TranscriptionPipeline(_make_config(chunk_threshold_bytes=1024), client)

    result = await pipeline.transcribe(_make_blob())

    assert sorted(name for name, _ in client.calls) == [
        "chunk_0000.wav", "chunk_0001.wav", "chunk_0002.wav",
    ]
    assert all(stream is False for _, stream in client.calls)
    assert len(result.chunks) == 3


@pytest.mark.asyncio
async def test_auto_small_upload_uses_single_request():
    client = _RecordingClient()
    pipeline = TranscriptionPipeline(_make_config(), client)

    result = await pipeline.transcribe(_make_blob())

    assert client.calls == [("audio.wav", True)]
    assert result.text == "audio.wav"


@pytest.mark.asyncio
async def test_forced_mode_overrides_threshold():
    client = _RecordingClient()
    pipeline = TranscriptionPipeline(_make_config(), client)

    await pipeline.transcribe(_make_blob(), mode="window")

    assert len(client.calls) == 3


@pytest.mark.asyncio
async def test_invalid_mode_raises_input_error():
    pipeline = TranscriptionPipeline(_make_config(), _RecordingClient())

    with pytest.raises(InputError):
        await pipeline.transcribe(_make_blob(), mode="parallel")


@pytest.mark.asyncio
async def test_empty_blob_raises_input_error():
    client = _RecordingClient()
    pipeline = TranscriptionPipeline(_make_config(), client)

    with pytest.raises(InputError):
        await pipeline.transcribe(b"")

    assert client.calls == []
