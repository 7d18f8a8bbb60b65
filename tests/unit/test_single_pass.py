"""
SinglePassScheduler 단위 테스트

검증 항목:
- 스트리밍 세그먼트 이벤트마다 ChunkResult 즉시 전달 (도착 순서)
- 이벤트가 없으면 최종 응답으로 ChunkResult 합성
- 진행률 이벤트 (시작 0%, 완료 100%)
- 업로드 파일명 확장자 감지, stream 설정 전달
- 빈 입력/디코딩 실패/서비스 오류 전파
"""

from __future__ import annotations

import io
from typing import Any, Optional

import numpy as np
import pytest
import soundfile as sf

from noteworthy.config.schema import AppConfig
from noteworthy.errors import DecodeError, InputError, RemoteServiceError
from noteworthy.pipeline import ChunkResult, ProgressEvent
from noteworthy.pipeline.single_pass import SinglePassScheduler
from noteworthy.stt import TranscriptSegment


# =============================================================================
# 테스트 헬퍼
# =============================================================================

def _make_config(stream: bool = True) -> AppConfig:
    """테스트용 AppConfig를 생성합니다."""
    return AppConfig(**{"stt": {"api_key": "test-key", "stream": stream}})


def _make_blob(duration_sec: float = 12.0, sample_rate: int = 8000, fmt: str = "WAV") -> bytes:
    """무음 오디오 blob을 생성합니다."""
    output = io.BytesIO()
    data = np.zeros((int(duration_sec * sample_rate), 1), dtype=np.float32)
    sf.write(output, data, sample_rate, format=fmt, subtype="PCM_16")
    return output.getvalue()


class _StreamingFakeClient:
    """미리 정한 세그먼트 이벤트를 순서대로 콜백한 뒤 최종 응답을 반환하는 가짜 클라이언트입니다."""

    def __init__(
        self,
        events: Optional[list[list[TranscriptSegment]]] = None,
        final: Optional[dict[str, Any]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.events = events or []
        self.final = final
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def transcribe(self, blob, *, filename="audio.wav", stream=False, on_event=None):
        self.calls.append({"filename": filename, "stream": stream, "size": len(blob)})
        if self.error is not None:
            raise self.error
        for segments in self.events:
            if on_event is not None:
                on_event(segments, {"type": "transcript.text.segment"})
        return self.final


# =============================================================================
# 스트리밍 이벤트 테스트
# =============================================================================

@pytest.mark.asyncio
async def test_each_segment_event_becomes_chunk():
    events = [
        [TranscriptSegment(0.0, 2.5, "selamat pagi", speaker="A")],
        [TranscriptSegment(2.5, 4.0, " apa kabar ", speaker="B")],
    ]
    final = {"type": "transcript.text.done", "text": "selamat pagi apa kabar"}
    client = _StreamingFakeClient(events=events, final=final)
    delivered: list[ChunkResult] = []

    result = await SinglePassScheduler(_make_config(), client).run(
        _make_blob(), on_chunk=delivered.append
    )

    assert [chunk.chunk_index for chunk in delivered] == [0, 1]
    assert [chunk.trimmed_text for chunk in delivered] == ["selamat pagi", "apa kabar"]
    assert delivered[1].offset_sec == pytest.approx(2.5)
    assert delivered[1].duration_sec == pytest.approx(1.5)
    assert result.chunks == delivered
    assert result.final_payload == final
    assert result.duration_sec == pytest.approx(12.0)


@pytest.mark.asyncio
async def test_upload_uses_detected_extension_and_stream_flag():
    client = _StreamingFakeClient(final={"text": "x"})

    await SinglePassScheduler(_make_config(stream=False), client).run(_make_blob(fmt="FLAC"))

    assert len(client.calls) == 1
    assert client.calls[0]["filename"] == "audio.flac"
    assert client.calls[0]["stream"] is False


@pytest.mark.asyncio
async def test_progress_start_and_finish():
    client = _StreamingFakeClient(events=[[TranscriptSegment(0.0, 1.0, "a")]])
    events: list[ProgressEvent] = []

    await SinglePassScheduler(_make_config(), client).run(_make_blob(), on_progress=events.append)

    assert [(e.chunk_index, e.percent) for e in events] == [(-1, 0.0), (0, 100.0)]
    assert events[0].duration_sec == pytest.approx(12.0)
    assert events[1].processed_chunks == 1
    assert events[1].total_chunks == 1


# =============================================================================
# 최종 응답 합성 테스트
# =============================================================================

@pytest.mark.asyncio
async def test_final_payload_segments_used_without_events():
    final = {
        "text": "halo dunia",
        "segments": [
            {"start": 0.0, "end": 1.0, "text": "halo"},
            {"start": 1.0, "end": 2.0, "text": "dunia"},
        ],
    }
    client = _StreamingFakeClient(final=final)
    delivered: list[ChunkResult] = []

    result = await SinglePassScheduler(_make_config(), client).run(
        _make_blob(), on_chunk=delivered.append
    )

    assert len(delivered) == 1
    assert delivered[0].chunk_index == 0
    assert delivered[0].trimmed_text == "halo dunia"
    assert len(delivered[0].segments) == 2
    assert result.text == "halo dunia"


@pytest.mark.asyncio
async def test_final_text_only_synthesizes_full_segment():
    client = _StreamingFakeClient(final={"text": "hanya teks"})

    result = await SinglePassScheduler(_make_config(), client).run(_make_blob(duration_sec=3.0))

    chunk = result.chunks[0]
    assert chunk.segments == (TranscriptSegment(0.0, 3.0, "hanya teks"),)
    assert chunk.duration_sec == pytest.approx(3.0)


@pytest.mark.asyncio
async def test_empty_response_yields_no_chunks():
    client = _StreamingFakeClient(final=None)
    delivered: list[ChunkResult] = []

    result = await SinglePassScheduler(_make_config(), client).run(
        _make_blob(), on_chunk=delivered.append
    )

    assert delivered == []
    assert result.chunks == []
    assert result.text == ""


# =============================================================================
# 에러 테스트
# =============================================================================

@pytest.mark.asyncio
async def test_empty_blob_raises_input_error():
    client = _StreamingFakeClient()

    with pytest.raises(InputError):
        await SinglePassScheduler(_make_config(), client).run(b"")

    assert client.calls == []


@pytest.mark.asyncio
async def test_zero_frame_audio_raises_input_error():
    client = _StreamingFakeClient()

    with pytest.raises(InputError):
        await SinglePassScheduler(_make_config(), client).run(_make_blob(duration_sec=0.0))

    assert client.calls == []


@pytest.mark.asyncio
async def test_undecodable_blob_raises_decode_error():
    client = _StreamingFakeClient()

    with pytest.raises(DecodeError):
        await SinglePassScheduler(_make_config(), client).run(b"\x00\x01garbage" * 20)

    assert client.calls == []


@pytest.mark.asyncio
async def test_remote_error_propagates():
    client = _StreamingFakeClient(error=RemoteServiceError("bad", status_code=400))

    with pytest.raises(RemoteServiceError):
        await SinglePassScheduler(_make_config(), client).run(_make_blob())
