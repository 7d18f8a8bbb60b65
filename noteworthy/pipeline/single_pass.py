"""
단일 요청 스트리밍 전사 스케줄러 모듈입니다.

역할:
- 짧은 녹음처럼 윈도우 분할이 필요 없는 입력을 한 번의 스트리밍 요청으로 전사
- 서비스가 보내는 세그먼트 이벤트마다 즉시 ChunkResult로 포장해 도착 순서대로 전달
- 이벤트가 하나도 없으면 최종 응답 본문으로 ChunkResult 하나를 합성

원본 blob을 그대로 업로드하며, 디코딩은 진행률 계산용 전체 길이를 얻기 위해서만 합니다.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from noteworthy.audio.decoder import decode_audio_async, detect_extension
from noteworthy.config.schema import AppConfig
from noteworthy.errors import InputError
from noteworthy.pipeline import (
    ChunkCallback,
    ChunkResult,
    ProgressCallback,
    ProgressEvent,
    TranscriptionResult,
)
from noteworthy.pipeline.trimmer import join_text, join_trimmed
from noteworthy.stt import TranscriptSegment
from noteworthy.stt.transcription_client import parse_segments, payload_text

logger = logging.getLogger(__name__)


class SinglePassScheduler:
    """
    스트리밍 전사 요청 하나를 구동하는 스케줄러입니다.

    요청이 하나뿐이므로 재정렬 버퍼가 필요 없고, 서비스의 전달 순서를 그대로 따릅니다.
    """

    def __init__(self, config: AppConfig, client) -> None:
        self._config = config
        self._client = client

    async def run(
        self,
        blob: bytes,
        on_chunk: Optional[ChunkCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TranscriptionResult:
        """
        오디오 blob을 한 번의 요청으로 전사합니다.

        파라미터:
            blob: 업로드할 원본 오디오 bytes
            on_chunk: 세그먼트 이벤트마다 호출 (도착 순서)
            on_progress: 시작(0%)과 완료(100%)에 호출

        반환값:
            TranscriptionResult: 전달된 청크 목록, 전체 길이, 최종 응답

        에러:
            InputError: blob이 비었거나 오디오 프레임이 없을 때
            DecodeError: blob을 디코딩할 수 없을 때
            RemoteServiceError: 전사 요청이 실패했을 때
        """
        if not blob:
            raise InputError("전사할 오디오 데이터가 비어있습니다")

        audio = await decode_audio_async(blob)
        if audio.frame_count == 0:
            raise InputError("전사할 오디오 프레임이 없습니다")
        total_sec = audio.duration_sec
        filename = f"audio.{detect_extension(blob)}"

        logger.info(f"단일 요청 스트리밍 전사 시작: {filename}, duration={total_sec:.1f}s")

        if on_progress is not None:
            on_progress(ProgressEvent(
                chunk_index=-1,
                total_chunks=1,
                processed_chunks=0,
                percent=0.0,
                start_sec=0.0,
                end_sec=total_sec,
                duration_sec=total_sec,
            ))

        emitted: list[ChunkResult] = []

        def _on_event(segments: list[TranscriptSegment], event: dict[str, Any]) -> None:
            chunk = _chunk_from_segments(len(emitted), segments, event)
            emitted.append(chunk)
            if on_chunk is not None:
                on_chunk(chunk)

        final_payload = await self._client.transcribe(
            blob,
            filename=filename,
            stream=self._config.stt.stream,
            on_event=_on_event,
        )

        if not emitted:
            chunk = _chunk_from_payload(final_payload, total_sec)
            if chunk is not None:
                emitted.append(chunk)
                if on_chunk is not None:
                    on_chunk(chunk)

        if on_progress is not None:
            on_progress(ProgressEvent(
                chunk_index=0,
                total_chunks=1,
                processed_chunks=1,
                percent=100.0,
                start_sec=0.0,
                end_sec=total_sec,
                duration_sec=total_sec,
            ))

        logger.info(f"단일 요청 스트리밍 전사 완료: {len(emitted)}개 청크")
        return TranscriptionResult(
            chunks=emitted, duration_sec=total_sec, final_payload=final_payload
        )


def _chunk_from_segments(
    chunk_index: int,
    segments: list[TranscriptSegment],
    event: dict[str, Any],
) -> ChunkResult:
    """스트리밍 세그먼트 이벤트 하나를 ChunkResult로 포장합니다."""
    if segments:
        offset = min(segment.start for segment in segments)
        duration = max(segment.end for segment in segments) - offset
    else:
        offset, duration = 0.0, 0.0
    return ChunkResult(
        chunk_index=chunk_index,
        duration_sec=duration,
        segments=tuple(segments),
        text=join_text(segments),
        trimmed_text=join_trimmed(segments, 0.0),
        raw=event,
        offset_sec=offset,
    )


def _chunk_from_payload(
    payload: Optional[dict[str, Any]],
    total_sec: float,
) -> Optional[ChunkResult]:
    """
    이벤트 없이 끝난 응답에서 ChunkResult 하나를 합성합니다.

    segments가 있으면 그대로 사용하고, 텍스트만 있으면 전체 구간 세그먼트 하나로 만듭니다.
    텍스트도 세그먼트도 없으면 None을 반환합니다.
    """
    segments = parse_segments(payload)
    text = payload_text(payload) or join_text(segments)
    if not segments and text:
        segments = [TranscriptSegment(start=0.0, end=total_sec, text=text)]
    if not segments:
        logger.warning("전사 응답에 텍스트가 없습니다")
        return None
    return ChunkResult(
        chunk_index=0,
        duration_sec=total_sec,
        segments=tuple(segments),
        text=text,
        trimmed_text=join_trimmed(segments, 0.0),
        raw=payload,
        offset_sec=0.0,
    )
