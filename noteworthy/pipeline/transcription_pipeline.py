"""
전사 파이프라인 오케스트레이터 모듈입니다.

역할:
- 업로드 크기에 따라 슬라이딩 윈도우 / 단일 요청 스트리밍 방식을 선택
- 두 스케줄러에 동일한 on_chunk / on_progress 콜백을 연결

선택 규칙 (mode="auto"):
    len(blob) >= window.chunk_threshold_bytes  →  SlidingWindowScheduler
    그 외                                      →  SinglePassScheduler

사용 예시:
    >>> async with TranscriptionClient(config.stt) as client:
    ...     pipeline = TranscriptionPipeline(config, client)
    ...     result = await pipeline.transcribe(blob, on_chunk=append_to_note)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from noteworthy.audio.decoder import decode_audio_async
from noteworthy.config.schema import AppConfig
from noteworthy.errors import InputError
from noteworthy.pipeline import ChunkCallback, ProgressCallback, TranscriptionResult
from noteworthy.pipeline.single_pass import SinglePassScheduler
from noteworthy.pipeline.sliding_window import SlidingWindowScheduler

logger = logging.getLogger(__name__)

MODE_AUTO = "auto"
MODE_WINDOW = "window"
MODE_SINGLE = "single"
_MODES = (MODE_AUTO, MODE_WINDOW, MODE_SINGLE)


class TranscriptionPipeline:
    """
    녹음 blob 하나를 전사하는 진입점 클래스입니다.

    실행마다 새 스케줄러를 만들므로 실행 간에 상태가 남지 않습니다.
    """

    def __init__(self, config: AppConfig, client) -> None:
        self._config = config
        self._client = client

    def choose_mode(self, blob: bytes) -> str:
        """업로드 크기로 전사 방식을 결정합니다."""
        if len(blob) >= self._config.window.chunk_threshold_bytes:
            return MODE_WINDOW
        return MODE_SINGLE

    async def transcribe(
        self,
        blob: bytes,
        on_chunk: Optional[ChunkCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        mode: str = MODE_AUTO,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TranscriptionResult:
        """
        blob을 전사합니다.

        파라미터:
            blob: 녹음 오디오 bytes (WAV/MP3 등)
            on_chunk: 순서가 보장된 ChunkResult마다 호출
            on_progress: 진행 상황 이벤트마다 호출
            mode: "auto" | "window" | "single"
            cancel_event: 윈도우 모드에서 새 윈도우 배정을 멈추는 신호

        에러:
            InputError, DecodeError, RemoteServiceError
        """
        if mode not in _MODES:
            raise InputError(f"mode는 {_MODES} 중 하나여야 합니다: '{mode}'")
        if not blob:
            raise InputError("전사할 오디오 데이터가 비어있습니다")

        selected = self.choose_mode(blob) if mode == MODE_AUTO else mode
        logger.info(f"전사 방식 선택: {selected} (요청={mode}, size={len(blob)} bytes)")

        if selected == MODE_WINDOW:
            audio = await decode_audio_async(blob)
            scheduler = SlidingWindowScheduler(self._config, self._client)
            return await scheduler.run(audio, on_chunk, on_progress, cancel_event)

        return await SinglePassScheduler(self._config, self._client).run(
            blob, on_chunk, on_progress
        )
