"""
슬라이딩 윈도우 전사 스케줄러 모듈입니다.

역할:
- 디코딩된 전체 오디오를 겹치는 고정 길이 윈도우로 분할
- 최대 min(5, max_concurrency)개의 asyncio 워커가 윈도우를 하나씩 가져가
  슬라이스 → WAV 인코딩 → 전사 요청을 독립적으로 수행
- 완료 순서와 무관하게 ChunkResult를 윈도우 순서대로만 소비자에게 전달
- 워커 하나라도 실패하면 전체 실행을 중단 (이미 전달된 결과는 유효)

윈도우 구조 (window=30s, overlap=1s):
    window 0: [ 0s, 31s)   앞부분 잘라내기 없음
    window 1: [30s, 61s)   앞 1s 잘라냄 (window 0 꼬리와 중복)
    window 2: [60s, 65s)   앞 1s 잘라냄, 신호 끝에서 짧아짐

사용 예시:
    >>> scheduler = SlidingWindowScheduler(config, client)
    >>> result = await scheduler.run(audio, on_chunk=print)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

from noteworthy.audio import DecodedAudio
from noteworthy.audio.decoder import decode_audio_async
from noteworthy.audio.encoder import ChunkEncoder
from noteworthy.audio.slicer import clamp_frame, slice_audio
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

# 전사 서비스 속도 제한에 맞춘 동시 요청 상한
MAX_CONCURRENT_REQUESTS = 5
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Window:
    """
    전체 신호에서 업로드 단위로 잘라낼 프레임 구간입니다.

    필드:
        index: 윈도우 순번 (0부터 시작)
        start_frame: 시작 프레임 (포함)
        end_frame: 끝 프레임 (제외)
        sample_rate: 원본 샘플링레이트 (Hz)
    """
    index: int
    start_frame: int
    end_frame: int
    sample_rate: int

    @property
    def start_sec(self) -> float:
        return self.start_frame / float(self.sample_rate)

    @property
    def end_sec(self) -> float:
        return self.end_frame / float(self.sample_rate)

    @property
    def duration_sec(self) -> float:
        return (self.end_frame - self.start_frame) / float(self.sample_rate)


def compute_windows(
    frame_count: int,
    sample_rate: int,
    window_sec: float,
    overlap_sec: float,
) -> list[Window]:
    """
    윈도우 목록을 계산합니다.

    시작 프레임은 0, step, 2*step, ... (시작 프레임 < frame_count 인 동안)이며
    step = window_sec * sample_rate 입니다. 각 윈도우는
    (window_sec + overlap_sec) 길이로 다음 윈도우와 겹치고, 신호 끝에서 잘립니다.
    신호가 step보다 짧으면 전체를 덮는 윈도우 하나를 반환합니다.

    에러:
        InputError: window_sec <= 0 또는 overlap_sec < 0 일 때
    """
    if window_sec <= 0:
        raise InputError(f"window_sec는 0보다 커야 합니다: {window_sec}")
    if overlap_sec < 0:
        raise InputError(f"overlap_sec는 0 이상이어야 합니다: {overlap_sec}")

    step = max(1, int(round(window_sec * sample_rate)))
    span = max(step, int(round((window_sec + overlap_sec) * sample_rate)))

    if frame_count <= step:
        return [Window(0, 0, frame_count, sample_rate)]

    windows: list[Window] = []
    start = 0
    while start < frame_count:
        windows.append(
            Window(len(windows), start, min(frame_count, start + span), sample_rate)
        )
        start += step
    return windows


class _WindowRun:
    """
    전사 실행 하나의 스케줄링 상태입니다.

    대기 윈도우(next_claim), 완료됐지만 아직 전달 안 된 결과(buffer),
    다음 전달 순번(next_emit)을 관리합니다. 이벤트 루프 스레드에서만 변경됩니다.
    """

    def __init__(self, windows: list[Window]) -> None:
        self.windows = windows
        self.buffer: dict[int, ChunkResult] = {}
        self.emitted: list[ChunkResult] = []
        self.next_claim = 0
        self.next_emit = 0
        self.processed = 0
        self.aborted = False

    def claim(self) -> Optional[Window]:
        """아직 아무 워커도 가져가지 않은 다음 윈도우를 반환합니다."""
        if self.aborted or self.next_claim >= len(self.windows):
            return None
        window = self.windows[self.next_claim]
        self.next_claim += 1
        return window

    def complete(self, result: ChunkResult) -> list[ChunkResult]:
        """
        결과를 버퍼에 넣고, next_emit부터 연속으로 완료된 결과를 꺼내 반환합니다.

        중단된 실행에서는 아무것도 꺼내지 않습니다.
        """
        self.processed += 1
        if self.aborted:
            return []
        self.buffer[result.chunk_index] = result

        ready: list[ChunkResult] = []
        while self.next_emit in self.buffer:
            ready.append(self.buffer.pop(self.next_emit))
            self.next_emit += 1
        self.emitted.extend(ready)
        return ready

    def abort(self) -> None:
        """새 윈도우 배정과 이후 결과 전달을 멈춥니다."""
        self.aborted = True
        self.buffer.clear()


class SlidingWindowScheduler:
    """
    겹치는 윈도우를 병렬로 전사하고 순서대로 전달하는 스케줄러입니다.

    client는 transcribe(blob, *, filename, stream) 코루틴을 제공하면 되며
    보통 TranscriptionClient를 사용합니다.
    """

    def __init__(self, config: AppConfig, client, encoder: Optional[ChunkEncoder] = None) -> None:
        if config.window.max_concurrency > MAX_CONCURRENT_REQUESTS:
            logger.warning(
                f"max_concurrency={config.window.max_concurrency}는 상한을 넘으므로 "
                f"{MAX_CONCURRENT_REQUESTS}로 제한합니다"
            )
        self._config = config
        self._window_cfg = config.window
        self._client = client
        self._encoder = encoder or ChunkEncoder(config.audio)

    async def run(
        self,
        audio: DecodedAudio,
        on_chunk: Optional[ChunkCallback] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TranscriptionResult:
        """
        오디오 전체를 윈도우 단위로 전사합니다.

        파라미터:
            audio: 디코딩된 전체 오디오
            on_chunk: 순서가 보장된 ChunkResult마다 호출
            on_progress: 시작 전 1회 + 윈도우 완료마다 호출
            cancel_event: 설정되면 새 윈도우 배정을 멈춤 (진행 중 요청은 완료)

        반환값:
            TranscriptionResult: 전달된 청크 목록과 전체 길이

        에러:
            InputError: 오디오가 비었거나 윈도우 설정이 잘못됐을 때
            RemoteServiceError: 윈도우 전사 요청이 하나라도 실패했을 때
        """
        if audio.frame_count == 0:
            raise InputError("전사할 오디오 프레임이 없습니다")

        windows = compute_windows(
            audio.frame_count,
            audio.sample_rate,
            self._window_cfg.window_sec,
            self._window_cfg.overlap_sec,
        )
        run = _WindowRun(windows)
        worker_count = min(
            MAX_CONCURRENT_REQUESTS, self._window_cfg.max_concurrency, len(windows)
        )

        logger.info(
            f"슬라이딩 윈도우 전사 시작: duration={audio.duration_sec:.1f}s, "
            f"windows={len(windows)}, workers={worker_count}, "
            f"window={self._window_cfg.window_sec}s, overlap={self._window_cfg.overlap_sec}s"
        )

        if on_progress is not None:
            on_progress(ProgressEvent(
                chunk_index=-1,
                total_chunks=len(windows),
                processed_chunks=0,
                percent=0.0,
                start_sec=0.0,
                end_sec=audio.duration_sec,
                duration_sec=audio.duration_sec,
            ))

        tasks = [
            asyncio.create_task(
                self._worker(run, audio, on_chunk, on_progress, cancel_event),
                name=f"window_worker_{worker_id}",
            )
            for worker_id in range(worker_count)
        ]

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            run.abort()
            await _cancel_all(tasks)
            raise

        failures = [task.exception() for task in done if not task.cancelled() and task.exception()]
        if failures:
            run.abort()
            await _cancel_all(pending)
            logger.error(
                f"윈도우 전사 실패로 중단: 전달 완료 {len(run.emitted)}/{len(windows)}개, "
                f"원인={failures[0]}"
            )
            raise failures[0]

        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"슬라이딩 윈도우 전사 취소됨: 전달 완료 {len(run.emitted)}/{len(windows)}개")
        else:
            logger.info(f"슬라이딩 윈도우 전사 완료: {len(run.emitted)}개 청크")

        return TranscriptionResult(chunks=list(run.emitted), duration_sec=audio.duration_sec)

    # =========================================================================
    # 내부 워커
    # =========================================================================

    async def _worker(
        self,
        run: _WindowRun,
        audio: DecodedAudio,
        on_chunk: Optional[ChunkCallback],
        on_progress: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        """대기 윈도우가 없을 때까지 하나씩 가져가 전사합니다."""
        while True:
            if cancel_event is not None and cancel_event.is_set():
                return
            window = run.claim()
            if window is None:
                return

            try:
                result = await self._transcribe_window(audio, window)
            except Exception:
                # 다른 워커가 이후 결과를 전달하지 못하도록 즉시 중단 표시
                run.abort()
                raise

            ready = run.complete(result)
            if on_chunk is not None:
                for chunk in ready:
                    on_chunk(chunk)

            if on_progress is not None and not run.aborted:
                total = len(run.windows)
                on_progress(ProgressEvent(
                    chunk_index=window.index,
                    total_chunks=total,
                    processed_chunks=run.processed,
                    percent=round(run.processed / total * 100.0, 2),
                    start_sec=window.start_sec,
                    end_sec=window.end_sec,
                    duration_sec=window.duration_sec,
                ))

    async def _transcribe_window(self, audio: DecodedAudio, window: Window) -> ChunkResult:
        """윈도우 하나를 슬라이스 → 인코딩 → 전사하여 ChunkResult로 정규화합니다."""
        sliced = slice_audio(
            audio,
            clamp_frame(window.start_frame, audio.frame_count),
            clamp_frame(window.end_frame, audio.frame_count),
        )
        blob = self._encoder.encode(sliced)

        logger.debug(
            f"윈도우 {window.index} 전사 요청: "
            f"{window.start_sec:.1f}s ~ {window.end_sec:.1f}s ({len(blob)} bytes)"
        )
        payload = await self._client.transcribe(
            blob, filename=f"chunk_{window.index:04d}.wav", stream=False
        )

        segments = parse_segments(payload)
        text = payload_text(payload) or join_text(segments)
        if not segments and text:
            segments = [TranscriptSegment(start=0.0, end=window.duration_sec, text=text)]

        drop_before = 0.0 if window.index == 0 else self._window_cfg.overlap_sec
        return ChunkResult(
            chunk_index=window.index,
            duration_sec=window.duration_sec,
            segments=tuple(segments),
            text=text,
            trimmed_text=join_trimmed(segments, drop_before),
            raw=payload,
            offset_sec=window.start_sec,
        )


async def run_sliding_window(
    source: Union[bytes, DecodedAudio],
    config: AppConfig,
    client,
    on_chunk: Optional[ChunkCallback] = None,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> TranscriptionResult:
    """
    오디오 blob(또는 디코딩된 오디오)을 슬라이딩 윈도우 방식으로 전사합니다.

    blob이면 먼저 디코딩하며, DecodeError/InputError는 네트워크 호출 전에 발생합니다.
    """
    audio = source if isinstance(source, DecodedAudio) else await decode_audio_async(source)
    scheduler = SlidingWindowScheduler(config, client)
    return await scheduler.run(audio, on_chunk, on_progress, cancel_event)


async def _cancel_all(tasks) -> None:
    """남은 워커 태스크를 취소하고 종료를 기다립니다."""
    for task in tasks:
        if not task.done():
            task.cancel()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
