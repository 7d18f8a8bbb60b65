"""
Noteworthy 오디오 전사 실행기

역할:
- 설정 로드 → 로깅 초기화 → 녹음 파일 전사 → 전사문 출력
- 업로드 크기에 따라 슬라이딩 윈도우 / 단일 요청 스트리밍 방식 자동 선택
- SIGINT/SIGTERM 수신 시 새 윈도우 배정을 멈추고 이미 받은 결과까지 저장
- 에러 발생 시 오류 로깅 후 부분 전사문을 남기고 종료 코드 1 반환

실행 예시:
    자동 선택:
        python main.py recordings/meeting.wav

    윈도우 모드 강제 + 결과 저장:
        python main.py recordings/meeting.mp3 --mode window --output meeting.txt --json meeting.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from noteworthy.config.config_manager import ConfigFileNotFoundError, ConfigManager
from noteworthy.errors import TranscriptionError
from noteworthy.logging import current_session_id, setup_logging
from noteworthy.pipeline import ChunkResult, ProgressEvent
from noteworthy.pipeline.transcription_pipeline import TranscriptionPipeline
from noteworthy.stt.transcription_client import TranscriptionClient

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """커맨드라인 인자를 파싱합니다."""
    parser = argparse.ArgumentParser(
        description="Noteworthy: 긴 녹음을 겹치는 윈도우로 나누어 전사합니다"
    )
    parser.add_argument("audio", help="전사할 오디오 파일 경로 (WAV/MP3/FLAC)")
    parser.add_argument(
        "--config", default="config.yaml", help="설정 파일 경로 (기본: config.yaml, 없으면 기본값)"
    )
    parser.add_argument(
        "--mode", choices=["auto", "window", "single"], default="auto",
        help="전사 방식 (기본: 업로드 크기로 자동 선택)",
    )
    parser.add_argument("--output", help="전사문 텍스트 저장 경로")
    parser.add_argument("--json", dest="json_path", help="청크별 결과 JSON 저장 경로")
    return parser.parse_args(argv)


class _TranscriptPrinter:
    """전달받은 청크를 출력하고 누적하는 콘솔 소비자입니다."""

    def __init__(self) -> None:
        self.chunks: list[ChunkResult] = []

    def on_chunk(self, chunk: ChunkResult) -> None:
        self.chunks.append(chunk)
        if chunk.trimmed_text:
            print(f"[{chunk.offset_sec:7.1f}s] {chunk.trimmed_text}", flush=True)

    def on_progress(self, progress: ProgressEvent) -> None:
        if progress.chunk_index < 0:
            logger.info(
                f"전사 준비: 청크 {progress.total_chunks}개, 길이 {progress.duration_sec:.1f}s"
            )
            return
        logger.info(
            f"진행률 {progress.percent:5.1f}% "
            f"({progress.processed_chunks}/{progress.total_chunks}, "
            f"{progress.start_sec:.1f}s ~ {progress.end_sec:.1f}s)"
        )

    @property
    def text(self) -> str:
        return " ".join(chunk.trimmed_text for chunk in self.chunks if chunk.trimmed_text)


def _write_outputs(
    printer: _TranscriptPrinter,
    args: argparse.Namespace,
    manager: ConfigManager,
) -> None:
    """누적된 전사문과 청크 결과를 파일로 저장합니다."""
    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(printer.text + "\n", encoding="utf-8")
        logger.info(f"전사문 저장 완료: {output_path}")

    if args.json_path:
        json_path = Path(args.json_path)
        json_path.parent.mkdir(parents=True, exist_ok=True)
        document = {
            "session_id": current_session_id(),
            "model": manager.get("stt.model"),
            "window_sec": manager.get("window.window_sec"),
            "overlap_sec": manager.get("window.overlap_sec"),
            "chunks": [asdict(chunk) for chunk in printer.chunks],
        }
        json_path.write_text(json.dumps(document, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info(f"청크 결과 저장 완료: {json_path} ({len(document['chunks'])}개)")


async def _main(argv: Optional[list[str]] = None) -> int:
    """비동기 메인 함수입니다. 종료 코드를 반환합니다."""
    args = _parse_args(argv)

    manager = ConfigManager()
    config_path = Path(args.config)
    try:
        config = manager.load(config_path)
    except ConfigFileNotFoundError:
        config = manager.load(None)

    setup_logging(config)

    audio_path = Path(args.audio)
    blob = audio_path.read_bytes()
    logger.info(f"Noteworthy 전사 시작: {audio_path} ({len(blob)} bytes)")

    # SIGINT/SIGTERM 핸들러 등록 (asyncio-safe 방식)
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _signal_handler() -> None:
        logger.info("종료 시그널 수신, 새 윈도우 배정 중지")
        cancel_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            pass

    printer = _TranscriptPrinter()
    exit_code = 0
    try:
        async with TranscriptionClient(config.stt) as client:
            pipeline = TranscriptionPipeline(config, client)
            await pipeline.transcribe(
                blob,
                on_chunk=printer.on_chunk,
                on_progress=printer.on_progress,
                mode=args.mode,
                cancel_event=cancel_event,
            )
    except TranscriptionError as exc:
        logger.error(f"전사 실패: {exc} (부분 전사 {len(printer.chunks)}개 청크 유지)")
        exit_code = 1
    finally:
        _write_outputs(printer, args, manager)

    logger.info("Noteworthy 전사 종료")
    return exit_code


if __name__ == "__main__":
    sys.exit(asyncio.run(_main()))
