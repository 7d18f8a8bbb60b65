"""
전사 파이프라인 패키지

공통 데이터 타입:
- ChunkResult: 윈도우(또는 스트리밍 이벤트) 하나의 정규화된 전사 결과
- ProgressEvent: 파이프라인 진행 상황 스냅샷
- TranscriptionResult: 전사 실행 하나의 최종 집계
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from noteworthy.stt import TranscriptSegment


@dataclass(frozen=True)
class ChunkResult:
    """
    소비자에게 전달되는 전사 결과 단위입니다.

    chunk_index는 0부터 빈틈없이 1씩 증가하는 순서로만 전달됩니다.

    필드:
        chunk_index: 청크 순번 (0부터 시작)
        duration_sec: 청크 길이 (초)
        segments: 서비스가 반환한 세그먼트 (청크 기준 시각)
        text: 세그먼트 원문을 이어 붙인 텍스트
        trimmed_text: 앞부분 겹침 구간을 잘라낸 뒤 이어 붙인 텍스트
        raw: 서비스 원본 응답 (진단용)
        offset_sec: 전체 녹음 기준 청크 시작 시각 (초)
    """
    chunk_index: int
    duration_sec: float
    segments: tuple[TranscriptSegment, ...]
    text: str
    trimmed_text: str
    raw: Any = None
    offset_sec: float = 0.0


@dataclass(frozen=True)
class ProgressEvent:
    """
    파이프라인 진행 상황 스냅샷입니다.

    필드:
        chunk_index: 방금 끝난 청크 순번 (작업 시작 전은 -1)
        total_chunks: 전체 청크 수
        processed_chunks: 완료된 청크 수
        percent: 진행률 (0~100)
        start_sec: 방금 끝난 단위의 시작 시각 (시작 전 이벤트는 0)
        end_sec: 방금 끝난 단위의 끝 시각 (시작 전 이벤트는 전체 길이)
        duration_sec: 방금 끝난 단위의 길이 (시작 전 이벤트는 전체 길이)
    """
    chunk_index: int
    total_chunks: int
    processed_chunks: int
    percent: float
    start_sec: float
    end_sec: float
    duration_sec: float


@dataclass
class TranscriptionResult:
    """
    전사 실행 하나의 최종 집계입니다.

    필드:
        chunks: 소비자에게 전달된 ChunkResult 목록 (순서대로)
        duration_sec: 입력 오디오 전체 길이 (초)
        final_payload: 서비스의 종료 이벤트 또는 JSON 본문 (있을 때만)
    """
    chunks: list[ChunkResult] = field(default_factory=list)
    duration_sec: float = 0.0
    final_payload: Optional[dict[str, Any]] = None

    @property
    def text(self) -> str:
        """겹침을 제거한 텍스트를 청크 순서대로 이어 붙입니다."""
        return " ".join(chunk.trimmed_text for chunk in self.chunks if chunk.trimmed_text)


ChunkCallback = Callable[[ChunkResult], None]
ProgressCallback = Callable[[ProgressEvent], None]
