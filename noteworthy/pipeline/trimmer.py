"""
겹침 구간 세그먼트 트리머 모듈입니다.

겹치는 윈도우는 경계 근처 발화를 두 번 전사합니다. 세그먼트 단위 타임스탬프만
있으므로, 경계 이전에 속한다고 추정되는 비율만큼 텍스트 앞부분을 잘라냅니다.
단어 경계를 보장하지 않는 근사치입니다.
"""

from __future__ import annotations

import math
from typing import Iterable

from noteworthy.stt import TranscriptSegment

_EPSILON = 1e-6


def trim_segment_text(segment: TranscriptSegment, drop_before_sec: float) -> str:
    """
    drop_before_sec 이전 부분을 비례적으로 제거한 세그먼트 텍스트를 반환합니다.

    파라미터:
        segment: 청크 기준 시각의 세그먼트
        drop_before_sec: 이 시각 이전 텍스트를 버림 (0 이하면 버리지 않음)

    반환값:
        str: 앞뒤 공백을 제거한 텍스트 (입력보다 길어지지 않음)
    """
    text = segment.text
    if drop_before_sec <= 0 or segment.start >= segment.end:
        return text.strip()
    if segment.end <= drop_before_sec:
        return ""

    span = max(segment.end - segment.start, _EPSILON)
    ratio = min(1.0, max(0.0, (drop_before_sec - segment.start) / span))
    # 정확히 절반인 경우 올림
    drop_chars = int(math.floor(ratio * len(text) + 0.5))
    return text[drop_chars:].strip()


def join_trimmed(segments: Iterable[TranscriptSegment], drop_before_sec: float) -> str:
    """각 세그먼트를 잘라낸 뒤 빈 텍스트를 제외하고 공백으로 이어 붙입니다."""
    pieces = (trim_segment_text(segment, drop_before_sec) for segment in segments)
    return " ".join(piece for piece in pieces if piece)


def join_text(segments: Iterable[TranscriptSegment]) -> str:
    """세그먼트 원문을 공백으로 이어 붙입니다."""
    return " ".join(piece for piece in (s.text.strip() for s in segments) if piece)
