"""
겹침 구간 세그먼트 트리머 단위 테스트

검증 항목:
- drop_before_sec 이전 텍스트를 비율만큼 앞에서 제거
- drop_before_sec <= 0 이면 원문 유지 (공백만 정리)
- 경계 이전에 끝나는 세그먼트는 빈 문자열
- 순간(start == end) 세그먼트는 원문 유지
- 결과가 입력보다 길어지지 않음
"""

from __future__ import annotations

import pytest

from noteworthy.pipeline.trimmer import join_text, join_trimmed, trim_segment_text
from noteworthy.stt import TranscriptSegment


def _seg(start: float, end: float, text: str) -> TranscriptSegment:
    return TranscriptSegment(start=start, end=end, text=text)


# =============================================================================
# trim_segment_text 테스트
# =============================================================================

def test_trim_removes_half_at_midpoint():
    """세그먼트 중간 경계에서 앞 절반 정도를 제거합니다."""
    result = trim_segment_text(_seg(0.0, 2.0, "hello world"), 1.0)

    assert result == "world"


def test_trim_zero_boundary_keeps_text():
    segment = _seg(0.0, 2.0, "hello world")

    assert trim_segment_text(segment, 0.0) == "hello world"
    assert trim_segment_text(segment, -1.0) == "hello world"


def test_trim_strips_whitespace_without_boundary():
    assert trim_segment_text(_seg(0.0, 1.0, "  spaced  "), 0.0) == "spaced"


def test_trim_segment_before_boundary_is_empty():
    """경계 이전에 끝나는 세그먼트는 모두 제거됩니다."""
    assert trim_segment_text(_seg(0.0, 0.5, "hi"), 1.0) == ""


def test_trim_segment_ending_exactly_at_boundary_is_empty():
    assert trim_segment_text(_seg(0.0, 1.0, "gone"), 1.0) == ""


def test_trim_segment_after_boundary_is_untouched():
    assert trim_segment_text(_seg(1.5, 3.0, "kept text"), 1.0) == "kept text"


def test_trim_instantaneous_segment_keeps_text():
    assert trim_segment_text(_seg(0.5, 0.5, " blip "), 1.0) == "blip"


@pytest.mark.parametrize("boundary", [0.1, 0.4, 0.75, 1.3, 1.99])
def test_trim_never_grows_text(boundary):
    text = "selamat pagi semuanya"
    result = trim_segment_text(_seg(0.0, 2.0, text), boundary)

    assert len(result) <= len(text)
    assert text.endswith(result)


# =============================================================================
# join 헬퍼 테스트
# =============================================================================

def test_join_trimmed_skips_empty_pieces():
    segments = [
        _seg(0.0, 0.8, "overlap"),
        _seg(0.8, 2.0, "first"),
        _seg(2.0, 3.0, "second"),
    ]

    assert join_trimmed(segments, 1.0) == "irst second"


def test_join_trimmed_without_boundary_matches_join_text():
    segments = [_seg(0.0, 1.0, " a "), _seg(1.0, 2.0, ""), _seg(2.0, 3.0, "b")]

    assert join_trimmed(segments, 0.0) == join_text(segments) == "a b"


@pytest.mark.parametrize(
    "text, expected",
    [("abcde", "de"), ("abc", "c"), ("abcdefg", "efg")],
)
def test_trim_rounds_half_up(text, expected):
    """삭제 글자 수가 x.5이면 올림합니다 (5글자 절반 → 3글자 삭제)."""
    assert trim_segment_text(_seg(0.0, 2.0, text), 1.0) == expected
