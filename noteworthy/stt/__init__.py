"""
STT 모듈 패키지

공통 데이터 타입:
- TranscriptSegment: 원격 전사 서비스가 반환한 화자 구분 발화 구간
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TranscriptSegment:
    """
    전사된 발화 구간 하나입니다.

    필드:
        start: 시작 시각 (초, 업로드한 오디오 기준, 0 이상)
        end: 종료 시각 (초, start 이상)
        text: 전사 텍스트 (빈 문자열 가능)
        speaker: 화자 라벨 (서비스가 제공할 때만)
    """
    start: float
    end: float
    text: str
    speaker: Optional[str] = None

    @property
    def duration(self) -> float:
        """구간 길이(초)를 반환합니다."""
        return self.end - self.start
