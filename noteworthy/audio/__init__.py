"""
오디오 처리 모듈 패키지

공통 데이터 타입:
- DecodedAudio: 디코딩된 전체 오디오 신호 (채널별 float32 샘플)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class DecodedAudio:
    """
    메모리에 디코딩된 오디오 신호 컨테이너입니다.

    생성 후 변경 불가(samples는 읽기 전용 배열)이며, 슬라이스는 항상
    독립된 복사본이므로 여러 워커가 동시에 잘라 써도 안전합니다.

    필드:
        sample_rate: 샘플링레이트 (Hz, 양수)
        samples: float32 샘플 배열, shape=(channels, frames), 값 범위 -1.0~+1.0
    """
    sample_rate: int
    samples: np.ndarray

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate는 양수여야 합니다: {self.sample_rate}")
        # 호출자 배열과 저장소를 공유하지 않도록 항상 복사
        samples = np.array(self.samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples.reshape(1, -1)
        if samples.ndim != 2 or samples.shape[0] < 1:
            raise ValueError(f"samples는 (channels, frames) 형태여야 합니다: {samples.shape}")
        samples.flags.writeable = False
        object.__setattr__(self, "samples", samples)

    @property
    def channels(self) -> int:
        """채널 수를 반환합니다."""
        return int(self.samples.shape[0])

    @property
    def frame_count(self) -> int:
        """채널당 프레임(샘플) 수를 반환합니다."""
        return int(self.samples.shape[1])

    @property
    def duration_sec(self) -> float:
        """신호 길이(초)를 반환합니다."""
        return self.frame_count / float(self.sample_rate)

    def channel(self, index: int) -> np.ndarray:
        """지정 채널의 읽기 전용 샘플 배열을 반환합니다."""
        return self.samples[index]
