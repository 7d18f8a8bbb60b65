"""
오디오 슬라이서 모듈입니다.

역할:
- DecodedAudio에서 지정 프레임 구간을 잘라 새 DecodedAudio를 생성
- 샘플링레이트와 채널 수를 그대로 유지
- 각 채널은 원본과 저장소를 공유하지 않는 독립 복사본

사용 예시:
    >>> window = slice_audio(audio, 0, audio.sample_rate * 30)
"""

from __future__ import annotations

import logging

import numpy as np

from noteworthy.audio import DecodedAudio

logger = logging.getLogger(__name__)


def slice_audio(buffer: DecodedAudio, start_frame: int, end_frame: int) -> DecodedAudio:
    """
    [start_frame, end_frame) 구간을 담은 새 DecodedAudio를 반환합니다.

    프레임 범위는 호출자가 [0, frame_count]로 제한해야 합니다.
    end_frame < start_frame이면 0프레임 버퍼를 반환합니다.

    파라미터:
        buffer: 원본 오디오
        start_frame: 시작 프레임 (포함)
        end_frame: 끝 프레임 (제외)

    반환값:
        DecodedAudio: 잘라낸 구간의 독립 복사본
    """
    if end_frame < start_frame:
        logger.debug(f"역전된 프레임 구간 [{start_frame}, {end_frame}), 빈 버퍼 반환")
        return DecodedAudio(
            sample_rate=buffer.sample_rate,
            samples=np.zeros((buffer.channels, 0), dtype=np.float32),
        )

    # DecodedAudio 생성자가 복사하므로 결과는 원본과 메모리를 공유하지 않음
    return DecodedAudio(
        sample_rate=buffer.sample_rate,
        samples=buffer.samples[:, start_frame:end_frame],
    )


def clamp_frame(frame: int, frame_count: int) -> int:
    """프레임 인덱스를 [0, frame_count] 범위로 제한합니다."""
    return max(0, min(int(frame), frame_count))
