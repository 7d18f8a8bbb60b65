"""
업로드용 오디오 변환 모듈입니다.

역할:
- 윈도우 업로드 전 채널 믹스다운 (N ch → mono)
- scipy 리샘플링 (원본 Hz → audio.output_sample_rate Hz)
- 설정이 비어있으면 원본을 그대로 통과

변환 파이프라인:
    DecodedAudio(N Hz / C ch)
        → 채널 평균 믹스다운 (mixdown_mono=True일 때)
        → resample_poly 리샘플링 (output_sample_rate 지정 시)
        → DecodedAudio
"""

from __future__ import annotations

import logging
from math import gcd
from typing import Optional

import numpy as np
from scipy.signal import resample_poly

from noteworthy.audio import DecodedAudio
from noteworthy.config.schema import AudioConfig

logger = logging.getLogger(__name__)


class AudioConditioner:
    """
    업로드 직전 오디오를 설정된 포맷으로 맞추는 클래스입니다.

    원본 버퍼는 변경하지 않고 항상 새 DecodedAudio를 반환합니다.
    """

    def __init__(self, audio_cfg: Optional[AudioConfig] = None) -> None:
        self._audio_cfg = audio_cfg or AudioConfig()
        self._out_sample_rate: Optional[int] = self._audio_cfg.output_sample_rate
        self._mixdown: bool = self._audio_cfg.mixdown_mono

        logger.debug(
            f"AudioConditioner 초기화: "
            f"output_sample_rate={self._out_sample_rate}, mixdown_mono={self._mixdown}"
        )

    @property
    def is_passthrough(self) -> bool:
        """변환 없이 원본을 그대로 사용하는지 여부입니다."""
        return self._out_sample_rate is None and not self._mixdown

    def condition(self, buffer: DecodedAudio) -> DecodedAudio:
        """
        설정에 따라 믹스다운/리샘플링한 오디오를 반환합니다.

        파라미터:
            buffer: 변환할 오디오

        반환값:
            DecodedAudio: 변환된 오디오 (변환이 없으면 입력 그대로)
        """
        if self.is_passthrough:
            return buffer

        samples = buffer.samples
        sample_rate = buffer.sample_rate

        if self._mixdown and buffer.channels > 1:
            samples = _mixdown_to_mono(samples)

        if self._out_sample_rate is not None and self._out_sample_rate != sample_rate:
            samples = _resample(samples, sample_rate, self._out_sample_rate)
            sample_rate = self._out_sample_rate

        if samples is buffer.samples:
            return buffer
        return DecodedAudio(sample_rate=sample_rate, samples=samples)


# =============================================================================
# 모듈 레벨 헬퍼 함수
# =============================================================================

def _mixdown_to_mono(samples: np.ndarray) -> np.ndarray:
    """
    멀티채널 배열을 모노로 믹스다운합니다. 모든 채널의 평균을 취합니다.

    파라미터:
        samples: shape=(channels, frames) float32 배열

    반환값:
        np.ndarray: shape=(1, frames) float32 배열
    """
    return samples.mean(axis=0, keepdims=True).astype(np.float32)


def _resample(samples: np.ndarray, from_rate: int, to_rate: int) -> np.ndarray:
    """
    scipy.signal.resample_poly로 샘플레이트를 변환합니다.

    up/down 비율을 GCD로 약분하여 연산량을 최소화합니다.
    """
    if samples.shape[1] == 0:
        return np.zeros((samples.shape[0], 0), dtype=np.float32)
    common = gcd(from_rate, to_rate)
    up = to_rate // common
    down = from_rate // common
    return resample_poly(samples, up, down, axis=1).astype(np.float32)
