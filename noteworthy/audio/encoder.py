"""
윈도우 오디오 WAV 인코더 모듈입니다.

역할:
- DecodedAudio를 16bit signed PCM / little-endian WAV 컨테이너 bytes로 변환
- 채널 수와 샘플링레이트는 헤더에 그대로 기록 (압축 없음)
- 0프레임 버퍼도 유효한 빈 WAV로 인코딩

사용 예시:
    >>> encoder = ChunkEncoder(config.audio)
    >>> blob = encoder.encode(window_audio)
"""

from __future__ import annotations

import io
import logging
from typing import Optional

import numpy as np
import soundfile as sf

from noteworthy.audio import DecodedAudio
from noteworthy.audio.conditioner import AudioConditioner
from noteworthy.config.schema import AudioConfig

logger = logging.getLogger(__name__)

# WAV 출력 고정값
_WAV_FORMAT = "WAV"
_WAV_SUBTYPE = "PCM_16"
WAV_MIME_TYPE = "audio/wav"

# int16 양자화 배율 (음수/양수 비대칭)
_INT16_NEG_SCALE = 32768.0
_INT16_POS_SCALE = 32767.0


def encode_wav(buffer: DecodedAudio) -> bytes:
    """
    DecodedAudio를 16bit PCM WAV bytes로 인코딩합니다.

    동일한 샘플 입력에 대해 항상 동일한 bytes를 생성합니다.

    파라미터:
        buffer: 인코딩할 오디오

    반환값:
        bytes: RIFF/WAVE 컨테이너
    """
    pcm = float_to_int16(buffer.samples)
    output = io.BytesIO()

    with sf.SoundFile(
        output,
        mode="w",
        samplerate=buffer.sample_rate,
        channels=buffer.channels,
        format=_WAV_FORMAT,
        subtype=_WAV_SUBTYPE,
    ) as wav_file:
        if buffer.frame_count > 0:
            # soundfile은 (frames, channels) 순서를 기대함
            wav_file.write(np.ascontiguousarray(pcm.T))

    return output.getvalue()


def float_to_int16(samples: np.ndarray) -> np.ndarray:
    """
    -1.0~+1.0 float 샘플을 int16으로 양자화합니다.

    범위를 벗어난 값은 잘라내고, 음수는 32768, 양수는 32767 배율을 적용합니다.
    """
    clipped = np.clip(samples, -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * _INT16_NEG_SCALE, clipped * _INT16_POS_SCALE)
    return scaled.astype(np.int16)


class ChunkEncoder:
    """
    업로드 변환(AudioConditioner)과 WAV 인코딩을 묶은 클래스입니다.

    슬라이딩 윈도우 워커가 윈도우마다 encode()를 호출합니다.
    """

    def __init__(self, audio_cfg: Optional[AudioConfig] = None) -> None:
        self._conditioner = AudioConditioner(audio_cfg)

    def encode(self, buffer: DecodedAudio) -> bytes:
        """버퍼를 변환한 뒤 WAV bytes로 인코딩합니다."""
        conditioned = self._conditioner.condition(buffer)
        blob = encode_wav(conditioned)
        logger.debug(
            f"윈도우 인코딩 완료: frames={conditioned.frame_count}, "
            f"rate={conditioned.sample_rate}Hz, ch={conditioned.channels}, "
            f"bytes={len(blob)}"
        )
        return blob
