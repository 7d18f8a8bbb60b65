"""
오디오 디코더 모듈입니다.

역할:
- 업로드된 오디오 blob(WAV/FLAC/OGG/MP3)을 DecodedAudio로 디코딩
- 컨테이너 포맷을 감지하여 업로드 파일명 확장자 결정
- 이벤트 루프를 막지 않도록 스레드 오프로딩 버전 제공

사용 예시:
    >>> audio = await decode_audio_async(blob)
    >>> audio.duration_sec
    65.0
"""

from __future__ import annotations

import asyncio
import io
import logging

import soundfile as sf

from noteworthy.audio import DecodedAudio
from noteworthy.errors import DecodeError, InputError

logger = logging.getLogger(__name__)

# soundfile 포맷 이름 → 업로드 파일 확장자
_EXTENSIONS = {
    "WAV": "wav",
    "WAVEX": "wav",
    "FLAC": "flac",
    "OGG": "ogg",
    "MP3": "mp3",
    "AIFF": "aiff",
}


def decode_audio(blob: bytes) -> DecodedAudio:
    """
    오디오 blob을 디코딩합니다.

    파라미터:
        blob: 오디오 컨테이너 bytes

    반환값:
        DecodedAudio: 디코딩된 오디오 (float32, shape=(channels, frames))

    에러:
        InputError: blob이 비어있을 때
        DecodeError: 디코딩에 실패했을 때
    """
    if not blob:
        raise InputError("오디오 데이터가 비어있습니다")

    try:
        data, sample_rate = sf.read(io.BytesIO(blob), dtype="float32", always_2d=True)
    except (sf.LibsndfileError, RuntimeError, TypeError, ValueError) as exc:
        raise DecodeError(f"오디오 디코딩 실패: {exc}") from exc

    audio = DecodedAudio(sample_rate=int(sample_rate), samples=data.T)
    logger.debug(
        f"오디오 디코딩 완료: {audio.duration_sec:.2f}s, "
        f"{audio.sample_rate}Hz, {audio.channels}ch"
    )
    return audio


async def decode_audio_async(blob: bytes) -> DecodedAudio:
    """decode_audio()를 워커 스레드에서 실행합니다."""
    return await asyncio.to_thread(decode_audio, blob)


def detect_extension(blob: bytes, default: str = "wav") -> str:
    """
    blob의 컨테이너 포맷에 맞는 파일 확장자를 반환합니다.

    감지에 실패하면 default를 반환합니다.
    """
    try:
        info = sf.info(io.BytesIO(blob))
    except (sf.LibsndfileError, RuntimeError, TypeError, ValueError):
        return default
    return _EXTENSIONS.get(info.format, default)
