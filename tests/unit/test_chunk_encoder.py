"""
WAV 인코더 / 업로드 변환 단위 테스트

검증 항목:
- RIFF/WAVE 헤더, 16bit PCM, 채널 수/샘플링레이트 기록
- 인코딩 → 디코딩 시 양자화 오차 범위 내 일치
- 0프레임 버퍼도 유효한 WAV
- 동일 입력에 대해 동일 bytes
- float → int16 비대칭 배율 및 클리핑
- AudioConditioner 믹스다운/리샘플링
"""

from __future__ import annotations

import io

import numpy as np
import pytest
import soundfile as sf

from noteworthy.audio import DecodedAudio
from noteworthy.audio.conditioner import AudioConditioner
from noteworthy.audio.encoder import ChunkEncoder, encode_wav, float_to_int16
from noteworthy.config.schema import AppConfig


# =============================================================================
# 테스트 헬퍼
# =============================================================================

def _make_config(
    output_sample_rate=None,
    mixdown_mono: bool = False,
) -> AppConfig:
    """테스트용 AppConfig를 생성합니다."""
    return AppConfig(**{
        "audio": {
            "output_sample_rate": output_sample_rate,
            "mixdown_mono": mixdown_mono,
        },
    })


def _make_sine(
    freq_hz: float = 440.0,
    duration_sec: float = 0.5,
    sample_rate: int = 16000,
    channels: int = 1,
    amplitude: float = 0.5,
) -> DecodedAudio:
    """테스트용 사인파 DecodedAudio를 생성합니다."""
    t = np.arange(int(duration_sec * sample_rate)) / sample_rate
    wave = (amplitude * np.sin(2 * np.pi * freq_hz * t)).astype(np.float32)
    return DecodedAudio(sample_rate=sample_rate, samples=np.tile(wave, (channels, 1)))


# =============================================================================
# encode_wav 테스트
# =============================================================================

def test_encode_wav_header():
    blob = encode_wav(_make_sine(channels=2, sample_rate=22050))

    assert blob[:4] == b"RIFF"
    assert blob[8:12] == b"WAVE"

    info = sf.info(io.BytesIO(blob))
    assert info.samplerate == 22050
    assert info.channels == 2
    assert info.subtype == "PCM_16"


def test_encode_wav_round_trip():
    audio = _make_sine(channels=2)

    data, sample_rate = sf.read(io.BytesIO(encode_wav(audio)), dtype="float32", always_2d=True)

    assert sample_rate == audio.sample_rate
    assert data.shape == (audio.frame_count, 2)
    np.testing.assert_allclose(data.T, audio.samples, atol=1.0 / 16384)


def test_encode_wav_empty_buffer_is_valid():
    empty = DecodedAudio(sample_rate=16000, samples=np.zeros((1, 0), dtype=np.float32))

    blob = encode_wav(empty)

    assert blob[:4] == b"RIFF"
    info = sf.info(io.BytesIO(blob))
    assert info.frames == 0
    assert info.samplerate == 16000


def test_encode_wav_is_deterministic():
    audio = _make_sine()

    assert encode_wav(audio) == encode_wav(audio)


# =============================================================================
# float_to_int16 테스트
# =============================================================================

def test_float_to_int16_scaling_and_clipping():
    samples = np.array([[-2.0, -1.0, 0.0, 0.5, 1.0, 3.0]], dtype=np.float32)

    pcm = float_to_int16(samples)

    assert pcm.dtype == np.int16
    assert pcm.tolist() == [[-32768, -32768, 0, 16383, 32767, 32767]]


# =============================================================================
# AudioConditioner / ChunkEncoder 테스트
# =============================================================================

def test_conditioner_passthrough_returns_same_buffer():
    conditioner = AudioConditioner(_make_config().audio)
    audio = _make_sine()

    assert conditioner.is_passthrough
    assert conditioner.condition(audio) is audio


def test_conditioner_mixdown_averages_channels():
    samples = np.array([[0.2, 0.4], [0.6, -0.4]], dtype=np.float32)
    audio = DecodedAudio(sample_rate=16000, samples=samples)

    result = AudioConditioner(_make_config(mixdown_mono=True).audio).condition(audio)

    assert result.channels == 1
    np.testing.assert_allclose(result.samples, [[0.4, 0.0]], atol=1e-6)


def test_conditioner_resamples_to_target_rate():
    audio = _make_sine(duration_sec=1.0, sample_rate=48000)

    result = AudioConditioner(_make_config(output_sample_rate=16000).audio).condition(audio)

    assert result.sample_rate == 16000
    assert result.frame_count == 16000


def test_chunk_encoder_applies_conditioning():
    config = _make_config(output_sample_rate=16000, mixdown_mono=True)
    audio = _make_sine(duration_sec=0.5, sample_rate=44100, channels=2)

    blob = ChunkEncoder(config.audio).encode(audio)

    info = sf.info(io.BytesIO(blob))
    assert info.samplerate == 16000
    assert info.channels == 1
    assert info.frames == 8000


def test_chunk_encoder_empty_window():
    empty = DecodedAudio(sample_rate=44100, samples=np.zeros((2, 0), dtype=np.float32))

    blob = ChunkEncoder(_make_config(output_sample_rate=16000).audio).encode(empty)

    assert sf.info(io.BytesIO(blob)).frames == 0


def test_config_rejects_out_of_range_sample_rate():
    with pytest.raises(ValueError):
        _make_config(output_sample_rate=1000)
