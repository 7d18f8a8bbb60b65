"""
Noteworthy 전사 파이프라인 설정 스키마 정의 모듈입니다.

역할:
- Pydantic v2 BaseModel 기반으로 config.yaml의 전체 구조를 타입 안전하게 정의
- 각 섹션(system, stt, window, audio)을 독립적인 중첩 모델로 분리
- 필드별 기본값, 허용 범위, 유효성 검증(validator)을 포함

사용 예시:
    >>> from noteworthy.config.schema import AppConfig
    >>> config = AppConfig(**yaml_data)
    >>> print(config.window.window_sec)
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, Field, field_validator

# 모듈 로거 설정
logger = logging.getLogger(__name__)


# =============================================================================
# system 섹션: 시스템 전역 설정
# =============================================================================

class SystemConfig(BaseModel):
    """
    시스템 전역 설정을 정의하는 모델입니다.

    역할:
    - 로깅 레벨 및 포맷 지정
    - 세션 식별자 관리
    """
    # 로그 출력 레벨
    log_level: str = Field(default="INFO", description="로그 레벨 (DEBUG | INFO | WARNING | ERROR)")
    # 로그 출력 포맷
    log_format: str = Field(default="text", description="로그 포맷 (json | text)")
    # 로그 파일 저장 디렉토리 경로
    log_dir: str = Field(default="output/logs", description="로그 저장 디렉토리")
    # 세션 고유 식별자 (빈 문자열이면 UUID로 자동 생성)
    session_id: str = Field(default="", description="세션 ID (비어있으면 UUID 자동생성)")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """로그 레벨이 유효한 Python 로깅 레벨인지 검증합니다."""
        allowed_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        upper_value = value.upper()
        if upper_value not in allowed_levels:
            error_message = f"log_level은 {allowed_levels} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return upper_value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        """로그 포맷이 지원되는 형식인지 검증합니다."""
        allowed_formats = ("json", "text")
        if value not in allowed_formats:
            error_message = f"log_format은 {allowed_formats} 중 하나여야 합니다. 입력값: '{value}'"
            raise ValueError(error_message)
        return value


# =============================================================================
# stt 섹션: 원격 전사 서비스 설정
# =============================================================================

class STTConfig(BaseModel):
    """
    원격 전사 서비스(OpenAI 호환 /audio/transcriptions) 호출 설정입니다.

    역할:
    - 엔드포인트 및 인증 정보 관리
    - 모델/응답 형식/온도/언어 힌트 지정
    - 스트리밍 여부 및 요청 타임아웃 설정
    """
    # API 기본 URL
    base_url: str = Field(default="https://api.openai.com/v1", description="API 기본 URL")
    # API 인증 키 (환경변수 NWT_STT_API_KEY 또는 OPENAI_API_KEY 사용 권장)
    api_key: str = Field(default="", description="API 인증 키")
    # 전사 모델 식별자
    model: str = Field(default="gpt-4o-transcribe-diarize", description="전사 모델 식별자")
    # 샘플링 온도 (None이면 전송하지 않음)
    temperature: Optional[float] = Field(default=0.0, description="샘플링 온도 (0.0~1.0)")
    # 대상 언어 힌트 (ISO-639-1, 비어있으면 자동 감지)
    language: Optional[str] = Field(default=None, description="언어 힌트 (예: id, en, ko)")
    # 응답 형식
    response_format: str = Field(default="diarized_json", description="응답 형식 (json | verbose_json | diarized_json | text)")
    # 서버측 청킹 전략 힌트 (diarize 모델은 "auto" 필요)
    chunking_strategy: Optional[str] = Field(default="auto", description="청킹 전략 힌트")
    # 스트리밍 응답 요청 여부 (single-pass 모드에서 사용)
    stream: bool = Field(default=True, description="스트리밍 응답 요청 여부")
    # HTTP 요청 타임아웃 (초)
    timeout_sec: float = Field(default=300.0, description="HTTP 요청 타임아웃 (초)")

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, value: Optional[float]) -> Optional[float]:
        """온도가 0.0~1.0 범위인지 검증합니다."""
        if value is not None and not 0.0 <= value <= 1.0:
            error_message = f"temperature는 0.0~1.0 범위여야 합니다. 입력값: {value}"
            raise ValueError(error_message)
        return value

    @field_validator("timeout_sec")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """타임아웃이 양수인지 검증합니다."""
        if value <= 0:
            raise ValueError(f"timeout_sec는 0보다 커야 합니다. 입력값: {value}")
        return value


# =============================================================================
# window 섹션: 슬라이딩 윈도우 분할 설정
# =============================================================================

class WindowConfig(BaseModel):
    """
    슬라이딩 윈도우 분할 및 동시 요청 설정입니다.

    역할:
    - 윈도우 길이와 겹침 길이 지정
    - 동시 전사 요청 수 제한
    - 윈도우 모드로 전환할 업로드 크기 임계값 지정
    """
    # 윈도우 길이 (초). 연속 윈도우 시작점 간격(step)과 같음
    window_sec: float = Field(default=30.0, description="윈도우 길이 (초)")
    # 윈도우 겹침 길이 (초). 다음 윈도우 앞부분에서 잘라낼 구간
    overlap_sec: float = Field(default=1.0, description="윈도우 겹침 길이 (초)")
    # 동시에 진행할 최대 전사 요청 수 (스케줄러가 5로 상한 적용)
    max_concurrency: int = Field(default=5, description="최대 동시 요청 수")
    # 이 크기(bytes) 이상의 업로드는 윈도우 모드로 처리
    chunk_threshold_bytes: int = Field(default=24 * 1024 * 1024, description="윈도우 모드 전환 임계값 (bytes)")

    @field_validator("window_sec")
    @classmethod
    def validate_window_sec(cls, value: float) -> float:
        """윈도우 길이가 양수인지 검증합니다."""
        if value <= 0:
            raise ValueError(f"window_sec는 0보다 커야 합니다. 입력값: {value}")
        return value

    @field_validator("overlap_sec")
    @classmethod
    def validate_overlap_sec(cls, value: float) -> float:
        """겹침 길이가 음수가 아닌지 검증합니다."""
        if value < 0:
            raise ValueError(f"overlap_sec는 0 이상이어야 합니다. 입력값: {value}")
        return value

    @field_validator("max_concurrency")
    @classmethod
    def validate_max_concurrency(cls, value: int) -> int:
        """동시 요청 수가 1 이상인지 검증합니다."""
        if value < 1:
            raise ValueError(f"max_concurrency는 1 이상이어야 합니다. 입력값: {value}")
        return value


# =============================================================================
# audio 섹션: 업로드 오디오 변환 설정
# =============================================================================

class AudioConfig(BaseModel):
    """
    윈도우 업로드 전 오디오 변환 설정입니다.

    역할:
    - 업로드 샘플링레이트 지정 (None이면 원본 유지)
    - 모노 믹스다운 여부 지정
    """
    # 업로드용 출력 샘플링레이트 (Hz, None이면 원본 유지)
    output_sample_rate: Optional[int] = Field(default=None, description="출력 샘플링레이트 (Hz)")
    # 업로드 전 모노 믹스다운 여부
    mixdown_mono: bool = Field(default=False, description="모노 믹스다운 여부")

    @field_validator("output_sample_rate")
    @classmethod
    def validate_output_sample_rate(cls, value: Optional[int]) -> Optional[int]:
        """출력 샘플링레이트가 8kHz~192kHz 범위인지 검증합니다."""
        if value is not None and not 8000 <= value <= 192000:
            error_message = f"output_sample_rate는 8000~192000 범위여야 합니다. 입력값: {value}"
            raise ValueError(error_message)
        return value


# =============================================================================
# 최상위 AppConfig: 모든 섹션을 통합하는 루트 모델
# =============================================================================

class AppConfig(BaseModel):
    """
    애플리케이션 전체 설정을 통합하는 최상위 모델입니다.

    각 섹션이 누락된 경우 기본값으로 자동 생성됩니다.

    사용 예시:
        >>> config = AppConfig(**{"window": {"window_sec": 20}})
        >>> config.window.overlap_sec
        1.0
    """
    # 시스템 전역 설정
    system: SystemConfig = Field(default_factory=SystemConfig, description="시스템 설정")
    # 원격 전사 서비스 설정
    stt: STTConfig = Field(default_factory=STTConfig, description="STT 설정")
    # 슬라이딩 윈도우 설정
    window: WindowConfig = Field(default_factory=WindowConfig, description="윈도우 설정")
    # 업로드 오디오 변환 설정
    audio: AudioConfig = Field(default_factory=AudioConfig, description="오디오 설정")
