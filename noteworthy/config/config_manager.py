"""
Noteworthy 설정 관리 모듈입니다.

역할:
- YAML 설정 파일을 로드하고 Pydantic 스키마로 유효성 검증
- 환경변수 오버라이드 지원 (접두사: NWT_, API 키는 OPENAI_API_KEY 폴백)
- dot-notation 기반 설정값 조회 (예: "stt.api_key")

사용 예시:
    >>> manager = ConfigManager()
    >>> config = manager.load("config.yaml")
    >>> overlap = manager.get("window.overlap_sec")
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from noteworthy.config.schema import AppConfig

# 모듈 로거 설정
logger = logging.getLogger(__name__)

# 환경변수 오버라이드 접두사
ENV_PREFIX = "NWT_"

# stt.api_key가 비어있을 때 사용하는 표준 환경변수
API_KEY_FALLBACK_ENV = "OPENAI_API_KEY"


class ConfigLoadError(Exception):
    """설정 파일 로드 중 발생하는 에러의 기본 클래스입니다."""
    pass


class ConfigValidationError(ConfigLoadError):
    """설정 스키마 검증 실패 시 발생하는 에러입니다."""
    pass


class ConfigFileNotFoundError(ConfigLoadError):
    """설정 파일을 찾을 수 없을 때 발생하는 에러입니다."""
    pass


class ConfigManager:
    """
    YAML 설정 파일을 로드하고 관리하는 매니저 클래스입니다.

    역할:
    - YAML 파일 파싱 및 Pydantic 유효성 검증
    - 환경변수 오버라이드 (NWT_ 접두사)
    - dot-notation 설정값 조회

    사용 예시:
        >>> manager = ConfigManager()
        >>> config = manager.load("config.yaml")
        >>> print(manager.get("stt.model"))
        'gpt-4o-transcribe-diarize'
    """

    def __init__(self) -> None:
        """ConfigManager를 초기화합니다."""
        # 현재 활성 설정 객체 (로드 전에는 None)
        self._config: Optional[AppConfig] = None
        # 설정 파일 경로 (로드 시 설정됨)
        self._config_filepath: Optional[Path] = None
        # 설정 접근 시 스레드 안전성을 보장하기 위한 락
        self._lock: threading.RLock = threading.RLock()

        logger.debug("ConfigManager 인스턴스 생성 완료")

    @property
    def config(self) -> Optional[AppConfig]:
        """현재 활성 설정 객체를 반환합니다."""
        with self._lock:
            return self._config

    def load(self, filepath: str | Path | None = None) -> AppConfig:
        """
        YAML 설정 파일을 로드하고 Pydantic 스키마로 검증합니다.

        처리 순서:
        1. 파일 존재 여부 확인 (filepath가 None이면 기본값에서 시작)
        2. YAML 파싱
        3. 환경변수 오버라이드 적용
        4. Pydantic 스키마 검증
        5. 검증 통과 시 활성 설정으로 교체

        파라미터:
            filepath (str | Path | None): YAML 설정 파일 경로

        반환값:
            AppConfig: 검증 완료된 설정 객체

        에러:
            ConfigFileNotFoundError: 파일이 존재하지 않을 때
            ConfigValidationError: 스키마 검증 실패 시
            ConfigLoadError: YAML 파싱 실패 등 기타 에러
        """
        path = Path(filepath) if filepath is not None else None
        logger.info(f"설정 로드 시작: {path if path else '(기본값)'}")

        if path is not None and not path.exists():
            error_message = f"설정 파일을 찾을 수 없습니다: {path}"
            logger.error(error_message)
            raise ConfigFileNotFoundError(error_message)

        try:
            raw_config = self._parse_yaml_file(path) if path is not None else {}
            logger.debug(f"YAML 파싱 완료: {len(raw_config)} 개 최상위 키")

            raw_config = self._apply_env_overrides(raw_config)

            validated_config = self._validate_config(raw_config)

            with self._lock:
                self._config = validated_config
                self._config_filepath = path

            logger.info(
                f"설정 로드 성공: "
                f"model={validated_config.stt.model}, "
                f"window={validated_config.window.window_sec}s, "
                f"overlap={validated_config.window.overlap_sec}s"
            )
            return validated_config

        except ConfigLoadError:
            raise

        except Exception as unexpected_error:
            error_message = f"설정 로드 중 예상치 못한 에러: {unexpected_error}"
            logger.error(error_message, exc_info=True)
            raise ConfigLoadError(error_message) from unexpected_error

    def get(self, key: str, default: Any = None) -> Any:
        """
        dot-notation으로 설정값을 조회합니다.

        파라미터:
            key (str): dot-notation 설정 키 (예: "stt.model", "window.overlap_sec")
            default (Any): 키가 존재하지 않을 때 반환할 기본값

        반환값:
            Any: 설정값 또는 기본값

        에러:
            RuntimeError: 설정이 로드되지 않은 상태에서 호출 시
        """
        with self._lock:
            if self._config is None:
                error_message = "설정이 아직 로드되지 않았습니다. load()를 먼저 호출하세요."
                logger.error(error_message)
                raise RuntimeError(error_message)

            current_value: Any = self._config
            for part in key.split("."):
                if isinstance(current_value, dict):
                    if part not in current_value:
                        return default
                    current_value = current_value[part]
                elif hasattr(current_value, part):
                    current_value = getattr(current_value, part)
                else:
                    logger.debug(f"설정 키 '{key}'에서 '{part}' 부분을 찾을 수 없음, 기본값 반환")
                    return default

            return current_value

    # =========================================================================
    # 내부 메서드 (private)
    # =========================================================================

    def _parse_yaml_file(self, filepath: Path) -> dict:
        """
        YAML 파일을 읽어서 딕셔너리로 파싱합니다.

        에러:
            ConfigLoadError: 파일 읽기 또는 파싱 실패 시
        """
        try:
            with open(filepath, "r", encoding="utf-8") as config_file:
                raw_data = yaml.safe_load(config_file)

            if raw_data is None:
                logger.warning(f"설정 파일이 비어있습니다: {filepath}")
                return {}

            if not isinstance(raw_data, dict):
                error_message = f"설정 파일의 최상위 구조가 딕셔너리가 아닙니다: {type(raw_data)}"
                raise ConfigLoadError(error_message)

            return raw_data

        except yaml.YAMLError as yaml_error:
            error_message = f"YAML 파싱 에러: {yaml_error}"
            logger.error(error_message, exc_info=True)
            raise ConfigLoadError(error_message) from yaml_error

        except OSError as file_error:
            error_message = f"파일 읽기 에러: {file_error}"
            logger.error(error_message, exc_info=True)
            raise ConfigLoadError(error_message) from file_error

    def _apply_env_overrides(self, raw_config: dict) -> dict:
        """
        NWT_ 접두사 환경변수로 설정값을 오버라이드합니다.

        환경변수 매핑 규칙:
        - 첫 번째 언더스코어가 섹션 구분자
        - 예: NWT_STT_API_KEY -> stt.api_key
        - 예: NWT_WINDOW_OVERLAP_SEC -> window.overlap_sec

        stt.api_key가 끝까지 비어있으면 OPENAI_API_KEY를 사용합니다.
        """
        override_count = 0

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(ENV_PREFIX):
                continue

            config_path = env_key[len(ENV_PREFIX):].lower()
            path_parts = config_path.split("_", 1)

            if len(path_parts) < 2:
                logger.debug(f"환경변수 '{env_key}' 무시 (키 경로 부족)")
                continue

            section_name, field_name = path_parts
            section = raw_config.setdefault(section_name, {})
            if not isinstance(section, dict):
                logger.debug(f"환경변수 '{env_key}' 무시 (섹션이 딕셔너리가 아님)")
                continue

            converted_value = self._convert_env_value(env_value)
            section[field_name] = converted_value
            logger.info(
                f"환경변수 오버라이드: {env_key} -> "
                f"{section_name}.{field_name} = "
                f"{'***' if 'key' in field_name else converted_value}"
            )
            override_count += 1

        stt_section = raw_config.setdefault("stt", {})
        if isinstance(stt_section, dict) and not stt_section.get("api_key"):
            fallback_key = os.environ.get(API_KEY_FALLBACK_ENV, "")
            if fallback_key:
                stt_section["api_key"] = fallback_key
                logger.info(f"{API_KEY_FALLBACK_ENV} 환경변수를 stt.api_key로 사용")
                override_count += 1

        if override_count > 0:
            logger.info(f"환경변수 오버라이드 적용 완료: {override_count}건")

        return raw_config

    def _convert_env_value(self, value: str) -> Any:
        """
        환경변수 문자열 값을 적절한 Python 타입으로 변환합니다.

        변환 규칙:
        - "true"/"false" (대소문자 무관) -> bool
        - 정수 형식 문자열 -> int
        - 부동소수점 형식 문자열 -> float
        - 그 외 -> str (원본 유지)
        """
        if value.lower() == "true":
            return True
        if value.lower() == "false":
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def _validate_config(self, raw_config: dict) -> AppConfig:
        """
        딕셔너리를 Pydantic AppConfig 모델로 검증하고 변환합니다.

        에러:
            ConfigValidationError: Pydantic 검증 실패 시
        """
        try:
            return AppConfig(**raw_config)

        except ValidationError as validation_error:
            error_details = validation_error.errors()
            for error_detail in error_details:
                field_path = " -> ".join(str(loc) for loc in error_detail["loc"])
                logger.error(
                    f"설정 검증 실패 - 필드: {field_path}, "
                    f"에러: {error_detail['msg']}"
                )

            error_message = f"설정 스키마 검증 실패: {len(error_details)}개 에러 발생"
            raise ConfigValidationError(error_message) from validation_error
