"""
전사 실행 로깅 설정 모듈입니다.

역할:
- 콘솔 + 순환 파일(noteworthy.log) 핸들러를 root logger에 연결
- json 포맷은 python-json-logger로 session_id/module/level 필드를 포함해 출력
- 전사 실행 하나를 식별하는 session_id 관리 (결과 JSON에도 기록)
- httpx 요청 로그를 WARNING 이상으로 제한

사용 예시:
    >>> setup_logging(config)
    >>> current_session_id()
    '3f2b...'
"""

from __future__ import annotations

import logging
import logging.handlers
import uuid
from pathlib import Path
from typing import Optional

from pythonjsonlogger import jsonlogger

from noteworthy.config.schema import AppConfig, SystemConfig

LOG_FILENAME = "noteworthy.log"
_LOG_MAX_BYTES = 10 * 1024 * 1024
_LOG_BACKUP_COUNT = 5

# 요청마다 INFO 로그를 남기는 서드파티 로거
_NOISY_LOGGERS = ("httpx", "httpcore")

_session_id: str = ""


def setup_logging(config: AppConfig, session_id: Optional[str] = None) -> str:
    """
    root logger를 설정에 맞게 다시 구성합니다.

    반복 호출해도 이전 핸들러를 닫고 교체하므로 핸들러가 중복되지 않습니다.

    파라미터:
        config: AppConfig 인스턴스
        session_id: 세션 식별자. None이면 config.system.session_id, 그것도 없으면 UUID

    반환값:
        str: 적용된 session_id
    """
    global _session_id

    system_cfg = config.system
    _session_id = session_id or system_cfg.session_id or str(uuid.uuid4())
    level = getattr(logging, system_cfg.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    for handler in _build_handlers(system_cfg, level):
        handler.setFormatter(_make_formatter(system_cfg.log_format, _session_id))
        root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logging.getLogger(__name__).info(
        f"로깅 초기화: level={system_cfg.log_level}, "
        f"format={system_cfg.log_format}, session={_session_id}"
    )
    return _session_id


def current_session_id() -> str:
    """마지막 setup_logging()이 적용한 session_id를 반환합니다 (설정 전에는 빈 문자열)."""
    return _session_id


def _build_handlers(system_cfg: SystemConfig, level: int) -> list[logging.Handler]:
    """콘솔 핸들러와 순환 파일 핸들러를 생성합니다. 로그 디렉토리를 만들 수 없으면 콘솔만 사용합니다."""
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    handlers: list[logging.Handler] = [console_handler]

    log_dir = Path(system_cfg.log_dir)
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_dir / LOG_FILENAME,
            maxBytes=_LOG_MAX_BYTES,
            backupCount=_LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as exc:
        logging.getLogger(__name__).warning(f"로그 파일 핸들러 생성 실패, 콘솔만 사용: {exc}")
    else:
        file_handler.setLevel(level)
        handlers.append(file_handler)
    return handlers


def _make_formatter(log_format: str, session_id: str) -> logging.Formatter:
    if log_format == "json":
        return _JsonFormatter(session_id=session_id)
    return _TextFormatter(session_id=session_id)


class _JsonFormatter(jsonlogger.JsonFormatter):
    """session_id, module, level 필드를 추가하는 JSON 포맷터입니다."""

    def __init__(self, session_id: str = "") -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
        self._session_id = session_id

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["session_id"] = self._session_id
        log_record["module"] = record.name
        log_record["level"] = record.levelname


class _TextFormatter(logging.Formatter):
    """session_id 앞 8자를 접두어로 붙이는 텍스트 포맷터입니다."""

    def __init__(self, session_id: str = "") -> None:
        prefix = session_id[:8] if session_id else "no-sid"
        super().__init__(
            fmt=f"%(asctime)s [{prefix}] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
