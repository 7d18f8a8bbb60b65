"""
전사 파이프라인 예외 정의 모듈입니다.

예외 계층:
    TranscriptionError
      ├── InputError          잘못된 입력 (네트워크 호출 전 즉시 실패)
      ├── DecodeError         오디오 디코딩 실패 (전체 작업 중단)
      └── RemoteServiceError  전사 요청 실패 (HTTP 비정상 응답/연결 실패)

    MalformedFrameWarning     스트리밍 이벤트 프레임 하나의 파싱 실패 (로그 후 건너뜀)
"""

from __future__ import annotations

from typing import Optional


class TranscriptionError(Exception):
    """전사 파이프라인 에러의 기본 클래스입니다."""
    pass


class InputError(TranscriptionError):
    """빈 오디오, 잘못된 윈도우 길이, 누락된 API 키 등 호출자 입력 오류입니다."""
    pass


class DecodeError(TranscriptionError):
    """오디오 blob을 샘플로 디코딩할 수 없을 때 발생합니다."""
    pass


class RemoteServiceError(TranscriptionError):
    """
    원격 전사 요청이 실패했을 때 발생합니다.

    필드:
        status_code: HTTP 상태 코드 (연결 실패 시 None)
        body: 응답 본문 텍스트 (진단용)
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        detail = f" - {self.body[:200]}" if self.body else ""
        return f"{base} (HTTP {self.status_code}){detail}"


class MalformedFrameWarning(Warning):
    """스트리밍 응답의 이벤트 프레임 하나를 해석할 수 없을 때 사용됩니다."""

    def __init__(self, message: str, frame: str = "") -> None:
        super().__init__(message)
        self.frame = frame
