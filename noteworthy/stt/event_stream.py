"""
스트리밍 전사 응답(server-sent events) 프레임 파서 모듈입니다.

역할:
- 네트워크 읽기 단위로 잘려 들어오는 텍스트를 버퍼링하여 완결된 이벤트 프레임만 반환
- 빈 줄 구분자를 LF(\\n\\n)와 CRLF(\\r\\n\\r\\n) 두 형식 모두 인식
- 프레임의 data: 줄을 JSON 객체로 해석

프레임 형식:
    event: transcript.text.segment      (선택)
    data: {"type": "transcript.text.segment", "start": 0.0, ...}
    <빈 줄>
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from noteworthy.errors import MalformedFrameWarning

logger = logging.getLogger(__name__)

# 스트림 종료를 알리는 관용 sentinel (JSON이 아님)
_DONE_SENTINEL = "[DONE]"


class EventFrameParser:
    """
    텍스트 스트림을 이벤트 프레임 단위로 분리하는 증분 파서입니다.

    구분자가 완전히 도착한 프레임만 반환하고, 나머지는 다음 feed()까지 보관합니다.
    읽기 경계에서 CRLF가 \\r 과 \\n 으로 나뉘어 도착해도 올바르게 처리합니다.
    """

    def __init__(self) -> None:
        # 구분자를 아직 만나지 못한 부분 프레임 (줄바꿈은 \n으로 정규화됨)
        self._buffer: str = ""
        # 직전 읽기가 \r로 끝난 경우 다음 읽기의 \n과 합치기 위해 보류
        self._pending_cr: bool = False

    def feed(self, text: str) -> list[str]:
        """
        새로 읽은 텍스트를 추가하고 완결된 프레임 목록을 반환합니다.

        파라미터:
            text: 네트워크에서 읽은 텍스트 조각

        반환값:
            list[str]: 구분자까지 도착한 프레임 본문 목록 (빈 프레임 제외)
        """
        if self._pending_cr:
            text = "\r" + text
            self._pending_cr = False
        if text.endswith("\r"):
            text = text[:-1]
            self._pending_cr = True

        self._buffer += text.replace("\r\n", "\n")

        *frames, self._buffer = self._buffer.split("\n\n")
        return [frame for frame in frames if frame.strip()]

    def flush(self) -> Optional[str]:
        """
        스트림 종료 시 남은 부분 프레임을 반환하고 버퍼를 비웁니다.

        반환값:
            Optional[str]: 남은 프레임 (공백뿐이면 None)
        """
        remaining = self._buffer
        self._buffer = ""
        self._pending_cr = False
        return remaining if remaining.strip() else None

    @property
    def pending(self) -> str:
        """아직 구분자를 만나지 못한 버퍼 내용입니다."""
        return self._buffer


def decode_frame(frame: str) -> Optional[dict[str, Any]]:
    """
    이벤트 프레임 하나를 JSON 객체로 해석합니다.

    data: 줄이 여러 개면 \\n으로 이어 붙입니다. event: 줄은 payload에
    type이 없을 때 type으로 사용합니다. 주석(:) 줄은 무시합니다.

    파라미터:
        frame: 구분자를 제외한 프레임 본문

    반환값:
        Optional[dict]: 이벤트 객체. data가 없거나 [DONE]이면 None

    에러:
        MalformedFrameWarning: data가 JSON 객체가 아닐 때
    """
    data_lines: list[str] = []
    event_name: Optional[str] = None

    for line in frame.split("\n"):
        line = line.rstrip("\r")
        if not line or line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "data":
            data_lines.append(value)
        elif field == "event":
            event_name = value.strip() or None

    if not data_lines:
        return None

    data = "\n".join(data_lines)
    if data.strip() == _DONE_SENTINEL:
        return None

    try:
        payload = json.loads(data)
    except json.JSONDecodeError as exc:
        raise MalformedFrameWarning(f"이벤트 JSON 파싱 실패: {exc}", frame=frame) from exc

    if not isinstance(payload, dict):
        raise MalformedFrameWarning(
            f"이벤트가 JSON 객체가 아닙니다: {type(payload).__name__}", frame=frame
        )

    if event_name and "type" not in payload:
        payload["type"] = event_name
    return payload
