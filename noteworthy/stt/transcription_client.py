"""
원격 전사 서비스 HTTP 클라이언트 모듈입니다.

역할:
- 오디오 blob을 multipart 폼으로 /audio/transcriptions 에 업로드
- 일반 응답: JSON 본문을 그대로 반환
- 스트리밍 응답: 이벤트 프레임을 증분 파싱하여 세그먼트 이벤트마다 콜백 호출,
  종료(done) 이벤트를 반환
- 비정상 HTTP 상태/연결 실패를 RemoteServiceError로 변환 (재시도 없음)

사용 예시:
    >>> async with TranscriptionClient(config.stt) as client:
    ...     payload = await client.transcribe(blob, filename="chunk_0000.wav")
    ...     segments = parse_segments(payload)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable, Optional

import httpx

from noteworthy.config.schema import STTConfig
from noteworthy.errors import InputError, MalformedFrameWarning, RemoteServiceError
from noteworthy.stt import TranscriptSegment
from noteworthy.stt.event_stream import EventFrameParser, decode_frame

logger = logging.getLogger(__name__)

# 스트리밍 이벤트 유형
SEGMENT_EVENT = "transcript.text.segment"
DONE_EVENT = "transcript.text.done"

_TRANSCRIPTIONS_PATH = "/audio/transcriptions"
_EVENT_STREAM_MIME = "text/event-stream"

# 세그먼트 이벤트 콜백: (세그먼트 목록, 원본 이벤트) -> None
SegmentEventCallback = Callable[[list[TranscriptSegment], dict], None]


class TranscriptionClient:
    """
    OpenAI 호환 전사 엔드포인트 클라이언트입니다.

    요청 하나당 업로드 한 번이며, 재시도 정책은 호출자 몫입니다.
    외부에서 httpx.AsyncClient를 주입하면 close()에서 닫지 않습니다.
    """

    def __init__(
        self,
        stt_cfg: STTConfig,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        파라미터:
            stt_cfg (STTConfig): 전사 서비스 설정
            http_client: 재사용할 httpx 비동기 클라이언트 (테스트 주입용)
        """
        self._stt_cfg = stt_cfg
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(stt_cfg.timeout_sec, connect=10.0)
        )
        self._url = stt_cfg.base_url.rstrip("/") + _TRANSCRIPTIONS_PATH

        logger.info(
            f"TranscriptionClient 초기화: "
            f"url={self._url}, model={stt_cfg.model}, "
            f"response_format={stt_cfg.response_format}"
        )

    async def __aenter__(self) -> "TranscriptionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """직접 생성한 HTTP 클라이언트를 닫습니다."""
        if self._owns_client:
            await self._http.aclose()

    # =========================================================================
    # 공개 인터페이스
    # =========================================================================

    async def transcribe(
        self,
        blob: bytes,
        *,
        filename: str = "audio.wav",
        stream: bool = False,
        on_event: Optional[SegmentEventCallback] = None,
    ) -> Optional[dict[str, Any]]:
        """
        오디오 blob 하나를 전사합니다.

        파라미터:
            blob: 업로드할 오디오 컨테이너 bytes
            filename: 업로드 파일명 (확장자로 포맷을 알림)
            stream: 스트리밍 응답 요청 여부
            on_event: 세그먼트 이벤트마다 동기 호출되는 콜백 (stream=True일 때)

        반환값:
            일반 응답이면 JSON 본문, 스트리밍이면 종료 이벤트 (없으면 None)

        에러:
            InputError: blob이 비어있거나 API 키가 없을 때
            RemoteServiceError: 비정상 HTTP 상태 또는 연결 실패 시
        """
        if not blob:
            raise InputError("업로드할 오디오 데이터가 비어있습니다")
        if not self._stt_cfg.api_key:
            raise InputError("전사 서비스 API 키가 설정되지 않았습니다 (stt.api_key)")

        if stream:
            return await self._transcribe_stream(blob, filename, on_event)
        return await self._transcribe_once(blob, filename)

    # =========================================================================
    # 내부 요청 메서드
    # =========================================================================

    def _build_form(self, stream: bool) -> dict[str, str]:
        """multipart 폼의 텍스트 필드를 구성합니다."""
        form = {
            "model": self._stt_cfg.model,
            "response_format": self._stt_cfg.response_format,
        }
        if self._stt_cfg.temperature is not None:
            form["temperature"] = str(self._stt_cfg.temperature)
        if self._stt_cfg.language:
            form["language"] = self._stt_cfg.language
        if self._stt_cfg.chunking_strategy:
            form["chunking_strategy"] = self._stt_cfg.chunking_strategy
        if stream:
            form["stream"] = "true"
        return form

    def _build_request(self, blob: bytes, filename: str, stream: bool) -> httpx.Request:
        return self._http.build_request(
            "POST",
            self._url,
            headers={"Authorization": f"Bearer {self._stt_cfg.api_key}"},
            data=self._build_form(stream),
            files={"file": (filename, blob, _guess_mime(filename))},
        )

    async def _transcribe_once(self, blob: bytes, filename: str) -> dict[str, Any]:
        """단일 JSON 응답을 받는 전사 요청입니다."""
        logger.debug(f"전사 요청: {filename} ({len(blob)} bytes)")
        request = self._build_request(blob, filename, stream=False)
        try:
            response = await self._http.send(request)
        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"전사 요청 연결 실패: {exc}") from exc

        if not response.is_success:
            raise RemoteServiceError(
                "전사 요청 실패", status_code=response.status_code, body=response.text
            )
        return _parse_body(response.headers.get("content-type", ""), response.text)

    async def _transcribe_stream(
        self,
        blob: bytes,
        filename: str,
        on_event: Optional[SegmentEventCallback],
    ) -> Optional[dict[str, Any]]:
        """
        스트리밍 응답을 받는 전사 요청입니다.

        세그먼트 이벤트마다 on_event를 호출하고, 해석할 수 없는 프레임은
        경고 로그만 남기고 건너뜁니다. 서버가 스트리밍을 지원하지 않아
        일반 JSON을 돌려주면 그 본문을 반환합니다.
        """
        logger.debug(f"스트리밍 전사 요청: {filename} ({len(blob)} bytes)")
        request = self._build_request(blob, filename, stream=True)
        done_event: Optional[dict[str, Any]] = None
        event_count = 0

        try:
            response = await self._http.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"스트리밍 전사 요청 연결 실패: {exc}") from exc

        try:
            if not response.is_success:
                body = (await response.aread()).decode("utf-8", errors="replace")
                raise RemoteServiceError(
                    "스트리밍 전사 요청 실패", status_code=response.status_code, body=body
                )

            content_type = response.headers.get("content-type", "")
            if _EVENT_STREAM_MIME not in content_type:
                body = (await response.aread()).decode("utf-8", errors="replace")
                logger.info(f"스트리밍 미지원 응답 수신 (content-type={content_type}), 일반 응답으로 처리")
                return _parse_body(content_type, body)

            parser = EventFrameParser()
            async for text in response.aiter_text():
                for frame in parser.feed(text):
                    event = self._handle_frame(frame, on_event)
                    if event is None:
                        continue
                    if event.get("type") == DONE_EVENT:
                        done_event = event
                    else:
                        event_count += 1

            trailing = parser.flush()
            if trailing is not None:
                event = self._handle_frame(trailing, on_event)
                if event is not None and event.get("type") == DONE_EVENT:
                    done_event = event
                elif event is not None:
                    event_count += 1

        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"스트리밍 응답 수신 실패: {exc}") from exc
        finally:
            await response.aclose()

        logger.debug(
            f"스트리밍 전사 완료: {filename}, segment 이벤트 {event_count}개, "
            f"done={'있음' if done_event else '없음'}"
        )
        return done_event

    def _handle_frame(
        self,
        frame: str,
        on_event: Optional[SegmentEventCallback],
    ) -> Optional[dict[str, Any]]:
        """
        프레임 하나를 처리합니다.

        반환값:
            세그먼트 이벤트 또는 done 이벤트면 그 객체, 무시한 프레임이면 None
        """
        try:
            event = decode_frame(frame)
            if event is None:
                return None
            if event.get("type") == DONE_EVENT:
                return event
            if not is_segment_event(event):
                return None
            segments = segments_from_event(event)
        except MalformedFrameWarning as warning:
            logger.warning(f"잘못된 이벤트 프레임 건너뜀: {warning} | frame={warning.frame[:120]!r}")
            return None

        if on_event is not None:
            on_event(segments, event)
        return event


# =============================================================================
# 응답 정규화 헬퍼
# =============================================================================

def is_segment_event(event: dict[str, Any]) -> bool:
    """세그먼트를 담은 이벤트인지 판별합니다."""
    if event.get("type") == SEGMENT_EVENT:
        return True
    return isinstance(event.get("segments"), list) or isinstance(event.get("segment"), dict)


def segments_from_event(event: dict[str, Any]) -> list[TranscriptSegment]:
    """
    세그먼트 이벤트에서 TranscriptSegment 목록을 추출합니다.

    segments 목록, segment 객체, 또는 이벤트 자체에 start/end/text가
    있는 형태를 모두 지원합니다.

    에러:
        MalformedFrameWarning: 세그먼트 필드가 올바르지 않을 때
    """
    if isinstance(event.get("segments"), list):
        items: Iterable[Any] = event["segments"]
    elif isinstance(event.get("segment"), dict):
        items = [event["segment"]]
    else:
        items = [event]

    try:
        return [_to_segment(item) for item in items]
    except (TypeError, ValueError) as exc:
        raise MalformedFrameWarning(
            f"세그먼트 필드 해석 실패: {exc}", frame=json.dumps(event, ensure_ascii=False)
        ) from exc


def parse_segments(payload: Optional[dict[str, Any]]) -> list[TranscriptSegment]:
    """
    일반 JSON 응답(또는 done 이벤트)의 segments 배열을 정규화합니다.

    segments가 없으면 빈 목록을 반환하며, 형식이 잘못된 항목은 건너뜁니다.
    """
    if not payload or not isinstance(payload.get("segments"), list):
        return []

    segments: list[TranscriptSegment] = []
    for item in payload["segments"]:
        try:
            segments.append(_to_segment(item))
        except (TypeError, ValueError) as exc:
            logger.warning(f"잘못된 세그먼트 건너뜀: {exc}")
    return segments


def payload_text(payload: Optional[dict[str, Any]]) -> str:
    """응답의 전체 전사 텍스트를 반환합니다."""
    if not payload:
        return ""
    text = payload.get("text")
    return text.strip() if isinstance(text, str) else ""


def _to_segment(item: Any) -> TranscriptSegment:
    if not isinstance(item, dict):
        raise TypeError(f"세그먼트가 객체가 아닙니다: {type(item).__name__}")
    start = max(0.0, float(item.get("start", 0.0) or 0.0))
    end = float(item.get("end", start) or start)
    text = item.get("text", "")
    if not isinstance(text, str):
        raise TypeError(f"세그먼트 text가 문자열이 아닙니다: {type(text).__name__}")
    speaker = item.get("speaker")
    return TranscriptSegment(
        start=start,
        end=max(start, end),
        text=text,
        speaker=str(speaker) if speaker is not None else None,
    )


def _parse_body(content_type: str, body: str) -> dict[str, Any]:
    """응답 본문을 dict로 변환합니다. text 형식 응답은 {"text": ...}로 감쌉니다."""
    if content_type.startswith("text/plain"):
        return {"text": body}
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise RemoteServiceError(f"전사 응답 JSON 파싱 실패: {exc}", body=body) from exc
    if not isinstance(payload, dict):
        raise RemoteServiceError("전사 응답이 JSON 객체가 아닙니다", body=body)
    return payload


def _guess_mime(filename: str) -> str:
    extension = filename.rsplit(".", 1)[-1].lower()
    return {
        "wav": "audio/wav",
        "mp3": "audio/mpeg",
        "flac": "audio/flac",
        "ogg": "audio/ogg",
        "aiff": "audio/aiff",
    }.get(extension, "application/octet-stream")
