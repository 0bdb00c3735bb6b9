"""HTTP client for OpenAI-compatible speech endpoints such as Kokoro-FastAPI.

Responsibilities:
- Send one `/audio/speech` request per chunk and return raw encoded audio bytes.
- Abort the underlying HTTP read promptly when the job cancellation token is set.
- Raise provider exceptions with a failure kind for pipeline-level error mapping.
"""

from __future__ import annotations

import json
import os
import socket
from typing import Any, Protocol

import requests

from ..pipeline.cancellation import CancellationToken

DEFAULT_KOKORO_BASE_URL = "http://localhost:8880/v1"
DEFAULT_TTS_MODEL = "kokoro"
DEFAULT_RESPONSE_FORMAT = "mp3"


class TTSProviderError(RuntimeError):
    """Raised when a speech request fails, is aborted, or returns an unusable payload."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
    ) -> None:
        """Initialize provider error metadata for stage-aware diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code

    @property
    def aborted(self) -> bool:
        return self.failure_kind == "aborted"


class SpeechClient(Protocol):
    """Protocol for the synthesis collaborator used by the chunk synthesizer."""

    def synthesize(
        self,
        text: str,
        voice: str,
        speed: float,
        cancellation: CancellationToken | None = None,
    ) -> bytes:
        """Return encoded audio bytes for one text chunk."""


class KokoroSpeechClient:
    """Minimal requests-based speech client with cooperative abort support."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180
    _READ_BLOCK_BYTES = 64 * 1024

    def __init__(
        self,
        *,
        base_url: str | None = None,
        model: str = DEFAULT_TTS_MODEL,
        response_format: str = DEFAULT_RESPONSE_FORMAT,
        timeout_seconds: float = 300.0,
        api_key: str | None = None,
    ) -> None:
        """Initialize HTTP client settings; `KOKORO_BASE_URL` overrides the default URL."""

        resolved_base_url = base_url or os.environ.get("KOKORO_BASE_URL") or DEFAULT_KOKORO_BASE_URL
        self.base_url = resolved_base_url.rstrip("/")
        self.model = model
        self.response_format = response_format
        self.timeout_seconds = timeout_seconds
        self.api_key = api_key.strip() if isinstance(api_key, str) else ""

    def synthesize(
        self,
        text: str,
        voice: str,
        speed: float,
        cancellation: CancellationToken | None = None,
    ) -> bytes:
        """Return synthesized audio bytes from `/audio/speech`.

        Raises:
            TTSProviderError: With `failure_kind="aborted"` when `cancellation` is set
                before or during the request.
        """

        if cancellation is not None and cancellation.cancelled:
            raise self._aborted_error()

        payload = {
            "model": self.model,
            "input": text,
            "voice": voice,
            "speed": speed,
            "response_format": self.response_format,
        }
        live: dict[str, requests.Response] = {}

        def _abort() -> None:
            response = live.get("response")
            if response is not None:
                response.close()

        handle = cancellation.register(_abort) if cancellation is not None else None
        try:
            return self._execute(payload, live, cancellation)
        finally:
            if cancellation is not None:
                cancellation.unregister(handle)

    def _execute(
        self,
        payload: dict[str, Any],
        live: dict[str, requests.Response],
        cancellation: CancellationToken | None,
    ) -> bytes:
        """Execute the streaming POST and map failures consistently."""

        endpoint = f"{self.base_url}/audio/speech"
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        def _is_cancelled() -> bool:
            return cancellation is not None and cancellation.cancelled

        try:
            response = requests.post(
                endpoint,
                headers=headers,
                json=payload,
                timeout=self.timeout_seconds,
                stream=True,
            )
            live["response"] = response
            if _is_cancelled():
                response.close()
                raise self._aborted_error()
            try:
                if response.status_code >= 400:
                    # Buffer the error body so it survives `close`.
                    _ = response.content
                response.raise_for_status()
                body = bytearray()
                for block in response.iter_content(chunk_size=self._READ_BLOCK_BYTES):
                    if _is_cancelled():
                        raise self._aborted_error()
                    if block:
                        body.extend(block)
            finally:
                response.close()
        except TTSProviderError:
            raise
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except requests.RequestException as exc:
            if _is_cancelled():
                raise self._aborted_error() from exc
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = "Speech request timed out."
            else:
                detail = f"Speech request transport error: {self._short_message(str(exc))}"
            raise TTSProviderError(detail, failure_kind=failure_kind) from exc
        except Exception as exc:
            # Closing the response from the cancelling thread surfaces as an
            # arbitrary read error inside urllib3.
            if _is_cancelled():
                raise self._aborted_error() from exc
            raise TTSProviderError(
                f"Speech request failed: {self._short_message(str(exc))}",
                failure_kind="unknown",
            ) from exc

        if _is_cancelled():
            raise self._aborted_error()
        if not body:
            raise TTSProviderError("Speech response is empty.", failure_kind="empty_response")
        return bytes(body)

    @staticmethod
    def _aborted_error() -> TTSProviderError:
        return TTSProviderError("Speech request aborted.", failure_kind="aborted")

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_provider_message(cls, body: str) -> str:
        """Extract a concise message from a JSON or plain-text error body."""

        if not body:
            return ""
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return cls._short_message(body)

        if isinstance(payload, dict):
            detail = payload.get("detail") or payload.get("error")
            if isinstance(detail, dict):
                detail = detail.get("message") or detail.get("error")
            if isinstance(detail, str) and detail.strip():
                return cls._short_message(detail)
        return cls._short_message(body)

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Classify network-layer failures into deterministic diagnostic kinds."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    @classmethod
    def _http_error_to_provider_error(cls, exc: requests.HTTPError) -> TTSProviderError:
        """Convert HTTP errors into normalized provider exceptions with metadata."""

        response = exc.response
        status_code = response.status_code if response is not None else 0
        body = ""
        if response is not None:
            try:
                body = bytes(response.content).decode("utf-8", errors="replace").strip()
            except Exception:
                body = ""
        provider_message = cls._extract_provider_message(body)
        failure_kind = "timeout" if status_code in {408, 504} else "http_error"
        if provider_message:
            detail = f"Speech request failed (HTTP {status_code}): {provider_message}"
        else:
            detail = f"Speech request failed (HTTP {status_code})."
        return TTSProviderError(detail, failure_kind=failure_kind, status_code=status_code)
