"""
Transports for delivering a bulk payload.

``HttpTransport`` performs exactly one blocking POST per ``send`` call on a
fresh ``httpx.Client`` and never raises: every outcome is classified into a
``SendResult``. ``DebugTransport`` skips the network and prints the payload.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Mapping, Protocol, TextIO, runtime_checkable

import httpx

from .errors import TransportError

NO_DATA = "<no data>"


@dataclass(frozen=True)
class SendResult:
    ok: bool
    status_code: int | None = None
    reason: str | None = None
    body: str | None = None

    @classmethod
    def success(cls, status_code: int | None = None) -> SendResult:
        return cls(ok=True, status_code=status_code)

    @classmethod
    def failure(
        cls,
        reason: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> SendResult:
        return cls(ok=False, status_code=status_code, reason=reason, body=body)

    def raise_for_failure(self) -> None:
        if not self.ok:
            raise TransportError(
                self.reason or "send failed",
                status_code=self.status_code,
                body=self.body,
            )


@runtime_checkable
class Transport(Protocol):
    """Delivers one payload per call; called only from the worker thread."""

    def send(self, payload: bytes) -> SendResult:  # pragma: no cover
        ...


def _read_error_body(response: httpx.Response) -> str:
    try:
        response.read()
        text = response.text
    except Exception as e:
        return f"<error retrieving data: {e}>"
    return text or NO_DATA


class HttpTransport:
    """POST payloads to a bulk endpoint; success is HTTP 200 only."""

    name = "http"

    def __init__(
        self,
        url: str,
        *,
        connect_timeout: float,
        read_timeout: float,
        headers: Mapping[str, str] | None = None,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = httpx.Timeout(
            connect=connect_timeout,
            read=read_timeout,
            write=read_timeout,
            pool=connect_timeout,
        )
        self._headers = {"Content-Type": "application/x-ndjson; charset=utf-8"}
        self._headers.update(headers or {})
        # Only used by tests to plug in httpx.MockTransport
        self._http_transport = http_transport

    @property
    def url(self) -> str:
        return self._url

    def send(self, payload: bytes) -> SendResult:
        try:
            with httpx.Client(
                timeout=self._timeout,
                transport=self._http_transport,
            ) as client:
                response = client.post(
                    self._url, content=payload, headers=self._headers
                )
                if response.status_code != 200:
                    body = _read_error_body(response)
                    return SendResult.failure(
                        f"Got response code [{response.status_code}] from server "
                        f"with data {body}",
                        status_code=response.status_code,
                        body=body,
                    )
                return SendResult.success(response.status_code)
        except Exception as e:
            return SendResult.failure(f"{type(e).__name__}: {e}")


class DebugTransport:
    """Write payloads to a diagnostic stream instead of the network."""

    name = "debug"

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    def send(self, payload: bytes) -> SendResult:
        out = self._stream if self._stream is not None else sys.stderr
        out.write(payload.decode("utf-8", errors="replace"))
        out.flush()
        return SendResult.success()
