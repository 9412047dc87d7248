# src/indx_loader/clients/exceptions.py
from typing import Optional


class IndxError(Exception):
    """Base class for failures talking to IndxCloudApi."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class IndxConnectionError(IndxError):
    """The request never produced an HTTP response (DNS, TLS, refused, timeout)."""


class IndxApiError(IndxError):
    """The server answered with a non-2xx status."""

    def __init__(self, status: int, url: str, body: str = ""):
        super().__init__(f"HTTP {status} for {url}: {body[:200]}", url=url)
        self.status = status
        self.body = body
