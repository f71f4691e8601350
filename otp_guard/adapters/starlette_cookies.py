"""
Starlette Cookie Store
======================
CookieStore over a Starlette (or FastAPI) request/response pair.
"""

from datetime import datetime, timezone
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response


class StarletteCookieStore:
    """
    Reads cookies from the request and writes them to the response.

    Usage:
        store = StarletteCookieStore(request, response)
        result = orchestrator.validate(identity, username, code, store)
    """

    def __init__(self, request: Request, response: Response, secure: bool = True, path: str = "/"):
        self.request = request
        self.response = response
        self.secure = secure
        self.path = path

    def get(self, name: str) -> Optional[str]:
        return self.request.cookies.get(name)

    def set(self, name: str, value: str, expires: int, httponly: bool = True) -> None:
        self.response.set_cookie(
            key=name,
            value=value,
            expires=datetime.fromtimestamp(expires, tz=timezone.utc),
            path=self.path,
            secure=self.secure,
            httponly=httponly,
            samesite="lax",
        )
