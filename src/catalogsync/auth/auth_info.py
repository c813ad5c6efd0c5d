"""Authentication information for catalogsync (bearer token only)."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from catalogsync.errors import AuthError


@dataclass(slots=True, frozen=True)
class AuthInfo:
    """
    Authentication information handed over by the session layer.

    Supports bearer tokens only:
        kind = "bearer"
        data must include one of:
            - token: the token itself
            - token_file: path to a file holding the token (re-read per request,
              so the session layer can rotate it)
    """

    kind: str
    data: dict[str, Any]

    def __post_init__(self) -> None:
        if self.kind != "bearer":
            raise ValueError("AuthInfo.kind must be 'bearer'")

        if not isinstance(self.data, dict):
            raise TypeError("AuthInfo.data must be a dict")

        if not any(
            isinstance(self.data.get(key), str) and self.data[key].strip()
            for key in ("token", "token_file")
        ):
            raise ValueError("AuthInfo.data needs a non-empty 'token' or 'token_file'")

    @classmethod
    def bearer(cls, token: str) -> AuthInfo:
        return cls(kind="bearer", data={"token": token})

    @property
    def token(self) -> str:
        """Current bearer token. Raises AuthError when the token file is unusable."""
        token = self.data.get("token")
        if isinstance(token, str) and token.strip():
            return token.strip()

        path = Path(str(self.data["token_file"]))
        try:
            value = path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise AuthError(
                "Cannot read token file",
                details={"token_file": str(path)},
                cause=exc,
            ) from exc
        if not value:
            raise AuthError("Token file is empty", details={"token_file": str(path)})
        return value

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}
