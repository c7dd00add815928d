"""
Error taxonomy.

Every failure a user can see falls into one of three buckets:
- AuthError:   no API key configured (fix: open settings)
- RemoteError: the Gemini API answered with a non-2xx status, or the
               request never reached it (DNS, refused connection, timeout)
- ParseError:  the model answered, but no JSON object could be recovered

Messages are user-facing Japanese strings; callers display them verbatim.
"""
from __future__ import annotations

MISSING_API_KEY_MESSAGE = "APIキーが設定されていません。設定画面からAPIキーを入力してください。"
NETWORK_ERROR_MESSAGE = "通信エラーが発生しました。ネットワーク接続を確認してください。"


class KabuAIError(Exception):
    """Base class for errors surfaced to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthError(KabuAIError):
    def __init__(self, message: str = MISSING_API_KEY_MESSAGE):
        super().__init__(message)


class RemoteError(KabuAIError):
    """Non-success response (status set) or transport failure (status is None)."""

    def __init__(self, status: int | None, message: str):
        super().__init__(message)
        self.status = status

    @classmethod
    def from_response(cls, status: int, body: object) -> "RemoteError":
        msg = None
        if isinstance(body, dict):
            err = body.get("error")
            if isinstance(err, dict):
                msg = str(err.get("message") or "").strip() or None
        return cls(status, msg or f"APIエラー ({status})")


class ParseError(KabuAIError):
    pass
