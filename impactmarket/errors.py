from typing import Any, Dict, Optional


class ApiError(Exception):
    """An error that maps onto an HTTP status and an ``{error, message}`` body."""

    def __init__(self, status_code: int, error: str, message: Optional[str] = None):
        super().__init__(message or error)
        self.status_code = status_code
        self.error = error
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        return body
