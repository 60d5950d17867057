"""The error reported to API clients."""

from __future__ import annotations

from http import HTTPStatus


class ApiError(Exception):
    """An HTTP status together with a human readable description."""

    def __init__(self, status: int, description: object) -> None:
        self.status = HTTPStatus(status)
        self.description = str(description)
        super().__init__(f"{int(self.status)} {self.description}")

    def to_dict(self) -> dict:
        """The JSON body sent to the client."""
        return {"status": int(self.status), "description": self.description}

    @classmethod
    def internal(cls, error: object) -> ApiError:
        """An internal server error describing ``error``."""
        return cls(HTTPStatus.INTERNAL_SERVER_ERROR, str(error))

    @classmethod
    def not_found(cls) -> ApiError:
        """A not-found error carrying the standard reason phrase."""
        return cls(HTTPStatus.NOT_FOUND, HTTPStatus.NOT_FOUND.phrase)