"""
Typed failures raised by the cache / store / composition layer.

Every error carries enough context (kind, subject_id, language) for a caller
to retry or tell the user which pair failed. The HTTP layer maps them to
status codes via ``status_code``.
"""
from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        kind: str | None = None,
        subject_id: str | None = None,
        language: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.subject_id = subject_id
        self.language = language

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": False,
            "error": type(self).__name__,
            "message": self.message,
            "kind": self.kind,
            "subject_id": self.subject_id,
            "language": self.language,
        }


class ValidationError(ServiceError):
    status_code = 400


class NotFound(ServiceError):
    status_code = 404


class FeatureDisabled(ServiceError):
    status_code = 403


class EmptySeries(ServiceError):
    status_code = 409


class GenerationError(ServiceError):
    status_code = 502


class StoreError(ServiceError):
    status_code = 500


class CacheError(ServiceError):
    status_code = 500


class QueueUnavailable(ServiceError):
    status_code = 503
