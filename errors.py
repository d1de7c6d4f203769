from __future__ import annotations

from typing import Any, Dict, Optional


def ok(**kwargs: Any) -> Dict[str, Any]:
    """
    Uniform success payload.
    """
    return {"ok": True, **kwargs}


def fail(error: Any, stage: Optional[str] = None, **kwargs: Any) -> Dict[str, Any]:
    """
    Uniform error payload (the frame frontend reads `error`).
    """
    payload: Dict[str, Any] = {"ok": False, "error": str(error)}
    if stage:
        payload["stage"] = stage
    payload.update(kwargs)
    return payload


class APIError(Exception):
    """
    Base exception for services and routers.
    """
    status_code = 400

    def __init__(
        self,
        error: Any,
        stage: Optional[str] = None,
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(str(error))
        self.error = str(error)
        self.stage = stage
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}


class InvalidInput(APIError):
    status_code = 400


class NotFound(APIError):
    status_code = 404


class NotReady(APIError):
    status_code = 409


class MintFailed(APIError):
    status_code = 502


class UpstreamFailure(APIError):
    """
    A collaborator call failed or came back empty during the pipeline.
    The message is prefixed with the failure kind, e.g. "GenerationFailed: ...".
    """
    status_code = 502
    kind = "UpstreamFailure"

    def __init__(self, detail: Optional[str] = None, stage: Optional[str] = None):
        message = f"{self.kind}: {detail}" if detail else self.kind
        super().__init__(message, stage=stage)


class ProfileLookupFailed(UpstreamFailure):
    kind = "ProfileLookupFailed"


class GenerationFailed(UpstreamFailure):
    kind = "GenerationFailed"


class PinningFailed(UpstreamFailure):
    kind = "PinningFailed"
