"""Admission request and response model, and validation outcomes."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from warden.jsonpatch import PatchOperation, create_patch


class Operation(str, Enum):
    """Operation that triggered an admission request."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CONNECT = "CONNECT"


class ValidationStatus(str, Enum):
    """Outcome of validating a pod's images."""

    NO_ACTION = "NoAction"
    VALID = "Valid"
    INVALID = "Invalid"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"


@dataclass
class ValidationResult:
    """Validation outcome with the images that failed, if any."""

    status: ValidationStatus
    invalid_images: list[str] | None = None


@dataclass
class Status:
    """Result details attached to an admission response."""

    code: int = 0
    message: str = ""


class DecodeError(ValueError):
    """The request object could not be decoded."""


@dataclass
class AdmissionRequest:
    """An incoming admission review request."""

    kind: str
    operation: Operation | None = None
    object: bytes = b""
    uid: str = ""
    namespace: str = ""
    name: str = ""

    def decode_pod(self) -> dict[str, Any]:
        """Decode the raw object into a pod document."""
        if not self.object:
            raise DecodeError("there is no content to decode")
        try:
            pod = json.loads(self.object)
        except (ValueError, UnicodeDecodeError) as exc:
            raise DecodeError(f"cannot decode object: {exc}") from exc
        if not isinstance(pod, dict):
            raise DecodeError("object is not a JSON object")
        return pod


@dataclass
class AdmissionResponse:
    """The answer to an admission request."""

    allowed: bool
    result: Status | None = None
    patches: list[PatchOperation] | None = None
    patch_type: str | None = None
    warnings: list[str] = field(default_factory=list)


def allowed(message: str) -> AdmissionResponse:
    """Allow the request."""
    return AdmissionResponse(True, Status(200, message))


def denied(message: str) -> AdmissionResponse:
    """Deny the request."""
    return AdmissionResponse(False, Status(403, message))


def errored(code: int, error: BaseException | str) -> AdmissionResponse:
    """Reject the request because handling it failed."""
    return AdmissionResponse(False, Status(code, str(error)))


def patch_response_from_raw(original: bytes, modified: Any) -> AdmissionResponse:
    """Allow the request with the patch that turns ``original`` into ``modified``."""
    try:
        source = json.loads(original)
        target = json.loads(modified) if isinstance(modified, (bytes, str)) else modified
    except ValueError as exc:
        return errored(500, exc)
    patches = create_patch(source, target)
    return AdmissionResponse(True, patches=patches, patch_type="JSONPatch" if patches else None)