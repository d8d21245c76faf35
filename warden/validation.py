"""Validating webhook that rejects pods marked by the defaulting webhook."""

from __future__ import annotations

from typing import Any

from warden import labels
from warden.admission_types import (
    AdmissionRequest,
    AdmissionResponse,
    DecodeError,
    Operation,
    allowed,
    denied,
    errored,
)
from warden.decorators import handle_with_logger, handler_with_time_measure
from warden.logctx import current_logger

VALIDATION_PATH = "/validation/pods"
POD_TYPE = "Pod"


class ValidationWebhook:
    """Denies pods that carry the reject annotation."""

    def __init__(self, logger: Any) -> None:
        self._logger = logger

    def handle(self, request: AdmissionRequest) -> AdmissionResponse:
        """Handle an admission request."""
        return handle_with_logger(self._logger, handler_with_time_measure(self._handle))(request)

    @staticmethod
    def _handle(request: AdmissionRequest) -> AdmissionResponse:
        if request.operation == Operation.DELETE:
            return allowed("")
        if request.kind != POD_TYPE:
            return errored(400, f"Invalid request kind: {request.kind}, expected: {POD_TYPE}")
        try:
            pod = request.decode_pod()
        except DecodeError as exc:
            return errored(500, exc)

        annotations = (pod.get("metadata") or {}).get("annotations")
        if not annotations:
            return allowed("nothing to do")
        if annotations.get(labels.POD_VALIDATION_REJECT_ANNOTATION) != labels.VALIDATION_REJECT:
            return allowed("nothing to do")

        current_logger().info("Pod images validation failed")
        if labels.INVALID_IMAGES_ANNOTATION in annotations:
            images = annotations[labels.INVALID_IMAGES_ANNOTATION]
            return denied(f"Pod images {images} validation failed")
        return denied("Pod images validation failed")