"""Defaulting webhook that validates pod images and marks pods with the result."""

import copy
import json
from datetime import timedelta

from warden import labels
from warden.admission_types import (
    DecodeError,
    Operation,
    Status,
    ValidationResult,
    ValidationStatus,
    allowed,
    errored,
    patch_response_from_raw,
)
from warden.decorators import handle_with_logger, handle_with_timeout, handler_with_time_measure
from warden.logctx import current_logger

DEFAULTING_PATH = "/defaulting/pods"
POD_TYPE = "Pod"


def _metadata(pod):
    if not isinstance(pod.get("metadata"), dict):
        pod["metadata"] = {}
    return pod["metadata"]


def _drop_empty_maps(pod):
    meta = _metadata(pod)
    for key in ("labels", "annotations"):
        if key in meta and not meta[key]:
            del meta[key]


def is_validation_needed_for_operation(operation):
    """Create requests are always validated."""
    return operation == Operation.CREATE


def pod_markers_for_validation_result(status, strict_mode):
    """Return the (label, annotation) that mark a pod with this outcome."""
    if status == ValidationStatus.NO_ACTION:
        return "", ""
    if status == ValidationStatus.INVALID:
        return labels.VALIDATION_STATUS_FAILED, labels.VALIDATION_REJECT
    if status == ValidationStatus.VALID:
        return labels.VALIDATION_STATUS_SUCCESS, ""
    if status == ValidationStatus.SERVICE_UNAVAILABLE and strict_mode:
        return labels.VALIDATION_STATUS_PENDING, labels.VALIDATION_REJECT
    return labels.VALIDATION_STATUS_PENDING, ""


def remove_internal_annotation(source):
    """Remove the reject annotation in place; tell whether it was there."""
    if source and labels.POD_VALIDATION_REJECT_ANNOTATION in source:
        del source[labels.POD_VALIDATION_REJECT_ANNOTATION]
        current_logger().debug("Internal Annotation deleted")
        return True
    return False


def mark_pod(result, pod, strict_mode):
    """Return a copy of the pod labelled and annotated for result."""
    label, annotation = pod_markers_for_validation_result(result.status, strict_mode)
    current_logger().info("pod was labeled: `%s` and annotated: `%s`", label, annotation)
    if not label and not annotation:
        return pod
    marked = copy.deepcopy(dict(pod))
    meta = _metadata(marked)
    if label:
        meta["labels"] = meta.get("labels") or {}
        meta["labels"][labels.POD_VALIDATION_LABEL] = label
    remove_internal_annotation(meta.get("annotations"))
    if annotation:
        meta["annotations"] = meta.get("annotations") or {}
        meta["annotations"][labels.POD_VALIDATION_REJECT_ANNOTATION] = annotation
        if result.invalid_images is not None:
            meta["annotations"][labels.INVALID_IMAGES_ANNOTATION] = ", ".join(result.invalid_images)
    _drop_empty_maps(marked)
    return marked


def _is_validation_needed(pod, namespace, operation):
    logger = current_logger()
    if not labels.namespace_validation_enabled(namespace):
        logger.debug("pod validation skipped because validation for namespace is not enabled")
        return False
    if is_validation_needed_for_operation(operation):
        return True
    if labels.pod_validation_label(pod) in (labels.VALIDATION_STATUS_FAILED, labels.VALIDATION_STATUS_PENDING):
        logger.debug("pod validation skipped because pod checking is not enabled for the input validation label")
        return False
    return True


class DefaultingWebhook:
    """Validates pods on admission and marks them with the outcome.

    client.get("Namespace", name) returns the namespace document;
    validation_svc.validate_pod(pod, namespace) returns a ValidationResult.
    """

    def __init__(self, client, validation_svc, timeout, strict_mode, logger):
        self._client = client
        self._validation_svc = validation_svc
        self._timeout = timeout if isinstance(timeout, timedelta) else timedelta(seconds=timeout)
        self._strict_mode = strict_mode
        self._logger = logger

    def handle(self, request):
        """Handle an admission request within the configured timeout."""
        chain = handle_with_logger(
            self._logger,
            handler_with_time_measure(handle_with_timeout(self._timeout, self._handle, self._handle_timeout)),
        )
        return chain(request)

    def _handle(self, request):
        if request.kind != POD_TYPE:
            return errored(400, f"Invalid request kind:{request.kind}, expected:{POD_TYPE}")
        try:
            pod = request.decode_pod()
        except DecodeError as exc:
            return errored(500, exc)
        current_logger().debug(
            "validation started, operation: %s, label: %s", request.operation, labels.pod_validation_label(pod)
        )
        try:
            namespace = self._client.get("Namespace", _metadata(pod).get("namespace", ""))
        except Exception as exc:
            return errored(500, exc)

        if not _is_validation_needed(pod, namespace, request.operation):
            return self._clean_annotation_if_needed(pod, namespace, request)

        try:
            result = self._validation_svc.validate_pod(pod, namespace)
        except Exception as exc:
            return errored(500, exc)
        if result.status == ValidationStatus.NO_ACTION:
            return allowed("validation is not enabled for pod")
        return self._create_response(request, result, pod)

    @staticmethod
    def _clean_annotation_if_needed(pod, namespace, request):
        if labels.namespace_validation_enabled(namespace) and remove_internal_annotation(
            _metadata(pod).get("annotations")
        ):
            _drop_empty_maps(pod)
            return patch_response_from_raw(request.object, json.dumps(pod))
        return allowed("validation is not needed for pod")

    def _handle_timeout(self, error, request):
        try:
            pod = request.decode_pod()
        except DecodeError as exc:
            return errored(500, exc)
        message = f"request exceeded desired timeout: {self._timeout}, reason: {error}"
        current_logger().info(message)
        response = self._create_response(request, ValidationResult(ValidationStatus.SERVICE_UNAVAILABLE), pod)
        response.result = Status(message=message)
        return response

    def _create_response(self, request, result, pod):
        try:
            body = json.dumps(mark_pod(result, pod, self._strict_mode))
        except (TypeError, ValueError) as exc:
            return errored(500, exc)
        current_logger().info("pod was validated, result: %s", result)
        return patch_response_from_raw(request.object, body)