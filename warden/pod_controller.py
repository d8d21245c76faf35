"""Reconciler that validates pod images and labels pods with the outcome."""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping

from warden import labels
from warden.admission_types import ValidationStatus
from warden.logctx import bind_logger
from warden.reconcile import NotFoundError, ObjectKey, ReconcileRequest, ReconcileResult


@dataclass(frozen=True)
class PodReconcilerConfig:
    """How long to wait before checking an unresolved pod again."""

    requeue_after: timedelta = timedelta(0)


def pod_images(pod: Mapping[str, Any]) -> list[str]:
    """Return the images of the init containers followed by those of the containers."""
    spec = pod.get("spec") or {}
    containers = list(spec.get("initContainers") or []) + list(spec.get("containers") or [])
    return [container.get("image", "") for container in containers]


def are_images_changed(old_pod: Mapping[str, Any], new_pod: Mapping[str, Any]) -> bool:
    """Tell whether the pods use different sets of images, order ignored."""
    return sorted(pod_images(old_pod)) != sorted(pod_images(new_pod))


def label_for_validation_result(status: ValidationStatus) -> str:
    """Return the validation label value for ``status``; empty means no label."""
    if status == ValidationStatus.NO_ACTION:
        return ""
    if status == ValidationStatus.INVALID:
        return labels.VALIDATION_STATUS_FAILED
    if status == ValidationStatus.VALID:
        return labels.VALIDATION_STATUS_SUCCESS
    return labels.VALIDATION_STATUS_PENDING


def _resource_version(obj: Mapping[str, Any]) -> str:
    return (obj.get("metadata") or {}).get("resourceVersion", "")


class PodReconciler:
    """Validates pods and records the result in their validation label.

    ``validator.validate_pod(pod, namespace)`` returns a ValidationResult.
    """

    def __init__(
        self, client: Any, validator: Any, config: PodReconcilerConfig, logger: Any
    ) -> None:
        self._client = client
        self._validator = validator
        self._config = config
        self._logger = logger

    def should_process_create(self, pod: Mapping[str, Any]) -> bool:
        """Created pods are processed only in namespaces with validation enabled."""
        return self._validation_enabled_for_ns((pod.get("metadata") or {}).get("namespace", ""))

    def should_process_update(self, old_pod: Mapping[str, Any], new_pod: Mapping[str, Any]) -> bool:
        """Tell whether an update needs the pod to be validated again."""
        if _resource_version(old_pod) == _resource_version(new_pod):
            return False
        if not self._validation_enabled_for_ns((new_pod.get("metadata") or {}).get("namespace", "")):
            return False
        if are_images_changed(old_pod, new_pod):
            return True
        return (
            labels.pod_validation_label(old_pod) != labels.VALIDATION_STATUS_SUCCESS
            or labels.pod_validation_label(new_pod) != labels.VALIDATION_STATUS_SUCCESS
        )

    def reconcile(self, request: ReconcileRequest) -> ReconcileResult:
        """Validate the pod and label it; errors from validation propagate."""
        logger = logging.LoggerAdapter(self._logger, {"req": str(request), "req-id": str(uuid.uuid4())})
        with bind_logger(logger):
            try:
                pod = self._client.get("Pod", request.key)
            except NotFoundError:
                return ReconcileResult()

            status = self._check_pod(pod)

            requeue_after = self._config.requeue_after
            if status == ValidationStatus.VALID:
                logger.info("pod validated successfully")
                requeue_after = timedelta(0)
            elif status == ValidationStatus.INVALID:
                logger.info("pod validation failed")
                requeue_after = timedelta(0)

            requeue = False
            try:
                self._label_pod(pod, status)
            except Exception as exc:
                logger.info("pod labeling failed, err: %s", exc)
                requeue = True
            return ReconcileResult(requeue=requeue, requeue_after=requeue_after)

    def _check_pod(self, pod: Mapping[str, Any]) -> ValidationStatus:
        namespace_name = (pod.get("metadata") or {}).get("namespace", "")
        namespace = self._client.get("Namespace", ObjectKey(namespace_name))
        return self._validator.validate_pod(pod, namespace).status

    def _label_pod(self, pod: Mapping[str, Any], status: ValidationStatus) -> None:
        label = label_for_validation_result(status)
        if not label or labels.pod_validation_label(pod) == label:
            return
        out = copy.deepcopy(dict(pod))
        meta = out.setdefault("metadata", {})
        meta["labels"] = meta.get("labels") or {}
        meta["labels"][labels.POD_VALIDATION_LABEL] = label
        try:
            self._client.patch("Pod", out, pod)
        except NotFoundError:
            pass

    def _validation_enabled_for_ns(self, namespace: str) -> bool:
        try:
            ns = self._client.get("Namespace", ObjectKey(namespace))
        except Exception:
            return False
        return labels.namespace_validation_enabled(ns)