"""Reconciler that marks all pods of a namespace for validation once it is enabled."""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Callable, Mapping

from warden import labels as wlabels
from warden.reconcile import NotFoundError, ObjectKey, ReconcileRequest, ReconcileResult

Patch = Callable[[dict, Mapping[str, Any]], Any]


def _labels_of(obj: Mapping[str, Any] | None) -> Mapping[str, str] | None:
    return ((obj or {}).get("metadata") or {}).get("labels")


def ns_validation_label_set(labels: Mapping[str, str] | None) -> bool:
    """Tell whether the labels enable validation."""
    return (labels or {}).get(wlabels.NAMESPACE_VALIDATION_LABEL) == wlabels.NAMESPACE_VALIDATION_ENABLED


def label_with_validation_pending(pod: Mapping[str, Any], patch: Patch) -> bool:
    """Label the pod as pending through ``patch(modified, original)``.

    Returns False when the pod was already pending and nothing was patched.
    Errors from ``patch`` propagate.
    """
    if wlabels.pod_validation_label(pod) == wlabels.VALIDATION_STATUS_PENDING:
        return False
    pod_copy = copy.deepcopy(dict(pod))
    meta = pod_copy.setdefault("metadata", {})
    meta["labels"] = meta.get("labels") or {}
    meta["labels"][wlabels.POD_VALIDATION_LABEL] = wlabels.VALIDATION_STATUS_PENDING
    patch(pod_copy, pod)
    return True


class NamespaceEventFilter:
    """Lets through only updates that turn namespace validation on."""

    def __init__(self, logger: Any) -> None:
        self._logger = logger

    def create(self, obj: Any) -> bool:
        self._logger.debug("omitting incoming create namespace event")
        return False

    def delete(self, obj: Any) -> bool:
        self._logger.debug("omitting incoming delete namespace event")
        return False

    def generic(self, obj: Any) -> bool:
        self._logger.debug("omitting incoming generic namespace event")
        return False

    def update(self, old: Mapping[str, Any], new: Mapping[str, Any]) -> bool:
        old_labels, new_labels = _labels_of(old), _labels_of(new)
        self._logger.debug(
            "incoming update namespace event, oldLabels: %s, newLabels: %s", old_labels, new_labels
        )
        if ns_validation_label_set(old_labels):
            self._logger.debug(
                "validation label '%s' already exists, omitting update namespace event",
                wlabels.NAMESPACE_VALIDATION_LABEL,
            )
            return False
        if not ns_validation_label_set(new_labels):
            self._logger.debug(
                "validation label: %s not found, omitting update namespace event",
                wlabels.NAMESPACE_VALIDATION_LABEL,
            )
            return False
        return True


class NamespaceReconciler:
    """Labels every pod of a validation-enabled namespace as pending."""

    def __init__(self, client: Any, logger: Any) -> None:
        self._client = client
        self._logger = logger

    def reconcile(self, request: ReconcileRequest) -> ReconcileResult:
        """Mark the namespace's pods; requeue when any of them could not be labelled."""
        logger = logging.LoggerAdapter(self._logger, {"req": str(request), "req-id": str(uuid.uuid4())})
        logger.info("reconciliation started")

        try:
            namespace = self._client.get("Namespace", ObjectKey(request.name))
        except NotFoundError:
            logger.error("unable to fetch namespace, requeueing")
            return ReconcileResult(requeue=True)
        except Exception:
            logger.error("unable to fetch namespace, requeueing")
            raise

        if not ns_validation_label_set(_labels_of(namespace)):
            logger.debug(
                "validation lable: %s not found, omitting update namespace event",
                wlabels.NAMESPACE_VALIDATION_LABEL,
            )
            return ReconcileResult()

        try:
            pods = self._client.list("Pod", request.name)
        except Exception as exc:
            raise RuntimeError(f"while fetching list of pods: {exc}") from exc
        logger.debug("pod fetching succeeded, pod-count: %d", len(pods))

        def patch(modified: dict, original: Mapping[str, Any]) -> Any:
            return self._client.patch("Pod", modified, original)

        labelled = 0
        for index, pod in enumerate(pods):
            meta = pod.get("metadata") or {}
            try:
                label_with_validation_pending(pod, patch)
            except Exception as exc:
                logger.error("pod labeling error for %s/%s: %s", meta.get("namespace"), meta.get("name"), exc)
                continue
            labelled += 1
            logger.debug("pod labeling succeeded %d/%d", index, len(pods))

        logger.debug("%d/%d pod[s] labeled", labelled, len(pods))
        result = ReconcileResult(requeue=len(pods) != labelled)
        logger.debug("reconciliation finished, result: %s", result)
        return result