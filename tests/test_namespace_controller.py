import logging

import pytest

from warden import labels
from warden.namespace_controller import (
    NamespaceEventFilter,
    NamespaceReconciler,
    label_with_validation_pending,
    ns_validation_label_set,
)
from warden.reconcile import InMemoryClient, ObjectKey, ReconcileRequest, ReconcileResult

VALIDATABLE_NS = "warden-enabled"
UNVALIDATABLE_NS = "some-ns"
LOGGER = logging.getLogger("test.namespace_controller")
ENABLED = {labels.NAMESPACE_VALIDATION_LABEL: labels.NAMESPACE_VALIDATION_ENABLED}


def _pod(name, namespace, pod_labels=None):
    meta = {"name": name, "namespace": namespace}
    if pod_labels is not None:
        meta["labels"] = pod_labels
    return {"metadata": meta, "spec": {"containers": [{"image": "test-image", "name": "container"}]}}


def _namespace(name, ns_labels=None):
    meta = {"name": name}
    if ns_labels is not None:
        meta["labels"] = ns_labels
    return {"metadata": meta}


class _RecordingPatch:
    def __init__(self, error=None):
        self.patched = []
        self._error = error

    def __call__(self, modified, original):
        if labels.POD_VALIDATION_LABEL not in (modified["metadata"].get("labels") or {}):
            raise AssertionError("patched object should contain the validation label")
        self.patched.append(modified)
        if self._error is not None:
            raise self._error


class _PatchFailingClient:
    def __init__(self, inner):
        self._inner = inner

    def get(self, kind, key):
        return self._inner.get(kind, key)

    def list(self, kind, namespace=None):
        return self._inner.list(kind, namespace)

    def patch(self, kind, obj, original):
        raise RuntimeError("Error occurred")


@pytest.fixture(scope="module")
def shared():
    client = InMemoryClient()
    client.create("Namespace", _namespace(VALIDATABLE_NS, ENABLED))
    client.create("Namespace", _namespace(UNVALIDATABLE_NS, {"some": "label"}))
    return client, NamespaceReconciler(client, LOGGER)


@pytest.mark.parametrize(
    "pod, expected_label",
    [
        (_pod("valid-pod", VALIDATABLE_NS), labels.VALIDATION_STATUS_PENDING),
        (
            _pod("valid-pod-2", VALIDATABLE_NS, {labels.POD_VALIDATION_LABEL: labels.VALIDATION_STATUS_SUCCESS}),
            labels.VALIDATION_STATUS_PENDING,
        ),
        (_pod("valid-pod-3", UNVALIDATABLE_NS), ""),
    ],
    ids=["no-label", "label-reset", "namespace-not-labeled"],
)
def test_namespace_reconcile(shared, pod, expected_label):
    client, reconciler = shared
    client.create("Pod", pod)

    result = reconciler.reconcile(ReconcileRequest(VALIDATABLE_NS))

    assert result == ReconcileResult()
    meta = pod["metadata"]
    final_pod = client.get("Pod", ObjectKey(meta["name"], meta["namespace"]))
    assert labels.pod_validation_label(final_pod) == expected_label


def test_namespace_reconcile_no_pods(shared):
    client, reconciler = shared
    assert client.list("Pod", "validatable-empty") == []
    client.create("Namespace", _namespace("validatable-empty", ENABLED))
    assert reconciler.reconcile(ReconcileRequest("validatable-empty")) == ReconcileResult()


def test_namespace_reconcile_missing_namespace_requeues():
    reconciler = NamespaceReconciler(InMemoryClient(), LOGGER)
    assert reconciler.reconcile(ReconcileRequest("absent")) == ReconcileResult(requeue=True)


def test_namespace_reconcile_unlabelled_namespace_leaves_pods():
    client = InMemoryClient()
    client.create("Namespace", _namespace(UNVALIDATABLE_NS))
    client.create("Pod", _pod("p", UNVALIDATABLE_NS))
    result = NamespaceReconciler(client, LOGGER).reconcile(ReconcileRequest(UNVALIDATABLE_NS))
    assert result == ReconcileResult()
    assert labels.pod_validation_label(client.get("Pod", ObjectKey("p", UNVALIDATABLE_NS))) == ""


def test_namespace_reconcile_patch_failure_requeues():
    client = InMemoryClient()
    client.create("Namespace", _namespace(VALIDATABLE_NS, ENABLED))
    client.create("Pod", _pod("p", VALIDATABLE_NS))
    result = NamespaceReconciler(_PatchFailingClient(client), LOGGER).reconcile(
        ReconcileRequest(VALIDATABLE_NS)
    )
    assert result == ReconcileResult(requeue=True)


def test_label_already_pending_is_not_patched():
    patch = _RecordingPatch()
    pod = {"metadata": {"labels": {labels.POD_VALIDATION_LABEL: labels.VALIDATION_STATUS_PENDING}}}
    assert label_with_validation_pending(pod, patch) is False
    assert patch.patched == []


def test_pending_label_added():
    patch = _RecordingPatch()
    pod = {"metadata": {}}
    assert label_with_validation_pending(pod, patch) is True
    assert patch.patched[0]["metadata"]["labels"] == {
        labels.POD_VALIDATION_LABEL: labels.VALIDATION_STATUS_PENDING
    }
    assert pod == {"metadata": {}}


def test_label_reset_from_success_to_pending():
    patch = _RecordingPatch()
    pod = {"metadata": {"labels": {labels.POD_VALIDATION_LABEL: labels.VALIDATION_STATUS_SUCCESS}}}
    assert label_with_validation_pending(pod, patch) is True
    assert labels.pod_validation_label(patch.patched[0]) == labels.VALIDATION_STATUS_PENDING


def test_label_patch_error_propagates():
    patch = _RecordingPatch(error=RuntimeError("boom"))
    with pytest.raises(RuntimeError, match="boom"):
        label_with_validation_pending({"metadata": {}}, patch)


@pytest.mark.parametrize(
    "ns_labels, want",
    [
        ({labels.NAMESPACE_VALIDATION_LABEL: ""}, False),
        ({"some": "label"}, False),
        (None, False),
        ({labels.NAMESPACE_VALIDATION_LABEL: "disabled"}, False),
        ({labels.NAMESPACE_VALIDATION_LABEL: labels.NAMESPACE_VALIDATION_ENABLED}, True),
    ],
    ids=["empty-value", "no-key", "nil-map", "non-enabled", "found"],
)
def test_ns_validation_label_set(ns_labels, want):
    assert ns_validation_label_set(ns_labels) is want


@pytest.mark.parametrize(
    "old, new, want",
    [
        (_namespace("n"), _namespace("n", ENABLED), True),
        (_namespace("n"), _namespace("n", {labels.NAMESPACE_VALIDATION_LABEL: "disable"}), False),
        (_namespace("n", ENABLED), _namespace("n"), False),
    ],
    ids=["updated", "new-has-no-label", "old-has-label"],
)
def test_ns_update_filter(old, new, want):
    assert NamespaceEventFilter(LOGGER).update(old, new) is want


def test_create_delete_generic_rejected():
    event_filter = NamespaceEventFilter(LOGGER)
    ns = _namespace("n", ENABLED)
    assert (event_filter.create(ns), event_filter.delete(ns), event_filter.generic(ns)) == (
        False,
        False,
        False,
    )