import pytest

from warden.reconcile import (
    InMemoryClient,
    NotFoundError,
    ObjectKey,
    ReconcileRequest,
    merge_patch,
)


def _pod(name, namespace="ns", labels=None):
    meta = {"name": name, "namespace": namespace}
    if labels is not None:
        meta["labels"] = labels
    return {"metadata": meta, "spec": {"containers": [{"name": "c", "image": "img"}]}}


def test_create_then_get_returns_copy():
    client = InMemoryClient()
    client.create("Pod", _pod("a"))
    got = client.get("Pod", ObjectKey("a", "ns"))
    assert got["spec"] == {"containers": [{"name": "c", "image": "img"}]}
    got["spec"]["containers"].clear()
    assert client.get("Pod", ObjectKey("a", "ns"))["spec"]["containers"][0]["image"] == "img"


def test_get_missing_raises():
    client = InMemoryClient()
    with pytest.raises(NotFoundError):
        client.get("Pod", ObjectKey("missing", "ns"))


def test_get_accepts_plain_name_for_cluster_scoped():
    client = InMemoryClient()
    client.create("Namespace", {"metadata": {"name": "team"}})
    assert client.get("Namespace", "team")["metadata"]["name"] == "team"


def test_create_duplicate_raises():
    client = InMemoryClient()
    client.create("Pod", _pod("a"))
    with pytest.raises(ValueError):
        client.create("Pod", _pod("a"))


def test_create_without_name_raises():
    with pytest.raises(ValueError):
        InMemoryClient().create("Pod", {"metadata": {}})


def test_list_filters_by_namespace_and_sorts():
    client = InMemoryClient()
    client.create("Pod", _pod("b", "one"))
    client.create("Pod", _pod("a", "one"))
    client.create("Pod", _pod("c", "two"))
    assert [p["metadata"]["name"] for p in client.list("Pod", "one")] == ["a", "b"]
    assert len(client.list("Pod")) == 3
    assert client.list("Namespace") == []


def test_patch_updates_labels_and_keeps_other_changes():
    client = InMemoryClient()
    client.create("Pod", _pod("a", labels={"x": "1"}))
    original = client.get("Pod", ObjectKey("a", "ns"))
    other = client.get("Pod", ObjectKey("a", "ns"))
    other["metadata"]["annotations"] = {"note": "kept"}
    client.patch("Pod", other, client.get("Pod", ObjectKey("a", "ns")))

    modified = {**original, "metadata": {**original["metadata"], "labels": {"x": "1", "y": "2"}}}
    client.patch("Pod", modified, original)

    stored = client.get("Pod", ObjectKey("a", "ns"))
    assert stored["metadata"]["labels"] == {"x": "1", "y": "2"}
    assert stored["metadata"]["annotations"] == {"note": "kept"}


def test_patch_changes_resource_version():
    client = InMemoryClient()
    created = client.create("Pod", _pod("a"))
    modified = {**created, "metadata": {**created["metadata"], "labels": {"k": "v"}}}
    patched = client.patch("Pod", modified, created)
    assert patched["metadata"]["labels"] == {"k": "v"}
    assert patched["metadata"]["resourceVersion"] != created["metadata"]["resourceVersion"]


def test_patch_missing_raises():
    with pytest.raises(NotFoundError):
        InMemoryClient().patch("Pod", _pod("a"), _pod("a"))


def test_merge_patch_without_changes_is_empty():
    doc = {"a": 1, "b": {"c": "d"}}
    assert merge_patch(doc, dict(doc)) == {}


def test_merge_patch_changed_and_removed_keys():
    assert merge_patch({"a": 1, "b": 2}, {"a": 1, "b": 3}) == {"b": 3}
    assert merge_patch({"a": 1, "b": 2}, {"a": 1}) == {"b": None}


def test_merge_patch_nested():
    original = {"metadata": {"labels": {"x": "1"}, "name": "p"}}
    modified = {"metadata": {"labels": {"x": "1", "y": "2"}, "name": "p"}}
    assert merge_patch(original, modified) == {"metadata": {"labels": {"y": "2"}}}


def test_request_key():
    request = ReconcileRequest("pod", "ns")
    assert request.key == ObjectKey("pod", "ns")
    assert str(request) == "ns/pod"