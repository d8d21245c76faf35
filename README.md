# warden

`warden` decides whether pods may run, based on whether their container
images are valid. It records the result on the pod as a label and as
annotations. Pods and namespaces are plain dictionaries in the shape of
their JSON documents.

## What is in the package

- `warden.labels` holds the label and annotation names. It also has the
  helpers `namespace_validation_enabled(namespace)` and
  `pod_validation_label(pod)`.
- `warden.defaulting.DefaultingWebhook` handles admission requests for
  pods. It acts only in namespaces labelled
  `namespaces.warden.kyma-project.io/validate: enabled`.
  - It validates the pod's images on every `CREATE`.
  - On other operations, it validates unless the pod is already labelled
    `failed` or `pending`.
  - It answers with a JSON patch. The patch sets
    `pods.warden.kyma-project.io/validate` to `success`, `failed` or
    `pending`.
  - For invalid pods, it adds the
    `pods.warden.kyma-project.io/validate-reject: reject` annotation, and
    lists the invalid images in `pods.warden.kyma-project.io/invalid-images`.
  - If validation does not finish within the timeout, the pod is marked
    `pending`. With `strict_mode`, it is also marked for rejection.
- `warden.validation.ValidationWebhook` denies pods that carry the
  reject annotation. Its message names the invalid images when that
  annotation is present. It allows `DELETE` requests and pods without the
  reject annotation.
- `warden.pod_controller.PodReconciler` validates a pod again and patches
  its validation label.
  - It requeues after `PodReconcilerConfig.requeue_after` while the result
    is unresolved.
  - It requeues at once when patching fails.
  - `should_process_create` and `should_process_update` decide which pod
    events need reconciling.
- `warden.namespace_controller.NamespaceReconciler` labels every pod of a
  validation-enabled namespace as `pending`. It requeues if any pod could
  not be labelled.
- `warden.namespace_controller.NamespaceEventFilter` lets through only
  namespace updates that switch validation on.
- `warden.reconcile.InMemoryClient` is an in-memory object store with
  `get`, `list`, `create` and merge-patch `patch`. It also defines
  `ReconcileRequest`, `ReconcileResult` and `NotFoundError`.
- `warden.jsonpatch.create_patch` computes the JSON Patch operations
  between two documents.
- `warden.config.load` reads a YAML configuration file over the defaults.
- `warden.config.watch` calls back on changes in the file's directory.
- `warden.env.get_bool` reads a boolean environment variable.

## Installation

```
pip install .
```

To install with the test dependencies:

```
pip install ".[test]"
```

## Using the defaulting webhook

The validation service is any object with a `validate_pod(pod, namespace)`
method that returns a `ValidationResult`. The logger must be a standard
`logging.Logger`.

```python
import json
import logging

from warden import labels
from warden.admission_types import AdmissionRequest, Operation, ValidationResult, ValidationStatus
from warden.defaulting import DefaultingWebhook
from warden.reconcile import InMemoryClient


class AlwaysValid:
    def validate_pod(self, pod, namespace):
        return ValidationResult(ValidationStatus.VALID)


client = InMemoryClient()
client.create("Namespace", {"metadata": {
    "name": "apps",
    "labels": {labels.NAMESPACE_VALIDATION_LABEL: labels.NAMESPACE_VALIDATION_ENABLED},
}})

pod = {"metadata": {"name": "web", "namespace": "apps"},
       "spec": {"containers": [{"image": "nginx"}]}}
request = AdmissionRequest(kind="Pod", operation=Operation.CREATE,
                           object=json.dumps(pod).encode())

webhook = DefaultingWebhook(client, AlwaysValid(), timeout=2.0,
                            strict_mode=False, logger=logging.getLogger("warden"))
response = webhook.handle(request)
print(response.allowed, [op.to_dict() for op in response.patches])
```

The `timeout` argument accepts either seconds or a `datetime.timedelta`.

## Reconciling

```python
from datetime import timedelta

from warden.namespace_controller import NamespaceReconciler
from warden.pod_controller import PodReconciler, PodReconcilerConfig
from warden.reconcile import ReconcileRequest

pods = PodReconciler(client, AlwaysValid(),
                     PodReconcilerConfig(requeue_after=timedelta(minutes=60)),
                     logging.getLogger("warden.pods"))
client.create("Pod", pod)
print(pods.reconcile(ReconcileRequest("web", "apps")))

namespaces = NamespaceReconciler(client, logging.getLogger("warden.namespaces"))
print(namespaces.reconcile(ReconcileRequest("apps")))
```

## Configuration

```python
from warden.config import load

config = load("config.yaml")
print(config.notary.url, config.admission.timeout, config.logging.level)
```

Keys are written in camel case, for example `admission.strictMode` or
`operator.podReconcilerRequeueAfter`. The notary URL is under `notary.URL`.

Durations are written like `30s`, `2s` or `1h30m`.
`warden.config.parse_duration` parses them.

`load` raises `OSError` if the file cannot be read. It raises
`ValueError` if the content does not fit the configuration.

## What the package does not do

- It has no command and no HTTP server. The webhooks take
  `AdmissionRequest` objects and return `AdmissionResponse` objects.
  Serving them over HTTPS, and managing certificates, is up to the caller.
- It does not check image signatures itself. The validation service is
  supplied by the caller.
- It does not talk to a cluster. `InMemoryClient` is the only client
  included. Another client may be passed in if it offers the same `get`,
  `list` and `patch` calls.
- `watch` only reports changes through the callback. Restarting on a
  configuration change is left to the caller.

## Running the tests

```
pytest
```