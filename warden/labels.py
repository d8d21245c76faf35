"""Label and annotation names that mark pods and namespaces for image validation."""

POD_VALIDATION_LABEL = "pods.warden.kyma-project.io/validate"
NAMESPACE_VALIDATION_LABEL = "namespaces.warden.kyma-project.io/validate"
NAMESPACE_VALIDATION_ENABLED = "enabled"

VALIDATION_STATUS_SUCCESS = "success"
VALIDATION_STATUS_FAILED = "failed"
VALIDATION_STATUS_PENDING = "pending"

# Carries the validation verdict from the defaulting to the validating webhook.
POD_VALIDATION_REJECT_ANNOTATION = "pods.warden.kyma-project.io/validate-reject"
INVALID_IMAGES_ANNOTATION = "pods.warden.kyma-project.io/invalid-images"
VALIDATION_REJECT = "reject"


def _labels(obj):
    return ((obj or {}).get("metadata") or {}).get("labels") or {}


def namespace_validation_enabled(namespace):
    """Tell whether the namespace carries the label that enables validation."""
    return _labels(namespace).get(NAMESPACE_VALIDATION_LABEL) == NAMESPACE_VALIDATION_ENABLED


def pod_validation_label(pod):
    """Return the pod's validation label value, or an empty string if unset."""
    return _labels(pod).get(POD_VALIDATION_LABEL, "")