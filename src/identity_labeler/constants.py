"""Metadata keys shared with the workload identity webhook and kubectl.

These strings are consumed by other components and must not change.
"""

# Label on a ServiceAccount naming the managed identity it wants.
MI_NAME_LABEL = "workload.identity.labeler/azure-mi-client-name"

# Annotation read by the Azure workload identity mutating webhook.
CLIENT_ID_ANNOTATION = "azure.workload.identity/client-id"

# Pod template annotation that `kubectl rollout restart` uses.
RESTARTED_AT_ANNOTATION = "kubectl.kubernetes.io/restartedAt"
