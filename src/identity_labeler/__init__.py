"""Workload Identity Labeler.

Binds Kubernetes ServiceAccounts to Azure user-assigned managed identities by
annotating them with the identity's client id, then rolls the Deployments that
use them so pods pick up the new identity.
"""

__version__ = "0.1.0"
