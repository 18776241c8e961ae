"""GKE auth helper (gke-auto).

Feed short-lived GKE access tokens to kubectl and Docker, and keep the
kubeconfig entries for a cluster up to date.
"""

__version__ = "0.1.0"
__author__ = "Platform Engineering Team"
__license__ = "Apache-2.0"
