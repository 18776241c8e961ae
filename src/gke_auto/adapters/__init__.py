"""Adapters implementing gke-auto interfaces."""

from gke_auto.adapters.gcp_adapter import GCPAdapter

__all__ = ["GCPAdapter"]
