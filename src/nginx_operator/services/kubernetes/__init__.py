"""Kubernetes-backed object store."""

from .client import KubernetesStore, load_custom_objects_api

__all__ = ["KubernetesStore", "load_custom_objects_api"]
