"""Kubernetes operator that manages an nginx Deployment per NginxOperator resource."""

__version__ = "0.1.0"
