"""Builders for managed resources."""

from .deployment import OperatorSpec, apply_overrides, parse_operator_spec

__all__ = ["OperatorSpec", "apply_overrides", "parse_operator_spec"]
