"""Unit tests for owner reference helpers."""

from __future__ import annotations

import pytest

from nginx_operator.scheme import build_scheme
from nginx_operator.utils.errors import AlreadyOwnedError, SchemeError
from nginx_operator.utils.owner import build_owner_reference, get_controller_reference, set_controller_reference


def _owner(namespace="default", uid="uid-1"):
    return {
        "apiVersion": "operator.example.com/v1alpha1",
        "kind": "NginxOperator",
        "metadata": {"name": "nginx", "namespace": namespace, "uid": uid},
    }


def _child(namespace="default", refs=None):
    meta = {"name": "nginx-deployment", "namespace": namespace}
    if refs is not None:
        meta["ownerReferences"] = refs
    return {"apiVersion": "apps/v1", "kind": "Deployment", "metadata": meta}


class TestOwnerReferences:
    """Test controller reference handling."""

    def test_build_owner_reference(self) -> None:
        """Test the reference points at the owner as controller."""
        assert build_owner_reference(_owner(), build_scheme()) == {
            "apiVersion": "operator.example.com/v1alpha1",
            "kind": "NginxOperator",
            "name": "nginx",
            "uid": "uid-1",
            "controller": True,
            "blockOwnerDeletion": True,
        }

    def test_owner_without_uid(self) -> None:
        """Test an owner that was never persisted cannot be referenced."""
        owner = _owner()
        del owner["metadata"]["uid"]

        with pytest.raises(SchemeError):
            build_owner_reference(owner, build_scheme())

    def test_set_controller_reference(self) -> None:
        """Test the reference is added and readable back."""
        child = _child()

        set_controller_reference(child, _owner(), build_scheme())

        ref = get_controller_reference(child)
        assert ref["uid"] == "uid-1"
        assert len(child["metadata"]["ownerReferences"]) == 1

    def test_set_is_idempotent(self) -> None:
        """Test setting the same owner twice keeps one reference."""
        child = _child()
        set_controller_reference(child, _owner(), build_scheme())
        set_controller_reference(child, _owner(), build_scheme())

        assert len(child["metadata"]["ownerReferences"]) == 1

    def test_non_controller_references_kept(self) -> None:
        """Test unrelated references survive."""
        other = {"apiVersion": "v1", "kind": "ConfigMap", "name": "cm", "uid": "uid-cm"}
        child = _child(refs=[other])

        set_controller_reference(child, _owner(), build_scheme())

        assert child["metadata"]["ownerReferences"][0] == other
        assert len(child["metadata"]["ownerReferences"]) == 2

    def test_already_owned(self) -> None:
        """Test a child controlled by another object is rejected."""
        existing = {"kind": "NginxOperator", "name": "other", "uid": "uid-2", "controller": True}
        child = _child(refs=[existing])

        with pytest.raises(AlreadyOwnedError):
            set_controller_reference(child, _owner(), build_scheme())

    def test_cross_namespace_rejected(self) -> None:
        """Test owners must share the child's namespace."""
        with pytest.raises(SchemeError):
            set_controller_reference(_child(namespace="b"), _owner(namespace="a"), build_scheme())

    def test_unregistered_owner(self) -> None:
        """Test an owner of an unknown kind is rejected."""
        owner = _owner()
        owner["kind"] = "Unknown"

        with pytest.raises(SchemeError):
            set_controller_reference(_child(), owner, build_scheme())

    def test_no_controller_reference(self) -> None:
        """Test objects without a controller."""
        assert get_controller_reference(_child()) is None
        assert get_controller_reference(_child(refs=[{"uid": "x", "controller": False}])) is None
