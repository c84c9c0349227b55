"""Owner reference helpers."""

from __future__ import annotations

from typing import Any

from ..scheme import Scheme
from .errors import AlreadyOwnedError, SchemeError


def build_owner_reference(owner: dict[str, Any], scheme: Scheme) -> dict[str, Any]:
    """Build a controller owner reference pointing at ``owner``.

    Raises:
        SchemeError: If the owner's type is not registered or it lacks
            the metadata needed to reference it
    """
    resource_type = scheme.type_for(owner)
    meta = owner.get("metadata", {})
    name = meta.get("name")
    uid = meta.get("uid")
    if not name or not uid:
        raise SchemeError(f"{resource_type.kind} owner must have a name and uid to be referenced")

    return {
        "apiVersion": resource_type.api_version,
        "kind": resource_type.kind,
        "name": name,
        "uid": uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }


def get_controller_reference(obj: dict[str, Any]) -> dict[str, Any] | None:
    """Return the controller owner reference of ``obj``, if any."""
    for ref in obj.get("metadata", {}).get("ownerReferences") or []:
        if ref.get("controller"):
            return ref
    return None


def set_controller_reference(child: dict[str, Any], owner: dict[str, Any], scheme: Scheme) -> None:
    """Make ``owner`` the controller of ``child``.

    Deleting the owner then lets the API server cascade-delete the child.
    The owner must live in the child's namespace; an existing reference to
    the same owner is replaced, any other non-controller references are kept.

    Raises:
        SchemeError: If the owner's type is not registered in ``scheme``
        AlreadyOwnedError: If ``child`` is already controlled by another object
    """
    ref = build_owner_reference(owner, scheme)

    child_meta = child.setdefault("metadata", {})
    owner_ns = owner.get("metadata", {}).get("namespace")
    child_ns = child_meta.get("namespace")
    if owner_ns and child_ns and owner_ns != child_ns:
        raise SchemeError(
            f"cross-namespace owner references are not allowed: {child_ns} -> {owner_ns}"
        )

    existing = get_controller_reference(child)
    if existing is not None and existing.get("uid") != ref["uid"]:
        raise AlreadyOwnedError(
            f"object {child_meta.get('name')} is already owned by "
            f"{existing.get('kind')} {existing.get('name')}"
        )

    refs = [r for r in child_meta.get("ownerReferences") or [] if r.get("uid") != ref["uid"]]
    refs.append(ref)
    child_meta["ownerReferences"] = refs
