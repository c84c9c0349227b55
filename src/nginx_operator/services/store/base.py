"""Base object store interface."""

from __future__ import annotations

from typing import Any, Iterator, Protocol

from ...utils.cancellation import CancelToken


class ObjectStore(Protocol):
    """Protocol defining the versioned object store the reconciler talks to.

    Objects are plain dict bodies keyed by kind, namespace and name. Every
    stored object carries its version token in ``metadata.resourceVersion``.
    """

    def get(
        self, kind: str, namespace: str, name: str, cancel: CancelToken | None = None
    ) -> dict[str, Any]:
        """Fetch an object.

        Raises:
            NotFoundError: If the object does not exist
            TransientError: On any other failure
        """
        ...

    def create(self, kind: str, body: dict[str, Any], cancel: CancelToken | None = None) -> dict[str, Any]:
        """Create an object.

        Raises:
            AlreadyExistsError: If an object with the same identity exists
            TransientError: On any other failure
        """
        ...

    def update(self, kind: str, body: dict[str, Any], cancel: CancelToken | None = None) -> dict[str, Any]:
        """Replace an object, guarded by its version token.

        Raises:
            ConflictError: If the version token is stale
            TransientError: On any other failure
        """
        ...

    def update_status(
        self, kind: str, body: dict[str, Any], cancel: CancelToken | None = None
    ) -> dict[str, Any]:
        """Write the status subresource of an object.

        A body without a version token has its conditions merged by type
        onto the latest stored copy.

        Raises:
            NotFoundError: If the object does not exist
            ConflictError: If the version token is stale
            TransientError: On any other failure
        """
        ...

    def annotate(
        self,
        kind: str,
        namespace: str,
        name: str,
        annotations: dict[str, str],
        cancel: CancelToken | None = None,
    ) -> dict[str, Any]:
        """Merge annotations into an object's metadata.

        Raises:
            NotFoundError: If the object does not exist
            TransientError: On any other failure
        """
        ...

    def watch(
        self, kind: str, namespace: str | None = None, timeout_seconds: int = 60
    ) -> Iterator[tuple[str, dict[str, Any]]]:
        """Stream ``(event_type, body)`` changes of a kind."""
        ...
