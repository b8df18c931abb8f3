"""Library exceptions for the helmshift package."""


class HelmShiftError(Exception):
    """Base exception for helmshift library."""

    pass


class ClusterError(HelmShiftError):
    """Raised when a call against the cluster control-plane API fails."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        self.status = status
        super().__init__(message)


class ObjectNotFoundError(ClusterError):
    """Raised when a namespaced (or cluster-scoped) object cannot be found."""

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        where = f" in namespace '{namespace}'" if namespace else ""
        super().__init__(f"{kind} '{name}' not found{where}", status=404)


class ObjectAlreadyExistsError(ClusterError):
    """Raised when creating an object whose name is already taken."""

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        where = f" in namespace '{namespace}'" if namespace else ""
        super().__init__(f"{kind} '{name}' already exists{where}", status=409)


class AmbiguousObjectError(ClusterError):
    """Raised when a lookup across all namespaces finds the name more than once."""

    def __init__(self, kind: str, name: str, namespaces: list[str]) -> None:
        self.kind = kind
        self.name = name
        self.namespaces = namespaces
        super().__init__(
            f"{kind} '{name}' exists in several namespaces: {', '.join(namespaces)}",
            status=409,
        )


class ReleaseError(HelmShiftError):
    """Raised when the release system rejects or fails an operation."""

    def __init__(self, release_name: str, message: str) -> None:
        self.release_name = release_name
        super().__init__(f"release '{release_name}': {message}")


class ReleaseNotFoundError(ReleaseError):
    """Raised when a release does not exist in the given namespace."""

    def __init__(self, release_name: str, namespace: str) -> None:
        self.namespace = namespace
        super().__init__(release_name, f"not found in namespace '{namespace}'")


__all__ = [
    "HelmShiftError",
    "ClusterError",
    "ObjectNotFoundError",
    "ObjectAlreadyExistsError",
    "AmbiguousObjectError",
    "ReleaseError",
    "ReleaseNotFoundError",
]
