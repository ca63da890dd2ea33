import abc
from typing import Any, Dict, List, NamedTuple, Optional
from doodba.types import crd

JSON = Dict[str, Any]


class ObjectKind(NamedTuple):
    """Descriptor of a namespaced resource type."""

    group: str
    version: str
    kind: str
    plural: str

    @property
    def api_version(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    def __str__(self) -> str:
        return f"{self.plural}.{self.group or 'core'}/{self.version}"


DOODBA = ObjectKind(crd.GROUP, crd.VERSION, crd.KIND, crd.PLURAL)
JOB = ObjectKind("batch", "v1", "Job", "jobs")
DEPLOYMENT = ObjectKind("apps", "v1", "Deployment", "deployments")
SERVICE = ObjectKind("", "v1", "Service", "services")
CONFIG_MAP = ObjectKind("", "v1", "ConfigMap", "configmaps")
PERSISTENT_VOLUME_CLAIM = ObjectKind(
    "", "v1", "PersistentVolumeClaim", "persistentvolumeclaims"
)
INGRESS = ObjectKind("networking.k8s.io", "v1", "Ingress", "ingresses")


class ObjectStore(abc.ABC):
    """Typed access to cluster objects.

    Objects are exchanged as plain dicts in their wire (camelCase) form. A missing
    object is `None` on `get`; every other failure is raised as a
    `doodba.utils.errors.DoodbaError` subclass.
    """

    @abc.abstractmethod
    async def get(self, kind: ObjectKind, namespace: str, name: str) -> Optional[JSON]:
        """Fetch one object, or None if it does not exist."""

    @abc.abstractmethod
    async def list(
        self,
        kind: ObjectKind,
        namespace: str = None,
        label_selector: str = None,
        limit: int = None,
    ) -> List[JSON]:
        """List objects, cluster wide when `namespace` is None."""

    @abc.abstractmethod
    async def create(self, kind: ObjectKind, namespace: str, body: JSON) -> JSON:
        """Create an object. Raises `AlreadyExistsError` if the name is taken."""

    @abc.abstractmethod
    async def apply_patch(
        self, kind: ObjectKind, namespace: str, name: str, body: JSON
    ) -> JSON:
        """Server-side apply `body`, forcing ownership of conflicting fields."""

    @abc.abstractmethod
    async def apply_status_patch(
        self, kind: ObjectKind, namespace: str, name: str, status: JSON
    ) -> JSON:
        """Server-side apply a full status document to the status subresource."""

    @abc.abstractmethod
    async def json_patch(
        self, kind: ObjectKind, namespace: str, name: str, operations: List[JSON]
    ) -> JSON:
        """Apply RFC 6902 operations. A failed `test` raises `ConflictError`."""

    @abc.abstractmethod
    async def delete(
        self,
        kind: ObjectKind,
        namespace: str,
        name: str,
        propagation_policy: str = "Background",
    ) -> None:
        """Delete an object. Raises `NotFoundError` if it does not exist."""
