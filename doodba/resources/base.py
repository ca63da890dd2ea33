import mmh3
import hashlib
import kopf
from typing import Any, Dict, List, Optional, Tuple, Union
from doodba.common.models.annotations import Annotations
from doodba.common.models.labels import Labels
from doodba.sensors import OperatorSensor
from doodba.store import ObjectKind, ObjectStore
from doodba.utils.errors import AlreadyExistsError, NotFoundError
from doodba.utils.helpers import canonicalize_dict, drop_nones


class BaseResource:
    """Base resource model."""

    DOODBA_OPERATOR_NAME = "doodba-operator"

    store: ObjectStore
    sensor: OperatorSensor

    _name: str
    _namespace: str
    _labels: Labels
    _owner: Dict[str, Any]

    def __init__(
        self, name: str, namespace: str, labels: Labels, owner: Dict[str, Any]
    ):
        self._name = name
        self._namespace = namespace
        self._labels = labels
        self._owner = owner

    @property
    def name(self) -> str:
        return self._name

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def labels(self) -> Labels:
        return self._labels

    def compute_hash(self, data: Any) -> str:
        """Compute a murmur3 hash."""
        if isinstance(data, dict):
            _data = canonicalize_dict(data)
        elif isinstance(data, str):
            _data = data.encode()
        else:
            raise ValueError(f"Hash of {type(data)} is not supported.")
        mumur_str = str(mmh3.hash128(_data))

        hash_obj = hashlib.sha256(mumur_str.encode("utf-8"))
        full_hash = hash_obj.hexdigest()

        # First 16 characters, for readability in labels/annotations
        return full_hash[:16]

    def prepare_hash_annotation(self, hash: Union[str, int]) -> Dict[str, str]:
        """Prepare hash annotation for k8s resources."""
        return {Annotations.RESOURCE_HASH: str(hash)}

    def prepare_owner_references(self) -> List[Dict[str, Any]]:
        """Controller owner reference back to the owning custom resource."""
        return [
            kopf.build_owner_reference(
                self._owner, controller=True, block_owner_deletion=True
            )
        ]

    def prepare_metadata(
        self,
        name: str,
        labels: Optional[Labels] = None,
        annotations: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        return {
            "name": name,
            "namespace": self.namespace,
            "labels": (labels or self.labels).as_dict(),
            "annotations": dict(annotations or {}),
            "ownerReferences": self.prepare_owner_references(),
        }

    def prepare_manifest(
        self, kind: ObjectKind, metadata: Dict[str, Any], **fields: Any
    ) -> Dict[str, Any]:
        """Assemble a manifest and stamp it with the hash of its content."""
        manifest = drop_nones(
            {
                "apiVersion": kind.api_version,
                "kind": kind.kind,
                "metadata": metadata,
                **fields,
            }
        )
        manifest["metadata"].setdefault("annotations", {}).update(
            self.prepare_hash_annotation(self.compute_hash(manifest))
        )
        return manifest

    async def fetch(self, kind: ObjectKind, name: str) -> Optional[Dict[str, Any]]:
        """Retrieve the latest state of a child resource."""
        return await self.store.get(kind, self.namespace, name)

    async def get_or_create(
        self, kind: ObjectKind, manifest: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], bool]:
        """Create `manifest` unless an object with its name already exists.

        Returns the object and whether it was created by this call.
        """
        name = manifest["metadata"]["name"]
        existing = await self.fetch(kind, name)
        if existing is not None:
            return existing, False
        try:
            return await self.store.create(kind, self.namespace, manifest), True
        except AlreadyExistsError:
            # Created concurrently; the existing object wins.
            existing = await self.fetch(kind, name)
            return existing or manifest, False

    async def apply(self, kind: ObjectKind, manifest: Dict[str, Any]) -> Dict[str, Any]:
        """Server-side apply a child resource, instrumented through sensors."""
        resource_name = manifest["metadata"]["name"]
        sensor_state = self.sensor.on_resource_sync_start(
            self.name, resource_name, self.namespace, kind.kind
        )
        success, error = True, None
        try:
            return await self.store.apply_patch(
                kind, self.namespace, resource_name, manifest
            )
        except Exception as ex:
            success, error = False, ex
            raise
        finally:
            self.sensor.on_resource_sync_complete(
                self.name,
                resource_name,
                self.namespace,
                kind.kind,
                sensor_state,
                "apply",
                success,
                error,
            )

    async def delete(self, kind: ObjectKind, name: str) -> bool:
        """Delete a child resource in the background.

        Returns False if it was already gone.
        """
        try:
            await self.store.delete(
                kind, self.namespace, name, propagation_policy="Background"
            )
        except NotFoundError:
            return False
        return True
