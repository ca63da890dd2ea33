import logging
from typing import Any, Callable, Dict, List, Optional
from kubernetes_asyncio.client import (
    ApiClient,
    ApiException,
    AppsV1Api,
    BatchV1Api,
    CoreV1Api,
    CustomObjectsApi,
    NetworkingV1Api,
)
from doodba.store.base import (
    CONFIG_MAP,
    DEPLOYMENT,
    INGRESS,
    JOB,
    JSON,
    PERSISTENT_VOLUME_CLAIM,
    SERVICE,
    ObjectKind,
    ObjectStore,
)
from doodba.utils.errors import (
    DoodbaError,
    NotFoundError,
    ResourceNotRegisteredError,
    SerializationError,
    convert_api_exception,
)

FIELD_MANAGER = "doodba"
APPLY_PATCH = "application/apply-patch+yaml"
JSON_PATCH = "application/json-patch+json"

logger = logging.getLogger(__name__)


class KubernetesObjectStore(ObjectStore):
    """Object store backed by the Kubernetes API server."""

    def __init__(self, api_client: ApiClient, field_manager: str = FIELD_MANAGER):
        self.api_client = api_client
        self.field_manager = field_manager
        self.custom_objects_api = CustomObjectsApi(api_client)
        # Built-in kinds go through their typed API; anything else is a custom object.
        self._typed = {
            JOB: (BatchV1Api(api_client), "job"),
            DEPLOYMENT: (AppsV1Api(api_client), "deployment"),
            SERVICE: (CoreV1Api(api_client), "service"),
            CONFIG_MAP: (CoreV1Api(api_client), "config_map"),
            PERSISTENT_VOLUME_CLAIM: (
                CoreV1Api(api_client),
                "persistent_volume_claim",
            ),
            INGRESS: (NetworkingV1Api(api_client), "ingress"),
        }

    def _method(self, kind: ObjectKind, verb: str) -> Optional[Callable]:
        if kind not in self._typed:
            return None
        api, suffix = self._typed[kind]
        return getattr(api, f"{verb}_namespaced_{suffix}")

    def _custom(self, kind: ObjectKind) -> Dict[str, str]:
        return {"group": kind.group, "version": kind.version, "plural": kind.plural}

    def _to_dict(self, obj: Any) -> JSON:
        try:
            return self.api_client.sanitize_for_serialization(obj)
        except (TypeError, ValueError) as ex:
            raise SerializationError(f"Cannot serialize {type(obj)}: {ex}") from ex

    def _convert(self, kind: ObjectKind, ex: ApiException) -> DoodbaError:
        error = convert_api_exception(ex)
        if isinstance(error, ResourceNotRegisteredError):
            error.kind = kind.kind
        return error

    async def _call(self, kind: ObjectKind, func: Callable, *args, **kwargs) -> Any:
        try:
            return await func(*args, **kwargs)
        except ApiException as ex:
            raise self._convert(kind, ex) from ex

    async def get(self, kind: ObjectKind, namespace: str, name: str) -> Optional[JSON]:
        method = self._method(kind, "read")
        try:
            if method:
                obj = await method(name=name, namespace=namespace)
            else:
                obj = await self.custom_objects_api.get_namespaced_custom_object(
                    namespace=namespace, name=name, **self._custom(kind)
                )
        except ApiException as ex:
            error = self._convert(kind, ex)
            if isinstance(error, NotFoundError):
                return None
            raise error from ex
        return self._to_dict(obj)

    async def list(
        self,
        kind: ObjectKind,
        namespace: str = None,
        label_selector: str = None,
        limit: int = None,
    ) -> List[JSON]:
        kwargs = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        if limit:
            kwargs["limit"] = limit
        if kind in self._typed:
            if namespace is None:
                api, suffix = self._typed[kind]
                method = getattr(api, f"list_{suffix}_for_all_namespaces")
                result = await self._call(kind, method, **kwargs)
            else:
                method = self._method(kind, "list")
                result = await self._call(kind, method, namespace=namespace, **kwargs)
            return self._to_dict(result).get("items", [])
        if namespace is None:
            result = await self._call(
                kind,
                self.custom_objects_api.list_cluster_custom_object,
                **self._custom(kind),
                **kwargs,
            )
        else:
            result = await self._call(
                kind,
                self.custom_objects_api.list_namespaced_custom_object,
                namespace=namespace,
                **self._custom(kind),
                **kwargs,
            )
        return result.get("items", [])

    async def create(self, kind: ObjectKind, namespace: str, body: JSON) -> JSON:
        method = self._method(kind, "create")
        if method:
            obj = await self._call(kind, method, namespace=namespace, body=body)
        else:
            obj = await self._call(
                kind,
                self.custom_objects_api.create_namespaced_custom_object,
                namespace=namespace,
                body=body,
                **self._custom(kind),
            )
        return self._to_dict(obj)

    async def apply_patch(
        self, kind: ObjectKind, namespace: str, name: str, body: JSON
    ) -> JSON:
        logger.debug(f"Applying {kind.kind} {namespace}/{name}")
        apply_options = dict(
            field_manager=self.field_manager,
            force=True,
            _content_type=APPLY_PATCH,
        )
        method = self._method(kind, "patch")
        if method:
            obj = await self._call(
                kind, method, name=name, namespace=namespace, body=body, **apply_options
            )
        else:
            obj = await self._call(
                kind,
                self.custom_objects_api.patch_namespaced_custom_object,
                namespace=namespace,
                name=name,
                body=body,
                **self._custom(kind),
                **apply_options,
            )
        return self._to_dict(obj)

    async def apply_status_patch(
        self, kind: ObjectKind, namespace: str, name: str, status: JSON
    ) -> JSON:
        body = {
            "apiVersion": kind.api_version,
            "kind": kind.kind,
            "metadata": {"name": name, "namespace": namespace},
            "status": status,
        }
        apply_options = dict(
            field_manager=self.field_manager,
            force=True,
            _content_type=APPLY_PATCH,
        )
        if kind in self._typed:
            api, suffix = self._typed[kind]
            method = getattr(api, f"patch_namespaced_{suffix}_status")
            obj = await self._call(
                kind, method, name=name, namespace=namespace, body=body, **apply_options
            )
        else:
            obj = await self._call(
                kind,
                self.custom_objects_api.patch_namespaced_custom_object_status,
                namespace=namespace,
                name=name,
                body=body,
                **self._custom(kind),
                **apply_options,
            )
        return self._to_dict(obj)

    async def json_patch(
        self, kind: ObjectKind, namespace: str, name: str, operations: List[JSON]
    ) -> JSON:
        method = self._method(kind, "patch")
        if method:
            obj = await self._call(
                kind,
                method,
                name=name,
                namespace=namespace,
                body=operations,
                _content_type=JSON_PATCH,
            )
        else:
            obj = await self._call(
                kind,
                self.custom_objects_api.patch_namespaced_custom_object,
                namespace=namespace,
                name=name,
                body=operations,
                _content_type=JSON_PATCH,
                **self._custom(kind),
            )
        return self._to_dict(obj)

    async def delete(
        self,
        kind: ObjectKind,
        namespace: str,
        name: str,
        propagation_policy: str = "Background",
    ) -> None:
        method = self._method(kind, "delete")
        if method:
            await self._call(
                kind,
                method,
                name=name,
                namespace=namespace,
                propagation_policy=propagation_policy,
            )
        else:
            await self._call(
                kind,
                self.custom_objects_api.delete_namespaced_custom_object,
                namespace=namespace,
                name=name,
                propagation_policy=propagation_policy,
                **self._custom(kind),
            )
