import logging
from functools import cached_property
from logging import Logger
from typing import Any, Dict, List, Optional
from marshmallow import ValidationError
from doodba.common.models.annotations import Annotations
from doodba.common.models.labels import Labels
from doodba.reconcile.actions import JobObservation, ReplicaMode
from doodba.resources.base import BaseResource
from doodba.sensors import OperatorSensor
from doodba.store import (
    CONFIG_MAP,
    DEPLOYMENT,
    INGRESS,
    JOB,
    PERSISTENT_VOLUME_CLAIM,
    SERVICE,
    ObjectStore,
)
from doodba.types import crd
from doodba.types.models import DoodbaResources, DoodbaSpec, Hook, Instance
from doodba.types.schemas import DoodbaSpecSchema
from doodba.types.settings import Settings
from doodba.utils.errors import SerializationError
from doodba.utils.helpers import merge_dicts


class Doodba(BaseResource):
    """Doodba kubernetes resource and the children it owns."""

    logger: Logger
    conf: Settings

    KIND = crd.KIND
    GROUP_NAME = crd.GROUP
    GROUP_VERSION = crd.VERSION
    PLURAL_NAME = crd.PLURAL

    ODOO_CONTAINER_NAME = "odoo"
    DEFAULT_DATA_DIR = "/var/lib/odoo"
    CONF_DIR = "/opt/odoo/custom/conf.d"
    FILESTORE_VOLUME_NAME = "filestore"
    CONFIG_VOLUME_NAME = "config"

    spec: DoodbaSpec
    config_map_name: str
    filestore_claim_name: str

    def __init__(
        self,
        name: str,
        namespace: str,
        owner: Dict[str, Any],
        labels: Optional[Dict[str, str]] = None,
    ):
        _labels = Labels.generate_default_labels(
            name, self.KIND, "odoo", self.DOODBA_OPERATOR_NAME
        )
        _labels.update(labels or {})
        super().__init__(name=name, namespace=namespace, labels=_labels, owner=owner)

    @classmethod
    def from_spec(
        self,
        name: str,
        namespace: str,
        spec: DoodbaSpec,
        owner: Dict[str, Any],
        store: ObjectStore,
        conf: Settings = None,
        sensor: OperatorSensor = None,
        logger: Logger = None,
    ) -> "Doodba":
        doodba = Doodba(name, namespace, owner)
        doodba.bind(store, conf, sensor, logger)
        doodba.spec = spec
        doodba.config_map_name = DoodbaResources.config_map_name(name)
        doodba.filestore_claim_name = (
            spec.filestore.existing_claim
            or DoodbaResources.filestore_claim_name(name)
        )
        return doodba

    @classmethod
    def from_body(
        self,
        body: Dict[str, Any],
        store: ObjectStore,
        conf: Settings = None,
        sensor: OperatorSensor = None,
        logger: Logger = None,
    ) -> "Doodba":
        """Build from a Doodba object as returned by the API server."""
        metadata = body["metadata"]
        return self.from_spec(
            metadata["name"],
            metadata["namespace"],
            self.load_spec(body.get("spec") or {}),
            owner=body,
            store=store,
            conf=conf,
            sensor=sensor,
            logger=logger,
        )

    @classmethod
    def from_metadata(
        self,
        body: Dict[str, Any],
        store: ObjectStore,
        conf: Settings = None,
        sensor: OperatorSensor = None,
        logger: Logger = None,
    ) -> "Doodba":
        """Build without loading the spec, which is all cleanup needs."""
        metadata = body["metadata"]
        doodba = Doodba(metadata["name"], metadata["namespace"], body)
        doodba.bind(store, conf, sensor, logger)
        return doodba

    def bind(
        self,
        store: ObjectStore,
        conf: Settings = None,
        sensor: OperatorSensor = None,
        logger: Logger = None,
    ) -> None:
        self.store = store
        self.conf = conf or Settings()
        self.sensor = sensor or OperatorSensor()
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def load_spec(self, spec: Dict[str, Any]) -> DoodbaSpec:
        try:
            return DoodbaSpecSchema().load(spec)
        except ValidationError as ex:
            raise SerializationError(f"Invalid Doodba spec: {ex.messages}") from ex

    # =============================================================================
    # Hook jobs
    # =============================================================================

    def job_name(self, hook: Hook) -> str:
        return DoodbaResources.job_name(self.name, hook)

    def hook_command(self, hook: Hook) -> Optional[str]:
        if hook == Hook.BEFORE_CREATE:
            return self.spec.before_create
        return self.spec.before_update

    async def ensure_job(self, hook: Hook) -> bool:
        """Create the hook Job unless it already exists.

        A Job is never updated in place. Returns True if it was created.
        """
        job, created = await self.get_or_create(JOB, self.prepare_job(hook))
        if created:
            self.logger.info(f"Created {hook.value} job {self.job_name(hook)}")
            self.sensor.on_job_created(self.name, self.namespace, hook.value)
        return created

    async def delete_job(self, hook: Hook) -> bool:
        deleted = await self.delete(JOB, self.job_name(hook))
        if deleted:
            self.logger.info(f"Deleted {hook.value} job {self.job_name(hook)}")
            self.sensor.on_job_deleted(self.name, self.namespace, hook.value)
        return deleted

    async def observe_jobs(self) -> Dict[Hook, Optional[JobObservation]]:
        jobs = {}
        for hook in Hook:
            job = await self.fetch(JOB, self.job_name(hook))
            jobs[hook] = JobObservation.from_manifest(job) if job else None
        return jobs

    async def observe_deployments(self) -> Dict[str, Optional[int]]:
        """Replica count each instance Deployment currently runs, None if missing."""
        deployments = {}
        for instance in self.spec.enabled_instances:
            deployment = await self.fetch(DEPLOYMENT, self.instance_name(instance))
            if deployment is None:
                deployments[instance.name] = None
                continue
            status = deployment.get("status") or {}
            spec = deployment.get("spec") or {}
            # Pods still terminating keep status.replicas above the desired count.
            deployments[instance.name] = max(
                status.get("replicas") or 0, spec.get("replicas") or 0
            )
        return deployments

    # =============================================================================
    # Steady state children
    # =============================================================================

    async def synchronize(self, mode: ReplicaMode = ReplicaMode.STEADY) -> None:
        """Apply every child resource with the replica counts of `mode`."""
        await self.apply(CONFIG_MAP, self.settings_config_map)
        if self.filestore_claim:
            await self.apply(PERSISTENT_VOLUME_CLAIM, self.filestore_claim)
        for instance in self.spec.enabled_instances:
            await self.apply(
                DEPLOYMENT, self.prepare_deployment(instance, self.replicas(instance, mode))
            )
            service = self.prepare_service(instance)
            if service:
                await self.apply(SERVICE, service)
            ingress = self.prepare_ingress(instance)
            if ingress:
                await self.apply(INGRESS, ingress)

    def replicas(self, instance: Instance, mode: ReplicaMode) -> int:
        if mode == ReplicaMode.UPGRADE:
            return instance.upgrade_replicas()
        return instance.replicas

    async def cleanup(self) -> None:
        """Children are garbage collected through their owner references."""
        self.logger.info(f"Doodba {self.namespace}/{self.name} deleted")
        self.sensor.on_cleanup(self.name, self.namespace)

    # =============================================================================
    # Builders
    # =============================================================================

    def instance_name(self, instance: Instance) -> str:
        return DoodbaResources.instance_name(self.name, instance.name)

    def instance_labels(self, instance: Instance) -> Labels:
        return (
            Labels(self.labels.as_dict())
            .include_doodba_instance(instance.name)
            .include_kubernetes_component(instance.name)
        )

    def hook_labels(self, hook: Hook) -> Labels:
        return (
            Labels(self.labels.as_dict())
            .include_doodba_hook(hook.value)
            .include_kubernetes_component(hook.value)
        )

    def prepare_env_dict(self) -> Dict[str, str]:
        """Plain settings shared by every container through the config map."""
        env = self.spec.config.as_envs() if self.spec.config else {}
        if self.spec.database.database:
            env["PGDATABASE"] = self.spec.database.database
        return env

    def prepare_settings_config_map(self) -> Dict[str, Any]:
        data = dict(self.prepare_env_dict())
        for instance in self.spec.enabled_instances:
            if instance.extra_config:
                data[self.extra_config_key(instance)] = instance.extra_config
        return self.prepare_manifest(
            CONFIG_MAP,
            self.prepare_metadata(self.config_map_name),
            data=data,
        )

    def extra_config_key(self, instance: Instance) -> str:
        return f"{instance.name}.conf"

    def prepare_filestore_claim(self) -> Optional[Dict[str, Any]]:
        filestore = self.spec.filestore
        if filestore.existing_claim:
            return None
        return self.prepare_manifest(
            PERSISTENT_VOLUME_CLAIM,
            self.prepare_metadata(
                self.filestore_claim_name, annotations=filestore.annotations
            ),
            spec={
                "accessModes": list(filestore.access_modes),
                "storageClassName": filestore.storage_class_name,
                "resources": {"requests": {"storage": filestore.size}},
            },
        )

    def prepare_env_vars(self) -> List[Dict[str, Any]]:
        env_vars = [
            {
                "name": key,
                "valueFrom": {
                    "configMapKeyRef": {"name": self.config_map_name, "key": key}
                },
            }
            for key in self.prepare_env_dict()
        ]

        # credentials are read from user owned config maps and secrets
        database = self.spec.database
        refs = [
            ("PGHOST", "configMapKeyRef", database.host),
            ("PGPORT", "configMapKeyRef", database.port),
            ("PGUSER", "secretKeyRef", database.username),
            ("PGPASSWORD", "secretKeyRef", database.password),
        ]
        if self.spec.config:
            refs.append(("ADMIN_PASSWORD", "secretKeyRef", self.spec.config.admin_password))
        for name, source, selector in refs:
            if selector is not None:
                env_vars.append(
                    {"name": name, "valueFrom": {source: selector.as_selector()}}
                )

        # restart pods when settings change
        env_vars.append({"name": "CONFIG_HASH", "value": self.config_hash})
        env_vars.extend(self.spec.extra_env)
        return env_vars

    def prepare_volumes(self) -> List[Dict[str, Any]]:
        volumes = [
            {
                "name": self.FILESTORE_VOLUME_NAME,
                "persistentVolumeClaim": {"claimName": self.filestore_claim_name},
            },
            {
                "name": self.CONFIG_VOLUME_NAME,
                "configMap": {"name": self.config_map_name},
            },
        ]
        volumes.extend(self.spec.extra_volumes)
        return volumes

    def prepare_volume_mounts(
        self, instance: Optional[Instance] = None
    ) -> List[Dict[str, Any]]:
        mounts = [
            {"name": self.FILESTORE_VOLUME_NAME, "mountPath": self.DEFAULT_DATA_DIR}
        ]
        if instance is not None and instance.extra_config:
            mounts.append(
                {
                    "name": self.CONFIG_VOLUME_NAME,
                    "mountPath": f"{self.CONF_DIR}/99-{self.extra_config_key(instance)}",
                    "subPath": self.extra_config_key(instance),
                    "readOnly": True,
                }
            )
        mounts.extend(self.spec.extra_volume_mounts)
        return mounts

    def prepare_container(
        self,
        name: str,
        command: Optional[str] = None,
        instance: Optional[Instance] = None,
    ) -> Dict[str, Any]:
        env = self.prepare_env_vars()
        container = {
            "name": name,
            "image": self.spec.image_ref,
            "imagePullPolicy": self.spec.image_pull_policy,
            "env": env,
            "volumeMounts": self.prepare_volume_mounts(instance),
        }
        if command:
            # the image entrypoint prepares the environment, then runs the args
            container["args"] = ["bash", "-c", command]
        if instance is not None:
            env.extend(instance.extra_env)
            container["ports"] = list(instance.ports) or None
            container["securityContext"] = instance.security_context
            if instance.scheduling:
                container["resources"] = instance.scheduling.resources
        return container

    def prepare_job(self, hook: Hook) -> Dict[str, Any]:
        """Build the one-shot Job running a lifecycle hook."""
        command = self.hook_command(hook)
        if not command:
            raise SerializationError(f"No {hook.value} command configured.")
        labels = self.hook_labels(hook)
        return self.prepare_manifest(
            JOB,
            self.prepare_metadata(
                self.job_name(hook),
                labels=labels,
                annotations={Annotations.IMAGE: self.spec.image_ref},
            ),
            spec={
                "backoffLimit": self.conf.job_backoff_limit,
                "ttlSecondsAfterFinished": self.conf.job_ttl_seconds_after_finished,
                "template": {
                    "metadata": {"labels": labels.as_dict()},
                    "spec": {
                        "restartPolicy": "Never",
                        "containers": [
                            self.prepare_container(hook.value, command=command)
                        ],
                        "volumes": self.prepare_volumes(),
                    },
                },
            },
        )

    def prepare_deployment(self, instance: Instance, replicas: int) -> Dict[str, Any]:
        labels = self.instance_labels(instance)
        scheduling = instance.scheduling
        return self.prepare_manifest(
            DEPLOYMENT,
            self.prepare_metadata(self.instance_name(instance), labels=labels),
            spec={
                "replicas": replicas,
                "selector": {"matchLabels": labels.selector().as_dict()},
                "template": {
                    "metadata": {
                        "labels": labels.as_dict(),
                        "annotations": dict(instance.pod_annotations) or None,
                    },
                    "spec": {
                        "containers": [
                            self.prepare_container(
                                self.ODOO_CONTAINER_NAME,
                                command=instance.command,
                                instance=instance,
                            )
                        ],
                        "volumes": self.prepare_volumes(),
                        "securityContext": instance.pod_security_context,
                        "nodeSelector": scheduling.node_selector if scheduling else None,
                        "affinity": scheduling.affinity if scheduling else None,
                    },
                },
            },
        )

    def prepare_service(self, instance: Instance) -> Optional[Dict[str, Any]]:
        if not instance.ports:
            return None
        labels = self.instance_labels(instance)
        ports = []
        for port in instance.ports:
            service_port = {
                "name": port.get("name"),
                "port": port["containerPort"],
                "targetPort": port.get("name") or port["containerPort"],
                "protocol": port.get("protocol", "TCP"),
            }
            ports.append(service_port)
        return self.prepare_manifest(
            SERVICE,
            self.prepare_metadata(self.instance_name(instance), labels=labels),
            spec={
                "type": "ClusterIP",
                "selector": labels.selector().as_dict(),
                "ports": ports,
            },
        )

    def prepare_ingress(self, instance: Instance) -> Optional[Dict[str, Any]]:
        entries = instance.enabled_ingress
        if not entries:
            return None
        service_name = self.instance_name(instance)
        rules = []
        for entry in entries:
            for host in entry.hosts:
                rules.append(
                    {
                        "host": host,
                        "http": {
                            "paths": [
                                {
                                    "path": "/",
                                    "pathType": "Prefix",
                                    "backend": {
                                        "service": {
                                            "name": service_name,
                                            "port": {"number": entry.port},
                                        }
                                    },
                                }
                            ]
                        },
                    }
                )
        annotations = merge_dicts(*[entry.annotations for entry in entries])
        return self.prepare_manifest(
            INGRESS,
            self.prepare_metadata(
                service_name,
                labels=self.instance_labels(instance),
                annotations=annotations,
            ),
            spec={"rules": rules},
        )

    @cached_property
    def config_hash(self) -> str:
        return self.compute_hash(self.settings_config_map["data"])

    @cached_property
    def settings_config_map(self) -> Dict[str, Any]:
        return self.prepare_settings_config_map()

    @cached_property
    def filestore_claim(self) -> Optional[Dict[str, Any]]:
        return self.prepare_filestore_claim()
