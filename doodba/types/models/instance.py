from typing import Any, Dict, List, Optional
from doodba.types.base import BaseModel


class InstanceIngress(BaseModel):
    enabled: bool
    hosts: List[str]
    port: int
    annotations: Dict[str, str]


class Scheduling(BaseModel):
    resources: Optional[Dict[str, Any]]
    node_selector: Optional[Dict[str, str]]
    affinity: Optional[Dict[str, Any]]


class Instance(BaseModel):
    """One named deployment of the application (web, queue, cron...)."""

    name: str
    enabled: bool
    replicas: int
    command: Optional[str]
    extra_config: Optional[str]
    extra_env: List[Dict[str, Any]]
    security_context: Optional[Dict[str, Any]]
    pod_security_context: Optional[Dict[str, Any]]
    pod_annotations: Dict[str, str]
    scheduling: Optional[Scheduling]
    scale_during_upgrade: bool
    ports: List[Dict[str, Any]]
    ingress: List[InstanceIngress]

    def upgrade_replicas(self) -> int:
        """Replica count to hold while an upgrade runs."""
        if self.scale_during_upgrade:
            return 0
        return min(self.replicas, 1)

    @property
    def enabled_ingress(self) -> List[InstanceIngress]:
        return [ingress for ingress in self.ingress if ingress.enabled]
