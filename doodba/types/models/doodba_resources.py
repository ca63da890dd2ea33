from enum import Enum


class Hook(str, Enum):
    """Lifecycle hook run as a one-shot Job."""

    BEFORE_CREATE = "before-create"
    BEFORE_UPDATE = "before-update"


class DoodbaResources:
    """Encapsulates the naming scheme used for the resources which the operator manages
    for a Doodba of the given name."""

    @classmethod
    def job_name(self, name: str, hook: Hook) -> str:
        return f"{name}-{hook.value}"

    @classmethod
    def before_create_job_name(self, name: str) -> str:
        return self.job_name(name, Hook.BEFORE_CREATE)

    @classmethod
    def before_update_job_name(self, name: str) -> str:
        return self.job_name(name, Hook.BEFORE_UPDATE)

    @classmethod
    def config_map_name(self, name: str) -> str:
        return f"{name}-config"

    @classmethod
    def filestore_claim_name(self, name: str) -> str:
        return f"{name}-filestore"

    @classmethod
    def instance_name(self, name: str, instance: str) -> str:
        """Name shared by an instance's Deployment, Service and Ingress."""
        return f"{name}-{instance}"
