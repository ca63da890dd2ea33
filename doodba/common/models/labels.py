from typing import Dict


class ResourceLabels:
    DOODBA_DOMAIN: str = "doodba.glo.systems/"

    DOODBA_KIND_LABEL = DOODBA_DOMAIN + "kind"

    DOODBA_NAME_LABEL = DOODBA_DOMAIN + "name"

    DOODBA_HOOK_LABEL = DOODBA_DOMAIN + "hook"

    DOODBA_INSTANCE_LABEL = DOODBA_DOMAIN + "instance"


class Labels(ResourceLabels):
    KUBERNETES_DOMAIN = "app.kubernetes.io/"

    KUBERNETES_NAME_LABEL = KUBERNETES_DOMAIN + "name"

    KUBERNETES_INSTANCE_LABEL = KUBERNETES_DOMAIN + "instance"

    KUBERNETES_COMPONENT_LABEL = KUBERNETES_DOMAIN + "component"

    KUBERNETES_PART_OF_LABEL = KUBERNETES_DOMAIN + "part-of"

    KUBERNETES_MANAGED_BY_LABEL = KUBERNETES_DOMAIN + "managed-by"

    APPLICATION_NAME = "doodba"

    MAX_VALUE_LENGTH = 63

    _labels: Dict[str, str]

    def __init__(self, labels: Dict[str, str] = None) -> None:
        self._labels = labels if labels else dict()

    def update(self, labels: Dict[str, str]) -> "Labels":
        self._labels.update(labels.copy())
        return self

    def as_dict(self) -> Dict[str, str]:
        """Return labels as dictionary."""
        return self._labels.copy()

    def include(self, label: str, value: str) -> "Labels":
        self.update({label: self.valid_label_value(value)})
        return self

    def include_doodba_kind(self, kind: str) -> "Labels":
        return self.include(self.DOODBA_KIND_LABEL, kind)

    def include_doodba_name(self, name: str) -> "Labels":
        return self.include(self.DOODBA_NAME_LABEL, name)

    def include_doodba_hook(self, hook: str) -> "Labels":
        return self.include(self.DOODBA_HOOK_LABEL, hook)

    def include_doodba_instance(self, instance: str) -> "Labels":
        return self.include(self.DOODBA_INSTANCE_LABEL, instance)

    def include_kubernetes_name(self, name: str) -> "Labels":
        return self.include(self.KUBERNETES_NAME_LABEL, name)

    def include_kubernetes_instance(self, instance_name: str) -> "Labels":
        return self.include(self.KUBERNETES_INSTANCE_LABEL, instance_name)

    def include_kubernetes_component(self, component: str) -> "Labels":
        return self.include(self.KUBERNETES_COMPONENT_LABEL, component)

    def include_kubernetes_part_of(self, instance_name: str) -> "Labels":
        return self.include(
            self.KUBERNETES_PART_OF_LABEL, f"{self.APPLICATION_NAME}-{instance_name}"
        )

    def include_kubernetes_managed_by(self, operator_name: str) -> "Labels":
        return self.include(self.KUBERNETES_MANAGED_BY_LABEL, operator_name)

    @classmethod
    def valid_label_value(cls, value: str) -> str:
        """Truncate a value so that it is a valid label value:
        * (([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?
        * 63 characters max
        """
        if not value:
            return ""
        return value[: cls.MAX_VALUE_LENGTH].rstrip("-_.")

    def contains(self, other: "Labels"):
        """Returns True if all labels in `other` are contained."""
        return all(
            key in self._labels and self._labels[key] == value
            for key, value in other.as_dict().items()
        )

    def selector(self) -> "Labels":
        """Subset of labels that identifies the owning Doodba."""
        selector_labels = [
            self.DOODBA_KIND_LABEL,
            self.DOODBA_NAME_LABEL,
            self.DOODBA_INSTANCE_LABEL,
        ]
        return Labels(
            {key: self._labels[key] for key in selector_labels if key in self._labels}
        )

    def __str__(self):
        return f"Labels<{self._labels}>"

    @classmethod
    def generate_default_labels(
        cls,
        resource_name: str,
        resource_kind: str,
        component: str,
        managed_by: str,
    ) -> "Labels":
        labels = Labels()
        return (
            labels.include_doodba_kind(resource_kind)
            .include_doodba_name(resource_name)
            .include_kubernetes_name(cls.APPLICATION_NAME)
            .include_kubernetes_instance(resource_name)
            .include_kubernetes_component(component)
            .include_kubernetes_part_of(resource_name)
            .include_kubernetes_managed_by(managed_by)
        )
