from typing import Dict


class ResourceLabels:
    MYSQL_DOMAIN: str = "database.mycompany.com/"

    MYSQL_KIND_LABEL = MYSQL_DOMAIN + "kind"

    MYSQL_CLUSTER_LABEL = MYSQL_DOMAIN + "cluster"

    # Pod selector shared by the deployment, its pod template and the service
    APP_LABEL = "app"


class Labels(ResourceLabels):
    KUBERNETES_DOMAIN = "app.kubernetes.io/"

    KUBERNETES_NAME_LABEL = KUBERNETES_DOMAIN + "name"

    KUBERNETES_INSTANCE_LABEL = KUBERNETES_DOMAIN + "instance"

    KUBERNETES_PART_OF_LABEL = KUBERNETES_DOMAIN + "part-of"

    KUBERNETES_MANAGED_BY_LABEL = KUBERNETES_DOMAIN + "managed-by"

    APPLICATION_NAME = "mysql"

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
        self.update({label: value})
        return self

    def include_mysql_kind(self, kind) -> "Labels":
        return self.include(self.MYSQL_KIND_LABEL, kind)

    def include_mysql_cluster(self, cluster: str) -> "Labels":
        return self.include(self.MYSQL_CLUSTER_LABEL, cluster)

    def include_kubernetes_name(self, name: str) -> "Labels":
        return self.include(self.KUBERNETES_NAME_LABEL, name)

    def include_kubernetes_instance(self, instance_name: str) -> "Labels":
        return self.include(
            self.KUBERNETES_INSTANCE_LABEL,
            self.get_or_valid_label_value(instance_name),
        )

    def include_kubernetes_part_of(self, instance_name: str) -> "Labels":
        return self.include(
            self.KUBERNETES_PART_OF_LABEL,
            self.get_or_valid_label_value(f"{self.APPLICATION_NAME}-{instance_name}"),
        )

    def include_kubernetes_managed_by(self, operator_name: str) -> "Labels":
        return self.include(self.KUBERNETES_MANAGED_BY_LABEL, operator_name)

    def get_or_valid_label_value(self, value: str) -> str:
        """Trim a value so it is a valid label value:
        * (([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?
        * 63 characters max
        """
        if not value:
            return ""
        value = value[:63]
        return value.rstrip(".-_")

    def __str__(self):
        return f"Labels<{self._labels}>"

    def __eq__(self, other):
        if not isinstance(other, Labels):
            return NotImplemented
        return self._labels == other._labels

    @classmethod
    def selector_labels(cls, component_name: str) -> "Labels":
        """Labels selecting the database pods of a single MySQL resource."""
        return Labels({cls.APP_LABEL: component_name})

    @classmethod
    def generate_default_labels(
        cls,
        resource_name: str,
        resource_kind: str,
        component_name: str,
        managed_by: str,
    ) -> "Labels":
        labels = Labels()
        return (
            labels.include(cls.APP_LABEL, component_name)
            .include_mysql_kind(resource_kind)
            .include_mysql_cluster(component_name)
            .include_kubernetes_name(cls.APPLICATION_NAME)
            .include_kubernetes_instance(resource_name)
            .include_kubernetes_part_of(resource_name)
            .include_kubernetes_managed_by(managed_by)
        )
