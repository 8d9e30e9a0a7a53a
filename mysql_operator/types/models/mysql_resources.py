from mysql_operator.utils.helpers import canonicalize_name


class MySQLResources:
    """Encapsulates the naming scheme used by resources which the operator manages."""

    @classmethod
    def component_name(self, cluster_name: str):
        return canonicalize_name(cluster_name)

    @classmethod
    def secret_name(self, cluster_name: str):
        return f"{self.component_name(cluster_name)}-secret"

    @classmethod
    def persistent_volume_claim_name(self, cluster_name: str):
        return f"{self.component_name(cluster_name)}-pvc"

    @classmethod
    def deployment_name(self, cluster_name: str):
        return self.component_name(cluster_name)

    @classmethod
    def service_name(self, cluster_name: str):
        return f"{self.component_name(cluster_name)}-service"

    @classmethod
    def qualified_service_name(self, cluster_name: str, namespace: str):
        return f"{self.service_name(cluster_name)}.{namespace}.svc"

    @classmethod
    def url(self, cluster_name: str, namespace: str, port: int):
        return f"mysql://{self.qualified_service_name(cluster_name, namespace)}:{port}"
