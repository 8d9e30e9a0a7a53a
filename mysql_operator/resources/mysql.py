import logging
from functools import cached_property
from logging import Logger
from typing import Any, Callable, Dict, List, Optional, Tuple
from kubernetes_asyncio.client import (
    V1ObjectMeta,
    V1Secret,
    V1Service,
    V1ServiceSpec,
    V1ServicePort,
    V1Deployment,
    V1DeploymentSpec,
    V1LabelSelector,
    V1PodTemplateSpec,
    V1PodSpec,
    V1Container,
    V1ContainerPort,
    V1EnvVar,
    V1EnvVarSource,
    V1SecretKeySelector,
    V1VolumeMount,
    V1Volume,
    V1PersistentVolumeClaim,
    V1PersistentVolumeClaimSpec,
    V1PersistentVolumeClaimVolumeSource,
    V1ResourceRequirements,
)

from mysql_operator.resources.base import BaseResource, DependentKind
from mysql_operator.common.models.labels import Labels
from mysql_operator.types.settings import Settings
from mysql_operator.types.models import MySQLSpec, MySQLResources
from mysql_operator.types.schemas import MySQLSpecSchema
from mysql_operator.utils.helpers import parse_storage_quantity


class MySQL(BaseResource):
    """MySQL kubernetes resource.

    Computes the shape of the objects a MySQL resource depends on: a secret with the
    root credential, a persistent volume claim, a deployment running the database and
    a service exposing it. Nothing here talks to the cluster, so every `prepare_*`
    method can be called on every reconciliation pass.
    """

    logger: Logger
    conf: Settings

    KIND = "MySQL"
    GROUP_NAME = "database.mycompany.com"
    GROUP_VERSION = "v1alpha1"
    API_VERSION = f"{GROUP_NAME}/{GROUP_VERSION}"
    PLURAL_NAME = "mysqls"

    MYSQL_CONTAINER_NAME = "mysql"
    MYSQL_PORT_NAME = "mysql"
    DATA_VOLUME_NAME = "mysql-data"
    ROOT_PASSWORD_KEY = "root-password"
    ROOT_PASSWORD_ENV = "MYSQL_ROOT_PASSWORD"
    RUNNING_MESSAGE = "MySQL instance is running"

    DEFAULT_REPLICAS = 1
    DEFAULT_PORT = 3306
    DEFAULT_DATA_DIR = "/var/lib/mysql"
    DEFAULT_ACCESS_MODE = "ReadWriteOnce"
    DEFAULT_SERVICE_TYPE = "ClusterIP"
    # Used when spec.rootPassword is empty. It is guessable, see `uses_default_password`.
    DEFAULT_ROOT_PASSWORD = "changeme"

    secret_name: str
    persistent_volume_claim_name: str
    deployment_name: str
    service_name: str

    # CRD spec
    spec: MySQLSpec
    body: Optional[Dict[str, Any]] = None

    def __init__(
        self,
        name: str,
        namespace: str,
        labels: Optional[Dict[str, str]] = None,
    ):
        component_name = MySQLResources.component_name(name)
        _labels = Labels.generate_default_labels(
            name,
            self.KIND,
            component_name,
            self.OPERATOR_NAME,
        )
        _labels.update(labels or {})
        super().__init__(
            cluster=name,
            namespace=namespace,
            component_name=component_name,
            labels=_labels,
        )

    @classmethod
    def from_spec(
        cls,
        name: str,
        namespace: str,
        spec: MySQLSpec,
        conf: Settings = None,
        logger: Logger = None,
    ) -> "MySQL":
        mysql = MySQL(name, namespace)
        mysql.conf = conf or Settings()
        mysql.logger = logger or logging.getLogger(__name__)
        mysql.spec = spec
        mysql.secret_name = MySQLResources.secret_name(name)
        mysql.persistent_volume_claim_name = (
            MySQLResources.persistent_volume_claim_name(name)
        )
        mysql.deployment_name = MySQLResources.deployment_name(name)
        mysql.service_name = MySQLResources.service_name(name)
        return mysql

    @classmethod
    def from_body(
        cls, body: Dict[str, Any], conf: Settings = None, logger: Logger = None
    ) -> "MySQL":
        """Build from a MySQL object as returned by the Kubernetes API."""
        metadata = body.get("metadata", {})
        spec: MySQLSpec = MySQLSpecSchema().load(body.get("spec") or {})
        mysql = cls.from_spec(
            metadata["name"], metadata.get("namespace"), spec, conf=conf, logger=logger
        )
        mysql.body = body
        return mysql

    def builders(self) -> List[Tuple[str, Callable[[], Any]]]:
        """Dependent kinds paired with the method that builds them, in sync order."""
        return [
            (DependentKind.SECRET, self.prepare_secret),
            (DependentKind.PERSISTENT_VOLUME_CLAIM, self.prepare_persistent_volume_claim),
            (DependentKind.DEPLOYMENT, self.prepare_deployment),
            (DependentKind.SERVICE, self.prepare_service),
        ]

    def prepare_metadata(self, name: str) -> V1ObjectMeta:
        return V1ObjectMeta(
            name=name,
            namespace=self.namespace,
            labels=self.labels.as_dict(),
        )

    def prepare_root_password(self) -> str:
        return self.spec.root_password or self.DEFAULT_ROOT_PASSWORD

    def prepare_image(self) -> str:
        """Container image to use. The version is used as the tag without validation."""
        return f"{self.conf.mysql_image_repository}:{self.spec.version}"

    def prepare_secret(self) -> V1Secret:
        """Build secret holding the root credential."""
        secret = V1Secret(
            api_version="v1",
            kind="Secret",
            metadata=self.prepare_metadata(self.secret_name),
            string_data={self.ROOT_PASSWORD_KEY: self.prepare_root_password()},
        )
        return secret

    def prepare_persistent_volume_claim(self) -> V1PersistentVolumeClaim:
        """Build the PVC holding the database files.

        Raises:
            MalformedQuantityError: if spec.storageSize is not a valid quantity.
        """
        parse_storage_quantity(self.spec.storage_size)
        pvc = V1PersistentVolumeClaim(
            api_version="v1",
            kind="PersistentVolumeClaim",
            metadata=self.prepare_metadata(self.persistent_volume_claim_name),
            spec=V1PersistentVolumeClaimSpec(
                access_modes=[self.DEFAULT_ACCESS_MODE],
                resources=V1ResourceRequirements(
                    requests={"storage": self.spec.storage_size}
                ),
            ),
        )
        return pvc

    def prepare_env_vars(self) -> List[V1EnvVar]:
        # The credential is always referenced, never inlined
        return [
            V1EnvVar(
                name=self.ROOT_PASSWORD_ENV,
                value_from=V1EnvVarSource(
                    secret_key_ref=V1SecretKeySelector(
                        name=self.secret_name, key=self.ROOT_PASSWORD_KEY
                    )
                ),
            )
        ]

    def prepare_container_ports(self) -> List[V1ContainerPort]:
        return [
            V1ContainerPort(container_port=self.DEFAULT_PORT, name=self.MYSQL_PORT_NAME)
        ]

    def prepare_volume_mounts(self) -> List[V1VolumeMount]:
        return [
            V1VolumeMount(name=self.DATA_VOLUME_NAME, mount_path=self.DEFAULT_DATA_DIR)
        ]

    def prepare_volumes(self) -> List[V1Volume]:
        return [
            V1Volume(
                name=self.DATA_VOLUME_NAME,
                persistent_volume_claim=V1PersistentVolumeClaimVolumeSource(
                    claim_name=self.persistent_volume_claim_name
                ),
            )
        ]

    def prepare_mysql_container(self) -> V1Container:
        return V1Container(
            name=self.MYSQL_CONTAINER_NAME,
            image=self.prepare_image(),
            ports=self.prepare_container_ports(),
            env=self.prepare_env_vars(),
            volume_mounts=self.prepare_volume_mounts(),
        )

    def prepare_pod_spec(self) -> V1PodSpec:
        return V1PodSpec(
            containers=[self.prepare_mysql_container()],
            volumes=self.prepare_volumes(),
        )

    def prepare_pod_template(self) -> V1PodTemplateSpec:
        """Build pod template. Its labels are exactly the pod selector."""
        return V1PodTemplateSpec(
            metadata=V1ObjectMeta(labels=self.selector_labels.as_dict()),
            spec=self.prepare_pod_spec(),
        )

    def prepare_deployment(self) -> V1Deployment:
        """Build deployment running a single database pod."""
        deployment = V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=self.prepare_metadata(self.deployment_name),
            spec=V1DeploymentSpec(
                replicas=self.DEFAULT_REPLICAS,
                selector=V1LabelSelector(match_labels=self.selector_labels.as_dict()),
                template=self.prepare_pod_template(),
            ),
        )
        return deployment

    def prepare_service(self) -> V1Service:
        """Build cluster-internal service routing to the database pod."""
        service = V1Service(
            api_version="v1",
            kind="Service",
            metadata=self.prepare_metadata(self.service_name),
            spec=V1ServiceSpec(
                selector=self.selector_labels.as_dict(),
                type=self.DEFAULT_SERVICE_TYPE,
                ports=[
                    V1ServicePort(
                        name=self.MYSQL_PORT_NAME,
                        protocol="TCP",
                        port=self.DEFAULT_PORT,
                    )
                ],
            ),
        )
        return service

    def info(self) -> Dict[str, str]:
        return {
            "name": self.cluster,
            "namespace": self.namespace,
            "service": self.service_name,
            "url": MySQLResources.url(self.cluster, self.namespace, self.DEFAULT_PORT),
        }

    @cached_property
    def selector_labels(self) -> Labels:
        return Labels.selector_labels(self.component_name)

    @cached_property
    def uses_default_password(self) -> bool:
        """True when the secret falls back to the well-known default password."""
        return not self.spec.root_password
