import copy
from functools import cached_property
from typing import Any, Dict, Optional
from kubernetes_asyncio.client import (
    ApiException,
    AppsV1Api,
    CoreV1Api,
    CustomObjectsApi,
    V1Deployment,
    V1OwnerReference,
    V1PersistentVolumeClaim,
    V1Secret,
    V1Service,
)
from kubernetes_asyncio.client.api_client import ApiClient

from mysql_operator.resources.base import DependentKind
from mysql_operator.resources.mysql import MySQL
from mysql_operator.types.settings import Settings
from mysql_operator.utils.errors import OwnershipError, not_found_error


class Cluster:
    """Calls the reconciler makes against the control plane.

    Implementations must return `None` from the fetch calls when the object does not
    exist and raise for every other failure.
    """

    async def fetch_mysql(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError()

    async def fetch(self, kind: str, name: str, namespace: str) -> Optional[Any]:
        raise NotImplementedError()

    async def create(self, kind: str, namespace: str, body: Any) -> None:
        raise NotImplementedError()

    async def update_status(
        self, mysql: Dict[str, Any], status: Dict[str, Any]
    ) -> Dict[str, Any]:
        raise NotImplementedError()

    def register_ownership(self, owner: Dict[str, Any], dependent: Any) -> None:
        """Mark `owner` as the controller of `dependent`.

        The control plane garbage collects the dependent once the owner is deleted.
        """
        owner_meta = owner.get("metadata", {})
        owner_uid = owner_meta.get("uid")
        owner_namespace = owner_meta.get("namespace")
        dependent_namespace = dependent.metadata.namespace
        if owner_namespace and dependent_namespace and owner_namespace != dependent_namespace:
            raise OwnershipError(
                f"{owner.get('kind')}/{owner_meta.get('name')} in `{owner_namespace}` "
                f"cannot own {dependent.metadata.name} in `{dependent_namespace}`."
            )
        references = []
        for ref in dependent.metadata.owner_references or []:
            if ref.uid == owner_uid:
                continue
            if ref.controller:
                raise OwnershipError(
                    f"{dependent.metadata.name} is already controlled by {ref.kind}/{ref.name}."
                )
            references.append(ref)
        references.append(
            V1OwnerReference(
                api_version=owner.get("apiVersion"),
                kind=owner.get("kind"),
                name=owner_meta.get("name"),
                uid=owner_uid,
                controller=True,
                block_owner_deletion=True,
            )
        )
        dependent.metadata.owner_references = references


class KubernetesCluster(Cluster):
    """Cluster backed by the Kubernetes API."""

    shared_api_client: ApiClient = None  # Shared across all instances

    def __init__(self, api_client: ApiClient = None, conf: Settings = None):
        self._api_client = api_client
        self.conf = conf or Settings()

    @cached_property
    def api_client(self) -> ApiClient:
        # Use the shared API client if available, otherwise create a new one
        if self._api_client is not None:
            return self._api_client
        if self.shared_api_client is not None:
            return self.shared_api_client
        return ApiClient()

    @cached_property
    def apps_v1_api(self) -> AppsV1Api:
        return AppsV1Api(self.api_client)

    @cached_property
    def core_v1_api(self) -> CoreV1Api:
        return CoreV1Api(self.api_client)

    @cached_property
    def custom_objects_api(self) -> CustomObjectsApi:
        return CustomObjectsApi(self.api_client)

    @property
    def request_timeout(self) -> float:
        return self.conf.api_request_timeout_seconds

    async def fetch_mysql(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        """Fetch actual MySQL in kubernetes."""
        try:
            return await self.custom_objects_api.get_namespaced_custom_object(
                group=MySQL.GROUP_NAME,
                version=MySQL.GROUP_VERSION,
                namespace=namespace,
                plural=MySQL.PLURAL_NAME,
                name=name,
                _request_timeout=self.request_timeout,
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def update_status(
        self, mysql: Dict[str, Any], status: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Replace the status sub-resource.

        The body keeps the resourceVersion it was fetched with, so a concurrent
        write is rejected with a conflict instead of being overwritten. kopf keeps
        its own progress under `status.kopf`, which is carried over.
        """
        body = copy.deepcopy(mysql)
        previous = body.get("status") or {}
        body["status"] = dict(status)
        if "kopf" in previous:
            body["status"]["kopf"] = previous["kopf"]
        metadata = body["metadata"]
        return await self.custom_objects_api.replace_namespaced_custom_object_status(
            group=MySQL.GROUP_NAME,
            version=MySQL.GROUP_VERSION,
            namespace=metadata["namespace"],
            plural=MySQL.PLURAL_NAME,
            name=metadata["name"],
            body=body,
            _request_timeout=self.request_timeout,
        )

    async def fetch(self, kind: str, name: str, namespace: str) -> Optional[Any]:
        fetchers = {
            DependentKind.SECRET: self.fetch_secret,
            DependentKind.PERSISTENT_VOLUME_CLAIM: self.fetch_persistent_volume_claim,
            DependentKind.DEPLOYMENT: self.fetch_deployment,
            DependentKind.SERVICE: self.fetch_service,
        }
        return await fetchers[kind](name, namespace)

    async def create(self, kind: str, namespace: str, body: Any) -> None:
        creators = {
            DependentKind.SECRET: self.create_secret,
            DependentKind.PERSISTENT_VOLUME_CLAIM: self.create_persistent_volume_claim,
            DependentKind.DEPLOYMENT: self.create_deployment,
            DependentKind.SERVICE: self.create_service,
        }
        await creators[kind](namespace, body)

    async def fetch_secret(self, name: str, namespace: str) -> Optional[V1Secret]:
        try:
            return await self.core_v1_api.read_namespaced_secret(
                name=name, namespace=namespace, _request_timeout=self.request_timeout
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_secret(self, namespace: str, secret: V1Secret) -> None:
        await self.core_v1_api.create_namespaced_secret(
            namespace=namespace, body=secret, _request_timeout=self.request_timeout
        )

    async def fetch_persistent_volume_claim(
        self, name: str, namespace: str
    ) -> Optional[V1PersistentVolumeClaim]:
        try:
            return await self.core_v1_api.read_namespaced_persistent_volume_claim(
                name=name, namespace=namespace, _request_timeout=self.request_timeout
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_persistent_volume_claim(
        self, namespace: str, pvc: V1PersistentVolumeClaim
    ) -> None:
        await self.core_v1_api.create_namespaced_persistent_volume_claim(
            namespace=namespace, body=pvc, _request_timeout=self.request_timeout
        )

    async def fetch_deployment(self, name: str, namespace: str) -> Optional[V1Deployment]:
        try:
            return await self.apps_v1_api.read_namespaced_deployment(
                name=name, namespace=namespace, _request_timeout=self.request_timeout
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_deployment(self, namespace: str, deployment: V1Deployment) -> None:
        await self.apps_v1_api.create_namespaced_deployment(
            namespace=namespace, body=deployment, _request_timeout=self.request_timeout
        )

    async def fetch_service(self, name: str, namespace: str) -> Optional[V1Service]:
        """Retrieve the latest state of a service"""
        try:
            return await self.core_v1_api.read_namespaced_service(
                name=name, namespace=namespace, _request_timeout=self.request_timeout
            )
        except ApiException as ex:
            if not_found_error(ex):
                return None
            raise

    async def create_service(self, namespace: str, service: V1Service) -> None:
        await self.core_v1_api.create_namespaced_service(
            namespace=namespace, body=service, _request_timeout=self.request_timeout
        )
