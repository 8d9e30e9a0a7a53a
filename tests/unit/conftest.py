"""Shared fixtures for unit tests."""

import copy
import json
import pytest
from typing import Any, Dict, List, Optional, Tuple
from kubernetes_asyncio.client import ApiException
from mysql_operator.resources import Cluster, MySQL
from mysql_operator.types.settings import Settings


def api_exception(status: int, reason: str, body_reason: str = None) -> ApiException:
    """Build an ApiException the way the client raises it for a failed call."""
    ex = ApiException(status=status, reason=reason)
    if body_reason:
        ex.body = json.dumps(
            {"kind": "Status", "reason": body_reason, "message": f"{reason} ({status})"}
        )
    return ex


def mysql_body(
    name: str = "sample.db",
    namespace: str = "default",
    spec: Dict[str, Any] = None,
    uid: str = "0f2c1f0e-6d1b-4a8c-9b53-3a0f6f3e2a11",
) -> Dict[str, Any]:
    if spec is None:
        spec = {"version": "8.0", "storageSize": "10Gi"}
    return {
        "apiVersion": MySQL.API_VERSION,
        "kind": MySQL.KIND,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": uid,
            "resourceVersion": "1",
        },
        "spec": spec,
    }


class FakeCluster(Cluster):
    """In-memory cluster recording every call made by the reconciler.

    Failures are injected per (operation, kind) through `fail`, where the kind of
    MySQL calls is `MySQL`.
    """

    def __init__(self):
        self.mysqls: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.objects: Dict[Tuple[str, str, str], Any] = {}
        self.calls: List[Tuple[str, ...]] = []
        self.failures: Dict[Tuple[str, str], Exception] = {}

    def add_mysql(self, body: Dict[str, Any]) -> Dict[str, Any]:
        metadata = body["metadata"]
        self.mysqls[(metadata["namespace"], metadata["name"])] = body
        return body

    def fail(self, operation: str, kind: str, error: Exception) -> None:
        self.failures[(operation, kind)] = error

    def status_of(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        return self.mysqls[(namespace, name)].get("status")

    def created(self) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[0] == "create"]

    def fetched(self) -> List[Tuple[str, ...]]:
        return [call for call in self.calls if call[0] == "fetch"]

    def _maybe_fail(self, operation: str, kind: str) -> None:
        error = self.failures.get((operation, kind))
        if error is not None:
            raise error

    async def fetch_mysql(self, namespace: str, name: str) -> Optional[Dict[str, Any]]:
        self.calls.append(("fetch_mysql", MySQL.KIND, f"{namespace}/{name}"))
        self._maybe_fail("fetch_mysql", MySQL.KIND)
        body = self.mysqls.get((namespace, name))
        return copy.deepcopy(body) if body is not None else None

    async def fetch(self, kind: str, name: str, namespace: str) -> Optional[Any]:
        self.calls.append(("fetch", kind, f"{namespace}/{name}"))
        self._maybe_fail("fetch", kind)
        return self.objects.get((kind, namespace, name))

    async def create(self, kind: str, namespace: str, body: Any) -> None:
        name = body.metadata.name
        self.calls.append(("create", kind, f"{namespace}/{name}"))
        self._maybe_fail("create", kind)
        if (kind, namespace, name) in self.objects:
            raise api_exception(409, "Conflict", "AlreadyExists")
        self.objects[(kind, namespace, name)] = body

    async def update_status(
        self, mysql: Dict[str, Any], status: Dict[str, Any]
    ) -> Dict[str, Any]:
        metadata = mysql["metadata"]
        self.calls.append(
            ("update_status", MySQL.KIND, f"{metadata['namespace']}/{metadata['name']}")
        )
        self._maybe_fail("update_status", MySQL.KIND)
        stored = self.mysqls[(metadata["namespace"], metadata["name"])]
        if stored["metadata"]["resourceVersion"] != metadata["resourceVersion"]:
            raise api_exception(409, "Conflict", "Conflict")
        stored["status"] = dict(status)
        stored["metadata"]["resourceVersion"] = str(
            int(stored["metadata"]["resourceVersion"]) + 1
        )
        return copy.deepcopy(stored)


@pytest.fixture
def conf():
    return Settings()


@pytest.fixture
def cluster():
    return FakeCluster()
