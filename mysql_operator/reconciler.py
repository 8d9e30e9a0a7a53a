import asyncio
import logging
from logging import Logger
from typing import Any, NamedTuple, Optional

from mysql_operator.resources.cluster import Cluster
from mysql_operator.resources.mysql import MySQL
from mysql_operator.sensors import OperatorSensor
from mysql_operator.types.models import MySQLStatus
from mysql_operator.types.schemas import MySQLStatusSchema
from mysql_operator.types.settings import Settings


class ObjectKey(NamedTuple):
    """Identity of a MySQL resource as delivered by the dispatcher."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class ReconcileResult(NamedTuple):
    requeue: bool = False
    requeue_after: Optional[float] = None
    # The MySQL no longer exists
    deleted: bool = False


class Reconciler:
    """Reconciles a single MySQL resource per call.

    A pass fetches the resource, makes sure each dependent object exists (secret,
    persistent volume claim, deployment, service, in that order) and then reports
    the resource as running. Dependents that already exist are left untouched.

    The first error aborts the pass and is raised to the caller, which owns retries.
    Nothing created earlier in the pass is rolled back, and no status is written.
    """

    def __init__(
        self,
        cluster: Cluster,
        conf: Settings = None,
        sensor: OperatorSensor = None,
        logger: Logger = None,
    ):
        self.cluster = cluster
        self.conf = conf or Settings()
        self.sensor = sensor or OperatorSensor()
        self.logger = logger or logging.getLogger(__name__)

    async def reconcile(
        self,
        key: ObjectKey,
        trigger_source: str = "manual",
        logger: Logger = None,
    ) -> ReconcileResult:
        logger = logger or self.logger
        sensor_state = self.sensor.on_reconcile_start(
            key.name, key.namespace, trigger_source
        )
        success = True
        error = None
        try:
            body = await self.cluster.fetch_mysql(key.namespace, key.name)
            if body is None:
                logger.info(
                    f"{MySQL.KIND} {key} not found. Ignoring since object must be deleted."
                )
                return ReconcileResult(deleted=True)

            mysql = MySQL.from_body(body, conf=self.conf, logger=logger)
            if mysql.uses_default_password:
                logger.warning(
                    f"{MySQL.KIND} {key} has no rootPassword; "
                    f"secret {mysql.secret_name} uses the default password."
                )

            logger.debug(f"Reconciling {MySQL.KIND} {key}.")
            for kind, prepare in mysql.builders():
                await self.ensure(mysql, kind, prepare(), logger=logger)

            await self.report(
                mysql, MySQLStatus.RUNNING, MySQL.RUNNING_MESSAGE, True, logger=logger
            )
            logger.debug(f"Reconciled {MySQL.KIND} {key}: {mysql.info()}")
            return ReconcileResult()
        except asyncio.CancelledError:
            success = False
            logger.info(f"Reconciliation of {MySQL.KIND} {key} was cancelled.")
            raise
        except Exception as e:
            success = False
            error = e
            raise
        finally:
            self.sensor.on_reconcile_complete(
                key.name, key.namespace, sensor_state, success, error
            )

    async def ensure(
        self, mysql: MySQL, kind: str, dependent: Any, logger: Logger = None
    ) -> None:
        """Create `dependent` unless an object with its name already exists."""
        logger = logger or self.logger
        self.cluster.register_ownership(mysql.body, dependent)
        name = dependent.metadata.name
        namespace = dependent.metadata.namespace
        sensor_state = self.sensor.on_resource_sync_start(
            mysql.cluster, name, namespace, kind
        )
        operation = "skip"
        success = True
        error = None
        try:
            existing = await self.cluster.fetch(kind, name, namespace)
            if existing is None:
                operation = "create"
                logger.info(f"Creating a new {kind} {namespace}/{name}")
                await self.cluster.create(kind, namespace, dependent)
        except Exception as e:
            success = False
            error = e
            raise
        finally:
            self.sensor.on_resource_sync_complete(
                mysql.cluster,
                name,
                namespace,
                kind,
                sensor_state,
                operation,
                success,
                error,
            )

    async def report(
        self,
        mysql: MySQL,
        phase: str,
        message: str,
        ready: bool,
        logger: Logger = None,
    ) -> None:
        """Overwrite the status sub-resource of `mysql`."""
        logger = logger or self.logger
        status: MySQLStatus = MySQLStatusSchema().load(
            {"phase": phase, "message": message, "ready": ready}
        )
        logger.debug(f"Updating {MySQL.KIND} status to {phase}.")
        await self.cluster.update_status(mysql.body, status.as_body())
        self.sensor.on_status_update(mysql.cluster, mysql.namespace, phase, ready)
