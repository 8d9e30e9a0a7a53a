import asyncio
import kopf
import logging
from logging import Logger
from collections import defaultdict
from typing import Dict, List, Optional
from marshmallow import ValidationError
from kubernetes_asyncio.client import ApiException
from mysql_operator.common.models.labels import Labels
from mysql_operator.reconciler import ObjectKey, Reconciler, ReconcileResult
from mysql_operator.resources import MySQL
from mysql_operator.types.settings import Settings
from mysql_operator.utils.errors import (
    MalformedQuantityError,
    OwnershipError,
    convert_api_exception,
)

KIND = MySQL.KIND

# Dependents created by this operator carry this label
MANAGED_BY = {Labels.KUBERNETES_MANAGED_BY_LABEL: MySQL.OPERATOR_NAME}

# Passes for the same MySQL never overlap
reconciliation_locks: Dict[ObjectKey, asyncio.Lock] = {}
# Passes holding or waiting for each lock
pending_passes: Dict[ObjectKey, int] = defaultdict(int)


class TimerLogFilter(logging.Filter):
    def filter(self, record):
        """Resync timer logs are noisy so we filter them out."""
        return "Timer " not in record.getMessage()


kopf_logger = logging.getLogger("kopf.objects")
kopf_logger.addFilter(TimerLogFilter())


def get_reconciler(memo: kopf.Memo) -> Reconciler:
    """Get the reconciler installed at startup."""
    reconciler = getattr(memo, "reconciler", None)
    if reconciler is None:
        raise kopf.TemporaryError("Operator is not initialized yet.", delay=5)
    return reconciler


def owner_key(owner_references: List[Dict], namespace: str) -> Optional[ObjectKey]:
    """Key of the MySQL resource controlling an object, if any."""
    for ref in owner_references or []:
        if (
            ref.get("controller")
            and ref.get("kind") == KIND
            and ref.get("apiVersion", "").split("/")[0] == MySQL.GROUP_NAME
        ):
            return ObjectKey(namespace, ref["name"])
    return None


def forget(key: ObjectKey) -> None:
    """Drop the lock of a MySQL that is gone, unless a pass still uses it."""
    lock = reconciliation_locks.get(key)
    if lock is None or key in pending_passes or lock.locked():
        return
    del reconciliation_locks[key]


async def reconcile(
    key: ObjectKey, memo: kopf.Memo, logger: Logger, trigger_source: str
) -> ReconcileResult:
    """Run one reconciliation pass for `key` and translate its errors for kopf.

    Errors caused by the resource itself (bad storage size, invalid spec, foreign
    owner) are permanent until the resource changes. API errors are classified by
    status code. Anything else falls through to kopf's own backoff.
    """
    reconciler = get_reconciler(memo)
    lock = reconciliation_locks.setdefault(key, asyncio.Lock())
    pending_passes[key] += 1
    try:
        async with lock:
            result = await reconciler.reconcile(
                key, trigger_source=trigger_source, logger=logger
            )
    except ApiException as ex:
        logger.error(f"Reconciliation of {KIND} {key} failed: {ex.reason}")
        convert_api_exception(ex)
    except (MalformedQuantityError, ValidationError, OwnershipError) as ex:
        logger.error(f"Reconciliation of {KIND} {key} failed: {ex}")
        raise kopf.PermanentError(str(ex)) from ex
    except Exception as ex:
        logger.error(f"Reconciliation of {KIND} {key} failed: {ex}", exc_info=True)
        raise
    finally:
        pending_passes[key] -= 1
        if not pending_passes[key]:
            del pending_passes[key]
    if result.deleted:
        forget(key)
    if result.requeue:
        raise kopf.TemporaryError(
            f"{KIND} {key} requested a requeue.", delay=result.requeue_after or 1
        )
    return result


@kopf.on.resume(kind=KIND)
@kopf.on.create(kind=KIND)
async def on_create(name, namespace, memo: kopf.Memo, logger: Logger, **kwargs):
    """Reconcile MySQL resources as they appear."""
    await reconcile(ObjectKey(namespace, name), memo, logger, trigger_source="create")


@kopf.on.update(kind=KIND, field="spec")
async def on_update(name, namespace, memo: kopf.Memo, logger: Logger, **kwargs):
    """Reconcile MySQL resources after a spec change."""
    await reconcile(ObjectKey(namespace, name), memo, logger, trigger_source="update")


@kopf.timer(
    KIND,
    initial_delay=5.0,
    interval=Settings.resync_interval_seconds,
    backoff=10.0,
)
async def periodic_reconciliation(
    name, namespace, memo: kopf.Memo, logger: Logger, **kwargs
):
    """Full sync."""
    await reconcile(ObjectKey(namespace, name), memo, logger, trigger_source="timer")


@kopf.on.event("apps", "v1", "deployments", labels=MANAGED_BY)
@kopf.on.event("", "v1", "services", labels=MANAGED_BY)
@kopf.on.event("", "v1", "persistentvolumeclaims", labels=MANAGED_BY)
@kopf.on.event("", "v1", "secrets", labels=MANAGED_BY)
async def on_dependent_event(
    event, meta, namespace, memo: kopf.Memo, logger: Logger, **kwargs
):
    """Reconcile the owning MySQL when one of its dependents changes or goes away."""
    # Initial listing is covered by the resume handler
    if event.get("type") is None:
        return
    key = owner_key(meta.get("ownerReferences"), namespace)
    if key is None:
        return
    logger.debug(f"{event['type']} on dependent of {KIND} {key}.")
    await reconcile(key, memo, logger, trigger_source="dependent")


@kopf.on.delete(kind=KIND, optional=True)
async def on_delete(name, namespace, logger: Logger, **kwargs):
    """Forget per-resource state. Dependents are garbage collected by the cluster."""
    forget(ObjectKey(namespace, name))
    logger.info(f"{KIND} {namespace}/{name} deleted.")
