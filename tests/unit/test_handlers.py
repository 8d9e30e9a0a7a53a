"""Unit tests for kopf handlers driving reconciliation."""

import asyncio
import logging
import kopf
import pytest
from unittest.mock import AsyncMock, Mock
from marshmallow import ValidationError
from mysql_operator.handlers import mysql as handlers
from mysql_operator.reconciler import ObjectKey, Reconciler, ReconcileResult
from mysql_operator.utils.errors import MalformedQuantityError, OwnershipError

from conftest import api_exception

logger = logging.getLogger(__name__)

KEY = ObjectKey("default", "sample.db")


def owner_reference(**overrides):
    ref = {
        "apiVersion": "database.mycompany.com/v1alpha1",
        "kind": "MySQL",
        "name": "sample.db",
        "uid": "uid-1",
        "controller": True,
        "blockOwnerDeletion": True,
    }
    ref.update(overrides)
    return ref


@pytest.fixture(autouse=True)
def clear_locks():
    handlers.reconciliation_locks.clear()
    handlers.pending_passes.clear()
    yield
    handlers.reconciliation_locks.clear()
    handlers.pending_passes.clear()


@pytest.fixture
def memo():
    memo = kopf.Memo()
    memo.reconciler = Mock(spec=Reconciler)
    memo.reconciler.reconcile = AsyncMock(return_value=ReconcileResult())
    return memo


def reconcile(memo, trigger_source="create"):
    return asyncio.run(handlers.reconcile(KEY, memo, logger, trigger_source))


class TestOwnerKey:
    def test_controller_reference(self):
        assert handlers.owner_key([owner_reference()], "default") == KEY

    def test_no_references(self):
        assert handlers.owner_key(None, "default") is None
        assert handlers.owner_key([], "default") is None

    def test_ignores_non_controller_reference(self):
        assert handlers.owner_key([owner_reference(controller=False)], "default") is None

    def test_ignores_other_owners(self):
        refs = [
            owner_reference(kind="ReplicaSet", apiVersion="apps/v1"),
            owner_reference(apiVersion="other.example.com/v1"),
        ]
        assert handlers.owner_key(refs, "default") is None


class TestReconcile:
    def test_success(self, memo):
        result = reconcile(memo, trigger_source="update")
        assert result == ReconcileResult()
        memo.reconciler.reconcile.assert_awaited_once_with(
            KEY, trigger_source="update", logger=logger
        )

    def test_not_initialized(self):
        with pytest.raises(kopf.TemporaryError):
            reconcile(kopf.Memo())

    def test_requeue(self, memo):
        memo.reconciler.reconcile.return_value = ReconcileResult(requeue=True, requeue_after=7)
        with pytest.raises(kopf.TemporaryError) as exc_info:
            reconcile(memo)
        assert exc_info.value.delay == 7

    def test_transient_api_error(self, memo):
        memo.reconciler.reconcile.side_effect = api_exception(503, "Service Unavailable")
        with pytest.raises(kopf.TemporaryError):
            reconcile(memo)

    def test_conflict_is_retried(self, memo):
        memo.reconciler.reconcile.side_effect = api_exception(409, "Conflict", "Conflict")
        with pytest.raises(kopf.TemporaryError):
            reconcile(memo)

    def test_forbidden_is_permanent(self, memo):
        memo.reconciler.reconcile.side_effect = api_exception(403, "Forbidden")
        with pytest.raises(kopf.PermanentError):
            reconcile(memo)

    @pytest.mark.parametrize(
        "error",
        [
            MalformedQuantityError("ten"),
            ValidationError({"version": ["Missing data for required field."]}),
            OwnershipError("owned elsewhere"),
        ],
    )
    def test_invalid_resource_is_permanent(self, memo, error):
        memo.reconciler.reconcile.side_effect = error
        with pytest.raises(kopf.PermanentError):
            reconcile(memo)

    def test_unexpected_error_is_reraised(self, memo):
        memo.reconciler.reconcile.side_effect = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            reconcile(memo)


class TestHandlers:
    def test_create(self, memo):
        asyncio.run(
            handlers.on_create(name="sample.db", namespace="default", memo=memo, logger=logger)
        )
        memo.reconciler.reconcile.assert_awaited_once_with(
            KEY, trigger_source="create", logger=logger
        )

    def test_dependent_event_reconciles_owner(self, memo):
        asyncio.run(
            handlers.on_dependent_event(
                event={"type": "DELETED", "object": {}},
                meta={"name": "sample-db", "ownerReferences": [owner_reference()]},
                namespace="default",
                memo=memo,
                logger=logger,
            )
        )
        memo.reconciler.reconcile.assert_awaited_once_with(
            KEY, trigger_source="dependent", logger=logger
        )

    def test_initial_listing_is_ignored(self, memo):
        asyncio.run(
            handlers.on_dependent_event(
                event={"type": None, "object": {}},
                meta={"name": "sample-db", "ownerReferences": [owner_reference()]},
                namespace="default",
                memo=memo,
                logger=logger,
            )
        )
        memo.reconciler.reconcile.assert_not_awaited()

    def test_unowned_dependent_is_ignored(self, memo):
        asyncio.run(
            handlers.on_dependent_event(
                event={"type": "MODIFIED", "object": {}},
                meta={"name": "stray"},
                namespace="default",
                memo=memo,
                logger=logger,
            )
        )
        memo.reconciler.reconcile.assert_not_awaited()

    def test_delete_forgets_lock(self, memo):
        reconcile(memo)
        assert KEY in handlers.reconciliation_locks
        asyncio.run(handlers.on_delete(name="sample.db", namespace="default", logger=logger))
        assert KEY not in handlers.reconciliation_locks

    def test_gone_mysql_forgets_lock(self, memo):
        memo.reconciler.reconcile.return_value = ReconcileResult(deleted=True)
        asyncio.run(handlers.on_delete(name="sample.db", namespace="default", logger=logger))
        asyncio.run(
            handlers.on_dependent_event(
                event={"type": "DELETED", "object": {}},
                meta={"name": "sample-db", "ownerReferences": [owner_reference()]},
                namespace="default",
                memo=memo,
                logger=logger,
            )
        )
        memo.reconciler.reconcile.assert_awaited_once()
        assert KEY not in handlers.reconciliation_locks
        assert KEY not in handlers.pending_passes

    def test_delete_keeps_lock_held_by_a_pass(self, memo):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_pass(key, **kwargs):
            started.set()
            await release.wait()
            return ReconcileResult()

        memo.reconciler.reconcile.side_effect = slow_pass

        async def scenario():
            first = asyncio.create_task(handlers.reconcile(KEY, memo, logger, "create"))
            await started.wait()
            lock = handlers.reconciliation_locks[KEY]
            second = asyncio.create_task(handlers.reconcile(KEY, memo, logger, "timer"))
            await asyncio.sleep(0)

            await handlers.on_delete(name="sample.db", namespace="default", logger=logger)
            assert handlers.reconciliation_locks[KEY] is lock

            started.clear()
            release.set()
            await asyncio.gather(first, second)
            return lock

        lock = asyncio.run(scenario())
        assert memo.reconciler.reconcile.await_count == 2
        assert handlers.reconciliation_locks[KEY] is lock
        assert KEY not in handlers.pending_passes
