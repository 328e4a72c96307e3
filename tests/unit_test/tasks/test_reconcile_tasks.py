"""
Unit tests for the Celery reconcile tasks.

Tasks are called directly; the status store factory and the re-enqueue
calls are patched. Tick locks go to an in-memory Redis shared by the test.
"""

import asyncio
from unittest.mock import patch

import pytest
from fakes import InMemoryStatusStore

from kubearango.apis import ActionType, PlanAction, ServerGroup, new_deployment
from kubearango.config import settings
from kubearango.deployment.actions import ShutdownMemberAction
from kubearango.errors import UnknownActionTypeError
from kubearango.tasks.reconcile_tasks import (
    reconcile_all_deployments_task,
    reconcile_deployment,
    reconcile_deployment_task,
    reconcile_lock_key,
)


def store_with(*plan) -> InMemoryStatusStore:
    store = InMemoryStatusStore()
    deployment = new_deployment("demo")
    deployment.status.plan.extend(plan)
    store.objects[("default", "demo")] = deployment
    return store


class TestReconcileDeploymentTask:
    """Test suite for the per-deployment reconcile task."""

    def test_finished_plan_is_not_requeued(self):
        store = store_with(PlanAction.new(ActionType.ADD_MEMBER, ServerGroup.AGENTS, "a1"))
        with patch("kubearango.tasks.reconcile_tasks.create_status_store", return_value=store), patch.object(
            reconcile_deployment_task, "apply_async"
        ) as apply_async:
            assert reconcile_deployment_task("default", "demo") is False

        apply_async.assert_not_called()
        assert store.objects[("default", "demo")].status.members.contains_id("a1")

    def test_pending_action_requeues(self):
        store = store_with(PlanAction.new(ActionType.WAIT_FOR_MEMBER_UP, ServerGroup.AGENTS, "a1"))
        with patch("kubearango.tasks.reconcile_tasks.create_status_store", return_value=store), patch.object(
            reconcile_deployment_task, "apply_async"
        ) as apply_async:
            assert reconcile_deployment_task("default", "demo") is True

        apply_async.assert_called_once_with(args=("default", "demo"), countdown=settings.requeue_delay)

    def test_failures_are_raised(self):
        store = store_with(PlanAction(type="ResizeDisk", group=ServerGroup.AGENTS))
        with patch("kubearango.tasks.reconcile_tasks.create_status_store", return_value=store), patch.object(
            reconcile_deployment_task, "apply_async"
        ) as apply_async:
            with pytest.raises(UnknownActionTypeError):
                reconcile_deployment_task("default", "demo")
        apply_async.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_deployment(self):
        assert await reconcile_deployment(InMemoryStatusStore(), "default", "gone") is False


class TestReconcileAllDeploymentsTask:
    """Test suite for the periodic sweep."""

    def test_enqueues_every_deployment(self):
        store = store_with()
        other = new_deployment("other", "ns2")
        store.objects[("ns2", "other")] = other
        with patch("kubearango.tasks.reconcile_tasks.create_status_store", return_value=store), patch.object(
            reconcile_deployment_task, "delay"
        ) as delay:
            reconcile_all_deployments_task()

        assert sorted(call.args for call in delay.call_args_list) == [("default", "demo"), ("ns2", "other")]


class TestTickSerialization:
    """Test suite for the per-deployment tick lock."""

    @pytest.mark.asyncio
    async def test_concurrent_ticks_start_the_head_action_once(self, fake_redis):
        store = store_with(PlanAction.new(ActionType.SHUTDOWN_MEMBER, ServerGroup.COORDINATORS, "c1"))
        starts = []

        async def slow_start(action):
            starts.append(action.action.member_id)
            await asyncio.sleep(0.05)
            return False

        with patch.object(ShutdownMemberAction, "start", slow_start):
            results = await asyncio.gather(
                reconcile_deployment(store, "default", "demo"),
                reconcile_deployment(store, "default", "demo"),
            )

        assert starts == ["c1"]
        # The tick that ran asks for a requeue, the skipped one does not
        assert sorted(results) == [False, True]
        assert store.status_writes == 1
        assert fake_redis.data == {}

    @pytest.mark.asyncio
    async def test_tick_is_skipped_while_lock_is_held(self, fake_redis):
        store = store_with(PlanAction.new(ActionType.ADD_MEMBER, ServerGroup.AGENTS, "a1"))
        key = reconcile_lock_key("default", "demo")
        fake_redis.data[key] = "other-worker"

        assert await reconcile_deployment(store, "default", "demo") is False

        assert store.status_writes == 0
        assert fake_redis.data == {key: "other-worker"}

    @pytest.mark.asyncio
    async def test_lock_is_released_when_tick_fails(self, fake_redis):
        store = store_with(PlanAction(type="ResizeDisk", group=ServerGroup.AGENTS))

        with pytest.raises(UnknownActionTypeError):
            await reconcile_deployment(store, "default", "demo")
        assert fake_redis.data == {}

    @pytest.mark.asyncio
    async def test_other_deployments_are_not_blocked(self, fake_redis):
        store = store_with(PlanAction.new(ActionType.ADD_MEMBER, ServerGroup.AGENTS, "a1"))
        fake_redis.data[reconcile_lock_key("ns2", "other")] = "other-worker"

        assert await reconcile_deployment(store, "default", "demo") is False
        assert store.objects[("default", "demo")].status.members.contains_id("a1")
