# Copyright 2025 ApeCloud, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import asyncio
import logging

from celery import current_app

from kubearango.concurrent_control import create_lock
from kubearango.config import settings
from kubearango.deployment import Deployment, DeploymentDependencies
from kubearango.errors import NotFoundError
from kubearango.store import StatusStore, create_status_store

logger = logging.getLogger(__name__)


def reconcile_lock_key(namespace: str, name: str) -> str:
    return f"kubearango:reconcile:{namespace}/{name}"


async def reconcile_deployment(store: StatusStore, namespace: str, name: str) -> bool:
    """
    Run one bounded tick for a deployment.

    Ticks of the same deployment are serialized through a Redis lock. A tick
    finding the lock taken is skipped; the running one requeues if needed.

    Returns:
        True when the deployment has to be reconciled again soon
    """
    lock = create_lock(
        "redis",
        key=reconcile_lock_key(namespace, name),
        redis_url=settings.redis_url,
        expire_time=settings.reconcile_lock_expire,
        retry_times=0,
    )
    try:
        if not await lock.acquire():
            logger.info(f"Deployment {namespace}/{name} is being reconciled elsewhere, skipping tick")
            return False
        return await _run_tick(store, namespace, name)
    finally:
        await lock.close()


async def _run_tick(store: StatusStore, namespace: str, name: str) -> bool:
    try:
        api_object = await store.get(namespace, name)
    except NotFoundError:
        logger.info(f"Deployment {namespace}/{name} is gone, nothing to reconcile")
        return False

    deployment = Deployment(api_object, DeploymentDependencies(store=store))
    async with asyncio.timeout(settings.reconcile_tick_timeout):
        return await deployment.execute_plan()


async def list_deployment_keys(store: StatusStore):
    return [(d.namespace, d.name) for d in await store.list()]


@current_app.task(bind=True)
def reconcile_deployment_task(self, namespace: str, name: str) -> bool:
    """
    Reconcile one deployment

    Args:
        namespace: Namespace of the deployment
        name: Name of the deployment
    """
    try:
        store = create_status_store(settings.status_store)
        requeue = asyncio.run(reconcile_deployment(store, namespace, name))
    except Exception as e:
        logger.error(f"Reconciliation of deployment {namespace}/{name} failed: {e}", exc_info=True)
        raise

    if requeue:
        logger.debug(f"Requeue deployment {namespace}/{name} in {settings.requeue_delay}s")
        self.apply_async(args=(namespace, name), countdown=settings.requeue_delay)
    return requeue


@current_app.task
def reconcile_all_deployments_task():
    """Periodic task enqueueing a reconciliation for every known deployment"""
    try:
        store = create_status_store(settings.status_store)
        keys = asyncio.run(list_deployment_keys(store))
        for namespace, name in keys:
            reconcile_deployment_task.delay(namespace, name)
        logger.info(f"Enqueued reconciliation of {len(keys)} deployments")
    except Exception as e:
        logger.error(f"Listing deployments for reconciliation failed: {e}", exc_info=True)
        raise
