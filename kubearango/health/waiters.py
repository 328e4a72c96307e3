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

"""
Blocking waiters used to verify deployments.

Every waiter polls through async_retry and is bounded by a timeout that
defaults to settings.deployment_ready_timeout.
"""

import asyncio
import logging
from typing import Callable, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from kubearango.apis import ArangoDeployment, DeploymentSpec
from kubearango.arangod import ArangodClient, ClusterHealth, VersionInfo, is_no_leader
from kubearango.config import settings
from kubearango.errors import ConflictError, KubeArangoError, NotFoundError
from kubearango.health.predicates import VersionPredicate
from kubearango.k8s import client as k8s
from kubearango.store import StatusStore
from kubearango.utils.retry import async_retry

logger = logging.getLogger(__name__)


def _timeout(timeout: Optional[float]) -> float:
    return settings.deployment_ready_timeout if timeout is None else timeout


async def wait_until_deployment(
    store: StatusStore,
    namespace: str,
    name: str,
    predicate: Optional[Callable[[ArangoDeployment], None]] = None,
    timeout: Optional[float] = None,
) -> ArangoDeployment:
    """Wait until the deployment exists and satisfies the predicate"""

    async def op() -> ArangoDeployment:
        deployment = await store.get(namespace, name)
        if predicate is not None:
            predicate(deployment)
        return deployment

    return await async_retry(op, _timeout(timeout))


async def wait_until_secret(
    core: client.CoreV1Api,
    name: str,
    namespace: str,
    predicate: Optional[Callable[[client.V1Secret], None]] = None,
    timeout: Optional[float] = None,
) -> client.V1Secret:
    """Wait until the secret exists and satisfies the predicate"""

    async def op() -> client.V1Secret:
        secret = await asyncio.to_thread(core.read_namespaced_secret, name, namespace)
        if predicate is not None:
            predicate(secret)
        return secret

    return await async_retry(op, _timeout(timeout))


async def wait_until_secret_not_found(
    core: client.CoreV1Api, name: str, namespace: str, timeout: Optional[float] = None
):
    """Wait until the secret is gone"""

    async def op():
        try:
            await asyncio.to_thread(core.read_namespaced_secret, name, namespace)
        except ApiException as e:
            if k8s.is_not_found(e):
                return
            raise
        raise KubeArangoError(f"Secret {name} still there")

    await async_retry(op, _timeout(timeout))


async def wait_until_cluster_health(
    db_client: ArangodClient,
    predicate: Optional[Callable[[ClusterHealth], None]] = None,
    timeout: Optional[float] = None,
) -> ClusterHealth:
    """Wait until the cluster health report satisfies the predicate"""

    async def op() -> ClusterHealth:
        cluster = await db_client.cluster()
        health = await cluster.health()
        if predicate is not None:
            predicate(health)
        return health

    return await async_retry(op, _timeout(timeout))


async def wait_until_version_up(
    db_client: ArangodClient,
    predicate: Optional[VersionPredicate] = None,
    allow_no_leader: bool = False,
    timeout: Optional[float] = None,
) -> VersionInfo:
    """
    Wait until the server answers a version request without error.

    With allow_no_leader a "no leader" answer ends the wait like a success,
    but the NoLeaderError is raised afterwards so the caller can count it.
    The predicate runs once on the final VersionInfo.
    """
    no_leader_err = None

    async def op() -> Optional[VersionInfo]:
        nonlocal no_leader_err
        try:
            return await db_client.version()
        except Exception as e:
            if allow_no_leader and is_no_leader(e):
                no_leader_err = e
                return None
            raise

    info = await async_retry(op, _timeout(timeout))

    if no_leader_err is not None:
        raise no_leader_err

    if predicate is not None:
        predicate(info)
    return info


@retry(
    stop=stop_after_attempt(settings.status_conflict_retries),
    retry=retry_if_exception_type(ConflictError),
    reraise=True,
)
async def update_deployment_spec(
    store: StatusStore, namespace: str, name: str, update: Callable[[DeploymentSpec], None]
) -> ArangoDeployment:
    """Read, modify and write a deployment spec, retrying on conflicts"""
    current = await store.get(namespace, name)
    update(current.spec)
    return await store.update_spec(current)


async def remove_deployment(store: StatusStore, namespace: str, name: str):
    """Remove a deployment; an already absent one counts as removed"""
    try:
        await store.delete(namespace, name)
    except NotFoundError:
        logger.debug(f"Deployment {namespace}/{name} already gone")


async def remove_secret(core: client.CoreV1Api, name: str, namespace: str):
    """Remove a secret; an already absent one counts as removed"""
    try:
        await asyncio.to_thread(core.delete_namespaced_secret, name, namespace)
    except ApiException as e:
        if not k8s.is_not_found(e):
            raise
        logger.debug(f"Secret {namespace}/{name} already gone")
