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

import logging
from typing import Optional

from kubearango.apis import ArangoDeployment, DeploymentMode, ServerGroup
from kubearango.arangod import ArangodClient, ArangodConnectionFactory, is_no_leader
from kubearango.errors import ConvergenceError, UnsupportedDeploymentModeError
from kubearango.health.predicates import cluster_health_equals_spec
from kubearango.health.waiters import wait_until_cluster_health, wait_until_version_up

logger = logging.getLogger(__name__)

RESILIENT_SINGLE_SERVERS = 2
RESILIENT_SINGLE_AGENTS = 3


async def wait_until_deployment_healthy(
    deployment: ArangoDeployment,
    db_client: ArangodClient,
    connections: ArangodConnectionFactory,
    timeout: Optional[float] = None,
):
    """
    Wait until the running deployment matches its spec.

    Args:
        deployment: Deployment to check, status members are used for
            resilient single deployments
        db_client: Client for the deployment's client service
        connections: Factory for per-member clients
        timeout: Bound of each individual wait

    Raises:
        ConvergenceError: when the deployment did not converge in time
        UnsupportedDeploymentModeError: for an unknown deployment mode
    """
    mode = deployment.spec.get_mode()
    if mode == DeploymentMode.CLUSTER:
        try:
            await wait_until_cluster_health(
                db_client, lambda h: cluster_health_equals_spec(h, deployment.spec), timeout=timeout
            )
        except Exception as e:
            raise ConvergenceError(f"Cluster not running in expected health in time: {e}") from e
    elif mode == DeploymentMode.SINGLE:
        try:
            await wait_until_version_up(db_client, timeout=timeout)
        except Exception as e:
            raise ConvergenceError(f"Single Server not running in time: {e}") from e
    elif mode == DeploymentMode.RESILIENT_SINGLE:
        await _wait_until_resilient_single_healthy(deployment, db_client, connections, timeout)
    else:
        raise UnsupportedDeploymentModeError(mode)


async def _wait_until_resilient_single_healthy(
    deployment: ArangoDeployment,
    db_client: ArangodClient,
    connections: ArangodConnectionFactory,
    timeout: Optional[float],
):
    try:
        await wait_until_version_up(db_client, timeout=timeout)
    except Exception as e:
        raise ConvergenceError(f"Single Server not running in time: {e}") from e

    members = deployment.status.members
    singles = members.single
    agents = members.agents
    if len(singles) != RESILIENT_SINGLE_SERVERS or len(agents) != RESILIENT_SINGLE_AGENTS:
        raise ConvergenceError(f"Wrong number of servers: single {len(singles)} - agents {len(agents)}")

    for agent in agents:
        try:
            agent_client = await connections.server_client(deployment, ServerGroup.AGENTS, agent.id)
        except Exception as e:
            raise ConvergenceError(f"Unable to create connection to: {agent.id}") from e
        async with agent_client:
            try:
                await wait_until_version_up(agent_client, timeout=timeout)
            except Exception as e:
                raise ConvergenceError(f"Version check failed for: {agent.id}") from e

    good_results = 0
    no_leader_results = 0
    for single in singles:
        try:
            single_client = await connections.server_client(deployment, ServerGroup.SINGLE, single.id)
        except Exception as e:
            raise ConvergenceError(f"Unable to create connection to: {single.id}") from e
        async with single_client:
            try:
                await wait_until_version_up(single_client, allow_no_leader=True, timeout=timeout)
                good_results += 1
            except Exception as e:
                if not is_no_leader(e):
                    raise ConvergenceError(f"Version check failed for: {single.id}") from e
                no_leader_results += 1

    logger.debug(f"Resilient single {deployment.name}: good {good_results} - noleader {no_leader_results}")
    if good_results < 1 or no_leader_results > 1:
        raise ConvergenceError(f"Wrong number of results: good {good_results} - noleader {no_leader_results}")
