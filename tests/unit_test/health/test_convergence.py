"""
Unit tests for per-mode deployment convergence checks.

Database servers are simulated with an httpx MockTransport keyed by the DNS
names the connection factory derives for the deployment and its members.
"""

import pytest
from fakes import NO_LEADER, version_reply

from kubearango.apis import DeploymentMode, MemberStatus, ServerGroup, new_deployment
from kubearango.errors import ConvergenceError, UnsupportedDeploymentModeError
from kubearango.health import wait_until_deployment_healthy
from kubearango.k8s.names import create_database_client_service_dns_name, create_pod_dns_name

NAME = "demo"
NAMESPACE = "default"
DB_HOST = create_database_client_service_dns_name(NAME, NAMESPACE)


def member_host(group: ServerGroup, member_id: str) -> str:
    return create_pod_dns_name(NAME, NAMESPACE, group, member_id)


def resilient_single(singles=("s1", "s2"), agents=("a1", "a2", "a3")):
    deployment = new_deployment(NAME, NAMESPACE, mode=DeploymentMode.RESILIENT_SINGLE)
    for member_id in singles:
        deployment.status.members.add(MemberStatus(id=member_id), ServerGroup.SINGLE)
    for member_id in agents:
        deployment.status.members.add(MemberStatus(id=member_id), ServerGroup.AGENTS)
    return deployment


@pytest.fixture
def healthy_agents(fake_arangod):
    for member_id in ("a1", "a2", "a3"):
        fake_arangod.on("GET", member_host(ServerGroup.AGENTS, member_id), "/_api/version", version_reply())


class TestResilientSingle:
    """Test suite for resilient single server convergence."""

    @pytest.mark.asyncio
    async def test_one_leader_and_one_follower(self, fake_arangod, connections, healthy_agents):
        deployment = resilient_single()
        fake_arangod.on("GET", DB_HOST, "/_api/version", version_reply())
        fake_arangod.on("GET", member_host(ServerGroup.SINGLE, "s1"), "/_api/version", version_reply())
        fake_arangod.on("GET", member_host(ServerGroup.SINGLE, "s2"), "/_api/version", NO_LEADER)

        async with await connections.database_client(deployment) as db_client:
            await wait_until_deployment_healthy(deployment, db_client, connections, timeout=1.0)

    @pytest.mark.asyncio
    async def test_two_followers_fail(self, fake_arangod, connections, healthy_agents):
        deployment = resilient_single()
        fake_arangod.on("GET", DB_HOST, "/_api/version", version_reply())
        fake_arangod.on("GET", member_host(ServerGroup.SINGLE, "s1"), "/_api/version", NO_LEADER)
        fake_arangod.on("GET", member_host(ServerGroup.SINGLE, "s2"), "/_api/version", NO_LEADER)

        async with await connections.database_client(deployment) as db_client:
            with pytest.raises(ConvergenceError, match="good 0 - noleader 2"):
                await wait_until_deployment_healthy(deployment, db_client, connections, timeout=1.0)

    @pytest.mark.asyncio
    async def test_wrong_member_counts(self, fake_arangod, connections):
        deployment = resilient_single(singles=("s1",))
        fake_arangod.on("GET", DB_HOST, "/_api/version", version_reply())

        async with await connections.database_client(deployment) as db_client:
            with pytest.raises(ConvergenceError, match="Wrong number of servers: single 1 - agents 3"):
                await wait_until_deployment_healthy(deployment, db_client, connections, timeout=1.0)

    @pytest.mark.asyncio
    async def test_unreachable_agent(self, fake_arangod, connections):
        deployment = resilient_single()
        fake_arangod.on("GET", DB_HOST, "/_api/version", version_reply())

        async with await connections.database_client(deployment) as db_client:
            with pytest.raises(ConvergenceError, match="Version check failed for: a1"):
                await wait_until_deployment_healthy(deployment, db_client, connections, timeout=0.1)


class TestOtherModes:
    """Test suite for cluster, single and unsupported modes."""

    @pytest.mark.asyncio
    async def test_cluster_matches_spec(self, fake_arangod, connections):
        deployment = new_deployment(NAME, NAMESPACE, mode=DeploymentMode.CLUSTER)
        servers = {f"AGNT-{i}": {"Role": "Agent", "Status": "GOOD"} for i in range(3)}
        servers.update({f"PRMR-{i}": {"Role": "DBServer", "Status": "GOOD"} for i in range(3)})
        servers.update({f"CRDN-{i}": {"Role": "Coordinator", "Status": "GOOD"} for i in range(3)})
        fake_arangod.on("GET", DB_HOST, "/_admin/server/role", (200, {"role": "COORDINATOR"}))
        fake_arangod.on("GET", DB_HOST, "/_admin/cluster/health", (200, {"ClusterId": "c", "Health": servers}))

        async with await connections.database_client(deployment) as db_client:
            await wait_until_deployment_healthy(deployment, db_client, connections, timeout=1.0)

    @pytest.mark.asyncio
    async def test_cluster_mismatch_is_convergence_error(self, fake_arangod, connections):
        deployment = new_deployment(NAME, NAMESPACE, mode=DeploymentMode.CLUSTER)
        fake_arangod.on("GET", DB_HOST, "/_admin/server/role", (200, {"role": "COORDINATOR"}))
        fake_arangod.on("GET", DB_HOST, "/_admin/cluster/health", (200, {"ClusterId": "c", "Health": {}}))

        async with await connections.database_client(deployment) as db_client:
            with pytest.raises(ConvergenceError, match="Expected 3,3,3 got 0,0,0"):
                await wait_until_deployment_healthy(deployment, db_client, connections, timeout=0.1)

    @pytest.mark.asyncio
    async def test_single_server(self, fake_arangod, connections):
        deployment = new_deployment(NAME, NAMESPACE, mode=DeploymentMode.SINGLE)
        fake_arangod.on("GET", DB_HOST, "/_api/version", version_reply())

        async with await connections.database_client(deployment) as db_client:
            await wait_until_deployment_healthy(deployment, db_client, connections, timeout=1.0)

    @pytest.mark.asyncio
    async def test_unsupported_mode(self, connections):
        deployment = new_deployment(NAME, NAMESPACE)
        deployment.spec.mode = "Bogus"

        async with await connections.database_client(deployment) as db_client:
            with pytest.raises(UnsupportedDeploymentModeError, match="DeploymentMode Bogus is not supported!"):
                await wait_until_deployment_healthy(deployment, db_client, connections)
