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

from kubearango.apis import DeploymentMode, ServerGroup
from kubearango.arangod import ServerStatus
from kubearango.deployment.actions.base import Action
from kubearango.errors import ArangoConnectionError, ArangoResponseError, NoLeaderError


class WaitForMemberUpAction(Action):
    """Waits until the server of a member answers requests"""

    async def start(self) -> bool:
        return False

    async def check_progress(self) -> bool:
        group = self.action.group
        try:
            if group in (ServerGroup.SINGLE, ServerGroup.AGENTS):
                return await self._check_server_version()
            return await self._check_cluster_health()
        except NoLeaderError:
            # A resilient single follower has no leader while an election is running
            return self.ctx.get_mode() == DeploymentMode.RESILIENT_SINGLE
        except (ArangoConnectionError, ArangoResponseError) as e:
            self.log.debug(f"Member not up yet: {e}")
            return False

    async def _check_server_version(self) -> bool:
        async with self.ctx.server_client(self.action.group, self.action.member_id) as server_client:
            await server_client.version()
        return True

    async def _check_cluster_health(self) -> bool:
        async with self.ctx.database_client() as db_client:
            cluster = await db_client.cluster()
            health = await cluster.health()
        server = health.health.get(self.action.member_id)
        if server is None:
            self.log.debug("Member not in cluster health yet")
            return False
        return server.status == ServerStatus.GOOD
