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

from kubearango.apis import ServerGroup
from kubearango.deployment.actions.base import Action
from kubearango.errors import ArangoResponseError


class RemoveMemberAction(Action):
    """Removes a member from the cluster, deletes its pod and volume and drops it from the status"""

    async def start(self) -> bool:
        member, group = self.member()
        if member is None:
            self.log.debug("Member already removed")
            return True

        if group == ServerGroup.DBSERVERS:
            try:
                async with self.ctx.database_client() as db_client:
                    cluster = await db_client.cluster()
                    await cluster.remove_server(member.id)
            except ArangoResponseError as e:
                if e.status_code != 404:
                    raise
                self.log.debug("Server already unknown to the cluster")

        await self.ctx.delete_pod(member, group)
        await self.ctx.delete_pvc(member, group)
        self.ctx.remove_member_by_id(member.id)
        return True

    async def check_progress(self) -> bool:
        return True
