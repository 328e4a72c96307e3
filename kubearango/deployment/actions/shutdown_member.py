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

from kubearango.apis import ConditionType, MemberPhase, MemberStatus, ServerGroup
from kubearango.deployment.action_context import ActionContext
from kubearango.deployment.actions.base import Action
from kubearango.errors import ArangoConnectionError

TERMINATED_POD_PHASES = ("Succeeded", "Failed")


async def shutdown_server_gracefully(ctx: ActionContext, member: MemberStatus, group: ServerGroup):
    """Ask the server to shut itself down; an unreachable server is treated as down"""
    try:
        async with ctx.server_client(group, member.id) as server_client:
            await server_client.shutdown(remove_from_cluster=False)
    except ArangoConnectionError as e:
        ctx.log.debug(f"Server not reachable, assuming it is down: {e}")


class ShutdownMemberAction(Action):
    """Stops the server of a member"""

    async def start(self) -> bool:
        member, group = self.member()
        if member is None:
            self.log.debug("Member already removed")
            return True

        if group in (ServerGroup.AGENTS, ServerGroup.DBSERVERS):
            # These keep state that must be flushed before the pod goes away
            await shutdown_server_gracefully(self.ctx, member, group)
        else:
            await self.ctx.delete_pod(member, group)

        self.ctx.set_member_phase(member.id, MemberPhase.SHUTTING_DOWN)
        return False

    async def check_progress(self) -> bool:
        member, group = self.member()
        if member is None:
            return True
        if member.is_condition_true(ConditionType.TERMINATED):
            return True

        pod = await self.ctx.get_pod(member, group)
        if pod is not None and (pod.status is None or pod.status.phase not in TERMINATED_POD_PHASES):
            return False

        self.ctx.set_member_condition(member.id, ConditionType.TERMINATED, True, reason="Shutdown")
        return True
