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

from kubearango.apis import ConditionType, MemberPhase, ServerGroup
from kubearango.deployment.actions.base import Action
from kubearango.deployment.actions.shutdown_member import shutdown_server_gracefully


class RotateMemberAction(Action):
    """Replaces the pod of a member, e.g. after an image or config change"""

    async def start(self) -> bool:
        member, group = self.member()
        if member is None:
            self.log.debug("Member already removed")
            return True

        if group in (ServerGroup.AGENTS, ServerGroup.DBSERVERS):
            await shutdown_server_gracefully(self.ctx, member, group)
        await self.ctx.delete_pod(member, group)

        self.ctx.set_member_phase(member.id, MemberPhase.ROTATING)
        return False

    async def check_progress(self) -> bool:
        member, group = self.member()
        if member is None:
            return True

        pod = await self.ctx.get_pod(member, group)
        if pod is not None:
            return False

        # Pod is gone, let the inspector create a fresh one
        self.ctx.set_member_phase(member.id, MemberPhase.NONE)
        self.ctx.remove_member_condition(member.id, ConditionType.READY)
        self.ctx.remove_member_condition(member.id, ConditionType.TERMINATED)
        return True
