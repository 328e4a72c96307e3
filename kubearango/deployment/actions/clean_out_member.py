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


class CleanOutMemberAction(Action):
    """Moves all shards away from a dbserver before it is removed"""

    async def start(self) -> bool:
        member, group = self.member()
        if member is None:
            self.log.debug("Member already removed")
            return True
        if group != ServerGroup.DBSERVERS:
            self.log.debug("Only dbservers hold data, nothing to clean out")
            return True
        if member.phase == MemberPhase.CLEAN_OUT:
            return False

        async with self.ctx.database_client() as db_client:
            cluster = await db_client.cluster()
            await cluster.clean_out_server(member.id)

        self.ctx.set_member_phase(member.id, MemberPhase.CLEAN_OUT)
        self.log.info("Clean out started")
        return False

    async def check_progress(self) -> bool:
        member, _ = self.member()
        if member is None:
            return True

        async with self.ctx.database_client() as db_client:
            cluster = await db_client.cluster()
            cleaned_out = await cluster.is_cleaned_out(member.id)
        if not cleaned_out:
            return False

        self.ctx.set_member_condition(member.id, ConditionType.CLEANED_OUT, True)
        self.log.info("Member is cleaned out")
        return True
