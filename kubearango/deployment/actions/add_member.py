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

from kubearango.deployment.actions.base import Action


class AddMemberAction(Action):
    """Adds a member record; the inspector creates its pod and volume"""

    async def start(self) -> bool:
        # Without an explicit id the action id is used so a repeated start finds the same member
        member_id = self.action.member_id or self.action.id
        member, _ = self.ctx.get_member_status_by_id(member_id)
        if member is not None:
            self.log.debug("Member already exists")
            return True
        self.ctx.create_member(self.action.group, member_id)
        return True

    async def check_progress(self) -> bool:
        return True
