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

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from kubearango.apis import MemberStatus, PlanAction, ServerGroup
from kubearango.deployment.action_context import ActionContext


class Action(ABC):
    """
    One plan entry being executed.

    Instances are created fresh on every tick and keep no state between
    ticks: whatever must survive lives in the plan record or the status.
    """

    def __init__(self, ctx: ActionContext, action: PlanAction):
        self.ctx = ctx
        self.action = action
        self.log = ctx.log

    @abstractmethod
    async def start(self) -> bool:
        """
        Perform the side effects of this action.

        Must tolerate being called again after a crash that happened before
        the start time was recorded.

        Returns:
            True when the action is complete, False when check_progress has
            to be polled on later ticks
        """
        pass

    @abstractmethod
    async def check_progress(self) -> bool:
        """Returns True once the started action has completed"""
        pass

    def member(self) -> Tuple[Optional[MemberStatus], Optional[ServerGroup]]:
        return self.ctx.get_member_status_by_id(self.action.member_id)
