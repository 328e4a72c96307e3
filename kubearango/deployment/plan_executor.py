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
from datetime import datetime
from typing import Callable

from kubearango.apis import DeploymentStatus, PlanAction, utc_now
from kubearango.deployment.action_context import ActionContext
from kubearango.deployment.actions import Action, create_action
from kubearango.deployment.deployment import Deployment, StatusMutation
from kubearango.errors import ActionError, InvariantViolation
from kubearango.utils.log import FieldsAdapter, with_fields

logger = logging.getLogger(__name__)

ActionFactory = Callable[[ActionContext, PlanAction], Action]


def remove_plan_action(action_id: str) -> StatusMutation:
    def mutation(status: DeploymentStatus):
        status.plan = [a for a in status.plan if a.id != action_id]

    return mutation


def set_plan_action_start_time(action_id: str, start_time: datetime) -> StatusMutation:
    def mutation(status: DeploymentStatus):
        for a in status.plan:
            if a.id == action_id and a.start_time is None:
                a.start_time = start_time

    return mutation


class PlanExecutor:
    """Drives the plan of one deployment, one action at a time"""

    def __init__(self, deployment: Deployment, action_factory: ActionFactory = create_action):
        self.deployment = deployment
        self._create_action = action_factory

    def _action_logger(self, plan_action: PlanAction) -> FieldsAdapter:
        action_type = getattr(plan_action.type, "value", plan_action.type)
        return with_fields(
            logger,
            **{
                "deployment": self.deployment.name,
                "plan-len": len(self.deployment.status.plan),
                "action-id": plan_action.id,
                "action-type": action_type,
                "group": plan_action.group.value,
                "member-id": plan_action.member_id,
            },
        )

    def _action_error(self, phase: str, plan_action: PlanAction, cause: Exception) -> ActionError:
        return ActionError(
            phase,
            plan_action.id,
            getattr(plan_action.type, "value", plan_action.type),
            plan_action.group.value,
            plan_action.member_id,
            cause,
        )

    async def execute_plan(self) -> bool:
        """
        Execute the plan as far as possible.

        Actions that complete immediately are popped one after another; the
        first action that needs polling stops the loop.

        Returns:
            True when this has to be called again soon, False otherwise
        """
        d = self.deployment
        while True:
            if not d.status.plan:
                # No plan exists, nothing to be done
                return False

            plan_action = d.status.plan[0]
            log = self._action_logger(plan_action)
            action = self._create_action(ActionContext(d, log), plan_action)

            if plan_action.start_time is None:
                # Not started yet
                try:
                    ready = await action.start()
                except InvariantViolation:
                    raise
                except Exception as e:
                    log.debug(f"Failed to start action: {e}")
                    raise self._action_error("Start", plan_action, e) from e

                if ready:
                    d.mutate_status(remove_plan_action(plan_action.id))
                else:
                    d.mutate_status(set_plan_action_start_time(plan_action.id, utc_now()))
                try:
                    await d.update_cr_status()
                except Exception as e:
                    log.debug(f"Failed to update CR status: {e}")
                    raise
                log.debug(f"Action Start completed ready={ready}")
                if not ready:
                    # Check back soon
                    return True
            else:
                # Started earlier, check its progress
                try:
                    ready = await action.check_progress()
                except InvariantViolation:
                    raise
                except Exception as e:
                    log.debug(f"Failed to check action progress: {e}")
                    raise self._action_error("CheckProgress", plan_action, e) from e

                if ready:
                    d.mutate_status(remove_plan_action(plan_action.id))
                    try:
                        await d.update_cr_status()
                    except Exception as e:
                        log.debug(f"Failed to update CR status: {e}")
                        raise
                log.debug(f"Action CheckProgress completed ready={ready}")
                if not ready:
                    # Not ready yet, come back soon
                    return True
            # Continue with next action
