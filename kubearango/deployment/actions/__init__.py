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

from kubearango.apis import ActionType, PlanAction
from kubearango.deployment.action_context import ActionContext
from kubearango.deployment.actions.add_member import AddMemberAction
from kubearango.deployment.actions.base import Action
from kubearango.deployment.actions.clean_out_member import CleanOutMemberAction
from kubearango.deployment.actions.remove_member import RemoveMemberAction
from kubearango.deployment.actions.rotate_member import RotateMemberAction
from kubearango.deployment.actions.shutdown_member import ShutdownMemberAction
from kubearango.deployment.actions.wait_for_member_up import WaitForMemberUpAction
from kubearango.errors import UnknownActionTypeError


def create_action(ctx: ActionContext, action: PlanAction) -> Action:
    """
    Create the runtime action for a plan record.

    An unknown type means the plan was written by a newer or older producer
    than this executor understands, so it fails loudly instead of being skipped.
    """
    match action.type:
        case ActionType.ADD_MEMBER:
            return AddMemberAction(ctx, action)
        case ActionType.REMOVE_MEMBER:
            return RemoveMemberAction(ctx, action)
        case ActionType.CLEAN_OUT_MEMBER:
            return CleanOutMemberAction(ctx, action)
        case ActionType.SHUTDOWN_MEMBER:
            return ShutdownMemberAction(ctx, action)
        case ActionType.ROTATE_MEMBER:
            return RotateMemberAction(ctx, action)
        case ActionType.WAIT_FOR_MEMBER_UP:
            return WaitForMemberUpAction(ctx, action)
        case _:
            raise UnknownActionTypeError(action.type)


__all__ = [
    "Action",
    "AddMemberAction",
    "CleanOutMemberAction",
    "RemoveMemberAction",
    "RotateMemberAction",
    "ShutdownMemberAction",
    "WaitForMemberUpAction",
    "create_action",
]
