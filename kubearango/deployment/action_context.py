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

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional, Tuple

from kubernetes import client

from kubearango.apis import ConditionType, DeploymentMode, DeploymentSpec, MemberPhase, MemberStatus, ServerGroup
from kubearango.arangod import ArangodClient
from kubearango.deployment.deployment import Deployment
from kubearango.k8s import client as k8s
from kubearango.k8s.names import create_pod_name, create_pvc_name
from kubearango.utils.log import FieldsAdapter


class ActionContext:
    """
    Everything an action may touch during one tick.

    Member lookups return copies. Changes go through the member methods
    below, each recording a mutation on the deployment that touches a single
    field of the member as found in the status it is applied to.
    """

    def __init__(self, deployment: Deployment, log: FieldsAdapter):
        self._deployment = deployment
        self.log = log

    @property
    def spec(self) -> DeploymentSpec:
        return self._deployment.spec

    def get_mode(self) -> DeploymentMode:
        return self._deployment.spec.get_mode()

    def get_member_status_by_id(self, member_id: str) -> Tuple[Optional[MemberStatus], Optional[ServerGroup]]:
        member, group = self._deployment.status.members.element_by_id(member_id)
        if member is None:
            return None, None
        return member.model_copy(deep=True), group

    def create_member(self, group: ServerGroup, member_id: str) -> MemberStatus:
        member = MemberStatus(
            id=member_id,
            pod_name=create_pod_name(self._deployment.name, group, member_id),
            pvc_name=create_pvc_name(self._deployment.name, group, member_id)
            if group in (ServerGroup.SINGLE, ServerGroup.AGENTS, ServerGroup.DBSERVERS)
            else None,
        )

        def add(status):
            if not status.members.contains_id(member.id):
                status.members.add(member.model_copy(deep=True), group)

        self._deployment.mutate_status(add)
        self.log.info(f"Added member {member_id} to {group.value}")
        return member.model_copy(deep=True)

    def _mutate_member(self, member_id: str, apply: Callable[[MemberStatus], None]):
        def mutation(status):
            member, _ = status.members.element_by_id(member_id)
            if member is not None:
                apply(member)

        self._deployment.mutate_status(mutation)

    def set_member_phase(self, member_id: str, phase: MemberPhase):
        def apply(member: MemberStatus):
            member.phase = phase

        self._mutate_member(member_id, apply)

    def set_member_condition(self, member_id: str, condition_type: ConditionType, status: bool,
                             reason: Optional[str] = None):
        def apply(member: MemberStatus):
            member.set_condition(condition_type, status, reason=reason)

        self._mutate_member(member_id, apply)

    def remove_member_condition(self, member_id: str, condition_type: ConditionType):
        def apply(member: MemberStatus):
            member.remove_condition(condition_type)

        self._mutate_member(member_id, apply)

    def remove_member_by_id(self, member_id: str):
        def remove(status):
            _, group = status.members.element_by_id(member_id)
            if group is not None:
                status.members.remove_by_id(member_id, group)

        self._deployment.mutate_status(remove)
        self.log.info(f"Removed member {member_id}")

    @asynccontextmanager
    async def database_client(self) -> AsyncIterator[ArangodClient]:
        """Client for the whole deployment, closed on exit"""
        db_client = await self._deployment.deps.connections.database_client(self._deployment.api_object)
        async with db_client:
            yield db_client

    @asynccontextmanager
    async def server_client(self, group: ServerGroup, member_id: str) -> AsyncIterator[ArangodClient]:
        """Client for a single member, closed on exit"""
        server_client = await self._deployment.deps.connections.server_client(
            self._deployment.api_object, group, member_id
        )
        async with server_client:
            yield server_client

    def _core(self) -> client.CoreV1Api:
        return self._deployment.deps.core_api_factory()

    def _pod_name(self, member: MemberStatus, group: ServerGroup) -> str:
        return member.pod_name or create_pod_name(self._deployment.name, group, member.id)

    async def get_pod(self, member: MemberStatus, group: ServerGroup) -> Optional[client.V1Pod]:
        return await k8s.get_pod(self._core(), self._pod_name(member, group), self._deployment.namespace)

    async def delete_pod(self, member: MemberStatus, group: ServerGroup):
        await k8s.delete_pod(self._core(), self._pod_name(member, group), self._deployment.namespace)

    async def delete_pvc(self, member: MemberStatus, group: ServerGroup):
        pvc_name = member.pvc_name or create_pvc_name(self._deployment.name, group, member.id)
        await k8s.delete_pvc(self._core(), pvc_name, self._deployment.namespace)
