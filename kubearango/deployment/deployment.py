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
from dataclasses import dataclass, field
from typing import Callable, List

from kubernetes import client
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from kubearango.apis import ArangoDeployment, DeploymentSpec, DeploymentStatus
from kubearango.arangod import ArangodConnectionFactory
from kubearango.config import settings
from kubearango.errors import ConflictError
from kubearango.k8s import client as k8s
from kubearango.store import StatusStore

logger = logging.getLogger(__name__)

StatusMutation = Callable[[DeploymentStatus], None]


@dataclass
class DeploymentDependencies:
    store: StatusStore
    connections: ArangodConnectionFactory = field(default_factory=ArangodConnectionFactory)
    core_api_factory: Callable[[], client.CoreV1Api] = k8s.core_api


class Deployment:
    """
    In-memory owner of one ArangoDeployment for the duration of a tick.

    Every status change goes through mutate_status(), which applies a pure
    function to the local copy and remembers it. update_cr_status() writes the
    local copy; when the write loses a concurrency race the resource is read
    again and the remembered mutations are replayed on top of it.
    """

    def __init__(self, api_object: ArangoDeployment, deps: DeploymentDependencies):
        self.api_object = api_object
        self.deps = deps
        self._pending: List[StatusMutation] = []
        self._persisted = api_object.model_copy(deep=True)

    @property
    def name(self) -> str:
        return self.api_object.name

    @property
    def namespace(self) -> str:
        return self.api_object.namespace

    @property
    def spec(self) -> DeploymentSpec:
        return self.api_object.spec

    @property
    def status(self) -> DeploymentStatus:
        return self.api_object.status

    def mutate_status(self, mutation: StatusMutation):
        mutation(self.api_object.status)
        self._pending.append(mutation)

    def has_pending_changes(self) -> bool:
        return bool(self._pending)

    def discard_pending_changes(self):
        """Drop unpersisted mutations and return to the last persisted state"""
        if self._pending:
            logger.debug(f"Discarding {len(self._pending)} unpersisted status changes of {self.name}")
        self.api_object = self._persisted.model_copy(deep=True)
        self._pending = []

    async def update_cr_status(self):
        """Persist the status, replaying pending mutations on conflicts"""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(settings.status_conflict_retries),
            retry=retry_if_exception_type(ConflictError),
            reraise=True,
        ):
            with attempt:
                await self._write_status()

    async def _write_status(self):
        try:
            updated = await self.deps.store.update_status(self.api_object)
        except ConflictError:
            logger.info(f"Status update of {self.namespace}/{self.name} conflicted, reloading")
            await self._reload_and_replay()
            raise
        self.api_object = updated
        self._persisted = updated.model_copy(deep=True)
        self._pending = []

    async def _reload_and_replay(self):
        current = await self.deps.store.get(self.namespace, self.name)
        for mutation in self._pending:
            mutation(current.status)
        self.api_object = current

    async def execute_plan(self) -> bool:
        """
        Run one executor tick for this deployment.

        Unpersisted mutations are dropped when the tick fails so the next tick
        starts from what the store holds.

        Returns:
            True when the deployment needs another tick soon
        """
        # Import here to avoid circular dependencies
        from kubearango.deployment.plan_executor import PlanExecutor

        try:
            return await PlanExecutor(self).execute_plan()
        except BaseException:
            self.discard_pending_changes()
            raise
