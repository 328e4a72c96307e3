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

import asyncio
import logging
from typing import Callable, List, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from kubearango.apis import ArangoDeployment
from kubearango.config import settings
from kubearango.errors import ConflictError, NotFoundError
from kubearango.k8s import client as k8s
from kubearango.store.base import StatusStore

logger = logging.getLogger(__name__)


class KubernetesStatusStore(StatusStore):
    """ArangoDeployment custom resources, guarded by metadata.resourceVersion"""

    def __init__(self, api_factory: Optional[Callable[[], client.CustomObjectsApi]] = None):
        self._api_factory = api_factory or k8s.custom_api
        self._api: Optional[client.CustomObjectsApi] = None

    @property
    def api(self) -> client.CustomObjectsApi:
        if self._api is None:
            self._api = self._api_factory()
        return self._api

    def _crd_args(self):
        return settings.crd_group, settings.crd_version

    async def _call(self, what: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except ApiException as e:
            if k8s.is_conflict(e):
                raise ConflictError(f"Conflict on {what}: {e.reason}") from e
            if k8s.is_not_found(e):
                raise NotFoundError(f"{what} not found") from e
            raise

    async def get(self, namespace: str, name: str) -> ArangoDeployment:
        group, version = self._crd_args()
        obj = await self._call(
            f"deployment {namespace}/{name}",
            self.api.get_namespaced_custom_object,
            group, version, namespace, settings.crd_plural, name,
        )
        return ArangoDeployment.from_dict(obj)

    async def list(self) -> List[ArangoDeployment]:
        group, version = self._crd_args()
        result = await self._call(
            "deployments", self.api.list_cluster_custom_object, group, version, settings.crd_plural
        )
        return [ArangoDeployment.from_dict(item) for item in result.get("items", [])]

    async def create(self, deployment: ArangoDeployment) -> ArangoDeployment:
        group, version = self._crd_args()
        body = deployment.to_dict()
        body["metadata"].pop("resourceVersion", None)
        obj = await self._call(
            f"deployment {deployment.namespace}/{deployment.name}",
            self.api.create_namespaced_custom_object,
            group, version, deployment.namespace, settings.crd_plural, body,
        )
        return ArangoDeployment.from_dict(obj)

    async def update_spec(self, deployment: ArangoDeployment) -> ArangoDeployment:
        group, version = self._crd_args()
        obj = await self._call(
            f"deployment {deployment.namespace}/{deployment.name}",
            self.api.replace_namespaced_custom_object,
            group, version, deployment.namespace, settings.crd_plural, deployment.name, deployment.to_dict(),
        )
        return ArangoDeployment.from_dict(obj)

    async def update_status(self, deployment: ArangoDeployment) -> ArangoDeployment:
        group, version = self._crd_args()
        obj = await self._call(
            f"deployment {deployment.namespace}/{deployment.name}",
            self.api.replace_namespaced_custom_object_status,
            group, version, deployment.namespace, settings.crd_plural, deployment.name, deployment.to_dict(),
        )
        logger.debug(
            f"Updated status of {deployment.namespace}/{deployment.name} "
            f"to resource version {obj.get('metadata', {}).get('resourceVersion')}"
        )
        return ArangoDeployment.from_dict(obj)

    async def delete(self, namespace: str, name: str):
        group, version = self._crd_args()
        await self._call(
            f"deployment {namespace}/{name}",
            self.api.delete_namespaced_custom_object,
            group, version, namespace, settings.crd_plural, name,
        )
