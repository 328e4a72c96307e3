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
from abc import ABC, abstractmethod
from typing import List

from kubearango.apis import ArangoDeployment

logger = logging.getLogger(__name__)


class StatusStore(ABC):
    """Durable storage of ArangoDeployment resources"""

    @abstractmethod
    async def get(self, namespace: str, name: str) -> ArangoDeployment:
        """
        Read the current version of a deployment

        Raises:
            NotFoundError: when no such deployment exists
        """
        pass

    @abstractmethod
    async def list(self) -> List[ArangoDeployment]:
        """List all deployments across namespaces"""
        pass

    @abstractmethod
    async def create(self, deployment: ArangoDeployment) -> ArangoDeployment:
        """Store a new deployment and return it with its resource version"""
        pass

    @abstractmethod
    async def update_spec(self, deployment: ArangoDeployment) -> ArangoDeployment:
        """
        Write the spec if the stored resource version still matches

        Raises:
            ConflictError: when the stored version moved on
            NotFoundError: when the deployment is gone
        """
        pass

    @abstractmethod
    async def update_status(self, deployment: ArangoDeployment) -> ArangoDeployment:
        """
        Write the status if the stored resource version still matches

        Raises:
            ConflictError: when the stored version moved on
            NotFoundError: when the deployment is gone
        """
        pass

    @abstractmethod
    async def delete(self, namespace: str, name: str):
        """
        Remove a deployment

        Raises:
            NotFoundError: when no such deployment exists
        """
        pass


def create_status_store(store_type: str) -> StatusStore:
    """Create the status store configured for this process"""
    if store_type == "kubernetes":
        from kubearango.store.kubernetes import KubernetesStatusStore

        return KubernetesStatusStore()
    elif store_type == "database":
        from kubearango.store.sql import SQLStatusStore

        return SQLStatusStore()
    raise ValueError(f"Unsupported status store type: {store_type}")
