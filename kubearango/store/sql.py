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
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy import and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from kubearango.apis import ArangoDeployment, utc_now
from kubearango.config import get_async_session_factory
from kubearango.db.models import ArangoDeploymentRecord
from kubearango.errors import ConflictError, NotFoundError
from kubearango.store.base import StatusStore

logger = logging.getLogger(__name__)


class SQLStatusStore(StatusStore):
    """Deployments stored in a relational table, guarded by a version column"""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        factory = self._session_factory or get_async_session_factory()
        async with factory() as session:
            yield session

    @staticmethod
    def _expected_version(deployment: ArangoDeployment) -> int:
        try:
            return int(deployment.metadata.resource_version)
        except (TypeError, ValueError):
            raise ConflictError(
                f"Deployment {deployment.namespace}/{deployment.name} has no usable resource version"
            )

    @staticmethod
    def _key(namespace: str, name: str):
        return and_(ArangoDeploymentRecord.namespace == namespace, ArangoDeploymentRecord.name == name)

    async def _fetch(self, session: AsyncSession, namespace: str, name: str) -> ArangoDeploymentRecord:
        result = await session.execute(select(ArangoDeploymentRecord).where(self._key(namespace, name)))
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"deployment {namespace}/{name} not found")
        return record

    async def get(self, namespace: str, name: str) -> ArangoDeployment:
        async with self._session() as session:
            record = await self._fetch(session, namespace, name)
            return record.to_deployment()

    async def list(self) -> List[ArangoDeployment]:
        async with self._session() as session:
            result = await session.execute(select(ArangoDeploymentRecord))
            return [record.to_deployment() for record in result.scalars().all()]

    async def create(self, deployment: ArangoDeployment) -> ArangoDeployment:
        data = deployment.to_dict()
        record = ArangoDeploymentRecord(
            namespace=deployment.namespace,
            name=deployment.name,
            spec=data.get("spec", {}),
            status=data.get("status", {}),
            version=1,
        )
        async with self._session() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
            logger.info(f"Created deployment {deployment.namespace}/{deployment.name}")
            return record.to_deployment()

    async def _conditional_update(self, deployment: ArangoDeployment, **values) -> ArangoDeployment:
        expected = self._expected_version(deployment)
        async with self._session() as session:
            # Atomic compare-and-set: only the writer holding the current version wins
            stmt = (
                update(ArangoDeploymentRecord)
                .where(
                    and_(
                        self._key(deployment.namespace, deployment.name),
                        ArangoDeploymentRecord.version == expected,
                    )
                )
                .values(version=expected + 1, gmt_updated=utc_now(), **values)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await session.rollback()
                # Distinguish a missing row from a stale version
                await self._fetch(session, deployment.namespace, deployment.name)
                raise ConflictError(
                    f"deployment {deployment.namespace}/{deployment.name} changed since version {expected}"
                )
            await session.commit()
            record = await self._fetch(session, deployment.namespace, deployment.name)
            return record.to_deployment()

    async def update_spec(self, deployment: ArangoDeployment) -> ArangoDeployment:
        return await self._conditional_update(deployment, spec=deployment.spec.to_dict())

    async def update_status(self, deployment: ArangoDeployment) -> ArangoDeployment:
        return await self._conditional_update(deployment, status=deployment.status.to_dict())

    async def delete(self, namespace: str, name: str):
        async with self._session() as session:
            result = await session.execute(delete(ArangoDeploymentRecord).where(self._key(namespace, name)))
            if result.rowcount == 0:
                raise NotFoundError(f"deployment {namespace}/{name} not found")
            await session.commit()
            logger.info(f"Deleted deployment {namespace}/{name}")
