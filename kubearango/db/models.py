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

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Column
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel import Field, SQLModel, UniqueConstraint

from kubearango.apis import ArangoDeployment, utc_now
from kubearango.apis.deployment import random_id


class ArangoDeploymentRecord(SQLModel, table=True):
    """Row holding one deployment; version drives optimistic concurrency"""

    __tablename__ = "arango_deployment"
    __table_args__ = (UniqueConstraint("namespace", "name", name="uq_arango_deployment_namespace_name"),)

    id: str = Field(default_factory=lambda: "dep" + random_id(), primary_key=True, max_length=24)
    namespace: str = Field(max_length=253)
    name: str = Field(max_length=253)
    spec: dict = Field(default_factory=dict, sa_column=Column(JSON))
    status: dict = Field(default_factory=dict, sa_column=Column(JSON))
    version: int = 1
    gmt_created: datetime = Field(default_factory=utc_now)
    gmt_updated: datetime = Field(default_factory=utc_now)
    gmt_deleted: Optional[datetime] = None

    def to_deployment(self) -> ArangoDeployment:
        return ArangoDeployment.model_validate(
            {
                "metadata": {
                    "name": self.name,
                    "namespace": self.namespace,
                    "resourceVersion": str(self.version),
                    "uid": self.id,
                },
                "spec": self.spec or {},
                "status": self.status or {},
            }
        )


async def create_tables(engine: AsyncEngine):
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
