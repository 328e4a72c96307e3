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

from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Status store
    status_store: Literal["kubernetes", "database"] = "kubernetes"
    database_url: str = "sqlite+aiosqlite:///./kubearango.db"
    status_conflict_retries: int = 5

    # Kubernetes
    kube_in_cluster: bool = True
    crd_group: str = "database.arangodb.com"
    crd_version: str = "v1alpha"
    crd_plural: str = "arangodeployments"

    # Celery
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/0"
    reconcile_interval: float = 30.0
    requeue_delay: int = 5
    reconcile_tick_timeout: float = 60.0

    # Per-deployment tick lock, must outlive a tick
    redis_url: str = "redis://localhost:6379/1"
    reconcile_lock_expire: int = 90

    # Polling
    deployment_ready_timeout: float = 120.0
    retry_interval: float = 1.0

    # arangod connections
    arangod_port: int = 8529
    arangod_request_timeout: float = 30.0
    arangod_verify_tls: bool = True


settings = Config()

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def get_async_engine() -> AsyncEngine:
    global _engine, _session_factory
    if _engine is None:
        _engine = create_async_engine(settings.database_url)
        _session_factory = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)
    return _engine


def get_async_session_factory() -> async_sessionmaker:
    get_async_engine()
    return _session_factory

