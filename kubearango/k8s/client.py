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

"""
Thin helpers over the official kubernetes client.

The client is blocking, so coroutine helpers run each call in a worker thread.
"""

import asyncio
import base64
import logging
import threading
from typing import Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from kubearango.config import settings
from kubearango.errors import NotFoundError

logger = logging.getLogger(__name__)

_config_lock = threading.Lock()
_config_loaded = False


def load_kube_config():
    """Load cluster credentials exactly once"""
    global _config_loaded
    with _config_lock:
        if _config_loaded:
            return
        if settings.kube_in_cluster:
            config.load_incluster_config()
        else:
            config.load_kube_config()
        _config_loaded = True


def core_api() -> client.CoreV1Api:
    load_kube_config()
    return client.CoreV1Api()


def custom_api() -> client.CustomObjectsApi:
    load_kube_config()
    return client.CustomObjectsApi()


def is_not_found(err: BaseException) -> bool:
    return isinstance(err, ApiException) and err.status == 404


def is_conflict(err: BaseException) -> bool:
    return isinstance(err, ApiException) and err.status == 409


async def get_pod(core: client.CoreV1Api, name: str, namespace: str) -> Optional[client.V1Pod]:
    """Return the pod or None when it does not exist"""
    try:
        return await asyncio.to_thread(core.read_namespaced_pod, name, namespace)
    except ApiException as e:
        if is_not_found(e):
            return None
        raise


async def delete_pod(core: client.CoreV1Api, name: str, namespace: str):
    """Delete a pod; an already absent pod counts as deleted"""
    try:
        await asyncio.to_thread(core.delete_namespaced_pod, name, namespace)
        logger.debug(f"Deleted pod {namespace}/{name}")
    except ApiException as e:
        if not is_not_found(e):
            raise


async def delete_pvc(core: client.CoreV1Api, name: str, namespace: str):
    """Delete a persistent volume claim; an already absent claim counts as deleted"""
    try:
        await asyncio.to_thread(core.delete_namespaced_persistent_volume_claim, name, namespace)
        logger.debug(f"Deleted persistent volume claim {namespace}/{name}")
    except ApiException as e:
        if not is_not_found(e):
            raise


async def get_secret_value(core: client.CoreV1Api, name: str, namespace: str, key: str) -> str:
    try:
        secret = await asyncio.to_thread(core.read_namespaced_secret, name, namespace)
    except ApiException as e:
        if is_not_found(e):
            raise NotFoundError(f"Secret {namespace}/{name} not found") from e
        raise
    data = secret.data or {}
    if key not in data:
        raise NotFoundError(f"Secret {namespace}/{name} has no key '{key}'")
    return base64.b64decode(data[key]).decode("utf-8")
