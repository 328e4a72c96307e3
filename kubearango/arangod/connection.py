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
import ssl
from typing import Callable, Optional, Union

import httpx

from kubearango.apis import ArangoDeployment, ServerGroup
from kubearango.arangod.client import ArangodClient
from kubearango.config import settings
from kubearango.k8s import client as k8s
from kubearango.k8s.names import create_database_client_service_dns_name, create_pod_dns_name

logger = logging.getLogger(__name__)

JWT_SECRET_TOKEN_KEY = "token"
CA_SECRET_CERT_KEY = "ca.crt"


class ArangodConnectionFactory:
    """Creates clients for a whole deployment or for a single member of it"""

    def __init__(
        self,
        core_api_factory: Callable = k8s.core_api,
        port: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._core_api_factory = core_api_factory
        self._port = port or settings.arangod_port
        self._transport = transport

    async def database_client(self, deployment: ArangoDeployment) -> ArangodClient:
        """Client talking to the deployment's client service (coordinators or single server)"""
        host = create_database_client_service_dns_name(deployment.name, deployment.namespace)
        return await self._create(deployment, host)

    async def server_client(self, deployment: ArangoDeployment, group: ServerGroup, member_id: str) -> ArangodClient:
        """Client talking directly to one member"""
        host = create_pod_dns_name(deployment.name, deployment.namespace, group, member_id)
        return await self._create(deployment, host)

    async def _create(self, deployment: ArangoDeployment, host: str) -> ArangodClient:
        scheme = "https" if deployment.spec.tls.is_secure() else "http"
        token = None
        if deployment.spec.auth.is_authenticated():
            token = await k8s.get_secret_value(
                self._core_api_factory(),
                deployment.spec.auth.jwt_secret_name,
                deployment.namespace,
                JWT_SECRET_TOKEN_KEY,
            )
        url = f"{scheme}://{host}:{self._port}"
        logger.debug(f"Creating arangod client for {url}")
        verify = await self._tls_verify(deployment)
        return ArangodClient(url, jwt_token=token, verify=verify, transport=self._transport)

    async def _tls_verify(self, deployment: ArangoDeployment) -> Union[bool, ssl.SSLContext]:
        """Trust only the deployment CA, unless verification is switched off"""
        if not deployment.spec.tls.is_secure():
            return True
        if not settings.arangod_verify_tls:
            logger.warning(f"TLS verification disabled for {deployment.namespace}/{deployment.name}")
            return False
        ca_cert = await k8s.get_secret_value(
            self._core_api_factory(),
            deployment.spec.tls.ca_secret_name,
            deployment.namespace,
            CA_SECRET_CERT_KEY,
        )
        return ssl.create_default_context(cadata=ca_cert)
