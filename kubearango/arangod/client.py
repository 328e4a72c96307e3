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
Minimal asynchronous HTTP client for the arangod endpoints the operator needs.
"""

import logging
import re
import ssl
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field

from kubearango.config import settings
from kubearango.errors import ArangoConnectionError, ArangoResponseError, NoLeaderError

logger = logging.getLogger(__name__)

ERROR_CLUSTER_NOT_LEADER = 1496

_VERSION_PART = re.compile(r"^(\d*)(.*)$")


class Version(str):
    """Server version string such as 3.3.10, compared component-wise"""

    def _parts(self) -> Tuple[Tuple[int, str], ...]:
        parts = []
        for raw in (self.split(".") + ["", "", ""])[:3]:
            digits, rest = _VERSION_PART.match(raw).groups()
            parts.append((int(digits) if digits else 0, rest))
        return tuple(parts)

    def compare_to(self, other: str) -> int:
        a, b = self._parts(), Version(other)._parts()
        if a == b:
            return 0
        return -1 if a < b else 1


class VersionInfo(BaseModel):
    server: str = ""
    version: str = ""
    license: str = ""
    details: Dict[str, Any] = Field(default_factory=dict)


class ServerRole(str, Enum):
    AGENT = "Agent"
    DBSERVER = "DBServer"
    COORDINATOR = "Coordinator"
    SINGLE = "Single"


class ServerStatus(str, Enum):
    GOOD = "GOOD"
    BAD = "BAD"
    FAILED = "FAILED"


class ServerHealth(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    role: str = Field(default="", alias="Role")
    status: str = Field(default="", alias="Status")
    short_name: str = Field(default="", alias="ShortName")
    endpoint: str = Field(default="", alias="Endpoint")


class ClusterHealth(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(default="", alias="ClusterId")
    health: Dict[str, ServerHealth] = Field(default_factory=dict, alias="Health")


def is_no_leader(err: Optional[BaseException]) -> bool:
    return isinstance(err, NoLeaderError)


class ClusterHandle:
    """Cluster-level operations, available on coordinators"""

    def __init__(self, client: "ArangodClient"):
        self._client = client

    async def health(self) -> ClusterHealth:
        data = await self._client.request("GET", "/_admin/cluster/health")
        return ClusterHealth.model_validate(data)

    async def clean_out_server(self, server_id: str):
        await self._client.request("POST", "/_admin/cluster/cleanOutServer", json={"server": server_id})

    async def is_cleaned_out(self, server_id: str) -> bool:
        data = await self._client.request("GET", "/_admin/cluster/numberOfServers")
        cleaned: List[str] = data.get("cleanedServers") or []
        return server_id in cleaned

    async def remove_server(self, server_id: str):
        await self._client.request("POST", "/_admin/cluster/removeServer", json=server_id)


class ArangodClient:
    """Connection to a single arangod endpoint (server or service)"""

    def __init__(
        self,
        base_url: str,
        jwt_token: Optional[str] = None,
        verify: Union[bool, ssl.SSLContext] = True,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {}
        if jwt_token:
            headers["Authorization"] = f"bearer {jwt_token}"
        self.base_url = base_url
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            verify=verify,
            timeout=timeout if timeout is not None else settings.arangod_request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ArangodClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        await self._http.aclose()

    async def request(self, method: str, path: str, json: Any = None, params: Optional[dict] = None) -> Dict:
        try:
            resp = await self._http.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            raise ArangoConnectionError(f"{method} {self.base_url}{path} failed: {e}") from e
        logger.debug(f"{method} {self.base_url}{path} -> {resp.status_code}")

        try:
            body = resp.json() if resp.content else {}
        except ValueError:
            body = {}

        if resp.is_error:
            error_num = body.get("errorNum", 0) if isinstance(body, dict) else 0
            message = body.get("errorMessage", resp.text) if isinstance(body, dict) else resp.text
            if resp.status_code == 503 and error_num == ERROR_CLUSTER_NOT_LEADER:
                raise NoLeaderError(resp.status_code, error_num, message)
            raise ArangoResponseError(resp.status_code, error_num, message)
        return body

    async def version(self) -> VersionInfo:
        data = await self.request("GET", "/_api/version")
        return VersionInfo.model_validate(data)

    async def server_role(self) -> str:
        data = await self.request("GET", "/_admin/server/role")
        return data.get("role", "")

    async def cluster(self) -> ClusterHandle:
        role = await self.server_role()
        if role != "COORDINATOR":
            raise ArangoResponseError(412, 0, f"Cluster operations need a coordinator, got role '{role}'")
        return ClusterHandle(self)

    async def shutdown(self, remove_from_cluster: bool = False):
        params = {"remove_from_cluster": "1"} if remove_from_cluster else None
        await self.request("DELETE", "/_admin/shutdown", params=params)
