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

"""Naming conventions for the Kubernetes objects belonging to a deployment"""

import re

from kubearango.apis import ServerGroup

_INVALID_CHARS = re.compile(r"[^a-z0-9\-.]")


def _strip(name: str) -> str:
    return _INVALID_CHARS.sub("", name.lower())


def create_pod_name(deployment_name: str, group: ServerGroup, member_id: str) -> str:
    return _strip(f"{deployment_name}-{group.as_role_abbreviated()}-{member_id}")


def create_pvc_name(deployment_name: str, group: ServerGroup, member_id: str) -> str:
    return _strip(f"{deployment_name}-{group.as_role()}-{member_id}")


def create_headless_service_name(deployment_name: str) -> str:
    return _strip(f"{deployment_name}-int")


def create_database_client_service_name(deployment_name: str) -> str:
    return _strip(deployment_name)


def create_pod_dns_name(deployment_name: str, namespace: str, group: ServerGroup, member_id: str) -> str:
    pod_name = create_pod_name(deployment_name, group, member_id)
    return f"{pod_name}.{create_headless_service_name(deployment_name)}.{namespace}.svc"


def create_database_client_service_dns_name(deployment_name: str, namespace: str) -> str:
    return f"{create_database_client_service_name(deployment_name)}.{namespace}.svc"
