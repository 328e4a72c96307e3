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
Predicates over cluster health reports and version responses.

A predicate returns None when satisfied and raises otherwise, so it can be
fed straight into the polling helpers.
"""

from typing import Callable

from kubearango.apis import DeploymentSpec
from kubearango.arangod import ClusterHealth, ServerRole, ServerStatus, Version, VersionInfo
from kubearango.errors import HealthMismatchError

VersionPredicate = Callable[[VersionInfo], None]


def cluster_health_equals_spec(health: ClusterHealth, spec: DeploymentSpec):
    """
    Check that the health report matches the deployment spec.

    Agents count regardless of their status, dbservers and coordinators only
    when reported GOOD.
    """
    agents = 0
    good_dbservers = 0
    good_coordinators = 0
    for server in health.health.values():
        if server.role == ServerRole.AGENT:
            agents += 1
        elif server.status == ServerStatus.GOOD:
            if server.role == ServerRole.DBSERVER:
                good_dbservers += 1
            elif server.role == ServerRole.COORDINATOR:
                good_coordinators += 1

    expected = (spec.agents.get_count(), spec.dbservers.get_count(), spec.coordinators.get_count())
    if expected == (agents, good_dbservers, good_coordinators):
        return
    raise HealthMismatchError(
        "Expected {},{},{} got {},{},{}".format(*expected, agents, good_dbservers, good_coordinators)
    )


def create_equal_versions_predicate(info: VersionInfo) -> VersionPredicate:
    def predicate(info_from_server: VersionInfo):
        if Version(info.version).compare_to(info_from_server.version) != 0:
            raise HealthMismatchError(
                f"given version {info.version} and version from server {info_from_server.version} do not match"
            )

    return predicate


def create_equal_versions_predicate_from_string(version: str) -> VersionPredicate:
    return create_equal_versions_predicate(VersionInfo(version=version))
