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

from kubearango.health.convergence import wait_until_deployment_healthy
from kubearango.health.predicates import (
    cluster_health_equals_spec,
    create_equal_versions_predicate,
    create_equal_versions_predicate_from_string,
)
from kubearango.health.waiters import (
    remove_deployment,
    remove_secret,
    update_deployment_spec,
    wait_until_cluster_health,
    wait_until_deployment,
    wait_until_secret,
    wait_until_secret_not_found,
    wait_until_version_up,
)

__all__ = [
    "cluster_health_equals_spec",
    "create_equal_versions_predicate",
    "create_equal_versions_predicate_from_string",
    "remove_deployment",
    "remove_secret",
    "update_deployment_spec",
    "wait_until_cluster_health",
    "wait_until_deployment",
    "wait_until_deployment_healthy",
    "wait_until_secret",
    "wait_until_secret_not_found",
    "wait_until_version_up",
]
