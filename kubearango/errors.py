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
Error hierarchy for the operator.

KubeArangoError covers everything a caller may retry on a later trigger.
InvariantViolation marks programming errors (schema/version skew between
plan producer and executor) and deliberately does not derive from it.
"""

from typing import Optional


class KubeArangoError(Exception):
    """Base class for recoverable operator errors"""


class PollTimeoutError(KubeArangoError):
    """A bounded poll did not converge within its timeout"""

    def __init__(self, message: str, timeout: float, attempts: int):
        super().__init__(message)
        self.timeout = timeout
        self.attempts = attempts


class ConflictError(KubeArangoError):
    """A write lost an optimistic concurrency race"""


class NotFoundError(KubeArangoError):
    """The requested object does not exist"""


class HealthMismatchError(KubeArangoError):
    """Observed cluster health does not match the deployment spec"""


class ConvergenceError(KubeArangoError):
    """A deployment did not reach the expected shape"""


class ArangoResponseError(KubeArangoError):
    """Error response returned by an arangod server"""

    def __init__(self, status_code: int, error_num: int = 0, error_message: str = ""):
        super().__init__(f"arangod responded {status_code} (errorNum {error_num}): {error_message}")
        self.status_code = status_code
        self.error_num = error_num
        self.error_message = error_message


class NoLeaderError(ArangoResponseError):
    """No leader is currently elected (resilient single server)"""


class ActionError(KubeArangoError):
    """Start or CheckProgress of a plan action failed"""

    def __init__(self, phase: str, action_id: str, action_type: str, group: str, member_id: str,
                 cause: Optional[BaseException] = None):
        super().__init__(
            f"{phase} of action {action_id} ({action_type}) on {group}/{member_id} failed: {cause}"
        )
        self.phase = phase
        self.action_id = action_id
        self.action_type = action_type
        self.group = group
        self.member_id = member_id


class InvariantViolation(Exception):
    """Programming error that must never be masked as a runtime condition"""


class UnknownActionTypeError(InvariantViolation):
    def __init__(self, action_type):
        super().__init__(f"Unknown action type '{action_type}'")
        self.action_type = action_type


class UnsupportedDeploymentModeError(InvariantViolation):
    def __init__(self, mode):
        super().__init__(f"DeploymentMode {mode} is not supported!")
        self.mode = mode


class ArangoConnectionError(KubeArangoError):
    """An arangod server could not be reached"""
