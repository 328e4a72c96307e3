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
ArangoDeployment custom resource: spec, status, members and plan.

Models serialise to the camelCase layout stored in Kubernetes.
"""

import random
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from kubearango.errors import NotFoundError

API_GROUP = "database.arangodb.com"
API_VERSION = "v1alpha"
RESOURCE_KIND = "ArangoDeployment"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def random_id() -> str:
    """Generate a random ID string"""
    return "".join(random.sample(uuid.uuid4().hex, 8))


class DeploymentMode(str, Enum):
    CLUSTER = "Cluster"
    SINGLE = "Single"
    RESILIENT_SINGLE = "ResilientSingle"

    def has_single_servers(self) -> bool:
        return self in (DeploymentMode.SINGLE, DeploymentMode.RESILIENT_SINGLE)

    def has_agents(self) -> bool:
        return self in (DeploymentMode.CLUSTER, DeploymentMode.RESILIENT_SINGLE)

    def has_cluster_servers(self) -> bool:
        return self == DeploymentMode.CLUSTER


class ServerGroup(str, Enum):
    SINGLE = "single"
    AGENTS = "agents"
    DBSERVERS = "dbservers"
    COORDINATORS = "coordinators"

    def as_role(self) -> str:
        return _ROLES[self]

    def as_role_abbreviated(self) -> str:
        return _ROLE_ABBREVIATIONS[self]


_ROLES = {
    ServerGroup.SINGLE: "single",
    ServerGroup.AGENTS: "agent",
    ServerGroup.DBSERVERS: "dbserver",
    ServerGroup.COORDINATORS: "coordinator",
}

_ROLE_ABBREVIATIONS = {
    ServerGroup.SINGLE: "sngl",
    ServerGroup.AGENTS: "agnt",
    ServerGroup.DBSERVERS: "prmr",
    ServerGroup.COORDINATORS: "crdn",
}

ALL_SERVER_GROUPS = [ServerGroup.SINGLE, ServerGroup.AGENTS, ServerGroup.DBSERVERS, ServerGroup.COORDINATORS]


class ActionType(str, Enum):
    ADD_MEMBER = "AddMember"
    REMOVE_MEMBER = "RemoveMember"
    CLEAN_OUT_MEMBER = "CleanOutMember"
    SHUTDOWN_MEMBER = "ShutdownMember"
    ROTATE_MEMBER = "RotateMember"
    WAIT_FOR_MEMBER_UP = "WaitForMemberUp"


class MemberPhase(str, Enum):
    NONE = ""
    CLEAN_OUT = "CleanOut"
    SHUTTING_DOWN = "ShuttingDown"
    ROTATING = "Rotating"
    FAILED = "Failed"


class ConditionType(str, Enum):
    READY = "Ready"
    TERMINATED = "Terminated"
    CLEANED_OUT = "CleanedOut"


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# Spec


class ServerGroupSpec(ApiModel):
    count: Optional[int] = None
    args: List[str] = Field(default_factory=list)

    def get_count(self) -> int:
        return self.count or 0


class TLSSpec(ApiModel):
    ca_secret_name: Optional[str] = None

    def is_secure(self) -> bool:
        return bool(self.ca_secret_name) and self.ca_secret_name != "None"


class AuthenticationSpec(ApiModel):
    jwt_secret_name: Optional[str] = None

    def is_authenticated(self) -> bool:
        return bool(self.jwt_secret_name) and self.jwt_secret_name != "None"


class DeploymentSpec(ApiModel):
    mode: Optional[DeploymentMode] = None
    image: Optional[str] = None
    tls: TLSSpec = Field(default_factory=TLSSpec)
    auth: AuthenticationSpec = Field(default_factory=AuthenticationSpec)
    single: ServerGroupSpec = Field(default_factory=ServerGroupSpec)
    agents: ServerGroupSpec = Field(default_factory=ServerGroupSpec)
    dbservers: ServerGroupSpec = Field(default_factory=ServerGroupSpec)
    coordinators: ServerGroupSpec = Field(default_factory=ServerGroupSpec)

    @model_validator(mode="after")
    def _fill_defaults(self) -> "DeploymentSpec":
        self.set_defaults()
        return self

    def get_mode(self) -> DeploymentMode:
        return self.mode or DeploymentMode.CLUSTER

    def set_defaults(self):
        """Fill unset group counts from the deployment mode"""
        mode = self.get_mode()
        if self.single.count is None:
            if mode == DeploymentMode.SINGLE:
                self.single.count = 1
            elif mode == DeploymentMode.RESILIENT_SINGLE:
                self.single.count = 2
        if self.agents.count is None and mode.has_agents():
            self.agents.count = 3
        if mode.has_cluster_servers():
            if self.dbservers.count is None:
                self.dbservers.count = 3
            if self.coordinators.count is None:
                self.coordinators.count = 3

    def get_server_group_spec(self, group: ServerGroup) -> ServerGroupSpec:
        return getattr(self, group.value)


# Status


class Condition(ApiModel):
    type: ConditionType
    status: bool = False
    reason: Optional[str] = None
    last_transition_time: Optional[datetime] = None


class MemberStatus(ApiModel):
    id: str
    phase: MemberPhase = MemberPhase.NONE
    pod_name: Optional[str] = None
    pvc_name: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    conditions: List[Condition] = Field(default_factory=list)

    def is_condition_true(self, condition_type: ConditionType) -> bool:
        return any(c.type == condition_type and c.status for c in self.conditions)

    def set_condition(self, condition_type: ConditionType, status: bool, reason: Optional[str] = None) -> bool:
        """Set a condition, returns True when something changed"""
        for c in self.conditions:
            if c.type == condition_type:
                if c.status == status and c.reason == reason:
                    return False
                c.status = status
                c.reason = reason
                c.last_transition_time = utc_now()
                return True
        self.conditions.append(
            Condition(type=condition_type, status=status, reason=reason, last_transition_time=utc_now())
        )
        return True

    def remove_condition(self, condition_type: ConditionType) -> bool:
        before = len(self.conditions)
        self.conditions = [c for c in self.conditions if c.type != condition_type]
        return len(self.conditions) != before


class DeploymentStatusMembers(ApiModel):
    single: List[MemberStatus] = Field(default_factory=list)
    agents: List[MemberStatus] = Field(default_factory=list)
    dbservers: List[MemberStatus] = Field(default_factory=list)
    coordinators: List[MemberStatus] = Field(default_factory=list)

    def members_of_group(self, group: ServerGroup) -> List[MemberStatus]:
        return getattr(self, group.value)

    def element_by_id(self, member_id: str) -> Tuple[Optional[MemberStatus], Optional[ServerGroup]]:
        for group in ALL_SERVER_GROUPS:
            for m in self.members_of_group(group):
                if m.id == member_id:
                    return m, group
        return None, None

    def contains_id(self, member_id: str) -> bool:
        member, _ = self.element_by_id(member_id)
        return member is not None

    def add(self, member: MemberStatus, group: ServerGroup):
        if self.contains_id(member.id):
            raise ValueError(f"Member {member.id} already exists")
        self.members_of_group(group).append(member)

    def update(self, member: MemberStatus, group: ServerGroup):
        members = self.members_of_group(group)
        for i, m in enumerate(members):
            if m.id == member.id:
                members[i] = member
                return
        raise NotFoundError(f"Member {member.id} not found in {group.value}")

    def remove_by_id(self, member_id: str, group: ServerGroup) -> bool:
        members = self.members_of_group(group)
        remaining = [m for m in members if m.id != member_id]
        setattr(self, group.value, remaining)
        return len(remaining) != len(members)

    def for_each_server_group(self, callback: Callable[[ServerGroup, List[MemberStatus]], None]):
        for group in ALL_SERVER_GROUPS:
            callback(group, self.members_of_group(group))


class PlanAction(ApiModel):
    """A single plan entry; start_time stays None until Start asked for polling"""

    id: str = Field(default_factory=random_id)
    # Unknown values are kept as plain strings so the executor can reject them loudly
    type: Union[ActionType, str] = Field(union_mode="left_to_right")
    group: ServerGroup
    member_id: str = Field(default="", alias="memberID")
    created_at: datetime = Field(default_factory=utc_now)
    start_time: Optional[datetime] = None

    @classmethod
    def new(cls, action_type: ActionType, group: ServerGroup, member_id: str) -> "PlanAction":
        return cls(type=action_type, group=group, member_id=member_id)


class DeploymentStatus(ApiModel):
    members: DeploymentStatusMembers = Field(default_factory=DeploymentStatusMembers)
    plan: List[PlanAction] = Field(default_factory=list)


# Resource


class ObjectMeta(ApiModel):
    name: str
    namespace: str = "default"
    resource_version: Optional[str] = None
    uid: Optional[str] = None


class ArangoDeployment(ApiModel):
    api_version: str = f"{API_GROUP}/{API_VERSION}"
    kind: str = RESOURCE_KIND
    metadata: ObjectMeta
    spec: DeploymentSpec = Field(default_factory=DeploymentSpec)
    status: DeploymentStatus = Field(default_factory=DeploymentStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @classmethod
    def from_dict(cls, data: Dict) -> "ArangoDeployment":
        return cls.model_validate(data)


def new_deployment(name: str, namespace: str = "default", **spec) -> ArangoDeployment:
    """Create a basic ArangoDeployment with the given name and spec fields"""
    return ArangoDeployment(
        metadata=ObjectMeta(name=name.lower(), namespace=namespace),
        spec=DeploymentSpec(**spec),
    )
