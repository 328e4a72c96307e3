import logging
from unittest.mock import MagicMock

import pytest

from kubearango.apis import DeploymentMode, new_deployment
from kubearango.deployment import ActionContext, Deployment, DeploymentDependencies
from kubearango.utils.log import with_fields


@pytest.fixture
def core():
    return MagicMock()


@pytest.fixture
def make_deployment(store, connections, core):
    """Store a deployment and return its in-memory owner"""

    async def make(mode=DeploymentMode.CLUSTER, members=(), plan=()) -> Deployment:
        api_object = new_deployment("demo", mode=mode)
        for group, member in members:
            api_object.status.members.add(member, group)
        api_object.status.plan.extend(plan)
        created = await store.create(api_object)
        return Deployment(
            created, DeploymentDependencies(store=store, connections=connections, core_api_factory=lambda: core)
        )

    return make


@pytest.fixture
def make_context():
    def make(deployment: Deployment) -> ActionContext:
        return ActionContext(deployment, with_fields(logging.getLogger("kubearango.test")))

    return make


@pytest.fixture
def reload(store, connections, core):
    """Build a fresh Deployment from what the store holds, like the next tick does"""

    async def load() -> Deployment:
        api_object = await store.get("default", "demo")
        return Deployment(
            api_object, DeploymentDependencies(store=store, connections=connections, core_api_factory=lambda: core)
        )

    return load
