"""
Unit tests for the custom resource status store.

The CustomObjectsApi is a MagicMock; only the mapping of calls and HTTP
errors is checked here.
"""

from unittest.mock import MagicMock

import pytest
from kubernetes.client.rest import ApiException

from kubearango.apis import new_deployment
from kubearango.errors import ConflictError, NotFoundError
from kubearango.store.kubernetes import KubernetesStatusStore

GROUP = "database.arangodb.com"
VERSION = "v1alpha"
PLURAL = "arangodeployments"


def stored_object(resource_version="7"):
    data = new_deployment("demo").to_dict()
    data["metadata"].update({"resourceVersion": resource_version, "uid": "u-1", "generation": 3})
    return data


@pytest.fixture
def api():
    return MagicMock()


@pytest.fixture
def k8s_store(api):
    return KubernetesStatusStore(api_factory=lambda: api)


class TestKubernetesStatusStore:
    """Test suite for the CustomObjectsApi mapping."""

    @pytest.mark.asyncio
    async def test_get(self, api, k8s_store):
        api.get_namespaced_custom_object.return_value = stored_object()
        deployment = await k8s_store.get("default", "demo")

        api.get_namespaced_custom_object.assert_called_once_with(GROUP, VERSION, "default", PLURAL, "demo")
        assert deployment.metadata.resource_version == "7"
        assert deployment.metadata.uid == "u-1"

    @pytest.mark.asyncio
    async def test_get_missing(self, api, k8s_store):
        api.get_namespaced_custom_object.side_effect = ApiException(status=404, reason="Not Found")
        with pytest.raises(NotFoundError):
            await k8s_store.get("default", "demo")

    @pytest.mark.asyncio
    async def test_list(self, api, k8s_store):
        api.list_cluster_custom_object.return_value = {"items": [stored_object()]}
        assert [d.name for d in await k8s_store.list()] == ["demo"]

    @pytest.mark.asyncio
    async def test_update_status_sends_resource_version(self, api, k8s_store):
        api.replace_namespaced_custom_object_status.return_value = stored_object("8")
        deployment = new_deployment("demo")
        deployment.metadata.resource_version = "7"

        updated = await k8s_store.update_status(deployment)

        args = api.replace_namespaced_custom_object_status.call_args.args
        assert args[:5] == (GROUP, VERSION, "default", PLURAL, "demo")
        assert args[5]["metadata"]["resourceVersion"] == "7"
        assert updated.metadata.resource_version == "8"

    @pytest.mark.asyncio
    async def test_conflict(self, api, k8s_store):
        api.replace_namespaced_custom_object_status.side_effect = ApiException(status=409, reason="Conflict")
        with pytest.raises(ConflictError) as exc_info:
            await k8s_store.update_status(new_deployment("demo"))
        assert isinstance(exc_info.value.__cause__, ApiException)

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self, api, k8s_store):
        api.replace_namespaced_custom_object.side_effect = ApiException(status=500)
        with pytest.raises(ApiException):
            await k8s_store.update_spec(new_deployment("demo"))

    @pytest.mark.asyncio
    async def test_create_drops_resource_version(self, api, k8s_store):
        api.create_namespaced_custom_object.return_value = stored_object("1")
        deployment = new_deployment("demo")
        deployment.metadata.resource_version = "5"

        await k8s_store.create(deployment)
        body = api.create_namespaced_custom_object.call_args.args[4]
        assert "resourceVersion" not in body["metadata"]

    @pytest.mark.asyncio
    async def test_delete_missing(self, api, k8s_store):
        api.delete_namespaced_custom_object.side_effect = ApiException(status=404)
        with pytest.raises(NotFoundError):
            await k8s_store.delete("default", "demo")
