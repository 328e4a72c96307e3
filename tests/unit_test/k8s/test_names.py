"""
Unit tests for Kubernetes object naming and client helpers.
"""

import base64
from unittest.mock import MagicMock

import pytest
from kubernetes.client.rest import ApiException

from kubearango.apis import ServerGroup
from kubearango.errors import NotFoundError
from kubearango.k8s import client as k8s
from kubearango.k8s.names import (
    create_database_client_service_dns_name,
    create_pod_dns_name,
    create_pod_name,
    create_pvc_name,
)


class TestNames:
    """Test suite for derived object names."""

    def test_pod_names_use_role_abbreviation(self):
        assert create_pod_name("demo", ServerGroup.AGENTS, "a1") == "demo-agnt-a1"
        assert create_pod_name("demo", ServerGroup.DBSERVERS, "d1") == "demo-prmr-d1"
        assert create_pod_name("demo", ServerGroup.COORDINATORS, "c1") == "demo-crdn-c1"
        assert create_pod_name("demo", ServerGroup.SINGLE, "s1") == "demo-sngl-s1"

    def test_pvc_names_use_role(self):
        assert create_pvc_name("demo", ServerGroup.DBSERVERS, "d1") == "demo-dbserver-d1"

    def test_names_are_lowercased(self):
        assert create_pod_name("Demo", ServerGroup.AGENTS, "AB_1") == "demo-agnt-ab1"

    def test_dns_names(self):
        assert create_pod_dns_name("demo", "ns1", ServerGroup.AGENTS, "a1") == "demo-agnt-a1.demo-int.ns1.svc"
        assert create_database_client_service_dns_name("demo", "ns1") == "demo.ns1.svc"


class TestClientHelpers:
    """Test suite for pod and secret helpers."""

    @pytest.mark.asyncio
    async def test_get_missing_pod(self):
        core = MagicMock()
        core.read_namespaced_pod.side_effect = ApiException(status=404)
        assert await k8s.get_pod(core, "demo-agnt-a1", "default") is None

    @pytest.mark.asyncio
    async def test_get_pod_propagates_errors(self):
        core = MagicMock()
        core.read_namespaced_pod.side_effect = ApiException(status=403)
        with pytest.raises(ApiException):
            await k8s.get_pod(core, "demo-agnt-a1", "default")

    @pytest.mark.asyncio
    async def test_secret_value(self):
        core = MagicMock()
        core.read_namespaced_secret.return_value = MagicMock(data={"token": base64.b64encode(b"t0k").decode()})
        assert await k8s.get_secret_value(core, "jwt", "default", "token") == "t0k"

    @pytest.mark.asyncio
    async def test_secret_without_key(self):
        core = MagicMock()
        core.read_namespaced_secret.return_value = MagicMock(data={})
        with pytest.raises(NotFoundError):
            await k8s.get_secret_value(core, "jwt", "default", "token")
