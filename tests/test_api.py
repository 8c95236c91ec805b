"""Tests for fcprovider.api routes and error mapping."""

from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from conftest import ok_json
from fcprovider.agent import http_exception_handler
from fcprovider.api import register_routes
from fcprovider.orchestration import VMLifecycle
from fcprovider.transport import TransportResponse


@pytest.fixture
def lifecycle(fake_transport, state_manager):
    fake_transport.script("GET", "/machine-config", ok_json({"vcpu_count": 2, "mem_size_mib": 1024}))
    fake_transport.default_get = 400
    return VMLifecycle(fake_transport, state_manager)


@pytest.fixture
def client(lifecycle):
    app = FastAPI()
    app.add_exception_handler(HTTPException, http_exception_handler)
    register_routes(app, lifecycle)
    return TestClient(app)


@pytest.fixture
def created(client, spec_document):
    resp = client.post("/v1/vms", json={"spec": spec_document})
    assert resp.status_code == 201
    return resp.json()["vm"]


class TestHealth:
    def test_healthz(self, client):
        assert client.get("/healthz").json() == {"status": "ok"}


class TestCreate:
    def test_create(self, created, fake_transport):
        assert created["id"]
        assert created["remote"]["machine_config"]["vcpu_count"] == 2
        assert ("PUT", "/drives/rootfs") in [(m, p) for m, p, _ in fake_transport.calls]

    def test_invalid_spec_is_400(self, client, spec_document, fake_transport):
        spec_document["drives"] = []
        resp = client.post("/v1/vms", json={"spec": spec_document})
        assert resp.status_code == 400
        assert "at least one drive is required" in resp.json()["error"]["problems"]
        assert fake_transport.calls == []

    def test_rejected_step_is_502(self, client, spec_document, fake_transport):
        fake_transport.script("PUT", "/machine-config", TransportResponse(400, "bad vcpu"))
        resp = client.post("/v1/vms", json={"spec": spec_document})
        assert resp.status_code == 502
        detail = resp.json()["error"]
        assert detail["step"] == "machine-config"
        assert detail["applied"] == ["boot-source", "drive:rootfs", "drive:data"]
        assert detail["response_body"] == "bad vcpu"

    def test_missing_body_is_422(self, client):
        assert client.post("/v1/vms", json={}).status_code == 422


class TestReadListDelete:
    def test_read(self, client, created):
        resp = client.get(f"/v1/vms/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["vm"]["id"] == created["id"]
        assert resp.json()["drift"] == []

    def test_read_gone_is_404(self, client, created, fake_transport):
        fake_transport.script("GET", "/machine-config", TransportResponse(404))
        assert client.get(f"/v1/vms/{created['id']}").status_code == 404
        assert client.get("/v1/vms").json()["count"] == 0

    def test_read_unknown_is_404(self, client):
        assert client.get("/v1/vms/unknown").status_code == 404

    def test_list(self, client, created):
        body = client.get("/v1/vms").json()
        assert body["count"] == 1
        assert body["vms"][0]["id"] == created["id"]

    def test_delete(self, client, created):
        resp = client.delete(f"/v1/vms/{created['id']}")
        assert resp.status_code == 200
        assert resp.json()["existed"] is True
        assert client.get("/v1/vms").json()["count"] == 0

    def test_delete_unknown_still_succeeds(self, client, fake_transport):
        fake_transport.script("PUT", "/actions", TransportResponse(404))
        resp = client.delete("/v1/vms/vm-unknown")
        assert resp.status_code == 200
        assert resp.json()["existed"] is False


class TestUpdateAndPlan:
    def test_in_place_update(self, client, created, spec_document, fake_transport):
        spec_document["machine_config"] = [{"vcpu_count": 4, "mem_size_mib": 1024}]
        resp = client.put(f"/v1/vms/{created['id']}", json={"spec": spec_document})
        assert resp.status_code == 200
        assert resp.json()["replaced"] is False
        assert ("PATCH", "/machine-config", {"vcpu_count": 4}) in fake_transport.calls

    def test_replacement_is_409(self, client, created, spec_document):
        spec_document["kernel_image_path"] = "/other/vmlinux"
        resp = client.put(f"/v1/vms/{created['id']}", json={"spec": spec_document})
        assert resp.status_code == 409
        assert resp.json()["error"]["fields"] == ["kernel_image_path"]

    def test_replacement_allowed(self, client, created, spec_document):
        spec_document["kernel_image_path"] = "/other/vmlinux"
        resp = client.put(f"/v1/vms/{created['id']}", json={"spec": spec_document, "allow_replace": True})
        assert resp.status_code == 200
        assert resp.json()["replaced"] is True

    def test_plan_update(self, client, created, spec_document):
        spec_document["machine_config"] = [{"vcpu_count": 2, "mem_size_mib": 2048}]
        spec_document["boot_args"] = "console=ttyS0"
        resp = client.post(f"/v1/vms/{created['id']}/plan", json={"spec": spec_document})
        assert resp.json()["plan"] == {"in_place": {"mem_size_mib": 2048}, "replace": ["boot_args"]}

    def test_plan_create_sends_nothing(self, client, spec_document, fake_transport):
        resp = client.post("/v1/plan", json={"spec": spec_document})
        assert resp.status_code == 200
        steps = [call["step"] for call in resp.json()["calls"]]
        assert steps[0] == "boot-source"
        assert steps[-1] == "instance-start"
        assert fake_transport.calls == []


class TestInspect:
    def test_inspect(self, client):
        resp = client.get("/v1/hypervisor/vm/vm-1")
        assert resp.status_code == 200
        assert resp.json()["remote"]["machine_config"]["mem_size_mib"] == 1024

    def test_inspect_absent(self, client, fake_transport):
        fake_transport.script("GET", "/machine-config", TransportResponse(404))
        assert client.get("/v1/hypervisor/vm/vm-1").status_code == 404

    def test_inspect_unexpected_status_is_502(self, client, fake_transport):
        fake_transport.script("GET", "/machine-config", TransportResponse(500))
        assert client.get("/v1/hypervisor/vm/vm-1").status_code == 502
