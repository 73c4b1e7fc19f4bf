from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from mcp_vmanomaly.vmanomaly import (
    AlertRuleRequest,
    CancelledOrDeadlineExceeded,
    ConfigGenerationRequest,
    DecodeFailure,
    DetectionTaskRequest,
    HTTPStatusFailure,
    NetworkFailure,
    QueryRequest,
    UpstreamError,
    VmanomalyClient,
    VmanomalyClientConfig,
)


def run_async(coro):
    return asyncio.run(coro)


def make_client(handler, **config) -> VmanomalyClient:
    config.setdefault("base_url", "http://vmanomaly.test:8490")
    return VmanomalyClient(
        VmanomalyClientConfig(**config), transport=httpx.MockTransport(handler)
    )


def test_client_config_rejects_empty_base_url_and_bad_timeout():
    with pytest.raises(ValueError):
        VmanomalyClientConfig(base_url="")
    with pytest.raises(ValueError):
        VmanomalyClientConfig(base_url="http://x", timeout_s=0)


def test_health_returns_json_object_and_sends_configured_credentials():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "ok"})

    async def scenario():
        async with make_client(
            handler, bearer_token="secret", headers={"X-Scope": "team-a"}
        ) as client:
            return await client.get_health()

    assert run_async(scenario()) == {"status": "ok"}
    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/health"
    assert request.headers["authorization"] == "Bearer secret"
    assert request.headers["x-scope"] == "team-a"


def test_no_authorization_header_without_token():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"version": "1.20.0"})

    async def scenario():
        async with make_client(handler) as client:
            return await client.get_build_info()

    assert run_async(scenario()) == {"version": "1.20.0"}
    assert seen[0].url.path == "/api/v1/status/buildinfo"
    assert "authorization" not in seen[0].headers


def test_task_id_is_escaped_into_a_single_path_segment():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"canceled": True})

    async def scenario():
        async with make_client(handler) as client:
            return await client.cancel_task("../limits")

    assert run_async(scenario()).canceled is True
    assert seen[0].method == "DELETE"
    assert seen[0].url.raw_path == b"/api/v1/anomaly_detection/tasks/..%2Flimits"


def test_forwarded_headers_replace_bearer_but_keep_custom_headers():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "success", "data": {"result": []}})

    async def scenario():
        async with make_client(
            handler, bearer_token="configured", headers={"X-Org": "acme"}
        ) as client:
            return await client.query(
                QueryRequest(query="up", pass_auth_headers=True),
                forward_headers={"Authorization": "Bearer inbound"},
            )

    run_async(scenario())
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/v1/query"
    assert request.headers["authorization"] == "Bearer inbound"
    assert request.headers["x-org"] == "acme"
    assert json.loads(request.content) == {"query": "up", "pass_auth_headers": True}


def test_non_2xx_becomes_http_status_failure_with_raw_body():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["model_class"] == "nope"
        return httpx.Response(404, text="model class not found")

    async def scenario():
        async with make_client(handler) as client:
            return await client.get_model_schema("nope")

    with pytest.raises(HTTPStatusFailure) as excinfo:
        run_async(scenario())
    assert excinfo.value.status_code == 404
    assert excinfo.value.body == "model class not found"
    assert "404" in str(excinfo.value)


def test_invalid_json_on_2xx_becomes_decode_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(200, text="<html>not json</html>")

    async def scenario():
        async with make_client(handler) as client:
            return await client.list_models()

    with pytest.raises(DecodeFailure) as excinfo:
        run_async(scenario())
    assert excinfo.value.body == "<html>not json</html>"


def test_wrong_shape_on_2xx_becomes_decode_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v1/anomaly_detection/limits":
            return httpx.Response(200, json={"max_concurrent": "many"})
        return httpx.Response(200, json=["not", "an", "object"])

    async def limits():
        async with make_client(handler) as client:
            return await client.get_detection_limits()

    async def health():
        async with make_client(handler) as client:
            return await client.get_health()

    with pytest.raises(DecodeFailure):
        run_async(limits())
    with pytest.raises(DecodeFailure):
        run_async(health())


def test_transport_error_becomes_network_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with make_client(handler) as client:
            return await client.get_health()

    with pytest.raises(NetworkFailure) as excinfo:
        run_async(scenario())
    assert isinstance(excinfo.value, UpstreamError)


def test_caller_deadline_expiry_is_reported_as_deadline_exceeded():
    async def handler(request: httpx.Request) -> httpx.Response:
        _ = request
        await asyncio.sleep(1.0)
        return httpx.Response(200, json={})

    async def scenario():
        async with make_client(handler) as client:
            loop = asyncio.get_running_loop()
            started = loop.time()
            with pytest.raises(CancelledOrDeadlineExceeded):
                await client.get_health(timeout_s=0.05)
            return loop.time() - started

    assert run_async(scenario()) < 0.5


def test_fixed_timeout_expiry_is_a_network_failure():
    async def handler(request: httpx.Request) -> httpx.Response:
        _ = request
        await asyncio.sleep(1.0)
        return httpx.Response(200, json={})

    async def scenario():
        async with make_client(handler, timeout_s=0.05) as client:
            await client.get_health(timeout_s=5.0)

    with pytest.raises(NetworkFailure):
        run_async(scenario())


def test_non_positive_deadline_fails_before_any_request():
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, json={})

    async def scenario():
        async with make_client(handler) as client:
            await client.get_health(timeout_s=0)

    with pytest.raises(CancelledOrDeadlineExceeded):
        run_async(scenario())
    assert calls == 0


def test_task_cancellation_propagates_cancelled_error():
    async def scenario():
        gate = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            _ = request
            gate.set()
            await asyncio.sleep(5.0)
            return httpx.Response(200, json={})

        async with make_client(handler) as client:
            task = asyncio.create_task(client.get_health())
            await gate.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

    run_async(scenario())


def test_task_creation_body_is_sent_verbatim_without_injected_defaults():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"task_id": "t-1", "status": "pending"})

    async def scenario():
        async with make_client(handler) as client:
            return await client.create_detection_task(
                DetectionTaskRequest(
                    query="up",
                    model_spec={"class": "zscore"},
                    anomaly_threshold=0.0,
                )
            )

    created = run_async(scenario())
    assert created.task_id == "t-1"
    assert bodies == [
        {
            "query": "up",
            "model_spec": {"class": "zscore"},
            "exact": False,
            "anomaly_threshold": 0.0,
            "pass_auth_headers": False,
        }
    ]


def test_task_lifecycle_endpoints_and_list_parameters():
    seen: list[tuple[str, str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, dict(request.url.params)))
        if request.method == "DELETE":
            return httpx.Response(200, json={"canceled": True})
        if request.url.path.endswith("/tasks"):
            return httpx.Response(200, json={"tasks": []})
        return httpx.Response(
            200, json={"task_id": "t-9", "status": "running", "progress": 40}
        )

    async def scenario():
        async with make_client(handler) as client:
            status = await client.get_task_status("t-9")
            default_list = await client.list_tasks()
            filtered = await client.list_tasks(limit=5, status="done")
            canceled = await client.cancel_task("t-9")
            return status, default_list, filtered, canceled

    status, default_list, filtered, canceled = run_async(scenario())
    assert status.progress == 40
    assert default_list.tasks == [] and filtered.tasks == []
    assert canceled.canceled is True
    assert seen == [
        ("GET", "/api/v1/anomaly_detection/tasks/t-9", {}),
        ("GET", "/api/v1/anomaly_detection/tasks", {"limit": "20"}),
        ("GET", "/api/v1/anomaly_detection/tasks", {"limit": "5", "status": "done"}),
        ("DELETE", "/api/v1/anomaly_detection/tasks/t-9", {}),
    ]


def test_yaml_endpoints_return_text_and_encode_parameters():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="groups: []\n")

    async def scenario():
        async with make_client(handler) as client:
            config_yaml = await client.generate_config(
                ConfigGenerationRequest(
                    query="up",
                    step="1m",
                    datasource_url="http://vm:8428",
                    model_spec={"class": "zscore"},
                )
            )
            rule_yaml = await client.generate_alert_rule(
                AlertRuleRequest(step="1m", query="up", anomaly_threshold=1.5)
            )
            return config_yaml, rule_yaml

    config_yaml, rule_yaml = run_async(scenario())
    assert config_yaml == rule_yaml == "groups: []\n"
    assert seen[0].url.path == "/api/vmanomaly/config.yaml"
    assert json.loads(seen[0].url.params["model_spec"]) == {"class": "zscore"}
    assert "fit_window" not in seen[0].url.params
    assert seen[1].url.path == "/api/vmalert/rule.yaml"
    assert seen[1].url.params["anomaly_threshold"] == "1.5"


def test_detection_limits_are_read_without_side_effects():
    def handler(request: httpx.Request) -> httpx.Response:
        _ = request
        return httpx.Response(200, json={"max_concurrent": 4, "running": 3, "available": 1})

    async def scenario():
        async with make_client(handler) as client:
            return await client.get_detection_limits(), await client.get_detection_limits()

    first, second = run_async(scenario())
    assert first == second
    assert first.running == 3


def test_metrics_and_compatibility():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/metrics":
            return httpx.Response(200, text="vmanomaly_up 1\n")
        assert request.url.params["version_to"] == "1.25.0"
        return httpx.Response(
            200,
            json={
                "runtime_version": "1.25.0",
                "stored_version": "1.18.0",
                "global_check": {
                    "has_state": True,
                    "is_compatible": False,
                    "drop_everything": True,
                    "reason": "state format changed",
                },
            },
        )

    async def scenario():
        async with make_client(handler) as client:
            return await client.get_metrics(), await client.compatibility("1.25.0")

    metrics, report = run_async(scenario())
    assert metrics == "vmanomaly_up 1\n"
    assert report.global_check.drop_everything is True
    assert report.component_assessment is None
