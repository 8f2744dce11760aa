"""Tests for endpoint probing."""

import asyncio

import httpx

from versiongate.models import ApiEntry, Settings
from versiongate.prober import build_client, probe_all, probe_entry


def _entry(api_id, url, environment="prod"):
    return ApiEntry(id=api_id, project_id=1, url=url, environment=environment)


def _probe(entry, handler, timeout_ms=1000):
    async def run():
        async with build_client(Settings(timeout_ms=timeout_ms), httpx.MockTransport(handler)) as client:
            return await probe_entry(client, entry, timeout_ms)

    return asyncio.run(run())


class TestProbeEntry:
    def test_online_with_payload(self):
        def handler(request):
            return httpx.Response(200, json={"service": "invoice-api", "version": "1.2.3"})

        result = _probe(_entry(7, "https://invoice.example.com/info"), handler)
        assert result.status == "online"
        assert result.http_status == 200
        assert result.body == {"service": "invoice-api", "version": "1.2.3"}
        assert result.error is None
        assert result.failed is False
        assert result.api_id == 7
        assert result.response_time_ms is not None and result.response_time_ms >= 0

    def test_connection_error_is_offline(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = _probe(_entry(1, "https://down.example.com"), handler)
        assert result.status == "offline"
        assert result.http_status == 0
        assert result.body == {}
        assert result.failed is True
        assert "ConnectError" in result.error

    def test_timeout_is_offline(self):
        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json={"version": "1.0.0"})

        result = _probe(_entry(1, "https://slow.example.com"), handler, timeout_ms=50)
        assert result.status == "offline"
        assert result.failed is True
        assert "timeout" in result.error

    def test_non_json_body_is_offline(self):
        def handler(request):
            return httpx.Response(200, text="OK")

        result = _probe(_entry(1, "https://plain.example.com"), handler)
        assert result.status == "offline"
        assert result.http_status == 200
        assert result.body == {}
        assert result.failed is True
        assert "not JSON" in result.error

    def test_json_array_is_offline(self):
        def handler(request):
            return httpx.Response(200, json=[1, 2, 3])

        result = _probe(_entry(1, "https://array.example.com"), handler)
        assert result.status == "offline"
        assert result.body == {}

    def test_error_status_is_offline_but_keeps_body(self):
        def handler(request):
            return httpx.Response(503, json={"service": "invoice-api", "version": "1.0.0"})

        result = _probe(_entry(1, "https://busy.example.com"), handler)
        assert result.status == "offline"
        assert result.http_status == 503
        assert result.body["version"] == "1.0.0"
        assert result.error == "HTTP 503"
        assert result.failed is False

    def test_unsupported_protocol_is_offline(self):
        def handler(request):
            raise httpx.UnsupportedProtocol("Request URL has an unsupported protocol 'ftp://'.")

        result = _probe(_entry(1, "ftp://files.example.com/info"), handler)
        assert result.status == "offline"
        assert result.failed is True


class TestProbeAll:
    def test_preserves_entry_order(self):
        def handler(request):
            return httpx.Response(200, json={"version": request.url.host})

        entries = [_entry(i, f"https://host{i}.example.com") for i in range(5)]
        results = asyncio.run(probe_all(entries, Settings(), httpx.MockTransport(handler)))
        assert [r.api_id for r in results] == [0, 1, 2, 3, 4]
        assert [r.body["version"] for r in results] == [f"host{i}.example.com" for i in range(5)]

    def test_partial_failure(self):
        def handler(request):
            if request.url.host == "down.example.com":
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={"version": "1.0.0"})

        entries = [_entry(1, "https://up.example.com"), _entry(2, "https://down.example.com")]
        results = asyncio.run(probe_all(entries, Settings(), httpx.MockTransport(handler)))
        assert [r.status for r in results] == ["online", "offline"]

    def test_unexpected_exception_becomes_offline(self):
        def handler(request):
            raise RuntimeError("boom")

        results = asyncio.run(
            probe_all([_entry(1, "https://odd.example.com")], Settings(), httpx.MockTransport(handler))
        )
        assert results[0].status == "offline"
        assert "RuntimeError" in results[0].error

    def test_empty_entries(self):
        assert asyncio.run(probe_all([], Settings())) == []

    def test_concurrency_is_bounded(self):
        in_flight = 0
        peak = 0

        async def handler(request):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return httpx.Response(200, json={"version": "1.0.0"})

        entries = [_entry(i, f"https://h{i}.example.com") for i in range(8)]
        settings = Settings(max_concurrency=2)
        results = asyncio.run(probe_all(entries, settings, httpx.MockTransport(handler)))
        assert len(results) == 8
        assert peak <= 2
