from __future__ import annotations

import httpx
import pytest

from vigil_hazards.external.disaster_client import DisasterClient, DisasterProviderError

BASE_URL = "https://mock.reliefweb.int/v2"


def _item(item_id: int, name: str, type_name: str) -> dict:
    return {
        "id": item_id,
        "fields": {
            "name": name,
            "status": "ongoing",
            "date": {"created": "2025-05-30T00:00:00+00:00"},
            "country": [{"name": "Jamaica"}],
            "type": [{"name": type_name}],
            "url": f"https://reliefweb.int/disaster/{item_id}",
        },
    }


def _client(handler) -> DisasterClient:
    return DisasterClient(
        appname="vigil-test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL),
    )


@pytest.mark.anyio
async def test_nearby_summary_counts_types() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v2/disasters"
        assert request.url.params["appname"] == "vigil-test"
        assert request.url.params["filter[value]"] == "Jamaica"
        assert request.url.params.get_list("fields[include][]")[0] == "name"
        items = [_item(i, f"Event {i}", "Flood" if i % 2 else "Tropical Cyclone") for i in range(7)]
        return httpx.Response(200, json={"data": items})

    summary = await _client(handler).nearby("Jamaica")
    assert len(summary.events) == 5
    assert len(summary.nearby_events) == 7
    assert summary.event_types == {"Tropical Cyclone": 4, "Flood": 3}
    assert summary.events[0].country == "Jamaica"
    assert summary.events[0].source == "ReliefWeb"


@pytest.mark.anyio
async def test_missing_data_raises() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "appname required"})

    with pytest.raises(DisasterProviderError):
        await _client(handler).nearby("Jamaica")


@pytest.mark.anyio
async def test_transport_error_raises() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    with pytest.raises(DisasterProviderError):
        await _client(handler).search("Jamaica")
