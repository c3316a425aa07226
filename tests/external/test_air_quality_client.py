from __future__ import annotations

import httpx
import pytest

from vigil_hazards.external.air_quality_client import (
    AirQualityClient,
    AirQualityProviderError,
    interpret_aqi,
    scale_waqi,
)

BASE_URL = "https://mock.waqi.info"


def _client(handler) -> AirQualityClient:
    return AirQualityClient(
        token="t0k",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL),
    )


@pytest.mark.anyio
async def test_current_scales_aqi_and_reads_pollutants() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/feed/geo:18.0;-76.8/"
        assert request.url.params["token"] == "t0k"
        return httpx.Response(
            200,
            json={
                "status": "ok",
                "data": {"aqi": 155, "iaqi": {"pm25": {"v": 61.0}, "o3": {"v": 12.5}}},
            },
        )

    snapshot = await _client(handler).current(18.0, -76.8)
    assert snapshot.aqi == 2
    assert snapshot.pm25 == 61.0
    assert snapshot.o3 == 12.5
    assert snapshot.pm10 == 30.0


@pytest.mark.anyio
async def test_station_error_status_raises() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "error", "data": "Unknown station"})

    with pytest.raises(AirQualityProviderError):
        await _client(handler).current(18.0, -76.8)


def test_scale_waqi_bounds() -> None:
    assert scale_waqi(0) == 1
    assert scale_waqi(100) == 1
    assert scale_waqi(101) == 2
    assert scale_waqi(500) == 5
    assert scale_waqi(900) == 5
    assert scale_waqi("-") == 1
    assert scale_waqi("nan") == 1
    assert scale_waqi("inf") == 1
    assert scale_waqi(float("-inf")) == 1


def test_interpret_aqi() -> None:
    assert interpret_aqi(1) == "Good"
    assert interpret_aqi(5) == "Hazardous"
    assert interpret_aqi(9) == "Unknown"
