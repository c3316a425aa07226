from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from vigil_hazards.llm.structured import StructuredGenerator
from vigil_hazards.predictive.models import ExternalContext, PredictionCandidate
from vigil_hazards.predictive.translator import ClusterTranslator, materialize_candidate

from .stubs import StubChatClient, batch_json, candidate


def _translator(client: StubChatClient) -> ClusterTranslator:
    return ClusterTranslator(StructuredGenerator(client, model="test-model", timeout_seconds=1.0))


@pytest.mark.anyio
async def test_single_report_flood_prediction(make_report) -> None:
    report = make_report("r1", 18.0, -76.8)
    client = StubChatClient(lambda _: batch_json(candidate()))
    before = datetime.now(timezone.utc)

    predictions = await _translator(client).translate([report], ExternalContext())

    assert len(predictions) == 1
    prediction = predictions[0]
    assert prediction.type == "flood"
    assert prediction.confidence == 80
    assert prediction.affected_area.lat == pytest.approx(18.0)
    assert prediction.affected_area.lng == pytest.approx(-76.8)
    assert prediction.affected_area.radius == 1000
    assert prediction.source_reports == ["r1"]
    assert prediction.cluster_size == 1
    assert prediction.id.startswith("pred_flood_")
    expected = before + timedelta(hours=6)
    assert abs((prediction.expires_at - expected).total_seconds()) < 5
    assert prediction.expires_at > before


@pytest.mark.anyio
async def test_confidence_is_capped(make_report) -> None:
    client = StubChatClient(lambda _: batch_json(candidate(confidence=99)))
    predictions = await _translator(client).translate([make_report("r1", 18.0, -76.8)], ExternalContext())
    assert [p.confidence for p in predictions] == [95]


@pytest.mark.anyio
async def test_offsets_shift_position_from_cluster_center(make_report) -> None:
    cluster = [make_report("a", 18.0, -76.8), make_report("b", 18.002, -76.802)]
    client = StubChatClient(
        lambda _: batch_json(
            candidate(type="fire", lat_offset=0.01, lng_offset=-0.02),
            candidate(type="electrical", lat_offset=-0.01),
        )
    )
    predictions = await _translator(client).translate(cluster, ExternalContext())

    assert [p.type for p in predictions] == ["fire", "electrical"]
    assert predictions[0].affected_area.lat == pytest.approx(18.011)
    assert predictions[0].affected_area.lng == pytest.approx(-76.821)
    assert predictions[1].affected_area.lat == pytest.approx(17.991)
    assert predictions[0].id != predictions[1].id
    assert all(p.source_reports == ["a", "b"] for p in predictions)


@pytest.mark.anyio
async def test_out_of_schema_output_degrades_to_empty(make_report) -> None:
    client = StubChatClient(lambda _: batch_json(candidate(radius_meters=99_999)))
    predictions = await _translator(client).translate([make_report("r1", 18.0, -76.8)], ExternalContext())
    assert predictions == []


@pytest.mark.anyio
async def test_invalid_json_and_network_errors_degrade_to_empty(make_report) -> None:
    report = make_report("r1", 18.0, -76.8)
    for outcome in ("not json at all", "", ConnectionError("model unreachable")):
        client = StubChatClient(lambda _, outcome=outcome: outcome)
        assert await _translator(client).translate([report], ExternalContext()) == []
        assert len(client.calls) == 1


@pytest.mark.anyio
async def test_prompt_carries_cluster_summary_and_schema(make_report) -> None:
    client = StubChatClient(lambda _: batch_json())
    await ClusterTranslator(
        StructuredGenerator(client, model="test-model"),
        temperature=0.3,
    ).translate([make_report("r1", 18.0, -76.8, tags=["chemical"])], ExternalContext())

    call = client.calls[0]
    assert call["model"] == "test-model"
    assert call["temperature"] == 0.3
    assert call["response_format"] == {"type": "json_object"}
    system, user = call["messages"]
    assert "FLOOD" in system["content"]
    assert "lat_offset" in system["content"]
    assert '"report_count": 1' in user["content"]
    assert '"chemical"' in user["content"]
    assert '"nearbyEventCount": 0' in user["content"]


def test_materialize_candidate_is_deterministic_for_given_now(make_report) -> None:
    now = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
    prediction = materialize_candidate(
        PredictionCandidate(**candidate(expires_hours=2.5)),
        [make_report("r1", 18.0, -76.8)],
        ExternalContext(),
        now=now,
    )
    assert prediction.expires_at == now + timedelta(hours=2.5)
    assert not prediction.is_expired(now)
    assert prediction.is_expired(now + timedelta(hours=3))


@pytest.mark.anyio
async def test_generation_timeout_degrades_to_empty(make_report) -> None:
    async def hang(**kwargs):
        await asyncio.sleep(5)

    client = StubChatClient(lambda _: batch_json(candidate()))
    client.chat.completions.create = hang
    translator = ClusterTranslator(StructuredGenerator(client, model="test-model", timeout_seconds=0.05))

    assert await translator.translate([make_report("r1", 18.0, -76.8)], ExternalContext()) == []
