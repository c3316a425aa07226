from __future__ import annotations

import random

from vigil_hazards.geo.calculations import haversine_meters
from vigil_hazards.predictive.clustering import cluster_reports


def _ids(clusters):
    return [[r.id for r in cluster] for cluster in clusters]


def test_scenario_two_close_one_far(make_report) -> None:
    reports = [
        make_report("r1", 18.0, -76.8),
        make_report("r2", 18.0001, -76.8001),
        make_report("r3", 18.05, -76.85),
    ]
    assert _ids(cluster_reports(reports, 500)) == [["r1", "r2"], ["r3"]]


def test_single_report_is_singleton_cluster(make_report) -> None:
    assert _ids(cluster_reports([make_report("solo", 18.0, -76.8)])) == [["solo"]]


def test_empty_input_yields_no_clusters() -> None:
    assert cluster_reports([]) == []


def test_absorbs_only_neighbours_of_seed(make_report) -> None:
    # a-b 约 400m，b-c 约 400m，a-c 约 800m：c 不与种子 a 相邻，不会被并入
    step = 400 / 111_195
    reports = [
        make_report("a", 18.0, -76.8),
        make_report("b", 18.0 + step, -76.8),
        make_report("c", 18.0 + 2 * step, -76.8),
    ]
    assert _ids(cluster_reports(reports, 500)) == [["a", "b"], ["c"]]


def test_partition_property_random_sets(make_report) -> None:
    rng = random.Random(42)
    for trial in range(20):
        reports = [
            make_report(f"t{trial}-{i}", 18.0 + rng.uniform(-0.02, 0.02), -76.8 + rng.uniform(-0.02, 0.02))
            for i in range(rng.randint(1, 25))
        ]
        clusters = cluster_reports(reports, 500)
        flattened = [r.id for cluster in clusters for r in cluster]
        assert sorted(flattened) == sorted(r.id for r in reports)
        assert len(flattened) == len(set(flattened))
        assert all(cluster for cluster in clusters)
        # 每个成员都在种子的阈值范围内
        for cluster in clusters:
            seed = cluster[0]
            for member in cluster[1:]:
                assert haversine_meters(seed.latitude, seed.longitude, member.latitude, member.longitude) <= 500
