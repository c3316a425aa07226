"""
上报空间聚类

以种子为中心的一次性贪心吸收：按输入顺序取未处理的上报作为种子，
把与种子距离不超过阈值的所有未处理上报并入该簇，然后继续下一个种子。
只与种子比较，不会围绕新并入的成员再次扩展。
"""

from __future__ import annotations

from typing import List, Sequence

import structlog

from vigil_hazards.geo.calculations import haversine_meters
from vigil_hazards.predictive.models import Report

logger = structlog.get_logger(__name__)

DEFAULT_CLUSTER_THRESHOLD_METERS = 500.0


def cluster_reports(
    reports: Sequence[Report],
    threshold_meters: float = DEFAULT_CLUSTER_THRESHOLD_METERS,
) -> List[List[Report]]:
    """将上报划分为若干非空簇；每条上报恰好属于一个簇，单条上报也成簇。"""
    clusters: List[List[Report]] = []
    processed = [False] * len(reports)

    for seed_idx, seed in enumerate(reports):
        if processed[seed_idx]:
            continue
        processed[seed_idx] = True
        cluster = [seed]

        for idx in range(seed_idx + 1, len(reports)):
            if processed[idx]:
                continue
            other = reports[idx]
            distance = haversine_meters(seed.latitude, seed.longitude, other.latitude, other.longitude)
            if distance <= threshold_meters:
                cluster.append(other)
                processed[idx] = True

        clusters.append(cluster)

    logger.debug(
        "reports_clustered",
        report_count=len(reports),
        cluster_count=len(clusters),
        threshold_meters=threshold_meters,
    )
    return clusters
