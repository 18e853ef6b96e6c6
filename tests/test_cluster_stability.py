"""
Tests for cluster stability tracking (src/monitoring/cluster_stability.py).
"""

import pytest

from src.graph.models import Cluster
from src.monitoring.cluster_stability import (
    calculate_stability_metrics,
    clusters_to_frame,
    track_cluster_evolution,
)


def _cluster(cluster_id, members):
    return Cluster(id=cluster_id, label=cluster_id, node_ids=tuple(members), color="#4F46E5")


@pytest.fixture
def baseline():
    return [_cluster("cluster-0", "abc"), _cluster("cluster-1", "def")]


def test_clusters_to_frame(baseline):
    """Test flattening clusters into node rows."""
    df = clusters_to_frame(baseline)

    assert list(df.columns) == ["node_id", "cluster_id"]
    assert len(df) == 6
    assert df.set_index("node_id").loc["e", "cluster_id"] == "cluster-1"


def test_identical_partitions_are_fully_stable(baseline):
    """Test that comparing a partition with itself gives perfect scores."""
    metrics = calculate_stability_metrics(baseline, baseline)

    assert metrics["ari"] == pytest.approx(1.0)
    assert metrics["nmi"] == pytest.approx(1.0)
    assert metrics["agreement"] == 1.0
    assert metrics["overlap_count"] == 6
    assert metrics["total_count"] == 6


def test_relabeled_partition_is_still_stable(baseline):
    """Test that swapping cluster ids does not count as instability."""
    current = [_cluster("cluster-0", "def"), _cluster("cluster-1", "abc")]
    metrics = calculate_stability_metrics(baseline, current)

    assert metrics["ari"] == pytest.approx(1.0)
    assert metrics["agreement"] == 1.0


def test_partial_change_lowers_scores(baseline):
    """Test that moving nodes between clusters reduces agreement."""
    current = [_cluster("cluster-0", "abcd"), _cluster("cluster-1", "ef")]
    metrics = calculate_stability_metrics(baseline, current)

    assert metrics["ari"] < 1.0
    assert metrics["agreement"] == pytest.approx(5 / 6)
    assert metrics["total_count"] == 6


def test_disjoint_node_sets_score_zero(baseline):
    """Test that partitions without shared nodes yield zeros."""
    metrics = calculate_stability_metrics(baseline, [_cluster("cluster-0", "xyz")])

    assert metrics == {"ari": 0.0, "nmi": 0.0, "agreement": 0.0, "overlap_count": 0, "total_count": 0}


def test_track_cluster_evolution():
    """Test birth, death and stable classification by overlap."""
    baseline = [_cluster("c0", "abcd"), _cluster("c1", "ef")]
    current = [_cluster("x0", "abc"), _cluster("x1", "d"), _cluster("x2", "gh")]

    evolution = track_cluster_evolution(baseline, current)

    assert evolution["stable_clusters"] == {"x0": "c0"}
    assert evolution["stable_count"] == 1
    assert evolution["birth_clusters"] == ["x1", "x2"]
    assert evolution["death_clusters"] == ["c1"]
    assert evolution["avg_size_change_pct"] == pytest.approx(-25.0)
    assert evolution["std_size_change_pct"] == pytest.approx(0.0)
