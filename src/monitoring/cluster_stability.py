"""
Cluster stability between successive analyses of a graph.

Compares two partitions using:
- Adjusted Rand Index (ARI)
- Normalized Mutual Information (NMI)
- Agreement of nodes whose cluster maps onto their previous cluster
- Cluster evolution (birth / death / stable) by best node overlap
"""

import logging
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import adjusted_rand_score, normalized_mutual_info_score

from src.graph.models import Cluster

logger = logging.getLogger(__name__)

STABLE_OVERLAP = 0.5


def clusters_to_frame(clusters: Sequence[Cluster]) -> pd.DataFrame:
    """One row per node: node_id, cluster_id."""
    rows = [
        {"node_id": node_id, "cluster_id": cluster.id}
        for cluster in clusters
        for node_id in cluster.node_ids
    ]
    return pd.DataFrame(rows, columns=["node_id", "cluster_id"])


def _best_matches(baseline: Sequence[Cluster], current: Sequence[Cluster]) -> Dict[str, Optional[str]]:
    """Map each current cluster id to the baseline cluster it overlaps most (Jaccard >= STABLE_OVERLAP)."""
    matches: Dict[str, Optional[str]] = {}
    baseline_sets = [(cluster.id, set(cluster.node_ids)) for cluster in baseline]
    for cluster in current:
        members = set(cluster.node_ids)
        best_id, best_score = None, 0.0
        for baseline_id, baseline_members in baseline_sets:
            union = members | baseline_members
            score = len(members & baseline_members) / len(union) if union else 0.0
            if score > best_score:
                best_id, best_score = baseline_id, score
        matches[cluster.id] = best_id if best_score >= STABLE_OVERLAP else None
    return matches


def calculate_stability_metrics(
    baseline_clusters: Sequence[Cluster],
    current_clusters: Sequence[Cluster],
) -> Dict[str, float]:
    """
    Calculate stability metrics between two partitions.

    Only nodes present in both partitions are compared.

    Args:
        baseline_clusters: Earlier partition
        current_clusters: New partition

    Returns:
        Dict with ari, nmi, agreement, overlap_count and total_count
    """
    merged = clusters_to_frame(baseline_clusters).merge(
        clusters_to_frame(current_clusters),
        on="node_id",
        suffixes=("_baseline", "_current"),
        how="inner",
    )

    if len(merged) == 0:
        return {
            "ari": 0.0,
            "nmi": 0.0,
            "agreement": 0.0,
            "overlap_count": 0,
            "total_count": 0,
        }

    baseline_labels = merged["cluster_id_baseline"].values
    current_labels = merged["cluster_id_current"].values

    ari = float(adjusted_rand_score(baseline_labels, current_labels))
    nmi = float(normalized_mutual_info_score(baseline_labels, current_labels))

    matches = _best_matches(baseline_clusters, current_clusters)
    mapped = merged["cluster_id_current"].map(matches)
    same_cluster = int((mapped == merged["cluster_id_baseline"]).sum())

    return {
        "ari": ari,
        "nmi": nmi,
        "agreement": same_cluster / len(merged),
        "overlap_count": same_cluster,
        "total_count": int(len(merged)),
    }


def track_cluster_evolution(
    baseline_clusters: Sequence[Cluster],
    current_clusters: Sequence[Cluster],
) -> Dict[str, Any]:
    """
    Track cluster evolution: birth, death and stable clusters.

    A current cluster is stable when it overlaps a baseline cluster by at least
    STABLE_OVERLAP (Jaccard); unmatched current clusters are births and
    unmatched baseline clusters are deaths.
    """
    matches = _best_matches(baseline_clusters, current_clusters)
    stable = {current_id: baseline_id for current_id, baseline_id in matches.items() if baseline_id is not None}
    matched_baseline = set(stable.values())

    birth_clusters = [cluster.id for cluster in current_clusters if cluster.id not in stable]
    death_clusters = [cluster.id for cluster in baseline_clusters if cluster.id not in matched_baseline]

    baseline_sizes = {cluster.id: len(cluster.node_ids) for cluster in baseline_clusters}
    current_sizes = {cluster.id: len(cluster.node_ids) for cluster in current_clusters}
    size_changes = [
        (current_sizes[current_id] - baseline_sizes[baseline_id]) / baseline_sizes[baseline_id] * 100
        for current_id, baseline_id in stable.items()
        if baseline_sizes[baseline_id] > 0
    ]

    return {
        "birth_count": len(birth_clusters),
        "death_count": len(death_clusters),
        "stable_count": len(stable),
        "birth_clusters": birth_clusters,
        "death_clusters": death_clusters,
        "stable_clusters": stable,
        "avg_size_change_pct": float(np.mean(size_changes)) if size_changes else 0.0,
        "std_size_change_pct": float(np.std(size_changes)) if size_changes else 0.0,
    }
