"""
Knowledge-graph analytics: graph model, centrality scoring, community
detection and the filter pipeline that feeds layout.
"""
