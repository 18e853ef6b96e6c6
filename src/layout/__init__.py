"""
Layout strategies (force-directed, hierarchical, circular), eased
transitions between layouts and generation-tracked layout requests.
"""
