"""Clusterloom core: the clusterer, its configuration and the unit graph loader.

Import the submodules directly, e.g.
``from clusterloom.core.clusterer import ClusteringEngine``.
"""
