"""Cluster booking services."""

from .optimizer import optimize_cluster

__all__ = ["optimize_cluster"]
