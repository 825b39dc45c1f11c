"""Adapters for the external override store and compute API."""

from cost_killer.adapters.memory import DryRunComputeClient, InMemoryOverrideStore

__all__ = [
    "DryRunComputeClient",
    "InMemoryOverrideStore",
]
