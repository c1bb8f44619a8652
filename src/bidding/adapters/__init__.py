"""Concrete collaborator adapters: snapshot catalogue, HTTP inventory, JSON deployment."""

from bidding.adapters.deployment import JsonDeploymentSink
from bidding.adapters.inventory import HttpInventoryChecker, fetch_inventory
from bidding.adapters.snapshot import SnapshotCatalogue, read_snapshot_file

__all__ = [
    "HttpInventoryChecker",
    "JsonDeploymentSink",
    "SnapshotCatalogue",
    "fetch_inventory",
    "read_snapshot_file",
]
