"""Environment provisioning for envdeck."""

from envdeck.provision.cancellation import CancellationScope
from envdeck.provision.provider import DevCenterProvisionProvider
from envdeck.provision.watch import ProgressWatcher, WatchSession, WatchState

__all__ = [
    "CancellationScope",
    "DevCenterProvisionProvider",
    "ProgressWatcher",
    "WatchSession",
    "WatchState",
]
