"""Backend (MAAS) and client-facing context models."""

from .context import (
    FilesystemContext,
    MachineContext,
    MountpointContext,
    NetworkContext,
    OSInfo,
    PartitionContext,
    StorageContext,
    TagContext,
)
from .maas import (
    VLAN,
    BlockDevice,
    Filesystem,
    LinkInfo,
    Machine,
    NetworkInterface,
    Partition,
    Subnet,
    Tag,
)

__all__ = [
    "BlockDevice",
    "Filesystem",
    "FilesystemContext",
    "LinkInfo",
    "Machine",
    "MachineContext",
    "MountpointContext",
    "NetworkContext",
    "NetworkInterface",
    "OSInfo",
    "Partition",
    "PartitionContext",
    "StorageContext",
    "Subnet",
    "Tag",
    "TagContext",
    "VLAN",
]
