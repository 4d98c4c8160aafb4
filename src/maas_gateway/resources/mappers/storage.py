"""Block device mapper.

Partitions are numbered from 1 in backend order. Mountpoints are derived from
the filesystems mounted on the device itself and on its partitions.
"""

from __future__ import annotations

from maas_gateway.models.context import (
    FilesystemContext,
    MountpointContext,
    PartitionContext,
    StorageContext,
)
from maas_gateway.models.maas import BlockDevice, Filesystem, Partition
from maas_gateway.resources.mappers.base import BaseResourceMapper, parse_backend_id


def filesystem_to_context(filesystem: Filesystem | None) -> FilesystemContext | None:
    if filesystem is None:
        return None
    return FilesystemContext(
        type=filesystem.fstype,
        uuid=filesystem.uuid,
        mount_point=filesystem.mount_point,
        mount_options=filesystem.mount_options,
    )


def filesystem_to_backend(filesystem: FilesystemContext | None) -> Filesystem | None:
    if filesystem is None:
        return None
    return Filesystem(
        fstype=filesystem.type,
        uuid=filesystem.uuid,
        mount_point=filesystem.mount_point,
        mount_options=filesystem.mount_options,
    )


class StorageMapper(BaseResourceMapper):
    name = "storage"
    backend_model = BlockDevice
    context_model = StorageContext

    def _to_context(self, device: BlockDevice) -> StorageContext:
        partitions = [
            PartitionContext(
                id=str(partition.id),
                number=index + 1,
                size=partition.size,
                path=partition.path,
                filesystem=filesystem_to_context(partition.filesystem),
            )
            for index, partition in enumerate(device.partitions)
        ]
        mountpoints: list[MountpointContext] = []
        mounted = [(device.path, device.filesystem)]
        mounted.extend((partition.path, partition.filesystem) for partition in device.partitions)
        for path, filesystem in mounted:
            if filesystem is not None and filesystem.mount_point:
                mountpoints.append(
                    MountpointContext(
                        path=filesystem.mount_point,
                        options=filesystem.mount_options,
                        device=path,
                    )
                )
        return StorageContext(
            id=str(device.id),
            name=device.name,
            type=device.type,
            path=device.path,
            size=device.size,
            used_size=device.used_size,
            available_size=device.available_size,
            model=device.model,
            serial=device.serial,
            partitions=partitions,
            filesystem=filesystem_to_context(device.filesystem),
            tags=list(device.tags),
            mountpoints=mountpoints,
        )

    def _to_backend(self, context: StorageContext) -> BlockDevice:
        partitions = [
            Partition(
                id=parse_backend_id(partition.id, kind="partition"),
                size=partition.size,
                path=partition.path,
                filesystem=filesystem_to_backend(partition.filesystem),
            )
            for partition in context.partitions
        ]
        return BlockDevice(
            id=parse_backend_id(context.id, kind="storage"),
            name=context.name,
            type=context.type,
            path=context.path,
            size=context.size,
            used_size=context.used_size,
            available_size=context.available_size,
            model=context.model,
            serial=context.serial,
            partitions=partitions,
            tags=list(context.tags),
            filesystem=filesystem_to_backend(context.filesystem),
        )


__all__ = ["StorageMapper", "filesystem_to_backend", "filesystem_to_context"]
