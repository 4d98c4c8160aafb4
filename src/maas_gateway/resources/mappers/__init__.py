"""Bidirectional mappers between MAAS backend models and context models."""

from .base import BaseResourceMapper, MapperRegistry, ResourceMapper
from .machine import MachineMapper
from .network import NetworkMapper
from .service import MapperService, default_mappers
from .storage import StorageMapper
from .tag import TagMapper

__all__ = [
    "BaseResourceMapper",
    "MachineMapper",
    "MapperRegistry",
    "MapperService",
    "NetworkMapper",
    "ResourceMapper",
    "StorageMapper",
    "TagMapper",
    "default_mappers",
]
