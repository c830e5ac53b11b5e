"""Metadata adapters for ESQL."""

from esql.metadata.adapter import MetadataAdapter, RegistryMetadataAdapter
from esql.metadata.orm import SQLAlchemyMetadataAdapter, default_adapter

__all__ = [
    "MetadataAdapter",
    "RegistryMetadataAdapter",
    "SQLAlchemyMetadataAdapter",
    "default_adapter",
]
