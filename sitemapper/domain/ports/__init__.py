"""Ports connecting the engine to external collaborators."""
from .domain_catalog import DomainCatalog
from .file_sink import FileSink, SinkWriteResult

__all__ = ["DomainCatalog", "FileSink", "SinkWriteResult"]
