"""Data sources: the CRUD contract and the index server backend."""

from index_feeder.datasource.base import DataSource, OperationResult
from index_feeder.datasource.index_ds import IndexDataSource


__all__ = ["DataSource", "IndexDataSource", "OperationResult"]
