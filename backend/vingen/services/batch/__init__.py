"""Batch VIN generation package."""

from vingen.services.batch.batch_service import BatchAllocator, BatchRequest, BatchResult

__all__ = ["BatchAllocator", "BatchRequest", "BatchResult"]
