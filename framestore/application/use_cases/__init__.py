"""Application use cases."""

from framestore.application.use_cases.uploads import UploadPipeline

__all__ = ["UploadPipeline"]
