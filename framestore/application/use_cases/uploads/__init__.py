"""Upload use cases."""

from framestore.application.use_cases.uploads.upload_pipeline import UploadPipeline

__all__ = ["UploadPipeline"]
