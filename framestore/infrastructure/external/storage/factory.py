"""Storage service factory: creates the s3, local, or openlist backend from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from framestore.application.interfaces.storage import StorageProtocol
from framestore.domain.enums import StorageProvider
from framestore.domain.exceptions import StorageConfigurationError

if TYPE_CHECKING:
    from framestore.core.config import Settings

logger = logging.getLogger(__name__)


class StorageFactory:
    """Factory for the single storage backend active in this process."""

    @staticmethod
    def create_storage_service(settings: "Settings") -> StorageProtocol:
        """Create storage service from settings. Called once at startup.

        Args:
            settings: Application settings (provider discriminant + connection fields).

        Returns:
            S3StorageService, LocalStorageService or OpenListStorageService.

        Raises:
            StorageConfigurationError: Unknown provider or missing required config.
        """
        provider = settings.storage_provider.lower()

        if provider == StorageProvider.S3:
            # No endpoint means AWS S3 itself.
            if not settings.s3_bucket:
                raise StorageConfigurationError(
                    provider, "S3_BUCKET required for s3 storage provider"
                )
            from framestore.infrastructure.external.storage.s3_storage import (
                S3StorageService,
            )

            secret = settings.s3_secret_access_key
            service: StorageProtocol = S3StorageService(
                bucket=settings.s3_bucket or "",
                region=settings.s3_region,
                endpoint_url=settings.s3_endpoint,
                access_key=settings.s3_access_key_id,
                secret_key=secret.get_secret_value() if secret else None,
                prefix=settings.s3_prefix,
                cdn_url=settings.s3_cdn_url,
                force_path_style=settings.s3_force_path_style,
                multipart_threshold=settings.s3_multipart_threshold,
                multipart_chunk_size=settings.s3_multipart_chunk_size,
            )
        elif provider == StorageProvider.LOCAL:
            if not settings.local_path:
                raise StorageConfigurationError(
                    provider, "LOCAL_PATH required for local storage provider"
                )
            from framestore.infrastructure.external.storage.local_storage import (
                LocalStorageService,
            )

            service = LocalStorageService(
                storage_root=settings.local_path,
                base_url=settings.local_base_url,
                prefix=settings.local_prefix,
            )
        elif provider == StorageProvider.OPENLIST:
            token = settings.openlist_token.get_secret_value() if settings.openlist_token else ""
            missing = [
                name
                for name, value in (
                    ("OPENLIST_BASE_URL", settings.openlist_base_url),
                    ("OPENLIST_TOKEN", token),
                )
                if not value
            ]
            if missing:
                raise StorageConfigurationError(
                    provider,
                    f"{', '.join(missing)} required for openlist storage provider",
                )
            from framestore.infrastructure.external.storage.openlist_storage import (
                OpenListEndpoints,
                OpenListStorageService,
            )

            service = OpenListStorageService(
                base_url=settings.openlist_base_url or "",
                token=token,
                root_path=settings.openlist_root_path,
                endpoints=OpenListEndpoints(
                    upload=settings.openlist_endpoint_upload,
                    download=settings.openlist_endpoint_download,
                    list=settings.openlist_endpoint_list,
                    delete=settings.openlist_endpoint_delete,
                    meta=settings.openlist_endpoint_meta,
                ),
                path_field=settings.openlist_path_field,
                cdn_url=settings.openlist_cdn_url,
                timeout=settings.openlist_timeout,
            )
        else:
            raise StorageConfigurationError(
                provider,
                f"Unknown storage provider: {provider}. "
                f"Supported: {', '.join(StorageProvider.values())}",
            )

        logger.info("Storage provider initialized: %s", provider)
        return service
