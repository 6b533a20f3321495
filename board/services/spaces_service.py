"""Image hosting on a DigitalOcean Spaces (S3-compatible) bucket."""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from boto3.session import Session
from botocore.client import BaseClient
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from ..config import get_settings
from ..errors import UnexpectedError
from ..security.secrets import MissingSecretError, is_placeholder, require_secret
from .media_service import ImageUpload, StoredImage, object_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpacesConfig:
    key: str
    secret: str
    region: str
    bucket: str
    public_endpoint: str

    @property
    def api_endpoint(self) -> str:
        return f"https://{self.region}.digitaloceanspaces.com"

    def public_url(self, key: str) -> str:
        return f"{self.public_endpoint}/{key.lstrip('/')}"


class SpacesConfigurationError(RuntimeError):
    """DO_SPACES_* settings are missing or still placeholders."""


class SpacesDeletionError(RuntimeError):
    pass


def _public_endpoint(raw: str) -> str:
    endpoint = raw.strip().rstrip("/")
    if not urlparse(endpoint).scheme:
        endpoint = f"https://{endpoint.lstrip(':/')}"
    if not urlparse(endpoint).netloc:
        raise SpacesConfigurationError("DO_SPACES_ENDPOINT must include a hostname")
    return endpoint


@lru_cache(maxsize=1)
def load_spaces_config() -> SpacesConfig:
    """Build the bucket configuration from settings and the key/secret pair."""

    settings = get_settings()
    values = {
        "DO_SPACES_REGION": settings.spaces_region,
        "DO_SPACES_NAME": settings.spaces_bucket,
        "DO_SPACES_ENDPOINT": settings.spaces_endpoint,
    }
    missing = sorted(name for name, value in values.items() if is_placeholder(value))
    if missing:
        raise SpacesConfigurationError("Missing Spaces configuration: " + ", ".join(missing))

    try:
        key = require_secret("DO_SPACES_KEY")
        secret = require_secret("DO_SPACES_SECRET")
    except MissingSecretError as exc:
        raise SpacesConfigurationError(str(exc)) from exc

    return SpacesConfig(
        key=key,
        secret=secret,
        region=values["DO_SPACES_REGION"].strip(),
        bucket=values["DO_SPACES_NAME"].strip(),
        public_endpoint=_public_endpoint(values["DO_SPACES_ENDPOINT"]),
    )


def _make_client(config: SpacesConfig) -> BaseClient:
    return Session().client(
        "s3",
        region_name=config.region,
        endpoint_url=config.api_endpoint,
        aws_access_key_id=config.key,
        aws_secret_access_key=config.secret,
    )


class SpacesImageStorage:
    """``ImageStorage`` that uploads with a public-read ACL and deletes by key."""

    def __init__(self, client: BaseClient | None = None, config: SpacesConfig | None = None) -> None:
        self._client = client
        self._config = config

    @property
    def config(self) -> SpacesConfig:
        if self._config is None:
            try:
                self._config = load_spaces_config()
            except SpacesConfigurationError as exc:
                logger.error("Spaces storage is not configured: %s", exc)
                raise UnexpectedError("Image storage is not configured") from exc
        return self._config

    @property
    def client(self) -> BaseClient:
        if self._client is None:
            self._client = _make_client(self.config)
        return self._client

    async def save(self, image: ImageUpload) -> StoredImage:
        config = self.config
        client = self.client
        key = object_key(image.extension)

        def _upload() -> None:
            client.upload_fileobj(
                io.BytesIO(image.data),
                config.bucket,
                key,
                ExtraArgs={"ACL": "public-read", "ContentType": image.content_type},
            )

        try:
            await run_in_threadpool(_upload)
        except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network bound
            logger.exception("Upload of %s to bucket %s failed", key, config.bucket)
            raise UnexpectedError("Unable to store image") from exc

        logger.info("Uploaded image %s to bucket %s", key, config.bucket)
        return StoredImage(url=config.public_url(key), key=key)

    def delete(self, key: str) -> None:
        if not key:
            return
        try:
            self.client.delete_object(Bucket=self.config.bucket, Key=key.lstrip("/"))
        except (ClientError, BotoCoreError) as exc:  # pragma: no cover - network bound
            raise SpacesDeletionError(f"Unable to delete {key} from storage") from exc
        logger.info("Deleted image %s from bucket %s", key, self.config.bucket)


__all__ = [
    "SpacesConfig",
    "SpacesConfigurationError",
    "SpacesDeletionError",
    "SpacesImageStorage",
    "load_spaces_config",
]
