import mimetypes
import time

import aiobotocore.session
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.logging_config import logger
from app.schemas.document import StoredFile


class StorageError(Exception):
    pass


def get_tender_document_path(tender_id: str, file_name: str) -> str:
    return f"tenders/{tender_id}/documents/{int(time.time() * 1000)}_{file_name}"


def get_bid_document_path(tender_id: str, bid_id: str, file_name: str) -> str:
    return f"tenders/{tender_id}/bids/{bid_id}/documents/{int(time.time() * 1000)}_{file_name}"


def _create_client():
    session = aiobotocore.session.get_session()
    return session.create_client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT_URL,
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION
    )


def _public_url(path: str) -> str:
    return f"{settings.S3_ENDPOINT_URL}/{settings.S3_BUCKET_NAME}/{path}"


async def upload_file(content: bytes, path: str, file_name: str, content_type: str | None = None) -> StoredFile:
    """Кладёт файл в S3 по ключу path. Повторная загрузка по тому же ключу перезаписывает объект."""
    content_type = content_type or mimetypes.guess_type(file_name)[0] or "application/octet-stream"
    logger.info(f"Uploading {file_name} ({len(content)} bytes) to {path}")
    try:
        async with _create_client() as s3_client:
            await s3_client.put_object(
                Bucket=settings.S3_BUCKET_NAME,
                Key=path,
                Body=content,
                ContentType=content_type
            )
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Error uploading {file_name} to {path}: {str(e)}")
        raise StorageError(f"Kunne ikke laste opp fil: {file_name}") from e

    url = _public_url(path)
    logger.info(f"Successfully uploaded {file_name} to S3: {url}")
    return StoredFile(url=url, path=path, name=file_name, size=len(content), type=content_type)


async def delete_file(path: str) -> None:
    """Удаляет объект. Удаление несуществующего ключа в S3 не является ошибкой."""
    try:
        async with _create_client() as s3_client:
            await s3_client.delete_object(Bucket=settings.S3_BUCKET_NAME, Key=path)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Error deleting {path} from S3: {str(e)}")
        raise StorageError(f"Kunne ikke slette fil: {path}") from e
    logger.info(f"Deleted {path} from S3")
