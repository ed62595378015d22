from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import httpx

from packettool.logger import packet_logger
from packettool.packet_config import DEFAULT_SIGNED_URL_EXPIRY


class DocumentUrlError(Exception):
    details: str

    def __init__(self, file_path, details=""):
        self.file_path = file_path
        self.details = details
        super().__init__("Failed to generate document URL")


class StorageService(Protocol):
    async def create_signed_url(self, file_path: str, expires_in: int = DEFAULT_SIGNED_URL_EXPIRY) -> str: ...


class SupabaseStorage:
    """Signed URLs from a Supabase storage bucket.

    POST {base_url}/storage/v1/object/sign/{bucket}/{path} answers with a
    path-only "signedURL" which is resolved against {base_url}/storage/v1.
    """

    def __init__(self, base_url: str, api_key: str, bucket: str = "documents", client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.bucket = bucket
        self._client = client

    async def create_signed_url(self, file_path: str, expires_in: int = DEFAULT_SIGNED_URL_EXPIRY) -> str:
        sign_url = f"{self.base_url}/storage/v1/object/sign/{self.bucket}/{quote(file_path.lstrip('/'))}"
        headers = {"Authorization": f"Bearer {self.api_key}", "apikey": self.api_key}
        try:
            if self._client is not None:
                response = await self._client.post(sign_url, headers=headers, json={"expiresIn": expires_in})
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(sign_url, headers=headers, json={"expiresIn": expires_in})
            response.raise_for_status()
            payload = response.json()
            signed_path = payload.get("signedURL") or payload.get("signedUrl")
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            packet_logger.exception(f"[SU]Error generating signed URL for {file_path}")
            raise DocumentUrlError(file_path, str(e)) from e

        if not signed_path:
            packet_logger.error(f"[SU]Storage returned no signed URL for {file_path}")
            raise DocumentUrlError(file_path, "empty signed URL")
        if signed_path.startswith("http"):
            return signed_path
        return f"{self.base_url}/storage/v1/{signed_path.lstrip('/')}"


class LocalStorage:
    """Documents on local disk, handed out as file:// URIs. Used by the CLI."""

    def __init__(self, root: Path | str = "."):
        self.root = Path(root)

    async def create_signed_url(self, file_path: str, expires_in: int = DEFAULT_SIGNED_URL_EXPIRY) -> str:
        path = (self.root / file_path).resolve()
        if not path.is_relative_to(self.root.resolve()):
            packet_logger.error(f"[SU]Refusing document outside {self.root}: {file_path}")
            raise DocumentUrlError(file_path, "path is outside the documents directory")
        if not path.is_file():
            packet_logger.error(f"[SU]No such document: {path}")
            raise DocumentUrlError(file_path, f"{path} does not exist")
        return path.as_uri()
