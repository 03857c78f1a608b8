"""Pydantic schemas for SDS request and response bodies."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class SdsModel(BaseModel):
    """Base for SDS payloads: camelCase aliases, unknown fields ignored."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class UploadResponse(SdsModel):
    """Response of POST /files. Only the id is consumed."""
    id: str


class SdsFile(SdsModel):
    """One entry of the paginated GET /files inventory."""
    id: str
    pointer: Optional[str] = None
    file_name: str = Field(default="", alias="fileName")
    creation_date: Optional[str] = Field(default=None, alias="creationDate")


class SdsFileInfo(SdsModel):
    """Response of GET /files/info/{id}."""
    size: int = 0
    unencrypted_size: int = Field(default=0, alias="unencryptedSize")
    id: Optional[str] = None

    @property
    def logical_size(self) -> Optional[int]:
        """Unencrypted size when the SDS reports one; the stored size may include encryption overhead."""
        if self.unencrypted_size > 0:
            return self.unencrypted_size
        return None


class StorageStatus(SdsModel):
    """Status of one SDS backing node, as returned by GET /health."""
    host: str
    status: str
    region: Optional[str] = None


class RemoteErrorBody(SdsModel):
    """Error body returned by the SDS on 4xx/5xx."""
    message: Any = None
    detail: Any = None
    title: Any = None
    error: Any = None

    def text(self) -> str:
        for value in (self.message, self.detail, self.title, self.error):
            if value:
                return value if isinstance(value, str) else str(value)
        return "Unknown error"
