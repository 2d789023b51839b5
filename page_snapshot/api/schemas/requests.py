"""Request schemas for the snapshot store API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadRequest(BaseModel):
    """Snapshot upload request.

    ``html`` carries either the document itself or, when ``compressed`` is
    true, the base64-encoded gzip of the document.
    """

    model_config = ConfigDict(populate_by_name=True)

    html: Optional[str] = Field(
        default=None,
        description="Document, or its packed form when compressed is true"
    )

    compressed: bool = Field(
        default=False,
        description="Whether html is base64-encoded gzip"
    )

    title: Optional[str] = Field(
        default=None,
        description="Title of the captured page"
    )

    source_url: Optional[str] = Field(
        default=None,
        alias="sourceUrl",
        description="URL the page was captured from"
    )

    expires_in: Optional[str] = Field(
        default=None,
        alias="expiresIn",
        description="Expiration string such as 1h, 7d, 30m or never",
        examples=["1h", "7d", "never"]
    )
