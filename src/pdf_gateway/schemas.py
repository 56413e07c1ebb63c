####################################
# --- Request/response schemas --- #
####################################

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Response model for `GET /health`."""
    status: str = "OK"
    message: str = "Server is running"


class FileEntry(BaseModel):
    """One object in the bucket."""
    key: str = Field(
        description="The storage key of the file.",
        json_schema_extra={"example": "documents/1718000000000-report.pdf"},
    )
    size: int = Field(description="The size of the file in bytes.")
    last_modified: datetime = Field(alias="lastModified", description="The last modified date of the file.")

    model_config = ConfigDict(populate_by_name=True)


class ListFilesResponse(BaseModel):
    """Response model for `GET /list-files`."""
    success: bool = True
    files: List[FileEntry]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "files": [
                    {
                        "key": "documents/1718000000000-report.pdf",
                        "size": 2048,
                        "lastModified": "2024-06-10T06:13:20Z",
                    }
                ],
            }
        }
    )


class UploadedFile(BaseModel):
    filename: str = Field(description="The name the file was uploaded with.")
    url: str = Field(description="Location of the stored object.")
    key: str = Field(description="The storage key assigned to the file.")
    size: int = Field(description="The size of the file in bytes.")
    uploaded_at: datetime = Field(alias="uploadedAt")

    model_config = ConfigDict(populate_by_name=True)


class UploadResponse(BaseModel):
    """Response model for `POST /upload`."""
    success: bool = True
    file: UploadedFile

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "file": {
                    "filename": "report.pdf",
                    "url": "https://pdf-documents.s3.us-east-1.amazonaws.com/documents/1718000000000-report.pdf",
                    "key": "documents/1718000000000-report.pdf",
                    "size": 2048,
                    "uploadedAt": "2024-06-10T06:13:20Z",
                },
            }
        }
    )


class SignedUrlResponse(BaseModel):
    """Response model for `GET /file/:key`."""
    url: str


class DeleteFileResponse(BaseModel):
    """Response model for `DELETE /file/:key`."""
    success: bool = True
    message: str = "File deleted successfully"


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
    code: Optional[str] = None
