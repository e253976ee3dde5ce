"""
RecordHub Backend - File Route Handlers
========================================

What:  Upload, list, download and delete files in the upload directory.

    POST   /api/files/upload               multipart field "file" → 201
    GET    /api/files                      listing, newest first
    GET    /api/files/{name}/download      attachment with the original filename
    DELETE /api/files/{name}

Stored files are also reachable read-only at /uploads/{name} through the
static mount in main.py.
"""

import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import FileResponse

from recordhub.schemas.record import FileListResponse, FileUploadResponse, MessageResponse
from recordhub.services.file_service import FileService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


@router.post(
    "/upload",
    status_code=201,
    response_model=FileUploadResponse,
    summary="Upload a file",
)
async def upload_file(
    file: UploadFile = File(..., description="Spreadsheet, JSON or text file"),
    files: FileService = Depends(get_file_service),
) -> FileUploadResponse:
    try:
        content = await file.read()
        logger.info(
            "Received upload: filename=%s, size=%d bytes",
            file.filename or "unknown",
            len(content),
        )
        stored = await files.validate_and_store(
            filename=file.filename or "upload",
            content=content,
            content_length=file.size,
        )
    finally:
        await file.close()
    return FileUploadResponse(file=stored)


@router.get("", response_model=FileListResponse, summary="List uploaded files")
async def list_files(files: FileService = Depends(get_file_service)) -> FileListResponse:
    stored = files.list_files()
    return FileListResponse(files=stored, total_count=len(stored))


@router.get("/{filename}/download", summary="Download a file")
async def download_file(
    filename: str,
    files: FileService = Depends(get_file_service),
) -> FileResponse:
    path = files.resolve(filename)
    return FileResponse(
        path=str(path),
        filename=files.original_name(path.name),
        media_type="application/octet-stream",
    )


@router.delete("/{filename}", response_model=MessageResponse, summary="Delete a file")
async def delete_file(
    filename: str,
    files: FileService = Depends(get_file_service),
) -> MessageResponse:
    await files.delete_file(filename)
    return MessageResponse(message="File deleted")
