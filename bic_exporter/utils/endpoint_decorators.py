"""
Decorators for FastAPI endpoint error handling.

Uploaded directory PDFs are validated in memory and handed to the endpoint
as bytes; the extraction itself runs against the byte buffer so no
temporary file is written.
"""

import logging
import asyncio
from functools import wraps
from typing import Callable, Optional
from fastapi import UploadFile, HTTPException, Request

from bic_exporter.utils.validation import (
    validate_file_content,
    ExtractionFault,
    LayoutCalibrationError,
    PdfValidationError,
    ProcessingTimeoutError,
    RecordArityError,
    RecordIntegrityError,
    VALIDATION_CONSTANTS
)

logger = logging.getLogger(__name__)


def handle_pdf_upload(func: Callable) -> Callable:
    """
    Decorator to handle common upload patterns:
    - File type validation
    - File content reading and validation
    - Processing timeout management
    - Mapping of exporter errors to HTTP status codes

    The decorated function must accept `request: Request` and `file: UploadFile`
    as keyword arguments. The raw bytes are stored in `request.state.file_content`.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        request: Request = kwargs.get('request')
        if not request:
            raise HTTPException(
                status_code=500,
                detail="Endpoint decorated with handle_pdf_upload must accept 'request: Request'"
            )

        file: UploadFile = kwargs.get('file')
        if not file:
            raise HTTPException(status_code=400, detail="File parameter is required")

        processing_timeout: Optional[int] = kwargs.get('processing_timeout')
        timeout_seconds = processing_timeout or VALIDATION_CONSTANTS['MAX_PROCESSING_TIME_SECONDS']

        if not file.filename or not file.filename.lower().endswith('.pdf'):
            raise HTTPException(status_code=400, detail="Only PDF files are supported")

        try:
            content = await file.read()
        except Exception as e:
            logger.error(f"Error reading uploaded file: {e}")
            raise HTTPException(status_code=400, detail=f"Error reading uploaded file: {str(e)}")

        is_valid_content, content_error = validate_file_content(
            content,
            max_size_mb=VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB']
        )
        if not is_valid_content:
            logger.warning(f"File content validation failed for {file.filename}: {content_error}")
            raise HTTPException(status_code=400, detail=content_error)

        request.state.file_content = content

        try:
            return await asyncio.wait_for(func(*args, **kwargs), timeout=timeout_seconds)

        except asyncio.TimeoutError:
            logger.error(f"Processing timed out after {timeout_seconds}s for {file.filename}")
            raise HTTPException(
                status_code=408,
                detail=f"PDF processing timed out after {timeout_seconds} seconds."
            )
        except ProcessingTimeoutError as e:
            logger.error(f"Processing timeout for {file.filename}: {e}")
            raise HTTPException(status_code=408, detail=f"Processing timeout: {str(e)}")
        except (PdfValidationError, LayoutCalibrationError) as e:
            logger.warning(f"Unusable directory PDF {file.filename}: {e}")
            raise HTTPException(status_code=400, detail=str(e))
        except (RecordIntegrityError, RecordArityError) as e:
            logger.warning(f"Record integrity failure for {file.filename}: {e}")
            raise HTTPException(status_code=422, detail=str(e))
        except ExtractionFault as e:
            logger.error(f"Extraction fault for {file.filename}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error processing {file.filename}: {e}")
            raise HTTPException(
                status_code=500,
                detail=f"Internal server error during PDF processing: {str(e)}"
            )

    return wrapper
