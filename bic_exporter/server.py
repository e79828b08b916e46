"""BIC Directory Exporter Python Server"""

import sys
import logging
import asyncio
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI, UploadFile, File, Query, Form, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from rich.console import Console
from rich.logging import RichHandler

from bic_exporter import __version__
from bic_exporter.engine.config import EngineConfig, PageRange
from bic_exporter.extractors.table_extractor import extract_table_from_binary, headers
from bic_exporter.models.bic_types import ErrorResponse, ExtractionResponse
from bic_exporter.utils.csv_export import to_csv
from bic_exporter.utils.endpoint_decorators import handle_pdf_upload

API_VERSION = __version__
ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
DEFAULT_TIMEOUT_SECONDS = 300
MIN_TIMEOUT_SECONDS = 30
MAX_TIMEOUT_SECONDS = 600

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Not a usable directory PDF"},
    408: {"model": ErrorResponse, "description": "Processing timed out"},
    422: {"model": ErrorResponse, "description": "Malformed record in strict mode"},
    500: {"model": ErrorResponse, "description": "Internal extraction fault"},
}

logger = logging.getLogger("rich")

app = FastAPI(
    title="BIC Directory Exporter API",
    description="Extract the ISO 9362 BIC directory table from PDF files",
    version=API_VERSION
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _build_config(strict_mode: bool, start_page: int, end_page: Optional[int]) -> EngineConfig:
    return EngineConfig(strict_mode=strict_mode, pages=PageRange(start=start_page, end=end_page))


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "message": "BIC Directory Exporter API",
        "version": API_VERSION,
        "features": [
            "ISO BIC directory table extraction",
            "CSV conversion",
            "Strict and lenient malformed-row handling",
        ]
    }


@app.get("/health")
async def health_check():
    """Health check with dependency verification"""
    try:
        import pdfminer
        import pikepdf
        import numpy

        return {
            "status": "healthy",
            "version": API_VERSION,
            "features": {
                "content_parsing": "pikepdf",
                "font_metrics": "pdfminer.six",
                "transforms": "numpy",
            },
            "dependencies": {
                "pdfminer": pdfminer.__version__,
                "pikepdf": pikepdf.__version__,
                "numpy": numpy.__version__
            }
        }
    except ImportError as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error": f"Missing dependency: {str(e)}"
            }
        )


@app.get("/headers")
async def get_headers():
    """The 10 column names, in output order"""
    return headers()


@app.post("/extract-table", response_model=ExtractionResponse, responses=ERROR_RESPONSES)
@handle_pdf_upload
async def extract_table(
    *,
    request: Request,
    file: UploadFile = File(...),
    strict_mode: Optional[bool] = Form(False, description="Fail on the first malformed record instead of skipping it"),
    start_page: Optional[int] = Query(2, ge=1, description="First page holding the table (1-based)"),
    end_page: Optional[int] = Query(None, ge=1, description="Last page holding the table (1-based), None for all pages"),
    processing_timeout: Optional[int] = Query(DEFAULT_TIMEOUT_SECONDS, ge=MIN_TIMEOUT_SECONDS, le=MAX_TIMEOUT_SECONDS, description="Processing timeout in seconds")
):
    """
    Extract every directory record from an uploaded BIC directory PDF.

    **Returns:**
    - `headers`: the 10 constant column names
    - `count`: number of records
    - `records`: records in document order, each a list of 10 strings
    """
    config = _build_config(strict_mode, start_page, end_page)
    logger.info(f"Extracting table from {file.filename} ({config!r})")

    records = await asyncio.to_thread(extract_table_from_binary, request.state.file_content, config)

    logger.info(f"Successfully extracted {len(records)} records from {file.filename}")
    return ExtractionResponse(count=len(records), records=records)


@app.post("/convert-csv", responses=ERROR_RESPONSES)
@handle_pdf_upload
async def convert_csv(
    *,
    request: Request,
    file: UploadFile = File(...),
    strict_mode: Optional[bool] = Form(False, description="Fail on the first malformed record instead of skipping it"),
    processing_timeout: Optional[int] = Query(DEFAULT_TIMEOUT_SECONDS, ge=MIN_TIMEOUT_SECONDS, le=MAX_TIMEOUT_SECONDS, description="Processing timeout in seconds")
):
    """
    Convert an uploaded BIC directory PDF to CSV.

    Returns UTF-8 CSV text with a header row, minimal quoting and "\\n" line endings.
    """
    config = _build_config(strict_mode, 2, None)
    records = await asyncio.to_thread(extract_table_from_binary, request.state.file_content, config)

    filename = file.filename if file.filename else "ISOBIC.pdf"
    csv_name = os.path.splitext(filename)[0] + ".csv"
    logger.info(f"Converted {filename} to CSV ({len(records)} records)")

    return Response(
        content=to_csv(headers(), records),
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={csv_name}",
            "X-Record-Count": str(len(records)),
        }
    )


def _configure_server_logging():
    """Configure logging with Rich handler and filters for clean output"""
    console = Console(force_terminal=True)

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    class ShutdownFilter(logging.Filter):
        """Filter out shutdown-related log messages"""
        def filter(self, record):
            if record.exc_info and record.exc_info[0] in (KeyboardInterrupt, asyncio.CancelledError):
                return False
            if "CancelledError" in str(record.msg) or "KeyboardInterrupt" in str(record.msg):
                return False
            return True

    rich_handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        show_time=False,
        show_path=True
    )
    rich_handler.addFilter(ShutdownFilter())

    # Silence everything by default
    logging.basicConfig(level=logging.WARNING, format="%(message)s", handlers=[rich_handler])

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)

    for module_name in ["rich", "bic_exporter"]:
        logging.getLogger(module_name).setLevel(log_level)

    return console


def _find_free_port(start_port: int = 8000) -> int:
    """Find an available port starting from the given port"""
    import socket

    port = start_port
    max_port = start_port + 100

    while port < max_port:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind(('localhost', port))
                return port
        except OSError:
            port += 1

    return start_port


def main():
    server_console = _configure_server_logging()
    free_port = _find_free_port()
    server_console.print(f"[bold green]Starting server on http://localhost:{free_port}[/bold green]")

    try:
        uvicorn.run("bic_exporter.server:app", host="0.0.0.0", port=free_port, log_config=None)
    except KeyboardInterrupt:
        server_console.print("\n[bold yellow]Server stopped.[/bold yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
