from fastapi import FastAPI, File, Form, Request, UploadFile
import os
import json
import time
import logging
from datetime import datetime
from typing import List, Optional
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware

import config
from sheet_pipeline.models import FileSource
from sheet_pipeline.serializer import content_disposition
from utils.result import Result
from workbook_process import WorkbookOutput, WorkbookProcessor


# Create logs directory if it doesn't exist
os.makedirs(config.LOG_DIR, exist_ok=True)

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Add file handler to write logs to file
log_file_path = os.path.join(config.LOG_DIR, f"app_{datetime.now().strftime('%Y%m%d')}.log")
file_handler = logging.FileHandler(log_file_path)
file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logging.getLogger().addHandler(file_handler)


# Initialize FastAPI app with metadata
app = FastAPI(
    title="Excel Reformat API",
    description="API for re-indexing, merging and formatting Excel workbooks",
    version=config.API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def read_uploads(files: Optional[List[UploadFile]]) -> List[FileSource]:
    """
    Read uploaded files into memory.

    Args:
        files: Files from the multipart form (may be None)

    Returns:
        List of FileSource in upload order
    """
    sources = []
    for upload in files or []:
        content = await upload.read()
        sources.append(FileSource(file_name=upload.filename or "", content=content))
        logger.info(f"File received: {upload.filename}", extra={"file_size": len(content)})
    return sources


def workbook_response(result: Result[WorkbookOutput]) -> Response:
    """Attachment response for a generated workbook, or a JSON error body."""
    if result.is_failure():
        logger.warning(f"Request failed: {result.error}", extra={"status_code": result.status_code.value})
        return JSONResponse(status_code=result.status_code.value, content=result.error_body())
    output = result.data
    return Response(
        content=output.content,
        media_type=output.media_type,
        headers={"Content-Disposition": content_disposition(output.file_name)},
    )


# API Endpoints
@app.get("/health", tags=["Service"])
async def health():
    return {"status": "ok", "version": config.API_VERSION}


@app.post("/api/excel/upload", tags=["Excel Processing"])
async def upload_excel(file: Optional[UploadFile] = File(None)):
    """
    Summarize an uploaded workbook as JSON.

    Returns:
        dict: success, fileName, fileSize, sheets (name, rowCount, columnCount,
        headers, data), processingTime in milliseconds and error when unsuccessful
    """
    started = time.perf_counter()
    sources = await read_uploads([file] if file is not None else None)
    result = WorkbookProcessor.summarize(sources, started)
    return JSONResponse(
        status_code=result.status_code.value,
        content=jsonable_encoder(result.data.to_response_body()),
    )


@app.post("/api/excel/reindex", tags=["Excel Processing"])
async def reindex_excel(file: Optional[UploadFile] = File(None)):
    """Return the uploaded workbook with its identifier column numbered 1..N, unstyled."""
    sources = await read_uploads([file] if file is not None else None)
    return workbook_response(WorkbookProcessor.reindex(sources))


@app.post("/api/excel/process", tags=["Excel Processing"])
async def process_excel(
    files: Optional[List[UploadFile]] = File(None),
    file: Optional[UploadFile] = File(None),
    sheet_names: Optional[List[str]] = Form(None, alias="sheetNames"),
):
    """
    Merge one or more uploaded workbooks into a single formatted workbook.

    Files may be sent as repeated `files` fields (or a single `file`);
    optional repeated `sheetNames` fields name the output sheet of each file.
    """
    uploads = list(files or [])
    if file is not None:
        uploads.append(file)
    sources = await read_uploads(uploads)
    return workbook_response(WorkbookProcessor.format_files(sources, sheet_names))


@app.post("/api/excel/create", tags=["Excel Processing"])
async def create_excel(request: Request):
    """
    Build a formatted workbook from JSON.

    Accepts a bare array of row objects, an object with a `sheets` list of
    {name, data}, or an object keyed by sheet name. Sheet data may be a
    JSON-encoded string or an array of row objects.
    """
    body = await request.body()
    if not body.strip():
        return workbook_response(WorkbookProcessor.create_from_json(None))
    try:
        payload = json.loads(body)
    except ValueError as e:
        logger.warning("Invalid JSON body", extra={"error": str(e)})
        return workbook_response(Result.invalid_input(f"Invalid JSON body: {str(e)}"))
    return workbook_response(WorkbookProcessor.create_from_json(payload))


# Run the application if executed directly
if __name__ == "__main__":
    import uvicorn
    logger.info("Starting Excel Reformat API in development mode.")
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
