import logging
import os
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

import config
from sheet_pipeline.errors import NoInputError, PipelineError
from sheet_pipeline.formatter import format_workbook
from sheet_pipeline.merger import build_json_sheets, merge_file_sources, resolve_json_payload
from sheet_pipeline.models import FileSource, Sheet
from sheet_pipeline.normalizer import find_identifier_column, normalize_grid
from sheet_pipeline.reader import read_workbook
from sheet_pipeline.reindexer import reindex_flat
from sheet_pipeline.serializer import (
    XLSX_MEDIA_TYPE,
    dated_file_name,
    derived_file_name,
    write_formatted_workbook,
    write_plain_workbook,
)
from utils.result import Result

logger = logging.getLogger(__name__)

T = TypeVar('T')


class LogContext:
    """Context manager for tracking and logging operation metrics"""
    def __init__(self, operation_name: str, **kwargs):
        self.operation_name = operation_name
        self.start_time = None
        self.request_id = kwargs.pop('request_id', str(uuid.uuid4())[:8])
        self.extra = kwargs

    def __enter__(self):
        self.start_time = time.time()
        logger.info(f"Starting {self.operation_name}", extra={"request_id": self.request_id, **self.extra})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type:
            logger.error(
                f"Failed {self.operation_name} in {duration:.2f}s: {str(exc_val)}",
                extra={"request_id": self.request_id, "duration": duration, **self.extra},
                exc_info=(exc_type, exc_val, exc_tb)
            )
        else:
            logger.info(
                f"Completed {self.operation_name} in {duration:.2f}s",
                extra={"request_id": self.request_id, "duration": duration, **self.extra}
            )


class SheetData(BaseModel):
    """
    Per-sheet part of the JSON summary.

    Attributes:
        name: Sheet name
        row_count: Number of data rows
        column_count: Number of headers
        headers: Column headers in order
        data: One object per data row, keyed by header
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    row_count: int
    column_count: int
    headers: List[str]
    data: List[Dict[str, Any]]


class ExcelProcessResult(BaseModel):
    """
    JSON summary returned for an uploaded workbook.

    Attributes:
        success: Whether the workbook was processed
        file_name: Uploaded file name (reported even on failure)
        file_size: Uploaded size in bytes (reported even on failure)
        sheets: One SheetData per non-empty sheet
        processing_time: Milliseconds from request receipt to response assembly
        error: Error message if unsuccessful
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    file_name: str = ""
    file_size: int = 0
    sheets: List[SheetData] = []
    processing_time: int = 0
    error: Optional[str] = None

    def to_response_body(self) -> Dict[str, Any]:
        body = self.model_dump(by_alias=True)
        if body.get("error") is None:
            body.pop("error", None)
        return body


@dataclass(frozen=True)
class WorkbookOutput:
    """A generated workbook ready to be sent as an attachment."""
    file_name: str
    content: bytes
    media_type: str = XLSX_MEDIA_TYPE


def elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


class WorkbookProcessor:
    """
    Request-level orchestration of the spreadsheet pipeline.

    Every public method returns a Result; pipeline exceptions are turned
    into failed Results carrying the matching HTTP status.
    """

    @staticmethod
    def _step(name: str, fn: Callable[[], T], log_context: Dict[str, Any]) -> Result[T]:
        """Run one pipeline stage inside a LogContext and capture its outcome."""
        try:
            with LogContext(name, **log_context):
                return Result.ok(fn())
        except PipelineError as e:
            return Result.fail(str(e), status_code=e.status_code)
        except Exception as e:
            logger.exception("Unexpected error during processing", extra={**log_context, "error": str(e)})
            return Result.server_error(f"Processing error: {str(e)}")

    @staticmethod
    def validate_uploads(sources: Sequence[FileSource]) -> Result[List[FileSource]]:
        """
        Check upload preconditions before any decoding happens.

        Args:
            sources: Uploaded files

        Returns:
            Result with the same sources, or a 400 failure naming the first problem
        """
        if not sources:
            return Result.invalid_input("No file uploaded")
        if len(sources) > config.MAX_UPLOAD_FILES:
            return Result.invalid_input(f"Too many files: at most {config.MAX_UPLOAD_FILES} are accepted")
        for source in sources:
            extension = os.path.splitext(source.file_name or "")[1].lower()
            if extension not in config.ALLOWED_EXTENSIONS:
                return Result.invalid_input(f"Unsupported file type: {source.file_name}")
            if source.size == 0:
                return Result.invalid_input(f"Uploaded file is empty: {source.file_name}")
            if source.size > config.MAX_UPLOAD_BYTES:
                return Result.invalid_input(
                    f"File too large: {source.file_name} exceeds {config.MAX_UPLOAD_BYTES} bytes"
                )
        return Result.ok(list(sources))

    @staticmethod
    def _summary_sheets(source: FileSource) -> List[SheetData]:
        sheets = []
        for raw in read_workbook(source.content):
            if not raw.grid:
                continue
            normalized = normalize_grid(raw.grid)
            id_index = find_identifier_column(normalized.headers)
            rows = reindex_flat(normalized.rows, normalized.headers[id_index] if id_index is not None else None)
            sheets.append(SheetData(
                name=raw.name,
                row_count=len(rows),
                column_count=normalized.column_count,
                headers=normalized.headers,
                data=rows,
            ))
        return sheets

    @staticmethod
    def summarize(sources: Sequence[FileSource], started: float) -> Result[ExcelProcessResult]:
        """
        Build the JSON summary for one uploaded workbook.

        Args:
            sources: Uploaded files; only the first one is summarized
            started: time.perf_counter() value taken when the request arrived

        Returns:
            Result whose data is always an ExcelProcessResult, also on failure
        """
        source = sources[0] if sources else None
        log_context = {
            "request_id": str(uuid.uuid4())[:8],
            "file_name": source.file_name if source else None,
            "file_size": source.size if source else 0,
        }
        logger.info("Summarizing Excel file", extra=log_context)

        result = WorkbookProcessor.validate_uploads(sources).and_then(
            lambda valid: WorkbookProcessor._step(
                "workbook summary", lambda: WorkbookProcessor._summary_sheets(valid[0]), log_context
            )
        )

        payload = ExcelProcessResult(
            success=result.is_success(),
            file_name=source.file_name if source else "",
            file_size=source.size if source else 0,
            sheets=result.data if result.is_success() else [],
            processing_time=elapsed_ms(started),
            error=result.error,
        )
        if result.is_success():
            logger.info(
                f"Summarized {len(payload.sheets)} sheets in {payload.processing_time}ms",
                extra=log_context
            )
            return Result.ok(payload)
        return Result.fail(result.error or "", status_code=result.status_code, data=payload)

    @staticmethod
    def reindex(sources: Sequence[FileSource]) -> Result[WorkbookOutput]:
        """
        Number the identifier column 1..N in every sheet and return a plain workbook.

        The output name is derived from the uploaded name with a suffix.
        """
        source = sources[0] if sources else None
        log_context = {"request_id": str(uuid.uuid4())[:8], "file_name": source.file_name if source else None}

        def run(valid: List[FileSource]) -> WorkbookOutput:
            sheets = []
            for raw in read_workbook(valid[0].content):
                normalized = normalize_grid(raw.grid)
                id_index = find_identifier_column(normalized.headers)
                id_key = normalized.headers[id_index] if id_index is not None else None
                sheets.append(Sheet(
                    name=raw.name,
                    headers=normalized.headers,
                    rows=reindex_flat(normalized.rows, id_key),
                ))
            return WorkbookOutput(
                file_name=derived_file_name(valid[0].file_name, config.REINDEX_SUFFIX),
                content=write_plain_workbook(sheets),
            )

        return WorkbookProcessor.validate_uploads(sources).and_then(
            lambda valid: WorkbookProcessor._step("plain re-index", lambda: run(valid), log_context)
        )

    @staticmethod
    def _render(sheets: List[Sheet], log_context: Dict[str, Any]) -> Result[WorkbookOutput]:
        return WorkbookProcessor._step(
            "workbook formatting",
            lambda: WorkbookOutput(
                file_name=dated_file_name(config.OUTPUT_PREFIX),
                content=write_formatted_workbook(format_workbook(sheets)),
            ),
            log_context,
        )

    @staticmethod
    def format_files(
        sources: Sequence[FileSource], sheet_names: Optional[Sequence[str]] = None
    ) -> Result[WorkbookOutput]:
        """
        Merge uploaded workbooks into one formatted workbook.

        Args:
            sources: Uploaded files in request order
            sheet_names: Optional positional output names, one per file

        Returns:
            Result with the formatted workbook and its date-stamped name
        """
        log_context = {
            "request_id": str(uuid.uuid4())[:8],
            "file_names": [s.file_name for s in sources],
            "sheet_names": list(sheet_names or []),
        }
        return (
            WorkbookProcessor.validate_uploads(sources)
            .and_then(lambda valid: WorkbookProcessor._step(
                "file merge", lambda: merge_file_sources(valid, sheet_names), log_context
            ))
            .and_then(lambda sheets: WorkbookProcessor._render(sheets, log_context))
        )

    @staticmethod
    def create_from_json(payload: Any) -> Result[WorkbookOutput]:
        """
        Build a formatted, grouped workbook from a JSON body.

        Args:
            payload: Parsed JSON body in any of the accepted shapes

        Returns:
            Result with the formatted workbook, or 400 when the body is empty,
            has an unknown shape or yields no rows
        """
        log_context = {"request_id": str(uuid.uuid4())[:8]}
        if payload is None or payload == "":
            error = NoInputError("No JSON data provided")
            return Result.fail(str(error), status_code=error.status_code)

        return (
            WorkbookProcessor._step("JSON resolution", lambda: resolve_json_payload(payload), log_context)
            .and_then(lambda sources: WorkbookProcessor._step(
                "JSON grouping", lambda: build_json_sheets(sources), log_context
            ))
            .and_then(lambda sheets: WorkbookProcessor._render(sheets, log_context))
        )
