from http import HTTPStatus


class PipelineError(Exception):
    """Base class for failures raised by the transformation pipeline."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class NoInputError(PipelineError):
    """Raised when a request carries no file or an empty body."""

    status_code = HTTPStatus.BAD_REQUEST


class InvalidPayloadError(PipelineError):
    """Raised when a JSON body matches none of the accepted shapes."""

    status_code = HTTPStatus.BAD_REQUEST


class NoValidSheetsError(PipelineError):
    """Raised when every supplied sheet resolves to zero data rows."""

    status_code = HTTPStatus.BAD_REQUEST


class WorkbookDecodeError(PipelineError):
    """Raised when spreadsheet bytes cannot be decoded."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
