from typing import Generic, TypeVar, Optional, Callable, Any, Dict, Union
from http import HTTPStatus

T = TypeVar('T')  # Generic type variable
U = TypeVar('U')  # Additional type variable for map operations

class Result(Generic[T]):
    """
    Outcome of a pipeline step: data on success, an error message otherwise.

    A failed Result may still carry data, e.g. the best-effort JSON summary
    that reports the uploaded file's name and size next to the error.

    Attributes:
        success (bool): Indicates if the operation was successful
        data (Optional[T]): The result data (may also be set on failure)
        error (Optional[str]): Error message (only present when success is False)
        status_code (HTTPStatus): HTTP status code (default: 200 for success, 400 for failure)
    """
    def __init__(
        self,
        success: bool,
        data: Optional[T] = None,
        error: Optional[str] = None,
        status_code: Optional[Union[int, HTTPStatus]] = None
    ):
        self.success = success
        self.data = data
        self.error = error

        if status_code is None:
            self.status_code = HTTPStatus.OK if success else HTTPStatus.BAD_REQUEST
        else:
            self.status_code = HTTPStatus(status_code)

    @classmethod
    def ok(cls, data: T, status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.OK) -> "Result[T]":
        """Create a successful Result with the provided data."""
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(
        cls,
        error: str,
        status_code: Optional[Union[int, HTTPStatus]] = HTTPStatus.BAD_REQUEST,
        data: Optional[T] = None
    ) -> "Result[T]":
        """
        Create a failed Result.

        Args:
            error (str): The error message describing the failure
            status_code (Optional[Union[int, HTTPStatus]], optional): HTTP status code. Defaults to 400 BAD_REQUEST.
            data (Optional[T], optional): Partial data to report alongside the error

        Returns:
            Result[T]: A failed Result containing the error message
        """
        return cls(success=False, data=data, error=error, status_code=status_code)

    @classmethod
    def invalid_input(cls, error: str = "Invalid input data") -> "Result[T]":
        """Create a failed Result with BAD_REQUEST status code."""
        return cls(success=False, error=error, status_code=HTTPStatus.BAD_REQUEST)

    @classmethod
    def server_error(cls, error: str = "Internal server error") -> "Result[T]":
        """Create a failed Result with INTERNAL_SERVER_ERROR status code."""
        return cls(success=False, error=error, status_code=HTTPStatus.INTERNAL_SERVER_ERROR)

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        """
        Apply a function to the data if the Result is successful.

        Args:
            fn (Callable[[T], U]): Function to apply to the data

        Returns:
            Result[U]: A new Result with the transformed data or the original error
        """
        if self.is_success():
            return Result.ok(fn(self.data), status_code=self.status_code)  # type: ignore
        return Result.fail(self.error or "", status_code=self.status_code)  # type: ignore

    def and_then(self, fn: Callable[[T], "Result[U]"]) -> "Result[U]":
        """
        Chain operations that return Result objects.

        If this Result is a failure, it short-circuits and returns the error.
        If it's a success, it applies the function to the data and returns the new Result.
        """
        if not self.is_success():
            return Result.fail(self.error or "", status_code=self.status_code)  # type: ignore
        return fn(self.data)  # type: ignore

    def error_body(self) -> Dict[str, Any]:
        """
        Body for an error response.

        Returns:
            Dict[str, Any]: {"success": False, "error": <message>}
        """
        return {"success": False, "error": self.error or self.status_code.phrase}

    def __str__(self) -> str:
        status_info = f"{self.status_code.value} {self.status_code.phrase}"
        if self.is_success():
            data_repr = str(self.data)
            # Truncate long data representations
            if len(data_repr) > 100:
                data_repr = f"{data_repr[:97]}..."
            return f"Success ({status_info}): {data_repr}"
        return f"Failure ({status_info}): {self.error}"

    def __repr__(self) -> str:
        return f"Result(success={self.success}, status_code={self.status_code!r}, data={self.data!r}, error={self.error!r})"
