"""Custom exceptions for drivemigrate.

This module provides a hierarchy of exceptions with helpful error messages
so that a failed migration run can be diagnosed from its printed report.
"""

import re

_URI_CREDENTIALS = re.compile(r"(mongodb(?:\+srv)?://)([^@/\s]+)@")


def redact_uri(text: str) -> str:
    """Replace credentials in MongoDB URIs with '***' for safe logging."""
    return _URI_CREDENTIALS.sub(r"\1***@", text)


class MigrationError(Exception):
    """Base exception for all drivemigrate errors.

    All drivemigrate exceptions inherit from this class, making it easy
    to catch every error a migration rule can report.
    """

    def __init__(self, message: str, hint: str | None = None):
        """Initialize the exception.

        Args:
            message: The error message
            hint: Optional hint for resolving the error
        """
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\nHint: {self.hint}"
        return self.message


class ConfigurationError(MigrationError):
    """Raised when the migration configuration is missing or invalid."""

    def __init__(
        self,
        message: str | None = None,
        missing_fields: list[str] | None = None,
    ):
        """Initialize the configuration error.

        Args:
            message: Custom error message
            missing_fields: Environment variables that are absent or empty
        """
        self.missing_fields = missing_fields or []

        if missing_fields:
            fields_str = ", ".join(missing_fields)
            message = f"Missing required configuration: {fields_str}"
            hint = "Set these as environment variables or in your .env file."
        else:
            hint = "Check the drivemigrate configuration."

        super().__init__(message or "Invalid drivemigrate configuration", hint)


class StoreConnectionError(MigrationError):
    """Raised when a MongoDB store cannot be reached during startup."""

    def __init__(
        self,
        message: str | None = None,
        original_error: Exception | None = None,
        conn_string: str | None = None,
    ):
        """Initialize the connection error.

        Args:
            message: Custom error message (optional)
            original_error: The original exception that caused this error
            conn_string: The connection string being used (redacted in output)
        """
        self.original_error = original_error
        self.conn_string = redact_uri(conn_string) if conn_string else None

        if message:
            final_message = redact_uri(message)
            hint = None
        elif original_error:
            final_message, hint = self._format_error(original_error)
        else:
            final_message = f"Failed connecting to {self.conn_string or 'MongoDB'}"
            hint = "Check the connection string and network access to the cluster."

        super().__init__(final_message, hint)

    def _format_error(self, error: Exception) -> tuple[str, str | None]:
        """Format the error message based on the underlying error."""
        target = self.conn_string or "MongoDB"
        error_str = redact_uri(str(error))

        if "default database" in error_str.lower():
            return (
                f"No database name in connection string {target}",
                "Append the database name to the URI, e.g. mongodb://host:27017/files",
            )

        if "Authentication failed" in error_str:
            return (
                f"Authentication failed for {target}",
                "Check the username and password in the connection string.",
            )

        if "timed out" in error_str.lower() or "ServerSelectionTimeoutError" in type(error).__name__:
            return (
                f"Could not reach {target}",
                "Check that the cluster is running and reachable from this host.",
            )

        return (f"Failed connecting to {target}: {error_str}", None)


class StoreOperationError(MigrationError):
    """Raised when a MongoDB operation fails while a rule is running."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        collection: str | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the operation error.

        Args:
            message: The error message
            operation: The collection operation that failed (e.g., 'update_many')
            collection: The collection involved in the operation
            original_error: The original exception
        """
        self.operation = operation
        self.collection = collection
        self.original_error = original_error

        hint = None
        if "not authorized" in message:
            hint = f"The migration user needs readWrite on '{collection}'."
        elif "index not found" in message:
            hint = "The index may already have been dropped by a previous run."

        super().__init__(message, hint)


class IndexMigrationError(StoreOperationError):
    """Raised when replacing an index fails after the old one may be gone."""

    def __init__(
        self,
        message: str,
        index_name: str,
        collection: str | None = None,
        original_error: Exception | None = None,
        dropped: bool = False,
    ):
        """Initialize the index error.

        Args:
            message: The error message
            index_name: The canonical index name being replaced
            collection: The collection holding the index
            original_error: The original exception
            dropped: Whether the old index had already been dropped
        """
        self.index_name = index_name
        self.dropped = dropped
        super().__init__(
            message,
            operation="create_index" if dropped else "drop_index",
            collection=collection,
            original_error=original_error,
        )
        if dropped:
            self.hint = (
                f"The old index '{index_name}' is already dropped; "
                "recreate it manually before running again."
            )


class RemoteServiceError(MigrationError):
    """Raised when a call to a remote service fails."""

    def __init__(
        self,
        message: str,
        service: str | None = None,
        status: int | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the remote service error.

        Args:
            message: The error message
            service: The service name (e.g., 'File-Service')
            status: HTTP status code, when the service answered
            original_error: The original exception
        """
        self.service = service
        self.status = status
        self.original_error = original_error

        hint = None
        if status is not None and status >= 500:
            hint = f"{service or 'The service'} answered with a server error; check its logs."
        elif status is None and original_error is not None:
            hint = f"Check that {service or 'the service'} is reachable from this host."

        super().__init__(message, hint)


class FileLookupError(RemoteServiceError):
    """Raised when the File-Service cannot return a file."""

    def __init__(
        self,
        file_id: str,
        message: str | None = None,
        status: int | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the lookup error.

        Args:
            file_id: The file that was looked up
            message: Custom error message
            status: HTTP status code, when the service answered
            original_error: The original exception
        """
        self.file_id = file_id
        super().__init__(
            message or f"failed getting file {file_id} from File-Service",
            service="File-Service",
            status=status,
            original_error=original_error,
        )
        if status == 404:
            self.hint = f"File {file_id} does not exist in File-Service."


class SearchIndexError(RemoteServiceError):
    """Raised when the Search-Service rejects a file."""

    def __init__(
        self,
        file_id: str,
        message: str | None = None,
        status: int | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the search error.

        Args:
            file_id: The file being pushed to the search index
            message: Custom error message
            status: HTTP status code, when the service answered
            original_error: The original exception
        """
        self.file_id = file_id
        super().__init__(
            message or f"failed creating file {file_id} in Search-Service",
            service="Search-Service",
            status=status,
            original_error=original_error,
        )
