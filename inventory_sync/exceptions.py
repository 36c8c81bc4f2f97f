class InventorySyncError(Exception):
    """Base exception for Inventory Sync errors."""

    def __init__(self, message=None, code=None, details=None):
        """Initialize the exception.

        Args:
            message: Error message
            code: Error code
            details: Additional error details
        """
        self.message = message or "An error occurred in the Inventory Sync client"
        self.code = code
        self.details = details
        super().__init__(self.message)

    def __str__(self):
        """String representation of the error."""
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self):
        """Convert the exception to a dictionary."""
        error_dict = {
            'error': self.__class__.__name__,
            'message': self.message,
        }

        if self.code:
            error_dict['code'] = self.code

        if self.details:
            error_dict['details'] = self.details

        return error_dict


class ConfigError(InventorySyncError):
    """Exception raised for configuration errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Configuration error"
        super().__init__(message, code, details)


class ValidationError(InventorySyncError):
    """Exception raised for data validation errors."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Validation error"
        super().__init__(message, code, details)


class RemoteReadFailure(InventorySyncError):
    """Exception raised when a remote table read fails."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Remote read failed"
        super().__init__(message, code, details)


class RemoteWriteFailure(InventorySyncError):
    """Exception raised when a remote table write fails."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Remote write failed"
        super().__init__(message, code, details)


class DuplicateNameRejected(RemoteWriteFailure):
    """Exception raised when the store rejects a duplicate category or warehouse name."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Name already exists"
        super().__init__(message, code, details)


class StorageError(RemoteWriteFailure):
    """Exception raised when an asset upload fails."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Asset upload failed"
        super().__init__(message, code, details)


class UnsupportedFormat(InventorySyncError):
    """Exception raised for images outside the accepted encodings."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Unsupported file format. Please upload a JPG, JPEG, PNG, or GIF."
        super().__init__(message, code, details)


class CompressionFailed(InventorySyncError):
    """Exception raised when image re-encoding produces no usable output."""

    def __init__(self, message=None, code=None, details=None):
        message = message or "Failed to optimize image"
        super().__init__(message, code, details)
