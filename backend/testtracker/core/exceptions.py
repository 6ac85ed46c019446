class TrackerError(Exception):
    """Base class for errors the API reports as ``{"success": false}``."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RecordNotFoundError(TrackerError):
    status_code = 404

    def __init__(self, unique_test_id: str):
        super().__init__(f"Test not found: {unique_test_id}")
        self.unique_test_id = unique_test_id


class DataFileNotFoundError(TrackerError):
    status_code = 500


class InvalidFieldError(TrackerError):
    status_code = 422


class SiteConfigurationError(TrackerError):
    status_code = 400
