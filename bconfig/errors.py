"""
Exception taxonomy for the workbook API.

Library modules raise these; bconfig.app maps them to HTTP status codes.
"""


class BConfigError(Exception):
    """Base exception for all handled failures"""

    status_code = 500


class ConfigurationError(BConfigError):
    """Raised when required configuration (e.g. the API credential) is missing"""

    status_code = 500


class ValidationError(BConfigError):
    """Raised when a request names an invalid product, sheet or message list"""

    status_code = 400


class WorkbookNotFoundError(BConfigError):
    """Raised when a product's workbook file does not exist"""

    status_code = 500


class WorkbookReadError(BConfigError):
    """Raised when a workbook file exists but cannot be parsed"""

    status_code = 500


class SheetNotFoundError(BConfigError):
    """Raised when a sheet name is absent from a workbook"""

    status_code = 500


class UpstreamError(BConfigError):
    """Raised when the completion endpoint answers with a non-2xx status"""

    status_code = 500

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"LLM error: {status} {body}")


class UpstreamUnavailableError(BConfigError):
    """Raised when the completion endpoint cannot be reached at all"""

    status_code = 500

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"LLM request failed: {reason}")
