"""Custom exceptions for ApiVeritas."""


class ApiVeritasError(Exception):
    """Base exception for ApiVeritas errors."""
    pass


class ConfigError(ApiVeritasError):
    """Raised when the configuration cannot be read or written."""
    def __init__(self, message: str, path: str = None):
        super().__init__(message)
        self.message = message
        self.path = path


class SuiteLoadError(ApiVeritasError):
    """Raised when a test suite file is missing or malformed."""
    def __init__(self, message: str, suite_file: str = None, index: int = None):
        super().__init__(message)
        self.message = message
        self.suite_file = suite_file
        self.index = index


class ApiCallError(ApiVeritasError):
    """Raised when a request definition cannot be executed at all."""
    def __init__(self, request_name: str, message: str):
        super().__init__(f"Request '{request_name}': {message}")
        self.request_name = request_name
        self.message = message


class SchemaInferenceError(ApiVeritasError):
    """Raised when a schema cannot be inferred from a baseline payload."""
    def __init__(self, path: str, value_type: str):
        super().__init__(f"Cannot infer schema for value of type '{value_type}' at: {path}")
        self.path = path
        self.value_type = value_type


class MockServerError(ApiVeritasError):
    """Raised when the mock server fails to start or stop."""
    def __init__(self, message: str, port: int = None):
        super().__init__(message)
        self.message = message
        self.port = port
