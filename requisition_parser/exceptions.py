"""Custom exceptions for requisition parser."""


class DocumentParserError(Exception):
    """Base exception for requisition parser errors."""

    pass


class UnsupportedTypeError(DocumentParserError):
    """Raised when document type is not supported."""

    pass


class ExtractionError(DocumentParserError):
    """Raised when text extraction fails."""

    pass


class ToolUnavailableError(DocumentParserError):
    """Raised when an external tool is not installed or not in PATH."""

    def __init__(self, tool: str):
        super().__init__(f"{tool} is not installed or not in PATH")
        self.tool = tool


class ToolExecutionError(DocumentParserError):
    """Raised when an external tool fails, times out or floods its output."""

    def __init__(self, tool: str, reason: str):
        super().__init__(f"{tool} failed: {reason}")
        self.tool = tool
        self.reason = reason
