from typing import Optional


class DemoParserException(Exception):
    """Base exception for demo parsing errors"""

    def __init__(self, message: str, offset: Optional[int] = None):
        self.offset = offset
        if offset is not None:
            message = f"{message} (at offset {offset})"
        super().__init__(message)


class FormatError(DemoParserException):
    """Input violates the demo wire format (bad magic, unknown record, bounds)"""
    pass


class TruncationError(DemoParserException):
    """Input ended in the middle of a read"""
    pass


class SchemaMismatch(DemoParserException):
    """Game event does not match any known descriptor"""
    pass


class EventParsingError(SchemaMismatch):
    """Exception for invalid fields inside a known game event"""
    def __init__(self, event_name: str, message: str, offset: Optional[int] = None):
        self.event_name = event_name
        super().__init__(f"Error parsing event {event_name}: {message}", offset)
