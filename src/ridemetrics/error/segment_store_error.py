class SegmentStoreError(Exception):
    """Base error for the segment quality store"""


class SegmentPersistenceError(SegmentStoreError):
    """A snapshot could not be saved to or loaded from the backend"""

    def __init__(self, message: str, cause: Exception = None):
        super().__init__(message)
        self.cause = cause
