"""Exception types shared by the relay domain and its adapters."""


class ValidationError(Exception):
    """Custom exception for validation errors."""
    pass


class DataStoreError(Exception):
    """Raised when the data store cannot complete a read or write.

    Wraps Firestore/API errors and timeouts so the command handlers can map
    them to a generic "try again later" reply without knowing the backend.
    """
    pass
