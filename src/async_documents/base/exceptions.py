class ConfigurationError(RuntimeError):
    """Exception raised when a store is used without a way to obtain a connection."""

    def __init__(
        self,
        message: str = "Please provide a connection factory before attempting data access.",
    ):
        super().__init__(message)


class UnsupportedOperationError(NotImplementedError):
    """Exception raised when a dialect cannot express the requested operator or predicate."""

    def __init__(self, message: str = "The operation is not supported by this backend."):
        super().__init__(message)
