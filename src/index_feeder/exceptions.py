"""Error type shared by the codec, transport and data source layers."""


class DataSourceError(Exception):
    """Raised when a data source operation cannot complete.

    Carries a human-readable message and, when the failure came from a parsed
    server reply envelope, the numeric response code reported by the server.
    """

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        return self.message
