class AppError(Exception):
    """Request-scoped failure carrying the HTTP status it should surface with."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(AppError):
    status_code = 500

    def __init__(self, missing: list[str]):
        super().__init__(f"Missing environment variables: {', '.join(missing)}")
        self.missing = missing


class BadRequestError(AppError):
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class TotalFailureError(AppError):
    """Every item of a batch failed."""

    status_code = 500


# upstream failures surface as 500
class ProviderError(AppError):
    pass


class DownloadError(AppError):
    pass


class StorageError(AppError):
    pass
