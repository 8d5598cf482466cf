class InternalServerError(Exception):
    """Raised for internal errors (HTTP 500)."""
    def __init__(self, message="Internal Server Error"):
        super().__init__(message)


class CandleSourceError(Exception):
    """Raised when candles cannot be fetched from the market data API."""
    def __init__(self, message="Candle source unavailable", status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
