import exceptions
from exceptions import CandleSourceError, InternalServerError


def test_candle_source_error_carries_status() -> None:
    err = CandleSourceError("Candle source error: 418 I'm a teapot", status_code=418)
    assert str(err) == "Candle source error: 418 I'm a teapot"
    assert err.status_code == 418
    assert CandleSourceError().status_code is None


def test_internal_server_error_default_message() -> None:
    assert str(InternalServerError()) == "Internal Server Error"


def test_console_error_types() -> None:
    page_errors = {
        name for name, obj in vars(exceptions).items()
        if isinstance(obj, type) and issubclass(obj, Exception)
    }
    assert page_errors == {"InternalServerError", "CandleSourceError"}
