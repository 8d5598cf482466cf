from pythonjsonlogger import jsonlogger
import logging
import os
import httpx
from fastapi import Request
from fastapi.responses import Response

import pages.backtest_result
import pages.error

from exceptions import InternalServerError
from config import settings

from nicegui import ui, app
from nicegui.client import Client
from nicegui.page import page

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__)))

log_dir = os.path.join(ROOT_DIR, settings.LOG_DIR)
os.makedirs(log_dir, exist_ok=True)
log_file = os.path.join(log_dir, 'console.json')

logger = logging.getLogger()
logHandler = logging.FileHandler(log_file, encoding='utf-8')

log_format = (
    '%(levelname)s %(name)-12s %(asctime)s %(module)s %(process)d %(thread)d %(message)s'
)

formatter = jsonlogger.JsonFormatter(log_format)
logHandler.setFormatter(formatter)

if logger.hasHandlers():
    logger.handlers.clear()

logger.addHandler(logHandler)
logger.setLevel(logging.DEBUG if settings.ENVIRONMENT == "local" else logging.INFO)


async def startup_httpx():
    app.state.candles_httpx = httpx.AsyncClient(
        base_url=settings.CANDLE_API_URL.rstrip('/'),
        timeout=httpx.Timeout(connect=3.0, read=10.0, write=5.0, pool=5.0),
        limits=httpx.Limits(max_keepalive_connections=10, max_connections=100),
        headers={'User-Agent': 'backtest-console/1.0'},
    )

    app.state.backtest_httpx = httpx.AsyncClient(
        base_url=settings.BACKTEST_API_URL.rstrip('/'),
        timeout=httpx.Timeout(connect=3.0, read=5.0, write=5.0, pool=5.0),
        limits=httpx.Limits(max_keepalive_connections=10, max_connections=100),
        headers={'User-Agent': 'backtest-console/1.0'},
    )


async def shutdown_httpx():
    await app.state.candles_httpx.aclose()
    await app.state.backtest_httpx.aclose()

app.on_startup(startup_httpx)
app.on_shutdown(shutdown_httpx)


@app.exception_handler(Exception)
async def _exception_handler(request: Request, exception: Exception) -> Response:
    logger.info(f"exception_handler: {exception}/{type(exception)}")
    with Client(page(''), request=request) as client:
        pages.error.error_page(500, str(exception))
    return client.build_response(request, 500)


@app.on_page_exception
def handle_page_error(exception: Exception) -> None:
    logger.exception(f'Unhandled page exception: {type(exception)}',
                     exc_info=(type(exception), exception, exception.__traceback__))

    if isinstance(exception, (NameError, TypeError, AttributeError, RuntimeError)):
        raise InternalServerError("Unexpected error occurred on the page.")


if __name__ in {"__main__", "__mp_main__"}:

    ui.run(host="0.0.0.0", port=8501, title="Backtest Console", storage_secret=settings.SECRET_KEY or None)
