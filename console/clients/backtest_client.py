import httpx
import logging
from typing import Optional, Dict, Any
from nicegui import app
from pydantic import ValidationError

from schemas.backtest import BacktestResultDetail

logger = logging.getLogger(__name__)


class BacktestClient:
    """
    Thin async client for the backtest backend.

    Uses a shared `httpx.AsyncClient` stored in `app.state.backtest_httpx`.
    Failures are logged and reported as None.
    """
    RESULT_DETAIL_PATH = "/api/v1/backtest-results/detail/{result_id}"

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self.client: httpx.AsyncClient = client if client is not None else app.state.backtest_httpx
        logger.info("BacktestClient initialized with shared httpx.AsyncClient")

    async def _request(
        self,
        method: str,
        url: str,
        headers: Optional[dict] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response | None:
        """
        Perform an HTTP request to the backtest service.

        Returns:
            httpx.Response on success, or None if a timeout/HTTP error/other exception occurred.
        """
        hdrs: Dict[str, str] = {}
        if headers:
            hdrs.update({k: str(v) for k, v in headers.items()})

        try:
            resp = await self.client.request(method, url, headers=hdrs, params=params)
        except (httpx.ConnectTimeout, httpx.ReadTimeout):
            logger.warning(f"Backtest service timeout {url}")
            return None
        except httpx.HTTPError:
            logger.error(f"Backtest service HTTP error {url}")
            return None
        except Exception:
            logger.exception(f"Backtest service unexpected error {url}")
            return None

        return resp

    async def get_result_detail(self, result_id: str) -> Optional[BacktestResultDetail]:
        """
        Load a backtest result with its full trade list.

        Args:
            result_id: Backtest result id.

        Returns:
            - BacktestResultDetail on success.
            - None on 404, timeout, invalid payload or other errors.
        """
        logger.info(f"get_result_detail: result_id={result_id!r}")

        url = self.RESULT_DETAIL_PATH.format(result_id=result_id)
        resp = await self._request("GET", url)
        if resp is None:
            logger.warning(f"get_result_detail({result_id!r}): no response from service")
            return None
        if resp.status_code == 200:
            try:
                return BacktestResultDetail.model_validate(resp.json())
            except (ValueError, ValidationError):
                logger.exception(f"Failed to decode result detail {result_id}")
                return None
        if resp.status_code == 404:
            logger.info(f"get_result_detail({result_id!r}): received 404 Not Found")
            return None
        logger.error(f"get_result_detail({result_id}) unexpected status {resp.status_code}: {resp.text}")
        return None
