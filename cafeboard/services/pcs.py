from typing import Any

from pydantic import ValidationError

from cafeboard.constants.policy import ICAFE_SUCCESS_CODE
from cafeboard.core.errors import UpstreamMalformed
from cafeboard.core.logger import get_logger
from cafeboard.domain.models import Pc
from cafeboard.infrastructure.icafe.client import IcafeClient

logger = get_logger("pcs")

PCS_RESOURCE = "pcs"
CONSOLE_DETAIL_RESOURCE = "pcs/action/consoleDetail"


class PcService:
    def __init__(self, client: IcafeClient):
        self.client = client

    async def get_pcs(self) -> list[Pc]:
        try:
            response = await self.client.fetch_page(PCS_RESOURCE)
        except UpstreamMalformed:
            logger.warning("pcs_malformed")
            return []
        if response.code != ICAFE_SUCCESS_CODE or not isinstance(response.data, list):
            return []

        pcs = []
        for row in response.data:
            try:
                pcs.append(Pc.model_validate(row))
            except ValidationError:
                logger.warning("pc_row_invalid")
        return pcs

    async def get_console_detail(self, pc_name: str) -> dict[str, Any] | None:
        """Console detail for one PC; ``None`` when upstream has nothing for it."""
        response = await self.client.fetch_page(
            CONSOLE_DETAIL_RESOURCE, {"pc_name": pc_name}
        )
        if response.code != ICAFE_SUCCESS_CODE or not response.data:
            return None
        if isinstance(response.data, dict):
            return response.data
        return {"pc_name": pc_name, "detail": response.data}
