from fastapi import APIRouter, Depends

from cafeboard.api.dependencies import get_pc_service
from cafeboard.api.errors import to_http_error
from cafeboard.core.errors import UpstreamNotFound
from cafeboard.domain.models import dump_models
from cafeboard.services.pcs import PcService

router = APIRouter(prefix="/pcs", tags=["pcs"])


@router.get("")
async def list_pcs(pcs: PcService = Depends(get_pc_service)):
    try:
        return dump_models(await pcs.get_pcs())
    except Exception as e:
        raise to_http_error(e, "pcs.list") from e


@router.get("/{pc_name}")
async def pc_detail(pc_name: str, pcs: PcService = Depends(get_pc_service)):
    try:
        detail = await pcs.get_console_detail(pc_name)
        if detail is None:
            raise UpstreamNotFound(f"pc {pc_name} not found", None, "pcs")
    except Exception as e:
        raise to_http_error(e, "pcs.detail") from e
    return detail
