import asyncio
from typing import Any

from pydantic import ValidationError

from cafeboard.constants.policy import ICAFE_SUCCESS_CODE
from cafeboard.core.errors import UpstreamMalformed, UpstreamNotFound
from cafeboard.core.logger import get_logger
from cafeboard.domain.models import Member, PagingInfo
from cafeboard.infrastructure.icafe.client import IcafeClient

logger = get_logger("members")

MEMBERS_RESOURCE = "members"


class MemberService:
    """Member lookups against the iCafeCloud ``members`` resource."""

    def __init__(self, client: IcafeClient, fanout_concurrency: int = 5):
        self.client = client
        self.fanout_concurrency = max(1, fanout_concurrency)

    async def get_all_members(self) -> list[Member]:
        first, pages = await self._fetch_members_page(1)
        results = [first]
        if pages > 1:
            semaphore = asyncio.Semaphore(self.fanout_concurrency)

            async def bounded(page: int) -> list[Member]:
                async with semaphore:
                    members, _ = await self._fetch_members_page(page)
                    return members

            tasks = [asyncio.create_task(bounded(p)) for p in range(2, pages + 1)]
            try:
                # gather keeps page order regardless of completion order
                results.extend(await asyncio.gather(*tasks))
            except BaseException:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise

        merged: list[Member] = []
        seen: set[int] = set()
        for members in results:
            for member in members:
                if member.member_id in seen:
                    continue
                seen.add(member.member_id)
                merged.append(member)
        logger.info("members_loaded", extra={"pages": pages, "members": len(merged)})
        return merged

    async def get_member_by_id(self, member_id: int) -> Member:
        resource = f"{MEMBERS_RESOURCE}/{member_id}"
        try:
            response = await self.client.fetch_page(resource)
        except UpstreamMalformed as e:
            raise UpstreamNotFound(
                f"member {member_id} not found", e.status_code, resource
            ) from e
        if not response.data or not isinstance(response.data, dict):
            raise UpstreamNotFound(f"member {member_id} not found", None, resource)
        try:
            return Member.model_validate(response.data)
        except ValidationError as e:
            raise UpstreamNotFound(
                f"member {member_id} not found", None, resource
            ) from e

    async def get_member_by_account(self, account: str) -> Member:
        wanted = account.strip().lower()
        try:
            response = await self.client.fetch_page(
                MEMBERS_RESOURCE, {"search_text": account.strip()}
            )
        except UpstreamMalformed as e:
            raise UpstreamNotFound(
                f"member {account} not found", e.status_code, MEMBERS_RESOURCE
            ) from e
        if response.code == ICAFE_SUCCESS_CODE and isinstance(response.data, dict):
            for member in _parse_members(response.data.get("members")):
                if member.member_account.lower() == wanted:
                    return member
        raise UpstreamNotFound(f"member {account} not found", None, MEMBERS_RESOURCE)

    async def _fetch_members_page(self, page: int) -> tuple[list[Member], int]:
        try:
            response = await self.client.fetch_page(MEMBERS_RESOURCE, {"page": page})
        except UpstreamMalformed:
            logger.warning("members_page_malformed", extra={"page": page})
            return [], 1
        if response.code != ICAFE_SUCCESS_CODE or not isinstance(response.data, dict):
            logger.warning(
                "members_page_rejected", extra={"page": page, "code": response.code}
            )
            return [], 1

        paging = response.data.get("paging_info")
        pages = PagingInfo.model_validate(paging).pages if isinstance(paging, dict) else 1
        return _parse_members(response.data.get("members")), pages


def _parse_members(rows: Any) -> list[Member]:
    if not isinstance(rows, list):
        return []
    members = []
    for row in rows:
        try:
            members.append(Member.model_validate(row))
        except ValidationError as e:
            logger.warning(
                "member_row_invalid", extra={"error_count": e.error_count()}
            )
    return members
