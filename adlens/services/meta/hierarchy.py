"""
Business manager / ad account hierarchy

One batch fetches the user, their directly accessible ad accounts and their
business managers. A second round of chunked batches fetches the owned and
client ad accounts of every business manager. Accounts without a business
end up under the synthetic "Direct Accounts" manager.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from adlens.core.exceptions import (
    GraphAPIError,
    MetaAPIError,
    NoAccountsFound,
    RateLimitExceeded,
)
from adlens.schemas.meta import AdAccount, BusinessManager
from adlens.services.meta.base import MetaAggregator, PartialResult
from adlens.services.meta.batch import BatchRequest, BatchResult, build_relative_url
from adlens.services.meta.graph_client import normalize_ad_account_id

logger = logging.getLogger(__name__)

DIRECT_MANAGER_ID = "direct"
DIRECT_MANAGER_NAME = "Direct Accounts"

ACCOUNT_FIELDS = "id,account_id,name,currency,timezone_name,account_status"
DIRECT_ACCOUNT_FIELDS = f"{ACCOUNT_FIELDS},business{{id,name}}"
BUSINESS_FIELDS = "id,name,permitted_tasks"
LIST_LIMIT = 100


def parse_ad_account(
    row: Dict[str, Any],
    business_id: Optional[str] = None,
    business_name: Optional[str] = None,
) -> Optional[AdAccount]:
    raw_id = row.get("id") or row.get("account_id")
    if not raw_id:
        return None
    act_id = normalize_ad_account_id(raw_id)
    status = row.get("account_status")
    return AdAccount(
        id=act_id,
        account_id=str(row.get("account_id") or act_id[len("act_"):]),
        name=row.get("name") or act_id,
        currency=row.get("currency"),
        timezone_name=row.get("timezone_name"),
        account_status=int(status) if isinstance(status, (int, str)) and str(status).isdigit() else None,
        business_id=business_id,
        business_name=business_name,
    )


def _add_account(manager: BusinessManager, account: AdAccount) -> None:
    if any(existing.id == account.id for existing in manager.ad_accounts):
        return
    manager.ad_accounts.append(account)


def _raise_for_credential(results: List[BatchResult]) -> None:
    for result in results:
        if result.error:
            error = GraphAPIError.from_payload(result.error, status_code=result.code or None)
            if error.is_credential_error:
                raise error


class BusinessHierarchyResolver(MetaAggregator):
    kind = "businesses"

    async def fetch_business_hierarchy(self, access_token: str) -> List[BusinessManager]:
        """
        Business managers that own at least one readable ad account.

        Raises:
            NoAccountsFound: Nothing readable for this user
            RateLimitExceeded: Nothing could be read because Meta throttled us
            CredentialExpired: The access token was rejected
        """
        managers, _ = await self.resolve_business_hierarchy(access_token)
        return managers

    async def resolve_business_hierarchy(
        self,
        access_token: str,
    ) -> Tuple[List[BusinessManager], Optional[MetaAPIError]]:
        """Hierarchy plus the error that left it incomplete, if any. Incomplete results are not cached."""
        result = await self.run(access_token, lambda: self._collect(access_token))
        if isinstance(result, PartialResult):
            return result.value, result.error
        return result, None

    async def _collect(self, access_token: str) -> Any:
        results = await self.batch.execute_batch(access_token, [
            BatchRequest(build_relative_url("me", {"fields": "id,name"})),
            BatchRequest(build_relative_url(
                "me/adaccounts", {"fields": DIRECT_ACCOUNT_FIELDS, "limit": LIST_LIMIT}
            )),
            BatchRequest(build_relative_url(
                "me/businesses", {"fields": BUSINESS_FIELDS, "limit": LIST_LIMIT}
            )),
        ])
        _raise_for_credential(results)
        me, direct, businesses = results
        failures = [r for r in results if not r.ok]

        if me.ok and isinstance(me.body, dict):
            logger.info(f"Resolving ad account hierarchy for Meta user {me.body.get('id')}")

        managers: Dict[str, BusinessManager] = {}
        for row in businesses.rows:
            if not row.get("id"):
                continue
            managers[row["id"]] = BusinessManager(
                id=row["id"],
                name=row.get("name") or row["id"],
                permitted_tasks=row.get("permitted_tasks") or [],
            )

        if managers:
            failures.extend(await self._collect_business_accounts(access_token, managers))

        direct_manager = BusinessManager(id=DIRECT_MANAGER_ID, name=DIRECT_MANAGER_NAME)
        for row in direct.rows:
            business = row.get("business") or {}
            business_id = business.get("id")
            if business_id:
                manager = managers.setdefault(
                    business_id,
                    BusinessManager(id=business_id, name=business.get("name") or business_id),
                )
                account = parse_ad_account(row, business_id, manager.name)
            else:
                manager = direct_manager
                account = parse_ad_account(row)
            if account:
                _add_account(manager, account)

        hierarchy = [m for m in managers.values() if m.ad_accounts]
        if direct_manager.ad_accounts:
            hierarchy.append(direct_manager)

        if not hierarchy:
            if any(f.is_rate_limited for f in failures):
                raise RateLimitExceeded(
                    "Meta is rate limiting requests; ad accounts could not be loaded",
                    details={"failed_requests": len(failures)},
                )
            raise NoAccountsFound(
                "No ad accounts found for this Meta user",
                details={"failed_requests": len(failures)},
            )

        logger.info(
            f"Resolved {len(hierarchy)} business managers with "
            f"{sum(len(m.ad_accounts) for m in hierarchy)} ad accounts"
        )
        throttled = [f for f in failures if f.is_rate_limited]
        if throttled:
            return PartialResult(hierarchy, RateLimitExceeded(
                "Meta is rate limiting requests; some ad accounts could not be loaded",
                details={"failed_requests": len(throttled)},
            ))
        return hierarchy

    async def _collect_business_accounts(
        self,
        access_token: str,
        managers: Dict[str, BusinessManager],
    ) -> List[BatchResult]:
        """Fill owned and client accounts in place; returns the failed items."""
        business_ids = list(managers)
        requests = []
        for business_id in business_ids:
            for edge in ("owned_ad_accounts", "client_ad_accounts"):
                requests.append(BatchRequest(build_relative_url(
                    f"{business_id}/{edge}", {"fields": ACCOUNT_FIELDS, "limit": LIST_LIMIT}
                )))

        results = await self.batch.execute_chunked(access_token, requests)
        _raise_for_credential(results)

        for index, result in enumerate(results):
            manager = managers[business_ids[index // 2]]
            for row in result.rows:
                account = parse_ad_account(row, manager.id, manager.name)
                if account:
                    _add_account(manager, account)
        return [r for r in results if not r.ok]


class AccountDetailsService(MetaAggregator):
    kind = "account"

    async def fetch_account_details(self, access_token: str, account_id: str) -> AdAccount:
        act_id = normalize_ad_account_id(account_id)

        async def collect() -> AdAccount:
            payload = await self.client.get(act_id, access_token, {"fields": ACCOUNT_FIELDS})
            account = parse_ad_account(payload if isinstance(payload, dict) else {})
            if account is None:
                raise NoAccountsFound(f"Ad account {act_id} not found", details={"account_id": act_id})
            return account

        return await self.run(access_token, collect, account_id=act_id)
