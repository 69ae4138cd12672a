"""Plaid adapter for the provider capability."""

import json
import logging
from decimal import Decimal
from typing import Any, Optional

import plaid
from plaid.api import plaid_api
from plaid.exceptions import ApiException
from plaid.model.accounts_balance_get_request import AccountsBalanceGetRequest
from plaid.model.transactions_sync_request import TransactionsSyncRequest
from urllib3.exceptions import HTTPError

from ledgersync.config import Settings
from ledgersync.domain.entities import (
    ChangeSet,
    Linkage,
    ProviderBalance,
    ProviderPage,
    ProviderRecord,
)
from ledgersync.domain.errors import ConfigurationError, ProviderError
from ledgersync.providers.base import SyncProvider

logger = logging.getLogger(__name__)

PLAID_ENVIRONMENTS = {
    "sandbox": plaid.Environment.Sandbox,
    "production": plaid.Environment.Production,
}

# Plaid caps transactions/sync at 500 records per page
MAX_PAGE_SIZE = 500


def create_plaid_client(settings: Settings) -> plaid_api.PlaidApi:
    """Build a Plaid API client from settings.

    Raises:
        ConfigurationError: If credentials are missing or the environment is unknown
    """
    if not settings.plaid_configured:
        raise ConfigurationError("PLAID_CLIENT_ID and PLAID_SECRET must be set to sync")

    env_name = settings.plaid_env.lower()
    # Plaid retired its development environment; its keys work against production
    if env_name == "development":
        env_name = "production"
    host = PLAID_ENVIRONMENTS.get(env_name)
    if host is None:
        raise ConfigurationError(
            f"Invalid PLAID_ENV '{settings.plaid_env}'. Must be one of: sandbox, development, production"
        )

    configuration = plaid.Configuration(
        host=host,
        api_key={
            "clientId": settings.plaid_client_id,
            "secret": settings.plaid_secret,
        },
    )
    logger.debug("Plaid client configured for %s", env_name)
    return plaid_api.PlaidApi(plaid.ApiClient(configuration))


class PlaidProvider(SyncProvider):
    """Fetches one item's changes through /transactions/sync."""

    def __init__(
        self,
        client: plaid_api.PlaidApi,
        access_token: str,
        timeout: float = 30.0,
        page_size: int = MAX_PAGE_SIZE,
    ):
        self.client = client
        self.access_token = access_token
        self.timeout = timeout
        self.page_size = min(page_size, MAX_PAGE_SIZE)

    def fetch_page(self, cursor: Optional[str]) -> ProviderPage:
        request_args: dict[str, Any] = {
            "access_token": self.access_token,
            "count": self.page_size,
        }
        if cursor:
            request_args["cursor"] = cursor

        try:
            response = self.client.transactions_sync(
                TransactionsSyncRequest(**request_args), _request_timeout=self.timeout
            )
        except ApiException as e:
            raise _provider_error(e) from e
        except (OSError, HTTPError) as e:
            raise ProviderError(f"Plaid request failed: {e}", code="NETWORK_ERROR") from e

        changes = ChangeSet(
            added=[_to_record(txn) for txn in response.get("added", [])],
            modified=[_to_record(txn) for txn in response.get("modified", [])],
            removed=[txn.get("transaction_id") for txn in response.get("removed", [])],
        )
        logger.debug(
            "Plaid page: %d added, %d modified, %d removed, has_more=%s",
            len(changes.added),
            len(changes.modified),
            len(changes.removed),
            response["has_more"],
        )
        return ProviderPage(
            changes=changes,
            next_cursor=response["next_cursor"],
            has_more=bool(response["has_more"]),
        )

    def fetch_balances(self) -> list[ProviderBalance]:
        try:
            response = self.client.accounts_balance_get(
                AccountsBalanceGetRequest(access_token=self.access_token), _request_timeout=self.timeout
            )
        except ApiException as e:
            raise _provider_error(e) from e
        except (OSError, HTTPError) as e:
            raise ProviderError(f"Plaid request failed: {e}", code="NETWORK_ERROR") from e

        balances = []
        for account in response.get("accounts", []):
            current = account["balances"].get("current")
            if current is None:
                continue
            balances.append(
                ProviderBalance(
                    account_external_id=account["account_id"],
                    current=Decimal(str(current)),
                )
            )
        return balances


def plaid_provider_factory(settings: Settings):
    """Return a provider factory that shares one Plaid client across linkages."""
    client = create_plaid_client(settings)

    def factory(linkage: Linkage) -> PlaidProvider:
        return PlaidProvider(client, linkage.access_token, timeout=settings.plaid_timeout)

    return factory


def _to_record(txn: Any) -> ProviderRecord:
    # Legacy category hierarchy, most general first, e.g. ["Travel", "Airlines"]
    category = txn.get("category")
    return ProviderRecord(
        external_id=txn.get("transaction_id"),
        account_external_id=txn.get("account_id"),
        date=txn.get("date"),
        amount=txn.get("amount"),
        description=txn.get("name"),
        merchant_name=txn.get("merchant_name"),
        category_hint=category[0] if category else None,
        pending=bool(txn.get("pending", False)),
    )


def _provider_error(e: ApiException) -> ProviderError:
    """Translate a Plaid API exception, keeping Plaid's error code."""
    code = None
    message = e.reason or "Plaid API error"
    if e.body:
        try:
            payload = json.loads(e.body)
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            code = payload.get("error_code")
            message = payload.get("error_message") or message
    return ProviderError(message, code=code or (str(e.status) if e.status else None))
