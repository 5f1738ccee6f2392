"""Financial-ledger profile: the default domain knowledge of the compiler.

Everything here is data: the dependency table between onboarding and
transaction endpoints, how identifiers are read back from responses, which
service owns which path, the example vocabulary (status objects, USD asset
codes, postal addresses, transfer payloads) and the end-to-end scenario.
"""

from __future__ import annotations

from copy import deepcopy

from .dependencies import DependencyEntry, ExtractionStrategy
from .examples import NIL_UUID
from .heuristics import (
    GenerationContext,
    HeuristicSet,
    PropertyRule,
    SchemaRule,
    constant,
    name_equals,
)
from .json_types import JSONValue
from .profile import BodyFixup, BodyTransform, CompilerProfile, EndpointMatcher, TextBody
from .routing import RoutingTable, ServiceRoute
from .workflow import WorkflowStep

ORGANIZATIONS = "/v1/organizations"
ORGANIZATION = "/v1/organizations/{id}"
LEDGERS = "/v1/organizations/{organization_id}/ledgers"
LEDGER = "/v1/organizations/{organization_id}/ledgers/{id}"
LEDGER_SCOPE = "/v1/organizations/{organization_id}/ledgers/{ledger_id}"

LEDGER_DEPENDENCIES: dict[str, DependencyEntry] = {
    f"POST {ORGANIZATIONS}": DependencyEntry(provides=("organizationId",)),
    f"GET {ORGANIZATION}": DependencyEntry(requires=("organizationId",)),
    f"POST {LEDGERS}": DependencyEntry(provides=("ledgerId",), requires=("organizationId",)),
    f"GET {LEDGER}": DependencyEntry(requires=("organizationId", "ledgerId")),
    f"POST {LEDGER_SCOPE}/assets": DependencyEntry(
        provides=("assetId",),
        requires=("organizationId", "ledgerId"),
    ),
    f"GET {LEDGER_SCOPE}/assets/{{id}}": DependencyEntry(
        requires=("organizationId", "ledgerId", "assetId"),
    ),
    f"POST {LEDGER_SCOPE}/accounts": DependencyEntry(
        provides=("accountId", "accountAlias"),
        requires=("organizationId", "ledgerId"),
    ),
    f"GET {LEDGER_SCOPE}/accounts/{{id}}": DependencyEntry(
        requires=("organizationId", "ledgerId", "accountId"),
    ),
    f"POST {LEDGER_SCOPE}/transactions/json": DependencyEntry(
        provides=("transactionId", "balanceId", "operationId"),
        requires=("organizationId", "ledgerId"),
    ),
    f"GET {LEDGER_SCOPE}/transactions/{{id}}": DependencyEntry(
        requires=("organizationId", "ledgerId", "transactionId"),
    ),
    f"GET {LEDGER_SCOPE}/operations/{{id}}": DependencyEntry(
        requires=("organizationId", "ledgerId", "operationId"),
    ),
    f"GET {LEDGER_SCOPE}/accounts/{{account_id}}/balances": DependencyEntry(
        provides=("balanceId",),
        requires=("organizationId", "ledgerId", "accountId"),
    ),
    f"GET {LEDGER_SCOPE}/accounts/{{account_id}}/balances/{{id}}": DependencyEntry(
        requires=("organizationId", "ledgerId", "accountId", "balanceId"),
    ),
    f"POST {LEDGER_SCOPE}/asset-rates": DependencyEntry(
        provides=("assetRateId",),
        requires=("organizationId", "ledgerId"),
    ),
    f"GET {LEDGER_SCOPE}/asset-rates/{{id}}": DependencyEntry(
        requires=("organizationId", "ledgerId", "assetRateId"),
    ),
    f"POST {LEDGER_SCOPE}/portfolios": DependencyEntry(
        provides=("portfolioId",),
        requires=("organizationId", "ledgerId"),
    ),
    f"GET {LEDGER_SCOPE}/portfolios/{{id}}": DependencyEntry(
        requires=("organizationId", "ledgerId", "portfolioId"),
    ),
    f"POST {LEDGER_SCOPE}/segments": DependencyEntry(
        provides=("segmentId",),
        requires=("organizationId", "ledgerId"),
    ),
    f"GET {LEDGER_SCOPE}/segments/{{id}}": DependencyEntry(
        requires=("organizationId", "ledgerId", "segmentId"),
    ),
}

LEDGER_EXTRACTORS: dict[str, ExtractionStrategy] = {
    "accountAlias": ExtractionStrategy.ALIAS,
    "balanceId": ExtractionStrategy.LIST,
    "operationId": ExtractionStrategy.OPERATION,
}

LEDGER_ROUTING = RoutingTable(
    routes=(
        ServiceRoute(
            base_variable="transactionUrl",
            segments=frozenset(
                {
                    "transactions",
                    "operations",
                    "balances",
                    "asset-rates",
                    "operation-routes",
                    "transaction-routes",
                }
            ),
        ),
    ),
    default_base="onboardingUrl",
    parameter_variables={
        "organization_id": "organizationId",
        "ledger_id": "ledgerId",
        "account_id": "accountId",
        "asset_id": "assetId",
        "transaction_id": "transactionId",
        "operation_id": "operationId",
        "balance_id": "balanceId",
        "portfolio_id": "portfolioId",
        "segment_id": "segmentId",
        "asset_rate_id": "assetRateId",
        "alias": "accountAlias",
        "code": "externalCode",
        "asset_code": "assetCode",
        "external_id": "assetRateId",
    },
    resource_variables={
        "organizations": "organizationId",
        "ledgers": "ledgerId",
        "accounts": "accountId",
        "assets": "assetId",
        "portfolios": "portfolioId",
        "segments": "segmentId",
        "operations": "operationId",
        "transactions": "transactionId",
        "balances": "balanceId",
        "asset-rates": "assetRateId",
    },
)

ACTIVE_STATUS: dict[str, JSONValue] = {"code": "ACTIVE"}

ADDRESS_EXAMPLE: dict[str, JSONValue] = {
    "city": "New York",
    "country": "US",
    "line1": "123 Financial Avenue",
    "line2": "Suite 1500",
    "state": "NY",
    "zipCode": "10001",
}

EXTERNAL_USD_ACCOUNT = "@external/USD"
ACCOUNT_ALIAS_TEMPLATE = "{{accountAlias}}"
OUTFLOW_SEGMENT = "/transactions/outflow"


def _is_status(name: str) -> bool:
    return name.lower().endswith("status")


def _is_currency(name: str) -> bool:
    lowered = name.lower()
    if lowered.endswith("id"):
        return False
    return "currency" in lowered or "asset" in lowered


def send_example(context: GenerationContext) -> JSONValue:
    """Transfer payload: external funding by default, withdrawal on outflow URLs."""
    outflow = OUTFLOW_SEGMENT in context.url
    kind = "withdrawal" if outflow else "funding"
    return {
        "asset": "USD",
        "value": "100.00",
        "source": {
            "from": [
                {
                    "account": ACCOUNT_ALIAS_TEMPLATE if outflow else EXTERNAL_USD_ACCOUNT,
                    "amount": {"asset": "USD", "value": "100.00"},
                    "description": "Debit Operation" if outflow else "External funding",
                    "chartOfAccounts": "WITHDRAWAL_DEBIT" if outflow else "FUNDING_DEBIT",
                    "metadata": {"operation": kind, "type": "account" if outflow else "external"},
                }
            ]
        },
        "distribute": {
            "to": [
                {
                    "account": EXTERNAL_USD_ACCOUNT if outflow else ACCOUNT_ALIAS_TEMPLATE,
                    "amount": {"asset": "USD", "value": "100.00"},
                    "description": "External withdrawal" if outflow else "Credit Operation",
                    "chartOfAccounts": "WITHDRAWAL_CREDIT" if outflow else "FUNDING_CREDIT",
                    "metadata": {"operation": kind, "type": "external" if outflow else "account"},
                }
            ]
        },
    }


def account_example(context: GenerationContext) -> JSONValue:
    """Pick the external or the created account depending on transfer direction."""
    outflow = OUTFLOW_SEGMENT in context.url
    segments = set(context.path.split("."))
    if segments & {"source", "from"}:
        return ACCOUNT_ALIAS_TEMPLATE if outflow else EXTERNAL_USD_ACCOUNT
    if segments & {"distribute", "to"}:
        return EXTERNAL_USD_ACCOUNT if outflow else ACCOUNT_ALIAS_TEMPLATE
    return ACCOUNT_ALIAS_TEMPLATE


LEDGER_HEURISTICS = HeuristicSet(
    property_rules=(
        PropertyRule("status", _is_status, constant(ACTIVE_STATUS)),
        PropertyRule("address", name_equals("address"), constant(ADDRESS_EXAMPLE)),
        PropertyRule("metadata", name_equals("metadata"), constant({"key": "value"})),
        PropertyRule("currency", _is_currency, constant("USD"), types=frozenset({"string"})),
        PropertyRule("account", name_equals("account"), account_example, types=frozenset({"string"})),
    ),
    schema_rules=(
        SchemaRule("send", name_equals("Send"), send_example),
        SchemaRule("status", _is_status, constant(ACTIVE_STATUS)),
        SchemaRule("address", name_equals("Address"), constant(ADDRESS_EXAMPLE)),
    ),
    excluded_body_properties=frozenset({"parentOrganizationId"}),
)

LEDGER_TAG_DESCRIPTIONS: dict[str, str] = {
    "Organizations": "Endpoints for managing organizations, the top-level entities of the ledger.",
    "Ledgers": (
        "Endpoints for managing ledgers, which track assets, accounts, and transactions "
        "within an organization."
    ),
    "Accounts": (
        "Endpoints for managing accounts, the individual financial entities within a ledger."
    ),
    "Assets": "Endpoints for managing assets, the types of value transferred between accounts.",
    "Transactions": "Endpoints for managing transactions, the movement of value between accounts.",
    "Operations": (
        "Endpoints for managing operations, the individual debit and credit entries "
        "of a transaction."
    ),
    "Balances": "Endpoints for retrieving account balances.",
    "Asset Rates": "Endpoints for managing asset exchange rates.",
    "Portfolios": "Endpoints for managing portfolios, accounts grouped for reporting.",
    "Segments": "Endpoints for managing segments, categories of accounts for reporting.",
    "default": "API endpoints of the ledger.",
}

DSL_EXAMPLE = """(transaction V1
  (chart-of-accounts-group-name PIX_TRANSACTIONS)
  (description "Funding transaction from external source")
  (metadata
    (reference FUNDING-DSL-001)
  )
  (send USD 100|2
    (source
      (from @external/USD :amount USD 100|2
        (description "Debit Operation - External Funding")
        (chart-of-accounts EXTERNAL_DEBIT)
      )
    )
    (distribute
      (to {{accountAlias}} :amount USD 100|2
        (description "Credit Operation - Account Funding")
        (chart-of-accounts ACCOUNT_CREDIT)
      )
    )
  )
)
"""


def _without_scale(body: JSONValue) -> JSONValue:
    if not isinstance(body, dict):
        return body
    return {key: value for key, value in body.items() if key != "scale"}


def _with_usd_asset(body: JSONValue) -> JSONValue:
    if not isinstance(body, dict):
        return body
    updated = dict(body)
    updated.setdefault("assetCode", "USD")
    return updated


def usd_asset_body(body: JSONValue) -> JSONValue:
    updated = dict(body) if isinstance(body, dict) else {}
    updated["code"] = "USD"
    updated["name"] = "US Dollar"
    return updated


def account_creation_body(body: JSONValue) -> JSONValue:
    if not isinstance(body, dict):
        return body
    return {
        key: value
        for key, value in body.items()
        if not (key in ("parentAccountId", "portfolioId", "segmentId") and value == NIL_UUID)
    }


def account_update_body(body: JSONValue) -> JSONValue:
    if not isinstance(body, dict):
        return {}
    return {key: body[key] for key in ("name", "alias", "status", "metadata") if body.get(key)}


def _named_body(name: str) -> BodyTransform:
    def transform(body: JSONValue) -> JSONValue:
        updated: dict[str, JSONValue] = {"name": name}
        if isinstance(body, dict) and body.get("metadata"):
            updated["metadata"] = deepcopy(body["metadata"])
        return updated

    return transform


FUNDING_TRANSACTION: dict[str, JSONValue] = {
    "chartOfAccountsGroupName": "PIX_TRANSACTIONS",
    "description": "Initial funding from external source",
    "metadata": {"reference": "FUNDING-001", "source": "e2e-test"},
    "send": {
        "asset": "USD",
        "value": 1000,
        "scale": 2,
        "source": {
            "from": [
                {
                    "account": EXTERNAL_USD_ACCOUNT,
                    "amount": {"asset": "USD", "value": 1000, "scale": 2},
                    "description": "Debit Operation - External Funding",
                    "chartOfAccounts": "EXTERNAL_DEBIT",
                    "metadata": {"operation": "funding", "type": "external"},
                }
            ]
        },
        "distribute": {
            "to": [
                {
                    "account": ACCOUNT_ALIAS_TEMPLATE,
                    "amount": {"asset": "USD", "value": 1000, "scale": 2},
                    "description": "Credit Operation - Account Funding",
                    "chartOfAccounts": "ACCOUNT_CREDIT",
                    "metadata": {"operation": "funding", "type": "account"},
                }
            ]
        },
    },
}


def funding_transaction_body(_body: JSONValue) -> JSONValue:
    return deepcopy(FUNDING_TRANSACTION)


_ALIAS = (("accountAlias", ExtractionStrategy.ALIAS),)
_ID = ExtractionStrategy.ID

LEDGER_WORKFLOW: tuple[WorkflowStep, ...] = (
    WorkflowStep("GET", ORGANIZATIONS, "1. List Organizations"),
    WorkflowStep("POST", ORGANIZATIONS, "2. Create Organization"),
    WorkflowStep("GET", ORGANIZATION, "3. Get Organization"),
    WorkflowStep("PATCH", ORGANIZATION, "4. Update Organization"),
    WorkflowStep("GET", LEDGERS, "5. List Ledgers"),
    WorkflowStep("POST", LEDGERS, "6. Create Ledger"),
    WorkflowStep("GET", LEDGER, "7. Get Ledger"),
    WorkflowStep("PATCH", LEDGER, "8. Update Ledger"),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/assets", "9. List Assets"),
    WorkflowStep(
        "POST",
        f"{LEDGER_SCOPE}/assets",
        "10. Create USD Asset",
        body_override=usd_asset_body,
    ),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/assets/{{id}}", "11. Get Asset"),
    WorkflowStep("PATCH", f"{LEDGER_SCOPE}/assets/{{id}}", "12. Update Asset"),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/accounts", "13. List Accounts"),
    WorkflowStep(
        "POST",
        f"{LEDGER_SCOPE}/accounts",
        "14. Create Account",
        body_override=account_creation_body,
    ),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/accounts/{{id}}", "15. Get Account", extracts=_ALIAS),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/accounts/alias/{{alias}}", "16. Get Account by Alias"),
    WorkflowStep(
        "PATCH",
        f"{LEDGER_SCOPE}/accounts/{{id}}",
        "17. Update Account",
        body_override=account_update_body,
    ),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/portfolios", "18. List Portfolios"),
    WorkflowStep(
        "POST",
        f"{LEDGER_SCOPE}/portfolios",
        "19. Create Portfolio",
        body_override=_named_body("Test Portfolio"),
    ),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/portfolios/{{id}}", "20. Get Portfolio"),
    WorkflowStep("PATCH", f"{LEDGER_SCOPE}/portfolios/{{id}}", "21. Update Portfolio"),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/segments", "22. List Segments"),
    WorkflowStep(
        "POST",
        f"{LEDGER_SCOPE}/segments",
        "23. Create Segment",
        body_override=_named_body("Test Segment"),
    ),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/segments/{{id}}", "24. Get Segment"),
    WorkflowStep("PATCH", f"{LEDGER_SCOPE}/segments/{{id}}", "25. Update Segment"),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/transactions", "26. List Transactions"),
    WorkflowStep(
        "POST",
        f"{LEDGER_SCOPE}/transactions/json",
        "27. Create Transaction using JSON",
        body_override=funding_transaction_body,
        requires=("accountId",),
    ),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/transactions/{{id}}", "28. Get Transaction"),
    WorkflowStep("PATCH", f"{LEDGER_SCOPE}/transactions/{{id}}", "29. Update Transaction"),
    WorkflowStep(
        "POST",
        f"{LEDGER_SCOPE}/transactions/{{transaction_id}}/commit",
        "30. Commit Transaction",
    ),
    WorkflowStep(
        "GET",
        f"{LEDGER_SCOPE}/accounts/{{account_id}}/balances",
        "31. Get Account Balances",
    ),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/balances", "32. List All Balances"),
    WorkflowStep(
        "GET",
        f"{LEDGER_SCOPE}/balances/{{id}}",
        "33. Get Balance by ID",
        extracts=(("balanceId", _ID),),
    ),
    WorkflowStep("PATCH", f"{LEDGER_SCOPE}/balances/{{id}}", "34. Update Balance"),
    WorkflowStep("GET", f"{LEDGER_SCOPE}/operations", "35. List Operations"),
    WorkflowStep(
        "GET",
        f"{LEDGER_SCOPE}/operations/{{id}}",
        "36. Get Operation",
        extracts=(("operationId", _ID),),
    ),
    WorkflowStep("PATCH", f"{LEDGER_SCOPE}/operations/{{id}}", "37. Update Operation"),
    WorkflowStep(
        "POST",
        f"{LEDGER_SCOPE}/transactions/templates",
        "38. Create Transaction Template",
    ),
    WorkflowStep(
        "POST",
        f"{LEDGER_SCOPE}/transactions/{{transaction_id}}/revert",
        "39. Revert Transaction",
    ),
    WorkflowStep("DELETE", f"{LEDGER_SCOPE}/balances/{{id}}", "40. Delete Balance"),
    WorkflowStep("DELETE", f"{LEDGER_SCOPE}/accounts/{{id}}", "41. Delete Account"),
    WorkflowStep("DELETE", f"{LEDGER_SCOPE}/segments/{{id}}", "42. Delete Segment"),
    WorkflowStep("DELETE", f"{LEDGER_SCOPE}/portfolios/{{id}}", "43. Delete Portfolio"),
    WorkflowStep("DELETE", f"{LEDGER_SCOPE}/assets/{{id}}", "44. Delete Asset"),
    WorkflowStep("DELETE", LEDGER, "45. Delete Ledger"),
    WorkflowStep("DELETE", ORGANIZATION, "46. Delete Organization"),
)

LEDGER_PROFILE = CompilerProfile(
    name="ledger",
    environment_name="MIDAZ",
    dependencies=LEDGER_DEPENDENCIES,
    extractors=LEDGER_EXTRACTORS,
    heuristics=LEDGER_HEURISTICS,
    routing=LEDGER_ROUTING,
    tag_descriptions=LEDGER_TAG_DESCRIPTIONS,
    workflow_folder="E2E Flow",
    workflow_description=(
        "Complete workflow that demonstrates the entire API flow from creating an "
        "organization to funding an account and cleaning up resources"
    ),
    workflow_steps=LEDGER_WORKFLOW,
    body_fixups=(
        BodyFixup(EndpointMatcher("POST", "/assets"), _without_scale),
        BodyFixup(EndpointMatcher("POST", "/accounts"), _with_usd_asset),
    ),
    text_bodies=(TextBody(EndpointMatcher("POST", "/transactions/dsl"), DSL_EXAMPLE),),
    idempotent_endpoints=(
        EndpointMatcher("POST", "/transactions/json"),
        EndpointMatcher("POST", "/transactions/dsl"),
    ),
)
