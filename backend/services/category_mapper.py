"""Table-driven mapping from the aggregator's taxonomy to ledger types.

Two lookups live here:

- account kind: ``(CONTAINER, accountType)`` from a Yodlee account payload
  to one of the :mod:`models.account_kind` variants;
- transaction category: Yodlee category id to a ledger category slug.

Both are plain dict tables so they can be swapped without touching the
importers. Nothing in this module performs I/O except
:func:`load_category_map`, which callers run once at construction.
"""

import json
import logging
from pathlib import Path
from typing import Callable, Mapping

from integrations.parsing_utils import amount_from_money, parse_decimal, to_minor_units
from models.account_kind import (
    AccountKind,
    CreditCard,
    Depository,
    Investment,
    Loan,
    OtherAsset,
    OtherLiability,
    Property,
)

logger = logging.getLogger(__name__)

UNCATEGORIZED = "uncategorized"
DEFAULT_ACCOUNT_KIND = "OtherAsset"

# (container, subtype) -> kind name. A ``None`` subtype is the container default.
ACCOUNT_KIND_TABLE: dict[tuple[str, str | None], str] = {
    ("bank", "CHECKING"): "Depository",
    ("bank", "SAVINGS"): "Depository",
    ("bank", None): "OtherAsset",
    ("creditCard", None): "CreditCard",
    ("investment", None): "Investment",
    ("insurance", None): "OtherAsset",
    ("loan", None): "Loan",
    ("realEstate", None): "Property",
    ("otherAssets", None): "OtherAsset",
    ("otherLiabilities", None): "OtherLiability",
}

# Yodlee category id -> ledger category slug. Override with CATEGORY_MAP_PATH.
DEFAULT_CATEGORY_MAP: dict[str, str] = {
    "1": UNCATEGORIZED,
    "2": "transportation",
    "3": "charity",
    "5": "shopping",
    "6": "education",
    "7": "entertainment",
    "8": "transportation",
    "9": "gifts",
    "10": "groceries",
    "11": "healthcare",
    "13": "home_improvement",
    "15": "insurance",
    "17": "loan_payments",
    "18": "personal_care",
    "19": "food_and_drink",
    "20": "rent_and_utilities",
    "22": "fees",
    "23": "travel",
    "24": "transfer",
    "27": "income",
    "28": "transfer",
    "32": "income",
}


def map_account_kind(
    container: str | None,
    subtype: str | None,
    table: Mapping[tuple[str, str | None], str] = ACCOUNT_KIND_TABLE,
) -> str:
    """Return the ledger account kind name for a container/subtype pair.

    The exact ``(container, subtype)`` entry wins, then the container
    default, then :data:`DEFAULT_ACCOUNT_KIND`.
    """
    if not container:
        return DEFAULT_ACCOUNT_KIND
    normalized_subtype = subtype.upper() if subtype else None
    if normalized_subtype is not None and (container, normalized_subtype) in table:
        return table[(container, normalized_subtype)]
    return table.get((container, None), DEFAULT_ACCOUNT_KIND)


def _subtype(raw_payload: dict) -> str:
    return str(raw_payload.get("accountType") or "").lower()


def _build_depository(raw_payload: dict) -> Depository:
    return Depository(subtype="checking" if "checking" in _subtype(raw_payload) else "savings")


def _build_credit_card(raw_payload: dict) -> CreditCard:
    limit = amount_from_money(raw_payload.get("availableCredit"))
    return CreditCard(limit_minor_units=to_minor_units(limit) if limit is not None else None)


def _build_investment(raw_payload: dict) -> Investment:
    return Investment(subtype="brokerage")


def _build_loan(raw_payload: dict) -> Loan:
    rate = parse_decimal(raw_payload.get("interestRate"))
    return Loan(
        subtype="mortgage" if "mortgage" in _subtype(raw_payload) else "personal_loan",
        interest_rate=float(rate) if rate is not None else None,
    )


def _build_property(raw_payload: dict) -> Property:
    return Property(property_type="residential")


KIND_BUILDERS: dict[str, Callable[[dict], AccountKind]] = {
    "Depository": _build_depository,
    "CreditCard": _build_credit_card,
    "Investment": _build_investment,
    "Loan": _build_loan,
    "Property": _build_property,
    "OtherAsset": lambda raw_payload: OtherAsset(),
    "OtherLiability": lambda raw_payload: OtherLiability(),
}


class TypeMapper:
    """Maps raw account payloads to account kind variants."""

    def __init__(
        self,
        table: Mapping[tuple[str, str | None], str] | None = None,
        builders: Mapping[str, Callable[[dict], AccountKind]] | None = None,
    ):
        self._table = dict(table) if table is not None else ACCOUNT_KIND_TABLE
        self._builders = dict(builders) if builders is not None else KIND_BUILDERS

    def kind_name(self, raw_payload: dict) -> str:
        return map_account_kind(
            raw_payload.get("CONTAINER"), raw_payload.get("accountType"), self._table
        )

    def build_account_kind(self, raw_payload: dict) -> AccountKind:
        """Build the kind variant, including kind-specific fields."""
        name = self.kind_name(raw_payload)
        builder = self._builders.get(name)
        if builder is None:
            raise ValueError(f"No builder registered for account kind {name!r}")
        return builder(raw_payload)


def load_category_map(path: str | Path) -> dict[str, str]:
    """Load a category map from a JSON object of ``{category_id: slug}``.

    Raises:
        ValueError: If the file does not hold a flat string-to-string object.
        OSError: If the file cannot be read.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Category map {path} must be a JSON object")
    mapping = {}
    for key, value in data.items():
        if not isinstance(value, str) or not value:
            raise ValueError(f"Category map {path}: slug for {key!r} must be a non-empty string")
        mapping[str(key)] = value
    logger.info("Loaded %d category mappings from %s", len(mapping), path)
    return mapping


class CategoryMapper:
    """Maps aggregator category ids to ledger category slugs."""

    def __init__(self, mapping: Mapping[str, str] | None = None):
        self._mapping = dict(mapping) if mapping is not None else dict(DEFAULT_CATEGORY_MAP)

    @classmethod
    def from_settings(cls, category_map_path: str = "") -> "CategoryMapper":
        """Use the JSON file at ``category_map_path`` if set, else the defaults."""
        if category_map_path:
            return cls(load_category_map(category_map_path))
        return cls()

    def map_category(self, category_id) -> str:
        if category_id is None or category_id == "":
            return UNCATEGORIZED
        return self._mapping.get(str(category_id), UNCATEGORIZED)
