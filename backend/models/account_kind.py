"""Account kind variants for ledger accounts.

Each ledger account has exactly one kind. The kind is stored as a
discriminator string (``LedgerAccount.account_kind``) plus a JSON blob of
the variant's own fields (``LedgerAccount.kind_details``). In Python the
pair is surfaced as one of the frozen dataclasses below, so each variant
carries only the attributes that make sense for it.
"""

from dataclasses import asdict, dataclass
from typing import Union


@dataclass(frozen=True)
class Depository:
    subtype: str = "checking"  # "checking" | "savings"


@dataclass(frozen=True)
class CreditCard:
    subtype: str = "credit_card"
    limit_minor_units: int | None = None


@dataclass(frozen=True)
class Investment:
    subtype: str = "brokerage"


@dataclass(frozen=True)
class Loan:
    subtype: str = "personal_loan"  # "mortgage" | "personal_loan"
    interest_rate: float | None = None


@dataclass(frozen=True)
class Property:
    property_type: str = "residential"


@dataclass(frozen=True)
class OtherAsset:
    pass


@dataclass(frozen=True)
class OtherLiability:
    pass


AccountKind = Union[
    Depository, CreditCard, Investment, Loan, Property, OtherAsset, OtherLiability
]

KIND_CLASSES: dict[str, type] = {
    cls.__name__: cls
    for cls in (
        Depository,
        CreditCard,
        Investment,
        Loan,
        Property,
        OtherAsset,
        OtherLiability,
    )
}

LIABILITY_KINDS = frozenset({"CreditCard", "Loan", "OtherLiability"})


def kind_name(kind: AccountKind) -> str:
    """Return the discriminator string stored for a kind variant."""
    return type(kind).__name__


def kind_to_dict(kind: AccountKind) -> dict:
    """Serialize a kind variant's fields for the JSON column."""
    return asdict(kind)


def kind_from_dict(name: str, details: dict | None) -> AccountKind:
    """Rebuild a kind variant from its discriminator and stored fields.

    Unknown keys in ``details`` are ignored so older rows keep loading
    after a variant drops a field.

    Raises:
        ValueError: If ``name`` is not a known account kind.
    """
    cls = KIND_CLASSES.get(name)
    if cls is None:
        raise ValueError(f"Unknown account kind: {name!r}")
    details = details or {}
    fields = {
        key: value
        for key, value in details.items()
        if key in cls.__dataclass_fields__
    }
    return cls(**fields)
