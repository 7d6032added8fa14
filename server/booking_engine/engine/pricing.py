"""Pure price computation shared by the self-service and operator booking flows.

All arithmetic is done with ``Decimal`` at full precision. Only the service
fee and tax lines are rounded (to cents) before they are summed; every other
value is rounded for display only.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict

from .addons import AddOnCatalog

CENT = Decimal("0.01")
CHILD_FARE_RATIO = Decimal("0.5")


def round_money(amount: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class PartySelection(Protocol):
    """What the calculator reads from a draft."""

    @property
    def adults(self) -> int: ...

    @property
    def children(self) -> int: ...

    @property
    def add_on_id(self) -> Optional[str]: ...


class FeePolicy(BaseModel):
    """Service fee and tax rates applied on top of the party subtotal."""

    model_config = ConfigDict(frozen=True)

    name: str
    service_fee_rate: Decimal = Decimal("0")
    tax_rate: Decimal = Decimal("0")


# The storefront cart charges fares only; the operator desk adds fee and tax.
SELF_SERVICE = FeePolicy(name="self-service")
OPERATOR = FeePolicy(name="operator", service_fee_rate=Decimal("0.03"), tax_rate=Decimal("0.05"))


class PriceBreakdown(BaseModel):
    """Derived price of a draft. Never mutated, always recomputed."""

    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    add_on_fare: Decimal
    service_fee: Optional[Decimal]
    tax: Optional[Decimal]
    total: Decimal
    overridden: bool = False

    def rounded(self) -> "PriceBreakdown":
        """The same breakdown with every line rounded to cents."""
        return PriceBreakdown(
            subtotal=round_money(self.subtotal),
            add_on_fare=round_money(self.add_on_fare),
            service_fee=None if self.service_fee is None else round_money(self.service_fee),
            tax=None if self.tax is None else round_money(self.tax),
            total=round_money(self.total),
            overridden=self.overridden,
        )

    def display(self) -> dict[str, str]:
        """Display strings; fee and tax lines are omitted when not authoritative."""
        rounded = self.rounded()
        lines = {
            "subtotal": f"{rounded.subtotal:.2f}",
            "add_on_fare": f"{rounded.add_on_fare:.2f}",
        }
        if rounded.service_fee is not None:
            lines["service_fee"] = f"{rounded.service_fee:.2f}"
        if rounded.tax is not None:
            lines["tax"] = f"{rounded.tax:.2f}"
        lines["total"] = f"{rounded.total:.2f}"
        return lines


ZERO_BREAKDOWN = PriceBreakdown(
    subtotal=Decimal("0"),
    add_on_fare=Decimal("0"),
    service_fee=Decimal("0"),
    tax=Decimal("0"),
    total=Decimal("0"),
)


def compute_price(
    draft: PartySelection,
    resource_fare: Decimal,
    add_on_catalog: AddOnCatalog,
    fee_policy: FeePolicy = SELF_SERVICE,
    override_total: Optional[Decimal] = None,
) -> PriceBreakdown:
    """
    Price a party against a resource fare.

    Args:
        draft: Party composition and optional add-on selection
        resource_fare: Effective adult fare of the resource (or chosen variant)
        add_on_catalog: Lookup for the add-on fare schedule
        fee_policy: Fee and tax rates for the calling flow
        override_total: Manual total that replaces the computed one

    Returns:
        PriceBreakdown: The derived price

    Raises:
        KeyError: If the draft references an add-on missing from the catalog
    """
    fare = Decimal(resource_fare)
    adult_line = draft.adults * fare
    child_line = draft.children * (fare * CHILD_FARE_RATIO)
    subtotal = adult_line + child_line

    add_on_fare = Decimal("0")
    if draft.add_on_id:
        # Add-ons are charged per adult; children ride along free
        add_on_fare = add_on_catalog.require(draft.add_on_id).fare * draft.adults

    if override_total is not None:
        return PriceBreakdown(
            subtotal=subtotal,
            add_on_fare=add_on_fare,
            service_fee=None,
            tax=None,
            total=Decimal(override_total),
            overridden=True,
        )

    service_fee = round_money(subtotal * fee_policy.service_fee_rate)
    tax = round_money(subtotal * fee_policy.tax_rate)
    return PriceBreakdown(
        subtotal=subtotal,
        add_on_fare=add_on_fare,
        service_fee=service_fee,
        tax=tax,
        total=subtotal + add_on_fare + service_fee + tax,
    )
