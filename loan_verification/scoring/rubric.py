"""
Verification Rubric Table
loan_verification/scoring/rubric.py

Static definition of the seven scoring categories. Each category carries a
cap and an ordered tuple of weighted items; the scorers sum matched weights
and truncate at the cap (never scale down).

  Category          | Cap | Items
  ──────────────────┼─────┼────────────────────────────────────────────────
  personal          |  15 | 10 items x 1.5
  business          |  30 | 13 core x 2, source + EMI x 2, one conditional
                    |     | sub-block (mfg / trading / service) capped at 6
  banking           |  15 | 5 items x 3
  networth          |  10 | 4 items x 2.5 (+ derived display flag)
  existing_debt     |  10 | 4 items x 2.5, three gated on loans present
  end_use           |  10 | purpose 3, agreement value 3, will occupy 4
  reference_checks  |  10 | personal 4, business 3, invoice 3

Caps sum to exactly 100; validate_rubric() enforces it at import.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional, Tuple

from loan_verification.core.exceptions import RubricDefinitionError
from loan_verification.models.enumerations import BusinessType, Category
from loan_verification.scoring.utils import ZERO, clamp, sum_decimals

RUBRIC_VERSION = "2024.1"

TOTAL_CAP = Decimal("100")
BUSINESS_CONDITIONAL_CAP = Decimal("6")

MIN_MONTHLY_INCOME = Decimal("50000")
MIN_TURNOVER_CREDITED_PERCENT = Decimal("50")
MIN_BANKING_TENURE_MONTHS = Decimal("12")

CORE = "core"
CROSS_CATEGORY = "cross"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RubricItem:
    """One testable fact and the points it is worth."""
    key: str
    label: str
    weight: Decimal
    scored: bool = True          # False: tracked in match maps, never summed
    group: str = CORE            # core, cross, or a BusinessType value

    @property
    def business_type(self) -> Optional[BusinessType]:
        try:
            return BusinessType(self.group)
        except ValueError:
            return None


@dataclass(frozen=True)
class RubricCategory:
    category: Category
    label: str
    cap: Decimal
    items: Tuple[RubricItem, ...]

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(item.key for item in self.items)

    def item(self, key: str) -> RubricItem:
        for item in self.items:
            if item.key == key:
                return item
        raise KeyError(key)

    def conditional_items(self, business_type: BusinessType) -> Tuple[RubricItem, ...]:
        return tuple(i for i in self.items if i.group == business_type.value)

    def sum_matched(
        self,
        matches: Mapping[str, bool],
        items: Optional[Iterable[RubricItem]] = None,
    ) -> Decimal:
        """Sum weights of matched, scored items (no cap applied)."""
        pool = self.items if items is None else items
        return sum_decimals(
            i.weight for i in pool if i.scored and matches.get(i.key, False)
        )

    def capped(self, points: Decimal) -> Decimal:
        return clamp(points, ZERO, self.cap)


def _items(group: str, weight: str, *pairs: Tuple[str, str]) -> Tuple[RubricItem, ...]:
    return tuple(
        RubricItem(key=key, label=label, weight=Decimal(weight), group=group)
        for key, label in pairs
    )


# ---------------------------------------------------------------------------
# THE RUBRIC TABLE
# ---------------------------------------------------------------------------

RUBRIC: Dict[Category, RubricCategory] = {

    Category.PERSONAL: RubricCategory(
        category=Category.PERSONAL,
        label="Personal details",
        cap=Decimal("15"),
        items=_items(
            CORE, "1.5",
            ("self_education", "Applicant education"),
            ("spouse_name", "Spouse name"),
            ("spouse_education", "Spouse education"),
            ("spouse_employment", "Spouse employment"),
            ("mention_about_kids", "Mention about kids"),
            ("kids_education", "Kids education"),
            ("kids_school", "Kids school"),
            ("residence_vintage", "Residence vintage"),
            ("monthly_rent_if_rented", "Residence owned, or monthly rent if rented"),
            ("residence_owned_or_rented", "Residence ownership status documented"),
        ),
    ),

    Category.BUSINESS: RubricCategory(
        category=Category.BUSINESS,
        label="Business details",
        cap=Decimal("30"),
        items=(
            _items(
                CORE, "2",
                ("business_name", "Business name"),
                ("nature_of_business", "Nature of business"),
                ("existence_current_place", "Existence at current place"),
                ("licenses_registrations", "Licenses and registrations"),
                ("promoter_experience", "Promoter experience and qualifications"),
                ("strategic_vision", "Strategic vision clarity"),
                ("employees_seen", "Employees seen"),
                ("monthly_turnover", "Monthly turnover"),
                ("client_list_concentration_risk", "Client list and concentration risk"),
                ("activity_during_visit", "Activity during visit"),
                ("monthly_income", "Monthly income (at least 50,000)"),
                ("seasonality", "Seasonality"),
                ("infra_supports_turnover", "Infrastructure supports turnover"),
            )
            + _items(
                CROSS_CATEGORY, "2",
                ("source_of_business", "Source of business documented"),
                ("comfortable_emi", "Can comfortably service new EMI"),
            )
            + _items(
                BusinessType.MANUFACTURING.value, "1",
                ("mfg_raw_material_sourcing", "Raw material sourcing and storage"),
                ("mfg_process_flow", "Process flow"),
                ("mfg_capacity_utilization", "Capacity vs utilization"),
                ("mfg_machinery", "Machinery make, automation and maintenance"),
                ("mfg_inventory_aging", "Inventory FIFO and aging"),
                ("mfg_quality_control", "Quality control"),
            )
            + _items(
                BusinessType.TRADING.value, "2",
                ("trading_product_range", "Product range and inventory movement"),
                ("trading_purchase_sales_cycle", "Purchase and sales cycle"),
                ("trading_warehouse_stock", "Warehouse stock seen"),
            )
            + _items(
                BusinessType.SERVICE.value, "1.5",
                ("svc_delivery_documentation", "Documentation of service delivery"),
                ("svc_technology_systems", "Technology systems"),
                ("svc_contracts_revenue_model", "Client contracts and revenue model"),
                ("svc_contract_or_walkin", "Contract based or walk-in"),
            )
        ),
    ),

    Category.BANKING: RubricCategory(
        category=Category.BANKING,
        label="Banking details",
        cap=Decimal("15"),
        items=_items(
            CORE, "3",
            ("primary_banker_name", "Primary banker name"),
            ("turnover_credited_percent", "Turnover credited to bank (at least 50%)"),
            ("banking_tenure", "Banking tenure (at least 12 months)"),
            ("emis_routed_bank", "EMIs routed through bank"),
            ("qr_code_spotted", "QR code spotted at premises"),
        ),
    ),

    Category.NETWORTH: RubricCategory(
        category=Category.NETWORTH,
        label="Networth details",
        cap=Decimal("10"),
        items=_items(
            CORE, "2.5",
            ("properties_owned", "Properties owned"),
            ("vehicles_owned", "Vehicles owned"),
            ("other_investments", "Other investments"),
            ("business_place_owned", "Business place owned"),
        )
        + (
            RubricItem(
                key="total_networth_available",
                label="Total networth available",
                weight=Decimal("2.5"),
                scored=False,
            ),
        ),
    ),

    Category.EXISTING_DEBT: RubricCategory(
        category=Category.EXISTING_DEBT,
        label="Existing debt",
        cap=Decimal("10"),
        items=_items(
            CORE, "2.5",
            ("has_existing_loans", "Existing loan status documented"),
            ("loan_list_available", "Loan list available"),
            ("repayment_history_quality", "Good repayment history"),
            ("loans_source_bank_nature", "Loan source and nature"),
        )
        + (
            RubricItem(
                key="can_service_new_loan",
                label="Can service new loan",
                weight=Decimal("2.5"),
                scored=False,
            ),
        ),
    ),

    Category.END_USE: RubricCategory(
        category=Category.END_USE,
        label="End use",
        cap=Decimal("10"),
        items=(
            RubricItem("additional_use_information", "Purpose of loan", Decimal("3")),
            RubricItem("agreement_value_available", "Agreement value available", Decimal("3")),
            RubricItem("will_occupy_post_purchase", "Will occupy post purchase", Decimal("4")),
        ),
    ),

    Category.REFERENCE_CHECKS: RubricCategory(
        category=Category.REFERENCE_CHECKS,
        label="Reference checks",
        cap=Decimal("10"),
        items=(
            RubricItem("personal_ref_neighbours", "Personal reference (neighbours)", Decimal("4")),
            RubricItem("business_ref_buyers_sellers", "Business reference (buyers / sellers)", Decimal("3")),
            RubricItem("invoice_verification", "Invoice verification", Decimal("3")),
        ),
    ),
}


def validate_rubric(rubric: Mapping[Category, RubricCategory]) -> None:
    """Raise RubricDefinitionError if the table is structurally unsound."""
    if set(rubric) != set(Category):
        missing = sorted(c.value for c in set(Category) - set(rubric))
        raise RubricDefinitionError(f"Rubric must define every category; missing {missing}")

    total_cap = sum_decimals(c.cap for c in rubric.values())
    if total_cap != TOTAL_CAP:
        raise RubricDefinitionError(f"Category caps sum to {total_cap}, expected {TOTAL_CAP}")

    for category, definition in rubric.items():
        if definition.category != category:
            raise RubricDefinitionError(f"{category.value}: category key mismatch")
        if definition.cap <= 0:
            raise RubricDefinitionError(f"{category.value}: cap must be positive")
        seen = set()
        for item in definition.items:
            if item.weight <= 0:
                raise RubricDefinitionError(f"{category.value}.{item.key}: weight must be positive")
            if item.key in seen:
                raise RubricDefinitionError(f"{category.value}: duplicate item '{item.key}'")
            seen.add(item.key)
        if category is not Category.BUSINESS and any(i.business_type for i in definition.items):
            raise RubricDefinitionError(f"{category.value}: conditional items belong to business only")


def category_caps() -> Dict[Category, Decimal]:
    return {category: definition.cap for category, definition in RUBRIC.items()}


validate_rubric(RUBRIC)
