"""
Fees and Coupons

Works out what a new applicant pays for each payment option and applies
coupon codes from the program's fee structure.

Payment options:
- application: the registration (application) fee only
- course: total course fee plus the registration fee
- custom: an applicant-chosen amount between the minimum and the total

When the catalog has no fee structure for the program, the configured
default application and course fees are used and coupons are unavailable.
"""

import logging
import math
from datetime import UTC, datetime

from admission_portal.core.config import settings
from admission_portal.core.money import format_inr
from admission_portal.modules.applications.schemas import CamelModel, PaymentOption
from admission_portal.modules.backend.schemas import CouponCode, FeeStructure

from .exceptions import InvalidAmountError

logger = logging.getLogger(__name__)


class CouponResult(CamelModel):
    is_valid: bool
    discount_amount: float = 0
    final_amount: float
    coupon_code: str | None = None
    error: str | None = None


class FeeBreakdown(CamelModel):
    payment_option: PaymentOption
    application_fee: float
    total_course_fee: float
    base_amount: float
    remaining_amount: float
    discount_amount: float = 0
    final_amount: float
    coupon: CouponResult | None = None
    uses_default_fees: bool = False

    @property
    def grand_total(self) -> float:
        return self.total_course_fee + self.application_fee


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _find_coupon(fee_structure: FeeStructure, code: str, now: datetime) -> CouponCode | None:
    wanted = code.upper()
    for coupon in fee_structure.coupon_codes:
        if (
            coupon.code.upper() == wanted
            and coupon.is_active
            and _aware(coupon.valid_from) <= now <= _aware(coupon.valid_until)
            and coupon.used_count < coupon.usage_limit
        ):
            return coupon
    return None


def validate_coupon(
    fee_structure: FeeStructure | None,
    code: str | None,
    amount: float,
    now: datetime | None = None,
) -> CouponResult:
    """
    Check a coupon code against the fee structure and price the discount.

    Invalid coupons come back as a result with `is_valid=False` and the
    applicant-facing reason in `error`; the final amount is then unchanged.
    """
    code = (code or "").strip()
    if not code:
        return CouponResult(is_valid=False, final_amount=amount, error="Please enter a coupon code")

    if fee_structure is None:
        return CouponResult(is_valid=False, final_amount=amount, error="Fee structure not found")

    now = _aware(now or datetime.now(UTC))
    coupon = _find_coupon(fee_structure, code, now)
    if coupon is None:
        return CouponResult(
            is_valid=False, final_amount=amount, error="Invalid or expired coupon code"
        )

    if amount < coupon.minimum_amount:
        return CouponResult(
            is_valid=False,
            final_amount=amount,
            error=f"Minimum amount required: {format_inr(coupon.minimum_amount)}",
        )

    if coupon.discount_type == "percentage":
        discount = amount * coupon.discount_value / 100
        if coupon.maximum_discount is not None:
            discount = min(discount, coupon.maximum_discount)
    else:
        discount = coupon.discount_value

    return CouponResult(
        is_valid=True,
        discount_amount=discount,
        final_amount=max(0, amount - discount),
        coupon_code=coupon.code,
    )


def validate_custom_amount(raw: str | float | None, total_amount: float) -> float:
    """
    Parse and bound an applicant-entered amount.

    Raises:
        InvalidAmountError: with the message to show next to the input
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise InvalidAmountError("Please enter a payment amount")

    try:
        amount = float(raw)
    except (TypeError, ValueError) as e:
        raise InvalidAmountError("Please enter a valid amount") from e

    if not math.isfinite(amount) or amount <= 0:
        raise InvalidAmountError("Please enter a valid amount")

    if amount > total_amount:
        raise InvalidAmountError(f"Amount cannot exceed total amount of {format_inr(total_amount)}")

    minimum = settings.minimum_payment_amount
    if amount < minimum:
        raise InvalidAmountError(f"Minimum payment amount is {format_inr(minimum)}")

    return amount


def calculate_fees(
    fee_structure: FeeStructure | None,
    option: PaymentOption,
    custom_amount: str | float | None = None,
    coupon_code: str | None = None,
    now: datetime | None = None,
) -> FeeBreakdown:
    """
    Price a payment option.

    The coupon, when given, is validated against the option's base amount.
    An invalid coupon leaves the final amount at the base amount and is
    reported on `coupon`.
    """
    if fee_structure is None:
        application_fee = float(settings.default_application_fee)
        total_course_fee = float(settings.default_total_fee)
    else:
        application_fee = fee_structure.registration_fee
        total_course_fee = fee_structure.total_fee
    grand_total = total_course_fee + application_fee

    if option == PaymentOption.COURSE:
        base_amount = grand_total
    elif option == PaymentOption.CUSTOM:
        base_amount = validate_custom_amount(custom_amount, grand_total)
    else:
        base_amount = application_fee

    coupon = None
    final_amount = base_amount
    discount = 0.0
    if coupon_code:
        coupon = validate_coupon(fee_structure, coupon_code, base_amount, now=now)
        if coupon.is_valid:
            final_amount = coupon.final_amount
            discount = coupon.discount_amount
        else:
            logger.info(f"Coupon not applied: {coupon.error}")

    return FeeBreakdown(
        payment_option=option,
        application_fee=application_fee,
        total_course_fee=total_course_fee,
        base_amount=base_amount,
        remaining_amount=max(0, grand_total - base_amount),
        discount_amount=discount,
        final_amount=final_amount,
        coupon=coupon,
        uses_default_fees=fee_structure is None,
    )
