"""
Discount validity evaluation.

A rule applies when it is active and the as-of date falls inside its
inclusive [valid_from, valid_until] window. Comparison is by calendar date;
time-of-day is stripped from every input.
"""

import logging
from datetime import date, datetime
from typing import Iterable

from src.pricing.models import DiscountRule

logger = logging.getLogger(__name__)


def to_calendar_date(value: date | datetime | str | None) -> date | None:
    """
    Reduce a date-like value to a calendar date.

    Args:
        value: date, datetime, ISO-8601 string ("2024-01-01" or
            "2024-01-01T10:30:00"), or None.

    Returns:
        date | None: Calendar date, or None for None / empty string.

    Raises:
        ValueError: If a string is not ISO-8601.
    """
    if value is None:
        return None
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    # Only the date part matters
    return date.fromisoformat(text[:10])


def is_discount_valid(
    rule: DiscountRule,
    as_of: date | datetime | str | None = None,
) -> bool:
    """
    Check whether a discount rule applies on a given day.

    Args:
        rule: Discount rule to check.
        as_of: Day to check (default: today).

    Returns:
        bool: True if the rule is active and inside its window.
    """
    if not rule.active:
        return False

    check_date = to_calendar_date(as_of) or date.today()

    valid_from = to_calendar_date(rule.valid_from)
    if valid_from is not None and check_date < valid_from:
        return False

    valid_until = to_calendar_date(rule.valid_until)
    if valid_until is not None and check_date > valid_until:
        return False

    return True


def get_active_discount(
    customer_id: str,
    plan_id: str,
    rules: Iterable[DiscountRule],
    as_of: date | datetime | str | None = None,
) -> DiscountRule | None:
    """
    Find the first valid discount for a customer/plan combination.

    Args:
        customer_id: Customer ID.
        plan_id: Plan (or product) ID.
        rules: All known discount rules.
        as_of: Day to check (default: today).

    Returns:
        DiscountRule | None: Matching valid rule, or None.
    """
    for rule in rules:
        if rule.customer_id != customer_id or rule.plan_id != plan_id:
            continue
        if is_discount_valid(rule, as_of):
            return rule

    logger.debug(f"No active discount for customer={customer_id} plan={plan_id}")
    return None
