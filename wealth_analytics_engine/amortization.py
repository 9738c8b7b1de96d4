"""Loan amortization schedules and extra-payment payoff comparison.

Contract notes:
- Payments are rounded to cents; each month's interest is rounded to cents
  before principal is applied, and the running balance is kept in cents.
- The last scheduled month absorbs any rounding residue.
- Payments that cannot cover interest are replaced by the formula payment
  over the remaining term; a schedule that still cannot amortize stops with
  ``status == "non_convergent"``.
"""

from __future__ import annotations

import math
from datetime import date
from typing import List, Optional

from wealth_analytics_engine._logging import analytics_logger, log_data_quality, log_errors, log_operation
from wealth_analytics_engine.data_objects import Debt, to_date
from wealth_analytics_engine.debt_payoff import project_single_debt_payoff
from wealth_analytics_engine.exceptions import InvalidInputError
from wealth_analytics_engine.flags import generate_amortization_flags, generate_payoff_comparison_flags
from wealth_analytics_engine.periods import add_months
from wealth_analytics_engine.result_objects.amortization import (
    AmortizationRow,
    AmortizationSchedule,
    AmortizationSummary,
    PayoffComparison,
    PayoffSavings,
)


def monthly_payment(principal: float, annual_rate_percent: float, term_months: int) -> float:
    """
    Level payment ``P·r(1+r)^n / ((1+r)^n − 1)`` rounded to cents.

    Zero-rate loans pay ``principal / term``; a non-positive term yields 0.
    """
    if term_months <= 0:
        return 0.0
    if annual_rate_percent <= 0:
        return round(principal / term_months, 2)
    r = annual_rate_percent / 100 / 12
    factor = (1 + r) ** term_months
    return round(principal * r * factor / (factor - 1), 2)


class AmortizationCalculator:
    """
    Builds amortization schedules and payoff comparisons for single loans.

    Example:
        calc = AmortizationCalculator()
        schedule = calc.generate_schedule(loan, as_of=date(2025, 6, 1))
        schedule.summary.percent_paid_off
    """

    def monthly_payment(self, principal: float, annual_rate_percent: float, term_months: int) -> float:
        return monthly_payment(principal, annual_rate_percent, term_months)

    @log_errors("medium")
    @log_operation("amortization_schedule")
    def generate_schedule(self, loan: Debt, as_of: Optional[date] = None) -> AmortizationSchedule:
        """
        Month-by-month schedule from the loan's start date.

        Parameters
        ----------
        loan : Debt
            Needs ``original_amount``, ``term_months`` and ``start_date``;
            without them an empty ``missing_terms`` schedule is returned.
            ``minimum_payment`` overrides the formula payment when present.
        as_of : date, optional
            Reference date for payments made / remaining; defaults to today.

        Raises
        ------
        InvalidInputError
            Negative principal, rate or term.
        """
        from wealth_analytics_engine import config

        as_of = to_date(as_of) or date.today()
        if loan.original_amount is not None and loan.original_amount < 0:
            raise InvalidInputError(f"Loan {loan.id!r} has a negative principal")
        if loan.annual_rate_percent < 0:
            raise InvalidInputError(f"Loan {loan.id!r} has a negative interest rate")
        if loan.term_months is not None and loan.term_months < 0:
            raise InvalidInputError(f"Loan {loan.id!r} has a negative term")

        missing = [
            name
            for name, value in (
                ("original_amount", loan.original_amount),
                ("term_months", loan.term_months),
                ("start_date", loan.start_date),
            )
            if value is None
        ]
        if missing:
            analytics_logger.warning("Loan %s missing required fields for amortization: %s", loan.id, missing)
            flags = generate_amortization_flags({"status": "missing_terms", "missing": missing})
            return AmortizationSchedule(
                debt_id=loan.id,
                monthly_payment=0.0,
                annual_rate_percent=loan.annual_rate_percent,
                original_amount=loan.original_amount,
                current_balance=loan.balance,
                term_months=loan.term_months,
                start_date=loan.start_date,
                status="missing_terms",
                flags=tuple(flags),
            )

        principal = float(loan.original_amount)
        term = int(loan.term_months)
        rate = loan.annual_rate_percent
        r = rate / 100 / 12
        regular_payment = (
            float(loan.minimum_payment) if loan.minimum_payment else monthly_payment(principal, rate, term)
        )

        rows: List[AmortizationRow] = []
        status = "complete"
        balloon = None
        payment = regular_payment
        # formula payments leave only cent-rounding residue for the last month
        formula_payment = not loan.minimum_payment
        balance = principal
        cumulative_principal = 0.0
        cumulative_interest = 0.0

        for n in range(1, term + 1):
            if balance <= 0:
                break
            interest = round(balance * r, 2)
            if payment <= interest:
                payment = monthly_payment(balance, rate, term - n + 1)
                formula_payment = True
                analytics_logger.info(
                    "Loan %s payment does not cover interest at month %d; recomputed to %.2f", loan.id, n, payment
                )
            principal_paid = round(min(payment - interest, balance), 2)
            if principal_paid <= 0:
                status = "non_convergent"
                log_data_quality("negative_amortization", {"debt_id": loan.id, "payment_number": n})
                break

            if n == term:
                principal_paid = balance
            amount = round(principal_paid + interest, 2)
            if n == term and not formula_payment and amount - payment > float(config.DEBT_DEFAULTS["balloon_threshold"]):
                balloon = amount

            balance = round(balance - principal_paid, 2)
            cumulative_principal = round(cumulative_principal + principal_paid, 2)
            cumulative_interest = round(cumulative_interest + interest, 2)
            rows.append(
                AmortizationRow(
                    payment_number=n,
                    date=add_months(loan.start_date, n),
                    payment=amount,
                    principal=principal_paid,
                    interest=interest,
                    balance=max(balance, 0.0),
                    cumulative_principal=cumulative_principal,
                    cumulative_interest=cumulative_interest,
                )
            )

        days_per_month = float(config.DEBT_DEFAULTS["days_per_month"])
        months_elapsed = math.floor((as_of - loan.start_date).days / days_per_month)
        payments_made = min(max(months_elapsed, 0), len(rows))

        shortfall = max(loan.balance - principal, 0.0)
        percent_paid = max((principal - loan.balance) / principal, 0.0) * 100 if principal > 0 else 0.0
        interest_to_date = sum(row.interest for row in rows[:payments_made]) + shortfall

        summary = AmortizationSummary(
            total_payments=round(sum(row.payment for row in rows), 2),
            total_interest=round(sum(row.interest for row in rows), 2),
            total_principal=round(sum(row.principal for row in rows), 2),
            payments_made=payments_made,
            payments_remaining=len(rows) - payments_made,
            percent_paid_off=round(percent_paid, 1),
            interest_paid_to_date=round(interest_to_date, 2),
            interest_remaining=round(sum(row.interest for row in rows[payments_made:]), 2),
            estimated_payoff_date=rows[-1].date if rows else None,
        )
        flags = generate_amortization_flags({
            "status": status,
            "payments_scheduled": len(rows),
            "balloon_payment": balloon,
            "negative_amortization_shortfall": shortfall,
            "percent_paid_off": summary.percent_paid_off,
        })
        return AmortizationSchedule(
            debt_id=loan.id,
            monthly_payment=regular_payment,
            annual_rate_percent=rate,
            original_amount=principal,
            current_balance=loan.balance,
            term_months=term,
            start_date=loan.start_date,
            rows=tuple(rows),
            summary=summary,
            status=status,
            balloon_payment=balloon,
            negative_amortization_shortfall=shortfall,
            flags=tuple(flags),
        )

    @log_errors("medium")
    def compare_payoff(
        self, debt: Debt, extra_monthly_payment: float, as_of: Optional[date] = None
    ) -> PayoffComparison:
        """
        Minimum-payment plan vs minimum plus ``extra_monthly_payment``.

        Savings are reported only when both plans retire the balance; a debt
        without a positive minimum payment or balance yields an empty
        ``not_applicable`` comparison.
        """
        if extra_monthly_payment < 0:
            raise InvalidInputError("extra_monthly_payment must be non-negative")
        as_of = to_date(as_of) or date.today()
        minimum = float(debt.minimum_payment or 0.0)
        if minimum <= 0 or debt.balance <= 0:
            return PayoffComparison(
                debt_id=debt.id,
                extra_monthly_payment=float(extra_monthly_payment),
                current_plan=None,
                accelerated_plan=None,
                status="not_applicable",
            )

        current = project_single_debt_payoff(debt.balance, debt.annual_rate_percent, minimum, as_of)
        accelerated = project_single_debt_payoff(
            debt.balance, debt.annual_rate_percent, minimum + extra_monthly_payment, as_of
        )

        savings = None
        if not current.never_pays_off and not accelerated.never_pays_off:
            months_saved = current.months_remaining - accelerated.months_remaining
            savings = PayoffSavings(
                months_saved=months_saved,
                years_saved=round(months_saved / 12.0, 1),
                interest_saved=round(current.total_interest - accelerated.total_interest, 2),
                total_saved=round(current.total_cost - accelerated.total_cost, 2),
            )

        flags = generate_payoff_comparison_flags({
            "current_never_pays_off": current.never_pays_off,
            "accelerated_never_pays_off": accelerated.never_pays_off,
            "months_saved": savings.months_saved if savings else None,
        })
        return PayoffComparison(
            debt_id=debt.id,
            extra_monthly_payment=float(extra_monthly_payment),
            current_plan=current,
            accelerated_plan=accelerated,
            savings=savings,
            flags=tuple(flags),
        )
