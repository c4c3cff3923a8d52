"""Tests for the loan accrual calculator."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from loanbook.accrual import (
    accrued_to_date,
    as_calendar_date,
    close_loan,
    compute_accrual,
    contract_loan,
    days_until_due,
    elapsed_days,
    finalize_loan,
    is_overdue,
    loan_figures,
    round_money,
    split_duration,
    to_decimal,
    validate_terms,
)
from loanbook.exceptions import InvalidEntityStateError, InvalidTermsError
from loanbook.models import Duration, Loan, LoanStatus, LoanTerms
from loanbook.store.base import draft_loan


def make_loan(
    principal: str = "3000",
    rate: str = "10",
    start: date = date(2024, 1, 1),
    due: date = date(2024, 1, 31),
) -> Loan:
    return draft_loan(
        loan_id="loan-001",
        borrower_name="Maria Silva",
        principal=principal,
        monthly_interest_rate=rate,
        start_date=start,
        due_date=due,
    )


class TestComputeAccrual:
    """Tests for compute_accrual."""

    def test_thirty_days_at_ten_percent(self) -> None:
        """A full commercial month charges the whole monthly rate."""
        result = compute_accrual(Decimal("3000"), Decimal("10"), date(2024, 1, 1), date(2024, 1, 31))

        assert result.total_days == 30
        assert result.interest_amount == Decimal("300.00")
        assert result.total_payable == Decimal("3300.00")
        assert result.is_overdue is False

    def test_fifteen_days_at_five_percent(self) -> None:
        """Half a month charges half the monthly rate."""
        result = compute_accrual(Decimal("1000"), Decimal("5"), date(2024, 3, 1), date(2024, 3, 16))

        assert result.total_days == 15
        assert result.interest_amount == Decimal("25.00")
        assert result.total_payable == Decimal("1025.00")

    def test_zero_rate(self) -> None:
        """Zero rate accrues no interest."""
        result = compute_accrual(Decimal("500"), Decimal("0"), date(2024, 1, 1), date(2024, 2, 15))

        assert result.interest_amount == 0
        assert result.total_payable == Decimal("500")

    def test_daily_rate(self) -> None:
        """Daily rate is the monthly rate over 30 days."""
        result = compute_accrual(Decimal("3000"), Decimal("10"), date(2024, 1, 1), date(2024, 1, 31))

        assert result.daily_rate == Decimal("10") / 30

    @pytest.mark.parametrize(
        "principal,rate,start,end",
        [
            ("1000", "3", date(2024, 1, 1), date(2024, 1, 8)),
            ("1234.56", "7", date(2024, 1, 1), date(2024, 2, 15)),
            ("2500", "4.5", date(2024, 5, 10), date(2024, 5, 11)),
            ("80000", "2.75", date(2023, 12, 1), date(2024, 11, 30)),
        ],
    )
    def test_matches_pro_rata_formula(
        self, principal: str, rate: str, start: date, end: date
    ) -> None:
        """Interest equals principal * (daily_rate / 100) * days."""
        result = compute_accrual(principal, rate, start, end)

        days = (end - start).days
        expected = Decimal(principal) * (Decimal(rate) / 30 / 100) * days
        assert result.total_days == days
        assert round_money(result.interest_amount) == round_money(expected)
        assert result.total_payable == Decimal(principal) + result.interest_amount

    def test_same_day_counts_one_day(self) -> None:
        """Equal start and end dates accrue one day."""
        result = compute_accrual(Decimal("3000"), Decimal("10"), date(2024, 1, 1), date(2024, 1, 1))

        assert result.total_days == 1
        assert result.interest_amount == Decimal("10")

    def test_inverted_dates_count_one_day(self) -> None:
        """An end before the start accrues one day instead of failing."""
        result = compute_accrual(Decimal("3000"), Decimal("10"), date(2024, 2, 1), date(2024, 1, 1))

        assert result.total_days == 1
        assert result.interest_amount == Decimal("10")

    def test_monotonic_in_end_date(self) -> None:
        """Moving the end date later never lowers the interest."""
        start = date(2024, 1, 1)
        previous = Decimal("0")
        for offset in range(0, 120, 7):
            end = date.fromordinal(start.toordinal() + offset)
            interest = compute_accrual("1500", "6", start, end).interest_amount
            assert interest >= previous
            previous = interest

    def test_idempotent(self) -> None:
        """Same inputs give identical results."""
        args = (Decimal("1750.50"), Decimal("8"), date(2024, 1, 3), date(2024, 4, 17))

        assert compute_accrual(*args) == compute_accrual(*args)

    def test_time_component_ignored(self) -> None:
        """Datetimes are truncated to dates before counting days."""
        result = compute_accrual(
            "1000", "5", datetime(2024, 3, 1, 23, 59), datetime(2024, 3, 16, 0, 1)
        )

        assert result.total_days == 15

    def test_accepts_iso_strings_and_floats(self) -> None:
        """ISO strings and floats are accepted without float drift."""
        result = compute_accrual(1000.1, 3.3, "2024-01-01", "2024-01-31T12:00:00")

        assert result.total_days == 30
        assert result.interest_amount == Decimal("1000.1") * Decimal("3.3") / 100

    @pytest.mark.parametrize("principal", ["0", "-100", 0, -0.01])
    def test_non_positive_principal_rejected(self, principal: object) -> None:
        """Principal must be strictly positive."""
        with pytest.raises(InvalidTermsError, match="principal"):
            compute_accrual(principal, "5", date(2024, 1, 1), date(2024, 1, 31))

    def test_negative_rate_rejected(self) -> None:
        """Negative rates are rejected."""
        with pytest.raises(InvalidTermsError, match="monthly_rate"):
            compute_accrual("1000", "-1", date(2024, 1, 1), date(2024, 1, 31))


class TestToDecimal:
    """Tests for numeric coercion."""

    def test_float_goes_through_str(self) -> None:
        assert to_decimal(0.1) == Decimal("0.1")

    def test_int_and_str(self) -> None:
        assert to_decimal(5) == Decimal("5")
        assert to_decimal("12.50") == Decimal("12.50")

    @pytest.mark.parametrize("value", ["abc", None, True, "NaN", "Infinity", [1]])
    def test_invalid_values(self, value: object) -> None:
        """Non-numbers, booleans and non-finite values are rejected."""
        with pytest.raises(InvalidTermsError):
            to_decimal(value, "principal")

    def test_validate_terms_returns_decimals(self) -> None:
        principal, rate = validate_terms(1000, "2.5")

        assert principal == Decimal("1000")
        assert rate == Decimal("2.5")


class TestDates:
    """Tests for date handling helpers."""

    def test_as_calendar_date(self) -> None:
        assert as_calendar_date(datetime(2024, 1, 1, 23, 59)) == date(2024, 1, 1)
        assert as_calendar_date(date(2024, 1, 1)) == date(2024, 1, 1)
        assert as_calendar_date("2024-01-31") == date(2024, 1, 31)
        assert as_calendar_date("2024-01-31T10:00:00-03:00") == date(2024, 1, 31)

    def test_as_calendar_date_rejects_other_types(self) -> None:
        with pytest.raises(TypeError):
            as_calendar_date(20240101)  # type: ignore[arg-type]

    def test_elapsed_days_clamped(self) -> None:
        assert elapsed_days(date(2024, 1, 1), date(2024, 1, 31)) == 30
        assert elapsed_days(date(2024, 1, 1), date(2024, 1, 1)) == 1
        assert elapsed_days(date(2024, 1, 31), date(2024, 1, 1)) == 1

    def test_days_until_due(self) -> None:
        assert days_until_due(date(2024, 1, 10), date(2024, 1, 7)) == 3
        assert days_until_due(date(2024, 1, 10), date(2024, 1, 10)) == 0
        assert days_until_due(date(2024, 1, 10), date(2024, 1, 12)) == -2


class TestIsOverdue:
    """Tests for the overdue rule."""

    def test_due_today_is_not_overdue(self) -> None:
        assert is_overdue(LoanStatus.ACTIVE, date(2024, 3, 20), date(2024, 3, 20)) is False

    def test_due_yesterday_is_overdue(self) -> None:
        assert is_overdue(LoanStatus.ACTIVE, date(2024, 3, 19), date(2024, 3, 20)) is True

    def test_due_tomorrow_is_not_overdue(self) -> None:
        assert is_overdue(LoanStatus.ACTIVE, date(2024, 3, 21), date(2024, 3, 20)) is False

    def test_paid_loans_never_overdue(self) -> None:
        assert is_overdue(LoanStatus.PAID, date(2020, 1, 1), date(2024, 3, 20)) is False

    def test_accepts_status_value(self) -> None:
        assert is_overdue("active", "2024-03-19", "2024-03-20") is True


class TestSplitDuration:
    """Tests for month/day display split."""

    @pytest.mark.parametrize(
        "days,months,extra,label",
        [
            (1, 0, 1, "1 dia(s)"),
            (29, 0, 29, "29 dia(s)"),
            (30, 1, 0, "1 mês(es)"),
            (65, 2, 5, "2 mês(es) e 5 dia(s)"),
        ],
    )
    def test_split(self, days: int, months: int, extra: int, label: str) -> None:
        duration = split_duration(days)

        assert duration == Duration(months=months, extra_days=extra)
        assert duration.total_days == days
        assert duration.label == label


class TestLoanLifecycle:
    """Tests for contracting, closing and reading loan figures."""

    def test_contract_derives_figures(self) -> None:
        loan = make_loan()

        assert loan.contracted_days == 30
        assert loan.contracted_interest == Decimal("300")

    def test_finalize_uses_payment_date(self) -> None:
        terms = LoanTerms(
            principal=Decimal("3000"),
            monthly_interest_rate=Decimal("10"),
            start_date=date(2024, 1, 1),
            end_date=date(2024, 1, 31),
        )

        result = finalize_loan(terms, date(2024, 1, 11))

        assert result.total_days == 10
        assert result.interest_amount == Decimal("100")

    def test_paid_figures_frozen(self) -> None:
        """Figures frozen at payment are returned unchanged later."""
        paid = close_loan(make_loan(), date(2024, 1, 11))

        on_payment_day = loan_figures(paid, date(2024, 1, 11))
        forty_days_later = loan_figures(paid, date(2024, 2, 10))

        assert paid.status == LoanStatus.PAID
        assert paid.payment_date == date(2024, 1, 11)
        assert paid.final_total_days == 10
        assert paid.final_interest_amount == Decimal("100")
        assert paid.final_total_paid == Decimal("3100")
        assert on_payment_day == forty_days_later
        assert forty_days_later.interest_amount == Decimal("100")
        assert forty_days_later.is_overdue is False

    def test_paid_figures_not_recomputed_from_terms(self) -> None:
        """Stored final figures win over the current terms."""
        paid = close_loan(make_loan(), date(2024, 1, 11))
        paid.final_interest_amount = Decimal("123.45")
        paid.final_total_paid = Decimal("3123.45")

        figures = loan_figures(paid, date(2024, 6, 1))

        assert figures.interest_amount == Decimal("123.45")
        assert figures.total_payable == Decimal("3123.45")

    def test_missing_total_paid_falls_back_to_sum(self) -> None:
        paid = close_loan(make_loan(), date(2024, 1, 11))
        paid.final_total_paid = None

        assert loan_figures(paid, date(2024, 2, 1)).total_payable == Decimal("3100")

    def test_paid_without_final_figures_rejected(self) -> None:
        loan = make_loan()
        loan.status = LoanStatus.PAID

        with pytest.raises(InvalidEntityStateError):
            loan_figures(loan, date(2024, 2, 1))

    def test_close_twice_rejected(self) -> None:
        paid = close_loan(make_loan(), date(2024, 1, 11))

        with pytest.raises(InvalidEntityStateError, match="already paid"):
            close_loan(paid, date(2024, 1, 20))

    def test_contract_paid_loan_rejected(self) -> None:
        paid = close_loan(make_loan(), date(2024, 1, 11))

        with pytest.raises(InvalidEntityStateError):
            contract_loan(paid)

    def test_active_figures_measured_to_due_date(self) -> None:
        loan = make_loan()

        figures = loan_figures(loan, date(2024, 1, 5))

        assert figures.total_days == 30
        assert figures.interest_amount == Decimal("300")
        assert figures.is_overdue is False

    def test_active_figures_flag_overdue(self) -> None:
        figures = loan_figures(make_loan(), date(2024, 2, 1))

        assert figures.is_overdue is True
        assert figures.total_days == 30

    def test_accrued_to_date(self) -> None:
        """Live estimate runs from start to today."""
        loan = make_loan()

        result = accrued_to_date(loan, date(2024, 1, 11))

        assert result.total_days == 10
        assert result.interest_amount == Decimal("100")

    def test_accrued_to_date_paid_loan_frozen(self) -> None:
        paid = close_loan(make_loan(), date(2024, 1, 11))

        assert accrued_to_date(paid, date(2024, 5, 1)).interest_amount == Decimal("100")


class TestRoundMoney:
    """Tests for presentation rounding."""

    def test_half_up(self) -> None:
        assert round_money(Decimal("1.005")) == Decimal("1.01")
        assert round_money(Decimal("1.004")) == Decimal("1.00")

    def test_repeating_fraction(self) -> None:
        result = compute_accrual("1000", "5", date(2024, 1, 1), date(2024, 1, 30))

        assert round_money(result.interest_amount) == Decimal("48.33")
