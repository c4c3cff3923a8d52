"""Sample loans and rental properties for demos and manual checks."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from loanbook.dates import due_date_in_month, month_start, next_month, previous_month
from loanbook.generators.base import BaseGenerator
from loanbook.store.base import PortfolioRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoanDraft:
    """Terms for a loan that has not been stored yet."""

    borrower_name: str
    principal: Decimal
    monthly_interest_rate: Decimal
    start_date: date
    due_date: date


@dataclass(frozen=True)
class PropertyDraft:
    """Terms for a property that has not been stored yet."""

    name: str
    rent_amount: Decimal
    payment_day: int


class LoanGenerator(BaseGenerator):
    """Generate private loan terms."""

    # Monthly rates (percent) typical of informal private lending
    MONTHLY_RATES = ("3", "4", "5", "6", "8", "10")

    def generate(self, today: date) -> LoanDraft:
        """Generate loan terms that started within the last four months.

        Parameters
        ----------
        today : date
            Reference date the loan dates are placed around.

        Returns
        -------
        LoanDraft
            Generated terms.
        """
        start_date = today - timedelta(days=self.fake.random_int(5, 120))
        due_date = start_date + timedelta(days=self.fake.random_element((15, 30, 45, 60, 90)))

        return LoanDraft(
            borrower_name=self.fake.name(),
            principal=Decimal(self.fake.random_int(5, 200) * 100),
            monthly_interest_rate=Decimal(self.fake.random_element(self.MONTHLY_RATES)),
            start_date=start_date,
            due_date=due_date,
        )

    def payment_date(self, draft: LoanDraft, today: date) -> date | None:
        """Pick a payment date for a loan past due, or None to leave it open.

        Roughly two in three loans past due are settled, a few days
        around the due date but never after ``today``.
        """
        if draft.due_date >= today or self.fake.random_int(1, 3) == 1:
            return None
        paid_on = draft.due_date + timedelta(days=self.fake.random_int(-5, 10))
        return max(min(paid_on, today), draft.start_date)


class PropertyGenerator(BaseGenerator):
    """Generate rental properties."""

    def generate(self) -> PropertyDraft:
        """Generate a property.

        Returns
        -------
        PropertyDraft
            Generated property terms.
        """
        return PropertyDraft(
            name=f"{self.fake.street_name()}, {self.fake.building_number()}",
            rent_amount=Decimal(self.fake.random_int(8, 60) * 100),
            payment_day=self.fake.random_element((1, 5, 10, 15, 20, 25, 31)),
        )


class SamplePortfolio:
    """Seed a repository with a realistic mix of loans and rentals.

    Loans end up active, overdue or paid. Properties get rent payments
    for the previous months, the current month when already due, and a
    few expenses.
    """

    def __init__(
        self,
        num_loans: int = 8,
        num_properties: int = 3,
        history_months: int = 3,
        seed: int | None = None,
    ) -> None:
        self.num_loans = num_loans
        self.num_properties = num_properties
        self.history_months = history_months
        self.loan_gen = LoanGenerator(seed=seed)
        self.property_gen = PropertyGenerator(seed=seed + 1 if seed is not None else None)

    def populate(self, repo: PortfolioRepository, today: date) -> dict[str, int]:
        """Add sample entities to ``repo``.

        Returns
        -------
        dict[str, int]
            The repository's entity counts afterwards.
        """
        logger.info(
            "Generating %d loans and %d properties", self.num_loans, self.num_properties
        )

        for _ in range(self.num_loans):
            draft = self.loan_gen.generate(today)
            loan = repo.add_loan(
                borrower_name=draft.borrower_name,
                principal=draft.principal,
                monthly_interest_rate=draft.monthly_interest_rate,
                start_date=draft.start_date,
                due_date=draft.due_date,
            )
            paid_on = self.loan_gen.payment_date(draft, today)
            if paid_on is not None:
                repo.mark_loan_paid(loan.loan_id, paid_on)

        for _ in range(self.num_properties):
            draft = self.property_gen.generate()
            prop = repo.add_property(
                name=draft.name,
                rent_amount=draft.rent_amount,
                payment_day=draft.payment_day,
            )
            self._add_history(repo, prop.property_id, draft.payment_day, today)

        summary = repo.summary()
        logger.info("Sample portfolio ready: %s", summary)
        return summary

    def _add_history(
        self,
        repo: PortfolioRepository,
        property_id: str,
        payment_day: int,
        today: date,
    ) -> None:
        current = month_start(today)
        month = current
        for _ in range(self.history_months):
            month = previous_month(month)

        while month <= current:
            due = due_date_in_month(payment_day, month)
            if due <= today:
                repo.receive_rent_payment(property_id, due)
            for _ in range(self.property_gen.fake.random_int(0, 2)):
                repo.add_expense(
                    property_id=property_id,
                    reference_month=month,
                    description=self.property_gen.fake.random_element(
                        ("Condomínio", "IPTU", "Manutenção", "Pintura", "Encanador")
                    ),
                    amount=Decimal(self.property_gen.fake.random_int(50, 800)),
                )
            month = next_month(month)
