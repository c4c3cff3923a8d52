"""PostgreSQL-backed portfolio store."""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable

import psycopg
from psycopg.rows import dict_row

from loanbook.accrual import as_calendar_date, close_loan
from loanbook.config import ReportConfig
from loanbook.dates import month_start
from loanbook.exceptions import EntityNotFoundError, InvalidEntityStateError, StoreError
from loanbook.models import (
    Expense,
    Loan,
    LoanStatus,
    Property,
    RentPayment,
    RentPaymentStatus,
)
from loanbook.store.base import (
    draft_loan,
    revise_loan,
    validate_expense_amount,
    validate_rent,
)

logger = logging.getLogger(__name__)

# Status values as stored in the database
LOAN_STATUS_TO_DB = {LoanStatus.ACTIVE: "ativo", LoanStatus.PAID: "pago"}
LOAN_STATUS_FROM_DB = {v: k for k, v in LOAN_STATUS_TO_DB.items()}
RENT_STATUS_TO_DB = {RentPaymentStatus.PENDING: "pendente", RentPaymentStatus.PAID: "pago"}
RENT_STATUS_FROM_DB = {v: k for k, v in RENT_STATUS_TO_DB.items()}

CREATE_TABLES_SQL = """
CREATE SEQUENCE IF NOT EXISTS emprestimos_display_seq;

CREATE TABLE IF NOT EXISTS emprestimos (
    id TEXT PRIMARY KEY,
    display_id TEXT NOT NULL,
    cliente_nome TEXT NOT NULL,
    valor_emprestado NUMERIC NOT NULL CHECK (valor_emprestado > 0),
    juros_mensal NUMERIC NOT NULL CHECK (juros_mensal >= 0),
    dias_contratados INTEGER NOT NULL,
    juros_total_contratado NUMERIC NOT NULL,
    data_inicio DATE NOT NULL,
    data_fim DATE NOT NULL,
    status TEXT NOT NULL DEFAULT 'ativo',
    data_pagamento DATE,
    dias_finais INTEGER,
    juros_final NUMERIC,
    total_pago_final NUMERIC,
    created_at TIMESTAMPTZ DEFAULT now(),
    updated_at TIMESTAMPTZ
);

CREATE TABLE IF NOT EXISTS imoveis (
    id TEXT PRIMARY KEY,
    nome TEXT NOT NULL,
    valor_aluguel NUMERIC NOT NULL,
    ativo BOOLEAN NOT NULL DEFAULT TRUE,
    dia_pagamento INTEGER NOT NULL DEFAULT 10,
    created_at TIMESTAMPTZ DEFAULT now(),
    updated_at TIMESTAMPTZ
);

CREATE TABLE IF NOT EXISTS imoveis_pagamentos (
    id TEXT PRIMARY KEY,
    imovel_id TEXT NOT NULL REFERENCES imoveis(id) ON DELETE CASCADE,
    mes_ref DATE NOT NULL,
    status TEXT NOT NULL,
    data_pagamento DATE,
    valor_pago NUMERIC,
    created_at TIMESTAMPTZ DEFAULT now(),
    UNIQUE (imovel_id, mes_ref)
);

CREATE TABLE IF NOT EXISTS imoveis_gastos (
    id TEXT PRIMARY KEY,
    imovel_id TEXT NOT NULL REFERENCES imoveis(id) ON DELETE CASCADE,
    mes_ref DATE NOT NULL,
    descricao TEXT NOT NULL,
    valor NUMERIC NOT NULL,
    categoria TEXT,
    created_at TIMESTAMPTZ DEFAULT now()
);
"""

LOAN_COLUMNS = (
    "id, display_id, cliente_nome, valor_emprestado, juros_mensal, dias_contratados, "
    "juros_total_contratado, data_inicio, data_fim, status, data_pagamento, dias_finais, "
    "juros_final, total_pago_final, created_at, updated_at"
)


def row_to_loan(row: dict[str, Any]) -> Loan:
    """Map an ``emprestimos`` row to a Loan."""
    return Loan(
        loan_id=row["id"],
        display_id=row["display_id"],
        borrower_name=row["cliente_nome"],
        principal=Decimal(row["valor_emprestado"]),
        monthly_interest_rate=Decimal(row["juros_mensal"]),
        contracted_days=row["dias_contratados"],
        contracted_interest=Decimal(row["juros_total_contratado"]),
        start_date=row["data_inicio"],
        due_date=row["data_fim"],
        status=LOAN_STATUS_FROM_DB[row["status"]],
        payment_date=row["data_pagamento"],
        final_total_days=row["dias_finais"],
        final_interest_amount=row["juros_final"],
        final_total_paid=row["total_pago_final"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def row_to_property(row: dict[str, Any]) -> Property:
    """Map an ``imoveis`` row to a Property."""
    return Property(
        property_id=row["id"],
        name=row["nome"],
        rent_amount=Decimal(row["valor_aluguel"]),
        active=row["ativo"],
        payment_day=row["dia_pagamento"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def row_to_rent_payment(row: dict[str, Any]) -> RentPayment:
    """Map an ``imoveis_pagamentos`` row to a RentPayment."""
    return RentPayment(
        payment_id=row["id"],
        property_id=row["imovel_id"],
        reference_month=row["mes_ref"],
        status=RENT_STATUS_FROM_DB[row["status"]],
        paid_on=row["data_pagamento"],
        amount_paid=row["valor_pago"],
        created_at=row["created_at"],
    )


def row_to_expense(row: dict[str, Any]) -> Expense:
    """Map an ``imoveis_gastos`` row to an Expense."""
    return Expense(
        expense_id=row["id"],
        property_id=row["imovel_id"],
        reference_month=row["mes_ref"],
        description=row["descricao"],
        amount=Decimal(row["valor"]),
        category=row["categoria"],
        created_at=row["created_at"],
    )


class PostgresPortfolioStore:
    """Portfolio repository over a PostgreSQL connection.

    Marking a loan as paid locks the row and updates it only while it is
    still active, so concurrent confirmations finalize it once.
    """

    def __init__(
        self,
        connection_string: str,
        clock: Callable[[], date] | None = None,
    ) -> None:
        """Open the connection.

        Parameters
        ----------
        connection_string : str
            PostgreSQL connection string.
        clock : Callable[[], date] | None
            Source of today's date (default: configured timezone).
        """
        self.clock = clock or ReportConfig().today
        try:
            self.conn = psycopg.connect(connection_string, autocommit=True, row_factory=dict_row)
        except psycopg.Error as e:
            raise StoreError(f"Could not connect to PostgreSQL: {e}") from e

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        """Cursor inside a transaction; database errors become StoreError."""
        try:
            with self.conn.transaction():
                with self.conn.cursor() as cur:
                    yield cur
        except psycopg.Error as e:
            raise StoreError(str(e)) from e

    def create_tables(self) -> None:
        """Create tables if they do not exist."""
        with self._cursor() as cur:
            cur.execute(CREATE_TABLES_SQL)
        logger.info("PostgreSQL tables ready")

    def close(self) -> None:
        """Close the connection."""
        self.conn.close()

    # Loans
    def add_loan(
        self,
        borrower_name: str,
        principal: Any,
        monthly_interest_rate: Any,
        start_date: date | str,
        due_date: date | str,
    ) -> Loan:
        """Validate terms, derive contracted figures and insert a new loan."""
        loan = draft_loan(
            loan_id=uuid.uuid4().hex,
            borrower_name=borrower_name,
            principal=principal,
            monthly_interest_rate=monthly_interest_rate,
            start_date=start_date,
            due_date=due_date,
        )
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO emprestimos (
                    id, display_id, cliente_nome, valor_emprestado, juros_mensal,
                    dias_contratados, juros_total_contratado, data_inicio, data_fim,
                    status, created_at, updated_at
                ) VALUES (
                    %s, 'EMP-' || lpad(nextval('emprestimos_display_seq')::text, 4, '0'),
                    %s, %s, %s, %s, %s, %s, %s, %s, %s, %s
                )
                RETURNING {LOAN_COLUMNS}
                """,
                (
                    loan.loan_id, loan.borrower_name, loan.principal, loan.monthly_interest_rate,
                    loan.contracted_days, loan.contracted_interest, loan.start_date, loan.due_date,
                    LOAN_STATUS_TO_DB[loan.status], loan.created_at, loan.updated_at,
                ),
            )
            loan = row_to_loan(cur.fetchone())

        logger.info("Loan %s created for %s", loan.display_id, loan.borrower_name)
        return loan

    def get_loan(self, loan_id: str) -> Loan:
        """Get a loan by ID."""
        with self._cursor() as cur:
            cur.execute(f"SELECT {LOAN_COLUMNS} FROM emprestimos WHERE id = %s", (loan_id,))
            row = cur.fetchone()
        if row is None:
            raise EntityNotFoundError(f"Loan {loan_id} not found")
        return row_to_loan(row)

    def list_loans(self, status: LoanStatus | None = None) -> list[Loan]:
        """All loans in creation order, optionally filtered by status."""
        with self._cursor() as cur:
            if status is None:
                cur.execute(f"SELECT {LOAN_COLUMNS} FROM emprestimos ORDER BY created_at")
            else:
                cur.execute(
                    f"SELECT {LOAN_COLUMNS} FROM emprestimos WHERE status = %s ORDER BY created_at",
                    (LOAN_STATUS_TO_DB[LoanStatus(status)],),
                )
            return [row_to_loan(row) for row in cur.fetchall()]

    def update_loan_terms(
        self,
        loan_id: str,
        *,
        borrower_name: str | None = None,
        principal: Any = None,
        monthly_interest_rate: Any = None,
        start_date: date | str | None = None,
        due_date: date | str | None = None,
    ) -> Loan:
        """Edit an active loan; contracted figures follow the new terms."""
        with self._cursor() as cur:
            loan = self._lock_loan(cur, loan_id)
            loan = revise_loan(
                loan,
                borrower_name=borrower_name,
                principal=principal,
                monthly_interest_rate=monthly_interest_rate,
                start_date=start_date,
                due_date=due_date,
            )
            cur.execute(
                """
                UPDATE emprestimos
                SET cliente_nome = %s, valor_emprestado = %s, juros_mensal = %s,
                    data_inicio = %s, data_fim = %s, dias_contratados = %s,
                    juros_total_contratado = %s, updated_at = %s
                WHERE id = %s AND status = %s
                """,
                (
                    loan.borrower_name, loan.principal, loan.monthly_interest_rate,
                    loan.start_date, loan.due_date, loan.contracted_days,
                    loan.contracted_interest, loan.updated_at,
                    loan_id, LOAN_STATUS_TO_DB[LoanStatus.ACTIVE],
                ),
            )

        logger.info("Loan %s terms updated: %d days contracted", loan.display_id, loan.contracted_days)
        return loan

    def mark_loan_paid(self, loan_id: str, payment_date: date | str | None = None) -> Loan:
        """Freeze the final figures of an active loan.

        Raises
        ------
        EntityNotFoundError
            If the loan does not exist.
        InvalidEntityStateError
            If the loan was already paid.
        """
        paid_on = as_calendar_date(payment_date) if payment_date is not None else self.clock()
        with self._cursor() as cur:
            loan = close_loan(self._lock_loan(cur, loan_id), paid_on)
            loan = replace(loan, updated_at=datetime.now())
            cur.execute(
                """
                UPDATE emprestimos
                SET status = %s, data_pagamento = %s, dias_finais = %s,
                    juros_final = %s, total_pago_final = %s, updated_at = %s
                WHERE id = %s AND status = %s
                """,
                (
                    LOAN_STATUS_TO_DB[LoanStatus.PAID], loan.payment_date, loan.final_total_days,
                    loan.final_interest_amount, loan.final_total_paid, loan.updated_at,
                    loan_id, LOAN_STATUS_TO_DB[LoanStatus.ACTIVE],
                ),
            )
            if cur.rowcount != 1:
                raise InvalidEntityStateError(f"Loan {loan_id} is already paid")

        logger.info(
            "Loan %s paid on %s: %s interest over %d days",
            loan.display_id, loan.payment_date, loan.final_interest_amount, loan.final_total_days,
        )
        return loan

    def delete_loan(self, loan_id: str) -> None:
        """Delete a loan regardless of its status."""
        with self._cursor() as cur:
            cur.execute("DELETE FROM emprestimos WHERE id = %s", (loan_id,))
            if cur.rowcount == 0:
                raise EntityNotFoundError(f"Loan {loan_id} not found")
        logger.info("Loan %s deleted", loan_id)

    def _lock_loan(self, cur: Any, loan_id: str) -> Loan:
        cur.execute(f"SELECT {LOAN_COLUMNS} FROM emprestimos WHERE id = %s FOR UPDATE", (loan_id,))
        row = cur.fetchone()
        if row is None:
            raise EntityNotFoundError(f"Loan {loan_id} not found")
        return row_to_loan(row)

    # Properties
    def add_property(
        self,
        name: str,
        rent_amount: Any,
        payment_day: int = 10,
        active: bool = True,
    ) -> Property:
        """Insert a rental property."""
        rent = validate_rent(rent_amount, payment_day)
        now = datetime.now()
        prop = Property(
            property_id=uuid.uuid4().hex,
            name=name,
            rent_amount=rent,
            active=active,
            payment_day=payment_day,
            created_at=now,
            updated_at=now,
        )
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO imoveis (id, nome, valor_aluguel, ativo, dia_pagamento, created_at, updated_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (prop.property_id, prop.name, prop.rent_amount, prop.active,
                 prop.payment_day, prop.created_at, prop.updated_at),
            )
        logger.info("Property %s added with rent %s", prop.name, prop.rent_amount)
        return prop

    def get_property(self, property_id: str) -> Property:
        """Get a property by ID."""
        with self._cursor() as cur:
            cur.execute("SELECT * FROM imoveis WHERE id = %s", (property_id,))
            row = cur.fetchone()
        if row is None:
            raise EntityNotFoundError(f"Property {property_id} not found")
        return row_to_property(row)

    def list_properties(self) -> list[Property]:
        """All properties in creation order."""
        with self._cursor() as cur:
            cur.execute("SELECT * FROM imoveis ORDER BY created_at")
            return [row_to_property(row) for row in cur.fetchall()]

    def update_property(
        self,
        property_id: str,
        *,
        name: str | None = None,
        rent_amount: Any = None,
        payment_day: int | None = None,
        active: bool | None = None,
    ) -> Property:
        """Edit a property; ``None`` leaves a field unchanged."""
        prop = self.get_property(property_id)
        day = payment_day if payment_day is not None else prop.payment_day
        prop = replace(
            prop,
            name=name if name is not None else prop.name,
            rent_amount=validate_rent(rent_amount if rent_amount is not None else prop.rent_amount, day),
            payment_day=day,
            active=active if active is not None else prop.active,
            updated_at=datetime.now(),
        )
        with self._cursor() as cur:
            cur.execute(
                """
                UPDATE imoveis
                SET nome = %s, valor_aluguel = %s, dia_pagamento = %s, ativo = %s, updated_at = %s
                WHERE id = %s
                """,
                (prop.name, prop.rent_amount, prop.payment_day, prop.active, prop.updated_at, property_id),
            )
        return prop

    def delete_property(self, property_id: str) -> None:
        """Delete a property; payments and expenses cascade."""
        with self._cursor() as cur:
            cur.execute("DELETE FROM imoveis WHERE id = %s", (property_id,))
            if cur.rowcount == 0:
                raise EntityNotFoundError(f"Property {property_id} not found")
        logger.info("Property %s deleted", property_id)

    # Rent payments
    def receive_rent_payment(
        self, property_id: str, payment_date: date | str | None = None
    ) -> RentPayment:
        """Record the rent of the payment date's month as received.

        A month that is already paid is left untouched.
        """
        paid_on = as_calendar_date(payment_date) if payment_date is not None else self.clock()
        reference_month = month_start(paid_on)

        with self._cursor() as cur:
            cur.execute("SELECT * FROM imoveis WHERE id = %s FOR UPDATE", (property_id,))
            prop_row = cur.fetchone()
            if prop_row is None:
                raise EntityNotFoundError(f"Property {property_id} not found")
            prop = row_to_property(prop_row)

            cur.execute(
                "SELECT * FROM imoveis_pagamentos WHERE imovel_id = %s AND mes_ref = %s",
                (property_id, reference_month),
            )
            existing_row = cur.fetchone()
            if existing_row is not None:
                existing = row_to_rent_payment(existing_row)
                if existing.status == RentPaymentStatus.PAID:
                    logger.warning("Rent for %s already paid for %s", prop.name, reference_month)
                    return existing
                payment_id = existing.payment_id
            else:
                payment_id = uuid.uuid4().hex

            cur.execute(
                """
                INSERT INTO imoveis_pagamentos (id, imovel_id, mes_ref, status, data_pagamento, valor_pago)
                VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (imovel_id, mes_ref) DO UPDATE
                SET status = EXCLUDED.status,
                    data_pagamento = EXCLUDED.data_pagamento,
                    valor_pago = EXCLUDED.valor_pago
                RETURNING *
                """,
                (payment_id, property_id, reference_month,
                 RENT_STATUS_TO_DB[RentPaymentStatus.PAID], paid_on, prop.rent_amount),
            )
            payment = row_to_rent_payment(cur.fetchone())

        logger.info("Rent for %s received for %s", prop.name, reference_month)
        return payment

    def list_rent_payments(self, property_id: str | None = None) -> list[RentPayment]:
        """Rent payments, optionally for one property."""
        with self._cursor() as cur:
            if property_id is None:
                cur.execute("SELECT * FROM imoveis_pagamentos ORDER BY mes_ref")
            else:
                cur.execute(
                    "SELECT * FROM imoveis_pagamentos WHERE imovel_id = %s ORDER BY mes_ref",
                    (property_id,),
                )
            return [row_to_rent_payment(row) for row in cur.fetchall()]

    # Expenses
    def add_expense(
        self,
        property_id: str,
        reference_month: date | str,
        description: str,
        amount: Any,
        category: str | None = None,
    ) -> Expense:
        """Book an expense against a property and month."""
        expense = Expense(
            expense_id=uuid.uuid4().hex,
            property_id=property_id,
            reference_month=month_start(reference_month),
            description=description,
            amount=validate_expense_amount(amount),
            category=category,
            created_at=datetime.now(),
        )
        try:
            with self._cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO imoveis_gastos (id, imovel_id, mes_ref, descricao, valor, categoria, created_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    """,
                    (expense.expense_id, expense.property_id, expense.reference_month,
                     expense.description, expense.amount, expense.category, expense.created_at),
                )
        except StoreError as e:
            if isinstance(e.__cause__, psycopg.errors.ForeignKeyViolation):
                raise EntityNotFoundError(f"Property {property_id} not found") from e
            raise
        return expense

    def delete_expense(self, expense_id: str) -> None:
        """Delete an expense."""
        with self._cursor() as cur:
            cur.execute("DELETE FROM imoveis_gastos WHERE id = %s", (expense_id,))
            if cur.rowcount == 0:
                raise EntityNotFoundError(f"Expense {expense_id} not found")

    def list_expenses(self, property_id: str | None = None) -> list[Expense]:
        """Expenses, optionally for one property."""
        with self._cursor() as cur:
            if property_id is None:
                cur.execute("SELECT * FROM imoveis_gastos ORDER BY mes_ref")
            else:
                cur.execute(
                    "SELECT * FROM imoveis_gastos WHERE imovel_id = %s ORDER BY mes_ref",
                    (property_id,),
                )
            return [row_to_expense(row) for row in cur.fetchall()]

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        with self._cursor() as cur:
            cur.execute(
                """
                SELECT
                    (SELECT COUNT(*) FROM emprestimos) AS loans,
                    (SELECT COUNT(*) FROM emprestimos WHERE status = 'ativo') AS active_loans,
                    (SELECT COUNT(*) FROM emprestimos WHERE status = 'pago') AS paid_loans,
                    (SELECT COUNT(*) FROM imoveis) AS properties,
                    (SELECT COUNT(*) FROM imoveis_pagamentos) AS rent_payments,
                    (SELECT COUNT(*) FROM imoveis_gastos) AS expenses
                """
            )
            return dict(cur.fetchone())
