# buildledger/domains/expenses/views.py
import logging
from typing import Any, Dict, List, Sequence

from prisma import Prisma

from .aggregation import DEFAULT_STATUSES, EXPENSE_TYPE, INCOME_TYPE

logger = logging.getLogger(__name__)

SUMMARY_VIEW = "department_expense_summary"


def _sql_literals(values: Sequence[str]) -> str:
    # Only ever called with module constants, never request input
    return ", ".join("'" + value.replace("'", "''") + "'" for value in values)


def department_summary_view_sql() -> str:
    """
    SQL for the per-department summary projection.

    Status set and invoice type classification come from the aggregation
    constants so the view agrees with ``fold_department_totals``.
    """
    income = f"i.type = '{INCOME_TYPE}'"
    expense = f"i.type = '{EXPENSE_TYPE}'"
    return f"""
CREATE MATERIALIZED VIEW IF NOT EXISTS {SUMMARY_VIEW} AS
SELECT
    d.id AS department_id,
    d.name AS department_name,
    d.status AS department_status,
    COUNT(DISTINCT i.id) AS total_invoices,
    COALESCE(SUM(li.line_amount) FILTER (WHERE {income}), 0) AS income_received,
    COALESCE(SUM(li.line_amount) FILTER (WHERE {expense}), 0) AS expenses_spent,
    COALESCE(SUM(li.line_amount) FILTER (WHERE {income}), 0)
        - COALESCE(SUM(li.line_amount) FILTER (WHERE {expense}), 0) AS net_profit,
    MAX(i.invoice_date) AS latest_activity,
    COUNT(DISTINCT i.id) FILTER (WHERE {income}) AS income_invoices,
    COUNT(DISTINCT i.id) FILTER (WHERE {expense}) AS expense_invoices
FROM departments d
LEFT JOIN invoice_line_items li ON li.department_id = d.id
LEFT JOIN invoices i
    ON i.id = li.invoice_id
    AND i.status IN ({_sql_literals(DEFAULT_STATUSES)})
GROUP BY d.id, d.name, d.status
""".strip()


async def ensure_department_summary_view(db: Prisma) -> None:
    """Create the summary view and the unique index concurrent refresh needs."""
    await db.execute_raw(department_summary_view_sql())
    await db.execute_raw(
        f"CREATE UNIQUE INDEX IF NOT EXISTS {SUMMARY_VIEW}_department_id_idx "
        f"ON {SUMMARY_VIEW} (department_id)"
    )
    logger.info(f"Ensured materialized view {SUMMARY_VIEW}")


async def refresh_department_summary(db: Prisma) -> None:
    await db.execute_raw(f"REFRESH MATERIALIZED VIEW CONCURRENTLY {SUMMARY_VIEW}")
    logger.info(f"Refreshed materialized view {SUMMARY_VIEW}")


async def fetch_department_summary_rows(db: Prisma) -> List[Dict[str, Any]]:
    return await db.query_raw(
        f"SELECT department_id::text AS department_id, department_name, "
        f"department_status, total_invoices, income_received, expenses_spent, "
        f"net_profit, latest_activity, income_invoices, expense_invoices "
        f"FROM {SUMMARY_VIEW} ORDER BY department_name"
    )
