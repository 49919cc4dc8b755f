from pydantic import BaseModel

from ...models import BudgetProjection, BudgetStatus


class BudgetReport(BaseModel):
    daily_limit_cents: int
    monthly_limit_cents: int
    status: BudgetStatus
    projection: BudgetProjection
