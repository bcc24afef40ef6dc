"""Budget reconciliation rules.

Plain functions over Budget/Income-shaped objects. They never touch the
database, so the arithmetic can be exercised without a session.
"""

GLOBAL = 'global'
OWNER_PERIOD = 'owner_period'
SCOPES = (GLOBAL, OWNER_PERIOD)


def settle(record):
    """Recompute a_left from amount and a_used."""
    record.a_used = float(record.a_used or 0)
    record.a_left = float(record.amount or 0) - record.a_used
    return record


def apply_spend(budget, price):
    budget.a_used = float(budget.a_used or 0) + float(price)
    return settle(budget)


def revert_spend(budget, price):
    budget.a_used = float(budget.a_used or 0) - float(price)
    return settle(budget)


def total_used(budgets):
    return sum(float(b.a_used or 0) for b in budgets)


def reconcile_incomes(incomes, budgets, scope=GLOBAL):
    """Mirror budget usage onto every income.

    In the global scope every income carries the sum over all budgets,
    whoever owns them and whatever period they cover. owner_period only
    counts budgets sharing the income's owner, month and year.
    """
    if scope not in SCOPES:
        raise ValueError(f'Unknown income scope: {scope!r}')
    budgets = list(budgets)
    if scope == GLOBAL:
        grand_total = total_used(budgets)
    for income in incomes:
        if scope == GLOBAL:
            income.a_used = grand_total
        else:
            income.a_used = total_used(
                b for b in budgets
                if b.username == income.username and b.month == income.month and b.year == income.year
            )
        settle(income)
    return incomes
