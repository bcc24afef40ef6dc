"""Transaction, budget and income lifecycles.

Each operation stages every write it needs (the record itself, the
budget usage change and the income reconciliation) on the request's
session and commits once at the end.
"""
from typing import Optional

import structlog
from flask import current_app
from sqlalchemy import func

from ledger import reconcile
from ledger.errors import (
    AccessDeniedError,
    CategoryNotFound,
    DuplicateBudget,
    DuplicateIncome,
    NotFoundError,
)
from ledger.store import commit
from ledger.validation import parse_amount, parse_category, parse_date, parse_id, parse_period
from models import db, Budget, Income, Transaction

logger = structlog.get_logger(__name__)


def income_scope() -> str:
    return current_app.config.get('INCOME_SCOPE', reconcile.GLOBAL)


def _owned(model, ident, identity, label):
    record = db.session.get(model, parse_id(ident, label))
    if record is None:
        raise NotFoundError(f'{label} not found')
    if record.username != identity.username:
        raise AccessDeniedError(f'{label} not found or access denied')
    return record


def _matching_budget(username, category, on_date) -> Optional[Budget]:
    return Budget.query.filter_by(
        username=username, type=category, month=on_date.month, year=on_date.year
    ).order_by(Budget.id).first()


def refresh_incomes(scope=None):
    """Recompute a_used/a_left of every income from the current budget usage."""
    incomes = Income.query.all()
    reconcile.reconcile_incomes(incomes, Budget.query.all(), scope or income_scope())
    return incomes


# ---------------------- Transactions ----------------------
def add_transaction(identity, f_ins, product, price, date, category) -> Transaction:
    category = parse_category(category)
    price = parse_amount(price, 'price')
    tdate = parse_date(date)
    if not Budget.query.filter_by(username=identity.username, type=category).first():
        logger.info('transaction_denied', username=identity.username, category=category)
        raise CategoryNotFound('Budget category not found')

    txn = Transaction(
        username=identity.username,
        f_ins=(f_ins or '').strip(),
        product=(product or '').strip(),
        price=price,
        date=tdate,
        category=category,
    )
    db.session.add(txn)
    budget = _matching_budget(identity.username, category, tdate)
    if budget is not None:
        reconcile.apply_spend(budget, price)
        txn.budget_id = budget.id
    else:
        logger.warning('transaction_outside_budget_period', username=identity.username,
                       category=category, month=tdate.month, year=tdate.year)
    refresh_incomes()
    commit()
    logger.info('transaction_added', username=identity.username, transaction_id=txn.id,
                category=category, price=price)
    return txn


def delete_transaction(identity, transaction_id) -> Transaction:
    txn = _owned(Transaction, transaction_id, identity, 'Transaction')
    log = logger.bind(username=identity.username, transaction_id=txn.id,
                      category=txn.category, price=txn.price)
    # only the budget that absorbed the price gives it back
    budget = db.session.get(Budget, txn.budget_id) if txn.budget_id else None
    if budget is not None:
        reconcile.revert_spend(budget, txn.price)
    db.session.delete(txn)
    refresh_incomes()
    commit()
    log.info('transaction_deleted')
    return txn


# ---------------------- Budgets ----------------------
def add_budget(identity, category, amount, month, year) -> Budget:
    month, year = parse_period(month, year)
    category = parse_category(category)
    amount = parse_amount(amount)
    exists = Budget.query.filter_by(
        username=identity.username, type=category, month=month, year=year
    ).first()
    if exists:
        raise DuplicateBudget('Budget already exists for this category, month and year')

    budget = Budget(username=identity.username, type=category, amount=amount,
                    month=month, year=year, a_used=0.0, a_left=amount)
    db.session.add(budget)
    commit()
    logger.info('budget_added', username=identity.username, budget_id=budget.id,
                category=category, amount=amount, month=month, year=year)
    return budget


def delete_budget(identity, budget_id) -> int:
    """Delete a budget and every transaction of its category; returns the number of transactions removed."""
    budget = _owned(Budget, budget_id, identity, 'Budget')
    log = logger.bind(username=identity.username, budget_id=budget.id, category=budget.type)
    doomed = Transaction.query.filter_by(username=identity.username, category=budget.type).all()
    for txn in doomed:
        # same category in other months: their budgets must give the price back
        if txn.budget_id and txn.budget_id != budget.id:
            sibling = db.session.get(Budget, txn.budget_id)
            if sibling is not None:
                reconcile.revert_spend(sibling, txn.price)
        db.session.delete(txn)
    removed = len(doomed)
    db.session.delete(budget)
    refresh_incomes()
    commit()
    log.info('budget_deleted', transactions_removed=removed)
    return removed


# ---------------------- Incomes ----------------------
def add_income(identity, amount, month, year) -> Income:
    month, year = parse_period(month, year)
    amount = parse_amount(amount)
    if Income.query.filter_by(username=identity.username, month=month, year=year).first():
        raise DuplicateIncome('Income already exists for this month and year.')

    income = Income(username=identity.username, amount=amount, month=month, year=year,
                    a_used=0.0, a_left=amount)
    reconcile.reconcile_incomes([income], Budget.query.all(), income_scope())
    db.session.add(income)
    commit()
    logger.info('income_added', username=identity.username, income_id=income.id,
                amount=amount, month=month, year=year, a_used=income.a_used)
    return income


def delete_income(identity, income_id) -> Income:
    income = _owned(Income, income_id, identity, 'Income')
    log = logger.bind(username=identity.username, income_id=income.id)
    db.session.delete(income)
    commit()
    log.info('income_deleted')
    return income


# ---------------------- Dashboard ----------------------
def f_ins_totals(username):
    rows = db.session.query(
        Transaction.f_ins, func.sum(Transaction.price).label('total')
    ).filter(Transaction.username == username).group_by(Transaction.f_ins).all()
    return [{'f_ins': r[0] or '', 'total': float(r[1] or 0)} for r in rows]


def dashboard(identity):
    username = identity.username
    transactions = Transaction.query.filter_by(username=username).order_by(
        Transaction.date.desc(), Transaction.id.desc()
    ).all()
    budgets = Budget.query.filter_by(username=username).order_by(
        Budget.year, Budget.month, Budget.type
    ).all()
    incomes = Income.query.filter_by(username=username).order_by(Income.year, Income.month).all()
    monthly_incomes = [{
        'income': income,
        'related_budgets': [b for b in budgets if b.month == income.month and b.year == income.year],
    } for income in incomes]
    return {
        'username': username,
        'transactions': transactions,
        'budgets': budgets,
        'monthly_incomes': monthly_incomes,
        'f_ins_totals': f_ins_totals(username),
    }
