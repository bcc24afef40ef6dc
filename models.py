from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event

from ledger.reconcile import settle

db = SQLAlchemy()

class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(150), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

class Transaction(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(150), db.ForeignKey('user.username'), nullable=False, index=True)
    f_ins = db.Column(db.String(100), nullable=True)  # financial institution / account tag
    product = db.Column(db.String(200), nullable=True)
    price = db.Column(db.Float, nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    category = db.Column(db.String(100), nullable=False, index=True)
    budget_id = db.Column(db.Integer, db.ForeignKey('budget.id'), nullable=True, index=True)  # budget that absorbed the price

class Budget(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(150), db.ForeignKey('user.username'), nullable=False, index=True)
    type = db.Column(db.String(100), nullable=False, index=True)  # category
    amount = db.Column(db.Float, nullable=False)
    month = db.Column(db.Integer, nullable=False)  # 1-12
    year = db.Column(db.Integer, nullable=False)
    a_used = db.Column(db.Float, nullable=False, default=0.0)
    a_left = db.Column(db.Float, nullable=False, default=0.0)

    __table_args__ = (db.UniqueConstraint('username', 'type', 'month', 'year', name='unique_budget_period'),)

class Income(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(150), db.ForeignKey('user.username'), nullable=False, index=True)
    amount = db.Column(db.Float, nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    a_used = db.Column(db.Float, nullable=False, default=0.0)
    a_left = db.Column(db.Float, nullable=False, default=0.0)

    __table_args__ = (db.UniqueConstraint('username', 'month', 'year', name='unique_income_period'),)


# a_left always follows amount - a_used on every write of a budget row
@event.listens_for(Budget, 'before_insert')
@event.listens_for(Budget, 'before_update')
def _settle_budget(mapper, connection, target):
    settle(target)
