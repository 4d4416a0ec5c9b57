"""Budget module models."""
from datetime import datetime
from app.core.extensions import db
from app.core.money import Money
from .allocation import AllocationRule, IncomeEntry, PERCENTAGE, FIXED


class IncomeCategory(db.Model):
    """Where money comes from (salary, freelance, ...)."""
    __tablename__ = 'income_categories'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    icon = db.Column(db.String(50), nullable=False, default='wallet')
    color = db.Column(db.String(7), nullable=False, default='#10B981')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    incomes = db.relationship('Income', backref='category')
    allocations = db.relationship('Allocation', backref='income_category',
                                  cascade='all, delete-orphan')

    def __repr__(self):
        return f'<IncomeCategory {self.name}>'


class ExpenseCategory(db.Model):
    """Where money goes; funded by allocation rules."""
    __tablename__ = 'expense_categories'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    icon = db.Column(db.String(50), nullable=False, default='folder')
    color = db.Column(db.String(7), nullable=False, default='#6B7280')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    allocations = db.relationship('Allocation', backref='expense_category',
                                  cascade='all, delete-orphan',
                                  order_by='Allocation.id')

    def __repr__(self):
        return f'<ExpenseCategory {self.name}>'


class Income(db.Model):
    """Income ledger entry."""
    __tablename__ = 'incomes'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    category_id = db.Column(db.Integer, db.ForeignKey('income_categories.id', ondelete='SET NULL'),
                            nullable=True)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default='RUB')
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint('amount >= 0', name='ck_incomes_amount_non_negative'),
    )

    def __repr__(self):
        return f'<Income {self.amount} {self.currency}>'

    @property
    def money_amount(self):
        """Get amount as Money object."""
        return Money(self.amount, self.currency)

    def to_entry(self) -> IncomeEntry:
        return IncomeEntry(
            id=self.id,
            category_id=self.category_id,
            amount=self.amount,
            currency=self.currency,
            created_at=self.created_at
        )


class Allocation(db.Model):
    """Allocation rule: part of an income category earmarked for an expense category."""
    __tablename__ = 'expense_category_allocations'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    expense_category_id = db.Column(db.Integer,
                                    db.ForeignKey('expense_categories.id', ondelete='CASCADE'),
                                    nullable=False, index=True)
    income_category_id = db.Column(db.Integer,
                                   db.ForeignKey('income_categories.id', ondelete='CASCADE'),
                                   nullable=False)
    allocation_type = db.Column(db.String(20), nullable=False, default=PERCENTAGE)
    allocation_value = db.Column(db.Numeric(14, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint(f"allocation_type IN ('{PERCENTAGE}', '{FIXED}')",
                           name='ck_allocations_type'),
        db.CheckConstraint('allocation_value >= 0', name='ck_allocations_value_non_negative'),
    )

    def __repr__(self):
        return f'<Allocation {self.income_category_id} -> {self.expense_category_id} ' \
               f'{self.allocation_value} {self.allocation_type}>'

    @property
    def is_percentage(self):
        return self.allocation_type == PERCENTAGE

    def to_rule(self) -> AllocationRule:
        return AllocationRule(
            id=self.id,
            expense_category_id=self.expense_category_id,
            income_category_id=self.income_category_id,
            type=self.allocation_type,
            value=self.allocation_value
        )
