"""Budget JSON API."""
from flask import jsonify, request
from flask_login import current_user, login_required
from app.core.api import APIResponse
from app.core.errors import ValidationError
from app.core.money import CURRENCIES, SUPPORTED_CURRENCIES
from app.core.time import PERIODS, PERIOD_ALL
from app.modules.auth.schemas import ProfileForm
from app.modules.auth.service import AuthService
from .schemas import AllocationData, CategoryForm, IncomeForm
from .serializers import (
    AllocationSchema, CategorySchema, HistorySchema, IncomeSchema, money_value, percent_value,
)
from .service import (
    AllocationService, CategoryService, DashboardService, IncomeService, TemplateService,
)
from .templates import CATEGORY_TEMPLATES
from . import budget_bp


def _period_arg(default=None):
    period = request.args.get('period', default)
    if period is not None and period not in PERIODS:
        raise ValidationError(f'Unknown period: {period}', details={'period': list(PERIODS)})
    return period


def _currency_arg():
    currency = request.args.get('currency')
    if not currency:
        return None
    currency = currency.upper()
    if currency not in SUPPORTED_CURRENCIES:
        raise ValidationError(f'Unsupported currency: {currency}')
    return currency


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('No data provided')
    return data


# Income categories

@budget_bp.route('/income-categories')
@login_required
def list_income_categories():
    categories = CategoryService.get_income_categories(current_user.id)
    return jsonify(APIResponse.success(CategorySchema.serialize_list(categories)))


@budget_bp.route('/income-categories', methods=['POST'])
@login_required
def create_income_category():
    data = CategoryForm().validated()
    category = CategoryService.create_income_category(
        current_user.id, data['name'], icon=data['icon'], color=data['color']
    )
    return jsonify(APIResponse.success(CategorySchema.serialize(category), 'Категория создана')), 201


@budget_bp.route('/income-categories/<int:category_id>', methods=['PUT'])
@login_required
def update_income_category(category_id):
    category = CategoryService.get_income_category(category_id, current_user.id)
    data = CategoryForm().validated()
    CategoryService.update_category(category, **data)
    return jsonify(APIResponse.success(CategorySchema.serialize(category), 'Категория обновлена'))


@budget_bp.route('/income-categories/<int:category_id>', methods=['DELETE'])
@login_required
def delete_income_category(category_id):
    category = CategoryService.get_income_category(category_id, current_user.id)
    CategoryService.delete_category(category)
    return jsonify(APIResponse.success(message='Категория удалена'))


# Expense categories

@budget_bp.route('/expense-categories')
@login_required
def list_expense_categories():
    """Expense categories with their rules and computed allocation."""
    snapshot = DashboardService.build_snapshot(current_user.id, _currency_arg())
    data = [
        dict(CategorySchema.serialize(category),
             allocations=AllocationSchema.serialize_list(rules),
             allocated_amount=money_value(allocation.allocated_amount),
             percent_of_total=percent_value(allocation.percent_of_total))
        for category, rules, allocation in snapshot.category_rows()
    ]
    return jsonify(APIResponse.success(data))


@budget_bp.route('/expense-categories', methods=['POST'])
@login_required
def create_expense_category():
    data = CategoryForm().validated()
    category = CategoryService.create_expense_category(
        current_user.id, data['name'], icon=data['icon'], color=data['color']
    )
    return jsonify(APIResponse.success(CategorySchema.serialize(category), 'Категория создана')), 201


@budget_bp.route('/expense-categories/<int:category_id>', methods=['PUT'])
@login_required
def update_expense_category(category_id):
    category = CategoryService.get_expense_category(category_id, current_user.id)
    data = CategoryForm().validated()
    CategoryService.update_category(category, **data)
    return jsonify(APIResponse.success(CategorySchema.serialize(category), 'Категория обновлена'))


@budget_bp.route('/expense-categories/<int:category_id>', methods=['DELETE'])
@login_required
def delete_expense_category(category_id):
    category = CategoryService.get_expense_category(category_id, current_user.id)
    CategoryService.delete_category(category)
    return jsonify(APIResponse.success(message='Категория удалена'))


@budget_bp.route('/expense-categories/<int:category_id>/allocations', methods=['PUT'])
@login_required
def replace_expense_category_allocations(category_id):
    """Replace the whole rule set of one expense category."""
    data = _json_body()
    allocations = AllocationData.validate_list(data.get('allocations'))

    created = AllocationService.replace_allocations(current_user.id, category_id, allocations)
    return jsonify(APIResponse.success(AllocationSchema.serialize_list(created), 'Источники сохранены'))


# Allocations

@budget_bp.route('/allocations')
@login_required
def list_allocations():
    expense_category_id = request.args.get('expense_category_id', type=int)
    allocations = AllocationService.get_allocations(current_user.id, expense_category_id)
    return jsonify(APIResponse.success(AllocationSchema.serialize_list(allocations)))


# Incomes

@budget_bp.route('/incomes')
@login_required
def list_incomes():
    incomes = IncomeService.get_incomes(
        current_user.id,
        category_id=request.args.get('category_id', type=int),
        period=_period_arg(),
        currency=_currency_arg()
    )
    return jsonify(APIResponse.success(IncomeSchema.serialize_list(incomes)))


@budget_bp.route('/incomes/history')
@login_required
def income_history():
    history = IncomeService.get_history(current_user.id, _period_arg(PERIOD_ALL))
    return jsonify(APIResponse.success(HistorySchema.serialize(history)))


@budget_bp.route('/incomes', methods=['POST'])
@login_required
def create_income():
    data = IncomeForm().validated()
    income = IncomeService.add_income(
        user_id=current_user.id,
        amount=data['amount'],
        currency=data['currency'] or current_user.currency or 'RUB',
        category_id=data['category_id'],
        description=data['description']
    )
    return jsonify(APIResponse.success(IncomeSchema.serialize(income), 'Доход добавлен')), 201


@budget_bp.route('/incomes/<int:income_id>', methods=['PUT'])
@login_required
def update_income(income_id):
    data = IncomeForm().validated()
    income = IncomeService.update_income(
        income_id,
        current_user.id,
        amount=data['amount'],
        currency=data['currency'],
        category_id=data['category_id'],
        description=data['description']
    )
    return jsonify(APIResponse.success(IncomeSchema.serialize(income), 'Доход обновлен'))


@budget_bp.route('/incomes/<int:income_id>', methods=['DELETE'])
@login_required
def delete_income(income_id):
    IncomeService.delete_income(income_id, current_user.id)
    return jsonify(APIResponse.success(message='Доход удален'))


# Overview

@budget_bp.route('/overview')
@login_required
def overview():
    return jsonify(APIResponse.success(DashboardService.get_overview(current_user.id, _currency_arg())))


@budget_bp.route('/currencies')
@login_required
def list_currencies():
    return jsonify(APIResponse.success([currency._asdict() for currency in CURRENCIES.values()]))


# Onboarding templates

@budget_bp.route('/templates')
@login_required
def list_templates():
    return jsonify(APIResponse.success([template.to_dict() for template in CATEGORY_TEMPLATES]))


@budget_bp.route('/templates/<template_id>/apply', methods=['POST'])
@login_required
def apply_template(template_id):
    result = TemplateService.apply_template(current_user, template_id)
    return jsonify(APIResponse.success({
        'income_categories': CategorySchema.serialize_list(result['income_categories']),
        'expense_categories': CategorySchema.serialize_list(result['expense_categories']),
        'onboarding_completed': current_user.onboarding_completed
    }, 'Шаблон применен')), 201


# Profile

@budget_bp.route('/profile')
@login_required
def get_profile():
    return jsonify(APIResponse.success(current_user.to_dict()))


@budget_bp.route('/profile', methods=['PATCH'])
@login_required
def update_profile():
    data = ProfileForm().validated()
    user = AuthService.update_profile(current_user, data)
    return jsonify(APIResponse.success(user.to_dict(), 'Профиль обновлен'))
