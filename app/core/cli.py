"""CLI commands for the application."""
import click
from flask.cli import with_appcontext
from app.core.errors import BudgetError
from app.core.extensions import db
from app.core.money import format_money
from app.modules.auth.models import User
from app.modules.budget.service import DashboardService, TemplateService
from app.modules.budget.templates import CATEGORY_TEMPLATES


@click.group(name='budget')
def budget_cli():
    """Budget management commands."""
    pass


@budget_cli.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("✓ All tables created/updated")


@budget_cli.command()
@click.option('--user-id', type=int, required=True, help='User ID')
@click.option('--currency', help='Only count income in this currency')
@with_appcontext
def report(user_id, currency):
    """Print the allocation report for a user."""
    user = db.session.get(User, user_id)
    if not user:
        click.echo(f"Error: User {user_id} not found")
        return

    display_currency = (currency or user.currency or 'RUB').upper()
    snapshot = DashboardService.build_snapshot(user_id, currency.upper() if currency else None)
    result = snapshot.report

    click.echo(f"Allocation report for {user.display_name} (ID: {user_id})")
    click.echo("=" * 50)
    click.echo(f"Total income: {format_money(result.total_income, display_currency)}")

    for category, rules, allocation in snapshot.category_rows():
        click.echo(
            f"  {category.name}: {format_money(allocation.allocated_amount, display_currency)} "
            f"({allocation.percent_of_total:.2f}%, {len(rules)} rules)"
        )

    click.echo(f"Allocated: {format_money(result.total_allocated, display_currency)} "
               f"({result.allocated_percent:.2f}%)")
    click.echo(f"Remainder: {format_money(result.remainder, display_currency)}")
    if result.is_over_allocated:
        click.echo("Warning: rules allocate more than the recorded income")


@budget_cli.command('apply-template')
@click.option('--user-id', type=int, required=True, help='User ID')
@click.option('--template', 'template_id', required=True,
              type=click.Choice([template.id for template in CATEGORY_TEMPLATES]),
              help='Template ID')
@with_appcontext
def apply_template(user_id, template_id):
    """Create a template's categories for a user."""
    user = db.session.get(User, user_id)
    if not user:
        click.echo(f"Error: User {user_id} not found")
        return

    try:
        result = TemplateService.apply_template(user, template_id)
    except BudgetError as e:
        click.echo(f"Error: {e.message}")
        return

    click.echo(f"✓ Applied template {template_id} for user {user_id}")
    click.echo(f"  Income categories: {len(result['income_categories'])}")
    click.echo(f"  Expense categories: {len(result['expense_categories'])}")


@click.group(name='user')
def user_cli():
    """User management commands."""
    pass


@user_cli.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = User.query.order_by(User.id).all()

    if not users:
        click.echo("No users found")
        return

    click.echo(f"Found {len(users)} users:")
    click.echo("-" * 60)

    for user in users:
        click.echo(f"ID: {user.id}")
        click.echo(f"Name: {user.name}")
        click.echo(f"Email: {user.email}")
        click.echo(f"Auth Type: {user.auth_type}")
        if user.telegram_id:
            click.echo(f"Telegram ID: {user.telegram_id}")
        click.echo("-" * 60)


@user_cli.command('create')
@click.option('--name', required=True, help='User name')
@click.option('--email', required=True, help='User email')
@click.option('--password', required=True, help='User password')
@with_appcontext
def create_user(name, email, password):
    """Create a new email user."""
    from app.modules.auth.service import AuthService

    try:
        user = AuthService.register_email(email=email, name=name, password=password)
    except BudgetError as e:
        click.echo(f"Error: {e.message}")
        return

    click.echo(f"✓ Created user: {user.name} (ID: {user.id})")
    click.echo(f"  Email: {user.email}")


def register_cli_commands(app):
    """Register CLI commands with the app."""
    app.cli.add_command(budget_cli)
    app.cli.add_command(user_cli)
