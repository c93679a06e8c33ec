"""
Flask CLI commands for database setup and maintenance.

Commands:
- flask init-db: Create all tables
- flask seed: Insert default lookups, product types and expense types
- flask reconcile-payments: Repair order statuses that lag behind payments
"""

import click
from sqlalchemy.exc import SQLAlchemyError

from app.database import get_database
from app.exceptions import AppError


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables first')
    def init_db_command(drop):
        """Create the database tables."""
        database = get_database(app)
        if drop:
            click.confirm('This deletes every table and its data. Continue?', abort=True)
            database.drop_all()
        database.create_all()
        click.echo(click.style('✅ Database tables created', fg='green'))

    @app.cli.command('seed')
    def seed_command():
        """Insert default reference data that is missing."""
        from app.services.expense_service import seed_expense_types
        from app.services.lookup_service import seed_default_lookups
        from app.services.product_service import seed_product_types

        session = get_database(app).session
        try:
            lookups = seed_default_lookups(session)
            product_types = seed_product_types(session)
            expense_types = seed_expense_types(session)
        except SQLAlchemyError as e:
            session.rollback()
            click.echo(click.style(f'❌ Seeding failed: {e}', fg='red'))
            raise click.Abort()

        click.echo(click.style('✅ Seed complete', fg='green', bold=True))
        click.echo(f'   Lookup values: {lookups}')
        click.echo(f'   Product types: {product_types}')
        click.echo(f'   Expense types: {expense_types}')

    @app.cli.command('reconcile-payments')
    def reconcile_payments_command():
        """Move orders to PARTIALLY_PAID/PAID according to their payments."""
        from app.services.payment_service import reconcile_order_statuses

        session = get_database(app).session
        try:
            result = reconcile_order_statuses(session)
        except AppError as e:
            click.echo(click.style(f'❌ {e.message}', fg='red'))
            raise click.Abort()

        click.echo(click.style(
            f"✅ {result['updated']} of {result['examined']} open orders updated", fg='green'
        ))
