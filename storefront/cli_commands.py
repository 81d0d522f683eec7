"""
Flask CLI commands for database setup.

Commands:
- flask init-db: Create all tables
- flask seed-demo: Insert a few demo products and an employee
"""

import click
from decimal import Decimal
from storefront.database import create_all, drop_all, db_session
from storefront.models import Employee, Product


DEMO_PRODUCTS = [
    ('Vanilla 1kg', Decimal('10.00'), 20),
    ('Chocolate 1kg', Decimal('12.50'), 15),
    ('Strawberry 1/2kg', Decimal('6.75'), 0),
]


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables first')
    def init_db_command(drop):
        """Create the database schema."""
        if drop:
            drop_all()
            click.echo(click.style('Tables dropped.', fg='yellow'))
        create_all()
        click.echo(click.style('Database schema created.', fg='green'))

    @app.cli.command('seed-demo')
    def seed_demo():
        """Insert demo products and an employee."""
        try:
            for name, price, stock in DEMO_PRODUCTS:
                db_session.add(Product(name=name, price=price, stock=stock, active=True))
            db_session.add(Employee(name='Demo Cashier', active=True))
            db_session.commit()
            click.echo(click.style(f'Seeded {len(DEMO_PRODUCTS)} products and 1 employee.', fg='green'))
        except Exception as e:
            db_session.rollback()
            click.echo(click.style(f'Error seeding demo data: {e}', fg='red'))
            raise SystemExit(1)
