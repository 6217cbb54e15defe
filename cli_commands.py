"""
Flask CLI commands for the ledger
"""

import click
from flask import Flask
from db_single import get_session
from init_db import run_on_startup, create_admin
from roster_helpers import import_students_csv, TabularParseError
from finance_helpers import get_financial_summary, get_monthly_report
from fee_helpers import list_categories, ValidationError
import logging

logger = logging.getLogger(__name__)

def register_cli_commands(app: Flask):
    """Register CLI commands with the Flask app"""

    @app.cli.command("setup-db")
    def setup_db_command():
        """Create tables, default categories and the default admin"""
        click.echo("Setting up database...")
        if run_on_startup(app.extensions.get("ledger_config")):
            click.echo("Database setup completed successfully!")
        else:
            click.echo("Database setup failed!")

    @app.cli.command("create-admin")
    @click.option("--email", required=True, help="Admin email")
    @click.option("--password", required=True, help="Admin password")
    @click.option("--name", default="Admin", help="Display name")
    def create_admin_command(email, password, name):
        """Create an admin user"""
        session = get_session()
        try:
            admin, created = create_admin(session, email, password, name)
            if created:
                click.echo(f"Admin created: {admin.email}")
            else:
                click.echo(f"Admin '{admin.email}' already exists")
        except Exception as e:
            session.rollback()
            click.echo(f"Failed to create admin: {e}")
        finally:
            session.close()

    @app.cli.command("import-students")
    @click.argument("csv_file", type=click.File("rb"))
    def import_students_command(csv_file):
        """Import or update students from a roster CSV"""
        session = get_session()
        try:
            result = import_students_csv(session, csv_file.read())
        except TabularParseError as e:
            raise click.ClickException(str(e))
        finally:
            session.close()

        click.echo(f"Rows: {result.total_records}  New: {result.new_students}  "
                   f"Updated: {result.updated_students}  Errors: {result.errors}")
        for detail in result.error_details:
            click.echo(f"  {detail['prn']}: {detail['error']}")

    @app.cli.command("financial-summary")
    def financial_summary_command():
        """Print total income, expenditure and balance"""
        session = get_session()
        try:
            summary = get_financial_summary(session)
        finally:
            session.close()

        financial = summary['financial']
        click.echo(f"Total income:      {financial['total_income']:>12,.2f}")
        click.echo(f"Total expenditure: {financial['total_expenditure']:>12,.2f}")
        click.echo(f"Balance:           {financial['balance']:>12,.2f} ({financial['status']})")
        for row in summary['expenditure_by_category']:
            click.echo(f"  {row['category']:<15} {row['total']:>12,.2f} ({row['count']})")

    @app.cli.command("monthly-report")
    @click.option("--year", type=int, default=None, help="Calendar year (default: current year)")
    def monthly_report_command(year):
        """Print income and expenditure per month"""
        session = get_session()
        try:
            report = get_monthly_report(session, year)
        except ValidationError as e:
            raise click.ClickException(str(e))
        finally:
            session.close()

        click.echo(f"Monthly report {report['year']}")
        click.echo("-" * 60)
        for month in report['monthly_report']:
            click.echo(f"  {month['month']}  income {month['income']:>10,.2f}  "
                       f"expenditure {month['expenditure']:>10,.2f}  balance {month['balance']:>10,.2f}")
        click.echo("-" * 60)
        totals = report['yearly_totals']
        click.echo(f"  Total income {totals['total_income']:,.2f}  expenditure {totals['total_expenditure']:,.2f}  "
                   f"balance {totals['total_balance']:,.2f}")

    @app.cli.command("list-categories")
    def list_categories_command():
        """List payment categories"""
        session = get_session()
        try:
            categories = list_categories(session)
            if not categories:
                click.echo("No categories found")
                return
            for category in categories:
                status = 'Active' if category.is_active else 'Inactive'
                click.echo(f"  [{category.category_type.value}] {category.name} ({status})")
        finally:
            session.close()
