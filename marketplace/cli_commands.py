"""
Flask CLI commands for marketplace administration.

Commands:
- flask init-db: Create database tables
- flask seed-tiers: Create the default commission tier ladder
"""

import click
from flask import current_app
from marketplace.database import create_tables, get_session
from marketplace.exceptions import MarketplaceError
from marketplace.services import commission_service


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create all database tables."""
        create_tables()
        click.echo(click.style('✅ Tables created.', fg='green'))

    @app.cli.command('seed-tiers')
    def seed_tiers():
        """Create the default commission tiers when none exist."""
        session = get_session()

        if commission_service.list_tiers(session):
            click.echo(click.style('Commission tiers already configured, nothing to do.', fg='yellow'))
            return

        for values in current_app.config['DEFAULT_COMMISSION_TIERS']:
            try:
                tier = commission_service.create_tier(session, **values)
            except MarketplaceError as e:
                click.echo(click.style(f'❌ {e.message}', fg='red'))
                return
            click.echo(f'   {tier.describe_range()} -> {tier.commission_rate}')

        click.echo(click.style('\n✅ Commission tiers created!', fg='green', bold=True))
