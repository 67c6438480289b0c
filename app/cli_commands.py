"""
Flask CLI commands for database and configuration management.

Commands:
- flask init-db: Create missing tables
- flask reset-db: Drop and recreate every table
- flask show-config SHOP_ID: Print a shop's stored configuration
- flask sync-config SHOP_ID --token TOKEN: Publish the stored configuration
"""

import json

import click
from app.database import create_tables, drop_tables, get_session
from app.exceptions import GroupDiscountError
from app.services import discount_config_service, discount_store


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create the discount configuration tables."""
        create_tables()
        click.echo(click.style('Tables created.', fg='green'))

    @app.cli.command('reset-db')
    @click.confirmation_option(prompt='This deletes every stored configuration. Continue?')
    def reset_db_command():
        """Drop and recreate all tables."""
        drop_tables()
        create_tables()
        click.echo(click.style('Database reset.', fg='yellow'))

    @app.cli.command('show-config')
    @click.argument('shop_id')
    def show_config_command(shop_id):
        """Print the stored configuration for SHOP_ID."""
        configuration = discount_store.get(get_session(), shop_id)
        if configuration is None:
            raise click.ClickException(f'No configuration stored for {shop_id}')
        click.echo(json.dumps(configuration.to_dict(), indent=2))

    @app.cli.command('sync-config')
    @click.argument('shop_id')
    @click.option('--token', required=True, envvar='PLATFORM_ACCESS_TOKEN', help='Admin API access token')
    @click.option('--shop', 'shop_domain', default=None, help='Shop domain (defaults to PLATFORM_SHOP_DOMAIN)')
    def sync_config_command(shop_id, token, shop_domain):
        """Publish the stored configuration for SHOP_ID to the platform metafield."""
        document, found = discount_config_service.fetch_configuration(get_session(), shop_id)
        if not found:
            raise click.ClickException(f'No configuration stored for {shop_id}')

        try:
            metafields = discount_config_service.sync_to_platform(
                shop_id,
                document['groups'],
                document['excludedProducts'],
                token,
                shop_domain=shop_domain
            )
        except GroupDiscountError as e:
            raise click.ClickException(f"{e.message} {e.errors or ''}".strip())

        click.echo(click.style(f'Synced {shop_id} ({len(metafields)} metafields).', fg='green'))
