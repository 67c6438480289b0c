"""
Tests for the Flask CLI commands.
"""

import json
from unittest.mock import patch

from app.services import discount_store


class TestShowConfig:

    def test_prints_stored_configuration(self, app, session, shop_id):
        discount_store.upsert_replace(
            session, shop_id,
            [{'id': None, 'group': 'VIP', 'percentage': 10, 'discounted_products': None}]
        )
        session.commit()

        result = app.test_cli_runner().invoke(args=['show-config', shop_id])

        assert result.exit_code == 0
        assert json.loads(result.output)['groups'][0]['group'] == 'VIP'

    def test_unknown_shop_fails(self, app, shop_id):
        result = app.test_cli_runner().invoke(args=['show-config', shop_id])
        assert result.exit_code != 0
        assert 'No configuration stored' in result.output


class TestSyncConfig:

    def test_publishes_stored_configuration(self, app, session, shop_id):
        discount_store.upsert_replace(
            session, shop_id,
            [{'id': 'vip', 'group': 'VIP', 'percentage': 10, 'discounted_products': None}]
        )
        session.commit()

        with patch(
            'app.services.discount_config_service.PlatformClient.set_metafield',
            return_value=[{'id': 'm1'}]
        ) as set_metafield:
            result = app.test_cli_runner().invoke(args=['sync-config', shop_id, '--token', 't'])

        assert result.exit_code == 0, result.output
        value = json.loads(set_metafield.call_args.kwargs['value'])
        assert [g['id'] for g in value['groups']] == ['vip']
