"""
Integration tests for the per-shop configuration cache.
"""

from urllib.parse import quote

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.services.cache_service import get_cache


BASE = '/api/group-discount'


class InMemoryRedis:
    """Minimal stand-in for the redis client calls the cache makes."""

    def __init__(self):
        self.store = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    def delete(self, *keys):
        return sum(1 for key in keys if self.store.pop(key, None) is not None)


class UnreachableRedis(InMemoryRedis):

    def ping(self):
        raise RedisConnectionError('connection refused')


@pytest.fixture
def redis_stub(app, monkeypatch):
    cache = get_cache()
    stub = InMemoryRedis()
    monkeypatch.setattr(cache, 'client', stub)
    monkeypatch.setattr(cache, '_enabled', True)
    return stub


def url(shop_id):
    return f"{BASE}/{quote(shop_id, safe='')}"


def group_names(client, shop_id):
    return [g['group'] for g in client.get(url(shop_id)).get_json()['data']['groups']]


class TestConfigCache:

    def test_get_populates_cache(self, client, shop_id, redis_stub):
        client.post(url(shop_id), json={'groups': [{'group': 'VIP', 'percentage': 10}]})

        assert group_names(client, shop_id) == ['VIP']
        assert get_cache().key_for(shop_id) in redis_stub.store

    def test_write_replaces_cached_document(self, client, shop_id, redis_stub):
        client.post(url(shop_id), json={'groups': [{'group': 'VIP', 'percentage': 10}]})
        assert group_names(client, shop_id) == ['VIP']

        client.post(url(shop_id), json={'groups': [{'group': 'Gold', 'percentage': 5}]})

        assert group_names(client, shop_id) == ['Gold']

    def test_not_found_entry_replaced_by_first_write(self, client, shop_id, redis_stub):
        first = client.get(url(shop_id)).get_json()
        assert first['message'] == 'No configuration found for this shop'

        client.post(f'{url(shop_id)}/excluded-products', json={'excludedProducts': ['p1']})

        body = client.get(url(shop_id)).get_json()
        assert body['message'] == 'Configuration retrieved successfully'
        assert [p['productId'] for p in body['data']['excludedProducts']] == ['p1']

    @pytest.mark.parametrize('shop_id', ['shop[1]', 'shop?', 'shop\\x', '*'])
    def test_shop_ids_with_glob_characters(self, client, shop_id, redis_stub):
        client.post(url(shop_id), json={'groups': [{'group': 'VIP', 'percentage': 10}]})
        assert group_names(client, shop_id) == ['VIP']

        client.post(url(shop_id), json={'groups': [{'group': 'Gold', 'percentage': 5}]})

        assert group_names(client, shop_id) == ['Gold']

    def test_invalidation_is_scoped_to_one_shop(self, client, redis_stub):
        client.post(url('other-shop'), json={'groups': [{'group': 'VIP', 'percentage': 10}]})
        client.get(url('other-shop'))

        client.post(url('*'), json={'groups': [{'group': 'Gold', 'percentage': 5}]})

        assert get_cache().key_for('other-shop') in redis_stub.store

    def test_unreachable_redis_falls_back_to_database(self, app, client, shop_id, monkeypatch):
        cache = get_cache()
        monkeypatch.setattr(cache, 'client', UnreachableRedis())
        monkeypatch.setattr(cache, '_enabled', True)

        client.post(url(shop_id), json={'groups': [{'group': 'VIP', 'percentage': 10}]})

        assert group_names(client, shop_id) == ['VIP']
        assert client.get('/health/cache').get_json()['status'] == 'degraded'
