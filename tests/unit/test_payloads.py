"""
Unit tests for request payload normalization.
"""

import pytest
from app.exceptions import ValidationError
from app.services.discount_payloads import (
    normalize_group, normalize_groups, normalize_product, normalize_products,
    require_json_object, require_shop_id
)


class TestShopId:

    def test_trims_shop_id(self):
        assert require_shop_id('  shop-1  ') == 'shop-1'

    @pytest.mark.parametrize('value', [None, '', '   '])
    def test_empty_shop_id_rejected(self, value):
        with pytest.raises(ValidationError) as exc:
            require_shop_id(value)
        assert exc.value.message == 'Shop ID is required'


class TestProductNormalization:

    def test_bare_string_and_object_normalize_to_same_shape(self):
        """A bare id becomes a ProductRef whose title is the id."""
        from_string = normalize_product('gid://p/1', 0)
        from_object = normalize_product({'productId': 'gid://p/1', 'title': 'gid://p/1'}, 0)
        assert from_string == from_object

    def test_structured_product_keeps_optional_fields(self):
        product = normalize_product({
            'productId': 'p1',
            'title': ' Hat ',
            'description': 'Warm',
            'featuredImage': {'url': 'https://cdn/hat.png', 'altText': 'Hat'}
        }, 0)
        assert product == {
            'productId': 'p1',
            'title': 'Hat',
            'description': 'Warm',
            'featuredImage': {'url': 'https://cdn/hat.png', 'altText': 'Hat'}
        }

    def test_id_alias_accepted(self):
        assert normalize_product({'id': 'p2', 'title': 'Cap'}, 0)['productId'] == 'p2'

    def test_missing_title_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize_product({'productId': 'p1'}, 3)
        assert 'index 3' in exc.value.message

    def test_strict_mode_rejects_bare_strings(self):
        with pytest.raises(ValidationError):
            normalize_product('p1', 0, strict=True)

    def test_duplicates_collapse_to_first_occurrence(self):
        products = normalize_products(['p1', {'productId': 'p1', 'title': 'Other'}, 'p2'])
        assert [p['productId'] for p in products] == ['p1', 'p2']
        assert products[0]['title'] == 'p1'

    def test_non_list_rejected(self):
        with pytest.raises(ValidationError) as exc:
            normalize_products('p1', label='Excluded products')
        assert exc.value.message == 'Excluded products must be an array'


class TestGroupNormalization:

    @pytest.mark.parametrize('percentage', [0, 100, 42.5, '15'])
    def test_valid_percentages(self, percentage):
        group = normalize_group({'group': 'VIP', 'percentage': percentage}, 0)
        assert 0 <= group['percentage'] <= 100

    @pytest.mark.parametrize('percentage', [-1, 101])
    def test_out_of_range_percentage_names_group(self, percentage):
        with pytest.raises(ValidationError) as exc:
            normalize_group({'group': 'VIP', 'percentage': percentage}, 0)
        assert exc.value.message == 'Discount percentage must be between 0 and 100 for group "VIP"'

    @pytest.mark.parametrize('percentage', ['NaN', float('nan'), 'inf'])
    def test_non_finite_percentage_names_group(self, percentage):
        with pytest.raises(ValidationError) as exc:
            normalize_group({'group': 'VIP', 'percentage': percentage}, 0)
        assert exc.value.message == 'Discount percentage must be between 0 and 100 for group "VIP"'

    def test_missing_percentage(self):
        with pytest.raises(ValidationError) as exc:
            normalize_group({'group': 'VIP'}, 0)
        assert exc.value.message == 'Discount percentage is required for group "VIP"'

    def test_boolean_percentage_rejected(self):
        with pytest.raises(ValidationError):
            normalize_group({'group': 'VIP', 'percentage': True}, 0)

    def test_missing_name_reports_index(self):
        with pytest.raises(ValidationError) as exc:
            normalize_groups([{'group': 'A', 'percentage': 1}, {'group': '  ', 'percentage': 1}])
        assert exc.value.message == 'Group name is required for group at index 1'

    def test_duplicate_names_case_insensitive(self):
        with pytest.raises(ValidationError) as exc:
            normalize_groups([{'group': 'VIP', 'percentage': 1}, {'group': ' vip ', 'percentage': 2}])
        assert exc.value.message == 'Duplicate group names are not allowed'

    def test_groups_must_be_list(self):
        with pytest.raises(ValidationError) as exc:
            normalize_groups({'group': 'VIP'})
        assert exc.value.message == 'Groups must be an array'

    def test_client_id_preserved_and_products_optional(self):
        group = normalize_group({'id': 'abc', 'group': 'VIP', 'percentage': 5}, 0)
        assert group['id'] == 'abc'
        assert group['discounted_products'] is None


class TestRequestBody:

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError) as exc:
            require_json_object({'groups': [], 'extra': 1}, {'groups'})
        assert exc.value.errors == ['Unknown field "extra"']

    def test_non_object_rejected(self):
        with pytest.raises(ValidationError):
            require_json_object(['groups'])

    def test_missing_body_is_empty_object(self):
        assert require_json_object(None, {'groups'}) == {}
