"""
Tests for the catalog: detail reconciliation, pricing, product endpoints,
reference data and exchange rates
"""
from io import StringIO
from unittest import mock
import json
import threading

import requests
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from backend.catalog.management.commands.refresh_rates import Command as RefreshRatesCommand
from backend.catalog.models import Product
from backend.catalog.pricing import (
    Gem, calculate_jewelry_price, estimate_price_per_carat, gems_from_ai_inputs, round_half_up,
)
from backend.catalog.rates import EXCHANGE_RATE_CACHE_KEY, get_usd_to_inr_rate
from backend.catalog.reconciler import display_prices, normalize_stone, parse_details, reconcile_product
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ReconcilerTests(TestCase):
    """Test product detail reconciliation"""

    def make_product(self, details=None, ai_inputs=None, base_price=83000):
        if isinstance(details, dict):
            details = json.dumps(details)
        return Product(id=1, name='Halo Ring', description='A ring', base_price=base_price,
                       details=details, ai_inputs=ai_inputs)

    def test_price_prefers_calculated_values(self):
        """Test server-calculated prices win over base price"""
        display = reconcile_product(self.make_product(), calculated_usd=1200, calculated_inr=99600)
        self.assertEqual(display.price_usd, 1200)
        self.assertEqual(display.price_inr, 99600)

    def test_price_falls_back_to_base_price(self):
        """Test missing calculated prices derive from base price at 83"""
        for base_price in (83000, 41500, 124, 125, 100000):
            display = reconcile_product(self.make_product(base_price=base_price))
            self.assertEqual(display.price_usd, round_half_up(base_price / 83))
            self.assertEqual(display.price_inr, base_price)

    def test_display_prices_keeps_zero_calculated_price(self):
        """Test a calculated price of zero is still authoritative"""
        self.assertEqual(display_prices(83000, calculated_usd=0, calculated_inr=0), (0, 0))

    def test_field_precedence(self):
        """Test root > aiInputs > additionalData for metal and stone fields"""
        details = {
            'metalWeight': '12.5',
            'detailedDescription': 'Long copy',
            'additionalData': {
                'tagline': 'Timeless',
                'metalType': '14K White Gold',
                'metalWeight': 9,
                'mainStoneType': 'Ruby',
                'mainStoneWeight': 1,
                'aiInputs': {
                    'metalType': '18K Rose Gold',
                    'metalWeight': 10,
                    'mainStoneType': 'Diamond',
                    'userDescription': 'For our anniversary',
                },
            },
        }
        display = reconcile_product(self.make_product(details))
        self.assertEqual(display.metal_type, '18K Rose Gold')
        self.assertEqual(display.metal_weight, 12.5)
        self.assertEqual(display.main_stone_type, 'Diamond')
        self.assertEqual(display.main_stone_weight, 1.0)
        self.assertEqual(display.tagline, 'Timeless')
        self.assertEqual(display.detailed_description, 'Long copy')
        self.assertEqual(display.user_description, 'For our anniversary')

    def test_stored_ai_inputs_used_when_not_nested(self):
        """Test the product's stored aiInputs fill in for a missing nested copy"""
        details = {'additionalData': {'metalType': '14K Gold'}}
        display = reconcile_product(self.make_product(details, ai_inputs={'metalType': '22K Gold'}))
        self.assertEqual(display.metal_type, '22K Gold')

    def test_additional_data_used_last(self):
        """Test additionalData is used when nothing else provides a value"""
        display = reconcile_product(self.make_product({'additionalData': {'metalType': '14K Gold', 'metalWeight': 6}}))
        self.assertEqual(display.metal_type, '14K Gold')
        self.assertEqual(display.metal_weight, 6.0)

    def test_no_stone_values_are_normalized(self):
        """Test empty, none_selected and missing stones resolve to no stone"""
        for value in ('', 'none_selected', None):
            details = {'additionalData': {'secondaryStoneType': value, 'secondaryStoneWeight': 2,
                                          'otherStoneType': value}}
            display = reconcile_product(self.make_product(details))
            self.assertEqual(display.secondary_stone_type, '')
            self.assertIsNone(display.secondary_stone_weight)
            self.assertEqual(display.other_stone_type, '')
            self.assertEqual(normalize_stone(value), '')

    def test_real_secondary_stone_kept(self):
        """Test real secondary stones pass through with their weight"""
        details = {'additionalData': {'aiInputs': {'secondaryStoneType': 'Emerald', 'secondaryStoneWeight': '0.75'}}}
        display = reconcile_product(self.make_product(details))
        self.assertEqual(display.secondary_stone_type, 'Emerald')
        self.assertEqual(display.secondary_stone_weight, 0.75)

    def test_malformed_details_shows_raw_text(self):
        """Test malformed JSON never raises and is shown verbatim"""
        raw = '{"additionalData": {"metalType": "18K"'
        display = reconcile_product(self.make_product(raw))
        self.assertEqual(display.detailed_description, raw)
        self.assertFalse(display.details_parsed)
        self.assertEqual(display.metal_type, '')
        self.assertEqual(display.price_usd, 1000)

    def test_non_object_details_shows_raw_text(self):
        """Test JSON that is not an object is treated as raw text"""
        display = reconcile_product(self.make_product('"Handmade in Jaipur"'))
        self.assertEqual(display.detailed_description, '"Handmade in Jaipur"')

    def test_parse_details_empty(self):
        """Test empty details are an empty document"""
        self.assertEqual(parse_details(None), ({}, True))
        self.assertEqual(parse_details('   '), ({}, True))


class PricingTests(TestCase):
    """Test the jewelry price calculator"""

    def test_metal_only(self):
        """Test 10g of 18K gold: 10 x 7500 x 0.75 plus 25%"""
        quote = calculate_jewelry_price('18K Yellow Gold', 10)
        self.assertEqual(quote.price_inr, 70313)
        self.assertEqual(quote.price_usd, 847)
        self.assertEqual(quote.breakdown['metal_cost'], 56250)

    def test_metal_and_diamond(self):
        """Test a natural diamond uses the fallback per-carat price"""
        quote = calculate_jewelry_price('18K Yellow Gold', 10, [Gem(name='Natural Diamond', carats=1)])
        self.assertEqual(quote.price_inr, 140313)
        self.assertEqual(quote.price_usd, 1691)

    def test_karat_modifiers(self):
        """Test purity is read from the metal name"""
        self.assertEqual(calculate_jewelry_price('24K Gold', 1).price_inr, round_half_up(7500 * 1.25))
        self.assertEqual(calculate_jewelry_price('22 k gold', 1).price_inr, round_half_up(7500 * 0.91 * 1.25))
        self.assertEqual(calculate_jewelry_price('14K Gold', 1).price_inr, round_half_up(7500 * 0.58 * 1.25))
        self.assertEqual(calculate_jewelry_price('Platinum', 1).price_inr, round_half_up(7500 * 0.75 * 1.25))

    def test_metal_type_record_wins(self):
        """Test a MetalType purity overrides the name"""
        metal = TestDataFactory.create_metal_type(name='Custom Gold', price_modifier=50)
        quote = calculate_jewelry_price('18K Gold', 2, metal_type_id=metal.id)
        self.assertEqual(quote.price_inr, round_half_up(2 * 7500 * 0.5 * 1.25))

    def test_stone_type_record_matched_by_name(self):
        """Test StoneType prices match gems whose name contains the stone name"""
        TestDataFactory.create_stone_type(name='Ruby', price_modifier=4000)
        quote = calculate_jewelry_price('18K Gold', 0, [Gem(name='Burmese Ruby', carats=2)])
        self.assertEqual(quote.price_inr, 10000)

    def test_default_carats(self):
        """Test gems without a weight count as half a carat"""
        quote = calculate_jewelry_price('18K Gold', 0, [Gem(name='Ruby')])
        self.assertEqual(quote.price_inr, round_half_up(0.5 * 3000 * 1.25))

    def test_fallback_table(self):
        """Test name based per-carat estimates"""
        self.assertEqual(estimate_price_per_carat('Lab Grown Diamond'), 20000)
        self.assertEqual(estimate_price_per_carat('Polki'), 15000)
        self.assertEqual(estimate_price_per_carat('lab polki'), 7000)
        self.assertEqual(estimate_price_per_carat('Emerald'), 3500)
        self.assertEqual(estimate_price_per_carat('Tanzanite'), 1500)
        self.assertEqual(estimate_price_per_carat('Rose Quartz'), 1500)
        self.assertEqual(estimate_price_per_carat('South Sea Pearl'), 300)
        self.assertEqual(estimate_price_per_carat('Pearl'), 100)
        self.assertEqual(estimate_price_per_carat('Swarovski crystal'), 1000)
        self.assertEqual(estimate_price_per_carat('Opal'), 500)

    def test_gems_from_ai_inputs(self):
        """Test main/secondary stones win over the primary gem list"""
        gems = gems_from_ai_inputs({
            'mainStoneType': 'Diamond', 'mainStoneWeight': '1.5',
            'secondaryStoneType': 'none_selected', 'secondaryStoneWeight': 1,
            'primaryGems': [{'name': 'Ruby', 'carats': 2}],
        })
        self.assertEqual(gems, [Gem(name='Diamond', carats=1.5)])

        gems = gems_from_ai_inputs({'primaryGems': [{'name': 'Ruby', 'carats': 2}, {'name': 'Pearl'}]})
        self.assertEqual(gems, [Gem(name='Ruby', carats=2.0), Gem(name='Pearl', carats=None)])


class ProductEndpointTests(TestCase):
    """Test storefront product endpoints"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.rings = TestDataFactory.create_product_type(name='Rings')
        self.necklaces = TestDataFactory.create_product_type(name='Necklaces')

    def test_detail_without_ai_inputs_uses_base_price(self):
        """Test detail prices derive from base price when nothing else is known"""
        product = TestDataFactory.create_product(base_price=83000)
        response = self.client.get(f'/api/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['calculated_price_usd'], 1000)
        self.assertEqual(response.data['calculated_price_inr'], 83000)
        self.assertEqual(response.data['price_usd'], 1000)

    def test_detail_prices_from_ai_inputs(self):
        """Test detail prices are calculated from stored AI inputs"""
        product = TestDataFactory.create_product(
            base_price=50000,
            ai_inputs={'metalType': '18K Yellow Gold', 'metalWeight': 10},
        )
        response = self.client.get(f'/api/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['calculated_price_inr'], 70313)
        self.assertEqual(response.data['calculated_price_usd'], 847)
        self.assertEqual(response.data['base_price'], 50000)

    def test_detail_with_malformed_details(self):
        """Test malformed details are returned as the raw description"""
        product = TestDataFactory.create_product(details='not { json')
        response = self.client.get(f'/api/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['detailed_description'], 'not { json')

    def test_detail_not_found(self):
        """Test unknown products return 404"""
        response = self.client.get('/api/products/9999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_list_and_filters(self):
        """Test product list filtering by type, flags and search"""
        TestDataFactory.create_product(name='Solitaire Ring', product_type=self.rings, is_featured=True)
        TestDataFactory.create_product(name='Pearl Necklace', product_type=self.necklaces)

        response = self.client.get('/api/products/')
        self.assertEqual(len(response.data), 2)

        response = self.client.get(f'/api/products/?product_type={self.rings.id}')
        self.assertEqual([p['name'] for p in response.data], ['Solitaire Ring'])

        response = self.client.get('/api/products/?search=pearl')
        self.assertEqual([p['name'] for p in response.data], ['Pearl Necklace'])

        response = self.client.get('/api/products/featured/')
        self.assertEqual([p['name'] for p in response.data], ['Solitaire Ring'])

    def test_list_includes_prices(self):
        """Test product cards carry calculated prices"""
        TestDataFactory.create_product(base_price=166000)
        response = self.client.get('/api/products/')
        self.assertEqual(response.data[0]['price_usd'], 2000)
        self.assertEqual(response.data[0]['price_inr'], 166000)

    def test_related(self):
        """Test related products share the type and exclude the product itself"""
        ring = TestDataFactory.create_product(product_type=self.rings)
        other_ring = TestDataFactory.create_product(product_type=self.rings)
        TestDataFactory.create_product(product_type=self.necklaces)
        response = self.client.get(f'/api/products/{ring.id}/related/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['id'] for p in response.data], [other_ring.id])

    def test_reference_data_lists_active_only(self):
        """Test public type lists exclude inactive entries"""
        TestDataFactory.create_metal_type(name='18K Gold')
        inactive = TestDataFactory.create_metal_type(name='Silver')
        inactive.is_active = False
        inactive.save()
        response = self.client.get('/api/metal-types/')
        self.assertEqual([m['name'] for m in response.data], ['18K Gold'])
        self.assertEqual(self.client.get('/api/product-types/').status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/stone-types/').status_code, status.HTTP_200_OK)


class AdminProductTests(TestCase):
    """Test admin product management"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.client.authenticate_user(self.admin)

    def test_customer_cannot_create(self):
        """Test customers cannot manage products"""
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/admin/products/', {'name': 'Ring', 'base_price': 1000}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_with_details_object(self):
        """Test details objects are stored as JSON text"""
        response = self.client.post('/api/admin/products/', {
            'name': 'Halo Ring',
            'base_price': 95000,
            'details': {'additionalData': {'metalType': '18K Gold'}},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(pk=response.data['id'])
        self.assertEqual(json.loads(product.details), {'additionalData': {'metalType': '18K Gold'}})
        self.assertEqual(response.data['details'], {'additionalData': {'metalType': '18K Gold'}})

    def test_update_invalidates_cached_detail(self):
        """Test cached product detail is dropped after an update commits"""
        product = TestDataFactory.create_product(name='Old Name')
        self.client.get(f'/api/products/{product.id}/')

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.patch(f'/api/admin/products/{product.id}/', {'name': 'New Name'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(f'/api/products/{product.id}/')
        self.assertEqual(response.data['name'], 'New Name')

    def test_delete(self):
        """Test deleting a product"""
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/admin/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product.id).exists())

    def test_metal_type_crud(self):
        """Test admin metal type creation and purity validation"""
        response = self.client.post('/api/admin/metal-types/', {'name': '22K Gold', 'price_modifier': 91.6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.post('/api/admin/metal-types/', {'name': 'Bad', 'price_modifier': 150}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ExchangeRateTests(TestCase):
    """Test exchange rate fetching and caching"""

    def setUp(self):
        cache.clear()

    def mock_response(self, rate):
        response = mock.Mock()
        response.raise_for_status.return_value = None
        response.json.return_value = {'result': 'success', 'rates': {'INR': rate}}
        return response

    @mock.patch('backend.catalog.rates.requests.get')
    def test_live_rate_cached(self, mock_get):
        """Test a plausible live rate is returned and cached"""
        mock_get.return_value = self.mock_response(84.25)
        self.assertEqual(get_usd_to_inr_rate().rate, 84.25)
        second = get_usd_to_inr_rate()
        self.assertEqual(second.rate, 84.25)
        self.assertEqual(second.source, 'cached')
        self.assertEqual(mock_get.call_count, 1)

    @mock.patch('backend.catalog.rates.requests.get')
    def test_implausible_rate_falls_back(self, mock_get):
        """Test rates outside 50-100 fall back to 83"""
        mock_get.return_value = self.mock_response(420.0)
        result = get_usd_to_inr_rate()
        self.assertEqual(result.rate, 83.0)
        self.assertEqual(result.source, 'fallback')

    @mock.patch('backend.catalog.rates.requests.get')
    def test_network_error_falls_back(self, mock_get):
        """Test fetch errors fall back to 83 without caching"""
        mock_get.side_effect = requests.ConnectionError('offline')
        self.assertEqual(get_usd_to_inr_rate().rate, 83.0)
        self.assertIsNone(cache.get(EXCHANGE_RATE_CACHE_KEY))

    @mock.patch('backend.catalog.rates.requests.get')
    def test_endpoint(self, mock_get):
        """Test the public exchange rate endpoint"""
        mock_get.return_value = self.mock_response(83.5)
        response = APIClient().get('/api/exchange-rate/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['rate'], 83.5)

    @mock.patch('backend.catalog.rates.requests.get')
    def test_refresh_command_once(self, mock_get):
        """Test the refresh command runs once by default"""
        mock_get.return_value = self.mock_response(83.9)
        out = StringIO()
        call_command('refresh_rates', stdout=out)
        self.assertIn('83.9', out.getvalue())
        self.assertEqual(cache.get(EXCHANGE_RATE_CACHE_KEY)['rate'], 83.9)

    @mock.patch('backend.catalog.rates.requests.get')
    def test_refresh_command_loop_stops_on_cancel(self, mock_get):
        """Test the interval loop exits once cancelled"""
        mock_get.return_value = self.mock_response(83.9)
        stop_event = threading.Event()
        stop_event.set()
        out = StringIO()
        call_command(RefreshRatesCommand(stop_event=stop_event), '--every', '5', stdout=out)
        self.assertEqual(mock_get.call_count, 1)

    @mock.patch('backend.catalog.rates.requests.get')
    def test_refresh_command_max_runs(self, mock_get):
        """Test --max-runs bounds the loop"""
        mock_get.return_value = self.mock_response(83.9)
        command = RefreshRatesCommand()
        with mock.patch.object(command.stop_event, 'wait', return_value=False):
            call_command(command, '--every', '1', '--max-runs', '3', stdout=StringIO())
        self.assertEqual(mock_get.call_count, 3)
