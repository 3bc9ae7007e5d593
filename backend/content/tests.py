"""
Tests for AI content generation: gem parsing, the endpoint client and the
admin generation endpoints
"""
from unittest import mock
import json

import requests
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, SimpleTestCase, override_settings
from rest_framework import status

from backend.catalog.models import Product
from backend.catalog.reconciler import build_product_display, calculated_prices_for
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .generator import (
    AIInputs, GemInput, GeneratedContent, ContentGenerationClient, ContentGenerationError,
    parse_response_body,
)
from .gems import parse_gem_text
from .services import apply_generated_content, store_ai_inputs

AI_ENDPOINT = 'https://ai.example.com/generate'

FULL_RESPONSE = {
    'title': 'Aurora Halo Ring',
    'tagline': 'Light that never fades',
    'shortDescription': 'An 18K gold halo ring with a brilliant diamond.',
    'detailedDescription': 'Hand set in our Jaipur workshop, the Aurora pairs...',
    'priceUSD': 1691,
    'priceINR': 140313,
}


def make_content(**overrides):
    data = {**FULL_RESPONSE, **overrides}
    return GeneratedContent.from_response(data)


def mock_session(text=None, error=None):
    session = mock.Mock()
    if error is not None:
        session.post.side_effect = error
    else:
        response = mock.Mock()
        response.text = text if text is not None else json.dumps(FULL_RESPONSE)
        response.raise_for_status.return_value = None
        session.post.return_value = response
    return session


class GemParsingTests(SimpleTestCase):
    """Test free-text gem list parsing"""

    def test_weights_and_names(self):
        """Test entries with and without carat weights"""
        gems = parse_gem_text('Diamond (2 carats), Ruby')
        self.assertEqual(gems, [GemInput(name='Diamond', carats=2.0), GemInput(name='Ruby')])

    def test_unit_variants(self):
        """Test carat, ct and bare numbers are accepted"""
        gems = parse_gem_text('Sapphire (1.5 ct), Emerald (0.75), Pearl (1 carat)')
        self.assertEqual([g.carats for g in gems], [1.5, 0.75, 1.0])

    def test_blank_entries_dropped(self):
        """Test empty input and stray commas produce no gems"""
        self.assertEqual(parse_gem_text(''), [])
        self.assertEqual(parse_gem_text(' , ,'), [])
        self.assertEqual(parse_gem_text(None), [])

    def test_unparseable_weight_kept_as_name(self):
        """Test odd entries are kept whole as names"""
        self.assertEqual(parse_gem_text('Opal (large)'), [GemInput(name='Opal (large)')])


class GeneratorTests(SimpleTestCase):
    """Test the content generation client"""

    def setUp(self):
        self.inputs = AIInputs(
            product_type='Ring',
            metal_type='18K Yellow Gold',
            metal_weight=10,
            primary_gems=[GemInput(name='Diamond', carats=1)],
            user_description='Classic halo setting',
        )

    def test_json_request(self):
        """Test inputs are sent as camelCase JSON when no images are attached"""
        session = mock_session()
        client = ContentGenerationClient(endpoint=AI_ENDPOINT, api_key='secret', session=session)
        content = client.generate(self.inputs)

        self.assertEqual(content.title, 'Aurora Halo Ring')
        self.assertEqual(content.price_inr, 140313)
        _, kwargs = session.post.call_args
        self.assertEqual(kwargs['json']['metalType'], '18K Yellow Gold')
        self.assertEqual(kwargs['json']['primaryGems'], [{'name': 'Diamond', 'carats': 1}])
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer secret')
        self.assertNotIn('files', kwargs)

    def test_multipart_request_with_images(self):
        """Test images switch the request to multipart with a JSON payload field"""
        session = mock_session()
        client = ContentGenerationClient(endpoint=AI_ENDPOINT, session=session)
        image = TestDataFactory.create_image_file('ref.png')
        client.generate(self.inputs, images=[image])

        _, kwargs = session.post.call_args
        self.assertNotIn('json', kwargs)
        self.assertEqual(json.loads(kwargs['data']['payload'])['productType'], 'Ring')
        self.assertEqual(kwargs['files'][0][0], 'images')
        self.assertEqual(kwargs['files'][0][1][0], 'ref.png')

    def test_prose_wrapped_json(self):
        """Test JSON embedded in surrounding prose is recovered"""
        text = 'Here is your content:\n' + json.dumps(FULL_RESPONSE) + '\nLet me know if you need changes.'
        client = ContentGenerationClient(endpoint=AI_ENDPOINT, session=mock_session(text))
        self.assertEqual(client.generate(self.inputs).tagline, 'Light that never fades')

    def test_incomplete_response_rejected(self):
        """Test a reply missing any required field is an error"""
        partial = {k: v for k, v in FULL_RESPONSE.items() if k != 'priceINR'}
        client = ContentGenerationClient(endpoint=AI_ENDPOINT, session=mock_session(json.dumps(partial)))
        with self.assertRaises(ContentGenerationError):
            client.generate(self.inputs)

    def test_no_json_in_response(self):
        """Test prose without JSON is an error"""
        with self.assertRaises(ContentGenerationError):
            parse_response_body('Sorry, I cannot help with that.')

    def test_transport_error(self):
        """Test network failures surface as generation errors"""
        client = ContentGenerationClient(endpoint=AI_ENDPOINT,
                                         session=mock_session(error=requests.ConnectionError('refused')))
        with self.assertRaises(ContentGenerationError):
            client.generate(self.inputs)

    def test_http_error(self):
        """Test non-2xx replies surface as generation errors"""
        session = mock_session()
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError('500 Server Error')
        client = ContentGenerationClient(endpoint=AI_ENDPOINT, session=session)
        with self.assertRaises(ContentGenerationError):
            client.generate(self.inputs)

    def test_unconfigured_endpoint(self):
        """Test generation fails fast without an endpoint"""
        session = mock_session()
        with override_settings(AI_CONTENT_ENDPOINT=''):
            with self.assertRaises(ContentGenerationError):
                ContentGenerationClient(session=session).generate(self.inputs)
        session.post.assert_not_called()

    def test_payload_round_trip(self):
        """Test stored camelCase inputs rebuild the same inputs"""
        self.assertEqual(AIInputs.from_payload(self.inputs.to_payload()), self.inputs)

    def test_stone_fields_round_trip(self):
        """Test main and secondary stones and the metal type id survive a round trip"""
        stored = {
            'productType': 'Ring', 'metalType': '18K Gold', 'metalWeight': 5, 'metalTypeId': 3,
            'primaryGems': [], 'userDescription': '', 'imageUrls': [],
            'mainStoneType': 'Natural Diamond', 'mainStoneWeight': 1,
            'secondaryStoneType': 'Ruby', 'secondaryStoneWeight': 0.5,
        }
        inputs = AIInputs.from_payload(stored)
        self.assertEqual(inputs.main_stone_type, 'Natural Diamond')
        self.assertEqual(inputs.secondary_stone_weight, 0.5)
        self.assertEqual(inputs.to_payload(), stored)

    def test_non_finite_price_rejected(self):
        """Test infinite prices are generation errors, not crashes"""
        for value in ('inf', 1e400, float('nan')):
            with self.subTest(value=value):
                with self.assertRaises(ContentGenerationError):
                    make_content(priceUSD=value)

    def test_infinity_in_response_body(self):
        """Test a JSON Infinity literal in the reply is rejected"""
        text = json.dumps(FULL_RESPONSE).replace('140313', 'Infinity')
        client = ContentGenerationClient(endpoint=AI_ENDPOINT, session=mock_session(text))
        with self.assertRaises(ContentGenerationError):
            client.generate(self.inputs)

    def test_negative_price_rejected(self):
        """Test negative prices are generation errors"""
        with self.assertRaises(ContentGenerationError):
            make_content(priceINR=-5)


class ContentServiceTests(TestCase):
    """Test writing generated content onto products"""

    def test_apply_sets_every_field(self):
        """Test applied content replaces name, description, price and copy"""
        product = TestDataFactory.create_product(name='Draft', base_price=1000,
                                                 details={'additionalData': {'metalType': '18K Gold'}})
        inputs = AIInputs(product_type='Ring', metal_type='18K Gold', metal_weight=10)
        apply_generated_content(product, make_content(), ai_inputs=inputs)

        product.refresh_from_db()
        details = json.loads(product.details)
        self.assertEqual(product.name, 'Aurora Halo Ring')
        self.assertEqual(product.description, FULL_RESPONSE['shortDescription'])
        self.assertEqual(product.base_price, 140313)
        self.assertEqual(details['detailedDescription'], FULL_RESPONSE['detailedDescription'])
        self.assertEqual(details['additionalData']['tagline'], 'Light that never fades')
        self.assertEqual(details['additionalData']['metalType'], '18K Gold')
        self.assertEqual(details['additionalData']['aiInputs']['metalWeight'], 10)
        self.assertEqual(product.ai_inputs['productType'], 'Ring')

    def test_apply_over_malformed_details(self):
        """Test unreadable legacy details are preserved under a separate key"""
        product = TestDataFactory.create_product(details='{oops')
        apply_generated_content(product, make_content())
        product.refresh_from_db()
        self.assertEqual(json.loads(product.details)['legacyDetails'], '{oops')

    def test_apply_replaces_root_level_tagline(self):
        """Test an older root-level tagline does not hide the applied one"""
        product = TestDataFactory.create_product(details={'tagline': 'Old tagline'})
        apply_generated_content(product, make_content())
        product.refresh_from_db()
        self.assertEqual(build_product_display(product).tagline, 'Light that never fades')
        self.assertNotIn('tagline', json.loads(product.details))

    def test_restoring_stored_inputs_keeps_price(self):
        """Test re-storing a product's own inputs keeps its stones and price"""
        stored = {'metalType': '18K Gold', 'metalWeight': 5,
                  'mainStoneType': 'Natural Diamond', 'mainStoneWeight': 1}
        product = TestDataFactory.create_product(ai_inputs=stored)
        before = calculated_prices_for(product)

        store_ai_inputs(product, AIInputs.from_payload(stored))
        product.refresh_from_db()
        self.assertEqual(calculated_prices_for(product), before)
        self.assertEqual(product.ai_inputs['mainStoneType'], 'Natural Diamond')
        self.assertEqual(build_product_display(product).main_stone_type, 'Natural Diamond')

    def test_store_ai_inputs_only(self):
        """Test storing inputs leaves the product copy alone"""
        product = TestDataFactory.create_product(name='Keep Me', base_price=5000)
        store_ai_inputs(product, AIInputs(metal_type='22K Gold', primary_gems=[GemInput('Ruby', 1.0)]))
        product.refresh_from_db()
        self.assertEqual(product.name, 'Keep Me')
        self.assertEqual(product.base_price, 5000)
        self.assertEqual(product.ai_inputs['metalType'], '22K Gold')
        self.assertEqual(json.loads(product.details)['additionalData']['aiInputs']['primaryGems'],
                         [{'name': 'Ruby', 'carats': 1.0}])


class GenerateContentEndpointTests(TestCase):
    """Test the admin content generation endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())

    def test_customer_forbidden(self):
        """Test customers cannot generate content"""
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post('/api/admin/generate-content/', {'product_type': 'Ring'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    @mock.patch('backend.content.views.ContentGenerationClient')
    def test_generate_from_gem_text(self, mock_client):
        """Test free-text gems are parsed before generation"""
        mock_client.return_value.generate.return_value = make_content()
        response = self.client.post('/api/admin/generate-content/', {
            'product_type': 'Ring',
            'metal_type': '18K Gold',
            'primary_gems_text': 'Diamond (1 carat), Ruby',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['title'], 'Aurora Halo Ring')
        inputs = mock_client.return_value.generate.call_args[0][0]
        self.assertEqual(inputs.primary_gems, [GemInput('Diamond', 1.0), GemInput('Ruby')])
        self.assertTrue(AuditLog.objects.filter(action='content_generate').exists())

    def test_generate_requires_some_input(self):
        """Test an empty request is rejected before calling the service"""
        response = self.client.post('/api/admin/generate-content/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @mock.patch('backend.content.views.ContentGenerationClient')
    def test_generate_multipart_with_images(self, mock_client):
        """Test multipart requests read the JSON payload field and pass images on"""
        mock_client.return_value.generate.return_value = make_content()
        response = self.client.post('/api/admin/generate-content/', {
            'payload': json.dumps({'product_type': 'Pendant', 'metal_type': 'Platinum'}),
            'images': [TestDataFactory.create_image_file('ref.png')],
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        args, kwargs = mock_client.return_value.generate.call_args
        self.assertEqual(args[0].metal_type, 'Platinum')
        self.assertEqual(len(kwargs['images']), 1)

    def test_generate_rejects_bad_payload(self):
        """Test a payload field that is not a JSON object is rejected"""
        response = self.client.post('/api/admin/generate-content/', {'payload': '[1, 2]'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_generate_rejects_bad_image(self):
        """Test non-image attachments are refused"""
        response = self.client.post('/api/admin/generate-content/', {
            'payload': json.dumps({'product_type': 'Ring'}),
            'images': [SimpleUploadedFile('x.png', b'nope', content_type='image/png')],
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @mock.patch('backend.content.views.ContentGenerationClient')
    def test_generate_service_failure(self, mock_client):
        """Test upstream failures map to 502"""
        mock_client.return_value.generate.side_effect = ContentGenerationError('timeout')
        response = self.client.post('/api/admin/generate-content/', {'product_type': 'Ring'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)


class RegenerateContentEndpointTests(TestCase):
    """Test regenerating content for an existing product"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.product = TestDataFactory.create_product(name='Old Ring', base_price=1000)
        self.url = f'/api/products/{self.product.id}/regenerate-content/'

    @mock.patch('backend.content.views.ContentGenerationClient')
    def test_preview_does_not_change_product(self, mock_client):
        """Test regeneration without apply only returns the content"""
        mock_client.return_value.generate.return_value = make_content()
        response = self.client.post(self.url, {'metal_type': '18K Gold'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['applied'])
        self.assertEqual(response.data['content']['title'], 'Aurora Halo Ring')
        self.product.refresh_from_db()
        self.assertEqual(self.product.name, 'Old Ring')

    @mock.patch('backend.content.views.ContentGenerationClient')
    def test_apply_and_store_inputs(self, mock_client):
        """Test apply writes the content and keeps the inputs"""
        mock_client.return_value.generate.return_value = make_content()
        response = self.client.post(self.url, {
            'metal_type': '18K Gold', 'metal_weight': 10, 'apply': True, 'store_ai_inputs': True,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['applied'])
        self.assertEqual(response.data['product']['name'], 'Aurora Halo Ring')
        self.product.refresh_from_db()
        self.assertEqual(self.product.base_price, 140313)
        self.assertEqual(self.product.ai_inputs['metalWeight'], 10)

    @mock.patch('backend.content.views.ContentGenerationClient')
    def test_store_inputs_without_apply(self, mock_client):
        """Test inputs can be kept without applying the copy"""
        mock_client.return_value.generate.return_value = make_content()
        self.client.post(self.url, {'metal_type': '14K Gold', 'store_ai_inputs': True}, format='json')
        self.product.refresh_from_db()
        self.assertEqual(self.product.name, 'Old Ring')
        self.assertEqual(self.product.ai_inputs['metalType'], '14K Gold')

    @mock.patch('backend.content.views.ContentGenerationClient')
    def test_reuses_stored_inputs(self, mock_client):
        """Test a request without inputs regenerates from the stored ones"""
        mock_client.return_value.generate.return_value = make_content()
        self.product.ai_inputs = {
            'productType': 'Ring', 'metalType': '18K Gold', 'metalWeight': 5,
            'primaryGems': [{'name': 'Ruby', 'carats': 1}],
        }
        self.product.save()
        response = self.client.post(self.url, {'apply': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        inputs = mock_client.return_value.generate.call_args[0][0]
        self.assertEqual(inputs.metal_type, '18K Gold')
        self.assertEqual(inputs.primary_gems, [GemInput('Ruby', 1.0)])
        self.assertEqual(Product.objects.get(pk=self.product.id).name, 'Aurora Halo Ring')

    @mock.patch('backend.content.views.ContentGenerationClient')
    def test_restore_from_stored_inputs_keeps_stones(self, mock_client):
        """Test regenerating from stored inputs with store_ai_inputs keeps the stones and price"""
        mock_client.return_value.generate.return_value = make_content()
        self.product.ai_inputs = {'metalType': '18K Gold', 'metalWeight': 5,
                                  'mainStoneType': 'Natural Diamond', 'mainStoneWeight': 1}
        self.product.save()
        before = calculated_prices_for(self.product)

        response = self.client.post(self.url, {'store_ai_inputs': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['stored_ai_inputs'])
        inputs = mock_client.return_value.generate.call_args[0][0]
        self.assertEqual(inputs.main_stone_type, 'Natural Diamond')
        self.product.refresh_from_db()
        self.assertEqual(self.product.ai_inputs['mainStoneType'], 'Natural Diamond')
        self.assertEqual(calculated_prices_for(self.product), before)

    @override_settings(AI_CONTENT_ENDPOINT=AI_ENDPOINT)
    @mock.patch('backend.content.generator.requests.Session')
    def test_out_of_range_price_is_bad_gateway(self, mock_session_class):
        """Test an infinite or negative price in the reply is a 502 and changes nothing"""
        for bad in ({'priceUSD': 'inf'}, {'priceINR': -140313}):
            with self.subTest(bad=bad):
                mock_session_class.return_value = mock_session(json.dumps({**FULL_RESPONSE, **bad}))
                response = self.client.post(self.url, {'metal_type': '18K Gold', 'apply': True}, format='json')
                self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
                self.product.refresh_from_db()
                self.assertEqual(self.product.base_price, 1000)

    def test_no_inputs_anywhere(self):
        """Test regeneration needs inputs when none are stored"""
        response = self.client.post(self.url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(AI_CONTENT_ENDPOINT=AI_ENDPOINT)
    @mock.patch('backend.content.generator.requests.Session')
    def test_incomplete_response_changes_nothing(self, mock_session_class):
        """Test an incomplete reply leaves the product untouched"""
        partial = {k: v for k, v in FULL_RESPONSE.items() if k != 'detailedDescription'}
        mock_session_class.return_value = mock_session(json.dumps(partial))
        response = self.client.post(self.url, {'metal_type': '18K Gold', 'apply': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.product.refresh_from_db()
        self.assertEqual(self.product.name, 'Old Ring')
        self.assertEqual(self.product.base_price, 1000)

    def test_unknown_product(self):
        """Test regeneration of a missing product is 404"""
        response = self.client.post('/api/products/9999/regenerate-content/', {'metal_type': 'Gold'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
