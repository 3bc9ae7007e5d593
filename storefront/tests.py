"""
Tests for the storefront client flows (no server needed; the HTTP session is
mocked or served by a recording transport adapter)
"""
from io import BytesIO
from unittest import TestCase, mock
import json

import requests
from requests.adapters import BaseAdapter

from .api import ApiClient, ApiError, AuthContext
from .content import ContentGenerator, ProductForm, apply_content, ContentApplyError
from .moderation import TestimonialModeration, ADMIN_TESTIMONIALS_KEY, PUBLIC_TESTIMONIALS_KEY
from .query_cache import QueryCache
from .threads import RequestThread, EMPTY_COMMENT_ERROR

BASE_URL = 'http://shop.test/api/'

GENERATED = {
    'title': 'Aurora Halo Ring',
    'tagline': 'Light that never fades',
    'short_description': 'An 18K gold halo ring.',
    'detailed_description': 'Hand set in our Jaipur workshop.',
    'price_usd': 1691,
    'price_inr': 140313,
    'image_insights': None,
}


def fake_response(status_code=200, data=None):
    response = mock.Mock()
    response.status_code = status_code
    response.content = b'' if data is None else json.dumps(data).encode()
    response.text = response.content.decode()
    response.reason = 'Reason'
    if data is None:
        response.json.side_effect = ValueError('No JSON object could be decoded')
    else:
        response.json.return_value = data
    return response


def make_api(*responses):
    session = mock.Mock()
    session.request.side_effect = list(responses)
    return ApiClient(BASE_URL, session=session), session


class RecordingAdapter(BaseAdapter):
    """Transport adapter that records request bodies and replays canned replies"""

    def __init__(self, *replies):
        super().__init__()
        self.replies = list(replies)
        self.bodies = []

    def send(self, request, **kwargs):
        self.bodies.append(request.body)
        status_code, data = self.replies.pop(0)
        response = requests.Response()
        response.status_code = status_code
        response._content = json.dumps(data).encode()
        response.headers['Content-Type'] = 'application/json'
        response.url = request.url
        response.request = request
        return response

    def close(self):
        pass


def make_recording_api(*replies):
    adapter = RecordingAdapter(*replies)
    session = requests.Session()
    session.mount('http://', adapter)
    return ApiClient(BASE_URL, session=session), adapter


class ApiClientTests(TestCase):
    """Test the HTTP client wrapper"""

    def test_url_and_bearer_token(self):
        """Test paths are normalized and the token is sent"""
        api, session = make_api(fake_response(data={'id': 5}))
        auth = AuthContext(username='meera', access_token='abc')
        self.assertEqual(api.get('products/5', auth=auth), {'id': 5})
        args, kwargs = session.request.call_args
        self.assertEqual(args, ('GET', 'http://shop.test/api/products/5/'))
        self.assertEqual(kwargs['headers']['Authorization'], 'Bearer abc')

    def test_anonymous_request_has_no_token(self):
        """Test no Authorization header without a token"""
        api, session = make_api(fake_response(data=[]))
        api.get('testimonials', auth=AuthContext())
        self.assertNotIn('Authorization', session.request.call_args[1]['headers'])

    def test_field_error_message(self):
        """Test field errors become a readable message"""
        api, _ = make_api(fake_response(400, {'content': ['Add a message or an image.']}))
        with self.assertRaises(ApiError) as ctx:
            api.post('custom-designs/1/comments')
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.message, 'content: Add a message or an image.')

    def test_detail_error_message(self):
        """Test DRF detail messages are used as-is"""
        api, _ = make_api(fake_response(409, {'detail': 'Testimonial is already rejected; cannot approve'}))
        with self.assertRaises(ApiError) as ctx:
            api.put('admin/testimonials/3/approve')
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertIn('already rejected', ctx.exception.message)

    def test_network_error(self):
        """Test transport failures raise ApiError without a status"""
        api, session = make_api()
        session.request.side_effect = requests.ConnectionError('refused')
        with self.assertRaises(ApiError) as ctx:
            api.get('products')
        self.assertIsNone(ctx.exception.status_code)

    def test_no_content(self):
        """Test 204 replies return None"""
        api, _ = make_api(fake_response(204))
        self.assertIsNone(api.delete('admin/testimonials/3'))

    def test_login(self):
        """Test login builds an AuthContext"""
        api, session = make_api(fake_response(data={
            'access': 'acc', 'refresh': 'ref',
            'user': {'id': 7, 'username': 'admin', 'is_admin': True},
        }))
        auth = api.login('admin', 'secret')
        self.assertTrue(auth.is_authenticated)
        self.assertTrue(auth.is_admin)
        self.assertEqual(auth.user_id, 7)
        self.assertEqual(session.request.call_args[1]['json'], {'username': 'admin', 'password': 'secret'})


class QueryCacheTests(TestCase):
    """Test the client query cache"""

    def test_fetch_caches_until_invalidated(self):
        """Test loaders run once until the key is invalidated"""
        cache = QueryCache()
        loader = mock.Mock(side_effect=[['a'], ['b']])
        self.assertEqual(cache.fetch(('testimonials',), loader), ['a'])
        self.assertEqual(cache.fetch(('testimonials',), loader), ['a'])
        cache.invalidate(('testimonials',))
        self.assertEqual(cache.fetch(('testimonials',), loader), ['b'])
        self.assertEqual(loader.call_count, 2)

    def test_prefix_invalidation(self):
        """Test invalidation covers every key under the prefix only"""
        cache = QueryCache()
        cache.set(('admin', 'testimonials', 'pending'), [])
        cache.set(('admin', 'testimonials', 'approved'), [])
        cache.set(('admin', 'contact'), [])
        self.assertEqual(cache.invalidate(('admin', 'testimonials')), 2)
        self.assertTrue(cache.is_stale(('admin', 'testimonials', 'pending')))
        self.assertFalse(cache.is_stale(('admin', 'contact')))
        self.assertEqual(cache.peek(('admin', 'testimonials', 'pending')), [])

    def test_loader_may_read_the_cache(self):
        """Test a loader can consult the cache while its key is being fetched"""
        cache = QueryCache()
        cache.set(('testimonials',), ['a'])
        loader = mock.Mock(side_effect=lambda: [cache.peek(('testimonials',)), cache.is_stale(('other',))])
        self.assertEqual(cache.fetch(('admin', 'testimonials'), loader), [['a'], True])
        self.assertFalse(cache.is_stale(('admin', 'testimonials')))


class RequestThreadTests(TestCase):
    """Test request thread loading and commenting"""

    def setUp(self):
        self.auth = AuthContext(username='meera', access_token='tok')
        self.cache = QueryCache()

    def make_thread(self, *responses):
        api, session = make_api(*responses)
        thread = RequestThread(api, self.cache, self.auth, 'custom-designs', 12)
        self.cache.set(thread.detail_key, {'id': 12, 'comments': []})
        self.cache.set(thread.list_key, [{'id': 12}])
        return thread, session

    def test_empty_comment_makes_no_call(self):
        """Test whitespace-only drafts are refused locally"""
        thread, session = self.make_thread()
        result = thread.submit_comment('   ')
        self.assertFalse(result.ok)
        self.assertEqual(result.error, EMPTY_COMMENT_ERROR)
        session.request.assert_not_called()
        self.assertFalse(self.cache.is_stale(thread.detail_key))

    def test_successful_comment_invalidates_and_resets(self):
        """Test success invalidates thread and list, then clears the draft"""
        comment = {'id': 1, 'content': 'Thinner band please', 'is_admin': False, 'created_by': 'meera'}
        thread, session = self.make_thread(fake_response(201, comment))
        result = thread.submit_comment('  Thinner band please ')

        self.assertTrue(result.ok)
        self.assertEqual(result.comment, comment)
        args, kwargs = session.request.call_args
        self.assertEqual(args, ('POST', 'http://shop.test/api/custom-designs/12/comments/'))
        self.assertEqual(kwargs['files'], {'content': (None, 'Thinner band please')})
        self.assertTrue(self.cache.is_stale(('custom-designs', 12)))
        self.assertTrue(self.cache.is_stale(('custom-designs', 'user')))
        self.assertEqual(thread.draft.content, '')
        self.assertEqual(thread.error, '')

    def test_image_only_comment(self):
        """Test an image alone is sent as a multipart file"""
        image = ('sketch.png', BytesIO(b'png-bytes'), 'image/png')
        thread, session = self.make_thread(fake_response(201, {'id': 2}))
        self.assertTrue(thread.submit_comment(image=image).ok)
        files = session.request.call_args[1]['files']
        self.assertEqual(files['image'], ('sketch.png', b'png-bytes', 'image/png'))
        self.assertEqual(files['content'], (None, ''))

    def test_failed_comment_keeps_draft(self):
        """Test failures keep the draft and the cached thread"""
        thread, _ = self.make_thread(fake_response(403, {'detail': 'You do not have access to this request.'}))
        result = thread.submit_comment('Hello')
        self.assertFalse(result.ok)
        self.assertEqual(thread.error, 'You do not have access to this request.')
        self.assertEqual(thread.draft.content, 'Hello')
        self.assertFalse(self.cache.is_stale(thread.detail_key))

    def test_retry_after_failure(self):
        """Test the kept draft can be resent as-is"""
        thread, session = self.make_thread(
            fake_response(500, {'detail': 'Server error'}),
            fake_response(201, {'id': 3}),
        )
        self.assertFalse(thread.submit_comment('Hello').ok)
        self.assertTrue(thread.submit_comment().ok)
        self.assertEqual(session.request.call_args[1]['files']['content'], (None, 'Hello'))

    def test_image_retry_resends_the_same_bytes(self):
        """Test an image comment retried after a failure uploads the full image again"""
        api, adapter = make_recording_api((500, {'detail': 'Server error'}), (201, {'id': 4}))
        thread = RequestThread(api, self.cache, self.auth, 'custom-designs', 12)
        image = ('sketch.png', BytesIO(b'PNGDATA-123'), 'image/png')

        self.assertFalse(thread.submit_comment('See sketch', image=image).ok)
        self.assertTrue(thread.submit_comment().ok)
        self.assertEqual(len(adapter.bodies), 2)
        for body in adapter.bodies:
            self.assertIn(b'PNGDATA-123', body)
            self.assertIn(b'See sketch', body)

    def test_render_order_and_labels(self):
        """Test comments render oldest first with author labels"""
        thread, _ = self.make_thread()
        self.cache.set(thread.detail_key, {'id': 12, 'comments': [
            {'id': 3, 'content': 'Approved!', 'is_admin': False, 'created_by': 'meera',
             'created_at': '2025-03-02T10:00:00Z'},
            {'id': 1, 'content': 'Hi', 'is_admin': False, 'created_by': 'meera',
             'created_at': '2025-03-01T09:00:00Z'},
            {'id': 2, 'content': 'Draft attached', 'is_admin': True, 'created_by': 'studio',
             'created_at': '2025-03-01T12:00:00Z'},
        ]})
        rendered = thread.render()
        self.assertEqual([c.content for c in rendered], ['Hi', 'Draft attached', 'Approved!'])
        self.assertEqual([c.author for c in rendered], ['You', 'Jewelry Team', 'You'])

    def test_load_refetches_after_invalidation(self):
        """Test the thread is refetched once stale"""
        thread, session = self.make_thread(fake_response(data={'id': 12, 'comments': [{'id': 9}]}))
        self.cache.invalidate(thread.detail_key)
        self.assertEqual(thread.load()['comments'], [{'id': 9}])
        self.assertEqual(session.request.call_args[0], ('GET', 'http://shop.test/api/custom-designs/12/'))

    def test_unknown_kind(self):
        """Test only the two request kinds are accepted"""
        api, _ = make_api()
        with self.assertRaises(ValueError):
            RequestThread(api, self.cache, self.auth, 'orders', 1)


class TestimonialModerationTests(TestCase):
    """Test moderation refetches instead of editing lists"""

    def setUp(self):
        self.auth = AuthContext(username='admin', access_token='tok', is_admin=True)
        self.cache = QueryCache()
        self.cache.set(ADMIN_TESTIMONIALS_KEY + ('pending',), [{'id': 4, 'status': 'pending'}])
        self.cache.set(PUBLIC_TESTIMONIALS_KEY, [])

    def test_approve_refetches(self):
        """Test approval invalidates both lists and reloads the pending list"""
        api, session = make_api(
            fake_response(data={'id': 4, 'status': 'approved'}),
            fake_response(data=[]),
        )
        moderation = TestimonialModeration(api, self.cache, self.auth)
        result = moderation.approve(4)

        self.assertTrue(result.ok)
        self.assertEqual(result.testimonial['status'], 'approved')
        first, second = session.request.call_args_list
        self.assertEqual(first[0], ('PUT', 'http://shop.test/api/admin/testimonials/4/approve/'))
        self.assertEqual(second[0], ('GET', 'http://shop.test/api/admin/testimonials/'))
        self.assertEqual(second[1]['params'], {'status': 'pending'})
        self.assertEqual(self.cache.peek(ADMIN_TESTIMONIALS_KEY + ('pending',)), [])
        self.assertTrue(self.cache.is_stale(PUBLIC_TESTIMONIALS_KEY))

    def test_conflict_leaves_lists(self):
        """Test a refused transition reports the conflict and changes nothing"""
        api, session = make_api(fake_response(409, {'detail': 'Testimonial is already rejected; cannot approve'}))
        result = TestimonialModeration(api, self.cache, self.auth).approve(4)
        self.assertFalse(result.ok)
        self.assertEqual(result.status_code, 409)
        self.assertEqual(session.request.call_count, 1)
        self.assertFalse(self.cache.is_stale(PUBLIC_TESTIMONIALS_KEY))

    def test_delete(self):
        """Test delete sends DELETE and refetches"""
        api, session = make_api(fake_response(204), fake_response(data=[]))
        result = TestimonialModeration(api, self.cache, self.auth).delete(4)
        self.assertTrue(result.ok)
        self.assertIsNone(result.testimonial)
        self.assertEqual(session.request.call_args_list[0][0],
                         ('DELETE', 'http://shop.test/api/admin/testimonials/4/'))


class ContentGeneratorTests(TestCase):
    """Test all-or-nothing content application"""

    def setUp(self):
        self.auth = AuthContext(username='admin', access_token='tok', is_admin=True)
        self.form = ProductForm(
            name='Draft ring',
            product_type='Ring',
            metal_type='18K Gold',
            metal_weight=10,
            primary_gems_text='Diamond (1 carat)',
        )

    def test_generate_applies_every_field(self):
        """Test a complete reply fills the form"""
        api, session = make_api(fake_response(data=GENERATED))
        result = ContentGenerator(api, self.auth).generate(self.form)

        self.assertTrue(result.ok)
        self.assertEqual(result.form.name, 'Aurora Halo Ring')
        self.assertEqual(result.form.description, 'An 18K gold halo ring.')
        self.assertEqual(result.form.price_inr, 140313)
        self.assertEqual(result.form.metal_type, '18K Gold')
        self.assertEqual(self.form.name, 'Draft ring')
        self.assertEqual(session.request.call_args[1]['json']['primary_gems_text'], 'Diamond (1 carat)')

    def test_incomplete_reply_changes_nothing(self):
        """Test a reply missing a field leaves the form as it was"""
        partial = {k: v for k, v in GENERATED.items() if k != 'tagline'}
        api, _ = make_api(fake_response(data=partial))
        result = ContentGenerator(api, self.auth).generate(self.form)
        self.assertFalse(result.ok)
        self.assertIs(result.form, self.form)
        self.assertIn('tagline', result.error)

    def test_server_error_changes_nothing(self):
        """Test upstream failures are surfaced once and the form kept"""
        api, _ = make_api(fake_response(502, {'detail': 'AI content service unavailable'}))
        result = ContentGenerator(api, self.auth).generate(self.form)
        self.assertFalse(result.ok)
        self.assertIs(result.form, self.form)
        self.assertEqual(result.error, 'AI content service unavailable')

    def test_images_sent_as_multipart(self):
        """Test attached images switch to multipart with a JSON payload field"""
        image = ('ref.png', BytesIO(b'png-bytes'), 'image/png')
        api, session = make_api(fake_response(data=GENERATED))
        ContentGenerator(api, self.auth).generate(self.form, images=[image])
        kwargs = session.request.call_args[1]
        self.assertNotIn('json', kwargs)
        self.assertEqual(json.loads(kwargs['data']['payload'])['metal_type'], '18K Gold')
        self.assertEqual(kwargs['files'], [('images', ('ref.png', b'png-bytes', 'image/png'))])

    def test_regenerate_from_stored_inputs(self):
        """Test regeneration without a form relies on stored inputs"""
        api, session = make_api(fake_response(data={'content': GENERATED, 'applied': True}))
        result = ContentGenerator(api, self.auth).regenerate(5, apply=True)
        self.assertTrue(result.ok)
        self.assertEqual(result.form.name, 'Aurora Halo Ring')
        self.assertEqual(session.request.call_args[1]['json'], {'apply': True, 'store_ai_inputs': False})

    def test_apply_content_rejects_bad_prices(self):
        """Test non-numeric prices are refused"""
        with self.assertRaises(ContentApplyError):
            apply_content(self.form, {**GENERATED, 'price_usd': 'a lot'})

    def test_apply_content_rejects_out_of_range_prices(self):
        """Test infinite or negative prices are refused and the form kept"""
        for bad in ({'price_usd': 'inf'}, {'price_inr': 1e400}, {'price_inr': -10}):
            with self.subTest(bad=bad):
                with self.assertRaises(ContentApplyError):
                    apply_content(self.form, {**GENERATED, **bad})

    def test_generate_with_infinite_price_does_not_raise(self):
        """Test an out-of-range price in the reply is a failed result"""
        api, _ = make_api(fake_response(data={**GENERATED, 'price_usd': 'inf'}))
        result = ContentGenerator(api, self.auth).generate(self.form)
        self.assertFalse(result.ok)
        self.assertIs(result.form, self.form)

    def test_image_retry_resends_the_same_bytes(self):
        """Test generating again with the same image tuples uploads the full images"""
        api, adapter = make_recording_api((502, {'detail': 'AI content service unavailable'}), (200, GENERATED))
        image = ('ref.png', BytesIO(b'PNGDATA-456'), 'image/png')
        generator = ContentGenerator(api, self.auth)

        self.assertFalse(generator.generate(self.form, images=[image]).ok)
        self.assertTrue(generator.generate(self.form, images=[image]).ok)
        for body in adapter.bodies:
            self.assertIn(b'PNGDATA-456', body)

    def test_stone_fields_sent(self):
        """Test main and secondary stones are part of the generation payload"""
        form = ProductForm(metal_type='18K Gold', main_stone_type='Natural Diamond', main_stone_weight=1)
        api, session = make_api(fake_response(data=GENERATED))
        ContentGenerator(api, self.auth).generate(form)
        payload = session.request.call_args[1]['json']
        self.assertEqual(payload['main_stone_type'], 'Natural Diamond')
        self.assertEqual(payload['main_stone_weight'], 1)
