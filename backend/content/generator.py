"""
Client for the external AI content-generation endpoint

The endpoint takes a camelCase JSON document (or multipart with a JSON
`payload` field when images are attached) and answers with the product
copy. Responses are validated as a whole: a reply missing any required
field is an error, never a partial result.
"""
from dataclasses import dataclass, field, asdict
import json
import logging
import math
import re

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r'\{[\s\S]*\}')


class ContentGenerationError(Exception):
    """The AI endpoint failed or returned unusable content"""


@dataclass
class GemInput:
    name: str
    carats: float = None

    def to_payload(self):
        payload = {'name': self.name}
        if self.carats is not None:
            payload['carats'] = self.carats
        return payload


@dataclass
class AIInputs:
    product_type: str = ''
    metal_type: str = ''
    metal_weight: float = None
    metal_type_id: int = None
    primary_gems: list = field(default_factory=list)
    main_stone_type: str = ''
    main_stone_weight: float = None
    secondary_stone_type: str = ''
    secondary_stone_weight: float = None
    user_description: str = ''
    image_urls: list = field(default_factory=list)
    other_stone_type: str = ''
    other_stone_weight: float = None

    # (type attr, type key, weight attr, weight key); written only when the type is set
    STONE_FIELDS = (
        ('main_stone_type', 'mainStoneType', 'main_stone_weight', 'mainStoneWeight'),
        ('secondary_stone_type', 'secondaryStoneType', 'secondary_stone_weight', 'secondaryStoneWeight'),
        ('other_stone_type', 'otherStoneType', 'other_stone_weight', 'otherStoneWeight'),
    )

    def to_payload(self):
        """camelCase document sent to the endpoint and stored on products"""
        payload = {
            'productType': self.product_type,
            'metalType': self.metal_type,
            'metalWeight': self.metal_weight,
            'primaryGems': [gem.to_payload() for gem in self.primary_gems],
            'userDescription': self.user_description,
            'imageUrls': list(self.image_urls),
        }
        if self.metal_type_id is not None:
            payload['metalTypeId'] = self.metal_type_id
        for type_attr, type_key, weight_attr, weight_key in self.STONE_FIELDS:
            if getattr(self, type_attr):
                payload[type_key] = getattr(self, type_attr)
                payload[weight_key] = getattr(self, weight_attr)
        return payload

    @classmethod
    def from_payload(cls, payload):
        gems = []
        for gem in payload.get('primaryGems') or []:
            if isinstance(gem, dict) and gem.get('name'):
                gems.append(GemInput(name=gem['name'], carats=gem.get('carats')))
        stones = {}
        for type_attr, type_key, weight_attr, weight_key in cls.STONE_FIELDS:
            stones[type_attr] = payload.get(type_key) or ''
            stones[weight_attr] = payload.get(weight_key)
        return cls(
            product_type=payload.get('productType') or '',
            metal_type=payload.get('metalType') or '',
            metal_weight=payload.get('metalWeight'),
            metal_type_id=payload.get('metalTypeId'),
            primary_gems=gems,
            user_description=payload.get('userDescription') or '',
            image_urls=list(payload.get('imageUrls') or []),
            **stones,
        )


@dataclass
class GeneratedContent:
    title: str
    tagline: str
    short_description: str
    detailed_description: str
    price_usd: int
    price_inr: int
    image_insights: str = None

    REQUIRED_FIELDS = {
        'title': 'title',
        'tagline': 'tagline',
        'shortDescription': 'short_description',
        'detailedDescription': 'detailed_description',
        'priceUSD': 'price_usd',
        'priceINR': 'price_inr',
    }

    @classmethod
    def from_response(cls, data):
        if not isinstance(data, dict):
            raise ContentGenerationError('AI response is not a JSON object')
        missing = [key for key in cls.REQUIRED_FIELDS if data.get(key) in (None, '')]
        if missing:
            raise ContentGenerationError(f"AI response is missing fields: {', '.join(missing)}")
        values = {attr: data[key] for key, attr in cls.REQUIRED_FIELDS.items()}
        for attr in ('price_usd', 'price_inr'):
            try:
                price = float(values[attr])
            except (TypeError, ValueError):
                raise ContentGenerationError('AI response prices are not numbers')
            if not math.isfinite(price) or price < 0:
                raise ContentGenerationError(f"AI response {attr} is out of range: {values[attr]}")
            values[attr] = int(round(price))
        return cls(image_insights=data.get('imageInsights'), **values)

    def to_dict(self):
        return asdict(self)


def parse_response_body(text):
    """Decode the endpoint reply, tolerating prose around the JSON object"""
    try:
        return json.loads(text)
    except ValueError:
        match = JSON_OBJECT_PATTERN.search(text or '')
        if not match:
            raise ContentGenerationError('AI response contains no JSON object')
        try:
            return json.loads(match.group(0))
        except ValueError as e:
            raise ContentGenerationError(f"AI response JSON could not be parsed: {e}")


class ContentGenerationClient:
    """Posts AIInputs to the configured endpoint and returns GeneratedContent"""

    def __init__(self, endpoint=None, api_key=None, timeout=None, session=None):
        self.endpoint = endpoint or getattr(settings, 'AI_CONTENT_ENDPOINT', '')
        self.api_key = api_key if api_key is not None else getattr(settings, 'AI_CONTENT_API_KEY', '')
        self.timeout = timeout or getattr(settings, 'AI_CONTENT_TIMEOUT', 60)
        self.session = session or requests.Session()

    def _headers(self):
        headers = {'Accept': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'
        return headers

    def generate(self, inputs, images=()):
        """
        Generate product copy.

        Args:
            inputs: AIInputs
            images: uploaded files to send along; switches the request to multipart

        Raises:
            ContentGenerationError on transport errors, HTTP errors or an
            incomplete response.
        """
        if not self.endpoint:
            raise ContentGenerationError('AI content endpoint is not configured')

        payload = inputs.to_payload()
        kwargs = {'headers': self._headers(), 'timeout': self.timeout}
        images = list(images or [])
        if images:
            kwargs['data'] = {'payload': json.dumps(payload)}
            kwargs['files'] = [
                ('images', (image.name, image, getattr(image, 'content_type', None) or 'application/octet-stream'))
                for image in images
            ]
        else:
            kwargs['json'] = payload

        try:
            response = self.session.post(self.endpoint, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"AI content generation request failed: {e}")
            raise ContentGenerationError(f"AI content service unavailable: {e}") from e

        content = GeneratedContent.from_response(parse_response_body(response.text))
        logger.info(f"Generated content '{content.title}' ({len(images)} images)")
        return content
