"""
AI content generation for the admin product form

Form inputs go to `admin/generate-content` as JSON, or as multipart with a
JSON `payload` field when new images are attached. The reply is applied to
the form all at once: an incomplete reply or a failed call leaves the form
exactly as it was.
"""
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence
import json
import logging
import math

from .api import ApiClient, ApiError, AuthContext, buffered_file

logger = logging.getLogger(__name__)

# Reply field -> ProductForm attribute
CONTENT_FIELDS = {
    'title': 'name',
    'tagline': 'tagline',
    'short_description': 'description',
    'detailed_description': 'detailed_description',
    'price_usd': 'price_usd',
    'price_inr': 'price_inr',
}
PRICE_FIELDS = ('price_usd', 'price_inr')


class ContentApplyError(Exception):
    """Generated content is incomplete or malformed"""


@dataclass
class ProductForm:
    name: str = ''
    description: str = ''
    detailed_description: str = ''
    tagline: str = ''
    price_usd: int = 0
    price_inr: int = 0
    product_type: str = ''
    metal_type: str = ''
    metal_weight: Optional[float] = None
    primary_gems_text: str = ''
    main_stone_type: str = ''
    main_stone_weight: Optional[float] = None
    secondary_stone_type: str = ''
    secondary_stone_weight: Optional[float] = None
    user_description: str = ''
    image_urls: List[str] = field(default_factory=list)

    def generation_payload(self) -> dict:
        return {
            'product_type': self.product_type,
            'metal_type': self.metal_type,
            'metal_weight': self.metal_weight,
            'primary_gems_text': self.primary_gems_text,
            'main_stone_type': self.main_stone_type,
            'main_stone_weight': self.main_stone_weight,
            'secondary_stone_type': self.secondary_stone_type,
            'secondary_stone_weight': self.secondary_stone_weight,
            'user_description': self.user_description,
            'image_urls': list(self.image_urls),
        }


@dataclass
class GenerationResult:
    ok: bool
    form: ProductForm
    content: Optional[dict] = None
    error: str = ''


def apply_content(form: ProductForm, content: dict) -> ProductForm:
    """
    New form with every generated field applied.

    Raises ContentApplyError, leaving `form` untouched, when any field is
    missing or a price is not a finite, non-negative number.
    """
    if not isinstance(content, dict):
        raise ContentApplyError('Generated content is not an object')
    missing = [key for key in CONTENT_FIELDS if content.get(key) in (None, '')]
    if missing:
        raise ContentApplyError(f"Generated content is missing: {', '.join(missing)}")

    values = {attr: content[key] for key, attr in CONTENT_FIELDS.items()}
    for key in PRICE_FIELDS:
        attr = CONTENT_FIELDS[key]
        try:
            price = float(values[attr])
        except (TypeError, ValueError):
            raise ContentApplyError('Generated prices are not numbers')
        if not math.isfinite(price) or price < 0:
            raise ContentApplyError(f"Generated {key} is out of range: {values[attr]}")
        values[attr] = int(round(price))
    return replace(form, **values)


class ContentGenerator:
    def __init__(self, api: ApiClient, auth: AuthContext):
        self.api = api
        self.auth = auth

    def _post(self, path, payload, images):
        images = list(images or [])
        if images:
            return self.api.post(
                path, auth=self.auth,
                data={'payload': json.dumps(payload)},
                files=[('images', buffered_file(image)) for image in images],
            )
        return self.api.post(path, auth=self.auth, json=payload)

    def generate(self, form: ProductForm, images: Sequence[tuple] = ()) -> GenerationResult:
        """
        Generate content for `form` and apply it.

        `images` are requests file tuples (name, file, content_type). On any
        failure the returned result carries the original form unchanged.
        """
        try:
            content = self._post('admin/generate-content', form.generation_payload(), images)
            new_form = apply_content(form, content)
        except (ApiError, ContentApplyError) as e:
            logger.warning(f"Content generation failed: {e}")
            return GenerationResult(ok=False, form=form, error=str(e))
        return GenerationResult(ok=True, form=new_form, content=content)

    def regenerate(self, product_id: int, form: Optional[ProductForm] = None, apply: bool = False,
                   store_ai_inputs: bool = False, images: Sequence[tuple] = ()) -> GenerationResult:
        """
        Regenerate content for a saved product.

        Without a form the server reuses the product's stored inputs.
        """
        payload = form.generation_payload() if form is not None else {}
        payload.update({'apply': apply, 'store_ai_inputs': store_ai_inputs})
        form = form or ProductForm()
        try:
            reply = self._post(f'products/{product_id}/regenerate-content', payload, images)
            new_form = apply_content(form, reply.get('content') if isinstance(reply, dict) else None)
        except (ApiError, ContentApplyError) as e:
            logger.warning(f"Content regeneration for product {product_id} failed: {e}")
            return GenerationResult(ok=False, form=form, error=str(e))
        return GenerationResult(ok=True, form=new_form, content=reply['content'])
