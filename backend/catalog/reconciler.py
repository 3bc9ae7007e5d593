"""
Product detail reconciliation

Merges the legacy `details` JSON blob of a product with the
server-calculated prices into one display model. Field precedence for
metal and stone attributes is:

    root of details > aiInputs > additionalData > empty

where aiInputs is `additionalData.aiInputs`, falling back to the
product's stored `ai_inputs` column.
"""
from dataclasses import dataclass, field, asdict
import json
import logging

from .pricing import calculate_product_prices, inr_to_usd, to_number

logger = logging.getLogger(__name__)

NO_STONE_VALUES = ('', 'none_selected')


@dataclass
class ProductDisplay:
    id: int
    name: str
    description: str
    price_usd: int
    price_inr: int
    detailed_description: str = ''
    tagline: str = ''
    user_description: str = ''
    metal_type: str = ''
    metal_weight: float = None
    main_stone_type: str = ''
    main_stone_weight: float = None
    secondary_stone_type: str = ''
    secondary_stone_weight: float = None
    other_stone_type: str = ''
    other_stone_weight: float = None
    stone_types: list = field(default_factory=list)
    image_url: str = ''
    additional_images: list = field(default_factory=list)
    dimensions: str = ''
    category: str = ''
    product_type: str = None
    product_type_id: int = None
    is_new: bool = False
    is_bestseller: bool = False
    is_featured: bool = False
    details_parsed: bool = True

    def to_dict(self):
        return asdict(self)


def parse_details(raw):
    """
    Parse a `details` blob.

    Returns (data, ok). Empty input is an empty document; anything that is
    not a JSON object is reported as malformed with data=None.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return {}, True
    if isinstance(raw, dict):
        return raw, True
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None, False
    if not isinstance(data, dict):
        return None, False
    return data, True


def extract_ai_inputs(details, stored_ai_inputs=None):
    """aiInputs nested in additionalData, else the stored column"""
    additional = details.get('additionalData') if isinstance(details, dict) else None
    if isinstance(additional, dict) and isinstance(additional.get('aiInputs'), dict) and additional['aiInputs']:
        return additional['aiInputs']
    if isinstance(stored_ai_inputs, str):
        try:
            stored_ai_inputs = json.loads(stored_ai_inputs)
        except ValueError:
            return {}
    return stored_ai_inputs if isinstance(stored_ai_inputs, dict) else {}


def normalize_stone(value):
    """Map "none_selected", "" and None to no stone"""
    if value is None:
        return ''
    value = str(value).strip()
    return '' if value in NO_STONE_VALUES else value


def resolve_field(key, *sources):
    """First non-empty value for `key` across sources, in order"""
    for source in sources:
        value = source.get(key)
        if value not in (None, ''):
            return value
    return None


def resolve_weight(key, *sources):
    """First value for `key` that parses as a number"""
    for source in sources:
        value = source.get(key)
        if value in (None, ''):
            continue
        number = to_number(value, default=None)
        if number is not None:
            return number
    return None


def display_prices(base_price, calculated_usd=None, calculated_inr=None):
    """Server-calculated prices win; otherwise derive from base_price"""
    price_usd = calculated_usd if calculated_usd is not None else inr_to_usd(base_price)
    price_inr = calculated_inr if calculated_inr is not None else base_price
    return price_usd, price_inr


def reconcile_product(product, calculated_usd=None, calculated_inr=None):
    """
    Build the display model for a product.

    Never raises on a bad `details` blob: the raw text becomes the detailed
    description and the structured fields stay empty.
    """
    price_usd, price_inr = display_prices(product.base_price, calculated_usd, calculated_inr)
    display = ProductDisplay(
        id=product.pk,
        name=product.name,
        description=product.description or '',
        price_usd=price_usd,
        price_inr=price_inr,
        image_url=product.image_url or '',
        additional_images=list(product.additional_images or []),
        dimensions=product.dimensions or '',
        category=product.category or '',
        product_type=product.product_type.name if product.product_type_id and product.product_type else None,
        product_type_id=product.product_type_id,
        is_new=product.is_new,
        is_bestseller=product.is_bestseller,
        is_featured=product.is_featured,
    )

    details, ok = parse_details(product.details)
    if not ok:
        logger.warning(f"Malformed details JSON on product {product.pk}; showing raw text")
        display.detailed_description = product.details
        display.details_parsed = False
        return display

    additional = details.get('additionalData') if isinstance(details.get('additionalData'), dict) else {}
    ai_inputs = extract_ai_inputs(details, product.ai_inputs)
    sources = (details, ai_inputs, additional)

    display.detailed_description = details.get('detailedDescription') or ''
    display.tagline = resolve_field('tagline', details, additional) or ''
    display.user_description = resolve_field('userDescription', ai_inputs, additional) or ''

    display.metal_type = str(resolve_field('metalType', *sources) or '')
    display.metal_weight = resolve_weight('metalWeight', *sources)
    display.main_stone_type = normalize_stone(resolve_field('mainStoneType', *sources))
    display.main_stone_weight = resolve_weight('mainStoneWeight', *sources)

    display.secondary_stone_type = normalize_stone(resolve_field('secondaryStoneType', *sources))
    display.secondary_stone_weight = resolve_weight('secondaryStoneWeight', *sources) if display.secondary_stone_type else None
    display.other_stone_type = normalize_stone(resolve_field('otherStoneType', *sources))
    display.other_stone_weight = resolve_weight('otherStoneWeight', *sources) if display.other_stone_type else None

    stone_types = additional.get('stoneTypes')
    display.stone_types = [str(s) for s in stone_types] if isinstance(stone_types, list) else []
    return display


def calculated_prices_for(product):
    """Server-authoritative (usd, inr) for a product"""
    details, ok = parse_details(product.details)
    ai_inputs = extract_ai_inputs(details if ok else {}, product.ai_inputs)
    return calculate_product_prices(product, ai_inputs)


def build_product_display(product):
    """Display model with server-calculated prices applied"""
    price_usd, price_inr = calculated_prices_for(product)
    return reconcile_product(product, calculated_usd=price_usd, calculated_inr=price_inr)
