"""
Jewelry price calculator

Price = (metal cost + stone cost) plus 25% overhead, where
    metal cost = grams x 24K gold price per gram x purity modifier
    stone cost = sum(carats x per-carat price)
Database reference data (MetalType / StoneType) is preferred; name based
estimates are used when no matching record exists.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
import logging

from django.conf import settings

from .models import MetalType, StoneType

logger = logging.getLogger(__name__)

# 24K gold price per gram in INR
GOLD_24K_PRICE_PER_GRAM_INR = 7500
OVERHEAD_RATE = Decimal('0.25')
DEFAULT_STONE_CARATS = 0.5

# Purity by karat marker, checked in order
KARAT_MODIFIERS = [
    (('24k', '24 k'), 1.0),
    (('22k', '22 k'), 0.91),
    (('18k', '18 k'), 0.75),
    (('14k', '14 k'), 0.58),
]
DEFAULT_METAL_MODIFIER = 0.75  # assume 18K when the karat cannot be determined


def get_fallback_rate():
    return getattr(settings, 'FALLBACK_USD_TO_INR', 83)


def round_half_up(value):
    """Round to the nearest integer, halves away from zero"""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def inr_to_usd(amount_inr, rate=None):
    return round_half_up(Decimal(str(amount_inr)) / Decimal(str(rate or get_fallback_rate())))


def to_number(value, default=0.0):
    """Parse loosely typed numeric input ("2.5", 2, None, "") into a float"""
    if value is None or value == '':
        return default
    try:
        return float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError):
        return default


@dataclass
class Gem:
    name: str
    carats: float = None
    stone_type_id: int = None


@dataclass
class PriceQuote:
    price_inr: int
    price_usd: int
    breakdown: dict = field(default_factory=dict)


def metal_modifier_for(metal_type, metal_type_id=None):
    """Purity modifier as a fraction (0.75 for 18K)"""
    if metal_type_id:
        metal = MetalType.objects.filter(pk=metal_type_id).first()
        if metal and metal.price_modifier:
            return metal.price_modifier / 100
    name = (metal_type or '').lower()
    for markers, modifier in KARAT_MODIFIERS:
        if any(marker in name for marker in markers):
            return modifier
    return DEFAULT_METAL_MODIFIER


def estimate_price_per_carat(gem_name):
    """Per-carat INR estimate from the gem name alone"""
    name = (gem_name or '').lower()

    if 'diamond' in name:
        if 'lab' in name or 'synthetic' in name:
            return 20000
        return 56000
    if 'polki' in name:
        return 7000 if 'lab' in name else 15000
    if 'ruby' in name or 'sapphire' in name:
        return 3000
    if 'emerald' in name:
        return 3500
    if 'tanzanite' in name:
        return 1500
    if 'amethyst' in name or 'quartz' in name or 'morganite' in name:
        return 1500
    if 'pearl' in name:
        return 300 if 'south sea' in name else 100
    if 'cz' in name or 'swarovski' in name:
        return 1000
    return 500


def price_per_carat_for(gem, stone_types=None):
    if gem.stone_type_id:
        stone = StoneType.objects.filter(pk=gem.stone_type_id).first()
        if stone and stone.price_modifier:
            return stone.price_modifier

    name = (gem.name or '').lower()
    if stone_types is None:
        stone_types = list(StoneType.objects.all())
    for stone in stone_types:
        if stone.name.lower() in name and stone.price_modifier:
            return stone.price_modifier
    return estimate_price_per_carat(gem.name)


def calculate_jewelry_price(metal_type, metal_weight, gems=None, metal_type_id=None):
    """
    Calculate the retail price of a piece.

    Args:
        metal_type: Metal name, e.g. "18K Yellow Gold"
        metal_weight: Metal weight in grams
        gems: Iterable of Gem
        metal_type_id: Optional MetalType primary key

    Returns:
        PriceQuote with INR/USD totals and a cost breakdown
    """
    gems = list(gems or [])
    metal_cost = to_number(metal_weight) * GOLD_24K_PRICE_PER_GRAM_INR * metal_modifier_for(metal_type, metal_type_id)

    stone_types = list(StoneType.objects.all()) if gems else []
    stone_cost = 0.0
    for gem in gems:
        carats = gem.carats or DEFAULT_STONE_CARATS
        stone_cost += carats * price_per_carat_for(gem, stone_types)

    base_cost = Decimal(str(metal_cost)) + Decimal(str(stone_cost))
    overhead = base_cost * OVERHEAD_RATE
    total_inr = round_half_up(base_cost + overhead)

    return PriceQuote(
        price_inr=total_inr,
        price_usd=inr_to_usd(total_inr),
        breakdown={
            'metal_cost': round_half_up(metal_cost),
            'stone_cost': round_half_up(stone_cost),
            'overhead': round_half_up(overhead),
        },
    )


def gems_from_ai_inputs(ai_inputs):
    """
    Build the gem list for pricing from stored AI inputs.

    Explicit main/secondary stones (type and weight both set) win; the
    free-form primaryGems list is used when neither is present.
    """
    gems = []
    for type_key, weight_key in (('mainStoneType', 'mainStoneWeight'),
                                 ('secondaryStoneType', 'secondaryStoneWeight')):
        stone_type = ai_inputs.get(type_key)
        weight = ai_inputs.get(weight_key)
        if stone_type and stone_type != 'none_selected' and weight:
            gems.append(Gem(name=str(stone_type), carats=to_number(weight) or None))
    if gems:
        return gems

    for gem in ai_inputs.get('primaryGems') or []:
        if isinstance(gem, dict) and gem.get('name'):
            gems.append(Gem(name=gem['name'], carats=to_number(gem.get('carats')) or None))
        elif isinstance(gem, str) and gem.strip():
            gems.append(Gem(name=gem.strip()))
    return gems


def calculate_product_prices(product, ai_inputs=None):
    """
    Server-authoritative (usd, inr) for a product.

    Priced from its AI inputs when available, otherwise converted from
    base_price at the fixed fallback rate.
    """
    fallback = (inr_to_usd(product.base_price), product.base_price)
    if not ai_inputs:
        return fallback
    try:
        quote = calculate_jewelry_price(
            metal_type=ai_inputs.get('metalType') or '',
            metal_weight=ai_inputs.get('metalWeight'),
            gems=gems_from_ai_inputs(ai_inputs),
            metal_type_id=ai_inputs.get('metalTypeId'),
        )
    except Exception as e:
        logger.warning(f"Price calculation failed for product {product.pk}, using base price: {e}", exc_info=True)
        return fallback
    return quote.price_usd, quote.price_inr
