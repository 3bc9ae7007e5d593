from rest_framework import serializers

from .generator import AIInputs, GemInput
from .gems import parse_gem_text


class GemSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    carats = serializers.FloatField(required=False, allow_null=True, min_value=0)


class AIInputsSerializer(serializers.Serializer):
    """
    Generation inputs. Gems come either as a structured list
    (`primary_gems`) or as free text (`primary_gems_text`).
    """
    product_type = serializers.CharField(required=False, allow_blank=True, default='')
    metal_type = serializers.CharField(required=False, allow_blank=True, default='')
    metal_weight = serializers.FloatField(required=False, allow_null=True, min_value=0, default=None)
    metal_type_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    primary_gems = GemSerializer(many=True, required=False)
    primary_gems_text = serializers.CharField(required=False, allow_blank=True, write_only=True)
    main_stone_type = serializers.CharField(required=False, allow_blank=True, default='')
    main_stone_weight = serializers.FloatField(required=False, allow_null=True, min_value=0, default=None)
    secondary_stone_type = serializers.CharField(required=False, allow_blank=True, default='')
    secondary_stone_weight = serializers.FloatField(required=False, allow_null=True, min_value=0, default=None)
    user_description = serializers.CharField(required=False, allow_blank=True, default='')
    image_urls = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    other_stone_type = serializers.CharField(required=False, allow_blank=True, default='')
    other_stone_weight = serializers.FloatField(required=False, allow_null=True, min_value=0, default=None)

    def validate(self, attrs):
        if 'primary_gems' in attrs:
            gems = [GemInput(name=g['name'], carats=g.get('carats')) for g in attrs['primary_gems']]
        else:
            gems = parse_gem_text(attrs.get('primary_gems_text', ''))
        attrs['primary_gems'] = gems
        attrs.pop('primary_gems_text', None)
        if not (attrs['product_type'] or attrs['metal_type'] or gems or attrs['main_stone_type']
                or attrs['user_description']):
            raise serializers.ValidationError("Provide at least a product type, metal, gems or a description.")
        return attrs

    def to_ai_inputs(self):
        return AIInputs(**self.validated_data)


class RegenerateContentSerializer(AIInputsSerializer):
    """Regeneration inputs plus what to do with the result"""
    apply = serializers.BooleanField(required=False, default=False)
    store_ai_inputs = serializers.BooleanField(required=False, default=False)

    def to_ai_inputs(self):
        data = {k: v for k, v in self.validated_data.items() if k not in ('apply', 'store_ai_inputs')}
        return AIInputs(**data)
