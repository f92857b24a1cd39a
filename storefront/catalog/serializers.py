from rest_framework import serializers
import json

from storefront.core.validation import (
    validate_required, validate_price, validate_url, collect_errors
)


class JSONListField(serializers.Field):
    """List field that also accepts a JSON-encoded list, as multipart forms send it"""

    def to_internal_value(self, data):
        if isinstance(data, str):
            if not data.strip():
                return []
            try:
                data = json.loads(data)
            except ValueError:
                raise serializers.ValidationError('Must be a JSON list.')
        if not isinstance(data, (list, tuple)):
            raise serializers.ValidationError('Must be a list.')
        return [item for item in data if isinstance(item, str)]

    def to_representation(self, value):
        return list(value)


class SpecificationPreviewSerializer(serializers.Serializer):
    content = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)


class ProductFormSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True)
    price = serializers.CharField(required=False, allow_blank=True)
    category = serializers.CharField(required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    detailedDescription = serializers.CharField(required=False, allow_blank=True, default='', trim_whitespace=False)
    specifications = serializers.CharField(required=False, allow_blank=True, default='', trim_whitespace=False)
    useCases = serializers.CharField(required=False, allow_blank=True, default='', trim_whitespace=False)
    inStock = serializers.BooleanField(required=False, default=True)
    youtubeLink = serializers.CharField(required=False, allow_blank=True, default='')
    pdfLink = serializers.CharField(required=False, allow_blank=True, default='')
    keyFeatures = JSONListField(required=False, default=list)
    existingImages = JSONListField(required=False, default=list)

    def validate_keyFeatures(self, value):
        return [feature for feature in value if feature.strip()]

    def validate(self, attrs):
        errors = collect_errors({
            'name': validate_required(attrs.get('name'), 'Product name'),
            'price': validate_price(attrs.get('price')),
            'category': validate_required(attrs.get('category'), 'Category'),
            'pdfLink': validate_url(attrs.get('pdfLink')),
        })
        if errors:
            raise serializers.ValidationError(errors)
        return attrs

    def to_backend_payload(self):
        data = dict(self.validated_data)
        data['inStock'] = 'true' if data['inStock'] else 'false'
        data['keyFeatures'] = json.dumps(data['keyFeatures'])
        # Tells the backend which already-hosted images to keep
        data['existingImages'] = json.dumps(data['existingImages'])
        return data


class CategoryFormSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        errors = collect_errors({
            'name': validate_required(attrs.get('name'), 'Category name'),
        })
        if errors:
            raise serializers.ValidationError(errors)
        return attrs


class BannerFormSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_blank=True, default='')
    link = serializers.CharField(required=False, allow_blank=True, default='')
    order = serializers.IntegerField(required=False, default=0)
    isActive = serializers.BooleanField(required=False, default=True)

    def to_backend_payload(self):
        data = dict(self.validated_data)
        data['order'] = str(data['order'])
        data['isActive'] = 'true' if data['isActive'] else 'false'
        return data
