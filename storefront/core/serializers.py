from rest_framework import serializers
from .validation import (
    validate_required, validate_email, validate_length, run_validators, collect_errors
)


class ContactMessageSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    email = serializers.CharField(required=False, allow_blank=True)
    subject = serializers.CharField(required=False, allow_blank=True)
    message = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate(self, attrs):
        name = attrs.get('name')
        message = attrs.get('message')
        errors = collect_errors({
            'name': run_validators(name, [
                lambda v: validate_length(v, 3, 50, 'Name'),
                lambda v: validate_required(v, 'Name'),
            ]),
            'email': validate_email(attrs.get('email')),
            'subject': validate_required(attrs.get('subject'), 'Subject'),
            'message': run_validators(message, [
                lambda v: validate_length(v, 10, 1000, 'Message'),
                lambda v: validate_required(v, 'Message'),
            ]),
        })
        if errors:
            raise serializers.ValidationError(errors)
        return attrs


class AdminLoginSerializer(serializers.Serializer):
    email = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate(self, attrs):
        errors = collect_errors({
            'email': validate_email(attrs.get('email')),
            'password': validate_required(attrs.get('password'), 'Password'),
        })
        if errors:
            raise serializers.ValidationError(errors)
        return attrs
