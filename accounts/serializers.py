"""
Serializers for account endpoints.
"""
from django.conf import settings
from rest_framework import serializers

from .models import User


class UserSerializer(serializers.ModelSerializer):
    """Public profile of the current user (never includes the password)."""
    created_at = serializers.DateTimeField(source='date_joined', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'email', 'username', 'low_stock_limit', 'avatar_url', 'created_at']
        read_only_fields = fields


class SignupSerializer(serializers.Serializer):
    """
    Serializer for POST /signup

    ``token`` is the reCAPTCHA response, required only when reCAPTCHA is
    configured.
    """
    email = serializers.EmailField()
    username = serializers.CharField(max_length=150)
    password = serializers.CharField(min_length=6, write_only=True)
    confirmPassword = serializers.CharField(write_only=True)
    token = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs['password'] != attrs['confirmPassword']:
            raise serializers.ValidationError("Passwords Do Not Match")
        return attrs


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField(required=False, allow_blank=True, write_only=True)

    def validate(self, attrs):
        if not attrs.get('username') or not attrs.get('password'):
            raise serializers.ValidationError("Username and password are required")
        return attrs


class ProfileUpdateSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get('username') and not attrs.get('email'):
            raise serializers.ValidationError("Nothing to update")
        return attrs


class SettingsSerializer(serializers.Serializer):
    low_stock_limit = serializers.IntegerField(
        min_value=0,
        error_messages={
            'invalid': 'Must be a non-negative integer.',
            'min_value': 'Must be a non-negative integer.',
        }
    )


class PasswordChangeSerializer(serializers.Serializer):
    currentPassword = serializers.CharField(required=False, allow_blank=True, write_only=True)
    newPassword = serializers.CharField(required=False, allow_blank=True, write_only=True)

    def validate(self, attrs):
        if not attrs.get('currentPassword') or not attrs.get('newPassword'):
            raise serializers.ValidationError("Current and new password are required")
        if len(attrs['newPassword']) < 6:
            raise serializers.ValidationError("Password must be at least 6 characters")
        return attrs


class AvatarSerializer(serializers.Serializer):
    avatar = serializers.FileField(
        error_messages={'required': 'No file uploaded', 'empty': 'No file uploaded'}
    )

    ALLOWED_CONTENT_TYPES = {
        'image/jpeg': 'jpg',
        'image/png': 'png',
        'image/gif': 'gif',
    }

    def validate_avatar(self, value):
        if value.content_type not in self.ALLOWED_CONTENT_TYPES:
            raise serializers.ValidationError("Invalid File Type")
        if value.size > settings.AVATAR_MAX_BYTES:
            limit_mb = settings.AVATAR_MAX_BYTES // (1024 * 1024)
            raise serializers.ValidationError(f"File size exceeds {limit_mb}MB")
        return value
