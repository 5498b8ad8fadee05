"""
Validation for notification channels and webhooks.

The serializers here are the only definition of what a valid channel config
or webhook looks like. The admin API uses them to reject bad input with
field-level errors, and each provider adapter runs the same serializer
through validate_config_with() before it touches the network.
"""
import re
import logging

from rest_framework import serializers

from notifications.models import NotificationChannel, Webhook
from notifications.services.types import (
    CHANNEL_TYPES,
    DISCORD,
    EMAIL,
    TELEGRAM,
    NOTIFICATION_EVENTS,
    VALID_NOTIFICATION_EVENTS,
    VALID_WEBHOOK_EVENTS,
    WEBHOOK_EVENTS,
    ValidationResult,
)

logger = logging.getLogger(__name__)

DISCORD_WEBHOOK_REGEX = re.compile(r'^https://discord\.com/api/webhooks/\d+/[\w-]+\Z', re.ASCII)
TELEGRAM_BOT_TOKEN_REGEX = re.compile(r'^\d+:[\w-]+\Z', re.ASCII)
TELEGRAM_CHAT_ID_REGEX = re.compile(r'^-?\d+\Z', re.ASCII)
EMAIL_REGEX = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+\Z')
DISPLAY_NAME_ADDRESS_REGEX = re.compile(r'<([^>]+)>')

HTTPS_URL_REGEX = re.compile(r'^https://.+', re.IGNORECASE)

# Lexical SSRF guard: hostnames are never resolved, so a public name that
# points at a private address is not caught here.
PRIVATE_URL_PATTERNS = [
    re.compile(r'^https?://localhost', re.IGNORECASE),
    re.compile(r'^https?://127\.', re.IGNORECASE),
    re.compile(r'^https?://10\.', re.IGNORECASE),
    re.compile(r'^https?://192\.168\.', re.IGNORECASE),
    re.compile(r'^https?://172\.(1[6-9]|2[0-9]|3[0-1])\.', re.IGNORECASE),
    re.compile(r'^https?://0\.', re.IGNORECASE),
    re.compile(r'^https?://\[::1\]', re.IGNORECASE),
]

WEBHOOK_SECRET_MIN_LENGTH = 16
WEBHOOK_SECRET_MAX_LENGTH = 255


def extract_address(value: str) -> str:
    """
    Return the bare address from 'Name <addr>' or the value itself.
    """
    match = DISPLAY_NAME_ADDRESS_REGEX.search(value)
    return match.group(1) if match else value


def split_recipients(value: str) -> list:
    return [part.strip() for part in value.split(',')]


def is_valid_address(value: str) -> bool:
    return bool(EMAIL_REGEX.match(extract_address(value)))


def is_private_url(url: str) -> bool:
    """
    Check if a URL points to a loopback or private network by prefix only.
    """
    return any(pattern.match(url) for pattern in PRIVATE_URL_PATTERNS)


def flatten_errors(errors, prefix: str = '') -> dict:
    """
    Flatten nested DRF serializer errors to {'config.webhook_url': 'message'}.
    """
    flat = {}
    if isinstance(errors, dict):
        for key, value in errors.items():
            path = f"{prefix}.{key}" if prefix else str(key)
            flat.update(flatten_errors(value, path))
    elif isinstance(errors, list):
        for item in errors:
            if isinstance(item, (dict, list)):
                flat.update(flatten_errors(item, prefix))
            elif (prefix or 'non_field_errors') not in flat:
                flat[prefix or 'non_field_errors'] = str(item)
    else:
        flat[prefix or 'non_field_errors'] = str(errors)
    return flat


# ----------------------------------------------------------------------------
# Channel configs
# ----------------------------------------------------------------------------

# Stored values are sent as-is: nothing is trimmed and patterns anchor on \Z.

class DiscordConfigSerializer(serializers.Serializer):
    webhook_url = serializers.RegexField(
        DISCORD_WEBHOOK_REGEX,
        trim_whitespace=False,
        error_messages={
            'required': 'webhook_url is required and must be a string',
            'blank': 'webhook_url is required and must be a string',
            'null': 'webhook_url is required and must be a string',
            'invalid': 'Invalid Discord webhook URL. Must be https://discord.com/api/webhooks/{id}/{token}',
        },
    )


class TelegramConfigSerializer(serializers.Serializer):
    bot_token = serializers.RegexField(
        TELEGRAM_BOT_TOKEN_REGEX,
        trim_whitespace=False,
        error_messages={
            'required': 'bot_token is required and must be a string',
            'blank': 'bot_token is required and must be a string',
            'null': 'bot_token is required and must be a string',
            'invalid': 'Invalid bot_token format. Expected format: {bot_id}:{token}',
        },
    )
    chat_id = serializers.RegexField(
        TELEGRAM_CHAT_ID_REGEX,
        trim_whitespace=False,
        error_messages={
            'required': 'chat_id is required and must be a string',
            'blank': 'chat_id is required and must be a string',
            'null': 'chat_id is required and must be a string',
            'invalid': 'Invalid chat_id format. Must be a numeric string (can be negative for groups)',
        },
    )


def validate_recipients(value: str) -> None:
    for address in split_recipients(value):
        if not is_valid_address(address):
            raise serializers.ValidationError(f"Invalid email address in 'to' field: {address}")


def validate_sender(value: str) -> None:
    if not is_valid_address(value):
        raise serializers.ValidationError(f"Invalid email address in 'from' field: {value}")


class EmailConfigSerializer(serializers.Serializer):
    to = serializers.CharField(
        validators=[validate_recipients],
        trim_whitespace=False,
        error_messages={
            'required': 'to is required and must be a string',
            'blank': 'to is required and must be a string',
            'null': 'to is required and must be a string',
        },
    )

    def get_fields(self):
        # 'from' is a keyword, so it cannot be declared as a class attribute
        fields = super().get_fields()
        fields['from'] = serializers.CharField(
            validators=[validate_sender],
            trim_whitespace=False,
            error_messages={
                'required': 'from is required and must be a string',
                'blank': 'from is required and must be a string',
                'null': 'from is required and must be a string',
            },
        )
        return fields


CONFIG_SERIALIZERS = {
    DISCORD: DiscordConfigSerializer,
    TELEGRAM: TelegramConfigSerializer,
    EMAIL: EmailConfigSerializer,
}


def validate_config_with(serializer_class, config) -> ValidationResult:
    """
    Run a channel config through its serializer and report the first error.

    Args:
        serializer_class: One of the *ConfigSerializer classes
        config: The stored or submitted config (any type)

    Returns:
        ValidationResult with valid flag and first error message
    """
    if not config or not isinstance(config, dict):
        return ValidationResult(valid=False, error='Configuration is required')

    serializer = serializer_class(data=config)
    if serializer.is_valid():
        return ValidationResult(valid=True)

    errors = flatten_errors(serializer.errors)
    first_error = next(iter(errors.values()), 'Invalid configuration')
    return ValidationResult(valid=False, error=first_error)


# ----------------------------------------------------------------------------
# Admin input
# ----------------------------------------------------------------------------

def validate_event_list(events: list, allowed: frozenset, ordered: tuple) -> list:
    if not events:
        raise serializers.ValidationError('At least one event is required')
    if any(event not in allowed for event in events):
        raise serializers.ValidationError(
            f"Invalid event. Valid events are: {', '.join(ordered)}"
        )
    # Preserve order, drop duplicates
    return list(dict.fromkeys(events))


class NotificationChannelSerializer(serializers.ModelSerializer):
    """
    Create/update schema for notification channels.

    The channel type is fixed once created; config is validated against the
    serializer for that type and its errors are nested under 'config'.
    """

    type = serializers.ChoiceField(
        choices=CHANNEL_TYPES,
        error_messages={'invalid_choice': f"type must be one of: {', '.join(CHANNEL_TYPES)}"},
    )
    name = serializers.CharField(
        max_length=255,
        error_messages={
            'blank': 'Name is required',
            'max_length': 'Name must be at most 255 characters',
        },
    )
    config = serializers.DictField()
    events = serializers.ListField(child=serializers.CharField(), allow_empty=True)

    class Meta:
        model = NotificationChannel
        fields = ('id', 'type', 'name', 'config', 'events', 'enabled', 'created_at', 'updated_at')
        read_only_fields = ('id', 'created_at', 'updated_at')

    def get_fields(self):
        fields = super().get_fields()
        if self.instance is not None:
            fields['type'].read_only = True
        return fields

    def validate_events(self, value):
        return validate_event_list(value, VALID_NOTIFICATION_EVENTS, NOTIFICATION_EVENTS)

    def validate(self, attrs):
        if self.partial and not attrs:
            raise serializers.ValidationError(
                'At least one field (name, config, events, or enabled) is required'
            )

        if 'config' in attrs:
            channel_type = attrs.get('type') or getattr(self.instance, 'type', None)
            config_serializer = CONFIG_SERIALIZERS[channel_type](data=attrs['config'])
            if not config_serializer.is_valid():
                raise serializers.ValidationError({'config': config_serializer.errors})
            attrs['config'] = dict(config_serializer.validated_data)

        return attrs


class WebhookSerializer(serializers.ModelSerializer):
    """
    Create/update schema for webhooks.

    The secret is write-only; it is used for signing and never echoed back.
    """

    name = serializers.CharField(
        max_length=255,
        error_messages={
            'blank': 'Name is required',
            'max_length': 'Name must be at most 255 characters',
        },
    )
    url = serializers.CharField(
        max_length=2048,
        error_messages={'blank': 'URL is required'},
    )
    events = serializers.ListField(child=serializers.CharField(), allow_empty=True)
    secret = serializers.CharField(
        write_only=True,
        required=False,
        allow_null=True,
        min_length=WEBHOOK_SECRET_MIN_LENGTH,
        max_length=WEBHOOK_SECRET_MAX_LENGTH,
        error_messages={
            'min_length': f'Secret must be at least {WEBHOOK_SECRET_MIN_LENGTH} characters for security',
            'max_length': f'Secret must be at most {WEBHOOK_SECRET_MAX_LENGTH} characters',
        },
    )

    class Meta:
        model = Webhook
        fields = (
            'id', 'name', 'url', 'events', 'secret', 'enabled', 'failure_count',
            'last_triggered_at', 'last_status_code', 'created_at', 'updated_at',
        )
        read_only_fields = (
            'id', 'failure_count', 'last_triggered_at', 'last_status_code',
            'created_at', 'updated_at',
        )

    def validate_url(self, value):
        if not HTTPS_URL_REGEX.match(value):
            raise serializers.ValidationError('URL must be a valid HTTPS URL')
        if is_private_url(value):
            logger.warning(f"Rejected webhook URL pointing at a private network: {value}")
            raise serializers.ValidationError('URL must not point to a private/internal network')
        return value

    def validate_events(self, value):
        return validate_event_list(value, VALID_WEBHOOK_EVENTS, WEBHOOK_EVENTS)

    def validate(self, attrs):
        if self.partial and not attrs:
            raise serializers.ValidationError(
                'At least one field (name, url, events, secret, or enabled) is required'
            )
        return attrs

    def create(self, validated_data):
        validated_data['secret'] = validated_data.get('secret') or None
        validated_data['failure_count'] = 0
        return super().create(validated_data)

    def update(self, instance, validated_data):
        # Re-enabling starts the failure streak over
        if validated_data.get('enabled') and not instance.enabled:
            validated_data['failure_count'] = 0
        return super().update(instance, validated_data)
