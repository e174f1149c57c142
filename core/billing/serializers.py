"""
Billing Serializers

Serializers for the billing API: subscription reads, the payment settings
screen and the small request bodies of the checkout/sync endpoints.
"""

from rest_framework import serializers

from .models import PaymentSettings, Subscription


class SubscriptionSerializer(serializers.ModelSerializer):
    """
    Serializer for Subscription Model (read-only, timestamps in epoch ms)
    """

    is_entitled = serializers.BooleanField(read_only=True)

    class Meta:
        model = Subscription
        fields = [
            "id",
            "subscription_id",
            "customer_id",
            "status",
            "current_period_start",
            "current_period_end",
            "cancel_at_period_end",
            "canceled_at",
            "is_entitled",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PaymentSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentSettings
        fields = [
            "product_id",
            "product_name",
            "monthly_price_id",
            "monthly_price_amount",
            "monthly_price_currency",
            "yearly_price_id",
            "yearly_price_amount",
            "yearly_price_currency",
            "created_at",
        ]
        read_only_fields = ["created_at"]

    def validate(self, attrs):
        """
        A yearly price is all-or-nothing: id, amount and currency together
        """
        yearly = [
            attrs.get("yearly_price_id"),
            attrs.get("yearly_price_amount"),
            attrs.get("yearly_price_currency"),
        ]
        if any(v not in (None, "") for v in yearly) and not all(
            v not in (None, "") for v in yearly
        ):
            raise serializers.ValidationError(
                "yearly_price_id, yearly_price_amount and yearly_price_currency must be set together."
            )
        if attrs.get("yearly_price_id") and attrs["yearly_price_id"] == attrs.get("monthly_price_id"):
            raise serializers.ValidationError("Monthly and yearly price must differ.")
        return attrs


class CheckoutRequestSerializer(serializers.Serializer):
    price_id = serializers.CharField(required=False, allow_blank=True)


class CheckoutSyncSerializer(serializers.Serializer):
    session_id = serializers.CharField()


class SubscriptionSyncSerializer(serializers.Serializer):
    subscription_id = serializers.CharField()
