from rest_framework import serializers


class TransactionCallbackSerializer(serializers.Serializer):
    transaction_id = serializers.CharField(max_length=100, trim_whitespace=True)


class PaymentUrlSerializer(serializers.Serializer):
    payment_url = serializers.URLField()


class InvoiceUrlSerializer(serializers.Serializer):
    invoice_url = serializers.CharField()
