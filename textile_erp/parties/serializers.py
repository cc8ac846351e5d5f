from rest_framework import serializers
from .models import Customer, Supplier

PARTY_FIELDS = [
    'id', 'company_name', 'gst_number', 'pan_number', 'contact_person', 'phone', 'email',
    'address', 'city', 'notes', 'status', 'created_at', 'updated_at'
]


class PartySerializerMixin:
    """Normalises identifiers and rejects duplicate GST numbers"""

    def validate_company_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Company name is required.')
        return value

    def validate_gst_number(self, value):
        value = (value or '').strip().upper()
        if not value:
            return value
        if len(value) != 15:
            raise serializers.ValidationError('GST number must be 15 characters.')
        queryset = self.Meta.model.objects.filter(gst_number=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('A record with this GST number already exists.')
        return value

    def validate_pan_number(self, value):
        value = (value or '').strip().upper()
        if value and len(value) != 10:
            raise serializers.ValidationError('PAN number must be 10 characters.')
        return value


class CustomerSerializer(PartySerializerMixin, serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = PARTY_FIELDS
        read_only_fields = ['created_at', 'updated_at']


class SupplierSerializer(PartySerializerMixin, serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = PARTY_FIELDS
        read_only_fields = ['created_at', 'updated_at']
