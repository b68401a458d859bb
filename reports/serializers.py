import json

from rest_framework import serializers

from .models import AuditLog


class AuditLogSerializer(serializers.ModelSerializer):
    userId = serializers.PrimaryKeyRelatedField(source='user', read_only=True)
    userName = serializers.SerializerMethodField()
    actionType = serializers.CharField(source='action_type', read_only=True)
    tableName = serializers.CharField(source='table_name', read_only=True)
    recordId = serializers.IntegerField(source='record_id', read_only=True)
    oldValues = serializers.SerializerMethodField()
    newValues = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = AuditLog
        fields = ('id', 'userId', 'userName', 'actionType', 'tableName', 'recordId', 'oldValues', 'newValues',
                  'createdAt')
        read_only_fields = fields

    def get_userName(self, obj):
        return obj.user.display_name if obj.user else None

    @staticmethod
    def _load(raw):
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw

    def get_oldValues(self, obj):
        return self._load(obj.old_values)

    def get_newValues(self, obj):
        return self._load(obj.new_values)
