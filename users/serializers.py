from rest_framework import serializers
from .models import User, Role


class RoleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Role
        fields = '__all__'


class UserSerializer(serializers.ModelSerializer):
    fullName = serializers.CharField(source='full_name', required=False, allow_blank=True)
    roleName = serializers.CharField(source='role.name', read_only=True)
    isActive = serializers.BooleanField(source='is_active', required=False)
    password = serializers.CharField(write_only=True, required=False, min_length=8)

    class Meta:
        model = User
        fields = ('id', 'username', 'email', 'fullName', 'role', 'roleName', 'timezone', 'isActive', 'password')

    def create(self, validated_data):
        # Хешируем пароль при создании
        return User.objects.create_user(**validated_data)

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        instance = super().update(instance, validated_data)
        if password:
            instance.set_password(password)
            instance.save(update_fields=['password'])
        return instance


class UserRefSerializer(serializers.ModelSerializer):
    """Краткая ссылка на пользователя во вложенных ответах."""

    name = serializers.CharField(source='display_name', read_only=True)

    class Meta:
        model = User
        fields = ('id', 'name')
