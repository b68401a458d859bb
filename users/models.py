from zoneinfo import available_timezones

from django.core.exceptions import ValidationError
from django.db import models
from django.contrib.auth.models import AbstractUser

ROLE_ADMIN = 'admin'
ROLE_OWNER = 'owner'
ROLE_NURSE = 'nurse'
ROLE_NAMES = (ROLE_ADMIN, ROLE_OWNER, ROLE_NURSE)


def validate_timezone_name(value: str) -> None:
    if value not in available_timezones():
        raise ValidationError(f'Unknown timezone "{value}"')


class Role(models.Model):
    # id создается автоматически (BigAutoField)
    name = models.CharField(max_length=100, unique=True, verbose_name="Название роли")

    class Meta:
        db_table = 'roles'
        verbose_name = 'Роль'
        verbose_name_plural = 'Роли'

    def __str__(self):
        return self.name


class User(AbstractUser):
    # Стандартные поля Django (username, email, password, is_active) уже есть.
    full_name = models.CharField(max_length=255, blank=True, verbose_name="ФИО")
    role = models.ForeignKey(Role, on_delete=models.PROTECT, null=True, blank=True, related_name='users',
                             verbose_name="Роль")
    # IANA-идентификатор, по нему считается локальное время владельца/медсестры
    timezone = models.CharField(max_length=64, default='UTC', validators=[validate_timezone_name],
                                verbose_name="Часовой пояс")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Дата регистрации")

    class Meta:
        db_table = 'users'
        verbose_name = 'Пользователь'
        verbose_name_plural = 'Пользователи'

    @property
    def role_name(self):
        return self.role.name if self.role else None

    @property
    def is_admin(self) -> bool:
        return self.is_staff or self.role_name == ROLE_ADMIN

    @property
    def display_name(self) -> str:
        return self.full_name or self.username
