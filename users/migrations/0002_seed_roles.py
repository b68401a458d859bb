from django.db import migrations

ROLE_NAMES = ('admin', 'owner', 'nurse')


def create_roles(apps, schema_editor):
    Role = apps.get_model('users', 'Role')
    for name in ROLE_NAMES:
        Role.objects.get_or_create(name=name)


class Migration(migrations.Migration):

    dependencies = [
        ('users', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_roles, migrations.RunPython.noop),
    ]
