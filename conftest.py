import pytest
from rest_framework.test import APIClient

from patients.models import Assignment, Patient
from tasks.models import TaskTemplate
from users.models import Role, User

# Фикстура для API клиента
@pytest.fixture
def api_client():
    return APIClient()

# Роли заводит миграция, поэтому get_or_create
@pytest.fixture
def role_admin(db):
    return Role.objects.get_or_create(name='admin')[0]

@pytest.fixture
def role_owner(db):
    return Role.objects.get_or_create(name='owner')[0]

@pytest.fixture
def role_nurse(db):
    return Role.objects.get_or_create(name='nurse')[0]

# Фикстуры для пользователей
@pytest.fixture
def admin_user(db, role_admin):
    return User.objects.create_superuser(username='admin', password='password', email='a@a.com', role=role_admin)

@pytest.fixture
def owner_user(db, role_owner):
    return User.objects.create_user(username='owner1', password='password', role=role_owner,
                                    full_name='Sunrise Care', timezone='UTC')

@pytest.fixture
def owner_user_2(db, role_owner):
    return User.objects.create_user(username='owner2', password='password', role=role_owner,
                                    full_name='Lotus Home', timezone='Asia/Kolkata')

@pytest.fixture
def nurse_user(db, role_nurse):
    return User.objects.create_user(username='nurse1', password='password', role=role_nurse,
                                    full_name='Anna Nurse', timezone='UTC')

@pytest.fixture
def nurse_user_2(db, role_nurse):
    return User.objects.create_user(username='nurse2', password='password', role=role_nurse,
                                    full_name='Mira Nurse', timezone='UTC')

# Пациенты и назначения
@pytest.fixture
def patient(db, owner_user):
    return Patient.objects.create(owner=owner_user, name='John Doe', age=81, gender='male')

@pytest.fixture
def patient_2(db, owner_user_2):
    return Patient.objects.create(owner=owner_user_2, name='Jane Roe', age=74, gender='female')

@pytest.fixture
def assignment(db, nurse_user, patient, admin_user):
    return Assignment.objects.create(nurse=nurse_user, patient=patient, assigned_by=admin_user)

@pytest.fixture
def morning_meds(db, owner_user):
    return TaskTemplate.objects.create(owner=owner_user, name='Morning Meds', scheduled_time='08:00', order=0)
