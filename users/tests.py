import pytest
from rest_framework import status
from django.contrib.auth import get_user_model
from .models import Role

User = get_user_model()


@pytest.mark.django_db
def test_user_list_visibility(api_client, admin_user, owner_user, nurse_user):
    """
    Тест: Админ видит всех пользователей, остальные - только себя.
    """
    # 1. Админ запрашивает список
    api_client.force_authenticate(user=admin_user)
    response = api_client.get('/api/users/')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['count'] >= 3

    # Фильтр по роли
    response = api_client.get('/api/users/?role=nurse')
    assert [u['username'] for u in response.data['data']] == [nurse_user.username]

    # 2. Медсестра запрашивает список
    api_client.force_authenticate(user=nurse_user)
    response = api_client.get('/api/users/')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['count'] == 1
    assert response.data['data'][0]['username'] == nurse_user.username
    assert response.data['data'][0]['roleName'] == 'nurse'


@pytest.mark.django_db
def test_user_me_endpoint(api_client, owner_user_2):
    """
    Тест: /api/users/me/ возвращает профиль текущего пользователя вместе с часовым поясом.
    """
    api_client.force_authenticate(user=owner_user_2)
    response = api_client.get('/api/users/me/')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['username'] == owner_user_2.username
    assert response.data['timezone'] == 'Asia/Kolkata'
    assert 'password' not in response.data


@pytest.mark.django_db
def test_unauthenticated_request_rejected(api_client):
    response = api_client.get('/api/users/me/')
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.data['message']


@pytest.mark.django_db
def test_create_user_permissions(api_client, admin_user, owner_user, role_nurse):
    """
    Тест: Только Админ может создавать пользователей (владельцев и медсестёр).
    """
    data = {
        'username': 'new_nurse',
        'password': 'password123',
        'fullName': 'New Nurse',
        'role': role_nurse.id,
        'timezone': 'Europe/Berlin',
    }

    # Владелец пытается создать -> 403 Forbidden
    api_client.force_authenticate(user=owner_user)
    response = api_client.post('/api/users/', data, format='json')
    assert response.status_code == status.HTTP_403_FORBIDDEN

    # Админ создаёт -> 201 Created, пароль хешируется
    api_client.force_authenticate(user=admin_user)
    response = api_client.post('/api/users/', data, format='json')
    assert response.status_code == status.HTTP_201_CREATED
    created = User.objects.get(username='new_nurse')
    assert created.check_password('password123')
    assert created.timezone == 'Europe/Berlin'


@pytest.mark.django_db
def test_user_timezone_is_validated(api_client, admin_user, role_owner):
    api_client.force_authenticate(user=admin_user)
    data = {'username': 'tz_owner', 'password': 'password123', 'role': role_owner.id, 'timezone': 'Mars/Base'}
    response = api_client.post('/api/users/', data, format='json')
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert 'timezone' in response.data['errors']


@pytest.mark.django_db
def test_update_user_permissions(api_client, admin_user, nurse_user):
    """
    Тест: Только Админ может обновлять пользователей.
    """
    api_client.force_authenticate(user=nurse_user)
    response = api_client.patch(f'/api/users/{nurse_user.id}/', {'fullName': 'Hacked Name'}, format='json')
    assert response.status_code == status.HTTP_403_FORBIDDEN

    api_client.force_authenticate(user=admin_user)
    response = api_client.patch(f'/api/users/{nurse_user.id}/', {'fullName': 'Updated Name'}, format='json')
    assert response.status_code == status.HTTP_200_OK
    nurse_user.refresh_from_db()
    assert nurse_user.full_name == 'Updated Name'


@pytest.mark.django_db
def test_delete_user_permissions(api_client, admin_user, nurse_user, role_nurse):
    """
    Тест: Только Админ может удалять пользователей.
    """
    user_to_delete = User.objects.create_user(username='to_delete', password='password', role=role_nurse)

    api_client.force_authenticate(user=nurse_user)
    response = api_client.delete(f'/api/users/{user_to_delete.id}/')
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert User.objects.filter(id=user_to_delete.id).exists()

    api_client.force_authenticate(user=admin_user)
    response = api_client.delete(f'/api/users/{user_to_delete.id}/')
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert not User.objects.filter(id=user_to_delete.id).exists()


@pytest.mark.django_db
def test_default_roles_are_seeded():
    assert set(Role.objects.values_list('name', flat=True)) >= {'admin', 'owner', 'nurse'}


# --- ROLE TESTS ---

@pytest.mark.django_db
def test_role_crud_full_cycle(api_client, admin_user, owner_user):
    """
    Тест полного цикла CRUD для Ролей.
    """
    api_client.force_authenticate(user=admin_user)
    response = api_client.post('/api/roles/', {'name': 'Test Role'})
    assert response.status_code == status.HTTP_201_CREATED
    role_id = response.data['id']

    response = api_client.get(f'/api/roles/{role_id}/')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['name'] == 'Test Role'

    # Владелец пытается создать роль -> 403
    api_client.force_authenticate(user=owner_user)
    response = api_client.post('/api/roles/', {'name': 'Hacked Role'})
    assert response.status_code == status.HTTP_403_FORBIDDEN

    api_client.force_authenticate(user=admin_user)
    response = api_client.patch(f'/api/roles/{role_id}/', {'name': 'Updated Role Name'})
    assert response.status_code == status.HTTP_200_OK
    assert response.data['name'] == 'Updated Role Name'

    response = api_client.delete(f'/api/roles/{role_id}/')
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert not Role.objects.filter(id=role_id).exists()


@pytest.mark.django_db
def test_jwt_token_obtain_and_refresh(api_client, nurse_user):
    """
    Тест: выдача пары JWT токенов и обновление access токена.
    """
    response = api_client.post('/api/auth/token/', {'username': nurse_user.username, 'password': 'wrong'},
                               format='json')
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    nurse_user.set_password('password123')
    nurse_user.save()
    response = api_client.post('/api/auth/token/', {'username': nurse_user.username, 'password': 'password123'},
                               format='json')
    assert response.status_code == status.HTTP_200_OK
    assert {'access', 'refresh'} <= set(response.data)

    response = api_client.post('/api/auth/token/refresh/', {'refresh': response.data['refresh']}, format='json')
    assert response.status_code == status.HTTP_200_OK
    assert 'access' in response.data
