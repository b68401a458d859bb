import pytest
from rest_framework import status

from queries.models import Query


@pytest.mark.django_db
def test_query_status_workflow(api_client, owner_user, admin_user):
    """
    Тест: владелец создаёт обращение, админ переводит pending -> priority -> resolved.
    """
    api_client.force_authenticate(user=owner_user)
    response = api_client.post('/api/queries/', {'title': 'Cannot add task', 'message': 'Save button does nothing'},
                               format='json')
    assert response.status_code == status.HTTP_201_CREATED
    query_id = response.data['id']
    assert response.data['category'] == 'owner'
    assert response.data['status'] == 'pending'

    api_client.force_authenticate(user=admin_user)
    response = api_client.patch(f'/api/queries/{query_id}/status/', {'status': 'priority'}, format='json')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['status'] == 'priority'

    response = api_client.patch(f'/api/queries/{query_id}/status/', {'status': 'resolved'}, format='json')
    assert response.data['status'] == 'resolved'

    response = api_client.get('/api/queries/admin/')
    assert response.status_code == status.HTTP_200_OK
    assert [(q['id'], q['status']) for q in response.data['data']] == [(query_id, 'resolved')]

    # переходы не ограничены
    response = api_client.patch(f'/api/queries/{query_id}/status/', {'status': 'pending'}, format='json')
    assert response.data['status'] == 'pending'

    response = api_client.patch(f'/api/queries/{query_id}/status/', {'status': 'closed'}, format='json')
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
def test_query_permissions(api_client, owner_user, nurse_user, admin_user):
    api_client.force_authenticate(user=nurse_user)
    response = api_client.post('/api/queries/', {'title': 'Login', 'message': 'Password reset'}, format='json')
    assert response.status_code == status.HTTP_201_CREATED
    query_id = response.data['id']
    assert response.data['category'] == 'nurse'

    # Медсестра не может менять статус и читать общий список
    response = api_client.patch(f'/api/queries/{query_id}/status/', {'status': 'resolved'}, format='json')
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert api_client.get('/api/queries/admin/').status_code == status.HTTP_403_FORBIDDEN

    # Админ не создаёт обращения
    api_client.force_authenticate(user=admin_user)
    response = api_client.post('/api/queries/', {'title': 'X', 'message': 'Y'}, format='json')
    assert response.status_code == status.HTTP_403_FORBIDDEN

    # Удалить может только автор
    api_client.force_authenticate(user=owner_user)
    response = api_client.delete(f'/api/queries/{query_id}/')
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert Query.objects.filter(id=query_id).exists()

    api_client.force_authenticate(user=nurse_user)
    response = api_client.delete(f'/api/queries/{query_id}/')
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert not Query.objects.filter(id=query_id).exists()


@pytest.mark.django_db
def test_my_queries_and_filters(api_client, owner_user, nurse_user, admin_user):
    Query.objects.create(title='A', message='a', category='owner', created_by=owner_user)
    Query.objects.create(title='B', message='b', category='owner', created_by=owner_user, status='resolved')
    Query.objects.create(title='C', message='c', category='nurse', created_by=nurse_user)

    api_client.force_authenticate(user=owner_user)
    response = api_client.get('/api/queries/mine/')
    assert response.data['count'] == 2
    response = api_client.get('/api/queries/mine/?status=resolved')
    assert [q['title'] for q in response.data['data']] == ['B']

    api_client.force_authenticate(user=admin_user)
    assert api_client.get('/api/queries/admin/?category=nurse').data['count'] == 1
    assert api_client.get(f'/api/queries/admin/?userId={owner_user.id}').data['count'] == 2
    assert api_client.get('/api/queries/admin/?status=pending').data['count'] == 2


@pytest.mark.django_db
def test_admin_query_list_rejects_non_numeric_user_id(api_client, admin_user, owner_user):
    """
    Тест: нечисловой userId в фильтре - 400 с ошибкой по полю, а не 500.
    """
    Query.objects.create(title='A', message='a', category='owner', created_by=owner_user)

    api_client.force_authenticate(user=admin_user)
    response = api_client.get('/api/queries/admin/?userId=abc')
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert 'userId' in response.data['errors']


@pytest.mark.django_db
def test_query_patient_must_be_linked(api_client, owner_user, nurse_user, patient, patient_2, assignment):
    api_client.force_authenticate(user=owner_user)
    response = api_client.post('/api/queries/', {'title': 'T', 'message': 'M', 'patientId': patient.id},
                               format='json')
    assert response.status_code == status.HTTP_201_CREATED
    assert response.data['patient']['id'] == patient.id

    response = api_client.post('/api/queries/', {'title': 'T', 'message': 'M', 'patientId': patient_2.id},
                               format='json')
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    # Медсестра может ссылаться только на назначенного пациента
    api_client.force_authenticate(user=nurse_user)
    response = api_client.post('/api/queries/', {'title': 'T', 'message': 'M', 'patientId': patient.id},
                               format='json')
    assert response.status_code == status.HTTP_201_CREATED
    response = api_client.post('/api/queries/', {'title': 'T', 'message': 'M', 'patientId': patient_2.id},
                               format='json')
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
def test_query_choice_labels(owner_user):
    query = Query.objects.create(title='A', message='a', category='owner', created_by=owner_user, status='resolved')
    assert query.get_status_display() == 'Решено'
    assert query.get_category_display() == 'Владелец'
    assert Query._meta.verbose_name == 'Обращение'
