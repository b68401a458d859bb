import pytest
from rest_framework import status

from tasks.models import CompletionEntry, LibraryTemplate, TaskTemplate


@pytest.mark.django_db
def test_owner_template_crud_full_cycle(api_client, owner_user):
    """
    Тест полного CRUD цикла для шаблонов задач владельца.
    """
    api_client.force_authenticate(user=owner_user)

    # 1. CREATE
    response = api_client.post('/api/owner/tasks/', {'name': 'Morning Meds', 'scheduledTime': '8:00'}, format='json')
    assert response.status_code == status.HTTP_201_CREATED
    task_id = response.data['id']
    assert response.data['scheduledTime'] == '08:00'
    assert response.data['order'] == 0
    assert response.data['ownerId'] == owner_user.id

    # 2. READ - список в конверте data
    response = api_client.get('/api/owner/tasks/')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['count'] == 1
    assert response.data['data'][0]['name'] == 'Morning Meds'

    # 3. UPDATE
    response = api_client.patch(f'/api/owner/tasks/{task_id}/', {'scheduledTime': '09:15'}, format='json')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['scheduledTime'] == '09:15'

    # 4. DELETE - истории нет, удаляется физически
    response = api_client.delete(f'/api/owner/tasks/{task_id}/')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['result'] == 'deleted'
    assert not TaskTemplate.objects.filter(id=task_id).exists()


@pytest.mark.django_db
def test_create_template_validation_errors(api_client, owner_user):
    api_client.force_authenticate(user=owner_user)

    response = api_client.post('/api/owner/tasks/', {'name': '', 'scheduledTime': '08:00'}, format='json')
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert 'name' in response.data['errors']
    assert response.data['message']

    response = api_client.post('/api/owner/tasks/', {'name': 'Bad', 'scheduledTime': '25:00'}, format='json')
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert 'scheduledTime' in response.data['errors']


@pytest.mark.django_db
def test_create_template_from_library(api_client, owner_user):
    library = LibraryTemplate.objects.create(name='Vitals Check', scheduled_time='09:00')
    api_client.force_authenticate(user=owner_user)

    response = api_client.post('/api/owner/tasks/', {'fromTemplate': library.id}, format='json')
    assert response.status_code == status.HTTP_201_CREATED
    assert response.data['name'] == 'Vitals Check'
    assert response.data['fromTemplate'] == library.id
    assert response.data['scheduledTime'] == '09:00'

    # Явный null снимает время из библиотеки - задача становится гибкой
    response = api_client.post('/api/owner/tasks/', {'fromTemplate': library.id, 'scheduledTime': None},
                               format='json')
    assert response.status_code == status.HTTP_201_CREATED
    assert response.data['scheduledTime'] is None

    response = api_client.post('/api/owner/tasks/', {'fromTemplate': library.id, 'scheduledTime': ''},
                               format='json')
    assert response.data['scheduledTime'] is None


@pytest.mark.django_db
def test_templates_are_isolated_between_owners(api_client, owner_user, owner_user_2, morning_meds):
    api_client.force_authenticate(user=owner_user_2)

    response = api_client.get('/api/owner/tasks/')
    assert response.data['count'] == 0

    response = api_client.get(f'/api/owner/tasks/{morning_meds.id}/')
    assert response.status_code == status.HTTP_404_NOT_FOUND

    response = api_client.patch(f'/api/owner/tasks/{morning_meds.id}/', {'name': 'Hacked'}, format='json')
    assert response.status_code == status.HTTP_404_NOT_FOUND
    morning_meds.refresh_from_db()
    assert morning_meds.name == 'Morning Meds'


@pytest.mark.django_db
def test_nurse_cannot_manage_templates(api_client, nurse_user):
    api_client.force_authenticate(user=nurse_user)
    response = api_client.post('/api/owner/tasks/', {'name': 'X'}, format='json')
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
def test_admin_acts_on_behalf_of_owner(api_client, admin_user, owner_user):
    api_client.force_authenticate(user=admin_user)

    response = api_client.post('/api/owner/tasks/', {'name': 'Vitals'}, format='json')
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = api_client.post('/api/owner/tasks/', {'name': 'Vitals', 'ownerId': owner_user.id}, format='json')
    assert response.status_code == status.HTTP_201_CREATED
    assert TaskTemplate.objects.get(id=response.data['id']).owner == owner_user

    response = api_client.get(f'/api/owner/tasks/board/?ownerId={owner_user.id}')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['data'][0]['name'] == 'Vitals'


@pytest.mark.django_db
def test_reorder_endpoint(api_client, owner_user, owner_user_2, morning_meds):
    vitals = TaskTemplate.objects.create(owner=owner_user, name='Vitals', order=1)
    foreign = TaskTemplate.objects.create(owner=owner_user_2, name='Foreign', order=0)
    api_client.force_authenticate(user=owner_user)

    payload = {'tasks': [{'id': morning_meds.id, 'order': 1}, {'id': vitals.id, 'order': 0}]}
    response = api_client.post('/api/owner/tasks/reorder/', payload, format='json')
    assert response.status_code == status.HTTP_200_OK
    assert [item['id'] for item in response.data['data']] == [vitals.id, morning_meds.id]

    # чужой шаблон - 404, ничего не меняется
    payload = {'tasks': [{'id': vitals.id, 'order': 5}, {'id': foreign.id, 'order': 6}]}
    response = api_client.post('/api/owner/tasks/reorder/', payload, format='json')
    assert response.status_code == status.HTTP_404_NOT_FOUND
    vitals.refresh_from_db()
    assert vitals.order == 0

    response = api_client.post('/api/owner/tasks/reorder/', {'tasks': []}, format='json')
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
def test_list_with_inactive_templates(api_client, owner_user, morning_meds):
    TaskTemplate.objects.create(owner=owner_user, name='Retired', active=False, order=1)
    api_client.force_authenticate(user=owner_user)

    assert api_client.get('/api/owner/tasks/').data['count'] == 1
    assert api_client.get('/api/owner/tasks/?active=false').data['count'] == 2


@pytest.mark.django_db
def test_nurse_sees_only_assigned_patients(api_client, nurse_user, nurse_user_2, patient, patient_2, assignment):
    api_client.force_authenticate(user=nurse_user)
    response = api_client.get('/api/nurse/patients/')
    assert response.status_code == status.HTTP_200_OK
    assert [p['id'] for p in response.data['data']] == [patient.id]

    api_client.force_authenticate(user=nurse_user_2)
    response = api_client.get('/api/nurse/patients/')
    assert response.data['count'] == 0
    response = api_client.get(f'/api/nurse/patients/{patient.id}/tasks/')
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
def test_nurse_todays_tasks_and_submission(api_client, nurse_user, owner_user, patient, assignment, morning_meds):
    anytime = TaskTemplate.objects.create(owner=owner_user, name='Wound Dressing', order=1)
    api_client.force_authenticate(user=nurse_user)

    response = api_client.get(f'/api/nurse/patients/{patient.id}/tasks/')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['timezone'] == 'UTC'
    assert [(t['name'], t['status']) for t in response.data['data']] == [
        ('Morning Meds', 'pending'),
        ('Wound Dressing', 'pending'),
    ]

    response = api_client.post(
        f'/api/nurse/patients/{patient.id}/tasks/',
        {'ownerTaskId': anytime.id, 'note': 'Dressing changed, wound is clean'},
        format='json',
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.data['isLate'] is False
    entry = response.data['data']
    assert entry['ownerTaskId'] == anytime.id
    assert entry['nurse']['id'] == nurse_user.id
    assert entry['expectedCompletionTime'] is None
    assert entry['timestampUTC'].endswith('Z')

    response = api_client.get(f'/api/nurse/patients/{patient.id}/tasks/')
    statuses = {t['id']: t['status'] for t in response.data['data']}
    assert statuses[anytime.id] == 'done'


@pytest.mark.django_db
def test_submission_errors(api_client, owner_user, nurse_user, nurse_user_2, patient, assignment, morning_meds):
    url = f'/api/nurse/patients/{patient.id}/tasks/'

    # Пустая заметка -> 400
    api_client.force_authenticate(user=nurse_user)
    response = api_client.post(url, {'ownerTaskId': morning_meds.id, 'note': '  '}, format='json')
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert 'note' in response.data['errors']

    # Несуществующая задача -> 404
    response = api_client.post(url, {'ownerTaskId': 999999, 'note': 'done'}, format='json')
    assert response.status_code == status.HTTP_404_NOT_FOUND

    # Медсестра без назначения -> 403
    api_client.force_authenticate(user=nurse_user_2)
    response = api_client.post(url, {'ownerTaskId': morning_meds.id, 'note': 'done'}, format='json')
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert not CompletionEntry.objects.exists()

    # Владелец не может отмечать выполнение
    api_client.force_authenticate(user=owner_user)
    response = api_client.post(url, {'ownerTaskId': morning_meds.id, 'note': 'done'}, format='json')
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
def test_owner_entries_board_and_history(api_client, owner_user, owner_user_2, nurse_user, patient, assignment,
                                         morning_meds):
    api_client.force_authenticate(user=nurse_user)
    api_client.post(f'/api/nurse/patients/{patient.id}/tasks/',
                    {'ownerTaskId': morning_meds.id, 'note': 'Tablets given'}, format='json')

    # История медсестры
    response = api_client.get('/api/nurse/my-tasks/')
    assert response.status_code == status.HTTP_200_OK
    assert len(response.data['data']) == 1
    assert response.data['timezone'] == 'UTC'

    # Журнал владельца
    api_client.force_authenticate(user=owner_user)
    response = api_client.get('/api/owner/tasks/entries/')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['ownerTimezone'] == 'UTC'
    assert response.data['data'][0]['note'] == 'Tablets given'
    assert response.data['data'][0]['patient']['name'] == patient.name

    response = api_client.get(f'/api/patients/{patient.id}/tasks/')
    assert response.status_code == status.HTTP_200_OK
    assert len(response.data['data']) == 1

    # Сводка за сегодня
    response = api_client.get(f'/api/owner/tasks/board/?patientId={patient.id}')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['data'][0]['status'] in ('done', 'done-late')

    # Вчера ничего не отмечали
    response = api_client.get('/api/owner/tasks/board/?date=2000-01-01')
    assert response.data['data'][0]['status'] == 'pending'

    # Чужой владелец журнал не видит
    api_client.force_authenticate(user=owner_user_2)
    assert api_client.get('/api/owner/tasks/entries/').data['data'] == []
    response = api_client.get(f'/api/owner/tasks/board/?patientId={patient.id}')
    assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
def test_entries_filter_validation(api_client, owner_user):
    api_client.force_authenticate(user=owner_user)
    response = api_client.get('/api/owner/tasks/entries/?startDate=2024-05-03&endDate=2024-05-01')
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    response = api_client.get('/api/owner/tasks/entries/?startDate=yesterday')
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    response = api_client.get('/api/owner/tasks/entries/?limit=0')
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
def test_delete_template_with_history_deactivates(api_client, owner_user, nurse_user, patient, assignment,
                                                  morning_meds):
    api_client.force_authenticate(user=nurse_user)
    api_client.post(f'/api/nurse/patients/{patient.id}/tasks/',
                    {'ownerTaskId': morning_meds.id, 'note': 'done'}, format='json')

    api_client.force_authenticate(user=owner_user)
    response = api_client.delete(f'/api/owner/tasks/{morning_meds.id}/')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['result'] == 'deactivated'
    morning_meds.refresh_from_db()
    assert morning_meds.active is False


@pytest.mark.django_db
def test_library_permissions_and_seed(api_client, admin_user, owner_user):
    # Владелец читает библиотеку, но не может её наполнять
    api_client.force_authenticate(user=owner_user)
    assert api_client.get('/api/admin/task-templates/').status_code == status.HTTP_200_OK
    assert api_client.post('/api/admin/task-templates/seed/').status_code == status.HTTP_403_FORBIDDEN

    api_client.force_authenticate(user=admin_user)
    response = api_client.post('/api/admin/task-templates/seed/')
    assert response.status_code == status.HTTP_200_OK
    assert len(response.data['data']) == 5

    # Повторный вызов ничего не дублирует
    response = api_client.post('/api/admin/task-templates/seed/')
    assert len(response.data['data']) == 5
    assert LibraryTemplate.objects.count() == 5

    response = api_client.post('/api/admin/task-templates/', {'name': 'Bath', 'scheduledTime': '18:00'}, format='json')
    assert response.status_code == status.HTTP_201_CREATED
