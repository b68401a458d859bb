import pytest
from rest_framework import status

from patients.models import Assignment, Patient


@pytest.mark.django_db
def test_patient_crud_full_cycle(api_client, owner_user, owner_user_2):
    """
    Тест полного цикла для пациентов: владелец создаёт и меняет своих, удаление - деактивация.
    """
    api_client.force_authenticate(user=owner_user)

    response = api_client.post('/api/patients/', {'name': 'Maria Lopez', 'age': 88, 'gender': 'female'},
                               format='json')
    assert response.status_code == status.HTTP_201_CREATED
    patient_id = response.data['id']
    assert response.data['ownerId'] == owner_user.id

    response = api_client.patch(f'/api/patients/{patient_id}/', {'phone': '+1 555 0100'}, format='json')
    assert response.status_code == status.HTTP_200_OK

    # Чужой владелец пациента не видит
    api_client.force_authenticate(user=owner_user_2)
    assert api_client.get(f'/api/patients/{patient_id}/').status_code == status.HTTP_404_NOT_FOUND

    api_client.force_authenticate(user=owner_user)
    response = api_client.delete(f'/api/patients/{patient_id}/')
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert Patient.objects.get(id=patient_id).active is False

    response = api_client.get('/api/patients/?active=true')
    assert response.data['count'] == 0


@pytest.mark.django_db
def test_only_owner_creates_patients(api_client, admin_user, nurse_user):
    api_client.force_authenticate(user=nurse_user)
    assert api_client.post('/api/patients/', {'name': 'X'}, format='json').status_code == status.HTTP_403_FORBIDDEN

    api_client.force_authenticate(user=admin_user)
    response = api_client.post('/api/patients/', {'name': 'X'}, format='json')
    assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
def test_assignment_lifecycle(api_client, admin_user, nurse_user, nurse_user_2, owner_user, patient):
    api_client.force_authenticate(user=admin_user)

    response = api_client.post('/api/assignments/', {'nurseId': nurse_user.id, 'patientId': patient.id},
                               format='json')
    assert response.status_code == status.HTTP_201_CREATED
    assignment_id = response.data['id']
    assert response.data['assignedByAdmin'] == admin_user.id

    # Повторное активное назначение той же пары - конфликт
    response = api_client.post('/api/assignments/', {'nurseId': nurse_user.id, 'patientId': patient.id},
                               format='json')
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.data['message']

    # Несколько медсестёр на одного пациента допустимы
    response = api_client.post('/api/assignments/', {'nurseId': nurse_user_2.id, 'patientId': patient.id},
                               format='json')
    assert response.status_code == status.HTTP_201_CREATED

    # Назначить можно только медсестру
    response = api_client.post('/api/assignments/', {'nurseId': owner_user.id, 'patientId': patient.id},
                               format='json')
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = api_client.get(f'/api/assignments/?active=true&patientId={patient.id}')
    assert response.data['count'] == 2

    response = api_client.delete(f'/api/assignments/{assignment_id}/')
    assert response.status_code == status.HTTP_200_OK
    assert response.data['data']['active'] is False
    assert Assignment.objects.get(id=assignment_id).ended_at is not None


@pytest.mark.django_db
def test_assignments_admin_only(api_client, owner_user, nurse_user, patient):
    api_client.force_authenticate(user=owner_user)
    response = api_client.post('/api/assignments/', {'nurseId': nurse_user.id, 'patientId': patient.id},
                               format='json')
    assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
def test_deactivating_patient_ends_assignments(api_client, owner_user, nurse_user, patient, assignment):
    api_client.force_authenticate(user=owner_user)
    api_client.delete(f'/api/patients/{patient.id}/')

    assignment.refresh_from_db()
    assert assignment.active is False

    api_client.force_authenticate(user=nurse_user)
    assert api_client.get('/api/nurse/patients/').data['count'] == 0


@pytest.mark.django_db
def test_nurse_reads_assigned_patients(api_client, nurse_user, patient, patient_2, assignment):
    api_client.force_authenticate(user=nurse_user)
    response = api_client.get('/api/patients/')
    assert [p['id'] for p in response.data['data']] == [patient.id]
    # журнал по пациенту доступен только владельцу и админу
    assert api_client.get(f'/api/patients/{patient.id}/tasks/').status_code == status.HTTP_403_FORBIDDEN
