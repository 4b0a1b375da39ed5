from tests.conftest import auth_headers


def create_task(client, token, **fields):
    payload = {'title': 'Read chapter 3'}
    payload.update(fields)
    response = client.post('/api/tasks', headers=auth_headers(token), json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def test_register_login_and_create_task(client):
    response = client.post('/api/users/register', json={
        'username': 'erin', 'email': 'erin@example.com', 'password': 'secret123'
    })
    assert response.status_code == 201
    user_id = response.get_json()['id']

    response = client.post('/api/users/login', json={'email': 'erin@example.com', 'password': 'secret123'})
    assert response.status_code == 200
    headers = auth_headers(response.get_json()['token'])

    response = client.post('/api/tasks', headers=headers, json={'title': ''})
    assert response.status_code == 400
    errors = response.get_json()['errors']
    assert errors[0]['field'] == 'title'
    assert errors[0]['message'] == 'Task title is required'

    response = client.post('/api/tasks', headers=headers, json={
        'title': 'Finish lab report',
        'priority': 'High',
        'dueDate': '2030-05-01T12:00:00+02:00'
    })
    assert response.status_code == 201
    task = response.get_json()
    assert task['userId'] == user_id
    assert task['status'] == 'Pending'
    assert task['priority'] == 'High'
    assert task['dueDate'] == '2030-05-01T10:00:00Z'

    tasks = client.get('/api/tasks', headers=headers).get_json()
    assert [t['id'] for t in tasks] == [task['id']]


def test_owner_in_body_is_ignored(client, alice, bob):
    task = create_task(client, alice['token'], userId=bob['id'])
    assert task['userId'] == alice['id']


def test_invalid_priority_and_status(client, alice):
    response = client.post('/api/tasks', headers=auth_headers(alice['token']),
                           json={'title': 'x', 'priority': 'Urgent', 'status': 'Done'})
    assert response.status_code == 400
    fields = [error['field'] for error in response.get_json()['errors']]
    assert fields == ['priority', 'status']


def test_tasks_are_listed_per_user(client, alice, bob):
    create_task(client, alice['token'])
    assert client.get('/api/tasks', headers=auth_headers(bob['token'])).get_json() == []


def test_owner_can_update(client, alice):
    task = create_task(client, alice['token'])
    response = client.put(f"/api/tasks/{task['id']}", headers=auth_headers(alice['token']),
                          json={'status': 'Completed'})
    assert response.status_code == 200
    data = response.get_json()
    assert data['status'] == 'Completed'
    assert data['title'] == 'Read chapter 3'


def test_update_rejects_empty_title(client, alice):
    task = create_task(client, alice['token'])
    response = client.put(f"/api/tasks/{task['id']}", headers=auth_headers(alice['token']),
                          json={'title': '   '})
    assert response.status_code == 400
    assert response.get_json()['errors'][0]['message'] == 'Task title cannot be empty'


def test_other_user_cannot_update(client, alice, bob):
    task = create_task(client, alice['token'])
    response = client.put(f"/api/tasks/{task['id']}", headers=auth_headers(bob['token']),
                          json={'title': 'Hijacked'})
    assert response.status_code == 403
    assert response.get_json()['message'] == 'User not authorized'

    tasks = client.get('/api/tasks', headers=auth_headers(alice['token'])).get_json()
    assert tasks[0]['title'] == 'Read chapter 3'


def test_other_user_cannot_delete(client, alice, bob):
    task = create_task(client, alice['token'])
    response = client.delete(f"/api/tasks/{task['id']}", headers=auth_headers(bob['token']))
    assert response.status_code == 403

    tasks = client.get('/api/tasks', headers=auth_headers(alice['token'])).get_json()
    assert len(tasks) == 1


def test_unknown_task(client, alice):
    headers = auth_headers(alice['token'])
    assert client.put('/api/tasks/999', headers=headers, json={'title': 'x'}).status_code == 404
    response = client.delete('/api/tasks/999', headers=headers)
    assert response.status_code == 404
    assert response.get_json()['message'] == 'Task not found'


def test_owner_can_delete(client, alice):
    task = create_task(client, alice['token'])
    headers = auth_headers(alice['token'])

    response = client.delete(f"/api/tasks/{task['id']}", headers=headers)
    assert response.status_code == 200
    assert response.get_json() == {'id': task['id'], 'message': 'Task removed'}

    assert client.get('/api/tasks', headers=headers).get_json() == []
    assert client.delete(f"/api/tasks/{task['id']}", headers=headers).status_code == 404
