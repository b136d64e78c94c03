from fastapi.testclient import TestClient
from quizmatics.main import app

client = TestClient(app)


def _add_teacher(name='Apurva', email='a@x.com'):
    r = client.post('/api/Teachers/Add', json={'name': name, 'email': email})
    assert r.status_code == 201
    return r.json()['teacher_id']


def test_add_then_find_teacher():
    r = client.post('/api/Teachers/Add', json={'name': 'Apurva', 'email': 'a@x.com'})
    assert r.status_code == 201
    body = r.json()
    assert body['teacher_id'] > 0
    assert r.headers['Location'] == f"/api/Teachers/Find/{body['teacher_id']}"

    found = client.get(f"/api/Teachers/Find/{body['teacher_id']}")
    assert found.status_code == 200
    assert found.json() == {
        'teacher_id': body['teacher_id'],
        'name': 'Apurva',
        'email': 'a@x.com',
        'total_lessons': 0,
        'total_quizzes': 0,
    }


def test_list_teachers_with_totals():
    tid = _add_teacher()
    lesson = client.post('/api/Lessons/Add', json={'title': 'Algebra Basics', 'teacher_id': tid}).json()
    client.post('/api/Quizzes/Add', json={'title': 'Q', 'difficulty_level': 0, 'lesson_id': lesson['lesson_id']})

    r = client.get('/api/Teachers/List')
    assert r.status_code == 200
    [teacher] = r.json()
    assert (teacher['total_lessons'], teacher['total_quizzes']) == (1, 1)


def test_find_unknown_teacher_is_404():
    r = client.get('/api/Teachers/Find/999')
    assert r.status_code == 404
    assert r.json()['detail'] == 'No teacher found for that ID 999'


def test_add_teacher_validation():
    assert client.post('/api/Teachers/Add', json={'name': '', 'email': 'a@x.com'}).status_code == 400
    assert client.post('/api/Teachers/Add', json={'name': 'x' * 101, 'email': 'a@x.com'}).status_code == 400
    r = client.post('/api/Teachers/Add', json={'name': 'Apurva', 'email': 'not-an-email'})
    assert r.status_code == 400
    assert isinstance(r.json()['detail'], list)
    assert client.get('/api/Teachers/List').json() == []


def test_update_teacher():
    tid = _add_teacher()
    r = client.put(f'/api/Teachers/Update/{tid}', json={'teacher_id': tid, 'name': 'Renamed', 'email': 'r@x.com'})
    assert r.status_code == 200
    assert client.get(f'/api/Teachers/Find/{tid}').json()['name'] == 'Renamed'


def test_update_teacher_id_mismatch_is_400():
    tid = _add_teacher()
    r = client.put(f'/api/Teachers/Update/{tid}', json={'teacher_id': tid + 1, 'name': 'X', 'email': 'x@x.com'})
    assert r.status_code == 400
    assert client.get(f'/api/Teachers/Find/{tid}').json()['name'] == 'Apurva'


def test_update_unknown_teacher_is_404():
    r = client.put('/api/Teachers/Update/50', json={'teacher_id': 50, 'name': 'X', 'email': 'x@x.com'})
    assert r.status_code == 404


def test_delete_teacher_cascades_to_lessons():
    tid = _add_teacher()
    lesson = client.post('/api/Lessons/Add', json={'title': 'L', 'teacher_id': tid}).json()

    r = client.delete(f'/api/Teachers/Delete/{tid}')
    assert r.status_code == 200
    assert client.get(f'/api/Teachers/Find/{tid}').status_code == 404
    assert client.get(f"/api/Lessons/Find/{lesson['lesson_id']}").status_code == 404
    assert client.delete(f'/api/Teachers/Delete/{tid}').status_code == 404
