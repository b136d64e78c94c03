from fastapi.testclient import TestClient
from quizmatics.main import app

client = TestClient(app)


def _teacher(name='Ms Rao'):
    return client.post('/api/Teachers/Add', json={'name': name, 'email': 'rao@school.org'}).json()['teacher_id']


def _lesson(teacher_id, title='Algebra Basics'):
    r = client.post('/api/Lessons/Add', json={'title': title, 'teacher_id': teacher_id})
    assert r.status_code == 201
    return r.json()['lesson_id']


def test_add_lesson_and_find():
    tid = _teacher()
    r = client.post(
        '/api/Lessons/Add',
        json={'title': 'Algebra Basics', 'description': 'Intro', 'date_created': '2025-02-01', 'teacher_id': tid},
    )
    assert r.status_code == 201
    lid = r.json()['lesson_id']
    assert r.headers['Location'] == f'/api/Lessons/Find/{lid}'

    body = client.get(f'/api/Lessons/Find/{lid}').json()
    assert body['title'] == 'Algebra Basics'
    assert body['date_created'] == '2025-02-01'
    assert body['name'] == 'Ms Rao'
    assert body['total_quizzes'] == 0
    assert body['quiz_names'] == []


def test_add_lesson_for_unknown_teacher_is_404():
    r = client.post('/api/Lessons/Add', json={'title': 'Orphan', 'teacher_id': 404})
    assert r.status_code == 404
    assert client.get('/api/Lessons/List').json() == []


def test_add_lesson_validation():
    tid = _teacher()
    assert client.post('/api/Lessons/Add', json={'title': '', 'teacher_id': tid}).status_code == 400
    assert client.post('/api/Lessons/Add', json={'title': 'T', 'teacher_id': tid, 'date_created': 'soon'}).status_code == 400


def test_update_and_delete_require_a_token():
    lid = _lesson(_teacher())
    payload = {'lesson_id': lid, 'title': 'New', 'teacher_id': 1}
    assert client.put(f'/api/Lessons/Update/{lid}', json=payload).status_code == 401
    assert client.delete(f'/api/Lessons/Delete/{lid}').status_code == 401
    bad = {'Authorization': 'Bearer not-a-jwt'}
    assert client.delete(f'/api/Lessons/Delete/{lid}', headers=bad).status_code == 401
    assert client.get(f'/api/Lessons/Find/{lid}').status_code == 200


def test_update_lesson(auth_headers):
    t1 = _teacher('First')
    t2 = _teacher('Second')
    lid = _lesson(t1)
    payload = {'lesson_id': lid, 'title': 'Moved', 'description': 'd', 'date_created': '2024-09-01', 'teacher_id': t2}
    r = client.put(f'/api/Lessons/Update/{lid}', json=payload, headers=auth_headers)
    assert r.status_code == 200

    body = client.get(f'/api/Lessons/Find/{lid}').json()
    assert (body['title'], body['name'], body['date_created']) == ('Moved', 'Second', '2024-09-01')


def test_update_lesson_failures(auth_headers):
    tid = _teacher()
    lid = _lesson(tid)
    mismatch = {'lesson_id': lid + 1, 'title': 'X', 'teacher_id': tid}
    assert client.put(f'/api/Lessons/Update/{lid}', json=mismatch, headers=auth_headers).status_code == 400
    missing = {'lesson_id': 999, 'title': 'X', 'teacher_id': tid}
    assert client.put('/api/Lessons/Update/999', json=missing, headers=auth_headers).status_code == 404
    no_teacher = {'lesson_id': lid, 'title': 'X', 'teacher_id': 999}
    r = client.put(f'/api/Lessons/Update/{lid}', json=no_teacher, headers=auth_headers)
    assert r.status_code == 404
    assert r.json()['detail'] == 'Teacher not found.'


def test_delete_lesson(auth_headers):
    lid = _lesson(_teacher())
    assert client.delete(f'/api/Lessons/Delete/{lid}', headers=auth_headers).status_code == 200
    assert client.get(f'/api/Lessons/Find/{lid}').status_code == 404
    assert client.delete(f'/api/Lessons/Delete/{lid}', headers=auth_headers).status_code == 404


def test_list_of_quizzes_before_and_after_linking():
    tid = _teacher()
    lid = _lesson(tid, 'Algebra Basics')
    other = _lesson(tid, 'Warmups')
    quiz = client.post('/api/Quizzes/Add', json={'title': 'Linear equations', 'grade': 8, 'difficulty_level': 1, 'lesson_id': other})
    qid = quiz.json()['quiz_id']

    empty = client.get(f'/api/Lessons/ListOfQuizzes/{lid}')
    assert empty.status_code == 404
    assert empty.json()['detail'] == f'No quizzes found for Lesson ID {lid}.'

    assert client.post('/api/Quizzes/LinkQuiz', params={'lesson_id': lid, 'quiz_id': qid}).status_code == 200
    r = client.get(f'/api/Lessons/ListOfQuizzes/{lid}')
    assert r.status_code == 200
    assert r.json() == [{'quiz_id': qid, 'title': 'Linear equations', 'grade': 8, 'difficulty_level': 1}]


def test_list_of_quizzes_for_unknown_lesson():
    r = client.get('/api/Lessons/ListOfQuizzes/999')
    assert r.status_code == 404
    assert r.json()['detail'] == 'Lesson with ID 999 not found.'


def test_list_lessons_by_teacher():
    tid = _teacher()
    lid = _lesson(tid)
    r = client.get(f'/api/Lessons/ListLessonsByTeacher/{tid}')
    assert r.status_code == 200
    [lesson] = r.json()
    assert lesson['lesson_id'] == lid
    assert 'name' not in lesson
    assert 'quiz_names' not in lesson

    assert client.get(f'/api/Lessons/ListLessonsByTeacher/{_teacher("Idle")}').status_code == 404
