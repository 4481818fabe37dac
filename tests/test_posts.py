"""Tests for league news posts."""
from datetime import datetime

from darts_league.app import db
from darts_league.models import Post


def _post(client, headers, **overrides):
    data = {'title': 'Round 1 report', 'content': 'A close evening in Brno.'}
    data.update(overrides)
    return client.post('/api/posts', json=data, headers=headers)


def test_only_admin_can_publish(client, league):
    assert _post(client, league.home_captain_headers).status_code == 403
    res = _post(client, league.admin_headers, type='announcement')
    assert res.status_code == 201
    post = res.get_json()['post']
    assert post['type'] == 'announcement'
    assert post['author']['name'] == 'Admin'
    assert post['read_time_minutes'] == 1


def test_post_validation(client, league):
    assert _post(client, league.admin_headers, title='').status_code == 400
    assert _post(client, league.admin_headers, type='gossip').status_code == 400


def test_read_time_grows_with_length(client, league):
    res = _post(client, league.admin_headers, content=' '.join(['word'] * 1000))
    assert res.get_json()['post']['read_time_minutes'] == 5


def test_list_puts_pinned_first_then_newest(client, league):
    db.session.add_all([
        Post(title='Old pinned', content='x', pinned=True, created_at=datetime(2025, 9, 1)),
        Post(title='Newest', content='x', created_at=datetime(2025, 10, 3)),
        Post(title='Older', content='x', created_at=datetime(2025, 9, 20)),
        Post(title='Draft', content='x', published=False, created_at=datetime(2025, 10, 4)),
    ])
    db.session.commit()

    titles = [p['title'] for p in client.get('/api/posts').get_json()['posts']]
    assert titles == ['Old pinned', 'Newest', 'Older']

    titles = [p['title'] for p in client.get('/api/posts?all=1',
                                             headers=league.admin_headers).get_json()['posts']]
    assert 'Draft' in titles

    titles = [p['title'] for p in client.get('/api/posts?all=1',
                                             headers=league.home_captain_headers).get_json()['posts']]
    assert 'Draft' not in titles


def test_unpublished_post_hidden_from_public(client, league):
    res = _post(client, league.admin_headers, published=False)
    post_id = res.get_json()['post']['id']
    assert client.get(f'/api/posts/{post_id}').status_code == 404
    assert client.get(f'/api/posts/{post_id}', headers=league.admin_headers).status_code == 200


def test_update_and_delete_post(client, league):
    post_id = _post(client, league.admin_headers).get_json()['post']['id']
    res = client.put(f'/api/posts/{post_id}', json={'pinned': True, 'excerpt': 'Short'},
                     headers=league.admin_headers)
    assert res.status_code == 200
    assert res.get_json()['post']['pinned'] is True
    assert res.get_json()['post']['excerpt'] == 'Short'

    assert client.delete(f'/api/posts/{post_id}', headers=league.admin_headers).status_code == 200
    assert client.get(f'/api/posts/{post_id}').status_code == 404
