"""
Tests for the wishlist endpoints and service
"""
import threading

import pytest

from igame import get_store
from igame.services import wishlist

ENTRY_BODY = {
    'gameTitle': 'Hollow Knight',
    'platform': 'pc',
    'genre': ['metroidvania', 'action'],
    'reason': 'Beautiful world and tight controls.',
}


@pytest.fixture
def player(make_user, auth_header):
    user = make_user()
    return user, auth_header(user)


class TestGameIdWishlist:
    """Tests for /auth/wishlist, /auth/wishlist/add and /auth/wishlist/remove"""

    def test_empty_wishlist(self, client, player):
        _, headers = player
        response = client.get('/auth/wishlist', headers=headers)
        assert response.status_code == 200
        assert response.get_json() == {'wishlist': []}

    def test_add_is_idempotent_per_game(self, client, player):
        _, headers = player
        client.post('/auth/wishlist/add', headers=headers, json={'gameId': 3498})
        client.post('/auth/wishlist/add', headers=headers, json={'gameId': 4200})
        response = client.post('/auth/wishlist/add', headers=headers, json={'gameId': 3498})

        assert response.status_code == 200
        assert response.get_json()['wishlist'] == [3498, 4200]

    def test_add_then_remove_restores_prior_state(self, client, player):
        _, headers = player
        client.post('/auth/wishlist/add', headers=headers, json={'gameId': 1})
        before = client.get('/auth/wishlist', headers=headers).get_json()

        client.post('/auth/wishlist/add', headers=headers, json={'gameId': 2})
        response = client.post('/auth/wishlist/remove', headers=headers, json={'gameId': 2})

        assert response.get_json()['wishlist'] == before['wishlist']
        assert client.get('/auth/wishlist', headers=headers).get_json() == before

    def test_remove_missing_game_is_not_an_error(self, client, player):
        _, headers = player
        response = client.post('/auth/wishlist/remove', headers=headers, json={'gameId': 77})
        assert response.status_code == 200
        assert response.get_json()['wishlist'] == []

    @pytest.mark.parametrize('body', [
        {}, {'gameId': 'abc'}, {'gameId': None}, {'gameId': True}, {'gameId': 3.7}, {'gameId': '3.7'},
    ])
    def test_bad_game_id_returns_400(self, client, player, body):
        _, headers = player
        response = client.post('/auth/wishlist/add', headers=headers, json=body)
        assert response.status_code == 400

    def test_numeric_string_game_id_is_accepted(self, client, player):
        _, headers = player
        response = client.post('/auth/wishlist/add', headers=headers, json={'gameId': '42'})
        assert response.get_json()['wishlist'] == [42]

    def test_requires_token(self, client):
        assert client.get('/auth/wishlist').status_code == 401
        assert client.post('/auth/wishlist/add', json={'gameId': 1}).status_code == 401


class TestEntryWishlist:
    """Tests for POST /wishlist, GET /wishlist/<userId> and DELETE /wishlist/<userId>/<entryId>"""

    def test_add_and_list_entries(self, client, player):
        user, headers = player
        response = client.post('/wishlist', headers=headers, json=ENTRY_BODY)

        assert response.status_code == 201
        entry = response.get_json()['data']
        assert entry['userId'] == user.id
        assert entry['gameTitle'] == 'Hollow Knight'
        assert entry['genre'] == ['action', 'metroidvania']
        assert entry['dateAdded']

        listing = client.get(f'/wishlist/{user.id}', headers=headers).get_json()
        assert listing['success'] is True
        assert [e['id'] for e in listing['data']] == [entry['id']]

    def test_free_form_entries_are_appended(self, client, player):
        user, headers = player
        client.post('/wishlist', headers=headers, json=ENTRY_BODY)
        client.post('/wishlist', headers=headers, json=ENTRY_BODY)

        listing = client.get(f'/wishlist/{user.id}', headers=headers).get_json()['data']
        assert len(listing) == 2
        assert listing[0]['id'] != listing[1]['id']

    def test_owner_comes_from_token_not_body(self, client, player, make_user):
        user, headers = player
        other = make_user(username='other_one', email='other@example.com')
        response = client.post('/wishlist', headers=headers, json={**ENTRY_BODY, 'userId': other.id})
        assert response.get_json()['data']['userId'] == user.id

    def test_other_users_list_is_not_found(self, client, player, make_user):
        _, headers = player
        other = make_user(username='other_one', email='other@example.com')
        response = client.get(f'/wishlist/{other.id}', headers=headers)
        assert response.status_code == 404

    def test_delete_entry(self, client, player):
        user, headers = player
        first = client.post('/wishlist', headers=headers, json=ENTRY_BODY).get_json()['data']
        second = client.post('/wishlist', headers=headers,
                             json={**ENTRY_BODY, 'gameTitle': 'Celeste'}).get_json()['data']

        response = client.delete(f"/wishlist/{user.id}/{first['id']}", headers=headers)
        assert response.status_code == 200
        assert [e['id'] for e in response.get_json()['data']] == [second['id']]

        again = client.delete(f"/wishlist/{user.id}/{first['id']}", headers=headers)
        assert again.status_code == 200

    @pytest.mark.parametrize('field,value', [
        ('gameTitle', 'X'),
        ('platform', ''),
        ('genre', []),
        ('reason', 'too short'),
        ('reason', 'x' * 201),
    ])
    def test_invalid_entry_returns_400(self, client, player, field, value):
        _, headers = player
        response = client.post('/wishlist', headers=headers, json={**ENTRY_BODY, field: value})
        assert response.status_code == 400

    def test_requires_token(self, client):
        assert client.post('/wishlist', json=ENTRY_BODY).status_code == 401
        assert client.get('/wishlist/1').status_code == 401


class TestOwnerIsolation:
    """Adds for different owners never leak into each other's lists"""

    def test_interleaved_adds_stay_separate(self, client, make_user, auth_header):
        alice = make_user(username='alice', email='alice@example.com')
        bob = make_user(username='bob_b', email='bob@example.com')
        for game_id in range(1, 6):
            client.post('/auth/wishlist/add', headers=auth_header(alice), json={'gameId': game_id})
            client.post('/auth/wishlist/add', headers=auth_header(bob), json={'gameId': game_id + 100})

        assert client.get('/auth/wishlist', headers=auth_header(alice)).get_json()['wishlist'] == [1, 2, 3, 4, 5]
        assert client.get('/auth/wishlist', headers=auth_header(bob)).get_json()['wishlist'] == [101, 102, 103, 104, 105]

    def test_concurrent_service_adds_stay_separate(self, app, make_user):
        owners = [make_user(username='alice', email='alice@example.com'),
                  make_user(username='bob_b', email='bob@example.com')]
        errors = []

        def worker(owner, offset):
            try:
                with app.app_context():
                    for i in range(20):
                        wishlist.add_game(get_store(), owner.id, offset + i)
            except Exception as e:  # collected and asserted below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(owner, n * 1000))
                   for n, owner in enumerate(owners)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        with app.app_context():
            for n, owner in enumerate(owners):
                ids = wishlist.game_ids(get_store().list_wishlist(owner.id))
                assert ids == [n * 1000 + i for i in range(20)]
