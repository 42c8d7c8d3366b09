import json
from datetime import datetime, timezone

import pytest
from conftest import FailingNotifier, FaultyStore, FixedRandom

from contest.services.draw import NON_WINNING_VIDEOS, WINNING_VIDEO
from contest.services.participation import daily_attempts_key


def today_key():
    return daily_attempts_key(datetime.now(timezone.utc))


def test_submit_non_winner(client, sql_store, notifier, rng):
    rng.pick = 3
    r = client.post('/api/submit', json={'email': 'fan@example.com'})
    assert r.status_code == 200, r.text
    assert r.json() == {
        'success': True,
        'message': 'Your entry has been submitted! Check your email for your mystery video.',
        'isWinner': False,
    }

    record = json.loads(sql_store.get('participant:fan@example.com'))
    assert record['email'] == 'fan@example.com'
    assert record['isWinner'] is False
    assert record['videoLink'] == NON_WINNING_VIDEOS[3]
    assert record['timestamp']

    assert sql_store.get('total_attempts') == '1'
    assert sql_store.get(today_key()) == '1'
    assert sql_store.get('total_winners') is None

    assert len(notifier.sent) == 1
    mail = notifier.sent[0]
    assert mail.to == 'fan@example.com'
    assert mail.subject == 'Your WhoWinningLilly Fate Revealed'
    assert NON_WINNING_VIDEOS[3] in mail.body
    assert mail.body.startswith('Thank you for participating!')
    assert 'If you received The Red Spider Lily, you are a winner!' in mail.body
    assert 'One entry per person. Good luck!' in mail.body


def test_submit_winner(make_client, sql_store, notifier):
    client = make_client(rng_=FixedRandom(value=0.0))
    r = client.post('/api/submit', json={'email': 'lucky@example.com'})
    assert r.status_code == 200
    assert r.json()['isWinner'] is True

    record = json.loads(sql_store.get('participant:lucky@example.com'))
    assert record['videoLink'] == WINNING_VIDEO
    assert sql_store.get('total_winners') == '1'
    assert 'Congratulations!' in notifier.sent[0].body
    assert WINNING_VIDEO in notifier.sent[0].body


def test_duplicate_submission_rejected(client, sql_store, notifier):
    first = client.post('/api/submit', json={'email': 'twice@example.com'})
    second = client.post('/api/submit', json={'email': 'twice@example.com'})
    assert first.status_code == 200
    assert second.status_code == 400
    assert second.json() == {
        'success': False,
        'message': 'You have already participated in this contest.',
    }
    assert sql_store.get('total_attempts') == '1'
    assert len(notifier.sent) == 1


def test_email_key_is_case_sensitive(client, sql_store):
    assert client.post('/api/submit', json={'email': 'Case@example.com'}).status_code == 200
    assert client.post('/api/submit', json={'email': 'case@example.com'}).status_code == 200
    assert sql_store.get('total_attempts') == '2'


def test_invalid_email_never_touches_store(make_client, sql_store, notifier):
    spy = FaultyStore(sql_store)
    client = make_client(store=spy)
    for payload in ({'email': ''}, {'email': 'nope'}, {'email': 'a b@c.de'}, {}, {'email': 42}):
        r = client.post('/api/submit', json=payload)
        assert r.status_code == 400, payload
        assert r.json() == {'success': False, 'message': 'Please provide a valid email address'}
    assert spy.calls == []
    assert notifier.sent == []


def test_malformed_body_is_bad_request(client):
    r = client.post('/api/submit', content='not json', headers={'Content-Type': 'application/json'})
    assert r.status_code == 400
    assert r.json()['success'] is False


def test_lookup_failure_is_server_error(make_client, sql_store):
    store = FaultyStore(sql_store, fail_get=True)
    client = make_client(store=store)
    r = client.post('/api/submit', json={'email': 'fan@example.com'})
    assert r.status_code == 500
    assert r.json() == {'success': False, 'message': 'Database error. Please try again.'}
    assert [op for op, _ in store.calls] == ['get']


def test_record_write_failure_stops_request(make_client, sql_store, notifier):
    store = FaultyStore(sql_store, fail_set=True)
    client = make_client(store=store)
    r = client.post('/api/submit', json={'email': 'fan@example.com'})
    assert r.status_code == 500
    assert r.json()['message'] == 'Failed to save your entry. Please try again.'
    assert 'incr' not in [op for op, _ in store.calls]
    assert notifier.sent == []


def test_notification_failure_still_succeeds(make_client, sql_store):
    client = make_client(notifier_=FailingNotifier())
    r = client.post('/api/submit', json={'email': 'fan@example.com'})
    assert r.status_code == 200
    assert r.json()['success'] is True
    assert sql_store.get('participant:fan@example.com') is not None


def test_counter_failure_still_succeeds(make_client, sql_store, notifier):
    store = FaultyStore(sql_store, fail_incr=True)
    client = make_client(store=store, rng_=FixedRandom(value=0.0))
    r = client.post('/api/submit', json={'email': 'fan@example.com'})
    assert r.status_code == 200
    assert r.json() == {
        'success': True,
        'message': 'Your entry has been submitted! Check your email for your mystery video.',
        'isWinner': True,
    }
    assert sql_store.get('total_attempts') is None
    assert len(notifier.sent) == 1


def test_get_on_submit_not_allowed(client):
    r = client.get('/api/submit')
    assert r.status_code == 405
    assert r.json() == {'success': False, 'message': 'Method not allowed'}


@pytest.mark.parametrize('method', ['PUT', 'DELETE', 'PATCH', 'TRACE'])
def test_other_methods_on_submit_not_allowed(client, method):
    r = client.request(method, '/api/submit')
    assert r.status_code == 405
    assert r.json() == {'success': False, 'message': 'Method not allowed'}
    assert 'POST' in r.headers['allow']


def test_unexpected_error_keeps_cors_headers(make_client):
    class BrokenContainer:
        def participation_service(self):
            raise RuntimeError('pool exhausted')

    client = make_client(container=BrokenContainer(), raise_server_exceptions=False)
    r = client.post('/api/submit', json={'email': 'fan@example.com'})
    assert r.status_code == 500
    assert r.json() == {'success': False, 'message': 'An unexpected error occurred. Please try again.'}
    assert 'pool exhausted' not in r.text
    assert r.headers['access-control-allow-origin'] == '*'
    assert r.headers['access-control-allow-methods'] == 'GET, POST, OPTIONS'
