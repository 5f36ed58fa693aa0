"""
Tests for the collections JSON API
"""

from app.data.core.user_info.user import User

BASE = '/collections'


def create_organic(client, headers, **extra):
    body = {'category': 'ORGANIC', 'requested_date': '2024-01-12T10:00:00'}
    body.update(extra)
    return client.post(f'{BASE}/requests', json=body, headers=headers)


class TestRequestRoutes:

    def test_requires_identity(self, client):
        response = client.post(f'{BASE}/requests', json={'category': 'ORGANIC'})
        assert response.status_code == 401
        assert response.get_json()['error'] == 'unauthorized'

    def test_each_request_resolves_its_own_caller(self, client, resident, admin, auth_headers):
        assert client.get(f'{BASE}/requests').status_code == 401
        assert create_organic(client, auth_headers(resident)).status_code == 201

        assert client.get(f'{BASE}/points/configurations', headers=auth_headers(resident)).status_code == 403
        assert client.get(f'{BASE}/points/configurations', headers=auth_headers(admin)).status_code == 200
        assert client.get(f'{BASE}/points/configurations').status_code == 401

    def test_create_request(self, client, resident, auth_headers):
        response = create_organic(client, auth_headers(resident))

        assert response.status_code == 201
        assert response.get_json() == {
            'request_id': 1,
            'state': 'SCHEDULED',
            'scheduled_date': '2024-01-15T08:00:00',
        }

    def test_resident_cannot_create_for_someone_else(self, client, resident, admin, auth_headers):
        response = create_organic(client, auth_headers(resident), user_id=admin.id)
        request_id = response.get_json()['request_id']

        detail = client.get(f'{BASE}/requests/{request_id}', headers=auth_headers(resident)).get_json()
        assert detail['user_id'] == resident.id

    def test_validation_errors(self, client, resident, auth_headers):
        response = client.post(
            f'{BASE}/requests',
            json={'requested_date': '2024-01-12T10:00:00'},
            headers=auth_headers(resident),
        )

        assert response.status_code == 400
        body = response.get_json()
        assert body['error'] == 'validation_failed'
        assert [(e['field'], e['code']) for e in body['errors']] == [('category', 'FIELD_REQUIRED')]

    def test_list_own_requests(self, client, resident, auth_headers):
        create_organic(client, auth_headers(resident))
        response = client.get(f'{BASE}/requests', headers=auth_headers(resident))

        assert response.status_code == 200
        assert [r['state'] for r in response.get_json()] == ['SCHEDULED']

    def test_other_resident_cannot_cancel(self, client, resident, make_user, auth_headers):
        request_id = create_organic(client, auth_headers(resident)).get_json()['request_id']
        neighbour = make_user('pedro@example.com')

        response = client.post(f'{BASE}/requests/{request_id}/cancel', headers=auth_headers(neighbour))
        assert response.status_code == 403

    def test_owner_cancels(self, client, resident, auth_headers):
        request_id = create_organic(client, auth_headers(resident)).get_json()['request_id']
        response = client.post(
            f'{BASE}/requests/{request_id}/cancel', json={'reason': 'Away'}, headers=auth_headers(resident)
        )

        assert response.status_code == 200
        assert response.get_json() == {'ok': True}

    def test_complete_requires_staff(self, client, resident, admin, auth_headers):
        request_id = create_organic(client, auth_headers(resident)).get_json()['request_id']

        denied = client.post(f'{BASE}/requests/{request_id}/complete', json={'weight_kg': 5},
                             headers=auth_headers(resident))
        assert denied.status_code == 403

        response = client.post(f'{BASE}/requests/{request_id}/complete',
                               json={'weight_kg': 5, 'separated': True}, headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.get_json()['points_awarded'] == 25

    def test_cancel_completed_is_conflict(self, client, resident, admin, auth_headers):
        request_id = create_organic(client, auth_headers(resident)).get_json()['request_id']
        client.post(f'{BASE}/requests/{request_id}/complete', json={'weight_kg': 5}, headers=auth_headers(admin))

        response = client.post(f'{BASE}/requests/{request_id}/cancel', headers=auth_headers(resident))
        assert response.status_code == 409
        assert response.get_json()['message'] == 'Operation not allowed in the current state'

    def test_unknown_request(self, client, admin, auth_headers):
        response = client.get(f'{BASE}/requests/999', headers=auth_headers(admin))
        assert response.status_code == 404

    def test_company_operator_completes_assigned_request(self, client, resident, admin, company,
                                                         make_user, auth_headers):
        operator = make_user('ops@example.com', locality=None, role=User.ROLE_COMPANY)
        request_id = create_organic(client, auth_headers(resident)).get_json()['request_id']

        assigned = client.post(f'{BASE}/requests/{request_id}/assign', json={'company_id': company.id},
                               headers=auth_headers(admin))
        assert assigned.get_json()['state'] == 'ASSIGNED'

        response = client.post(f'{BASE}/requests/{request_id}/complete', json={'weight_kg': '2.5'},
                               headers=auth_headers(operator))
        assert response.get_json()['points_awarded'] == 15


class TestResidentRoutes:

    def test_register_resident(self, client, db):
        response = client.post(f'{BASE}/residents', json={
            'email': 'maria@example.com', 'name': 'Maria', 'locality': 'Occidente', 'address': 'Calle 9',
        })

        assert response.status_code == 201
        assert response.get_json()['weekday'] == 'WEDNESDAY'

    def test_localities_listed(self, client, centro):
        assert client.get(f'{BASE}/localities').get_json() == [{'locality': 'Centro', 'weekday': 'MONDAY'}]

    def test_only_admin_sets_locality_weekday(self, client, resident, admin, auth_headers):
        denied = client.put(f'{BASE}/localities/Centro', json={'weekday': 'TUESDAY'}, headers=auth_headers(resident))
        assert denied.status_code == 403

        response = client.put(f'{BASE}/localities/Centro', json={'weekday': 'TUESDAY'}, headers=auth_headers(admin))
        assert response.get_json() == {'ok': True}
        assert client.get(f'{BASE}/localities').get_json() == [{'locality': 'Centro', 'weekday': 'TUESDAY'}]

    def test_admin_adds_new_locality(self, client, admin, auth_headers):
        response = client.put(f'{BASE}/localities/Norte', json={'weekday': 'thursday'}, headers=auth_headers(admin))

        assert response.status_code == 200
        assert client.get(f'{BASE}/localities').get_json() == [{'locality': 'Norte', 'weekday': 'THURSDAY'}]


class TestPointsRoutes:

    def test_activate_configuration(self, client, admin, auth_headers):
        response = client.post(f'{BASE}/points/configurations', headers=auth_headers(admin), json={
            'base_points': 20, 'weight_factor': 3, 'separation_factor': 4,
        })

        assert response.status_code == 201
        listed = client.get(f'{BASE}/points/configurations', headers=auth_headers(admin)).get_json()
        assert [c['is_active'] for c in listed] == [True]

    def test_resident_cannot_configure_points(self, client, resident, auth_headers):
        response = client.post(f'{BASE}/points/configurations', headers=auth_headers(resident), json={
            'base_points': 20, 'weight_factor': 3, 'separation_factor': 4,
        })
        assert response.status_code == 403

    def test_deleting_active_configuration_conflicts(self, client, admin, auth_headers):
        created = client.post(f'{BASE}/points/configurations', headers=auth_headers(admin), json={
            'base_points': 20, 'weight_factor': 3, 'separation_factor': 4,
        }).get_json()

        response = client.delete(f"{BASE}/points/configurations/{created['configuration_id']}",
                                 headers=auth_headers(admin))
        assert response.status_code == 409

    def test_my_points_after_bonus(self, client, resident, admin, auth_headers):
        granted = client.post(f'{BASE}/users/{resident.id}/points/bonus', json={'points': 40, 'reason': 'Cleanup'},
                              headers=auth_headers(admin))
        assert granted.status_code == 201

        body = client.get(f'{BASE}/points/me', headers=auth_headers(resident)).get_json()
        assert body['total_points'] == 40
        assert [e['reason'] for e in body['entries']] == ['Cleanup']

    def test_preview(self, client, resident, auth_headers):
        response = client.post(f'{BASE}/points/preview', json={'material': 'organicos', 'quantity': 5},
                               headers=auth_headers(resident))
        assert response.get_json()['points'] == 94

    def test_preview_rejects_malformed_input(self, client, resident, auth_headers):
        response = client.post(f'{BASE}/points/preview', json={'material': 'vidrio', 'quantity': 'nan', 'quality': 5},
                               headers=auth_headers(resident))

        assert response.status_code == 400
        assert [(e['field'], e['code']) for e in response.get_json()['errors']] == [
            ('quantity', 'INVALID_TYPE'), ('quality', 'INVALID_TYPE'),
        ]
