"""
Tests for access code and QR code redemption
"""
import pytest

from app.core.exceptions import InvalidCodeError, PersistenceWriteError
from app.models.festival import Festival
from app.models.user import UserProfile
from app.services.access_resolver import (
    AccessMatch,
    MatchSource,
    merge_grant,
    resolve_access_code,
)
from tests.conftest import festival_doc, run


def make_festival(festival_id, **overrides):
    return Festival.from_document(festival_doc(**overrides), doc_id=festival_id)


class TestResolveAccessCode:
    """Pure code resolution over loaded festivals"""

    def test_master_code_grants_every_category(self):
        festivals = [make_festival("F", accessCode="FEST1")]

        match = resolve_access_code("fest1", festivals)

        assert match == AccessMatch("F", ("c1", "c2"), MatchSource.MASTER)

    def test_category_code_grants_listed_categories(self):
        festivals = [make_festival("F", categoryAccessCodes=[{'code': 'VIP', 'categoryIds': ['c2']}])]

        match = resolve_access_code("VIP", festivals)

        assert match.festival_id == "F"
        assert match.category_ids == ("c2",)
        assert match.source == MatchSource.CATEGORY

    def test_qr_payload_grants_linked_categories(self):
        festivals = [make_festival("F", qrCodes=[{'id': 'q1', 'code': 'xyz-999', 'linkedCategories': ['c1']}])]

        match = resolve_access_code("xyz-999", festivals)

        assert match == AccessMatch("F", ("c1",), MatchSource.QR)

    @pytest.mark.parametrize("submitted", [" ABC123 ", "abc123", "Abc123"])
    def test_codes_ignore_case_and_surrounding_whitespace(self, submitted):
        festivals = [make_festival("F", accessCode="abc123")]

        assert resolve_access_code(submitted, festivals).festival_id == "F"

    @pytest.mark.parametrize("submitted", ["doesnotexist", "", "   ", None])
    def test_unknown_code_is_rejected(self, submitted):
        festivals = [make_festival("F", accessCode="FEST1")]

        with pytest.raises(InvalidCodeError) as exc:
            resolve_access_code(submitted, festivals)
        assert exc.value.message == "Invalid access code or QR code"

    def test_qr_codes_are_checked_before_access_codes(self):
        festivals = [
            make_festival("A", accessCode="shared"),
            make_festival("B", qrCodes=[{'id': 'q1', 'code': 'SHARED', 'linkedCategories': ['c2']}]),
        ]

        match = resolve_access_code("shared", festivals)

        assert match.festival_id == "B"
        assert match.source == MatchSource.QR

    def test_colliding_code_resolves_to_first_festival(self, caplog):
        festivals = [
            make_festival("A", categoryAccessCodes=[{'code': 'DUP', 'categoryIds': ['c1']}]),
            make_festival("B", categoryAccessCodes=[{'code': 'dup', 'categoryIds': ['c2']}]),
        ]

        match = resolve_access_code("dup", festivals)

        assert match.festival_id == "A"
        assert "exists on 2 festivals" in caplog.text

    def test_entries_without_code_never_match(self):
        festivals = [make_festival(
            "F",
            categoryAccessCodes=[{'code': '', 'categoryIds': ['c1']}, {'categoryIds': ['c2']}],
            qrCodes=[{'id': 'q1', 'linkedCategories': ['c1']}],
        )]

        with pytest.raises(InvalidCodeError):
            resolve_access_code("", festivals)
        assert festivals[0].categoryAccessCodes == []
        assert festivals[0].qrCodes == []

    def test_duplicate_category_ids_are_collapsed(self):
        festivals = [make_festival("F", categoryAccessCodes=[{'code': 'X', 'categoryIds': ['c1', 'c1', 'c2']}])]

        assert resolve_access_code("x", festivals).category_ids == ("c1", "c2")


class TestMergeGrant:

    def test_merge_unions_with_existing_grant(self):
        profile = UserProfile(id="u", accessibleFestivals=["F"], accessibleCategories={"F": ["c1"]})

        festivals, categories = merge_grant(profile, AccessMatch("F", ("c2", "c1"), MatchSource.CATEGORY))

        assert festivals == ["F"]
        assert categories == {"F": ["c1", "c2"]}

    def test_merge_does_not_mutate_profile(self):
        profile = UserProfile(id="u", accessibleCategories={"F": ["c1"]})

        merge_grant(profile, AccessMatch("G", ("c9",), MatchSource.QR))

        assert profile.accessibleFestivals == []
        assert profile.accessibleCategories == {"F": ["c1"]}


class TestRedeemCode:
    """Redemption persists the grant on the user document"""

    def test_redeem_master_code(self, services, db, seed_users):
        db.seed('festivals', 'F', festival_doc(accessCode='FEST1'))

        grant = run(services.access.redeem_code('user-1', 'fest1'))

        assert grant.festival_id == 'F'
        assert grant.accessible_categories == ['c1', 'c2']
        user = db.raw('users', 'user-1')
        assert user['accessibleFestivals'] == ['F']
        assert user['accessibleCategories'] == {'F': ['c1', 'c2']}

    def test_redeem_merges_with_prior_grant(self, services, db, seed_users):
        db.seed('festivals', 'F', festival_doc(
            categoryAccessCodes=[{'code': 'VIP', 'categoryIds': ['c2']}],
            qrCodes=[{'id': 'q1', 'code': 'xyz-999', 'linkedCategories': ['c1']}],
        ))

        run(services.access.redeem_code('user-1', 'xyz-999'))
        grant = run(services.access.redeem_code('user-1', 'VIP'))

        assert grant.granted_category_ids == ['c2']
        assert grant.accessible_categories == ['c1', 'c2']
        assert db.raw('users', 'user-1')['accessibleCategories'] == {'F': ['c1', 'c2']}

    def test_redeeming_twice_is_idempotent(self, services, db, seed_users):
        db.seed('festivals', 'F', festival_doc(categoryAccessCodes=[{'code': 'VIP', 'categoryIds': ['c2']}]))

        run(services.access.redeem_code('user-1', 'VIP'))
        once = dict(db.raw('users', 'user-1')['accessibleCategories'])
        run(services.access.redeem_code('user-1', 'vip'))

        assert db.raw('users', 'user-1')['accessibleCategories'] == once
        assert db.raw('users', 'user-1')['accessibleFestivals'] == ['F']

    def test_master_code_is_a_snapshot_of_categories(self, services, db, seed_users):
        db.seed('festivals', 'F', festival_doc(accessCode='FEST1'))
        run(services.access.redeem_code('user-1', 'FEST1'))

        db.raw('festivals', 'F')['categories'].append({'id': 'c3', 'name': 'New'})
        assert db.raw('users', 'user-1')['accessibleCategories']['F'] == ['c1', 'c2']

        run(services.access.redeem_code('user-1', 'FEST1'))
        assert db.raw('users', 'user-1')['accessibleCategories']['F'] == ['c1', 'c2', 'c3']

    def test_unmatched_code_writes_nothing(self, services, db, seed_users):
        db.seed('festivals', 'F', festival_doc(accessCode='FEST1'))
        before = dict(db.raw('users', 'user-1'))

        with pytest.raises(InvalidCodeError):
            run(services.access.redeem_code('user-1', 'doesnotexist'))

        assert db.raw('users', 'user-1') == before

    def test_failed_write_raises_persistence_error(self, services, db, seed_users):
        db.seed('festivals', 'F', festival_doc(accessCode='FEST1'))
        db.fail_writes = True

        with pytest.raises(PersistenceWriteError) as exc:
            run(services.access.redeem_code('user-1', 'FEST1'))

        assert exc.value.message == "Error processing access"
        assert 'accessibleCategories' not in db.raw('users', 'user-1')

    def test_user_grants_are_read_from_the_profile(self, services, db, seed_users):
        db.raw('users', 'user-1').update({'accessibleFestivals': ['F'], 'accessibleCategories': {'F': ['c2']}})

        grants = run(services.access.get_user_grants('user-1'))

        assert grants == {'accessibleFestivals': ['F'], 'accessibleCategories': {'F': ['c2']}}

    def test_user_grants_start_empty(self, services, seed_users):
        assert run(services.access.get_user_grants('user-2')) == {'accessibleFestivals': [], 'accessibleCategories': {}}


class TestAccessRoutes:

    def test_redeem_endpoint(self, client, db, seed_users):
        db.seed('festivals', 'F', festival_doc(accessCode='FEST1'))

        response = client.post("/access/redeem", json={"code": " Fest1 "})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["festivalId"] == "F"
        assert data["grantedCategoryIds"] == ["c1", "c2"]
        assert data["source"] == "master"

        grants = client.get("/access/me").json()["data"]
        assert grants["accessibleFestivals"] == ["F"]
        assert grants["accessibleCategories"] == {"F": ["c1", "c2"]}

    def test_redeem_endpoint_rejects_unknown_code(self, client, db, seed_users):
        response = client.post("/access/redeem", json={"code": "nope"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid access code or QR code"

    def test_redeem_endpoint_reports_write_failure(self, client, db, seed_users):
        db.seed('festivals', 'F', festival_doc(accessCode='FEST1'))
        db.fail_writes = True

        response = client.post("/access/redeem", json={"code": "FEST1"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Error processing access"
