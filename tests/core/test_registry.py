import copy
import pytest
from participant_registry.core.errors import ErrorKind, RegistryInvariantError, RegistryResult
from participant_registry.core.registry import Registry, BULK_VERIFY_MAX
from participant_registry.store.models import RegistryState, Role

ADMIN = "deployer"
COMPANY = "company1"
FACILITY = "facility1"
REGULATOR = "regulator1"
OUTSIDER = "user1"


@pytest.fixture
def reg():
    return Registry(deployer=ADMIN)


def _fail(kind):
    return RegistryResult.failure(kind)


def test_fresh_registry_defaults(reg):
    assert reg.get_contract_admin() == ADMIN
    assert reg.is_contract_paused() is False
    assert reg.state.users == {}
    assert all(reg.get_role_count(r.value) == 0 for r in Role)


def test_register_creates_unverified_active_record(reg):
    reg.state.height = 7
    assert reg.register(COMPANY, "company", "Test Company", "Description") == RegistryResult.success()

    rec = reg.get_user_info(COMPANY)
    assert rec.role == "company"
    assert rec.name == "Test Company"
    assert rec.description == "Description"
    assert rec.registeredAt == 7
    assert rec.verified is False
    assert rec.active is True
    assert rec.verifier is None
    assert reg.is_registered(COMPANY) is True
    assert reg.is_verified(COMPANY) is False
    assert reg.get_role_count("company") == 1


def test_register_twice_rejected_and_first_record_untouched(reg):
    reg.register(COMPANY, "company", "Test", "Desc")
    before = copy.deepcopy(reg.state)

    res = reg.register(COMPANY, "facility", "Test2", "Desc2")
    assert res == _fail(ErrorKind.ALREADY_REGISTERED)
    assert res.value == 100
    assert reg.state == before


def test_register_invalid_role(reg):
    assert reg.register(COMPANY, "invalid", "Test", "Desc") == _fail(ErrorKind.INVALID_ROLE)
    assert reg.is_registered(COMPANY) is False


@pytest.mark.parametrize("name", ["", "x" * 101])
def test_register_invalid_name(reg, name):
    assert reg.register(COMPANY, "company", name, "Desc") == _fail(ErrorKind.INVALID_NAME)
    assert reg.get_role_count("company") == 0


def test_register_length_bounds_count_code_points(reg):
    # 100 non-ASCII code points is still a valid name
    assert reg.register(COMPANY, "company", "é" * 100, "ü" * 500).ok
    assert reg.register(FACILITY, "facility", "Plant", "d" * 501) == _fail(ErrorKind.DESCRIPTION_TOO_LONG)


def test_register_error_priority(reg):
    reg.register(COMPANY, "company", "Test", "Desc")
    # already registered wins over invalid role/name/description
    assert reg.register(COMPANY, "bogus", "", "d" * 600).error == ErrorKind.ALREADY_REGISTERED
    # invalid role wins over invalid name
    assert reg.register(FACILITY, "bogus", "", "d" * 600).error == ErrorKind.INVALID_ROLE
    # invalid name wins over long description
    assert reg.register(FACILITY, "facility", "", "d" * 600).error == ErrorKind.INVALID_NAME
    reg.pause(ADMIN)
    assert reg.register(FACILITY, "bogus", "", "").error == ErrorKind.PAUSED


def test_admin_role_can_be_registered_without_granting_admin_rights(reg):
    assert reg.register(OUTSIDER, "admin", "Ops", "").ok
    reg.register(COMPANY, "company", "Test", "Desc")
    assert reg.verify(OUTSIDER, COMPANY) == _fail(ErrorKind.UNAUTHORIZED)


def test_verify_by_admin_then_already_verified(reg):
    reg.register(COMPANY, "company", "Test", "Desc")
    assert reg.verify(ADMIN, COMPANY).ok
    assert reg.is_verified(COMPANY) is True
    assert reg.get_user_info(COMPANY).verifier == ADMIN
    assert reg.verify(ADMIN, COMPANY) == _fail(ErrorKind.ALREADY_VERIFIED)


def test_verify_by_non_admin_unauthorized(reg):
    reg.register(COMPANY, "company", "Test", "Desc")
    assert reg.verify(OUTSIDER, COMPANY) == _fail(ErrorKind.UNAUTHORIZED)
    reg.verify(ADMIN, COMPANY)
    # still unauthorized once the target is verified
    assert reg.verify(OUTSIDER, COMPANY) == _fail(ErrorKind.UNAUTHORIZED)


def test_regulator_cannot_verify_self_or_peers(reg):
    reg.register(REGULATOR, "regulator", "EPA", "")
    reg.register(COMPANY, "company", "Test", "Desc")
    reg.verify(ADMIN, REGULATOR)
    assert reg.verify(REGULATOR, REGULATOR).error == ErrorKind.UNAUTHORIZED
    assert reg.verify(REGULATOR, COMPANY).error == ErrorKind.UNAUTHORIZED


def test_verify_unregistered_target(reg):
    assert reg.verify(ADMIN, OUTSIDER) == _fail(ErrorKind.NOT_REGISTERED)


def test_update_profile_self_service(reg):
    reg.register(COMPANY, "company", "Old Name", "Old Desc")
    reg.verify(ADMIN, COMPANY)
    before = reg.get_user_info(COMPANY)

    assert reg.update_profile(COMPANY, "New Name", "New Desc").ok
    after = reg.get_user_info(COMPANY)
    assert (after.name, after.description) == ("New Name", "New Desc")
    assert (after.role, after.verified, after.active, after.registeredAt) == (
        before.role, before.verified, before.active, before.registeredAt
    )


def test_update_profile_rejections(reg):
    assert reg.update_profile(OUTSIDER, "Name", "") == _fail(ErrorKind.NOT_REGISTERED)
    reg.register(COMPANY, "company", "Test", "Desc")
    assert reg.update_profile(COMPANY, "", "New Desc") == _fail(ErrorKind.INVALID_NAME)
    assert reg.update_profile(COMPANY, "Ok", "d" * 501) == _fail(ErrorKind.DESCRIPTION_TOO_LONG)
    assert reg.get_user_info(COMPANY).name == "Test"


def test_admin_deactivates_user(reg):
    reg.register(COMPANY, "company", "Test", "Desc")
    assert reg.deactivate(ADMIN, COMPANY).ok
    assert reg.get_user_info(COMPANY).active is False
    assert reg.get_role_count("company") == 0
    # soft delete: the record is still there
    assert reg.is_registered(COMPANY) is True


def test_self_deactivation_and_not_reversible(reg):
    reg.register(COMPANY, "company", "Test", "Desc")
    assert reg.deactivate(COMPANY, COMPANY).ok
    # already inactive reports NOT_REGISTERED, same as a missing record
    assert reg.deactivate(COMPANY, COMPANY) == _fail(ErrorKind.NOT_REGISTERED)
    assert reg.deactivate(ADMIN, COMPANY) == _fail(ErrorKind.NOT_REGISTERED)
    assert reg.get_role_count("company") == 0


def test_deactivate_rejections(reg):
    assert reg.deactivate(ADMIN, OUTSIDER) == _fail(ErrorKind.NOT_REGISTERED)
    reg.register(COMPANY, "company", "Test", "Desc")
    assert reg.deactivate(OUTSIDER, COMPANY) == _fail(ErrorKind.UNAUTHORIZED)
    assert reg.get_user_info(COMPANY).active is True


def test_deactivate_only_decrements_own_role(reg):
    reg.register(COMPANY, "company", "A", "")
    reg.register(FACILITY, "facility", "B", "")
    reg.deactivate(ADMIN, COMPANY)
    assert reg.get_role_count("company") == 0
    assert reg.get_role_count("facility") == 1


def test_change_role_moves_count(reg):
    reg.register(COMPANY, "company", "Test", "Desc")
    reg.register(FACILITY, "facility", "Plant", "")
    total = sum(reg.state.roleCounts.values())

    assert reg.change_role(ADMIN, COMPANY, "facility").ok
    assert reg.get_user_info(COMPANY).role == "facility"
    assert reg.get_role_count("company") == 0
    assert reg.get_role_count("facility") == 2
    assert sum(reg.state.roleCounts.values()) == total


def test_change_role_rejections_in_order(reg):
    assert reg.change_role(ADMIN, OUTSIDER, "facility") == _fail(ErrorKind.NOT_REGISTERED)
    reg.register(COMPANY, "company", "Test", "Desc")
    assert reg.change_role(OUTSIDER, COMPANY, "invalid") == _fail(ErrorKind.UNAUTHORIZED)
    assert reg.change_role(ADMIN, COMPANY, "invalid") == _fail(ErrorKind.INVALID_ROLE)
    reg.deactivate(COMPANY, COMPANY)
    assert reg.change_role(ADMIN, COMPANY, "facility") == _fail(ErrorKind.NOT_REGISTERED)
    assert reg.get_user_info(COMPANY).role == "company"
    assert reg.get_role_count("facility") == 0


def test_pause_blocks_every_mutation(reg):
    reg.register(COMPANY, "company", "Test", "Desc")
    assert reg.pause(ADMIN).ok
    assert reg.is_contract_paused() is True
    before = copy.deepcopy(reg.state)

    paused = _fail(ErrorKind.PAUSED)
    assert reg.register(FACILITY, "facility", "Plant", "") == paused
    assert reg.verify(ADMIN, COMPANY) == paused
    assert reg.update_profile(COMPANY, "X", "") == paused
    assert reg.deactivate(ADMIN, COMPANY) == paused
    assert reg.change_role(ADMIN, COMPANY, "facility") == paused
    assert reg.bulk_verify(ADMIN, [COMPANY]) == paused
    assert reg.state == before

    assert reg.unpause(ADMIN).ok
    assert reg.is_contract_paused() is False
    assert reg.register(FACILITY, "facility", "Plant", "").ok


def test_pause_unpause_are_idempotent_and_admin_only(reg):
    assert reg.pause(OUTSIDER) == _fail(ErrorKind.UNAUTHORIZED)
    assert reg.unpause(OUTSIDER) == _fail(ErrorKind.UNAUTHORIZED)
    assert reg.pause(ADMIN).ok
    assert reg.pause(ADMIN).ok
    assert reg.is_contract_paused() is True
    assert reg.unpause(ADMIN).ok
    assert reg.unpause(ADMIN).ok
    assert reg.is_contract_paused() is False


def test_set_admin_rotation(reg):
    assert reg.set_admin(OUTSIDER, OUTSIDER) == _fail(ErrorKind.UNAUTHORIZED)
    # works while paused, and the new admin need not be registered
    reg.pause(ADMIN)
    assert reg.set_admin(ADMIN, OUTSIDER).ok
    assert reg.get_contract_admin() == OUTSIDER
    assert reg.set_admin(ADMIN, ADMIN) == _fail(ErrorKind.UNAUTHORIZED)
    assert reg.unpause(OUTSIDER).ok


def test_new_admin_takes_over_verification(reg):
    reg.register(COMPANY, "company", "Test", "Desc")
    reg.set_admin(ADMIN, REGULATOR)
    assert reg.verify(ADMIN, COMPANY).error == ErrorKind.UNAUTHORIZED
    assert reg.verify(REGULATOR, COMPANY).ok
    assert reg.get_user_info(COMPANY).verifier == REGULATOR


def test_bulk_verify_skips_failures_and_counts_successes(reg):
    reg.register(COMPANY, "company", "A", "")
    reg.register(FACILITY, "facility", "B", "")
    reg.verify(ADMIN, COMPANY)

    res = reg.bulk_verify(ADMIN, [COMPANY, FACILITY, OUTSIDER])
    assert res == RegistryResult.success(1)
    assert reg.is_verified(FACILITY) is True


def test_bulk_verify_batch_guards(reg):
    reg.register(COMPANY, "company", "A", "")
    assert reg.bulk_verify(OUTSIDER, [COMPANY]) == _fail(ErrorKind.UNAUTHORIZED)
    assert reg.is_verified(COMPANY) is False
    assert reg.bulk_verify(ADMIN, []) == RegistryResult.success(0)


def test_bulk_verify_rejects_oversized_batch(reg):
    targets = [f"u{i}" for i in range(BULK_VERIFY_MAX + 1)]
    for t in targets:
        reg.register(t, "company", t, "")
    with pytest.raises(ValueError):
        reg.bulk_verify(ADMIN, targets)
    assert not any(reg.is_verified(t) for t in targets)


def test_has_role_requires_registered_verified_active_and_match(reg):
    assert reg.has_role(COMPANY, "company") is False
    reg.register(COMPANY, "company", "Test", "Desc")
    assert reg.has_role(COMPANY, "company") is False  # not verified
    reg.verify(ADMIN, COMPANY)
    assert reg.has_role(COMPANY, "company") is True
    assert reg.has_role(COMPANY, Role.COMPANY) is True
    assert reg.has_role(COMPANY, "facility") is False
    reg.deactivate(ADMIN, COMPANY)
    assert reg.has_role(COMPANY, "company") is False  # inactive


def test_queries_on_unknown_inputs_never_fail(reg):
    assert reg.get_user_info(OUTSIDER) is None
    assert reg.is_registered(OUTSIDER) is False
    assert reg.is_verified(OUTSIDER) is False
    assert reg.get_role_count("nonsense") == 0
    assert reg.get_role_count(Role.REGULATOR) == 0


def test_get_user_info_returns_a_copy(reg):
    reg.register(COMPANY, "company", "Test", "Desc")
    rec = reg.get_user_info(COMPANY)
    rec.verified = True
    assert reg.is_verified(COMPANY) is False


def test_missing_role_bucket_is_an_invariant_violation():
    state = RegistryState(admin=ADMIN)
    reg = Registry(state)
    reg.register(COMPANY, "company", "Test", "Desc")
    del state.roleCounts["company"]
    with pytest.raises(RegistryInvariantError):
        reg.deactivate(ADMIN, COMPANY)


def test_end_to_end_lifecycle(reg):
    assert reg.register(COMPANY, "company", "Acme Waste", "Hauler").ok
    assert reg.verify(ADMIN, COMPANY).ok
    assert reg.has_role(COMPANY, "company") is True

    assert reg.change_role(ADMIN, COMPANY, "facility").ok
    assert reg.has_role(COMPANY, "company") is False
    assert reg.has_role(COMPANY, "facility") is True

    assert reg.deactivate(COMPANY, COMPANY).ok
    assert reg.has_role(COMPANY, "facility") is False
    assert reg.get_role_count("facility") == 0


def test_role_counts_match_active_population(reg):
    ids = [f"p{i}" for i in range(6)]
    roles = ["company", "facility", "regulator", "company", "admin", "facility"]
    for i, r in zip(ids, roles):
        reg.register(i, r, i, "")
    reg.deactivate(ADMIN, "p0")
    reg.change_role(ADMIN, "p1", "company")
    reg.deactivate("p4", "p4")
    reg.change_role(ADMIN, "p0", "regulator")  # inactive: rejected

    for r in Role:
        expected = sum(1 for u in reg.state.users.values() if u.active and u.role == r.value)
        assert reg.get_role_count(r.value) == expected
