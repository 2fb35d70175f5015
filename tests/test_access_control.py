"""Tests for the access control flows."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from conftest import CONTRACT, OWNER, STRANGER, WRITER, write_security_config
from observability.errors import error_recorder
from observability.metrics import metrics
from registry.errors import (
    CallerNotAccount,
    DeleteEntityMember,
    InvalidName,
    InvalidResourceSelector,
    ModelAlreadyRegistered,
    NamespaceAlreadyRegistered,
    NamespaceNotRegistered,
    NoModelWriteAccess,
    NoNamespaceWriteAccess,
    NotOwner,
    NotOwnerUpgrade,
    ResourceConflict,
    ResourceNotRegistered,
)
from registry.naming import compute_namespace_selector, compute_selector_from_names
from security.manager import AccessControl


def test_register_namespace_twice(core: AccessControl) -> None:
    record = core.register_namespace(OWNER, "game", selector=1)
    assert record.owner == OWNER
    with pytest.raises(NamespaceAlreadyRegistered) as excinfo:
        core.register_namespace(WRITER, "game", selector=1)
    assert excinfo.value.namespace == "game"
    assert core.get_namespace(1).owner == OWNER


def test_register_namespace_derives_selector(core: AccessControl) -> None:
    record = core.register_namespace(OWNER, "game")
    assert record.selector == compute_namespace_selector("game")
    assert core.namespace_selector("game") == record.selector


def test_register_namespace_requires_account(core: AccessControl) -> None:
    with pytest.raises(CallerNotAccount) as excinfo:
        core.register_namespace(CONTRACT, "game")
    assert excinfo.value.caller == CONTRACT
    assert core.list_namespaces() == []


def test_register_namespace_rejects_bad_input(core: AccessControl) -> None:
    with pytest.raises(InvalidName):
        core.register_namespace(OWNER, "bad-name")
    with pytest.raises(InvalidResourceSelector):
        core.register_namespace(OWNER, "game", selector=0xDEAD)
    assert core.version == 0


def test_register_resource_needs_namespace(core: AccessControl) -> None:
    with pytest.raises(NamespaceNotRegistered):
        core.register_resource(OWNER, 1, "Position", selector=2)
    core.register_namespace(OWNER, "game", selector=1)
    record = core.register_resource(OWNER, 1, "Position", selector=2)
    assert record.tag == "game-Position"
    assert record.kind == "model"


def test_register_resource_by_any_caller(game_world: AccessControl) -> None:
    record = game_world.register_resource(CONTRACT, 1, "Moves", kind="event")
    assert record.owner == CONTRACT
    assert record.selector == compute_selector_from_names("game", "Moves")


def test_register_resource_duplicate(game_world: AccessControl) -> None:
    with pytest.raises(ModelAlreadyRegistered) as excinfo:
        game_world.register_resource(WRITER, 1, "Position", selector=2)
    assert excinfo.value.details() == {"namespace": "game", "name": "Position"}


def test_duplicate_names_under_fresh_selectors_rejected(game_world: AccessControl) -> None:
    with pytest.raises(ModelAlreadyRegistered):
        game_world.register_resource(WRITER, 1, "Position", selector=3)
    with pytest.raises(NamespaceAlreadyRegistered):
        game_world.register_namespace(WRITER, "game", selector=5)
    assert game_world.get_resource(3) is None
    assert game_world.get_namespace(5) is None
    assert game_world.get_resource_by_tag("game-Position").owner == OWNER
    assert game_world.namespace_selector("game") == 1
    assert game_world.check_write_access("game-Position", OWNER).selector == 2


def test_register_resource_unknown_kind(game_world: AccessControl) -> None:
    with pytest.raises(ValueError):
        game_world.register_resource(OWNER, 1, "Thing", kind="table")  # type: ignore[arg-type]


def test_namespace_write_enforced_when_configured(tmp_path: Path) -> None:
    config = tmp_path / "security.yaml"
    write_security_config(config, enforce_namespace_write=True)
    core = AccessControl(config_path=config)
    core.register_namespace(OWNER, "game", selector=1)
    with pytest.raises(NoNamespaceWriteAccess):
        core.register_resource(WRITER, 1, "Position", selector=2)
    core.grant_namespace_writer(OWNER, 1, WRITER)
    assert core.register_resource(WRITER, 1, "Position", selector=2).owner == WRITER


def test_game_position_scenario(game_world: AccessControl) -> None:
    assert game_world.check_write_access("game-Position", OWNER).selector == 2

    with pytest.raises(NoModelWriteAccess) as excinfo:
        game_world.check_write_access("game-Position", WRITER)
    assert excinfo.value.details() == {"tag": "game-Position", "caller": WRITER}

    assert game_world.grant_writer(OWNER, 2, WRITER) is True
    assert game_world.check_write_access("game-Position", WRITER).tag == "game-Position"

    with pytest.raises(NotOwner) as excinfo:
        game_world.check_owner(WRITER, 2)
    assert excinfo.value.details() == {"caller": WRITER, "selector": 2}


def test_check_write_access_accepts_bare_tag(core: AccessControl) -> None:
    core.register_namespace(OWNER, "dojo", selector=1)
    core.register_resource(OWNER, 1, "Position", selector=2)
    assert core.check_write_access("Position", OWNER).tag == "dojo-Position"
    with pytest.raises(NoModelWriteAccess):
        core.check_write_access("Position", WRITER)
    with pytest.raises(ResourceNotRegistered) as excinfo:
        core.check_write_access("Missing", OWNER)
    assert excinfo.value.selector == compute_selector_from_names("dojo", "Missing")


def test_unregistered_selector_short_circuits(game_world: AccessControl) -> None:
    with pytest.raises(ResourceNotRegistered) as excinfo:
        game_world.resolve_kind(99, "model")
    assert excinfo.value.selector == 99
    assert metrics.snapshot()["denials"] == {"resource_not_registered": 1}


def test_resolve_kind_conflict(game_world: AccessControl) -> None:
    assert game_world.resolve_kind(2, "model").tag == "game-Position"
    with pytest.raises(ResourceConflict) as excinfo:
        game_world.resolve_kind(2, "contract")
    assert str(excinfo.value) == "Resource `game-Position` is registered but not as contract."


def test_ownership_is_exclusive(game_world: AccessControl) -> None:
    game_world.grant_writer(OWNER, 2, WRITER)
    assert game_world.check_owner(OWNER, 2).owner == OWNER
    for caller in (WRITER, STRANGER, CONTRACT):
        with pytest.raises(NotOwner):
            game_world.check_owner(caller, 2)


def test_upgrade_narrower_than_write(game_world: AccessControl) -> None:
    game_world.grant_writer(OWNER, 2, WRITER)
    for caller in (OWNER, WRITER, STRANGER):
        try:
            game_world.authorize_upgrade(caller, 2)
        except NotOwnerUpgrade:
            continue
        game_world.authorize_write(caller, 2)

    token = game_world.authorize_write(WRITER, 2)
    assert token.tag == "game-Position" and token.caller == WRITER
    with pytest.raises(NotOwnerUpgrade):
        game_world.authorize_upgrade(WRITER, 2)


def test_authorize_write_unknown_resource(game_world: AccessControl) -> None:
    with pytest.raises(ResourceNotRegistered):
        game_world.authorize_write(OWNER, 99)


def test_upgrade_resource_records_class_hash(game_world: AccessControl) -> None:
    version = game_world.version
    record = game_world.upgrade_resource(OWNER, 2, 0xC1A55)
    assert record.class_hash == 0xC1A55 and record.version == 2
    assert game_world.version == version + 1
    with pytest.raises(NotOwnerUpgrade):
        game_world.upgrade_resource(WRITER, 2, 0xBAD)
    assert game_world.get_resource(2).class_hash == 0xC1A55


@pytest.mark.parametrize("caller", [OWNER, WRITER, STRANGER, CONTRACT])
def test_delete_member_never_succeeds(game_world: AccessControl, caller: int) -> None:
    game_world.grant_writer(OWNER, 2, WRITER)
    with pytest.raises(DeleteEntityMember):
        game_world.delete_member(caller, 2, member="x")
    with pytest.raises(DeleteEntityMember):
        game_world.delete_member(caller, 99)


def test_revoked_writer_loses_access(game_world: AccessControl) -> None:
    game_world.grant_writer(OWNER, 2, WRITER)
    with pytest.raises(NotOwner):
        game_world.revoke_writer(WRITER, 2, WRITER)
    assert game_world.revoke_writer(OWNER, 2, WRITER) is True
    assert game_world.revoke_writer(OWNER, 2, WRITER) is False
    with pytest.raises(NoModelWriteAccess):
        game_world.authorize_write(WRITER, 2)


def test_namespace_writer_flow(game_world: AccessControl) -> None:
    with pytest.raises(NoNamespaceWriteAccess):
        game_world.authorize_namespace_write(WRITER, 1)
    game_world.grant_namespace_writer(OWNER, 1, WRITER)
    assert game_world.authorize_namespace_write(WRITER, 1).name == "game"
    game_world.revoke_namespace_writer(OWNER, 1, WRITER)
    with pytest.raises(NoNamespaceWriteAccess):
        game_world.authorize_namespace_write(WRITER, 1)


def test_failed_flow_changes_nothing(game_world: AccessControl) -> None:
    before = game_world.snapshot()
    with pytest.raises(NotOwner):
        game_world.grant_writer(WRITER, 2, WRITER)
    after = game_world.snapshot()
    assert after.version == before.version
    assert after.resources[2].writers == before.resources[2].writers


def test_returned_records_are_copies(game_world: AccessControl) -> None:
    record = game_world.get_resource(2)
    record.writers.add(STRANGER)
    with pytest.raises(NoModelWriteAccess):
        game_world.authorize_write(STRANGER, 2)


def test_transaction_rolls_back(game_world: AccessControl) -> None:
    version = game_world.version
    with pytest.raises(ModelAlreadyRegistered):
        with game_world.transaction():
            game_world.register_resource(OWNER, 1, "Moves", kind="event")
            game_world.grant_writer(OWNER, 2, WRITER)
            game_world.register_resource(OWNER, 1, "Position", selector=2)
    assert game_world.version == version
    assert game_world.get_resource_by_tag("game-Moves") is None
    assert WRITER not in game_world.get_resource(2).writers


def test_transaction_commits_counted_on_success_only(game_world: AccessControl) -> None:
    commits = metrics.snapshot()["commits"]
    with pytest.raises(ModelAlreadyRegistered):
        with game_world.transaction():
            game_world.grant_writer(OWNER, 2, WRITER)
            game_world.register_resource(OWNER, 1, "Position", selector=2)
    assert metrics.snapshot()["commits"] == commits

    with game_world.transaction():
        game_world.grant_writer(OWNER, 2, WRITER)
        with game_world.transaction():
            game_world.register_resource(OWNER, 1, "Moves", kind="event")
        assert metrics.snapshot()["commits"] == commits
    assert metrics.snapshot()["commits"] == commits + 2


def test_concurrent_registration_single_winner(core: AccessControl) -> None:
    callers = [OWNER, WRITER, STRANGER] * 4
    outcomes: list[str] = []
    lock = threading.Lock()
    barrier = threading.Barrier(len(callers))

    def _register(caller: int) -> None:
        barrier.wait()
        try:
            core.register_namespace(caller, "race", selector=5)
            result = "ok"
        except NamespaceAlreadyRegistered:
            result = "taken"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=_register, args=(caller,)) for caller in callers]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("taken") == len(callers) - 1


def test_denials_are_recorded(game_world: AccessControl) -> None:
    with pytest.raises(NoModelWriteAccess):
        game_world.authorize_write(STRANGER, 2)
    entries = error_recorder.list()
    assert entries[0]["event"] == "no_model_write_access"
    assert entries[0]["flow"] == "authorize_write"
    assert entries[0]["details"] == {"tag": "game-Position", "caller": hex(STRANGER)}
    snapshot = metrics.snapshot()
    assert snapshot["decisions"]["authorize_write"]["deny"] == 1
    assert snapshot["commits"] == 2


def test_reload_picks_up_new_accounts(core: AccessControl, security_config: Path) -> None:
    with pytest.raises(CallerNotAccount):
        core.register_namespace(0x555, "late")
    security_config.write_text(
        'accounts:\n  - address: "0x555"\n', encoding="utf-8"
    )
    core.reload()
    assert core.register_namespace(0x555, "late").owner == 0x555


def test_missing_security_config_uses_defaults(tmp_path: Path) -> None:
    core = AccessControl(config_path=tmp_path / "missing.yaml")
    assert not core.identity.is_account(OWNER)
    core.identity.register_account(OWNER)
    assert core.register_namespace(OWNER, "game").owner == OWNER
