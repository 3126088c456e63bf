from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from access_ledger.errors import NoStateChange
from access_ledger.types.role import Role

from .conftest import MOD, OWNER, det_address

ACCOUNTS = [det_address(f"worker-{i}") for i in range(64)]


def test_parallel_grants_keep_counts_exact(ledger, sink):
    with ThreadPoolExecutor(max_workers=8) as pool:
        changed = list(pool.map(lambda a: ledger.grant_or_revoke_role(OWNER, Role.USER, a), ACCOUNTS * 2))
    assert sum(changed) == len(ACCOUNTS)
    assert ledger.get_role_count(Role.USER) == len(ACCOUNTS)
    assert len(sink) == len(ACCOUNTS)
    assert [e.seq for e in sink.events()] == list(range(1, len(ACCOUNTS) + 1))
    ledger.assert_consistent()


def test_racing_blacklist_toggles_apply_once(populated, sink):
    target = ACCOUNTS[0]
    populated.grant_or_revoke_role(OWNER, Role.USER, target)
    sink.clear()
    outcomes = []
    lock = threading.Lock()
    start = threading.Barrier(6)

    def worker():
        start.wait()
        try:
            populated.set_blacklist(MOD, target, True)
            result = "ok"
        except NoStateChange:
            result = "dup"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["dup"] * 5 + ["ok"]
    assert populated.get_contract_stats().blacklisted_count == 1
    assert sink.names() == ["RoleRevoked", "AddressBlacklisted"]
    populated.assert_consistent()


def test_readers_never_see_partial_blacklist(populated):
    targets = ACCOUNTS[:16]
    for a in targets:
        populated.grant_or_revoke_role(OWNER, Role.USER, a)
    violations = []
    done = threading.Event()

    def reader():
        while not done.is_set():
            stats = populated.get_contract_stats()
            # every blacklisted target lost its USER role in the same step
            if stats.user_count + stats.blacklisted_count != len(targets) + 1:
                violations.append(stats)

    r = threading.Thread(target=reader)
    r.start()
    for a in targets:
        populated.set_blacklist(MOD, a, True)
    done.set()
    r.join()
    assert violations == []
