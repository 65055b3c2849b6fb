"""
Stress tests / adversarial evaluation of draftstate.

This script attempts to BREAK the claimed properties:
  1. diff/apply round trip on random values (forward and inverse)
  2. Commit round trip for random write sequences through wrappers
  3. Draft view equals committed snapshot
  4. Fork + replay converges to the source state
  5. Edge cases that might expose identity / invalidation bugs
"""

import sys, os, random, time
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from draftstate import (
    AMap, equal, diff, apply, from_python, to_python,
    create_tracked_state, fork_state, apply_patches, current,
    sync_scheduler, patches_to_json, patches_from_json,
    MapWrapper, SeqWrapper, StaleWrapperError,
)


def test(name, condition, detail=""):
    status = "PASS" if condition else "FAIL"
    print(f"  [{status}] {name}" + (f"  ({detail})" if detail else ""))
    return condition


SCALARS = [0, 1, 2, 1.5, "a", "b", "", None, True, False]
KEYS = ["a", "b", "c", "d", "e"]


def random_plain(depth=0, max_depth=3):
    """Generate a random plain Python value."""
    if depth >= max_depth:
        return random.choice(SCALARS)
    kind = random.choice(["atom", "seq", "map"])
    if kind == "atom":
        return random.choice(SCALARS)
    if kind == "seq":
        return [random_plain(depth + 1, max_depth) for _ in range(random.randint(0, 4))]
    return {k: random_plain(depth + 1, max_depth)
            for k in random.sample(KEYS, random.randint(0, 4))}


def random_container(wrapper, max_hops=3):
    """Walk down a random path of container children."""
    for _ in range(random.randint(0, max_hops)):
        if isinstance(wrapper, MapWrapper):
            keys = [k for k in wrapper if isinstance(wrapper[k], (MapWrapper, SeqWrapper))]
            if not keys:
                break
            wrapper = wrapper[random.choice(keys)]
        else:
            idx = [i for i in range(len(wrapper))
                   if isinstance(wrapper[i], (MapWrapper, SeqWrapper))]
            if not idx:
                break
            wrapper = wrapper[random.choice(idx)]
    return wrapper


def random_write(root):
    """Apply one random mutation somewhere under ``root``."""
    target = random_container(root)
    if isinstance(target, MapWrapper):
        op = random.choice(["set", "set", "del", "alias"])
        if op == "del" and len(target):
            del target[random.choice(list(target))]
        elif op == "alias" and len(target):
            # copy a sibling subtree under another key
            target[random.choice(KEYS)] = random.choice(list(target.values()))
        else:
            target[random.choice(KEYS)] = random_plain(1)
    else:
        op = random.choice(["append", "insert", "set", "del", "pop", "reverse"])
        n = len(target)
        if op == "append" or n == 0:
            target.append(random_plain(1))
        elif op == "insert":
            target.insert(random.randint(-n, n), random_plain(1))
        elif op == "set":
            target[random.randrange(n)] = random_plain(1)
        elif op == "del":
            del target[random.randrange(n)]
        elif op == "pop":
            target.pop()
        else:
            target.reverse()


def random_root():
    return {k: random_plain(1) for k in random.sample(KEYS, random.randint(1, 5))}


# ═══════════════════════════════════════════════════════════════
#  §1  DIFF / APPLY ROUND TRIP — random values
# ═══════════════════════════════════════════════════════════════

print("=" * 70)
print("  §1  DIFF / APPLY ROUND TRIP — random values")
print("=" * 70)

random.seed(42)
forward_fail = inverse_fail = 0
for _ in range(2000):
    a = from_python(random_plain())
    b = from_python(random_plain())
    patches, inverse = diff(a, b)
    if not equal(apply(a, patches), b):
        forward_fail += 1
        if forward_fail <= 5:
            print(f"    FAIL: apply(a, diff(a, b)) != b for {to_python(a)!r} → {to_python(b)!r}")
    if not equal(apply(b, inverse), a):
        inverse_fail += 1
        if inverse_fail <= 5:
            print(f"    FAIL: apply(b, inverse) != a for {to_python(a)!r} → {to_python(b)!r}")

test("Forward patches reach target (2000 random pairs)", forward_fail == 0,
     f"{forward_fail} failures")
test("Inverse patches restore source (2000 random pairs)", inverse_fail == 0,
     f"{inverse_fail} failures")

same_empty = all(diff(v, from_python(to_python(v))) == ([], [])
                 for v in (from_python(random_plain()) for _ in range(500)))
test("Equal values diff to nothing (500 random values)", same_empty)


# ═══════════════════════════════════════════════════════════════
#  §2  COMMIT ROUND TRIP — random writes through wrappers
# ═══════════════════════════════════════════════════════════════

print()
print("=" * 70)
print("  §2  COMMIT ROUND TRIP — random writes")
print("=" * 70)

commit_fail = view_fail = 0
for trial in range(500):
    commits = []
    state = create_tracked_state(random_root(), lambda p, inv: commits.append((p, inv)))
    for _ in range(random.randint(1, 5)):
        before = state.snapshot
        for _ in range(random.randint(1, 6)):
            random_write(state.value)
        expected = current(state)
        count = len(commits)
        state.commit()
        if to_python(state.snapshot) != expected:
            view_fail += 1
        if len(commits) > count:
            patches, inverse = commits[-1]
            if not (equal(apply(before, patches), state.snapshot)
                    and equal(apply(state.snapshot, inverse), before)):
                commit_fail += 1
                if commit_fail <= 5:
                    print(f"    FAIL: trial {trial}: {patches}")
        elif not equal(before, state.snapshot):
            commit_fail += 1

test("Committed patches round trip (500 random sessions)", commit_fail == 0,
     f"{commit_fail} failures")
test("Draft view equals committed snapshot", view_fail == 0,
     f"{view_fail} failures")


# ═══════════════════════════════════════════════════════════════
#  §3  FORK + REPLAY CONVERGENCE
# ═══════════════════════════════════════════════════════════════

print()
print("=" * 70)
print("  §3  FORK + REPLAY")
print("=" * 70)

replay_fail = 0
for _ in range(300):
    recorded = []
    source = create_tracked_state(random_root(), lambda p, inv: recorded.extend(p),
                                  scheduler=sync_scheduler)
    replica = fork_state(source)
    for _ in range(random.randint(1, 10)):
        random_write(source.value)
    apply_patches(replica, patches_from_json(patches_to_json(recorded)))
    if not equal(replica.snapshot, source.snapshot):
        replay_fail += 1

test("Per-write patches replayed on a fork converge (300 sessions)",
     replay_fail == 0, f"{replay_fail} failures")


# ═══════════════════════════════════════════════════════════════
#  §4  EDGE CASES
# ═══════════════════════════════════════════════════════════════

print()
print("=" * 70)
print("  §4  EDGE CASES")
print("=" * 70)

state = create_tracked_state({"x": {"y": [1, 2, 3]}})
held = state.value["x"]["y"]
for i in range(10):
    state.value["x"]["y"].append(i)
    state.commit()
test("Held wrapper survives many commits", held is state.value["x"]["y"] and len(held) == 13)

state = create_tracked_state({"x": {"y": 1}})
held = state.value["x"]
state.value = {"x": {"y": 1}}
try:
    held["y"]
    stale = False
except StaleWrapperError:
    stale = True
test("Root assignment retires old wrappers, even when equal", stale)

state = create_tracked_state({"l": [[i] for i in range(20)]})
seq = state.value["l"]
wrappers = [seq[i] for i in range(20)]
seq.reverse()
test("Reverse of container items keeps contents",
     current(state)["l"] == [[i] for i in reversed(range(20))])

state = create_tracked_state({"a": [1, 2]})
before = state.snapshot
state.value["a"].append(3)
state.value["a"].remove(3)
state.commit()
test("Write + revert keeps the snapshot value", equal(before, state.snapshot))

big = create_tracked_state({"rows": [{"n": i} for i in range(200)], "meta": {"v": 1}})
keep = big.snapshot.entries["rows"]
big.value["meta"]["v"] = 2
big.commit()
test("Untouched subtree keeps identity", big.snapshot.entries["rows"] is keep)
test("Snapshot stays an AMap", isinstance(big.snapshot, AMap))


# ═══════════════════════════════════════════════════════════════
#  §5  PERFORMANCE (wall-clock)
# ═══════════════════════════════════════════════════════════════

print()
print("=" * 70)
print("  §5  PERFORMANCE (wall-clock)")
print("=" * 70)

for n in [100, 1000, 10000]:
    commits = []
    state = create_tracked_state({"rows": []}, lambda p, inv: commits.append(p))
    t0 = time.perf_counter()
    rows = state.value["rows"]
    for i in range(n):
        rows.append({"n": i})
    state.commit()
    dt = time.perf_counter() - t0
    print(f"  {n} appends, one commit: {dt*1000:.1f}ms  patches={len(commits[0])}")

for n in [100, 1000, 10000]:
    state = create_tracked_state({"rows": [{"n": i} for i in range(n)]})
    t0 = time.perf_counter()
    state.value["rows"][n // 2]["n"] = -1
    state.commit()
    dt = time.perf_counter() - t0
    print(f"  1 nested write in {n} rows: {dt*1000:.2f}ms")


# ═══════════════════════════════════════════════════════════════
#  SUMMARY
# ═══════════════════════════════════════════════════════════════

print()
print("=" * 70)
print("  STRESS TEST SUMMARY")
print("=" * 70)
print("  If you see FAIL above, there's a bug.")
print("  If everything is PASS, the implementation is correct")
print("  for the tested cases (not a proof, but high confidence).")
